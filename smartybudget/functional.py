from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from smartybudget.domain import BudgetItem, CategoryRef, Ledger, LineItem

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Left(self._error)

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return Left(self._error)

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def error(code: str, message: str, **extra: Any) -> dict:
    return {"error": code, "message": message, **extra}


def safe_item(ledger: Ledger, ref: CategoryRef) -> Maybe[BudgetItem]:
    for item in ledger.bucket(ref.bucket):
        if item.id == ref.item_id:
            return Some(item)
    return Nothing()


def validate_item_name(name: Any) -> Either[dict, str]:
    if not isinstance(name, str) or not name.strip():
        return Left(error("invalid_name", "Item name must not be empty", name=name))
    return Right(name.strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_planned(planned: Any) -> Either[dict, float]:
    if not _is_number(planned):
        return Left(error("invalid_planned", f"Planned amount {planned!r} is not a number", planned=planned))
    return Right(float(planned))


def validate_threshold(threshold: Any) -> Either[dict, float]:
    if not _is_number(threshold) or not 0 < threshold <= 100:
        return Left(error(
            "invalid_threshold",
            "Alert threshold must be a percentage between 1 and 100",
            threshold=threshold,
        ))
    return Right(float(threshold))


def validate_amount(amount: Any) -> Either[dict, float]:
    if not _is_number(amount):
        return Left(error("invalid_amount", f"Amount {amount!r} is not a number", amount=amount))
    if amount < 0:
        return Left(error("negative_amount", "Amounts are recorded as positive magnitudes", amount=amount))
    return Right(float(amount))


def parse_date(value: Any) -> Either[dict, date]:
    # datetime is a date subclass; keep only the calendar day
    if isinstance(value, datetime):
        return Right(value.date())
    if isinstance(value, date):
        return Right(value)
    if isinstance(value, str):
        try:
            return Right(date.fromisoformat(value.strip()))
        except ValueError:
            pass
    return Left(error("invalid_date", f"Date {value!r} is not in YYYY-MM-DD format", date=value))


def validate_line_items(items: Optional[Iterable[Any]]) -> Either[dict, tuple]:
    rows = []
    for raw in items or ():
        if isinstance(raw, LineItem):
            rows.append(raw)
            continue
        if not isinstance(raw, Mapping):
            return Left(error("invalid_items", "Itemised rows must be objects", item=raw))
        amount = raw.get("amount")
        if not _is_number(amount):
            return Left(error("invalid_items", "Itemised row amount is not a number", item=raw))
        rows.append(LineItem(description=str(raw.get("description", "")), amount=float(amount)))
    return Right(tuple(rows))


def validate_transaction_fields(fields: Mapping[str, Any], ledger: Ledger) -> Either[dict, dict]:
    """Validate manual or scanned transaction input against the ledger.

    Returns the normalised keyword arguments accepted by
    ``transforms.add_transaction``.
    """
    description = fields.get("description")
    if not isinstance(description, str) or not description.strip():
        return Left(error("invalid_description", "Description must not be empty"))

    ref = fields.get("category")
    if not isinstance(ref, CategoryRef) or safe_item(ledger, ref).is_none():
        return Left(error("category_not_found", "Please select a valid category", category=ref))

    parsed_date = parse_date(fields.get("date"))
    if parsed_date.is_left():
        return parsed_date
    amount = validate_amount(fields.get("amount"))
    if amount.is_left():
        return amount
    items = validate_line_items(fields.get("items"))
    if items.is_left():
        return items

    return Right({
        "date": parsed_date.get_or_else(None),
        "description": description.strip(),
        "amount": amount.get_or_else(0.0),
        "category": ref,
        "location": str(fields.get("location") or "").strip(),
        "items": items.get_or_else(()),
    })

