import json
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple, Union
from uuid import uuid4

from smartybudget.domain import (
    BUCKETS,
    DEFAULT_ALERT_THRESHOLD,
    Bucket,
    BudgetItem,
    CategoryRef,
    Ledger,
    Period,
    Transaction,
)
from smartybudget.functional import (
    Either,
    Left,
    Right,
    error,
    parse_date,
    validate_line_items,
)

SEED_PATH = Path(__file__).resolve().parent / "data" / "seed.json"


def new_item_id() -> str:
    return uuid4().hex


def new_transaction_id(now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).isoformat()
    return f"{stamp}-{uuid4().hex[:8]}"


# --- commands: each takes a snapshot and returns a new one


def update_item(ledger: Ledger, bucket: Bucket, item: BudgetItem) -> Ledger:
    items = tuple(item if i.id == item.id else i for i in ledger.bucket(bucket))
    return replace(ledger, **{bucket.value: items})


def add_item(
    ledger: Ledger,
    bucket: Bucket,
    name: str,
    planned: float = 0,
    id_factory: Callable[[], str] = new_item_id,
) -> Ledger:
    item = BudgetItem(
        id=id_factory(),
        name=name,
        planned=planned,
        actual=0.0,
        alert_threshold=DEFAULT_ALERT_THRESHOLD,
    )
    return replace(ledger, **{bucket.value: ledger.bucket(bucket) + (item,)})


def remove_item(ledger: Ledger, bucket: Bucket, item_id: str) -> Ledger:
    items = tuple(i for i in ledger.bucket(bucket) if i.id != item_id)
    return replace(ledger, **{bucket.value: items})


def set_display_currency(ledger: Ledger, code: str) -> Ledger:
    return replace(ledger, display_currency=code)


def add_transaction(
    ledger: Ledger,
    fields: Mapping[str, Any],
    id_factory: Callable[[], str] = new_transaction_id,
) -> Ledger:
    t = Transaction(id=id_factory(), **fields)
    return replace(ledger, transactions=(t,) + ledger.transactions)


def remove_transaction(ledger: Ledger, txn_id: str) -> Ledger:
    return replace(
        ledger,
        transactions=tuple(t for t in ledger.transactions if t.id != txn_id),
    )


def replace_all(ledger: Ledger, new: Ledger) -> Ledger:
    return new


def reset_to_default(seed: Ledger) -> Ledger:
    return seed


# --- serialisation


def item_to_dict(item: BudgetItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "planned": item.planned,
        "actual": item.actual,
        "alertThreshold": item.alert_threshold,
    }


def transaction_to_dict(t: Transaction) -> dict:
    return {
        "id": t.id,
        "date": t.date.isoformat(),
        "description": t.description,
        "amount": t.amount,
        "categoryId": t.category.item_id,
        "categoryType": t.category.bucket.value,
        "location": t.location,
        "items": [{"description": li.description, "amount": li.amount} for li in t.items],
    }


def ledger_to_dict(ledger: Ledger) -> dict:
    data: dict = {
        "period": {
            "start": ledger.period.start.isoformat(),
            "end": ledger.period.end.isoformat(),
        },
        "displayCurrency": ledger.display_currency,
    }
    for b in BUCKETS:
        data[b.value] = [item_to_dict(i) for i in ledger.bucket(b)]
    data["transactions"] = [transaction_to_dict(t) for t in ledger.transactions]
    return data


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _item_from_dict(raw: Any, bucket: Bucket) -> Either[dict, BudgetItem]:
    if not isinstance(raw, Mapping):
        return Left(error("invalid_item", f"Entry in {bucket.value} is not an object", bucket=bucket.value))
    item_id, name = raw.get("id"), raw.get("name")
    if not isinstance(item_id, str) or not item_id:
        return Left(error("invalid_item", f"Entry in {bucket.value} has no id", bucket=bucket.value))
    if not isinstance(name, str):
        return Left(error("invalid_item", f"Item {item_id} has no name", bucket=bucket.value))
    planned = raw.get("planned")
    actual = raw.get("actual", 0)
    threshold = raw.get("alertThreshold")
    if threshold is None:
        threshold = DEFAULT_ALERT_THRESHOLD
    if not (_number(planned) and _number(actual) and _number(threshold)):
        return Left(error("invalid_item", f"Item {item_id} has non-numeric amounts", bucket=bucket.value))
    return Right(BudgetItem(
        id=item_id,
        name=name,
        planned=float(planned),
        actual=float(actual),
        alert_threshold=float(threshold),
    ))


def _transaction_from_dict(raw: Any) -> Either[dict, Transaction]:
    if not isinstance(raw, Mapping):
        return Left(error("invalid_transaction", "Transaction is not an object"))
    txn_id = raw.get("id")
    if not isinstance(txn_id, str) or not txn_id:
        return Left(error("invalid_transaction", "Transaction has no id"))
    try:
        bucket = Bucket(raw.get("categoryType"))
    except ValueError:
        return Left(error("invalid_transaction", f"Transaction {txn_id} has an unknown categoryType", id=txn_id))
    category_id = raw.get("categoryId")
    amount = raw.get("amount")
    if not isinstance(category_id, str) or not _number(amount):
        return Left(error("invalid_transaction", f"Transaction {txn_id} is missing categoryId or amount", id=txn_id))
    day = parse_date(raw.get("date"))
    if day.is_left():
        return day
    items = validate_line_items(raw.get("items"))
    if items.is_left():
        return items
    return Right(Transaction(
        id=txn_id,
        date=day.get_or_else(None),
        description=str(raw.get("description") or ""),
        amount=float(amount),
        category=CategoryRef(bucket, category_id),
        location=str(raw.get("location") or ""),
        items=items.get_or_else(()),
    ))


def ledger_from_dict(data: Any) -> Either[dict, Ledger]:
    """Build a Ledger from its JSON document, validating the whole shape.

    Nothing is partially accepted: the first structural problem yields a
    ``Left`` describing it.
    """
    if not isinstance(data, Mapping):
        return Left(error("invalid_document", "Budget document must be a JSON object"))

    period = data.get("period")
    if not isinstance(period, Mapping):
        return Left(error("missing_period", "Budget document has no period"))
    start, end = parse_date(period.get("start")), parse_date(period.get("end"))
    if start.is_left():
        return start
    if end.is_left():
        return end

    currency = data.get("displayCurrency")
    if not isinstance(currency, str) or not currency:
        return Left(error("missing_currency", "Budget document has no displayCurrency"))

    buckets: dict = {}
    for b in BUCKETS:
        raw_items = data.get(b.value)
        if not isinstance(raw_items, list):
            return Left(error("missing_bucket", f"Budget document has no '{b.value}' list", bucket=b.value))
        items = []
        for raw in raw_items:
            parsed = _item_from_dict(raw, b)
            if parsed.is_left():
                return parsed
            items.append(parsed.get_or_else(None))
        buckets[b.value] = tuple(items)

    raw_transactions = data.get("transactions")
    if not isinstance(raw_transactions, list):
        return Left(error("missing_transactions", "Budget document has no 'transactions' list"))
    transactions = []
    for raw in raw_transactions:
        parsed = _transaction_from_dict(raw)
        if parsed.is_left():
            return parsed
        transactions.append(parsed.get_or_else(None))

    return Right(Ledger(
        period=Period(start.get_or_else(None), end.get_or_else(None)),
        display_currency=currency,
        transactions=tuple(transactions),
        **buckets,
    ))


def ledger_from_json(text: Union[str, bytes]) -> Either[dict, Ledger]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return Left(error("invalid_json", f"Document is not valid JSON: {exc}"))
    return ledger_from_dict(data)


def ledger_to_json(ledger: Ledger) -> str:
    return json.dumps(ledger_to_dict(ledger), indent=2, ensure_ascii=False)


def load_seed(path: Union[str, Path, None] = None) -> Ledger:
    with open(path or SEED_PATH, "r", encoding="utf-8") as f:
        data = json.load(f)
    parsed = ledger_from_dict(data)
    if parsed.is_left():
        raise ValueError(f"Seed document is invalid: {parsed.get_error()['message']}")
    return parsed.get_or_else(None)


# --- read helpers


def all_items(ledger: Ledger) -> Tuple[Tuple[CategoryRef, BudgetItem], ...]:
    return tuple(
        (CategoryRef(b, item.id), item)
        for b in BUCKETS
        for item in ledger.bucket(b)
    )


def total_planned(items: Tuple[BudgetItem, ...]) -> float:
    return sum(i.planned for i in items)


def total_actual(items: Tuple[BudgetItem, ...]) -> float:
    return sum(i.actual for i in items)
