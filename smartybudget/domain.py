from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Tuple


class Bucket(str, Enum):
    INCOME = "income"
    BILLS = "bills"
    EXPENSES = "expenses"
    SAVINGS = "savings"
    DEBT = "debt"

    @property
    def label(self) -> str:
        return self.value.capitalize()


BUCKETS: Tuple[Bucket, ...] = tuple(Bucket)
# only these buckets ever raise budget alerts
ALERTING_BUCKETS: Tuple[Bucket, ...] = (Bucket.BILLS, Bucket.EXPENSES, Bucket.DEBT)

DEFAULT_ALERT_THRESHOLD = 90.0


@dataclass(frozen=True)
class CategoryRef:
    bucket: Bucket
    item_id: str


@dataclass(frozen=True)
class BudgetItem:
    id: str
    name: str
    planned: float
    actual: float = 0.0
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD


@dataclass(frozen=True)
class LineItem:
    description: str
    amount: float


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date              # calendar day, no time component
    description: str
    amount: float           # non-negative magnitude, direction comes from the bucket
    category: CategoryRef
    location: str = ""
    items: Tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class Period:
    start: date
    end: date


@dataclass(frozen=True)
class Ledger:
    period: Period
    display_currency: str
    income: Tuple[BudgetItem, ...] = ()
    bills: Tuple[BudgetItem, ...] = ()
    expenses: Tuple[BudgetItem, ...] = ()
    savings: Tuple[BudgetItem, ...] = ()
    debt: Tuple[BudgetItem, ...] = ()
    transactions: Tuple[Transaction, ...] = ()

    def bucket(self, b: Bucket) -> Tuple[BudgetItem, ...]:
        return getattr(self, b.value)


# Month-scoped recomputation of a Ledger. Same shape, never persisted.
@dataclass(frozen=True)
class DerivedView:
    period: Period
    display_currency: str
    income: Tuple[BudgetItem, ...] = ()
    bills: Tuple[BudgetItem, ...] = ()
    expenses: Tuple[BudgetItem, ...] = ()
    savings: Tuple[BudgetItem, ...] = ()
    debt: Tuple[BudgetItem, ...] = ()
    transactions: Tuple[Transaction, ...] = ()

    def bucket(self, b: Bucket) -> Tuple[BudgetItem, ...]:
        return getattr(self, b.value)


@dataclass(frozen=True)
class IncomeView:
    period: Period
    display_currency: str
    income: Tuple[BudgetItem, ...] = ()
    transactions: Tuple[Transaction, ...] = ()


@dataclass(frozen=True)
class Alert:
    severity: str           # "danger" or "warning"
    bucket: Bucket
    item_id: str
    item_name: str
    percentage: int
    overage: float = 0.0
    message: str = field(default="", compare=False)


DANGER = "danger"
WARNING = "warning"
