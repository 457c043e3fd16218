import calendar
from datetime import date
from typing import Callable, Optional, Tuple

from smartybudget.domain import Bucket, CategoryRef, Transaction

Predicate = Callable[[Transaction], bool]


def month_window(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of the month, both inclusive."""
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


def by_date_range(start: Optional[date], end: Optional[date]) -> Predicate:
    def _filter(t: Transaction) -> bool:
        if start is not None and t.date < start:
            return False
        if end is not None and t.date > end:
            return False
        return True

    return _filter


def by_month(year: int, month: int) -> Predicate:
    return by_date_range(*month_window(year, month))


def by_category(ref: CategoryRef) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category == ref

    return _filter


def by_bucket(bucket: Bucket) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category.bucket == bucket

    return _filter


def by_search(query: str) -> Predicate:
    needle = (query or "").strip().lower()

    def _filter(t: Transaction) -> bool:
        if not needle:
            return True
        return needle in t.description.lower() or needle in t.location.lower()

    return _filter


def all_of(*preds: Predicate) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return all(p(t) for p in preds)

    return _filter
