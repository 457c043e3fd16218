"""Month-scoped derivation of a ledger.

``aggregate_month`` is what the dashboard renders, ``aggregate_income`` what
the income hub renders. Both are pure: the same ledger and month always give
an equal view, and transactions outside the month have no influence at all.
"""
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from smartybudget.domain import (
    BUCKETS,
    Bucket,
    BudgetItem,
    CategoryRef,
    DerivedView,
    IncomeView,
    Ledger,
    Period,
    Transaction,
)
from smartybudget.filters import all_of, by_bucket, by_category, by_date_range, by_month, by_search, month_window
from smartybudget.lazy import iter_transactions

UNKNOWN_CATEGORY = "Unknown category"


def actuals_by_category(transactions: Iterable[Transaction]) -> Dict[CategoryRef, float]:
    totals: Dict[CategoryRef, float] = defaultdict(float)
    for t in transactions:
        totals[t.category] += t.amount
    return dict(totals)


def recompute_actuals(
    bucket: Bucket,
    items: Iterable[BudgetItem],
    totals: Mapping[CategoryRef, float],
) -> Tuple[BudgetItem, ...]:
    return tuple(
        replace(item, actual=totals.get(CategoryRef(bucket, item.id), 0.0))
        for item in items
    )


def aggregate_month(ledger: Ledger, year: int, month: int) -> DerivedView:
    start, end = month_window(year, month)
    transactions = tuple(iter_transactions(ledger.transactions, by_month(year, month)))
    totals = actuals_by_category(transactions)

    buckets = {
        b.value: recompute_actuals(b, ledger.bucket(b), totals)
        for b in BUCKETS
    }
    return DerivedView(
        period=Period(start, end),
        display_currency=ledger.display_currency,
        transactions=transactions,
        **buckets,
    )


def newest_first(transactions: Iterable[Transaction]) -> List[Transaction]:
    # sorted() is stable, so same-day transactions keep their log order
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def aggregate_income(ledger: Ledger, year: int, month: int) -> IncomeView:
    start, end = month_window(year, month)
    pred = all_of(by_month(year, month), by_bucket(Bucket.INCOME))
    transactions = [t for t in ledger.transactions if pred(t)]
    totals = actuals_by_category(transactions)

    return IncomeView(
        period=Period(start, end),
        display_currency=ledger.display_currency,
        income=recompute_actuals(Bucket.INCOME, ledger.income, totals),
        transactions=tuple(newest_first(transactions)),
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
    category: Optional[CategoryRef] = None,
    query: str = "",
) -> List[Transaction]:
    preds = [by_date_range(start, end), by_search(query)]
    if category is not None:
        preds.append(by_category(category))
    pred = all_of(*preds)
    return newest_first(t for t in transactions if pred(t))


def category_names(source: Union[Ledger, DerivedView]) -> Dict[CategoryRef, str]:
    return {
        CategoryRef(b, item.id): item.name
        for b in BUCKETS
        for item in source.bucket(b)
    }


def category_label(names: Mapping[CategoryRef, str], ref: CategoryRef) -> str:
    return names.get(ref, UNKNOWN_CATEGORY)
