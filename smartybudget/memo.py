import calendar
from datetime import date
from functools import lru_cache
from typing import Optional, Tuple

from smartybudget.aggregation import aggregate_income, aggregate_month
from smartybudget.domain import DerivedView, IncomeView, Ledger, Transaction

MONTH_NAMES: Tuple[str, ...] = tuple(calendar.month_name)[1:]


@lru_cache(maxsize=32)
def cached_month_view(ledger: Ledger, year: int, month: int) -> DerivedView:
    return aggregate_month(ledger, year, month)


@lru_cache(maxsize=32)
def cached_income_view(ledger: Ledger, year: int, month: int) -> IncomeView:
    return aggregate_income(ledger, year, month)


@lru_cache
def available_years(transactions: Tuple[Transaction, ...], today: Optional[date] = None) -> Tuple[int, ...]:
    years = {t.date.year for t in transactions}
    if not years:
        years.add((today or date.today()).year)
    return tuple(sorted(years, reverse=True))


def clear_caches() -> None:
    cached_month_view.cache_clear()
    cached_income_view.cache_clear()
    available_years.cache_clear()
