from typing import Any, Callable, Dict, Sequence

from smartybudget.currency import format_money
from smartybudget.domain import BUCKETS, Bucket, DerivedView
from smartybudget.lazy import lazy_top_items
from smartybudget.transforms import total_actual, total_planned

Calculator = Callable[[DerivedView, Dict[str, Any]], Dict[str, Any]]


class SummaryService:
    """Facade that runs summary calculators over a month view.

    calculators: sequence of functions taking (view, acc) -> dict, where acc
    holds everything earlier calculators produced.
    """

    def __init__(self, calculators: Sequence[Calculator]):
        self.calculators = calculators

    def monthly_report(self, view: DerivedView) -> Dict[str, Any]:
        report = {
            "period": (view.period.start, view.period.end),
            "steps": [],
            "result": {},
        }

        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(view, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            acc.update(out)

        report["result"] = acc
        return report


def bucket_totals(view: DerivedView, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "planned": {b: total_planned(view.bucket(b)) for b in BUCKETS},
        "actual": {b: total_actual(view.bucket(b)) for b in BUCKETS},
    }


def amount_left(view: DerivedView, acc: Dict[str, Any]) -> Dict[str, Any]:
    actual = acc.get("actual") or bucket_totals(view, acc)["actual"]
    spent = sum(actual[b] for b in (Bucket.BILLS, Bucket.EXPENSES, Bucket.SAVINGS, Bucket.DEBT))
    return {"spent": spent, "amount_left": actual[Bucket.INCOME] - spent}


def savings_rate(view: DerivedView, acc: Dict[str, Any]) -> Dict[str, Any]:
    income = total_actual(view.income)
    saved = total_actual(view.savings)
    return {"savings_rate": saved / income * 100 if income > 0 else 0.0}


def top_expenses(view: DerivedView, acc: Dict[str, Any]) -> Dict[str, Any]:
    return {"top_expenses": list(lazy_top_items(view.expenses, 3))}


DEFAULT_CALCULATORS: Sequence[Calculator] = (bucket_totals, amount_left, savings_rate, top_expenses)


def monthly_summary(view: DerivedView) -> Dict[str, Any]:
    return SummaryService(DEFAULT_CALCULATORS).monthly_report(view)["result"]


def prompt_stats(view: DerivedView) -> Dict[str, str]:
    """Pre-formatted figures handed to the AI advisor, in the display currency."""
    summary = monthly_summary(view)
    code = view.display_currency

    def money(amount: float) -> str:
        return format_money(amount, code)

    top = ", ".join(f"{name}: {money(value)}" for name, value in summary["top_expenses"])
    return {
        "currency": code,
        "total_income": money(summary["actual"][Bucket.INCOME]),
        "planned_expenses": money(summary["planned"][Bucket.EXPENSES]),
        "total_expenses": money(summary["actual"][Bucket.EXPENSES]),
        "total_savings": money(summary["actual"][Bucket.SAVINGS]),
        "savings_rate": f"{summary['savings_rate']:.1f}%",
        "top_expenses": top or "N/A",
    }
