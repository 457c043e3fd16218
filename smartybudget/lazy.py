from typing import Callable, Iterable, Iterator, Tuple

from smartybudget.domain import BudgetItem, Transaction


def iter_transactions(
    trans: Iterable[Transaction], pred: Callable[[Transaction], bool]
) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t


def lazy_top_items(items: Iterable[BudgetItem], k: int) -> Iterator[Tuple[str, float]]:
    """Yield (name, actual) for the ``k`` items with the largest actual spend."""
    ordered = sorted(items, key=lambda item: item.actual, reverse=True)
    for item in ordered[: max(0, k)]:
        yield item.name, item.actual
