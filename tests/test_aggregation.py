from datetime import date, datetime

import pytest

from smartybudget.aggregation import (
    UNKNOWN_CATEGORY,
    aggregate_income,
    aggregate_month,
    category_label,
    category_names,
    filter_transactions,
)
from smartybudget.domain import Bucket, BudgetItem, CategoryRef, Ledger, Period, Transaction
from smartybudget.functional import validate_transaction_fields
from smartybudget.transforms import add_transaction, ledger_from_json, ledger_to_json, load_seed, remove_item


def make_tx(id, day, amount, bucket, item_id, description="", location=""):
    return Transaction(id, day, description, amount, CategoryRef(bucket, item_id), location)


def make_ledger(transactions=(), **buckets):
    return Ledger(
        period=Period(date(2025, 10, 1), date(2025, 10, 31)),
        display_currency="USD",
        transactions=tuple(transactions),
        **buckets,
    )


def test_sum_correctness_ignores_out_of_window():
    ledger = make_ledger(
        expenses=(BudgetItem("exp1", "Groceries", 500),),
        transactions=[
            make_tx("t1", date(2025, 10, 2), 100, Bucket.EXPENSES, "exp1"),
            make_tx("t2", date(2025, 10, 12), 50, Bucket.EXPENSES, "exp1"),
            make_tx("t3", date(2025, 10, 25), 25, Bucket.EXPENSES, "exp1"),
            make_tx("t4", date(2025, 11, 1), 40, Bucket.EXPENSES, "exp1"),
        ],
    )
    view = aggregate_month(ledger, 2025, 10)

    assert view.expenses[0].actual == 175
    assert [t.id for t in view.transactions] == ["t1", "t2", "t3"]


def test_boundary_days_included():
    ledger = make_ledger(
        bills=(BudgetItem("b", "Rent", 100),),
        transactions=[
            make_tx("first", date(2024, 2, 1), 10, Bucket.BILLS, "b"),
            make_tx("last", date(2024, 2, 29), 20, Bucket.BILLS, "b"),
            make_tx("before", date(2024, 1, 31), 1000, Bucket.BILLS, "b"),
            make_tx("after", date(2024, 3, 1), 1000, Bucket.BILLS, "b"),
        ],
    )
    view = aggregate_month(ledger, 2024, 2)

    assert {t.id for t in view.transactions} == {"first", "last"}
    assert view.bills[0].actual == 30
    assert view.period == Period(date(2024, 2, 1), date(2024, 2, 29))


def test_day_after_month_end_has_no_influence():
    base = make_ledger(bills=(BudgetItem("b", "Rent", 100),))
    with_later = make_ledger(
        bills=(BudgetItem("b", "Rent", 100),),
        transactions=[make_tx("late", date(2025, 12, 1), 999, Bucket.BILLS, "b")],
    )

    assert aggregate_month(with_later, 2025, 11) == aggregate_month(base, 2025, 11)


def test_idempotent():
    ledger = load_seed()
    assert aggregate_month(ledger, 2025, 10) == aggregate_month(ledger, 2025, 10)
    assert aggregate_income(ledger, 2025, 10) == aggregate_income(ledger, 2025, 10)


def test_zero_item_and_empty_safety():
    ledger = make_ledger(savings=(BudgetItem("s", "Rainy day", 100, actual=80),))
    view = aggregate_month(ledger, 2025, 10)

    assert view.savings[0].actual == 0
    assert view.income == ()
    assert view.transactions == ()


def test_stored_actual_is_replaced_and_other_fields_pass_through():
    item = BudgetItem("d1", "Card", 300, actual=999, alert_threshold=70)
    view = aggregate_month(make_ledger(debt=(item,)), 2025, 10)
    out = view.debt[0]

    assert (out.id, out.name, out.planned, out.alert_threshold) == ("d1", "Card", 300, 70)
    assert out.actual == 0


def test_same_id_in_two_buckets_does_not_merge():
    ledger = make_ledger(
        bills=(BudgetItem("x", "Phone", 50),),
        debt=(BudgetItem("x", "Loan", 200),),
        transactions=[
            make_tx("t1", date(2025, 10, 5), 50, Bucket.BILLS, "x"),
            make_tx("t2", date(2025, 10, 6), 200, Bucket.DEBT, "x"),
        ],
    )
    view = aggregate_month(ledger, 2025, 10)

    assert view.bills[0].actual == 50
    assert view.debt[0].actual == 200


def test_end_to_end_seed_scenario():
    ledger = make_ledger(
        income=(BudgetItem("inc1", "Realtor Income", 10600, actual=0),),
        transactions=[
            make_tx("oct", date(2025, 10, 15), 8100, Bucket.INCOME, "inc1"),
            make_tx("sep", date(2025, 9, 15), 500, Bucket.INCOME, "inc1"),
        ],
    )
    view = aggregate_month(ledger, 2025, 10)

    assert view.income[0].actual == 8100
    assert len(view.transactions) == 1


def test_seed_october():
    view = aggregate_month(load_seed(), 2025, 10)
    assert view.income[0].actual == 10600
    assert view.expenses[0].actual == pytest.approx(276.25)


def test_removed_item_transaction_stays_visible():
    ledger = make_ledger(
        expenses=(BudgetItem("e1", "Food", 100), BudgetItem("e2", "Fun", 50)),
        transactions=[make_tx("t1", date(2025, 10, 2), 30, Bucket.EXPENSES, "e1")],
    )
    ledger = remove_item(ledger, Bucket.EXPENSES, "e1")
    view = aggregate_month(ledger, 2025, 10)

    assert [t.id for t in view.transactions] == ["t1"]
    assert all(i.id != "e1" for i in view.expenses)
    names = category_names(view)
    assert category_label(names, view.transactions[0].category) == UNKNOWN_CATEGORY


def test_income_view_filters_and_sorts():
    ledger = make_ledger(
        income=(BudgetItem("inc1", "Job", 5000), BudgetItem("inc2", "Side", 500)),
        bills=(BudgetItem("b", "Rent", 1000),),
        transactions=[
            make_tx("a", date(2025, 10, 3), 100, Bucket.INCOME, "inc2"),
            make_tx("b", date(2025, 10, 20), 4000, Bucket.INCOME, "inc1"),
            make_tx("rent", date(2025, 10, 25), 1000, Bucket.BILLS, "b"),
            make_tx("c", date(2025, 10, 20), 1000, Bucket.INCOME, "inc1"),
            make_tx("old", date(2025, 9, 30), 9999, Bucket.INCOME, "inc1"),
        ],
    )
    view = aggregate_income(ledger, 2025, 10)

    assert [t.id for t in view.transactions] == ["b", "c", "a"]
    assert view.income[0].actual == 5000
    assert view.income[1].actual == 100


def test_filter_transactions():
    txs = [
        make_tx("t1", date(2025, 10, 2), 10, Bucket.EXPENSES, "e1", "Trader Joe's", "123 Market St"),
        make_tx("t2", date(2025, 10, 8), 20, Bucket.EXPENSES, "e2", "Dinner", "The Italian Place"),
        make_tx("t3", date(2025, 10, 15), 30, Bucket.INCOME, "i1", "Paycheck"),
    ]

    assert [t.id for t in filter_transactions(txs)] == ["t3", "t2", "t1"]
    assert [t.id for t in filter_transactions(txs, query="market")] == ["t1"]
    assert [t.id for t in filter_transactions(txs, query="ITALIAN")] == ["t2"]
    assert [t.id for t in filter_transactions(txs, start=date(2025, 10, 8), end=date(2025, 10, 8))] == ["t2"]
    assert [t.id for t in filter_transactions(txs, category=CategoryRef(Bucket.INCOME, "i1"))] == ["t3"]


def test_entry_with_time_of_day_lands_on_its_calendar_day():
    ledger = make_ledger(expenses=(BudgetItem("e1", "Food", 100),))
    fields = validate_transaction_fields(
        {
            "date": datetime(2025, 10, 31, 23, 30),
            "description": "Late snack",
            "amount": 12.0,
            "category": CategoryRef(Bucket.EXPENSES, "e1"),
        },
        ledger,
    ).get_or_else(None)
    ledger = add_transaction(ledger, fields, id_factory=lambda: "t1")

    assert aggregate_month(ledger, 2025, 10).expenses[0].actual == 12.0
    assert aggregate_month(ledger, 2025, 11).transactions == ()
    assert ledger_from_json(ledger_to_json(ledger)).get_or_else(None) == ledger
