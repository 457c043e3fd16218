from datetime import date

from smartybudget.charts import (
    allocation_figure,
    allocation_frame,
    amount_left_figure,
    cash_flow_figure,
    cash_flow_frame,
    income_allocation_figure,
    items_frame,
    transactions_frame,
)
from smartybudget.domain import Bucket, BudgetItem, CategoryRef, DerivedView, IncomeView, Period, Transaction

PERIOD = Period(date(2025, 10, 1), date(2025, 10, 31))


def make_view():
    return DerivedView(
        period=PERIOD,
        display_currency="USD",
        income=(BudgetItem("i1", "Salary", 3000, actual=3000),),
        bills=(BudgetItem("b1", "Rent", 1000, actual=1000),),
        expenses=(BudgetItem("e1", "Food", 400, actual=600),),
    )


def test_items_frame_progress_is_clipped():
    items = (BudgetItem("e1", "Food", 400, actual=600), BudgetItem("e2", "Gym", 0, actual=0))
    df = items_frame(items, "USD")

    assert list(df["Name"]) == ["Food", "Gym"]
    assert list(df["Progress"]) == [100.0, 0.0]


def test_items_frame_empty():
    df = items_frame((), "USD")
    assert df.empty
    assert "Progress" in df.columns


def test_transactions_frame_labels_dangling_category():
    txs = (Transaction("t1", date(2025, 10, 2), "Shop", 20, CategoryRef(Bucket.EXPENSES, "gone")),)
    df = transactions_frame(txs, {CategoryRef(Bucket.EXPENSES, "e1"): "Food"}, "INR")

    assert df.loc[0, "Category"] == "Unknown category"
    assert df.loc[0, "Type"] == "Expenses"
    assert df.loc[0, "Amount"] == 20 * 83.5


def test_cash_flow_and_allocation_frames():
    view = make_view()
    flow = cash_flow_frame(view)
    assert list(flow["Bucket"]) == ["Expenses", "Bills", "Savings", "Debt"]
    assert flow.loc[0, "Actual"] == 600

    allocation = allocation_frame(view)
    assert list(allocation["Bucket"]) == ["Expenses", "Bills"]


def test_figures_build():
    view = make_view()
    assert amount_left_figure(view).data[0].values[1] == 1400
    assert len(cash_flow_figure(view).data) == 2
    assert allocation_figure(view).layout.title.text == "Allocation Summary"
    income = IncomeView(period=PERIOD, display_currency="USD", income=view.income)
    assert income_allocation_figure(income).layout.title.text == "Planned Income Allocation"
