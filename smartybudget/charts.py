from typing import Iterable, Mapping

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from smartybudget.aggregation import category_label
from smartybudget.currency import rate_for
from smartybudget.domain import BUCKETS, Bucket, BudgetItem, CategoryRef, DerivedView, IncomeView, Transaction
from smartybudget.services import amount_left, bucket_totals

PALETTE = ["#A482FF", "#865DFF", "#C7B6FF", "#E1DAFF", "#F3F0FF"]
SPENDING_BUCKETS = (Bucket.EXPENSES, Bucket.BILLS, Bucket.SAVINGS, Bucket.DEBT)


def items_frame(items: Iterable[BudgetItem], currency: str) -> pd.DataFrame:
    rate = rate_for(currency)
    df = pd.DataFrame(
        [
            {
                "id": i.id,
                "Name": i.name,
                "Planned": i.planned * rate,
                "Actual": i.actual * rate,
                "Alert %": i.alert_threshold,
            }
            for i in items
        ],
        columns=["id", "Name", "Planned", "Actual", "Alert %"],
    )
    with np.errstate(divide="ignore", invalid="ignore"):
        progress = np.where(df["Planned"] > 0, df["Actual"] / df["Planned"] * 100, 0.0)
    df["Progress"] = np.clip(progress.astype(float), 0, 100)
    return df


def transactions_frame(
    transactions: Iterable[Transaction],
    names: Mapping[CategoryRef, str],
    currency: str,
) -> pd.DataFrame:
    rate = rate_for(currency)
    rows = [
        {
            "id": t.id,
            "Date": pd.Timestamp(t.date),
            "Description": t.description,
            "Location": t.location,
            "Category": category_label(names, t.category),
            "Type": t.category.bucket.label,
            "Amount": t.amount * rate,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=["id", "Date", "Description", "Location", "Category", "Type", "Amount"])


def cash_flow_frame(view: DerivedView) -> pd.DataFrame:
    totals = bucket_totals(view, {})
    rate = rate_for(view.display_currency)
    return pd.DataFrame(
        [
            {"Bucket": b.label, "Planned": totals["planned"][b] * rate, "Actual": totals["actual"][b] * rate}
            for b in SPENDING_BUCKETS
        ]
    )


def allocation_frame(view: DerivedView) -> pd.DataFrame:
    totals = bucket_totals(view, {})["planned"]
    df = pd.DataFrame([{"Bucket": b.label, "Planned": totals[b]} for b in SPENDING_BUCKETS])
    return df[df["Planned"] > 0].reset_index(drop=True)


def overview_frame(view: DerivedView) -> pd.DataFrame:
    totals = bucket_totals(view, {})
    rate = rate_for(view.display_currency)
    return pd.DataFrame(
        [{"Bucket": b.label, "Planned": totals["planned"][b] * rate} for b in BUCKETS]
    )


def amount_left_figure(view: DerivedView) -> go.Figure:
    rate = rate_for(view.display_currency)
    totals = amount_left(view, bucket_totals(view, {}))
    left = totals["amount_left"]
    fig = go.Figure(
        go.Pie(
            labels=["Spent", "Left"],
            values=[totals["spent"] * rate, max(0.0, left * rate)],
            hole=0.65,
            marker=dict(colors=[PALETTE[0], "#E5E7EB"]),
            sort=False,
        )
    )
    fig.update_layout(
        title="Amount Left to Spend",
        annotations=[dict(text=f"{left * rate:,.0f}", showarrow=False, font=dict(size=22))],
        margin=dict(t=40, b=10, l=10, r=10),
        showlegend=False,
    )
    return fig


def cash_flow_figure(view: DerivedView) -> go.Figure:
    df = cash_flow_frame(view)
    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["Bucket"], y=df["Planned"], name="Planned", marker_color=PALETTE[2]))
    fig.add_trace(go.Bar(x=df["Bucket"], y=df["Actual"], name="Actual", marker_color=PALETTE[1]))
    fig.update_layout(title="Cash Flow", barmode="group", margin=dict(t=40, b=10, l=10, r=10))
    return fig


def allocation_figure(view: DerivedView) -> go.Figure:
    df = allocation_frame(view)
    fig = px.pie(df, values="Planned", names="Bucket", title="Allocation Summary", color_discrete_sequence=PALETTE)
    fig.update_traces(textinfo="percent+label")
    return fig


def income_allocation_figure(view: IncomeView) -> go.Figure:
    rate = rate_for(view.display_currency)
    df = pd.DataFrame(
        [{"Source": i.name, "Planned": i.planned * rate} for i in view.income],
        columns=["Source", "Planned"],
    )
    df = df[df["Planned"] > 0]
    return px.pie(df, values="Planned", names="Source", title="Planned Income Allocation", color_discrete_sequence=PALETTE)
