import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from datetime import date

import streamlit as st

from smartybudget import advisor, config
from smartybudget.aggregation import category_names, filter_transactions
from smartybudget.alerts import evaluate
from smartybudget.currency import CURRENCY_DATA, format_money, to_base
from smartybudget.domain import BUCKETS, DANGER, Bucket, BudgetItem
from smartybudget.events import LEDGER_CHANGED
from smartybudget.functional import validate_item_name, validate_threshold, validate_transaction_fields
from smartybudget.logging_setup import configure_logging
from smartybudget.memo import MONTH_NAMES, available_years, cached_income_view, cached_month_view, clear_caches
from smartybudget.charts import (
    allocation_figure,
    amount_left_figure,
    cash_flow_figure,
    income_allocation_figure,
    items_frame,
    overview_frame,
    transactions_frame,
)
from smartybudget.services import prompt_stats
from smartybudget.store import LedgerStore

st.set_page_config(page_title="SmartyBudget", layout="wide")
configure_logging(config.LOG_LEVEL)


def _on_ledger_changed(event, payload):
    st.session_state.ai_results = {}
    st.session_state.dismissed_alerts = set()
    return {"revision": payload["revision"]}


if "store" not in st.session_state:
    config.ensure_data_directory()
    store = LedgerStore.open(config.STATE_PATH)
    store.bus.subscribe(LEDGER_CHANGED, _on_ledger_changed)
    st.session_state.store = store
    st.session_state.viewing = (store.ledger.period.start.year, store.ledger.period.start.month)
    st.session_state.ai_results = {}
    st.session_state.dismissed_alerts = set()

store: LedgerStore = st.session_state.store
ledger = store.ledger
currency = ledger.display_currency


def run(coro):
    return asyncio.run(coro)


def money(amount, decimals=2):
    return format_money(amount, currency, decimals)


def month_picker(key: str):
    year, month = st.session_state.viewing
    years = list(available_years(ledger.transactions))
    if year not in years:
        years = sorted(set(years) | {year}, reverse=True)
    c1, c2 = st.columns(2)
    with c1:
        month = st.selectbox("Month", range(1, 13), index=month - 1, format_func=lambda m: MONTH_NAMES[m - 1], key=f"{key}_month")
    with c2:
        year = st.selectbox("Year", years, index=years.index(year), key=f"{key}_year")
    st.session_state.viewing = (year, month)
    return year, month


def category_table(bucket: Bucket, items):
    st.subheader(bucket.label)
    df = items_frame(items, currency)
    if df.empty:
        st.caption("No items yet.")
    for _, row in df.iterrows():
        item = next(i for i in items if i.id == row["id"])
        cols = st.columns([3, 2, 2, 2, 1])
        with cols[0]:
            name = st.text_input("Name", value=item.name, key=f"name_{bucket.value}_{item.id}", label_visibility="collapsed")
        with cols[1]:
            planned = st.number_input("Planned", value=float(row["Planned"]), step=10.0, key=f"planned_{bucket.value}_{item.id}", label_visibility="collapsed")
        with cols[2]:
            st.progress(row["Progress"] / 100, text=f"{money(item.actual)} spent")
        with cols[3]:
            threshold = item.alert_threshold
            if bucket in (Bucket.BILLS, Bucket.EXPENSES, Bucket.DEBT):
                threshold = st.number_input("Alert %", value=float(item.alert_threshold), min_value=1.0, max_value=100.0, step=5.0, key=f"th_{bucket.value}_{item.id}", label_visibility="collapsed")
        with cols[4]:
            if st.button("🗑", key=f"rm_{bucket.value}_{item.id}"):
                store.remove_item(bucket, item.id)
                st.rerun()

        new_planned = to_base(planned, currency)
        if name != item.name or abs(new_planned - item.planned) > 1e-9 or threshold != item.alert_threshold:
            checked = validate_item_name(name).bind(lambda _: validate_threshold(threshold))
            if checked.is_left():
                st.error(checked.get_error()["message"])
            else:
                # actual is derived per month; the stored value is never shown
                store.update_item(bucket, BudgetItem(item.id, name.strip(), new_planned, item.actual, float(threshold)))
                st.rerun()

    with st.form(f"add_{bucket.value}", clear_on_submit=True):
        new_name = st.text_input("New item")
        if st.form_submit_button("Add item"):
            checked = validate_item_name(new_name)
            if checked.is_left():
                st.error(checked.get_error()["message"])
            else:
                store.add_item(bucket, checked.get_or_else(""))
                st.rerun()


def show_error(result):
    err = result.get_error()
    st.error(err["message"])


menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "💰 Income", "🧾 Transactions", "🤖 AI Planner", "⚙️ Settings"],
)
search = st.sidebar.text_input("Search transactions")

if menu == "🏠 Dashboard":
    st.title("Budget Dashboard")
    year, month = month_picker("dash")
    view = cached_month_view(ledger, year, month)
    st.caption(f"{MONTH_NAMES[month - 1]} {year}")

    alerts = evaluate(view)
    if alerts and (year, month) not in st.session_state.dismissed_alerts:
        with st.container(border=True):
            st.markdown("**Budget Alerts**")
            for alert in alerts:
                if alert.severity == DANGER:
                    st.error(f'You\'ve exceeded your budget for "{alert.item_name}". You are over by {money(alert.overage)}.')
                else:
                    st.warning(alert.message)
            if st.button("Dismiss alerts"):
                st.session_state.dismissed_alerts.add((year, month))
                st.rerun()

    with st.expander("✨ AI insights"):
        client = advisor.make_client()
        if client.is_none():
            st.info("Set GEMINI_API_KEY to enable AI insights.")
        elif st.button("Generate insights"):
            with st.spinner("Thinking..."):
                narrative, suggestions = run(advisor.dashboard_insights(client.get_or_else(None), prompt_stats(view)))
            st.session_state.ai_results = {"narrative": narrative, "suggestions": suggestions}
        results = st.session_state.ai_results
        if "narrative" in results:
            if results["narrative"].is_right():
                st.info(results["narrative"].get_or_else(""))
            else:
                show_error(results["narrative"])
        if "suggestions" in results:
            if results["suggestions"].is_right():
                s = results["suggestions"].get_or_else(None)
                st.subheader(s.title)
                st.success(s.positive_feedback)
                st.warning(s.areas_for_improvement)
                for tip in s.actionable_tips:
                    st.markdown(f"- **{tip.tip}**: {tip.explanation}")
                if s.sources:
                    st.markdown("**Sources:**")
                    for source in s.sources:
                        icon = "📍" if source.kind == "maps" else "🔗"
                        st.markdown(f"{icon} [{source.title}]({source.uri})")
            else:
                show_error(results["suggestions"])

    st.subheader("Financial Overview")
    overview = overview_frame(view)
    cols = st.columns(len(overview))
    for col, (_, row) in zip(cols, overview.iterrows()):
        with col:
            st.metric(row["Bucket"], f"{CURRENCY_DATA.get(currency, {}).get('symbol', '$')}{row['Planned']:,.0f}")

    c1, c2, c3 = st.columns(3)
    with c1:
        st.plotly_chart(amount_left_figure(view), use_container_width=True)
    with c2:
        st.plotly_chart(cash_flow_figure(view), use_container_width=True)
    with c3:
        st.plotly_chart(allocation_figure(view), use_container_width=True)

    for bucket in BUCKETS:
        category_table(bucket, view.bucket(bucket))

    st.subheader("Transactions this month")
    names = category_names(ledger)
    rows = filter_transactions(view.transactions, query=search)
    st.dataframe(transactions_frame(rows, names, currency).drop(columns=["id"]), use_container_width=True)

elif menu == "💰 Income":
    st.title("Income Hub")
    year, month = month_picker("income")
    view = cached_income_view(ledger, year, month)
    c1, c2 = st.columns([2, 1])
    with c1:
        category_table(Bucket.INCOME, view.income)
    with c2:
        st.plotly_chart(income_allocation_figure(view), use_container_width=True)
    st.subheader(f"Income Transactions for {MONTH_NAMES[month - 1]} {year}")
    names = category_names(ledger)
    st.dataframe(transactions_frame(view.transactions, names, currency).drop(columns=["id"]), use_container_width=True)

elif menu == "🧾 Transactions":
    st.title("Transactions")
    year, month = month_picker("tx")
    view = cached_month_view(ledger, year, month)
    names = category_names(ledger)
    choices = list(advisor.category_choices(ledger))

    with st.expander("📷 Scan a receipt with AI"):
        client = advisor.make_client()
        upload = st.file_uploader("Receipt image", type=["png", "jpg", "jpeg", "webp"])
        # the browser asks for camera permission; when it is denied the widget stays empty
        snapshot = st.camera_input("Or take a photo")
        image = snapshot if snapshot is not None else upload
        if client.is_none():
            st.info("Set GEMINI_API_KEY to enable receipt scanning.")
        elif image is not None and st.button("Analyze receipt"):
            revision = store.revision
            with st.spinner("Reading receipt..."):
                result = run(advisor.analyze_receipt(
                    client.get_or_else(None), image.getvalue(), image.type or "image/jpeg", [n for _, n in choices],
                ))
            st.session_state.receipt = (revision, result)

        if "receipt" in st.session_state:
            revision, result = st.session_state.receipt
            if result.is_left():
                show_error(result)
            else:
                prefill = advisor.receipt_fields(result.get_or_else(None), ledger)
                with st.form("confirm_receipt"):
                    r_date = st.text_input("Date", value=prefill["date"])
                    r_desc = st.text_input("Description", value=prefill["description"])
                    r_amount = st.number_input("Amount", value=float(prefill["amount"]), step=0.01, format="%.2f")
                    r_loc = st.text_input("Location", value=prefill["location"])
                    refs = [ref for ref, _ in choices]
                    r_cat = st.selectbox(
                        "Category", refs, format_func=lambda r: names[r],
                        index=refs.index(prefill["category"]) if prefill["category"] in refs else 0,
                    )
                    if st.form_submit_button("Add transaction"):
                        outcome = advisor.add_receipt_transaction(store, {
                            "date": r_date,
                            "description": r_desc,
                            "amount": to_base(r_amount, currency),
                            "category": r_cat,
                            "location": r_loc,
                            "items": prefill["items"],
                        }, revision)
                        if outcome.is_left():
                            show_error(outcome)
                        else:
                            del st.session_state["receipt"]
                            st.success("Transaction added")
                            st.rerun()

    st.subheader("➕ Add New Transaction")
    with st.form("add_transaction", clear_on_submit=True):
        c1, c2 = st.columns(2)
        with c1:
            t_date = st.date_input("Date", value=date.today())
            t_amount = st.number_input(f"Amount ({currency})", min_value=0.0, step=1.0, format="%.2f")
        with c2:
            t_desc = st.text_input("Description")
            t_loc = st.text_input("Location")
        t_cat = st.selectbox("Category", [ref for ref, _ in choices], format_func=lambda r: f"{r.bucket.label}: {names[r]}")
        if st.form_submit_button("Add"):
            checked = validate_transaction_fields({
                "date": t_date,
                "description": t_desc,
                "amount": to_base(t_amount, currency),
                "category": t_cat,
                "location": t_loc,
            }, ledger)
            if checked.is_left():
                show_error(checked)
            else:
                store.add_transaction(checked.get_or_else({}))
                st.rerun()

    c1, c2, c3 = st.columns(3)
    with c1:
        start = st.date_input("Start date", value=None)
    with c2:
        end = st.date_input("End date", value=None)
    with c3:
        refs = [None] + [ref for ref, _ in choices]
        selected = st.selectbox("Category filter", refs, format_func=lambda r: "All" if r is None else names[r])

    rows = filter_transactions(view.transactions, start=start, end=end, category=selected, query=search)
    if not rows:
        st.info("No transactions match the selected filters")
    for t in rows:
        cols = st.columns([2, 4, 3, 2, 1])
        cols[0].write(t.date.isoformat())
        cols[1].write(t.description + (f" · {t.location}" if t.location else ""))
        cols[2].write(names.get(t.category, "Unknown category"))
        sign = "+" if t.category.bucket == Bucket.INCOME else ""
        cols[3].write(f"{sign}{money(t.amount)}")
        if cols[4].button("🗑", key=f"rm_tx_{t.id}"):
            store.remove_transaction(t.id)
            st.rerun()

elif menu == "🤖 AI Planner":
    st.title("AI Budget Planner")
    description = st.text_area("Describe your income, fixed bills and goals")
    client = advisor.make_client()
    if client.is_none():
        st.info("Set GEMINI_API_KEY to enable the planner.")
    elif st.button("Generate plan"):
        revision = store.revision
        with st.spinner("Building your plan..."):
            result = run(advisor.generate_plan(client.get_or_else(None), description, currency))
        st.session_state.plan = (revision, result)

    if "plan" in st.session_state:
        revision, result = st.session_state.plan
        if result.is_left():
            show_error(result)
        else:
            plan = result.get_or_else(None)
            cols = st.columns(len(BUCKETS))
            for col, bucket in zip(cols, BUCKETS):
                with col:
                    st.markdown(f"**{bucket.label}**")
                    for line in plan.lines(bucket):
                        st.write(f"{line.name}: {CURRENCY_DATA.get(currency, {}).get('symbol', '$')}{line.planned:,.2f}")
            st.warning("Applying replaces your budget items. Transactions are kept.")
            if st.checkbox("I understand") and st.button("Apply plan"):
                # the plan is priced in the display currency
                base_plan = advisor.PlanDraft(**{
                    b.value: tuple(advisor.PlanLine(l.name, to_base(l.planned, currency)) for l in plan.lines(b))
                    for b in BUCKETS
                })
                outcome = advisor.apply_plan(store, base_plan, revision)
                if outcome.is_left():
                    show_error(outcome)
                else:
                    del st.session_state["plan"]
                    st.success("Your new budget has been applied!")
                    st.rerun()

elif menu == "⚙️ Settings":
    st.title("Settings")
    codes = list(CURRENCY_DATA)
    code = st.selectbox(
        "Display currency", codes,
        index=codes.index(currency) if currency in codes else 0,
        format_func=lambda c: f"{c} ({CURRENCY_DATA[c]['symbol']}) {CURRENCY_DATA[c]['name']}",
    )
    if code != currency:
        store.set_display_currency(code)
        st.rerun()

    st.download_button(
        "⬇ Export to JSON",
        store.export_json(),
        file_name=f"smartybudget_backup_{date.today().isoformat()}.json",
        mime="application/json",
    )
    imported = st.file_uploader("Import from JSON", type=["json"])
    if imported is not None and st.button("Import"):
        outcome = store.import_json(imported.getvalue())
        if outcome.is_left():
            st.error(f"Import failed: {outcome.get_error()['message']}")
        else:
            clear_caches()
            st.success("Budget imported")
            st.rerun()

    if st.checkbox("I want to reset all data") and st.button("Reset to default"):
        store.reset_to_default()
        clear_caches()
        st.rerun()
