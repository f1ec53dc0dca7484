import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging
from dataclasses import replace
from datetime import date, datetime
from uuid import uuid4

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
import plotly.express as px

from tracker import config
from tracker.aggregation import DAY, account_balances, available_years
from tracker.domain import (
    ALL,
    Account,
    Category,
    EXPENSE,
    FREQUENCIES,
    Filter,
    INCOME,
    MONTH_MODE,
    RANGE_MODE,
    Transaction,
    parse_ts,
)
from tracker.functional import resolve_category
from tracker.repository import JsonFileRepository, load_seed
from tracker.services import FinanceService

config.configure_logging()
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Finance Tracker", layout="wide")

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def make_service() -> FinanceService:
    repo = JsonFileRepository(config.DATA_PATH)
    if not config.DATA_PATH.exists() and config.SEED_PATH.exists():
        logger.info("Seeding %s from %s", config.DATA_PATH, config.SEED_PATH)
        repo.save(load_seed(config.SEED_PATH))
    svc = FinanceService(repo)
    svc.load()
    return svc


# the recurring catch-up runs once per session
if "svc" not in st.session_state:
    st.session_state.svc = make_service()

svc: FinanceService = st.session_state.svc
ledger = svc.ledger
accounts = ledger.accounts
categories = ledger.categories


def fmt(value, currency=None) -> str:
    symbol = config.currency_symbol(currency)
    return f"{symbol} {value:,.2f}".strip()


def show_error(result) -> None:
    st.error(f"❌ {result.get_error()['message']}")


# --- sidebar: account scope and filters

st.sidebar.markdown("### 🏦 Account")
scope_labels = {ALL: "All accounts", **{a.id: a.name for a in accounts}}
account_scope = st.sidebar.selectbox(
    "Account",
    options=list(scope_labels.keys()),
    format_func=lambda k: scope_labels[k],
    label_visibility="collapsed",
)

st.sidebar.markdown("### 🗓 Period")
today = datetime.now()
mode = st.sidebar.radio("Mode", [MONTH_MODE, RANGE_MODE], format_func=str.capitalize, horizontal=True)
if mode == MONTH_MODE:
    years = available_years(ledger.transactions, today)
    year = st.sidebar.selectbox("Year", years, index=years.index(today.year))
    month_options = [ALL] + list(range(12))
    month = st.sidebar.selectbox(
        "Month",
        month_options,
        index=today.month,
        format_func=lambda m: "All months" if m == ALL else MONTH_NAMES[m],
    )
    flt_kwargs = dict(mode=MONTH_MODE, month=month, year=year)
else:
    start = st.sidebar.date_input("From", value=None)
    end = st.sidebar.date_input("To", value=None)
    flt_kwargs = dict(
        mode=RANGE_MODE,
        start_date=start.isoformat() if start else None,
        end_date=end.isoformat() if end else None,
    )

type_filter = st.sidebar.radio(
    "Type",
    [ALL, INCOME, EXPENSE],
    format_func=lambda t: {ALL: "All", INCOME: "Income", EXPENSE: "Expense"}[t],
    horizontal=True,
)
query = st.sidebar.text_input("🔎 Search", placeholder="Description or category")

flt = Filter(type=type_filter, query=query, **flt_kwargs)
view = svc.dashboard(account_scope, flt)
metrics = view.metrics

menu = st.sidebar.radio("Menu", ["🏠 Dashboard", "🧾 Transactions", "⚙️ Manage", "📂 Import / Export"])

if menu == "🏠 Dashboard":
    st.title("🏠 Dashboard")

    cols = st.columns(4)
    if metrics.current_balance is not None:
        cols[0].metric("Current Balance", fmt(metrics.current_balance, metrics.currency))
    else:
        cols[0].caption("Balance is shown per account only.")
    cols[1].metric("Annual Income" if flt.is_annual else "Period Income", fmt(metrics.period_income, metrics.currency))
    cols[2].metric("Annual Expenses" if flt.is_annual else "Period Expenses", fmt(metrics.period_expenses, metrics.currency))
    cols[3].metric(
        "Net",
        fmt(metrics.net_balance, metrics.currency),
        delta=f"{metrics.net_balance:,.2f}",
    )

    chart_col, pie_col = st.columns([3, 2])
    with chart_col:
        st.subheader("📈 Trend")
        trend = metrics.trend
        if trend.is_empty:
            st.info("No data for the selected period.")
        else:
            if trend.granularity == DAY:
                labels = [pd.Timestamp(b.key).strftime("%d %b") for b in trend.buckets]
            else:
                labels = [pd.Timestamp(b.key + "-01").strftime("%b '%y") for b in trend.buckets]
            fig_ts = go.Figure()
            fig_ts.add_trace(go.Scatter(x=labels, y=[b.income for b in trend.buckets], mode="lines+markers", name="Income", line=dict(color="#10b981")))
            fig_ts.add_trace(go.Scatter(x=labels, y=[b.expense for b in trend.buckets], mode="lines+markers", name="Expense", line=dict(color="#ef4444")))
            fig_ts.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
            st.plotly_chart(fig_ts, use_container_width=True)

    with pie_col:
        st.subheader("🗂 Expenses by Category")
        if metrics.expenses_by_category:
            df_cat = pd.DataFrame([
                {"Category": ct.category.name, "Total": ct.amount, "Color": ct.category.color}
                for ct in metrics.expenses_by_category
            ])
            fig_cat = px.pie(
                df_cat,
                values="Total",
                names="Category",
                color="Category",
                color_discrete_map=dict(zip(df_cat["Category"], df_cat["Color"])),
                hole=0.45,
            )
            fig_cat.update_layout(template="plotly_dark", height=320)
            st.plotly_chart(fig_cat, use_container_width=True)
        else:
            st.info("No expenses in this period.")

elif menu == "🧾 Transactions":
    st.title("🧾 Transactions")

    with st.form("add_transaction", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            tx_type = st.radio("Type", [EXPENSE, INCOME], format_func=str.capitalize, horizontal=True)
            description = st.text_input("Description")
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        with col2:
            tx_date = st.date_input("Date", value=date.today())
            default_acc = [a.id for a in accounts].index(account_scope) if account_scope != ALL else 0
            acc_id = st.selectbox(
                "Account",
                [a.id for a in accounts],
                index=default_acc,
                format_func=lambda k: scope_labels[k],
            ) if accounts else None
            cat_id = st.selectbox("Category (expenses)", [c.id for c in categories], format_func=lambda k: resolve_category(categories, k).name)
        recurring = st.checkbox("Repeat this transaction")
        frequency = st.selectbox("Frequency", FREQUENCIES, index=1, format_func=str.capitalize)
        submitted = st.form_submit_button("Add Transaction")

        if submitted:
            if acc_id is None:
                st.error("Create an account first.")
            else:
                new_tx = Transaction(
                    id=str(uuid4()),
                    account_id=acc_id,
                    description=description,
                    amount=float(amount),
                    date=datetime.combine(tx_date, datetime.min.time()).isoformat(),
                    type=tx_type,
                    category_id=cat_id if tx_type == EXPENSE else None,
                )
                result = svc.add_transaction(new_tx, frequency if recurring else None)
                if result.is_right():
                    st.success("✅ Transaction added!")
                    st.rerun()
                else:
                    show_error(result)

    st.divider()

    if view.transactions:
        rows = []
        for t in view.transactions:
            acc = ledger.account(t.account_id)
            rows.append({
                "ID": t.id,
                "Date": parse_ts(t.date).strftime("%Y-%m-%d"),
                "Description": t.description,
                "Category": resolve_category(categories, t.category_id).name if t.type == EXPENSE else "-",
                "Account": acc.name if acc else "-",
                "Amount": fmt(t.amount if t.type == INCOME else -t.amount, acc.currency if acc else None),
            })
        df_tx = pd.DataFrame(rows)
        if account_scope != ALL:
            df_tx = df_tx.drop(columns=["Account"])
        st.dataframe(df_tx.drop(columns=["ID"]), use_container_width=True, hide_index=True)

        labels = {r["ID"]: f"{r['Date']} · {r['Description']}" for r in rows}
        selected = st.selectbox(
            "Edit or delete transaction",
            [""] + [t.id for t in view.transactions],
            format_func=lambda k: labels.get(k, ""),
        )
        if selected:
            current = next(t for t in view.transactions if t.id == selected)
            with st.form("edit_transaction"):
                col1, col2 = st.columns(2)
                with col1:
                    e_type = st.radio(
                        "Type", [EXPENSE, INCOME],
                        index=[EXPENSE, INCOME].index(current.type),
                        format_func=str.capitalize, horizontal=True,
                    )
                    e_description = st.text_input("Description", value=current.description)
                    e_amount = st.number_input("Amount", min_value=0.0, value=float(current.amount), step=1.0, format="%.2f")
                with col2:
                    e_date = st.date_input("Date", value=parse_ts(current.date).date())
                    cat_ids = [c.id for c in categories]
                    e_cat = st.selectbox(
                        "Category (expenses)",
                        cat_ids,
                        index=cat_ids.index(current.category_id) if current.category_id in cat_ids else 0,
                        format_func=lambda k: resolve_category(categories, k).name,
                    )
                if st.form_submit_button("💾 Save changes"):
                    # time of day is kept
                    ts = datetime.combine(e_date, parse_ts(current.date).time())
                    result = svc.update_transaction(Transaction(
                        id=current.id,
                        account_id=current.account_id,
                        description=e_description,
                        amount=float(e_amount),
                        date=ts.isoformat(),
                        type=e_type,
                        category_id=e_cat if e_type == EXPENSE else None,
                    ))
                    if result.is_right():
                        st.rerun()
                    else:
                        show_error(result)
            if st.button("🗑 Delete", key="btn_delete_tx"):
                svc.delete_transaction(selected)
                st.rerun()
    else:
        st.info("No transactions match the selected filters")

elif menu == "⚙️ Manage":
    st.title("⚙️ Manage")
    tab_acc, tab_cat, tab_rec = st.tabs(["💳 Accounts", "🗂 Categories", "🔁 Recurring"])

    with tab_acc:
        balances = account_balances(accounts, ledger.transactions)
        for a in accounts:
            c1, c2 = st.columns([4, 1])
            c1.metric(a.name, fmt(balances[a.id], a.currency))
            if c2.button("🗑", key=f"del_acc_{a.id}", help="Deletes the account with all its transactions"):
                svc.delete_account(a.id)
                st.rerun()
            with st.expander(f"Edit {a.name}"):
                with st.form(f"edit_acc_{a.id}"):
                    e_name = st.text_input("Name", value=a.name)
                    e_initial = st.number_input("Initial balance", value=float(a.initial_balance), step=100.0, format="%.2f")
                    codes = list(config.CURRENCIES)
                    e_currency = st.selectbox("Currency", codes, index=codes.index(a.currency) if a.currency in codes else 0)
                    if st.form_submit_button("💾 Save"):
                        result = svc.save_account(Account(a.id, e_name, float(e_initial), e_currency))
                        if result.is_right():
                            st.rerun()
                        else:
                            show_error(result)
        with st.form("add_account", clear_on_submit=True):
            name = st.text_input("Name")
            initial = st.number_input("Initial balance", value=0.0, step=100.0, format="%.2f")
            codes = list(config.CURRENCIES)
            default_idx = codes.index(config.DEFAULT_CURRENCY) if config.DEFAULT_CURRENCY in codes else 0
            currency = st.selectbox("Currency", codes, index=default_idx)
            if st.form_submit_button("Add Account"):
                result = svc.save_account(Account(str(uuid4()), name, float(initial), currency))
                if result.is_right():
                    st.rerun()
                else:
                    show_error(result)

    with tab_cat:
        for c in categories:
            c1, c2 = st.columns([4, 1])
            c1.markdown(f"<span style='color:{c.color}'>●</span> {c.name}", unsafe_allow_html=True)
            if not resolve_category(categories, c.id).is_fallback and c2.button("🗑", key=f"del_cat_{c.id}"):
                svc.delete_category(c.id)
                st.rerun()
        with st.form("add_category", clear_on_submit=True):
            name = st.text_input("Name")
            color = st.color_picker("Color", value="#3b82f6")
            if st.form_submit_button("Add Category"):
                result = svc.save_category(Category(str(uuid4()), name, color))
                if result.is_right():
                    st.rerun()
                else:
                    show_error(result)

    with tab_rec:
        if ledger.recurring:
            for rt in ledger.recurring:
                acc = ledger.account(rt.account_id)
                c1, c2 = st.columns([4, 1])
                c1.write(
                    f"**{rt.description}** · {fmt(rt.amount, acc.currency if acc else None)} · "
                    f"{rt.frequency} · next {parse_ts(rt.next_due_date):%Y-%m-%d}"
                )
                if c2.button("🗑", key=f"del_rec_{rt.id}"):
                    svc.delete_recurring(rt.id)
                    st.rerun()
                with st.expander(f"Edit {rt.description}"):
                    with st.form(f"edit_rec_{rt.id}"):
                        e_description = st.text_input("Description", value=rt.description)
                        e_amount = st.number_input("Amount", min_value=0.0, value=float(rt.amount), step=1.0, format="%.2f")
                        cat_ids = [c.id for c in categories]
                        e_cat = st.selectbox(
                            "Category",
                            cat_ids,
                            index=cat_ids.index(rt.category_id) if rt.category_id in cat_ids else 0,
                            format_func=lambda k: resolve_category(categories, k).name,
                            disabled=rt.type != EXPENSE,
                        )
                        if st.form_submit_button("💾 Save"):
                            result = svc.save_recurring(replace(
                                rt,
                                description=e_description,
                                amount=float(e_amount),
                                category_id=e_cat if rt.type == EXPENSE else None,
                            ))
                            if result.is_right():
                                st.rerun()
                            else:
                                show_error(result)
        else:
            st.info("No recurring transactions. Tick 'Repeat this transaction' when adding one.")

elif menu == "📂 Import / Export":
    st.title("📂 Import / Export")

    st.download_button(
        "⬇️ Download CSV",
        svc.export_csv(account_scope),
        file_name="transactions.csv",
        mime="text/csv",
    )

    st.divider()
    if accounts:
        target = st.selectbox("Import into account", [a.id for a in accounts], format_func=lambda k: scope_labels[k])
        uploaded = st.file_uploader("CSV file", type=["csv"])
        if uploaded is not None and st.button("Import", key="btn_import"):
            try:
                result = svc.import_csv(uploaded.getvalue().decode("utf-8"), target)
            except ValueError as e:
                st.error(f"❌ Import failed: {e}")
            else:
                st.success(f"✅ {result.imported} imported, {result.skipped} skipped, {result.duplicates} already present")
    else:
        st.info("Create an account before importing.")
