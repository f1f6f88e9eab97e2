"""
Streamlit Frontend for FinVue

Five pages:
1. Dashboard - net worth, this month's numbers, trend and category charts
2. Accounts - list, add, edit, delete
3. Transactions - list newest first, record income/expense, delete
4. AI Advisor - ask Gemini for an assessment
5. Settings - which configuration sections are usable

The page only renders; every number comes from the orchestrator flows.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pandas as pd
import plotly.express as px
import streamlit as st

from finvue.audit import create_correlation_id
from finvue.config import get_settings, validate_all_settings
from finvue.dashboard import breakdown_chart_rows, chart_color_map, trend_chart_rows
from finvue.models.catalog import categories_for
from finvue.models.finance import BankAccount, Transaction, TransactionType
from finvue.orchestrator import (
    AdvisorFlow,
    DashboardFlow,
    LedgerFlow,
    LedgerValidationError,
    create_app_components,
)
from finvue.services.storage import StorageError


st.set_page_config(
    page_title="FinVue",
    page_icon="💹",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def format_money(value: Decimal) -> str:
    return f"${value:,.0f}"


def main():
    """Main application entry point."""
    components = get_components()
    user_id = get_settings().app.app_user_id

    st.sidebar.title("💹 FinVue")
    if components.is_demo:
        st.sidebar.info("Demo mode: data is kept in local files.")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🏦 Accounts", "🧾 Transactions", "🤖 AI Advisor", "⚙️ Settings"],
        index=0,
    )

    try:
        if page == "📊 Dashboard":
            render_dashboard_page(components.dashboard_flow, user_id)
        elif page == "🏦 Accounts":
            render_accounts_page(components.dashboard_flow, components.ledger_flow, user_id)
        elif page == "🧾 Transactions":
            render_transactions_page(components.dashboard_flow, components.ledger_flow, user_id)
        elif page == "🤖 AI Advisor":
            render_advisor_page(components.advisor_flow, user_id)
        elif page == "⚙️ Settings":
            render_settings_page()
    except StorageError as e:
        st.error(f"Could not reach your data: {e}")


def render_dashboard_page(dashboard_flow: DashboardFlow, user_id: str):
    """Render the dashboard."""
    dashboard = run_async(dashboard_flow.load_dashboard(user_id))
    stats = dashboard.stats

    header, net_worth = st.columns([3, 1])
    with header:
        st.title("Welcome back")
        st.caption("Your personal finance overview")
    with net_worth:
        st.metric("Net worth", format_money(stats.total_balance))

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Income this month", format_money(stats.monthly_income))
    with col2:
        st.metric("Expenses this month", format_money(stats.monthly_expenses))
    with col3:
        st.metric("Savings rate", f"{stats.savings_rate:.1f}%")

    trend_col, pie_col = st.columns([2, 1])

    with trend_col:
        st.subheader("Income & expense trend")
        trend_df = pd.DataFrame(trend_chart_rows(dashboard.trend))
        fig_trend = px.bar(
            trend_df,
            x="month",
            y=["Income", "Expense"],
            barmode="group",
            color_discrete_map={"Income": "#10b981", "Expense": "#f43f5e"},
        )
        fig_trend.update_layout(xaxis_title=None, yaxis_title=None, legend_title=None)
        st.plotly_chart(fig_trend, use_container_width=True)

    with pie_col:
        st.subheader("Expenses by category")
        if not dashboard.breakdown:
            st.info("No expenses recorded yet.")
        else:
            rows = breakdown_chart_rows(dashboard.breakdown)
            fig_pie = px.pie(
                pd.DataFrame(rows),
                names="label",
                values="value",
                hole=0.6,
                color="label",
                color_discrete_map=chart_color_map(rows),
            )
            st.plotly_chart(fig_pie, use_container_width=True)
            for row, s in zip(rows, dashboard.breakdown):
                st.markdown(f"**{row['label']}**: {format_money(s.value)}")


def render_accounts_page(dashboard_flow: DashboardFlow, ledger_flow: LedgerFlow, user_id: str):
    """Render the accounts manager."""
    st.title("🏦 Accounts")

    accounts, _ = run_async(dashboard_flow.load_ledger(user_id))

    for account in accounts:
        col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
        with col1:
            st.markdown(f"**{account.name}**  \n{account.type or '-'}")
        with col2:
            st.markdown(f"{account.balance:,.0f} {account.currency}")
        with col3:
            if st.button("Edit", key=f"edit_acc_{account.id}"):
                st.session_state.editing_account_id = account.id
                st.rerun()
        with col4:
            if st.button("Delete", key=f"del_acc_{account.id}"):
                run_async(ledger_flow.delete_account(user_id, account.id))
                if st.session_state.get("editing_account_id") == account.id:
                    del st.session_state.editing_account_id
                st.rerun()

    editing = next(
        (a for a in accounts if a.id == st.session_state.get("editing_account_id")),
        None,
    )

    st.markdown("---")
    st.subheader(f"Edit {editing.name}" if editing else "Add an account")
    with st.form(f"account_form_{editing.id if editing else 'new'}", clear_on_submit=True):
        name = st.text_input("Name *", value=editing.name if editing else "")
        account_type = st.text_input(
            "Type",
            value=editing.type if editing else "",
            placeholder="Savings, Credit, Investment, Cash...",
        )
        balance = st.number_input(
            "Balance",
            value=float(editing.balance) if editing else 0.0,
            step=100.0,
        )
        currency = st.text_input("Currency", value=editing.currency if editing else "TWD", max_chars=3)
        color = st.color_picker("Color", value=editing.color if editing else "#10b981")
        submitted = st.form_submit_button("Save account", type="primary")

    if editing and st.button("Cancel editing"):
        del st.session_state.editing_account_id
        st.rerun()

    if submitted:
        fields = {
            "name": name,
            "type": account_type,
            "balance": Decimal(str(balance)),
            "currency": currency.upper(),
            "color": color,
        }
        if editing:
            fields["id"] = editing.id
        try:
            account = BankAccount(**fields)
            run_async(ledger_flow.save_account(user_id, account, create_correlation_id()))
            st.session_state.pop("editing_account_id", None)
            st.success(f"Saved {account.name}")
            st.rerun()
        except LedgerValidationError as e:
            st.error(ledger_flow.validator.get_user_friendly_summary(e.result))


def render_transactions_page(dashboard_flow: DashboardFlow, ledger_flow: LedgerFlow, user_id: str):
    """Render the transactions manager."""
    st.title("🧾 Transactions")

    accounts, _ = run_async(dashboard_flow.load_ledger(user_id))

    st.subheader("Record a transaction")
    tx_type = st.radio(
        "Type",
        list(TransactionType),
        format_func=lambda t: "Expense" if t == TransactionType.EXPENSE else "Income",
        horizontal=True,
    )

    if not accounts:
        st.warning("Add an account first.")
    else:
        with st.form("add_transaction", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                amount = st.number_input("Amount *", min_value=0.0, step=10.0)
                category = st.selectbox(
                    "Category *",
                    categories_for(tx_type),
                    format_func=lambda c: c.name,
                )
            with col2:
                account = st.selectbox(
                    "Account *",
                    accounts,
                    format_func=lambda a: a.name,
                )
                tx_date = st.date_input("Date *", value=date.today())
            note = st.text_input("Note")
            submitted = st.form_submit_button("Save transaction", type="primary")

        if submitted:
            try:
                transaction = Transaction(
                    account_id=account.id,
                    category_id=category.id,
                    amount=Decimal(str(amount)),
                    type=tx_type,
                    date=tx_date.isoformat(),
                    note=note,
                )
                _, result = run_async(
                    ledger_flow.add_transaction(user_id, transaction, create_correlation_id())
                )
                for issue in result.issues:
                    st.warning(issue.message)
                st.success("Transaction saved")
            except LedgerValidationError as e:
                st.error(ledger_flow.validator.get_user_friendly_summary(e.result))

    st.markdown("---")
    st.subheader("History")
    rows = run_async(ledger_flow.list_transactions(user_id))
    if not rows:
        st.info("No transactions yet.")
        return

    for row in rows:
        col1, col2, col3, col4 = st.columns([2, 3, 2, 1])
        with col1:
            st.markdown(row["date"])
        with col2:
            st.markdown(f"**{row['category']}** · {row['account']}  \n{row['note']}")
        with col3:
            sign = "+" if row["type"] == TransactionType.INCOME.value else "-"
            st.markdown(f"{sign}{row['amount']:,.0f}")
        with col4:
            if st.button("Delete", key=f"del_tx_{row['id']}"):
                run_async(ledger_flow.delete_transaction(user_id, row["id"]))
                st.rerun()


def render_advisor_page(advisor_flow: AdvisorFlow, user_id: str):
    """Render the AI advisor page."""
    st.title("🤖 AI Advisor")
    st.markdown("Get an assessment of your finances based on your recorded transactions.")

    if not advisor_flow.is_configured:
        st.warning("Set GEMINI_API_KEY to enable the advisor.")

    if st.button("Analyse my finances", type="primary"):
        with st.spinner("Analysing..."):
            st.session_state.advice = run_async(advisor_flow.request_advice(user_id))

    advice = st.session_state.get("advice")
    if advice is None:
        return

    if advice.is_fallback:
        st.error(advice.analysis)
    else:
        st.metric("Financial health score", f"{advice.score:.0f} / 100")
        st.markdown(advice.analysis)

    if advice.recommendations:
        st.subheader("Recommendations")
        for rec in advice.recommendations:
            st.markdown(f"- {rec}")


def render_settings_page():
    """Render the configuration status page."""
    st.title("⚙️ Settings")

    results = validate_all_settings()
    for section in ("app", "google_sheets", "gemini"):
        if results.get(section):
            st.success(f"{section}: configured")
        else:
            st.warning(f"{section}: not configured")
            error = results.get(f"{section}_error")
            if error:
                with st.expander("Details"):
                    st.code(error)


if __name__ == "__main__":
    main()
