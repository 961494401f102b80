"""
Streamlit Frontend for Zen Finance

A calm, single-user view of the ledger: what was spent this month, how
each budget is holding up, and which bills are coming next.

DESIGN PRINCIPLES:
1. Every change goes through the FinanceStore mutators
2. AI results are shown for review before they are saved
3. Validation problems are shown in plain language
4. Automatically logged bills are announced, never silent
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal

import streamlit as st

from zen_finance.agents import BudgetSuggestion, ParseFailure
from zen_finance.config import get_settings, validate_all_settings
from zen_finance.engine import FinanceEngineError, FinanceStore, ValidationFailedError
from zen_finance.models import IconName, IncomeFrequency
from zen_finance.orchestrator import (
    BudgetSuggestionFlow,
    InsightsFlow,
    TransactionEntryFlow,
    create_app_components,
)
from zen_finance.validation import FinanceValidator


# Page configuration
st.set_page_config(
    page_title="Zen Finance",
    page_icon="🧘",
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
    store, entry_flow, insights_flow, budget_flow = create_app_components(use_storage=True)
    store.load()
    return store, entry_flow, insights_flow, budget_flow


def show_error(error: FinanceEngineError):
    if isinstance(error, ValidationFailedError):
        st.error(FinanceValidator.get_user_friendly_summary(error.result))
    else:
        st.error(str(error))


def main():
    """Main application entry point."""
    store, entry_flow, insights_flow, budget_flow = get_components()

    # Bills due since the last visit
    store.check_recurring_payments()
    for notification in store.drain_notifications():
        st.toast(notification.message, icon="🔁")

    st.sidebar.title("🧘 Zen Finance")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "🧾 Transactions",
            "🎯 Budgets",
            "🔁 Recurring",
            "💵 Income",
            "✨ Insights",
            "⚙️ Settings",
        ],
        index=0,
    )

    if page == "📊 Dashboard":
        render_dashboard(store)
    elif page == "🧾 Transactions":
        render_transactions_page(store, entry_flow)
    elif page == "🎯 Budgets":
        render_budgets_page(store, budget_flow)
    elif page == "🔁 Recurring":
        render_recurring_page(store)
    elif page == "💵 Income":
        render_income_page(store)
    elif page == "✨ Insights":
        render_insights_page(insights_flow)
    elif page == "⚙️ Settings":
        render_settings_page(store)


def render_dashboard(store: FinanceStore):
    st.title("📊 This Month")
    settings = get_settings().app

    income = store.monthly_income()
    expenses = store.monthly_expenses()

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", f"${income:,.2f}")
    col2.metric("Expenses", f"${expenses:,.2f}")
    col3.metric("Left over", f"${income - expenses:,.2f}")

    st.subheader("Daily spending")
    daily = store.daily_spending(days=settings.daily_spending_days)
    st.bar_chart({d.day.isoformat(): float(d.total) for d in daily})

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Top budgets")
        for budget in store.top_budgets():
            progress = store.budget_progress(budget.category)
            st.markdown(
                f"**{budget.category}** ${budget.spent:,.2f} of ${budget.limit:,.2f}"
            )
            st.progress(min(progress.percent_used / 100, 1.0))

    with col2:
        st.subheader("Upcoming bills")
        upcoming = store.upcoming_payments(limit=settings.upcoming_payments_limit)
        if not upcoming:
            st.info("No recurring payments yet.")
        for item in upcoming:
            when = "today" if item.days_until_due == 0 else f"in {item.days_until_due} days"
            st.markdown(
                f"**{item.payment.description}** ${item.payment.amount:,.2f} "
                f"({item.due_date.strftime('%d %b')}, {when})"
            )

    st.subheader("Recent transactions")
    for t in store.recent_transactions():
        st.markdown(
            f"{t.date.strftime('%d %b')} · **{t.description}** · "
            f"{t.category} · ${t.amount:,.2f}"
        )


def render_transactions_page(store: FinanceStore, entry_flow: TransactionEntryFlow):
    st.title("🧾 Transactions")

    st.subheader("Quick add")
    text = st.text_input(
        "Describe it",
        placeholder="e.g., coffee with Sam at the corner cafe",
    )
    amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")

    if st.button("✨ Add with AI", type="primary") and text:
        with st.spinner("Reading your transaction..."):
            try:
                result = run_async(entry_flow.submit(
                    text,
                    amount=Decimal(str(amount)) if amount > 0 else None,
                ))
            except FinanceEngineError as e:
                show_error(e)
            else:
                if isinstance(result, ParseFailure):
                    st.error(result.reason)
                else:
                    st.success(f"Added {result.description} (${result.amount:,.2f})")

    with st.expander("Add manually"):
        with st.form("manual_transaction"):
            description = st.text_input("Description")
            category = st.selectbox("Category", store.categories)
            manual_amount = st.number_input("Amount ", min_value=0.0, step=0.01)
            when = st.date_input("Date", value=date.today())
            if st.form_submit_button("Add"):
                try:
                    store.add_transaction(
                        amount=Decimal(str(manual_amount)),
                        description=description,
                        category=category,
                        date=when,
                    )
                    st.success("Transaction added")
                except FinanceEngineError as e:
                    show_error(e)

    st.markdown("---")
    for t in store.transactions:
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"{t.date.strftime('%d %b %Y')} · **{t.description}** · "
            f"{t.category} · ${t.amount:,.2f}"
        )
        if col2.button("Delete", key=f"del-{t.id}"):
            store.delete_transaction(t.id)
            st.rerun()


def render_budgets_page(store: FinanceStore, budget_flow: BudgetSuggestionFlow):
    st.title("🎯 Budgets")

    for budget in store.budgets:
        progress = store.budget_progress(budget.category)
        with st.expander(f"{budget.category}: ${budget.spent:,.2f} / ${budget.limit:,.2f}"):
            st.progress(min(progress.percent_used / 100, 1.0))
            new_limit = st.number_input(
                "Monthly limit",
                value=float(budget.limit),
                min_value=0.0,
                key=f"limit-{budget.category}",
            )
            new_name = st.text_input("Name", value=budget.category, key=f"name-{budget.category}")
            col1, col2 = st.columns(2)
            if col1.button("Save", key=f"save-{budget.category}"):
                try:
                    if Decimal(str(new_limit)) != budget.limit:
                        store.update_budget_limit(budget.category, Decimal(str(new_limit)))
                    if new_name.strip() != budget.category:
                        store.rename_category(budget.category, new_name)
                    st.rerun()
                except FinanceEngineError as e:
                    show_error(e)
            if col2.button("Delete category", key=f"delete-{budget.category}"):
                store.delete_category(budget.category)
                st.warning("Category deleted together with its transactions and bills")
                st.rerun()

    with st.expander("➕ New category"):
        with st.form("new_category"):
            name = st.text_input("Category name")
            limit = st.number_input("Monthly limit", min_value=0.0, value=500.0)
            icon = st.selectbox("Icon", [i.value for i in IconName])
            if st.form_submit_button("Create"):
                try:
                    store.add_category(name, Decimal(str(limit)), icon=icon)
                    st.rerun()
                except FinanceEngineError as e:
                    show_error(e)

    st.markdown("---")
    st.subheader("✨ Suggest a budget")
    if st.button("Suggest limits from my income"):
        with st.spinner("Thinking about your budget..."):
            st.session_state.budget_suggestion = run_async(budget_flow.suggest())

    suggestion = st.session_state.get("budget_suggestion")
    if isinstance(suggestion, BudgetSuggestion):
        for category, limit in suggestion.limits.items():
            st.markdown(f"**{category}**: ${limit:,.0f}")
        if suggestion.exceeds_income:
            st.warning("These limits add up to more than your monthly income.")
        if st.button("Apply suggested limits", type="primary"):
            try:
                budget_flow.apply(suggestion)
                st.session_state.budget_suggestion = None
                st.rerun()
            except FinanceEngineError as e:
                show_error(e)
    elif suggestion is not None:
        st.error(suggestion.reason)


def render_recurring_page(store: FinanceStore):
    st.title("🔁 Recurring Payments")

    for payment in store.recurring_payments:
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"**{payment.description}** ${payment.amount:,.2f} · day "
            f"{payment.day_of_month} · {payment.category} · "
            f"{store.recurring_payment_state(payment.id).value.replace('_', ' ')}"
        )
        if col2.button("Delete", key=f"del-rec-{payment.id}"):
            store.delete_recurring_payment(payment.id)
            st.rerun()

    with st.form("new_recurring"):
        description = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.0, step=0.01)
        category = st.selectbox("Category", store.categories)
        day = st.number_input("Day of month", min_value=1, max_value=31, value=1, step=1)
        if st.form_submit_button("Add recurring payment"):
            try:
                store.add_recurring_payment(
                    description=description,
                    amount=Decimal(str(amount)),
                    category=category,
                    day_of_month=int(day),
                )
                st.rerun()
            except FinanceEngineError as e:
                show_error(e)


def render_income_page(store: FinanceStore):
    st.title("💵 Income")
    st.metric("Expected this month", f"${store.monthly_income():,.2f}")

    for income in store.incomes:
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"**{income.description}** ${income.amount:,.2f} · "
            f"{income.frequency.value} · from {income.start_date.strftime('%d %b %Y')}"
        )
        if col2.button("Delete", key=f"del-inc-{income.id}"):
            store.delete_income(income.id)
            st.rerun()

    with st.form("new_income"):
        description = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.0, step=0.01)
        frequency = st.selectbox("Frequency", [f.value for f in IncomeFrequency])
        start = st.date_input("Start date", value=date.today())
        if st.form_submit_button("Add income"):
            try:
                store.add_income(
                    description=description,
                    amount=Decimal(str(amount)),
                    frequency=frequency,
                    start_date=datetime.combine(start, datetime.min.time()),
                )
                st.rerun()
            except FinanceEngineError as e:
                show_error(e)


def render_insights_page(insights_flow: InsightsFlow):
    st.title("✨ Spending Insights")

    if st.button("Generate new insights", type="primary"):
        with st.spinner("Looking at your spending..."):
            st.session_state.insights = run_async(insights_flow.generate())

    result = st.session_state.get("insights")
    if result is None:
        st.info("Generate insights to see how your month is going.")
        return
    if not hasattr(result, "insights"):
        st.error(result.reason)
        return

    markers = {"observation": "👀", "suggestion": "💡", "alert": "⚠️", "positive": "🎉"}
    for insight in result.insights:
        st.markdown(f"### {markers[insight.type]} {insight.title}")
        st.markdown(insight.description)
        if insight.category:
            st.caption(insight.category)


def render_settings_page(store: FinanceStore):
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Gemini (AI)", "gemini"),
        ("Storage", "storage"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Data")
    st.download_button(
        "Export ledger (JSON)",
        data=store.snapshot().model_dump_json(indent=2),
        file_name="zen-finance-export.json",
    )
    if st.button("🗑️ Reset all data"):
        store.reset_data()
        st.success("All data reset")


if __name__ == "__main__":
    main()
