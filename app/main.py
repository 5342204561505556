"""
Streamlit Frontend for SpendSmart

The single user surface: sign in, scan receipts, review what the AI
found, watch budgets and ask the advisor.

DESIGN PRINCIPLES:
1. Pages only read AppState and call named StateStore/flow operations
2. Nothing scanned is saved without an explicit "Save" click
3. Every failure shows one plain-language message
4. Numbers typed into forms are validated before they are stored

Run with: streamlit run app/main.py
"""

import asyncio
from datetime import date

import streamlit as st

from spendsmart.aggregation import (
    budget_overview,
    item_breakdown,
    monthly_history,
    recent_transactions,
    recurring_groups,
    sorted_items,
    spend_by_category,
    spend_by_store,
    total_recurring,
    to_chart_series,
    total_spent,
)
from spendsmart.audit import AuditLogger
from spendsmart.config import get_settings, validate_all_settings
from spendsmart.models.transaction import (
    SUGGESTED_CATEGORIES,
    BudgetStatus,
    ChatRole,
    Theme,
    Transaction,
)
from spendsmart.orchestrator import (
    SUGGESTED_QUERIES,
    AdvisorFlow,
    FlowBusyError,
    ScanFlow,
    create_app_components,
)
from spendsmart.state import StateStore
from spendsmart.validation import EditValidationError, build_budget, update_transaction


# Page configuration
st.set_page_config(
    page_title="SpendSmart",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

LIGHT_CSS = """
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #312e81;
    }
</style>
"""

DARK_CSS = """
<style>
    .stApp {
        background-color: #0f172a;
        color: #e2e8f0;
    }
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #a5b4fc;
    }
</style>
"""

STATUS_ICONS = {
    BudgetStatus.ON_TRACK: "🟢",
    BudgetStatus.NEARING_LIMIT: "🟠",
    BudgetStatus.EXCEEDED: "🔴",
}


@st.cache_resource
def get_event_loop():
    """One loop for the process; the Gemini async client is bound to it."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = get_event_loop()
    asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_file_storage=True)
    except Exception as e:
        st.error(f"Failed to open local storage, using a temporary session: {e}")
        return create_app_components(use_file_storage=False)


def money(value) -> str:
    return f"${value:,.2f}"


def chart_data(totals) -> dict[str, float]:
    return {point.name or "(none)": float(point.value) for point in to_chart_series(totals)}


def main():
    """Main application entry point."""
    state_store, scan_flow, advisor_flow, audit_logger = get_components()
    state = state_store.state

    st.markdown(DARK_CSS if state.theme == Theme.DARK else LIGHT_CSS, unsafe_allow_html=True)

    if not state.is_authenticated:
        render_auth_page(state_store)
        return

    # Sidebar navigation
    st.sidebar.title("💸 SpendSmart")
    st.sidebar.caption(f"Signed in as {state.user.name} ({state.user.email})")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "📷 Scan Receipt", "🎯 Budgets", "🤖 Advisor", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    theme_label = "🌙 Dark mode" if state.theme == Theme.LIGHT else "☀️ Light mode"
    if st.sidebar.button(theme_label):
        state_store.toggle_theme()
        st.rerun()
    if st.sidebar.button("🚪 Log out"):
        state_store.logout()
        st.rerun()

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(state_store)
    elif page == "📷 Scan Receipt":
        render_scan_page(scan_flow)
    elif page == "🎯 Budgets":
        render_budget_page(state_store)
    elif page == "🤖 Advisor":
        render_advisor_page(advisor_flow)
    elif page == "⚙️ Settings":
        render_settings_page(audit_logger)


def render_auth_page(state_store: StateStore):
    """Local sign-in; no password is checked or stored."""
    st.title("💸 SpendSmart")
    st.markdown("Track receipts, stay on budget and get advice on your spending.")

    with st.form("login_form"):
        email = st.text_input("Email")
        name = st.text_input("Name (optional)")
        submitted = st.form_submit_button("Sign in")

    if submitted:
        try:
            state_store.login(email, name or None)
        except ValueError as e:
            st.error(str(e))
        else:
            st.rerun()

    if st.button("Continue with Google"):
        state_store.login_with_google()
        st.rerun()


def render_dashboard_page(state_store: StateStore):
    """Render the dashboard."""
    settings = get_settings().app
    state = state_store.state
    transactions = list(state.transactions)

    st.title("📊 Dashboard")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown("**Total spent**")
        st.markdown(f'<p class="big-number">{money(total_spent(transactions))}</p>', unsafe_allow_html=True)
    with col2:
        st.markdown("**Recurring**")
        st.markdown(f'<p class="big-number">{money(total_recurring(transactions))}</p>', unsafe_allow_html=True)
    with col3:
        st.markdown("**Transactions**")
        st.markdown(f'<p class="big-number">{len(transactions)}</p>', unsafe_allow_html=True)

    if not transactions:
        st.info("No transactions yet. Use 'Scan Receipt' to add your first one.")
        return

    st.markdown("### Monthly spending")
    history = monthly_history(transactions, date.today(), settings.history_months)
    st.bar_chart({point.month_label: float(point.amount) for point in history})

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("### By category")
        st.bar_chart(chart_data(spend_by_category(transactions)))
    with col2:
        st.markdown("### By store")
        st.bar_chart(chart_data(spend_by_store(transactions)))

    st.markdown("### Recent transactions")
    for transaction in recent_transactions(transactions, settings.recent_transactions_limit):
        render_transaction_editor(state_store, transaction)


def render_transaction_editor(state_store: StateStore, transaction: Transaction):
    """Expandable card to edit or delete a saved transaction."""
    label = (
        f"{transaction.transaction_date.isoformat()} · {transaction.store or 'Unnamed'} · "
        f"{money(transaction.total_amount)} · {transaction.category}"
    )
    with st.expander(label):
        with st.form(f"edit_{transaction.id}"):
            store = st.text_input("Store", value=transaction.store)
            when = st.date_input("Date", value=transaction.transaction_date)
            amount = st.text_input("Total amount", value=str(transaction.total_amount))
            category = st.text_input("Category", value=transaction.category)
            is_recurring = st.checkbox("Recurring", value=transaction.is_recurring)
            saved = st.form_submit_button("💾 Save changes")

        if saved:
            try:
                updated = transaction
                for field, value in (
                    ("store", store),
                    ("date", when),
                    ("total_amount", amount),
                    ("category", category),
                    ("is_recurring", is_recurring),
                ):
                    updated = update_transaction(updated, field, value)
            except EditValidationError as e:
                st.error(str(e))
            else:
                state_store.update_transaction(updated)
                st.rerun()

        if transaction.items:
            st.table([
                {
                    "Item": item.name,
                    "Qty": float(item.quantity),
                    "Unit": money(item.unit_price),
                    "Total": money(item.total_price),
                }
                for item in transaction.items
            ])

        if st.button("🗑️ Delete", key=f"delete_{transaction.id}"):
            state_store.delete_transaction(transaction.id)
            st.rerun()


def render_scan_page(scan_flow: ScanFlow):
    """Render the scan and review page."""
    settings = get_settings().app
    st.title("📷 Scan Receipt")

    if scan_flow.error:
        st.error(scan_flow.error)

    if not scan_flow.in_review:
        uploaded = st.file_uploader(
            "Upload a receipt photo or bank statement",
            type=["jpg", "jpeg", "png", "webp", "heic", "pdf"],
            help=f"Max {settings.max_upload_size_mb} MB",
        )
        if uploaded is not None and st.button("🔍 Analyze", disabled=scan_flow.is_busy):
            with st.spinner("Analyzing your receipt..."):
                try:
                    run_async(scan_flow.scan(uploaded.getvalue(), uploaded.type, uploaded.name))
                except FlowBusyError as e:
                    st.warning(str(e))
            st.rerun()

        st.markdown("---")
        if st.button("✍️ Enter manually"):
            scan_flow.start_manual_entry()
            st.rerun()
        return

    st.markdown(f"### Review {len(scan_flow.pending)} transaction(s)")
    st.caption("Check the details below. Nothing is saved until you click Save.")

    for transaction in scan_flow.pending:
        render_pending_card(scan_flow, transaction)

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Save all"):
            scan_flow.save_all()
            st.success("Saved!")
            st.rerun()
    with col2:
        if st.button("❌ Discard all"):
            scan_flow.discard_all()
            st.rerun()


def render_pending_card(scan_flow: ScanFlow, transaction: Transaction):
    with st.container(border=True):
        with st.form(f"pending_{transaction.id}"):
            col1, col2 = st.columns(2)
            with col1:
                store = st.text_input("Store", value=transaction.store)
                amount = st.text_input("Total amount", value=str(transaction.total_amount))
            with col2:
                when = st.date_input("Date", value=transaction.transaction_date)
                options = list(SUGGESTED_CATEGORIES)
                if transaction.category not in options:
                    options.append(transaction.category)
                category = st.selectbox("Category", options, index=options.index(transaction.category))
            is_recurring = st.checkbox("Recurring bill / subscription", value=transaction.is_recurring)
            applied = st.form_submit_button("Apply edits")

        if applied:
            try:
                scan_flow.update_pending(
                    transaction.id,
                    store=store,
                    date=when,
                    total_amount=amount,
                    category=category,
                    is_recurring=is_recurring,
                )
            except EditValidationError as e:
                st.error(str(e))
            else:
                st.rerun()

        if transaction.items:
            st.table([
                {"Item": item.name, "Qty": float(item.quantity), "Total": money(item.total_price)}
                for item in transaction.items
            ])
            if transaction.items_total != transaction.total_amount:
                st.caption(f"Items add up to {money(transaction.items_total)}")
                if st.button("Use item sum as total", key=f"recalc_{transaction.id}"):
                    scan_flow.recalculate_pending_total(transaction.id)
                    st.rerun()

        col1, col2 = st.columns(2)
        with col1:
            if st.button("💾 Save", key=f"save_{transaction.id}"):
                scan_flow.save_pending(transaction.id)
                st.rerun()
        with col2:
            if st.button("🗑️ Discard", key=f"discard_{transaction.id}"):
                scan_flow.discard(transaction.id)
                st.rerun()


def render_budget_page(state_store: StateStore):
    """Render budgets, recurring bills and item insights."""
    state = state_store.state
    transactions = list(state.transactions)

    st.title("🎯 Budgets")

    with st.form("budget_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            category = st.selectbox("Category", SUGGESTED_CATEGORIES)
        with col2:
            limit = st.text_input("Monthly limit")
        submitted = st.form_submit_button("➕ Set budget")

    if submitted:
        try:
            state_store.save_budget(build_budget(category, limit))
        except EditValidationError as e:
            st.error(str(e))
        else:
            st.rerun()

    if not state.budgets:
        st.info("No budgets yet. Add one above.")
    for progress in budget_overview(transactions, state.budgets):
        st.markdown(
            f"{STATUS_ICONS[progress.status]} **{progress.category}**: "
            f"{money(progress.spent)} of {money(progress.limit or 0)} ({progress.status.value})"
        )
        st.progress(int(progress.percentage))

    st.markdown("### Recurring bills")
    groups = recurring_groups(transactions)
    if not groups:
        st.caption("Mark a transaction as recurring to track it here.")
    for transaction in groups:
        st.markdown(
            f"- **{transaction.store}**: {money(transaction.total_amount)} "
            f"(last on {transaction.transaction_date.isoformat()})"
        )

    st.markdown("### What you buy")
    for category_name, items in item_breakdown(transactions).items():
        with st.expander(category_name):
            st.table([
                {"Item": name, "Qty": float(totals.quantity), "Spent": money(totals.total)}
                for name, totals in sorted_items(items)
            ])


def render_advisor_page(advisor_flow: AdvisorFlow):
    """Render the advisor chat."""
    st.title("🤖 SpendSmart Advisor")

    for message in advisor_flow.messages:
        role = "user" if message.role == ChatRole.USER else "assistant"
        with st.chat_message(role):
            st.markdown(message.content)
            if message.citations:
                st.caption("Sources")
                for citation in message.citations:
                    st.markdown(f"- [{citation.display_title}]({citation.uri})")

    st.caption("Try: " + " · ".join(f"“{q}”" for q in SUGGESTED_QUERIES))

    query = st.chat_input("Ask about your spending...")
    if query:
        with st.spinner("Thinking..."):
            try:
                run_async(advisor_flow.send(query))
            except FlowBusyError as e:
                st.warning(str(e))
        st.rerun()


def render_settings_page(audit_logger: AuditLogger):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Gemini (AI)", "gemini"),
        ("Local storage", "storage"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your Gemini API key. "
        "See `.env.example` for the available variables."
    )
    st.caption(f"Environment: {get_settings().app.app_environment}")

    if get_settings().app.debug_mode:
        st.markdown("---")
        st.markdown("### Recent activity")
        st.table([
            {
                "When": event.timestamp.strftime("%H:%M:%S"),
                "Event": event.event_type.value,
                "Details": event.description,
                "Error": event.error_message or "",
            }
            for event in audit_logger.get_recent_events(limit=25)
        ])


if __name__ == "__main__":
    main()
