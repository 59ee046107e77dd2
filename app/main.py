"""
Streamlit Frontend for MyMoney

The screens a user works with day to day: log in, see the balance,
record income and expenses, and look at a month's report.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything is deleted or reset
3. Clear error messages in simple language
4. The balance is always visible
"""

import asyncio
from datetime import date, datetime, time, timezone

import streamlit as st

from mymoney.config import get_settings, validate_all_settings
from mymoney.ledger import expense_by_category
from mymoney.models.transaction import TransactionKind
from mymoney.orchestrator import MyMoneyApp, create_app_components, create_blob_store, edit_patch
from mymoney.services.api import AuthenticationError, MyMoneyApiClient, NetworkError
from mymoney.services.export import ExportFormat
from mymoney.services.storage import InMemoryBlobStore
from mymoney.validation import InvalidInputError


# Page configuration
st.set_page_config(
    page_title="MyMoney",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_shared_services():
    """Settings, ledger storage and HTTP client (cached, shared by every browser session)."""
    settings = get_settings()
    return (
        settings,
        create_blob_store(settings),
        MyMoneyApiClient(settings.api, settings.app.platform),
    )


def get_components() -> MyMoneyApp:
    """Get or create this browser session's application components."""
    if "app" not in st.session_state:
        settings, blob_store, api = get_shared_services()
        st.session_state.app = create_app_components(
            settings,
            blob_store=blob_store,
            api=api,
            session_store=InMemoryBlobStore(),
        )
    return st.session_state.app


def money(app: MyMoneyApp, amount) -> str:
    return f"{app.settings.app.currency_symbol} {amount:,.2f}"


def show_result(ok: bool, message: str) -> None:
    if ok:
        st.success(message)
    else:
        st.warning(message)


def main():
    """Main application entry point."""
    app = get_components()

    if "initialized" not in st.session_state:
        run_async(app.init())
        st.session_state.initialized = True

    if app.user is None:
        render_login_page(app)
        return

    # Sidebar navigation
    st.sidebar.title("💰 MyMoney")
    st.sidebar.markdown(f"Logged in as **{app.user.name or app.user.email}**")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💸 Transactions", "📅 Reports", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Log out"):
        run_async(app.logout())
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(app)
    elif page == "💸 Transactions":
        render_transactions_page(app)
    elif page == "📅 Reports":
        render_reports_page(app)
    elif page == "⚙️ Settings":
        render_settings_page(app)


def render_login_page(app: MyMoneyApp):
    """Render login and registration."""
    st.title("💰 MyMoney")

    login_tab, register_tab = st.tabs(["Log in", "Create account"])

    with login_tab:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log in", type="primary")

        if submitted:
            try:
                run_async(app.login(email, password))
                st.rerun()
            except InvalidInputError:
                st.error("Please fill in your email and password.")
            except AuthenticationError as e:
                st.error(str(e) or "Email or password is incorrect.")
            except NetworkError:
                st.error("Could not reach the server. Please try again later.")

    with register_tab:
        with st.form("register"):
            name = st.text_input("Name")
            reg_email = st.text_input("Email", key="register_email")
            reg_password = st.text_input("Password", type="password", key="register_password")
            registered = st.form_submit_button("Create account")

        if registered:
            try:
                run_async(app.sessions.register(name, reg_email, reg_password))
                st.success("Account created. You can log in now.")
            except InvalidInputError:
                st.error("Please fill in all fields.")
            except AuthenticationError as e:
                st.error(str(e) or "The account could not be created.")
            except NetworkError:
                st.error("Could not reach the server. Please try again later.")


def render_dashboard_page(app: MyMoneyApp):
    """Balance, totals and charts for the whole ledger."""
    st.title("📊 Dashboard")

    totals = app.store.totals()

    col1, col2, col3 = st.columns(3)
    col1.metric("Balance", money(app, totals.balance))
    col2.metric("Income", money(app, totals.total_income))
    col3.metric("Expenses", money(app, totals.total_expense))

    if not totals.count:
        st.info("No transactions yet. Use the 'Transactions' page to add your first one.")
        return

    st.markdown("### Balance over time")
    st.line_chart([float(value) for value in totals.balance_series])

    categories = expense_by_category(app.store.transactions)
    if categories:
        st.markdown("### Expenses by category")
        st.bar_chart(
            {
                "category": [c.category for c in categories],
                "total": [float(c.total) for c in categories],
            },
            x="category",
            y="total",
        )


def render_transactions_page(app: MyMoneyApp):
    """Add, edit, reset and delete transactions."""
    st.title("💸 Transactions")
    flow = app.ledger_flow

    with st.expander("➕ New transaction", expanded=not app.store.transactions):
        with st.form("new_transaction", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                description = st.text_input("Description *")
                kind = st.radio(
                    "Kind *",
                    options=list(TransactionKind),
                    format_func=lambda k: k.label,
                    horizontal=True,
                )
            with col2:
                amount = st.text_input("Amount *", placeholder="10,50")
                occurred_on = st.date_input("Date", value=date.today())
            submitted = st.form_submit_button("Save", type="primary")

        if submitted:
            transaction, ok, message = run_async(flow.record({
                "description": description,
                "kind": kind,
                "amount": amount,
                "occurred_at": datetime.combine(occurred_on, time(12, 0), tzinfo=timezone.utc),
            }))
            if transaction is None:
                st.error(message)
            else:
                show_result(ok, message)

    st.markdown("---")

    if app.settings.api.sync_enabled and st.button("🔄 Reload from server"):
        _, ok, message = run_async(flow.refresh_from_remote())
        show_result(ok, message)

    transactions = app.store.transactions
    if not transactions:
        st.info("No transactions yet.")
        return

    for t in reversed(transactions):
        sign = "+" if t.kind is TransactionKind.INCOME else "-"
        with st.expander(f"{t.occurred_at:%d/%m/%Y} · {t.description} · {sign}{money(app, t.amount)}"):
            render_transaction_editor(app, t)


def render_transaction_editor(app: MyMoneyApp, t):
    flow = app.ledger_flow

    with st.form(f"edit_{t.id}"):
        description = st.text_input("Description", value=t.description)
        kind = st.radio(
            "Kind",
            options=list(TransactionKind),
            index=list(TransactionKind).index(t.kind),
            format_func=lambda k: k.label,
            horizontal=True,
        )
        amount = st.text_input("Amount", value=str(t.amount))
        occurred_on = st.date_input("Date", value=t.occurred_at.date())
        saved = st.form_submit_button("Save changes")

    if saved:
        patch = edit_patch(t, description, kind, amount, occurred_on)
        if not patch:
            st.info("Nothing to change.")
        else:
            updated, ok, message = run_async(flow.edit(t.id, patch))
            if updated is None:
                st.error(message)
            else:
                show_result(ok, message)
                st.rerun()

    pending = st.session_state.get("pending_action")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("↺ Reset", key=f"reset_{t.id}"):
            st.session_state.pending_action = ("reset", t.id)
            st.rerun()
    with col2:
        if st.button("🗑 Delete", key=f"delete_{t.id}"):
            st.session_state.pending_action = ("delete", t.id)
            st.rerun()

    if pending and pending[1] == t.id:
        action = pending[0]
        st.warning(f"Are you sure you want to {action} '{t.description}'?")
        yes, no = st.columns(2)
        if yes.button("Yes", key=f"confirm_{t.id}", type="primary"):
            st.session_state.pending_action = None
            if action == "delete":
                result, ok, message = run_async(flow.delete(t.id))
            else:
                result, ok, message = run_async(flow.reset(t.id))
            if result is None:
                st.error(message)
            else:
                show_result(ok, message)
            st.rerun()
        if no.button("Cancel", key=f"cancel_{t.id}"):
            st.session_state.pending_action = None
            st.rerun()


def render_reports_page(app: MyMoneyApp):
    """Monthly report with category breakdown and export."""
    st.title("📅 Reports")

    today = date.today()
    col1, col2 = st.columns(2)
    with col1:
        month = st.selectbox(
            "Month",
            options=list(range(1, 13)),
            index=today.month - 1,
            format_func=lambda m: MONTHS[m - 1],
        )
    with col2:
        year = st.number_input("Year", min_value=1900, max_value=9999, value=today.year, step=1)

    report = app.report_flow.build_period_report(month, int(year))

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(app, report.totals.total_income))
    col2.metric("Expenses", money(app, report.totals.total_expense))
    col3.metric("Current balance", money(app, app.store.totals().balance))

    if report.is_empty:
        st.info(f"No transactions in {MONTHS[month - 1]} {int(year)}.")
        return

    st.dataframe(
        [
            {
                "Date": f"{t.occurred_at:%d/%m/%Y}",
                "Description": t.description,
                "Kind": t.kind.label,
                "Amount": float(t.signed_amount),
            }
            for t in report.transactions
        ],
        use_container_width=True,
    )

    if report.categories:
        st.markdown("### Expenses by category")
        st.bar_chart(
            {
                "category": [c.category for c in report.categories],
                "total": [float(c.total) for c in report.categories],
            },
            x="category",
            y="total",
        )

    st.markdown("### Export")
    col1, col2 = st.columns(2)
    for column, export_format, label in (
        (col1, ExportFormat.CSV, "⬇️ Download CSV"),
        (col2, ExportFormat.DOCUMENT, "⬇️ Download report"),
    ):
        with column:
            content, message = app.report_flow.render(report, export_format)
            if content is None:
                st.info(message)
                continue
            exporter = app.report_flow.exporter(export_format)
            st.download_button(
                label,
                data=content,
                file_name=exporter.filename,
                mime=exporter.media_type,
                key=f"download_{export_format.value}",
            )


def render_settings_page(app: MyMoneyApp):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()
    sections = [
        ("Storage", "storage"),
        ("Server", "api"),
        ("Background task", "background"),
        ("Application", "app"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Details")
    st.markdown(f"**Platform:** {app.settings.app.platform.value}")
    st.markdown(f"**Server:** {app.settings.api.url_for(app.settings.app.platform)}")
    st.markdown(f"**Sync with server:** {'on' if app.settings.api.sync_enabled else 'off'}")

    if app.background_task is not None:
        if st.button("Run background check now"):
            result = run_async(app.background_task.run())
            st.info(f"Background check result: {result.value}")

    if app.audit_logger is not None:
        with st.expander("🕑 Recent activity"):
            for event in app.audit_logger.recent_events(limit=20):
                st.markdown(f"- `{event.timestamp:%d/%m/%Y %H:%M}` {event.description}")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "Variables use the `MYMONEY_STORAGE_`, `MYMONEY_API_` and "
        "`MYMONEY_BACKGROUND_` prefixes."
    )


if __name__ == "__main__":
    main()
