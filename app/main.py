"""
Streamlit Frontend for Ledgerbook

A small bookkeeping UI over the ledger services: accounts with their
derived balances, monthly transaction listings, and transfers with a
downloadable receipt.

DESIGN PRINCIPLES:
1. Balances are always shown as derived, never typed in
2. Every destructive action asks for confirmation
3. Errors from the services are shown as they are raised

There is no sign-in screen; the identity boundary is simulated by the
user id in the sidebar. With the in-memory backend a demo user (and a
second user to transfer to) is seeded on start.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from uuid import UUID

import streamlit as st
from pydantic import ValidationError

from ledgerbook.config import validate_all_settings
from ledgerbook.errors import ConfigurationError, LedgerError
from ledgerbook.log import configure_logging
from ledgerbook.models.ledger import (
    BankAccountCreate,
    BankAccountType,
    CategoryCreate,
    TransactionCreate,
    TransactionFilters,
    TransactionType,
    TransferRequest,
    User,
)
from ledgerbook.orchestrator import AppComponents, create_app_components
from ledgerbook.runner import run_async
from ledgerbook.services.storage import InMemoryLedgerStorage


# Page configuration
st.set_page_config(
    page_title="Ledgerbook",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.0em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


async def seed_demo_data(components: AppComponents) -> tuple[UUID, str]:
    """Create a demo user with one account and a few categories, plus a payee."""
    demo = await components.storage.create_user(User(name="Demo User", email="demo@example.com"))
    payee = await components.storage.create_user(User(name="Ana Souza", email="ana@example.com"))

    await components.accounts.create(demo.id, BankAccountCreate(
        name="Checking",
        initial_balance=Decimal("1000.00"),
        type=BankAccountType.CHECKING,
        color="#7950F2",
    ))
    payee_account = await components.accounts.create(payee.id, BankAccountCreate(
        name="Ana's wallet",
        initial_balance=Decimal("0.00"),
        type=BankAccountType.CASH,
        color="#12B886",
    ))

    for name, icon, kind in [
        ("Salary", "💼", TransactionType.INCOME),
        ("Groceries", "🛒", TransactionType.EXPENSE),
        ("Rent", "🏠", TransactionType.EXPENSE),
    ]:
        await components.categories.create(demo.id, CategoryCreate(name=name, icon=icon, type=kind))

    return demo.id, payee_account.bank_account_key


@st.cache_resource
def get_components() -> tuple[AppComponents, str, str]:
    """Get or create application components (cached)."""
    components = create_app_components()
    configure_logging()

    default_user, payee_key = "", ""
    if isinstance(components.storage, InMemoryLedgerStorage):
        demo_id, payee_key = run_async(seed_demo_data(components))
        default_user = str(demo_id)
    return components, default_user, payee_key


def show_error(e: Exception) -> None:
    if isinstance(e, ValidationError):
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"])
            st.error(f"{field}: {err['msg']}")
    else:
        st.error(str(e))


def main():
    """Main application entry point."""
    try:
        components, default_user, payee_key = get_components()
    except ConfigurationError as e:
        st.error(f"❌ {e}")
        st.info("Fix your `.env` file (see `.env.example`) and reload the page.")
        return

    st.sidebar.title("📒 Ledgerbook")
    st.sidebar.markdown("---")

    raw_user_id = st.sidebar.text_input("Signed in as (user id)", value=default_user)

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏦 Accounts", "📋 Transactions", "🔁 Transfer", "⚙️ Settings"],
        index=0,
    )

    if page == "⚙️ Settings":
        render_settings_page(components)
        return

    try:
        user_id = UUID(raw_user_id)
    except ValueError:
        st.warning("Enter a valid user id in the sidebar to continue.")
        return

    try:
        profile = run_async(components.users.get_me(user_id))
        st.sidebar.markdown(f"**{profile.name}**  \n{profile.email}")
    except LedgerError as e:
        st.sidebar.error(str(e))
        return

    if page == "🏦 Accounts":
        render_accounts_page(components, user_id)
    elif page == "📋 Transactions":
        render_transactions_page(components, user_id)
    elif page == "🔁 Transfer":
        render_transfer_page(components, user_id, payee_key)


def render_accounts_page(components: AppComponents, user_id: UUID):
    """Render the accounts list with balances."""
    st.title("🏦 Bank Accounts")

    accounts = run_async(components.accounts.list_by_user(user_id))
    total = sum((a.current_balance for a in accounts), Decimal("0"))
    st.markdown(f'<div class="big-number">Total: {total:.2f}</div>', unsafe_allow_html=True)

    for account in accounts:
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        with col1:
            st.markdown(
                f'<span style="color:{account.color}">●</span> **{account.name}** '
                f'({account.type.value.title()})',
                unsafe_allow_html=True,
            )
        with col2:
            st.markdown(f"Key: `{account.bank_account_key}`")
        with col3:
            st.markdown(f"Balance: **{account.current_balance:.2f}**")
        with col4:
            if st.button("🗑️", key=f"delete-account-{account.id}", help="Delete account and its transactions"):
                st.session_state["confirm_delete_account"] = str(account.id)

    pending = st.session_state.get("confirm_delete_account")
    if pending:
        st.warning("Deleting an account also deletes all of its transactions.")
        if st.button("Confirm delete", type="primary"):
            try:
                run_async(components.accounts.remove(user_id, UUID(pending)))
                st.success("Account deleted.")
            except LedgerError as e:
                show_error(e)
            st.session_state.pop("confirm_delete_account", None)
            st.rerun()

    st.markdown("---")
    st.markdown("### New account")
    with st.form("new-account"):
        name = st.text_input("Name")
        initial_balance = st.number_input("Initial balance", value=0.0, step=0.01, format="%.2f")
        account_type = st.selectbox(
            "Type",
            options=list(BankAccountType),
            format_func=lambda t: t.value.title(),
        )
        color = st.color_picker("Colour", value="#7950F2")
        if st.form_submit_button("Create account", type="primary"):
            try:
                payload = BankAccountCreate(
                    name=name,
                    initial_balance=Decimal(str(initial_balance)).quantize(Decimal("0.01")),
                    type=account_type,
                    color=color,
                )
                created = run_async(components.accounts.create(user_id, payload))
                st.success(f"Created {created.name} with key {created.bank_account_key}.")
                st.rerun()
            except (ValidationError, LedgerError) as e:
                show_error(e)


def render_transactions_page(components: AppComponents, user_id: UUID):
    """Render the monthly transaction listing."""
    st.title("📋 Transactions")

    accounts = run_async(components.accounts.list_by_user(user_id))
    categories = run_async(components.categories.list_by_user(user_id))
    account_names = {a.id: a.name for a in accounts}

    today = date.today()
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        month = st.selectbox("Month", options=list(range(1, 13)), index=today.month - 1)
    with col2:
        year = st.number_input("Year", min_value=1970, max_value=9998, value=today.year, step=1)
    with col3:
        account_filter = st.selectbox(
            "Account",
            options=[None] + [a.id for a in accounts],
            format_func=lambda x: "All accounts" if x is None else account_names[x],
        )
    with col4:
        type_filter = st.selectbox(
            "Type",
            options=[None] + list(TransactionType),
            format_func=lambda x: "All types" if x is None else x.value.title(),
        )

    filters = TransactionFilters(
        month=month,
        year=int(year),
        bank_account_id=account_filter,
        type=type_filter,
    )
    transactions = run_async(components.transactions.list_by_period(user_id, filters))

    if not transactions:
        st.info("No transactions in this period.")

    for tx in transactions:
        col1, col2, col3, col4 = st.columns([4, 2, 2, 1])
        with col1:
            icon = tx.category.icon if tx.category else "🔁"
            st.markdown(f"{icon} **{tx.name}**  \n{account_names.get(tx.bank_account_id, '')}")
        with col2:
            sign = "+" if tx.type == TransactionType.INCOME else "-"
            st.markdown(f"{sign}{tx.value:.2f}")
        with col3:
            st.markdown(tx.date.strftime("%d/%m/%Y"))
            if tx.receipt_key and st.button("Receipt", key=f"receipt-{tx.id}"):
                try:
                    link = run_async(components.receipts.get_receipt_link(user_id, tx.receipt_key))
                    st.markdown(f"[Open receipt]({link.url})")
                except LedgerError as e:
                    show_error(e)
        with col4:
            if st.button("🗑️", key=f"delete-tx-{tx.id}"):
                try:
                    run_async(components.transactions.remove(user_id, tx.id))
                    st.rerun()
                except LedgerError as e:
                    show_error(e)

    st.markdown("---")
    st.markdown("### New transaction")
    if not accounts or not categories:
        st.info("Create an account and a category first.")
        render_category_form(components, user_id)
        return

    with st.form("new-transaction"):
        name = st.text_input("Description")
        tx_type = st.selectbox("Type", options=list(TransactionType), format_func=lambda t: t.value.title())
        account_id = st.selectbox("Account", options=[a.id for a in accounts], format_func=account_names.get)
        category_id = st.selectbox(
            "Category",
            options=[c.id for c in categories],
            format_func=lambda cid: next(f"{c.icon} {c.name}" for c in categories if c.id == cid),
        )
        value = st.number_input("Value", min_value=0.01, value=1.00, step=0.01, format="%.2f")
        when = st.date_input("Date", value=today)
        if st.form_submit_button("Save transaction", type="primary"):
            try:
                payload = TransactionCreate(
                    bank_account_id=account_id,
                    category_id=category_id,
                    name=name,
                    value=Decimal(str(value)).quantize(Decimal("0.01")),
                    date=datetime.combine(when, time(12, 0), tzinfo=timezone.utc),
                    type=tx_type,
                )
                run_async(components.transactions.create(user_id, payload))
                st.success("Transaction saved.")
                st.rerun()
            except (ValidationError, LedgerError) as e:
                show_error(e)

    render_category_form(components, user_id)


def render_category_form(components: AppComponents, user_id: UUID):
    with st.expander("➕ New category"):
        with st.form("new-category"):
            name = st.text_input("Category name")
            icon = st.text_input("Icon", value="🏷️")
            kind = st.selectbox("Applies to", options=list(TransactionType), format_func=lambda t: t.value.title())
            if st.form_submit_button("Create category"):
                try:
                    run_async(components.categories.create(
                        user_id, CategoryCreate(name=name, icon=icon, type=kind)
                    ))
                    st.success("Category created.")
                    st.rerun()
                except (ValidationError, LedgerError) as e:
                    show_error(e)


def render_transfer_page(components: AppComponents, user_id: UUID, payee_key: str = ""):
    """Render the transfer form and its result."""
    st.title("🔁 Transfer")

    accounts = run_async(components.accounts.list_by_user(user_id))
    if not accounts:
        st.info("Create an account first.")
        return

    key = st.text_input(
        "Destination account key",
        value=payee_key,
        help="Ask the payee for the key shown on their Accounts page",
    )
    destination = None
    if key:
        try:
            destination = run_async(components.accounts.find_by_key(key))
            st.info(
                f"Paying **{destination.account.name}** owned by "
                f"{destination.owner.name} ({destination.owner.email})"
            )
        except LedgerError as e:
            show_error(e)

    with st.form("transfer"):
        source_id = st.selectbox(
            "From",
            options=[a.id for a in accounts],
            format_func=lambda aid: next(f"{a.name} ({a.current_balance:.2f})" for a in accounts if a.id == aid),
        )
        name = st.text_input("Description")
        amount = st.number_input("Amount", min_value=0.01, value=1.00, step=0.01, format="%.2f")
        when = st.date_input("Date", value=date.today())
        submitted = st.form_submit_button("Send", type="primary", disabled=destination is None)

    if submitted and destination is not None:
        try:
            request = TransferRequest(
                from_bank_account_id=source_id,
                to_bank_account_id=destination.account.id,
                name=name,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                date=datetime.combine(when, time(12, 0), tzinfo=timezone.utc),
            )
            with st.spinner("Booking transfer..."):
                result = run_async(components.transfers.transfer(user_id, request))
            st.success(f"{result.message}. Payment id: {result.payment_id}")

            link = run_async(components.receipts.get_receipt_link(user_id, result.receipt_key))
            st.markdown(f"[📄 Download receipt]({link.url}) (link expires at {link.expires_at:%H:%M:%S} UTC)")
        except (ValidationError, LedgerError) as e:
            show_error(e)


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Active backends")
    st.markdown(f"- Ledger storage: `{type(components.storage).__name__}`")
    st.markdown(f"- Receipt storage: `{type(components.receipt_storage).__name__}`")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Cloudinary (Receipts)", "cloudinary"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Receipts", "receipts"),
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
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
