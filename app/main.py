"""
Streamlit Frontend for houseshare

The screens roommates use to track shared expenses: sign in, set up a
house, add charges, record payments, manage roommates and see who owes
what.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every write is an explicit button press
3. Backend errors are shown as they are, in a red box
4. Optional side writes (providers) show as warnings, not failures
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from houseshare.config import validate_all_settings
from houseshare.flows import HouseSession, RoommateError
from houseshare.ledger import SplitError
from houseshare.models import (
    BillingType,
    CategoryForm,
    CategoryType,
    ChargeForm,
    HouseForm,
    MemberRole,
    PaymentForm,
    Recurrence,
    SplitMethod,
    UserAccount,
    member_label,
)
from houseshare.orchestrator import AppComponents, create_app_components
from houseshare.services import AuthError, InMemoryHouseStorage, StorageError
from houseshare.validation import FormValidationError


# Page configuration
st.set_page_config(
    page_title="houseshare",
    page_icon="🏠",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

USER_ERRORS = (AuthError, FormValidationError, RoommateError, SplitError, StorageError)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_offline_data() -> tuple[InMemoryHouseStorage, dict]:
    """In-memory tables and accounts shared by every browser session offline."""
    return InMemoryHouseStorage(), {}


def get_components() -> AppComponents:
    """
    Get or create the components of this browser session.

    Kept in session state, not the resource cache: the Supabase client
    holds the signed-in user's auth session.
    """
    components = st.session_state.get("components")
    if components is None:
        storage, accounts = get_offline_data()
        try:
            components = create_app_components(
                use_storage=True,
                offline_storage=storage,
                offline_accounts=accounts,
            )
        except Exception as e:
            st.error(f"Failed to initialize: {e}")
            components = create_app_components(
                use_storage=False,
                offline_storage=storage,
                offline_accounts=accounts,
            )
        st.session_state.components = components
    return components


def money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def get_session(components: AppComponents, user: UserAccount) -> HouseSession:
    """The house session of the signed-in user, loaded on first use."""
    session = st.session_state.get("house_session")
    if session is None or session.user is None or session.user.id != user.id:
        session = components.session_for(user)
        run_async(session.refresh_houses())
        st.session_state.house_session = session
    return session


def main():
    """Main application entry point."""
    components = get_components()

    if not components.is_online:
        st.sidebar.warning("Offline mode: data is kept in memory only")

    user = st.session_state.get("user")
    if user is None:
        render_auth_page(components)
        return

    session = get_session(components, user)
    if not session.has_house:
        render_onboarding_page(components, user)
        return

    # Sidebar navigation
    st.sidebar.title("🏠 houseshare")
    if len(session.houses) > 1:
        house_names = {h.id: h.name for h in session.houses}
        selected = st.sidebar.selectbox(
            "House",
            options=list(house_names),
            index=list(house_names).index(session.house.id),
            format_func=house_names.get,
        )
        if selected != session.house.id:
            run_async(session.select_house(selected))
            st.rerun()
    else:
        st.sidebar.markdown(f"**{session.house.name}**")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Charges", "💸 Payments", "👥 Roommates", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("Sign out"):
        try:
            run_async(components.accounts.sign_out())
        except AuthError as e:
            st.sidebar.error(str(e))
        st.session_state.clear()
        st.rerun()

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components, user, session)
    elif page == "🧾 Charges":
        render_charges_page(components, user, session)
    elif page == "💸 Payments":
        render_payments_page(components, user, session)
    elif page == "👥 Roommates":
        render_roommates_page(components, user, session)
    elif page == "⚙️ Settings":
        render_settings_page(components, user, session)


def render_auth_page(components: AppComponents):
    """Sign in and sign up."""
    st.title("🏠 houseshare")
    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create an account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            try:
                auth_session = run_async(components.accounts.sign_in(email, password))
                st.session_state.user = auth_session.user
                st.rerun()
            except AuthError as e:
                st.error(str(e))

    with sign_up_tab:
        with st.form("sign_up"):
            col1, col2 = st.columns(2)
            with col1:
                first_name = st.text_input("First Name", placeholder="John")
            with col2:
                last_name = st.text_input("Last Name", placeholder="Doe")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input(
                "Password",
                type="password",
                key="sign_up_password",
                help=f"At least {components.settings.min_password_length} characters",
            )
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            try:
                st.session_state.user = run_async(
                    components.accounts.sign_up(email, password, first_name, last_name)
                )
                st.rerun()
            except USER_ERRORS as e:
                st.error(str(e))


def render_onboarding_page(components: AppComponents, user: UserAccount):
    """Create the first house: details, utilities, roommates."""
    st.title("Create your first house")
    flow = components.onboarding

    if "utilities" not in st.session_state:
        st.session_state.utilities = flow.default_utilities()
    defaults = flow.default_house_form()
    timezones = components.settings.timezones_list

    st.subheader("1. House details")
    name = st.text_input("House Nickname *", placeholder="1234 Berkeley Ave")
    address = st.text_input("Address")
    timezone = st.selectbox(
        "Timezone",
        options=timezones,
        index=timezones.index(defaults.timezone) if defaults.timezone in timezones else 0,
    )

    st.subheader("2. Utilities")
    utilities = []
    for utility in st.session_state.utilities:
        selected = st.checkbox(utility.name, value=utility.selected, key=f"util_{utility.key}")
        updates = {"selected": selected}
        if selected:
            with st.expander(f"{utility.name} details", expanded=True):
                col1, col2 = st.columns(2)
                with col1:
                    updates["billing_type"] = st.selectbox(
                        "Billing",
                        options=list(BillingType),
                        format_func=lambda b: b.value.title(),
                        key=f"billing_{utility.key}",
                    )
                    updates["provider"] = st.text_input("Provider", key=f"provider_{utility.key}")
                with col2:
                    updates["is_recurring"] = st.checkbox(
                        "Recurring", value=True, key=f"recurring_{utility.key}"
                    )
                    updates["recurrence"] = st.selectbox(
                        "Repeats",
                        options=list(Recurrence),
                        index=1,
                        format_func=lambda r: r.value.title(),
                        key=f"recurrence_{utility.key}",
                    )
                    updates["is_free"] = st.checkbox("Free", key=f"free_{utility.key}")
        utilities.append(utility.model_copy(update=updates))

    st.subheader("3. Roommates")
    emails_text = st.text_area("Roommate emails (one per line)")
    visibility = st.checkbox("Roommates can see each other's balances", value=True)

    if st.button("✅ Create house", type="primary"):
        try:
            result = run_async(flow.complete(
                user=user,
                house_form=HouseForm(name=name, address=address, timezone=timezone),
                utilities=utilities,
                roommate_emails=emails_text.splitlines(),
                can_see_others_balances=visibility,
            ))
        except FormValidationError as e:
            for issue in e.result.issues:
                if issue.severity == "error":
                    st.error(issue.message)
            return
        except StorageError as e:
            st.error(str(e))
            return

        for warning in result.warnings:
            st.warning(warning)
        st.session_state.pop("house_session", None)
        st.session_state.pop("utilities", None)
        st.success(f"🎉 {result.house.name} is ready!")
        st.rerun()


def render_dashboard_page(components: AppComponents, user: UserAccount, session: HouseSession):
    """Balances, upcoming charges and recent payments."""
    st.title(f"📊 {session.house.name}")
    data = run_async(components.dashboard.load(user, session.house, session.members))

    for name in data.errors:
        st.warning(f"Could not load {name}")

    balance = data.balance
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Your share of charges", money(balance.total_owed))
    col2.metric("You paid", money(balance.total_paid))
    col3.metric("Paid to you", money(balance.total_owed_to))
    if balance.is_settled:
        col4.metric("Balance", "Settled")
    elif balance.is_owed_to:
        col4.metric("You are owed", money(-balance.net_balance))
    else:
        col4.metric("You owe", money(balance.net_balance))

    if balance.member_balances:
        st.subheader("Roommate balances")
        for member_balance in balance.member_balances:
            label = member_label(member_balance.user_id)
            if member_balance.is_owed_to:
                st.markdown(f"- {label} is owed {money(-member_balance.net_balance)}")
            else:
                st.markdown(f"- {label} owes {money(member_balance.net_balance)}")

    st.markdown("---")
    st.subheader("Charges")
    if not data.charges:
        st.info("No charges yet. Add one from the Charges page.")
    for charge in data.charges:
        share = charge.share_for(user.id)
        category = charge.category.name if charge.category else "Uncategorized"
        st.markdown(
            f"**{charge.description}** · {category} · due {charge.due_date:%b %d, %Y} · "
            f"{money(charge.total_amount)}"
            + (f" (your share {money(share.amount)})" if share else "")
        )

    st.subheader("Payments")
    if not data.payments:
        st.info("No payments recorded yet.")
    for payment in data.payments:
        category = payment.category.name if payment.category else "General"
        st.markdown(f"- {payment.date:%b %d, %Y} · {category} · {money(payment.amount)}")


def render_charges_page(components: AppComponents, user: UserAccount, session: HouseSession):
    """Add charges and manage categories."""
    st.title("🧾 Charges")
    house = session.house
    categories = run_async(components.categories.list_categories(house))

    if not categories:
        st.info("Add a category first.")
    else:
        members = session.members
        names = {m.user_id: ("You" if m.user_id == user.id else member_label(m.user_id)) for m in members}

        with st.form("add_charge"):
            category_id = st.selectbox(
                "Category *",
                options=[c.id for c in categories],
                format_func={c.id: c.name for c in categories}.get,
            )
            description = st.text_input("Description *")
            total = st.number_input("Total amount *", min_value=0.0, step=0.01, format="%.2f")
            due = st.date_input("Due date *", value=components.charges.default_due_date())
            col1, col2 = st.columns(2)
            with col1:
                period_start = st.date_input("Bill period start", value=None)
            with col2:
                period_end = st.date_input("Bill period end", value=None)
            split_method = st.selectbox(
                "Split",
                options=list(SplitMethod),
                format_func=lambda s: s.value.replace("_", " ").title(),
            )
            custom = {}
            if split_method in (SplitMethod.CUSTOM_FIXED, SplitMethod.CUSTOM_PERCENTAGE):
                for member in members:
                    custom[member.user_id] = st.number_input(
                        f"{names[member.user_id]} ({'%' if split_method == SplitMethod.CUSTOM_PERCENTAGE else '$'})",
                        min_value=0.0,
                        step=0.01,
                        key=f"split_{member.user_id}",
                    )
            assignee = None
            if split_method == SplitMethod.ONE_PERSON:
                assignee = st.selectbox("Who pays", options=list(names), format_func=names.get)
            use_rent = st.checkbox("Use saved rent configuration")
            submitted = st.form_submit_button("Add charge", type="primary")

        if submitted:
            form = ChargeForm(
                category_id=category_id,
                description=description,
                total_amount=Decimal(str(total)) if total else None,
                due_date=due,
                bill_period_start=period_start,
                bill_period_end=period_end,
                split_method=split_method,
                custom_amounts=(
                    {k: Decimal(str(v)) for k, v in custom.items()}
                    if split_method == SplitMethod.CUSTOM_FIXED else {}
                ),
                percentages=(
                    {k: Decimal(str(v)) for k, v in custom.items()}
                    if split_method == SplitMethod.CUSTOM_PERCENTAGE else {}
                ),
                assignee_id=assignee,
                use_rent_configuration=use_rent,
            )
            try:
                result = run_async(components.charges.add_charge(user, house, form))
                st.success(f"✅ Charge added and split {len(result.shares)} ways")
            except FormValidationError as e:
                st.error(components.validator.get_user_friendly_summary(e.result))
            except USER_ERRORS as e:
                st.error(str(e))

    st.markdown("---")
    st.subheader("Categories")
    for category in categories:
        with st.expander(category.name):
            try:
                provider = run_async(components.categories.get_provider(category))
            except StorageError as e:
                st.warning(f"Provider could not be loaded: {e}")
                provider = None
            with st.form(f"edit_{category.id}"):
                name = st.text_input("Name", value=category.name)
                provider_label = st.text_input("Provider", value=provider.label if provider else "")
                is_recurring = st.checkbox("Recurring", value=category.is_recurring)
                saved = st.form_submit_button("Save")
            if saved:
                form = CategoryForm(
                    name=name,
                    type=category.type,
                    billing_type=category.billing_type,
                    is_free=category.is_free,
                    is_recurring=is_recurring,
                    recurrence=category.recurrence or Recurrence.MONTHLY,
                    provider_label=provider_label,
                )
                try:
                    result = run_async(components.categories.edit_category(category, form))
                    if result.warning:
                        st.warning(result.warning)
                    st.rerun()
                except USER_ERRORS as e:
                    st.error(str(e))
            if st.button("🗑️ Delete", key=f"delete_{category.id}"):
                try:
                    run_async(components.categories.delete_category(category))
                    st.rerun()
                except StorageError as e:
                    st.error(str(e))

    with st.form("add_category"):
        st.markdown("**Add category**")
        name = st.text_input("Category name *")
        category_type = st.selectbox(
            "Type", options=list(CategoryType), index=1, format_func=lambda t: t.value.title()
        )
        provider_label = st.text_input("Provider")
        submitted = st.form_submit_button("Add category")
    if submitted:
        try:
            result = run_async(components.categories.add_category(
                house, CategoryForm(name=name, type=category_type, provider_label=provider_label)
            ))
            if result.warning:
                st.warning(result.warning)
            else:
                st.rerun()
        except USER_ERRORS as e:
            st.error(str(e))


def render_payments_page(components: AppComponents, user: UserAccount, session: HouseSession):
    """Record a payment."""
    st.title("💸 Record a payment")
    house = session.house

    try:
        parties = run_async(components.payments.list_members_for_payment(user, house))
        categories = run_async(components.categories.list_categories(house))
    except StorageError as e:
        st.error(str(e))
        return

    names = {p.id: p.name for p in parties}
    with st.form("record_payment"):
        payer = st.selectbox(
            "Payer *",
            options=list(names),
            index=list(names).index(user.id) if user.id in names else 0,
            format_func=names.get,
        )
        recipient = st.selectbox(
            "Recipient",
            options=[None] + list(names),
            format_func=lambda i: "Outside provider" if i is None else names[i],
        )
        category_id = st.selectbox(
            "Category",
            options=[None] + [c.id for c in categories],
            format_func=lambda i: "None" if i is None else {c.id: c.name for c in categories}[i],
        )
        amount = st.number_input("Amount *", min_value=0.0, step=0.01, format="%.2f")
        paid_on = st.date_input("Date *", value=date.today())
        method = st.text_input("Payment method")
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Record payment", type="primary")

    if submitted:
        form = PaymentForm(
            payer_id=payer,
            recipient_id=recipient,
            category_id=category_id,
            amount=Decimal(str(amount)) if amount else None,
            payment_date=paid_on,
            payment_method_label=method,
            notes=notes,
        )
        try:
            run_async(components.payments.record_payment(user, house, form))
            st.success("✅ Payment recorded")
        except FormValidationError as e:
            st.error(components.validator.get_user_friendly_summary(e.result))
        except StorageError as e:
            st.error(str(e))


def render_roommates_page(components: AppComponents, user: UserAccount, session: HouseSession):
    """Members, roles and invites."""
    st.title("👥 Roommates")
    flow = components.roommates
    is_admin = session.is_admin()

    for roommate in flow.list_roommates(session):
        col1, col2, col3 = st.columns([3, 2, 1])
        col1.markdown(f"**{roommate.name}** · joined {roommate.joined_at:%b %d, %Y}")
        if is_admin and not roommate.is_current_user:
            role = col2.selectbox(
                "Role",
                options=list(MemberRole),
                index=list(MemberRole).index(roommate.role),
                format_func=lambda r: r.value.title(),
                key=f"role_{roommate.member_id}",
            )
            if role != roommate.role:
                try:
                    run_async(flow.change_role(session, roommate.member_id, role))
                    st.rerun()
                except USER_ERRORS as e:
                    st.error(str(e))
            if col3.button("Remove", key=f"remove_{roommate.member_id}"):
                try:
                    run_async(flow.remove_roommate(session, roommate.member_id))
                    st.rerun()
                except USER_ERRORS as e:
                    st.error(str(e))
        else:
            col2.markdown(roommate.role.value.title())

    st.markdown("---")
    st.subheader("Invites")
    for invite in run_async(flow.list_pending_invites(session.house)):
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"{invite.email} · expires {invite.expires_at:%b %d, %Y}")
        if is_admin and col2.button("Cancel", key=f"cancel_{invite.id}"):
            try:
                run_async(flow.cancel_invite(session.house, invite.id))
                st.rerun()
            except StorageError as e:
                st.error(str(e))

    with st.form("invite"):
        email = st.text_input("Email address")
        submitted = st.form_submit_button("Send invite", type="primary")
    if submitted:
        try:
            run_async(flow.send_invite(session.house, email))
            st.rerun()
        except USER_ERRORS as e:
            st.error(str(e))


def render_settings_page(components: AppComponents, user: UserAccount, session: HouseSession):
    """Profile, house details and connection status."""
    st.title("⚙️ Settings")

    st.markdown("### Profile")
    first, last = user.profile_names()
    with st.form("profile"):
        first_name = st.text_input("First name", value=first)
        last_name = st.text_input("Last name", value=last)
        saved = st.form_submit_button("Save profile")
    if saved:
        try:
            st.session_state.user = run_async(
                components.accounts.update_profile(first_name, last_name)
            )
            st.success("✅ Profile saved")
        except AuthError as e:
            st.error(str(e))

    st.markdown("### House")
    house = session.house
    timezones = components.settings.timezones_list
    with st.form("house"):
        name = st.text_input("House nickname", value=house.name)
        address = st.text_input("Address", value=house.address or "")
        timezone = st.selectbox(
            "Timezone",
            options=timezones,
            index=timezones.index(house.timezone) if house.timezone in timezones else 0,
        )
        saved = st.form_submit_button("Save house", disabled=not session.is_admin())
    if saved:
        form = HouseForm(name=name, address=address, timezone=timezone)
        result = components.validator.validate_house(form)
        if not result.is_valid:
            st.error(result.first_error)
        else:
            try:
                run_async(session.update_house({
                    "name": form.name,
                    "address": form.address or None,
                    "timezone": form.timezone,
                }))
                st.success("✅ House saved")
            except StorageError as e:
                st.error(str(e))

    st.markdown("### Connection Status")
    status = validate_all_settings()
    for name, key in [("Supabase (Backend)", "supabase"), ("App settings", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your Supabase "
        "URL and key. See `.env.example` for the required variables, and run "
        "`python -m houseshare.diagnostics` to check the connection."
    )


if __name__ == "__main__":
    main()
