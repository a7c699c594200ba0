"""
app.py
Streamlit IPTV subscription manager (single operator).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging

import streamlit as st

import auth
import db
import importer
import renewals
import utils
from config import configure_logging, get_settings
from models import Client, Status
from storage import StorageError, build_stores, create_all, ensure_default_plans

st.set_page_config(page_title="IPTV Manager", layout="wide")

logger = logging.getLogger(__name__)


def init_once():
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    auth.ensure_operator()
    if "stores" not in st.session_state:
        st.session_state.stores = build_stores(settings)


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "username" not in st.session_state:
        st.session_state.username = None


def logout():
    st.session_state.logged_in = False
    st.session_state.username = None
    st.success("Logged out.")


def login_screen():
    st.title("🔐 IPTV Manager Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value=auth.DEFAULT_USERNAME)
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(username.strip(), password):
                st.session_state.logged_in = True
                st.session_state.username = username.strip()
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        st.info(
            "First run creates a default operator:\n\n"
            f"- username: **{auth.DEFAULT_USERNAME}**\n"
            f"- password: **{auth.DEFAULT_PASSWORD}**\n\n"
            "You will be forced to change it on first login."
        )


def password_form(key: str):
    new1 = st.text_input("New password", type="password", key=f"{key}_1")
    new2 = st.text_input("Confirm new password", type="password", key=f"{key}_2")
    if st.button("Update password", type="primary", key=f"{key}_btn"):
        errors = auth.validate_new_password(new1, new2)
        for e in errors:
            st.error(e)
        if not errors:
            auth.change_password(st.session_state.username, new1)
            st.success("Password updated.")
            return True
    return False


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")
    st.warning("You must change the default password before using the app.")
    if password_form("force"):
        st.rerun()


# ---------- Data access helpers ----------

def client_store():
    return st.session_state.stores[0]


def plan_store():
    return st.session_state.stores[1]


def load_clients() -> list[Client]:
    try:
        return client_store().get_all()
    except StorageError as e:
        st.error(f"Failed to load clients: {e}")
        return []


def load_plans():
    try:
        return ensure_default_plans(plan_store())
    except StorageError as e:
        st.error(f"Failed to load plans: {e}")
        return []


def persist(action, success: str) -> bool:
    """Run a store mutation; report failures instead of applying them."""
    try:
        action()
    except StorageError as e:
        logger.error("Store mutation failed: %s", e)
        st.error(f"Could not save changes: {e}")
        return False
    st.success(success)
    return True


def show_due_alerts(clients: list[Client]):
    settings = get_settings()
    for alert in renewals.due_alerts(clients, utils.today(), window=settings.ALERT_WINDOW_DAYS):
        col1, col2 = st.columns([4, 1])
        col1.warning(alert.message, icon="⏰")
        if col2.button("Open", key=alert.id):
            st.session_state.page = "Clients"
            st.session_state.selected_client_id = alert.client_id
            st.rerun()


def dashboard_page():
    st.header("📺 Dashboard")

    clients = load_clients()
    show_due_alerts(clients)

    stats = utils.dashboard_stats(clients)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total clients", stats["total"])
    c2.metric("Active clients", stats["active"])
    c3.metric("Inactive clients", stats["inactive"])
    c4.metric("Monthly revenue", f"R$ {stats['monthly_revenue']:.2f}")

    st.divider()

    window = get_settings().UPCOMING_WINDOW_DAYS
    st.subheader(f"Upcoming renewals (next {window} days)")
    upcoming = renewals.upcoming_renewals(clients, utils.today(), window=window)
    if upcoming:
        st.dataframe(
            [
                {
                    "name": r.client.name,
                    "plan": r.client.plan,
                    "due day": r.client.due_date,
                    "renewal": renewals.renewal_label(r.days_until_due),
                }
                for r in upcoming
            ],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption(f"No renewals in the next {window} days.")


def client_form(plans, existing: Client | None = None):
    if existing:
        st.subheader(f"✏️ Edit Client ({existing.name})")
    else:
        st.subheader("➕ Add Client")

    plan_prices = {p.name: p.price for p in plans}
    plan_options = list(plan_prices)
    # Keep an archived plan selectable for clients still on it
    if existing and existing.plan not in plan_prices:
        plan_options.append(existing.plan)
    if not plan_options:
        st.info("Create a plan first.")
        return

    key = existing.id if existing else "new"
    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Name", value=(existing.name if existing else ""), key=f"name_{key}")
        contact = st.text_input("WhatsApp (digits, with country code)", value=(existing.contact if existing else ""), key=f"contact_{key}")
    with col2:
        plan = st.selectbox(
            "Plan",
            options=plan_options,
            index=(plan_options.index(existing.plan) if existing else 0),
            key=f"plan_{key}",
        )
        default_value = existing.monthly_value if existing and plan == existing.plan else plan_prices.get(plan, 0.0)
        monthly_value = st.number_input("Monthly value", min_value=0.0, value=max(0.0, float(default_value)), step=1.0, key=f"value_{key}_{plan}")
        st.caption(f"Annual value: R$ {monthly_value * 12:.2f}")
    with col3:
        due_date = st.number_input("Due day", min_value=1, max_value=31, step=1, value=(int(existing.due_date) if existing else 1), key=f"due_{key}")
        statuses = [s.value for s in Status]
        status = st.selectbox(
            "Status",
            options=statuses,
            index=(statuses.index(existing.status.value) if existing else 0),
            key=f"status_{key}",
        )

    errors = utils.validate_client_inputs(name, plan, monthly_value, int(due_date))
    for e in errors:
        st.error(e)

    if st.button("Save client", type="primary", disabled=bool(errors), key=f"save_{key}"):
        fields = dict(
            name=name.strip(),
            contact=contact.strip(),
            plan=plan,
            monthly_value=float(monthly_value),
            due_date=int(due_date),
            status=Status(status),
        )
        if existing:
            ok = persist(lambda: client_store().update(existing.id, **fields), "Client updated.")
        else:
            ok = persist(lambda: client_store().create(Client(id="", **fields)), "Client added.")
        if ok:
            st.session_state.edit_client_id = None
            st.rerun()


def client_actions(client: Client):
    st.subheader(client.name)
    st.write(
        f"Plan: **{client.plan}** | Monthly: **R$ {client.monthly_value:.2f}** | "
        f"Annual: **R$ {client.monthly_value * 12:.2f}** | Due day: **{client.due_date}** | "
        f"Status: **{client.status.value}**"
    )

    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("Edit"):
            st.session_state.edit_client_id = client.id
            st.rerun()
        toggled = Status.INACTIVE if client.is_active else Status.ACTIVE
        if st.button(f"Mark as {toggled.value}"):
            if persist(lambda: client_store().update(client.id, status=toggled), "Status updated."):
                st.rerun()
    with c2:
        delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
        if st.button("Delete", type="secondary", disabled=not delete_confirm):
            if persist(lambda: client_store().delete(client.id), "Client deleted."):
                st.session_state.selected_client_id = None
                st.rerun()
    with c3:
        if client.contact:
            message = st.text_area("Reminder message", value=utils.reminder_message(get_settings()), height=180)
            st.link_button("Send via WhatsApp", utils.whatsapp_url(client.contact, message))
        else:
            st.caption("No contact registered for WhatsApp reminders.")


def clients_page():
    st.header("👥 Clients")

    clients = load_clients()
    plans = load_plans()

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search by name")
        status_choice = st.selectbox("Status", ["All"] + [s.value for s in Status])
        plan_names = sorted({p.name for p in plans} | {c.plan for c in clients})
        plan_choice = st.selectbox("Plan", ["All"] + plan_names)

    filtered = utils.filter_clients(
        clients,
        search=search,
        status=None if status_choice == "All" else Status(status_choice),
        plan=None if plan_choice == "All" else plan_choice,
    )
    st.dataframe(utils.clients_to_frame(filtered), use_container_width=True, hide_index=True)

    archived = utils.archived_plans(clients, (p.name for p in plans))
    if archived:
        st.caption(f"Archived plans still in use: {', '.join(archived)}")

    st.divider()

    by_id = {c.id: c for c in clients}
    options = ["(none)"] + [c.id for c in filtered]
    selected = st.session_state.get("selected_client_id")
    selected_id = st.selectbox(
        "Select client",
        options=options,
        index=(options.index(selected) if selected in options else 0),
        format_func=lambda cid: "(none)" if cid == "(none)" else by_id[cid].name,
    )
    st.session_state.selected_client_id = None if selected_id == "(none)" else selected_id
    if selected_id != "(none)":
        client_actions(by_id[selected_id])

    st.divider()

    editing = by_id.get(st.session_state.get("edit_client_id"))
    if editing:
        client_form(plans, existing=editing)
        if st.button("Cancel edit"):
            st.session_state.edit_client_id = None
            st.rerun()
    else:
        client_form(plans)


def plans_page():
    st.header("🗂️ Plans")

    plans = load_plans()
    st.dataframe([{"name": p.name, "price": p.price} for p in plans], use_container_width=True, hide_index=True)

    st.divider()

    by_id = {p.id: p for p in plans}
    selected_id = st.selectbox(
        "Select plan",
        options=["(new plan)"] + list(by_id),
        format_func=lambda pid: pid if pid == "(new plan)" else by_id[pid].name,
    )
    existing = by_id.get(selected_id)

    name = st.text_input("Plan name", value=(existing.name if existing else ""), key=f"plan_name_{selected_id}")
    price = st.text_input("Price", value=(str(existing.price) if existing else ""), key=f"plan_price_{selected_id}")
    errors = utils.validate_plan_inputs(name, price)

    if st.button("Save plan", type="primary", disabled=bool(errors)):
        if existing:
            ok = persist(lambda: plan_store().update(existing.id, name=name.strip(), price=float(price)), "Plan updated.")
        else:
            ok = persist(lambda: plan_store().create(name.strip(), float(price)), "Plan added.")
        if ok:
            st.rerun()
    for e in errors:
        st.caption(e)

    if existing:
        st.caption("Clients on this plan keep it after deletion; it just stops being offered for new sign-ups.")
        confirm = st.checkbox("Confirm delete", value=False, key="plan_del_confirm")
        if st.button("Delete plan", disabled=not confirm):
            if persist(lambda: plan_store().delete(existing.id), "Plan deleted."):
                st.rerun()


def statistics_page():
    st.header("📈 Statistics")

    clients = load_clients()
    if not clients:
        st.info("No clients yet.")
        return

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Active vs. inactive")
        st.bar_chart(utils.status_breakdown(clients), x="status", y="count")
    with c2:
        st.subheader("Monthly vs. annual revenue")
        st.bar_chart(utils.revenue_summary(clients), x="period", y=["monthly", "annual"])

    st.subheader("Most sold plans")
    popularity = utils.plan_popularity(clients)
    st.bar_chart(popularity, x="plan", y="count", horizontal=True)
    st.dataframe(popularity, use_container_width=True, hide_index=True)


def run_import(raw_text: str, plan_names: list[str]):
    try:
        result = importer.reconcile(importer.load_import_text(raw_text), plan_names)
    except importer.MalformedInputError as e:
        st.error(str(e))
        return

    if result.needs_confirmation:
        st.warning("We found some problems in the file:\n\n- " + "\n- ".join(result.summary_lines(limit=5)))
        if result.can_import and not st.checkbox(f"Import only the {len(result.accepted)} client(s) that look correct"):
            return

    if not result.can_import:
        st.error("No valid clients were found in the file.")
        return

    st.warning(f"This will replace ALL your current data with {len(result.accepted)} client(s) from the file.")
    if st.button("Replace all clients", type="primary"):
        if persist(lambda: client_store().replace_all(result.accepted), f"{len(result.accepted)} client(s) imported."):
            logger.info("Client list replaced by import of %d record(s)", len(result.accepted))


def backup_page():
    st.header("💾 Backup")

    clients = load_clients()

    st.subheader("Export clients")
    if clients:
        c1, c2 = st.columns(2)
        c1.download_button(
            "Download clients_iptv_backup.json",
            data=utils.clients_to_json_bytes(clients),
            file_name="clients_iptv_backup.json",
            mime="application/json",
        )
        c2.download_button(
            "Download clients.csv",
            data=utils.clients_to_csv_bytes(clients),
            file_name="clients.csv",
            mime="text/csv",
        )
        st.caption("Tip: keep a copy of the JSON backup in cloud storage.")
    else:
        st.caption("No clients to export.")

    st.divider()

    st.subheader("Import clients (replaces everything)")
    uploaded = st.file_uploader("Backup file (.json)", type=["json"])
    if uploaded is not None:
        try:
            text = uploaded.getvalue().decode("utf-8")
        except UnicodeDecodeError:
            st.error("Could not read the file contents.")
            return
        run_import(text, [p.name for p in load_plans()])


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Change password")
    password_form("settings")

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 5 sample clients for testing (adds new clients each run).")
    if st.button("Insert sample data"):
        samples = utils.sample_clients(utils.today())
        if persist(lambda: create_all(client_store(), samples), "Sample data inserted."):
            st.rerun()

    st.caption(f"Storage backend: {get_settings().STORAGE_BACKEND}")


def main_app():
    st.sidebar.title("📺 IPTV Manager")
    st.sidebar.caption(f"Logged in as: {st.session_state.username}")

    pages = ["Dashboard", "Clients", "Plans", "Statistics", "Backup", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Clients":
        clients_page()
    elif st.session_state.page == "Plans":
        plans_page()
    elif st.session_state.page == "Statistics":
        statistics_page()
    elif st.session_state.page == "Backup":
        backup_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
