import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import logging
from dataclasses import replace
from datetime import date

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from ledger import config
from ledger.aggregate import (
    RANGE_LABELS,
    bar_width,
    budget_usage,
    category_spend,
    chart_series,
    coerce_amount,
    goal_is_completed,
    goal_progress,
    percentage_of,
    top_categories,
)
from ledger.client import StoreClient, load_dashboard
from ledger.domain import AnalyticsTotals
from ledger.errors import StoreError
from ledger.events import TRANSACTION_ADDED, TRANSACTION_DELETED, event_bus
from ledger.filters import by_category, in_range
from ledger.frames import monthly_flow, summaries_frame, transactions_frame, usage_frame
from ledger.functional import (
    find_budget,
    validate_budget_form,
    validate_credentials,
    validate_goal_form,
    validate_transaction_form,
)
from ledger.services import default_budget_service, default_report_service
from ledger.state import AppState

config.configure_logging()
logger = logging.getLogger("app")

st.set_page_config(page_title="Finance Tracker", layout="wide")

if "app_state" not in st.session_state:
    st.session_state.app_state = AppState()


def money(value) -> str:
    return f"{config.CURRENCY}{coerce_amount(value):,.2f}"


def refresh_profile(state: AppState, client: StoreClient) -> None:
    try:
        state.set_user(client.profile())
    except StoreError as e:
        # an unreadable profile means the stored session is no good
        logger.warning("profile fetch failed, signing out: %s", e.message)
        state.sign_out()
        client.token = None
        st.warning("Your session has ended. Please log in again.")


def load_budgets(state: AppState, client: StoreClient) -> None:
    token = state.requests.issue("budgets")
    try:
        state.apply_budgets(token, client.list_budgets())
    except StoreError as e:
        st.error(e.message)


def load_goals(state: AppState, client: StoreClient) -> None:
    token = state.requests.issue("goals")
    try:
        state.apply_goals(token, client.list_goals())
    except StoreError as e:
        st.error(e.message)


def load_transactions(state: AppState, client: StoreClient, page: int, page_size: int, frequency: str = "all") -> None:
    token = state.requests.issue("transactions")
    try:
        result = client.list_transactions(page=page, page_size=page_size, frequency=frequency)
    except StoreError as e:
        st.error(e.message)
        return
    state.apply_transactions(token, result.transactions, result.pagination, result.malformed)


def show_malformed(state: AppState) -> None:
    if state.malformed_amounts:
        st.warning(
            f"⚠️ {state.malformed_amounts} transaction(s) came back with an unreadable amount "
            "and were counted as 0."
        )


# --- pages ---

def page_login(state: AppState, client: StoreClient) -> None:
    st.title("👋 Welcome")
    mode = st.radio("Mode", ["Login", "Register"], horizontal=True)
    register = mode == "Register"

    with st.form("auth_form"):
        name = st.text_input("Full name") if register else None
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Create Account" if register else "Log in")

    if not submitted:
        return

    check = validate_credentials(email, password, name, register=register)
    if check.is_left():
        st.error(check.get_error()["message"])
        return

    creds = check.get_or_else({})
    try:
        token = client.register(**creds) if register else client.login(**creds)
    except StoreError as e:
        st.error(e.message)
        return

    state.sign_in(token)
    refresh_profile(state, client)
    st.rerun()


def page_dashboard(state: AppState, client: StoreClient) -> None:
    st.title("🏠 Dashboard")
    range_key = st.radio(
        "Spending range", ["7", "30", "365"], format_func=RANGE_LABELS.get, horizontal=True, key="dash_range"
    )

    a_token = state.requests.issue("analytics")
    t_token = state.requests.issue("transactions")
    try:
        analytics, page = asyncio.run(load_dashboard(client, range_key))
    except StoreError as e:
        st.error(e.message)
    else:
        state.apply_analytics(a_token, analytics.totals, analytics.categories)
        state.apply_transactions(t_token, page.transactions, page.pagination, page.malformed)

    if not state.budgets:
        load_budgets(state, client)

    totals = state.analytics.totals if state.analytics else AnalyticsTotals()
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Total Balance", money(totals.net))
    k2.metric("Total Income", money(totals.total_income))
    k3.metric("Total Expenses", money(totals.total_expense))
    k4.metric("Total Savings", money(totals.net))
    show_malformed(state)

    left, right = st.columns(2)
    with left:
        st.subheader("💸 Spending Overview")
        recent = tuple(filter(in_range(range_key), state.transactions))
        spend = category_spend(recent, "expense")
        total_expense = sum(spend.values())
        if not spend:
            st.info("No expenses in this period.")
        for label, value in sorted(spend.items(), key=lambda kv: kv[1], reverse=True):
            st.write(f"**{label}** · {money(value)} | {percentage_of(value, total_expense)}%")
            st.progress(bar_width(value, total_expense) / 100)

    with right:
        st.subheader("📊 Budget Status")
        usages = budget_usage(state.budgets, recent)
        if not usages:
            st.info("No budgets yet. Add one to begin tracking.")
        else:
            st.caption(f"{money(sum(u.used for u in usages))} / {money(sum(u.amount for u in usages))}")
        for u in usages:
            line = f"**{u.category}** · {money(u.used)} / {money(u.amount)}"
            if u.warning:
                st.error(f"🔴 {line}")
            else:
                st.write(line)
            st.progress(u.percentage / 100)

    st.divider()
    st.subheader("📈 Top Expense Categories")
    expense_summaries = [c for c in (state.analytics.categories if state.analytics else ()) if c.type == "expense"]
    labels, values = chart_series(expense_summaries, config.TOP_CATEGORIES)
    if not labels:
        st.info("No expense activity yet. Add transactions to see charts.")
    else:
        chart_type = st.radio("Chart", ["Bar", "Pie", "Line"], horizontal=True, key="dash_chart")
        df_top = pd.DataFrame({"Category": labels, "Amount": values})
        if chart_type == "Bar":
            fig = px.bar(df_top, x="Category", y="Amount", template="plotly_dark")
        elif chart_type == "Pie":
            fig = px.pie(df_top, values="Amount", names="Category", template="plotly_dark")
        else:
            fig = px.line(df_top, x="Category", y="Amount", markers=True, template="plotly_dark")
        st.plotly_chart(fig, use_container_width=True)

    flow = monthly_flow(state.transactions)
    fig_ts = go.Figure()
    fig_ts.add_trace(go.Scatter(x=flow.index, y=flow["income"], mode="lines+markers", name="Income"))
    fig_ts.add_trace(go.Scatter(x=flow.index, y=flow["expense"], mode="lines+markers", name="Expense"))
    fig_ts.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
    st.plotly_chart(fig_ts, use_container_width=True)


def page_transactions(state: AppState, client: StoreClient) -> None:
    st.title("🧾 Transactions")
    history, add = st.tabs(["History", "➕ Add Transaction"])

    with add:
        with st.form("add_tx", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                kind = st.selectbox("Type", ["expense", "income"])
                amount = st.number_input(f"Amount ({config.CURRENCY})", min_value=0.0, step=100.0, format="%.2f")
            with col2:
                category = st.text_input("Category", placeholder="Will be auto-filled from description")
                tx_date = st.date_input("Date", value=date.today())
            description = st.text_input("Description", help="AI will auto-categorize")
            submitted = st.form_submit_button("Add Transaction")

        if submitted:
            check = validate_transaction_form({
                "type": kind,
                "category": category,
                "amount": amount,
                "description": description,
                "transaction_date": tx_date.isoformat(),
            })
            if check.is_left():
                st.error(check.get_error()["message"])
            else:
                add_transaction(state, client, check.get_or_else({}))

    with history:
        page = st.session_state.get("tx_page", 1)
        load_transactions(state, client, page, config.TRANSACTIONS_PAGE_SIZE)
        show_malformed(state)

        category = st.text_input("Filter by category", key="tx_category_filter")
        shown = tuple(filter(by_category(category), state.transactions)) if category.strip() else state.transactions
        df = transactions_frame(shown)
        if df.empty:
            st.info("No transactions yet." if not category.strip() else f"No {category.strip()} transactions on this page.")
        else:
            disp = df.assign(
                date=df["date"].dt.strftime("%Y-%m-%d").fillna("-"),
                amount=df["amount"].map(money),
            )
            st.dataframe(disp.drop(columns=["id"]), use_container_width=True, hide_index=True)

        p = state.pagination
        prev_col, info_col, next_col = st.columns([1, 2, 1])
        if prev_col.button("← Prev", disabled=p.page <= 1):
            st.session_state.tx_page = max(1, p.page - 1)
            st.rerun()
        info_col.caption(f"Page {p.page} of {p.total_pages} · {p.total} transactions")
        if next_col.button("Next →", disabled=p.page >= p.total_pages):
            st.session_state.tx_page = p.page + 1
            st.rerun()

        if state.transactions:
            options = {f"{t.transaction_date or '-'} · {t.category} · {money(t.amount)}": t.id for t in state.transactions}
            choice = st.selectbox("Delete transaction", list(options.keys()))
            if st.button("🗑 Delete", key="btn_delete_tx"):
                try:
                    client.delete_transaction(options[choice])
                except StoreError as e:
                    st.error(e.message)
                else:
                    state.remove_transaction(options[choice])
                    event_bus.publish(TRANSACTION_DELETED, {"id": options[choice]})
                    st.success("Transaction deleted successfully!")
                    st.rerun()

        st.subheader("⬇ Export")
        c1, c2 = st.columns(2)
        if c1.button("Prepare CSV"):
            try:
                c1.download_button("Download CSV", client.export_csv(), file_name="transactions.csv", mime="text/csv")
            except StoreError as e:
                st.error(e.message)
        if c2.button("Prepare PDF"):
            try:
                c2.download_button("Download PDF", client.export_pdf(), file_name="transactions.pdf", mime="application/pdf")
            except StoreError as e:
                st.error(e.message)


def add_transaction(state: AppState, client: StoreClient, form: dict) -> None:
    try:
        created, ai_category = client.create_transaction(form)
    except StoreError as e:
        st.error(e.message)
        return

    if ai_category and not form.get("category"):
        st.success(f"Transaction added! AI categorized as: {ai_category}")
    elif ai_category:
        st.success(f"Transaction added! (AI suggested: {ai_category})")
    else:
        st.success("Transaction added successfully!")

    state.add_transaction(created)
    if not state.budgets:
        load_budgets(state, client)
    results = event_bus.publish(
        TRANSACTION_ADDED,
        {"transaction": created, "budgets": state.budgets, "transactions": state.transactions},
    )
    for result in results:
        if "alert" in result:
            st.warning(f"🔴 {result['alert']}")

    st.session_state.tx_page = 1


def page_analytics(state: AppState, client: StoreClient) -> None:
    st.title("📊 Analytics")
    col_f, col_t = st.columns(2)
    frequency = col_f.selectbox("Period", ["7", "30", "365", "all"], index=2, format_func=RANGE_LABELS.get)
    kind = col_t.selectbox("Type", ["all", "income", "expense"], format_func=str.title)

    token = state.requests.issue("analytics")
    try:
        result = client.analytics(frequency=frequency, type=kind)
    except StoreError as e:
        st.error(e.message)
    else:
        state.apply_analytics(token, result.totals, result.categories)

    if state.analytics is None:
        st.info("No analytics data available")
        return

    totals, categories = state.analytics.totals, state.analytics.categories
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Total Transactions", totals.total_transactions)
    k2.metric("Total Income", money(totals.total_income))
    k3.metric("Total Expense", money(totals.total_expense))
    k4.metric("Net Amount", money(totals.net))

    left, right = st.columns(2)
    for column, kind_name, whole in ((left, "expense", totals.total_expense), (right, "income", totals.total_income)):
        with column:
            st.subheader(f"{kind_name.title()} Categories")
            ranked = top_categories([c for c in categories if c.type == kind_name], None)
            if not ranked:
                st.info(f"No {kind_name} data")
                continue
            largest = ranked[0].total_amount
            for c in ranked:
                share = f" ({percentage_of(c.total_amount, whole)}%)" if kind_name == "expense" else ""
                st.write(f"**{c.category}** · {money(c.total_amount)}{share}")
                st.progress(bar_width(c.total_amount, largest) / 100)
                st.caption(f"{c.count} transaction{'s' if c.count != 1 else ''}")

    with st.expander("Compare with loaded transactions"):
        report = default_report_service().analytics_report(state.transactions, kind)
        local = report["result"]
        st.caption(
            f"{local['totals'].total_transactions} loaded transactions · "
            f"income {money(local['totals'].total_income)} · expense {money(local['totals'].total_expense)}"
        )
        st.dataframe(summaries_frame(local["categories"]), use_container_width=True, hide_index=True)


def page_budgets(state: AppState, client: StoreClient) -> None:
    st.title("💰 Budget")
    st.caption("Set limits per category")
    load_budgets(state, client)

    form_col, list_col = st.columns([1, 2])
    with form_col:
        st.subheader("Add / Update Budget")
        with st.form("budget_form", clear_on_submit=True):
            category = st.text_input("Category", placeholder="e.g., Food")
            amount = st.number_input(f"Amount ({config.CURRENCY})", min_value=0.0, step=100.0, format="%.2f")
            submitted = st.form_submit_button("Save Budget")
        st.caption("Suggestions: Food · Entertainment · Travel · Shopping")

        if submitted:
            check = validate_budget_form({"category": category, "amount": amount})
            if check.is_left():
                st.error(check.get_error()["message"])
            else:
                form = check.get_or_else({})
                existing = find_budget(state.budgets, form["category"])
                try:
                    saved, message = client.save_budget(form["category"], form["amount"])
                except StoreError as e:
                    st.error(e.message)
                else:
                    if saved is not None:
                        state.upsert_budget(saved)
                    st.success(message if existing.is_none() else f"{message} (existing category updated)")

    with list_col:
        st.subheader(f"Your Categories ({len(state.budgets)})")
        if not state.budgets:
            st.info("No budgets yet. Add one to get started.")
        for b in state.budgets:
            c1, c2, c3, c4 = st.columns([2, 2, 1, 1])
            c1.write(b.category)
            new_amount = c2.number_input(
                config.CURRENCY, min_value=0.0, value=float(b.amount), step=100.0, key=f"budget_{b.id}", label_visibility="collapsed"
            )
            if c3.button("Save", key=f"save_budget_{b.id}"):
                try:
                    updated = client.update_budget(b.id, amount=new_amount)
                except StoreError as e:
                    st.error(e.message)
                else:
                    state.upsert_budget(updated or replace(b, amount=new_amount))
                    st.success("Budget updated")
                    st.rerun()
            if c4.button("Delete", key=f"del_budget_{b.id}"):
                try:
                    client.delete_budget(b.id)
                except StoreError as e:
                    st.error(e.message)
                else:
                    state.remove_budget(b.id)
                    st.success("Budget removed")
                    st.rerun()

    with st.expander("Budget report"):
        rpt = default_budget_service().budget_report(state.budgets, state.transactions)
        for v in rpt["validation"]:
            for msg in v["messages"]:
                st.warning(msg)
        result = rpt["result"]
        st.metric("Used / Budget", f"{money(result.get('total_used', 0))} / {money(result.get('total_budget', 0))}")
        if result.get("near_limit"):
            st.error("Near or over limit: " + ", ".join(result["near_limit"]))
        st.dataframe(usage_frame(result.get("usage", ())), use_container_width=True, hide_index=True)


def page_goals(state: AppState, client: StoreClient) -> None:
    st.title("🎯 Goals")
    st.caption("Set savings targets and track progress")
    load_goals(state, client)

    with st.form("goal_form", clear_on_submit=True):
        st.subheader("Add Goal")
        title = st.text_input("Title", placeholder="Buy a laptop, emergency fund...")
        target = st.number_input(f"Target amount ({config.CURRENCY})", min_value=0.0, step=1000.0, format="%.2f")
        no_date = st.checkbox("No target date", value=True)
        target_date = st.date_input("Target date", value=date.today())
        description = st.text_area("Description")
        submitted = st.form_submit_button("Save Goal")

    if submitted:
        check = validate_goal_form({
            "title": title,
            "target_amount": target,
            "target_date": None if no_date else target_date.isoformat(),
            "description": description,
        })
        if check.is_left():
            st.error(check.get_error()["message"])
        else:
            try:
                goal = client.create_goal(check.get_or_else({}))
            except StoreError as e:
                st.error(e.message)
            else:
                if goal is not None:
                    state.add_goal(goal)
                st.success("Goal created")

    if not state.goals:
        st.info("No goals yet.")
    for g in state.goals:
        done = goal_is_completed(g)
        st.markdown(f"**{g.title}** {'✅' if done else ''}")
        if g.description:
            st.caption(g.description)
        st.progress(goal_progress(g) / 100)
        c1, c2, c3 = st.columns([2, 1, 1])
        saved = c1.number_input(
            f"Saved of {money(g.target_amount)}", min_value=0.0, value=float(g.saved_amount), step=100.0, key=f"goal_{g.id}"
        )
        if c2.button("Save", key=f"save_goal_{g.id}"):
            changes = {"saved_amount": saved, "status": "completed" if saved >= g.target_amount else "active"}
            try:
                updated = client.update_goal(g.id, changes)
            except StoreError as e:
                st.error(e.message)
            else:
                if updated is not None:
                    state.replace_goal(updated)
                else:
                    state.update_goal(g.id, **changes)
                st.success("Goal updated")
                st.rerun()
        if c3.button("Delete", key=f"del_goal_{g.id}"):
            try:
                client.delete_goal(g.id)
            except StoreError as e:
                st.error(e.message)
            else:
                state.remove_goal(g.id)
                st.success("Goal removed")
                st.rerun()


def page_ai(state: AppState, client: StoreClient) -> None:
    st.title("🤖 AI Features")
    analyzer, advisor = st.tabs(["Needs vs Wants", "Smart Advisor"])

    with analyzer:
        with st.form("analyze_form"):
            expense = st.text_input("Expense")
            amount = st.number_input(f"Amount ({config.CURRENCY})", min_value=0.0, step=100.0)
            description = st.text_input("Description (optional)")
            submitted = st.form_submit_button("Analyze")
        if submitted:
            if not expense.strip() or amount <= 0:
                st.error("Please enter an expense name and amount")
            else:
                try:
                    result = client.analyze_expense(expense.strip(), amount, description)
                except StoreError as e:
                    st.error(e.message)
                else:
                    st.metric(result.category, f"{result.confidence}% confident")
                    st.write(result.reasoning)
                    for tip in result.tips:
                        st.markdown(f"- {tip}")

    with advisor:
        history = st.session_state.setdefault("advisor_messages", [])
        for msg in history:
            with st.chat_message(msg["role"]):
                st.write(msg["content"])
        if st.button("Clear chat"):
            st.session_state.advisor_messages = []
            st.rerun()
        query = st.chat_input("Ask about budgeting, saving, debt...")
        if query and query.strip():
            history.append({"role": "user", "content": query})
            try:
                answer = client.smart_advice(query)
            except StoreError as e:
                st.error(e.message)
                answer = "I'm sorry, I couldn't process your request. Please try again."
            history.append({"role": "assistant", "content": answer})
            st.rerun()


def page_notifications(state: AppState, client: StoreClient) -> None:
    st.title("🔔 Notifications")
    c1, c2 = st.columns(2)
    if c1.button("Check for new tips"):
        try:
            count = client.generate_notifications()
        except StoreError as e:
            st.error(e.message)
        else:
            st.success(f"{count} new notification(s)")
    if c2.button("Mark all as read"):
        try:
            client.mark_all_read()
        except StoreError as e:
            st.error(e.message)
        else:
            state.mark_notifications_read()

    token = state.requests.issue("notifications")
    try:
        state.apply_notifications(token, client.list_notifications())
    except StoreError as e:
        st.error(e.message)

    if not state.notifications:
        st.info("No notifications.")
    show = {"warning": st.warning, "success": st.success}
    for n in state.notifications:
        show.get(n.type, st.info)(("" if n.is_read else "🆕 ") + n.message)
        if not n.is_read and st.button("Mark read", key=f"read_{n.id}"):
            try:
                client.mark_read(n.id)
            except StoreError as e:
                st.error(e.message)
            else:
                state.mark_notifications_read(n.id)
                st.rerun()


def page_profile(state: AppState, client: StoreClient) -> None:
    st.title("👤 Profile")
    if state.user is None:
        refresh_profile(state, client)
    user = state.user
    if user is None:
        return

    if user.image:
        st.image(user.image, width=140)
    st.write(f"**Email:** {user.email}")

    with st.form("profile_form"):
        name = st.text_input("Name", value=user.name)
        gender = st.selectbox("Gender", ["", "Male", "Female", "Other"], index=["", "Male", "Female", "Other"].index(user.gender) if user.gender in ("Male", "Female", "Other") else 0)
        dob = st.text_input("Date of birth (YYYY-MM-DD)", value=user.dob)
        image = st.file_uploader("Photo", type=["png", "jpg", "jpeg"])
        submitted = st.form_submit_button("Save")

    if submitted:
        upload = (image.name, image.getvalue()) if image is not None else None
        try:
            message = client.update_profile(name, gender, dob, upload)
        except StoreError as e:
            st.error(e.message)
        else:
            st.success(message)
            refresh_profile(state, client)


PAGES = {
    "🏠 Dashboard": page_dashboard,
    "🧾 Transactions": page_transactions,
    "📊 Analytics": page_analytics,
    "💰 Budget": page_budgets,
    "🎯 Goals": page_goals,
    "🤖 AI Features": page_ai,
    "🔔 Notifications": page_notifications,
    "👤 Profile": page_profile,
}


def main() -> None:
    state: AppState = st.session_state.app_state
    client = StoreClient(token=state.token)

    if not state.signed_in:
        page_login(state, client)
        return

    if state.user is None:
        refresh_profile(state, client)
        if not state.signed_in:
            page_login(state, client)
            return

    st.sidebar.markdown("### 👤 Profile")
    if state.user is not None:
        st.sidebar.caption(f"Hello, {state.user.name or state.user.email}!")
    menu = st.sidebar.radio("Menu", list(PAGES.keys()))
    if st.sidebar.button("Log out"):
        state.sign_out()
        st.rerun()

    PAGES[menu](state, client)


main()
