"""Streamlit entry point for the branch back-office dashboard."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from functools import partial
from typing import Any

import pandas as pd
import streamlit as st
from backoffice import synth, utils, viz
from backoffice.accounts import (
    account_flags,
    check_accounts,
    with_account,
    with_updated_account,
    without_account,
    without_any_account,
)
from backoffice.api import BackofficeClient, delete_all_error_message
from backoffice.browser import RecordBrowser, priority_sort, scope_to_branch
from backoffice.config import Settings, load_settings
from backoffice.deposits import (
    DEPOSIT_RULES,
    DepositRules,
    DepositTerms,
    Payment,
    fd_maturity_preview,
    rd_maturity_preview,
    validate_deposit,
    validate_payment,
)
from backoffice.errors import ApiError, SessionExpiredError
from backoffice.history import (
    PAY_MODES,
    HistoryFilter,
    filter_transactions,
    statement_csv,
    statement_frame,
    summarize_history,
)
from backoffice.logging_setup import configure_logging, get_logger
from backoffice.search import CUSTOMER_SEARCH_FIELDS, LOAN_SEARCH_FIELDS, SAVINGS_SEARCH_FIELDS, SearchField
from backoffice.session import SUPER_ADMIN, Session, branch_scope, dashboard_branch, is_valid, start_session
from backoffice.timestamps import format_date, format_datetime
from backoffice.workflow import FormWorkflow, State

logger = get_logger("backoffice.app")

PAGES = ("Dashboard", "Daily Collection", "Fixed Deposits", "Recurring Deposits", "Sanctioned Loans")
ROLES = ("BRANCH_ADMIN", SUPER_ADMIN)
PAYMENT_FORM = {"amount": "", "payMode": "CASH", "utrNo": "", "chequeNumber": "", "note": ""}
ALL_BRANCHES = "All branches"

LOAN_PROFILE_FIELDS = {
    "applicationNo": "Application no.",
    "memberName": "Member",
    "fatherName": "Father's name",
    "mobile": "Mobile",
    "branchName": "Branch",
    "loanScheme": "Scheme",
    "purposeOfLoan": "Purpose",
    "roi": "Rate of interest (%)",
    "tenure": "Tenure (months)",
    "emiAmount": "EMI",
    "disbursedAmount": "Disbursed",
    "processingFee": "Processing fee",
    "appliedDate": "Applied on",
    "grantorName": "Guarantor",
    "nomineeName": "Nominee",
    "address": "Address",
}


@st.cache_data(show_spinner=False)
def _load_dataset(seed: int) -> synth.BranchDataset:
    return synth.generate_dataset(seed=seed)


def _backend(settings: Settings, session: Session) -> Any:
    """Live REST client, or the shared in-memory backend in demo mode."""

    if settings.demo_mode:
        if "demo_backend" not in st.session_state:
            st.session_state["demo_backend"] = synth.InMemoryBackend(_load_dataset(settings.seed))
        return st.session_state["demo_backend"]
    return BackofficeClient(settings.api_url, session, timeout=settings.http_timeout)


def _browser(page: str, factory: Callable[[], RecordBrowser]) -> RecordBrowser:
    key = f"browser:{page}"
    if key not in st.session_state:
        st.session_state[key] = factory()
    return st.session_state[key]


def _workflow(page: str, factory: Callable[[], FormWorkflow]) -> FormWorkflow:
    key = f"workflow:{page}"
    if key not in st.session_state:
        st.session_state[key] = factory()
    return st.session_state[key]


def _report_api_error(exc: ApiError, prefix: str) -> None:
    if isinstance(exc, SessionExpiredError):
        st.session_state.pop("session", None)
        st.error(exc.message)
        st.stop()
    st.error(f"{prefix}: {exc.message}")


def _search_controls(page: str, browser: RecordBrowser, *, any_field: bool = False) -> None:
    """Search input feeding the browser's debouncer."""

    field_key = f"{page}:field"
    term_key = f"{page}:term"

    def _on_change() -> None:
        term = st.session_state.get(term_key, "")
        if any_field:
            browser.search_any(term)
        else:
            browser.search(term, st.session_state.get(field_key, browser.fields[0]))

    if any_field:
        placeholder = " / ".join(field.label for field in browser.fields)
        st.text_input("Search", key=term_key, placeholder=placeholder, on_change=_on_change)
        return

    field_col, term_col = st.columns([1, 3])
    field_col.selectbox(
        "Search by",
        browser.fields,
        key=field_key,
        format_func=lambda field: SearchField.parse(field).label,
        on_change=_on_change,
    )
    term_col.text_input("Search", key=term_key, on_change=_on_change)


def _render_view(
    browser: RecordBrowser,
    render: Callable[[pd.DataFrame], None],
    run_every: float,
) -> None:
    """Render the browser's view in a fragment that picks up settled searches."""

    def _body() -> None:
        view = browser.view
        if browser.search_pending:
            st.caption("Searching…")
        render(view)

    st.fragment(_body, run_every=run_every)()


def _sign_in(settings: Settings) -> None:
    st.title("Branch back-office")
    st.caption("Sign in to continue.")
    branches: list[str] = []
    if settings.demo_mode:
        branches = list(synth.BRANCHES)

    with st.form("sign-in"):
        user_name = st.text_input("Operator name")
        if branches:
            branch = st.selectbox("Branch", branches)
        else:
            branch = st.text_input("Branch")
        role = st.selectbox("Role", ROLES)
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted:
        if not user_name.strip():
            st.error("Please enter your name")
            return
        st.session_state["session"] = start_session(user_name, branch, role, now=datetime.now())
        logger.info("Operator %s signed in (%s, %s)", user_name.strip(), branch, role)
        st.rerun()


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def _dashboard(backend: Any, session: Session) -> None:
    st.title("Dashboard")
    if not session.is_super_admin and not session.has_branch:
        st.warning("Please select a valid branch to view the dashboard.")
        return
    branch = dashboard_branch(session)
    st.caption(f"Branch: {branch}" if branch else "All branches")

    try:
        stats = backend.dashboard_stats(branch)
        account_trends = backend.account_trends(branch)
        loan_trends = backend.loan_trends(branch)
        loan_types = backend.loan_types(branch)
        distribution = backend.account_distribution(branch)
        recent = backend.recent_customers(branch)
    except ApiError as exc:
        _report_api_error(exc, "Failed to fetch dashboard data")
        return

    cols = st.columns(5)
    cols[0].metric("Members", f"{int(stats.get('totalUsers') or 0):,}")
    for col, (key, label) in zip(cols[1:], viz.STAT_LABELS.items()):
        col.metric(label, utils.format_currency(float(stats.get(key) or 0.0)))

    chart_config = {"displayModeBar": False}
    top_left, top_right = st.columns([1, 1], gap="large")
    top_left.plotly_chart(viz.plot_account_trends(account_trends), use_container_width=True, config=chart_config)
    top_right.plotly_chart(viz.plot_loan_trends(loan_trends), use_container_width=True, config=chart_config)
    bottom_left, bottom_right = st.columns([1, 1], gap="large")
    bottom_left.plotly_chart(viz.plot_account_distribution(distribution), use_container_width=True, config=chart_config)
    bottom_right.plotly_chart(viz.plot_loan_types(loan_types), use_container_width=True, config=chart_config)

    st.subheader("Recent customers")
    if not recent:
        st.info("No customers have joined yet.")
        return
    display = pd.DataFrame(
        [
            {
                "Customer ID": utils.display_value(row.get("userId")),
                "Name": utils.full_name(row.get("firstName"), row.get("middleName"), row.get("lastName")),
                "Mobile": utils.display_value(row.get("mobile")),
                "Branch": utils.display_value(row.get("branch")),
                "Joined": format_date(row.get("createdAt")),
            }
            for row in recent
        ]
    )
    st.dataframe(display, hide_index=True, use_container_width=True)


# ---------------------------------------------------------------------------
# Daily collection (savings)
# ---------------------------------------------------------------------------


def _daily_collection(backend: Any, settings: Settings) -> None:
    page = "savings"
    browser = _browser(
        page,
        lambda: RecordBrowser(
            fields=SAVINGS_SEARCH_FIELDS,
            key="accountNumber",
            debounce_seconds=settings.debounce_ms / 1000,
        ),
    )
    workflow = _workflow(page, lambda: FormWorkflow(validate_payment, PAYMENT_FORM))

    st.title("Daily Collection")
    if st.sidebar.button("Reload accounts") or f"{page}:loaded" not in st.session_state:
        try:
            browser.refresh(backend.list_savings_accounts)
            st.session_state[f"{page}:loaded"] = True
        except ApiError as exc:
            _report_api_error(exc, "Failed to load savings accounts")

    _search_controls(page, browser)

    def _table(view: pd.DataFrame) -> None:
        st.caption(f"Showing {len(view):,} of {browser.total:,} accounts")
        if view.empty:
            st.info("No accounts match the current search.")
            return
        display = pd.DataFrame(
            {
                "Account": view["accountNumber"],
                "Name": view["name"],
                "Opened": view["createdAt"].map(format_date),
                "Status": view["accountStatus"],
                "Balance": view["balance"].map(utils.format_currency),
            }
        )
        st.dataframe(display, hide_index=True, use_container_width=True)

        if workflow.state is not State.IDLE:
            return
        names = dict(zip(view["accountNumber"], view["name"]))
        chosen = st.selectbox(
            "Account",
            list(names),
            format_func=lambda number: f"{number} · {names.get(number, '')}",
            key=f"{page}:selected",
        )
        account = browser.get(chosen)
        if account is None:
            return
        credit_col, withdraw_col, history_col = st.columns(3)
        if credit_col.button("Credit", use_container_width=True):
            workflow.open_create(account, intent="credit")
            st.rerun()
        if withdraw_col.button("Withdraw", use_container_width=True):
            workflow.open_create(
                account,
                intent="withdraw",
                validate=partial(validate_payment, withdrawal=True, balance=account["balance"]),
            )
            st.rerun()
        if history_col.button("History", use_container_width=True):
            workflow.open_history(account)
            st.rerun()

    _render_view(browser, _table, settings.debounce_ms / 1000)

    if workflow.state is State.IDLE and workflow.error:
        st.error(workflow.error)
        if workflow.can_restore and st.button("Restore the rejected entry"):
            workflow.restore_draft()
            st.rerun()

    if workflow.state is State.FORM_OPEN:
        _payment_form(workflow)
    elif workflow.state is State.CONFIRM_OPEN:
        _payment_confirm(workflow, browser, backend)
    elif workflow.state is State.HISTORY_OPEN:
        _history(page, workflow, backend)


def _payment_form(workflow: FormWorkflow) -> None:
    account = workflow.subject
    title = "Withdraw from" if workflow.intent == "withdraw" else "Credit to"
    with st.container(border=True):
        st.subheader(f"{title} {account['accountNumber']}")
        st.caption(f"{account['name']} · balance {utils.format_currency(account['balance'])}")
        with st.form(f"payment:{account['accountNumber']}"):
            amount = st.text_input("Amount", value=workflow.draft.get("amount", ""))
            mode = st.selectbox("Payment mode", PAY_MODES, index=PAY_MODES.index(workflow.draft.get("payMode") or "CASH"))
            utr_no = st.text_input("UTR number (IMPS)", value=workflow.draft.get("utrNo", ""))
            cheque = st.text_input("Cheque number", value=workflow.draft.get("chequeNumber", ""))
            note = st.text_input("Note", value=workflow.draft.get("note", ""))
            submit_col, cancel_col = st.columns(2)
            submitted = submit_col.form_submit_button("Continue", type="primary")
            cancelled = cancel_col.form_submit_button("Cancel")
        if workflow.error:
            st.error(workflow.error)

    if cancelled:
        workflow.cancel()
        st.rerun()
    if submitted:
        values = {"amount": amount, "payMode": mode, "utrNo": utr_no, "chequeNumber": cheque, "note": note}
        workflow.submit(values)
        st.rerun()


def _payment_confirm(workflow: FormWorkflow, browser: RecordBrowser, backend: Any) -> None:
    account = workflow.subject
    payment: Payment = workflow.validated
    verb = "Withdraw" if payment.withdrawal else "Credit"
    with st.container(border=True):
        st.subheader(f"Confirm {verb.lower()}")
        st.markdown(
            f"**{verb} {utils.format_currency(payment.amount)}** "
            f"{'from' if payment.withdrawal else 'to'} {account['accountNumber']} ({account['name']})"
        )
        st.caption(utils.amount_in_words(payment.amount))
        st.caption(f"Mode: {payment.pay_mode}")
        confirm_col, back_col = st.columns(2)
        confirmed = confirm_col.button("Confirm", type="primary")
        back = back_col.button("Back")

    if back:
        workflow.back_to_form()
        st.rerun()
    if not confirmed:
        return

    number = account["accountNumber"]
    outcome = workflow.confirm(create=lambda p: backend.submit_payment(number, p))
    if not outcome.ok:
        st.toast(f"Failed to {verb.lower()}: {outcome.error.message}", icon="⚠️")
        st.rerun()

    delta = -payment.amount if payment.withdrawal else payment.amount

    def _apply(rows: list[dict]) -> list[dict]:
        return [
            {**row, "balance": round(float(row["balance"]) + delta, 2)} if row["accountNumber"] == number else row
            for row in rows
        ]

    try:
        browser.write_through(_apply, backend.list_savings_accounts)
    except ApiError as exc:
        logger.warning("Refetch after %s on %s failed: %s", verb.lower(), number, exc)
    st.toast(f"{verb} of {utils.format_currency(payment.amount)} recorded", icon="✅")
    st.rerun()


def _history(page: str, workflow: FormWorkflow, backend: Any) -> None:
    account = workflow.subject
    number = account["accountNumber"]
    from_key, to_key, mode_key = f"{page}:from", f"{page}:to", f"{page}:mode"

    with st.container(border=True):
        st.subheader(f"Transaction history · {number}")
        st.caption(account["name"])
        try:
            transactions = backend.list_transactions(number)
        except ApiError as exc:
            _report_api_error(exc, "Failed to fetch transactions")
            transactions = []

        from_col, to_col, mode_col = st.columns(3)
        date_from = from_col.date_input("From", value=None, key=from_key)
        date_to = to_col.date_input("To", value=None, key=to_key)
        mode = mode_col.selectbox("Mode", ["", *PAY_MODES], key=mode_key, format_func=lambda m: m or "All modes")

        view = filter_transactions(transactions, HistoryFilter(date_from=date_from, date_to=date_to, pay_mode=mode))
        summary = summarize_history(view)

        cols = st.columns(4)
        cols[0].metric("Transactions", f"{summary['count']:,}")
        cols[1].metric("Credited", utils.format_currency(summary["credited"]))
        cols[2].metric("Withdrawn", utils.format_currency(summary["debited"]))
        cols[3].metric("Net", utils.format_currency(summary["net"]))

        st.plotly_chart(viz.plot_transaction_history(view), use_container_width=True, config={"displayModeBar": False})
        st.dataframe(statement_frame(view), hide_index=True, use_container_width=True)

        download_col, close_col = st.columns(2)
        download_col.download_button(
            "Download statement CSV",
            data=statement_csv(view),
            file_name=f"statement_{number}.csv",
            mime="text/csv",
            disabled=view.empty,
        )
        if close_col.button("Close"):
            for key in (from_key, to_key, mode_key):
                st.session_state.pop(key, None)
            workflow.close_history()
            st.rerun()


# ---------------------------------------------------------------------------
# Fixed / recurring deposits
# ---------------------------------------------------------------------------


def _deposits_page(backend: Any, settings: Settings, session: Session, rules: DepositRules) -> None:
    page = rules.kind.lower()
    holdings_key = f"{page}:holdings"
    browser = _browser(
        page,
        lambda: RecordBrowser(
            fields=CUSTOMER_SEARCH_FIELDS,
            key="userId",
            debounce_seconds=settings.debounce_ms / 1000,
        ),
    )
    empty_form = {rules.amount_field: "", "interestRate": "", "tenureMonths": ""}
    workflow = _workflow(page, lambda: FormWorkflow(partial(validate_deposit, rules=rules), empty_form))

    st.title(f"{rules.title}s")
    if not session.is_super_admin and not session.has_branch:
        st.warning("Please select a valid branch to view customers.")
        return
    browser.set_scope(scope_to_branch(branch_scope(session)))

    def _install_sort() -> None:
        flags = account_flags(st.session_state.get(holdings_key, {}))
        browser.set_sort(lambda df: priority_sort(df, flags))

    if st.sidebar.button("Reload customers") or holdings_key not in st.session_state:
        token = browser.begin_fetch()
        try:
            customers = backend.list_customers()
            with st.spinner(f"Checking {rules.kind} accounts…"):
                st.session_state[holdings_key] = check_accounts(
                    customers,
                    partial(backend.list_deposits, rules.kind),
                    concurrency=settings.check_concurrency,
                )
        except ApiError as exc:
            _report_api_error(exc, "Failed to load customers")
        else:
            _install_sort()
            browser.complete_fetch(token, customers)

    _search_controls(page, browser)

    def _table(view: pd.DataFrame) -> None:
        holdings = st.session_state.get(holdings_key, {})
        st.caption(f"Showing {len(view):,} of {browser.total:,} customers")
        if view.empty:
            st.info("No customers match the current search.")
            return
        display = pd.DataFrame(
            {
                "Customer": view["userId"],
                "Name": [
                    utils.full_name(row.get("firstName"), row.get("middleName"), row.get("lastName"))
                    for row in view.to_dict("records")
                ],
                "Mobile": view["mobile"].map(utils.display_value),
                "Branch": view["branch"].map(utils.display_value),
                "Joined": view["createdAt"].map(format_date),
                f"Has {rules.kind}": [
                    "Yes" if holdings.get(uid) and holdings[uid].has_account else "No" for uid in view["userId"]
                ],
            }
        )
        st.dataframe(display, hide_index=True, use_container_width=True)

        if workflow.state is not State.IDLE:
            return
        chosen = st.selectbox("Customer", view["userId"].tolist(), key=f"{page}:selected")
        customer = browser.get(chosen)
        if customer is None:
            return
        _customer_accounts(workflow, rules, customer, holdings.get(chosen))

    _render_view(browser, _table, settings.debounce_ms / 1000)

    if workflow.state is State.IDLE and workflow.error:
        st.error(workflow.error)
        if workflow.can_restore and st.button("Restore the rejected entry"):
            workflow.restore_draft()
            st.rerun()

    if workflow.state is State.FORM_OPEN:
        _deposit_form(workflow, rules)
    elif workflow.state is State.CONFIRM_OPEN:
        _deposit_confirm(workflow, rules, backend, holdings_key, _install_sort)
    elif workflow.state is State.DELETE_CONFIRM_OPEN:
        _deposit_delete(workflow, rules, backend, holdings_key, _install_sort)


def _customer_accounts(workflow: FormWorkflow, rules: DepositRules, customer: dict, holding: Any) -> None:
    uid = customer["userId"]
    accounts = list(holding.accounts) if holding else []
    name = utils.full_name(customer.get("firstName"), customer.get("middleName"), customer.get("lastName"))

    if st.button(f"Open new {rules.kind}", type="primary"):
        workflow.open_create(customer)
        st.rerun()
    if not accounts:
        st.caption(f"{name} has no {rules.title.lower()} accounts.")
        return

    for account in accounts:
        number = account["accountNumber"]
        with st.container(border=True):
            info, edit_col, delete_col = st.columns([4, 1, 1])
            info.markdown(
                f"**{number}** · {utils.format_currency(account[rules.amount_field])} at "
                f"{account['interestRate']:g}% for {account['tenureMonths']} months"
            )
            info.caption(
                f"Matures {format_date(account.get('maturityDate'))} at "
                f"{utils.format_currency(account.get('maturityAmount') or 0.0)} · {account.get('status') or '-'}"
            )
            if edit_col.button("Edit", key=f"edit:{number}"):
                workflow.open_update(customer, number, account)
                st.rerun()
            if delete_col.button("Delete", key=f"delete:{number}"):
                workflow.request_delete(number, customer)
                st.rerun()

    if st.button(f"Delete all {rules.kind} accounts of {uid}"):
        workflow.request_delete_all(customer)
        st.rerun()


def _deposit_form(workflow: FormWorkflow, rules: DepositRules) -> None:
    customer = workflow.subject
    heading = f"Update {workflow.current_account}" if workflow.is_update else f"New {rules.title}"
    low_rate, high_rate = rules.rate_range
    low_tenure, high_tenure = rules.tenure_range
    with st.container(border=True):
        st.subheader(heading)
        st.caption(utils.full_name(customer.get("firstName"), customer.get("middleName"), customer.get("lastName")))
        with st.form(f"{rules.kind}:form"):
            amount = st.text_input(
                f"{rules.amount_label} (min {utils.format_currency(rules.min_amount)})",
                value=workflow.draft.get(rules.amount_field, ""),
            )
            rate = st.text_input(
                f"Interest rate ({low_rate:g}-{high_rate:g}%)", value=workflow.draft.get("interestRate", "")
            )
            tenure = st.text_input(
                f"Tenure ({low_tenure}-{high_tenure} months)", value=workflow.draft.get("tenureMonths", "")
            )
            submit_col, cancel_col = st.columns(2)
            submitted = submit_col.form_submit_button("Continue", type="primary")
            cancelled = cancel_col.form_submit_button("Cancel")
        if workflow.error:
            st.error(workflow.error)

    if cancelled:
        workflow.cancel()
        st.rerun()
    if submitted:
        workflow.submit({rules.amount_field: amount, "interestRate": rate, "tenureMonths": tenure})
        st.rerun()


def _deposit_confirm(
    workflow: FormWorkflow,
    rules: DepositRules,
    backend: Any,
    holdings_key: str,
    install_sort: Callable[[], None],
) -> None:
    customer = workflow.subject
    uid = customer["userId"]
    terms: DepositTerms = workflow.validated
    preview = fd_maturity_preview if rules.kind == "FD" else rd_maturity_preview
    with st.container(border=True):
        st.subheader(f"Confirm {rules.title.lower()}")
        st.markdown(
            f"**{utils.format_currency(terms.amount)}** at {terms.interest_rate:g}% for {terms.tenure_months} months"
        )
        st.caption(utils.amount_in_words(terms.amount))
        st.metric(
            "Estimated maturity",
            utils.format_currency(preview(terms.amount, terms.interest_rate, terms.tenure_months)),
            help="Indicative only; the final amount is calculated by the bank.",
        )
        confirm_col, back_col = st.columns(2)
        confirmed = confirm_col.button("Confirm", type="primary")
        back = back_col.button("Back")

    if back:
        workflow.back_to_form()
        st.rerun()
    if not confirmed:
        return

    outcome = workflow.confirm(
        create=lambda t: backend.create_deposit(rules.kind, uid, t),
        update=lambda number, t: backend.update_deposit(rules.kind, number, t),
    )
    verb = "updated" if outcome.mode == "update" else "created"
    if not outcome.ok:
        action = "update" if outcome.mode == "update" else "create"
        st.toast(f"Failed to {action} {rules.kind} account: {outcome.error.message}", icon="⚠️")
        st.rerun()

    holdings = st.session_state.get(holdings_key, {})
    account = outcome.result or {}
    if outcome.mode == "update":
        holdings = with_updated_account(holdings, uid, account.get("accountNumber", ""), account)
    else:
        holdings = with_account(holdings, uid, account)
    st.session_state[holdings_key] = holdings
    _reconcile(backend, rules, uid, holdings_key)
    install_sort()
    st.toast(f"{rules.title} {verb} successfully!", icon="✅")
    st.rerun()


def _deposit_delete(
    workflow: FormWorkflow,
    rules: DepositRules,
    backend: Any,
    holdings_key: str,
    install_sort: Callable[[], None],
) -> None:
    customer = workflow.subject
    uid = customer["userId"]
    target = workflow.delete_target
    with st.container(border=True):
        if workflow.delete_all:
            st.subheader(f"Delete all {rules.kind} accounts of {uid}?")
        else:
            st.subheader(f"Delete {target}?")
        st.caption("This cannot be undone.")
        confirm_col, cancel_col = st.columns(2)
        confirmed = confirm_col.button("Delete", type="primary")
        cancelled = cancel_col.button("Cancel")

    if cancelled:
        workflow.cancel_delete()
        st.rerun()
    if not confirmed:
        return

    outcome = workflow.confirm_delete(
        delete_one=lambda number: backend.delete_deposit(rules.kind, number),
        delete_all=lambda: backend.delete_all_deposits(rules.kind, uid),
    )
    if not outcome.ok:
        if outcome.mode == "delete_all":
            message = delete_all_error_message(outcome.error, rules.kind)
            workflow.error = message
        else:
            message = f"Failed to delete {rules.kind} account: {outcome.error.message}"
        st.toast(message, icon="⚠️")
        st.rerun()

    holdings = st.session_state.get(holdings_key, {})
    if outcome.mode == "delete_all":
        holdings = without_any_account(holdings, uid)
    else:
        holdings = without_account(holdings, uid, target or "")
    st.session_state[holdings_key] = holdings
    _reconcile(backend, rules, uid, holdings_key)
    install_sort()
    st.toast(f"{rules.title} account deleted", icon="🗑️")
    st.rerun()


def _reconcile(backend: Any, rules: DepositRules, uid: Any, holdings_key: str) -> None:
    """Replace one customer's optimistic holding with the backend's answer."""

    fresh = check_accounts([{"userId": uid}], partial(backend.list_deposits, rules.kind), concurrency=1)
    st.session_state[holdings_key] = {**st.session_state.get(holdings_key, {}), **fresh}


# ---------------------------------------------------------------------------
# Sanctioned loans
# ---------------------------------------------------------------------------


def _loans_page(backend: Any, settings: Settings) -> None:
    page = "loans"
    browser = _browser(
        page,
        lambda: RecordBrowser(
            fields=LOAN_SEARCH_FIELDS,
            key="applicationNo",
            debounce_seconds=settings.loan_debounce_ms / 1000,
        ),
    )

    st.title("Sanctioned Loans")
    if st.sidebar.button("Reload loans") or f"{page}:loaded" not in st.session_state:
        try:
            browser.refresh(backend.list_loans)
            st.session_state[f"{page}:branches"] = backend.list_branches()
            st.session_state[f"{page}:loaded"] = True
        except ApiError as exc:
            _report_api_error(exc, "Failed to load loans")

    search_col, branch_col = st.columns([3, 1])
    with search_col:
        _search_controls(page, browser, any_field=True)
    branch = branch_col.selectbox("Branch", [ALL_BRANCHES, *st.session_state.get(f"{page}:branches", [])])
    if branch == ALL_BRANCHES:
        browser.set_filter(None)
    else:
        browser.set_filter(lambda df: df.loc[df["branchName"] == branch])

    def _table(view: pd.DataFrame) -> None:
        st.caption(f"Showing {len(view):,} of {browser.total:,} loans")
        if view.empty:
            st.info("No loans match the current filters.")
            return
        display = pd.DataFrame(
            {
                "Application": view["applicationNo"],
                "Member": view["memberName"],
                "Mobile": view["mobile"].map(utils.display_value),
                "Branch": view["branchName"],
                "Amount": view["loanAmount"].map(lambda value: utils.format_currency(float(value or 0.0))),
                "ROI %": view["roi"],
                "Applied": view["appliedDate"].map(format_date),
            }
        )
        st.dataframe(display, hide_index=True, use_container_width=True)

        chosen = st.selectbox("Loan profile", view["applicationNo"].tolist(), key=f"{page}:selected")
        loan = browser.get(chosen)
        if loan is None:
            return
        with st.expander(f"{loan['memberName']} · {chosen}", expanded=False):
            st.markdown(f"**{utils.format_currency(float(loan.get('loanAmount') or 0.0))}** sanctioned")
            st.caption(utils.amount_in_words(float(loan.get("loanAmount") or 0.0)))
            profile = pd.DataFrame(
                {
                    "Field": list(LOAN_PROFILE_FIELDS.values()),
                    "Value": [
                        format_datetime(loan.get(name)) if name == "appliedDate" else utils.display_value(loan.get(name))
                        for name in LOAN_PROFILE_FIELDS
                    ],
                }
            )
            st.table(profile.set_index("Field"))

    _render_view(browser, _table, settings.loan_debounce_ms / 1000)

    with st.sidebar:
        st.plotly_chart(viz.plot_loans_by_branch(browser.view), use_container_width=True, config={"displayModeBar": False})


def main() -> None:
    """Render the branch back-office Streamlit application."""

    st.set_page_config(
        page_title="Branch back-office",
        page_icon="🏦",
        layout="wide",
    )

    st.markdown(
        """
        <style>
        [data-testid="stAppViewContainer"] {
            background: #f5f7fb;
        }

        [data-testid="stSidebar"] {
            background: rgba(255, 255, 255, 0.92) !important;
            border-right: 1px solid rgba(226, 232, 240, 0.8);
        }

        div[data-testid="stMetric"] {
            background: #ffffff;
            border-radius: 18px;
            border: 1px solid rgba(226, 232, 240, 0.9);
            padding: 1rem 1.15rem;
        }

        .stDataFrame {
            border-radius: 18px;
            border: 1px solid rgba(226, 232, 240, 0.9);
            overflow: hidden;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )

    settings = load_settings()
    configure_logging(settings.log_level)

    session: Session | None = st.session_state.get("session")
    if not is_valid(session, datetime.now()):
        st.session_state.pop("session", None)
        _sign_in(settings)
        return

    sidebar = st.sidebar
    sidebar.header(session.user_name)
    sidebar.caption(f"{session.role} · {session.branch_name}")
    if settings.demo_mode:
        sidebar.caption("Demo mode: synthetic data")
    page = sidebar.radio("Page", PAGES)
    if sidebar.button("Sign out"):
        st.session_state.clear()
        st.rerun()

    backend = _backend(settings, session)
    if page == "Dashboard":
        _dashboard(backend, session)
    elif page == "Daily Collection":
        _daily_collection(backend, settings)
    elif page == "Fixed Deposits":
        _deposits_page(backend, settings, session, DEPOSIT_RULES["FD"])
    elif page == "Recurring Deposits":
        _deposits_page(backend, settings, session, DEPOSIT_RULES["RD"])
    else:
        _loans_page(backend, settings)

    sidebar.caption(f"Session expires {session.expires_at:%b %d, %H:%M}")


if __name__ == "__main__":
    main()
