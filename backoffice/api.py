"""REST client for the branch back-office API.

Every call checks the injected operator session first, carries a timeout,
and raises :class:`~backoffice.errors.ApiError` for transport failures and
non-success responses. Payloads are normalised by the ``transform_*``
helpers so the rest of the app never sees the backend's ``"NA"``/``"NO"``
placeholders.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import requests

from . import utils
from .deposits import DEPOSIT_RULES, DepositRules, DepositTerms, Payment
from .errors import ApiError, SessionExpiredError
from .logging_setup import get_logger
from .session import Session, is_valid

logger = get_logger(__name__)

FOREIGN_KEY_HINT = (
    "Cannot delete {title} accounts because they have associated transactions. "
    "Please contact the backend team to resolve this issue."
)


@dataclass(frozen=True)
class DepositEndpoints:
    list_by_user: str
    create: str
    update: str
    delete: str
    delete_all: str


@dataclass(frozen=True)
class Endpoints:
    savings_accounts: str = "/api/saving/get-all-savings-users"
    transactions: str = "/api/saving/transactions/get-user-transactions/{account_number}"
    credit: str = "/api/saving/transactions/create-transaction/{account_number}"
    withdraw: str = "/api/saving/{account_number}/withdraw"
    customers: str = "/api/users/get-all-users"
    branches: str = "/api/admins/get-branch-list"
    loans: str = "/api/loans/get-all-loans"
    dashboard_stats: str = "/api/dashboard/stats"
    account_trends: str = "/api/dashboard/account-trends"
    loan_trends: str = "/api/dashboard/loan-trends"
    loan_types: str = "/api/dashboard/loan-types"
    account_distribution: str = "/api/dashboard/account-distribution"
    recent_customers: str = "/api/dashboard/recent-customers"
    fixed_deposits: DepositEndpoints = DepositEndpoints(
        list_by_user="/api/fds/get-all-fds-by-userId/{user_id}",
        create="/api/accounts/{user_id}/fd",
        update="/api/fds/patch-fd-by-accNum/{account_number}",
        delete="/api/fds/delete-fd-by-accNum/{account_number}",
        delete_all="/api/fds/delete-all-fds-by-userId/{user_id}",
    )
    recurring_deposits: DepositEndpoints = DepositEndpoints(
        list_by_user="/api/rds/get-all-rds-by-userId/{user_id}",
        create="/api/rds/create-rd/{user_id}",
        update="/api/rds/patch-rd-by-accNum/{account_number}",
        delete="/api/rds/delete-rd-by-accNum/{account_number}",
        delete_all="/api/rds/delete-all-rds-by-userId/{user_id}",
    )

    def deposits(self, kind: str) -> DepositEndpoints:
        if kind == "FD":
            return self.fixed_deposits
        if kind == "RD":
            return self.recurring_deposits
        raise ValueError(f"Unknown deposit kind {kind!r}")


# ---------------------------------------------------------------------------
# Payload transforms
# ---------------------------------------------------------------------------


def _float(value: Any) -> float:
    cleaned = utils.clean_value(value)
    try:
        return float(cleaned) if cleaned is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def transform_account(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "userId": str(payload.get("id")),
        "name": utils.clean_value(payload.get("name")) or "",
        "accountNumber": str(payload.get("accountNumber") or ""),
        "createdAt": payload.get("createdAt"),
        "accountStatus": "Active" if payload.get("status") == "ACTIVE" else "Inactive",
        "balance": _float(payload.get("currentBalance")),
        "interestRate": utils.clean_value(payload.get("interestRate")),
    }


def transform_transaction(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": payload.get("id"),
        "amount": _float(payload.get("amount")),
        "payMode": utils.clean_value(payload.get("payMode")) or "",
        "utrNo": utils.clean_value(payload.get("utrNo")),
        "cash": utils.clean_value(payload.get("cash")),
        "chequeNumber": utils.clean_value(payload.get("chequeNumber")),
        "note": utils.clean_value(payload.get("note")) or "",
        "timestamp": payload.get("createdAt"),
        "transactionType": payload.get("transactionType") or "CREDIT",
    }


def transform_deposit(payload: Mapping[str, Any], rules: DepositRules) -> dict[str, Any]:
    return {
        "accountNumber": str(payload.get("accountNumber") or ""),
        rules.amount_field: _float(payload.get(rules.amount_field)),
        "interestRate": _float(payload.get("interestRate")),
        "tenureMonths": int(_float(payload.get("tenureMonths"))),
        "maturityAmount": _float(payload.get("maturityAmount")),
        "maturityDate": utils.clean_value(payload.get("maturityDate")),
        "status": utils.clean_value(payload.get("status")) or "",
        "createdAt": payload.get("createdAt"),
    }


def transform_record(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Generic transform for customers and loans: placeholders become None."""

    return {name: utils.clean_value(value) for name, value in payload.items()}


ACCOUNT_TREND_KEYS = ("savings", "fd", "rd")
LOAN_TREND_KEYS = ("loans", "repaid")


def transform_series(payload: Mapping[str, Any], keys: tuple[str, ...] = ("value",)) -> dict[str, Any]:
    """One chart point: a ``name`` label plus numeric ``keys`` (missing values count as 0)."""

    point: dict[str, Any] = {"name": str(utils.clean_value(payload.get("name")) or "")}
    point.update({key: _float(payload.get(key)) for key in keys})
    return point


def delete_all_error_message(exc: ApiError, title: str) -> str:
    text = f"{exc.message} {exc.detail}".lower()
    if "foreign key constraint" in text:
        return FOREIGN_KEY_HINT.format(title=title)
    return f"Failed to delete all {title} accounts: {exc.message}"


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class BackofficeClient:
    """Thin wrapper over :mod:`requests` for the endpoints the dashboard uses."""

    def __init__(
        self,
        base_url: str,
        session: Session,
        *,
        timeout: float = 15.0,
        http: requests.Session | None = None,
        endpoints: Endpoints | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.endpoints = endpoints or Endpoints()
        self._http = http or requests.Session()
        self._clock = clock

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        if not is_valid(self.session, self._clock()):
            raise SessionExpiredError("Session expired, please sign in again", status_code=401)

        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        try:
            response = self._http.request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ApiError(f"Could not reach the server ({type(exc).__name__})") from exc

        if not response.ok:
            detail = response.text or ""
            logger.error("%s %s returned %s: %s", method, path, response.status_code, detail[:200])
            message = _error_message(response) or f"Request failed with status {response.status_code}"
            raise ApiError(message, status_code=response.status_code, detail=detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Server returned a response that is not JSON") from exc

    # -- savings ------------------------------------------------------------

    def list_savings_accounts(self) -> list[dict[str, Any]]:
        data = self._request("GET", self.endpoints.savings_accounts) or []
        return [transform_account(item) for item in data]

    def list_transactions(self, account_number: str) -> list[dict[str, Any]]:
        path = self.endpoints.transactions.format(account_number=account_number)
        data = self._request("GET", path) or []
        return [transform_transaction(item) for item in data]

    def submit_payment(self, account_number: str, payment: Payment) -> Any:
        template = self.endpoints.withdraw if payment.withdrawal else self.endpoints.credit
        return self._request("POST", template.format(account_number=account_number), json=payment.payload())

    # -- customers & deposits ----------------------------------------------

    def list_customers(self) -> list[dict[str, Any]]:
        data = self._request("GET", self.endpoints.customers) or []
        return [transform_record(item) for item in data]

    def list_deposits(self, kind: str, user_id: Any) -> list[dict[str, Any]]:
        rules = DEPOSIT_RULES[kind]
        path = self.endpoints.deposits(kind).list_by_user.format(user_id=user_id)
        data = self._request("GET", path) or []
        return [transform_deposit(item, rules) for item in data]

    def create_deposit(self, kind: str, user_id: Any, terms: DepositTerms) -> dict[str, Any]:
        rules = DEPOSIT_RULES[kind]
        path = self.endpoints.deposits(kind).create.format(user_id=user_id)
        data = self._request("POST", path, json=terms.payload(rules)) or {}
        return {**transform_deposit(data, rules), **terms.payload(rules)}

    def update_deposit(self, kind: str, account_number: str, terms: DepositTerms) -> dict[str, Any]:
        rules = DEPOSIT_RULES[kind]
        path = self.endpoints.deposits(kind).update.format(account_number=account_number)
        data = self._request("PATCH", path, json=terms.payload(rules)) or {}
        return {**transform_deposit(data, rules), **terms.payload(rules), "accountNumber": account_number}

    def delete_deposit(self, kind: str, account_number: str) -> None:
        path = self.endpoints.deposits(kind).delete.format(account_number=account_number)
        self._request("DELETE", path)

    def delete_all_deposits(self, kind: str, user_id: Any) -> None:
        path = self.endpoints.deposits(kind).delete_all.format(user_id=user_id)
        self._request("DELETE", path)

    # -- reference data ------------------------------------------------------

    def list_branches(self) -> list[str]:
        data = self._request("GET", self.endpoints.branches) or []
        return [str(branch) for branch in data]

    def list_loans(self) -> list[dict[str, Any]]:
        data = self._request("GET", self.endpoints.loans) or []
        return [transform_record(item) for item in data]

    # -- dashboard -----------------------------------------------------------

    def _dashboard(self, path: str, branch_name: str) -> Any:
        return self._request("GET", path, params={"branchName": branch_name})

    def dashboard_stats(self, branch_name: str) -> dict[str, Any]:
        return self._dashboard(self.endpoints.dashboard_stats, branch_name) or {}

    def account_trends(self, branch_name: str) -> list[dict[str, Any]]:
        data = self._dashboard(self.endpoints.account_trends, branch_name) or []
        return [transform_series(item, ACCOUNT_TREND_KEYS) for item in data]

    def loan_trends(self, branch_name: str) -> list[dict[str, Any]]:
        data = self._dashboard(self.endpoints.loan_trends, branch_name) or []
        return [transform_series(item, LOAN_TREND_KEYS) for item in data]

    def loan_types(self, branch_name: str) -> list[dict[str, Any]]:
        data = self._dashboard(self.endpoints.loan_types, branch_name) or []
        return [transform_series(item) for item in data]

    def account_distribution(self, branch_name: str) -> list[dict[str, Any]]:
        data = self._dashboard(self.endpoints.account_distribution, branch_name) or []
        return [transform_series(item) for item in data]

    def recent_customers(self, branch_name: str) -> list[dict[str, Any]]:
        data = self._dashboard(self.endpoints.recent_customers, branch_name) or []
        return [transform_record(item) for item in data]


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "").strip()
    if isinstance(body, Mapping):
        return str(body.get("message") or body.get("error") or "").strip()
    return str(body).strip()
