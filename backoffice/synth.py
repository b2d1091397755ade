"""Deterministic synthetic branch data for demo mode and tests.

The generator produces payloads in the backend's own wire shape (placeholder
strings, mixed timestamp formats) so they go through the same transforms as
live responses. :class:`InMemoryBackend` serves them through the same method
surface as :class:`backoffice.api.BackofficeClient`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .api import (
    ACCOUNT_TREND_KEYS,
    LOAN_TREND_KEYS,
    transform_account,
    transform_deposit,
    transform_record,
    transform_series,
    transform_transaction,
)
from .deposits import DEPOSIT_RULES, DepositTerms, Payment, fd_maturity_preview, rd_maturity_preview
from .errors import ApiError
from .timestamps import parse_timestamp

DEFAULT_CUSTOMERS = 60
DEFAULT_SEED = 7

BRANCHES = ("Dighi", "Bhosari", "Alandi", "Moshi")
FIRST_NAMES = (
    "Amit", "Sunita", "Rahul", "Priya", "Sanjay", "Kavita", "Vikram", "Anjali",
    "Rohan", "Meera", "Suresh", "Pooja", "Nikhil", "Swati", "Ajay", "Neha",
)
MIDDLE_NAMES = ("Ramesh", "Vijay", "Kumar", "Prakash", "Dattatray")
LAST_NAMES = ("Patil", "Joshi", "Kulkarni", "Deshmukh", "Pawar", "Shinde", "Jadhav", "Gaikwad")
LOAN_PURPOSES = ("Business expansion", "Education", "Home repair", "Agriculture", "Medical")
LOAN_SCHEMES = ("Micro Business", "Personal", "Group Lending")
PAY_MODE_WEIGHTS = {"CASH": 0.6, "IMPS": 0.3, "Cheque": 0.1}

START = datetime(2024, 1, 1, 9, 0)


@dataclass
class BranchDataset:
    """Raw backend payloads for one synthetic institution."""

    customers: list[dict[str, Any]]
    savings: list[dict[str, Any]]
    transactions: dict[str, list[dict[str, Any]]]
    deposits: dict[str, dict[str, list[dict[str, Any]]]]
    loans: list[dict[str, Any]]
    owners: dict[str, str] = field(default_factory=dict)
    branches: list[str] = field(default_factory=lambda: list(BRANCHES))


def _iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S")


def _meridiem(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    return f"{moment:%Y-%m-%d} {hour}:{moment:%M} {'PM' if moment.hour >= 12 else 'AM'}"


def _moment(rng: np.random.Generator, *, days: int = 540) -> datetime:
    offset = timedelta(days=int(rng.integers(0, days)), minutes=int(rng.integers(0, 10 * 60)))
    return START + offset


def _customers(rng: np.random.Generator, count: int) -> list[dict[str, Any]]:
    customers = []
    for idx in range(count):
        customers.append(
            {
                "userId": f"U{idx + 1:04d}",
                "firstName": str(rng.choice(FIRST_NAMES)),
                "middleName": str(rng.choice(MIDDLE_NAMES)) if rng.random() < 0.6 else "NA",
                "lastName": str(rng.choice(LAST_NAMES)),
                "mobile": "9" + "".join(str(d) for d in rng.integers(0, 10, size=9)),
                "branch": str(rng.choice(BRANCHES)),
                "createdAt": _iso(_moment(rng)),
            }
        )
    return customers


def _transaction(rng: np.random.Generator, txn_id: int, moment: datetime, amount: float, kind: str) -> dict[str, Any]:
    modes = list(PAY_MODE_WEIGHTS)
    mode = str(rng.choice(modes, p=list(PAY_MODE_WEIGHTS.values())))
    # The backend emits both timestamp shapes.
    stamp = _meridiem(moment) if rng.random() < 0.5 else _iso(moment)
    return {
        "id": txn_id,
        "amount": amount,
        "payMode": mode,
        "utrNo": f"UTR{int(rng.integers(10**9, 10**10))}" if mode == "IMPS" else "NA",
        "cash": f"{amount:g}" if mode == "CASH" else "NA",
        "chequeNumber": f"{int(rng.integers(100000, 999999))}" if mode == "Cheque" else "NA",
        "note": "Daily collection" if rng.random() < 0.3 else "NO",
        "createdAt": stamp,
        "transactionType": kind,
    }


def _savings(
    rng: np.random.Generator,
    customers: list[dict[str, Any]],
) -> tuple[list[dict[str, Any]], dict[str, list[dict[str, Any]]], dict[str, str]]:
    accounts: list[dict[str, Any]] = []
    ledgers: dict[str, list[dict[str, Any]]] = {}
    owners: dict[str, str] = {}
    txn_id = 1
    for idx, customer in enumerate(customers):
        if rng.random() < 0.2:
            continue
        number = f"SB{100000 + idx}"
        opened = datetime.fromisoformat(customer["createdAt"])
        balance = 0.0
        ledger = []
        moment = opened
        for _ in range(int(rng.integers(3, 25))):
            moment = moment + timedelta(days=int(rng.integers(1, 20)), minutes=int(rng.integers(0, 600)))
            if balance > 500 and rng.random() < 0.2:
                amount = float(round(rng.uniform(100, balance * 0.5), 0))
                balance -= amount
                ledger.append(_transaction(rng, txn_id, moment, amount, "DEBIT"))
            else:
                amount = float(round(rng.uniform(50, 2500), 0))
                balance += amount
                ledger.append(_transaction(rng, txn_id, moment, amount, "CREDIT"))
            txn_id += 1
        ledgers[number] = ledger
        owners[number] = customer["userId"]
        accounts.append(
            {
                "id": idx + 1,
                "name": " ".join(
                    part for part in (customer["firstName"], customer["lastName"]) if part
                ),
                "accountNumber": number,
                "createdAt": customer["createdAt"],
                "status": "ACTIVE" if rng.random() < 0.9 else "INACTIVE",
                "currentBalance": round(balance, 2),
                "interestRate": 3.5,
            }
        )
    return accounts, ledgers, owners


def _deposit(rng: np.random.Generator, kind: str, number: str, opened: datetime) -> dict[str, Any]:
    rules = DEPOSIT_RULES[kind]
    low_rate, high_rate = rules.rate_range
    low_tenure, high_tenure = rules.tenure_range
    if kind == "FD":
        amount = float(rng.choice([5_000, 10_000, 25_000, 50_000, 100_000]))
    else:
        amount = float(rng.choice([200, 500, 1_000, 2_000]))
    rate = float(round(rng.uniform(low_rate + 4, high_rate), 1))
    months = int(rng.choice([m for m in (6, 12, 24, 36, 60) if low_tenure <= m <= high_tenure]))
    return _deposit_payload(kind, number, DepositTerms(amount, rate, months), opened)


def _deposit_payload(kind: str, number: str, terms: DepositTerms, opened: datetime) -> dict[str, Any]:
    rules = DEPOSIT_RULES[kind]
    preview = fd_maturity_preview if kind == "FD" else rd_maturity_preview
    maturity = opened + timedelta(days=round(terms.tenure_months * 30.44))
    return {
        "accountNumber": number,
        **terms.payload(rules),
        "maturityAmount": preview(terms.amount, terms.interest_rate, terms.tenure_months),
        "maturityDate": maturity.strftime("%Y-%m-%d"),
        "status": "ACTIVE",
        "createdAt": _iso(opened),
    }


def _deposits(rng: np.random.Generator, customers: list[dict[str, Any]], kind: str) -> dict[str, list[dict[str, Any]]]:
    book: dict[str, list[dict[str, Any]]] = {}
    serial = 1
    for customer in customers:
        if rng.random() >= 0.4:
            continue
        opened = datetime.fromisoformat(customer["createdAt"]) + timedelta(days=int(rng.integers(1, 90)))
        accounts = []
        for _ in range(int(rng.integers(1, 3))):
            accounts.append(_deposit(rng, kind, f"{kind}{serial:06d}", opened))
            serial += 1
        book[customer["userId"]] = accounts
    return book


def _loans(rng: np.random.Generator, customers: list[dict[str, Any]]) -> list[dict[str, Any]]:
    loans = []
    for idx, customer in enumerate(customers):
        if rng.random() >= 0.35:
            continue
        amount = float(rng.choice([25_000, 50_000, 75_000, 100_000, 200_000]))
        tenure = int(rng.choice([12, 24, 36]))
        roi = float(round(rng.uniform(10, 18), 1))
        loans.append(
            {
                "id": len(loans) + 1,
                "applicationNo": f"LN{2024}{idx + 1:04d}",
                "memberName": " ".join((customer["firstName"], customer["lastName"])),
                "mobile": customer["mobile"],
                "branchName": customer["branch"],
                "loanAmount": amount,
                "roi": roi,
                "tenure": tenure,
                "emiAmount": round(amount * (1 + roi / 100 * tenure / 12) / tenure, 2),
                "disbursedAmount": round(amount * 0.98, 2),
                "processingFee": round(amount * 0.02, 2),
                "loanScheme": str(rng.choice(LOAN_SCHEMES)),
                "purposeOfLoan": str(rng.choice(LOAN_PURPOSES)),
                "appliedDate": _iso(_moment(rng)),
                "address": f"{int(rng.integers(1, 200))} {customer['branch']} Road, Pune",
                "fatherName": str(rng.choice(MIDDLE_NAMES)),
                "grantorName": "NA",
                "nomineeName": "NA",
            }
        )
    return loans


def _month(raw: Any) -> pd.Period:
    return parse_timestamp(raw).to_period("M")


def _monthly(
    rows: list[tuple[pd.Period, str, float]],
    keys: tuple[str, ...],
    *,
    months: int = 12,
) -> list[dict[str, Any]]:
    """Pivot ``(month, series, amount)`` rows into one chart point per calendar month."""

    if not rows:
        return []
    frame = pd.DataFrame(rows, columns=["month", "series", "amount"])
    table = frame.pivot_table(index="month", columns="series", values="amount", aggfunc="sum", fill_value=0.0)
    span = pd.period_range(table.index.min(), table.index.max(), freq="M")
    table = table.reindex(index=span, columns=list(keys), fill_value=0.0).tail(months)
    return [
        transform_series({"name": period.strftime("%b %Y"), **row.to_dict()}, keys)
        for period, row in table.iterrows()
    ]


def generate_dataset(customers: int = DEFAULT_CUSTOMERS, *, seed: int | None = DEFAULT_SEED) -> BranchDataset:
    """Generate a deterministic institution with ``customers`` members."""

    if customers <= 0:
        raise ValueError("customers must be positive")

    rng = np.random.default_rng(seed)
    people = _customers(rng, customers)
    savings, ledgers, owners = _savings(rng, people)
    deposits = {kind: _deposits(rng, people, kind) for kind in ("FD", "RD")}
    return BranchDataset(
        customers=people,
        savings=savings,
        transactions=ledgers,
        deposits=deposits,
        loans=_loans(rng, people),
        owners=owners,
    )


class InMemoryBackend:
    """Serves a :class:`BranchDataset` with the client's method surface."""

    def __init__(self, dataset: BranchDataset, *, clock: Any = datetime.now) -> None:
        self.dataset = dataset
        self._clock = clock
        self._lock = threading.Lock()
        self._serial = 900_000

    def _next_number(self, prefix: str) -> str:
        self._serial += 1
        return f"{prefix}{self._serial}"

    def _savings_account(self, account_number: str) -> dict[str, Any]:
        for account in self.dataset.savings:
            if account["accountNumber"] == account_number:
                return account
        raise ApiError(f"Account {account_number} not found", status_code=404)

    # -- savings ------------------------------------------------------------

    def list_savings_accounts(self) -> list[dict[str, Any]]:
        return [transform_account(item) for item in self.dataset.savings]

    def list_transactions(self, account_number: str) -> list[dict[str, Any]]:
        self._savings_account(account_number)
        return [transform_transaction(item) for item in self.dataset.transactions.get(account_number, [])]

    def submit_payment(self, account_number: str, payment: Payment) -> dict[str, Any]:
        with self._lock:
            account = self._savings_account(account_number)
            if payment.withdrawal and payment.amount > account["currentBalance"]:
                raise ApiError("Insufficient balance", status_code=400)
            ledger = self.dataset.transactions.setdefault(account_number, [])
            txn_id = 1 + max((txn["id"] for ledgers in self.dataset.transactions.values() for txn in ledgers), default=0)
            record = {**payment.payload(), "id": txn_id, "createdAt": _iso(self._clock())}
            ledger.append(record)
            delta = -payment.amount if payment.withdrawal else payment.amount
            account["currentBalance"] = round(account["currentBalance"] + delta, 2)
            return dict(record)

    # -- customers & deposits ----------------------------------------------

    def list_customers(self) -> list[dict[str, Any]]:
        return [transform_record(item) for item in self.dataset.customers]

    def list_deposits(self, kind: str, user_id: Any) -> list[dict[str, Any]]:
        rules = DEPOSIT_RULES[kind]
        accounts = self.dataset.deposits[kind].get(user_id)
        if not accounts:
            raise ApiError(f"No {kind} accounts for {user_id}", status_code=404)
        return [transform_deposit(item, rules) for item in accounts]

    def create_deposit(self, kind: str, user_id: Any, terms: DepositTerms) -> dict[str, Any]:
        with self._lock:
            payload = _deposit_payload(kind, self._next_number(kind), terms, self._clock())
            self.dataset.deposits[kind].setdefault(user_id, []).append(payload)
            return transform_deposit(payload, DEPOSIT_RULES[kind])

    def _find_deposit(self, kind: str, account_number: str) -> tuple[str, int]:
        for user_id, accounts in self.dataset.deposits[kind].items():
            for idx, account in enumerate(accounts):
                if account["accountNumber"] == account_number:
                    return user_id, idx
        raise ApiError(f"{kind} account {account_number} not found", status_code=404)

    def update_deposit(self, kind: str, account_number: str, terms: DepositTerms) -> dict[str, Any]:
        with self._lock:
            user_id, idx = self._find_deposit(kind, account_number)
            current = self.dataset.deposits[kind][user_id][idx]
            opened = datetime.fromisoformat(current["createdAt"])
            payload = _deposit_payload(kind, account_number, terms, opened)
            self.dataset.deposits[kind][user_id][idx] = payload
            return transform_deposit(payload, DEPOSIT_RULES[kind])

    def delete_deposit(self, kind: str, account_number: str) -> None:
        with self._lock:
            user_id, idx = self._find_deposit(kind, account_number)
            del self.dataset.deposits[kind][user_id][idx]

    def delete_all_deposits(self, kind: str, user_id: Any) -> None:
        with self._lock:
            self.dataset.deposits[kind].pop(user_id, None)

    # -- reference data ------------------------------------------------------

    def list_branches(self) -> list[str]:
        return list(self.dataset.branches)

    def list_loans(self) -> list[dict[str, Any]]:
        return [transform_record(item) for item in self.dataset.loans]

    def _members(self, branch_name: str) -> set[str]:
        everywhere = branch_name in ("", "NA")
        return {c["userId"] for c in self.dataset.customers if everywhere or c["branch"] == branch_name}

    def _branch_loans(self, branch_name: str) -> list[dict[str, Any]]:
        everywhere = branch_name in ("", "NA")
        return [loan for loan in self.dataset.loans if everywhere or loan["branchName"] == branch_name]

    def account_trends(self, branch_name: str) -> list[dict[str, Any]]:
        """Monthly net savings flow plus FD/RD amounts opened, for the last year of activity."""

        members = self._members(branch_name)
        rows = []
        for number, ledger in self.dataset.transactions.items():
            if self.dataset.owners.get(number) not in members:
                continue
            for txn in ledger:
                sign = 1.0 if txn["transactionType"] == "CREDIT" else -1.0
                rows.append((_month(txn["createdAt"]), "savings", sign * txn["amount"]))
        for kind in ("FD", "RD"):
            field_name = DEPOSIT_RULES[kind].amount_field
            for user_id, accounts in self.dataset.deposits[kind].items():
                if user_id in members:
                    rows.extend((_month(a["createdAt"]), kind.lower(), a[field_name]) for a in accounts)
        return _monthly(rows, ACCOUNT_TREND_KEYS)

    def loan_trends(self, branch_name: str) -> list[dict[str, Any]]:
        """Monthly sanctioned amounts against EMIs falling due up to today."""

        today = pd.Timestamp(self._clock()).to_period("M")
        rows = []
        for loan in self._branch_loans(branch_name):
            applied = _month(loan["appliedDate"])
            rows.append((applied, "loans", loan["loanAmount"]))
            for offset in range(1, loan["tenure"] + 1):
                if applied + offset > today:
                    break
                rows.append((applied + offset, "repaid", loan["emiAmount"]))
        return _monthly(rows, LOAN_TREND_KEYS)

    def loan_types(self, branch_name: str) -> list[dict[str, Any]]:
        counts = pd.Series([loan["loanScheme"] for loan in self._branch_loans(branch_name)], dtype=object)
        return [transform_series({"name": name, "value": count}) for name, count in counts.value_counts().items()]

    def account_distribution(self, branch_name: str) -> list[dict[str, Any]]:
        members = self._members(branch_name)
        savings = sum(1 for user_id in self.dataset.owners.values() if user_id in members)
        counts = {"Savings": savings}
        for kind, label in (("FD", "Fixed Deposit"), ("RD", "Recurring Deposit")):
            counts[label] = sum(
                len(accounts) for user_id, accounts in self.dataset.deposits[kind].items() if user_id in members
            )
        return [transform_series({"name": name, "value": value}) for name, value in counts.items() if value]

    def recent_customers(self, branch_name: str, limit: int = 5) -> list[dict[str, Any]]:
        members = self._members(branch_name)
        latest = sorted(
            (c for c in self.dataset.customers if c["userId"] in members),
            key=lambda c: c["createdAt"],
            reverse=True,
        )
        return [transform_record(c) for c in latest[:limit]]

    def dashboard_stats(self, branch_name: str) -> dict[str, Any]:
        """Branch totals; an empty or ``"NA"`` branch covers every branch."""

        members = self._members(branch_name)

        def _deposit_total(kind: str) -> float:
            field_name = DEPOSIT_RULES[kind].amount_field
            return float(
                sum(
                    account[field_name]
                    for user_id, accounts in self.dataset.deposits[kind].items()
                    if user_id in members
                    for account in accounts
                )
            )

        return {
            "totalUsers": len(members),
            "totalSavings": float(
                sum(
                    a["currentBalance"]
                    for a in self.dataset.savings
                    if self.dataset.owners.get(a["accountNumber"]) in members
                )
            ),
            "totalFd": _deposit_total("FD"),
            "totalRd": _deposit_total("RD"),
            "totalLoans": float(
                sum(loan["loanAmount"] for loan in self._branch_loans(branch_name))
            ),
        }


def write_demo_csvs(
    *,
    customers: int = DEFAULT_CUSTOMERS,
    seed: int | None = DEFAULT_SEED,
    output_dir: str | Path = Path("data"),
) -> tuple[Path, Path]:
    """Persist the customer list and the flattened savings ledger to disk."""

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    dataset = generate_dataset(customers, seed=seed)
    customers_path = output_path / "customers.csv"
    pd.DataFrame(dataset.customers).to_csv(customers_path, index=False)

    ledger = pd.DataFrame(
        [
            {"accountNumber": number, **txn}
            for number, txns in dataset.transactions.items()
            for txn in txns
        ]
    )
    ledger_path = output_path / "savings_transactions.csv"
    ledger.to_csv(ledger_path, index=False)

    return customers_path, ledger_path
