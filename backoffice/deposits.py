"""Form validation for deposits and savings payments.

Validation is synchronous and runs at submit time. Maturity figures here are
previews for the confirmation screen only; the backend computes the real
values when the account is created.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from .errors import ValidationError
from .history import PAY_MODES


@dataclass(frozen=True)
class DepositRules:
    """Accepted ranges for one deposit product."""

    kind: Literal["FD", "RD"]
    title: str
    amount_field: str
    amount_label: str
    min_amount: float
    rate_range: tuple[float, float]
    tenure_range: tuple[int, int]


FIXED_DEPOSIT = DepositRules(
    kind="FD",
    title="Fixed Deposit",
    amount_field="principalAmount",
    amount_label="Principal amount",
    min_amount=1000,
    rate_range=(1, 15),
    tenure_range=(1, 120),
)

RECURRING_DEPOSIT = DepositRules(
    kind="RD",
    title="Recurring Deposit",
    amount_field="depositAmount",
    amount_label="Deposit amount",
    min_amount=100,
    rate_range=(1, 10),
    tenure_range=(6, 120),
)

DEPOSIT_RULES = {rules.kind: rules for rules in (FIXED_DEPOSIT, RECURRING_DEPOSIT)}


@dataclass(frozen=True)
class DepositTerms:
    amount: float
    interest_rate: float
    tenure_months: int

    def payload(self, rules: DepositRules) -> dict[str, Any]:
        return {
            rules.amount_field: self.amount,
            "interestRate": self.interest_rate,
            "tenureMonths": self.tenure_months,
        }


@dataclass(frozen=True)
class Payment:
    amount: float
    amount_text: str
    pay_mode: str
    utr_no: str = ""
    cheque_number: str = ""
    note: str = ""
    withdrawal: bool = False

    @property
    def transaction_type(self) -> str:
        return "DEBIT" if self.withdrawal else "CREDIT"

    def payload(self) -> dict[str, Any]:
        """Request body; inapplicable fields carry the backend's placeholders."""

        return {
            "amount": self.amount,
            "payMode": self.pay_mode,
            "utrNo": self.utr_no if self.pay_mode == "IMPS" else "NA",
            "cash": self.amount_text if self.pay_mode == "CASH" else "NA",
            "chequeNumber": self.cheque_number if self.pay_mode == "Cheque" else "NA",
            "note": self.note or "NO",
            "transactionType": self.transaction_type,
        }


def _raw(form: Mapping[str, Any], name: str) -> str:
    value = form.get(name)
    return "" if value is None else str(value).strip()


def _number(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(text)
    return value


def validate_deposit(form: Mapping[str, Any], rules: DepositRules) -> DepositTerms:
    """Check an FD/RD form against ``rules`` and return the parsed terms.

    Raises :class:`ValidationError` with the first failing rule's message.
    """

    amount_text = _raw(form, rules.amount_field)
    rate_text = _raw(form, "interestRate")
    tenure_text = _raw(form, "tenureMonths")

    if not amount_text or not rate_text or not tenure_text:
        raise ValidationError("Please fill in all required fields")

    try:
        amount = _number(amount_text)
        rate = _number(rate_text)
        tenure = int(_number(tenure_text))
    except ValueError:
        raise ValidationError("Please enter valid numeric values") from None

    if amount < rules.min_amount:
        raise ValidationError(
            f"{rules.amount_label} must be at least ₹{rules.min_amount:g}", field=rules.amount_field
        )

    low_rate, high_rate = rules.rate_range
    if rate < low_rate or rate > high_rate:
        raise ValidationError(
            f"Interest rate must be between {low_rate:g}% and {high_rate:g}%", field="interestRate"
        )

    low_tenure, high_tenure = rules.tenure_range
    if tenure < low_tenure or tenure > high_tenure:
        raise ValidationError(
            f"Tenure must be between {low_tenure} and {high_tenure} months", field="tenureMonths"
        )

    return DepositTerms(amount=amount, interest_rate=rate, tenure_months=tenure)


def validate_payment(
    form: Mapping[str, Any],
    *,
    withdrawal: bool = False,
    balance: float | None = None,
) -> Payment:
    """Validate a credit or withdrawal form.

    Withdrawals are checked against ``balance`` as cached on the page; the
    backend remains the authority on the real balance.
    """

    amount_text = _raw(form, "amount")
    try:
        amount = _number(amount_text)
    except ValueError:
        raise ValidationError("Please enter a valid amount", field="amount") from None
    if amount <= 0:
        raise ValidationError("Please enter a valid amount", field="amount")

    if withdrawal and balance is not None and amount > float(balance):
        raise ValidationError("Withdrawal amount exceeds account balance", field="amount")

    pay_mode = _raw(form, "payMode") or "CASH"
    if pay_mode not in PAY_MODES:
        raise ValidationError(f"Unsupported payment mode {pay_mode!r}", field="payMode")

    return Payment(
        amount=amount,
        amount_text=amount_text,
        pay_mode=pay_mode,
        utr_no=_raw(form, "utrNo"),
        cheque_number=_raw(form, "chequeNumber"),
        note=_raw(form, "note"),
        withdrawal=withdrawal,
    )


def _lenient(form: Mapping[str, Any], name: str) -> float:
    try:
        return _number(_raw(form, name))
    except ValueError:
        return 0.0


def fd_maturity_preview(principal: float, rate: float, months: int) -> float:
    """Simple-interest maturity: ``P + P*r*t/1200``."""

    return round(principal + (principal * rate * months) / 1200, 2)


def rd_maturity_preview(installment: float, rate: float, months: int) -> float:
    """Flat-rate approximation: ``P*n*(1 + (r/100/12*n)/2)``."""

    return round(installment * months * (1 + (rate / 100 / 12 * months) / 2), 2)


def maturity_preview(form: Mapping[str, Any], rules: DepositRules) -> float:
    """Preview from raw form values; unreadable fields count as zero."""

    amount = _lenient(form, rules.amount_field)
    rate = _lenient(form, "interestRate")
    months = int(_lenient(form, "tenureMonths"))
    if rules.kind == "FD":
        return fd_maturity_preview(amount, rate, months)
    return rd_maturity_preview(amount, rate, months)
