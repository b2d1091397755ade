from __future__ import annotations

import pytest

from backoffice.deposits import (
    FIXED_DEPOSIT,
    RECURRING_DEPOSIT,
    DepositTerms,
    fd_maturity_preview,
    maturity_preview,
    rd_maturity_preview,
    validate_deposit,
    validate_payment,
)
from backoffice.errors import ValidationError


def _fd(amount="5000", rate="7.5", tenure="12"):
    return {"principalAmount": amount, "interestRate": rate, "tenureMonths": tenure}


def _rd(amount="500", rate="6", tenure="12"):
    return {"depositAmount": amount, "interestRate": rate, "tenureMonths": tenure}


def test_valid_fd_form_returns_terms_and_payload() -> None:
    terms = validate_deposit(_fd(), FIXED_DEPOSIT)

    assert terms == DepositTerms(amount=5000.0, interest_rate=7.5, tenure_months=12)
    assert terms.payload(FIXED_DEPOSIT) == {"principalAmount": 5000.0, "interestRate": 7.5, "tenureMonths": 12}
    assert terms.payload(RECURRING_DEPOSIT)["depositAmount"] == 5000.0


@pytest.mark.parametrize(
    ("form", "rules", "message"),
    [
        (_fd(amount=""), FIXED_DEPOSIT, "Please fill in all required fields"),
        (_rd(tenure="  "), RECURRING_DEPOSIT, "Please fill in all required fields"),
        (_fd(rate="seven"), FIXED_DEPOSIT, "Please enter valid numeric values"),
        (_fd(amount="inf"), FIXED_DEPOSIT, "Please enter valid numeric values"),
        (_fd(amount="999"), FIXED_DEPOSIT, "Principal amount must be at least ₹1000"),
        (_rd(amount="50"), RECURRING_DEPOSIT, "Deposit amount must be at least ₹100"),
        (_fd(rate="16"), FIXED_DEPOSIT, "Interest rate must be between 1% and 15%"),
        (_rd(rate="10.5"), RECURRING_DEPOSIT, "Interest rate must be between 1% and 10%"),
        (_rd(rate="0.5"), RECURRING_DEPOSIT, "Interest rate must be between 1% and 10%"),
        (_fd(tenure="121"), FIXED_DEPOSIT, "Tenure must be between 1 and 120 months"),
        (_rd(tenure="5"), RECURRING_DEPOSIT, "Tenure must be between 6 and 120 months"),
    ],
)
def test_deposit_validation_messages(form, rules, message) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_deposit(form, rules)
    assert excinfo.value.message == message


def test_deposit_range_edges_are_inclusive() -> None:
    assert validate_deposit(_fd(amount="1000", rate="15", tenure="120"), FIXED_DEPOSIT).amount == 1000.0
    assert validate_deposit(_rd(amount="100", rate="1", tenure="6"), RECURRING_DEPOSIT).tenure_months == 6


def test_first_failing_rule_wins() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_deposit(_rd(amount="50", rate="99", tenure="1"), RECURRING_DEPOSIT)
    assert excinfo.value.field == "depositAmount"


def test_credit_payload_uses_placeholders_for_inapplicable_fields() -> None:
    payment = validate_payment({"amount": "1500", "payMode": "CASH", "utrNo": "UTR9", "note": ""})

    assert payment.payload() == {
        "amount": 1500.0,
        "payMode": "CASH",
        "utrNo": "NA",
        "cash": "1500",
        "chequeNumber": "NA",
        "note": "NO",
        "transactionType": "CREDIT",
    }


def test_imps_and_cheque_payloads() -> None:
    imps = validate_payment({"amount": "20", "payMode": "IMPS", "utrNo": "UTR42", "note": "rent"}).payload()
    assert (imps["utrNo"], imps["cash"], imps["chequeNumber"], imps["note"]) == ("UTR42", "NA", "NA", "rent")

    cheque = validate_payment({"amount": "20", "payMode": "Cheque", "chequeNumber": "000123"}).payload()
    assert (cheque["utrNo"], cheque["cash"], cheque["chequeNumber"]) == ("NA", "NA", "000123")


@pytest.mark.parametrize("amount", ["", "abc", "0", "-5", "nan"])
def test_payment_amount_must_be_positive(amount: str) -> None:
    with pytest.raises(ValidationError, match="Please enter a valid amount"):
        validate_payment({"amount": amount})


def test_withdrawal_cannot_exceed_cached_balance() -> None:
    with pytest.raises(ValidationError, match="exceeds account balance"):
        validate_payment({"amount": "500"}, withdrawal=True, balance=300)

    payment = validate_payment({"amount": "300"}, withdrawal=True, balance=300)
    assert payment.transaction_type == "DEBIT"
    assert payment.pay_mode == "CASH"


def test_unknown_pay_mode_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_payment({"amount": "10", "payMode": "UPI"})
    assert excinfo.value.field == "payMode"


def test_maturity_previews() -> None:
    assert fd_maturity_preview(10_000, 12, 12) == 11_200.0
    assert rd_maturity_preview(1_000, 12, 12) == 12_720.0
    assert maturity_preview(_fd(amount="10000", rate="12", tenure="12"), FIXED_DEPOSIT) == 11_200.0
    assert maturity_preview(_rd(amount="", rate="x", tenure="12"), RECURRING_DEPOSIT) == 0.0
