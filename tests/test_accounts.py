from __future__ import annotations

import threading

import pytest

from backoffice.accounts import (
    NO_ACCOUNT,
    account_flags,
    check_accounts,
    with_account,
    with_updated_account,
    without_account,
    without_any_account,
)
from backoffice.errors import ApiError

CUSTOMERS = [{"userId": f"U{i}"} for i in range(1, 6)]


def test_two_failed_checks_degrade_to_no_account_only_for_those_rows() -> None:
    def _fetch(user_id):
        if user_id == "U2":
            raise ApiError("not found", status_code=404)
        if user_id == "U4":
            raise ApiError("boom", status_code=500)
        if user_id == "U5":
            return []
        return [{"accountNumber": f"FD-{user_id}"}]

    holdings = check_accounts(CUSTOMERS, _fetch, concurrency=3)

    assert account_flags(holdings) == {"U1": True, "U2": False, "U3": True, "U4": False, "U5": False}
    assert holdings["U1"].accounts == ({"accountNumber": "FD-U1"},)
    assert holdings["U2"] is NO_ACCOUNT


def test_unexpected_exceptions_are_contained() -> None:
    def _fetch(user_id):
        if user_id == "U3":
            raise KeyError("bad payload")
        return [{"accountNumber": "X"}]

    flags = account_flags(check_accounts(CUSTOMERS, _fetch))
    assert flags["U3"] is False
    assert sum(flags.values()) == 4


def test_checks_run_concurrently() -> None:
    barrier = threading.Barrier(5, timeout=5)

    def _fetch(user_id):
        barrier.wait()
        return [{"accountNumber": user_id}]

    holdings = check_accounts(CUSTOMERS, _fetch, concurrency=5)
    assert all(holding.has_account for holding in holdings.values())


def test_empty_customers_and_bad_concurrency() -> None:
    assert check_accounts([], lambda user_id: []) == {}
    with pytest.raises(ValueError):
        check_accounts(CUSTOMERS, lambda user_id: [], concurrency=0)


def test_holding_updates_return_new_mappings() -> None:
    holdings = check_accounts(CUSTOMERS[:1], lambda user_id: [{"accountNumber": "FD1", "interestRate": 7.0}])

    added = with_account(holdings, "U9", {"accountNumber": "FD9"})
    assert added["U9"].has_account
    assert "U9" not in holdings

    updated = with_updated_account(holdings, "U1", "FD1", {"interestRate": 8.0})
    assert updated["U1"].accounts[0]["interestRate"] == 8.0
    assert holdings["U1"].accounts[0]["interestRate"] == 7.0

    removed = without_account(holdings, "U1", "FD1")
    assert not removed["U1"].has_account

    cleared = without_any_account(added, "U9")
    assert cleared["U9"] is NO_ACCOUNT
