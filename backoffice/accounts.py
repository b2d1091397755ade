"""Per-customer deposit account lookups.

The FD and RD pages annotate every customer row with whether they already
hold an account. One request per customer runs on a bounded thread pool and
the map is ready only once every lookup has settled. A failed lookup marks
that single customer as having no account.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from .errors import ApiError
from .logging_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountHolding:
    has_account: bool
    accounts: tuple[dict, ...] = ()


NO_ACCOUNT = AccountHolding(has_account=False)

Holdings = dict[Any, AccountHolding]


def _holding(accounts: Iterable[Mapping]) -> AccountHolding:
    rows = tuple(dict(account) for account in accounts)
    return AccountHolding(has_account=bool(rows), accounts=rows)


def check_accounts(
    customers: Iterable[Mapping],
    fetch: Callable[[Any], Iterable[Mapping]],
    *,
    key: str = "userId",
    concurrency: int = 8,
) -> Holdings:
    """Look up every customer's accounts concurrently.

    ``fetch`` is called once per customer id. Results are keyed by id; a
    404 or any other failure yields :data:`NO_ACCOUNT` for that id only.
    """

    if concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    ids = [customer.get(key) for customer in customers]
    if not ids:
        return {}

    def _check(customer_id: Any) -> AccountHolding:
        try:
            return _holding(fetch(customer_id))
        except ApiError as exc:
            if not exc.not_found:
                logger.warning("Account lookup failed for customer %s: %s", customer_id, exc)
            return NO_ACCOUNT
        except Exception:  # noqa: BLE001
            logger.exception("Account lookup crashed for customer %s", customer_id)
            return NO_ACCOUNT

    with ThreadPoolExecutor(max_workers=min(concurrency, len(ids))) as pool:
        results = list(pool.map(_check, ids))

    return dict(zip(ids, results))


def account_flags(holdings: Mapping[Any, AccountHolding]) -> dict[Any, bool]:
    return {customer_id: holding.has_account for customer_id, holding in holdings.items()}


def with_account(holdings: Mapping[Any, AccountHolding], customer_id: Any, account: Mapping) -> Holdings:
    """Return a copy of ``holdings`` with ``account`` added for ``customer_id``."""

    updated = dict(holdings)
    existing = updated.get(customer_id, NO_ACCOUNT)
    updated[customer_id] = _holding([*existing.accounts, account])
    return updated


def with_updated_account(
    holdings: Mapping[Any, AccountHolding],
    customer_id: Any,
    account_number: str,
    changes: Mapping[str, Any],
) -> Holdings:
    updated = dict(holdings)
    existing = updated.get(customer_id, NO_ACCOUNT)
    updated[customer_id] = _holding(
        {**account, **changes} if account.get("accountNumber") == account_number else account
        for account in existing.accounts
    )
    return updated


def without_account(holdings: Mapping[Any, AccountHolding], customer_id: Any, account_number: str) -> Holdings:
    updated = dict(holdings)
    existing = updated.get(customer_id, NO_ACCOUNT)
    updated[customer_id] = _holding(
        account for account in existing.accounts if account.get("accountNumber") != account_number
    )
    return updated


def without_any_account(holdings: Mapping[Any, AccountHolding], customer_id: Any) -> Holdings:
    updated = dict(holdings)
    updated[customer_id] = NO_ACCOUNT
    return updated
