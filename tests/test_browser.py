from __future__ import annotations

import pandas as pd
import pytest

from backoffice.browser import RecordBrowser, priority_sort, scope_to_branch
from backoffice.search import SAVINGS_SEARCH_FIELDS, SearchField

CUSTOMERS = [
    {"userId": "U1", "firstName": "Amit", "branch": "Dighi", "createdAt": "2024-01-10T09:00:00"},
    {"userId": "U2", "firstName": "Sunita", "branch": "Moshi", "createdAt": "2024-03-01 4:15 PM"},
    {"userId": "U3", "firstName": "Rahul", "branch": "Dighi", "createdAt": "2024-03-01T16:15:00"},
    {"userId": "U4", "firstName": "Priya", "branch": "Dighi", "createdAt": "not-a-date"},
    {"userId": "U5", "firstName": "Meera", "branch": "Dighi", "createdAt": "2024-05-20T11:00:00"},
]


def _browser(timers, **kwargs) -> RecordBrowser:
    return RecordBrowser(fields=SAVINGS_SEARCH_FIELDS, key="id", timer_factory=timers, **kwargs)


def test_priority_sort_puts_customers_without_accounts_first_newest_first() -> None:
    flags = {"U1": False, "U2": True, "U3": False, "U4": False, "U5": True}

    result = priority_sort(CUSTOMERS, flags)

    # Without account: U3 (Mar 1), U1 (Jan 10), U4 (unreadable, epoch); then U5, U2.
    assert result["userId"].tolist() == ["U3", "U1", "U4", "U5", "U2"]


def test_priority_sort_is_stable_for_exact_ties() -> None:
    # U2 and U3 share a createdAt instant in different formats.
    flags = {"U2": False, "U3": False}
    forward = priority_sort([CUSTOMERS[1], CUSTOMERS[2]], flags)
    backward = priority_sort([CUSTOMERS[2], CUSTOMERS[1]], flags)

    assert forward["userId"].tolist() == ["U2", "U3"]
    assert backward["userId"].tolist() == ["U3", "U2"]


def test_priority_sort_missing_flags_count_as_no_account() -> None:
    result = priority_sort(CUSTOMERS[:2], {"U1": True})
    assert result["userId"].tolist() == ["U2", "U1"]


def test_scope_to_branch() -> None:
    df = pd.DataFrame(CUSTOMERS)
    assert scope_to_branch("Dighi")(df)["userId"].tolist() == ["U1", "U3", "U4", "U5"]
    assert scope_to_branch(None)(df)["userId"].tolist() == ["U1", "U2", "U3", "U4", "U5"]
    assert scope_to_branch("Alandi")(df).empty
    assert scope_to_branch("Dighi", column="branchName")(df).empty


def test_search_recomputes_once_after_the_input_settles(timers) -> None:
    browser = _browser(timers)
    browser.set_source([{"id": 1, "name": "Amit", "bal": 100}, {"id": 2, "name": "Sunita", "bal": 200}])
    before = browser.recomputations

    browser.search("s", SearchField.NAME)
    browser.search("su", SearchField.NAME)
    browser.search("sun", SearchField.NAME)

    assert browser.search_pending
    assert len(browser.view) == 2
    assert browser.recomputations == before

    timers.elapse()

    assert browser.recomputations == before + 1
    assert browser.spec.term == "sun"
    assert browser.view.to_dict("records") == [{"id": 2, "name": "Sunita", "bal": 200}]


def test_search_rejects_fields_outside_the_page(timers) -> None:
    browser = _browser(timers)
    with pytest.raises(ValueError):
        browser.search("98", SearchField.MOBILE)
    with pytest.raises(ValueError):
        browser.search("x", "email")
    with pytest.raises(ValueError):
        RecordBrowser(fields=())


def test_source_replacement_keeps_the_active_search(timers) -> None:
    browser = _browser(timers)
    browser.search("sb2", SearchField.ACCOUNT_NUMBER)
    browser.flush()

    browser.set_source(
        [
            {"id": 1, "name": "Amit", "accountNumber": "SB100001"},
            {"id": 2, "name": "Sunita", "accountNumber": "SB200002"},
        ]
    )

    assert browser.view["id"].tolist() == [2]
    assert browser.total == 2


def test_stale_fetch_results_are_dropped(timers) -> None:
    browser = _browser(timers)
    slow = browser.begin_fetch()
    fast = browser.begin_fetch()

    assert browser.complete_fetch(fast, [{"id": 2, "name": "New"}])
    assert not browser.complete_fetch(slow, [{"id": 1, "name": "Old"}])
    assert browser.view["name"].tolist() == ["New"]


def test_write_through_reconciles_with_the_refetch(timers) -> None:
    browser = _browser(timers)
    browser.set_source([{"id": 1, "name": "Amit", "balance": 100.0}])
    seen_during_fetch: list[float] = []

    def _credit(rows):
        return [{**row, "balance": row["balance"] + 50} for row in rows]

    def _fetch():
        seen_during_fetch.append(browser.get(1)["balance"])
        return [{"id": 1, "name": "Amit", "balance": 175.0}]

    assert browser.write_through(_credit, _fetch)

    assert seen_during_fetch == [150.0]
    assert browser.get(1)["balance"] == 175.0
    assert not browser.stale


def test_failed_refetch_leaves_optimistic_rows_marked_stale(timers) -> None:
    browser = _browser(timers)
    browser.set_source([{"id": 1, "name": "Amit", "balance": 100.0}])

    def _fetch():
        raise RuntimeError("backend down")

    with pytest.raises(RuntimeError):
        browser.write_through(lambda rows: [{**rows[0], "balance": 40.0}], _fetch)

    assert browser.stale
    assert browser.get(1)["balance"] == 40.0


def test_scope_filter_and_sort_compose(timers) -> None:
    browser = RecordBrowser(
        fields=("name", "mobile"),
        key="userId",
        scope=scope_to_branch("Dighi"),
        sort=lambda df: priority_sort(df, {"U5": True}),
        timer_factory=timers,
    )
    browser.set_source(CUSTOMERS)
    assert browser.view["userId"].tolist() == ["U3", "U1", "U4", "U5"]

    browser.set_filter(lambda df: df.loc[df["userId"] != "U4"])
    assert browser.view["userId"].tolist() == ["U3", "U1", "U5"]

    browser.search("meera", "name")
    browser.flush()
    assert browser.view["userId"].tolist() == ["U5"]

    browser.update_record("U5", {"firstName": "Neha"})
    assert browser.view.empty
    assert browser.get("U5")["firstName"] == "Neha"
