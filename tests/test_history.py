from __future__ import annotations

from datetime import date

import pandas as pd

from backoffice.history import (
    STATEMENT_COLUMNS,
    HistoryFilter,
    filter_transactions,
    statement_csv,
    statement_frame,
    summarize_history,
)

TRANSACTIONS = [
    {"id": 1, "amount": 500.0, "payMode": "CASH", "utrNo": None, "chequeNumber": None,
     "timestamp": "2024-03-04T23:59:59.999", "transactionType": "CREDIT"},
    {"id": 2, "amount": 250.0, "payMode": "IMPS", "utrNo": "UTR123", "chequeNumber": None,
     "timestamp": "2024-03-05 12:00 AM", "transactionType": "CREDIT"},
    {"id": 3, "amount": 100.0, "payMode": "Cheque", "utrNo": None, "chequeNumber": "654321",
     "timestamp": "2024-03-02 9:30 AM", "transactionType": "DEBIT"},
    {"id": 4, "amount": 75.0, "payMode": "cash", "utrNo": "NA", "chequeNumber": "NA",
     "timestamp": "garbage", "transactionType": "CREDIT"},
]


def test_to_date_includes_the_last_millisecond_and_excludes_next_midnight() -> None:
    view = filter_transactions(TRANSACTIONS, HistoryFilter(date_to=date(2024, 3, 4)))
    assert 1 in view["id"].tolist()
    assert 2 not in view["id"].tolist()


def test_from_date_starts_at_midnight() -> None:
    view = filter_transactions(TRANSACTIONS, HistoryFilter(date_from=date(2024, 3, 5)))
    assert view["id"].tolist() == [2]


def test_out_of_order_range_matches_nothing() -> None:
    view = filter_transactions(TRANSACTIONS, HistoryFilter(date_from=date(2024, 3, 5), date_to=date(2024, 3, 1)))
    assert view.empty


def test_pay_mode_is_case_insensitive_exact_match() -> None:
    view = filter_transactions(TRANSACTIONS, HistoryFilter(pay_mode="Cash"))
    assert sorted(view["id"].tolist()) == [1, 4]

    assert filter_transactions(TRANSACTIONS, HistoryFilter(pay_mode="CAS")).empty


def test_filters_are_conjunctive() -> None:
    view = filter_transactions(
        TRANSACTIONS,
        HistoryFilter(date_from=date(2024, 3, 1), date_to=date(2024, 3, 4), pay_mode="cheque"),
    )
    assert view["id"].tolist() == [3]


def test_result_is_newest_first_with_unreadable_timestamps_last() -> None:
    view = filter_transactions(TRANSACTIONS)
    assert view["id"].tolist() == [2, 1, 3, 4]
    assert view["posted_at"].iloc[0] == pd.Timestamp("2024-03-05 00:00")


def test_empty_history() -> None:
    view = filter_transactions([], HistoryFilter(pay_mode="IMPS"))
    assert view.empty
    assert "posted_at" in view
    assert statement_frame(view).columns.tolist() == STATEMENT_COLUMNS
    assert summarize_history(view) == {
        "count": 0, "credited": 0.0, "debited": 0.0, "net": 0.0, "first": None, "last": None,
    }


def test_filter_active_flag() -> None:
    assert not HistoryFilter().active
    assert not HistoryFilter(pay_mode="  ").active
    assert HistoryFilter(date_to=date(2024, 1, 1)).active


def test_statement_reference_prefers_utr_then_cheque() -> None:
    view = filter_transactions(TRANSACTIONS)
    statement = statement_frame(view)

    assert statement["Reference"].tolist() == ["UTR123", "-", "654321", "-"]
    assert statement["Amount"].tolist() == ["250.00", "500.00", "100.00", "75.00"]
    assert statement["Date & Time"].iloc[0] == "Mar 5, 2024, 12:00 AM"

    csv = statement_csv(view)
    assert csv.splitlines()[0] == ",".join(STATEMENT_COLUMNS)
    assert len(csv.splitlines()) == 5


def test_summary_of_filtered_view() -> None:
    view = filter_transactions(TRANSACTIONS, HistoryFilter(date_from=date(2024, 3, 1)))
    summary = summarize_history(view)

    assert summary["count"] == 3
    assert summary["credited"] == 750.0
    assert summary["debited"] == 100.0
    assert summary["net"] == 650.0
    assert summary["first"] == "2024-03-02"
    assert summary["last"] == "2024-03-05"
