"""Transaction history filtering for a single savings account."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import TypedDict

import pandas as pd

from . import utils
from .timestamps import end_of_day, format_datetime, parse_timestamp, start_of_day

PAY_MODES = ("CASH", "IMPS", "Cheque")
STATEMENT_COLUMNS = ["Date & Time", "Amount", "Type", "Mode", "Reference"]


@dataclass(frozen=True)
class HistoryFilter:
    """Optional inclusive date range and payment mode for the history view."""

    date_from: date | None = None
    date_to: date | None = None
    pay_mode: str = ""

    @property
    def active(self) -> bool:
        return bool(self.date_from or self.date_to or self.pay_mode.strip())


class HistorySummary(TypedDict):
    count: int
    credited: float
    debited: float
    net: float
    first: str | None
    last: str | None


def _text(value: object) -> str:
    cleaned = utils.clean_value(value)
    return "" if cleaned is None else str(cleaned)


def filter_transactions(
    transactions: Iterable[Mapping] | pd.DataFrame,
    history_filter: HistoryFilter | None = None,
) -> pd.DataFrame:
    """Apply the date range and payment mode, newest first.

    A ``posted_at`` column holds the parsed timestamps. The result is sorted
    by it in descending order whether or not any filter is active.
    """

    history_filter = history_filter or HistoryFilter()
    df = utils.ensure_dataframe(transactions)
    if df.empty:
        return df.assign(posted_at=pd.Series(dtype="datetime64[ns]"))

    raw = df["timestamp"] if "timestamp" in df else pd.Series([None] * len(df), index=df.index)
    df["posted_at"] = pd.to_datetime(raw.map(parse_timestamp))

    mask = pd.Series(True, index=df.index)
    if history_filter.date_from is not None:
        mask &= df["posted_at"] >= start_of_day(history_filter.date_from)
    if history_filter.date_to is not None:
        mask &= df["posted_at"] <= end_of_day(history_filter.date_to)

    mode = history_filter.pay_mode.strip().lower()
    if mode:
        modes = df["payMode"] if "payMode" in df else pd.Series([""] * len(df), index=df.index)
        mask &= modes.map(lambda value: _text(value).lower() == mode)

    filtered = df.loc[mask]
    return filtered.sort_values("posted_at", ascending=False, kind="stable").reset_index(drop=True)


def _reference(row: Mapping) -> str:
    utr = _text(row.get("utrNo"))
    if utr:
        return utr
    cheque = _text(row.get("chequeNumber"))
    return cheque or "-"


def statement_frame(view: pd.DataFrame) -> pd.DataFrame:
    """Shape a filtered history into the printable statement columns."""

    if view.empty:
        return pd.DataFrame(columns=STATEMENT_COLUMNS)

    rows = [
        {
            "Date & Time": format_datetime(row.get("timestamp")),
            "Amount": f"{float(row.get('amount') or 0.0):.2f}",
            "Type": _text(row.get("transactionType")),
            "Mode": _text(row.get("payMode")),
            "Reference": _reference(row),
        }
        for row in view.to_dict("records")
    ]
    return pd.DataFrame(rows, columns=STATEMENT_COLUMNS)


def statement_csv(view: pd.DataFrame) -> str:
    return statement_frame(view).to_csv(index=False)


def summarize_history(view: pd.DataFrame) -> HistorySummary:
    """Totals for the transactions currently shown."""

    if view.empty:
        return {"count": 0, "credited": 0.0, "debited": 0.0, "net": 0.0, "first": None, "last": None}

    amounts = pd.to_numeric(view["amount"], errors="coerce").fillna(0.0)
    kinds = view.get("transactionType", pd.Series(["CREDIT"] * len(view), index=view.index))
    is_debit = kinds.map(lambda value: _text(value).upper() == "DEBIT")

    credited = float(amounts[~is_debit].sum())
    debited = float(amounts[is_debit].sum())
    posted = view["posted_at"] if "posted_at" in view else pd.to_datetime(view["timestamp"].map(parse_timestamp))

    return {
        "count": int(len(view)),
        "credited": round(credited, 2),
        "debited": round(debited, 2),
        "net": round(credited - debited, 2),
        "first": posted.min().strftime("%Y-%m-%d"),
        "last": posted.max().strftime("%Y-%m-%d"),
    }
