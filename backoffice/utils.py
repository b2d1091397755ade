"""Shared utilities for the branch back-office dashboard."""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

import pandas as pd

# Placeholders the backend emits instead of null.
SENTINELS = frozenset({"NA", "NO"})

_BELOW_TWENTY = (
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen",
    "Eighteen", "Nineteen",
)
_TENS = ("", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety")


def ensure_dataframe(records: Iterable[Mapping] | pd.DataFrame) -> pd.DataFrame:
    """Ensure the input payload is normalised to a :class:`pandas.DataFrame`."""

    if isinstance(records, pd.DataFrame):
        return records.copy()

    return pd.DataFrame(list(records))


def format_currency(value: float, currency: str = "₹") -> str:
    """Return a human-readable currency string."""

    return f"{currency}{value:,.2f}"


def is_sentinel(value: Any) -> bool:
    return isinstance(value, str) and value.strip() in SENTINELS


def clean_value(value: Any) -> Any:
    """Map backend placeholders (``"NA"``, ``"NO"``, NaN) to ``None``."""

    if value is None or is_sentinel(value):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def display_value(value: Any, placeholder: str = "-") -> str:
    cleaned = clean_value(value)
    if cleaned is None or cleaned == "":
        return placeholder
    return str(cleaned)


def full_name(first: Any, middle: Any, last: Any) -> str:
    """Join name parts, skipping empty and placeholder parts."""

    parts = [clean_value(part) for part in (first, middle, last)]
    return " ".join(str(part).strip() for part in parts if part and str(part).strip())


def amount_in_words(amount: float) -> str:
    """Spell a rupee amount using the Indian numbering system (lakh, crore)."""

    whole = int(amount)
    if whole == 0:
        return "Zero Rupees Only"

    def helper(n: int) -> str:
        if n == 0:
            return ""
        if n < 20:
            return _BELOW_TWENTY[n] + " "
        if n < 100:
            return _TENS[n // 10] + " " + helper(n % 10)
        if n < 1_000:
            return _BELOW_TWENTY[n // 100] + " Hundred " + helper(n % 100)
        if n < 100_000:
            return helper(n // 1_000) + "Thousand " + helper(n % 1_000)
        if n < 10_000_000:
            return helper(n // 100_000) + "Lakh " + helper(n % 100_000)
        return helper(n // 10_000_000) + "Crore " + helper(n % 10_000_000)

    words = " ".join(helper(whole).split())
    return f"{words} Rupees Only"
