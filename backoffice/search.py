"""Search predicate and input debouncing for the record browsers."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import pandas as pd

from . import utils
from .logging_setup import get_logger

logger = get_logger(__name__)


class SearchField(str, Enum):
    """Record attributes an operator may search on."""

    NAME = "name"
    ACCOUNT_NUMBER = "accountNumber"
    MOBILE = "mobile"
    APPLICATION_NO = "applicationNo"
    MEMBER_NAME = "memberName"

    @classmethod
    def parse(cls, value: SearchField | str) -> SearchField:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown search field {value!r}; expected one of: {allowed}") from None

    @property
    def label(self) -> str:
        return _LABELS[self]

    def value_of(self, record: Mapping[str, Any]) -> str:
        return _ACCESSORS[self](record)


def _text(value: Any) -> str:
    cleaned = utils.clean_value(value)
    return "" if cleaned is None else str(cleaned)


def _name(record: Mapping[str, Any]) -> str:
    # Savings accounts carry a single name; customers carry the parts.
    if _text(record.get("name")):
        return _text(record.get("name"))
    return utils.full_name(record.get("firstName"), record.get("middleName"), record.get("lastName"))


_ACCESSORS: dict[SearchField, Callable[[Mapping[str, Any]], str]] = {
    SearchField.NAME: _name,
    SearchField.ACCOUNT_NUMBER: lambda record: _text(record.get("accountNumber")),
    SearchField.MOBILE: lambda record: _text(record.get("mobile")),
    SearchField.APPLICATION_NO: lambda record: _text(record.get("applicationNo")),
    SearchField.MEMBER_NAME: lambda record: _text(record.get("memberName")),
}

_LABELS = {
    SearchField.NAME: "Name",
    SearchField.ACCOUNT_NUMBER: "Account Number",
    SearchField.MOBILE: "Mobile",
    SearchField.APPLICATION_NO: "Application No",
    SearchField.MEMBER_NAME: "Member Name",
}

SAVINGS_SEARCH_FIELDS = (SearchField.NAME, SearchField.ACCOUNT_NUMBER)
CUSTOMER_SEARCH_FIELDS = (SearchField.NAME, SearchField.MOBILE)
LOAN_SEARCH_FIELDS = (SearchField.APPLICATION_NO, SearchField.MEMBER_NAME, SearchField.MOBILE)


@dataclass(frozen=True)
class SearchSpec:
    """A search term and the field(s) it is matched against.

    With several fields a record matches when any of them contains the term.
    Field names are validated here, so a bad name fails when the search is
    built rather than silently matching nothing.
    """

    term: str = ""
    fields: tuple[SearchField, ...] = (SearchField.NAME,)

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("SearchSpec needs at least one field")
        object.__setattr__(self, "fields", tuple(SearchField.parse(field) for field in self.fields))
        object.__setattr__(self, "term", self.term or "")

    @classmethod
    def of(cls, term: str, field: SearchField | str) -> SearchSpec:
        return cls(term=term, fields=(SearchField.parse(field),))

    @property
    def is_blank(self) -> bool:
        return not self.term.strip()

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.is_blank:
            return True
        needle = self.term.lower()
        return any(needle in field.value_of(record).lower() for field in self.fields)


def filter_records(records: Iterable[Mapping] | pd.DataFrame, spec: SearchSpec) -> pd.DataFrame:
    """Return the records matching ``spec`` in their original order."""

    df = utils.ensure_dataframe(records)
    if df.empty or spec.is_blank:
        return df.reset_index(drop=True)

    mask = [spec.matches(row) for row in df.to_dict("records")]
    return df.loc[mask].reset_index(drop=True)


class Debouncer:
    """Call ``callback`` once input has been quiet for ``wait`` seconds.

    Every call cancels the pending timer and schedules a new one carrying the
    latest arguments, so only the final settled call reaches ``callback``.
    ``timer_factory`` follows the :class:`threading.Timer` signature.
    """

    def __init__(
        self,
        wait: float,
        callback: Callable[..., None],
        *,
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        if wait < 0:
            raise ValueError("wait must be non-negative")
        self.wait = wait
        self._callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Any = None
        self._pending: tuple[tuple, dict] | None = None
        self._generation = 0

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = (args, kwargs)
            timer = self._timer_factory(self.wait, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _take(self, generation: int | None) -> tuple[tuple, dict] | None:
        with self._lock:
            if generation is not None and generation != self._generation:
                return None
            pending, self._pending = self._pending, None
            self._timer = None
            return pending

    def _fire(self, generation: int) -> None:
        pending = self._take(generation)
        if pending is None:
            return
        args, kwargs = pending
        self._callback(*args, **kwargs)

    def flush(self) -> None:
        """Run the pending call now instead of waiting for the window."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        pending = self._take(None)
        if pending is not None:
            args, kwargs = pending
            self._callback(*args, **kwargs)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
            self._generation += 1
