"""Filterable record browser shared by the savings, deposit and loan pages.

A :class:`RecordBrowser` owns the fetched source list and the current filter
state, and keeps a derived view that is rebuilt from scratch whenever either
changes. Search input is debounced; source replacements apply immediately.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

import pandas as pd

from . import utils
from .logging_setup import get_logger
from .search import Debouncer, SearchField, SearchSpec, filter_records
from .timestamps import parse_timestamp

logger = get_logger(__name__)

FrameRule = Callable[[pd.DataFrame], pd.DataFrame]


def priority_sort(
    records: Iterable[Mapping] | pd.DataFrame,
    has_account: Mapping[Any, bool],
    *,
    key: str = "userId",
    created_column: str = "createdAt",
) -> pd.DataFrame:
    """Order customers without an account first, newest first within each group.

    The sort is stable, so exact ties keep their fetched order. Missing or
    unreadable creation dates sort as the epoch, i.e. last in their group.
    """

    df = utils.ensure_dataframe(records)
    if df.empty:
        return df.reset_index(drop=True)

    ids = df[key].tolist() if key in df else [None] * len(df)
    created = df[created_column].tolist() if created_column in df else [None] * len(df)
    flags = [bool(has_account.get(uid, False)) for uid in ids]
    stamps = [parse_timestamp(raw).value for raw in created]

    order = sorted(range(len(df)), key=lambda i: (flags[i], -stamps[i]))
    return df.iloc[order].reset_index(drop=True)


def scope_to_branch(branch: str | None, *, column: str = "branch") -> FrameRule:
    """Return a rule keeping rows of ``branch``; ``None`` keeps every branch."""

    def _rule(df: pd.DataFrame) -> pd.DataFrame:
        if branch is None or df.empty:
            return df
        if column not in df:
            return df.iloc[0:0]
        return df.loc[df[column] == branch]

    return _rule


class RecordBrowser:
    """Source list plus search/filter/sort state with an always-consistent view."""

    def __init__(
        self,
        *,
        fields: Sequence[SearchField | str],
        key: str = "id",
        debounce_seconds: float = 0.5,
        scope: FrameRule | None = None,
        sort: FrameRule | None = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self.fields = tuple(SearchField.parse(field) for field in fields)
        if not self.fields:
            raise ValueError("RecordBrowser needs at least one search field")
        self.key = key
        self._lock = threading.RLock()
        self._source = pd.DataFrame()
        self._spec = SearchSpec(fields=(self.fields[0],))
        self._scope = scope
        self._extra: FrameRule | None = None
        self._sort = sort
        self._view = pd.DataFrame()
        self._fetch_generation = 0
        self.stale = False
        self.recomputations = 0
        self._debouncer = Debouncer(debounce_seconds, self._apply_spec, timer_factory=timer_factory)

    # -- search -----------------------------------------------------------

    def search(self, term: str, field: SearchField | str | None = None) -> None:
        """Schedule a search on one field once typing settles."""

        chosen = SearchField.parse(field) if field is not None else self.fields[0]
        if chosen not in self.fields:
            raise ValueError(f"{chosen.value!r} is not searchable here")
        self._debouncer(SearchSpec(term=term, fields=(chosen,)))

    def search_any(self, term: str) -> None:
        """Schedule a search matching any of the browser's fields."""

        self._debouncer(SearchSpec(term=term, fields=self.fields))

    def flush(self) -> None:
        self._debouncer.flush()

    @property
    def spec(self) -> SearchSpec:
        return self._spec

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    def _apply_spec(self, spec: SearchSpec) -> None:
        with self._lock:
            self._spec = spec
            self._recompute()

    # -- filter/sort rules -------------------------------------------------

    def set_scope(self, scope: FrameRule | None) -> None:
        with self._lock:
            self._scope = scope
            self._recompute()

    def set_filter(self, rule: FrameRule | None) -> None:
        """Install an extra predicate applied after the search (AND)."""

        with self._lock:
            self._extra = rule
            self._recompute()

    def set_sort(self, sort: FrameRule | None) -> None:
        with self._lock:
            self._sort = sort
            self._recompute()

    # -- source list ----------------------------------------------------------

    def set_source(self, records: Iterable[Mapping] | pd.DataFrame) -> None:
        with self._lock:
            self._source = utils.ensure_dataframe(records).reset_index(drop=True)
            self.stale = False
            self._recompute()

    def begin_fetch(self) -> int:
        """Return a token identifying the newest fetch."""

        with self._lock:
            self._fetch_generation += 1
            return self._fetch_generation

    def complete_fetch(self, token: int, records: Iterable[Mapping] | pd.DataFrame) -> bool:
        """Apply fetched records unless a newer fetch has started since ``token``."""

        with self._lock:
            if token != self._fetch_generation:
                logger.debug("Dropping stale fetch %s (latest %s)", token, self._fetch_generation)
                return False
            self.set_source(records)
            return True

    def refresh(self, fetch: Callable[[], Iterable[Mapping] | pd.DataFrame]) -> bool:
        """Fetch the authoritative list and install it if still current."""

        token = self.begin_fetch()
        records = fetch()
        return self.complete_fetch(token, records)

    def apply_optimistic(self, mutate: Callable[[list[dict]], list[dict]]) -> None:
        """Apply a local change ahead of the backend refetch."""

        with self._lock:
            rows = self._source.to_dict("records")
            self._source = utils.ensure_dataframe(mutate(rows)).reset_index(drop=True)
            self.stale = True
            self._recompute()

    def write_through(
        self,
        mutate: Callable[[list[dict]], list[dict]],
        fetch: Callable[[], Iterable[Mapping] | pd.DataFrame],
    ) -> bool:
        """Apply ``mutate`` locally, then reconcile with ``fetch`` (refetch wins).

        A failing refetch propagates; the optimistic rows stay visible and
        :attr:`stale` remains set until the next successful refresh.
        """

        self.apply_optimistic(mutate)
        return self.refresh(fetch)

    def update_record(self, key_value: Any, changes: Mapping[str, Any]) -> None:
        def _mutate(rows: list[dict]) -> list[dict]:
            return [{**row, **changes} if row.get(self.key) == key_value else row for row in rows]

        self.apply_optimistic(_mutate)

    def records(self) -> list[dict]:
        with self._lock:
            return self._source.to_dict("records")

    def get(self, key_value: Any) -> dict | None:
        for row in self.records():
            if row.get(self.key) == key_value:
                return row
        return None

    # -- view -------------------------------------------------------------------

    @property
    def view(self) -> pd.DataFrame:
        with self._lock:
            return self._view.copy()

    @property
    def total(self) -> int:
        return len(self._source)

    def _recompute(self) -> None:
        df = self._source
        if self._scope is not None:
            df = self._scope(df)
        df = filter_records(df, self._spec)
        if self._extra is not None and not df.empty:
            df = self._extra(df)
        if self._sort is not None:
            df = self._sort(df)
        self._view = df.reset_index(drop=True)
        self.recomputations += 1
