"""Shared fixtures: controllable timers and a stub ``requests`` session."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any

import pytest

from backoffice.session import Session


class FakeTimer:
    """Stand-in for :class:`threading.Timer` that only fires when told to."""

    def __init__(self, interval: float, function, args=None, kwargs=None) -> None:
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.kwargs = dict(kwargs or {})
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args, **self.kwargs)


class TimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function, args=None, kwargs=None) -> FakeTimer:
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def elapse(self) -> None:
        """Fire every timer that has not been cancelled."""

        for timer in self.live:
            timer.fire()


class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class StubHttp:
    """Records requests and replays queued responses (or raises queued errors)."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._queue: list[Any] = []

    def queue(self, *responses: Any) -> StubHttp:
        self._queue.extend(responses)
        return self

    def request(self, method: str, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self._queue:
            raise AssertionError(f"unexpected request {method} {url}")
        item = self._queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


NOW = datetime(2024, 6, 1, 10, 0)


@pytest.fixture
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def http() -> StubHttp:
    return StubHttp()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def operator() -> Session:
    return Session(user_name="asha", branch_name="Dighi", role="BRANCH_ADMIN", expires_at=NOW + timedelta(hours=1))


@pytest.fixture
def respond():
    """Factory for stub responses: ``respond(200, payload)``."""

    return StubResponse
