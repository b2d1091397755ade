"""Runtime settings for the dashboard.

Each key is looked up in Streamlit secrets first and then in the process
environment. An empty ``BACKOFFICE_API_URL`` switches the app to demo mode,
backed by :mod:`backoffice.synth`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import streamlit as st

from .logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_HTTP_TIMEOUT = 15.0
DEFAULT_DEBOUNCE_MS = 500
DEFAULT_LOAN_DEBOUNCE_MS = 300
DEFAULT_CHECK_CONCURRENCY = 8
DEFAULT_SEED = 7


@dataclass(frozen=True)
class Settings:
    api_url: str = ""
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    loan_debounce_ms: int = DEFAULT_LOAN_DEBOUNCE_MS
    check_concurrency: int = DEFAULT_CHECK_CONCURRENCY
    log_level: str = "INFO"
    seed: int = DEFAULT_SEED

    @property
    def demo_mode(self) -> bool:
        return not self.api_url


def _lookup(key: str) -> Any:
    # st.secrets raises when no secrets.toml exists; treat that as "unset".
    try:
        value = st.secrets.get(key)
    except Exception:
        value = None
    if value in (None, ""):
        value = os.getenv(key)
    return value


def _coerce(key: str, raw: Any, default: Any) -> Any:
    if raw in (None, ""):
        return default
    try:
        return type(default)(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r; using %r", key, raw, default)
        return default


def load_settings() -> Settings:
    """Build :class:`Settings` from secrets and environment variables."""

    defaults = Settings()
    api_url = str(_lookup("BACKOFFICE_API_URL") or "").rstrip("/")
    settings = Settings(
        api_url=api_url,
        http_timeout=_coerce("BACKOFFICE_HTTP_TIMEOUT", _lookup("BACKOFFICE_HTTP_TIMEOUT"), defaults.http_timeout),
        debounce_ms=_coerce("BACKOFFICE_DEBOUNCE_MS", _lookup("BACKOFFICE_DEBOUNCE_MS"), defaults.debounce_ms),
        loan_debounce_ms=_coerce(
            "BACKOFFICE_LOAN_DEBOUNCE_MS", _lookup("BACKOFFICE_LOAN_DEBOUNCE_MS"), defaults.loan_debounce_ms
        ),
        check_concurrency=max(
            1,
            _coerce(
                "BACKOFFICE_CHECK_CONCURRENCY", _lookup("BACKOFFICE_CHECK_CONCURRENCY"), defaults.check_concurrency
            ),
        ),
        log_level=str(_lookup("BACKOFFICE_LOG_LEVEL") or defaults.log_level),
        seed=_coerce("BACKOFFICE_SEED", _lookup("BACKOFFICE_SEED"), defaults.seed),
    )
    return settings
