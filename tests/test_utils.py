from __future__ import annotations

import logging
import math

import pandas as pd
import pytest

from backoffice import config, logging_setup, utils


def test_ensure_dataframe_copies_frames() -> None:
    frame = pd.DataFrame({"a": [1]})
    copy = utils.ensure_dataframe(frame)
    copy.loc[0, "a"] = 2
    assert frame.loc[0, "a"] == 1
    assert utils.ensure_dataframe([{"a": 1}, {"a": 2}])["a"].tolist() == [1, 2]


@pytest.mark.parametrize(
    ("value", "expected"),
    [("NA", None), (" NO ", None), (None, None), (math.nan, None), ("", ""), (0, 0), ("NAME", "NAME")],
)
def test_clean_value(value, expected) -> None:
    assert utils.clean_value(value) == expected


def test_display_helpers() -> None:
    assert utils.display_value("NA") == "-"
    assert utils.display_value("") == "-"
    assert utils.display_value(12) == "12"
    assert utils.full_name("Rahul", "NA", "Pawar") == "Rahul Pawar"
    assert utils.full_name(" Priya ", None, "") == "Priya"
    assert utils.format_currency(1234567.5) == "₹1,234,567.50"


@pytest.mark.parametrize(
    ("amount", "words"),
    [
        (0, "Zero Rupees Only"),
        (7, "Seven Rupees Only"),
        (115, "One Hundred Fifteen Rupees Only"),
        (1000, "One Thousand Rupees Only"),
        (250_075, "Two Lakh Fifty Thousand Seventy Five Rupees Only"),
        (12_000_000, "One Crore Twenty Lakh Rupees Only"),
        (999.99, "Nine Hundred Ninety Nine Rupees Only"),
    ],
)
def test_amount_in_words(amount, words) -> None:
    assert utils.amount_in_words(amount) == words


def test_load_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("BACKOFFICE_API_URL", "https://bank.example/")
    monkeypatch.setenv("BACKOFFICE_DEBOUNCE_MS", "250")
    monkeypatch.setenv("BACKOFFICE_CHECK_CONCURRENCY", "0")
    monkeypatch.setenv("BACKOFFICE_HTTP_TIMEOUT", "slow")

    settings = config.load_settings()

    assert settings.api_url == "https://bank.example"
    assert not settings.demo_mode
    assert settings.debounce_ms == 250
    assert settings.check_concurrency == 1
    assert settings.http_timeout == config.DEFAULT_HTTP_TIMEOUT


def test_empty_api_url_means_demo_mode(monkeypatch) -> None:
    monkeypatch.delenv("BACKOFFICE_API_URL", raising=False)
    settings = config.load_settings()
    assert settings.demo_mode
    assert settings.loan_debounce_ms == config.DEFAULT_LOAN_DEBOUNCE_MS


def test_get_logger_is_namespaced() -> None:
    logger = logging_setup.get_logger("backoffice.tests")
    assert logger.name == "backoffice.tests"
    assert logging.getLogger("backoffice").handlers
