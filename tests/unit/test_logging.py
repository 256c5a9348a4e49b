"""Unit tests for the femtologging helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import typing as typ

import pytest

from indexsync.logging import (
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_info,
    log_warning,
    normalize_log_level,
)
from tests.helpers.log_capture import CapturedLog, RecordingLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@pytest.mark.parametrize(
    ("raw_level", "expected_level", "expected_invalid"),
    [
        pytest.param("debug", "DEBUG", False, id="lowercase"),
        pytest.param(" Warn ", "WARN", False, id="padded"),
        pytest.param(None, "INFO", True, id="missing"),
        pytest.param("", "INFO", True, id="empty"),
        pytest.param("verbose", "INFO", True, id="unknown"),
    ],
)
def test_normalize_log_level(
    raw_level: str | None, expected_level: str, *, expected_invalid: bool
) -> None:
    """Levels are upper-cased and unknown values fall back to INFO."""
    level, invalid = normalize_log_level(raw_level)

    assert level == expected_level, (
        f"Expected {raw_level!r} to normalize to {expected_level}."
    )
    assert invalid is expected_invalid, (
        f"Expected invalid flag {expected_invalid} for {raw_level!r}."
    )


def test_format_log_message_without_args_keeps_percent_signs() -> None:
    """Templates without arguments are returned untouched."""
    assert format_log_message("100% indexed") == "100% indexed"


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_helpers_format_and_pass_level(
    helper: cabc.Callable[..., None], level: str
) -> None:
    """Each helper formats its message and emits its own level."""
    logger = RecordingLogger()

    helper(logger, "bound %s to %s", "State", "geographies:state")

    assert logger.records == [CapturedLog(level, "bound State to geographies:state")]


def test_log_error_forwards_exc_info() -> None:
    """exc_info reaches the logger unchanged."""
    logger = RecordingLogger()
    exc = ConnectionError("cluster down")

    log_error(logger, "dispatch failed: %s", exc, exc_info=exc)

    assert logger.records[0].exc_info is exc
    assert logger.records[0].stack_info is False


def test_configure_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """configure_logging hands the normalized level to basicConfig."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("indexsync.logging.basicConfig", fake_basic_config)

    assert configure_logging("nope") == ("INFO", True)
    assert captured == {"level": "INFO", "force": False}
