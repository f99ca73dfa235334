"""Tests for centralized logging helpers."""

import logging

from src.common import logging_utils
from src.common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled


def test_extra_context_drops_none():
    assert extra_context(event="x", outcome=None, count=0) == {"event": "x", "count": 0}


def test_timer_measures_elapsed_time():
    with Timer() as timer:
        pass
    first = timer.duration_ms()
    assert first >= 0.0
    assert timer.duration_ms() == first


def test_configure_logging_uses_environment_level(monkeypatch):
    monkeypatch.setenv("FEATURESOLVE_LOG_LEVEL", "warning")
    root = logging.getLogger()
    monkeypatch.setattr(root, "level", root.level)
    configure_logging()
    assert root.level == logging.WARNING
    configure_logging("debug")
    assert root.level == logging.DEBUG
    assert logging_utils._CONFIGURED


def test_is_debug_enabled():
    logger = logging.getLogger("featuresolve.test")
    logger.setLevel(logging.DEBUG)
    assert is_debug_enabled(logger)
    logger.setLevel(logging.INFO)
    assert not is_debug_enabled(logger)
