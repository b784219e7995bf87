"""
Tests for settings validation and scan log context.
"""

import pytest
import structlog
from pydantic import ValidationError

from pondside.core.config import Settings
from pondside.core.logging import bind_scan_context


def test_settings_normalize_choices():
    settings = Settings(LEADERBOARD_CACHE_BACKEND="Memory", LOG_FORMAT="JSON")
    assert settings.LEADERBOARD_CACHE_BACKEND == "memory"
    assert settings.LOG_FORMAT == "json"


def test_settings_reject_unknown_cache_backend():
    with pytest.raises(ValidationError):
        Settings(LEADERBOARD_CACHE_BACKEND="memcached")


def test_settings_reject_unknown_timezone():
    with pytest.raises(ValidationError, match="unknown timezone"):
        Settings(VENUE_TIMEZONE="Europe/Atlantis")

    assert Settings(VENUE_TIMEZONE="Europe/London").VENUE_TIMEZONE == "Europe/London"


def test_settings_reject_rising_points_scale():
    with pytest.raises(ValidationError, match="points scale"):
        Settings(LEADERBOARD_POINTS_SCALE=[100, 80, 90])


def test_bind_scan_context_skips_missing_devices():
    structlog.contextvars.clear_contextvars()
    try:
        bind_scan_context(station_id="GATE-1", scale_id=None)
        context = structlog.contextvars.get_contextvars()
        assert context == {"station_id": "GATE-1"}
    finally:
        structlog.contextvars.clear_contextvars()
