"""Tests for configuration and daemon wiring."""

import importlib
import pytest

from nearby_notifier.config import parse_steps
from nearby_notifier.models import Waypoint


def test_parse_steps():
    assert parse_steps("52.37,4.89; 52.38,4.90;") == [
        Waypoint(52.37, 4.89),
        Waypoint(52.38, 4.90),
    ]


def test_parse_steps_empty():
    assert parse_steps("") == []


def test_parse_steps_invalid():
    with pytest.raises(ValueError):
        parse_steps("52.37")


def test_build_notifier_from_env(monkeypatch):
    """Test wiring the daemon from environment variables."""
    monkeypatch.setenv("NEARBY_LATITUDE", "52.0")
    monkeypatch.setenv("NEARBY_LONGITUDE", "4.0")
    monkeypatch.setenv("STEP_COUNT", "2")
    monkeypatch.setenv("LOOP_INTERVAL_MS", "30000")
    monkeypatch.setenv("NOTIFY_ON_REPEAT", "false")
    monkeypatch.setenv("INIT_MAX_ATTEMPTS", "4")
    monkeypatch.setenv("WEBHOOK_URL", "http://example.invalid/hook")
    monkeypatch.setenv("LOG_ENCOUNTERS", "true")
    monkeypatch.delenv("STEPS", raising=False)
    import nearby_notifier.config
    import nearby_notifier.main
    importlib.reload(nearby_notifier.config)
    importlib.reload(nearby_notifier.main)

    notifier = nearby_notifier.main.build_notifier()

    assert len(notifier.steps) == 7
    assert notifier.loop_interval_ms == 30000
    assert notifier.notify_on_repeat is False
    assert notifier.init_retry.max_attempts == 4
    assert len(notifier.fanout) == 2


def test_build_notifier_steps_override(monkeypatch):
    """Test that STEPS replaces generated waypoints."""
    monkeypatch.delenv("NEARBY_LATITUDE", raising=False)
    monkeypatch.delenv("NEARBY_LONGITUDE", raising=False)
    monkeypatch.delenv("WEBHOOK_URL", raising=False)
    monkeypatch.delenv("LOG_ENCOUNTERS", raising=False)
    monkeypatch.setenv("STEPS", "1.0,2.0;3.0,4.0")
    import nearby_notifier.config
    import nearby_notifier.main
    importlib.reload(nearby_notifier.config)
    importlib.reload(nearby_notifier.main)

    notifier = nearby_notifier.main.build_notifier()

    assert notifier.steps == (Waypoint(1.0, 2.0), Waypoint(3.0, 4.0))
    # notifier already logs each encounter; no extra handlers by default
    assert len(notifier.fanout) == 0


def test_build_notifier_requires_location(monkeypatch):
    monkeypatch.delenv("NEARBY_LATITUDE", raising=False)
    monkeypatch.delenv("NEARBY_LONGITUDE", raising=False)
    monkeypatch.delenv("STEPS", raising=False)
    import nearby_notifier.config
    import nearby_notifier.main
    importlib.reload(nearby_notifier.config)
    importlib.reload(nearby_notifier.main)

    with pytest.raises(ValueError):
        nearby_notifier.main.build_notifier()
