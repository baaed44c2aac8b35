"""Tests for the session state and configuration models."""

import pytest

from withrottle_mcp.models.config import ProtocolConfig
from withrottle_mcp.models.session import (
    ChangeFlags,
    Direction,
    SessionState,
    TrackPower,
    clamp_speed,
)
from withrottle_mcp.timers import IntervalTimer


def test_defaults():
    state = SessionState()
    assert state.selected_address == ""
    assert state.current_speed == 0
    assert state.current_direction == Direction.FORWARD
    assert state.heartbeat_enabled is False
    assert state.track_power == TrackPower.UNKNOWN


def test_clamp_speed():
    """Out-of-range speeds are coerced to 0, never rejected."""
    assert clamp_speed(126) == 126
    assert clamp_speed(127) == 0
    assert clamp_speed(-3) == 0
    state = SessionState()
    assert state.set_speed(300) == 0


def test_fast_time_wraps_day():
    state = SessionState(fast_clock_value=25 * 3600 + 5 * 60)
    assert state.fast_time_hours == 1
    assert state.fast_time_minutes == 5


def test_to_dict():
    state = SessionState(selected_address="S3", current_direction=Direction.REVERSE)
    data = state.to_dict()
    assert data["selected_address"] == "S3"
    assert data["current_direction"] == "reverse"
    assert data["track_power"] == "unknown"
    assert data["fast_time"] == "00:00"


def test_change_flags():
    flags = ChangeFlags()
    assert not flags.any()
    flags.locomotive = True
    assert flags.any()
    flags.reset()
    assert not flags.any()


def test_config_validation():
    assert ProtocolConfig().server is False
    with pytest.raises(ValueError):
        ProtocolConfig(buffer_size=1)
    with pytest.raises(ValueError):
        ProtocolConfig(heartbeat_duty=0)


def test_interval_timer():
    now = [10.0]
    timer = IntervalTimer(clock=lambda: now[0])
    assert timer.elapsed() == 0
    now[0] = 11.5
    assert timer.has_passed(1.5)
    timer.restart()
    assert not timer.has_passed(0.5)
