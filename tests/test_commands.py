"""Tests for outgoing command builders."""

import pytest

from withrottle_mcp.models.session import Direction
from withrottle_mcp.protocol.commands import (
    PROPERTY_SEPARATOR,
    Command,
    build_add_locomotive,
    build_device_id,
    build_device_name,
    build_emergency_stop,
    build_heartbeat,
    build_quit,
    build_release_locomotive,
    build_require_heartbeat,
    build_set_direction,
    build_set_function,
    build_set_speed,
    build_steal_locomotive,
    is_roster_address,
)


def test_separator():
    assert PROPERTY_SEPARATOR == "<;>"


def test_command_prefixes():
    """Key prefixes match the wire format."""
    assert Command.FAST_TIME == "PFT"
    assert Command.LOCO_ACTION == "MTA"
    assert Command.LOCO_ADD == "MT+"
    assert Command.HEARTBEAT == "*"


def test_roster_address():
    assert is_roster_address("S3")
    assert is_roster_address("L8504")
    assert not is_roster_address("S")
    assert not is_roster_address("X12")
    assert not is_roster_address("Labc")
    assert not is_roster_address("*")


def test_build_add_locomotive():
    """Roster name defaults to the address."""
    assert build_add_locomotive("S3") == "MT+S3<;>S3"
    assert build_add_locomotive("L8504", "Big Boy") == "MT+L8504<;>Big Boy"


def test_add_locomotive_invalid_address():
    with pytest.raises(ValueError):
        build_add_locomotive("12")
    with pytest.raises(ValueError):
        build_add_locomotive("*")


def test_build_release():
    assert build_release_locomotive() == "MT-*<;>"
    assert build_release_locomotive("L41") == "MT-L41<;>"


def test_build_steal():
    assert build_steal_locomotive("S3") == "MTSS3<;>S3"


def test_build_set_speed():
    assert build_set_speed(0) == "MTA*<;>V0"
    assert build_set_speed(126) == "MTA*<;>V126"
    assert build_set_speed(5, "S3") == "MTAS3<;>V5"


def test_set_speed_bounds():
    """Speeds outside 0-126 should raise."""
    with pytest.raises(ValueError):
        build_set_speed(127)
    with pytest.raises(ValueError):
        build_set_speed(-1)


def test_set_speed_requires_integer():
    """Fractional or boolean speeds are not speed steps."""
    with pytest.raises(ValueError):
        build_set_speed(50.5)
    with pytest.raises(ValueError):
        build_set_speed(True)
    with pytest.raises(ValueError):
        build_set_function(2.0, True)


def test_build_set_direction():
    assert build_set_direction(Direction.FORWARD) == "MTA*<;>R1"
    assert build_set_direction(Direction.REVERSE) == "MTA*<;>R0"


def test_build_set_function():
    """Pressed functions encode as F1nn, released as F0nn."""
    assert build_set_function(0, True, "S3") == "MTAS3<;>F10"
    assert build_set_function(28, False, "S3") == "MTAS3<;>F028"


def test_set_function_bounds():
    with pytest.raises(ValueError):
        build_set_function(29, True)
    with pytest.raises(ValueError):
        build_set_function(-1, True)


def test_build_emergency_stop():
    assert build_emergency_stop() == "MTA*<;>X"


def test_heartbeat_commands():
    assert build_heartbeat() == "*"
    assert build_require_heartbeat(True) == "*+"
    assert build_require_heartbeat(False) == "*-"


def test_device_identification():
    assert build_device_name("Cab 1") == "NCab 1"
    assert build_device_id("00:11:22") == "HU00:11:22"
    assert build_quit() == "Q"


def test_device_name_rejects_newline():
    with pytest.raises(ValueError):
        build_device_name("two\nlines")
    with pytest.raises(ValueError):
        build_device_id("")
