"""Command codes and builders for outgoing WiThrottle lines.

Every builder returns the line text without the trailing newline. The
transport appends the delimiter when the line is written. Invalid input
raises ``ValueError`` and nothing is built.
"""

from __future__ import annotations

from enum import Enum

from ..models.session import (
    Direction,
    MAX_FUNCTION,
    MAX_SPEED,
    MIN_FUNCTION,
    MIN_SPEED,
)

PROPERTY_SEPARATOR = "<;>"
WILDCARD_ADDRESS = "*"


class Command(str, Enum):
    """Line prefixes, shared by both directions where they overlap."""

    FAST_TIME = "PFT"
    TRACK_POWER = "PPA"
    HEARTBEAT = "*"
    VERSION = "VN"
    WEB_PORT = "PW"
    DEVICE_NAME = "N"
    DEVICE_ID = "HU"
    QUIT = "Q"
    LOCO_ADD = "MT+"
    LOCO_REMOVE = "MT-"
    LOCO_STEAL = "MTS"
    LOCO_ACTION = "MTA"


class Action(str, Enum):
    """Single-letter sub-actions following ``MTA<addr><;>``."""

    FUNCTION = "F"
    SPEED = "V"
    SPEED_STEPS = "s"
    DIRECTION = "R"
    EMERGENCY_STOP = "X"


def is_roster_address(address: str) -> bool:
    """Return True for ``S<digits>`` or ``L<digits>`` addresses."""
    return len(address) > 1 and address[0] in "SL" and address[1:].isdigit()


def _is_integer(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_address(address: str, allow_wildcard: bool = False) -> None:
    if allow_wildcard and address == WILDCARD_ADDRESS:
        return
    if not is_roster_address(address):
        raise ValueError(f"Address must be S<n> or L<n>, got {address!r}")


def build_add_locomotive(address: str, roster_name: str | None = None) -> str:
    """Build an ``MT+`` line acquiring a locomotive.

    Args:
        address: Roster address such as ``S3`` or ``L8504``.
        roster_name: Roster entry name; defaults to the address.
    """
    _check_address(address)
    entry = roster_name or address
    return f"{Command.LOCO_ADD.value}{address}{PROPERTY_SEPARATOR}{entry}"


def build_release_locomotive(address: str = WILDCARD_ADDRESS) -> str:
    """Build an ``MT-`` line releasing one locomotive, or all with ``*``."""
    _check_address(address, allow_wildcard=True)
    return f"{Command.LOCO_REMOVE.value}{address}{PROPERTY_SEPARATOR}"


def build_steal_locomotive(address: str) -> str:
    """Build an ``MTS`` line force-acquiring a contested address."""
    _check_address(address)
    return f"{Command.LOCO_STEAL.value}{address}{PROPERTY_SEPARATOR}{address}"


def build_action(address: str, action: Action, argument: str = "") -> str:
    """Build an ``MTA`` locomotive action line."""
    _check_address(address, allow_wildcard=True)
    return (
        f"{Command.LOCO_ACTION.value}{address}{PROPERTY_SEPARATOR}"
        f"{action.value}{argument}"
    )


def build_set_speed(speed: int, address: str = WILDCARD_ADDRESS) -> str:
    """Build a speed line.

    Args:
        speed: Speed step 0-126.
    """
    if not _is_integer(speed):
        raise ValueError(f"Speed must be an integer, got {speed!r}")
    if not MIN_SPEED <= speed <= MAX_SPEED:
        raise ValueError(f"Speed must be {MIN_SPEED}-{MAX_SPEED}, got {speed}")
    return build_action(address, Action.SPEED, str(speed))


def build_set_direction(direction: Direction, address: str = WILDCARD_ADDRESS) -> str:
    return build_action(address, Action.DIRECTION, str(int(Direction(direction))))


def build_set_function(
    function: int, pressed: bool, address: str = WILDCARD_ADDRESS
) -> str:
    """Build a function line (``F1nn`` pressed, ``F0nn`` released).

    Args:
        function: Function index 0-28.
        pressed: Whether the function key is pressed.
    """
    if not _is_integer(function):
        raise ValueError(f"Function must be an integer, got {function!r}")
    if not MIN_FUNCTION <= function <= MAX_FUNCTION:
        raise ValueError(
            f"Function must be {MIN_FUNCTION}-{MAX_FUNCTION}, got {function}"
        )
    return build_action(address, Action.FUNCTION, f"{1 if pressed else 0}{function}")


def build_emergency_stop(address: str = WILDCARD_ADDRESS) -> str:
    return build_action(address, Action.EMERGENCY_STOP)


def build_heartbeat() -> str:
    """Build the keep-alive acknowledgement."""
    return Command.HEARTBEAT.value


def build_require_heartbeat(needed: bool = True) -> str:
    """Build ``*+`` (heartbeat required) or ``*-`` (not required)."""
    return Command.HEARTBEAT.value + ("+" if needed else "-")


def build_device_name(name: str) -> str:
    if not name or "\n" in name:
        raise ValueError(f"Device name must be a non-empty single line, got {name!r}")
    return Command.DEVICE_NAME.value + name


def build_device_id(device_id: str) -> str:
    if not device_id or "\n" in device_id:
        raise ValueError(
            f"Device ID must be a non-empty single line, got {device_id!r}"
        )
    return Command.DEVICE_ID.value + device_id


def build_quit() -> str:
    return Command.QUIT.value
