"""Payload decoders for inbound WiThrottle lines.

Decoders never raise on malformed input. Numbers are read leniently: a
leading optional sign and digits are used and anything after them is
ignored, so ``"12abc"`` reads as 12 and ``"abc"`` reads as 0. Callers
that must tell a real zero from a parse failure check the raw text.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from ..models.session import (
    Direction,
    MAX_FUNCTION,
    SpeedStepMode,
    TrackPower,
    clamp_speed,
)
from .commands import PROPERTY_SEPARATOR, WILDCARD_ADDRESS

_INT_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

MAX_FAST_TIME = 2**53  # largest integer a float clock holds exactly
MAX_HEARTBEAT_INTERVAL = 24 * 3600
MAX_PORT = 65535


def to_int(text: str) -> int:
    """Parse the leading integer of ``text``, or 0 if there is none."""
    match = _INT_RE.match(text)
    if not match:
        return 0
    try:
        return int(match.group(1))
    except ValueError:  # past the interpreter's digit limit
        return 0


def to_float(text: str) -> float:
    """Parse the leading decimal number of ``text``.

    Returns 0.0 if there is none or it does not fit a finite float.
    """
    match = _FLOAT_RE.match(text)
    if not match:
        return 0.0
    value = float(match.group(1))
    return value if math.isfinite(value) else 0.0


def to_bounded_int(text: str, low: int, high: int) -> int:
    """Parse like :func:`to_int`, reading values outside ``[low, high]`` as 0."""
    value = to_int(text)
    return value if low <= value <= high else 0


@dataclass
class FastTimeUpdate:
    """Parsed ``PFT`` payload."""

    value: int
    rate: float | None = None


@dataclass
class FunctionState:
    """Parsed ``F<0|1><n>`` locomotive action."""

    function: int
    pressed: bool


@dataclass
class AddressEntry:
    """Parsed ``MT+``/``MT-``/``MTS`` payload: an address and its detail."""

    address: str
    detail: str


def _clock_value(text: str) -> int:
    return to_bounded_int(text, -MAX_FAST_TIME, MAX_FAST_TIME)


def parse_fast_time(payload: str) -> FastTimeUpdate:
    """Parse ``<value>`` or ``<value><;><rate>``."""
    p = payload.find(PROPERTY_SEPARATOR)
    if p > 0:
        value = payload[:p]
        rate = payload[p + len(PROPERTY_SEPARATOR):]
        return FastTimeUpdate(value=_clock_value(value), rate=to_float(rate))
    return FastTimeUpdate(value=_clock_value(payload))


def parse_heartbeat(payload: str) -> int:
    """Parse the required heartbeat interval in seconds.

    Intervals longer than a day read as 0, which disables the heartbeat.
    """
    return to_bounded_int(payload, -MAX_HEARTBEAT_INTERVAL, MAX_HEARTBEAT_INTERVAL)


def parse_web_port(payload: str) -> int:
    return to_bounded_int(payload, 0, MAX_PORT)


def parse_track_power(payload: str) -> TrackPower:
    if payload[:1] == "0":
        return TrackPower.OFF
    if payload[:1] == "1":
        return TrackPower.ON
    return TrackPower.UNKNOWN


def parse_address_entry(payload: str) -> AddressEntry:
    """Split ``<addr><;><detail>``; a missing separator leaves detail empty."""
    address, _, detail = payload.partition(PROPERTY_SEPARATOR)
    return AddressEntry(address=address, detail=detail)


def strip_action_address(remainder: str, selected_address: str) -> str | None:
    """Strip the ``<addr><;>`` prefix from an ``MTA`` remainder.

    The address must be the currently selected one or the wildcard.
    Returns the action text, or ``None`` if the line targets another
    locomotive.
    """
    candidates = [WILDCARD_ADDRESS]
    if selected_address:
        candidates.insert(0, selected_address)
    for address in candidates:
        prefix = address + PROPERTY_SEPARATOR
        if remainder.startswith(prefix):
            return remainder[len(prefix):]
    return None


def parse_function_state(argument: str) -> FunctionState | None:
    """Parse the text after ``F``: one state digit then the function index.

    ``"128"`` is function 28 pressed, ``"028"`` function 28 released,
    ``"00"`` function 0 released. A non-numeric index is rejected even
    though it reads as 0.
    """
    if len(argument) < 2:
        return None
    pressed = argument[0] == "1"
    digits = argument[1:]
    if not (digits.isascii() and digits.isdigit()):
        return None
    function = to_int(digits)
    if function > MAX_FUNCTION:
        return None
    return FunctionState(function=function, pressed=pressed)


def parse_speed(argument: str) -> int | None:
    """Parse the text after ``V``; out-of-range speeds become 0."""
    if not argument:
        return None
    return clamp_speed(to_int(argument))


def parse_speed_steps(argument: str) -> SpeedStepMode | None:
    """Parse the text after ``s``; unknown modes are dropped."""
    if not argument:
        return None
    try:
        return SpeedStepMode(to_int(argument))
    except ValueError:
        return None


def parse_direction(argument: str) -> Direction | None:
    """Parse the single digit after ``R``: ``0`` is reverse, anything else forward."""
    if len(argument) != 1:
        return None
    return Direction.REVERSE if argument == "0" else Direction.FORWARD
