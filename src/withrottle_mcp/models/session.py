"""Session state model: everything the engine knows about one connection.

The record is mutated only by the protocol decoders and the periodic
timers. It is created with empty defaults, reset on ``connect()`` and
dropped together with the transport on ``disconnect()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum

MIN_SPEED = 0
MAX_SPEED = 126
MIN_FUNCTION = 0
MAX_FUNCTION = 28


class Direction(IntEnum):
    """Locomotive travel direction as encoded on the wire (``R0``/``R1``)."""

    REVERSE = 0
    FORWARD = 1


class TrackPower(IntEnum):
    """Layout track power state reported by ``PPA``."""

    OFF = 0
    ON = 1
    UNKNOWN = 2


class SpeedStepMode(IntEnum):
    """Speed step resolution negotiated with the command station."""

    STEPS_128 = 1
    STEPS_28 = 2
    STEPS_27 = 4
    STEPS_14 = 8
    STEPS_28_MOTOROLA = 16


SPEED_STEP_LABELS: dict[SpeedStepMode, str] = {
    SpeedStepMode.STEPS_128: "128 steps",
    SpeedStepMode.STEPS_28: "28 steps",
    SpeedStepMode.STEPS_27: "27 steps",
    SpeedStepMode.STEPS_14: "14 steps",
    SpeedStepMode.STEPS_28_MOTOROLA: "28 steps (Motorola)",
}


def clamp_speed(speed: int) -> int:
    """Coerce an out-of-range decoded speed to 0."""
    if speed < MIN_SPEED or speed > MAX_SPEED:
        return 0
    return speed


@dataclass
class ChangeFlags:
    """Per-poll change signals, cleared at the start of every ``check()``."""

    clock: bool = False
    heartbeat: bool = False
    locomotive: bool = False

    def reset(self) -> None:
        self.clock = False
        self.heartbeat = False
        self.locomotive = False

    def any(self) -> bool:
        return self.clock or self.heartbeat or self.locomotive


@dataclass
class SessionState:
    """Mutable state of a single WiThrottle session."""

    selected_address: str = ""
    current_speed: int = 0
    current_direction: Direction = Direction.FORWARD
    speed_step_mode: int = 0  # 0 until the peer reports one
    fast_clock_value: float = 0.0
    fast_clock_rate: float = 0.0
    heartbeat_interval: int = 0
    protocol_version: str = ""
    device_name: str = ""
    device_id: str = ""
    web_port: int = 0
    track_power: TrackPower = TrackPower.UNKNOWN
    functions: dict[int, bool] = field(default_factory=dict)

    def set_speed(self, speed: int) -> int:
        self.current_speed = clamp_speed(speed)
        return self.current_speed

    @property
    def heartbeat_enabled(self) -> bool:
        return self.heartbeat_interval > 0

    @property
    def fast_time_hours(self) -> int:
        """Hour of day (UTC) of the fast clock value."""
        return (int(self.fast_clock_value) // 3600) % 24

    @property
    def fast_time_minutes(self) -> int:
        """Minute of the hour of the fast clock value."""
        return (int(self.fast_clock_value) // 60) % 60

    def to_dict(self) -> dict:
        data = asdict(self)
        data["current_direction"] = self.current_direction.name.lower()
        data["track_power"] = self.track_power.name.lower()
        data["fast_time"] = f"{self.fast_time_hours:02d}:{self.fast_time_minutes:02d}"
        return data
