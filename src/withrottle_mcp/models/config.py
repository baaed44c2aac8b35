"""Engine configuration."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BUFFER_SIZE = 1024
HEARTBEAT_DUTY = 0.8  # send acks at 80% of the peer's interval
FAST_CLOCK_PERIOD = 1.0  # seconds of real time per fast clock step


@dataclass
class ProtocolConfig:
    """Knobs that select between the protocol roles and framing limits.

    Attributes:
        server: Act in the peer's "server" role, terminating every
            outgoing command with an extra blank line.
        buffer_size: Capacity of the inbound line buffer in bytes.
        heartbeat_duty: Fraction of the required heartbeat interval after
            which an acknowledgement is sent.
        fast_clock_period: Real seconds between fast clock advances.
    """

    server: bool = False
    buffer_size: int = DEFAULT_BUFFER_SIZE
    heartbeat_duty: float = HEARTBEAT_DUTY
    fast_clock_period: float = FAST_CLOCK_PERIOD

    def __post_init__(self) -> None:
        if self.buffer_size < 2:
            raise ValueError(f"buffer_size must be at least 2, got {self.buffer_size}")
        if not 0 < self.heartbeat_duty <= 1:
            raise ValueError(
                f"heartbeat_duty must be in (0, 1], got {self.heartbeat_duty}"
            )
