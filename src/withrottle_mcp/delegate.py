"""Delegate interface through which the engine reports decoded events.

Subclass :class:`ThrottleDelegate` and override the events you care
about; every method defaults to a no-op. Calls are synchronous and their
return values are ignored.
"""

from __future__ import annotations

from .models.session import Direction, SpeedStepMode, TrackPower


class ThrottleDelegate:
    """Receiver for events decoded from the WiThrottle peer."""

    def received_version(self, version: str) -> None:
        """``VN<version>``"""

    def fast_time_changed(self, time: int) -> None:
        """``PFT<time>``"""

    def fast_time_rate_changed(self, rate: float) -> None:
        """``PFT<time><;><rate>``"""

    def heartbeat_config(self, seconds: int) -> None:
        """``*<seconds>``"""

    def received_function_state(self, function: int, pressed: bool) -> None:
        """``MTA<addr><;>F<0|1><n>``"""

    def received_speed(self, speed: int) -> None:
        """``MTA<addr><;>V<n>``"""

    def received_direction(self, direction: Direction) -> None:
        """``MTA<addr><;>R<0|1>``"""

    def received_speed_steps(self, steps: SpeedStepMode) -> None:
        """``MTA<addr><;>s<n>``"""

    def received_web_port(self, port: int) -> None:
        """``PW<port>``"""

    def received_track_power(self, state: TrackPower) -> None:
        """``PPA<0|1|2>``"""

    def address_added(self, address: str, entry: str) -> None:
        """``MT+<addr><;><roster entry>``"""

    def address_removed(self, address: str, command: str) -> None:
        """``MT-<addr><;><d|r>``"""

    def address_steal_needed(self, address: str, entry: str) -> None:
        """``MTS<addr><;><addr>``"""
