"""WiThrottle protocol engine.

One :class:`WiThrottleProtocol` owns the line framer, the session state
and the two periodic timers for a single peer connection. The caller
drives it by calling :meth:`WiThrottleProtocol.check` from its own loop::

    throttle = WiThrottleProtocol()
    throttle.delegate = MyDelegate()
    throttle.connect(transport)
    throttle.set_device_name("Cab 1")
    while running:
        if throttle.check():
            redraw(throttle.state)

Each ``check()`` advances the fast clock, sends a heartbeat if one is
due, then drains every byte the transport has ready and dispatches each
complete line. Nothing in here blocks and no inbound line can raise.
"""

from __future__ import annotations

import logging
import math
import time
from enum import Enum
from typing import Callable

from .delegate import ThrottleDelegate
from .models.config import ProtocolConfig
from .models.session import ChangeFlags, Direction, SessionState
from .protocol import commands
from .protocol.commands import Action, Command, WILDCARD_ADDRESS
from .protocol.framing import LineFramer
from .protocol.parser import (
    parse_address_entry,
    parse_direction,
    parse_fast_time,
    parse_function_state,
    parse_heartbeat,
    parse_speed,
    parse_speed_steps,
    parse_track_power,
    parse_web_port,
    strip_action_address,
)
from .timers import IntervalTimer
from .transport.base import ENCODING, Transport

logger = logging.getLogger(__name__)


class ProtocolEvent(str, Enum):
    """Points at which the engine reports to its observer."""

    LINE_RECEIVED = "line_received"
    LINE_SENT = "line_sent"
    OVERFLOW = "overflow"
    UNRECOGNIZED = "unrecognized"


Observer = Callable[[ProtocolEvent, str], None]


class WiThrottleProtocol:
    """Poll-driven WiThrottle client/peer.

    Args:
        config: Role and framing settings; defaults to a client.
        delegate: Receiver for decoded events.
        observer: Optional ``observer(event, text)`` hook for tracing
            traffic and diagnostics.
        clock: Monotonic seconds source for the timers.
    """

    def __init__(
        self,
        config: ProtocolConfig | None = None,
        delegate: ThrottleDelegate | None = None,
        observer: Observer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ProtocolConfig()
        self.delegate = delegate
        self.observer = observer
        self.state = SessionState()
        self.changes = ChangeFlags()
        self._transport: Transport | None = None
        self._framer = LineFramer(self.config.buffer_size, on_overflow=self._on_overflow)
        self._fast_time_timer = IntervalTimer(clock)
        self._heartbeat_timer = IntervalTimer(clock)
        # prefix, minimum line length, handler; first match wins
        self._dispatch: list[tuple[str, int, Callable[[str], bool]]] = [
            (Command.FAST_TIME.value, 4, self._process_fast_time),
            (Command.TRACK_POWER.value, 4, self._process_track_power),
            (Command.HEARTBEAT.value, 2, self._process_heartbeat),
            (Command.VERSION.value, 3, self._process_protocol_version),
            (Command.WEB_PORT.value, 3, self._process_web_port),
            (Command.LOCO_ACTION.value, 9, self._process_locomotive_action),
            (Command.LOCO_ADD.value, 4, self._process_address_added),
            (Command.LOCO_REMOVE.value, 4, self._process_address_removed),
            (Command.LOCO_STEAL.value, 4, self._process_steal_needed),
        ]

    # ─── CONNECTION ──────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self._transport is not None

    def connect(self, transport: Transport) -> None:
        """Start a fresh session over ``transport``."""
        self.state = SessionState()
        self.changes.reset()
        self._framer.reset()
        self._fast_time_timer.restart()
        self._heartbeat_timer.restart()
        self._transport = transport

    def disconnect(self) -> None:
        """Drop the transport; later polls and sends are no-ops."""
        self._transport = None

    # ─── POLLING ─────────────────────────────────────────────────────

    def check(self) -> bool:
        """Run one poll cycle and return whether anything changed."""
        self.changes.reset()
        if self._transport is None:
            return False

        changed = self._check_fast_time()
        changed |= self._check_heartbeat()

        transport = self._transport
        while self._transport is transport and transport.is_data_available():
            line = self._framer.feed(transport.read_byte())
            if line is not None:
                changed |= self.process_command(line.decode(ENCODING, errors="replace"))

        return changed

    def _check_fast_time(self) -> bool:
        if not self._fast_time_timer.has_passed(self.config.fast_clock_period):
            return False
        self._fast_time_timer.restart()
        if self.state.fast_clock_rate == 0.0:
            return False
        advanced = self.state.fast_clock_value + self.state.fast_clock_rate
        if not math.isfinite(advanced):
            logger.warning(
                "Fast clock would overflow at rate %s, holding",
                self.state.fast_clock_rate,
            )
            return False
        self.state.fast_clock_value = advanced
        self.changes.clock = True
        return True

    def _check_heartbeat(self) -> bool:
        interval = self.state.heartbeat_interval
        if interval <= 0:
            return False
        if not self._heartbeat_timer.has_passed(self.config.heartbeat_duty * interval):
            return False
        self._heartbeat_timer.restart()
        self._send_command(commands.build_heartbeat())
        self.changes.heartbeat = True
        return True

    def _on_overflow(self, truncated: bytes) -> None:
        self._notify_observer(
            ProtocolEvent.OVERFLOW, truncated.decode(ENCODING, errors="replace")
        )

    def _notify_observer(self, event: ProtocolEvent, text: str) -> None:
        if self.observer is not None:
            self.observer(event, text)

    # ─── DISPATCH ────────────────────────────────────────────────────

    def process_command(self, line: str) -> bool:
        """Decode one complete line; return whether it changed anything."""
        logger.debug("<== %s", line)
        self._notify_observer(ProtocolEvent.LINE_RECEIVED, line)

        for prefix, min_length, handler in self._dispatch:
            if len(line) >= min_length and line.startswith(prefix):
                return handler(line[len(prefix):])

        # unknown commands are ignored so newer servers keep working
        self._notify_observer(ProtocolEvent.UNRECOGNIZED, line)
        return False

    def _process_fast_time(self, payload: str) -> bool:
        update = parse_fast_time(payload)
        if self.state.fast_clock_value == 0.0:
            logger.debug("Set fast time to %d", update.value)
        else:
            logger.debug(
                "Updating fast time (should be %d, is %s)",
                update.value,
                self.state.fast_clock_value,
            )
        self.state.fast_clock_value = float(update.value)
        if update.rate is not None:
            self.state.fast_clock_rate = update.rate
            logger.debug("Set clock rate to %s", update.rate)
        self.changes.clock = True

        if self.delegate:
            self.delegate.fast_time_changed(update.value)
            if update.rate is not None:
                self.delegate.fast_time_rate_changed(update.rate)
        return True

    def _process_heartbeat(self, payload: str) -> bool:
        seconds = parse_heartbeat(payload)
        if seconds <= 0:
            self.state.heartbeat_interval = 0
            return False
        self.state.heartbeat_interval = seconds
        self.changes.heartbeat = True
        if self.delegate:
            self.delegate.heartbeat_config(seconds)
        return True

    def _process_protocol_version(self, payload: str) -> bool:
        self.state.protocol_version = payload
        if self.delegate:
            self.delegate.received_version(payload)
        return True

    def _process_web_port(self, payload: str) -> bool:
        port = parse_web_port(payload)
        self.state.web_port = port
        if self.delegate:
            self.delegate.received_web_port(port)
        return True

    def _process_track_power(self, payload: str) -> bool:
        power = parse_track_power(payload)
        self.state.track_power = power
        if self.delegate:
            self.delegate.received_track_power(power)
        return True

    def _process_address_added(self, payload: str) -> bool:
        entry = parse_address_entry(payload)
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.address_added(entry.address, entry.detail)
        return True

    def _process_address_removed(self, payload: str) -> bool:
        entry = parse_address_entry(payload)
        if entry.address in (WILDCARD_ADDRESS, self.state.selected_address):
            self.state.selected_address = ""
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.address_removed(entry.address, entry.detail)
        return True

    def _process_steal_needed(self, payload: str) -> bool:
        entry = parse_address_entry(payload)
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.address_steal_needed(entry.address, entry.detail)
        return True

    # ─── LOCOMOTIVE ACTIONS ──────────────────────────────────────────

    def _process_locomotive_action(self, remainder: str) -> bool:
        action = strip_action_address(remainder, self.state.selected_address)
        if action is None:
            logger.debug("Ignoring action for another locomotive: %s", remainder)
            return False
        if not action:
            logger.debug("Insufficient action to process")
            return False

        code, argument = action[0], action[1:]
        if code == Action.FUNCTION.value:
            return self._process_function_state(argument)
        if code == Action.SPEED.value:
            return self._process_speed(argument)
        if code == Action.SPEED_STEPS.value:
            return self._process_speed_steps(argument)
        if code == Action.DIRECTION.value:
            return self._process_direction(argument)

        logger.debug("Unrecognized locomotive action %r", code)
        self._notify_observer(ProtocolEvent.UNRECOGNIZED, Command.LOCO_ACTION.value + remainder)
        return False

    def _process_function_state(self, argument: str) -> bool:
        state = parse_function_state(argument)
        if state is None:
            return False
        self.state.functions[state.function] = state.pressed
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.received_function_state(state.function, state.pressed)
        return True

    def _process_speed(self, argument: str) -> bool:
        speed = parse_speed(argument)
        if speed is None:
            return False
        self.state.set_speed(speed)
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.received_speed(speed)
        return True

    def _process_speed_steps(self, argument: str) -> bool:
        steps = parse_speed_steps(argument)
        if steps is None:
            return False
        self.state.speed_step_mode = int(steps)
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.received_speed_steps(steps)
        return True

    def _process_direction(self, argument: str) -> bool:
        direction = parse_direction(argument)
        if direction is None:
            return False
        self.state.current_direction = direction
        self.changes.locomotive = True
        if self.delegate:
            self.delegate.received_direction(direction)
        return True

    # ─── OUTGOING COMMANDS ───────────────────────────────────────────

    def _send_command(self, line: str) -> bool:
        if self._transport is None:
            logger.debug("Not connected, dropping %s", line)
            return False
        try:
            self._transport.write_line(line)
            if self.config.server:
                self._transport.write_line("")
        except ConnectionError as e:
            logger.error("Failed to send %s: %s", line, e)
            return False
        logger.debug("==> %s", line)
        self._notify_observer(ProtocolEvent.LINE_SENT, line)
        return True

    def _build_and_send(self, builder: Callable[..., str], *args) -> bool:
        try:
            line = builder(*args)
        except ValueError as e:
            logger.warning("Rejected command: %s", e)
            return False
        return self._send_command(line)

    def set_device_name(self, name: str) -> bool:
        if not self._build_and_send(commands.build_device_name, name):
            return False
        self.state.device_name = name
        return True

    def set_device_id(self, device_id: str) -> bool:
        if not self._build_and_send(commands.build_device_id, device_id):
            return False
        self.state.device_id = device_id
        return True

    def require_heartbeat(self, needed: bool = True) -> bool:
        return self._build_and_send(commands.build_require_heartbeat, needed)

    def add_locomotive(self, address: str) -> bool:
        """Acquire ``address`` (``S<n>``/``L<n>``) and make it the selected locomotive."""
        if not self._build_and_send(commands.build_add_locomotive, address):
            return False
        self.state.selected_address = address
        return True

    def steal_locomotive(self, address: str) -> bool:
        if not self._build_and_send(commands.build_steal_locomotive, address):
            return False
        self.state.selected_address = address
        return True

    def release_locomotive(self, address: str = WILDCARD_ADDRESS) -> bool:
        if not self._build_and_send(commands.build_release_locomotive, address):
            return False
        if address in (WILDCARD_ADDRESS, self.state.selected_address):
            self.state.selected_address = ""
        return True

    def set_speed(self, speed: int) -> bool:
        """Send a speed of 0-126; anything else is rejected unsent."""
        if not self._build_and_send(commands.build_set_speed, speed):
            return False
        self.state.current_speed = speed
        return True

    def get_speed(self) -> int:
        return self.state.current_speed

    def set_direction(self, direction: Direction) -> bool:
        if not self._build_and_send(commands.build_set_direction, direction):
            return False
        self.state.current_direction = Direction(direction)
        return True

    def get_direction(self) -> Direction:
        return self.state.current_direction

    def set_function(self, function: int, pressed: bool) -> bool:
        """Press or release function 0-28 on the selected locomotive."""
        address = self.state.selected_address or WILDCARD_ADDRESS
        return self._build_and_send(commands.build_set_function, function, pressed, address)

    def emergency_stop(self) -> bool:
        return self._build_and_send(commands.build_emergency_stop)

    def quit(self) -> bool:
        """Tell the peer this throttle is leaving."""
        return self._build_and_send(commands.build_quit)

    # ─── FAST CLOCK ──────────────────────────────────────────────────

    def fast_time_hours(self) -> int:
        return self.state.fast_time_hours

    def fast_time_minutes(self) -> int:
        return self.state.fast_time_minutes

    def fast_time_rate(self) -> float:
        return self.state.fast_clock_rate
