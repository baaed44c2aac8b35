"""MCP server entry point for a WiThrottle throttle.

Exposes throttle tools, session resources, and prompts via the Model
Context Protocol using the official Python MCP SDK with stdio transport.
The server owns one engine and one transport; the client drives the
protocol by calling ``poll``.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any

from mcp.server.fastmcp import FastMCP

from .delegate import ThrottleDelegate
from .models.config import ProtocolConfig
from .models.session import (
    MAX_FUNCTION,
    MAX_SPEED,
    SPEED_STEP_LABELS,
    Direction,
    SpeedStepMode,
    TrackPower,
)
from .protocol.commands import WILDCARD_ADDRESS, is_roster_address
from .throttle import WiThrottleProtocol
from .transport.base import Transport
from .transport.socket_transport import SocketTransport

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 12090
DEFAULT_DEVICE_NAME = "WiThrottle MCP"
MAX_EVENTS = 500

mcp = FastMCP(
    "withrottle",
    instructions="MCP server for driving model trains over the WiThrottle protocol",
)


class RecordingDelegate(ThrottleDelegate):
    """Collect decoded events until the next ``poll`` drains them."""

    def __init__(self, maxlen: int = MAX_EVENTS) -> None:
        self.events: deque[dict[str, Any]] = deque(maxlen=maxlen)

    def _record(self, event: str, **data: Any) -> None:
        self.events.append({"event": event, **data})

    def drain(self) -> list[dict[str, Any]]:
        events = list(self.events)
        self.events.clear()
        return events

    def received_version(self, version: str) -> None:
        self._record("version", version=version)

    def fast_time_changed(self, time: int) -> None:
        self._record("fast_time", time=time)

    def fast_time_rate_changed(self, rate: float) -> None:
        self._record("fast_time_rate", rate=rate)

    def heartbeat_config(self, seconds: int) -> None:
        self._record("heartbeat", seconds=seconds)

    def received_function_state(self, function: int, pressed: bool) -> None:
        self._record("function", function=function, pressed=pressed)

    def received_speed(self, speed: int) -> None:
        self._record("speed", speed=speed)

    def received_direction(self, direction: Direction) -> None:
        self._record("direction", direction=direction.name.lower())

    def received_speed_steps(self, steps: SpeedStepMode) -> None:
        self._record("speed_steps", steps=int(steps), label=SPEED_STEP_LABELS[steps])

    def received_web_port(self, port: int) -> None:
        self._record("web_port", port=port)

    def received_track_power(self, state: TrackPower) -> None:
        self._record("track_power", state=state.name.lower())

    def address_added(self, address: str, entry: str) -> None:
        self._record("address_added", address=address, entry=entry)

    def address_removed(self, address: str, command: str) -> None:
        self._record("address_removed", address=address, command=command)

    def address_steal_needed(self, address: str, entry: str) -> None:
        self._record("steal_needed", address=address, entry=entry)


# Global connection state
_transport: Transport | None = None
_throttle: WiThrottleProtocol | None = None
_events = RecordingDelegate()


def _get_throttle() -> WiThrottleProtocol:
    """Get the connected engine, raising if not connected."""
    if _throttle is None or not _throttle.connected:
        raise RuntimeError(
            "Not connected to a WiThrottle server. Use the 'connect' tool first."
        )
    return _throttle


def _is_connected() -> bool:
    """True while the engine is up and its transport still has a peer."""
    return (
        _throttle is not None
        and _throttle.connected
        and _transport is not None
        and _transport.connected
    )


def _drop_stale_session() -> None:
    global _transport, _throttle
    if _throttle is not None:
        logger.info("Dropping stale session before reconnecting")
        _throttle.disconnect()
    if _transport is not None:
        _transport.close()
    _transport = None
    _throttle = None


def _start_session(
    transport: Transport, device_name: str, server_role: bool = False
) -> dict[str, Any]:
    global _transport, _throttle
    _events.drain()
    throttle = WiThrottleProtocol(ProtocolConfig(server=server_role), delegate=_events)
    throttle.connect(transport)
    if not throttle.set_device_name(device_name):
        transport.close()
        return {"connected": False, "error": f"Invalid device name {device_name!r}"}
    _transport = transport
    _throttle = throttle
    return {"connected": True, "device_name": device_name, "server_role": server_role}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    device_name: str = DEFAULT_DEVICE_NAME,
    server_role: bool = False,
) -> dict[str, Any]:
    """Connect to a WiThrottle server (JMRI, LNWI, ...) over TCP.

    Sends the device name once connected. There is no retry; call
    ``connect`` again if the server was not reachable.

    Args:
        host: Server host name or IP address.
        port: Server TCP port (JMRI defaults to 12090).
        device_name: Name shown for this throttle on the server.
        server_role: Terminate every command with an extra blank line.
    """
    if _is_connected():
        return {
            "connected": True,
            "message": "Already connected",
            "device_name": _throttle.state.device_name,
        }
    _drop_stale_session()

    transport = SocketTransport(host, port)
    transport.open()
    result = _start_session(transport, device_name, server_role)
    result["address"] = transport.address
    return result


@mcp.tool()
def connect_serial(
    port: str,
    baudrate: int = 115200,
    device_name: str = DEFAULT_DEVICE_NAME,
) -> dict[str, Any]:
    """Connect to a WiThrottle peer on a serial port.

    Args:
        port: Serial device, e.g. ``/dev/ttyUSB0`` or ``COM3``.
        baudrate: Line speed.
        device_name: Name shown for this throttle on the peer.
    """
    if _is_connected():
        return {"connected": True, "message": "Already connected"}
    _drop_stale_session()

    from .transport.serial_transport import SerialTransport

    transport = SerialTransport(port, baudrate)
    transport.open()
    result = _start_session(transport, device_name)
    result["port"] = port
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Release all locomotives, say goodbye, and close the connection."""
    global _transport, _throttle
    if _throttle is not None and _throttle.connected:
        _throttle.release_locomotive(WILDCARD_ADDRESS)
        _throttle.quit()
        _throttle.disconnect()
    if _transport is not None:
        _transport.close()
    _transport = None
    _throttle = None
    return {"disconnected": True}


@mcp.tool()
def poll() -> dict[str, Any]:
    """Process everything the server sent and run the clock and heartbeat.

    Call this regularly (at least every few seconds when the server
    requires heartbeats). Returns the events decoded since the last poll.
    """
    throttle = _get_throttle()
    changed = throttle.check()
    return {
        "changed": changed,
        "clock_changed": throttle.changes.clock,
        "heartbeat_changed": throttle.changes.heartbeat,
        "locomotive_changed": throttle.changes.locomotive,
        "events": _events.drain(),
        "connected": _transport is not None and _transport.connected,
    }


# ─── LOCOMOTIVE TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def select_locomotive(address: str) -> dict[str, Any]:
    """Acquire a locomotive and make it the one this throttle drives.

    Args:
        address: Roster address, ``S<n>`` for short or ``L<n>`` for long.
    """
    if not is_roster_address(address):
        return {"error": "Address must look like S3 or L8504"}
    throttle = _get_throttle()
    if not throttle.add_locomotive(address):
        return {"error": f"Failed to select {address}"}
    return {"selected": address}


@mcp.tool()
def release_locomotive(address: str = WILDCARD_ADDRESS) -> dict[str, Any]:
    """Release one locomotive, or all of them with ``*``."""
    throttle = _get_throttle()
    if not throttle.release_locomotive(address):
        return {"error": f"Failed to release {address}"}
    return {"released": address}


@mcp.tool()
def steal_locomotive(address: str) -> dict[str, Any]:
    """Take over a locomotive another throttle is holding.

    Use after a poll reports a ``steal_needed`` event.
    """
    if not is_roster_address(address):
        return {"error": "Address must look like S3 or L8504"}
    throttle = _get_throttle()
    if not throttle.steal_locomotive(address):
        return {"error": f"Failed to steal {address}"}
    return {"selected": address}


@mcp.tool()
def set_speed(speed: int) -> dict[str, Any]:
    """Set the speed of the selected locomotive.

    Args:
        speed: Speed step 0-126.
    """
    if not 0 <= speed <= MAX_SPEED:
        return {"error": f"Speed must be 0-{MAX_SPEED}"}
    throttle = _get_throttle()
    if not throttle.set_speed(speed):
        return {"error": "Failed to send speed"}
    return {"speed": throttle.get_speed()}


@mcp.tool()
def set_direction(direction: str) -> dict[str, Any]:
    """Set the travel direction.

    Args:
        direction: ``forward`` or ``reverse``.
    """
    try:
        value = Direction[direction.upper()]
    except KeyError:
        return {"error": "Direction must be 'forward' or 'reverse'"}
    throttle = _get_throttle()
    if not throttle.set_direction(value):
        return {"error": "Failed to send direction"}
    return {"direction": throttle.get_direction().name.lower()}


@mcp.tool()
def set_function(function: int, pressed: bool = True) -> dict[str, Any]:
    """Press or release a decoder function (lights, horn, bell, ...).

    Args:
        function: Function number 0-28.
        pressed: True to press, False to release.
    """
    if not 0 <= function <= MAX_FUNCTION:
        return {"error": f"Function must be 0-{MAX_FUNCTION}"}
    throttle = _get_throttle()
    if not throttle.set_function(function, pressed):
        return {"error": "Failed to send function"}
    return {"function": function, "pressed": pressed}


@mcp.tool()
def emergency_stop() -> dict[str, bool]:
    """Stop the selected locomotives immediately."""
    throttle = _get_throttle()
    return {"stopped": throttle.emergency_stop()}


# ─── SESSION TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def require_heartbeat(needed: bool = True) -> dict[str, bool]:
    """Ask the server to enforce (or stop enforcing) heartbeats."""
    throttle = _get_throttle()
    return {"sent": throttle.require_heartbeat(needed), "needed": needed}


@mcp.tool()
def set_device_id(device_id: str) -> dict[str, Any]:
    """Send a unique hardware ID so the server can recognise this throttle."""
    throttle = _get_throttle()
    if not throttle.set_device_id(device_id):
        return {"error": "Device ID must be a non-empty single line"}
    return {"device_id": device_id}


@mcp.tool()
def get_status() -> dict[str, Any]:
    """Return the current session state without talking to the server."""
    throttle = _get_throttle()
    return throttle.state.to_dict()


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("withrottle://session")
def resource_session() -> str:
    """Current session state, or an empty object when disconnected."""
    if _throttle is None or not _throttle.connected:
        return json.dumps({"connected": False})
    data = _throttle.state.to_dict()
    data["connected"] = True
    return json.dumps(data)


@mcp.resource("withrottle://protocol/commands")
def resource_commands() -> str:
    """Outgoing command formats."""
    return json.dumps({
        "select": "MT+<addr><;><roster-name>",
        "release": "MT-<addr-or-*><;>",
        "steal": "MTS<addr><;><addr>",
        "speed": "MTA<addr-or-*><;>V<0-126>",
        "direction": "MTA<addr-or-*><;>R<0|1>",
        "function": "MTA<addr><;>F<0|1><0-28>",
        "emergency_stop": "MTA<addr-or-*><;>X",
        "heartbeat": "*",
        "heartbeat_config": "*+ / *-",
        "device_name": "N<name>",
        "device_id": "HU<id>",
        "quit": "Q",
    })


@mcp.resource("withrottle://speed-steps")
def resource_speed_steps() -> str:
    """Speed step modes a command station may report."""
    return json.dumps({int(mode): label for mode, label in SPEED_STEP_LABELS.items()})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def drive_locomotive(address: str, target_speed: int = 40) -> str:
    """Guide the AI through taking control of a locomotive.

    Args:
        address: Roster address such as S3 or L8504.
        target_speed: Cruising speed step 0-126.
    """
    return f"""Take control of locomotive {address} and bring it up to speed {target_speed}.
Steps:
- select_locomotive with the address; poll and watch for a steal_needed event
- if a steal is needed, ask the user before calling steal_locomotive
- turn the headlight on with set_function 0
- set_direction forward, then raise speed in steps of about 10 with set_speed
- poll between each change so heartbeats keep flowing

If anything looks wrong, call emergency_stop."""


@mcp.prompt()
def run_session(minutes: int = 10) -> str:
    """Keep a throttle session alive and report the fast clock.

    Args:
        minutes: How long to keep polling.
    """
    return f"""Keep the WiThrottle session running for {minutes} minutes.
Call poll every couple of seconds. Report:
- fast clock changes (read withrottle://session for HH:MM)
- track power changes
- any locomotive speed or direction changes made by other throttles

Stop and disconnect when the time is up."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
