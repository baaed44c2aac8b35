"""Tests for the MCP server tools, driven over an in-memory transport."""

from __future__ import annotations

import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from withrottle_mcp.transport.memory import MemoryTransport


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_instance.prompt.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("withrottle_mcp.server", None)
            import withrottle_mcp.server as server_mod

    return server_mod


def _connected_server():
    server = _get_server_module()
    transport = MemoryTransport()
    result = server._start_session(transport, "Cab 1")
    assert result["connected"] is True
    transport.clear_output()
    return server, transport


def test_tools_require_connection():
    server = _get_server_module()
    with pytest.raises(RuntimeError):
        server.set_speed(10)
    with pytest.raises(RuntimeError):
        server.poll()


def test_session_sends_device_name():
    server = _get_server_module()
    transport = MemoryTransport()
    server._start_session(transport, "Cab 1")
    assert transport.lines == ["NCab 1"]
    assert server.get_status()["device_name"] == "Cab 1"


def test_connect_over_tcp_uses_socket_transport():
    server = _get_server_module()
    transport = MemoryTransport()
    transport.address = "10.0.0.5:12090"
    with patch.object(server, "SocketTransport", return_value=transport) as cls:
        result = server.connect(host="10.0.0.5")
    cls.assert_called_once_with("10.0.0.5", 12090)
    assert result["connected"] is True
    assert result["address"] == "10.0.0.5:12090"

    again = server.connect()
    assert again["message"] == "Already connected"


def test_connect_again_after_peer_closed():
    """A session whose peer went away is replaced, not reported as live."""
    server, old = _connected_server()
    old.close()

    fresh = MemoryTransport()
    fresh.address = "10.0.0.6:12090"
    with patch.object(server, "SocketTransport", return_value=fresh):
        result = server.connect(host="10.0.0.6", device_name="Cab 2")
    assert result["connected"] is True
    assert "message" not in result
    assert result["address"] == "10.0.0.6:12090"
    assert fresh.lines == ["NCab 2"]
    assert server._transport is fresh
    assert server.get_status()["device_name"] == "Cab 2"


def test_select_and_drive():
    server, transport = _connected_server()
    assert server.select_locomotive("S3") == {"selected": "S3"}
    assert server.set_direction("reverse") == {"direction": "reverse"}
    assert server.set_speed(40) == {"speed": 40}
    assert server.set_function(0, True) == {"function": 0, "pressed": True}
    assert server.emergency_stop() == {"stopped": True}
    assert transport.lines == [
        "MT+S3<;>S3",
        "MTA*<;>R0",
        "MTA*<;>V40",
        "MTAS3<;>F10",
        "MTA*<;>X",
    ]


def test_rejected_input_sends_nothing():
    server, transport = _connected_server()
    assert "error" in server.set_speed(127)
    assert "error" in server.set_function(29)
    assert "error" in server.set_direction("sideways")
    assert "error" in server.select_locomotive("33")
    assert "error" in server.set_device_id("")
    assert transport.lines == []


def test_poll_reports_events():
    server, transport = _connected_server()
    transport.feed("VN2.0\n\nPPA1\n\nMTA*<;>s2\n\n")
    result = server.poll()
    assert result["changed"] is True
    assert result["locomotive_changed"] is True
    assert result["events"] == [
        {"event": "version", "version": "2.0"},
        {"event": "track_power", "state": "on"},
        {"event": "speed_steps", "steps": 2, "label": "28 steps"},
    ]
    assert server.poll()["events"] == []


def test_session_resource():
    server, transport = _connected_server()
    transport.feed("PFT36000<;>4.0\n")
    server.poll()
    data = json.loads(server.resource_session())
    assert data["connected"] is True
    assert data["fast_clock_rate"] == 4.0
    assert data["fast_time"] == "10:00"


def test_disconnect_releases_and_quits():
    server, transport = _connected_server()
    assert server.disconnect() == {"disconnected": True}
    assert transport.lines == ["MT-*<;>", "Q"]
    assert transport.connected is False
    assert json.loads(server.resource_session()) == {"connected": False}


def test_heartbeat_and_device_id():
    server, transport = _connected_server()
    assert server.require_heartbeat(True) == {"sent": True, "needed": True}
    assert server.set_device_id("ab:cd") == {"device_id": "ab:cd"}
    assert transport.lines == ["*+", "HUab:cd"]


def test_static_resources():
    server = _get_server_module()
    commands = json.loads(server.resource_commands())
    assert commands["speed"] == "MTA<addr-or-*><;>V<0-126>"
    steps = json.loads(server.resource_speed_steps())
    assert steps["16"] == "28 steps (Motorola)"


def test_prompts_mention_tools():
    server = _get_server_module()
    assert "select_locomotive" in server.drive_locomotive("L8504")
    assert "poll" in server.run_session(5)
