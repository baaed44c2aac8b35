"""WiThrottle protocol engine with an MCP server front end."""

__version__ = "0.1.0"

from .delegate import ThrottleDelegate
from .models.config import ProtocolConfig
from .models.session import Direction, SessionState, SpeedStepMode, TrackPower
from .throttle import ProtocolEvent, WiThrottleProtocol
