"""Data models for session state and engine configuration."""

from .session import (
    ChangeFlags,
    Direction,
    SessionState,
    SpeedStepMode,
    TrackPower,
)
from .config import ProtocolConfig
