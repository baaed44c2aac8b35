"""Byte stream transports: TCP socket, serial port, and in-memory."""

from .base import Transport
from .memory import MemoryTransport
from .socket_transport import SocketTransport
