"""TCP socket transport to a WiThrottle server such as JMRI."""

from __future__ import annotations

import logging
import select
import socket

from .base import Transport

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5.0
RECV_SIZE = 1024


class SocketTransport(Transport):
    """Non-blocking reads over a TCP connection.

    Usage::

        transport = SocketTransport("192.168.1.20", 12090)
        transport.open()
        throttle.connect(transport)
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        super().__init__()
        self._host = host
        self._port = port
        self._timeout = timeout
        self._sock: socket.socket | None = None

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    def open(self) -> None:
        """Connect to the server.

        Raises:
            ConnectionError: If the server cannot be reached.
        """
        if self._connected:
            return
        try:
            self._sock = socket.create_connection(
                (self._host, self._port), timeout=self._timeout
            )
        except OSError as e:
            raise ConnectionError(
                f"Could not connect to WiThrottle server at {self.address}: {e}"
            ) from e
        self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._connected = True
        logger.info("Connected to %s", self.address)

    def close(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            self._connected = False
            logger.info("Disconnected from %s", self.address)

    def _receive(self) -> bytes | None:
        readable, _, _ = select.select([self._sock], [], [], 0)
        if not readable:
            return None
        try:
            chunk = self._sock.recv(RECV_SIZE)
        except OSError as e:
            logger.warning("Read from %s failed: %s", self.address, e)
            self.close()
            return None
        if not chunk:
            logger.info("Server %s closed the connection", self.address)
            self.close()
            return None
        return chunk

    def _send(self, data: bytes) -> None:
        try:
            self._sock.sendall(data)
        except OSError as e:
            self.close()
            raise ConnectionError(f"Write to {self.address} failed: {e}") from e
