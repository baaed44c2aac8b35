"""Byte stream abstraction the protocol engine reads from and writes to."""

from __future__ import annotations

import logging
from collections import deque

logger = logging.getLogger(__name__)

LINE_ENDING = b"\n"
ENCODING = "ascii"


class Transport:
    """Non-blocking, line-writing byte stream.

    Subclasses implement :meth:`open`, :meth:`close`, :meth:`_receive`
    and :meth:`_send`. Received bytes are queued here so the engine can
    consume them one at a time without ever blocking.
    """

    def __init__(self) -> None:
        self._rx: deque[int] = deque()
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def open(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def is_data_available(self) -> bool:
        """Return True if :meth:`read_byte` can return a byte right now."""
        if self._rx:
            return True
        if not self._connected:
            return False
        chunk = self._receive()
        if chunk:
            self._rx.extend(chunk)
        return bool(self._rx)

    def read_byte(self) -> int:
        """Return the next received byte.

        Raises:
            BlockingIOError: If no byte is available.
        """
        if not self._rx and not self.is_data_available():
            raise BlockingIOError("No data available")
        return self._rx.popleft()

    def write_line(self, text: str) -> None:
        """Write ``text`` followed by the line delimiter.

        Raises:
            ConnectionError: If the transport is closed or the write fails.
        """
        if not self._connected:
            raise ConnectionError("Transport is not connected")
        self._send(text.encode(ENCODING, errors="replace") + LINE_ENDING)

    def _receive(self) -> bytes | None:
        """Return whatever bytes are ready without blocking."""
        raise NotImplementedError

    def _send(self, data: bytes) -> None:
        raise NotImplementedError
