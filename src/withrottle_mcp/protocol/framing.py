"""Incremental line framer for the newline-delimited WiThrottle stream.

Bytes are appended one at a time to a fixed-capacity buffer::

    +-----------------------------------------+----+
    | line bytes (at most capacity - 1)       | \n |
    +-----------------------------------------+----+

- A ``\\n`` completes the buffered line. An empty buffer at a delimiter
  yields nothing, which absorbs the second newline a server-role peer
  sends after every command.
- When the cursor reaches ``capacity - 1`` without a delimiter the
  truncated content is reported as an overflow and discarded.
- There is no timeout: an unterminated line waits for more bytes.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..models.config import DEFAULT_BUFFER_SIZE

logger = logging.getLogger(__name__)

DELIMITER = 0x0A  # "\n"


class LineFramer:
    """Split a byte stream into lines using a bounded, reusable buffer.

    Usage::

        framer = LineFramer()
        for b in data:
            line = framer.feed(b)
            if line is not None:
                handle(line)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_BUFFER_SIZE,
        on_overflow: Callable[[bytes], None] | None = None,
    ) -> None:
        if capacity < 2:
            raise ValueError(f"Line buffer capacity must be at least 2, got {capacity}")
        self._capacity = capacity
        self._buffer = bytearray(capacity)
        self._cursor = 0
        self._on_overflow = on_overflow
        self.overflow_count = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pending(self) -> int:
        """Number of bytes buffered for the line in progress."""
        return self._cursor

    def reset(self) -> None:
        self._cursor = 0

    def feed(self, byte: int) -> bytes | None:
        """Append one byte; return a completed line, or ``None``.

        The returned ``bytes`` is a copy, so it stays valid after the
        buffer is reused for the next line.
        """
        if byte == DELIMITER:
            line = None
            if self._cursor:
                line = bytes(self._buffer[: self._cursor])
            self._cursor = 0
            return line

        self._buffer[self._cursor] = byte
        self._cursor += 1
        if self._cursor == self._capacity - 1:
            self._overflow()
        return None

    def feed_bytes(self, data: bytes) -> list[bytes]:
        """Feed a chunk of bytes and return every line it completed."""
        lines: list[bytes] = []
        for b in data:
            line = self.feed(b)
            if line is not None:
                lines.append(line)
        return lines

    def _overflow(self) -> None:
        truncated = bytes(self._buffer[: self._cursor])
        self._cursor = 0
        self.overflow_count += 1
        logger.warning(
            "Line too long (%d bytes), discarded: %r...", len(truncated), truncated[:40]
        )
        if self._on_overflow is not None:
            self._on_overflow(truncated)
