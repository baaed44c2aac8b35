"""In-memory transport for tests and loopback use."""

from __future__ import annotations

from .base import ENCODING, Transport


class MemoryTransport(Transport):
    """A transport backed by Python buffers instead of a device.

    Inbound bytes are queued with :meth:`feed`; everything the engine
    writes is kept in :attr:`output`.

    Usage::

        transport = MemoryTransport()
        transport.feed("PFT120<;>2.0\\n\\n")
        throttle.connect(transport)
        throttle.check()
        assert transport.lines == []
    """

    def __init__(self, connected: bool = True) -> None:
        super().__init__()
        self._connected = connected
        self.output = bytearray()

    def open(self) -> None:
        self._connected = True

    def close(self) -> None:
        self._connected = False

    def feed(self, data: bytes | str) -> None:
        """Queue bytes as if the peer had sent them."""
        if isinstance(data, str):
            data = data.encode(ENCODING)
        self._rx.extend(data)

    @property
    def lines(self) -> list[str]:
        """Written lines, including blank terminator lines."""
        text = self.output.decode(ENCODING, errors="replace")
        return text.split("\n")[:-1]

    def clear_output(self) -> None:
        self.output.clear()

    def _receive(self) -> bytes | None:
        return None

    def _send(self, data: bytes) -> None:
        self.output.extend(data)
