"""Serial line transport, e.g. a WiThrottle peer behind a USB UART."""

from __future__ import annotations

import logging

import serial

from .base import Transport

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200
WRITE_TIMEOUT = 1.0


class SerialTransport(Transport):
    """Non-blocking reads from a serial port via pyserial."""

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUDRATE) -> None:
        super().__init__()
        self._port = port
        self._baudrate = baudrate
        self._serial: serial.Serial | None = None

    @property
    def port(self) -> str:
        return self._port

    def open(self) -> None:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        if self._connected:
            return
        try:
            self._serial = serial.Serial(
                self._port,
                self._baudrate,
                timeout=0,
                write_timeout=WRITE_TIMEOUT,
            )
        except serial.SerialException as e:
            raise ConnectionError(f"Could not open serial port {self._port}: {e}") from e
        self._connected = True
        logger.info("Opened %s at %d baud", self._port, self._baudrate)

    def close(self) -> None:
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._serial = None
            self._connected = False
            logger.info("Closed %s", self._port)

    def _receive(self) -> bytes | None:
        try:
            waiting = self._serial.in_waiting
            if not waiting:
                return None
            return self._serial.read(waiting)
        except serial.SerialException as e:
            logger.warning("Read from %s failed: %s", self._port, e)
            self.close()
            return None

    def _send(self, data: bytes) -> None:
        try:
            self._serial.write(data)
        except serial.SerialException as e:
            self.close()
            raise ConnectionError(f"Write to {self._port} failed: {e}") from e
