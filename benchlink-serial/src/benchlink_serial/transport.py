"""Byte transport protocol and the pyserial-backed implementation.

This module defines the :class:`ByteTransport` protocol, which specifies the
half-duplex byte channel the transaction engine drives, and
:class:`SerialPortTransport`, which implements it on top of pyserial.

Implementations include:
- :class:`SerialPortTransport`: pyserial transport for real hardware, and for
  ``socket://`` / ``loop://`` URLs understood by ``serial.serial_for_url``
- :class:`benchlink_serial.emulator.ByteDeviceEmulator`: in-process emulators
  used by the instrument packages' tests
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import serial

from benchlink_core.errors import DeviceClosedError, PortUnavailableError

from benchlink_serial.diagnostics import DiagnosticSink, Direction, report

logger = logging.getLogger(__name__)

_PARITIES = {
    "N": serial.PARITY_NONE,
    "E": serial.PARITY_EVEN,
    "O": serial.PARITY_ODD,
    "M": serial.PARITY_MARK,
    "S": serial.PARITY_SPACE,
}
_STOPBITS = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}


class ByteTransport(Protocol):
    """Protocol for a half-duplex byte channel.

    This is a structural subtyping protocol. Any class that implements the
    members below is a valid transport for
    :class:`benchlink_serial.engine.TransactionEngine`.

    Reads never block: :meth:`read_available` only drains what the channel has
    already buffered. Waiting for data is the engine's job.
    """

    @property
    def name(self) -> str:
        """Human readable channel name used in diagnostics."""
        ...

    @property
    def is_open(self) -> bool:
        """Return True while the channel is usable."""
        ...

    def open(self) -> None:
        """Open the channel and discard anything buffered beforehand.

        Does nothing if the channel is already open.
        """
        ...

    def write(self, data: bytes) -> None:
        """Transmit raw bytes.

        Args:
            data: Bytes to send.
        """
        ...

    def bytes_available(self) -> int:
        """Return the number of received bytes waiting to be drained."""
        ...

    def read_available(self, max_bytes: int | None = None) -> bytes:
        """Drain currently buffered bytes without blocking.

        Args:
            max_bytes: Upper bound on the number of bytes returned, or None
                for everything currently available.

        Returns:
            The drained bytes, possibly empty.
        """
        ...

    def discard_buffers(self) -> None:
        """Drop any bytes waiting in the input and output buffers."""
        ...

    def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...


@dataclass(frozen=True)
class SerialConfig:
    """Serial line settings for one instrument connection.

    The defaults are 9600 baud, 8 data bits, no parity and one stop bit, which
    every supported instrument uses. The one-second read/write timeouts are a
    safety net beneath the engine's own deadline accounting.

    Args:
        port: Device path (``/dev/ttyACM0``, ``COM3``) or a pyserial URL
            (``socket://127.0.0.1:7000``, ``loop://``).
        baudrate: Line speed in baud.
        bytesize: Data bits (5-8).
        parity: One of ``"N"``, ``"E"``, ``"O"``, ``"M"``, ``"S"``.
        stopbits: 1, 1.5 or 2.
        rtscts: Enable RTS/CTS hardware flow control.
        read_timeout: Transport read timeout in seconds.
        write_timeout: Transport write timeout in seconds.
    """

    port: str
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "N"
    stopbits: float = 1
    rtscts: bool = False
    read_timeout: float = 1.0
    write_timeout: float = 1.0

    def __post_init__(self) -> None:
        if not self.port:
            raise ValueError("port must be non-empty")
        if self.baudrate <= 0:
            raise ValueError("baudrate must be > 0")
        if self.bytesize not in (5, 6, 7, 8):
            raise ValueError(f"bytesize must be 5-8, got {self.bytesize}")
        if self.parity not in _PARITIES:
            raise ValueError(f"parity must be one of {sorted(_PARITIES)}, got {self.parity!r}")
        if self.stopbits not in _STOPBITS:
            raise ValueError(f"stopbits must be 1, 1.5 or 2, got {self.stopbits}")
        if self.read_timeout < 0 or self.write_timeout < 0:
            raise ValueError("timeouts must be >= 0")


class SerialPortTransport:
    """Byte transport backed by pyserial.

    The port is opened with ``serial.serial_for_url`` so plain device paths
    and pyserial URL handlers are both accepted. Input and output buffers are
    discarded on open: bytes that were sitting in the port beforehand belong to
    no transaction.

    Args:
        config: Serial line settings.
        sink: Optional diagnostic sink receiving every written and drained
            chunk.

    Example:
        >>> transport = SerialPortTransport(SerialConfig("/dev/ttyACM0", rtscts=True))
        >>> transport.open()
        >>> transport.write(b"\\x00")
        >>> transport.close()
    """

    def __init__(self, config: SerialConfig, sink: DiagnosticSink | None = None) -> None:
        self._config = config
        self._sink = sink
        self._serial: Any = None

    # -- Properties ----------------------------------------------------------

    @property
    def config(self) -> SerialConfig:
        """The serial line settings."""
        return self._config

    @property
    def name(self) -> str:
        """The configured port name."""
        return self._config.port

    @property
    def is_open(self) -> bool:
        """Return True if the port is currently open."""
        return self._serial is not None and bool(self._serial.is_open)

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the port and discard stale buffered bytes.

        Does nothing if the port is already open.

        Raises:
            PortUnavailableError: If the port cannot be opened.
        """
        if self.is_open:
            return

        cfg = self._config
        logger.debug("Opening serial port (%s)", cfg.port)
        try:
            port = serial.serial_for_url(
                cfg.port,
                baudrate=cfg.baudrate,
                bytesize=cfg.bytesize,
                parity=_PARITIES[cfg.parity],
                stopbits=_STOPBITS[cfg.stopbits],
                rtscts=cfg.rtscts,
                timeout=cfg.read_timeout,
                write_timeout=cfg.write_timeout,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise PortUnavailableError(f"Failed to open serial port {cfg.port!r}: {exc}") from exc

        self._serial = port
        try:
            self.discard_buffers()
        except serial.SerialException as exc:
            self.close()
            raise PortUnavailableError(
                f"Failed to reset buffers on serial port {cfg.port!r}: {exc}"
            ) from exc

    def close(self) -> None:
        """Discard buffers and close the port.

        Safe to call multiple times, and on a transport that was never
        opened. Errors raised while closing are logged and swallowed so they
        never mask the failure that triggered the close.
        """
        port = self._serial
        if port is None:
            return
        self._serial = None
        try:
            if port.is_open:
                logger.debug("Closing serial port (%s)", self._config.port)
                port.reset_input_buffer()
                port.reset_output_buffer()
            port.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing serial port (%s): %s", self._config.port, exc)

    def __enter__(self) -> SerialPortTransport:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- Transport interface -------------------------------------------------

    def write(self, data: bytes) -> None:
        """Send bytes to the instrument.

        Raises:
            DeviceClosedError: If the port is not open.
        """
        port = self._require_open()
        report(self._sink, self.name, Direction.OUT, data)
        port.write(data)
        port.flush()

    def bytes_available(self) -> int:
        """Return the number of bytes waiting in the input buffer."""
        port = self._require_open()
        count: int = port.in_waiting
        return count

    def read_available(self, max_bytes: int | None = None) -> bytes:
        """Drain buffered bytes without blocking.

        Args:
            max_bytes: Upper bound on bytes returned, or None for all.

        Returns:
            The drained bytes, possibly empty.
        """
        port = self._require_open()
        data = bytearray()
        # URL handlers such as socket:// report readiness (0 or 1) rather than
        # a byte count, so keep draining until nothing is waiting.
        while True:
            count: int = port.in_waiting
            if max_bytes is not None:
                count = min(count, max_bytes - len(data))
            if count <= 0:
                break
            chunk = port.read(count)
            if not chunk:
                break
            data += chunk
        report(self._sink, self.name, Direction.IN, bytes(data))
        return bytes(data)

    def discard_buffers(self) -> None:
        """Drop pending input and output bytes."""
        port = self._require_open()
        port.reset_input_buffer()
        port.reset_output_buffer()

    # -- Private helpers -----------------------------------------------------

    def _require_open(self) -> Any:
        if self._serial is None or not self._serial.is_open:
            raise DeviceClosedError(f"Serial port {self._config.port!r} is not open")
        return self._serial
