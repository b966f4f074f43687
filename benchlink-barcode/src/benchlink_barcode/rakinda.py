"""Rakinda LV3000U / LV3000H fixed-mount imager driver.

The LV3000 speaks a plain byte protocol: ``ESC 1`` starts scanning, ``ESC 0``
stops it, and both are acknowledged with ``0x06``. A decoded label follows the
start acknowledgement and ends with CR LF. Sending ``?`` is answered with
``!``, which serves as a presence check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from benchlink_core.identity import InstrumentIdentity
from benchlink_serial.diagnostics import LoggingSink, TrafficLogLevel
from benchlink_serial.engine import TransactionEngine
from benchlink_serial.reader import find_pattern
from benchlink_serial.transport import SerialConfig, SerialPortTransport

from benchlink_barcode.protocols import decode_label
from benchlink_barcode.session import SessionStateMachine

logger = logging.getLogger(__name__)

CMD_START_SCAN = b"\x1b\x31"
CMD_STOP_SCAN = b"\x1b\x30"
CMD_PING = b"?"
REPLY_PING = b"!"
ACK = b"\x06"
LABEL_TERMINATOR = b"\r\n"


@dataclass(frozen=True)
class RakindaLv3000Config:
    """Timing settings for an LV3000.

    Args:
        timeout: Seconds to wait for each acknowledgement and for the label.
    """

    timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


class RakindaLv3000:
    """Driver for the Rakinda LV3000 imager.

    Implements :class:`~benchlink_barcode.protocols.BarcodeScanner`. The LV3000
    has no wake, arm or sleep commands, so those session transitions do
    nothing.

    Args:
        engine: Transaction engine over the imager's serial port.
        config: Timing settings.
    """

    def __init__(
        self, engine: TransactionEngine, config: RakindaLv3000Config | None = None
    ) -> None:
        self._engine = engine
        self._config = config or RakindaLv3000Config()
        self._session = SessionStateMachine(self)

    @property
    def engine(self) -> TransactionEngine:
        """The transaction engine."""
        return self._engine

    @property
    def session(self) -> SessionStateMachine:
        """The capture session state machine."""
        return self._session

    def get_identity(self) -> InstrumentIdentity:
        """Return the instrument identity (manufacturer and model only)."""
        return InstrumentIdentity(manufacturer="Rakinda", model="LV3000", serial="", firmware="")

    def check_alive(self) -> None:
        """Open the port, send ``?``, expect ``!``, and close the port.

        Raises:
            PortUnavailableError: If the port cannot be opened.
            ProtocolTimeoutError: If the imager does not answer.
        """
        with self._engine.exclusive():
            self._engine.open()
            try:
                self._engine.transact(CMD_PING, REPLY_PING, self._config.timeout)
            finally:
                self._engine.close()

    def get_raw_payload(self) -> bytes:
        """Open the port, capture one label, and close the port.

        Returns:
            The label bytes including the CR LF terminator.
        """
        with self._engine.exclusive():
            self._engine.open()
            try:
                return self._session.run()
            finally:
                self._engine.close()

    def get_label(self) -> str:
        """Capture and decode a barcode label."""
        return decode_label(self.get_raw_payload(), ack=ACK)

    def close(self) -> None:
        """Close the serial port."""
        self._engine.close()

    # -- Session transitions -------------------------------------------------

    def wakeup(self) -> None:
        pass

    def arm_scan(self) -> None:
        pass

    def start_session(self) -> bytes:
        return self._engine.transact(CMD_START_SCAN, ACK, self._config.timeout)

    def carry_over(self, start_response: bytes) -> bytes:
        """Return label bytes that arrived in the same reads as the ACK."""
        index = find_pattern(start_response, ACK)
        if index < 0:
            return b""
        return start_response[index + len(ACK):]

    def capture(self, initial: bytes) -> bytes:
        return self._engine.expect(LABEL_TERMINATOR, self._config.timeout, initial)

    def stop_session(self) -> None:
        self._engine.transact(CMD_STOP_SCAN, ACK, self._config.timeout)

    def disarm_scan(self) -> None:
        pass

    def sleep(self) -> None:
        pass


def create_instrument(port: str, *, traffic_log: str = "normal", timeout: float = 5.0) -> RakindaLv3000:
    """Create a Rakinda LV3000 driver for a serial port.

    Args:
        port: Serial port name or pyserial URL.
        traffic_log: ``"verbose"``, ``"normal"`` or ``"none"``.
        timeout: Seconds to wait for each reply.

    Returns:
        The driver instance. The port is opened per operation.
    """
    sink = LoggingSink(TrafficLogLevel(traffic_log))
    transport = SerialPortTransport(SerialConfig(port, rtscts=False), sink=sink)
    return RakindaLv3000(TransactionEngine(transport), RakindaLv3000Config(timeout=timeout))
