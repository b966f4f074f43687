"""Zebra MS4717 fixed-mount imager driver.

The MS4717 is driven through Zebra's Simple Serial Interface (SSI): every host
command is an SSI frame, and the imager answers with an ACK (``0xD0``) or NAK
(``0xD1``) packet. Replies are never parsed. The driver waits for the ACK
byte and, when that wait times out, checks the opcode position of the reply
for a NAK.

A capture cycle is::

    wake-up byte -> SCAN_ENABLE -> START_SESSION -> <payload>
    -> STOP_SESSION -> SCAN_DISABLE -> SLEEP

The serial port is opened for each capture and closed afterwards, whether the
capture succeeded or not.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable

from benchlink_core.errors import ProtocolTimeoutError, SsiNakError
from benchlink_core.identity import InstrumentIdentity
from benchlink_serial.diagnostics import LoggingSink, TrafficLogLevel
from benchlink_serial.engine import TransactionEngine
from benchlink_serial.ssi import ACK, NAK, SsiOpcode, encode_frame, frame_size
from benchlink_serial.transport import SerialConfig, SerialPortTransport

from benchlink_barcode.protocols import decode_label
from benchlink_barcode.session import SessionStateMachine

logger = logging.getLogger(__name__)

WAKEUP_BYTE = b"\x00"


@dataclass(frozen=True)
class ZebraMs4717Config:
    """Timing and capture settings for an MS4717.

    Args:
        command_timeout: Seconds to wait for the ACK of one SSI command.
        capture_timeout: Seconds to wait for the barcode payload.
        wakeup_settle: Seconds to wait after the wake-up byte. The imager
            sends no reply to it.
        terminator: Byte sequence ending the payload. Empty collects
            everything that arrives within ``capture_timeout``.
    """

    command_timeout: float = 1.0
    capture_timeout: float = 5.0
    wakeup_settle: float = 0.1
    terminator: bytes = b""

    def __post_init__(self) -> None:
        if self.command_timeout <= 0:
            raise ValueError("command_timeout must be > 0")
        if self.capture_timeout <= 0:
            raise ValueError("capture_timeout must be > 0")
        if self.wakeup_settle < 0:
            raise ValueError("wakeup_settle must be >= 0")


class ZebraMs4717:
    """Driver for the Zebra MS4717 imager.

    Implements :class:`~benchlink_barcode.protocols.BarcodeScanner` and
    :class:`~benchlink_barcode.session.ScanSessionDevice`.

    Args:
        engine: Transaction engine over the imager's serial port. The port
            does not need to be open; captures open and close it.
        config: Timing and capture settings.
    """

    def __init__(self, engine: TransactionEngine, config: ZebraMs4717Config | None = None) -> None:
        self._engine = engine
        self._config = config or ZebraMs4717Config()
        self._session = SessionStateMachine(self)
        self._ack_remaining = 0

    @property
    def engine(self) -> TransactionEngine:
        """The transaction engine."""
        return self._engine

    @property
    def session(self) -> SessionStateMachine:
        """The capture session state machine."""
        return self._session

    def get_identity(self) -> InstrumentIdentity:
        """Return the instrument identity.

        The imager has no identification command over SSI, so only the
        manufacturer and model are reported.
        """
        return InstrumentIdentity(manufacturer="Zebra", model="MS4717", serial="", firmware="")

    # -- Capture -------------------------------------------------------------

    def get_raw_payload(self) -> bytes:
        """Open the port, run one capture session, and close the port.

        Returns:
            The bytes received during the capture window.

        Raises:
            PortUnavailableError: If the port cannot be opened.
            ProtocolTimeoutError: If a command was not acknowledged or no
                payload arrived.
            SessionCleanupError: If the capture succeeded but the imager
                could not be returned to sleep.
        """
        with self._engine.exclusive():
            self._engine.open()
            try:
                return self._session.run()
            finally:
                self._engine.close()

    def get_label(self) -> str:
        """Capture and decode a barcode label."""
        return decode_label(self.get_raw_payload())

    def close(self) -> None:
        """Close the serial port."""
        self._engine.close()

    # -- SSI transport -------------------------------------------------------

    def query(
        self,
        opcode: int,
        params: Iterable[int] = b"",
        expected: int = ACK,
        timeout: float | None = None,
    ) -> bytes:
        """Send one SSI command and wait for the expected reply byte.

        Args:
            opcode: SSI opcode.
            params: Parameter bytes.
            expected: Reply byte marking success.
            timeout: Seconds to wait. Defaults to the configured command
                timeout.

        Returns:
            Every byte received in reply.

        Raises:
            SsiNakError: If the imager answered with a NAK instead.
            ProtocolTimeoutError: If nothing matching arrived in time.
        """
        frame = encode_frame(opcode, params)
        wait = self._config.command_timeout if timeout is None else timeout
        try:
            return self._engine.transact(frame, bytes([expected]), wait)
        except ProtocolTimeoutError as exc:
            # Reply opcode follows the length byte.
            if expected != NAK and exc.received[1:2] == bytes([NAK]):
                raise SsiNakError(
                    f"MS4717 rejected opcode 0x{opcode:02X} (NAK): {exc.received.hex(' ').upper()}"
                ) from exc
            raise

    # -- SSI commands --------------------------------------------------------

    def aim_off(self) -> None:
        """Deactivate the aim pattern."""
        self.query(SsiOpcode.AIM_OFF)

    def aim_on(self) -> None:
        """Activate the aim pattern."""
        self.query(SsiOpcode.AIM_ON)

    def beep(self, beep_code: int) -> None:
        """Sound the beeper.

        Args:
            beep_code: Beep pattern code (0x00-0x1A).
        """
        self.query(SsiOpcode.BEEP, [beep_code])

    def led_off(self) -> None:
        """Turn off the decoder LEDs."""
        self.query(SsiOpcode.LED_OFF, [0x00])

    def led_on(self) -> None:
        """Turn on the decoder LEDs."""
        self.query(SsiOpcode.LED_ON, [0x00])

    def param_defaults(self) -> None:
        """Reset every parameter to its default value."""
        self.query(SsiOpcode.PARAM_DEFAULTS)

    def param_request(self, parameter_number: int = 0xFE) -> None:
        """Request parameter values (``0xFE`` requests all of them)."""
        self.query(SsiOpcode.PARAM_REQUEST, [parameter_number])

    def scan_enable(self) -> None:
        """Permit scanning."""
        self.query(SsiOpcode.SCAN_ENABLE)

    def scan_disable(self) -> None:
        """Prevent scanning."""
        self.query(SsiOpcode.SCAN_DISABLE)

    def start_decode_session(self) -> bytes:
        """Tell the imager to start a scan session."""
        return self.query(SsiOpcode.START_SESSION)

    def stop_decode_session(self) -> None:
        """Tell the imager to abort a decode attempt."""
        self.query(SsiOpcode.STOP_SESSION)

    def enter_sleep(self) -> None:
        """Put the imager into low-power mode."""
        self.query(SsiOpcode.SLEEP)

    # -- Session transitions -------------------------------------------------

    def wakeup(self) -> None:
        """Send the wake-up byte and wait for the imager to settle."""
        self._engine.send(WAKEUP_BYTE)
        time.sleep(self._config.wakeup_settle)

    def arm_scan(self) -> None:
        self.scan_enable()

    def start_session(self) -> bytes:
        self._ack_remaining = 0
        return self.start_decode_session()

    def carry_over(self, start_response: bytes) -> bytes:
        """Return payload bytes received after the start ACK packet.

        The start reply ends on the poll that saw the ACK byte, so the rest of
        the ACK packet may still be in flight. The number of missing packet
        bytes is kept and :meth:`capture` drops them from the front of the
        payload.
        """
        self._ack_remaining = 0
        # The ACK byte is the opcode of a packet that starts one byte earlier.
        index = start_response.find(bytes([ACK]), 1)
        if index < 0:
            return b""
        end = index - 1 + frame_size(start_response[index - 1:])
        if end > len(start_response):
            self._ack_remaining = end - len(start_response)
            return b""
        return start_response[end:]

    def capture(self, initial: bytes) -> bytes:
        terminator = self._config.terminator
        timeout = self._config.capture_timeout
        data = self._engine.expect(terminator, timeout, initial)
        skip, self._ack_remaining = self._ack_remaining, 0
        if not skip:
            return data
        if len(data) < skip:
            logger.warning(
                "MS4717 start ACK packet incomplete, %d byte(s) missing", skip - len(data)
            )
        payload = data[skip:]
        if not payload:
            raise ProtocolTimeoutError(terminator, payload, timeout)
        return payload

    def stop_session(self) -> None:
        self.stop_decode_session()

    def disarm_scan(self) -> None:
        self.scan_disable()

    def sleep(self) -> None:
        self.enter_sleep()


def create_instrument(
    port: str,
    *,
    traffic_log: str = "normal",
    capture_timeout: float = 5.0,
    command_timeout: float = 1.0,
    terminator: str | bytes = b"",
) -> ZebraMs4717:
    """Create a Zebra MS4717 driver for a serial port.

    Standard factory entry point for bench configuration files. The port is
    not opened until the first capture.

    Args:
        port: Serial port name or pyserial URL.
        traffic_log: ``"verbose"``, ``"normal"`` or ``"none"``.
        capture_timeout: Seconds to wait for a payload.
        command_timeout: Seconds to wait for each SSI ACK.
        terminator: Payload terminator; text is encoded as latin-1.

    Returns:
        The driver instance.
    """
    sink = LoggingSink(TrafficLogLevel(traffic_log))
    transport = SerialPortTransport(SerialConfig(port, rtscts=True), sink=sink)
    if isinstance(terminator, str):
        terminator = terminator.encode("latin-1")
    config = ZebraMs4717Config(
        command_timeout=command_timeout,
        capture_timeout=capture_timeout,
        terminator=terminator,
    )
    return ZebraMs4717(TransactionEngine(transport), config)
