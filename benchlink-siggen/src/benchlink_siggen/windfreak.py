"""Windfreak SynthUSB3 RF signal generator driver.

The SynthUSB3 (12.5 MHz to 6.4 GHz) takes short ASCII commands over a USB
virtual serial port. Set commands (``f1000.0``, ``W-10.0``) get no reply;
queries (``f?``, ``W?``) are answered with one line ending in ``\\n``.
Frequencies are set in MHz but read back in kHz.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from benchlink_core.errors import ResponseFormatError
from benchlink_core.identity import InstrumentIdentity
from benchlink_serial.diagnostics import LoggingSink, TrafficLogLevel
from benchlink_serial.discovery import find_serial_port
from benchlink_serial.engine import TransactionEngine
from benchlink_serial.transport import SerialConfig, SerialPortTransport

logger = logging.getLogger(__name__)

MIN_FREQUENCY_MHZ = 12.5
MAX_FREQUENCY_MHZ = 6400.0
FREQUENCY_RESOLUTION_HZ = 0.1
DEFAULT_FREQUENCY_MHZ = 1000.0

# Maximum output varies from +8 to +10 dBm depending on frequency.
MIN_OUTPUT_LEVEL_DBM = -50.0
MAX_OUTPUT_LEVEL_DBM = 10.0
OUTPUT_LEVEL_RESOLUTION_DB = 0.01
DEFAULT_OUTPUT_LEVEL_DBM = 0.0

DEFAULT_USB_ADDRESSES = ("USB\\VID_16D0&PID_0000",)
REPLY_TERMINATOR = b"\n"


def _format_number(value: float, max_decimals: int) -> str:
    """Format with at least one and at most ``max_decimals`` decimals."""
    text = f"{value:.{max_decimals}f}".rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


@dataclass(frozen=True)
class WindfreakConfig:
    """Settings for a SynthUSB3.

    Args:
        timeout: Seconds to wait for each query reply.
        log_identity: Log model, serial number and versions on open.
    """

    timeout: float = 1.0
    log_identity: bool = True

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


class WindfreakSynthUsb3:
    """Driver for the Windfreak SynthUSB3 signal generator.

    Args:
        engine: Transaction engine over the generator's serial port.
        config: Driver settings.
    """

    def __init__(self, engine: TransactionEngine, config: WindfreakConfig | None = None) -> None:
        self._engine = engine
        self._config = config or WindfreakConfig()
        self._is_open = False

    @property
    def engine(self) -> TransactionEngine:
        """The transaction engine."""
        return self._engine

    @property
    def is_open(self) -> bool:
        """Return True once :meth:`open` has configured the generator."""
        return self._is_open

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the port and put the generator in a known state.

        Selects the internal reference, turns the RF output off, and applies
        the default level and frequency.

        Raises:
            PortUnavailableError: If the port cannot be opened.
            ResponseFormatError: If the internal reference was not selected.
        """
        with self._engine.exclusive():
            self._engine.open()
            if self._config.log_identity:
                logger.debug("Model Type: %s", self.query("+"))
                logger.debug("Serial Number: %s", self.query("-"))
                logger.debug("Firmware Version: %s", self.query("v0"))
                logger.debug("Hardware Version: %s", self.query("v1"))

            self.command("x1")
            if "1" not in self.query("x?"):
                raise ResponseFormatError("Unable to set reference to internal")

            self.set_rf_output_state(False)
            self.set_output_level(DEFAULT_OUTPUT_LEVEL_DBM)
            self.set_frequency(DEFAULT_FREQUENCY_MHZ)
            self._is_open = True

    def close(self) -> None:
        """Turn the RF output off and close the port."""
        with self._engine.exclusive():
            if self._is_open:
                try:
                    self.set_rf_output_state(False)
                except Exception as exc:  # pylint: disable=broad-except
                    logger.warning("Unable to turn RF output off on close: %s", exc)
            self._is_open = False
            self._engine.close()

    def get_identity(self) -> InstrumentIdentity:
        """Query model, serial number and firmware version."""
        with self._engine.exclusive():
            return InstrumentIdentity(
                manufacturer="Windfreak",
                model=self.query("+"),
                serial=self.query("-"),
                firmware=self.query("v0"),
            )

    # -- Raw I/O -------------------------------------------------------------

    def command(self, text: str) -> None:
        """Send a command that has no reply."""
        self._engine.send(text.encode("ascii"))

    def query(self, text: str) -> str:
        """Send a query and return its reply line, stripped."""
        reply = self._engine.transact(text.encode("ascii"), REPLY_TERMINATOR, self._config.timeout)
        return reply.decode("ascii", errors="replace").strip()

    def _query_number(self, text: str) -> float:
        response = self.query(text)
        try:
            return float(response)
        except ValueError:
            raise ResponseFormatError(f"Unable to parse response of {response!r}") from None

    def _check_calibration(self) -> None:
        if "1" not in self.query("V"):
            raise ResponseFormatError("Self-calibration failed (output not leveled)")

    # -- Frequency -----------------------------------------------------------

    def get_frequency(self) -> float:
        """Return the output frequency in MHz."""
        return self._query_number("f?") / 1000.0

    def set_frequency(self, frequency_mhz: float) -> None:
        """Set the output frequency and verify it.

        Args:
            frequency_mhz: Frequency in MHz (12.5 to 6400).

        Raises:
            ValueError: If the frequency is out of range.
            ResponseFormatError: If the read-back cannot be parsed or the
                output is not leveled.
        """
        if frequency_mhz < MIN_FREQUENCY_MHZ:
            raise ValueError(f"Cannot set frequency below {MIN_FREQUENCY_MHZ} MHz")
        if frequency_mhz > MAX_FREQUENCY_MHZ:
            raise ValueError(f"Cannot set frequency above {MAX_FREQUENCY_MHZ} MHz")

        with self._engine.exclusive():
            self.command("f" + _format_number(frequency_mhz, 8))
            reply_mhz = self.get_frequency()
            self._check_calibration()

        error_mhz = abs(frequency_mhz - reply_mhz)
        if error_mhz > FREQUENCY_RESOLUTION_HZ * 1e-6:
            logger.warning(
                "Set frequency to %s MHz, with a frequency error of %.3f Hz, "
                "for the requested frequency of %s MHz",
                reply_mhz,
                error_mhz * 1e6,
                frequency_mhz,
            )
        else:
            logger.debug("Set frequency to %s MHz", reply_mhz)

    # -- Output level --------------------------------------------------------

    def get_output_level(self) -> float:
        """Return the output level in dBm."""
        return self._query_number("W?")

    def set_output_level(self, level_dbm: float) -> None:
        """Set the output level and verify it.

        Args:
            level_dbm: Output level in dBm (-50 to +10).

        Raises:
            ValueError: If the level is out of range.
            ResponseFormatError: If the read-back cannot be parsed or the
                output is not leveled.
        """
        if level_dbm > MAX_OUTPUT_LEVEL_DBM:
            raise ValueError(f"Cannot set amplitude above {MAX_OUTPUT_LEVEL_DBM} dBm")
        if level_dbm < MIN_OUTPUT_LEVEL_DBM:
            raise ValueError(f"Cannot set amplitude below {MIN_OUTPUT_LEVEL_DBM} dBm")

        with self._engine.exclusive():
            self.command("W" + _format_number(level_dbm, 3))
            reply_dbm = self.get_output_level()
            self._check_calibration()

        if abs(level_dbm - reply_dbm) > OUTPUT_LEVEL_RESOLUTION_DB:
            logger.warning(
                "Set amplitude to %s dBm, with an amplitude error of %.3f dB, "
                "for the requested amplitude of %s dBm",
                reply_dbm,
                abs(level_dbm - reply_dbm),
                level_dbm,
            )
        else:
            logger.debug("Set amplitude to %s dBm", reply_dbm)

    # -- RF output -----------------------------------------------------------

    def get_rf_output_state(self) -> bool:
        """Return True if the RF output is on."""
        response = self.query("E?")
        if response not in ("0", "1"):
            raise ResponseFormatError(f"Unable to parse response of {response!r}")
        return response == "1"

    def set_rf_output_state(self, on: bool) -> None:
        """Turn the RF output on or off and verify it.

        Raises:
            ResponseFormatError: If the generator reports a different state.
        """
        with self._engine.exclusive():
            self.command("E1" if on else "E0")
            if self.get_rf_output_state() != on:
                raise ResponseFormatError(f"Unable to turn RF output {'on' if on else 'off'}")
        logger.debug("RF output %s", "on" if on else "off")


def create_instrument(
    port: str | None = None,
    *,
    usb_addresses: Sequence[str] = DEFAULT_USB_ADDRESSES,
    traffic_log: str = "verbose",
    timeout: float = 1.0,
) -> WindfreakSynthUsb3:
    """Create and open a SynthUSB3 driver.

    Standard factory entry point for bench configuration files.

    Args:
        port: Serial port name or pyserial URL. When omitted the port is
            found by USB address.
        usb_addresses: ``USB\\VID_xxxx&PID_yyyy`` strings to search for.
        traffic_log: ``"verbose"``, ``"normal"`` or ``"none"``.
        timeout: Seconds to wait for each query reply.

    Returns:
        Opened driver instance.
    """
    if port is None:
        port = find_serial_port(usb_addresses)
    sink = LoggingSink(TrafficLogLevel(traffic_log))
    transport = SerialPortTransport(SerialConfig(port), sink=sink)
    synth = WindfreakSynthUsb3(TransactionEngine(transport), WindfreakConfig(timeout=timeout))
    synth.open()
    return synth
