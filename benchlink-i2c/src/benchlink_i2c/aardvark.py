"""TotalPhase Aardvark I2C/SPI host adapter driver.

Drives the adapter through TotalPhase's ``aardvark_py`` binding, which is
imported on :meth:`AardvarkAdapter.open` so the package stays importable on
hosts without it.

Every call is serialized by the adapter's own lock. Writes, slave-enable and
slave-disable are attempted at most twice, 100 ms apart; reads and
configuration calls are not retried.
"""

# pylint: disable=broad-exception-caught  # binding calls may raise unpredictable exceptions

from __future__ import annotations

import array
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from benchlink_core.errors import BenchlinkError, DeviceClosedError, I2cError

logger = logging.getLogger(__name__)

MAX_DEVICES = 16
# The OS buffer for incoming slave data is about 4 KiB.
MAX_TX_RX_BYTES = 4000
RETRY_DELAY = 0.1
OPEN_STEP_DELAY = 0.333
OPEN_MAX_DELAY = 1.0
BIT_RATES_KHZ = (100, 200, 300, 400, 500, 600, 700, 800)

_LOG_DATA_MAX_LEN = 100


def format_data(data: bytes) -> str:
    """Render bytes as ``0x( 01 02 )``, shortened for long buffers."""
    text = "0x("
    for i, value in enumerate(data):
        text += f" {value:02X}"
        if len(text) > _LOG_DATA_MAX_LEN and i < len(data) - 1:
            text += " ---"
            break
    return text + " )"


@dataclass(frozen=True)
class AardvarkConfig:
    """Configuration for an Aardvark adapter.

    Args:
        port_number: Device number as reported by ``aa_find_devices``.
        target_power: Supply 5 V to the target on pins 4 and 6.
        pullups: Enable the I2C pull-up resistors.
        bit_rate_khz: I2C bit rate (100 to 800 in steps of 100).
    """

    port_number: int = 0
    target_power: bool = False
    pullups: bool = False
    bit_rate_khz: int = 100

    def __post_init__(self) -> None:
        if self.port_number < 0:
            raise ValueError(f"port_number must be >= 0, got {self.port_number}")
        if self.bit_rate_khz not in BIT_RATES_KHZ:
            raise ValueError(f"bit_rate_khz must be one of {BIT_RATES_KHZ}, got {self.bit_rate_khz}")


def _check_address(address: int) -> None:
    if not 0 < address <= 0x7F:
        raise ValueError(f"I2C address must be 0x01-0x7F, got {address!r}")


def _check_count(name: str, count: int, maximum: int | None = None) -> None:
    if count <= 0:
        raise ValueError(f"{name} must be positive, got {count}")
    if maximum is not None and count > maximum:
        raise ValueError(f"{name} must not exceed {maximum}, got {count}")


class AardvarkAdapter:
    """I2C host adapter implementing :class:`~benchlink_i2c.protocols.I2cBus`.

    Args:
        config: Adapter configuration.
    """

    def __init__(self, config: AardvarkConfig | None = None) -> None:
        self._config = config or AardvarkConfig()
        self._aa: Any = None
        self._handle: int | None = None
        self._lock = threading.RLock()

    @property
    def config(self) -> AardvarkConfig:
        """The adapter configuration."""
        return self._config

    @property
    def is_open(self) -> bool:
        """Return True if the adapter is open."""
        return self._handle is not None

    # -- Lifecycle -------------------------------------------------------------

    def open(self) -> None:
        """Find and open the adapter, then apply the configuration.

        Raises:
            BenchlinkError: If ``aardvark_py`` is not installed.
            I2cError: If no adapter is found, the configured one cannot be
                opened, or configuration fails.
        """
        with self._lock:
            if self._handle is not None:
                return

            try:
                import aardvark_py  # type: ignore[import-not-found]  # pylint: disable=import-outside-toplevel
            except ImportError as exc:
                raise BenchlinkError(
                    "aardvark_py library is not installed. Install with: pip install aardvark_py"
                ) from exc
            aa = aardvark_py

            num_found, _ = aa.aa_find_devices(MAX_DEVICES)
            if num_found < 1:
                raise I2cError("No Aardvark devices found")
            port = self._config.port_number
            logger.debug("Found %d Aardvark(s). Initializing device number %d.", num_found, port)

            delay = 0.0
            handle = -1
            attempts = 0
            while True:
                time.sleep(delay)
                delay += OPEN_STEP_DELAY
                attempts += 1
                handle = aa.aa_open(port)
                if handle >= 0 or delay >= OPEN_MAX_DELAY:
                    break
            if handle < 0:
                raise I2cError(f"Unable to open Aardvark {port}: error {handle}, {aa.aa_status_string(handle)}")

            self._aa = aa
            self._handle = handle
            try:
                unique_id = aa.aa_unique_id(handle)
                if unique_id < 1:
                    raise I2cError(f"Aardvark {port} reported an invalid unique ID: {unique_id}")
                logger.debug("Aardvark<%d> has serial number of %d.", port, unique_id)

                status = aa.aa_configure(handle, aa.AA_CONFIG_SPI_I2C)
                if status != aa.AA_CONFIG_SPI_I2C:
                    raise I2cError(f"Error {status} when configuring Aardvark {port} to SPI+I2C mode")

                self.set_target_power(self._config.target_power)
                self.set_pullups(self._config.pullups)
                self.set_bit_rate(self._config.bit_rate_khz)
            except Exception:
                self.close()
                raise
            logger.debug("Aardvark<%d> initialized after %d attempt(s).", port, attempts)

    def close(self) -> None:
        """Close the adapter. Safe to call multiple times."""
        with self._lock:
            if self._handle is None:
                return
            try:
                self._aa.aa_close(self._handle)
            except Exception as exc:
                logger.warning("Error closing Aardvark %d: %s", self._config.port_number, exc)
            finally:
                self._handle = None
                self._aa = None

    def _require_open(self) -> int:
        if self._handle is None:
            raise DeviceClosedError("Aardvark not opened; call open() first")
        return self._handle

    # -- Adapter settings ------------------------------------------------------

    def set_target_power(self, on: bool) -> None:
        """Switch 5 V target power on pins 4 and 6."""
        with self._lock:
            handle = self._require_open()
            mask = self._aa.AA_TARGET_POWER_BOTH if on else self._aa.AA_TARGET_POWER_NONE
            logger.debug("Setting target power %s", "on" if on else "off")
            status = self._aa.aa_target_power(handle, mask)
            if status != mask:
                raise I2cError(f"Error {status} setting target power, {self._aa.aa_status_string(status)}")

    def set_pullups(self, on: bool) -> None:
        """Switch the I2C pull-up resistors."""
        with self._lock:
            handle = self._require_open()
            mask = self._aa.AA_I2C_PULLUP_BOTH if on else self._aa.AA_I2C_PULLUP_NONE
            logger.debug("Setting I2C pull-up resistors %s", "on" if on else "off")
            status = self._aa.aa_i2c_pullup(handle, mask)
            if status != mask:
                raise I2cError(f"Error {status} setting pull-ups, {self._aa.aa_status_string(status)}")

    def set_bit_rate(self, khz: int) -> None:
        """Set the I2C bit rate.

        Raises:
            I2cError: If the adapter applied a different rate.
        """
        _check_count("khz", khz)
        with self._lock:
            handle = self._require_open()
            logger.debug("Setting I2C bit rate to %d kHz", khz)
            actual = self._aa.aa_i2c_bitrate(handle, khz)
            if actual != khz:
                raise I2cError(
                    f"Error trying to set the I2C bit rate to {khz} kHz. Actual bit rate was {actual} kHz."
                )

    def set_bus_timeout(self, ms: int) -> None:
        """Set the bus lock timeout.

        Raises:
            I2cError: If the adapter applied a different timeout.
        """
        _check_count("ms", ms, 0xFFFF)
        with self._lock:
            handle = self._require_open()
            logger.debug("Setting I2C bus timeout to %d ms", ms)
            actual = self._aa.aa_i2c_bus_timeout(handle, ms)
            if actual != ms:
                raise I2cError(f"Set bus timeout failed: requested {ms} ms, got {actual}")

    # -- Master operations -----------------------------------------------------

    def read(self, address: int, count: int) -> bytes:
        """Read ``count`` bytes from the target at ``address``.

        Raises:
            ValueError: If the address or count is invalid.
            I2cError: If fewer bytes were read.
        """
        _check_address(address)
        _check_count("count", count)
        with self._lock:
            handle = self._require_open()
            data = self._read(handle, address, count)
            logger.debug("I2C Read << 0x%02X, %s", address, format_data(data))
            return data

    def read_register(self, address: int, register: bytes, count: int) -> bytes:
        """Write ``register`` without a STOP condition, then read ``count`` bytes.

        The register write is retried once.

        Raises:
            ValueError: If an argument is invalid.
            I2cError: If the register write failed twice or the read is short.
        """
        _check_address(address)
        _check_count("count", count)
        if not register:
            raise ValueError("register must not be empty")
        with self._lock:
            handle = self._require_open()
            self._write_with_retry(handle, address, self._aa.AA_I2C_NO_STOP, bytes(register))
            data = self._read(handle, address, count)
            logger.debug(
                "I2C Read << 0x%02X [%s], %s", address, bytes(register).hex(" ").upper(), format_data(data)
            )
            return data

    def write(self, address: int, data: bytes) -> None:
        """Write ``data`` to the target at ``address``, retrying once.

        Raises:
            ValueError: If the address is invalid or ``data`` is empty.
            I2cError: If both attempts were short.
        """
        _check_address(address)
        if not data:
            raise ValueError("data must not be empty")
        with self._lock:
            handle = self._require_open()
            self._write_with_retry(handle, address, self._aa.AA_I2C_NO_FLAGS, bytes(data))
            logger.debug("I2C Write >> 0x%02X, %s", address, format_data(bytes(data)))

    def write_register(self, address: int, register: bytes, data: bytes) -> None:
        """Write ``register`` followed by ``data`` in one transfer, retrying once.

        Raises:
            ValueError: If an argument is invalid.
            I2cError: If both attempts were short.
        """
        _check_address(address)
        if not data:
            raise ValueError("data must not be empty")
        with self._lock:
            handle = self._require_open()
            self._write_with_retry(handle, address, self._aa.AA_I2C_NO_FLAGS, bytes(register) + bytes(data))
            logger.debug(
                "I2C Write >> 0x%02X [%s], %s", address, bytes(register).hex(" ").upper(), format_data(bytes(data))
            )

    def _write_with_retry(self, handle: int, address: int, flags: int, data: bytes) -> None:
        count = self._aa.aa_i2c_write(handle, address, flags, array.array("B", data))
        if count == len(data):
            return
        logger.debug("I2C Write error (%d of %d bytes), retry..", count, len(data))
        time.sleep(RETRY_DELAY)
        count = self._aa.aa_i2c_write(handle, address, flags, array.array("B", data))
        if count != len(data):
            raise I2cError(f"I2C write to 0x{address:02X} failed: wrote {count} of {len(data)} byte(s)")

    def _read(self, handle: int, address: int, count: int) -> bytes:
        result, data_in = self._aa.aa_i2c_read(handle, address, self._aa.AA_I2C_NO_FLAGS, count)
        if result < 0:
            raise I2cError(f"I2C read from 0x{address:02X} failed: error {result}")
        if result != count:
            raise I2cError(f"I2C read from 0x{address:02X}: read {result} bytes (expected {count})")
        return bytes(data_in[:result])

    # -- Slave operations ------------------------------------------------------

    def slave_enable(self, address: int, max_tx_bytes: int, max_rx_bytes: int) -> None:
        """Respond as a slave at ``address``, retrying once.

        Raises:
            ValueError: If an argument is out of range.
            I2cError: If both attempts failed.
        """
        _check_address(address)
        _check_count("max_tx_bytes", max_tx_bytes, MAX_TX_RX_BYTES)
        _check_count("max_rx_bytes", max_rx_bytes, MAX_TX_RX_BYTES)
        with self._lock:
            handle = self._require_open()
            self._slave_call(
                f"SlaveEnable(Add:{address})",
                lambda: self._aa.aa_i2c_slave_enable(handle, address, max_tx_bytes, max_rx_bytes),
            )

    def slave_disable(self) -> None:
        """Stop responding as a slave, retrying once.

        Raises:
            I2cError: If both attempts failed.
        """
        with self._lock:
            handle = self._require_open()
            self._slave_call("SlaveDisable", lambda: self._aa.aa_i2c_slave_disable(handle))

    def _slave_call(self, what: str, call: Any) -> None:
        status = -1
        for attempt in range(2):
            time.sleep(attempt * RETRY_DELAY)
            status = call()
            if status == self._aa.AA_OK:
                logger.debug("I2C %s done with try %d.", what, attempt + 1)
                return
            logger.debug("I2C %s try %d return[%d].", what, attempt + 1, status)
        raise I2cError(f"I2C {what} return[{status}] with try 2.")

    def slave_read(self, max_bytes: int) -> tuple[int, bytes]:
        """Read the last message received as a slave.

        Args:
            max_bytes: Largest message to accept (1 to 4000).

        Returns:
            Tuple of (master's target address, data).

        Raises:
            ValueError: If ``max_bytes`` is out of range.
            I2cError: If the binding reports an error.
        """
        _check_count("max_bytes", max_bytes, MAX_TX_RX_BYTES)
        with self._lock:
            handle = self._require_open()
            count, address, data_in = self._aa.aa_i2c_slave_read(handle, max_bytes)
            if count < 0:
                raise I2cError(f"I2C slave_read error [{count}] from addr: {address}")
            data = bytes(data_in[:count])
            logger.debug("I2C Slave << 0x%02X, %s", address, format_data(data))
            return address, data


def create_instrument(
    port_number: int = 0,
    *,
    target_power: bool = False,
    pullups: bool = False,
    bit_rate_khz: int = 100,
) -> AardvarkAdapter:
    """Create and open an Aardvark adapter.

    Standard factory entry point for bench configuration files.

    Returns:
        Opened adapter instance.
    """
    adapter = AardvarkAdapter(
        AardvarkConfig(
            port_number=port_number,
            target_power=target_power,
            pullups=pullups,
            bit_rate_khz=bit_rate_khz,
        )
    )
    adapter.open()
    return adapter
