"""I2C capability protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class I2cBus(Protocol):
    """Protocol for an I2C host adapter.

    Addresses are 7-bit. Register addresses are passed as bytes so 8-bit and
    16-bit register maps share one signature.

    Example:
        bus = rack.get_instrument("i2c")
        bus.write_register(0x50, b"\\x00\\x10", b"\\xAA")
        assert bus.read_register(0x50, b"\\x00\\x10", 1) == b"\\xAA"
    """

    def read(self, address: int, count: int) -> bytes:
        """Read ``count`` bytes from a target."""
        ...

    def read_register(self, address: int, register: bytes, count: int) -> bytes:
        """Write a register address without STOP, then read ``count`` bytes."""
        ...

    def write(self, address: int, data: bytes) -> None:
        """Write ``data`` to a target."""
        ...

    def write_register(self, address: int, register: bytes, data: bytes) -> None:
        """Write ``data`` to a target register."""
        ...

    def set_bit_rate(self, khz: int) -> None:
        """Set the bus bit rate in kHz."""
        ...

    def set_bus_timeout(self, ms: int) -> None:
        """Set the bus lock timeout in milliseconds."""
        ...

    def slave_enable(self, address: int, max_tx_bytes: int, max_rx_bytes: int) -> None:
        """Respond as a slave device at ``address``."""
        ...

    def slave_disable(self) -> None:
        """Stop responding as a slave device."""
        ...

    def slave_read(self, max_bytes: int) -> tuple[int, bytes]:
        """Return the address and data of the last message received as a slave."""
        ...
