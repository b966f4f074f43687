"""Serial port resolution by USB vendor/product ID.

Instruments that enumerate as USB CDC or FTDI serial devices are identified by
Windows-style device address strings such as ``USB\\VID_05E0&PID_1701``.
:func:`find_serial_port` resolves the first attached port matching any of the
given addresses; the result is an opaque name passed to
:class:`~benchlink_serial.transport.SerialConfig`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

import serial.tools.list_ports

from benchlink_core.errors import PortUnavailableError

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"VID_([0-9A-F]{4})&PID_([0-9A-F]{4})", re.IGNORECASE)


@dataclass(frozen=True)
class UsbAddress:
    """USB vendor and product ID pair.

    Attributes:
        vid: Vendor ID.
        pid: Product ID.
    """

    vid: int
    pid: int

    def __str__(self) -> str:
        return f"USB\\VID_{self.vid:04X}&PID_{self.pid:04X}"


def parse_usb_address(address: str) -> UsbAddress:
    """Parse a ``USB\\VID_xxxx&PID_yyyy`` address string.

    Args:
        address: Address string; matching is case-insensitive and ignores
            any prefix or suffix around the VID/PID pair.

    Returns:
        The parsed vendor/product pair.

    Raises:
        ValueError: If the string contains no VID/PID pair.
    """
    match = _ADDRESS_RE.search(address)
    if match is None:
        raise ValueError(f"Invalid USB device address {address!r}: expected VID_xxxx&PID_yyyy")
    return UsbAddress(vid=int(match.group(1), 16), pid=int(match.group(2), 16))


def list_serial_ports() -> list[dict[str, str]]:
    """List attached serial ports.

    Returns:
        One dictionary per port with ``device``, ``description``, ``hwid``
        and ``usb`` (formatted VID/PID, empty for non-USB ports).
    """
    ports = []
    for port in serial.tools.list_ports.comports():
        usb = ""
        if port.vid is not None and port.pid is not None:
            usb = str(UsbAddress(port.vid, port.pid))
        ports.append(
            {
                "device": port.device,
                "description": port.description or "",
                "hwid": port.hwid or "",
                "usb": usb,
            }
        )
    return ports


def find_serial_port(addresses: Iterable[str]) -> str:
    """Return the first attached serial port matching any of ``addresses``.

    Args:
        addresses: USB device address strings, in order of preference.

    Returns:
        The device name of the matching port (e.g. ``/dev/ttyACM0``).

    Raises:
        PortUnavailableError: If no attached port matches.
        ValueError: If an address string cannot be parsed.
    """
    wanted = [parse_usb_address(a) for a in addresses]
    if not wanted:
        raise PortUnavailableError("No USB device addresses given")

    ports = list(serial.tools.list_ports.comports())
    for address in wanted:
        for port in ports:
            if port.vid == address.vid and port.pid == address.pid:
                logger.info("Found %s on %s", address, port.device)
                device: str = port.device
                return device

    raise PortUnavailableError(
        "No serial port found for " + ", ".join(str(a) for a in wanted)
    )
