"""Simple Serial Interface (SSI) command framing.

SSI is the length-prefixed, checksummed binary command protocol spoken by
Zebra imagers. Host commands are framed as::

    [len][opcode][source][status][data ...][chk_hi][chk_lo]

where ``source`` is ``0x04`` (host), ``status`` is ``0x00`` (first
transmission, temporary change), ``len`` counts every byte before the checksum
(itself included), and the checksum is the 16-bit two's complement of the sum
of those bytes reduced modulo 255, sent high byte first.

Only outbound framing is implemented. The host never parses device replies;
it only looks for the single ``ACK`` or ``NAK`` byte in them.
:func:`parse_frame` splits a frame into fields without validating its
checksum and exists for emulators and tests, which receive host frames.

Example:
    >>> encode_frame(SsiOpcode.START_SESSION).hex(" ").upper()
    '04 E4 04 00 FF 14'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

from benchlink_core.errors import FrameFormatError

SOURCE_HOST = 0x04
SOURCE_DECODER = 0x00
STATUS_DEFAULT = 0x00

ACK = 0xD0
NAK = 0xD1

_HEADER_SIZE = 4  # length, opcode, source, status
_CHECKSUM_SIZE = 2
_MAX_LENGTH = 0xFF


class SsiOpcode(IntEnum):
    """SSI opcodes used by the drivers."""

    AIM_OFF = 0xC4
    AIM_ON = 0xC5
    PARAM_REQUEST = 0xC7
    PARAM_DEFAULTS = 0xC8
    CMD_ACK = 0xD0
    CMD_NAK = 0xD1
    START_SESSION = 0xE4
    STOP_SESSION = 0xE5
    BEEP = 0xE6
    LED_ON = 0xE7
    LED_OFF = 0xE8
    SCAN_ENABLE = 0xE9
    SCAN_DISABLE = 0xEA
    SLEEP = 0xEB


@dataclass(frozen=True)
class SsiFrame:
    """Fields of one SSI frame.

    Attributes:
        length: Length byte as transmitted.
        opcode: Command opcode.
        source: Message source (``0x04`` host, ``0x00`` decoder).
        status: Status byte.
        data: Parameter bytes.
        checksum: 16-bit checksum as transmitted.
    """

    length: int
    opcode: int
    source: int
    status: int
    data: bytes
    checksum: int


def checksum(data: Iterable[int]) -> int:
    """Compute the SSI checksum of ``data``.

    Sums the bytes, reduces the sum modulo 255, and returns the 16-bit two's
    complement of the result.

    Args:
        data: The length byte followed by the payload.

    Returns:
        The checksum as an integer in 0..0xFFFF.
    """
    total = sum(data) % 255
    return (~total + 1) & 0xFFFF


def _check_byte(value: int, what: str) -> int:
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise FrameFormatError(f"{what} must be a byte value 0..255, got {value!r}")
    return value


def encode_frame(
    opcode: int,
    params: Iterable[int] = b"",
    *,
    source: int = SOURCE_HOST,
    status: int = STATUS_DEFAULT,
) -> bytes:
    """Build a complete SSI frame.

    Args:
        opcode: Command opcode.
        params: Parameter bytes appended after the status byte.
        source: Message source byte. Hosts always send ``0x04``.
        status: Status byte.

    Returns:
        The frame, checksum included.

    Raises:
        FrameFormatError: If a field is not a byte value or the frame does not
            fit the one-byte length field.
    """
    payload = [
        _check_byte(opcode, "opcode"),
        _check_byte(source, "source"),
        _check_byte(status, "status"),
    ]
    payload.extend(_check_byte(p, "parameter") for p in params)

    length = len(payload) + 1
    if length > _MAX_LENGTH:
        raise FrameFormatError(f"SSI frame too long: length {length} exceeds {_MAX_LENGTH}")

    body = bytes([length, *payload])
    chk = checksum(body)
    return body + bytes([chk >> 8, chk & 0xFF])


def parse_frame(frame: bytes) -> SsiFrame:
    """Split an SSI frame into its fields.

    The checksum is returned as transmitted and is not verified.

    Args:
        frame: One complete frame.

    Returns:
        The frame fields.

    Raises:
        FrameFormatError: If the frame is shorter than its length byte claims.
    """
    if len(frame) < _HEADER_SIZE + _CHECKSUM_SIZE:
        raise FrameFormatError(f"SSI frame too short: {len(frame)} byte(s)")
    length = frame[0]
    if length < _HEADER_SIZE or len(frame) < length + _CHECKSUM_SIZE:
        raise FrameFormatError(
            f"SSI length byte {length} does not match frame of {len(frame)} byte(s)"
        )
    return SsiFrame(
        length=length,
        opcode=frame[1],
        source=frame[2],
        status=frame[3],
        data=bytes(frame[_HEADER_SIZE:length]),
        checksum=(frame[length] << 8) | frame[length + 1],
    )


def frame_size(frame: bytes) -> int:
    """Return the total size of the frame starting at ``frame[0]``, checksum included."""
    if not frame:
        raise FrameFormatError("SSI frame is empty")
    return frame[0] + _CHECKSUM_SIZE
