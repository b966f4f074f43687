"""Barcode scanner capability protocol and label decoding."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class BarcodeScanner(Protocol):
    """Protocol for a barcode scanner capable of one-shot captures.

    Example:
        scanner = rack.get_instrument("label_scanner")
        assert scanner.get_label() == "A1B2C3"
    """

    def get_raw_payload(self) -> bytes:
        """Run one full capture cycle and return the bytes the scanner sent."""
        ...

    def get_label(self) -> str:
        """Run one full capture cycle and return the decoded label text."""
        ...

    def close(self) -> None:
        """Release the scanner."""
        ...


def decode_label(raw: bytes, ack: bytes = b"") -> str:
    """Decode a raw scanner payload into label text.

    Strips a leading acknowledge sequence, the trailing CR/LF terminator, and
    any remaining non-printable bytes.

    Args:
        raw: Bytes received from the scanner.
        ack: Acknowledge sequence that may precede the label.

    Returns:
        The printable label text.

    Example:
        >>> decode_label(b"\\x06A1B2C3\\r\\n", ack=b"\\x06")
        'A1B2C3'
    """
    data = raw
    if ack and data.startswith(ack):
        data = data[len(ack):]
    data = data.rstrip(b"\r\n")
    return "".join(chr(b) for b in data if 0x20 <= b <= 0x7E)
