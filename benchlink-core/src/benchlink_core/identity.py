"""Instrument identification metadata."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InstrumentIdentity:
    """Instrument identification metadata.

    Serial instruments report these fields through different commands (the
    Windfreak generator answers ``+``, ``-`` and ``v0``, the Aardvark binding
    reports a unique ID), so drivers fill in whatever their device exposes and
    leave the rest empty.

    Attributes:
        manufacturer: Instrument manufacturer name (e.g., "Windfreak").
        model: Instrument model number or name (e.g., "SynthUSB3").
        serial: Serial number string.
        firmware: Firmware or hardware version string.

    Example:
        >>> identity = InstrumentIdentity(
        ...     manufacturer="Zebra",
        ...     model="MS4717",
        ...     serial="",
        ...     firmware="",
        ... )
    """

    manufacturer: str
    model: str
    serial: str
    firmware: str
