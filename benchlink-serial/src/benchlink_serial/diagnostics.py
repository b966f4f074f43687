"""Raw serial traffic diagnostics.

Every byte a transport writes or drains is handed to a
:class:`DiagnosticSink`. The default :class:`LoggingSink` renders the traffic
through :mod:`logging` at DEBUG level, in one of two styles:

NORMAL renders printable ASCII as-is and escapes everything else::

    /dev/ttyACM0 << {06}A1B2C3{0D}{0A}

VERBOSE renders a hex line and an aligned ASCII gutter::

    /dev/ttyACM0 << Hex:   06 41 31 42 32 43 33 0D 0A
    /dev/ttyACM0 << Ascii: .  A  1  B  2  C  3  .  .
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Direction of a chunk of serial traffic, valued by its log marker."""

    OUT = ">>"
    IN = "<<"


class TrafficLogLevel(Enum):
    """How much raw traffic detail a :class:`LoggingSink` emits."""

    VERBOSE = "verbose"
    NORMAL = "normal"
    NONE = "none"


class DiagnosticSink(Protocol):
    """Receiver for raw transport traffic.

    Implementations must never raise: a failure to record traffic must not
    affect the transaction that produced it.
    """

    def on_bytes(self, port: str, direction: Direction, data: bytes) -> None:
        """Record one written or drained chunk.

        Args:
            port: Name of the port the bytes crossed.
            direction: :attr:`Direction.OUT` for writes, :attr:`Direction.IN`
                for reads.
            data: The raw bytes.
        """
        ...


def _is_printable(value: int) -> bool:
    return 0x20 <= value <= 0x7E


def format_escaped(data: bytes) -> str:
    """Render printable ASCII as-is and every other byte as ``{XX}``."""
    return "".join(chr(b) if _is_printable(b) else f"{{{b:02X}}}" for b in data)


def format_hex(data: bytes) -> str:
    """Render bytes as space separated upper-case hex pairs."""
    return " ".join(f"{b:02X}" for b in data)


def format_ascii(data: bytes) -> str:
    """Render an ASCII gutter aligned with :func:`format_hex` columns.

    Non-printable bytes are shown as ``.``.
    """
    return " ".join(f"{chr(b) if _is_printable(b) else '.':<2}" for b in data).rstrip()


class LoggingSink:
    """Diagnostic sink that writes traffic to a :mod:`logging` logger.

    Args:
        level: Amount of detail to emit.
        log: Logger to write to. Defaults to this module's logger.
    """

    def __init__(
        self,
        level: TrafficLogLevel = TrafficLogLevel.NORMAL,
        log: logging.Logger | None = None,
    ) -> None:
        self._level = level
        self._log = log if log is not None else logger

    @property
    def level(self) -> TrafficLogLevel:
        """The configured traffic log level."""
        return self._level

    def on_bytes(self, port: str, direction: Direction, data: bytes) -> None:
        """Log one chunk of traffic; never raises."""
        if not data or self._level is TrafficLogLevel.NONE:
            return
        try:
            marker = direction.value
            if self._level is TrafficLogLevel.VERBOSE:
                self._log.debug("%s %s Hex:   %s", port, marker, format_hex(data))
                self._log.debug("%s %s Ascii: %s", port, marker, format_ascii(data))
            else:
                self._log.debug("%s %s %s", port, marker, format_escaped(data))
        except Exception:  # pylint: disable=broad-except
            pass


class NullSink:
    """Diagnostic sink that discards everything."""

    def on_bytes(self, port: str, direction: Direction, data: bytes) -> None:
        """Discard the chunk."""


def report(sink: DiagnosticSink | None, port: str, direction: Direction, data: bytes) -> None:
    """Hand a chunk to ``sink``, shielding the caller from sink failures."""
    if sink is None or not data:
        return
    try:
        sink.on_bytes(port, direction, data)
    except Exception:  # pylint: disable=broad-except
        logger.debug("Diagnostic sink failed for %s", port, exc_info=True)
