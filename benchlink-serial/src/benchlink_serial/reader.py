"""Read-until-pattern-or-timeout loop.

:class:`PatternReader` polls a transport in fixed quanta, accumulates every
received byte, and stops as soon as a terminator pattern appears anywhere in
the accumulated buffer, or when the deadline passes first. The whole buffer is
searched on every iteration, so a terminator split across two chunks is still
detected.

When a pattern occurs more than once, the *last* occurrence is reported. Which
occurrence is reported never changes whether the read succeeds, only the
``match_index`` callers use to split off trailing bytes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from benchlink_serial.transport import ByteTransport

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.010
"""Sleep quantum between polls, in seconds."""


def find_pattern(source: bytes, pattern: bytes) -> int:
    """Return the start index of the last occurrence of ``pattern`` in ``source``.

    An empty pattern never matches.

    Args:
        source: Bytes to search.
        pattern: Contiguous byte sequence to find.

    Returns:
        The last matching start index, or -1 if there is no match.
    """
    if not pattern:
        return -1
    return source.rfind(pattern)


@dataclass(frozen=True)
class ReadResult:
    """Outcome of one :meth:`PatternReader.read_until` call.

    Attributes:
        data: Every byte accumulated, including any seed bytes.
        found: True if the pattern was observed before the deadline.
        match_index: Start index of the last occurrence, or -1.
        elapsed: Wall-clock seconds spent reading.
    """

    data: bytes
    found: bool
    match_index: int = -1
    elapsed: float = 0.0

    @property
    def timed_out(self) -> bool:
        """True if the read stopped on the deadline rather than a match."""
        return not self.found


class PatternReader:
    """Accumulate bytes from a transport until a pattern or a deadline.

    Args:
        transport: Open transport to drain.
        poll_interval: Sleep quantum between polls, in seconds.
        clock: Monotonic clock. Injectable for tests.
        sleep: Sleep function. Injectable for tests.
    """

    def __init__(
        self,
        transport: ByteTransport,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self._transport = transport
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    @property
    def poll_interval(self) -> float:
        """The sleep quantum in seconds."""
        return self._poll_interval

    def read_until(self, expected: bytes, timeout: float, initial: bytes = b"") -> ReadResult:
        """Read until ``expected`` appears or ``timeout`` seconds elapse.

        Args:
            expected: Terminator pattern. An empty pattern is never satisfied,
                so the read always runs to the deadline.
            timeout: Seconds to wait before giving up.
            initial: Bytes already received for this message, searched
                together with everything drained afterwards.

        Returns:
            The accumulated bytes and whether the pattern was found.
        """
        start = self._clock()
        deadline = start + timeout
        buffer = bytearray(initial)
        match_index = -1

        while True:
            self._sleep(self._poll_interval)
            if self._transport.bytes_available() > 0:
                buffer += self._transport.read_available()

            match_index = find_pattern(bytes(buffer), expected)
            if match_index >= 0:
                break
            if self._clock() > deadline:
                if expected:
                    logger.warning("Serial port timed-out (%s)", self._transport.name)
                break

        return ReadResult(
            data=bytes(buffer),
            found=match_index >= 0,
            match_index=match_index,
            elapsed=self._clock() - start,
        )
