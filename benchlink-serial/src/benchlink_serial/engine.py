"""Serialized write-then-expect transactions over a byte transport.

This module provides the :class:`TransactionEngine` class, the unit every
higher-level instrument command goes through. One engine owns one transport
and the lock that guards it, so no two transactions can interleave bytes on
the same channel.

Typical usage::

    from benchlink_serial import SerialConfig, SerialPortTransport, TransactionEngine

    transport = SerialPortTransport(SerialConfig("/dev/ttyACM0"))
    transport.open()
    engine = TransactionEngine(transport)

    # Send "?" and wait up to 5 s for "!"
    reply = engine.transact(b"?", b"!", timeout=5)

    # Hold the device across several transactions
    with engine.exclusive():
        engine.transact(b"\\x1b1", b"\\x06", timeout=5)
        label = engine.expect(b"\\r\\n", timeout=5)

    engine.close()
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from benchlink_core.errors import DeviceClosedError, ProtocolTimeoutError

from benchlink_serial.reader import DEFAULT_POLL_INTERVAL, PatternReader
from benchlink_serial.transport import ByteTransport

logger = logging.getLogger(__name__)


class TransactionEngine:
    """Serialized command/response transactions on one transport.

    Every public operation takes the engine's re-entrant lock, so a caller
    holding :meth:`exclusive` can run several transactions back to back while
    other threads block until it is done. Stale input is discarded before
    every write; nothing received before a write is ever part of its reply.

    Timeouts are terminal at this layer: :class:`ProtocolTimeoutError` is raised
    and nothing is retried.

    Args:
        transport: An open transport implementing
            :class:`~benchlink_serial.transport.ByteTransport`.
        poll_interval: Sleep quantum of the read loop, in seconds.
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
        self._transport = transport
        self._reader = PatternReader(
            transport, poll_interval=poll_interval, clock=clock, sleep=sleep
        )
        self._lock = threading.RLock()

    # -- Properties ----------------------------------------------------------

    @property
    def transport(self) -> ByteTransport:
        """The underlying transport."""
        return self._transport

    @property
    def is_open(self) -> bool:
        """Return True if the underlying transport is open."""
        return self._transport.is_open

    # -- Locking -------------------------------------------------------------

    @contextmanager
    def exclusive(self) -> Iterator[TransactionEngine]:
        """Hold the device lock across several operations.

        Yields:
            This engine.
        """
        with self._lock:
            yield self

    # -- Core operations -----------------------------------------------------

    def send(self, command: bytes) -> None:
        """Discard stale buffers and write ``command`` without awaiting a reply.

        Args:
            command: Raw bytes to transmit.

        Raises:
            DeviceClosedError: If the engine or transport is closed.
        """
        with self._lock:
            self._require_open()
            self._transport.discard_buffers()
            self._transport.write(command)

    def expect(self, expected: bytes, timeout: float, initial: bytes = b"") -> bytes:
        """Wait for ``expected`` without writing anything first.

        With an empty ``expected`` the read collects everything that arrives
        until the deadline and succeeds if at least one byte was received.

        Args:
            expected: Terminator pattern.
            timeout: Seconds to wait.
            initial: Bytes of this message received by an earlier step.

        Returns:
            Every byte received, ``initial`` included.

        Raises:
            ProtocolTimeoutError: If the pattern was not found in time, or
                nothing at all arrived for an empty pattern.
            DeviceClosedError: If the engine or transport is closed.
        """
        with self._lock:
            self._require_open()
            result = self._reader.read_until(expected, timeout, initial)
            if result.found or (not expected and result.data):
                return result.data
            raise ProtocolTimeoutError(expected, result.data, timeout)

    def transact(self, command: bytes, expected: bytes, timeout: float) -> bytes:
        """Write ``command`` and wait for ``expected``.

        Args:
            command: Raw bytes to transmit.
            expected: Terminator pattern marking the end of the reply.
            timeout: Seconds to wait for the reply.

        Returns:
            Every byte received after the write, up to and including the poll
            in which the pattern was seen.

        Raises:
            ProtocolTimeoutError: If the pattern was not found in time.
            DeviceClosedError: If the engine or transport is closed.
        """
        with self._lock:
            self.send(command)
            return self.expect(expected, timeout)

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the transport.

        Raises:
            PortUnavailableError: If the transport cannot be opened.
        """
        with self._lock:
            self._transport.open()

    def close(self) -> None:
        """Close the transport.

        Safe to call multiple times. Errors are logged and swallowed so a
        failing close never masks the error that triggered it.
        """
        with self._lock:
            try:
                self._transport.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Error closing %s: %s", self._transport.name, exc)

    # -- Private helpers -----------------------------------------------------

    def _require_open(self) -> None:
        if not self._transport.is_open:
            raise DeviceClosedError(f"Transport {self._transport.name} is not open")
