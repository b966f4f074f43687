"""In-process byte device emulators.

:class:`ByteDeviceEmulator` implements the
:class:`~benchlink_serial.transport.ByteTransport` protocol entirely in memory,
so drivers and the transaction engine can be exercised without hardware.
Subclasses override :meth:`ByteDeviceEmulator.handle` to turn each written
command into reply chunks; instrument packages build their device emulators
on it.

Replies are queued as chunks and released one chunk per poll, which lets tests
control exactly how a reply is split across reads (for example a CR LF
terminator split between two chunks).

:class:`ScriptedTransport` is the table-driven variant used by unit tests::

    transport = ScriptedTransport()
    transport.on(b"\\x1b1", b"\\x06", b"A1B2C3\\r\\n")
    engine = TransactionEngine(transport)
    engine.transact(b"\\x1b1", b"\\r\\n", timeout=1)
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Iterable

from benchlink_core.errors import DeviceClosedError

from benchlink_serial.diagnostics import DiagnosticSink, Direction, report


class ByteDeviceEmulator:
    """In-process device implementing ``ByteTransport``.

    Attributes:
        written: Every chunk written by the host, in order.
        discard_count: Number of :meth:`discard_buffers` calls.

    Args:
        name: Name reported in diagnostics.
        sink: Optional diagnostic sink.
    """

    def __init__(self, name: str = "emulator", sink: DiagnosticSink | None = None) -> None:
        self._name = name
        self._sink = sink
        self._pending: deque[bytes] = deque()
        self._lock = threading.Lock()
        self._open = True
        self.written: list[bytes] = []
        self.discard_count = 0

    # -- Device behaviour ----------------------------------------------------

    def handle(self, data: bytes) -> Iterable[bytes]:
        """Return the reply chunks for one written command.

        The base implementation never replies.

        Args:
            data: Bytes written by the host.

        Returns:
            Reply chunks, delivered one per poll.
        """
        return ()

    def feed(self, *chunks: bytes) -> None:
        """Queue unsolicited bytes as if the device had sent them."""
        with self._lock:
            self._pending.extend(bytes(c) for c in chunks if c)

    # -- Lifecycle -----------------------------------------------------------

    @property
    def name(self) -> str:
        """The emulator name."""
        return self._name

    @property
    def is_open(self) -> bool:
        """Return True while the emulator accepts I/O."""
        return self._open

    def open(self) -> None:
        """Open the emulator, dropping anything queued while it was closed."""
        with self._lock:
            if not self._open:
                self._pending.clear()
            self._open = True

    def close(self) -> None:
        """Close the emulator and drop queued replies."""
        with self._lock:
            self._open = False
            self._pending.clear()

    # -- Transport interface -------------------------------------------------

    def write(self, data: bytes) -> None:
        """Accept bytes from the host and queue the device's reply."""
        self._require_open()
        data = bytes(data)
        report(self._sink, self._name, Direction.OUT, data)
        self.written.append(data)
        replies = list(self.handle(data))
        self.feed(*replies)

    def bytes_available(self) -> int:
        """Return the size of the next queued chunk."""
        self._require_open()
        with self._lock:
            return len(self._pending[0]) if self._pending else 0

    def read_available(self, max_bytes: int | None = None) -> bytes:
        """Return the next queued chunk (or its first ``max_bytes`` bytes)."""
        self._require_open()
        with self._lock:
            if not self._pending:
                return b""
            chunk = self._pending.popleft()
            if max_bytes is not None and len(chunk) > max_bytes:
                self._pending.appendleft(chunk[max_bytes:])
                chunk = chunk[:max_bytes]
        report(self._sink, self._name, Direction.IN, chunk)
        return chunk

    def discard_buffers(self) -> None:
        """Drop every queued reply chunk."""
        self._require_open()
        with self._lock:
            self._pending.clear()
            self.discard_count += 1

    def _require_open(self) -> None:
        if not self._open:
            raise DeviceClosedError(f"Emulator {self._name!r} is closed")


class ScriptedTransport(ByteDeviceEmulator):
    """Emulator that answers exact commands with fixed reply chunks.

    Args:
        name: Name reported in diagnostics.
        sink: Optional diagnostic sink.
    """

    def __init__(self, name: str = "scripted", sink: DiagnosticSink | None = None) -> None:
        super().__init__(name, sink)
        self._rules: dict[bytes, tuple[bytes, ...]] = {}

    def on(self, command: bytes, *chunks: bytes) -> ScriptedTransport:
        """Reply to ``command`` with ``chunks``.

        Args:
            command: Exact bytes the host must write.
            chunks: Reply chunks, one released per poll.

        Returns:
            This transport, for chaining.
        """
        self._rules[bytes(command)] = tuple(bytes(c) for c in chunks)
        return self

    def handle(self, data: bytes) -> Iterable[bytes]:
        """Look ``data`` up in the reply table."""
        return self._rules.get(data, ())
