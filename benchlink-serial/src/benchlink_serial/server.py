"""TCP server exposing an in-process byte device emulator.

Wraps any :class:`~benchlink_serial.emulator.ByteDeviceEmulator` and serves it
over TCP, so :class:`~benchlink_serial.transport.SerialPortTransport` can talk
to it through a pyserial ``socket://host:port`` URL. This exercises the real
pyserial code path end to end without an instrument attached.

Example:
    Start a scanner emulator on an ephemeral port::

        from benchlink_barcode import make_lv3000_emulator
        from benchlink_serial import EmulatorServer

        server = EmulatorServer(make_lv3000_emulator("A1B2C3"), port=0)
        server.start()

        host, port = server.address
        print(f"Connect via: socket://{host}:{port}")

        server.stop()
"""

from __future__ import annotations

import socket
import socketserver
import threading
from typing import Any

from benchlink_serial.emulator import ByteDeviceEmulator

_POLL_SECONDS = 0.01


class _ByteRequestHandler(socketserver.BaseRequestHandler):
    """Forward one TCP connection's bytes to the emulator and back.

    Every chunk received from the client is written to the emulator; every
    chunk the emulator queues is sent back as soon as it is available.
    """

    server: _ByteTcpServer

    def handle(self) -> None:
        """Pump bytes until the client disconnects or the server stops."""
        device = self.server.device
        sock: socket.socket = self.request
        sock.settimeout(_POLL_SECONDS)
        while not self.server.stopping.is_set():
            try:
                data = sock.recv(4096)
            except socket.timeout:
                data = None
            except OSError:
                return
            if data == b"":
                return
            if data:
                device.write(data)
            while device.bytes_available() > 0:
                sock.sendall(device.read_available())


class _ByteTcpServer(socketserver.TCPServer):
    """TCPServer subclass that holds a reference to the emulator.

    Attributes:
        allow_reuse_address: Set to True to allow quick server restart.
        device: The emulator to serve.
        stopping: Set when the server is shutting down.
    """

    allow_reuse_address = True

    def __init__(
        self,
        server_address: tuple[str, int],
        device: ByteDeviceEmulator,
        **kwargs: Any,
    ) -> None:
        self.device = device
        self.stopping = threading.Event()
        super().__init__(server_address, _ByteRequestHandler, **kwargs)


class EmulatorServer:
    """TCP server wrapping a byte device emulator.

    Runs in a background daemon thread and handles one client connection at
    a time.

    Args:
        device: The emulator to serve.
        host: Bind address (default ``"127.0.0.1"``).
        port: Bind port. Use ``0`` for an OS-assigned ephemeral port.
    """

    def __init__(
        self,
        device: ByteDeviceEmulator,
        host: str = "127.0.0.1",
        port: int = 7000,
    ) -> None:
        self._server = _ByteTcpServer((host, port), device)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start serving in a daemon thread."""
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Shut down the server and wait for the thread to exit."""
        self._server.stopping.set()
        self._server.shutdown()
        if self._thread is not None:
            self._thread.join()
        self._server.server_close()

    @property
    def address(self) -> tuple[str, int]:
        """Return the actual bound ``(host, port)`` address."""
        addr = self._server.server_address
        return (str(addr[0]), int(addr[1]))

    @property
    def url(self) -> str:
        """Return the pyserial URL for this server."""
        host, port = self.address
        return f"socket://{host}:{port}"
