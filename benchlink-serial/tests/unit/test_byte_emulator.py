"""Tests for the in-process byte device emulators."""

from __future__ import annotations

import pytest

from benchlink_core.errors import DeviceClosedError
from benchlink_serial.emulator import ByteDeviceEmulator, ScriptedTransport


class TestByteDeviceEmulator:
    def test_starts_open(self) -> None:
        device = ByteDeviceEmulator()
        assert device.is_open
        assert device.name == "emulator"

    def test_base_handle_never_replies(self) -> None:
        device = ByteDeviceEmulator()
        device.write(b"?")
        assert device.bytes_available() == 0
        assert device.read_available() == b""

    def test_feed_delivers_one_chunk_per_read(self) -> None:
        device = ByteDeviceEmulator()
        device.feed(b"\x06", b"A1\r\n")
        assert device.bytes_available() == 1
        assert device.read_available() == b"\x06"
        assert device.read_available() == b"A1\r\n"
        assert device.read_available() == b""

    def test_feed_skips_empty_chunks(self) -> None:
        device = ByteDeviceEmulator()
        device.feed(b"", b"x", b"")
        assert device.read_available() == b"x"
        assert device.bytes_available() == 0

    def test_max_bytes_splits_chunk(self) -> None:
        device = ByteDeviceEmulator()
        device.feed(b"abcdef")
        assert device.read_available(4) == b"abcd"
        assert device.read_available() == b"ef"

    def test_discard(self) -> None:
        device = ByteDeviceEmulator()
        device.feed(b"stale")
        device.discard_buffers()
        assert device.bytes_available() == 0
        assert device.discard_count == 1

    def test_close_drops_queue_and_rejects_io(self) -> None:
        device = ByteDeviceEmulator()
        device.feed(b"x")
        device.close()
        assert not device.is_open
        with pytest.raises(DeviceClosedError):
            device.read_available()
        with pytest.raises(DeviceClosedError):
            device.write(b"?")
        device.open()
        assert device.bytes_available() == 0

    def test_open_when_open_keeps_queue(self) -> None:
        device = ByteDeviceEmulator()
        device.feed(b"x")
        device.open()
        assert device.read_available() == b"x"


class TestScriptedTransport:
    def test_known_command(self) -> None:
        transport = ScriptedTransport().on(b"\x1b1", b"\x06", b"A1B2C3\r\n")
        transport.write(b"\x1b1")
        assert transport.read_available() == b"\x06"
        assert transport.read_available() == b"A1B2C3\r\n"
        assert transport.written == [b"\x1b1"]

    def test_unknown_command_is_silent(self) -> None:
        transport = ScriptedTransport().on(b"?", b"!")
        transport.write(b"x")
        assert transport.bytes_available() == 0

    def test_rule_replaced(self) -> None:
        transport = ScriptedTransport().on(b"?", b"!").on(b"?", b"?")
        transport.write(b"?")
        assert transport.read_available() == b"?"
