"""Tests for traffic diagnostics formatting and sinks."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from benchlink_serial.diagnostics import (
    Direction,
    LoggingSink,
    NullSink,
    TrafficLogLevel,
    format_ascii,
    format_escaped,
    format_hex,
    report,
)

LOGGER = "benchlink_serial.diagnostics"


class TestFormatting:
    def test_escaped(self) -> None:
        assert format_escaped(b"\x06A1B2C3\r\n") == "{06}A1B2C3{0D}{0A}"

    def test_escaped_printable_only(self) -> None:
        assert format_escaped(b"f?") == "f?"

    def test_hex(self) -> None:
        assert format_hex(b"\x06A1") == "06 41 31"

    def test_hex_empty(self) -> None:
        assert format_hex(b"") == ""

    def test_ascii_gutter(self) -> None:
        assert format_ascii(b"\x06A1") == ".  A  1"

    def test_ascii_aligned_with_hex(self) -> None:
        data = b"\x04\xe4\x04\x00\xff\x14"
        assert len(format_ascii(data)) == len(format_hex(data)) - 1


class TestLoggingSink:
    def test_normal(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger=LOGGER)
        sink = LoggingSink(TrafficLogLevel.NORMAL)
        sink.on_bytes("COM3", Direction.IN, b"\x06A1\r\n")
        assert caplog.messages == ["COM3 << {06}A1{0D}{0A}"]

    def test_verbose(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger=LOGGER)
        sink = LoggingSink(TrafficLogLevel.VERBOSE)
        sink.on_bytes("COM3", Direction.OUT, b"\x1b1")
        assert caplog.messages == [
            "COM3 >> Hex:   1B 31",
            "COM3 >> Ascii: .  1",
        ]

    def test_none(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger=LOGGER)
        LoggingSink(TrafficLogLevel.NONE).on_bytes("COM3", Direction.OUT, b"x")
        assert caplog.messages == []

    def test_empty_chunk_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger=LOGGER)
        LoggingSink().on_bytes("COM3", Direction.IN, b"")
        assert caplog.messages == []

    def test_custom_logger(self) -> None:
        log = MagicMock()
        LoggingSink(TrafficLogLevel.NORMAL, log=log).on_bytes("COM3", Direction.OUT, b"?")
        log.debug.assert_called_once_with("%s %s %s", "COM3", ">>", "?")

    def test_never_raises(self) -> None:
        log = MagicMock()
        log.debug.side_effect = RuntimeError("handler broken")
        LoggingSink(TrafficLogLevel.VERBOSE, log=log).on_bytes("COM3", Direction.OUT, b"?")

    def test_level_from_string(self) -> None:
        assert LoggingSink(TrafficLogLevel("verbose")).level is TrafficLogLevel.VERBOSE


class TestReport:
    def test_forwards(self) -> None:
        sink = MagicMock()
        report(sink, "COM3", Direction.IN, b"!")
        sink.on_bytes.assert_called_once_with("COM3", Direction.IN, b"!")

    def test_skips_empty(self) -> None:
        sink = MagicMock()
        report(sink, "COM3", Direction.IN, b"")
        sink.on_bytes.assert_not_called()

    def test_no_sink(self) -> None:
        report(None, "COM3", Direction.IN, b"!")

    def test_sink_failure_shielded(self) -> None:
        sink = MagicMock()
        sink.on_bytes.side_effect = RuntimeError("boom")
        report(sink, "COM3", Direction.OUT, b"?")

    def test_null_sink(self) -> None:
        report(NullSink(), "COM3", Direction.OUT, b"?")
