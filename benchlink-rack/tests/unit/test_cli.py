"""Tests for the benchlink command-line interface."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest

from benchlink_barcode.emulator import Lv3000Emulator
from benchlink_rack.cli import main, parse_byte
from benchlink_serial.server import EmulatorServer


@pytest.fixture
def lv3000_server() -> Iterator[EmulatorServer]:
    server = EmulatorServer(Lv3000Emulator(label="A1B2C3"), port=0)
    server.start()
    yield server
    server.stop()


def _bench_file(tmp_path: Path, port: str, identity: str = "") -> Path:
    path = tmp_path / "bench.yaml"
    path.write_text(
        "bench:\n"
        "  id: cli-bench\n"
        "logging:\n"
        "  level: WARNING\n"
        "instruments:\n"
        "  scanner:\n"
        "    driver: benchlink_barcode.rakinda:create_instrument\n"
        f"{identity}"
        "    kwargs:\n"
        f"      port: \"{port}\"\n"
        "      timeout: 2.0\n",
        encoding="utf-8",
    )
    return path


class TestParseByte:
    def test_plain(self) -> None:
        assert parse_byte("E4") == 0xE4

    def test_prefixed(self) -> None:
        assert parse_byte("0x01") == 0x01

    def test_not_hex(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError, match="not a hex byte"):
            parse_byte("ZZ")

    def test_out_of_range(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError, match="out of range"):
            parse_byte("100")


class TestFrameCommand:
    def test_start_session(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["frame", "E4"]) == 0
        assert capsys.readouterr().out.strip() == "04 E4 04 00 FF 14"

    def test_with_params(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["frame", "E6", "01"]) == 0
        assert capsys.readouterr().out.strip() == "05 E6 04 00 01 FF 10"

    def test_bad_opcode(self) -> None:
        with pytest.raises(SystemExit):
            main(["frame", "ZZ"])


class TestPortsCommand:
    def test_lists_ports(self, capsys: pytest.CaptureFixture[str]) -> None:
        ports = [
            {"device": "/dev/ttyACM0", "description": "SynthUSB3", "hwid": "", "usb": "USB\\VID_16D0&PID_0000"},
            {"device": "/dev/ttyS0", "description": "ttyS0", "hwid": "", "usb": ""},
        ]
        with patch("benchlink_rack.cli.list_serial_ports", return_value=ports):
            assert main(["ports"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["/dev/ttyACM0", "USB\\VID_16D0&PID_0000", "SynthUSB3"]
        assert lines[1].split() == ["/dev/ttyS0", "-", "ttyS0"]

    def test_no_ports(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("benchlink_rack.cli.list_serial_ports", return_value=[]):
            assert main(["ports"]) == 0
        assert "No serial ports found." in capsys.readouterr().out


class TestScanCommand:
    def test_scan_label(
        self, tmp_path: Path, lv3000_server: EmulatorServer, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = _bench_file(tmp_path, lv3000_server.url)
        assert main(["scan", "-c", str(path), "-i", "scanner"]) == 0
        assert capsys.readouterr().out.strip() == "A1B2C3"

    def test_identity_mismatch(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        identity = "    identity:\n      manufacturer: Zebra\n      model: MS4717\n"
        path = _bench_file(tmp_path, "/dev/benchlink-no-such-port", identity)
        assert main(["scan", "-c", str(path), "-i", "scanner"]) == 1
        assert "identity mismatch" in capsys.readouterr().out

    def test_unreachable_port(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = _bench_file(tmp_path, "/dev/benchlink-no-such-port")
        assert main(["scan", "-c", str(path), "-i", "scanner"]) == 1
        assert "benchlink-no-such-port" in capsys.readouterr().out

    def test_not_a_scanner(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = _bench_file(tmp_path, "/dev/benchlink-no-such-port")
        synth = MagicMock(spec=["close", "get_identity", "set_frequency"])
        with patch("benchlink_rack.cli.create_instrument", return_value=synth):
            assert main(["scan", "-c", str(path), "-i", "scanner"]) == 1
        assert "not a barcode scanner" in capsys.readouterr().out
        synth.close.assert_called_once_with()

    def test_unknown_instrument(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = _bench_file(tmp_path, "/dev/benchlink-no-such-port")
        assert main(["scan", "-c", str(path), "-i", "printer"]) == 1
        assert "Unknown instrument" in capsys.readouterr().out

    def test_missing_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["scan", "-c", str(tmp_path / "nope.yaml"), "-i", "scanner"]) == 1
        assert "Config file not found" in capsys.readouterr().out


class TestMain:
    def test_no_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
