"""Tests for the Windfreak SynthUSB3 driver against the in-process emulator."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from benchlink_core.errors import DeviceClosedError, ResponseFormatError
from benchlink_serial.emulator import ScriptedTransport
from benchlink_serial.engine import TransactionEngine

from benchlink_siggen.emulator import SynthUsb3Emulator, SynthUsb3EmulatorConfig
from benchlink_siggen.windfreak import (
    WindfreakConfig,
    WindfreakSynthUsb3,
    _format_number,
    create_instrument,
)


class CoarseSynth(SynthUsb3Emulator):
    """Emulator that only resolves whole kHz."""

    def _set_frequency(self, arg: str) -> None:
        self.frequency_khz = float(round(float(arg) * 1000.0))


class ExternalOnlySynth(SynthUsb3Emulator):
    """Emulator that ignores reference selection."""

    def _set_reference(self, arg: str) -> None:
        pass


class StuckRfSynth(SynthUsb3Emulator):
    """Emulator whose RF output cannot be switched."""

    def _set_rf(self, arg: str) -> None:
        pass


def _make_synth(
    emulator: SynthUsb3Emulator | None = None,
) -> tuple[WindfreakSynthUsb3, SynthUsb3Emulator]:
    emulator = emulator or SynthUsb3Emulator()
    engine = TransactionEngine(emulator, poll_interval=0.001)
    return WindfreakSynthUsb3(engine, WindfreakConfig(timeout=0.2)), emulator


@pytest.fixture
def synth() -> tuple[WindfreakSynthUsb3, SynthUsb3Emulator]:
    driver, emulator = _make_synth()
    driver.open()
    return driver, emulator


class TestFormatNumber:
    def test_whole_number_keeps_one_decimal(self) -> None:
        assert _format_number(1000.0, 8) == "1000.0"

    def test_trailing_zeros_stripped(self) -> None:
        assert _format_number(-10.5, 3) == "-10.5"

    def test_rounded_to_max_decimals(self) -> None:
        assert _format_number(2450.123456789, 8) == "2450.12345679"


class TestConfig:
    def test_defaults(self) -> None:
        config = WindfreakConfig()
        assert config.timeout == 1.0
        assert config.log_identity is True

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            WindfreakConfig(timeout=0)


class TestOpen:
    def test_known_state(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        assert driver.is_open
        assert emulator.reference == 1
        assert emulator.rf_on is False
        assert emulator.level_dbm == 0.0
        assert emulator.frequency_khz == 1_000_000.0

    def test_command_sequence(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        _, emulator = synth
        assert emulator.commands == [
            "+",
            "-",
            "v0",
            "v1",
            "x1",
            "x?",
            "E0",
            "E?",
            "W0.0",
            "W?",
            "V",
            "f1000.0",
            "f?",
            "V",
        ]

    def test_skip_identity_logging(self) -> None:
        emulator = SynthUsb3Emulator()
        driver = WindfreakSynthUsb3(
            TransactionEngine(emulator, poll_interval=0.001),
            WindfreakConfig(timeout=0.2, log_identity=False),
        )
        driver.open()
        assert emulator.commands[0] == "x1"

    def test_reference_not_selected(self) -> None:
        driver, _ = _make_synth(ExternalOnlySynth())
        with pytest.raises(ResponseFormatError, match="reference"):
            driver.open()
        assert not driver.is_open


class TestFrequency:
    def test_set_and_get(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        driver.set_frequency(2450.5)
        assert emulator.commands[-3] == "f2450.5"
        assert driver.get_frequency() == pytest.approx(2450.5)

    def test_limits_accepted(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, _ = synth
        driver.set_frequency(12.5)
        driver.set_frequency(6400.0)
        assert driver.get_frequency() == pytest.approx(6400.0)

    def test_below_range(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        count = len(emulator.commands)
        with pytest.raises(ValueError, match="below"):
            driver.set_frequency(12.4)
        assert len(emulator.commands) == count

    def test_above_range(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, _ = synth
        with pytest.raises(ValueError, match="above"):
            driver.set_frequency(6400.1)

    def test_error_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        driver, _ = _make_synth(CoarseSynth())
        driver.open()
        driver.set_frequency(1000.0004)
        assert "frequency error" in caplog.text

    def test_not_leveled(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        emulator.leveled = False
        with pytest.raises(ResponseFormatError, match="calibration"):
            driver.set_frequency(100.0)

    def test_unparseable_reply(self) -> None:
        transport = ScriptedTransport().on(b"f?", b"abc\n")
        driver = WindfreakSynthUsb3(TransactionEngine(transport, poll_interval=0.001))
        with pytest.raises(ResponseFormatError, match="abc"):
            driver.get_frequency()


class TestOutputLevel:
    def test_set_and_get(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        driver.set_output_level(-10.5)
        assert emulator.level_dbm == -10.5
        assert driver.get_output_level() == -10.5

    def test_out_of_range(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, _ = synth
        with pytest.raises(ValueError, match="above"):
            driver.set_output_level(10.01)
        with pytest.raises(ValueError, match="below"):
            driver.set_output_level(-50.01)

    def test_not_leveled(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        emulator.leveled = False
        with pytest.raises(ResponseFormatError):
            driver.set_output_level(-5.0)


class TestRfOutput:
    def test_on_off(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        driver.set_rf_output_state(True)
        assert emulator.rf_on is True
        assert driver.get_rf_output_state() is True
        driver.set_rf_output_state(False)
        assert driver.get_rf_output_state() is False

    def test_state_not_applied(self) -> None:
        emulator = StuckRfSynth()
        emulator.rf_on = False
        driver, _ = _make_synth(emulator)
        driver.open()
        with pytest.raises(ResponseFormatError, match="on"):
            driver.set_rf_output_state(True)

    def test_unparseable_state(self) -> None:
        transport = ScriptedTransport().on(b"E?", b"2\n")
        driver = WindfreakSynthUsb3(TransactionEngine(transport, poll_interval=0.001))
        with pytest.raises(ResponseFormatError):
            driver.get_rf_output_state()


class TestClose:
    def test_turns_rf_off(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, emulator = synth
        driver.set_rf_output_state(True)
        driver.close()
        assert emulator.rf_on is False
        assert not emulator.is_open
        assert not driver.is_open

    def test_rf_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        emulator = StuckRfSynth()
        emulator.rf_on = False
        driver, _ = _make_synth(emulator)
        driver.open()
        emulator.rf_on = True
        driver.close()
        assert "Unable to turn RF output off" in caplog.text
        assert not emulator.is_open

    def test_close_unopened(self) -> None:
        driver, emulator = _make_synth()
        driver.close()
        assert emulator.commands == []
        assert not emulator.is_open

    def test_queries_after_close(self, synth: tuple[WindfreakSynthUsb3, SynthUsb3Emulator]) -> None:
        driver, _ = synth
        driver.close()
        with pytest.raises(DeviceClosedError):
            driver.get_frequency()


class TestIdentity:
    def test_identity(self) -> None:
        config = SynthUsb3EmulatorConfig(serial="0042", firmware="Firmware Version 3.50")
        driver, _ = _make_synth(SynthUsb3Emulator(config))
        identity = driver.get_identity()
        assert identity.manufacturer == "Windfreak"
        assert identity.model == "SynthUSB3"
        assert identity.serial == "0042"
        assert identity.firmware == "Firmware Version 3.50"


class TestCreateInstrument:
    def test_port_found_by_usb_address(self) -> None:
        emulator = SynthUsb3Emulator()
        with patch(
            "benchlink_siggen.windfreak.find_serial_port", return_value="/dev/ttyACM3"
        ) as mock_find, patch(
            "benchlink_siggen.windfreak.SerialPortTransport", return_value=emulator
        ) as mock_transport:
            driver = create_instrument(timeout=0.5)
        mock_find.assert_called_once_with(("USB\\VID_16D0&PID_0000",))
        assert mock_transport.call_args.args[0].port == "/dev/ttyACM3"
        assert driver.is_open
        assert emulator.reference == 1

    def test_explicit_port(self) -> None:
        emulator = SynthUsb3Emulator()
        with patch("benchlink_siggen.windfreak.find_serial_port") as mock_find, patch(
            "benchlink_siggen.windfreak.SerialPortTransport", return_value=emulator
        ):
            driver = create_instrument("COM9")
        mock_find.assert_not_called()
        assert driver.is_open
