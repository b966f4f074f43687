"""Windfreak SynthUSB3 emulator.

Provides an in-process emulator of the SynthUSB3 command set built on
:class:`~benchlink_serial.emulator.ByteDeviceEmulator`. Set commands are
silent; queries are answered with one ``\\n``-terminated line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from benchlink_serial.emulator import ByteDeviceEmulator

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SynthUsb3EmulatorConfig:
    """Identity reported by a SynthUSB3 emulator.

    Args:
        model: ``+`` response.
        serial: ``-`` response.
        firmware: ``v0`` response.
        hardware: ``v1`` response.
    """

    model: str = "SynthUSB3"
    serial: str = "1234"
    firmware: str = "Firmware Version 3.41"
    hardware: str = "Hardware Version 1.0"

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("model must be non-empty")


# ---------------------------------------------------------------------------
# Emulator
# ---------------------------------------------------------------------------


class SynthUsb3Emulator(ByteDeviceEmulator):
    """In-process SynthUSB3 emulator.

    Attributes:
        frequency_khz: Output frequency in kHz.
        level_dbm: Output level in dBm.
        rf_on: RF output state.
        reference: ``1`` for the internal reference, ``0`` for external.
        leveled: Self-calibration status reported by ``V``.
        commands: Every command received, decoded, in order.

    Args:
        config: Identity strings.
    """

    def __init__(self, config: SynthUsb3EmulatorConfig | None = None) -> None:
        super().__init__(name="synthusb3-emulator")
        self._config = config or SynthUsb3EmulatorConfig()
        self.frequency_khz = 1_000_000.0
        self.level_dbm = 0.0
        self.rf_on = True
        self.reference = 0
        self.leveled = True
        self.commands: list[str] = []

        self._queries: dict[str, Callable[[], str]] = {
            "+": lambda: self._config.model,
            "-": lambda: self._config.serial,
            "v0": lambda: self._config.firmware,
            "v1": lambda: self._config.hardware,
            "x?": lambda: str(self.reference),
            "f?": lambda: f"{self.frequency_khz:.3f}",
            "W?": lambda: f"{self.level_dbm:.3f}",
            "E?": lambda: "1" if self.rf_on else "0",
            "V": lambda: "1" if self.leveled else "0",
        }
        self._setters: dict[str, Callable[[str], None]] = {
            "x": self._set_reference,
            "f": self._set_frequency,
            "W": self._set_level,
            "E": self._set_rf,
        }

    def handle(self, data: bytes) -> Iterable[bytes]:
        """Answer one command."""
        text = data.decode("ascii").strip()
        if not text:
            return []
        self.commands.append(text)

        query = self._queries.get(text)
        if query is not None:
            return [query().encode("ascii") + b"\n"]

        setter = self._setters.get(text[0])
        if setter is not None:
            try:
                setter(text[1:])
            except ValueError:
                pass
        return []

    def _set_reference(self, arg: str) -> None:
        self.reference = int(arg)

    def _set_frequency(self, arg: str) -> None:
        self.frequency_khz = float(arg) * 1000.0

    def _set_level(self, arg: str) -> None:
        self.level_dbm = float(arg)

    def _set_rf(self, arg: str) -> None:
        self.rf_on = int(arg) != 0


def make_synthusb3_emulator() -> SynthUsb3Emulator:
    """Create a SynthUSB3 emulator with the default identity."""
    return SynthUsb3Emulator()
