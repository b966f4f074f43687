"""Signal generator drivers for benchlink.

Modules:
    windfreak: Windfreak SynthUSB3 driver.
    emulator: In-process SynthUSB3 emulator.
"""

from benchlink_siggen.emulator import (
    SynthUsb3Emulator,
    SynthUsb3EmulatorConfig,
    make_synthusb3_emulator,
)
from benchlink_siggen.windfreak import WindfreakConfig, WindfreakSynthUsb3, create_instrument

__all__ = [
    "SynthUsb3Emulator",
    "SynthUsb3EmulatorConfig",
    "WindfreakConfig",
    "WindfreakSynthUsb3",
    "create_instrument",
    "make_synthusb3_emulator",
]
