"""Barcode scanner drivers and emulators for benchlink.

Modules:
    session: Scan session state machine with guaranteed device release.
    zebra: Zebra MS4717 driver over the Simple Serial Interface.
    rakinda: Rakinda LV3000 driver over its byte command protocol.
    emulator: In-process emulators of both imagers.

Example:
    Capture a label::

        from benchlink_barcode import create_zebra_instrument

        scanner = create_zebra_instrument("/dev/ttyACM0")
        print(scanner.get_label())

    Use an emulator for testing::

        from benchlink_barcode import RakindaLv3000, make_lv3000_emulator
        from benchlink_serial import TransactionEngine

        scanner = RakindaLv3000(TransactionEngine(make_lv3000_emulator("A1B2C3")))
        assert scanner.get_label() == "A1B2C3"
"""

from benchlink_barcode.emulator import (
    Lv3000Emulator,
    Ms4717Emulator,
    make_lv3000_emulator,
    make_ms4717_emulator,
)
from benchlink_barcode.protocols import BarcodeScanner, decode_label
from benchlink_barcode.rakinda import RakindaLv3000, RakindaLv3000Config
from benchlink_barcode.rakinda import create_instrument as create_rakinda_instrument
from benchlink_barcode.session import ScanSessionDevice, SessionState, SessionStateMachine
from benchlink_barcode.zebra import ZebraMs4717, ZebraMs4717Config
from benchlink_barcode.zebra import create_instrument as create_zebra_instrument

__all__ = [
    # Emulators
    "Lv3000Emulator",
    "Ms4717Emulator",
    "make_lv3000_emulator",
    "make_ms4717_emulator",
    # Protocols
    "BarcodeScanner",
    "ScanSessionDevice",
    "decode_label",
    # Session
    "SessionState",
    "SessionStateMachine",
    # Drivers
    "RakindaLv3000",
    "RakindaLv3000Config",
    "ZebraMs4717",
    "ZebraMs4717Config",
    "create_rakinda_instrument",
    "create_zebra_instrument",
]
