"""Barcode scanner emulators.

Provides in-process emulators of the Zebra MS4717 (SSI) and Rakinda LV3000
imagers, built on :class:`~benchlink_serial.emulator.ByteDeviceEmulator`. Each
one "decodes" a configurable label whenever a scan session starts.
"""

from __future__ import annotations

from typing import Iterable

from benchlink_serial.emulator import ByteDeviceEmulator
from benchlink_serial.ssi import (
    SOURCE_DECODER,
    SsiOpcode,
    encode_frame,
    frame_size,
    parse_frame,
)

from benchlink_barcode.rakinda import ACK as LV3000_ACK
from benchlink_barcode.rakinda import CMD_PING, CMD_START_SCAN, CMD_STOP_SCAN, REPLY_PING

# ---------------------------------------------------------------------------
# Zebra MS4717
# ---------------------------------------------------------------------------

SSI_ACK_FRAME = encode_frame(SsiOpcode.CMD_ACK, source=SOURCE_DECODER)
SSI_NAK_FRAME = encode_frame(SsiOpcode.CMD_NAK, [0x01], source=SOURCE_DECODER)


class Ms4717Emulator(ByteDeviceEmulator):
    """In-process Zebra MS4717 emulator.

    Frames are reassembled from the written byte stream, so a frame split
    across writes is handled. A lone ``0x00`` between frames wakes the
    imager; frames received while asleep are ignored, as on the real device.

    Attributes:
        label: Label sent after a session starts, or None for no decode.
        opcodes: Opcode of every frame received, in order.
        awake: Whether the imager is awake.
        scan_enabled: Whether scanning is permitted.
        session_active: Whether a scan session is running.
        nak_opcodes: Opcodes answered with NAK instead of ACK.
        silent_opcodes: Opcodes that get no reply at all.

    Args:
        label: Label text decoded on each session start.
        suffix: Bytes appended to the label.
    """

    def __init__(self, label: str | None = "A1B2C3", suffix: bytes = b"\r\n") -> None:
        super().__init__(name="ms4717-emulator")
        self.label = label
        self.suffix = suffix
        self.opcodes: list[int] = []
        self.awake = False
        self.scan_enabled = False
        self.session_active = False
        self.nak_opcodes: set[int] = set()
        self.silent_opcodes: set[int] = set()
        self._rx = bytearray()

    def handle(self, data: bytes) -> Iterable[bytes]:
        """Consume written bytes and return replies for every complete frame."""
        self._rx += data
        replies: list[bytes] = []
        while self._rx:
            if self._rx[0] == 0x00:
                del self._rx[0]
                self.awake = True
                continue
            size = frame_size(bytes(self._rx))
            if len(self._rx) < size:
                break
            frame = parse_frame(bytes(self._rx[:size]))
            del self._rx[:size]
            replies.extend(self._on_frame(frame.opcode))
        return replies

    def _on_frame(self, opcode: int) -> list[bytes]:
        if not self.awake:
            return []
        self.opcodes.append(opcode)
        if opcode in self.silent_opcodes:
            return []
        if opcode in self.nak_opcodes:
            return [SSI_NAK_FRAME]

        replies = [SSI_ACK_FRAME]
        if opcode == SsiOpcode.SCAN_ENABLE:
            self.scan_enabled = True
        elif opcode == SsiOpcode.SCAN_DISABLE:
            self.scan_enabled = False
        elif opcode == SsiOpcode.START_SESSION:
            self.session_active = True
            if self.scan_enabled and self.label is not None:
                replies.append(self.label.encode("ascii") + self.suffix)
        elif opcode == SsiOpcode.STOP_SESSION:
            self.session_active = False
        elif opcode == SsiOpcode.SLEEP:
            self.awake = False
        return replies


def make_ms4717_emulator(label: str | None = "A1B2C3") -> Ms4717Emulator:
    """Create a Zebra MS4717 emulator that decodes ``label``."""
    return Ms4717Emulator(label=label)


# ---------------------------------------------------------------------------
# Rakinda LV3000
# ---------------------------------------------------------------------------


class Lv3000Emulator(ByteDeviceEmulator):
    """In-process Rakinda LV3000 emulator.

    Attributes:
        label: Label sent after scanning starts, or None for no decode.
        scanning: Whether scanning is active.
        commands: Every recognized command, in order.
        split_label: Deliver the label in two chunks with the CR LF split
            between them.

    Args:
        label: Label text decoded on each scan start.
    """

    def __init__(self, label: str | None = "A1B2C3") -> None:
        super().__init__(name="lv3000-emulator")
        self.label = label
        self.scanning = False
        self.commands: list[bytes] = []
        self.split_label = False

    def handle(self, data: bytes) -> Iterable[bytes]:
        """Answer one command."""
        if data == CMD_PING:
            self.commands.append(data)
            return [REPLY_PING]
        if data == CMD_START_SCAN:
            self.commands.append(data)
            self.scanning = True
            if self.label is None:
                return [LV3000_ACK]
            payload = self.label.encode("ascii") + b"\r\n"
            if self.split_label:
                return [LV3000_ACK, payload[:-1], payload[-1:]]
            return [LV3000_ACK, payload]
        if data == CMD_STOP_SCAN:
            self.commands.append(data)
            self.scanning = False
            return [LV3000_ACK]
        return []


def make_lv3000_emulator(label: str | None = "A1B2C3") -> Lv3000Emulator:
    """Create a Rakinda LV3000 emulator that decodes ``label``."""
    return Lv3000Emulator(label=label)
