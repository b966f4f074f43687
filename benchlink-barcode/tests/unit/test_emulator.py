"""Tests for the barcode scanner emulators and label decoding."""

from __future__ import annotations

from benchlink_serial.ssi import SOURCE_DECODER, SsiOpcode, encode_frame, parse_frame

from benchlink_barcode.emulator import (
    SSI_ACK_FRAME,
    SSI_NAK_FRAME,
    Lv3000Emulator,
    Ms4717Emulator,
    make_lv3000_emulator,
    make_ms4717_emulator,
)
from benchlink_barcode.protocols import decode_label


def _drain(device: Ms4717Emulator | Lv3000Emulator) -> list[bytes]:
    chunks = []
    while device.bytes_available():
        chunks.append(device.read_available())
    return chunks


class TestDecodeLabel:
    def test_strips_ack_and_terminator(self) -> None:
        assert decode_label(b"\x06A1B2C3\r\n", ack=b"\x06") == "A1B2C3"

    def test_no_ack(self) -> None:
        assert decode_label(b"A1B2C3\r\n") == "A1B2C3"

    def test_drops_non_printable(self) -> None:
        assert decode_label(b"\x02A1\x03B2\r\n") == "A1B2"

    def test_empty(self) -> None:
        assert decode_label(b"") == ""


class TestMs4717Emulator:
    def test_ack_frame(self) -> None:
        assert SSI_ACK_FRAME == bytes.fromhex("04 D0 00 00 FF 2C")
        frame = parse_frame(SSI_NAK_FRAME)
        assert frame.opcode == SsiOpcode.CMD_NAK
        assert frame.source == SOURCE_DECODER

    def test_asleep_ignores_frames(self) -> None:
        device = make_ms4717_emulator()
        device.write(encode_frame(SsiOpcode.SCAN_ENABLE))
        assert _drain(device) == []
        assert device.opcodes == []

    def test_wake_then_ack(self) -> None:
        device = Ms4717Emulator()
        device.write(b"\x00")
        assert device.awake
        device.write(encode_frame(SsiOpcode.SCAN_ENABLE))
        assert _drain(device) == [SSI_ACK_FRAME]
        assert device.scan_enabled

    def test_wake_byte_prefixing_frame(self) -> None:
        device = Ms4717Emulator()
        device.write(b"\x00" + encode_frame(SsiOpcode.AIM_ON))
        assert device.opcodes == [SsiOpcode.AIM_ON]

    def test_frame_split_across_writes(self) -> None:
        device = Ms4717Emulator()
        device.write(b"\x00")
        frame = encode_frame(SsiOpcode.BEEP, [0x01])
        device.write(frame[:3])
        assert device.opcodes == []
        device.write(frame[3:])
        assert device.opcodes == [SsiOpcode.BEEP]

    def test_session_start_sends_label(self) -> None:
        device = Ms4717Emulator(label="XYZ")
        device.write(b"\x00")
        device.write(encode_frame(SsiOpcode.SCAN_ENABLE))
        _drain(device)
        device.write(encode_frame(SsiOpcode.START_SESSION))
        assert _drain(device) == [SSI_ACK_FRAME, b"XYZ\r\n"]
        assert device.session_active

    def test_session_start_without_scan_enable(self) -> None:
        device = Ms4717Emulator()
        device.write(b"\x00")
        device.write(encode_frame(SsiOpcode.START_SESSION))
        assert _drain(device) == [SSI_ACK_FRAME]

    def test_sleep(self) -> None:
        device = Ms4717Emulator()
        device.write(b"\x00")
        device.write(encode_frame(SsiOpcode.SLEEP))
        assert not device.awake

    def test_nak(self) -> None:
        device = Ms4717Emulator()
        device.nak_opcodes.add(SsiOpcode.LED_ON)
        device.write(b"\x00")
        device.write(encode_frame(SsiOpcode.LED_ON, [0x00]))
        assert _drain(device) == [SSI_NAK_FRAME]


class TestLv3000Emulator:
    def test_ping(self) -> None:
        device = make_lv3000_emulator()
        device.write(b"?")
        assert _drain(device) == [b"!"]

    def test_start_scan(self) -> None:
        device = make_lv3000_emulator("XYZ")
        device.write(b"\x1b1")
        assert _drain(device) == [b"\x06", b"XYZ\r\n"]
        assert device.scanning

    def test_split_label(self) -> None:
        device = Lv3000Emulator("XYZ")
        device.split_label = True
        device.write(b"\x1b1")
        assert _drain(device) == [b"\x06", b"XYZ\r", b"\n"]

    def test_no_label(self) -> None:
        device = Lv3000Emulator(None)
        device.write(b"\x1b1")
        assert _drain(device) == [b"\x06"]

    def test_stop_scan(self) -> None:
        device = Lv3000Emulator()
        device.write(b"\x1b1")
        device.write(b"\x1b0")
        assert not device.scanning
        assert device.commands == [b"\x1b1", b"\x1b0"]

    def test_unknown_command(self) -> None:
        device = Lv3000Emulator()
        device.write(b"xyz")
        assert _drain(device) == []
        assert device.commands == []
