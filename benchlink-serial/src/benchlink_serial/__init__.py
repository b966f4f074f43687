"""Serial transaction engine for benchlink instrument drivers.

This package provides the command/response machinery shared by every serial
instrument driver. It includes:

- Transport abstraction and a pyserial-backed transport
- Diagnostic sinks that log raw traffic in escaped or hex/ASCII form
- A read-until-pattern-or-timeout loop
- Simple Serial Interface (SSI) command framing
- A serialized write-then-expect transaction engine
- USB VID/PID serial port resolution
- In-process emulators and a TCP server exposing them

Typical usage::

    from benchlink_serial import SerialConfig, SerialPortTransport, TransactionEngine

    transport = SerialPortTransport(SerialConfig("/dev/ttyACM0"))
    transport.open()
    engine = TransactionEngine(transport)
    reply = engine.transact(b"?", b"!", timeout=5)
    engine.close()
"""

from benchlink_serial.diagnostics import (
    DiagnosticSink,
    Direction,
    LoggingSink,
    NullSink,
    TrafficLogLevel,
    format_ascii,
    format_escaped,
    format_hex,
)
from benchlink_serial.discovery import find_serial_port, list_serial_ports, parse_usb_address
from benchlink_serial.emulator import ByteDeviceEmulator, ScriptedTransport
from benchlink_serial.engine import TransactionEngine
from benchlink_serial.reader import PatternReader, ReadResult, find_pattern
from benchlink_serial.server import EmulatorServer
from benchlink_serial.ssi import (
    ACK,
    NAK,
    SsiFrame,
    SsiOpcode,
    checksum,
    encode_frame,
    parse_frame,
)
from benchlink_serial.transport import ByteTransport, SerialConfig, SerialPortTransport

__all__ = [
    # Diagnostics
    "DiagnosticSink",
    "Direction",
    "LoggingSink",
    "NullSink",
    "TrafficLogLevel",
    "format_ascii",
    "format_escaped",
    "format_hex",
    # Discovery
    "find_serial_port",
    "list_serial_ports",
    "parse_usb_address",
    # Emulation
    "ByteDeviceEmulator",
    "EmulatorServer",
    "ScriptedTransport",
    # Engine
    "PatternReader",
    "ReadResult",
    "TransactionEngine",
    "find_pattern",
    # SSI
    "ACK",
    "NAK",
    "SsiFrame",
    "SsiOpcode",
    "checksum",
    "encode_frame",
    "parse_frame",
    # Transport
    "ByteTransport",
    "SerialConfig",
    "SerialPortTransport",
]
