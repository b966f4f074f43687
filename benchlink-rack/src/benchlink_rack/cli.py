"""Command-line interface for benchlink.

Usage:
    # Capture one label with a scanner from a bench file
    benchlink scan --config bench.yaml --instrument scanner

    # Show the SSI frame for an opcode and parameters
    benchlink frame E6 01

    # List serial ports with their USB addresses
    benchlink ports
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from benchlink_barcode.protocols import BarcodeScanner
from benchlink_core.errors import BenchlinkError
from benchlink_serial.discovery import list_serial_ports
from benchlink_serial.ssi import encode_frame

from benchlink_rack.config import load_config
from benchlink_rack.loader import create_instrument

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_byte(value: str) -> int:
    """Parse a hex byte such as ``E4`` or ``0xE4``."""
    try:
        number = int(value, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a hex byte") from None
    if not 0 <= number <= 0xFF:
        raise argparse.ArgumentTypeError(f"'{value}' is out of range 00-FF")
    return number


def cmd_scan(args: argparse.Namespace) -> int:
    """Capture one label and print it."""
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    if config.log_level_number is not None and not args.debug:
        logging.getLogger().setLevel(config.log_level_number)

    try:
        scanner = create_instrument(config, args.instrument)
    except (KeyError, ImportError, AttributeError, TypeError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    if not isinstance(scanner, BarcodeScanner):
        close = getattr(scanner, "close", None)
        if close is not None:
            close()
        print(f"Error: Instrument '{args.instrument}' is not a barcode scanner")
        return 1

    try:
        label = scanner.get_label()
    finally:
        scanner.close()

    print(label)
    return 0


def cmd_frame(args: argparse.Namespace) -> int:
    """Print an SSI frame in hex."""
    frame = encode_frame(args.opcode, args.params)
    print(frame.hex(" ").upper())
    return 0


def cmd_ports(args: argparse.Namespace) -> int:
    """List serial ports."""
    ports = list_serial_ports()
    if not ports:
        print("No serial ports found.")
        return 0
    for port in ports:
        usb = port["usb"] or "-"
        print(f"{port['device']:<20} {usb:<24} {port['description']}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="benchlink instrument CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Capture one barcode label")
    scan_parser.add_argument("--config", "-c", required=True, help="Bench YAML file")
    scan_parser.add_argument(
        "--instrument", "-i", required=True,
        help="Name of the scanner in the bench file"
    )

    # frame command
    frame_parser = subparsers.add_parser("frame", help="Encode an SSI command frame")
    frame_parser.add_argument("opcode", type=parse_byte, help="Opcode in hex (e.g., E4)")
    frame_parser.add_argument("params", type=parse_byte, nargs="*", help="Parameter bytes in hex")

    # ports command
    subparsers.add_parser("ports", help="List serial ports")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    handlers = {
        "scan": cmd_scan,
        "frame": cmd_frame,
        "ports": cmd_ports,
    }
    try:
        return handlers[args.command](args)
    except BenchlinkError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
