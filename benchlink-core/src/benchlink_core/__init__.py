"""Core types shared by the benchlink instrument packages.

This package is stdlib-only and sits beneath every other benchlink package.

Key components:
    - Errors: Hierarchy of exception types that separates timeouts,
      unavailable ports, malformed replies and fatal handle misuse.
    - InstrumentIdentity: Identification metadata reported by drivers.
"""

from benchlink_core.errors import (
    BenchlinkError,
    DeviceClosedError,
    FrameFormatError,
    I2cError,
    PortUnavailableError,
    ProtocolTimeoutError,
    ResponseFormatError,
    SessionCleanupError,
    SsiNakError,
)
from benchlink_core.identity import InstrumentIdentity

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Errors
    "BenchlinkError",
    "DeviceClosedError",
    "FrameFormatError",
    "I2cError",
    "PortUnavailableError",
    "ProtocolTimeoutError",
    "ResponseFormatError",
    "SessionCleanupError",
    "SsiNakError",
    # Types
    "InstrumentIdentity",
]
