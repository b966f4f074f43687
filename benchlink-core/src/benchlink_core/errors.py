"""Exception types for benchlink.

This module defines the exception hierarchy used by every benchlink package.
All benchlink exceptions inherit from BenchlinkError, allowing callers to catch
any driver or transport failure with a single except clause while still being
able to tell a timeout from an unavailable port or a malformed reply.

Exception hierarchy:
    BenchlinkError (base)
    +-- PortUnavailableError: Transport could not be opened or resolved
    +-- ProtocolTimeoutError: Expected pattern not received before the deadline
    +-- ResponseFormatError: Reply received but not understood
    |   +-- SsiNakError: SSI device answered with a negative acknowledge
    +-- FrameFormatError: Outbound SSI frame could not be encoded
    +-- DeviceClosedError: Device handle used while closed
    +-- SessionCleanupError: Capture succeeded but the device was not released
    +-- I2cError: I2C adapter call failed after its retry
"""

from __future__ import annotations


class BenchlinkError(Exception):
    """Base exception for all benchlink errors.

    This is the root of the benchlink exception hierarchy. Catch this to handle
    any framework-specific error.
    """


class PortUnavailableError(BenchlinkError):
    """Raised when a transport cannot be opened.

    This covers a serial port that does not exist or is held by another
    process, as well as USB address lookups that match no attached device.
    It is fatal to the current operation and never retried by the library.
    """


class ProtocolTimeoutError(BenchlinkError):
    """Raised when the expected end-of-message pattern was not received in time.

    Attributes:
        expected: The byte pattern that was being waited for.
        received: Every byte received before the deadline elapsed. An empty
            value means the device stayed silent; a non-empty value means the
            device answered with something else.
        timeout: The timeout in seconds that elapsed.
    """

    def __init__(self, expected: bytes, received: bytes, timeout: float) -> None:
        """Initialize the timeout error.

        Args:
            expected: Pattern that was not found.
            received: Bytes received before the deadline.
            timeout: Timeout in seconds.
        """
        self.expected = expected
        self.received = received
        self.timeout = timeout
        super().__init__(
            f"Did not receive {expected.hex(' ').upper() or 'any data'} within {timeout:g} s "
            f"(received {len(received)} byte(s): {received.hex(' ').upper() or '<none>'})"
        )


class ResponseFormatError(BenchlinkError):
    """Raised when a reply was received but could not be interpreted.

    Typical causes are a missing acknowledge byte in front of a payload or a
    numeric query answered with non-numeric text.
    """


class SsiNakError(ResponseFormatError):
    """Raised when an SSI device rejects a command with a NAK byte."""


class FrameFormatError(BenchlinkError):
    """Raised when an SSI frame cannot be encoded.

    Only detectable at encode time, for example an opcode or parameter byte
    outside 0..255, or a parameter set that overflows the one-byte length field.
    """


class DeviceClosedError(BenchlinkError):
    """Raised when a device handle is used while it is not open.

    Using a handle after :meth:`close` is a programming error rather than a
    transient condition, so callers should not retry on it.
    """


class SessionCleanupError(BenchlinkError):
    """Raised when a capture succeeded but releasing the device failed.

    The payload is discarded because the device is now in an uncertain state
    (possibly still armed or awake).

    Attributes:
        errors: Every exception raised by the cleanup transitions, in order.
    """

    def __init__(self, errors: tuple[BaseException, ...]) -> None:
        """Initialize the cleanup error.

        Args:
            errors: Exceptions raised by the cleanup transitions.
        """
        self.errors = errors
        messages = "; ".join(str(e) for e in errors)
        super().__init__(f"Session cleanup failed: {messages}")


class I2cError(BenchlinkError):
    """Raised when an I2C adapter call fails.

    Writes and slave enable/disable calls are retried once before this is
    raised; reads are not retried.
    """
