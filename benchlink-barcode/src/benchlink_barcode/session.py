"""Scan session state machine.

One barcode capture is a fixed sequence of transactions::

    IDLE -> AWAKE -> SCAN_ARMED -> SESSION_ACTIVE -> PAYLOAD_CAPTURED
         -> SESSION_STOPPED -> SCAN_DISARMED -> ASLEEP -> IDLE

:class:`SessionStateMachine` drives a :class:`ScanSessionDevice` through that
sequence while holding the device's transaction lock. Once the device has been
woken, the release transitions (stop, disarm, sleep) for every state actually
entered are attempted exactly once, in order, even when the capture fails, so
the device is never left armed.

Error precedence:
    - capture fails, cleanup fails: the capture error propagates; cleanup
      errors are logged.
    - capture succeeds, cleanup fails: :class:`SessionCleanupError` is raised
      and the payload is discarded, because the device state is unknown.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Protocol

from benchlink_core.errors import SessionCleanupError
from benchlink_serial.engine import TransactionEngine

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """States of one scan session."""

    IDLE = "idle"
    AWAKE = "awake"
    SCAN_ARMED = "scan_armed"
    SESSION_ACTIVE = "session_active"
    PAYLOAD_CAPTURED = "payload_captured"
    SESSION_STOPPED = "session_stopped"
    SCAN_DISARMED = "scan_disarmed"
    ASLEEP = "asleep"


class ScanSessionDevice(Protocol):
    """One transition method per session state.

    Devices without a notion of wake, arm or sleep implement those methods as
    no-ops.
    """

    @property
    def engine(self) -> TransactionEngine:
        """The engine whose lock the session holds."""
        ...

    def wakeup(self) -> None:
        """Bring the device out of low-power mode."""
        ...

    def arm_scan(self) -> None:
        """Enable scanning."""
        ...

    def start_session(self) -> bytes:
        """Start a scan session and return the acknowledgement reply."""
        ...

    def carry_over(self, start_response: bytes) -> bytes:
        """Return payload bytes that arrived together with the start acknowledgement."""
        ...

    def capture(self, initial: bytes) -> bytes:
        """Read the payload, seeded with the carried-over bytes."""
        ...

    def stop_session(self) -> None:
        """Stop the scan session."""
        ...

    def disarm_scan(self) -> None:
        """Disable scanning."""
        ...

    def sleep(self) -> None:
        """Return the device to low-power mode."""
        ...


class SessionStateMachine:
    """Run capture cycles on a :class:`ScanSessionDevice`.

    Args:
        device: Device providing the transitions.
    """

    def __init__(self, device: ScanSessionDevice) -> None:
        self._device = device
        self._history: list[SessionState] = [SessionState.IDLE]

    @property
    def state(self) -> SessionState:
        """The most recently entered state."""
        return self._history[-1]

    @property
    def history(self) -> tuple[SessionState, ...]:
        """Every state entered during the last :meth:`run`, in order."""
        return tuple(self._history)

    def run(self) -> bytes:
        """Run one complete capture cycle.

        Returns:
            The captured payload.

        Raises:
            SessionCleanupError: If the capture succeeded but a release
                transition failed.
            BenchlinkError: Whatever the failing transition raised.
        """
        device = self._device
        with device.engine.exclusive():
            self._history = [SessionState.IDLE]
            try:
                device.wakeup()
                self._enter(SessionState.AWAKE)
                device.arm_scan()
                self._enter(SessionState.SCAN_ARMED)
                response = device.start_session()
                self._enter(SessionState.SESSION_ACTIVE)
                payload = device.capture(device.carry_over(response))
                self._enter(SessionState.PAYLOAD_CAPTURED)
            except Exception:
                self._release()
                raise

            errors = self._release()
            if errors:
                raise SessionCleanupError(tuple(errors)) from errors[0]
            return payload

    def _release(self) -> list[Exception]:
        reached = set(self._history)
        steps: list[tuple[Callable[[], None], SessionState]] = []
        if SessionState.SESSION_ACTIVE in reached:
            steps.append((self._device.stop_session, SessionState.SESSION_STOPPED))
        if SessionState.SCAN_ARMED in reached:
            steps.append((self._device.disarm_scan, SessionState.SCAN_DISARMED))
        if SessionState.AWAKE in reached:
            steps.append((self._device.sleep, SessionState.ASLEEP))

        errors: list[Exception] = []
        for step, target in steps:
            try:
                step()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Session cleanup to %s failed: %s", target.value, exc)
                errors.append(exc)
                continue
            self._enter(target)

        self._enter(SessionState.IDLE)
        return errors

    def _enter(self, state: SessionState) -> None:
        logger.debug("Scan session: %s -> %s", self.state.value, state.value)
        self._history.append(state)
