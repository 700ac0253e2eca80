"""Caller-supplied cancellation and deadlines for external calls."""

from __future__ import annotations

import threading
import time

from ...errors import OperationCancelledError


class CancellationToken:
    """Cancellation flag with an optional deadline.

    External calls are the only suspension points of a route creation, so
    every client and repository call is preceded by ``raise_if_cancelled``.
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cap_timeout(self, timeout: float) -> float:
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return min(timeout, remaining)

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(f"Operation cancelled before {stage}.")
        if self.expired:
            raise OperationCancelledError(f"Deadline expired before {stage}.")


NEVER_CANCELLED = CancellationToken()
