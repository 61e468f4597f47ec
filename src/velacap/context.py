"""Cancellation context passed through every network-bound call."""

from __future__ import annotations

import threading
import time

from velacap.exceptions import OperationCancelledError


class CancelContext:
    """Cancel signal with an optional deadline.

    A context is cancelled either explicitly through `cancel` or implicitly
    once its deadline passes. Network calls derive their timeout from
    `timeout_for`, so a deadline bounds every blocking call as well.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("operation cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise OperationCancelledError("context deadline exceeded")

    def timeout_for(self, default: float) -> float:
        """Return the timeout a network call should use under this context."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)


def background() -> CancelContext:
    """A context that is never cancelled and has no deadline."""
    return CancelContext()
