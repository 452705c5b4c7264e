"""Caller-supplied cancellation and deadline for one discovery run."""

import threading
import time
from typing import Optional

from .errors import RunCancelledError


class CancellationToken:
    """
    Thread-safe cancel flag with an optional deadline.

    Example:
        >>> token = CancellationToken(timeout=30)
        >>> result = load_groups(config, mapping, cancel=token)
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``; wakes early on cancel or at the deadline."""
        self._event.wait(self.cap_timeout(seconds))

    def cap_timeout(self, timeout: float) -> float:
        remaining = self.remaining()
        return timeout if remaining is None else min(timeout, remaining)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RunCancelledError("Discovery run cancelled")
