"""Deadline object bounding a single outbound call.

A ``Deadline`` is created per invocation and passed down to whatever
performs I/O. Callers derive socket timeouts from ``remaining()`` and
call ``check()`` between steps; ``cancel()`` trips it early.

Blocking I/O cannot poll, so ``on_expire()`` registers a hard stop
(typically closing a socket) run from a timer thread when the deadline
passes. The timer is started lazily and cancelled by ``close()``, which
the context manager calls on both the success and the failure path.
"""

from __future__ import annotations

import threading
import time
from typing import Any
from typing import Callable
from typing import Optional


class DeadlineExceeded(Exception):
    """Raised when work continues past its deadline."""

    def __init__(self, timeout: float, cancelled: bool = False):
        reason = "cancelled" if cancelled else f"timed out after {timeout:g}s"
        super().__init__(reason)
        self.timeout = timeout
        self.cancelled = cancelled


class Deadline:
    """Monotonic expiry shared by every step of one outbound call."""

    def __init__(self, timeout: float):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._expires_at = time.monotonic() + timeout
        self._cancelled = False
        self._tripped = False
        self._closed = False
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._timer: Optional[threading.Timer] = None

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        if self._cancelled or self._tripped:
            return 0.0
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return (
            self._cancelled
            or self._tripped
            or time.monotonic() >= self._expires_at
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        """Trip the deadline now, running any registered hard stops."""
        self._cancelled = True
        self._fire()

    def check(self) -> None:
        """Raise DeadlineExceeded if the deadline passed or was cancelled."""
        if self.expired:
            raise DeadlineExceeded(self.timeout, cancelled=self._cancelled)

    def on_expire(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once when the deadline passes or is cancelled.

        Runs immediately if it already has. Never runs after ``close()``.
        """
        with self._lock:
            if self._closed:
                return
            run_now = self.expired
            if not run_now:
                self._callbacks.append(callback)
                if self._timer is None:
                    self._timer = threading.Timer(self.remaining(), self._fire)
                    self._timer.daemon = True
                    self._timer.start()
        if run_now:
            callback()

    def close(self) -> None:
        """Mark the deadline finished; later checks fail as cancelled."""
        with self._lock:
            self._closed = True
            self._cancelled = True
            self._callbacks = []
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _fire(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._tripped = True
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def __enter__(self) -> "Deadline":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Any,
    ) -> None:
        self.close()
