"""
Cancellation token — a thread-safe "stop now" flag shared by callers.

The runner owns one token per run; Target.execute checks it between
composite steps and the shell adapter polls it while waiting for the
child process.
"""

from __future__ import annotations

import threading


class CancelToken:
    """Cooperative cancellation flag backed by a threading.Event."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "") -> None:
        """Request cancellation.  Idempotent; the first reason is kept."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def canceled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def wait(self, timeout: float | None = None) -> bool:
        """Block until canceled or ``timeout`` elapses; True if canceled."""
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"<CancelToken canceled={self.canceled}>"
