"""
Cancellation Scope

A single cooperative cancellation signal shared by every record task of
one invocation. Tasks check the scope at each I/O boundary.
"""

import threading

from ingest.exceptions import InvocationCancelledError


class CancellationScope:
    """Invocation-wide cancellation signal."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "invocation canceled"
        self._timer: threading.Timer | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "invocation canceled") -> None:
        """Cancel the scope. Only the first reason is kept."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            InvocationCancelledError: If the scope has been canceled
        """
        if self._event.is_set():
            raise InvocationCancelledError(self._reason)

    def cancel_after(self, seconds: float, reason: str = "deadline exceeded") -> None:
        """
        Arm a timer that cancels the scope after `seconds`.

        A non-positive delay cancels immediately.
        """
        self.disarm()
        if seconds <= 0:
            self.cancel(reason)
            return
        timer = threading.Timer(seconds, self.cancel, args=(reason,))
        timer.daemon = True
        timer.start()
        self._timer = timer

    def disarm(self) -> None:
        """Stop a pending deadline timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __enter__(self) -> "CancellationScope":
        return self

    def __exit__(self, *exc_info) -> None:
        self.disarm()
