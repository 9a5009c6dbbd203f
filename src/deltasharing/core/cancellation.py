"""Caller-supplied cancellation and deadlines for network calls."""

from __future__ import annotations

import threading
import time

from deltasharing.core.exceptions import CancelledError


class CancellationToken:
    """A cancel signal with an optional deadline.

    Pass one token to any client or cache call. Cancelling it (or letting
    the deadline pass) stops pending retries and clamps request timeouts,
    and the call raises CancelledError.

    Example:
        >>> token = CancellationToken(timeout=10.0)
        >>> client.list_files_in_table(table, cancel=token)
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Create a token.

        Args:
            timeout: Seconds from now after which the token counts as
                cancelled. None means no deadline.
        """
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        """Cancel every call using this token."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() was called or the deadline passed."""
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`, waking early on cancellation.

        Returns:
            True if the token is cancelled when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._event.wait(seconds)
        return self.cancelled

    def raise_if_cancelled(self, operation: str, path: str | None = None) -> None:
        """Raise CancelledError if the token is cancelled."""
        if self.cancelled:
            reason = "cancelled" if self._event.is_set() else "deadline exceeded"
            raise CancelledError(
                f"Call {reason}", operation=operation, path=path
            )
