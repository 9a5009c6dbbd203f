"""Retry policy for calls against the sharing server."""

from __future__ import annotations

from dataclasses import dataclass

from deltasharing.core.exceptions import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times to retry a transient failure and how long to wait.

    A failure is transient when no response arrived, or the server answered
    429 or any 5xx. The wait before retry ``n`` (0-based) is
    ``min(max_backoff, initial_backoff * multiplier ** n)``, so delays never
    shrink from one retry to the next.

    Attributes:
        num_retries: Retries after the first attempt. 0 disables retrying.
        initial_backoff: Seconds to wait before the first retry.
        max_backoff: Upper bound for a single wait.
        multiplier: Growth factor between consecutive waits (>= 1).
    """

    num_retries: int = 5
    initial_backoff: float = 0.5
    max_backoff: float = 30.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        """Validate policy values."""
        if self.num_retries < 0:
            raise InvalidArgumentError("num_retries cannot be negative")
        if self.initial_backoff < 0 or self.max_backoff < 0:
            raise InvalidArgumentError("backoff values cannot be negative")
        if self.multiplier < 1:
            raise InvalidArgumentError("multiplier must be at least 1")

    @staticmethod
    def is_retryable_status(status_code: int) -> bool:
        """Return True for 429 and 5xx status codes."""
        return status_code == 429 or 500 <= status_code < 600

    def delay(self, retry_index: int) -> float:
        """Seconds to wait before retry number `retry_index` (0-based)."""
        return min(self.max_backoff, self.initial_backoff * self.multiplier**retry_index)


NO_RETRY = RetryPolicy(num_retries=0)
