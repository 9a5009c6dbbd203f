"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, BinaryIO, Protocol, TypeVar, runtime_checkable


if TYPE_CHECKING:
    import builtins

    from deltasharing.core.cancellation import CancellationToken

T_co = TypeVar("T_co", covariant=True)

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class TransportPort(Protocol):
    """Authenticated HTTP exchanges with the sharing server.

    Paths are relative to the profile endpoint. Record-returning calls
    give the response body split into non-empty NDJSON lines.
    """

    def get(
        self, path: str, *, cancel: CancellationToken | None = None
    ) -> list[bytes]:
        """Single GET without retries."""
        ...

    def get_with_retry(
        self,
        path: str,
        max_results: int | None = None,
        page_token: str | None = None,
        *,
        params: Mapping[str, str | int] | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[bytes]:
        """GET with pagination query parameters, retrying transient failures.

        Args:
            path: Endpoint path, e.g. "/shares".
            max_results: Page size hint sent as ``maxResults``.
            page_token: Continuation token sent as ``pageToken``.
            params: Additional query parameters.
            cancel: Optional cancellation token.
        """
        ...

    def head(
        self, path: str, *, cancel: CancellationToken | None = None
    ) -> Mapping[str, str]:
        """HEAD request returning a case-insensitive header map; retried."""
        ...

    def post_query(
        self,
        path: str,
        predicate_hints: Sequence[str] = (),
        limit_hint: int = 0,
        *,
        version: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[bytes]:
        """POST a table query body; retried."""
        ...


@runtime_checkable
class DownloaderPort(Protocol):
    """Downloads the content of an absolute data-file URL."""

    def download(
        self,
        url: str,
        progress: ProgressCallback | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        """Fetch the full body of `url`.

        Args:
            url: Absolute (usually presigned) URL.
            progress: Optional callback function(bytes_downloaded, total_bytes).
            cancel: Optional cancellation token.
        """
        ...


@runtime_checkable
class CachePort(Protocol):
    """Local byte store keyed by relative '/'-separated keys."""

    def get(self, key: str) -> bytes | None:
        """Return stored bytes, or None if absent (or empty, hence corrupt)."""
        ...

    def put(self, key: str, data: bytes) -> None:
        """Store bytes under key, publishing atomically."""
        ...

    def invalidate(self, key: str) -> bool:
        """Remove an entry. Returns True if something was removed."""
        ...

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove all entries whose key starts with prefix.

        For example, invalidate_prefix("store.example.com/sales") removes every
        cached file served from that host under that path.

        Returns:
            Number of entries removed.
        """
        ...

    def list_all_keys(self) -> builtins.list[str]:
        """List all cache keys."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports download progress to the user.

    This protocol defines the contract for progress display adapters.
    The core domain uses this to report progress without depending
    on any specific UI library.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking a download task.

        Args:
            name: Human-readable name for the task (file name).
            total: Total bytes to download, 0 if unknown.

        Returns:
            A ProgressCallback to call with (bytes_downloaded, total_bytes).
        """
        ...

    def finish_task(self, name: str) -> None:
        """Mark a task as complete."""
        ...


class NullProgressReporter:
    """A ProgressReporter that produces no output.

    Used as the default when no progress reporting is desired.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:  # noqa: ARG002
        """Return a no-op callback."""
        return lambda _downloaded, _total: None

    def finish_task(self, name: str) -> None:
        """Do nothing."""
        _ = name  # Unused but required by protocol


@runtime_checkable
class Reader(Protocol[T_co]):
    """Turns the bytes of one data file into an in-memory table."""

    def read(self, stream: BinaryIO) -> T_co:
        """Read a whole data file from a binary stream."""
        ...
