"""Domain exceptions for deltasharing.

All library errors inherit from DeltaSharingError, allowing users to catch
any library exception with a single except clause. Each error records the
operation and endpoint path it came from, and provides a recovery_hint
property with guidance on resolving it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from pathlib import Path


class DeltaSharingError(Exception):
    """Base class for all deltasharing exceptions.

    Attributes:
        operation: Name of the operation that failed (e.g. "list_shares").
        path: Endpoint path or URL the operation was talking to.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        path: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.path = path
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        context = ", ".join(
            f"{label}={value}"
            for label, value in (("operation", self.operation), ("path", self.path))
            if value
        )
        if context:
            return f"{self.message} ({context})"
        return self.message

    def with_context(self, operation: str, path: str | None = None) -> DeltaSharingError:
        """Tag the error with the public operation that was running.

        The operation always takes the outer name; the path is only filled
        in when the inner layer did not record one. Returns the same
        exception so callers can ``raise exc.with_context(...)``.
        """
        self.operation = operation
        if self.path is None:
            self.path = path
        return self

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class TransportError(DeltaSharingError):
    """Raised when no HTTP response was received (connection, DNS, timeout)."""

    @property
    def recovery_hint(self) -> str:
        """Suggest checking connectivity to the endpoint."""
        return "Check network connectivity and the profile endpoint URL"


class HTTPStatusError(DeltaSharingError):
    """Raised for a non-2xx response once retries are exhausted.

    Attributes:
        status_code: The final HTTP status code.
        body: Leading part of the response body, for diagnosis.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        *,
        operation: str | None = None,
        path: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message, operation=operation, path=path)

    @property
    def recovery_hint(self) -> str | None:
        """Suggest a fix based on the status code."""
        if self.status_code in (401, 403):
            return "Check the bearer token in the profile; it may have expired"
        if self.status_code == 404:
            return "Verify the share, schema and table names"
        if self.status_code == 429 or self.status_code >= 500:
            return "The server is overloaded or failing; retry later"
        return None


class MalformedResponseError(DeltaSharingError):
    """Raised when a response record is not valid JSON or has the wrong shape."""

    pass


class ProtocolViolationError(DeltaSharingError):
    """Raised when a response is structurally insufficient.

    For example too few NDJSON records, or a missing required header.
    """

    pass


class UnsupportedProtocolError(ProtocolViolationError):
    """Raised when a table requires a newer reader than this client supports.

    Attributes:
        min_reader_version: Reader version demanded by the table.
        supported_version: Highest reader version this client implements.
    """

    def __init__(
        self,
        min_reader_version: int,
        supported_version: int,
        *,
        operation: str | None = None,
        path: str | None = None,
    ) -> None:
        self.min_reader_version = min_reader_version
        self.supported_version = supported_version
        super().__init__(
            f"Table requires reader version {min_reader_version}, "
            f"client supports up to {supported_version}",
            operation=operation,
            path=path,
        )

    @property
    def recovery_hint(self) -> str:
        """Suggest upgrading."""
        return "Upgrade deltasharing to a release that supports this table"


class CacheIOError(DeltaSharingError):
    """Raised when the local file cache cannot be read or written.

    Attributes:
        key: The cache key involved.
        file_path: Local path of the cache entry.
    """

    def __init__(
        self,
        message: str,
        key: str,
        file_path: Path,
        cause: Exception | None = None,
    ) -> None:
        self.key = key
        self.file_path = file_path
        super().__init__(message, cause=cause)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the cache directory."""
        return f"Check permissions and free space for {self.file_path.parent}"


class InvalidArgumentError(DeltaSharingError):
    """Raised for malformed input such as an unparseable table URL."""

    pass


class ProfileError(InvalidArgumentError):
    """Raised when a profile file is missing, unreadable or incomplete."""

    @property
    def recovery_hint(self) -> str:
        """Point at the expected profile format."""
        return (
            "A profile is a JSON file with 'shareCredentialsVersion', "
            "'endpoint' and 'bearerToken'"
        )


class CancelledError(DeltaSharingError):
    """Raised when the caller cancelled the call or its deadline passed."""

    pass
