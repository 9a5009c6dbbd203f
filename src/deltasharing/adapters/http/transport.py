"""HTTP transport adapter using requests."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

import requests

from deltasharing._version import __version__
from deltasharing.core.exceptions import (
    CancelledError,
    HTTPStatusError,
    InvalidArgumentError,
    TransportError,
)
from deltasharing.core.retry import NO_RETRY, RetryPolicy


if TYPE_CHECKING:
    from deltasharing.core.cancellation import CancellationToken
    from deltasharing.core.models import Profile
    from deltasharing.core.ports import ProgressCallback


logger = logging.getLogger(__name__)

R = TypeVar("R")

# Chunk size for streaming downloads (64KB)
_CHUNK_SIZE = 64 * 1024

# Leading part of an error body kept on HTTPStatusError
_ERROR_BODY_LIMIT = 512

_RETRYABLE_EXCEPTIONS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


def split_records(body: bytes) -> list[bytes]:
    """Split an NDJSON body into records, dropping blank lines."""
    records = []
    for line in body.split(b"\n"):
        line = line.rstrip(b"\r")
        if line.strip():
            records.append(line)
    return records


class HttpTransport:
    """Transport adapter for a Delta Sharing server.

    Implements TransportPort and DownloaderPort over a requests.Session.
    Server calls carry the profile's bearer token; data-file downloads do
    not, since presigned URLs carry their own credentials.

    Example:
        >>> transport = HttpTransport(profile, retry=RetryPolicy(num_retries=3))
        >>> records = transport.get_with_retry("/shares")
    """

    def __init__(
        self,
        profile: Profile,
        retry: RetryPolicy | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the transport.

        Args:
            profile: Endpoint and bearer token of the sharing server.
            retry: Retry policy for retried calls. Defaults to RetryPolicy().
            session: Optional requests session, e.g. with custom adapters.
            timeout: Per-request timeout in seconds.
        """
        self._profile = profile
        self._retry = retry if retry is not None else RetryPolicy()
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def profile(self) -> Profile:
        """The profile this transport authenticates with."""
        return self._profile

    @property
    def retry(self) -> RetryPolicy:
        """The retry policy for retried calls."""
        return self._retry

    def _url(self, path: str) -> str:
        return f"{self._profile.endpoint}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._profile.bearer_token}",
            "Content-Type": "application/json; charset=UTF-8",
            "User-Agent": f"deltasharing/{__version__}",
        }

    def get(
        self, path: str, *, cancel: CancellationToken | None = None
    ) -> list[bytes]:
        """Single GET without retries.

        Raises:
            TransportError: If no response was received.
            HTTPStatusError: If the response status is not 2xx.
            CancelledError: If `cancel` fires.
        """
        url = self._url(path)
        return self._do_with_retry(
            "get",
            path,
            lambda timeout: self._session.get(
                url, headers=self._headers(), timeout=timeout
            ),
            lambda response: split_records(response.content),
            cancel,
            policy=NO_RETRY,
        )

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

        ``maxResults`` and ``pageToken`` are only sent when set.
        """
        query: dict[str, str | int] = dict(params or {})
        if max_results is not None:
            query["maxResults"] = max_results
        if page_token:
            query["pageToken"] = page_token
        url = self._url(path)
        return self._do_with_retry(
            "get_with_retry",
            path,
            lambda timeout: self._session.get(
                url, headers=self._headers(), params=query, timeout=timeout
            ),
            lambda response: split_records(response.content),
            cancel,
        )

    def head(
        self, path: str, *, cancel: CancellationToken | None = None
    ) -> Mapping[str, str]:
        """HEAD request returning the response headers; retried.

        The returned mapping is case-insensitive.
        """
        url = self._url(path)
        return self._do_with_retry(
            "head",
            path,
            lambda timeout: self._session.head(
                url, headers=self._headers(), timeout=timeout
            ),
            lambda response: response.headers,
            cancel,
        )

    def post_query(
        self,
        path: str,
        predicate_hints: Sequence[str] = (),
        limit_hint: int = 0,
        *,
        version: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[bytes]:
        """POST a table query; retried.

        The body is ``{"predicateHints": [...], "limitHint": N}``, with
        ``limitHint`` always sent (0 means no limit) and ``version`` added
        when set.
        """
        body: dict[str, Any] = {
            "predicateHints": list(predicate_hints),
            "limitHint": limit_hint,
        }
        if version is not None:
            body["version"] = version
        url = self._url(path)
        return self._do_with_retry(
            "post_query",
            path,
            lambda timeout: self._session.post(
                url, headers=self._headers(), json=body, timeout=timeout
            ),
            lambda response: split_records(response.content),
            cancel,
        )

    def download(
        self,
        url: str,
        progress: ProgressCallback | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        """Download an absolute data-file URL; retried.

        Args:
            url: Absolute (usually presigned) URL.
            progress: Optional callback function(bytes_downloaded, total_bytes).
            cancel: Optional cancellation token, checked between chunks.

        Returns:
            The complete response body.
        """

        def read_body(response: requests.Response) -> bytes:
            total = int(response.headers.get("Content-Length") or 0)
            chunks: list[bytes] = []
            downloaded = 0
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                if cancel is not None:
                    cancel.raise_if_cancelled("download", url)
                chunks.append(chunk)
                downloaded += len(chunk)
                if progress is not None:
                    progress(downloaded, total)
            return b"".join(chunks)

        return self._do_with_retry(
            "download",
            url,
            lambda timeout: self._session.get(url, stream=True, timeout=timeout),
            read_body,
            cancel,
        )

    def _request_timeout(self, cancel: CancellationToken | None) -> float:
        if cancel is None:
            return self._timeout
        remaining = cancel.remaining()
        if remaining is None:
            return self._timeout
        return min(self._timeout, remaining)

    def _do_with_retry(
        self,
        operation: str,
        path: str,
        send: Callable[[float], requests.Response],
        consume: Callable[[requests.Response], R],
        cancel: CancellationToken | None,
        *,
        policy: RetryPolicy | None = None,
    ) -> R:
        """Run one HTTP exchange, retrying transient failures.

        Each attempt sends the request and consumes the response body. A
        network error, 429 or 5xx is retried until the policy's retries run
        out; other statuses fail at once. Waits between attempts follow the
        policy's backoff and end early on cancellation.
        """
        policy = policy if policy is not None else self._retry
        retries = 0
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled(operation, path)

            try:
                response = send(self._request_timeout(cancel))
                with response:
                    status = response.status_code
                    if 200 <= status < 300:
                        return consume(response)
                    body = response.text[:_ERROR_BODY_LIMIT]
            except (requests.exceptions.MissingSchema, requests.exceptions.InvalidURL) as e:
                raise InvalidArgumentError(
                    f"Invalid URL: {e}", operation=operation, path=path, cause=e
                ) from e
            except _RETRYABLE_EXCEPTIONS as e:
                if cancel is not None and cancel.cancelled:
                    raise CancelledError(
                        "Call cancelled during request",
                        operation=operation,
                        path=path,
                        cause=e,
                    ) from e
                if retries >= policy.num_retries:
                    raise TransportError(
                        f"Request failed after {retries + 1} attempt(s): {e}",
                        operation=operation,
                        path=path,
                        cause=e,
                    ) from e
                reason = type(e).__name__
            except requests.RequestException as e:
                raise TransportError(
                    f"Request failed: {e}", operation=operation, path=path, cause=e
                ) from e
            else:
                if not policy.is_retryable_status(status) or retries >= policy.num_retries:
                    raise HTTPStatusError(
                        f"HTTP {status} after {retries + 1} attempt(s)",
                        status_code=status,
                        body=body,
                        operation=operation,
                        path=path,
                    )
                reason = f"HTTP {status}"

            delay = policy.delay(retries)
            retries += 1
            logger.warning(
                "Retrying %s %s after %s (retry %d of %d, waiting %.2fs)",
                operation,
                path,
                reason,
                retries,
                policy.num_retries,
                delay,
            )
            if cancel is not None:
                if cancel.wait(delay):
                    cancel.raise_if_cancelled(operation, path)
            elif delay > 0:
                time.sleep(delay)
