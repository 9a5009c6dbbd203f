"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
shared fixtures for the test suite.
"""

from __future__ import annotations

import json
import threading
import time
from typing import TYPE_CHECKING

import pytest

from deltasharing.adapters.http import HttpTransport
from deltasharing.core.models import Profile
from deltasharing.core.retry import RetryPolicy


if TYPE_CHECKING:
    from pathlib import Path

    from deltasharing.core.cancellation import CancellationToken
    from deltasharing.core.ports import ProgressCallback


ENDPOINT = "https://sharing.example.com/delta-sharing"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, ports, and errors")
    config.addinivalue_line("markers", "transport: HTTP transport adapter")
    config.addinivalue_line("markers", "decoder: NDJSON response decoding")
    config.addinivalue_line("markers", "client: Protocol client service")
    config.addinivalue_line("markers", "cache: File cache and cache-backed fetching")
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line("markers", "readers: Data-frame readers and loaders")
    config.addinivalue_line("markers", "e2e: End-to-end tests")


@pytest.fixture
def endpoint() -> str:
    """Base URL of the mocked sharing server."""
    return ENDPOINT


@pytest.fixture
def profile() -> Profile:
    """Profile pointing at the mocked sharing server."""
    return Profile(endpoint=ENDPOINT, bearer_token="test-token")


@pytest.fixture
def profile_file(tmp_path: Path) -> Path:
    """Profile file on disk pointing at the mocked sharing server."""
    path = tmp_path / "config.share"
    path.write_text(
        json.dumps(
            {
                "shareCredentialsVersion": 1,
                "endpoint": ENDPOINT + "/",
                "bearerToken": "test-token",
            }
        )
    )
    return path


@pytest.fixture
def no_wait_retry() -> RetryPolicy:
    """Retry policy with the default retry count and no backoff waits."""
    return RetryPolicy(num_retries=5, initial_backoff=0.0, max_backoff=0.0)


@pytest.fixture
def transport(profile: Profile, no_wait_retry: RetryPolicy) -> HttpTransport:
    """HTTP transport against the mocked server that retries without waiting."""
    return HttpTransport(profile, retry=no_wait_retry)


class FakeDownloader:
    """DownloaderPort serving fixed payloads and counting downloads.

    Attributes:
        payloads: Content served per URL; unknown URLs get b"data:<url>".
        calls: URLs downloaded, in call order.
        delay: Seconds each download takes, to widen race windows.
        error: Exception raised by every download when set.
    """

    def __init__(self) -> None:
        self.payloads: dict[str, bytes] = {}
        self.calls: list[str] = []
        self.delay = 0.0
        self.error: Exception | None = None
        self._lock = threading.Lock()

    def download(
        self,
        url: str,
        progress: ProgressCallback | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        with self._lock:
            self.calls.append(url)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        data = self.payloads.get(url, f"data:{url}".encode())
        if progress is not None:
            progress(len(data), len(data))
        return data


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    """Reusable fake downloader for cache-backed fetch tests."""
    return FakeDownloader()
