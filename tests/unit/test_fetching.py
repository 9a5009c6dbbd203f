"""Unit tests for cache-backed data-file fetching."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING

import pytest


if TYPE_CHECKING:
    from tests.conftest import FakeDownloader


URL = "https://store.example.com/sales/orders/part-0.parquet?X-Amz-Signature=abc"
KEY = "store.example.com/sales/orders/part-0.parquet"


@pytest.mark.cache
class TestFetch:
    """Tests for DataFileCache.fetch() and fetch_entry()."""

    def test_second_fetch_is_a_hit(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """Two fetches of one URL should download once."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        fake_downloader.payloads[URL] = b"PAR1data"
        files = DataFileCache(FileCache(tmp_path), fake_downloader)

        first = files.fetch_entry(URL)
        second = files.fetch_entry(URL)

        assert (first.hit, second.hit) == (False, True)
        assert first.data == second.data == b"PAR1data"
        assert first.key == KEY
        assert fake_downloader.calls == [URL]

    def test_resigned_url_is_a_hit(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """A fresh signature for the same file should reuse the entry."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        files = DataFileCache(FileCache(tmp_path), fake_downloader)
        files.fetch(URL)
        files.fetch(URL.replace("abc", "xyz"))

        assert len(fake_downloader.calls) == 1

    def test_empty_entry_is_downloaded_again(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """A zero-byte entry on disk should trigger exactly one re-download."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        entry = tmp_path / f"{KEY}#data"
        entry.parent.mkdir(parents=True)
        entry.write_bytes(b"")
        fake_downloader.payloads[URL] = b"PAR1data"
        files = DataFileCache(FileCache(tmp_path), fake_downloader)

        assert files.fetch(URL) == b"PAR1data"
        assert files.fetch(URL) == b"PAR1data"
        assert len(fake_downloader.calls) == 1
        assert entry.read_bytes() == b"PAR1data"

    def test_concurrent_fetches_download_once(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """Ten threads fetching one URL should share a single download."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        fake_downloader.delay = 0.05
        fake_downloader.payloads[URL] = b"PAR1data"
        files = DataFileCache(FileCache(tmp_path), fake_downloader)
        barrier = threading.Barrier(10)
        results: list[bytes] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            data = files.fetch(URL)
            with lock:
                results.append(data)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(fake_downloader.calls) == 1
        assert results == [b"PAR1data"] * 10

    def test_different_keys_download_in_parallel(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """Fetches of different files should not wait on each other."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        release = threading.Event()
        in_flight: list[str] = []
        timed_out: list[str] = []

        class BlockingDownloader:
            def download(self, url, progress=None, *, cancel=None) -> bytes:
                in_flight.append(url)
                if len(in_flight) == 2:
                    release.set()
                if not release.wait(5.0):
                    timed_out.append(url)
                return b"data"

        files = DataFileCache(FileCache(tmp_path), BlockingDownloader())
        urls = [
            "https://store.example.com/a.parquet",
            "https://store.example.com/b.parquet",
        ]
        threads = [threading.Thread(target=files.fetch, args=(u,)) for u in urls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(in_flight) == urls
        assert timed_out == []

    def test_failed_download_leaves_no_entry(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """A download error should propagate and cache nothing."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.exceptions import HTTPStatusError
        from deltasharing.core.fetching import DataFileCache

        fake_downloader.error = HTTPStatusError("HTTP 403", status_code=403)
        cache = FileCache(tmp_path)
        files = DataFileCache(cache, fake_downloader)

        with pytest.raises(HTTPStatusError) as exc_info:
            files.fetch(URL)

        assert exc_info.value.operation == "fetch"
        assert cache.list_all_keys() == []

    def test_invalid_url_raises(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """A URL without host should be rejected before downloading."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.exceptions import InvalidArgumentError
        from deltasharing.core.fetching import DataFileCache

        files = DataFileCache(FileCache(tmp_path), fake_downloader)

        with pytest.raises(InvalidArgumentError):
            files.fetch("relative/path.parquet")
        assert fake_downloader.calls == []

    def test_progress_reporter_sees_download(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """A reporter should get a task named after the file."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        events: list[tuple[str, str]] = []

        class RecordingReporter:
            def start_task(self, name: str, total: int):
                events.append(("start", name))
                return lambda downloaded, total: events.append(("update", name))

            def finish_task(self, name: str) -> None:
                events.append(("finish", name))

        files = DataFileCache(FileCache(tmp_path), fake_downloader)
        files.fetch(URL, progress=RecordingReporter())

        assert events[0] == ("start", "part-0.parquet")
        assert events[-1] == ("finish", "part-0.parquet")

    def test_open_returns_stream(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """open() should return a readable binary stream."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        fake_downloader.payloads[URL] = b"PAR1data"
        files = DataFileCache(FileCache(tmp_path), fake_downloader)

        with files.open(URL) as stream:
            assert stream.read() == b"PAR1data"


@pytest.mark.cache
class TestEvict:
    """Tests for DataFileCache.evict()."""

    def test_evict_forces_download(
        self, tmp_path: Path, fake_downloader: FakeDownloader
    ) -> None:
        """After evict() the next fetch should download again."""
        from deltasharing.adapters.cache import FileCache
        from deltasharing.core.fetching import DataFileCache

        files = DataFileCache(FileCache(tmp_path), fake_downloader)
        files.fetch(URL)

        assert files.evict(URL) is True
        assert files.evict(URL) is False
        files.fetch(URL)
        assert len(fake_downloader.calls) == 2
