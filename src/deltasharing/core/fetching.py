"""Cache-backed fetching of data files.

DataFileCache sits in front of data-file downloads so repeated reads of the
same immutable file do not hit the remote store again. Concurrent fetches of
one key are serialized so at most one download per key is in flight;
fetches of different keys never wait on each other.
"""

from __future__ import annotations

import io
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, BinaryIO

from deltasharing.core.cache_keys import derive_cache_key
from deltasharing.core.exceptions import DeltaSharingError
from deltasharing.core.models import CacheEntry
from deltasharing.core.ports import NullProgressReporter


if TYPE_CHECKING:
    from deltasharing.core.cancellation import CancellationToken
    from deltasharing.core.ports import CachePort, DownloaderPort, ProgressReporter


logger = logging.getLogger(__name__)


class _KeyedLocks:
    """One lock per key, created on demand and dropped when unused."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[key]
                if users == 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


class DataFileCache:
    """Deduplicates downloads of data files referenced by URL.

    The cache key is derived from the URL's host and path, so a file fetched
    again with freshly signed query parameters is still a hit. Presigned URLs
    are only valid for a short time; entries are assumed immutable for as
    long as they are kept, and callers evict them to force a refresh.

    Example:
        >>> cache = DataFileCache(FileCache(Path(".deltasharing/cache")), transport)
        >>> result = client.list_files_in_table(table)
        >>> data = cache.fetch(result.files[0].url)
    """

    def __init__(self, cache: CachePort, downloader: DownloaderPort) -> None:
        """Initialize with a byte store and a downloader.

        Args:
            cache: Local store holding downloaded files.
            downloader: Fetches a URL's content on a miss.
        """
        self._cache = cache
        self._downloader = downloader
        self._locks = _KeyedLocks()

    @property
    def cache(self) -> CachePort:
        """The underlying byte store."""
        return self._cache

    def fetch_entry(
        self,
        url: str,
        progress: ProgressReporter | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> CacheEntry:
        """Return a URL's content, downloading it on a cache miss.

        Args:
            url: Absolute data-file URL.
            progress: Optional progress reporter for the download.
            cancel: Optional cancellation token for the download.

        Returns:
            CacheEntry with the bytes and whether it was a hit.

        Raises:
            InvalidArgumentError: If no cache key can be derived from the URL.
            CacheIOError: If the local store cannot be read or written.
            TransportError, HTTPStatusError, CancelledError: If the download
                fails; no cache entry is left behind.
        """
        key = derive_cache_key(url)
        with self._locks.hold(key):
            data = self._cache.get(key)
            if data is not None:
                logger.debug("Cache hit for %s", key)
                return CacheEntry(key=key, data=data, hit=True)

            logger.debug("Cache miss for %s, downloading", key)
            data = self._download(key, url, progress, cancel)
            self._cache.put(key, data)
            return CacheEntry(key=key, data=data, hit=False)

    def _download(
        self,
        key: str,
        url: str,
        progress: ProgressReporter | None,
        cancel: CancellationToken | None,
    ) -> bytes:
        reporter = progress if progress is not None else NullProgressReporter()
        name = PurePosixPath(key).name
        callback = reporter.start_task(name, 0)
        try:
            return self._downloader.download(url, callback, cancel=cancel)
        except DeltaSharingError as e:
            e.with_context("fetch", url)
            raise
        finally:
            reporter.finish_task(name)

    def fetch(
        self,
        url: str,
        progress: ProgressReporter | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bytes:
        """Return a URL's content, downloading it on a cache miss.

        See fetch_entry() for arguments and errors.
        """
        return self.fetch_entry(url, progress, cancel=cancel).data

    def open(
        self,
        url: str,
        progress: ProgressReporter | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> BinaryIO:
        """Return a URL's content as a binary stream for readers."""
        return io.BytesIO(self.fetch(url, progress, cancel=cancel))

    def evict(self, url: str) -> bool:
        """Remove the cache entry for a URL, if present.

        Returns:
            True if an entry was removed.
        """
        key = derive_cache_key(url)
        with self._locks.hold(key):
            removed = self._cache.invalidate(key)
        if removed:
            logger.debug("Evicted %s", key)
        return removed
