"""File-based cache adapter implementing CachePort."""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from deltasharing.core.exceptions import CacheIOError, InvalidArgumentError


logger = logging.getLogger(__name__)

# Prefix of in-flight temporary files; never reported as cache entries
_TMP_PREFIX = ".tmp-"

# Appended to the last key segment on disk. '#' never occurs in a URL path,
# so an entry file cannot share its name with a directory of another key.
_ENTRY_SUFFIX = "#data"

# Attempts to write an entry whose directory a concurrent invalidate removed
_WRITE_ATTEMPTS = 3


def _write_error(key: str, file_path: Path, cause: OSError) -> CacheIOError:
    return CacheIOError(
        f"Cannot write cache entry '{key}'", key=key, file_path=file_path, cause=cause
    )


class FileCache:
    """Local directory-backed byte store.

    Each key maps to one file under ``cache_dir`` (keys are '/'-separated,
    e.g. "store.example.com/sales/part-0.parquet"). Writes go to a temporary
    file in the target directory and are published with an atomic rename,
    so readers never see a partially written entry. On disk the last key
    segment carries a ``#data`` suffix, so "host/a" and "host/a/b" can both
    be cached.

    Attributes:
        cache_dir: Directory where cached files are stored.
    """

    def __init__(self, cache_dir: Path) -> None:
        """Initialize the cache with a directory path.

        Args:
            cache_dir: Directory where cached files will be stored. Created
                on first write.
        """
        self.cache_dir = Path(cache_dir)

    def _file_path(self, key: str) -> Path:
        """Get the path for a cached file.

        Raises:
            InvalidArgumentError: If the key is empty, contains '#', or has
                '.', '..' or empty segments.
        """
        segments = key.split("/")
        if "#" in key or any(s in ("", ".", "..") for s in segments):
            raise InvalidArgumentError(f"Invalid cache key '{key}'", path=key)
        return self.cache_dir.joinpath(*segments[:-1], segments[-1] + _ENTRY_SUFFIX)

    def _key(self, file_path: Path) -> str | None:
        """Get the key of an entry file, or None for other files."""
        if not file_path.name.endswith(_ENTRY_SUFFIX) or not file_path.is_file():
            return None
        relative = file_path.relative_to(self.cache_dir).as_posix()
        return relative[: -len(_ENTRY_SUFFIX)]

    def get(self, key: str) -> bytes | None:
        """Get cached bytes, or None if not cached.

        A zero-length entry is treated as corrupt: it is removed and
        reported as a miss.

        Args:
            key: Cache key identifying the file.

        Raises:
            CacheIOError: If the entry exists but cannot be read.
        """
        file_path = self._file_path(key)
        try:
            data = file_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheIOError(
                f"Cannot read cache entry '{key}'", key=key, file_path=file_path, cause=e
            ) from e

        if not data:
            logger.warning("Purging empty cache entry %s", key)
            self.invalidate(key)
            return None
        return data

    def put(self, key: str, data: bytes) -> None:
        """Store bytes in the cache, replacing any previous entry.

        Args:
            key: Cache key for the file.
            data: Complete file content.

        Raises:
            CacheIOError: If the entry cannot be written. No partial entry
                is left behind.
        """
        file_path = self._file_path(key)
        for attempt in range(1, _WRITE_ATTEMPTS + 1):
            try:
                self._write(file_path, data)
                return
            except FileNotFoundError as e:
                # The directory was removed between mkdir and the write
                if attempt == _WRITE_ATTEMPTS:
                    raise _write_error(key, file_path, e) from e
                logger.debug("Cache directory for %s vanished, retrying", key)
            except OSError as e:
                raise _write_error(key, file_path, e) from e

    @staticmethod
    def _write(file_path: Path, data: bytes) -> None:
        """Write to a temporary file next to file_path, then rename it."""
        tmp_name: str | None = None
        try:
            # Create parent directories (handles nested keys like "host/dir/file")
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=file_path.parent, prefix=_TMP_PREFIX, delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, file_path)
        except OSError:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise

    def invalidate(self, key: str) -> bool:
        """Remove a file from cache.

        Args:
            key: Cache key to invalidate.

        Returns:
            True if an entry was removed, False if there was none.
        """
        file_path = self._file_path(key)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheIOError(
                f"Cannot remove cache entry '{key}'", key=key, file_path=file_path, cause=e
            ) from e
        self._cleanup_empty_dirs(file_path.parent)
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove all cache entries with keys under a prefix directory.

        For example, invalidate_prefix("store.example.com/sales") removes
        "store.example.com/sales/part-0.parquet" and everything else below.

        Args:
            prefix: Key prefix naming a directory in the cache.

        Returns:
            Number of entries removed.

        Raises:
            InvalidArgumentError: If the prefix points outside cache_dir.
        """
        prefix_dir = self.cache_dir / prefix.strip("/")
        if not prefix_dir.resolve().is_relative_to(self.cache_dir.resolve()):
            raise InvalidArgumentError(
                f"Cache prefix '{prefix}' is outside the cache directory", path=prefix
            )
        if not prefix_dir.is_dir():
            return 0

        count = 0
        for file_path in list(prefix_dir.rglob("*")):
            if self._key(file_path) is not None:
                file_path.unlink(missing_ok=True)
                count += 1

        # Clean up empty directories, deepest first
        for dir_path in sorted(
            (p for p in prefix_dir.rglob("*") if p.is_dir()),
            key=lambda p: len(p.parts),
            reverse=True,
        ):
            with contextlib.suppress(OSError):
                dir_path.rmdir()
        self._cleanup_empty_dirs(prefix_dir)

        return count

    def clear(self) -> int:
        """Remove every entry in the cache.

        Returns:
            Number of entries removed.
        """
        count = len(self.list_all_keys())
        if self.cache_dir.exists():
            try:
                shutil.rmtree(self.cache_dir)
            except OSError as e:
                raise CacheIOError(
                    "Cannot clear cache", key="", file_path=self.cache_dir, cause=e
                ) from e
        return count

    def _cleanup_empty_dirs(self, path: Path) -> None:
        """Remove empty directories recursively up to cache_dir."""
        try:
            while path != self.cache_dir and path.is_dir():
                if any(path.iterdir()):
                    break  # Directory not empty
                path.rmdir()
                path = path.parent
        except OSError:
            pass  # Raced with a concurrent writer; leave the directory

    def list_all_keys(self) -> list[str]:
        """List all cache keys.

        Returns:
            Sorted list of keys, excluding in-flight temporary files.
        """
        if not self.cache_dir.exists():
            return []
        keys = (self._key(p) for p in self.cache_dir.rglob("*"))
        return sorted(key for key in keys if key is not None)

    def size(self) -> int:
        """Calculate total cache size in bytes."""
        return self.statistics()["total_size"]

    def statistics(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with 'total_size' (bytes) and 'file_count' (number of files).
        """
        total_size = 0
        file_count = 0

        if not self.cache_dir.exists():
            return {"total_size": 0, "file_count": 0}

        for file_path in self.cache_dir.rglob("*"):
            if self._key(file_path) is not None:
                with contextlib.suppress(OSError):
                    total_size += file_path.stat().st_size
                    file_count += 1

        return {"total_size": total_size, "file_count": file_count}
