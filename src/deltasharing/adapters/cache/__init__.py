"""Cache storage adapters."""

from deltasharing.adapters.cache.file_cache import FileCache


__all__ = ["FileCache"]
