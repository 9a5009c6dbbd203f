"""Cache key derivation for data-file URLs.

This module contains pure functions for turning a (usually presigned) data
file URL into a stable, filesystem-safe cache key.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from deltasharing.core.exceptions import InvalidArgumentError


def derive_cache_key(url: str) -> str:
    """Derive the cache key for a data-file URL.

    The key is ``<host>/<path>``. Query string and fragment are dropped, so
    the same file fetched with refreshed signing parameters maps to the
    same key. A port in the host is kept, with ':' replaced by '_'.

    Args:
        url: Absolute URL of a data file.

    Returns:
        Relative, '/'-separated cache key.

    Raises:
        InvalidArgumentError: If the URL has no host or path, or its path
            contains empty, '.' or '..' segments.

    Example:
        >>> derive_cache_key("https://store.example.com/t/f1.parquet?X-Amz-Signature=abc")
        'store.example.com/t/f1.parquet'
    """
    parts = urlsplit(url)
    host = parts.hostname
    if not host:
        raise InvalidArgumentError(f"URL has no host: {url}", path=url)
    try:
        port = parts.port
    except ValueError as e:
        raise InvalidArgumentError(f"URL has an invalid port: {url}", path=url) from e
    if port is not None:
        host = f"{host}_{port}"

    segments = parts.path.strip("/").split("/")
    if segments == [""]:
        raise InvalidArgumentError(f"URL has no path: {url}", path=url)
    for segment in segments:
        if segment in ("", ".", ".."):
            raise InvalidArgumentError(
                f"URL path has an unsafe segment '{segment}': {url}", path=url
            )

    return "/".join([host, *segments])
