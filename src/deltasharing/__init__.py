"""deltasharing - A client for the Delta Sharing open protocol.

This library lists the shares, schemas and tables a recipient can see,
reads table versions and metadata, lists the data files of a table and
downloads them through a local cache.

Example:
    >>> from deltasharing import SharingClient, Table
    >>> client = SharingClient.from_profile("config.share")
    >>> for table in client.list_all_tables():
    ...     print(table.coordinate)
    >>> result = client.list_files_in_table(Table.parse("sales.default.orders"))
"""

from deltasharing._version import __version__
from deltasharing.adapters.cache import FileCache
from deltasharing.adapters.http import HttpTransport
from deltasharing.config import (
    default_cache_dir,
    find_project_root,
    load_profile,
    parse_table_url,
)
from deltasharing.core.cache_keys import derive_cache_key
from deltasharing.core.cancellation import CancellationToken
from deltasharing.core.exceptions import (
    CacheIOError,
    CancelledError,
    DeltaSharingError,
    HTTPStatusError,
    InvalidArgumentError,
    MalformedResponseError,
    ProfileError,
    ProtocolViolationError,
    TransportError,
    UnsupportedProtocolError,
)
from deltasharing.core.fetching import DataFileCache
from deltasharing.core.models import (
    AddFile,
    CacheEntry,
    CdcFile,
    DataFile,
    Format,
    Metadata,
    Page,
    Profile,
    Protocol,
    RemoveFile,
    Schema,
    Share,
    Table,
    TableMetadata,
    TableQueryResult,
)
from deltasharing.core.ports import (
    CachePort,
    DownloaderPort,
    NullProgressReporter,
    ProgressCallback,
    ProgressReporter,
    Reader,
    TransportPort,
)
from deltasharing.core.retry import RetryPolicy
from deltasharing.core.services import SharingClient
from deltasharing.loaders import load_as_pandas, load_as_polars, read_table_files
from deltasharing.progress import RichProgressReporter


__all__ = [
    "AddFile",
    "CacheEntry",
    "CacheIOError",
    "CachePort",
    "CancellationToken",
    "CancelledError",
    "CdcFile",
    "DataFile",
    "DataFileCache",
    "DeltaSharingError",
    "DownloaderPort",
    "FileCache",
    "Format",
    "HTTPStatusError",
    "HttpTransport",
    "InvalidArgumentError",
    "MalformedResponseError",
    "Metadata",
    "NullProgressReporter",
    "Page",
    "Profile",
    "ProfileError",
    "ProgressCallback",
    "ProgressReporter",
    "Protocol",
    "ProtocolViolationError",
    "Reader",
    "RemoveFile",
    "RetryPolicy",
    "RichProgressReporter",
    "Schema",
    "Share",
    "SharingClient",
    "Table",
    "TableMetadata",
    "TableQueryResult",
    "TransportError",
    "TransportPort",
    "UnsupportedProtocolError",
    "__version__",
    "default_cache_dir",
    "derive_cache_key",
    "find_project_root",
    "load_as_pandas",
    "load_as_polars",
    "load_profile",
    "parse_table_url",
    "read_table_files",
]
