"""Core domain module for deltasharing.

This module contains the protocol models, the wire decoder, port
definitions and the client service. Apart from the ports it depends on,
it does no I/O and can be tested in isolation.
"""

from deltasharing.core.cancellation import CancellationToken
from deltasharing.core.models import (
    AddFile,
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
from deltasharing.core.ports import CachePort, DownloaderPort, Reader, TransportPort
from deltasharing.core.retry import RetryPolicy


__all__ = [
    "AddFile",
    "CachePort",
    "CancellationToken",
    "CdcFile",
    "DataFile",
    "DownloaderPort",
    "Format",
    "Metadata",
    "Page",
    "Profile",
    "Protocol",
    "Reader",
    "RemoveFile",
    "RetryPolicy",
    "Schema",
    "Share",
    "Table",
    "TableMetadata",
    "TableQueryResult",
    "TransportPort",
]
