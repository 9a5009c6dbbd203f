"""Load shared tables into data frames.

A table URL names a profile file and a table, separated by the last '#':

    >>> df = load_as_pandas("config.share#sales.default.orders")

Files are listed with one query, fetched one after another through a
DataFileCache and read with a Reader; repeated loads reuse the downloaded
files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from deltasharing.adapters.cache import FileCache
from deltasharing.adapters.http import HttpTransport
from deltasharing.config import default_cache_dir, load_profile, parse_table_url
from deltasharing.core.exceptions import InvalidArgumentError, MalformedResponseError
from deltasharing.core.fetching import DataFileCache
from deltasharing.core.services import SharingClient


if TYPE_CHECKING:
    import pandas as pd
    import polars as pl

    from deltasharing.core.cancellation import CancellationToken
    from deltasharing.core.models import DataFile, Metadata, Table, TableQueryResult
    from deltasharing.core.ports import ProgressReporter, Reader


logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_table_files(
    client: SharingClient,
    files: DataFileCache,
    table: Table,
    reader: Reader[T],
    *,
    limit_files: int | None = None,
    progress: ProgressReporter | None = None,
    cancel: CancellationToken | None = None,
) -> tuple[TableQueryResult, list[tuple[DataFile, T]]]:
    """Query a table and read its data files in server order.

    Args:
        client: Client used to list the table's files.
        files: Cache the data files are fetched through.
        table: Table to read.
        reader: Reader turning one file's bytes into a frame.
        limit_files: Read at most this many files.
        progress: Optional progress reporter for downloads.
        cancel: Optional cancellation token.

    Returns:
        The query result and one (file, frame) pair per file read.

    Raises:
        InvalidArgumentError: If limit_files is negative.
    """
    if limit_files is not None and limit_files < 0:
        raise InvalidArgumentError(f"limit_files must be >= 0, got {limit_files}")

    result = client.list_files_in_table(table, cancel=cancel)
    selected = result.files if limit_files is None else result.files[:limit_files]
    logger.debug(
        "Reading %d of %d file(s) from %s",
        len(selected),
        len(result.files),
        table.coordinate,
    )

    frames = [
        (data_file, reader.read(files.open(data_file.url, progress, cancel=cancel)))
        for data_file in selected
    ]
    return result, frames


def _column_names(metadata: Metadata) -> list[str]:
    """Top-level column names from the table's schema string."""
    if not metadata.schema_string:
        return list(metadata.partition_columns)
    try:
        schema = json.loads(metadata.schema_string)
        return [field["name"] for field in schema["fields"]]
    except (ValueError, KeyError, TypeError) as e:
        raise MalformedResponseError(
            f"Cannot read column names from table schema: {e}", cause=e
        ) from e


def _open_table(
    url: str, cache_dir: Path | str | None
) -> tuple[SharingClient, DataFileCache, Table]:
    profile_path, table = parse_table_url(url)
    transport = HttpTransport(load_profile(profile_path))
    cache = FileCache(Path(cache_dir) if cache_dir is not None else default_cache_dir())
    return SharingClient(transport), DataFileCache(cache, transport), table


def load_as_pandas(
    url: str,
    *,
    cache_dir: Path | str | None = None,
    limit_files: int | None = None,
    progress: ProgressReporter | None = None,
    cancel: CancellationToken | None = None,
) -> pd.DataFrame:
    """Load a shared table as a pandas DataFrame.

    Partition values are added as string columns for partition columns the
    files do not carry. A table without files gives an empty frame with the
    table's columns.

    Args:
        url: Table URL, ``<profile-file-path>#<share>.<schema>.<table>``.
        cache_dir: Where downloaded files are kept (defaults to
            default_cache_dir()).
        limit_files: Read at most this many files.
        progress: Optional progress reporter for downloads.
        cancel: Optional cancellation token.
    """
    import pandas as pd

    from deltasharing.adapters.readers.pandas import PandasParquetReader

    client, files, table = _open_table(url, cache_dir)
    result, frames = read_table_files(
        client,
        files,
        table,
        PandasParquetReader(),
        limit_files=limit_files,
        progress=progress,
        cancel=cancel,
    )
    if not frames:
        return pd.DataFrame(columns=_column_names(result.metadata))

    parts = []
    for data_file, frame in frames:
        for column, value in data_file.partition_values.items():
            if column not in frame.columns:
                frame[column] = pd.Series(value, index=frame.index, dtype="string")
        parts.append(frame)
    return pd.concat(parts, ignore_index=True)


def load_as_polars(
    url: str,
    *,
    cache_dir: Path | str | None = None,
    limit_files: int | None = None,
    progress: ProgressReporter | None = None,
    cancel: CancellationToken | None = None,
) -> pl.DataFrame:
    """Load a shared table as a polars DataFrame.

    Same behaviour as load_as_pandas().
    """
    import polars as pl

    from deltasharing.adapters.readers.polars import PolarsParquetReader

    client, files, table = _open_table(url, cache_dir)
    result, frames = read_table_files(
        client,
        files,
        table,
        PolarsParquetReader(),
        limit_files=limit_files,
        progress=progress,
        cancel=cancel,
    )
    if not frames:
        return pl.DataFrame({name: [] for name in _column_names(result.metadata)})

    parts = []
    for data_file, frame in frames:
        missing = [
            pl.lit(value, dtype=pl.Utf8).alias(column)
            for column, value in data_file.partition_values.items()
            if column not in frame.columns
        ]
        parts.append(frame.with_columns(missing) if missing else frame)
    return pl.concat(parts, how="diagonal_relaxed")
