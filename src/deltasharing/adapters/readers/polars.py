"""Polars reader for Parquet data files.

The reader transforms downloaded files into polars DataFrames by wrapping
polars.read_parquet().
"""

from typing import BinaryIO

import polars as pl


class PolarsParquetReader:
    """Reader that loads Parquet files into polars DataFrames."""

    def read(self, stream: BinaryIO) -> pl.DataFrame:
        """Load a Parquet file using polars.read_parquet().

        Args:
            stream: Binary stream holding the whole Parquet file.

        Returns:
            A polars DataFrame containing the file data.

        Raises:
            polars.exceptions.ComputeError: If the data is not valid Parquet.
        """
        return pl.read_parquet(stream)
