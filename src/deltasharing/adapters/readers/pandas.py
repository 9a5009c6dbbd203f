"""Pandas reader adapter for Parquet data files.

Provides a Reader implementation that loads downloaded files into pandas
DataFrames.
"""

from typing import BinaryIO

import pandas as pd


class PandasParquetReader:
    """Reader adapter for Parquet files using pandas.

    Wraps pd.read_parquet() to satisfy the Reader[pd.DataFrame] protocol.
    """

    def read(self, stream: BinaryIO) -> pd.DataFrame:
        """Load a Parquet file into a pandas DataFrame.

        Args:
            stream: Binary stream holding the whole Parquet file.

        Returns:
            pandas DataFrame with the loaded data.

        Raises:
            Exception: Any pyarrow-specific exceptions (e.g., ArrowInvalid).
        """
        return pd.read_parquet(stream)
