"""Reader adapters for turning downloaded data files into typed frames.

This package provides adapters that implement the Reader protocol for
various data-frame libraries:

- Polars: PolarsParquetReader
- Pandas: PandasParquetReader
"""

from deltasharing.adapters.readers.pandas import PandasParquetReader
from deltasharing.adapters.readers.polars import PolarsParquetReader


__all__ = [
    "PandasParquetReader",
    "PolarsParquetReader",
]
