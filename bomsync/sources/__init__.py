"""Row-based BOM sources."""

from pathlib import Path
from typing import Union

from .base import TabularSource, splice_rows
from .memory_source import MemorySource
from .csv_source import CsvSource
from .excel_source import ExcelSource


def open_source(file_path: Union[str, Path]) -> TabularSource:
    """Pick the source implementation for a file by extension.

    Raises:
        ValueError: If no source handles the extension
    """
    for source_cls in (CsvSource, ExcelSource):
        if source_cls.can_handle(file_path):
            return source_cls(file_path)
    raise ValueError(f"No source found for {file_path}")


__all__ = [
    "TabularSource",
    "MemorySource",
    "CsvSource",
    "ExcelSource",
    "open_source",
    "splice_rows",
]
