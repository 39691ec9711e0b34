from typing import Any, List, Optional, Sequence

from .base import Row, TabularSource, splice_rows


class MemorySource(TabularSource):
    """Rows held in a list."""

    def __init__(self, rows: Optional[Sequence[Sequence[Any]]] = None):
        self.rows: List[Row] = [list(r) for r in (rows or [])]

    def read_rows(self) -> List[Row]:
        return [list(r) for r in self.rows]

    def write_rows(self, start_row: int, rows: Sequence[Sequence[Any]], truncate: bool = False) -> None:
        self.rows = splice_rows(self.rows, start_row, rows, truncate)
