"""Tabular source interface (the row-based BOM editor)."""

from typing import Any, Callable, List, Sequence

Row = List[Any]


class TabularSource:
    """
    Abstract row-based BOM source.

    Row 0 is the header row. Implementations are single-writer; nothing here
    guards against concurrent edits.
    """

    def read_rows(self) -> List[Row]:
        """Return every row, headers first."""
        raise NotImplementedError

    def write_rows(self, start_row: int, rows: Sequence[Sequence[Any]], truncate: bool = False) -> None:
        """
        Overwrite rows starting at start_row (0-based, 0 = header row).

        Args:
            start_row: Index of the first row to overwrite
            rows: Rows to write
            truncate: Drop any existing rows after the last written one
        """
        raise NotImplementedError

    def find_column(self, header_predicate: Callable[[str], bool]) -> int:
        """Index of the first header satisfying the predicate, or -1."""
        rows = self.read_rows()
        if not rows:
            return -1
        for index, header in enumerate(rows[0]):
            if header_predicate("" if header is None else str(header)):
                return index
        return -1


def splice_rows(existing: List[Row], start_row: int, rows: Sequence[Sequence[Any]], truncate: bool) -> List[Row]:
    """Apply a write_rows call to an in-memory row list."""
    if start_row < 0:
        raise ValueError(f"start_row must be >= 0, got {start_row}")
    result = [list(r) for r in existing]
    while len(result) < start_row:
        result.append([])
    for offset, row in enumerate(rows):
        index = start_row + offset
        if index < len(result):
            result[index] = list(row)
        else:
            result.append(list(row))
    if truncate:
        del result[start_row + len(rows):]
    return result
