from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import openpyxl

from .base import Row, TabularSource


class ExcelSource(TabularSource):
    """Worksheet in an .xlsx workbook used as the BOM sheet."""

    def __init__(self, file_path: Union[str, Path], sheet_name: Optional[str] = None):
        self.path = Path(file_path)
        self.sheet_name = sheet_name

    @staticmethod
    def can_handle(file_path: Union[str, Path]) -> bool:
        return Path(file_path).suffix.lower() in [".xlsx", ".xlsm"]

    def _worksheet(self, wb):
        if self.sheet_name:
            if self.sheet_name not in wb.sheetnames:
                return wb.create_sheet(self.sheet_name)
            return wb[self.sheet_name]
        return wb.active

    def read_rows(self) -> List[Row]:
        if not self.path.exists():
            return []
        wb = openpyxl.load_workbook(self.path, data_only=True)
        try:
            ws = self._worksheet(wb)
            rows = [list(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()

        # Trailing fully-empty rows are formatting leftovers
        while rows and all(v is None or v == '' for v in rows[-1]):
            rows.pop()
        return rows

    def write_rows(self, start_row: int, rows: Sequence[Sequence[Any]], truncate: bool = False) -> None:
        if start_row < 0:
            raise ValueError(f"start_row must be >= 0, got {start_row}")

        if self.path.exists():
            wb = openpyxl.load_workbook(self.path)
        else:
            wb = openpyxl.Workbook()
            if self.sheet_name:
                wb.active.title = self.sheet_name
        ws = self._worksheet(wb)

        for offset, row in enumerate(rows):
            excel_row = start_row + offset + 1
            for col_idx, value in enumerate(row, start=1):
                ws.cell(row=excel_row, column=col_idx, value=value)
            # Clear cells left over from a longer previous row
            for col_idx in range(len(row) + 1, ws.max_column + 1):
                ws.cell(row=excel_row, column=col_idx, value=None)

        if truncate:
            first_stale = start_row + len(rows) + 1
            if ws.max_row >= first_stale:
                ws.delete_rows(first_stale, ws.max_row - first_stale + 1)

        wb.save(self.path)
