import csv
import logging
from pathlib import Path
from typing import Any, List, Sequence, Union

import chardet

from .base import Row, TabularSource, splice_rows

logger = logging.getLogger(__name__)


class CsvSource(TabularSource):
    """CSV/TSV file used as the BOM sheet.

    Handles:
    - Multiple encodings (UTF-8, UTF-8-BOM, Windows-1252, ISO-8859-1, etc.)
    - Different delimiters (comma, semicolon, tab)
    - Missing files (read as an empty sheet; created on first write)
    """

    def __init__(self, file_path: Union[str, Path]):
        self.path = Path(file_path)
        self._encoding = None
        self._delimiter = None

    @staticmethod
    def can_handle(file_path: Union[str, Path]) -> bool:
        return Path(file_path).suffix.lower() in [".csv", ".tsv"]

    def _detect_encoding(self) -> str:
        """Detect file encoding using chardet with fallback."""
        try:
            with open(self.path, 'rb') as f:
                raw_data = f.read(10000)
        except OSError:
            return 'utf-8'

        if raw_data.startswith(b'\xef\xbb\xbf'):
            return 'utf-8-sig'

        encoding = chardet.detect(raw_data).get('encoding') or 'utf-8'
        encoding_lower = encoding.lower()
        if 'utf-8' in encoding_lower or 'utf8' in encoding_lower or encoding_lower == 'ascii':
            return 'utf-8'
        return encoding

    def _detect_delimiter(self, sample: str) -> str:
        """Detect the delimiter from a sample of the file."""
        if self.path.suffix.lower() == '.tsv':
            return '\t'
        try:
            return csv.Sniffer().sniff(sample, delimiters=',;\t').delimiter
        except csv.Error:
            first_line = sample.splitlines()[0] if sample else ""
            counts = {d: first_line.count(d) for d in (',', ';', '\t')}
            return max(counts, key=counts.get) if any(counts.values()) else ','

    def read_rows(self) -> List[Row]:
        """Read the file into rows of strings.

        Raises:
            ValueError: If the file cannot be decoded or parsed
        """
        if not self.path.exists() or self.path.stat().st_size == 0:
            return []

        encoding = self._detect_encoding()
        try:
            with open(self.path, 'r', encoding=encoding, newline='') as f:
                sample = f.read(4096)
                f.seek(0)
                delimiter = self._detect_delimiter(sample)
                rows = [list(row) for row in csv.reader(f, delimiter=delimiter)]
        except UnicodeDecodeError as e:
            logger.warning(f"Could not decode {self.path} as {encoding}, retrying with cp1252")
            try:
                with open(self.path, 'r', encoding='cp1252', newline='') as f:
                    sample = f.read(4096)
                    f.seek(0)
                    delimiter = self._detect_delimiter(sample)
                    rows = [list(row) for row in csv.reader(f, delimiter=delimiter)]
                encoding = 'cp1252'
            except UnicodeDecodeError:
                raise ValueError(f"Could not decode file {self.path}: {e}") from e
        except csv.Error as e:
            raise ValueError(f"Error parsing CSV file {self.path}: {e}") from e

        self._encoding = encoding
        self._delimiter = delimiter
        return rows

    def write_rows(self, start_row: int, rows: Sequence[Sequence[Any]], truncate: bool = False) -> None:
        existing = self.read_rows()
        updated = splice_rows(existing, start_row, rows, truncate)

        encoding = self._encoding or 'utf-8'
        delimiter = self._delimiter or ('\t' if self.path.suffix.lower() == '.tsv' else ',')
        with open(self.path, 'w', encoding=encoding, newline='') as f:
            writer = csv.writer(f, delimiter=delimiter)
            for row in updated:
                writer.writerow(['' if v is None else v for v in row])

        logger.debug(f"Wrote {len(rows)} row(s) to {self.path} at row {start_row}")
