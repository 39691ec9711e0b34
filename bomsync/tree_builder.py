"""
Parse flat, human-editable sheet rows into an ordered, leveled BOM.

Rows are what a spreadsheet editor holds: row 0 is the header row and
every other row is a tuple of cells. Columns are located by header name,
falling back to fuzzy matching (any header containing both "item" and
"number" is the item number column, and so on).
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import SyncConfig
from .errors import MissingColumnError, ValidationError
from .models import BOMLine, BOMTree
from .quantity import parse_quantity
from .schema import COLUMN_MAPPINGS, FUZZY_TOKENS, STANDARD_HEADERS

logger = logging.getLogger(__name__)

Row = Sequence[Any]


@dataclass
class HeaderMap:
    """Column index of every recognised field (None when absent)."""
    item_number: Optional[int] = None
    level: Optional[int] = None
    quantity: Optional[int] = None
    category: Optional[int] = None
    name: Optional[int] = None
    description: Optional[int] = None
    lifecycle: Optional[int] = None
    attributes: Dict[str, int] = field(default_factory=dict)

    def index_of(self, field_name: str) -> Optional[int]:
        return getattr(self, field_name)


def normalize_header(header: Any) -> str:
    """Lowercase a header and collapse underscores, dashes and whitespace runs."""
    if header is None:
        return ""
    return re.sub(r'[\s_\-]+', ' ', str(header).lower().strip())


_VARIATION_TO_FIELD: Dict[str, str] = {}
for _field, _variations in COLUMN_MAPPINGS.items():
    for _variation in _variations:
        _VARIATION_TO_FIELD[normalize_header(_variation)] = _field


def _has_token(header: str, token: str) -> bool:
    # Short tokens such as "no" must be whole words ("item notes" is not "item no")
    if len(token) < 3:
        return token in re.findall(r"[a-z0-9]+", header)
    return token in header


def resolve_headers(headers: Sequence[Any], attribute_columns: Sequence[str] = ()) -> HeaderMap:
    """Locate the BOM columns in a header row.

    Exact alias matches win over fuzzy matches, and a column is never
    assigned to two fields.

    Args:
        headers: Header row cells
        attribute_columns: Extra headers to carry into BOMLine.attributes

    Returns:
        HeaderMap with the index of each field found
    """
    normalized = [normalize_header(h) for h in headers]
    header_map = HeaderMap()
    used = set()

    # Exact alias pass
    for index, header in enumerate(normalized):
        field_name = _VARIATION_TO_FIELD.get(header)
        if field_name and header_map.index_of(field_name) is None:
            setattr(header_map, field_name, index)
            used.add(index)

    # Fuzzy pass for the fields still missing
    for field_name in STANDARD_HEADERS:
        if header_map.index_of(field_name) is not None:
            continue
        for index, header in enumerate(normalized):
            if index in used or not header:
                continue
            groups = FUZZY_TOKENS.get(field_name, [])
            if any(all(_has_token(header, token) for token in group) for group in groups):
                setattr(header_map, field_name, index)
                used.add(index)
                logger.debug(f"Fuzzy header match: {headers[index]!r} -> {field_name}")
                break

    wanted = {normalize_header(c): c for c in attribute_columns}
    for index, header in enumerate(normalized):
        if header in wanted and index not in used:
            header_map.attributes[wanted[header]] = index

    return header_map


def _cell(row: Row, index: Optional[int]) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def cell_text(value: Any) -> str:
    """Render a cell as text; Excel hands integral numbers back as floats."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class TreeBuilder:
    """Builds a BOMTree from sheet rows."""

    def __init__(self, config: Optional[SyncConfig] = None):
        self.config = config or SyncConfig()

    def build(self, rows: Sequence[Row]) -> BOMTree:
        """Parse rows into a BOMTree.

        Args:
            rows: Sheet rows, row 0 being the header row

        Returns:
            BOMTree in sheet order

        Raises:
            MissingColumnError: If no item number column can be located
            ValidationError: If any level or quantity cell is not usable;
                every bad cell is listed
        """
        if not rows:
            raise MissingColumnError([])

        headers = list(rows[0])
        header_map = resolve_headers(headers, self.config.attribute_columns)
        if header_map.item_number is None:
            raise MissingColumnError([cell_text(h) for h in headers])

        tree = BOMTree()
        root_seen = False
        problems: List[str] = []

        for row_index, row in enumerate(rows[1:], start=1):
            sheet_row = row_index + 1
            item_number = cell_text(_cell(row, header_map.item_number)).strip()
            if not item_number:
                continue

            level = self._parse_level(_cell(row, header_map.level), sheet_row, problems)
            quantity, unit = self._parse_quantity(_cell(row, header_map.quantity), sheet_row, problems)
            if level is None or quantity is None:
                continue

            attributes = {
                name: cell_text(_cell(row, index)).strip()
                for name, index in header_map.attributes.items()
                if cell_text(_cell(row, index)).strip()
            }
            if unit:
                attributes["unit"] = unit

            line = BOMLine(
                level=level,
                item_number=item_number,
                quantity=quantity,
                category=cell_text(_cell(row, header_map.category)).strip(),
                attributes=attributes,
                name=cell_text(_cell(row, header_map.name)).strip(),
                description=cell_text(_cell(row, header_map.description)).strip(),
                lifecycle=cell_text(_cell(row, header_map.lifecycle)).strip(),
            )

            if level == 0 and not root_seen:
                tree.root_category = line.category
                root_seen = True

            tree.lines.append(line)

        if problems:
            raise ValidationError(problems, message="Sheet rows could not be parsed")

        logger.debug(f"Built BOM tree with {len(tree.lines)} line(s) from {len(rows) - 1} row(s)")
        return tree

    def build_from_source(self, source) -> BOMTree:
        """Read rows from a TabularSource and build the tree."""
        return self.build(source.read_rows())

    def _parse_level(self, value: Any, sheet_row: int, problems: List[str]) -> Optional[int]:
        text = cell_text(value).strip()
        if not text:
            return 0
        try:
            level = int(float(text))
        except (ValueError, OverflowError):
            problems.append(f"row {sheet_row}: level {text!r} is not a number")
            return None
        if level < 0 or level != float(text):
            problems.append(f"row {sheet_row}: level {text!r} must be a whole number >= 0")
            return None
        return level

    def _parse_quantity(self, value: Any, sheet_row: int, problems: List[str]):
        if value is None or not cell_text(value).strip():
            return 1, None
        quantity, unit = parse_quantity(value)
        if quantity is None:
            problems.append(f"row {sheet_row}: quantity {cell_text(value)!r} is not a number")
            return None, None
        if quantity <= 0:
            problems.append(f"row {sheet_row}: quantity {cell_text(value)!r} must be greater than 0")
            return None, None
        return quantity, unit
