"""Render a remote BOM as sheet rows."""

from typing import Any, List, Optional, Sequence

from ..config import SyncConfig
from ..models import BOMLine, RemoteLine
from ..schema import HEADER_LABELS, STANDARD_HEADERS


def header_row() -> List[str]:
    return [HEADER_LABELS[name] for name in STANDARD_HEADERS]


def rows_from_remote(
    remote_lines: Sequence[RemoteLine],
    config: Optional[SyncConfig] = None,
    include_header: bool = True
) -> List[List[Any]]:
    """Convert remote lines into rows in the standard column order.

    The item number cell is indented by level, which TreeBuilder strips
    again when the sheet is read back.
    """
    config = config or SyncConfig()
    rows: List[List[Any]] = [header_row()] if include_header else []
    for line in remote_lines:
        values = {
            "level": line.level,
            "item_number": f"{config.indent_unit * line.level}{line.item_number}",
            "name": line.name,
            "description": line.description,
            "category": line.category,
            "lifecycle": line.lifecycle,
            "quantity": line.quantity,
        }
        rows.append([values[name] for name in STANDARD_HEADERS])
    return rows


def lines_from_remote(remote_lines: Sequence[RemoteLine]) -> List[BOMLine]:
    return [line.to_bom_line() for line in remote_lines]
