"""Local-versus-remote BOM diff."""

from .bom_diff import (
    compare,
    diff_line,
    format_diff,
    DiffResult,
    ModifiedLine,
    FieldChange,
)

__all__ = [
    "compare",
    "diff_line",
    "format_diff",
    "DiffResult",
    "ModifiedLine",
    "FieldChange",
]
