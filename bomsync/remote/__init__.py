"""Remote PLM item and BOM store boundary."""

from .base import RemoteItemStore, RemoteBOMStore
from .memory import MemoryItemStore, MemoryBOMStore
from .normalize import normalize_item, normalize_line, normalize_lines

__all__ = [
    "RemoteItemStore",
    "RemoteBOMStore",
    "MemoryItemStore",
    "MemoryBOMStore",
    "normalize_item",
    "normalize_line",
    "normalize_lines",
]
