"""
Content fingerprint of a BOM line sequence.

The fingerprint is a cheap local-edit detector, not a full equality check
and not a cryptographic hash:
- Only (item_number, quantity) pairs participate. Name, category and level
  edits leave it unchanged.
- Order matters. The same lines in a different order give a different value.
- It is always recomputed from the full sequence, never patched.
"""

from typing import Iterable, Union

from .models import BOMLine, RemoteLine

SEPARATOR = "|"


def _format_quantity(quantity) -> str:
    # 2.0 and 2 fingerprint identically
    if isinstance(quantity, float) and quantity.is_integer():
        return str(int(quantity))
    return str(quantity)


def fingerprint(lines: Iterable[Union[BOMLine, RemoteLine]]) -> str:
    """Compute the fingerprint of an ordered line sequence.

    Args:
        lines: Ordered BOM lines (a BOMTree works too)

    Returns:
        "ITEM:QTY" pairs joined with "|", e.g. "RACK-1:1|SRV-1:2".
        Empty string for an empty sequence.
    """
    return SEPARATOR.join(
        f"{line.item_number}:{_format_quantity(line.quantity)}" for line in lines
    )
