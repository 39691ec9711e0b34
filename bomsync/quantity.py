"""Quantity cell parsing using Pint for unit-bearing values."""

import math
import re
from typing import Any, Optional, Tuple, Union

from pint import UnitRegistry

ureg = UnitRegistry()

Number = Union[int, float]

# Count words that BOM editors type after a quantity; Pint does not know them
COUNT_UNITS = {
    "ea", "each", "pc", "pcs", "piece", "pieces", "unit", "units", "x", "qty",
}

_QUANTITY_RE = re.compile(r'^([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(.*)$')


def _as_number(value: float) -> Optional[Number]:
    if not math.isfinite(value):
        return None
    if float(value).is_integer():
        return int(value)
    return float(value)


def is_known_unit(unit: str) -> bool:
    """Check whether a unit string is a count word or a unit Pint understands."""
    if unit.lower() in COUNT_UNITS:
        return True
    try:
        ureg.parse_units(unit)
        return True
    except Exception:
        return False


def parse_quantity(value: Any) -> Tuple[Optional[Number], Optional[str]]:
    """Parse a quantity cell.

    Args:
        value: Cell value (int, float, or string such as "2", "2 ea", "1.5 m")

    Returns:
        Tuple of (magnitude, unit). Integral magnitudes come back as int.
        unit is the original unit text, or None when the cell had none.
        (None, None) when the cell is blank, cannot be parsed, or is not finite.

    Examples:
        parse_quantity(3) -> (3, None)
        parse_quantity("2.0") -> (2, None)
        parse_quantity("4 pcs") -> (4, "pcs")
        parse_quantity("1.5 m") -> (1.5, "m")
        parse_quantity("lots") -> (None, None)
    """
    if value is None or isinstance(value, bool):
        return None, None

    if isinstance(value, int):
        return value, None

    if isinstance(value, float):
        return _as_number(value), None

    value_str = str(value).strip()
    if not value_str:
        return None, None

    match = _QUANTITY_RE.match(value_str)
    if not match:
        return None, None

    magnitude = _as_number(float(match.group(1)))
    if magnitude is None:
        return None, None
    unit = match.group(2).strip()

    if not unit:
        return magnitude, None

    if is_known_unit(unit):
        return magnitude, unit

    return None, None
