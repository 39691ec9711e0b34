"""
Canonical deserialization of remote payloads.

The remote API is inconsistent about field casing: the same logical field
shows up as "number" in one response and "Number" in another, "guid" next
to "GUID", "lifecyclePhase" next to "LifecyclePhase". Some fields are
nested objects ({"category": {"name": "Server"}}). Every raw payload goes
through this module exactly once, at the store boundary.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import RemoteError
from ..models import Item, RemoteLine
from ..quantity import parse_quantity

# Canonical field -> accepted raw keys (compared case-insensitively)
ITEM_KEYS = {
    "ref": ("guid", "id", "ref"),
    "number": ("number", "itemNumber", "item_number"),
    "name": ("name",),
    "description": ("description",),
    "category": ("category",),
    "lifecycle": ("lifecyclePhase", "lifecycle", "lifecycle_phase"),
    "attributes": ("additionalAttributes", "attributes"),
}

LINE_KEYS = {
    "line_ref": ("guid", "id", "lineRef", "line_ref"),
    "item": ("item",),
    "quantity": ("quantity", "qty"),
    "level": ("level",),
    "sequence_number": ("lineNumber", "sequenceNumber", "sequence_number"),
    "attributes": ("additionalAttributes", "attributes"),
}


def _lower_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k).lower(): v for k, v in raw.items()}


def _pick(raw: Mapping[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    lowered = _lower_keys(raw)
    for key in keys:
        value = lowered.get(key.lower())
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    """Flatten {"name": ...} wrappers and render as text."""
    if value is None:
        return ""
    if isinstance(value, Mapping):
        return _text(_pick(value, ("name", "value", "number")))
    return str(value)


def _attributes(value: Any) -> Dict[str, Any]:
    if not value:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    # [{"name": "...", "value": "..."}] lists
    attributes = {}
    for entry in value:
        if isinstance(entry, Mapping):
            name = _text(_pick(entry, ("name", "apiName", "guid")))
            if name:
                attributes[name] = _pick(entry, ("value",), "")
    return attributes


def normalize_item(raw: Mapping[str, Any]) -> Item:
    """Convert a raw item payload into an Item.

    Raises:
        RemoteError: If the payload carries no reference or no number
    """
    ref = _text(_pick(raw, ITEM_KEYS["ref"]))
    number = _text(_pick(raw, ITEM_KEYS["number"]))
    if not ref or not number:
        raise RemoteError(f"Item payload missing reference or number: {dict(raw)!r}")

    return Item(
        ref=ref,
        number=number,
        name=_text(_pick(raw, ITEM_KEYS["name"])),
        description=_text(_pick(raw, ITEM_KEYS["description"])),
        category=_text(_pick(raw, ITEM_KEYS["category"])),
        lifecycle=_text(_pick(raw, ITEM_KEYS["lifecycle"])),
        attributes=_attributes(_pick(raw, ITEM_KEYS["attributes"])),
    )


def normalize_line(raw: Mapping[str, Any]) -> RemoteLine:
    """Convert a raw BOM line payload into a RemoteLine.

    The referenced item may be nested under "item"/"Item" or flattened
    into the line itself.

    Raises:
        RemoteError: If the payload is missing identities or has an
            unparseable quantity or level
    """
    line_ref = _text(_pick(raw, LINE_KEYS["line_ref"]))
    item_raw = _pick(raw, LINE_KEYS["item"])
    if not isinstance(item_raw, Mapping):
        item_raw = {
            "guid": _pick(raw, ("itemGuid", "itemRef", "item_ref")),
            "number": _pick(raw, ITEM_KEYS["number"]),
            "name": _pick(raw, ITEM_KEYS["name"]),
            "description": _pick(raw, ITEM_KEYS["description"]),
            "category": _pick(raw, ITEM_KEYS["category"]),
            "lifecyclePhase": _pick(raw, ITEM_KEYS["lifecycle"]),
        }
    item = normalize_item(item_raw)
    if not line_ref:
        raise RemoteError(f"BOM line payload missing line reference: {dict(raw)!r}")

    raw_quantity = _pick(raw, LINE_KEYS["quantity"], 1)
    quantity, _unit = parse_quantity(raw_quantity)
    if quantity is None:
        raise RemoteError(f"BOM line {line_ref} has unparseable quantity {raw_quantity!r}")

    raw_level = _pick(raw, LINE_KEYS["level"], 0)
    raw_sequence = _pick(raw, LINE_KEYS["sequence_number"], 0)
    try:
        level = int(raw_level)
        sequence_number = int(raw_sequence)
    except (TypeError, ValueError) as e:
        raise RemoteError(f"BOM line {line_ref} has invalid level or sequence: {e}") from e

    return RemoteLine(
        line_ref=line_ref,
        item_ref=item.ref,
        item_number=item.number,
        quantity=quantity,
        level=level,
        sequence_number=sequence_number,
        category=item.category,
        name=item.name,
        description=item.description,
        lifecycle=item.lifecycle,
        attributes=_attributes(_pick(raw, LINE_KEYS["attributes"])),
    )


def normalize_lines(raw_lines: Optional[Iterable[Mapping[str, Any]]]) -> List[RemoteLine]:
    """Normalize a list of raw lines, sorted by sequence number."""
    lines = [normalize_line(raw) for raw in (raw_lines or [])]
    return sorted(lines, key=lambda line: line.sequence_number)


def denormalize_item_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Canonical item fields -> request payload keys."""
    payload: Dict[str, Any] = {}
    mapping = {
        "number": "number",
        "name": "name",
        "description": "description",
        "category": "category",
        "lifecycle": "lifecyclePhase",
        "attributes": "additionalAttributes",
    }
    for canonical, key in mapping.items():
        if canonical in fields and fields[canonical] is not None:
            payload[key] = fields[canonical]
    return payload
