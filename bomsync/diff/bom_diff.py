"""
Field-level diff between a local BOM line set and a remote one.

Lines are matched by item number, which is assumed unique within each set:
- present only remotely  -> added   (the remote has something the sheet lacks)
- present only locally   -> removed (the sheet has something the remote lacks)
- present on both sides  -> compared on exactly five fields: name,
  description, category, lifecycle and quantity

Equality is exact: strings are compared case-sensitively and without
whitespace trimming, quantities numerically. No formatting normalization is
applied, so compare(X, X) is always empty.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

from ..models import BOMLine, RemoteLine
from ..schema import COMPARED_FIELDS

logger = logging.getLogger(__name__)

Line = Union[BOMLine, RemoteLine]


@dataclass
class FieldChange:
    """
    A single field that differs between the local and remote copy.

    old_value is the local (sheet) value, new_value the remote value.
    """
    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "old_value": self.old_value, "new_value": self.new_value}


@dataclass
class ModifiedLine:
    """An item present on both sides with at least one differing field."""
    item_number: str
    changes: List[FieldChange]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_number": self.item_number,
            "changes": [c.to_dict() for c in self.changes],
        }


@dataclass
class DiffResult:
    """Result of comparing a local line set with a remote one."""
    added: List[Line] = field(default_factory=list)
    modified: List[ModifiedLine] = field(default_factory=list)
    removed: List[Line] = field(default_factory=list)

    @property
    def added_numbers(self) -> List[str]:
        return [line.item_number for line in self.added]

    @property
    def removed_numbers(self) -> List[str]:
        return [line.item_number for line in self.removed]

    @property
    def modified_numbers(self) -> List[str]:
        return [m.item_number for m in self.modified]

    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    def summary(self) -> Dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "removed": len(self.removed),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary (used for history details)."""
        return {
            "added": self.added_numbers,
            "modified": [m.to_dict() for m in self.modified],
            "removed": self.removed_numbers,
        }


def _index_by_item_number(lines: Iterable[Line], side: str) -> Dict[str, Line]:
    index: Dict[str, Line] = {}
    for line in lines:
        if line.item_number in index:
            logger.warning(
                f"Duplicate item number {line.item_number!r} in {side} lines; "
                f"keeping the first occurrence"
            )
            continue
        index[line.item_number] = line
    return index


def diff_line(local: Line, remote: Line) -> List[FieldChange]:
    """Compare the five tracked fields of a matched pair of lines.

    Args:
        local: Line from the sheet
        remote: Line from the remote store

    Returns:
        One FieldChange per differing field, in fixed field order
    """
    changes = []
    for attr, label in COMPARED_FIELDS:
        local_value = getattr(local, attr)
        remote_value = getattr(remote, attr)
        if local_value != remote_value:
            changes.append(FieldChange(field=label, old_value=local_value, new_value=remote_value))
    return changes


def compare(local_lines: Iterable[Line], remote_lines: Iterable[Line]) -> DiffResult:
    """Compare local lines against remote lines.

    Args:
        local_lines: Lines from the sheet
        remote_lines: Lines fetched from the remote store

    Returns:
        DiffResult; added follows remote order, removed and modified follow
        local order
    """
    local_map = _index_by_item_number(local_lines, "local")
    remote_map = _index_by_item_number(remote_lines, "remote")

    result = DiffResult()

    for item_number, remote in remote_map.items():
        if item_number not in local_map:
            result.added.append(remote)

    for item_number, local in local_map.items():
        remote = remote_map.get(item_number)
        if remote is None:
            result.removed.append(local)
            continue
        changes = diff_line(local, remote)
        if changes:
            result.modified.append(ModifiedLine(item_number=item_number, changes=changes))

    return result


def format_diff(diff: DiffResult) -> str:
    """Render a diff as a short human-readable report."""
    if not diff.has_changes():
        return "No differences"

    lines = []
    counts = diff.summary()
    lines.append(
        f"{counts['added']} added, {counts['modified']} modified, {counts['removed']} removed"
    )
    for number in diff.added_numbers:
        lines.append(f"  + {number} (only in remote)")
    for number in diff.removed_numbers:
        lines.append(f"  - {number} (only in sheet)")
    for modified in diff.modified:
        for change in modified.changes:
            lines.append(
                f"  ~ {modified.item_number} {change.field}: "
                f"{change.old_value!r} -> {change.new_value!r}"
            )
    return "\n".join(lines)
