"""
In-memory remote stores.

Payloads are kept in raw form using one of the two casing conventions the
real remote produces and go through bomsync.remote.normalize on the way
out, like a REST-backed implementation would. Failures can be injected per
operation and key, and every call is recorded, which is what the tests and
the example script rely on.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ..errors import NotFoundError, RemoteError
from ..models import Item, LineCreate, LookupResult, RemoteLine
from .base import RemoteBOMStore, RemoteItemStore
from .normalize import denormalize_item_fields, normalize_item, normalize_line, normalize_lines

logger = logging.getLogger(__name__)

CAMEL = "camel"
PASCAL = "pascal"


def _recase(payload: Dict[str, Any], casing: str) -> Dict[str, Any]:
    if casing != PASCAL:
        return payload
    recased = {}
    for key, value in payload.items():
        if key == "guid":
            new_key = "GUID"
        else:
            new_key = key[:1].upper() + key[1:]
        if isinstance(value, dict) and key != "additionalAttributes":
            value = _recase(value, casing)
        recased[new_key] = value
    return recased


class _FaultInjection:
    """Shared call recording and failure injection."""

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self._failures: Dict[Tuple[str, str], Exception] = {}

    def fail_on(self, operation: str, key: str, error: Optional[Exception] = None) -> None:
        """Make the next and all later calls of operation(key) raise error."""
        self._failures[(operation, key)] = error or RemoteError(f"{operation} failed for {key}")

    def clear_failures(self) -> None:
        self._failures.clear()

    def _record(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        error = self._failures.get((operation, key)) or self._failures.get((operation, "*"))
        if error is not None:
            raise error

    def count(self, *operations: str) -> int:
        return sum(1 for op, _ in self.calls if not operations or op in operations)


class MemoryItemStore(_FaultInjection, RemoteItemStore):
    """Item store held in a dict."""

    def __init__(self, casing: str = CAMEL):
        super().__init__()
        self.casing = casing
        self._raw: Dict[str, Dict[str, Any]] = {}
        self._hidden: Dict[str, int] = {}

    def add(self, number: str, name: str = "", description: str = "",
            category: str = "", lifecycle: str = "", ref: Optional[str] = None) -> Item:
        """Seed an item without recording a call."""
        ref = ref or uuid4().hex.upper()
        self._store(ref, {
            "number": number,
            "name": name,
            "description": description,
            "category": category,
            "lifecycle": lifecycle,
        })
        return self._item(ref)

    def hide_for(self, ref: str, polls: int) -> None:
        """Make get_by_ref report ref as missing for the next `polls` calls."""
        self._hidden[ref] = polls

    def raw(self, ref: str) -> Dict[str, Any]:
        return self._raw[ref]

    def _store(self, ref: str, fields: Dict[str, Any]) -> None:
        payload = denormalize_item_fields(fields)
        payload["guid"] = ref
        for wrapped in ("category", "lifecyclePhase"):
            if wrapped in payload:
                payload[wrapped] = {"name": payload[wrapped]}
        self._raw[ref] = _recase(payload, self.casing)

    def _item(self, ref: str) -> Item:
        return normalize_item(self._raw[ref])

    def search(self, text: str) -> List[Item]:
        self._record("search", text)
        needle = text.lower()
        return [
            item for item in (self._item(ref) for ref in self._raw)
            if needle in item.number.lower() or needle in item.name.lower()
        ]

    def get_by_ref(self, ref: str) -> Item:
        self._record("get_by_ref", ref)
        remaining = self._hidden.get(ref, 0)
        if remaining > 0:
            self._hidden[ref] = remaining - 1
            raise NotFoundError(ref)
        if ref not in self._raw:
            raise NotFoundError(ref)
        return self._item(ref)

    def get_by_number(self, number: str) -> LookupResult:
        try:
            self._record("get_by_number", number)
        except Exception as e:
            return LookupResult.failed(number, e)
        for ref in self._raw:
            item = self._item(ref)
            if item.number == number:
                return LookupResult.found(item)
        return LookupResult.not_found(number)

    def create(self, fields: Dict[str, Any]) -> Item:
        number = fields.get("number", "")
        self._record("create", number)
        if not number:
            raise RemoteError("Cannot create an item without a number")
        ref = uuid4().hex.upper()
        self._store(ref, dict(fields))
        logger.debug(f"Memory item created: {number} -> {ref}")
        return self._item(ref)

    def update(self, ref: str, fields: Dict[str, Any]) -> Item:
        self._record("update", ref)
        if ref not in self._raw:
            raise NotFoundError(ref)
        current = self._item(ref)
        merged = {
            "number": current.number,
            "name": current.name,
            "description": current.description,
            "category": current.category,
            "lifecycle": current.lifecycle,
        }
        merged.update(fields)
        self._store(ref, merged)
        return self._item(ref)

    def delete(self, ref: str) -> None:
        self._record("delete", ref)
        if ref not in self._raw:
            raise NotFoundError(ref)
        del self._raw[ref]


class MemoryBOMStore(_FaultInjection, RemoteBOMStore):
    """BOM store held in a dict of parent reference -> raw lines."""

    def __init__(self, item_store: MemoryItemStore, casing: str = CAMEL):
        super().__init__()
        self.item_store = item_store
        self.casing = casing
        self._lines: Dict[str, List[Dict[str, Any]]] = {}

    @property
    def mutation_count(self) -> int:
        return self.count("create_line", "delete_line")

    def seed(self, parent_ref: str, lines: List[LineCreate]) -> None:
        """Install lines without recording calls."""
        self._lines[parent_ref] = [self._raw_line(line) for line in lines]

    def _raw_line(self, line: LineCreate) -> Dict[str, Any]:
        if line.item_ref not in self.item_store._raw:
            raise NotFoundError(line.item_ref)
        payload = {
            "guid": uuid4().hex.upper(),
            "item": dict(self.item_store.raw(line.item_ref)),
            "quantity": line.quantity,
            "level": line.level,
            "lineNumber": line.sequence_number,
        }
        if line.attributes:
            payload["additionalAttributes"] = dict(line.attributes)
        return _recase(payload, self.casing)

    def list_lines(self, parent_ref: str) -> List[RemoteLine]:
        self._record("list_lines", parent_ref)
        return normalize_lines(self._lines.get(parent_ref, []))

    def create_line(self, parent_ref: str, line: LineCreate) -> RemoteLine:
        self._record("create_line", line.item_ref)
        raw = self._raw_line(line)
        self._lines.setdefault(parent_ref, []).append(raw)
        return normalize_line(raw)

    def delete_line(self, parent_ref: str, line_ref: str) -> None:
        self._record("delete_line", line_ref)
        lines = self._lines.get(parent_ref, [])
        for index, raw in enumerate(lines):
            if normalize_line(raw).line_ref == line_ref:
                del lines[index]
                return
        raise NotFoundError(line_ref, kind="BOM line")
