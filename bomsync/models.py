"""
Core data model for BOM reconciliation.

These types are the single canonical shape the reconciliation core works
with. Raw remote payloads are converted into them at the store boundary
(see bomsync.remote.normalize) and raw spreadsheet rows by TreeBuilder.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

Number = Union[int, float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncStatus(Enum):
    """
    Per-entity sync status.

    PLACEHOLDER     - exists locally, not yet present remotely
    SYNCED          - local and remote agree
    LOCAL_MODIFIED  - local fingerprint moved since the last sync
    ARENA_MODIFIED  - local unchanged but the remote BOM differs
    ERROR           - last evaluation failed; sticky until sync or override
    """
    PLACEHOLDER = "PLACEHOLDER"
    SYNCED = "SYNCED"
    LOCAL_MODIFIED = "LOCAL_MODIFIED"
    ARENA_MODIFIED = "ARENA_MODIFIED"
    ERROR = "ERROR"


class EventType(Enum):
    STATUS_CHANGE = "STATUS_CHANGE"
    PUSH = "PUSH"
    PULL = "PULL"
    CREATE = "CREATE"
    ROLLBACK = "ROLLBACK"
    VERIFY = "VERIFY"
    OVERRIDE = "OVERRIDE"
    ERROR = "ERROR"


@dataclass
class BOMLine:
    """
    One line of a hierarchical BOM.

    level and quantity come from the sheet; item_ref is the remote item's
    identity and must be resolved before the line can be pushed.
    """
    level: int
    item_number: str
    quantity: Number = 1
    item_ref: Optional[str] = None
    category: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    name: str = ""
    description: str = ""
    lifecycle: str = ""


@dataclass
class BOMTree:
    """Ordered pre-order sequence of BOM lines."""
    lines: List[BOMLine] = field(default_factory=list)
    root_category: Optional[str] = None

    @property
    def root(self) -> Optional[BOMLine]:
        for line in self.lines:
            if line.level == 0:
                return line
        return None

    def __iter__(self) -> Iterator[BOMLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __getitem__(self, index: int) -> BOMLine:
        return self.lines[index]


@dataclass
class Item:
    """Canonical remote item."""
    ref: str
    number: str
    name: str = ""
    description: str = ""
    category: str = ""
    lifecycle: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RemoteLine:
    """
    The remote store's view of a BOM entry.

    line_ref is the identity of the BOM line itself; item_ref is the identity
    of the item the line points at. Full-replace pushes regenerate line_ref.
    """
    line_ref: str
    item_ref: str
    item_number: str
    quantity: Number = 1
    level: int = 0
    sequence_number: int = 0
    category: str = ""
    name: str = ""
    description: str = ""
    lifecycle: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_bom_line(self) -> BOMLine:
        return BOMLine(
            level=self.level,
            item_number=self.item_number,
            quantity=self.quantity,
            item_ref=self.item_ref,
            category=self.category,
            attributes={k: str(v) for k, v in self.attributes.items()},
            name=self.name,
            description=self.description,
            lifecycle=self.lifecycle,
        )


@dataclass
class LineCreate:
    """Payload for RemoteBOMStore.create_line."""
    item_ref: str
    quantity: Number
    level: int
    sequence_number: int
    attributes: Optional[Dict[str, str]] = None


@dataclass
class EntityRecord:
    """
    Mutable per-entity summary (one per synchronizable entity, e.g. a rack).

    Only StatusStateMachine and HistoryLog change it.
    """
    identity: str
    status: SyncStatus = SyncStatus.PLACEHOLDER
    remote_ref: str = ""
    created: Optional[datetime] = None
    last_refresh: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    last_push: Optional[datetime] = None
    fingerprint: str = ""

    def with_changes(self, **changes: Any) -> "EntityRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class HistoryEvent:
    """Immutable audit record."""
    timestamp: datetime
    entity_identity: str
    event_type: EventType
    actor: str
    status_before: Optional[SyncStatus] = None
    status_after: Optional[SyncStatus] = None
    summary: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "entity_identity": self.entity_identity,
            "event_type": self.event_type.value,
            "actor": self.actor,
            "status_before": self.status_before.value if self.status_before else None,
            "status_after": self.status_after.value if self.status_after else None,
            "summary": self.summary,
            "details": self.details,
        }


@dataclass(frozen=True)
class TransactionEntry:
    entity_type: str
    identity: str
    remote_ref: str


class LookupKind(Enum):
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    FAILED = "FAILED"


@dataclass(frozen=True)
class LookupResult:
    """
    Outcome of a lookup that may legitimately find nothing.

    "Not found" is the normal signal that an entity is still a placeholder,
    so it is a value here rather than an exception.
    """
    kind: LookupKind
    key: str
    item: Optional[Item] = None
    error: Optional[Exception] = None

    @classmethod
    def found(cls, item: Item) -> "LookupResult":
        return cls(kind=LookupKind.FOUND, key=item.number, item=item)

    @classmethod
    def not_found(cls, key: str) -> "LookupResult":
        return cls(kind=LookupKind.NOT_FOUND, key=key)

    @classmethod
    def failed(cls, key: str, error: Exception) -> "LookupResult":
        return cls(kind=LookupKind.FAILED, key=key, error=error)

    @property
    def is_found(self) -> bool:
        return self.kind is LookupKind.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.kind is LookupKind.NOT_FOUND

    @property
    def is_failure(self) -> bool:
        return self.kind is LookupKind.FAILED
