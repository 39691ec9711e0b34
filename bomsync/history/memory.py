from typing import Any, Dict, List, Optional

from ..models import EntityRecord, HistoryEvent
from .base import HistoryStore, check_summary_fields


class MemoryHistoryStore(HistoryStore):
    """History kept in process memory."""

    def __init__(self):
        self._events: List[HistoryEvent] = []
        self._summaries: Dict[str, EntityRecord] = {}

    def append_event(self, event: HistoryEvent) -> None:
        self._events.append(event)

    def upsert_summary(self, identity: str, **fields: Any) -> EntityRecord:
        check_summary_fields(fields)
        current = self._summaries.get(identity) or EntityRecord(identity=identity)
        updated = current.with_changes(**fields)
        self._summaries[identity] = updated
        return updated

    def read_summary(self, identity: str) -> Optional[EntityRecord]:
        return self._summaries.get(identity)

    def list_events(self, identity: Optional[str] = None) -> List[HistoryEvent]:
        return [e for e in self._events if identity is None or e.entity_identity == identity]

    def list_summaries(self) -> List[EntityRecord]:
        return list(self._summaries.values())
