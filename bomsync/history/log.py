"""
Audit trail and entity summary service shared by the sync components.

HistoryLog is the only writer of EntityRecords besides the status state
machine, and the only place HistoryEvents are constructed.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import SyncConfig
from ..models import EntityRecord, EventType, HistoryEvent, SyncStatus, utcnow
from .base import HistoryStore

logger = logging.getLogger(__name__)


class HistoryLog:
    """Append-only event log plus mutable per-entity summaries."""

    def __init__(
        self,
        store: HistoryStore,
        config: Optional[SyncConfig] = None,
        clock: Callable = utcnow
    ):
        self.store = store
        self.config = config or SyncConfig()
        self.clock = clock

    def now(self):
        return self.clock()

    # Summaries

    def get_record(self, identity: str) -> Optional[EntityRecord]:
        return self.store.read_summary(identity)

    def ensure_record(self, identity: str, remote_ref: str = "") -> EntityRecord:
        """Return the entity's record, creating a PLACEHOLDER one if missing."""
        record = self.store.read_summary(identity)
        if record is not None:
            if remote_ref and not record.remote_ref:
                record = self.store.upsert_summary(identity, remote_ref=remote_ref)
            return record
        logger.info(f"Registering entity {identity} (remote ref: {remote_ref or 'none'})")
        return self.store.upsert_summary(
            identity,
            status=SyncStatus.PLACEHOLDER,
            remote_ref=remote_ref,
            created=self.now(),
        )

    def update_record(self, identity: str, **fields: Any) -> EntityRecord:
        return self.store.upsert_summary(identity, **fields)

    def records(self) -> List[EntityRecord]:
        return self.store.list_summaries()

    # Events

    def append(
        self,
        identity: str,
        event_type: EventType,
        summary: str,
        details: Optional[Dict[str, Any]] = None,
        status_before: Optional[SyncStatus] = None,
        status_after: Optional[SyncStatus] = None,
        actor: Optional[str] = None
    ) -> HistoryEvent:
        event = HistoryEvent(
            timestamp=self.now(),
            entity_identity=identity,
            event_type=event_type,
            actor=actor or self.config.actor,
            status_before=status_before,
            status_after=status_after,
            summary=summary,
            details=dict(details or {}),
        )
        self.store.append_event(event)
        return event

    def record_status_change(
        self,
        identity: str,
        before: Optional[SyncStatus],
        after: SyncStatus,
        summary: str = "",
        details: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None
    ) -> HistoryEvent:
        before_name = before.value if before else "NONE"
        return self.append(
            identity,
            EventType.STATUS_CHANGE,
            summary or f"Status {before_name} -> {after.value}",
            details=details,
            status_before=before,
            status_after=after,
            actor=actor,
        )

    def timeline(self, identity: str) -> List[HistoryEvent]:
        """Every event for one entity, oldest first."""
        return self.store.list_events(identity)
