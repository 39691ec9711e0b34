"""History store interface."""

from typing import Any, List, Optional

from ..models import EntityRecord, HistoryEvent

# EntityRecord fields that upsert_summary accepts
SUMMARY_FIELDS = (
    "status",
    "remote_ref",
    "created",
    "last_refresh",
    "last_sync",
    "last_push",
    "fingerprint",
)


class HistoryStore:
    """
    Abstract persistence for the audit trail and per-entity summaries.

    Events are append-only: implementations must never update or delete an
    appended event. Summaries are mutable, one per entity identity.
    """

    def append_event(self, event: HistoryEvent) -> None:
        """Append an immutable event."""
        raise NotImplementedError

    def upsert_summary(self, identity: str, **fields: Any) -> EntityRecord:
        """
        Create or partially update an entity's summary record.

        Args:
            identity: Entity identity (item number)
            **fields: Any of SUMMARY_FIELDS; omitted fields keep their value

        Returns:
            The record after the update
        """
        raise NotImplementedError

    def read_summary(self, identity: str) -> Optional[EntityRecord]:
        """Return the entity's summary record, or None when it has none."""
        raise NotImplementedError

    def list_events(self, identity: Optional[str] = None) -> List[HistoryEvent]:
        """Events in append order, optionally for one entity."""
        raise NotImplementedError

    def list_summaries(self) -> List[EntityRecord]:
        """All summary records."""
        raise NotImplementedError


def check_summary_fields(fields: dict) -> None:
    unknown = sorted(set(fields) - set(SUMMARY_FIELDS))
    if unknown:
        raise ValueError(f"Unknown summary field(s): {', '.join(unknown)}")
