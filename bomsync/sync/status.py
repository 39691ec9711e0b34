"""
Per-entity sync status state machine.

Status is evaluated on demand, never continuously:

1. No remote reference                      -> PLACEHOLDER
2. Current fingerprint != stored fingerprint -> LOCAL_MODIFIED
   (local wins even if the remote also changed; there is no CONFLICT state)
3. Otherwise diff local lines against freshly fetched remote lines:
   any added/modified/removed -> ARENA_MODIFIED, else SYNCED (and the stored
   fingerprint is refreshed)
4. Any failure while fetching or comparing   -> ERROR

ERROR is sticky: a passive evaluation leaves it in place without contacting
the remote. Only a successful push/pull or a manual override clears it.
Every status change appends a STATUS_CHANGE event.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from ..config import SyncConfig
from ..diff import DiffResult, compare
from ..fingerprint import fingerprint
from ..history.log import HistoryLog
from ..models import BOMLine, EntityRecord, EventType, SyncStatus
from ..remote.base import RemoteBOMStore

logger = logging.getLogger(__name__)


def classify_status(
    remote_ref: str,
    stored_fingerprint: str,
    current_fingerprint: str,
    diff: Optional[DiffResult] = None
) -> SyncStatus:
    """Pure status decision.

    Args:
        remote_ref: Entity's remote reference ("" when not created remotely)
        stored_fingerprint: Fingerprint saved at the last sync
        current_fingerprint: Fingerprint of the current local lines
        diff: Local-vs-remote diff; only needed when the fingerprints match

    Returns:
        The resulting SyncStatus

    Raises:
        ValueError: If the fingerprints match but no diff was supplied
    """
    if not remote_ref:
        return SyncStatus.PLACEHOLDER
    if current_fingerprint != stored_fingerprint:
        return SyncStatus.LOCAL_MODIFIED
    if diff is None:
        raise ValueError("A diff is required to classify an entity whose fingerprint is unchanged")
    if diff.has_changes():
        return SyncStatus.ARENA_MODIFIED
    return SyncStatus.SYNCED


class StatusStateMachine:
    """Derives and records entity statuses."""

    def __init__(
        self,
        bom_store: RemoteBOMStore,
        history: HistoryLog,
        config: Optional[SyncConfig] = None
    ):
        self.bom_store = bom_store
        self.history = history
        self.config = config or SyncConfig()

    def register(self, identity: str, remote_ref: str = "") -> EntityRecord:
        """Create the entity's record (PLACEHOLDER) if it has none."""
        return self.history.ensure_record(identity, remote_ref=remote_ref)

    def link_remote(self, identity: str, remote_ref: str) -> EntityRecord:
        """Attach a remote reference to an entity (after creating it remotely)."""
        self.history.ensure_record(identity)
        return self.history.update_record(identity, remote_ref=remote_ref)

    def _transition(
        self,
        record: EntityRecord,
        new_status: SyncStatus,
        summary: str = "",
        details: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None,
        **fields: Any
    ) -> EntityRecord:
        updated = self.history.update_record(record.identity, status=new_status, **fields)
        if record.status != new_status:
            logger.info(f"{record.identity}: {record.status.value} -> {new_status.value}")
            self.history.record_status_change(
                record.identity,
                record.status,
                new_status,
                summary=summary,
                details=details,
                actor=actor,
            )
        return updated

    def evaluate(self, identity: str, local_lines: Sequence[BOMLine]) -> SyncStatus:
        """Evaluate and record the status of one entity.

        Args:
            identity: Entity identity (item number)
            local_lines: Current local lines of the entity's BOM

        Returns:
            The entity's status after evaluation
        """
        record = self.history.get_record(identity) or self.register(identity)

        if record.status is SyncStatus.ERROR:
            logger.debug(f"{identity}: ERROR is sticky, skipping passive evaluation")
            return SyncStatus.ERROR

        details: Dict[str, Any] = {}
        try:
            current = fingerprint(local_lines)
            diff = None
            if record.remote_ref and current == record.fingerprint:
                remote_lines = self.bom_store.list_lines(record.remote_ref)
                diff = compare(local_lines, remote_lines)
                details["diff"] = diff.to_dict()
            new_status = classify_status(record.remote_ref, record.fingerprint, current, diff)
        except Exception as e:
            logger.error(f"Status evaluation failed for {identity}: {e}", exc_info=True)
            self._transition(
                record,
                SyncStatus.ERROR,
                summary=f"Status check failed: {e}",
                details={"error": str(e)},
                last_refresh=self.history.now(),
            )
            return SyncStatus.ERROR

        fields: Dict[str, Any] = {"last_refresh": self.history.now()}
        if new_status is SyncStatus.SYNCED:
            fields["fingerprint"] = current
        elif new_status is SyncStatus.LOCAL_MODIFIED:
            details["stored_fingerprint"] = record.fingerprint
            details["current_fingerprint"] = current

        self._transition(record, new_status, details=details, **fields)
        return new_status

    def evaluate_all(self, entities: Mapping[str, Sequence[BOMLine]]) -> Dict[str, SyncStatus]:
        """Evaluate every entity; one failing entity never stops the batch."""
        results: Dict[str, SyncStatus] = {}
        for identity, lines in entities.items():
            try:
                results[identity] = self.evaluate(identity, lines)
            except Exception as e:
                logger.error(f"Could not record status for {identity}: {e}", exc_info=True)
                results[identity] = SyncStatus.ERROR
        return results

    def mark_pushed(
        self,
        identity: str,
        lines: Sequence[BOMLine],
        details: Optional[Dict[str, Any]] = None
    ) -> EntityRecord:
        """Record a successful push: store the new fingerprint and set SYNCED."""
        record = self.register(identity)
        now = self.history.now()
        self.history.append(
            identity,
            EventType.PUSH,
            f"Pushed {len(lines)} line(s)",
            details=details,
        )
        return self._transition(
            record,
            SyncStatus.SYNCED,
            summary="Push succeeded",
            fingerprint=fingerprint(lines),
            last_sync=now,
            last_push=now,
        )

    def mark_pulled(
        self,
        identity: str,
        lines: Sequence[BOMLine],
        details: Optional[Dict[str, Any]] = None
    ) -> EntityRecord:
        """Record that the sheet was overwritten from the remote BOM."""
        record = self.register(identity)
        now = self.history.now()
        self.history.append(
            identity,
            EventType.PULL,
            f"Pulled {len(lines)} line(s)",
            details=details,
        )
        return self._transition(
            record,
            SyncStatus.SYNCED,
            summary="Pull succeeded",
            fingerprint=fingerprint(lines),
            last_sync=now,
            last_refresh=now,
        )

    def mark_placeholder(self, identity: str, reason: str) -> EntityRecord:
        """Detach an entity from the remote (after its remote copy was deleted)."""
        record = self.register(identity)
        return self._transition(
            record,
            SyncStatus.PLACEHOLDER,
            summary=reason,
            remote_ref="",
            fingerprint="",
        )

    def mark_error(self, identity: str, reason: str) -> EntityRecord:
        """Put an entity into the sticky ERROR state."""
        record = self.register(identity)
        self.history.append(identity, EventType.ERROR, reason)
        return self._transition(record, SyncStatus.ERROR, summary=reason, details={"error": reason})

    def override(
        self,
        identity: str,
        status: SyncStatus,
        reason: str = "",
        actor: Optional[str] = None
    ) -> EntityRecord:
        """Manually set an entity's status (the only passive way out of ERROR)."""
        record = self.register(identity)
        self.history.append(
            identity,
            EventType.OVERRIDE,
            reason or f"Status manually set to {status.value}",
            details={"from": record.status.value, "to": status.value},
            status_before=record.status,
            status_after=status,
            actor=actor,
        )
        return self._transition(record, status, summary="Manual override", actor=actor)
