"""
Headless orchestration of the reconciliation components.

BomReconciler ties one sheet (a TabularSource) to the remote entity it
describes, identified by item number on every call. Every
decision the user has to make, such as confirming a destructive push or a
rollback, is passed in as an argument up front; nothing here prompts.
"""

import logging
import time
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .config import SyncConfig
from .diff import DiffResult, compare
from .errors import PartialSyncError, RemoteError, ValidationError
from .history.log import HistoryLog
from .models import BOMLine, BOMTree, SyncStatus
from .remote.base import RemoteBOMStore, RemoteItemStore
from .resolve import resolve_item_refs
from .sources.base import TabularSource
from .sync.executor import PushResult, SyncExecutor
from .sync.pull import lines_from_remote, rows_from_remote
from .sync.status import StatusStateMachine
from .sync.transaction import (
    CreationPlan,
    CreationResult,
    RollbackResult,
    TransactionContext,
    TransactionCoordinator,
)
from .tree_builder import TreeBuilder

logger = logging.getLogger(__name__)


class BomReconciler:
    """Reconciles the BOM in one sheet with a remote entity.

    Args:
        source: Sheet holding the entity's BOM rows
        item_store: Remote item store
        bom_store: Remote BOM store
        history: History log shared by all reconcilers
        config: Sync configuration
        sleep: Sleep function used for throttling and verification backoff
    """

    def __init__(
        self,
        source: TabularSource,
        item_store: RemoteItemStore,
        bom_store: RemoteBOMStore,
        history: HistoryLog,
        config: Optional[SyncConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.source = source
        self.item_store = item_store
        self.bom_store = bom_store
        self.history = history
        self.config = config or SyncConfig()

        self.tree_builder = TreeBuilder(self.config)
        self.executor = SyncExecutor(bom_store, self.config, sleep=sleep)
        self.status = StatusStateMachine(bom_store, history, self.config)
        self.coordinator = TransactionCoordinator(
            item_store,
            bom_store,
            self.executor,
            history,
            self.config,
            status=self.status,
            sleep=sleep,
        )

    def load_tree(self) -> BOMTree:
        return self.tree_builder.build_from_source(self.source)

    def load_resolved_lines(self) -> List[BOMLine]:
        """Sheet lines with every item reference resolved.

        Raises:
            ValidationError: Naming every item number that could not be resolved
        """
        report = resolve_item_refs(self.load_tree().lines, self.item_store)
        return report.require_resolved()

    def remote_ref(self, identity: str) -> str:
        """The entity's remote reference, looked up by number when unknown.

        Returns "" when the entity does not exist remotely yet.

        Raises:
            Exception: Whatever the store raised if the lookup itself failed
        """
        record = self.status.register(identity)
        if record.remote_ref:
            return record.remote_ref

        lookup = self.item_store.get_by_number(identity)
        if lookup.is_failure:
            raise lookup.error
        if lookup.is_not_found:
            return ""
        self.status.link_remote(identity, lookup.item.ref)
        return lookup.item.ref

    def _require_remote_ref(self, identity: str) -> str:
        ref = self.remote_ref(identity)
        if not ref:
            raise ValidationError(
                [f"{identity} does not exist remotely yet; create it first"],
                message="Entity is a placeholder",
            )
        return ref

    def comparable_lines(self, lines: Sequence[BOMLine]) -> List[BOMLine]:
        """Lines with blank compared fields filled from their remote items.

        Sheets often carry only the core columns, so name, description,
        category and lifecycle come from the item. Items that do not exist
        remotely are kept as they are.

        Raises:
            RemoteError: If any item lookup failed
        """
        report = resolve_item_refs(lines, self.item_store)
        if report.failures:
            failed = ", ".join(f"{number} ({error})" for number, error in report.failures.items())
            raise RemoteError(f"Item lookup failed: {failed}")
        return report.lines

    def _prepare_status(
        self,
        identity: str,
        read_lines: Callable[[], Sequence[BOMLine]]
    ) -> Optional[List[BOMLine]]:
        """Gather everything evaluate() needs; None when the entity is ERROR."""
        record = self.status.register(identity)
        if record.status is SyncStatus.ERROR:
            return None
        try:
            lines = list(read_lines())
            if self.remote_ref(identity):
                lines = self.comparable_lines(lines)
        except Exception as e:
            logger.error(f"Status check for {identity} failed: {e}", exc_info=True)
            self.status.mark_error(identity, f"Status check failed: {e}")
            return None
        return lines

    def check_status(self, identity: str) -> SyncStatus:
        """Evaluate the entity's status from the current sheet contents."""
        lines = self._prepare_status(identity, lambda: self.load_tree().lines)
        if lines is None:
            return SyncStatus.ERROR
        return self.status.evaluate(identity, lines)

    def check_all(self, entities: Mapping[str, Sequence[BOMLine]]) -> Dict[str, SyncStatus]:
        """Batch status evaluation for several entities.

        A failed lookup makes that entity ERROR; the rest of the batch still runs.
        """
        results: Dict[str, SyncStatus] = {}
        pending: Dict[str, List[BOMLine]] = {}
        for identity, entity_lines in entities.items():
            lines = self._prepare_status(identity, lambda entity_lines=entity_lines: entity_lines)
            if lines is None:
                results[identity] = SyncStatus.ERROR
            else:
                pending[identity] = lines
        results.update(self.status.evaluate_all(pending))
        return {identity: results[identity] for identity in entities}

    def diff(self, identity: str) -> DiffResult:
        """Compare the sheet with the remote BOM."""
        ref = self._require_remote_ref(identity)
        local_lines = self.comparable_lines(self.load_tree().lines)
        return compare(local_lines, self.bom_store.list_lines(ref))

    def push(self, identity: str, confirm: bool = True) -> Optional[PushResult]:
        """Replace the remote BOM with the sheet contents.

        Args:
            confirm: Caller's answer to "delete and recreate the remote BOM?";
                False makes this a no-op

        Returns:
            PushResult, or None when not confirmed

        Raises:
            ValidationError: If the sheet cannot be pushed (nothing changed remotely)
            PartialSyncError: If creation failed partway (entity set to ERROR)
        """
        if not confirm:
            logger.info(f"Push of {identity} declined")
            return None

        lines = self.load_resolved_lines()
        ref = self._require_remote_ref(identity)
        try:
            result = self.executor.push(ref, lines)
        except PartialSyncError as e:
            self.status.mark_error(identity, str(e))
            raise

        self.status.mark_pushed(identity, lines, details=result.to_dict())
        return result

    def pull(self, identity: str) -> List[BOMLine]:
        """Overwrite the sheet with the remote BOM and mark the entity SYNCED."""
        ref = self._require_remote_ref(identity)
        remote_lines = self.bom_store.list_lines(ref)
        self.source.write_rows(0, rows_from_remote(remote_lines, self.config), truncate=True)
        lines = lines_from_remote(remote_lines)
        self.status.mark_pulled(identity, lines, details={"line_count": len(lines)})
        logger.info(f"Pulled {len(lines)} line(s) for {identity}")
        return lines

    def create_hierarchy(self, plan: CreationPlan) -> CreationResult:
        return self.coordinator.create_hierarchy(plan)

    def rollback(self, context: TransactionContext, confirm: bool = True) -> Optional[RollbackResult]:
        """Delete entities created by a failed creation, newest first.

        Declining leaves the partially created entities in place.
        """
        if not confirm:
            logger.info(f"Rollback of {len(context)} created entity(ies) declined")
            return None
        return self.coordinator.rollback(context)
