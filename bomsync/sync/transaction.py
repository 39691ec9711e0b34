"""
Multi-entity hierarchical creation with explicit rollback.

A CreationPlan lists entities in creation order: components first, then the
groups that contain them, then the top-level entity. Each created entity is
appended to a TransactionContext. When a step fails, creation stops and the
context is handed back to the caller; nothing is undone automatically.
rollback() is a separate recovery action that deletes the created entities
in strict reverse order, continuing past individual failures.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..config import SyncConfig
from ..errors import NotFoundError, TransientError, ValidationError
from ..history.log import HistoryLog
from ..models import BOMLine, EventType, Item, TransactionEntry
from ..remote.base import RemoteBOMStore, RemoteItemStore
from .executor import SyncExecutor
from .status import StatusStateMachine

logger = logging.getLogger(__name__)

COMPONENT = "component"
GROUP = "group"
TOP = "top"


class TransactionContext:
    """Entities created within one multi-entity operation, in creation order."""

    def __init__(self, entries: Optional[List[TransactionEntry]] = None):
        self._entries: List[TransactionEntry] = list(entries or [])

    def add(self, entity_type: str, identity: str, remote_ref: str) -> TransactionEntry:
        entry = TransactionEntry(entity_type=entity_type, identity=identity, remote_ref=remote_ref)
        self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[TransactionEntry]:
        return list(self._entries)

    def rollback_order(self) -> List[TransactionEntry]:
        return list(reversed(self._entries))

    def ref_for(self, identity: str) -> Optional[str]:
        for entry in self._entries:
            if entry.identity == identity:
                return entry.remote_ref
        return None

    def __iter__(self) -> Iterator[TransactionEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class CreationStep:
    """One entity to create, with the BOM to push under it (if any)."""
    entity_type: str
    fields: Dict[str, Any]
    lines: List[BOMLine] = field(default_factory=list)

    @property
    def identity(self) -> str:
        return str(self.fields.get("number", "")).strip()


@dataclass
class CreationPlan:
    """Ordered creation steps, built up front before anything is created."""
    steps: List[CreationStep] = field(default_factory=list)

    def add(self, entity_type: str, fields: Dict[str, Any], lines: Optional[List[BOMLine]] = None) -> "CreationPlan":
        self.steps.append(CreationStep(entity_type=entity_type, fields=dict(fields), lines=list(lines or [])))
        return self

    def validate(self) -> None:
        problems = []
        seen = set()
        for index, step in enumerate(self.steps):
            if not step.identity:
                problems.append(f"step {index}: {step.entity_type} has no item number")
                continue
            if step.identity in seen:
                problems.append(f"step {index}: item number {step.identity} appears more than once")
            seen.add(step.identity)
        if not self.steps:
            problems.append("plan has no steps")
        if problems:
            raise ValidationError(problems, message="Creation plan rejected")


@dataclass
class CreationResult:
    success: bool
    context: TransactionContext
    error: Optional[str] = None
    failed_step: Optional[int] = None

    @property
    def created_count(self) -> int:
        return len(self.context)


@dataclass
class RollbackResult:
    success: bool
    deleted_count: int
    errors: List[str] = field(default_factory=list)


class TransactionCoordinator:
    """Creates entity hierarchies and rolls them back on request."""

    def __init__(
        self,
        item_store: RemoteItemStore,
        bom_store: RemoteBOMStore,
        executor: SyncExecutor,
        history: HistoryLog,
        config: Optional[SyncConfig] = None,
        status: Optional[StatusStateMachine] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.item_store = item_store
        self.bom_store = bom_store
        self.executor = executor
        self.history = history
        self.config = config or SyncConfig()
        self.status = status
        self.sleep = sleep

    def verify_visible(self, ref: str) -> Item:
        """Poll until a newly created entity is readable.

        Uses bounded exponential backoff: config.verify_attempts polls,
        waiting config.verify_initial_delay_seconds after the first miss and
        doubling after each further miss.

        Raises:
            TransientError: If the entity is still not visible
        """
        delay = self.config.verify_initial_delay_seconds
        attempts = self.config.verify_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                return self.item_store.get_by_ref(ref)
            except (NotFoundError, TransientError) as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        f"{ref} not visible yet (attempt {attempt}/{attempts}), retrying in {delay:g}s"
                    )
                    self.sleep(delay)
                    delay *= 2

        raise TransientError(f"{ref} not visible after {attempts} attempt(s): {last_error}")

    def _resolve_step_lines(self, step: CreationStep, context: TransactionContext) -> List[BOMLine]:
        resolved = []
        unresolved = []
        for line in step.lines:
            if line.item_ref:
                resolved.append(line)
                continue
            ref = context.ref_for(line.item_number)
            if ref is None:
                lookup = self.item_store.get_by_number(line.item_number)
                if lookup.is_found:
                    ref = lookup.item.ref
                elif lookup.is_failure:
                    unresolved.append(f"{line.item_number}: lookup failed ({lookup.error})")
                    continue
                else:
                    unresolved.append(f"{line.item_number}: not found remotely")
                    continue
            resolved.append(replace(line, item_ref=ref))
        if unresolved:
            raise ValidationError(unresolved, message=f"Cannot resolve BOM of {step.identity}")
        return resolved

    def _run_step(self, step: CreationStep, context: TransactionContext) -> None:
        item = self.item_store.create(step.fields)
        context.add(step.entity_type, step.identity, item.ref)
        logger.info(f"Created {step.entity_type} {step.identity} -> {item.ref}")
        self.history.append(
            step.identity,
            EventType.CREATE,
            f"Created {step.entity_type} {step.identity}",
            details={"remote_ref": item.ref, "entity_type": step.entity_type},
        )
        if self.status is not None:
            self.status.link_remote(step.identity, item.ref)

        self.verify_visible(item.ref)
        self.history.append(step.identity, EventType.VERIFY, f"{step.identity} visible remotely")

        if step.lines:
            lines = self._resolve_step_lines(step, context)
            result = self.executor.push(item.ref, lines)
            if self.status is not None:
                self.status.mark_pushed(step.identity, lines, details=result.to_dict())
            else:
                self.history.append(
                    step.identity, EventType.PUSH, f"Pushed {len(lines)} line(s)", details=result.to_dict()
                )

    def create_hierarchy(self, plan: CreationPlan) -> CreationResult:
        """Create every entity in the plan, in order.

        Never rolls back by itself: on failure the returned context lists
        what was created so the caller can decide whether to call rollback().

        Raises:
            ValidationError: If the plan itself is invalid (nothing created)
        """
        plan.validate()
        context = TransactionContext()

        for index, step in enumerate(plan.steps):
            try:
                self._run_step(step, context)
            except Exception as e:
                logger.error(
                    f"Creation stopped at step {index} ({step.entity_type} {step.identity}); "
                    f"{len(context)} entity(ies) created so far",
                    exc_info=True
                )
                self.history.append(
                    step.identity,
                    EventType.ERROR,
                    f"Creation failed: {e}",
                    details={"step": index, "created": [entry.identity for entry in context]},
                )
                return CreationResult(success=False, context=context, error=str(e), failed_step=index)

        return CreationResult(success=True, context=context)

    def rollback(self, context: TransactionContext) -> RollbackResult:
        """Delete created entities in strict reverse creation order.

        Individual delete failures are collected and do not stop the rollback.
        """
        deleted = 0
        errors: List[str] = []

        for entry in context.rollback_order():
            try:
                self.item_store.delete(entry.remote_ref)
            except Exception as e:
                message = f"{entry.entity_type} {entry.identity} ({entry.remote_ref}): {e}"
                logger.warning(f"Rollback delete failed, continuing: {message}")
                errors.append(message)
                continue

            deleted += 1
            self.history.append(
                entry.identity,
                EventType.ROLLBACK,
                f"Deleted {entry.entity_type} {entry.identity} during rollback",
                details={"remote_ref": entry.remote_ref},
            )
            if self.status is not None:
                self.status.mark_placeholder(entry.identity, "Remote copy deleted by rollback")

        logger.info(f"Rollback finished: {deleted} deleted, {len(errors)} failed")
        return RollbackResult(success=not errors, deleted_count=deleted, errors=errors)
