"""
Full-replace push of a local BOM to the remote store.

A push runs three phases, strictly in order:

1. Validation. Every line is checked before any remote call. All problems
   are collected into one ValidationError, and nothing remote is touched.
2. Deletion. Every existing remote line under the parent is deleted one by
   one. A failed delete is logged and skipped.
3. Creation. Every local line is recreated with a 1-based sequence number.
   The first failed create aborts the push with PartialSyncError; the remote
   BOM is then incomplete until the push is re-run.

A fixed delay separates consecutive create calls (and deletes, when
configured) to stay under the remote's throughput limits. This is not
backoff; nothing is retried.
"""

import logging
import time
from dataclasses import dataclass, field
from numbers import Number
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..config import SyncConfig
from ..errors import PartialSyncError, ValidationError
from ..models import BOMLine, LineCreate, RemoteLine
from ..remote.base import RemoteBOMStore

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    parent_ref: str
    deleted_count: int = 0
    delete_failures: List[str] = field(default_factory=list)
    created_count: int = 0
    created_lines: List[RemoteLine] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "parent_ref": self.parent_ref,
            "deleted_count": self.deleted_count,
            "delete_failures": list(self.delete_failures),
            "created_count": self.created_count,
        }


def validate_line(line: BOMLine) -> List[str]:
    """Reasons a single line cannot be pushed (empty when it can)."""
    reasons = []
    if not line.item_number or not str(line.item_number).strip():
        reasons.append("missing item number")
    if not line.item_ref:
        reasons.append(f"item {line.item_number or '?'} has no resolved item reference")
    if line.quantity is None:
        reasons.append("missing quantity")
    elif not isinstance(line.quantity, Number) or isinstance(line.quantity, bool):
        reasons.append(f"quantity {line.quantity!r} is not a number")
    elif line.quantity <= 0:
        reasons.append(f"quantity {line.quantity!r} must be greater than 0")
    if line.level is None:
        reasons.append("missing level")
    elif not isinstance(line.level, int) or isinstance(line.level, bool) or line.level < 0:
        reasons.append(f"level {line.level!r} must be a whole number >= 0")
    return reasons


def validate_lines(lines: Sequence[BOMLine]) -> List[str]:
    """Every problem across all lines, as 'line <index>: <reason>'."""
    problems = []
    for index, line in enumerate(lines):
        for reason in validate_line(line):
            problems.append(f"line {index}: {reason}")
    return problems


class SyncExecutor:
    """Pushes local lines to the remote BOM store."""

    def __init__(
        self,
        bom_store: RemoteBOMStore,
        config: Optional[SyncConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.bom_store = bom_store
        self.config = config or SyncConfig()
        self.sleep = sleep

    def validate(self, remote_entity_ref: str, local_lines: Sequence[BOMLine]) -> None:
        """Raise ValidationError listing every reason the push cannot start."""
        problems = []
        if not remote_entity_ref:
            problems.append("target entity has no remote reference")
        problems.extend(validate_lines(local_lines))
        if problems:
            raise ValidationError(problems, message="BOM push rejected")

    def _line_payload(self, line: BOMLine, sequence_number: int) -> LineCreate:
        attributes = None
        side_channel = self.config.side_channel_attribute
        if side_channel and line.attributes.get(side_channel):
            attributes = dict(line.attributes)
        return LineCreate(
            item_ref=line.item_ref,
            quantity=line.quantity,
            level=line.level,
            sequence_number=sequence_number,
            attributes=attributes,
        )

    def _delete_existing(self, parent_ref: str, result: PushResult) -> None:
        existing = self.bom_store.list_lines(parent_ref)
        logger.info(f"Deleting {len(existing)} existing line(s) under {parent_ref}")

        for index, remote_line in enumerate(existing):
            if index > 0 and self.config.delete_delay_seconds:
                self.sleep(self.config.delete_delay_seconds)
            try:
                self.bom_store.delete_line(parent_ref, remote_line.line_ref)
                result.deleted_count += 1
            except Exception as e:
                message = f"{remote_line.item_number} (line {remote_line.line_ref}): {e}"
                logger.warning(f"Delete failed, continuing: {message}")
                result.delete_failures.append(message)

    def _create_all(self, parent_ref: str, lines: Sequence[BOMLine], result: PushResult) -> None:
        for index, line in enumerate(lines):
            if index > 0 and self.config.create_delay_seconds:
                self.sleep(self.config.create_delay_seconds)
            payload = self._line_payload(line, sequence_number=index + 1)
            try:
                created = self.bom_store.create_line(parent_ref, payload)
            except Exception as e:
                logger.error(
                    f"Create failed for line {index} ({line.item_number}) under {parent_ref}",
                    exc_info=True
                )
                raise PartialSyncError(
                    line_index=index,
                    reason=f"{line.item_number}: {e}",
                    created_count=result.created_count,
                    deleted_count=result.deleted_count,
                ) from e
            result.created_count += 1
            result.created_lines.append(created)

    def push(self, remote_entity_ref: str, local_lines: Iterable[BOMLine]) -> PushResult:
        """Replace the remote BOM under remote_entity_ref with local_lines.

        Args:
            remote_entity_ref: Remote reference of the parent entity
            local_lines: Lines to push, in BOM order

        Returns:
            PushResult with delete/create counts and delete failures

        Raises:
            ValidationError: Before any remote call, if any line is invalid
            PartialSyncError: If a create fails after deletion started
        """
        lines = list(local_lines)
        self.validate(remote_entity_ref, lines)

        result = PushResult(parent_ref=remote_entity_ref)
        logger.info(f"Pushing {len(lines)} line(s) to {remote_entity_ref}")

        self._delete_existing(remote_entity_ref, result)
        self._create_all(remote_entity_ref, lines, result)

        logger.info(
            f"Push complete for {remote_entity_ref}: {result.deleted_count} deleted "
            f"({len(result.delete_failures)} failed), {result.created_count} created"
        )
        return result
