"""Push, status tracking and multi-entity creation."""

from .executor import SyncExecutor, PushResult, validate_line, validate_lines
from .status import StatusStateMachine, classify_status
from .transaction import (
    TransactionCoordinator,
    TransactionContext,
    CreationPlan,
    CreationStep,
    CreationResult,
    RollbackResult,
    COMPONENT,
    GROUP,
    TOP,
)
from .pull import rows_from_remote, lines_from_remote, header_row

__all__ = [
    "SyncExecutor",
    "PushResult",
    "validate_line",
    "validate_lines",
    "StatusStateMachine",
    "classify_status",
    "TransactionCoordinator",
    "TransactionContext",
    "CreationPlan",
    "CreationStep",
    "CreationResult",
    "RollbackResult",
    "COMPONENT",
    "GROUP",
    "TOP",
    "rows_from_remote",
    "lines_from_remote",
    "header_row",
]
