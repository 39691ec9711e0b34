from .config import SyncConfig
from .models import BOMLine, BOMTree, SyncStatus, EventType, LookupResult
from .tree_builder import TreeBuilder
from .fingerprint import fingerprint
from .diff import compare, format_diff, DiffResult
from .sync import SyncExecutor, StatusStateMachine, TransactionCoordinator, CreationPlan
from .history import HistoryLog
from .reconciler import BomReconciler

__all__ = [
    "SyncConfig",
    "BOMLine",
    "BOMTree",
    "SyncStatus",
    "EventType",
    "LookupResult",
    "TreeBuilder",
    "fingerprint",
    "compare",
    "format_diff",
    "DiffResult",
    "SyncExecutor",
    "StatusStateMachine",
    "TransactionCoordinator",
    "CreationPlan",
    "HistoryLog",
    "BomReconciler",
]
