"""Sync history: audit events and per-entity summaries."""

from .base import HistoryStore, SUMMARY_FIELDS
from .memory import MemoryHistoryStore
from .log import HistoryLog
from .postgres import PostgresHistoryStore

__all__ = [
    "HistoryStore",
    "SUMMARY_FIELDS",
    "MemoryHistoryStore",
    "PostgresHistoryStore",
    "HistoryLog",
]
