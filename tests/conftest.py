"""Shared fixtures: zero-delay config, in-memory stores and a recording sleep."""

from typing import List

import pytest

from bomsync.config import SyncConfig
from bomsync.history import HistoryLog, MemoryHistoryStore
from bomsync.remote import MemoryBOMStore, MemoryItemStore
from bomsync.sync import StatusStateMachine, SyncExecutor, TransactionCoordinator


@pytest.fixture
def config():
    """No create/delete throttling; verification keeps its 0.5s first delay."""
    return SyncConfig(create_delay_seconds=0.0, delete_delay_seconds=0.0)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def sleep(sleeps):
    """Records requested delays instead of sleeping."""
    return sleeps.append


@pytest.fixture
def item_store():
    return MemoryItemStore()


@pytest.fixture
def bom_store(item_store):
    return MemoryBOMStore(item_store)


@pytest.fixture
def history_store():
    return MemoryHistoryStore()


@pytest.fixture
def history(history_store, config):
    return HistoryLog(history_store, config)


@pytest.fixture
def executor(bom_store, config, sleep):
    return SyncExecutor(bom_store, config, sleep=sleep)


@pytest.fixture
def status_machine(bom_store, history, config):
    return StatusStateMachine(bom_store, history, config)


@pytest.fixture
def coordinator(item_store, bom_store, executor, history, config, status_machine, sleep):
    return TransactionCoordinator(
        item_store,
        bom_store,
        executor,
        history,
        config,
        status=status_machine,
        sleep=sleep,
    )
