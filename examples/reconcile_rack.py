#!/usr/bin/env python3
"""Example: reconcile a rack BOM sheet with a remote item store.

Runs against the in-memory stores so it needs no credentials. Swap
MemoryItemStore/MemoryBOMStore for subclasses of RemoteItemStore and
RemoteBOMStore that call a real PLM system.

Usage:
    python examples/reconcile_rack.py [sheet.csv|sheet.xlsx]
"""

import logging
import sys

from bomsync import BomReconciler, SyncConfig, format_diff
from bomsync.history import HistoryLog, MemoryHistoryStore, PostgresHistoryStore
from bomsync.models import BOMLine
from bomsync.remote import MemoryBOMStore, MemoryItemStore
from bomsync.sources import MemorySource, open_source
from bomsync.sync import COMPONENT, GROUP, CreationPlan

SAMPLE_SHEET = [
    ["Level", "Item Number", "Name", "Description", "Category", "Lifecycle", "Qty"],
    [1, "SRV-1", "Server", "2U compute node", "Server", "Production", 4],
    [1, "PSU-1", "PSU", "1600W power supply", "Power", "Production", "8 ea"],
    [1, "PDU-1", "PDU", "", "Power", "Production", 2],
]


def seed_remote(item_store: MemoryItemStore) -> None:
    item_store.add("RACK-1", name="Compute rack", category="Rack", lifecycle="Design")
    item_store.add("SRV-1", name="Server", description="2U compute node",
                   category="Server", lifecycle="Production")
    item_store.add("PSU-1", name="PSU", description="1600W power supply",
                   category="Power", lifecycle="Production")
    item_store.add("PDU-1", name="PDU", category="Power", lifecycle="Production")


def reconcile_rack(sheet_path: str = None):
    """Check, diff, push and re-check one rack, then create and roll back a tray.

    Args:
        sheet_path: Optional CSV/Excel sheet; the built-in sample is used otherwise
    """
    config = SyncConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    if config.history_db_url:
        store = PostgresHistoryStore(config.history_db_url)
        store.ensure_schema()
    else:
        store = MemoryHistoryStore()
    history = HistoryLog(store, config)

    item_store = MemoryItemStore()
    bom_store = MemoryBOMStore(item_store)
    seed_remote(item_store)

    source = open_source(sheet_path) if sheet_path else MemorySource(SAMPLE_SHEET)
    reconciler = BomReconciler(source, item_store, bom_store, history, config)

    print(f"Status before push: {reconciler.check_status('RACK-1').value}")
    print(format_diff(reconciler.diff("RACK-1")))

    result = reconciler.push("RACK-1", confirm=True)
    print(f"✓ Pushed {result.created_count} line(s), deleted {result.deleted_count}")
    print(f"Status after push: {reconciler.check_status('RACK-1').value}")

    plan = (
        CreationPlan()
        .add(COMPONENT, {"number": "FAN-1", "name": "Fan", "category": "Cooling"})
        .add(GROUP, {"number": "TRAY-1", "name": "Fan tray", "category": "Cooling"}, lines=[
            BOMLine(level=1, item_number="FAN-1", quantity=6),
        ])
    )
    creation = reconciler.create_hierarchy(plan)
    print(f"✓ Created {creation.created_count} entity(ies), success={creation.success}")

    rollback = reconciler.rollback(creation.context, confirm=True)
    print(f"✓ Rolled back {rollback.deleted_count} entity(ies), errors={rollback.errors}")

    print("\nHistory for RACK-1:")
    for event in history.timeline("RACK-1"):
        print(f"  {event.timestamp:%H:%M:%S} {event.event_type.value:<14} {event.summary}")


if __name__ == "__main__":
    reconcile_rack(sys.argv[1] if len(sys.argv) > 1 else None)
