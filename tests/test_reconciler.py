"""
End-to-end tests for BomReconciler against in-memory stores and a memory sheet.
"""

import pytest

from bomsync.errors import PartialSyncError, RemoteError, ValidationError
from bomsync.models import BOMLine, EventType, LineCreate, SyncStatus
from bomsync.reconciler import BomReconciler
from bomsync.sources import MemorySource
from bomsync.sync import COMPONENT, GROUP, CreationPlan, header_row


SHEET = [
    ["Level", "Item Number", "Name", "Description", "Category", "Lifecycle", "Qty"],
    [1, "SRV-1", "Server", "", "Server", "Production", 2],
    [1, "PSU-1", "PSU", "", "Power", "Production", 4],
]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def remote(item_store):
    item_store.add("RACK-1", name="Rack", category="Rack", ref="R-RACK")
    item_store.add("SRV-1", name="Server", category="Server", lifecycle="Production", ref="R-SRV")
    item_store.add("PSU-1", name="PSU", category="Power", lifecycle="Production", ref="R-PSU")
    item_store.add("PDU-1", name="PDU", category="Power", lifecycle="Production", ref="R-PDU")
    return item_store


@pytest.fixture
def source():
    return MemorySource(SHEET)


@pytest.fixture
def reconciler(source, remote, bom_store, history, config, sleep):
    return BomReconciler(source, remote, bom_store, history, config, sleep=sleep)


# =============================================================================
# STATUS AND DIFF
# =============================================================================

class TestCheckStatus:

    def test_unpushed_sheet_is_local_modified(self, reconciler, history):
        assert reconciler.check_status("RACK-1") is SyncStatus.LOCAL_MODIFIED
        assert history.get_record("RACK-1").remote_ref == "R-RACK"

    def test_entity_missing_remotely_is_placeholder(self, reconciler):
        assert reconciler.check_status("RACK-9") is SyncStatus.PLACEHOLDER

    def test_lookup_failure_is_error(self, reconciler, remote):
        remote.fail_on("get_by_number", "RACK-1", RemoteError("timeout"))
        assert reconciler.check_status("RACK-1") is SyncStatus.ERROR

    def test_unparseable_sheet_is_error(self, reconciler, source):
        source.rows[1][6] = "lots"
        assert reconciler.check_status("RACK-1") is SyncStatus.ERROR

    def test_synced_after_push(self, reconciler):
        reconciler.push("RACK-1")
        assert reconciler.check_status("RACK-1") is SyncStatus.SYNCED

    def test_remote_edit_after_push(self, reconciler, bom_store):
        reconciler.push("RACK-1")
        bom_store.create_line("R-RACK", LineCreate("R-PDU", 1, 1, 3))

        assert reconciler.check_status("RACK-1") is SyncStatus.ARENA_MODIFIED
        assert reconciler.diff("RACK-1").added_numbers == ["PDU-1"]

    def test_core_column_sheet_synced_after_push(self, remote, bom_store, history, config, sleep):
        sheet = MemorySource([
            ["Level", "Item Number", "Category", "Qty"],
            [1, "SRV-1", "Server", 2],
            [1, "PSU-1", "", 4],
        ])
        reconciler = BomReconciler(sheet, remote, bom_store, history, config, sleep=sleep)

        reconciler.push("RACK-1")

        assert reconciler.check_status("RACK-1") is SyncStatus.SYNCED
        assert not reconciler.diff("RACK-1").has_changes()

    def test_item_lookup_failure_is_error(self, reconciler, remote):
        reconciler.push("RACK-1")
        remote.fail_on("get_by_number", "PSU-1", RemoteError("timeout"))

        assert reconciler.check_status("RACK-1") is SyncStatus.ERROR

    def test_check_all(self, reconciler):
        results = reconciler.check_all({"RACK-9": [BOMLine(level=1, item_number="SRV-1")]})
        assert results == {"RACK-9": SyncStatus.PLACEHOLDER}

    def test_check_all_links_remote_entities(self, reconciler, history):
        lines = [BOMLine(level=1, item_number="SRV-1", quantity=2)]

        results = reconciler.check_all({"RACK-1": lines})

        assert results == {"RACK-1": SyncStatus.LOCAL_MODIFIED}
        assert history.get_record("RACK-1").remote_ref == "R-RACK"

    def test_check_all_matches_single_check_after_push(self, reconciler):
        reconciler.push("RACK-1")
        lines = reconciler.load_tree().lines

        assert reconciler.check_all({"RACK-1": lines}) == {"RACK-1": SyncStatus.SYNCED}

    def test_check_all_lookup_failure_does_not_stop_batch(self, reconciler, remote):
        remote.add("RACK-2", name="Rack 2", ref="R-RACK-2")
        remote.fail_on("get_by_number", "RACK-1", RemoteError("timeout"))
        lines = [BOMLine(level=1, item_number="SRV-1", quantity=2)]

        results = reconciler.check_all({"RACK-1": lines, "RACK-2": lines, "RACK-9": lines})

        assert results == {
            "RACK-1": SyncStatus.ERROR,
            "RACK-2": SyncStatus.LOCAL_MODIFIED,
            "RACK-9": SyncStatus.PLACEHOLDER,
        }


class TestDiff:

    def test_diff_against_empty_remote(self, reconciler):
        assert reconciler.diff("RACK-1").removed_numbers == ["SRV-1", "PSU-1"]

    def test_diff_placeholder_rejected(self, reconciler):
        with pytest.raises(ValidationError):
            reconciler.diff("RACK-9")


# =============================================================================
# PUSH
# =============================================================================

class TestPush:

    def test_push_replaces_remote_and_syncs(self, reconciler, bom_store, history):
        result = reconciler.push("RACK-1")

        assert result.created_count == 2
        assert [line.item_number for line in bom_store.list_lines("R-RACK")] == ["SRV-1", "PSU-1"]
        record = history.get_record("RACK-1")
        assert record.status is SyncStatus.SYNCED
        assert record.fingerprint == "SRV-1:2|PSU-1:4"

    def test_declined_push_is_no_op(self, reconciler, bom_store, history):
        assert reconciler.push("RACK-1", confirm=False) is None
        assert bom_store.count() == 0
        assert history.timeline("RACK-1") == []

    def test_unknown_item_rejected_before_mutation(self, reconciler, source, bom_store):
        source.rows.append([1, "NEW-1", "New", "", "", "", 1])

        with pytest.raises(ValidationError) as exc_info:
            reconciler.push("RACK-1")

        assert exc_info.value.problems == ["NEW-1: not found remotely"]
        assert bom_store.mutation_count == 0

    def test_placeholder_entity_rejected(self, reconciler, bom_store):
        with pytest.raises(ValidationError):
            reconciler.push("RACK-9")
        assert bom_store.mutation_count == 0

    def test_partial_failure_sets_error_until_next_push(self, reconciler, bom_store, history):
        bom_store.fail_on("create_line", "R-PSU")

        with pytest.raises(PartialSyncError):
            reconciler.push("RACK-1")

        assert history.get_record("RACK-1").status is SyncStatus.ERROR
        assert reconciler.check_status("RACK-1") is SyncStatus.ERROR

        bom_store.clear_failures()
        reconciler.push("RACK-1")

        assert history.get_record("RACK-1").status is SyncStatus.SYNCED
        assert [line.item_number for line in bom_store.list_lines("R-RACK")] == ["SRV-1", "PSU-1"]


# =============================================================================
# PULL
# =============================================================================

class TestPull:

    @pytest.fixture
    def remote_bom(self, bom_store, remote):
        bom_store.seed("R-RACK", [
            LineCreate("R-SRV", 2, 1, 1),
            LineCreate("R-PDU", 2, 2, 2),
        ])

    def test_pull_overwrites_sheet(self, reconciler, source, remote_bom):
        lines = reconciler.pull("RACK-1")

        assert [line.item_number for line in lines] == ["SRV-1", "PDU-1"]
        assert source.rows[0] == header_row()
        assert source.rows[1][1] == "  SRV-1"
        assert source.rows[2][1] == "    PDU-1"
        assert len(source.rows) == 3

    def test_pulled_sheet_is_synced(self, reconciler, history, remote_bom):
        reconciler.pull("RACK-1")

        assert history.get_record("RACK-1").status is SyncStatus.SYNCED
        assert EventType.PULL in [e.event_type for e in history.timeline("RACK-1")]
        assert reconciler.check_status("RACK-1") is SyncStatus.SYNCED

    def test_pull_placeholder_rejected(self, reconciler, source):
        with pytest.raises(ValidationError):
            reconciler.pull("RACK-9")
        assert source.rows == SHEET


# =============================================================================
# CREATION AND ROLLBACK
# =============================================================================

class TestCreationAndRollback:

    def make_plan(self):
        return (
            CreationPlan()
            .add(COMPONENT, {"number": "FAN-1", "name": "Fan"})
            .add(GROUP, {"number": "TRAY-1", "name": "Fan tray"}, lines=[
                BOMLine(level=1, item_number="FAN-1", quantity=4),
            ])
        )

    def test_create_then_rollback(self, reconciler, remote):
        result = reconciler.create_hierarchy(self.make_plan())
        assert result.success is True

        rollback = reconciler.rollback(result.context)

        assert rollback.deleted_count == 2
        assert remote.get_by_number("FAN-1").is_not_found

    def test_declined_rollback_keeps_entities(self, reconciler, remote):
        remote.fail_on("create", "TRAY-1")
        result = reconciler.create_hierarchy(self.make_plan())
        assert result.success is False

        assert reconciler.rollback(result.context, confirm=False) is None
        assert remote.get_by_number("FAN-1").is_found
