"""
Tests for the full-replace BOM push.

These tests verify that:
1. Validation rejects bad input before any remote call
2. Existing lines are deleted best-effort, then every line is recreated
3. A failed create aborts with PartialSyncError
4. Creates are throttled by a fixed delay
"""

import pytest

from bomsync.config import SyncConfig
from bomsync.errors import PartialSyncError, ValidationError
from bomsync.models import BOMLine, LineCreate
from bomsync.sync import SyncExecutor, validate_line, validate_lines


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def rack(item_store, bom_store):
    """RACK-1 with one existing line (OLD-1) and three known child items."""
    item_store.add("RACK-1", name="Rack", ref="R-RACK")
    item_store.add("OLD-1", name="Old", ref="R-OLD")
    item_store.add("SRV-1", name="Server", ref="R-SRV")
    item_store.add("PSU-1", name="PSU", ref="R-PSU")
    item_store.add("PDU-1", name="PDU", ref="R-PDU")
    bom_store.seed("R-RACK", [LineCreate("R-OLD", 1, 1, 1)])
    return "R-RACK"


def make_line(item_number: str, item_ref: str = None, quantity=1, level: int = 1, **kwargs) -> BOMLine:
    """Helper to create resolved lines (item_ref defaults to R-<prefix>)."""
    if item_ref is None:
        item_ref = "R-" + item_number.split("-")[0]
    return BOMLine(level=level, item_number=item_number, quantity=quantity, item_ref=item_ref, **kwargs)


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidation:

    def test_valid_line(self):
        assert validate_line(make_line("SRV-1")) == []

    def test_unresolved_line_makes_no_remote_calls(self, executor, bom_store, rack):
        lines = [make_line("SRV-1"), BOMLine(level=1, item_number="NEW-1")]

        with pytest.raises(ValidationError) as exc_info:
            executor.push(rack, lines)

        assert bom_store.count() == 0
        assert exc_info.value.problems == ["line 1: item NEW-1 has no resolved item reference"]

    def test_all_problems_reported(self, executor, bom_store, rack):
        lines = [
            make_line("SRV-1", quantity=0),
            make_line("PSU-1", level=-1),
            BOMLine(level=1, item_number="", item_ref="R-X"),
        ]

        with pytest.raises(ValidationError) as exc_info:
            executor.push(rack, lines)

        problems = exc_info.value.problems
        assert any(p.startswith("line 0:") for p in problems)
        assert any(p.startswith("line 1:") for p in problems)
        assert any(p.startswith("line 2:") for p in problems)
        assert bom_store.count() == 0

    def test_non_numeric_quantity(self):
        reasons = validate_line(make_line("SRV-1", quantity="2"))
        assert reasons == ["quantity '2' is not a number"]

    def test_missing_parent_reference(self, executor, bom_store):
        with pytest.raises(ValidationError) as exc_info:
            executor.push("", [make_line("SRV-1")])
        assert "target entity has no remote reference" in exc_info.value.problems
        assert bom_store.count() == 0

    def test_validate_lines_indexes(self):
        problems = validate_lines([make_line("SRV-1"), make_line("PSU-1", quantity=-2)])
        assert problems == ["line 1: quantity -2 must be greater than 0"]


# =============================================================================
# PUSH
# =============================================================================

class TestPush:

    def test_replaces_remote_bom(self, executor, bom_store, rack):
        lines = [make_line("SRV-1", quantity=2), make_line("PSU-1", quantity=4)]

        result = executor.push(rack, lines)

        assert result.deleted_count == 1
        assert result.created_count == 2
        assert result.delete_failures == []
        remote = bom_store.list_lines(rack)
        assert [line.item_number for line in remote] == ["SRV-1", "PSU-1"]
        assert [line.quantity for line in remote] == [2, 4]
        assert [line.sequence_number for line in remote] == [1, 2]

    def test_deletes_before_creates(self, executor, bom_store, rack):
        executor.push(rack, [make_line("SRV-1")])
        operations = [op for op, _ in bom_store.calls]
        assert operations == ["list_lines", "delete_line", "create_line"]

    def test_empty_push_clears_remote(self, executor, bom_store, rack):
        result = executor.push(rack, [])
        assert result.deleted_count == 1
        assert result.created_count == 0
        assert bom_store.list_lines(rack) == []

    def test_delete_failures_are_skipped(self, executor, bom_store, rack):
        bom_store.fail_on("delete_line", "*")

        result = executor.push(rack, [make_line("SRV-1")])

        assert result.deleted_count == 0
        assert len(result.delete_failures) == 1
        assert "OLD-1" in result.delete_failures[0]
        assert result.created_count == 1

    def test_create_failure_raises_partial_sync_error(self, executor, bom_store, rack):
        bom_store.fail_on("create_line", "R-PSU")
        lines = [make_line("SRV-1"), make_line("PSU-1"), make_line("PDU-1")]

        with pytest.raises(PartialSyncError) as exc_info:
            executor.push(rack, lines)

        error = exc_info.value
        assert error.line_index == 1
        assert error.created_count == 1
        assert error.deleted_count == 1
        assert "PSU-1" in error.reason
        assert [line.item_number for line in bom_store.list_lines(rack)] == ["SRV-1"]
        assert ("create_line", "R-PDU") not in bom_store.calls

    def test_side_channel_attributes_only_when_present(self, executor, rack):
        lines = [
            make_line("SRV-1", attributes={"rack_position": "U12", "unit": "ea"}),
            make_line("PSU-1", attributes={"unit": "ea"}),
        ]

        result = executor.push(rack, lines)

        assert result.created_lines[0].attributes == {"rack_position": "U12", "unit": "ea"}
        assert result.created_lines[1].attributes == {}

    def test_result_to_dict(self, executor, rack):
        result = executor.push(rack, [make_line("SRV-1")])
        assert result.to_dict() == {
            "parent_ref": "R-RACK",
            "deleted_count": 1,
            "delete_failures": [],
            "created_count": 1,
        }


class TestThrottling:

    def test_fixed_delay_between_creates(self, bom_store, rack, sleeps, sleep):
        executor = SyncExecutor(bom_store, SyncConfig(create_delay_seconds=0.15), sleep=sleep)
        lines = [make_line("SRV-1"), make_line("PSU-1"), make_line("PDU-1")]

        executor.push(rack, lines)

        assert sleeps == [0.15, 0.15]

    def test_delete_delay(self, bom_store, rack, sleeps, sleep):
        bom_store.seed(rack, [LineCreate("R-OLD", 1, 1, 1), LineCreate("R-SRV", 1, 1, 2)])
        config = SyncConfig(create_delay_seconds=0.0, delete_delay_seconds=0.2)
        executor = SyncExecutor(bom_store, config, sleep=sleep)

        executor.push(rack, [make_line("PSU-1")])

        assert sleeps == [0.2]

    def test_no_sleep_with_zero_delay(self, executor, rack, sleeps):
        executor.push(rack, [make_line("SRV-1"), make_line("PSU-1")])
        assert sleeps == []
