"""
Tests for hierarchical creation and rollback.

These tests verify that:
1. Entities are created in plan order and each is verified before moving on
2. A failed step stops creation and leaves everything created in place
3. Rollback deletes in strict reverse order and continues past failures
4. Verification uses bounded exponential backoff
"""

import pytest

from bomsync.errors import TransientError, ValidationError
from bomsync.models import BOMLine, EventType, SyncStatus
from bomsync.sync import COMPONENT, GROUP, TOP, CreationPlan, TransactionContext


# =============================================================================
# HELPERS
# =============================================================================

def make_plan() -> CreationPlan:
    """Two components, one group holding them, one top holding the group."""
    return (
        CreationPlan()
        .add(COMPONENT, {"number": "C-1", "name": "Server"})
        .add(COMPONENT, {"number": "C-2", "name": "PSU"})
        .add(GROUP, {"number": "G-1", "name": "Server Group"}, lines=[
            BOMLine(level=1, item_number="C-1", quantity=2),
            BOMLine(level=1, item_number="C-2", quantity=1),
        ])
        .add(TOP, {"number": "T-1", "name": "Rack"}, lines=[
            BOMLine(level=1, item_number="G-1", quantity=1),
        ])
    )


def deleted_refs(item_store):
    return [key for op, key in item_store.calls if op == "delete"]


# =============================================================================
# CREATION
# =============================================================================

class TestCreateHierarchy:

    def test_creates_in_plan_order(self, coordinator, item_store):
        result = coordinator.create_hierarchy(make_plan())

        assert result.success is True
        assert result.created_count == 4
        assert [e.identity for e in result.context] == ["C-1", "C-2", "G-1", "T-1"]
        assert [e.entity_type for e in result.context] == [COMPONENT, COMPONENT, GROUP, TOP]
        assert [key for op, key in item_store.calls if op == "create"] == ["C-1", "C-2", "G-1", "T-1"]

    def test_group_bom_pushed_with_created_refs(self, coordinator, bom_store):
        result = coordinator.create_hierarchy(make_plan())

        group_ref = result.context.ref_for("G-1")
        lines = bom_store.list_lines(group_ref)
        assert [line.item_number for line in lines] == ["C-1", "C-2"]
        assert lines[0].item_ref == result.context.ref_for("C-1")
        assert [line.item_number for line in bom_store.list_lines(result.context.ref_for("T-1"))] == ["G-1"]

    def test_statuses_and_events(self, coordinator, history):
        result = coordinator.create_hierarchy(make_plan())

        assert history.get_record("C-1").remote_ref == result.context.ref_for("C-1")
        assert history.get_record("G-1").status is SyncStatus.SYNCED
        assert history.get_record("T-1").fingerprint == "G-1:1"
        types = [e.event_type for e in history.timeline("G-1")]
        assert types[:3] == [EventType.CREATE, EventType.VERIFY, EventType.PUSH]

    def test_existing_components_resolved_by_number(self, coordinator, item_store, bom_store):
        item_store.add("FAN-1", ref="R-FAN")
        plan = CreationPlan().add(GROUP, {"number": "G-2"}, lines=[
            BOMLine(level=1, item_number="FAN-1", quantity=3),
        ])

        result = coordinator.create_hierarchy(plan)

        assert result.success is True
        assert bom_store.list_lines(result.context.ref_for("G-2"))[0].item_ref == "R-FAN"

    def test_failed_step_stops_without_rollback(self, coordinator, item_store, history):
        item_store.fail_on("create", "G-1")

        result = coordinator.create_hierarchy(make_plan())

        assert result.success is False
        assert result.failed_step == 2
        assert [e.identity for e in result.context] == ["C-1", "C-2"]
        assert deleted_refs(item_store) == []
        assert item_store.get_by_number("C-1").is_found
        assert ("create", "T-1") not in item_store.calls
        error_events = [e for e in history.timeline("G-1") if e.event_type is EventType.ERROR]
        assert error_events[0].details == {"step": 2, "created": ["C-1", "C-2"]}

    def test_unresolvable_line_fails_step(self, coordinator):
        plan = CreationPlan().add(GROUP, {"number": "G-3"}, lines=[
            BOMLine(level=1, item_number="NOPE-1"),
        ])

        result = coordinator.create_hierarchy(plan)

        assert result.success is False
        assert "NOPE-1" in result.error
        assert result.created_count == 1

    def test_invalid_plan_creates_nothing(self, coordinator, item_store):
        plan = CreationPlan().add(COMPONENT, {"number": "C-1"}).add(COMPONENT, {"number": "C-1"})

        with pytest.raises(ValidationError):
            coordinator.create_hierarchy(plan)
        with pytest.raises(ValidationError):
            coordinator.create_hierarchy(CreationPlan())
        assert item_store.count() == 0

    def test_plan_step_without_number(self):
        with pytest.raises(ValidationError) as exc_info:
            CreationPlan().add(COMPONENT, {"name": "Nameless"}).validate()
        assert exc_info.value.problems == ["step 0: component has no item number"]


# =============================================================================
# VERIFICATION
# =============================================================================

class TestVerifyVisible:

    def test_visible_immediately(self, coordinator, item_store, sleeps):
        item_store.add("X-1", ref="R-X")
        assert coordinator.verify_visible("R-X").number == "X-1"
        assert sleeps == []

    def test_backoff_doubles(self, coordinator, item_store, sleeps):
        item_store.add("X-1", ref="R-X")
        item_store.hide_for("R-X", 2)

        assert coordinator.verify_visible("R-X").ref == "R-X"
        assert sleeps == [0.5, 1.0]

    def test_gives_up_after_attempts(self, coordinator, item_store, sleeps):
        item_store.add("X-1", ref="R-X")
        item_store.hide_for("R-X", 3)

        with pytest.raises(TransientError):
            coordinator.verify_visible("R-X")
        assert sleeps == [0.5, 1.0]
        assert item_store.count("get_by_ref") == 3

    def test_verification_failure_fails_step(self, coordinator, item_store, sleeps):
        item_store.fail_on("get_by_ref", "*", TransientError("not indexed yet"))

        result = coordinator.create_hierarchy(CreationPlan().add(COMPONENT, {"number": "C-9"}))

        assert result.success is False
        assert result.created_count == 1
        assert sleeps == [0.5, 1.0]


# =============================================================================
# ROLLBACK
# =============================================================================

class TestRollback:

    def test_strict_reverse_order(self, coordinator, item_store):
        result = coordinator.create_hierarchy(make_plan())
        created = [e.remote_ref for e in result.context]

        rollback = coordinator.rollback(result.context)

        assert rollback.success is True
        assert rollback.deleted_count == 4
        assert deleted_refs(item_store) == list(reversed(created))

    def test_continues_past_failed_delete(self, coordinator, item_store):
        result = coordinator.create_hierarchy(make_plan())
        c2_ref = result.context.ref_for("C-2")
        item_store.fail_on("delete", c2_ref)

        rollback = coordinator.rollback(result.context)

        assert rollback.success is False
        assert rollback.deleted_count == 3
        assert len(rollback.errors) == 1
        assert "C-2" in rollback.errors[0]
        assert deleted_refs(item_store)[-1] == result.context.ref_for("C-1")
        assert item_store.get_by_number("C-1").is_not_found

    def test_rolled_back_entities_become_placeholders(self, coordinator, history):
        result = coordinator.create_hierarchy(make_plan())

        coordinator.rollback(result.context)

        record = history.get_record("T-1")
        assert record.status is SyncStatus.PLACEHOLDER
        assert record.remote_ref == ""
        assert EventType.ROLLBACK in [e.event_type for e in history.timeline("T-1")]

    def test_partial_creation_rollback(self, coordinator, item_store):
        item_store.fail_on("create", "T-1")
        result = coordinator.create_hierarchy(make_plan())
        assert result.created_count == 3

        rollback = coordinator.rollback(result.context)

        assert rollback.deleted_count == 3
        assert deleted_refs(item_store) == [
            result.context.ref_for("G-1"),
            result.context.ref_for("C-2"),
            result.context.ref_for("C-1"),
        ]

    def test_empty_context(self, coordinator):
        rollback = coordinator.rollback(TransactionContext())
        assert rollback.success is True
        assert rollback.deleted_count == 0


class TestTransactionContext:

    def test_rollback_order_and_lookup(self):
        context = TransactionContext()
        context.add(COMPONENT, "C-1", "R1")
        context.add(GROUP, "G-1", "R2")

        assert [e.identity for e in context.rollback_order()] == ["G-1", "C-1"]
        assert context.ref_for("G-1") == "R2"
        assert context.ref_for("X") is None
        assert len(context) == 2
