"""
Unit tests for work-order grouping
"""
from datetime import datetime, timezone

import pytest

from loomsheet.exceptions import (
    DuplicateRollError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from loomsheet.schemas.roll import ConsumedPart, RollStatus
from loomsheet.schemas.work_order import ChildPidCreate, WorkOrder
from loomsheet.services import work_orders


@pytest.fixture
def ready_rolls(make_roll):
    return [
        make_roll(id="a", serial_number="R-A", status=RollStatus.FOR_WORK_ORDER),
        make_roll(id="b", serial_number="R-B", status=RollStatus.FOR_WORK_ORDER),
        make_roll(id="c", serial_number="R-C", status=RollStatus.LAMINATED),
    ]


def open_order(rolls, roll_ids=("a", "b")):
    children = [ChildPidCreate(pid=f"C{i}", roll_id=roll_id) for i, roll_id in enumerate(roll_ids, 1)]
    return work_orders.create_work_order(rolls, "Acme", "P-100", children)


class TestCreateWorkOrder:
    """Opening a work order"""

    def test_rolls_move_to_in_progress(self, ready_rolls):
        rolls, work_order = open_order(ready_rolls)

        statuses = {roll.id: roll.status for roll in rolls}
        assert statuses == {
            "a": RollStatus.IN_PROGRESS,
            "b": RollStatus.IN_PROGRESS,
            "c": RollStatus.LAMINATED,
        }
        assert work_order.id.startswith("wo-")
        assert work_order.customer_name == "Acme"
        assert [child.roll_serial_number for child in work_order.child_pids] == ["R-A", "R-B"]
        assert not any(child.completed for child in work_order.child_pids)

    def test_duplicate_roll_rejected(self, ready_rolls):
        with pytest.raises(DuplicateRollError) as exc_info:
            open_order(ready_rolls, roll_ids=("a", "a"))

        assert exc_info.value.details["roll_ids"] == ["a"]
        assert exc_info.value.status_code == 422

    def test_roll_must_be_for_work_order(self, ready_rolls):
        with pytest.raises(InvalidTransitionError):
            open_order(ready_rolls, roll_ids=("a", "c"))

    def test_unknown_roll(self, ready_rolls):
        with pytest.raises(NotFoundError):
            open_order(ready_rolls, roll_ids=("a", "zzz"))

    def test_needs_children(self, ready_rolls):
        with pytest.raises(ValidationError):
            work_orders.create_work_order(ready_rolls, "Acme", "P-100", [])


class TestToggleChild:
    """Per-child completion flag"""

    def test_toggle_flips_flag(self, ready_rolls):
        _, work_order = open_order(ready_rolls)

        once = work_orders.toggle_child_completion([work_order], work_order.id, "C1")
        twice = work_orders.toggle_child_completion(once, work_order.id, "C1")

        assert once[0].child_pids[0].completed is True
        assert once[0].child_pids[1].completed is False
        assert twice[0].child_pids[0].completed is False

    def test_unknown_ids_are_ignored(self, ready_rolls):
        _, work_order = open_order(ready_rolls)

        assert work_orders.toggle_child_completion([work_order], "wo-missing", "C1") == [work_order]
        assert work_orders.toggle_child_completion([work_order], work_order.id, "C9") == [work_order]


class TestProcessWorkOrder:
    """Closing a work order"""

    def test_full_and_partial(self, ready_rolls):
        rolls, work_order = open_order(ready_rolls)

        updated, remaining = work_orders.process_work_order(
            rolls, [work_order], work_order.id,
            {"a": "full", "b": ConsumedPart(mtrs=100, gw=110)},
            so_number="SO-9",
        )

        by_id = {roll.id: roll for roll in updated}
        assert remaining == []
        assert by_id["a"].status == RollStatus.CONSUMED
        assert by_id["a"].consumed_by == "WO: P-100"
        assert by_id["a"].so_number == "SO-9"
        assert by_id["b"].status == RollStatus.PARTIALLY_CONSUMED
        assert by_id["b"].mtrs == 400
        assert len(updated) == 4
        assert updated[-1].consumed_by == "WO: P-100"
        assert updated[-1].mtrs == 100

    def test_roll_outside_order_rejected(self, ready_rolls):
        rolls, work_order = open_order(ready_rolls, roll_ids=("a",))

        with pytest.raises(ValidationError):
            work_orders.process_work_order(rolls, [work_order], work_order.id, {"b": "full"})

    def test_unknown_work_order(self, ready_rolls):
        with pytest.raises(NotFoundError):
            work_orders.process_work_order(ready_rolls, [], "wo-x", {"a": "full"})

    def test_over_consumption_changes_nothing(self, ready_rolls):
        rolls, work_order = open_order(ready_rolls)

        with pytest.raises(ValidationError):
            work_orders.process_work_order(
                rolls, [work_order], work_order.id,
                {"a": "full", "b": ConsumedPart(mtrs=9999)},
            )

        assert all(roll.status != RollStatus.CONSUMED for roll in rolls)


class TestInProgressWorkOrders:
    """Work orders still being worked"""

    def test_newest_first_with_rolls(self, ready_rolls):
        rolls, first = open_order(ready_rolls, roll_ids=("a",))
        rolls, second = open_order(rolls, roll_ids=("b",))
        first = first.model_copy(update={"created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)})
        second = second.model_copy(update={"created_at": datetime(2024, 2, 1, tzinfo=timezone.utc)})

        result = work_orders.in_progress_work_orders(rolls, [first, second])

        assert [wo.id for wo in result] == [second.id, first.id]
        assert result[0].rolls[0].id == "b"
        assert result[0].rolls[0].child_pid == "C1"

    def test_orders_without_in_progress_rolls_hidden(self, make_roll):
        rolls = [make_roll(id="a", status=RollStatus.CONSUMED)]
        work_order = WorkOrder(
            id="wo-1",
            customer_name="Acme",
            parent_pid="P-1",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            child_pids=[{"pid": "C1", "roll_id": "a"}],
        )

        assert work_orders.in_progress_work_orders(rolls, [work_order]) == []
