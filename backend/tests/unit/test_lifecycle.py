"""
Unit tests for roll status transitions
"""
import pytest

from loomsheet.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from loomsheet.schemas.roll import (
    BagProduction,
    ConsumedPart,
    ConsumptionData,
    RollCreate,
    RollImport,
    RollStatus,
)
from loomsheet.services import lifecycle


def new_roll_payload(**overrides) -> RollCreate:
    fields = {
        "serial_number": "R-NEW",
        "operator_name": "Ravi",
        "width": 0.5,
        "gram": 2000,
        "fabric_type": "Tube",
        "color": "Blue",
        "mtrs": 500,
        "gw": 550,
        "cw": 30,
    }
    fields.update(overrides)
    return RollCreate(**fields)


def by_id(rolls):
    return {roll.id: roll for roll in rolls}


class TestCreateRoll:
    """New rolls off the loom"""

    def test_create_computes_measurements(self):
        roll = lifecycle.create_roll(new_roll_payload(), tolerance=0.05)

        assert roll.id
        assert roll.status == RollStatus.READY_FOR_LAMINATION
        assert roll.nw == 520
        assert roll.average == 1040
        assert roll.variance_band == "UB: 1050.00 / LB: 950.00"
        assert roll.production_date.tzinfo is not None

    def test_ids_are_unique(self):
        first = lifecycle.create_roll(new_roll_payload())
        second = lifecycle.create_roll(new_roll_payload())

        assert first.id != second.id

    def test_imported_roll_keeps_status_and_date(self):
        row = RollImport(
            **new_roll_payload().model_dump(),
            production_date="2024-01-05T00:00:00",
            status=RollStatus.LAMINATED,
        )

        roll = lifecycle.build_imported_roll(row)

        assert roll.status == RollStatus.LAMINATED
        assert roll.production_date.year == 2024
        assert roll.production_date.tzinfo is not None

    def test_imported_roll_defaults_to_ready(self):
        row = RollImport(**new_roll_payload().model_dump(), production_date="2024-01-05T00:00:00")

        assert lifecycle.build_imported_roll(row).status == RollStatus.READY_FOR_LAMINATION


class TestLamination:
    """Sending rolls out and receiving them back"""

    def test_send_sets_status_and_call_out(self, make_roll):
        rolls = [make_roll(id="a"), make_roll(id="b")]

        updated = lifecycle.send_for_lamination(rolls, ["a"], "urgent")

        assert by_id(updated)["a"].status == RollStatus.SENT_FOR_LAMINATION
        assert by_id(updated)["a"].call_out == "urgent"
        assert by_id(updated)["b"].status == RollStatus.READY_FOR_LAMINATION
        assert rolls[0].status == RollStatus.READY_FOR_LAMINATION

    def test_resending_is_rejected(self, make_roll):
        rolls = lifecycle.send_for_lamination([make_roll(id="a")], ["a"], "urgent")

        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.send_for_lamination(rolls, ["a"], "urgent")

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["status"] == "SentForLamination"

    def test_rejection_changes_nothing(self, make_roll):
        rolls = [make_roll(id="a"), make_roll(id="b", status=RollStatus.LAMINATED)]

        with pytest.raises(InvalidTransitionError):
            lifecycle.send_for_lamination(rolls, ["a", "b"])

        assert by_id(rolls)["a"].status == RollStatus.READY_FOR_LAMINATION

    def test_unknown_roll(self, make_roll):
        with pytest.raises(NotFoundError) as exc_info:
            lifecycle.send_for_lamination([make_roll(id="a")], ["nope"])

        assert exc_info.value.details["roll_ids"] == ["nope"]

    def test_receive_marks_laminated(self, make_roll):
        rolls = [make_roll(id="a", status=RollStatus.SENT_FOR_LAMINATION)]

        updated = lifecycle.mark_received(rolls, ["a"])

        assert updated[0].status == RollStatus.LAMINATED
        assert updated[0].is_laminated is True

    def test_receive_single_roll_with_new_serial(self, make_roll):
        rolls = [make_roll(id="a", serial_number="R-1", status=RollStatus.SENT_FOR_LAMINATION)]

        updated = lifecycle.mark_received(rolls, ["a"], "R-1L", "LAM-77")

        assert updated[0].id == "a"
        assert updated[0].serial_number == "R-1L"
        assert updated[0].received_serial_number == "LAM-77"

    def test_new_serial_needs_single_roll(self, make_roll):
        rolls = [
            make_roll(id="a", status=RollStatus.SENT_FOR_LAMINATION),
            make_roll(id="b", status=RollStatus.SENT_FOR_LAMINATION),
        ]

        with pytest.raises(ValidationError):
            lifecycle.mark_received(rolls, ["a", "b"], "R-NEW")

    def test_collaborate_consumes_sources(self, make_roll):
        rolls = [
            make_roll(id="a", serial_number="R-1", status=RollStatus.SENT_FOR_LAMINATION),
            make_roll(id="b", serial_number="R-2", status=RollStatus.SENT_FOR_LAMINATION),
        ]

        updated, created = lifecycle.collaborate_and_create(rolls, ["a", "b"], new_roll_payload())

        assert by_id(updated)["a"].status == RollStatus.CONSUMED
        assert by_id(updated)["a"].consumed_by == "R-1, R-2"
        assert by_id(updated)["b"].consumed_by == "R-1, R-2"
        assert created.status == RollStatus.LAMINATED
        assert created.is_laminated is True
        assert len(updated) == 3

    def test_collaborate_needs_two_rolls(self, make_roll):
        rolls = [make_roll(id="a", status=RollStatus.SENT_FOR_LAMINATION)]

        with pytest.raises(ValidationError):
            lifecycle.collaborate_and_create(rolls, ["a"], new_roll_payload())


class TestConsumption:
    """Work-order hand-off and consumption"""

    def test_send_for_work_order_requires_laminated(self, make_roll):
        rolls = [make_roll(id="a")]

        with pytest.raises(InvalidTransitionError):
            lifecycle.send_for_work_order(rolls, ["a"])

        updated = lifecycle.send_for_work_order([make_roll(id="b", status=RollStatus.LAMINATED)], ["b"])
        assert updated[0].status == RollStatus.FOR_WORK_ORDER

    def test_mark_consumed_keeps_quantities(self, make_roll):
        rolls = [make_roll(id="a", status=RollStatus.LAMINATED)]

        updated = lifecycle.mark_consumed(
            rolls, ["a"],
            ConsumptionData(consumed_by="Acme", so_number="SO-1", po_number="PO-1"),
            BagProduction(no_of_bags=100),
        )

        roll = updated[0]
        assert roll.status == RollStatus.CONSUMED
        assert roll.consumed_by == "Acme"
        assert roll.so_number == "SO-1"
        assert roll.po_number == "PO-1"
        assert roll.bag_production.no_of_bags == 100
        assert roll.mtrs == 500

    def test_consumed_is_terminal(self, make_roll):
        rolls = [make_roll(id="a", status=RollStatus.CONSUMED)]

        with pytest.raises(InvalidTransitionError):
            lifecycle.mark_consumed(rolls, ["a"], ConsumptionData(consumed_by="Acme"))
        with pytest.raises(InvalidTransitionError):
            lifecycle.partial_consume(rolls, "a", ConsumedPart(mtrs=1))

    def test_in_progress_rolls_only_leave_through_their_work_order(self, make_roll):
        rolls = [make_roll(id="a", status=RollStatus.IN_PROGRESS)]

        with pytest.raises(InvalidTransitionError):
            lifecycle.mark_consumed(rolls, ["a"], ConsumptionData(consumed_by="Acme"))
        with pytest.raises(InvalidTransitionError):
            lifecycle.partial_consume(rolls, "a", ConsumedPart(mtrs=1))

    def test_partial_consume_appends_portion(self, make_roll):
        rolls = [make_roll(id="a"), make_roll(id="b")]

        updated, result = lifecycle.partial_consume(
            rolls, "a", ConsumedPart(mtrs=100, gw=110), ConsumptionData(consumed_by="Acme")
        )

        assert len(updated) == 3
        assert updated[0].mtrs == 400
        assert updated[-1].id == result.new_consumed_roll.id
        assert updated[-1].consumed_by == "Acme"

    def test_partially_consumed_can_be_split_again(self, make_roll):
        rolls = [make_roll(id="a", mtrs=400, gw=440, status=RollStatus.PARTIALLY_CONSUMED)]

        updated, _ = lifecycle.partial_consume(rolls, "a", ConsumedPart(mtrs=50, gw=55))

        assert updated[0].mtrs == 350
        assert updated[0].status == RollStatus.PARTIALLY_CONSUMED


class TestViews:
    """Dashboard filters"""

    def test_remaining_and_consumed_views(self, make_roll):
        rolls = [make_roll(id="a"), make_roll(id="b", status=RollStatus.CONSUMED)]

        assert [r.id for r in lifecycle.filter_rolls(rolls, view="remaining")] == ["a"]
        assert [r.id for r in lifecycle.filter_rolls(rolls, view="consumed")] == ["b"]

    def test_status_and_laminated_filters(self, make_roll):
        rolls = [
            make_roll(id="a", status=RollStatus.LAMINATED, is_laminated=True),
            make_roll(id="b"),
        ]

        assert [r.id for r in lifecycle.filter_rolls(rolls, status=RollStatus.LAMINATED)] == ["a"]
        assert [r.id for r in lifecycle.filter_rolls(rolls, laminated=False)] == ["b"]

    def test_bags_produced(self, make_roll):
        rolls = [
            make_roll(id="a", status=RollStatus.CONSUMED, bag_production=BagProduction(no_of_bags=5)),
            make_roll(id="b", status=RollStatus.CONSUMED),
            make_roll(id="c", bag_production=BagProduction(no_of_bags=5)),
        ]

        assert [r.id for r in lifecycle.bags_produced(rolls)] == ["a"]
