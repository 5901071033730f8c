"""
Roll Lifecycle

Status transitions for rolls:

    ReadyForLamination -> SentForLamination -> Laminated -> ForWorkOrder
        -> InProgress -> Consumed

with PartiallyConsumed reachable from any non-terminal state and Consumed as
the only terminal state. A roll that is InProgress belongs to an open work
order and is consumed only by processing that order.

Every function takes the full roll collection and returns a new list; the
input records are never modified. Multi-roll operations check every roll
before changing any, so a rejected call leaves the collection untouched.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from loomsheet.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from loomsheet.schemas.roll import (
    BagProduction,
    ConsumedPart,
    ConsumptionData,
    Roll,
    RollCreate,
    RollImport,
    RollStatus,
)
from loomsheet.services.measurement import with_measurements
from loomsheet.services.splitter import SplitResult, split_partial

NON_TERMINAL_STATUSES = frozenset(s for s in RollStatus if s != RollStatus.CONSUMED)
DIRECT_CONSUME_STATUSES = NON_TERMINAL_STATUSES - {RollStatus.IN_PROGRESS}

# Operation -> statuses a roll may be in for the operation to apply.
ALLOWED_FROM: Dict[str, frozenset] = {
    "send_for_lamination": frozenset({RollStatus.READY_FOR_LAMINATION}),
    "mark_received": frozenset({RollStatus.SENT_FOR_LAMINATION}),
    "collaborate_and_create": frozenset({RollStatus.SENT_FOR_LAMINATION}),
    "send_for_work_order": frozenset({RollStatus.LAMINATED}),
    "mark_consumed": DIRECT_CONSUME_STATUSES,
    "partial_consume": DIRECT_CONSUME_STATUSES,
    "create_work_order": frozenset({RollStatus.FOR_WORK_ORDER}),
    "process_work_order": frozenset({RollStatus.IN_PROGRESS}),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_roll_id() -> str:
    return uuid4().hex


def can_transition(status: RollStatus, operation: str) -> bool:
    return status in ALLOWED_FROM[operation]


def find_rolls(rolls: Iterable[Roll], roll_ids: Iterable[str]) -> List[Roll]:
    """
    Look up rolls by id, keeping the requested order and dropping repeats.

    Raises:
        NotFoundError: any id is unknown
    """
    by_id = {roll.id: roll for roll in rolls}
    wanted = list(dict.fromkeys(roll_ids))
    missing = [roll_id for roll_id in wanted if roll_id not in by_id]
    if missing:
        raise NotFoundError(
            f"Roll(s) not found: {', '.join(missing)}",
            details={"roll_ids": missing},
        )
    return [by_id[roll_id] for roll_id in wanted]


def require_status(roll: Roll, operation: str) -> None:
    if not can_transition(roll.status, operation):
        allowed = sorted(s.value for s in ALLOWED_FROM[operation])
        raise InvalidTransitionError(
            f"Roll {roll.serial_number} is {roll.status.value}; cannot {operation.replace('_', ' ')}",
            details={
                "roll_id": roll.id,
                "status": roll.status.value,
                "operation": operation,
                "allowed_from": allowed,
            },
        )


def checked_rolls(rolls: List[Roll], roll_ids: Iterable[str], operation: str) -> List[Roll]:
    targets = find_rolls(rolls, roll_ids)
    for roll in targets:
        require_status(roll, operation)
    return targets


def apply_updates(rolls: List[Roll], updated: Iterable[Roll]) -> List[Roll]:
    replacements = {roll.id: roll for roll in updated}
    return [replacements.get(roll.id, roll) for roll in rolls]


# ============================================================================
# Creation
# ============================================================================

def create_roll(data: RollCreate, tolerance: Optional[float] = None) -> Roll:
    """New roll off the loom, ready for lamination."""
    roll = Roll(
        **data.model_dump(),
        id=new_roll_id(),
        status=RollStatus.READY_FOR_LAMINATION,
        production_date=utcnow(),
    )
    return with_measurements(roll, tolerance)


def build_imported_roll(row: RollImport, tolerance: Optional[float] = None) -> Roll:
    """Roll from a spreadsheet row; keeps the row's date and status if given."""
    fields = row.model_dump()
    fields["status"] = row.status or RollStatus.READY_FOR_LAMINATION
    roll = Roll(**fields, id=new_roll_id())
    return with_measurements(roll, tolerance)


# ============================================================================
# Transitions
# ============================================================================

def send_for_lamination(rolls: List[Roll], roll_ids: List[str], call_out: str = "") -> List[Roll]:
    """ReadyForLamination -> SentForLamination, recording the call-out note."""
    targets = checked_rolls(rolls, roll_ids, "send_for_lamination")
    return apply_updates(rolls, (
        roll.model_copy(update={"status": RollStatus.SENT_FOR_LAMINATION, "call_out": call_out})
        for roll in targets
    ))


def mark_received(
    rolls: List[Roll],
    roll_ids: List[str],
    new_serial_number: Optional[str] = None,
    received_serial_number: Optional[str] = None,
) -> List[Roll]:
    """
    SentForLamination -> Laminated.

    A single roll may be renamed on receipt: `new_serial_number` replaces the
    serial and `received_serial_number` records the laminator's tag.
    """
    renaming = bool(new_serial_number or received_serial_number)
    if renaming and len(set(roll_ids)) != 1:
        raise ValidationError(
            "Serial numbers can only be assigned when receiving a single roll",
            details={"roll_ids": list(roll_ids)},
        )

    targets = checked_rolls(rolls, roll_ids, "mark_received")
    updated = []
    for roll in targets:
        update = {"status": RollStatus.LAMINATED, "is_laminated": True}
        if new_serial_number:
            update["serial_number"] = new_serial_number
        if received_serial_number:
            update["received_serial_number"] = received_serial_number
        updated.append(roll.model_copy(update=update))
    return apply_updates(rolls, updated)


def collaborate_and_create(
    rolls: List[Roll],
    roll_ids: List[str],
    new_roll: RollCreate,
    tolerance: Optional[float] = None,
) -> Tuple[List[Roll], Roll]:
    """
    Merge several rolls back from lamination into one new laminated roll.

    The source rolls become Consumed with consumed_by set to their joined
    serial numbers.
    """
    if len(set(roll_ids)) < 2:
        raise ValidationError(
            "Select at least two rolls to combine into a new roll",
            details={"roll_ids": list(roll_ids)},
        )
    targets = checked_rolls(rolls, roll_ids, "collaborate_and_create")

    source_serials = ", ".join(roll.serial_number for roll in targets)
    consumed = [
        roll.model_copy(update={"status": RollStatus.CONSUMED, "consumed_by": source_serials})
        for roll in targets
    ]

    created = create_roll(new_roll, tolerance).model_copy(update={
        "status": RollStatus.LAMINATED,
        "is_laminated": True,
    })
    return apply_updates(rolls, consumed) + [created], created


def send_for_work_order(rolls: List[Roll], roll_ids: List[str]) -> List[Roll]:
    """Laminated -> ForWorkOrder."""
    targets = checked_rolls(rolls, roll_ids, "send_for_work_order")
    return apply_updates(rolls, (
        roll.model_copy(update={"status": RollStatus.FOR_WORK_ORDER})
        for roll in targets
    ))


def mark_consumed(
    rolls: List[Roll],
    roll_ids: List[str],
    consumption: ConsumptionData,
    bag: Optional[BagProduction] = None,
) -> List[Roll]:
    """
    Fully consume rolls.

    Quantities are kept as recorded; only a partial split closing out a roll
    zeroes them.
    """
    targets = checked_rolls(rolls, roll_ids, "mark_consumed")
    update = {
        "status": RollStatus.CONSUMED,
        "consumed_by": consumption.consumed_by,
        "so_number": consumption.so_number,
        "po_number": consumption.po_number,
    }
    if bag is not None:
        update["bag_production"] = bag
    return apply_updates(rolls, (roll.model_copy(update=update) for roll in targets))


def partial_consume(
    rolls: List[Roll],
    roll_id: str,
    consumed_part: ConsumedPart,
    consumption: Optional[ConsumptionData] = None,
    bag: Optional[BagProduction] = None,
    tolerance: Optional[float] = None,
) -> Tuple[List[Roll], SplitResult]:
    """Split part of one roll off; the consumed portion is appended as a new record."""
    (original,) = checked_rolls(rolls, [roll_id], "partial_consume")
    result = split_partial(original, consumed_part, consumption, bag, tolerance)
    return apply_updates(rolls, [result.updated_remainder]) + [result.new_consumed_roll], result


# ============================================================================
# Views
# ============================================================================

def filter_rolls(
    rolls: Iterable[Roll],
    status: Optional[RollStatus] = None,
    laminated: Optional[bool] = None,
    view: Optional[str] = None,
) -> List[Roll]:
    """
    Filter for the dashboard tables.

    view="remaining" hides consumed rolls, view="consumed" shows only them.
    """
    result = []
    for roll in rolls:
        if view == "remaining" and roll.is_consumed:
            continue
        if view == "consumed" and not roll.is_consumed:
            continue
        if status is not None and roll.status != status:
            continue
        if laminated is not None and roll.is_laminated != laminated:
            continue
        result.append(roll)
    return result


def bags_produced(rolls: Iterable[Roll]) -> List[Roll]:
    """Consumed rolls that recorded bag output."""
    return [roll for roll in rolls if roll.is_consumed and roll.bag_production is not None]
