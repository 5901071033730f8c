"""
Work-Order Grouping

Opens work orders over rolls sent for work order, tracks per-child completion,
and resolves a work order once its rolls have been consumed.
"""
from typing import Dict, List, Optional, Tuple, Union
from uuid import uuid4

from loomsheet.exceptions import DuplicateRollError, NotFoundError, ValidationError
from loomsheet.schemas.roll import (
    BagProduction,
    ConsumedPart,
    ConsumptionData,
    Roll,
    RollStatus,
)
from loomsheet.schemas.work_order import (
    ChildPid,
    ChildPidCreate,
    InProgressWorkOrder,
    WorkOrder,
    WorkOrderRoll,
)
from loomsheet.services.lifecycle import (
    apply_updates,
    checked_rolls,
    find_rolls,
    require_status,
    utcnow,
)
from loomsheet.services.splitter import split_partial

ConsumptionState = Union[str, ConsumedPart]


def check_unique_rolls(child_pids: List[ChildPidCreate]) -> None:
    """Raise DuplicateRollError if a roll is claimed by two child PIDs."""
    seen = set()
    duplicates = []
    for child in child_pids:
        if child.roll_id in seen and child.roll_id not in duplicates:
            duplicates.append(child.roll_id)
        seen.add(child.roll_id)
    if duplicates:
        raise DuplicateRollError(
            "The same roll cannot be used for multiple child PIDs",
            details={"roll_ids": duplicates},
        )


def create_work_order(
    rolls: List[Roll],
    customer_name: str,
    parent_pid: str,
    child_pids: List[ChildPidCreate],
) -> Tuple[List[Roll], WorkOrder]:
    """
    Open a work order; every referenced roll moves ForWorkOrder -> InProgress.

    Raises:
        ValidationError: no child PIDs given
        DuplicateRollError: a roll appears twice
        NotFoundError: a referenced roll does not exist
        InvalidTransitionError: a referenced roll is not ForWorkOrder
    """
    if not child_pids:
        raise ValidationError("At least one child PID is required")
    check_unique_rolls(child_pids)

    targets = checked_rolls(rolls, [child.roll_id for child in child_pids], "create_work_order")
    serials = {roll.id: roll.serial_number for roll in targets}

    work_order = WorkOrder(
        id=f"wo-{uuid4().hex}",
        customer_name=customer_name,
        parent_pid=parent_pid,
        created_at=utcnow(),
        child_pids=[
            ChildPid(
                pid=child.pid,
                roll_id=child.roll_id,
                roll_serial_number=serials[child.roll_id],
                completed=False,
            )
            for child in child_pids
        ],
    )
    updated = apply_updates(rolls, (
        roll.model_copy(update={"status": RollStatus.IN_PROGRESS})
        for roll in targets
    ))
    return updated, work_order


def toggle_child_completion(
    work_orders: List[WorkOrder],
    work_order_id: str,
    pid: str,
) -> List[WorkOrder]:
    """Flip `completed` on one child PID. Unknown ids leave the list as it was."""
    result = []
    for work_order in work_orders:
        if work_order.id == work_order_id:
            children = [
                child.model_copy(update={"completed": not child.completed}) if child.pid == pid else child
                for child in work_order.child_pids
            ]
            work_order = work_order.model_copy(update={"child_pids": children})
        result.append(work_order)
    return result


def find_work_order(work_orders: List[WorkOrder], work_order_id: str) -> WorkOrder:
    for work_order in work_orders:
        if work_order.id == work_order_id:
            return work_order
    raise NotFoundError(
        f"Work order {work_order_id} not found",
        details={"work_order_id": work_order_id},
    )


def process_work_order(
    rolls: List[Roll],
    work_orders: List[WorkOrder],
    work_order_id: str,
    consumption_states: Dict[str, ConsumptionState],
    so_number: Optional[str] = None,
    po_number: Optional[str] = None,
    bag: Optional[BagProduction] = None,
    tolerance: Optional[float] = None,
) -> Tuple[List[Roll], List[WorkOrder]]:
    """
    Record how each roll of a work order was consumed and close the order.

    "full" consumes the roll as is; a ConsumedPart splits that much off. The
    consumer is recorded as "WO: <parent PID>". Rolls must belong to the work
    order and still be InProgress; all of them are checked before any change.
    """
    work_order = find_work_order(work_orders, work_order_id)
    member_ids = {child.roll_id for child in work_order.child_pids}
    strangers = [roll_id for roll_id in consumption_states if roll_id not in member_ids]
    if strangers:
        raise ValidationError(
            f"Roll(s) not part of work order {work_order.parent_pid}",
            details={"roll_ids": strangers},
        )

    consumption = ConsumptionData(
        consumed_by=f"WO: {work_order.parent_pid}",
        so_number=so_number,
        po_number=po_number,
    )

    targets = find_rolls(rolls, consumption_states)
    for roll in targets:
        require_status(roll, "process_work_order")

    # Run every split first so a quantity error aborts before anything changes.
    updated: List[Roll] = []
    created: List[Roll] = []
    for roll in targets:
        state = consumption_states[roll.id]
        if isinstance(state, ConsumedPart):
            result = split_partial(roll, state, consumption, bag, tolerance)
            updated.append(result.updated_remainder)
            created.append(result.new_consumed_roll)
        elif state == "full":
            update = {
                "status": RollStatus.CONSUMED,
                "consumed_by": consumption.consumed_by,
                "so_number": so_number,
                "po_number": po_number,
            }
            if bag is not None:
                update["bag_production"] = bag
            updated.append(roll.model_copy(update=update))
        else:
            raise ValidationError(
                f"Unknown consumption state for roll {roll.id}: {state!r}",
                details={"roll_id": roll.id},
            )

    remaining_orders = [wo for wo in work_orders if wo.id != work_order_id]
    return apply_updates(rolls, updated) + created, remaining_orders


def in_progress_work_orders(
    rolls: List[Roll],
    work_orders: List[WorkOrder],
) -> List[InProgressWorkOrder]:
    """Work orders with at least one roll still InProgress, newest first."""
    by_id = {roll.id: roll for roll in rolls}
    result = []
    for work_order in work_orders:
        members = []
        for child in work_order.child_pids:
            roll = by_id.get(child.roll_id)
            if roll is None or roll.status != RollStatus.IN_PROGRESS:
                continue
            members.append(WorkOrderRoll(
                **roll.model_dump(),
                child_pid=child.pid,
                completed=child.completed,
            ))
        if members:
            result.append(InProgressWorkOrder(**work_order.model_dump(), rolls=members))
    result.sort(key=lambda wo: wo.created_at, reverse=True)
    return result
