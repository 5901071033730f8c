"""
Work Order Pydantic Schemas

A work order groups rolls for one customer under a parent PID; each roll is
tracked as a child PID with its own completion flag.
"""
from typing import Dict, List, Literal, Optional, Union

from pydantic import Field

from loomsheet.schemas.roll import BagProduction, CamelModel, ConsumedPart, Roll, UtcDatetime


class ChildPidCreate(CamelModel):
    pid: str = Field(..., min_length=1, description="Child PID")
    roll_id: str = Field(..., min_length=1)


class ChildPid(ChildPidCreate):
    roll_serial_number: Optional[str] = None
    completed: bool = False


class WorkOrderCreate(CamelModel):
    """Payload for opening a work order over ForWorkOrder rolls"""
    customer_name: str = Field(..., min_length=1)
    parent_pid: str = Field(..., min_length=1)
    child_pids: List[ChildPidCreate] = Field(..., min_length=1)


class WorkOrder(CamelModel):
    """A stored work order"""
    id: str
    customer_name: str = Field(..., min_length=1)
    parent_pid: str = Field(..., min_length=1)
    created_at: UtcDatetime
    child_pids: List[ChildPid] = Field(default_factory=list)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProcessWorkOrderRequest(CamelModel):
    """
    How each roll of a work order was consumed.

    `consumption_states` maps roll id to "full" or to the quantities taken
    from that roll.
    """
    consumption_states: Dict[str, Union[Literal["full"], ConsumedPart]] = Field(..., min_length=1)
    so_number: Optional[str] = None
    po_number: Optional[str] = None
    bag_production: Optional[BagProduction] = None


class WorkOrderRoll(Roll):
    """Roll as listed under an in-progress work order"""
    child_pid: str
    completed: bool = False


class InProgressWorkOrder(WorkOrder):
    rolls: List[WorkOrderRoll] = Field(default_factory=list)
