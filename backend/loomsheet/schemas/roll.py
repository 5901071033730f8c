"""
Roll Pydantic Schemas

A roll is one physical fabric roll off a loom, or the split-off portion of one.
Records travel as camelCase JSON (the on-disk format of the loom-data
collection) and are exposed to Python code with snake_case attributes.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# Enums
# ============================================================================

class RollStatus(str, Enum):
    """Processing state of a roll"""
    READY_FOR_LAMINATION = "ReadyForLamination"
    SENT_FOR_LAMINATION = "SentForLamination"
    LAMINATED = "Laminated"
    FOR_WORK_ORDER = "ForWorkOrder"
    IN_PROGRESS = "InProgress"
    PARTIALLY_CONSUMED = "PartiallyConsumed"
    CONSUMED = "Consumed"


class FabricType(str, Enum):
    SLIT = "Slit"
    TUBE = "Tube"


class RollColor(str, Enum):
    NATURAL = "Natural"
    RED = "Red"
    BLUE = "Blue"
    GREEN = "Green"
    YELLOW = "Yellow"
    ORANGE = "Orange"
    BLACK = "Black"
    WHITE = "White"


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so stored dates always compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


# ============================================================================
# Metadata attached on consumption
# ============================================================================

class BagProduction(CamelModel):
    """Bag output recorded when a roll is consumed by the bag line"""
    no_of_bags: Optional[int] = Field(None, ge=0)
    avg_bag_weight: Optional[float] = Field(None, ge=0)
    bag_size: Optional[str] = None


class ConsumptionData(CamelModel):
    """Who consumed a roll and against which orders"""
    consumed_by: str = Field(..., min_length=1, description="Consumer or customer name")
    so_number: Optional[str] = None
    po_number: Optional[str] = None


class ConsumedPart(CamelModel):
    """Quantities taken off a roll in a partial consumption"""
    mtrs: float = Field(0, ge=0)
    gw: float = Field(0, ge=0)
    cw: float = Field(0, ge=0)

    @model_validator(mode="after")
    def takes_something(self):
        if self.mtrs <= 0 and self.gw <= 0:
            raise ValueError("A consumed part needs a positive mtrs or gw")
        return self


# ============================================================================
# Roll Schemas
# ============================================================================

class RollBase(CamelModel):
    """Descriptive and measured fields shared by every roll shape"""
    serial_number: str = Field(..., min_length=1, description="Roll number printed on the tag")
    operator_name: str = Field(..., min_length=1)
    loom_no: Optional[str] = None
    width: Optional[float] = Field(None, gt=0)
    gram: Optional[float] = Field(None, gt=0, description="Grams per square metre")
    fabric_type: Optional[FabricType] = None
    color: Optional[RollColor] = None
    is_laminated: bool = False

    mtrs: float = Field(0, ge=0)
    gw: float = Field(0, ge=0, description="Gross weight")
    cw: float = Field(0, ge=0, description="Core weight")


class RollCreate(RollBase):
    """Entry-form payload for a new roll off the loom"""
    fabric_type: FabricType
    color: RollColor
    mtrs: float = Field(..., gt=0)
    gw: float = Field(..., gt=0)
    cw: float = Field(..., gt=0)


class RollImport(RollBase):
    """One spreadsheet row; status and production date may be supplied"""
    fabric_type: FabricType
    color: RollColor
    production_date: UtcDatetime
    status: Optional[RollStatus] = None
    consumed_by: Optional[str] = None
    so_number: Optional[str] = None
    po_number: Optional[str] = None
    call_out: Optional[str] = None


class Roll(RollBase):
    """A stored roll record"""
    id: str
    nw: float = Field(0, ge=0, description="Net weight, gw - cw")
    average: float = Field(0, ge=0, description="Grams per metre")
    variance_band: str = "N/A"
    status: RollStatus = RollStatus.READY_FOR_LAMINATION
    production_date: UtcDatetime

    consumed_by: Optional[str] = None
    so_number: Optional[str] = None
    po_number: Optional[str] = None
    call_out: Optional[str] = None
    received_serial_number: Optional[str] = None
    bag_production: Optional[BagProduction] = None

    @property
    def is_consumed(self) -> bool:
        return self.status == RollStatus.CONSUMED

    def to_record(self) -> dict:
        """JSON-ready dict in the on-disk format"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RollResponse(Roll):
    """Roll with the band check the entry form shows"""
    average_in_band: Optional[bool] = None


# ============================================================================
# Operation Requests
# ============================================================================

class RollIdsRequest(CamelModel):
    roll_ids: List[str] = Field(..., min_length=1)


class SendForLaminationRequest(RollIdsRequest):
    call_out: str = Field("", description="Dispatch note sent with the rolls")


class ReceiveFromLaminationRequest(RollIdsRequest):
    """Receive rolls back; serial numbers only apply to a single roll"""
    new_serial_number: Optional[str] = None
    received_serial_number: Optional[str] = None


class CollaborateRequest(RollIdsRequest):
    """Merge several laminated rolls into one new roll"""
    new_roll: RollCreate


class ConsumeRequest(RollIdsRequest):
    consumption: ConsumptionData
    bag_production: Optional[BagProduction] = None


class PartialConsumeRequest(CamelModel):
    consumed_part: ConsumedPart
    consumption: ConsumptionData
    bag_production: Optional[BagProduction] = None


class PartialConsumeResponse(CamelModel):
    updated_remainder: Roll
    new_consumed_roll: Roll


class ImportResponse(CamelModel):
    imported: int
    roll_ids: List[str]


class DispatchNoteRequest(RollIdsRequest):
    call_out: Optional[str] = Field(None, description="Overrides the call-out stored on the rolls")
