"""
Rolls API Endpoints - entry, lamination round trip, consumption and exports
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
import logging

from loomsheet.schemas.roll import (
    CollaborateRequest,
    ConsumeRequest,
    DispatchNoteRequest,
    ImportResponse,
    PartialConsumeRequest,
    PartialConsumeResponse,
    ReceiveFromLaminationRequest,
    Roll,
    RollCreate,
    RollIdsRequest,
    RollResponse,
    RollStatus,
    SendForLaminationRequest,
)
from loomsheet.services.dispatch_note import build_dispatch_note
from loomsheet.services.lifecycle import find_rolls
from loomsheet.services.measurement import average_in_band
from loomsheet.services.production import ProductionService, get_production_service
from loomsheet.services.spreadsheet import read_rolls_workbook, write_rolls_workbook

router = APIRouter()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def to_response(roll: Roll, tolerance: float) -> RollResponse:
    return RollResponse(
        **roll.model_dump(),
        average_in_band=average_in_band(roll.average, roll.width, roll.gram, tolerance),
    )


def to_responses(rolls: List[Roll], service: ProductionService) -> List[RollResponse]:
    return [to_response(roll, service.tolerance) for roll in rolls]


# ============================================================================
# Listing
# ============================================================================

@router.get("", response_model=List[RollResponse])
async def list_rolls(
    status: Optional[RollStatus] = None,
    laminated: Optional[bool] = None,
    view: Optional[Literal["remaining", "consumed"]] = Query(
        None, description="remaining hides consumed rolls; consumed shows only them"
    ),
    service: ProductionService = Depends(get_production_service),
):
    """
    List rolls

    - **status**: Only rolls in this status
    - **laminated**: Filter on the laminated flag
    - **view**: "remaining" or "consumed"
    """
    rolls = service.list_rolls(status=status, laminated=laminated, view=view)
    return to_responses(rolls, service)


@router.get("/bags-produced", response_model=List[RollResponse])
async def list_bags_produced(service: ProductionService = Depends(get_production_service)):
    """Consumed rolls that recorded bag output"""
    return to_responses(service.bags_produced(), service)


@router.get("/export")
async def export_rolls(
    view: Optional[Literal["remaining", "consumed"]] = None,
    service: ProductionService = Depends(get_production_service),
):
    """Download rolls as an .xlsx workbook"""
    content = write_rolls_workbook(service.list_rolls(view=view))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="loom-data.xlsx"'},
    )


# ============================================================================
# Entry
# ============================================================================

@router.post("", response_model=RollResponse, status_code=201)
async def create_roll(
    request: RollCreate,
    service: ProductionService = Depends(get_production_service),
):
    """Record a new roll off the loom; derived measurements are computed here"""
    roll = service.create_roll(request)
    logger.info(f"Created roll {roll.serial_number}")
    return to_response(roll, service.tolerance)


@router.post("/import", response_model=ImportResponse, status_code=201)
async def import_rolls(
    file: UploadFile = File(...),
    service: ProductionService = Depends(get_production_service),
):
    """
    Import rolls from an .xlsx workbook

    The first sheet's header row names the fields. If any row is invalid the
    whole import is rejected and every bad row is reported.
    """
    content = await file.read()
    rows = read_rolls_workbook(content)
    imported = service.import_rolls(rows)
    logger.info(f"Imported {len(imported)} rolls from {file.filename}")
    return ImportResponse(imported=len(imported), roll_ids=[roll.id for roll in imported])


# ============================================================================
# Lamination
# ============================================================================

@router.post("/send-for-lamination", response_model=List[RollResponse])
async def send_for_lamination(
    request: SendForLaminationRequest,
    service: ProductionService = Depends(get_production_service),
):
    rolls = service.send_for_lamination(request.roll_ids, request.call_out)
    return to_responses(rolls, service)


@router.post("/receive", response_model=List[RollResponse])
async def receive_from_lamination(
    request: ReceiveFromLaminationRequest,
    service: ProductionService = Depends(get_production_service),
):
    """
    Mark rolls received back from lamination

    A new serial number (and the laminator's received serial) may only be
    given when receiving a single roll.
    """
    rolls = service.mark_received(
        request.roll_ids,
        new_serial_number=request.new_serial_number,
        received_serial_number=request.received_serial_number,
    )
    return to_responses(rolls, service)


@router.post("/collaborate", response_model=RollResponse, status_code=201)
async def collaborate_rolls(
    request: CollaborateRequest,
    service: ProductionService = Depends(get_production_service),
):
    """Combine two or more rolls sent for lamination into one new laminated roll"""
    created = service.collaborate_and_create(request.roll_ids, request.new_roll)
    return to_response(created, service.tolerance)


@router.post("/dispatch-note")
async def dispatch_note(
    request: DispatchNoteRequest,
    service: ProductionService = Depends(get_production_service),
):
    """Printable PDF listing the selected rolls"""
    rolls = find_rolls(service.load_rolls(), request.roll_ids)
    content = build_dispatch_note(rolls, call_out=request.call_out)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="dispatch-note.pdf"'},
    )


# ============================================================================
# Work order hand-off and consumption
# ============================================================================

@router.post("/send-for-work-order", response_model=List[RollResponse])
async def send_for_work_order(
    request: RollIdsRequest,
    service: ProductionService = Depends(get_production_service),
):
    rolls = service.send_for_work_order(request.roll_ids)
    return to_responses(rolls, service)


@router.post("/consume", response_model=List[RollResponse])
async def consume_rolls(
    request: ConsumeRequest,
    service: ProductionService = Depends(get_production_service),
):
    """Fully consume rolls, recording consumer, order numbers and bag output"""
    rolls = service.mark_consumed(request.roll_ids, request.consumption, request.bag_production)
    return to_responses(rolls, service)


@router.post("/{roll_id}/partial-consume", response_model=PartialConsumeResponse)
async def partial_consume(
    roll_id: str,
    request: PartialConsumeRequest,
    service: ProductionService = Depends(get_production_service),
):
    """
    Split a consumed portion off a roll

    The roll keeps the remainder (PartiallyConsumed, or Consumed once nothing
    is left) and the portion becomes a new Consumed roll.
    """
    result = service.partial_consume(
        roll_id,
        request.consumed_part,
        request.consumption,
        request.bag_production,
    )
    return PartialConsumeResponse(
        updated_remainder=result.updated_remainder,
        new_consumed_roll=result.new_consumed_roll,
    )
