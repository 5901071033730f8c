"""
Work Orders API Endpoints
"""
from typing import List

from fastapi import APIRouter, Depends
import logging

from loomsheet.schemas.work_order import (
    InProgressWorkOrder,
    ProcessWorkOrderRequest,
    WorkOrder,
    WorkOrderCreate,
)
from loomsheet.services.production import ProductionService, get_production_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/create", response_model=WorkOrder, status_code=201)
async def create_work_order(
    request: WorkOrderCreate,
    service: ProductionService = Depends(get_production_service),
):
    """
    Open a work order

    Every child PID names one roll; the rolls must be sent for work order and
    each may appear only once. They move to InProgress.
    """
    work_order = service.create_work_order(request)
    logger.info(f"Created work order {work_order.parent_pid} for {work_order.customer_name}")
    return work_order


@router.get("/in-progress", response_model=List[InProgressWorkOrder])
async def list_in_progress(service: ProductionService = Depends(get_production_service)):
    """Work orders that still have rolls in progress, newest first"""
    return service.in_progress_work_orders()


@router.post("/{work_order_id}/children/{pid}/toggle", response_model=List[WorkOrder])
async def toggle_child(
    work_order_id: str,
    pid: str,
    service: ProductionService = Depends(get_production_service),
):
    """Flip a child PID's completed flag; unknown ids change nothing"""
    return service.toggle_child_completion(work_order_id, pid)


@router.post("/{work_order_id}/process")
async def process_work_order(
    work_order_id: str,
    request: ProcessWorkOrderRequest,
    service: ProductionService = Depends(get_production_service),
):
    """
    Close a work order

    `consumptionStates` maps each roll id to "full" or to the quantities
    taken. The rolls are consumed by "WO: <parent PID>" and the work order is
    removed.
    """
    _, remaining = service.process_work_order(work_order_id, request)
    logger.info(f"Processed work order {work_order_id}")
    return {
        "success": True,
        "workOrderId": work_order_id,
        "remainingWorkOrders": len(remaining),
    }
