"""
Collection storage endpoints

The roll and work-order collections are read and written whole. These are the
endpoints the dashboard uses to load and save its tables.
"""
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, Depends
import logging

from loomsheet.services.production import ProductionService, get_production_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/loom-data")
async def get_loom_data(service: ProductionService = Depends(get_production_service)) -> List[Dict[str, Any]]:
    """The full roll collection"""
    return [roll.to_record() for roll in service.load_rolls()]


@router.post("/loom-data")
async def save_loom_data(
    records: List[Dict[str, Any]] = Body(...),
    service: ProductionService = Depends(get_production_service),
):
    """Overwrite the roll collection with the posted array"""
    rolls = service.replace_rolls(records)
    logger.info(f"Saved {len(rolls)} rolls")
    return {"success": True, "count": len(rolls)}


@router.get("/work-orders")
async def get_work_orders(service: ProductionService = Depends(get_production_service)) -> List[Dict[str, Any]]:
    """The full work-order collection"""
    return [wo.to_record() for wo in service.list_work_orders()]


@router.post("/work-orders")
async def save_work_orders(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
    service: ProductionService = Depends(get_production_service),
):
    """
    Save work orders

    An array replaces the whole collection; a single object is appended.
    """
    if isinstance(payload, list):
        work_orders = service.replace_work_orders(payload)
        return {"success": True, "count": len(work_orders)}

    work_order = service.append_work_order(payload)
    return {"success": True, "count": len(service.list_work_orders()), "id": work_order.id}
