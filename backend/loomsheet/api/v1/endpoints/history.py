"""
Undo history endpoints
"""
from fastapi import APIRouter, Depends

from loomsheet.schemas.summary import HistoryResponse
from loomsheet.services.production import ProductionService, get_production_service

router = APIRouter()


def _state(service: ProductionService) -> HistoryResponse:
    return HistoryResponse(depth=len(service.history), limit=service.history.limit)


@router.get("", response_model=HistoryResponse)
async def get_history(service: ProductionService = Depends(get_production_service)):
    """How many changes can be undone"""
    return _state(service)


@router.post("/undo", response_model=HistoryResponse)
async def undo(service: ProductionService = Depends(get_production_service)):
    """Restore rolls and work orders to their state before the last change"""
    service.undo()
    return _state(service)
