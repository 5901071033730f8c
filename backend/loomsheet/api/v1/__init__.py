"""
API v1 Router - LoomSheet
"""
from fastapi import APIRouter
from loomsheet.api.v1.endpoints import (
    storage,
    rolls,
    work_orders,
    history,
    summary,
)

router = APIRouter()

# Whole-collection storage (loom-data, work-orders)
router.include_router(storage.router, tags=["storage"])

# Rolls
router.include_router(
    rolls.router,
    prefix="/rolls",
    tags=["rolls"]
)

# Work Orders
router.include_router(
    work_orders.router,
    prefix="/work-orders",
    tags=["work-orders"]
)

# Undo history
router.include_router(
    history.router,
    prefix="/history",
    tags=["history"]
)

# Text summary
router.include_router(
    summary.router,
    prefix="/summary",
    tags=["summary"]
)
