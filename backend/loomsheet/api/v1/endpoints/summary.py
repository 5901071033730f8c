"""
Text summary endpoint
"""
from fastapi import APIRouter, Depends

from loomsheet.schemas.summary import SummaryRequest, SummaryResponse
from loomsheet.services.lifecycle import find_rolls
from loomsheet.services.production import ProductionService, get_production_service
from loomsheet.services.summary_client import SummaryClient, get_summary_client

router = APIRouter()


@router.post("", response_model=SummaryResponse)
async def summarize(
    request: SummaryRequest,
    service: ProductionService = Depends(get_production_service),
    client: SummaryClient = Depends(get_summary_client),
):
    """
    Ask the summary service to describe the loom data

    - **reportType**: e.g. trends, anomalies, comparisons
    - **dataFields**: fields to focus on, e.g. width, mtrs, average
    - **rollIds**: optional subset of rolls; defaults to all of them
    """
    rolls = service.load_rolls()
    if request.roll_ids:
        rolls = find_rolls(rolls, request.roll_ids)
    summary = client.summarize(request.report_type, request.data_fields, rolls)
    return SummaryResponse(summary=summary)
