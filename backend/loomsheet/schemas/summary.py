"""
Pydantic schemas for the loom-data text summary
"""
from typing import List, Optional

from pydantic import Field

from loomsheet.schemas.roll import CamelModel


class SummaryRequest(CamelModel):
    report_type: str = Field(..., min_length=1, description="e.g. trends, anomalies, comparisons")
    data_fields: List[str] = Field(..., min_length=1, description="e.g. width, mtrs, average")
    roll_ids: Optional[List[str]] = Field(None, description="Restrict the summary to these rolls")


class SummaryResponse(CamelModel):
    summary: str


class HistoryResponse(CamelModel):
    depth: int
    limit: int
