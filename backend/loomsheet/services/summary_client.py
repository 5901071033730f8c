"""
Client for the external text-summary service

Sends the selected loom data with a report type and the fields of interest,
and returns the summary text the service writes back.
"""
import json
from typing import List, Optional

import requests

from loomsheet.core.config import settings
from loomsheet.exceptions import SummaryServiceError
from loomsheet.logging_config import get_logger
from loomsheet.schemas.roll import Roll

logger = get_logger(__name__)


class SummaryClient:
    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url if url is not None else settings.SUMMARY_API_URL
        self.api_key = api_key if api_key is not None else settings.SUMMARY_API_KEY
        self.timeout = timeout if timeout is not None else settings.SUMMARY_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def summarize(self, report_type: str, data_fields: List[str], rolls: List[Roll]) -> str:
        """
        Request a summary of `rolls`.

        Raises:
            SummaryServiceError: not configured, unreachable, or a bad response
        """
        if not self.is_configured:
            raise SummaryServiceError(
                "Summary service is not configured",
                error_code="SUMMARY_NOT_CONFIGURED",
                status_code=503,
            )

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {
            "reportType": report_type,
            "dataFields": data_fields,
            "loomData": json.dumps([roll.to_record() for roll in rolls]),
        }

        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            logger.error(f"Summary request failed: {e}", extra={"report_type": report_type})
            raise SummaryServiceError(
                "Summary service request failed",
                details={"reason": str(e)},
            ) from e
        except ValueError as e:
            raise SummaryServiceError("Summary service returned invalid JSON") from e

        summary = body.get("summary") if isinstance(body, dict) else None
        if not isinstance(summary, str):
            raise SummaryServiceError("Summary service response has no summary text")

        logger.info(
            "Summary generated",
            extra={"report_type": report_type, "roll_count": len(rolls)},
        )
        return summary


def get_summary_client() -> SummaryClient:
    return SummaryClient()
