"""
LoomSheet - Exception hierarchy

Every error raised by the service layer derives from LoomSheetException so the
API can render it uniformly (see the handlers in loomsheet.main).
"""
from typing import Any, Dict, Optional


class LoomSheetException(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    error_code: str = "LOOMSHEET_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LoomSheetException):
    """Input would break a business rule; nothing was changed."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class DuplicateRollError(ValidationError):
    """The same roll was claimed twice by one work order."""

    error_code = "DUPLICATE_ROLL"


class InvalidTransitionError(ValidationError):
    """A roll is not in a status that allows the requested operation."""

    status_code = 409
    error_code = "INVALID_TRANSITION"


class NotFoundError(LoomSheetException):
    """A roll or work order id does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class StorageError(LoomSheetException):
    """Reading or writing a JSON collection failed."""

    status_code = 500
    error_code = "STORAGE_ERROR"


class SummaryServiceError(LoomSheetException):
    """The text-summary service failed or is not configured."""

    status_code = 502
    error_code = "SUMMARY_SERVICE_ERROR"
