"""
LoomSheet - Logging

Application logs go to stdout (and optionally a rotating file) as JSON lines
or plain text. Changes to the roll and work-order collections are also
written to a separate "audit" logger, one JSON object per change.

Usage:
    from loomsheet.logging_config import get_logger, audit_log

    logger = get_logger(__name__)
    logger.info("Rolls loaded", extra={"count": 12})

    audit_log("ROLL_CREATED", operator="Ravi", resource_type="roll", resource_id="a1b2")
"""
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loomsheet.core.settings import settings

AUDIT_LOGGER = "audit"

# Attributes every LogRecord carries; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}

# Which collection file an audit resource type lives in.
_COLLECTIONS = {"roll": settings.ROLLS_FILE, "work_order": settings.WORK_ORDERS_FILE}


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through `extra=`, made JSON safe."""
    fields = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS:
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": "...", "level": "INFO", "logger": "loomsheet.services.production",
         "message": "Rolls sent for lamination", "count": 3}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.levelno >= logging.ERROR:
            entry["location"] = f"{record.pathname}:{record.lineno} in {record.funcName}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(extra_fields(record))
        return json.dumps(entry)


class TextFormatter(logging.Formatter):
    """`2024-01-01 12:00:00 [INFO] loomsheet.services.production: Roll created roll_id=a1b2`"""

    def format(self, record: logging.LogRecord) -> str:
        stamp = _record_time(record).astimezone().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{stamp} [{record.levelname}] {record.name}: {record.getMessage()}"
        extras = " ".join(f"{key}={value}" for key, value in extra_fields(record).items())
        if extras:
            line = f"{line} {extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class AuditFormatter(logging.Formatter):
    """
    Audit entries, e.g.

        {"timestamp": "...", "event": "ROLL_PARTIALLY_CONSUMED", "collection": "loom-data.json",
         "operator": "Acme Bags", "resource_type": "roll", "resource_id": "5f0c", "details": {...}}

    Empty fields are left out.
    """

    def format(self, record: logging.LogRecord) -> str:
        resource_type = getattr(record, "resource_type", None)
        entry = {
            "timestamp": _record_time(record).isoformat(),
            "event": getattr(record, "event", record.getMessage()),
            "collection": _COLLECTIONS.get(resource_type),
            "operator": getattr(record, "operator", None),
            "resource_type": resource_type,
            "resource_id": getattr(record, "resource_id", None),
            "details": getattr(record, "details", None) or None,
        }
        return json.dumps({k: v for k, v in entry.items() if v is not None}, default=str)


def _rotating_file(path: str, max_mb: int, backups: int, formatter: logging.Formatter) -> logging.Handler:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Configure the root and audit loggers from settings. Call once at startup."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = TextFormatter() if settings.LOG_FORMAT.lower() == "text" else JSONFormatter()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)
    if settings.LOG_FILE:
        root.addHandler(_rotating_file(settings.LOG_FILE, 10, 5, formatter))

    setup_audit_logging()

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def setup_audit_logging() -> None:
    audit = logging.getLogger(AUDIT_LOGGER)
    audit.setLevel(logging.INFO)
    audit.handlers.clear()
    audit.propagate = False

    if settings.AUDIT_LOG_FILE:
        audit.addHandler(_rotating_file(settings.AUDIT_LOG_FILE, 50, 10, AuditFormatter()))
    if settings.DEBUG:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(AuditFormatter())
        audit.addHandler(console)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def audit_log(
    event: str,
    *,
    operator: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Record a change to the roll or work-order collections.

    Args:
        event: e.g. "ROLL_CREATED", "WORK_ORDER_PROCESSED"
        operator: loom operator or consumer behind the change, when known
        resource_type: "roll", "work_order" or "collection"
        resource_id: id, or list of ids, of the affected records
        details: event-specific data
    """
    logging.getLogger(AUDIT_LOGGER).info(
        event,
        extra={
            "event": event,
            "operator": operator,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details or {},
        },
    )
