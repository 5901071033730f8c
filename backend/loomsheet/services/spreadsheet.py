"""
Spreadsheet import / export for loom data

Import reads the first sheet of an .xlsx workbook whose header row holds the
camelCase roll keys. Export writes one row per roll to a "LoomData" sheet.
"""
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Any, Dict, Iterable, List

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from pydantic import ValidationError as PydanticValidationError

from loomsheet.exceptions import ValidationError
from loomsheet.logging_config import get_logger
from loomsheet.schemas.roll import Roll, RollImport
from loomsheet.services.legacy import normalize_roll_record

logger = get_logger(__name__)

EXPORT_SHEET = "LoomData"
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)

EXPORT_COLUMNS = [
    "id",
    "serialNumber",
    "productionDate",
    "operatorName",
    "loomNo",
    "fabricType",
    "color",
    "isLaminated",
    "width",
    "gram",
    "mtrs",
    "gw",
    "cw",
    "nw",
    "average",
    "varianceBand",
    "status",
    "callOut",
    "receivedSerialNumber",
    "consumedBy",
    "soNumber",
    "poNumber",
    "noOfBags",
    "avgBagWeight",
    "bagSize",
]

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")


def _from_serial(days: float) -> datetime:
    try:
        return EXCEL_EPOCH + timedelta(days=days)
    except (OverflowError, ValueError) as e:
        raise ValueError(f"Serial date {days:g} is out of range") from e


def parse_production_date(value: Any) -> Any:
    """
    Spreadsheet dates arrive as datetimes, ISO strings or serial day counts.

    Serial numbers count days from 1899-12-30. Anything else is passed
    through for the schema to validate.

    Raises:
        ValueError: a serial day count falls outside the supported date range
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_serial(float(value))
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            days = float(text)
        except ValueError:
            return text
        return _from_serial(days)
    return value


def _row_dicts(content: bytes) -> Iterable[tuple]:
    try:
        workbook = openpyxl.load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValidationError(
            "Upload is not a readable .xlsx workbook",
            details={"reason": str(e)},
        ) from e

    sheet = workbook.worksheets[0]
    rows = sheet.iter_rows(values_only=True)
    header = next(rows, None)
    if not header:
        raise ValidationError("Workbook has no header row")
    keys = [str(cell).strip() if cell is not None else "" for cell in header]

    # Row numbers are the ones a user sees in the sheet (header is row 1).
    for row_number, values in enumerate(rows, start=2):
        if all(v is None or v == "" for v in values):
            continue
        record = {
            key: value for key, value in zip(keys, values)
            if key and value is not None
        }
        yield row_number, record
    workbook.close()


def read_rolls_workbook(content: bytes) -> List[RollImport]:
    """
    Parse every data row of an uploaded workbook.

    The import is all-or-nothing: if any row is invalid a ValidationError
    lists each bad row as {row, field, message} and nothing is returned.
    """
    parsed: List[RollImport] = []
    errors: List[Dict[str, Any]] = []

    for row_number, record in _row_dicts(content):
        record.pop("id", None)
        record = normalize_roll_record(record)
        if "productionDate" in record:
            try:
                record["productionDate"] = parse_production_date(record["productionDate"])
            except ValueError as e:
                errors.append({"row": row_number, "field": "productionDate", "message": str(e)})
                continue
        for key in ("serialNumber", "loomNo", "receivedSerialNumber", "soNumber", "poNumber"):
            if isinstance(record.get(key), (int, float)) and not isinstance(record[key], bool):
                record[key] = str(record[key]).removesuffix(".0")
        try:
            parsed.append(RollImport.model_validate(record))
        except PydanticValidationError as e:
            for error in e.errors():
                errors.append({
                    "row": row_number,
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                })

    if errors:
        logger.warning("Rejected spreadsheet import", extra={"error_count": len(errors)})
        raise ValidationError(
            "Spreadsheet contains invalid rows; nothing was imported",
            error_code="IMPORT_REJECTED",
            details={"errors": errors},
        )
    if not parsed:
        raise ValidationError("Spreadsheet contains no data rows")
    return parsed


def _export_row(roll: Roll) -> List[Any]:
    record = roll.to_record()
    bag = record.pop("bagProduction", {}) or {}
    record.update(bag)
    return [record.get(column) for column in EXPORT_COLUMNS]


def write_rolls_workbook(rolls: Iterable[Roll]) -> bytes:
    """Export rolls to an .xlsx workbook and return its bytes."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = EXPORT_SHEET

    sheet.append(EXPORT_COLUMNS)
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")

    count = 0
    for roll in rolls:
        sheet.append(_export_row(roll))
        count += 1

    for col, column in enumerate(EXPORT_COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(col)].width = max(len(column) + 2, 12)
    sheet.freeze_panes = "A2"

    buffer = BytesIO()
    workbook.save(buffer)
    logger.info("Exported rolls workbook", extra={"count": count})
    return buffer.getvalue()
