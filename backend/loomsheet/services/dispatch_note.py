"""
Dispatch note PDF for rolls sent out for lamination
"""
from datetime import datetime, timezone
from io import BytesIO
from typing import List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

from loomsheet.core.config import settings
from loomsheet.logging_config import get_logger
from loomsheet.schemas.roll import Roll

logger = get_logger(__name__)

COLUMNS = [
    ("Serial No", 2.0),
    ("Width", 5.5),
    ("Gram", 7.5),
    ("Mtrs", 9.5),
    ("NW", 12.0),
    ("Status", 14.5),
]


def _header(c: canvas.Canvas, height: float, issued: datetime) -> float:
    c.setFont("Helvetica-Bold", 14)
    c.drawString(2 * cm, height - 2.5 * cm, settings.PROJECT_NAME)
    c.setFont("Helvetica", 11)
    c.drawString(2 * cm, height - 3.2 * cm, "Lamination Dispatch Note")
    c.drawString(2 * cm, height - 3.8 * cm, f"Date/Time: {issued.strftime('%Y-%m-%d %H:%M')} UTC")
    return height - 5 * cm


def _column_headings(c: canvas.Canvas, y: float) -> float:
    c.setFont("Helvetica-Bold", 10)
    for title, x in COLUMNS:
        c.drawString(x * cm, y, title)
    c.line(2 * cm, y - 4, 19 * cm, y - 4)
    c.setFont("Helvetica", 10)
    return y - 16


def build_dispatch_note(
    rolls: List[Roll],
    call_out: Optional[str] = None,
    issued: Optional[datetime] = None,
) -> bytes:
    """
    Render a one-row-per-roll dispatch note and return the PDF bytes.

    `call_out` defaults to the note stored on the first roll.
    """
    issued = issued or datetime.now(timezone.utc)
    if call_out is None:
        call_out = next((roll.call_out for roll in rolls if roll.call_out), "")

    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    _, height = A4

    y = _header(c, height, issued)
    if call_out:
        c.setFont("Helvetica-Bold", 11)
        c.drawString(2 * cm, y, f"Call-out: {call_out}")
        y -= 20
    y = _column_headings(c, y)

    total_mtrs = 0.0
    total_nw = 0.0
    for roll in rolls:
        if y < 3 * cm:
            c.showPage()
            y = _column_headings(c, _header(c, height, issued))
        values = [
            roll.serial_number,
            f"{roll.width:.0f}" if roll.width else "-",
            f"{roll.gram:.0f}" if roll.gram else "-",
            f"{roll.mtrs:.2f}",
            f"{roll.nw:.2f}",
            roll.status.value,
        ]
        for (_, x), value in zip(COLUMNS, values):
            c.drawString(x * cm, y, value)
        total_mtrs += roll.mtrs
        total_nw += roll.nw
        y -= 14

    y -= 6
    c.line(2 * cm, y + 10, 19 * cm, y + 10)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(2 * cm, y, f"Rolls: {len(rolls)}")
    c.drawString(COLUMNS[3][1] * cm, y, f"{total_mtrs:.2f}")
    c.drawString(COLUMNS[4][1] * cm, y, f"{total_nw:.2f}")

    c.setFont("Helvetica", 9)
    c.drawString(2 * cm, 2 * cm, "Received by: _________________________     Sign: ______________")

    c.showPage()
    c.save()
    logger.info("Built dispatch note", extra={"roll_count": len(rolls)})
    return buf.getvalue()
