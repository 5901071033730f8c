"""
Measurement Calculator

Derives net weight, average (grams per metre) and the variance band from the
raw quantities entered for a roll. Roll creation, spreadsheet import and the
partial-consumption splitter all go through here so derived values always
agree.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

from loomsheet.core.config import settings
from loomsheet.schemas.roll import Roll

NO_BAND = "N/A"

_CENTS = Decimal("0.01")


class Measurements(NamedTuple):
    nw: float
    average: float
    variance_band: str


def round2(value: float) -> float:
    """Round half-up to two decimal places"""
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def band_limits(
    width: Optional[float],
    gram: Optional[float],
    tolerance: Optional[float] = None,
) -> Optional[tuple]:
    """
    Upper and lower acceptable average for a width and gram.

    Returns:
        (upper, lower) rounded to two places, or None unless both are known
    """
    if not width or not gram or width <= 0 or gram <= 0:
        return None
    if tolerance is None:
        tolerance = settings.VARIANCE_TOLERANCE
    ideal = Decimal(str(width)) * Decimal(str(gram))
    tol = Decimal(str(tolerance))
    upper = float((ideal * (1 + tol)).quantize(_CENTS, rounding=ROUND_HALF_UP))
    lower = float((ideal * (1 - tol)).quantize(_CENTS, rounding=ROUND_HALF_UP))
    return upper, lower


def compute_derived(
    mtrs: float,
    gw: float,
    cw: float,
    width: Optional[float] = None,
    gram: Optional[float] = None,
    tolerance: Optional[float] = None,
) -> Measurements:
    """
    Compute nw, average and variance band.

    nw = max(0, gw - cw)
    average = nw * 1000 / mtrs when both are positive, else 0
    band = "UB: <ideal*(1+tol)> / LB: <ideal*(1-tol)>" with ideal = width * gram,
    only when the average is positive and width and gram are both known.
    """
    nw = round2(max(0.0, (gw or 0) - (cw or 0)))

    average = 0.0
    if nw > 0 and mtrs and mtrs > 0:
        average = round2((nw * 1000) / mtrs)

    variance_band = NO_BAND
    if average > 0:
        limits = band_limits(width, gram, tolerance)
        if limits:
            upper, lower = limits
            variance_band = f"UB: {upper:.2f} / LB: {lower:.2f}"

    return Measurements(nw=nw, average=average, variance_band=variance_band)


def average_in_band(
    average: float,
    width: Optional[float],
    gram: Optional[float],
    tolerance: Optional[float] = None,
) -> Optional[bool]:
    """True when the average lies inside the band; None when there is no band."""
    if not average or average <= 0:
        return None
    limits = band_limits(width, gram, tolerance)
    if limits is None:
        return None
    upper, lower = limits
    return lower <= average <= upper


def with_measurements(roll: Roll, tolerance: Optional[float] = None) -> Roll:
    """Copy of `roll` with nw, average and variance band recomputed."""
    derived = compute_derived(roll.mtrs, roll.gw, roll.cw, roll.width, roll.gram, tolerance)
    return roll.model_copy(update=derived._asdict())
