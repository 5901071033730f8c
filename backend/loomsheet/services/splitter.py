"""
Partial-Consumption Splitter

Takes part of a roll off for consumption: the original record keeps its id and
shrinks, and a new Consumed record is created for the portion taken.
"""
from datetime import datetime, timezone
from typing import NamedTuple, Optional
from uuid import uuid4

from loomsheet.exceptions import ValidationError
from loomsheet.schemas.roll import (
    BagProduction,
    ConsumedPart,
    ConsumptionData,
    Roll,
    RollStatus,
)
from loomsheet.services.measurement import NO_BAND, round2, with_measurements

# Checked in this order; the first violation is reported.
QUANTITY_FIELDS = ("mtrs", "gw", "cw")


class SplitResult(NamedTuple):
    updated_remainder: Roll
    new_consumed_roll: Roll


def check_available(original: Roll, consumed_part: ConsumedPart) -> None:
    """
    Raise ValidationError if any consumed quantity exceeds what the roll has.

    The error details name the offending field and the available quantity.
    """
    for field in QUANTITY_FIELDS:
        requested = getattr(consumed_part, field)
        available = getattr(original, field)
        if requested > available:
            raise ValidationError(
                f"Cannot consume more than available ({available}) for {field}.",
                details={
                    "roll_id": original.id,
                    "field": field,
                    "requested": requested,
                    "available": available,
                },
            )


def _consumption_fields(
    consumption: Optional[ConsumptionData],
    bag: Optional[BagProduction],
) -> dict:
    fields = {}
    if consumption is not None:
        fields.update(
            consumed_by=consumption.consumed_by,
            so_number=consumption.so_number,
            po_number=consumption.po_number,
        )
    if bag is not None:
        fields["bag_production"] = bag
    return fields


def split_partial(
    original: Roll,
    consumed_part: ConsumedPart,
    consumption: Optional[ConsumptionData] = None,
    bag: Optional[BagProduction] = None,
    tolerance: Optional[float] = None,
) -> SplitResult:
    """
    Split `consumed_part` off `original`.

    All three quantities are subtracted from the remainder, so
    original == remainder + consumed for mtrs, gw and cw. When neither length
    nor gross weight is left the remainder is closed out as Consumed with
    zero quantities.

    Raises:
        ValidationError: a consumed quantity exceeds the available one
    """
    check_available(original, consumed_part)

    remaining = {
        field: round2(max(0.0, getattr(original, field) - getattr(consumed_part, field)))
        for field in QUANTITY_FIELDS
    }
    remainder = with_measurements(
        original.model_copy(update={**remaining, "status": RollStatus.PARTIALLY_CONSUMED}),
        tolerance,
    )
    if remainder.mtrs <= 0 and remainder.gw <= 0:
        remainder = remainder.model_copy(update={
            "status": RollStatus.CONSUMED,
            "mtrs": 0.0,
            "gw": 0.0,
            "cw": 0.0,
            "nw": 0.0,
            "average": 0.0,
            "variance_band": NO_BAND,
            **_consumption_fields(consumption, bag),
        })

    consumed = original.model_copy(update={
        "id": uuid4().hex,
        "mtrs": consumed_part.mtrs,
        "gw": consumed_part.gw,
        "cw": consumed_part.cw,
        "status": RollStatus.CONSUMED,
        "production_date": datetime.now(timezone.utc),
        "bag_production": None,
        **_consumption_fields(consumption, bag),
    })
    consumed = with_measurements(consumed, tolerance)

    return SplitResult(updated_remainder=remainder, new_consumed_roll=consumed)
