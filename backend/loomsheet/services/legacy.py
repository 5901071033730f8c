"""
Legacy record normalisation

Older data files and spreadsheets use other status labels, a string or boolean
"lamination"/"lamUnlam" flag, a "variance" key and flat bag fields. Records are
mapped to the current shape once, when they are loaded or imported.
"""
from typing import Any, Dict, Optional

from loomsheet.schemas.roll import RollStatus

STATUS_ALIASES: Dict[str, RollStatus] = {
    "ready for lamination": RollStatus.READY_FOR_LAMINATION,
    "sent for lamination": RollStatus.SENT_FOR_LAMINATION,
    "laminated": RollStatus.LAMINATED,
    "received from lamination": RollStatus.LAMINATED,
    "active stock": RollStatus.LAMINATED,
    "activestock": RollStatus.LAMINATED,
    "for work order": RollStatus.FOR_WORK_ORDER,
    "in progress": RollStatus.IN_PROGRESS,
    "partially consumed": RollStatus.PARTIALLY_CONSUMED,
    "consumed": RollStatus.CONSUMED,
}
STATUS_ALIASES.update({status.value.lower(): status for status in RollStatus})

LAMINATED_LABELS = {"lam active", "laminated", "true", "yes", "1"}
UNLAMINATED_LABELS = {"unlammed", "unlaminated", "false", "no", "0", ""}

BAG_FIELDS = ("noOfBags", "avgBagWeight", "bagSize")


def normalize_status(value: Any) -> Optional[str]:
    """Map any known status label to the current enum value; unknown labels pass through."""
    if value is None:
        return None
    if isinstance(value, RollStatus):
        return value.value
    status = STATUS_ALIASES.get(str(value).strip().lower())
    return status.value if status else value


def parse_lamination(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    label = str(value).strip().lower()
    if label in LAMINATED_LABELS:
        return True
    if label in UNLAMINATED_LABELS:
        return False
    return None


def normalize_roll_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a raw roll dict in the current camelCase shape."""
    data = dict(record)

    if "status" in data:
        data["status"] = normalize_status(data["status"])

    if "isLaminated" not in data:
        for key in ("lamination", "lamUnlam"):
            if key in data:
                laminated = parse_lamination(data[key])
                if laminated is not None:
                    data["isLaminated"] = laminated
                break
    for key in ("lamination", "lamUnlam"):
        data.pop(key, None)

    # Old revisions stored a number here; the band is recomputed on load anyway.
    variance = data.pop("variance", None)
    if "varianceBand" not in data and isinstance(variance, str):
        data["varianceBand"] = variance

    if "bagProduction" not in data:
        bag = {key: data[key] for key in BAG_FIELDS if data.get(key) not in (None, "", 0)}
        if bag:
            data["bagProduction"] = bag
    for key in BAG_FIELDS:
        data.pop(key, None)

    if isinstance(data.get("color"), str):
        data["color"] = data["color"].strip().capitalize()

    # Empty optional strings from forms and spreadsheets mean "not given".
    for key in ("loomNo", "consumedBy", "soNumber", "poNumber", "callOut", "receivedSerialNumber"):
        if data.get(key) == "":
            data.pop(key)
    for key in ("width", "gram"):
        if data.get(key) in ("", 0):
            data.pop(key)

    return data
