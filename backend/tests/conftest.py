"""
Shared fixtures for LoomSheet tests
"""
from datetime import datetime, timezone

import pytest

from loomsheet.schemas.roll import Roll, RollStatus
from loomsheet.services.measurement import with_measurements
from loomsheet.services.production import ProductionService
from loomsheet.services.history import SnapshotHistory
from loomsheet.services.storage import JsonCollectionStore


@pytest.fixture
def make_roll():
    """Factory for stored rolls with derived measurements filled in"""
    counter = {"n": 0}

    def _make(**overrides) -> Roll:
        counter["n"] += 1
        fields = {
            "id": f"roll-{counter['n']}",
            "serial_number": f"R-{counter['n']:03d}",
            "operator_name": "Ravi",
            "loom_no": "L1",
            "width": 0.5,
            "gram": 2000,
            "fabric_type": "Slit",
            "color": "Natural",
            "mtrs": 500,
            "gw": 550,
            "cw": 30,
            "status": RollStatus.READY_FOR_LAMINATION,
            "production_date": datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return with_measurements(Roll(**fields), 0.05)

    return _make


@pytest.fixture
def service(tmp_path):
    """ProductionService writing to a temporary data directory"""
    return ProductionService(
        JsonCollectionStore(tmp_path / "loom-data.json", "rolls"),
        JsonCollectionStore(tmp_path / "work-orders.json", "work orders"),
        SnapshotHistory(limit=5),
        tolerance=0.05,
    )


@pytest.fixture
def seeded_service(service, make_roll):
    """Service pre-loaded with one roll in each status of the lamination path"""
    rolls = [
        make_roll(id="ready", serial_number="R-READY"),
        make_roll(id="sent", serial_number="R-SENT", status=RollStatus.SENT_FOR_LAMINATION),
        make_roll(id="sent-2", serial_number="R-SENT-2", status=RollStatus.SENT_FOR_LAMINATION),
        make_roll(id="laminated", serial_number="R-LAM", status=RollStatus.LAMINATED, is_laminated=True),
        make_roll(id="wo-1", serial_number="R-WO-1", status=RollStatus.FOR_WORK_ORDER, is_laminated=True),
        make_roll(id="wo-2", serial_number="R-WO-2", status=RollStatus.FOR_WORK_ORDER, is_laminated=True),
    ]
    service.roll_store.write([roll.to_record() for roll in rolls])
    return service
