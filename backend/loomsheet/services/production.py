"""
Production Service

Central service for every change to the roll and work-order collections.
Each operation loads both collections, applies one of the lifecycle /
splitter / work-order functions, overwrites the files and then pushes the
previous state onto the undo history. A rejected operation writes nothing.
"""
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from loomsheet.core.config import settings
from loomsheet.exceptions import StorageError, ValidationError
from loomsheet.logging_config import audit_log, get_logger
from loomsheet.schemas.roll import (
    BagProduction,
    ConsumedPart,
    ConsumptionData,
    Roll,
    RollCreate,
    RollImport,
    RollStatus,
)
from loomsheet.schemas.work_order import (
    InProgressWorkOrder,
    ProcessWorkOrderRequest,
    WorkOrder,
    WorkOrderCreate,
)
from loomsheet.services import lifecycle, work_orders as work_order_ops
from loomsheet.services.history import SnapshotHistory
from loomsheet.services.legacy import normalize_roll_record
from loomsheet.services.measurement import with_measurements
from loomsheet.services.splitter import SplitResult
from loomsheet.services.storage import JsonCollectionStore

logger = get_logger(__name__)


def _first_error(exc: PydanticValidationError) -> Dict[str, str]:
    error = exc.errors()[0]
    return {
        "field": ".".join(str(loc) for loc in error["loc"]),
        "message": error["msg"],
    }


class ProductionService:
    """
    Roll and work-order operations over whole-collection storage.

    Usage:
        service = ProductionService(
            JsonCollectionStore("data/loom-data.json", "rolls"),
            JsonCollectionStore("data/work-orders.json", "work orders"),
        )
        roll = service.create_roll(RollCreate(...))
        service.send_for_lamination([roll.id], "urgent")
        service.undo()
    """

    def __init__(
        self,
        roll_store: JsonCollectionStore,
        work_order_store: JsonCollectionStore,
        history: Optional[SnapshotHistory] = None,
        tolerance: Optional[float] = None,
    ):
        self.roll_store = roll_store
        self.work_order_store = work_order_store
        self.history = history if history is not None else SnapshotHistory(settings.HISTORY_LIMIT)
        self.tolerance = tolerance if tolerance is not None else settings.VARIANCE_TOLERANCE

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_rolls(self, records: List[dict], source: str = "request") -> List[Roll]:
        """
        Validate raw roll dicts (legacy shapes included) and recompute derived fields.

        Raises:
            ValidationError: a record is invalid (request data)
            StorageError: a stored record is invalid
        """
        rolls = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                self._reject(source, f"Roll record {index} is not an object", {"index": index})
            try:
                roll = Roll.model_validate(normalize_roll_record(record))
            except PydanticValidationError as e:
                self._reject(source, f"Invalid roll record {index}", {"index": index, **_first_error(e)})
            rolls.append(with_measurements(roll, self.tolerance))
        return rolls

    def parse_work_orders(self, records: List[dict], source: str = "request") -> List[WorkOrder]:
        work_orders = []
        for index, record in enumerate(records):
            try:
                work_orders.append(WorkOrder.model_validate(record))
            except PydanticValidationError as e:
                self._reject(source, f"Invalid work order record {index}", {"index": index, **_first_error(e)})
        return work_orders

    @staticmethod
    def _reject(source: str, message: str, details: dict) -> None:
        if source == "storage":
            raise StorageError(message, details=details)
        raise ValidationError(message, details=details)

    # ------------------------------------------------------------------
    # Loading / committing
    # ------------------------------------------------------------------

    def load_rolls(self) -> List[Roll]:
        return self.parse_rolls(self.roll_store.read(), source="storage")

    def load_work_orders(self) -> List[WorkOrder]:
        return self.parse_work_orders(self.work_order_store.read(), source="storage")

    def _write_collections(
        self,
        roll_records: Optional[List[dict]],
        work_order_records: Optional[List[dict]],
        previous_rolls: List[dict],
    ) -> None:
        """
        Overwrite the given collections, rolls first.

        If the work-order write fails after the rolls were written, the rolls
        file is put back to `previous_rolls` before the StorageError propagates.
        """
        written_rolls = False
        try:
            if roll_records is not None:
                self.roll_store.write(roll_records)
                written_rolls = True
            if work_order_records is not None:
                self.work_order_store.write(work_order_records)
        except StorageError:
            if written_rolls:
                self.roll_store.write(previous_rolls)
            raise

    def _commit(
        self,
        rolls: Optional[List[Roll]] = None,
        work_orders: Optional[List[WorkOrder]] = None,
    ) -> None:
        """
        Overwrite the files, then record their previous state on the history.

        The snapshot is only pushed once every write has succeeded, so a
        failed write leaves both the files and the history as they were.
        """
        previous_rolls = self.roll_store.read()
        previous_work_orders = self.work_order_store.read()
        self._write_collections(
            [roll.to_record() for roll in rolls] if rolls is not None else None,
            [wo.to_record() for wo in work_orders] if work_orders is not None else None,
            previous_rolls,
        )
        self.history.push(previous_rolls, previous_work_orders)

    # ------------------------------------------------------------------
    # Whole-collection access
    # ------------------------------------------------------------------

    def replace_rolls(self, records: List[dict]) -> List[Roll]:
        rolls = self.parse_rolls(records)
        self._commit(rolls=rolls)
        audit_log("ROLLS_REPLACED", resource_type="collection", details={"count": len(rolls)})
        return rolls

    def replace_work_orders(self, records: List[dict]) -> List[WorkOrder]:
        work_orders = self.parse_work_orders(records)
        self._commit(work_orders=work_orders)
        audit_log("WORK_ORDERS_REPLACED", resource_type="collection", details={"count": len(work_orders)})
        return work_orders

    def append_work_order(self, record: dict) -> WorkOrder:
        (work_order,) = self.parse_work_orders([record])
        self._commit(work_orders=self.load_work_orders() + [work_order])
        audit_log("WORK_ORDER_APPENDED", resource_type="work_order", resource_id=work_order.id)
        return work_order

    # ------------------------------------------------------------------
    # Roll operations
    # ------------------------------------------------------------------

    def list_rolls(
        self,
        status: Optional[RollStatus] = None,
        laminated: Optional[bool] = None,
        view: Optional[str] = None,
    ) -> List[Roll]:
        return lifecycle.filter_rolls(self.load_rolls(), status=status, laminated=laminated, view=view)

    def bags_produced(self) -> List[Roll]:
        return lifecycle.bags_produced(self.load_rolls())

    def create_roll(self, data: RollCreate) -> Roll:
        roll = lifecycle.create_roll(data, self.tolerance)
        self._commit(rolls=self.load_rolls() + [roll])
        logger.info("Roll created", extra={"roll_id": roll.id, "serial_number": roll.serial_number})
        audit_log(
            "ROLL_CREATED",
            operator=roll.operator_name,
            resource_type="roll",
            resource_id=roll.id,
            details={"serial_number": roll.serial_number, "mtrs": roll.mtrs, "nw": roll.nw},
        )
        return roll

    def import_rolls(self, rows: List[RollImport]) -> List[Roll]:
        imported = [lifecycle.build_imported_roll(row, self.tolerance) for row in rows]
        self._commit(rolls=self.load_rolls() + imported)
        logger.info("Rolls imported", extra={"count": len(imported)})
        audit_log(
            "ROLLS_IMPORTED",
            resource_type="roll",
            resource_id=[roll.id for roll in imported],
            details={"count": len(imported)},
        )
        return imported

    def send_for_lamination(self, roll_ids: List[str], call_out: str = "") -> List[Roll]:
        rolls = lifecycle.send_for_lamination(self.load_rolls(), roll_ids, call_out)
        self._commit(rolls=rolls)
        audit_log(
            "ROLLS_SENT_FOR_LAMINATION",
            resource_type="roll",
            resource_id=list(roll_ids),
            details={"call_out": call_out},
        )
        return lifecycle.find_rolls(rolls, roll_ids)

    def mark_received(
        self,
        roll_ids: List[str],
        new_serial_number: Optional[str] = None,
        received_serial_number: Optional[str] = None,
    ) -> List[Roll]:
        rolls = lifecycle.mark_received(
            self.load_rolls(), roll_ids, new_serial_number, received_serial_number
        )
        self._commit(rolls=rolls)
        audit_log(
            "ROLLS_RECEIVED_FROM_LAMINATION",
            resource_type="roll",
            resource_id=list(roll_ids),
            details={
                "new_serial_number": new_serial_number,
                "received_serial_number": received_serial_number,
            },
        )
        return lifecycle.find_rolls(rolls, roll_ids)

    def collaborate_and_create(self, roll_ids: List[str], new_roll: RollCreate) -> Roll:
        rolls, created = lifecycle.collaborate_and_create(
            self.load_rolls(), roll_ids, new_roll, self.tolerance
        )
        self._commit(rolls=rolls)
        audit_log(
            "ROLLS_COLLABORATED",
            operator=created.operator_name,
            resource_type="roll",
            resource_id=created.id,
            details={"source_roll_ids": list(roll_ids), "serial_number": created.serial_number},
        )
        return created

    def send_for_work_order(self, roll_ids: List[str]) -> List[Roll]:
        rolls = lifecycle.send_for_work_order(self.load_rolls(), roll_ids)
        self._commit(rolls=rolls)
        audit_log("ROLLS_SENT_FOR_WORK_ORDER", resource_type="roll", resource_id=list(roll_ids))
        return lifecycle.find_rolls(rolls, roll_ids)

    def mark_consumed(
        self,
        roll_ids: List[str],
        consumption: ConsumptionData,
        bag: Optional[BagProduction] = None,
    ) -> List[Roll]:
        rolls = lifecycle.mark_consumed(self.load_rolls(), roll_ids, consumption, bag)
        self._commit(rolls=rolls)
        audit_log(
            "ROLLS_CONSUMED",
            operator=consumption.consumed_by,
            resource_type="roll",
            resource_id=list(roll_ids),
            details=consumption.model_dump(exclude_none=True),
        )
        return lifecycle.find_rolls(rolls, roll_ids)

    def partial_consume(
        self,
        roll_id: str,
        consumed_part: ConsumedPart,
        consumption: ConsumptionData,
        bag: Optional[BagProduction] = None,
    ) -> SplitResult:
        rolls, result = lifecycle.partial_consume(
            self.load_rolls(), roll_id, consumed_part, consumption, bag, self.tolerance
        )
        self._commit(rolls=rolls)
        audit_log(
            "ROLL_PARTIALLY_CONSUMED",
            operator=consumption.consumed_by,
            resource_type="roll",
            resource_id=roll_id,
            details={
                "consumed_part": consumed_part.model_dump(),
                "new_roll_id": result.new_consumed_roll.id,
                "remainder_status": result.updated_remainder.status.value,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Work orders
    # ------------------------------------------------------------------

    def list_work_orders(self) -> List[WorkOrder]:
        return self.load_work_orders()

    def in_progress_work_orders(self) -> List[InProgressWorkOrder]:
        return work_order_ops.in_progress_work_orders(self.load_rolls(), self.load_work_orders())

    def create_work_order(self, payload: WorkOrderCreate) -> WorkOrder:
        rolls, work_order = work_order_ops.create_work_order(
            self.load_rolls(), payload.customer_name, payload.parent_pid, payload.child_pids
        )
        self._commit(rolls=rolls, work_orders=self.load_work_orders() + [work_order])
        audit_log(
            "WORK_ORDER_CREATED",
            operator=payload.customer_name,
            resource_type="work_order",
            resource_id=work_order.id,
            details={
                "parent_pid": work_order.parent_pid,
                "roll_ids": [child.roll_id for child in work_order.child_pids],
            },
        )
        return work_order

    def toggle_child_completion(self, work_order_id: str, pid: str) -> List[WorkOrder]:
        current = self.load_work_orders()
        updated = work_order_ops.toggle_child_completion(current, work_order_id, pid)
        if updated == current:
            logger.info(
                "Child PID toggle ignored; no such work order or pid",
                extra={"work_order_id": work_order_id, "pid": pid},
            )
            return current
        self._commit(work_orders=updated)
        audit_log(
            "WORK_ORDER_CHILD_TOGGLED",
            resource_type="work_order",
            resource_id=work_order_id,
            details={"pid": pid},
        )
        return updated

    def process_work_order(
        self,
        work_order_id: str,
        request: ProcessWorkOrderRequest,
    ) -> Tuple[List[Roll], List[WorkOrder]]:
        rolls, remaining = work_order_ops.process_work_order(
            self.load_rolls(),
            self.load_work_orders(),
            work_order_id,
            request.consumption_states,
            so_number=request.so_number,
            po_number=request.po_number,
            bag=request.bag_production,
            tolerance=self.tolerance,
        )
        self._commit(rolls=rolls, work_orders=remaining)
        audit_log(
            "WORK_ORDER_PROCESSED",
            resource_type="work_order",
            resource_id=work_order_id,
            details={"roll_ids": list(request.consumption_states)},
        )
        return rolls, remaining

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------

    def undo(self) -> None:
        """
        Restore both collections to the state before the last change.

        If restoring fails the files are left as they were and the snapshot
        goes back on the history.

        Raises:
            ValidationError: there is nothing to undo
        """
        snapshot = self.history.pop()
        if snapshot is None:
            raise ValidationError("Nothing to undo", error_code="NOTHING_TO_UNDO")
        try:
            current_rolls = self.roll_store.read()
            self._write_collections(snapshot.rolls, snapshot.work_orders, current_rolls)
        except StorageError:
            self.history.push(snapshot.rolls, snapshot.work_orders)
            raise
        audit_log("HISTORY_UNDONE", resource_type="collection", details={"remaining": len(self.history)})


@lru_cache
def get_production_service() -> ProductionService:
    """
    Process-wide service instance; the undo history lives as long as it does.

    Usage in FastAPI endpoints:
        @router.get("/rolls")
        def list_rolls(service: ProductionService = Depends(get_production_service)):
            ...
    """
    return ProductionService(
        JsonCollectionStore(settings.rolls_path, "rolls"),
        JsonCollectionStore(settings.work_orders_path, "work orders"),
        SnapshotHistory(settings.HISTORY_LIMIT),
        settings.VARIANCE_TOLERANCE,
    )
