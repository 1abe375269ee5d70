# services/bulk_service.py
"""
Bulk Operation Coordinator - applies an order-level action to many orders.

Every order gets its own atomic unit (with conflict retry); no lock or
transaction spans the batch. A failing order is reported and the rest carry
on. Cancelling stops new units from starting; units that already committed
stay committed.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from config import Settings, get_settings
from logging_config import get_logger
from models import OrderStatus, OrderStatusLog, utcnow
from services import order_aggregate
from services.activity_log import ActivitySink, LoggingActivitySink, publish
from services.errors import LedgerError, PartialBatchFailure, ValidationError
from services.payment_service import require_actor
from services.unit_of_work import run_atomic

logger = get_logger(__name__)


@dataclass
class BulkItemFailure:
     id: int
     error: str
     code: str
     detail: str

     def to_dict(self) -> Dict[str, Any]:
          return {"id": self.id, "error": self.error, "code": self.code, "detail": self.detail}


@dataclass
class BulkResult:
     """Per-item outcome of a bulk operation, in request order."""
     succeeded: List[int] = field(default_factory=list)
     failed: List[BulkItemFailure] = field(default_factory=list)
     cancelled: List[int] = field(default_factory=list)

     @property
     def ok(self) -> bool:
          return not self.failed and not self.cancelled

     def raise_for_failures(self) -> None:
          """Raise PartialBatchFailure if any item failed."""
          if self.failed:
               raise PartialBatchFailure(
                    f"{len(self.failed)} of {len(self.failed) + len(self.succeeded)} orders failed",
                    failures=[f.to_dict() for f in self.failed],
                    succeeded=list(self.succeeded),
               )


def parse_order_status(value: Any) -> OrderStatus:
     if isinstance(value, OrderStatus):
          return value
     try:
          return OrderStatus(value)
     except ValueError:
          allowed = ", ".join(s.value for s in OrderStatus)
          raise ValidationError(
               f"Unknown order status {value!r}; expected one of {allowed}", code="INVALID_STATUS"
          )


class BulkOperationCoordinator:
     """Runs per-order units sequentially or on a worker pool."""

     def __init__(
          self,
          session_factory: Optional[Callable[[], Session]] = None,
          settings: Optional[Settings] = None,
          activity_sink: Optional[ActivitySink] = None,
          max_workers: int = 1,
     ):
          self.session_factory = session_factory
          self.settings = settings or get_settings()
          self.activity_sink = activity_sink or LoggingActivitySink()
          self.max_workers = max(1, max_workers)

     def bulk_update_status(
          self,
          order_ids: Iterable[int],
          new_status: Any,
          actor: str,
          cancel_event: Optional[threading.Event] = None,
     ) -> BulkResult:
          """Set the fulfilment status of each order and append a status log row."""
          status = parse_order_status(new_status)
          actor = require_actor(actor)

          def unit(db: Session, order_id: int) -> None:
               order = order_aggregate.get_order(db, order_id)
               order.status = status
               order.updated_at = utcnow()
               db.add(OrderStatusLog(order_id=order.id, status=status, updated_by=actor))
               db.flush()

          result = self._run("bulk_update_status", order_ids, unit, cancel_event)
          if result.succeeded:
               publish(
                    self.activity_sink,
                    f"Updated status of {len(result.succeeded)} orders to \"{status.value}\".",
                    actor,
               )
          return result

     def bulk_soft_delete(
          self,
          order_ids: Iterable[int],
          actor: str,
          cancel_event: Optional[threading.Event] = None,
     ) -> BulkResult:
          """Archive each order: flag it deleted and cancel it. Rows are kept."""
          actor = require_actor(actor)

          def unit(db: Session, order_id: int) -> None:
               order = order_aggregate.get_order(db, order_id)
               now = utcnow()
               order.is_deleted = True
               order.deleted_at = now
               order.status = OrderStatus.CANCELLED
               order.updated_at = now
               db.add(
                    OrderStatusLog(
                         order_id=order.id,
                         status=OrderStatus.CANCELLED,
                         updated_by=actor,
                         notes="Bulk archived",
                    )
               )
               db.flush()

          result = self._run("bulk_soft_delete", order_ids, unit, cancel_event)
          if result.succeeded:
               publish(self.activity_sink, f"Archived {len(result.succeeded)} orders.", actor)
          return result

     def _run(
          self,
          label: str,
          order_ids: Iterable[int],
          unit: Callable[[Session, int], None],
          cancel_event: Optional[threading.Event],
     ) -> BulkResult:
          ids = list(dict.fromkeys(order_ids))
          if not ids:
               raise ValidationError("At least one order ID is required", code="EMPTY_BATCH")

          outcomes: Dict[int, Optional[BulkItemFailure]] = {}
          cancelled: set = set()

          def run_one(order_id: int) -> None:
               if cancel_event is not None and cancel_event.is_set():
                    cancelled.add(order_id)
                    return
               try:
                    run_atomic(
                         lambda db: unit(db, order_id),
                         self.session_factory,
                         self.settings,
                         label=f"{label}:order={order_id}",
                    )
                    outcomes[order_id] = None
               except LedgerError as exc:
                    logger.warning(
                         "bulk_item_failed", operation=label, order_id=order_id,
                         error=exc.kind, code=exc.code, detail=exc.detail,
                    )
                    outcomes[order_id] = BulkItemFailure(
                         id=order_id, error=exc.kind, code=exc.code, detail=exc.detail
                    )
               except Exception as exc:
                    # Unexpected errors are reported per item, never raised
                    logger.exception("bulk_item_crashed", operation=label, order_id=order_id)
                    outcomes[order_id] = BulkItemFailure(
                         id=order_id, error="InternalError", code="INTERNAL_ERROR", detail=str(exc)
                    )

          if self.max_workers == 1:
               for order_id in ids:
                    run_one(order_id)
          else:
               with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                    list(pool.map(run_one, ids))

          result = BulkResult()
          for order_id in ids:
               if order_id in cancelled:
                    result.cancelled.append(order_id)
                    continue
               failure = outcomes[order_id]
               if failure is None:
                    result.succeeded.append(order_id)
               else:
                    result.failed.append(failure)

          logger.info(
               "bulk_operation_finished",
               operation=label,
               requested=len(ids),
               succeeded=len(result.succeeded),
               failed=len(result.failed),
               cancelled=len(result.cancelled),
          )
          return result
