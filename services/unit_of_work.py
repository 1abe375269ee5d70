# services/unit_of_work.py
"""
Atomic units of work with optimistic-concurrency retry.

One unit = one session transaction. A StaleDataError raised while flushing
(another writer bumped the order's version first) rolls the unit back and is
reported as ConcurrencyConflict, which is retried with exponential backoff up
to a bounded number of attempts before it reaches the caller.
"""
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import Settings, get_settings
from database import get_session_context
from logging_config import get_logger
from services.errors import ConcurrencyConflict

logger = get_logger(__name__)

T = TypeVar("T")


def _log_retry(label: str) -> Callable[[RetryCallState], None]:
     def before_sleep(retry_state: RetryCallState) -> None:
          logger.warning(
               "concurrency_conflict_retry",
               unit=label,
               attempt=retry_state.attempt_number,
               wait_seconds=round(retry_state.next_action.sleep, 3) if retry_state.next_action else 0,
          )
     return before_sleep


def _attempt(operation: Callable[[Session], T], session_factory, label: str) -> T:
     try:
          with get_session_context(session_factory) as db:
               return operation(db)
     except StaleDataError as exc:
          raise ConcurrencyConflict(
               f"{label}: the order was changed by another request, please retry"
          ) from exc


def run_atomic(
     operation: Callable[[Session], T],
     session_factory: Optional[Callable[[], Session]] = None,
     settings: Optional[Settings] = None,
     label: str = "ledger_unit",
) -> T:
     """
     Run operation(db) in its own transaction, retrying on ConcurrencyConflict.

     Any other exception propagates immediately after rollback.

     Raises:
          ConcurrencyConflict: still conflicting after CONFLICT_MAX_ATTEMPTS attempts
     """
     settings = settings or get_settings()
     retrying = Retrying(
          retry=retry_if_exception_type(ConcurrencyConflict),
          stop=stop_after_attempt(settings.conflict_max_attempts),
          wait=wait_exponential(
               multiplier=settings.conflict_backoff_seconds,
               max=settings.conflict_backoff_max_seconds,
          ),
          before_sleep=_log_retry(label),
          reraise=True,
     )
     for attempt in retrying:
          with attempt:
               return _attempt(operation, session_factory, label)
     raise AssertionError("unreachable")  # pragma: no cover
