# services/activity_log.py
"""
Activity sink - human-readable messages about committed ledger work.

Messages are emitted only after the unit of work has committed. Delivery is
an external concern: a failing sink is logged and never undoes ledger state.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Protocol

from logging_config import get_logger
from models import utcnow

logger = get_logger(__name__)


class ActivitySink(Protocol):
     def emit(self, message: str, actor: str) -> None:
          ...


class LoggingActivitySink:
     """Default sink: writes activity messages to the structured log."""

     def emit(self, message: str, actor: str) -> None:
          logger.info("activity", message=message, actor=actor)


@dataclass
class ActivityRecord:
     message: str
     actor: str
     timestamp: datetime = field(default_factory=utcnow)


class InMemoryActivitySink:
     """Keeps messages in a list; handy for tests and local tooling."""

     def __init__(self):
          self.records: List[ActivityRecord] = []

     def emit(self, message: str, actor: str) -> None:
          self.records.append(ActivityRecord(message=message, actor=actor))

     @property
     def messages(self) -> List[str]:
          return [record.message for record in self.records]


def publish(sink: ActivitySink, message: str, actor: str) -> None:
     """Hand a message to the sink, logging instead of raising on failure."""
     try:
          sink.emit(message, actor)
     except Exception:
          logger.exception("activity_sink_failed", message=message, actor=actor)
