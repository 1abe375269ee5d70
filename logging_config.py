# logging_config.py
"""
Structured logging configuration.

structlog is layered over the standard library root logger so that
uvicorn, SQLAlchemy and application events share one output stream.
"""
import logging
import sys
from typing import Any, Optional

import structlog

from config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
     """
     Configure structlog and the stdlib root logger.

     LOG_JSON=true renders one JSON object per line, otherwise a
     human-readable console format is used.
     """
     settings = settings or get_settings()
     level = getattr(logging, settings.log_level, logging.INFO)

     renderer = (
          structlog.processors.JSONRenderer()
          if settings.log_json
          else structlog.dev.ConsoleRenderer(colors=False)
     )

     structlog.configure(
          processors=[
               structlog.contextvars.merge_contextvars,
               structlog.stdlib.filter_by_level,
               structlog.stdlib.add_logger_name,
               structlog.stdlib.add_log_level,
               structlog.stdlib.PositionalArgumentsFormatter(),
               structlog.processors.TimeStamper(fmt="iso"),
               structlog.processors.StackInfoRenderer(),
               structlog.processors.format_exc_info,
               structlog.processors.UnicodeDecoder(),
               renderer,
          ],
          wrapper_class=structlog.stdlib.BoundLogger,
          context_class=dict,
          logger_factory=structlog.stdlib.LoggerFactory(),
          cache_logger_on_first_use=True,
     )

     root_logger = logging.getLogger()
     root_logger.setLevel(level)
     for handler in root_logger.handlers[:]:
          root_logger.removeHandler(handler)

     handler = logging.StreamHandler(sys.stdout)
     handler.setFormatter(logging.Formatter("%(message)s"))
     root_logger.addHandler(handler)

     # Keep SQL echo under SQL_ECHO rather than LOG_LEVEL
     logging.getLogger("sqlalchemy.engine").setLevel(
          logging.INFO if settings.sql_echo else logging.WARNING
     )


def get_logger(name: str) -> Any:
     """Return a structlog logger bound to the given name."""
     return structlog.get_logger(name)
