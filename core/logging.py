"""
Logging configuration

Non-fatal pipeline failures are logged with ``extra={"error_context": ...}``
(an ``ETLException.to_dict()``); ``ContextFormatter`` appends that context
to the line so skipped commits and staging writes can be traced from logs.
"""

import json
import logging
import sys
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class ContextFormatter(logging.Formatter):
    """Appends ``record.error_context`` as compact JSON when present"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        error_context = getattr(record, "error_context", None)
        if error_context:
            line += " | " + json.dumps(error_context, default=str, sort_keys=True)
        return line


def setup_logging(level: str = None):
    """Configure application logging"""

    level_name = (level or settings.LOG_LEVEL).upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        handlers=[handler],
        force=True
    )

    # Reduce noise from SQLAlchemy, the filesystem layer and the scheduler
    for name in ("sqlalchemy.engine", "sqlalchemy.pool", "fsspec", "apscheduler"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {level_name} level")
