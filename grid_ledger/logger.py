"""
Structured Logging
==================
JSON-line output for grid ledger entry points.

Library modules only ever call logging.getLogger(__name__). An entry point
calls configure_logging() once, after which every grid_ledger.* logger emits
one JSON object per line with a UTC timestamp.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


ROOT_LOGGER = "grid_ledger"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; messages are escaped, not templated"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'ts': datetime.fromtimestamp(record.created, tz=timezone.utc)
                          .strftime("%Y-%m-%dT%H:%M:%SZ"),
            'level': record.levelname,
            'name': record.name,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            entry['exc'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: int = logging.INFO,
                      log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach JSON handlers to the package logger.

    Handlers are installed once; later calls only adjust the level.

    Args:
        level: Level for the grid_ledger logger tree
        log_file: Optional path that also receives every line

    Returns:
        The grid_ledger package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))

    formatter = JsonLineFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
