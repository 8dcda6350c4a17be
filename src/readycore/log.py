"""
Logging setup for readycore.

Modules log through ``logging.getLogger(__name__)``; this module only
installs the handler on the ``readycore`` logger.  Two formats:

- ``text`` for consoles: ``2026-10-18 12:00:00 INFO readycore.poller: ...``
- ``json`` for log shippers: one JSON object per line with timestamp,
  level, logger, message and any ``extra=`` fields.

Structured logs go to stderr.  Interactive progress lines are written
separately by :mod:`readycore.progress`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

_ROOT_LOGGER = "readycore"

# Attributes every LogRecord has; anything else came from ``extra=``.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(
    level: str = "info",
    fmt: str = "text",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Install a single handler on the ``readycore`` logger.

    Calling it again replaces the previous handler, so the CLI can
    reconfigure after parsing options.

    Args:
        level: debug, info, warning or error
        fmt: ``text`` or ``json``
        stream: Destination, stderr by default

    Returns:
        The configured ``readycore`` logger
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    return logger
