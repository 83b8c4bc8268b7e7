"""
Logging Configuration

The engine logs through module-level `logging.getLogger(__name__)` loggers
under the `continuity` namespace and installs no handlers on import. Host
applications that want the engine's logs on stdout can call
`configure_logging()` once at startup.

Usage:
    from continuity.logging_config import configure_logging

    configure_logging("DEBUG")  # human-readable
    configure_logging(json_logs=True)  # one JSON object per line
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from continuity.config import settings

LOGGER_NAMESPACE = "continuity"
CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured log collection."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        return json.dumps(log_data)


def configure_logging(
    log_level: Optional[str] = None, json_logs: bool = False
) -> logging.Logger:
    """
    Attach a stdout handler to the engine's logger namespace.

    Calling it again replaces the previously installed handler.

    Args:
        log_level: Level name (DEBUG, INFO, ...). Defaults to settings.LOG_LEVEL.
        json_logs: Emit JSON lines instead of human-readable text.

    Returns:
        The configured `continuity` logger.
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper())
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_logs else logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(handler)

    return logger
