"""
Structured Logging for PE2.
One JSON object per line on stderr, so stdout stays free for prompt output.
"""

import json
import logging
import sys
from datetime import datetime, timezone

PACKAGE_LOGGER = "pe2"


class JsonFormatter(logging.Formatter):
    """JSON formatter that carries every ``extra`` field through."""

    # LogRecord internals, never emitted
    RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
        "message", "asctime",
    }

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }

        for key, value in vars(record).items():
            if key in self.RESERVED or key.startswith('_'):
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                # Exceptions, dataclasses and the like
                value = str(value)
            entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


logger = logging.getLogger(PACKAGE_LOGGER)
logger.setLevel(logging.INFO)
logger.propagate = False
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)


def set_level(level: int) -> None:
    """Change the level of the package logger (the CLI uses this for --verbose)."""
    logger.setLevel(level)


def get_logger(component: str = PACKAGE_LOGGER):
    return ComponentLogger(component)


class ComponentLogger:
    """Thin wrapper attaching ``component`` plus keyword fields as extras."""

    def __init__(self, component):
        self.component = component
        self.logger = logger

    def _log(self, level, msg, fields):
        extra = {"component": self.component}
        extra.update(fields)
        self.logger.log(level, msg, extra=extra)

    def debug(self, msg, **kwargs):
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg, **kwargs):
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg, **kwargs):
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg, **kwargs):
        self._log(logging.ERROR, msg, kwargs)
