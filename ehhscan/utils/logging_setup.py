"""Logging configuration; diagnostics always go to stderr."""

import json
import logging
import sys
import time
from typing import Optional

__all__ = ["JsonFormatter", "TEXT_FORMAT", "setup_logger"]

TEXT_FORMAT = "[%(levelname)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record with level, logger, message and UTC time."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _formatter_for(format_type: str) -> logging.Formatter:
    if format_type == "json":
        return JsonFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logger(
    name: str = "ehhscan",
    level: Optional[str] = None,
    format_type: str = "text",
    verbose: bool = True,
) -> logging.Logger:
    """Configure and return the named logger.

    The logger owns a single stderr handler; calling again only swaps the
    formatter and level, so repeated runs in one process never duplicate
    output.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR) or None for default
        format_type: Output format: "text" or "json"
        verbose: INFO by default when True, WARNING otherwise

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler(sys.stderr))
        logger.propagate = False

    formatter = _formatter_for(format_type)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    level_name = (level or ("INFO" if verbose else "WARNING")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    return logger
