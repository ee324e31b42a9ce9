"""Process logging setup.

Modules log through ``logging.getLogger(__name__)``; this module only
decides where the lines go and what they look like. Call
``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
JSON_FIELDS = ("asctime", "levelname", "name", "message")


def configure_logging(level: str = "INFO", *, json_format: bool = False) -> None:
    """Send all logs to stderr at *level*.

    Raises:
        ValueError: *level* is not a standard level name.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {level}. Valid: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(
            JsonFormatter(
                " ".join(f"%({field})s" for field in JSON_FIELDS),
                rename_fields={"levelname": "level", "name": "logger"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level_upper)
    root.handlers = [handler]

    # The gateway writes its own access log.
    logging.getLogger("uvicorn.access").disabled = True
