from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime

HANDLER_NAME = "fan_alert.console"


class ConsoleFormatter(logging.Formatter):
    """Human-readable single-line format."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{timestamp}] {record.levelname:8} {record.name} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO") -> None:
    """
    Attach the stdout handler to the root logger.

    Safe to call more than once: a handler installed by an earlier call is
    replaced, handlers added by anything else are left alone.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        if handler.get_name() == HANDLER_NAME:
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.set_name(HANDLER_NAME)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("twilio.http_client").setLevel(logging.WARNING)


def mask(value: str | None) -> str:
    """
    Mask a credential-like value for logs.

    Longer values keep only the first and last four characters; short ones
    (8 chars or fewer) are starred out entirely.
    """
    if not value:
        return "undefined"
    if len(value) <= 8:
        return "****"
    return value[:4] + "..." + value[-4:]
