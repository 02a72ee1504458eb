"""Logging setup for the command-line tool.

Diagnostics go to stderr so that stdout carries only the final summary
line. Two formats are available: plain text for interactive use and
structured JSON for log collectors.
"""

import json
import logging
import sys
from datetime import UTC, datetime

LOG_FORMATS = ("text", "json")

TEXT_FORMAT = "%(levelname)s %(message)s"

HANDLER_NAME = "wav_denoise.stderr"


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    SEVERITY_MAP: dict[int, str] = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    EXTRA_FIELDS = (
        "path",
        "stage",
        "endpoint",
        "reason",
        "duration_seconds",
        "processed",
        "skipped",
        "error",
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON string with severity, timestamp, message, and extra fields.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Include extra fields passed via the `extra` kwarg
        for key in self.EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Logging level name (e.g. "INFO", "DEBUG").
        fmt: "text" for plain lines, "json" for structured output.

    Raises:
        ValueError: If the level or format name is not recognised.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: '{level}'")
    if fmt not in LOG_FORMATS:
        raise ValueError(
            f"Unknown log format: '{fmt}'. Available: {', '.join(LOG_FORMATS)}"
        )

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Replace only our own handler so repeated calls do not duplicate output
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(StructuredJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
