"""Logging setup (plain or JSON lines on stderr)."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Extra attributes copied into JSON log lines when present on the record
EXTRA_FIELDS = ("tool", "resource", "page", "page_size", "requests_made", "returned", "duration_ms", "url")


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(*, json_format: bool = False, level: int | str = logging.INFO) -> None:
    """Attach a stderr handler to the package logger.

    Args:
        json_format: Emit JSON lines instead of the plain format
        level: Log level name or number
    """
    root = logging.getLogger("nest_tools")
    root.setLevel(level)

    # Drop handlers from a previous call
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root.addHandler(handler)
