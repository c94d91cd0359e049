"""Line-delimited JSON logging to stdout.

Every record becomes one object::

    {"type": "info", "message": "...", "timestamp": "2026-01-01T00:00:00.000000+00:00"}

``type`` is ``error`` for ERROR and above, ``info`` otherwise.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone


class JsonLineFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        entry = {
            "type": "error" if record.levelno >= logging.ERROR else "info",
            "message": message,
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        }
        return json.dumps(entry)


def configure_logging(verbose: bool = False, stream=None) -> logging.Handler:
    """Route all logging through one stdout handler using JsonLineFormatter."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonLineFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return handler
