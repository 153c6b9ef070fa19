#!/usr/bin/env python3
"""
sqlferry Logging Setup
======================

Installs one stream handler on the root logger with a selectable format:

- human:      "2024-01-31 12:00:00,000 - INFO - message"
- structured: key=value pairs for log shippers
- json:       one JSON object per line

Modules log through ``logging.getLogger(__name__)``; connection URLs are
passed through ``redact_url`` before they reach a log call.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

HUMAN_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Attributes present on every LogRecord; anything else came in via extra=
_RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


class LogFormatter(logging.Formatter):
    """Formats records as human-readable, structured or JSON lines"""

    def __init__(self, format_type: str = "human"):
        super().__init__(HUMAN_FORMAT)
        self.format_type = format_type.lower()

    def format(self, record: logging.LogRecord) -> str:
        if self.format_type == "json":
            return self._format_json(record)
        elif self.format_type == "structured":
            return self._format_structured(record)
        return super().format(record)

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
        return {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith('_')}

    def _timestamp(self, record: logging.LogRecord) -> str:
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

    def _format_json(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self._timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        fields = self._extra_fields(record)
        if fields:
            payload["fields"] = fields
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def _format_structured(self, record: logging.LogRecord) -> str:
        parts = [
            f"time={self._timestamp(record)}",
            f"level={record.levelname}",
            f"logger={record.name}",
            f"msg=\"{record.getMessage()}\"",
        ]
        for key, value in self._extra_fields(record).items():
            parts.append(f"{key}={value}")
        return " ".join(parts)


def configure_logging(level: str = "INFO", format_type: str = "human",
                      stream: Optional[Any] = None) -> logging.Handler:
    """Replace root handlers with a single formatted stream handler."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(LogFormatter(format_type))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
