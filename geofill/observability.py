"""
geofill logging setup

Library modules log through ``logging.getLogger(__name__)`` and never install
handlers. The command-line layer calls ``configure_logging`` once, choosing
plain text or one JSON object per line on stderr.

Copyright (c) 2024 Momentum. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    document: str = ""
    field_name: str = ""
    error_kind: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, sort_keys=True)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                document=getattr(record, "document", ""),
                field_name=getattr(record, "field_name", ""),
                error_kind=getattr(record, "error_kind", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


def configure_logging(level: str = "info", fmt: str = "text", stream: Any = None) -> logging.Logger:
    """Install a single handler on the ``geofill`` logger.

    Calling this again replaces the previous handler, so repeated CLI
    invocations in one process do not duplicate output.
    """
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {level!r}")
    if fmt == "json":
        handler: logging.Handler = StructuredHandler(stream)
    elif fmt == "text":
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        raise ValueError(f"unknown log format: {fmt!r}")

    root = logging.getLogger("geofill")
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(LOG_LEVELS[level])
    root.propagate = False
    return root
