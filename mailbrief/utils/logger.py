"""
Process-wide logging setup.

Text output for local runs; JSON lines (LOG_FORMAT=json) for the log
aggregator in deployed environments.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

TEXT_FORMAT = "[%(levelname)s] [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs logs as JSON.

    Features:
    - ISO8601 timestamps
    - Structured fields (level, message, module, function, line)
    - Exception stack traces
    - Extra fields support
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def configure_logging(log_format: str = "text", level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Args:
        log_format: "json" for JSONFormatter output, anything else for plain text
        level: Logging level name
    """
    handler = logging.StreamHandler(sys.stdout)
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


# Example usage:
# logger = logging.getLogger(__name__)
# logger.info("Summary queued", extra={'extra_fields': {'account_id': 'acc-1'}})
