"""
Template Migration Tool - Structured Logging Configuration

Console log entries, token refreshes and per-document outcomes all go through
the root logger; the JSON formatter promotes the migration fields below so a
run can be followed per account or per document.
"""
import logging
import re
import sys
import json
import traceback
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import Request


# Extra fields promoted to top-level keys in JSON output
STRUCTURED_FIELDS = ["role", "document_id", "action", "duration_ms", "status_code", "request_id"]

NOISY_LOGGERS = ["uvicorn", "uvicorn.access", "aiohttp.access", "aiohttp.client"]

# Bearer tokens, OAuth codes and secrets that may appear in URLs or messages
SECRET_PATTERN = re.compile(
    r"(Bearer\s+|(?:access_token|refresh_token|client_secret|code)=)[^\s&\"',]+",
    re.IGNORECASE,
)


def redact(message: str) -> str:
    return SECRET_PATTERN.sub(r"\1***", message)


class RedactingFilter(logging.Filter):
    """Mask credentials before a record reaches any handler"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update({
            key: getattr(record, key) for key in STRUCTURED_FIELDS if hasattr(record, key)
        })

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            entry["extra"] = extra_data

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(entry, default=str)


class MigrationLogger:
    """
    Logger wrapper that turns keyword arguments into structured fields.

    Known fields (role, document_id, ...) become record attributes; anything
    else is grouped under ``extra_data``.
    """

    def __init__(self, name: str = "migration_tool"):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info=None, **fields):
        extra = {key: fields.pop(key) for key in STRUCTURED_FIELDS if key in fields}
        if fields:
            extra["extra_data"] = fields
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **fields):
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields):
        self._log(logging.ERROR, message, **fields)

    def exception(self, message: str, **fields):
        self._log(logging.ERROR, message, exc_info=True, **fields)


def _handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    return handlers


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str = None
):
    """
    Configure the root logger for the API process

    Args:
        level: Log level name
        json_format: JSON lines instead of plain text
        log_file: Also write to this file
    """
    numeric_level = getattr(logging, level.upper())
    formatter = JSONFormatter() if json_format else logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    for handler in _handlers(log_file):
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        handler.addFilter(RedactingFilter())
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "migration_tool") -> MigrationLogger:
    return MigrationLogger(name)


async def log_request(request: Request, response_status: int, duration_ms: float):
    """Log one API call of the console"""
    get_logger("migration_tool.api").info(
        f"{request.method} {request.url.path} {response_status}",
        status_code=response_status,
        duration_ms=round(duration_ms, 2),
        request_id=request.headers.get("X-Request-ID"),
        action=f"api_{request.method.lower()}",
    )
