"""
Centralized logging configuration.
Structured logging for audit trails (record/goal/alert changes), request
timing and debugging. Console output is human readable; the optional file
handler writes one JSON object per line.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

LOGGER_NAMESPACE = "driver_finance"


class JSONFormatter(logging.Formatter):
    """
    Render log records as single-line JSON documents.
    Structured keyword context passed to StructuredLogger ends up as top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_entry.update(extra_data)

        log_entry["process_id"] = record.process
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Thin wrapper so call sites can pass context as keyword arguments:

        logger.info("Goal progress synced", owner_id=3, goal_id=7)
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_extra(self, level: int, message: str, exc_info: bool = False, **kwargs):
        extra_data = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={"extra_data": extra_data})

    def info(self, message: str, **kwargs):
        self._log_with_extra(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_extra(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_extra(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log_with_extra(logging.DEBUG, message, **kwargs)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Configure the service loggers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating JSON log output
        enable_console: Whether to log to stdout
    """
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handler_names: list[str] = []
    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JSONFormatter,
            },
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": {},
        "loggers": {
            LOGGER_NAMESPACE: {
                "level": log_level,
                "handlers": handler_names,
                "propagate": False
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": handler_names,
                "propagate": False
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": handler_names,
                "propagate": False
            }
        },
        "root": {
            "level": log_level,
            "handlers": handler_names
        }
    }

    if enable_console:
        config["handlers"]["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "standard",
            "level": log_level
        }
        handler_names.append("console")

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "formatter": "json",
            "level": log_level
        }
        handler_names.append("file")

    logging.config.dictConfig(config)


def get_logger(name: str) -> StructuredLogger:
    """Return a StructuredLogger under the service namespace (pass ``__name__``)."""
    if name.startswith(f"{LOGGER_NAMESPACE}.") or name == LOGGER_NAMESPACE:
        return StructuredLogger(name)
    return StructuredLogger(f"{LOGGER_NAMESPACE}.{name}")


def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    owner_id: Optional[int] = None,
    request_id: Optional[str] = None
) -> None:
    """
    Audit trail entry for a state change.

    Args:
        event_type: e.g. 'record_created', 'goal_achieved', 'alerts_generated'
        details: Event-specific details
        owner_id: Owner the event belongs to
        request_id: Request ID for tracing
    """
    audit_logger = get_logger("audit")
    audit_logger.info(
        f"Business event: {event_type}",
        event_type=event_type,
        owner_id=owner_id,
        request_id=request_id,
        **details
    )


def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    perf_logger = get_logger("performance")
    data = {"duration_ms": round(duration_ms, 2)}
    if additional_data:
        data.update(additional_data)

    perf_logger.info(
        f"Performance: {operation}",
        operation=operation,
        **data
    )
