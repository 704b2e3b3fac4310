"""
Centralized logging configuration for dnsSweep.

Provides structured JSONL logging with rotation, scan-context injection,
and component-specific loggers. Enabled by default with environment
variable configuration.

Scan ID Propagation:
    Use `set_scan_id()` at the start of a scan. Worker threads copy the
    current context when they are dispatched, so every log record emitted
    while scanning a host carries the same "scan_id".

    Example:
        from dnsSweep.logging_config import set_scan_id

        set_scan_id(str(uuid.uuid4()))
        logger.info("Host scanned", extra={"ip": "10.0.0.1"})
        # Log will include: "scan_id": "<uuid>"
"""
import contextvars
import logging
import logging.handlers
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback


_scan_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "scan_id", default=""
)


def set_scan_id(scan_id: str) -> contextvars.Token:
    """
    Set the current scan ID for this context.

    Args:
        scan_id: The scan ID to set

    Returns:
        Token that can be used to reset the context variable
    """
    return _scan_id_var.set(scan_id)


def get_scan_id() -> str:
    """Return the current scan ID, or an empty string if not set."""
    return _scan_id_var.get()


def reset_scan_id(token: contextvars.Token) -> None:
    _scan_id_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Formatter that outputs logs in JSON Lines format.
    Each log entry is a single-line JSON object with standardized fields.
    Automatically includes scan_id from contextvars if set.
    """

    # Extra attributes copied verbatim into the JSON object when present
    EXTRA_ATTRS = (
        "scan_id", "ip", "domain", "fqdn", "query", "network", "duration",
        "outcome", "state", "error_type", "records", "failures",
        "dispatched", "completed", "failed", "in_flight", "concurrency_limit",
        "batch_size", "rows_affected", "action", "db_path",
    )

    def __init__(self, component: str = "dnssweep"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "thread_id": record.thread,
            "thread_name": record.threadName,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        scan_id = get_scan_id()
        if scan_id:
            log_data["scan_id"] = scan_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically injects context into log records.
    The scan coordinator uses it to pin the host address onto every record of a task.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    component: str = "dnssweep",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 10,
    enable_console: bool = True
) -> logging.Logger:
    """
    Set up logging configuration for a dnsSweep component.

    Args:
        component: Component name (scanner, pool, executor, db, cli, etc.)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (default: logs/dnssweep.jsonl)
        max_bytes: Max bytes per log file before rotation (default: 100MB)
        backup_count: Number of backup files to keep (default: 10)
        enable_console: Whether to enable console logging (default: True)

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("DNSSWEEP_LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("DNSSWEEP_LOG_FILE", "logs/dnssweep.jsonl")
    max_bytes = max_bytes or int(os.getenv("DNSSWEEP_LOG_MAX_BYTES", str(100 * 1024 * 1024)))

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(f"dnssweep.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False

    # Avoid duplicate handlers when a component is configured twice
    logger.handlers.clear()

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    formatter = JSONLFormatter(component=component)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except (IOError, OSError) as e:
        sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    if enable_console:
        # stderr keeps stdout free for the rich scan summary
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    logger.debug(
        "Logging configured",
        extra={
            "log_level": log_level,
            "log_file": log_file,
            "max_bytes": max_bytes,
            "backup_count": backup_count,
            "console_enabled": enable_console
        }
    )

    return logger


def get_logger(component: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get or create a logger for a component with optional context.

    Args:
        component: Component name (scanner, pool, executor, db, cli, etc.)
        context: Optional context dictionary to inject into all logs

    Returns:
        Logger or ContextAdapter if context is provided
    """
    logger = logging.getLogger(f"dnssweep.{component}")

    if not logger.handlers:
        logger = setup_logging(component)

    if context:
        return ContextAdapter(logger, context)

    return logger


def set_level(log_level: str) -> None:
    """Apply a log level to every dnsSweep logger configured so far."""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    for name, logger in list(logging.root.manager.loggerDict.items()):
        if not name.startswith("dnssweep.") or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            handler.setLevel(numeric_level)


def sanitize_log_data(data: Dict[str, Any], sensitive_keys: Optional[list] = None) -> Dict[str, Any]:
    """
    Sanitize sensitive data from log dictionaries.

    Args:
        data: Dictionary containing log data
        sensitive_keys: List of keys to redact (case-insensitive)

    Returns:
        Sanitized dictionary with sensitive values replaced
    """
    sensitive_keys = sensitive_keys or [
        "password", "passwd", "pwd", "token", "secret", "api_key",
        "apikey", "auth", "authorization", "dsn"
    ]

    sanitized = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, sensitive_keys)
        elif isinstance(value, list) and value and isinstance(value[0], dict):
            sanitized[key] = [sanitize_log_data(item, sensitive_keys) for item in value]
        else:
            sanitized[key] = value

    return sanitized
