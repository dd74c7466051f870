"""Logging utilities for funcbridge.

Provides centralized JSON logging configuration and header sanitization for
request/response log entries.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pythonjsonlogger import json as jsonlogger

# Sensitive keys to filter (case-insensitive)
SENSITIVE_KEYS = [
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "token",
    "password",
    "secret",
    "credential",
    "session",
    "cookie",
]

# Sensitive header prefixes (case-insensitive)
SENSITIVE_HEADER_PREFIXES = [
    "x-api-key",
    "x-auth",
    "x-token",
    "x-secret",
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
]

REDACTED = "[REDACTED]"

# LogRecord attributes that are never copied into the pretty output
_RESERVED_RECORD_ATTRS = frozenset(
    (
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName",
        "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "asctime", "datefmt", "taskName",
    )
)


def configure_json_logging(level: str = "INFO", pretty: bool = False) -> None:
    """Configure the root logger to emit JSON.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        pretty: If True, use indented JSON (for local development).
                If False, use compact JSON (for function runtimes).
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)

    if pretty:
        formatter = _PrettyJsonFormatter()
    else:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            timestamp=True,
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


class _PrettyJsonFormatter(logging.Formatter):
    """Indented JSON formatter for local development.

    Long strings are truncated so request dumps stay readable in a terminal.
    """

    def __init__(self, max_string_length: int = 500):
        super().__init__()
        self.max_string_length = max_string_length

    def _truncate(self, value: Any) -> Any:
        if isinstance(value, str) and len(value) > self.max_string_length:
            return value[:self.max_string_length] + f"... (truncated, {len(value)} chars)"
        if isinstance(value, dict):
            return {k: self._truncate(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._truncate(item) for item in value]
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as pretty JSON."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = self._truncate(value)

        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        try:
            return json.dumps(log_data, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return json.dumps({"message": str(record.getMessage())}, indent=2)


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(sensitive_key in key_lower for sensitive_key in SENSITIVE_KEYS)


def sanitize_headers(
    headers: Mapping[str, Union[str, List[str]]],
) -> Dict[str, Union[str, List[str]]]:
    """Redact sensitive HTTP headers.

    Args:
        headers: HTTP headers dictionary (single or multi-value)

    Returns:
        Copy of headers with sensitive values replaced by [REDACTED]
    """
    sanitized = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if any(
            key_lower.startswith(prefix) for prefix in SENSITIVE_HEADER_PREFIXES
        ) or _is_sensitive_key(key):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = value
    return sanitized


def describe_body(body: Optional[Union[str, bytes]]) -> Dict[str, Any]:
    """Summarize a body for logging without logging its content.

    Args:
        body: Request or response body

    Returns:
        Dictionary with the body type and size
    """
    if body is None:
        return {"present": False, "size": 0}
    if isinstance(body, bytes):
        return {"present": True, "type": "bytes", "size": len(body)}
    return {"present": True, "type": "text", "size": len(body.encode("utf-8"))}


def format_request_log(
    adapter_name: str,
    http_method: str,
    request_path: str,
    headers: Mapping[str, Union[str, List[str]]],
    body: Optional[bytes],
    remote_address: Optional[str] = None,
) -> Dict[str, Any]:
    """Format structured request log entry.

    Args:
        adapter_name: Name of the adapter that translated the event
        http_method: HTTP method (GET, POST, etc.)
        request_path: Request path including query string
        headers: Canonical request headers
        body: Canonical request body
        remote_address: Client address if known

    Returns:
        Dictionary with structured log data
    """
    return {
        "adapter": adapter_name,
        "http_method": http_method,
        "request_path": request_path,
        "request_headers": sanitize_headers(headers),
        "request_body": describe_body(body),
        "remote_address": remote_address,
    }


def format_response_log(
    adapter_name: str,
    status_code: int,
    headers: Mapping[str, Union[str, List[str]]],
    body: Optional[Union[str, bytes]],
    duration_ms: float,
    success: bool = True,
) -> Dict[str, Any]:
    """Format structured response log entry.

    Args:
        adapter_name: Name of the adapter answering the event
        status_code: HTTP status code
        headers: Response headers
        body: Response body
        duration_ms: Processing duration in milliseconds
        success: Whether the downstream handler succeeded

    Returns:
        Dictionary with structured log data
    """
    return {
        "adapter": adapter_name,
        "response_status": status_code,
        "response_headers": sanitize_headers(headers),
        "response_body": describe_body(body),
        "duration_ms": round(duration_ms, 2),
        "success": success,
    }
