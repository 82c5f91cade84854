"""
Formatters for client log output.

JSONFormatter writes one object per line for log shippers and jq.
ConsoleFormatter writes a short human-readable line for terminals.

Both read request correlation (client_name, operation, request_id,
storefront) from the logging context vars, so call sites only pass what is
specific to the event in extra={...}.
"""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context
from core.utils.json_serializers import json_serializer

CONTEXT_FIELDS = ("client_name", "operation", "request_id", "storefront")

# extra={...} keys copied into JSON lines, with the type each is coerced to.
# None means "emit as given".
LOGGED_FIELDS: dict[str, type | None] = {
    # Request
    "api_method": None,
    "api_url": None,
    "api_path": None,
    "http_method": None,
    "http_url": None,
    "url": None,
    "http_status": int,
    "response_bytes": int,
    "request_headers": None,
    "has_body": None,
    "duration_ms": float,
    "duration_seconds": float,
    # Failures
    "error": None,
    "error_category": None,
    "error_code": None,
    "error_message": None,
    "error_title": None,
    "error_type": None,
    "status_code": int,
    # Retry and throttle
    "attempt": int,
    "max_attempts": int,
    "total_attempts": int,
    "delay_seconds": float,
    "callback_error": None,
    "rate_limiter": None,
    "limit_per_second": int,
    "calls_in_window": int,
    "wait_seconds": float,
    # Developer token
    "auth_mode": None,
    "issuer": None,
    "key_id": None,
    "expires_at": None,
    "seconds_until_expiry": float,
    "validity_seconds": float,
    "renewal_threshold_seconds": float,
    # Catalog and paging
    "operation": None,
    "request_id": None,
    "resource_type": None,
    "resource_id": None,
    "resource_count": int,
    "search_term": None,
    "page_count": int,
    "limit": int,
    "offset": int,
}

URL_FIELDS = frozenset({"url", "http_url", "api_url"})

_SECRET_QUERY_PARAM = re.compile(
    r"([?&])(sig|token|key|secret|password|auth)=[^&]*",
    re.IGNORECASE,
)


def redact_url(url: str) -> str:
    """Replace the values of credential-like query parameters with [REDACTED]."""
    return _SECRET_QUERY_PARAM.sub(r"\1\2=[REDACTED]", url)


def _coerce(name: str, value: Any) -> Any:
    target = LOGGED_FIELDS.get(name)
    if target is not None:
        try:
            value = target(value)
        except (TypeError, ValueError):
            # Mistyped values are logged as null
            return None
    if name in URL_FIELDS and isinstance(value, str):
        return redact_url(value)
    return value


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Always present: ts (UTC, millisecond precision), level, logger, message.
    Non-empty context vars and known extra fields are added; source file and
    line are added for DEBUG and ERROR and above. Exceptions become an
    "exception" object with type, message and stacktrace.
    """

    SOURCE_LEVELS = frozenset({logging.DEBUG, logging.ERROR, logging.CRITICAL})

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(UTC)
        entry: dict[str, Any] = {
            "ts": now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = get_log_context()
        entry.update({key: ctx[key] for key in CONTEXT_FIELDS if ctx[key]})

        if record.levelno in self.SOURCE_LEVELS:
            entry["file"] = f"{record.filename}:{record.lineno}"

        for name in LOGGED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = _coerce(name, value)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line console output:

        2026-01-02 03:04:05 - INFO - [client] - [operation] - [r-1a2b3c4d] [sf:us] [200] message

    Level names are colored only when stdout is a terminal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self._use_colors else None
        if color is None:
            return record.levelname
        return f"{color}{record.levelname}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        segments = [datetime.now().strftime("%Y-%m-%d %H:%M:%S"), self._level(record)]
        segments.extend(f"[{ctx[key]}]" for key in ("client_name", "operation") if ctx[key])

        request_id = getattr(record, "request_id", None) or ctx["request_id"]
        http_status = getattr(record, "http_status", None)
        tags = [
            f"[{request_id}]" if request_id else "",
            f"[sf:{ctx['storefront']}]" if ctx["storefront"] else "",
            f"[{http_status}]" if http_status else "",
        ]

        text = record.getMessage()
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)

        tag_text = " ".join(tag for tag in tags if tag)
        segments.append(f"{tag_text} {text}" if tag_text else text)
        return " - ".join(segments)


__all__ = [
    "JSONFormatter",
    "ConsoleFormatter",
    "LOGGED_FIELDS",
    "redact_url",
]
