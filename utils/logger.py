"""
Helpers for structured log lines: redaction of credentials and the
per-request access log entry.
"""

import logging
from typing import Any, Dict, Optional

from core.logging_config import get_logger  # noqa: F401

REDACTED = "***REDACTED***"

# Matched as substrings of the lowercased key, so "password_hash" and
# "jwt_secret" are caught too
SENSITIVE_FIELDS = {
    'password', 'token', 'secret', 'api_key', 'authorization', 'hash'
}

TOKEN_PREFIX_LENGTH = 8


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in SENSITIVE_FIELDS)


def _mask(key: str, value: str) -> str:
    # A token prefix is enough to correlate lines and useless to an attacker
    if 'token' in key.lower() and len(value) > TOKEN_PREFIX_LENGTH:
        return f"{value[:TOKEN_PREFIX_LENGTH]}..."
    return REDACTED


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of `data` that is safe to log.

    String values under sensitive keys are masked: tokens keep their first
    8 characters, everything else becomes "***REDACTED***". Nested dicts
    are sanitized as well. The input is never modified.
    """
    sanitized = {}

    for key, value in data.items():
        if isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)
        elif isinstance(value, str) and _is_sensitive(key):
            sanitized[key] = _mask(key, value)
        else:
            sanitized[key] = value

    return sanitized


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None
):
    """
    Emit one access-log line; 5xx log as ERROR, 4xx as WARNING, the rest as INFO.

    Usage:
        log_request(logger, "POST", "/auth/login", 200, 45.2, user_id="...")
    """
    log_data: Dict[str, Any] = {
        "http_method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if user_id:
        log_data["user_id"] = user_id

    if extra:
        log_data.update(sanitize_log_data(extra))

    logger.log(_level_for(status_code), f"{method} {path} - {status_code}", extra=log_data)
