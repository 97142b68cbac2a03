"""
Logging redaction helpers.
Redacts credentials and subject contact handles from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._]+)"), r"\1[REDACTED]"),
    # Record store service keys (JWT-shaped)
    (re.compile(r"eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[REDACTED]"),
    # Generic api key/secret key/value
    (re.compile(r"(?i)(api[_-]?key|api[_-]?secret|access_token)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
    # Messenger handles of subjects
    (re.compile(r"(?<![\w.])@[A-Za-z0-9_]{5,32}\b"), "@[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed format args; let the handler report it
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def install_redaction_filter() -> None:
    root = logging.getLogger()
    # Logger filters don't see propagated records, so handlers get one too
    for target in [root, *root.handlers]:
        # Avoid duplicate filters
        if any(isinstance(existing, RedactingFilter) for existing in target.filters):
            continue
        target.addFilter(RedactingFilter())
