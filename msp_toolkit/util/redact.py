"""Utilities for redacting sensitive data from strings."""

import re

# Patterns for sensitive data that should be redacted
SENSITIVE_PATTERNS = [
    # IT Glue API keys
    (r"ITG\.[a-zA-Z0-9._\-]{16,}", "ITG.REDACTED"),
    # API keys, tokens, secrets in headers, query strings and JSON bodies
    (r'(x-api-key|api[_-]?key|token|secret|password)(["\']?\s*[=:]\s*["\']?)[^\s"\',&}]+', r"\1\2REDACTED"),
    # Bearer tokens
    (r"Bearer\s+\S+", "Bearer REDACTED"),
]


def redact_sensitive(text: str) -> str:
    """
    Redact sensitive data from text using pattern matching.

    Args:
        text: Text potentially containing sensitive data

    Returns:
        Text with sensitive data replaced with REDACTED markers

    Example:
        >>> redact_sensitive('{"password": "hunter2"}')
        '{"password": "REDACTED"}'
    """
    result = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE)
    return result


def truncate(text: str, limit: int = 2000) -> str:
    """Trim long response bodies before they reach logs or exception messages."""
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more characters]"
