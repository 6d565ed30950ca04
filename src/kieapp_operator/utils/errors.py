"""Error sanitization utilities to prevent credential leakage."""

import re
from typing import Any


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"-----BEGIN [A-Z ]+-----[\s\S]+?-----END [A-Z ]+-----",
    r"keystore[_\s]?password[:=\s]+\S+",
    r"password[:=\s]+\S+",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "keystorepassword",
    "keystore",
    "truststore",
    "privatekey",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove credential material.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message
    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)
    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | {key.lower() for key in sensitive_keys or set()}
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        normalized = key.lower().replace("_", "").replace("-", "").replace(".", "")
        if any(sensitive in normalized for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
