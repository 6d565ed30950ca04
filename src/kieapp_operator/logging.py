"""Structured logging for the KieApp Operator."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .utils.context import get_context_dict

SECRET_FIELDS = {"password", "keystore_password", "keystore", "truststore", "key", "data"}


def setup_structured_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event."""
    log_data = {
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(get_context_dict(kwargs))
    logger.log(level, json.dumps(sanitize_secrets(log_data), default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Remove secret fields from log data."""
    sanitized = log_data.copy()
    for field in SECRET_FIELDS:
        if field in sanitized:
            sanitized[field] = "***REDACTED***"
    return sanitized


class ResourceLogger:
    """Logging capability handed to the reconcile components.

    Each instance carries a set of structured fields (kind, name, namespace, ...)
    that are merged into every record it emits. ``bind`` returns a child with
    extra fields; the parent is left untouched.
    """

    def __init__(self, logger: logging.Logger | None = None, **fields: Any):
        self._logger = logger or logging.getLogger("kieapp_operator")
        self._fields = fields

    @property
    def fields(self) -> dict[str, Any]:
        return dict(self._fields)

    def bind(self, **fields: Any) -> ResourceLogger:
        return ResourceLogger(self._logger, **{**self._fields, **fields})

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _emit(self, level: int, message: str, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        log_data = {"message": message, **self._fields}
        log_data.update(get_context_dict(kwargs))
        self._logger.log(level, json.dumps(sanitize_secrets(log_data), default=str))

    def debug(self, message: str, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._emit(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._emit(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._emit(logging.ERROR, message, **kwargs)
