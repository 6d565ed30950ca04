"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CLEANED_UP,
    EVENT_REASON_DEPLOYED,
    EVENT_REASON_PROVISIONING,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_ROUTES_PENDING,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (or metadata) the event is attached to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_routes_pending(body: dict[str, Any]) -> None:
    """Emit event for routes created but not yet assigned a hostname."""
    emit_event(body, EVENT_REASON_ROUTES_PENDING, "Routes created, waiting for hostnames")


def emit_provisioning(body: dict[str, Any]) -> None:
    """Emit provisioning event."""
    emit_event(body, EVENT_REASON_PROVISIONING, "Applied changes to managed resources")


def emit_deployed(body: dict[str, Any]) -> None:
    """Emit deployed event."""
    emit_event(body, EVENT_REASON_DEPLOYED, "All managed resources match the desired state")


def emit_cleaned_up(body: dict[str, Any]) -> None:
    """Emit cleanup event."""
    emit_event(body, EVENT_REASON_CLEANED_UP, "Removed remaining owned resources")
