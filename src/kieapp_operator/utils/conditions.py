"""Utilities for managing the KieApp condition history."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import MAX_CONDITIONS


def record_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    reason: str | None = None,
    message: str | None = None,
    max_conditions: int = MAX_CONDITIONS,
) -> tuple[list[dict[str, Any]], bool]:
    """Append a condition unless it repeats the most recent one.

    Args:
        conditions: Existing condition history, oldest first
        condition_type: Phase the condition records
        reason: Machine readable reason
        message: Human-readable message
        max_conditions: Size of the history kept

    Returns:
        Tuple of (updated list, whether a condition was appended)
    """
    if conditions:
        last = conditions[-1]
        if (
            last.get("type") == condition_type
            and last.get("reason") == reason
            and last.get("message") == message
        ):
            return conditions, False

    condition: dict[str, Any] = {
        "type": condition_type,
        "status": "True",
        "lastTransitionTime": datetime.now(timezone.utc).isoformat(),
    }
    if reason:
        condition["reason"] = reason
    if message:
        condition["message"] = message

    updated = [*conditions, condition]
    if len(updated) > max_conditions:
        updated = updated[-max_conditions:]
    return updated, True


def latest_condition(conditions: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Return the most recent condition, if any."""
    return conditions[-1] if conditions else None
