"""Per-pass context: correlation IDs and deadlines."""

from __future__ import annotations

import contextvars
import time
from contextlib import contextmanager
from typing import Any, Iterator

from ..errors import ReconcileCancelled

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

# Monotonic timestamp after which Store calls are refused
deadline: contextvars.ContextVar[float | None] = contextvars.ContextVar("deadline", default=None)


def set_correlation_id(corr_id: str) -> None:
    """Set the correlation ID in the current context."""
    correlation_id.set(corr_id)


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


@contextmanager
def with_correlation_id(corr_id: str) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.

    Args:
        corr_id: Correlation ID to use

    Yields:
        The correlation ID
    """
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


@contextmanager
def with_deadline(seconds: float | None) -> Iterator[float | None]:
    """Bound every Store call made inside the block to ``seconds`` from now.

    ``None`` or a non-positive value disables the deadline.
    """
    expires_at = time.monotonic() + seconds if seconds and seconds > 0 else None
    token = deadline.set(expires_at)
    try:
        yield expires_at
    finally:
        deadline.reset(token)


def remaining_time() -> float | None:
    """Seconds left before the current deadline, or None when unbounded."""
    expires_at = deadline.get()
    if expires_at is None:
        return None
    return max(expires_at - time.monotonic(), 0.0)


def check_deadline() -> None:
    """Raise ReconcileCancelled when the current deadline has passed."""
    left = remaining_time()
    if left is not None and left <= 0:
        raise ReconcileCancelled("reconcile deadline exceeded")


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.

    Args:
        additional: Additional key-value pairs to include

    Returns:
        Dictionary with context values including correlation_id
    """
    ctx = {}

    corr_id = get_correlation_id()
    if corr_id:
        ctx["correlation_id"] = corr_id

    if additional:
        ctx.update(additional)

    return ctx
