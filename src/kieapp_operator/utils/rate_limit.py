"""Client-side throttling for Kubernetes API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))

# Shared by every worker thread
_k8s_lock = threading.Lock()
_k8s_next_slot: float = 0.0


def _reserve_slot() -> float:
    """Reserve the next free call slot and return how long to wait for it."""
    global _k8s_next_slot
    min_interval = 1.0 / _K8S_RATE_LIMIT_PER_SECOND
    with _k8s_lock:
        now = time.monotonic()
        slot = max(now, _k8s_next_slot)
        _k8s_next_slot = slot + min_interval
        return slot - now


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Calls are spaced at least ``1 / K8S_RATE_LIMIT_PER_SECOND`` apart across all
    threads. Nothing is retried here.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        wait = _reserve_slot()
        if wait > 0:
            time.sleep(wait)
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def reset_rate_limiter() -> None:
    """Forget previously reserved slots."""
    global _k8s_next_slot
    with _k8s_lock:
        _k8s_next_slot = 0.0
