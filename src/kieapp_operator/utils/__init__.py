"""Utility functions for the KieApp Operator."""

from .cache import (
    get_cached_object,
    invalidate_cache,
    make_cache_key,
    set_cached_object,
)
from .conditions import latest_condition, record_condition
from .context import (
    check_deadline,
    get_context_dict,
    get_correlation_id,
    remaining_time,
    set_correlation_id,
    with_correlation_id,
    with_deadline,
)
from .rate_limit import rate_limit_k8s
from .secrets import build_secret, decode_secret_data, derive_backup_name

__all__ = [
    "record_condition",
    "latest_condition",
    "get_cached_object",
    "set_cached_object",
    "invalidate_cache",
    "make_cache_key",
    "rate_limit_k8s",
    "set_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "with_deadline",
    "check_deadline",
    "remaining_time",
    "get_context_dict",
    "build_secret",
    "decode_secret_data",
    "derive_backup_name",
]
