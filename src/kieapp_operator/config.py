"""Operator configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .constants import DEFAULT_IMAGE_REGISTRY
from .utils.version import parse_version


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("true", "1", "yes")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a number, got {value!r}") from e


def _env_version(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        parse_version(value)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a version such as 4.10, got {value!r}") from e
    return value


@dataclass(frozen=True)
class OperatorConfig:
    """Read-only settings shared by every reconcile pass."""

    registry: str = DEFAULT_IMAGE_REGISTRY
    insecure: bool = False
    keystore_password: str = "mykeystorepass"
    platform_version: str = ""
    console_link_min_version: str = "4.2"
    route_requeue_seconds: float = 0.5
    requeue_delay_seconds: float = 1.0
    error_requeue_seconds: float = 30.0
    reconcile_timeout_seconds: float = 120.0
    drift_check_interval_seconds: float = 300.0
    metrics_port: int = 8080

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build the configuration from environment variables.

        Raises:
            ValueError: If a numeric or version variable cannot be parsed
        """
        return cls(
            registry=os.getenv("REGISTRY") or DEFAULT_IMAGE_REGISTRY,
            insecure=_env_bool("INSECURE"),
            keystore_password=os.getenv("KEYSTORE_PASSWORD") or cls.keystore_password,
            platform_version=_env_version("OCP_VERSION", ""),
            console_link_min_version=_env_version("CONSOLE_LINK_MIN_VERSION", cls.console_link_min_version),
            route_requeue_seconds=_env_float("ROUTE_REQUEUE_SECONDS", cls.route_requeue_seconds),
            requeue_delay_seconds=_env_float("REQUEUE_DELAY_SECONDS", cls.requeue_delay_seconds),
            error_requeue_seconds=_env_float("ERROR_REQUEUE_SECONDS", cls.error_requeue_seconds),
            reconcile_timeout_seconds=_env_float("RECONCILE_TIMEOUT_SECONDS", cls.reconcile_timeout_seconds),
            drift_check_interval_seconds=_env_float(
                "DRIFT_CHECK_INTERVAL_SECONDS", cls.drift_check_interval_seconds
            ),
            metrics_port=int(_env_float("METRICS_PORT", cls.metrics_port)),
        )
