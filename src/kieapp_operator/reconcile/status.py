"""CR status derivation and optimistic-concurrency safe persistence."""

from __future__ import annotations

import copy
from typing import Any, Iterable

from ..constants import (
    PHASE_CONFIGURATION_ERROR,
    PHASE_DEPLOYED,
    PHASE_FAILED,
    PHASE_MISSING_DEPENDENCY,
    PHASE_PROVISIONING,
)
from ..cr import AppliedConfiguration, KieApp
from ..errors import ErrorClass
from ..logging import ResourceLogger
from ..models import ManagedResource, ResourceKind
from ..services.store import Store
from ..utils.conditions import record_condition

_ERROR_PHASES = {
    ErrorClass.CONFIGURATION: PHASE_CONFIGURATION_ERROR,
    ErrorClass.MISSING_DEPENDENCY: PHASE_MISSING_DEPENDENCY,
    ErrorClass.UNKNOWN: PHASE_FAILED,
}


def derive_phase(has_changes: bool, error_class: ErrorClass | None = None) -> str:
    """Phase reported for a pass.

    Deployed is only reachable from a pass without error and without changes.
    """
    if error_class is not None:
        return _ERROR_PHASES.get(error_class, PHASE_FAILED)
    return PHASE_PROVISIONING if has_changes else PHASE_DEPLOYED


def deployment_summary(deployment_configs: Iterable[ManagedResource]) -> dict[str, list[str]]:
    """Group DeploymentConfig names into ready, starting and stopped."""
    summary: dict[str, list[str]] = {"ready": [], "starting": [], "stopped": []}
    for dc in deployment_configs:
        replicas = (dc.body.get("spec") or {}).get("replicas", 1)
        available = (dc.body.get("status") or {}).get("availableReplicas", 0)
        if replicas == 0:
            summary["stopped"].append(dc.name)
        elif available < replicas:
            summary["starting"].append(dc.name)
        else:
            summary["ready"].append(dc.name)
    return summary


def build_status(
    previous: dict[str, Any],
    phase: str,
    reason: str | None = None,
    message: str | None = None,
    applied: AppliedConfiguration | None = None,
    console_host: str | None = None,
    deployments: dict[str, list[str]] | None = None,
) -> dict[str, Any]:
    """Compute the next status from the previous one.

    Fields not passed are carried over unchanged.
    """
    status = copy.deepcopy(previous)
    conditions, _ = record_condition(status.get("conditions") or [], phase, reason, message)
    status["conditions"] = conditions
    status["phase"] = phase
    if applied is not None:
        status["applied"] = applied.to_dict()
    if console_host is not None:
        status["consoleHost"] = console_host
    if deployments is not None:
        status["deployments"] = deployments
    return status


class StatusWriter:
    """Persists the CR status under optimistic concurrency."""

    def __init__(self, store: Store, logger: ResourceLogger) -> None:
        self.store = store
        self.logger = logger

    def converge(self, in_hand: KieApp, cached: KieApp, status: dict[str, Any]) -> bool:
        """Write ``status`` if it differs from the cached snapshot.

        Args:
            in_hand: CR as read at the start of the pass
            cached: Latest snapshot of the CR
            status: Status computed by the pass

        Returns:
            False when the CR changed during the pass and the write was skipped

        Raises:
            ResourceConflict: If the CR changed between the snapshot and the write
        """
        if status == cached.status:
            return True
        if in_hand.resource_version != cached.resource_version:
            self.logger.info("KieApp changed during reconcile, not updating status")
            return False
        body = copy.deepcopy(cached.body)
        body["status"] = status
        self.store.update_status(ManagedResource(ResourceKind.KIEAPP, body))
        self.logger.debug("Updated status", phase=status.get("phase"))
        return True
