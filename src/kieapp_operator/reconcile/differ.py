"""Partition deployed/requested resources per kind and apply the delta."""

from __future__ import annotations

import copy
from typing import Any

from .. import metrics
from ..cr import KieApp
from ..errors import ResourceConflict
from ..logging import ResourceLogger
from ..models import MANAGED_KINDS, ManagedResource, ResourceDelta, ResourceKind, ResourceSet
from ..services.store import Store
from .comparator import ResourceComparator


def set_owner_reference(resource: ManagedResource, owner: KieApp | None) -> ManagedResource:
    """Make ``owner`` the controller of a namespaced resource.

    Cluster-scoped resources cannot be owned by a namespaced CR and are left untouched.
    """
    if owner is None or not resource.kind.namespaced:
        return resource
    refs = [
        ref for ref in resource.owner_references
        if ref.get("uid") != owner.uid and not ref.get("controller")
    ]
    refs.append(owner.owner_reference())
    resource.metadata["ownerReferences"] = refs
    return resource


def compute_delta(
    kind: ResourceKind,
    deployed: list[ManagedResource],
    requested: list[ManagedResource],
    comparator: ResourceComparator,
) -> ResourceDelta:
    """Pair resources by identity and partition them into added/updated/removed."""
    delta = ResourceDelta(kind)
    deployed_by_id = {resource.identity: resource for resource in deployed}
    requested_ids = set()
    for resource in requested:
        requested_ids.add(resource.identity)
        current = deployed_by_id.get(resource.identity)
        if current is None:
            delta.added.append(resource)
        elif not comparator.equivalent(current, resource):
            delta.updated.append(resource)
    delta.removed = [resource for resource in deployed if resource.identity not in requested_ids]
    return delta


def compare(
    deployed: ResourceSet,
    requested: ResourceSet,
    comparator: ResourceComparator,
) -> list[ResourceDelta]:
    """Compute one delta per kind present on either side, in apply order."""
    kinds = [kind for kind in MANAGED_KINDS if kind in deployed or kind in requested]
    kinds += [kind for kind in {**deployed, **requested} if kind not in MANAGED_KINDS]
    return [
        compute_delta(kind, deployed.get(kind, []), requested.get(kind, []), comparator)
        for kind in kinds
    ]


def prepare_update(current: ManagedResource, requested: ManagedResource) -> ManagedResource:
    """Carry server assigned fields from the deployed object onto its replacement."""
    resource = ManagedResource(requested.kind, copy.deepcopy(requested.body))
    resource.metadata["resourceVersion"] = current.metadata.get("resourceVersion")
    current_spec = current.body.get("spec") or {}
    if resource.kind is ResourceKind.SERVICE:
        spec = resource.body.setdefault("spec", {})
        for field in ("clusterIP", "clusterIPs"):
            if not spec.get(field) and current_spec.get(field):
                spec[field] = current_spec[field]
    elif resource.kind is ResourceKind.ROUTE:
        spec = resource.body.setdefault("spec", {})
        if not spec.get("host") and current_spec.get("host"):
            spec["host"] = current_spec["host"]
    return resource


class Differ:
    """Applies per-kind deltas through the Store."""

    def __init__(self, store: Store, comparator: ResourceComparator, logger: ResourceLogger) -> None:
        self.store = store
        self.comparator = comparator
        self.logger = logger

    def apply(self, owner: KieApp | None, deployed: ResourceSet, requested: ResourceSet) -> bool:
        """Bring the deployed state in line with the requested state.

        Within a kind resources are created, then updated, then removed. The
        first failing Store call aborts the pass.

        Args:
            owner: CR set as controller of created and updated resources
            deployed: Resources currently owned by the CR
            requested: Resources the CR should own

        Returns:
            Whether any resource was created, updated or removed
        """
        has_changes = False
        for delta in compare(deployed, requested, self.comparator):
            if not delta.has_changes():
                continue
            kind = delta.kind
            self.logger.debug(
                f"Will create {len(delta.added)}, update {len(delta.updated)}, "
                f"and delete {len(delta.removed)} instances of {kind.kind}",
                kind=kind.kind,
            )
            current_by_id = {resource.identity: resource for resource in deployed.get(kind, [])}
            for resource in delta.added:
                self._create(set_owner_reference(resource, owner))
            for resource in delta.updated:
                metrics.drift_detected_total.labels(kind=kind.kind).inc()
                updated = prepare_update(current_by_id[resource.identity], resource)
                self._update(set_owner_reference(updated, owner))
            for resource in delta.removed:
                self._delete(resource)
            has_changes = True
        return has_changes

    def _create(self, resource: ManagedResource) -> None:
        self._run("create", resource, self.store.create)

    def _update(self, resource: ManagedResource) -> None:
        self._run("update", resource, self.store.update)

    def _delete(self, resource: ManagedResource) -> None:
        self._run("delete", resource, self.store.delete)

    def _run(self, operation: str, resource: ManagedResource, fn: Any) -> None:
        kind = resource.kind.kind
        log = self.logger.bind(kind=kind, name=resource.name, namespace=resource.namespace)
        log.info(f"{operation.capitalize()} {kind}")
        try:
            fn(resource)
        except ResourceConflict:
            metrics.resource_operations_total.labels(kind=kind, operation=operation, result="conflict").inc()
            log.warning(f"Failed to {operation} object, it changed concurrently")
            raise
        except Exception:
            metrics.resource_operations_total.labels(kind=kind, operation=operation, result="error").inc()
            log.warning(f"Failed to {operation} object")
            raise
        metrics.resource_operations_total.labels(kind=kind, operation=operation, result="success").inc()
