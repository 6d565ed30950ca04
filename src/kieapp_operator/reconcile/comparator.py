"""Kind-aware equivalence between deployed and requested resources."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable

from ..constants import LABEL_INJECT_CA_BUNDLE
from ..logging import ResourceLogger
from ..models import ManagedResource, ResourceKind

Equivalence = Callable[[ManagedResource, ManagedResource], bool]

# Top-level fields that never take part in a comparison.
SKIPPED_FIELDS = ("apiVersion", "kind", "metadata", "status")

# Fields the API server fills in when the request leaves them out.
SERVER_DEFAULTED: dict[ResourceKind, tuple[tuple[str, ...], ...]] = {
    ResourceKind.ROUTE: (
        ("spec", "host"),
        ("spec", "wildcardPolicy"),
        ("spec", "to", "weight"),
    ),
    ResourceKind.SERVICE: (
        ("spec", "clusterIP"),
        ("spec", "clusterIPs"),
        ("spec", "type"),
        ("spec", "sessionAffinity"),
        ("spec", "ipFamilies"),
        ("spec", "ipFamilyPolicy"),
        ("spec", "internalTrafficPolicy"),
    ),
    ResourceKind.SECRET: (("type",),),
}


def prune(value: Any) -> Any:
    """Normalise a value the way the API server stores it.

    Empty mappings and lists become None, and None values are dropped from
    mappings, so unset, null and empty compare equal.
    """
    if isinstance(value, dict):
        pruned = {key: prune(item) for key, item in value.items()}
        return {key: item for key, item in pruned.items() if item is not None} or None
    if isinstance(value, list):
        return [prune(item) for item in value] or None
    return value


def mask_defaulted(
    deployed: dict[str, Any],
    requested: dict[str, Any],
    paths: tuple[tuple[str, ...], ...],
) -> dict[str, Any]:
    """Copy of ``deployed`` without the given paths wherever ``requested`` leaves them unset."""
    masked = copy.deepcopy(deployed)
    for path in paths:
        *parents, leaf = path
        target: Any = masked
        source: Any = requested
        for key in parents:
            target = target.get(key) if isinstance(target, dict) else None
            source = source.get(key) if isinstance(source, dict) else None
        if not isinstance(target, dict) or leaf not in target:
            continue
        if isinstance(source, dict) and source.get(leaf) is not None:
            continue
        del target[leaf]
    return masked


def default_equivalent(deployed: ManagedResource, requested: ManagedResource) -> bool:
    """Deep equality over the top-level fields the requested resource declares.

    Labels must match exactly and requested annotations must be present with
    the same values. Each declared field (spec, data, rules, subjects...) is
    compared as a whole, after masking the kind's server-defaulted fields.
    """
    if (deployed.metadata.get("labels") or {}) != (requested.metadata.get("labels") or {}):
        return False
    deployed_annotations = deployed.metadata.get("annotations") or {}
    for key, value in (requested.metadata.get("annotations") or {}).items():
        if deployed_annotations.get(key) != value:
            return False

    deployed_body = mask_defaulted(deployed.body, requested.body, SERVER_DEFAULTED.get(requested.kind, ()))
    for key, value in requested.body.items():
        if key in SKIPPED_FIELDS or value is None:
            continue
        if prune(deployed_body.get(key)) != prune(value):
            return False
    return True


def deployment_config_equivalent(deployed: ManagedResource, requested: ManagedResource) -> bool:
    """Ignore image trigger namespaces the requested side leaves to be resolved at runtime."""
    deployed = ManagedResource(deployed.kind, copy.deepcopy(deployed.body))
    deployed_triggers = (deployed.body.get("spec") or {}).get("triggers") or []
    requested_triggers = (requested.body.get("spec") or {}).get("triggers") or []
    for index, trigger in enumerate(deployed_triggers):
        if index >= len(requested_triggers):
            return False
        deployed_params = trigger.get("imageChangeParams")
        requested_params = requested_triggers[index].get("imageChangeParams")
        if deployed_params is None or requested_params is None:
            continue
        requested_namespace = (requested_params.get("from") or {}).get("namespace")
        if not requested_namespace and "from" in deployed_params:
            deployed_params["from"]["namespace"] = requested_namespace
    return default_equivalent(deployed, requested)


def build_config_equivalent(deployed: ManagedResource, requested: ManagedResource) -> bool:
    """Ignore the resolved source image namespace and platform generated triggers."""
    deployed = ManagedResource(deployed.kind, copy.deepcopy(deployed.body))
    deployed_spec = deployed.body.setdefault("spec", {})
    requested_spec = requested.body.get("spec") or {}

    deployed_source = (deployed_spec.get("strategy") or {}).get("sourceStrategy")
    if deployed_source is not None:
        requested_from = ((requested_spec.get("strategy") or {}).get("sourceStrategy") or {}).get("from") or {}
        deployed_source.setdefault("from", {})["namespace"] = requested_from.get("namespace")

    if deployed_spec.get("triggers") and not requested_spec.get("triggers"):
        deployed_spec["triggers"] = copy.deepcopy(requested_spec.get("triggers"))
    return default_equivalent(deployed, requested)


def config_map_equivalent(deployed: ManagedResource, requested: ManagedResource) -> bool:
    """Compare identity, labels and annotations; data too unless the platform injects it."""
    pairs: list[tuple[Any, Any]] = [
        (deployed.name, requested.name),
        (deployed.namespace, requested.namespace),
        (deployed.metadata.get("labels") or {}, requested.metadata.get("labels") or {}),
        (deployed.metadata.get("annotations") or {}, requested.metadata.get("annotations") or {}),
    ]
    if (deployed.metadata.get("labels") or {}).get(LABEL_INJECT_CA_BUNDLE) != "true":
        pairs.append((deployed.body.get("data") or {}, requested.body.get("data") or {}))
        pairs.append((deployed.body.get("binaryData") or {}, requested.body.get("binaryData") or {}))
    return all(left == right for left, right in pairs)


class ResourceComparator:
    """Registry of equivalence predicates keyed by kind."""

    def __init__(self, logger: ResourceLogger) -> None:
        self.logger = logger
        self._registry: dict[ResourceKind, Equivalence] = {
            ResourceKind.DEPLOYMENT_CONFIG: deployment_config_equivalent,
            ResourceKind.BUILD_CONFIG: build_config_equivalent,
            ResourceKind.CONFIG_MAP: config_map_equivalent,
        }

    def register(self, kind: ResourceKind, equivalence: Equivalence) -> None:
        self._registry[kind] = equivalence

    def get(self, kind: ResourceKind) -> Equivalence:
        return self._registry.get(kind, default_equivalent)

    def equivalent(self, deployed: ManagedResource, requested: ManagedResource) -> bool:
        equal = self.get(requested.kind)(deployed, requested)
        if not equal:
            log = self.logger.bind(kind=requested.kind.kind, name=requested.name, namespace=requested.namespace)
            if requested.kind is ResourceKind.CONFIG_MAP and log.is_enabled_for(logging.INFO):
                log.info(
                    "Resources are not equal",
                    deployed_resource=json.dumps(deployed.body, default=str, sort_keys=True),
                    requested_resource=json.dumps(requested.body, default=str, sort_keys=True),
                )
            else:
                log.debug("Resources are not equal")
        return equal
