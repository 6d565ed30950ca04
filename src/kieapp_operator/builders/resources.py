"""Build the flat requested ResourceSet from an Environment."""

from __future__ import annotations

import copy
from typing import Iterable

from ..cr import AppliedConfiguration, KieApp
from ..environment import CATEGORIES, Environment
from ..errors import ConfigurationError
from ..models import ManagedResource, ResourceKind, ResourceSet
from ..utils.version import is_at_least

PRODUCT_NAMES = {
    "rhpam": "Red Hat Process Automation Manager",
    "rhdm": "Red Hat Decision Manager",
}


def flatten(
    environment: Environment,
    namespace: str,
    kinds: Iterable[ResourceKind] | None = None,
) -> ResourceSet:
    """Flatten every non-omitted sub-component into a ResourceSet.

    Bodies are deep-copied; each one is stamped with its kind and, unless the
    kind is cluster-scoped, with ``namespace``.

    Args:
        environment: Desired-state description
        namespace: Namespace of the owning CR
        kinds: Restrict the result to these kinds

    Returns:
        Resources grouped by kind, in component order

    Raises:
        ConfigurationError: If two resources share the same identity
    """
    wanted = set(kinds) if kinds is not None else None
    result: ResourceSet = {}
    seen: set[tuple[str, str | None, str]] = set()
    for component in environment.components():
        if component.omit:
            continue
        for _, kind in CATEGORIES:
            if wanted is not None and kind not in wanted:
                continue
            for body in component.resources(kind):
                resource = ManagedResource(kind, copy.deepcopy(body))
                if kind.namespaced:
                    resource.metadata["namespace"] = namespace
                else:
                    resource.metadata.pop("namespace", None)
                if not resource.name:
                    raise ConfigurationError(f"{kind.kind} in component {component.name} has no name")
                if resource.identity in seen:
                    raise ConfigurationError(
                        f"duplicate {kind.kind} {resource.namespace}/{resource.name} in desired state"
                    )
                seen.add(resource.identity)
                result.setdefault(kind, []).append(resource)
    return result


def requested_routes(environment: Environment, namespace: str) -> list[ManagedResource]:
    """The routes subset of the desired state."""
    return flatten(environment, namespace, kinds=(ResourceKind.ROUTE,)).get(ResourceKind.ROUTE, [])


def console_link_name(namespace: str, name: str) -> str:
    return f"{namespace}-link-{name}"


def console_link(
    cr: KieApp,
    applied: AppliedConfiguration,
    console_host: str,
    platform_version: str,
    min_version: str,
) -> ManagedResource | None:
    """Namespace dashboard link to the console, when the platform supports it.

    Only requested for a live CR whose console is served over HTTPS.
    """
    if cr.is_deleting or not console_host.startswith("https://"):
        return None
    if not is_at_least(platform_version, min_version):
        return None
    product = PRODUCT_NAMES.get(applied.product, applied.product)
    return ManagedResource(
        ResourceKind.CONSOLE_LINK,
        {
            "metadata": {
                "name": console_link_name(cr.namespace, cr.name),
                "labels": {
                    "rhpam-namespace": cr.namespace,
                    "rhpam-app": cr.name,
                },
            },
            "spec": {
                "href": console_host,
                "text": f"{cr.name}: {product}",
                "location": "NamespaceDashboard",
                "namespaceDashboard": {"namespaces": [cr.namespace]},
            },
        },
    )
