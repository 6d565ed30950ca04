"""Load the resources currently owned by a KieApp."""

from __future__ import annotations

from typing import Iterable

from ..builders.resources import console_link_name
from ..config import OperatorConfig
from ..errors import ResourceNotFound
from ..logging import ResourceLogger
from ..models import MANAGED_KINDS, ManagedResource, ResourceKind, ResourceSet
from ..services.store import Store
from ..utils.version import is_at_least

# Kinds that are not listed by owner: secrets are looked up by name and the
# console link is cluster-scoped.
_LOOKUP_KINDS = (ResourceKind.SECRET, ResourceKind.CONSOLE_LINK)


def mounted_secret_names(workloads: Iterable[ManagedResource]) -> list[str]:
    """Names of the secrets mounted as volumes by the given workloads, in order."""
    names: list[str] = []
    for workload in workloads:
        pod_spec = ((workload.body.get("spec") or {}).get("template") or {}).get("spec") or {}
        for volume in pod_spec.get("volumes") or []:
            secret_name = (volume.get("secret") or {}).get("secretName")
            if secret_name and secret_name not in names:
                names.append(secret_name)
    return names


class DeployedStateLoader:
    """Query the Store for everything a CR owns."""

    def __init__(self, store: Store, config: OperatorConfig, logger: ResourceLogger) -> None:
        self.store = store
        self.config = config
        self.logger = logger

    def load(
        self,
        namespace: str,
        name: str,
        uid: str | None,
        secret_names: Iterable[str] = (),
    ) -> ResourceSet:
        """Load the deployed ResourceSet of a CR.

        Args:
            namespace: CR namespace
            name: CR name
            uid: CR uid; when unknown only the console link can be attributed to the CR
            secret_names: Additional secret names to look up

        Returns:
            Owned resources grouped by kind
        """
        deployed: ResourceSet = {}
        if uid:
            for kind in MANAGED_KINDS:
                if kind in _LOOKUP_KINDS:
                    continue
                items = self.store.list(kind, namespace, owner_uid=uid)
                if items:
                    deployed[kind] = items

            names = mounted_secret_names(deployed.get(ResourceKind.DEPLOYMENT_CONFIG, []))
            names += [secret_name for secret_name in secret_names if secret_name not in names]
            secrets = self._load_secrets(namespace, uid, names)
            if secrets:
                deployed[ResourceKind.SECRET] = secrets

        if is_at_least(self.config.platform_version, self.config.console_link_min_version):
            link = self._get(ResourceKind.CONSOLE_LINK, None, console_link_name(namespace, name))
            if link is not None:
                deployed[ResourceKind.CONSOLE_LINK] = [link]
        return deployed

    def load_routes(self, namespace: str, requested: Iterable[ManagedResource]) -> dict[str, ManagedResource]:
        """Fetch whichever of the requested routes already exist, keyed by name."""
        routes: dict[str, ManagedResource] = {}
        for route in requested:
            deployed = self._get(ResourceKind.ROUTE, namespace, route.name)
            if deployed is not None:
                routes[route.name] = deployed
        return routes

    def _load_secrets(self, namespace: str, uid: str, names: list[str]) -> list[ManagedResource]:
        secrets = []
        for secret_name in names:
            secret = self._get(ResourceKind.SECRET, namespace, secret_name)
            if secret is not None and secret.is_owned_by(uid):
                secrets.append(secret)
        return secrets

    def _get(self, kind: ResourceKind, namespace: str | None, name: str) -> ManagedResource | None:
        try:
            return self.store.get(kind, namespace, name)
        except ResourceNotFound:
            self.logger.debug("Object does not exist", kind=kind.kind, name=name)
            return None
