"""Rendered desired-state description: sub-components and their manifests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from .models import ResourceKind

# Manifest category -> kind, in flattening order.
CATEGORIES: tuple[tuple[str, ResourceKind], ...] = (
    ("persistentVolumeClaims", ResourceKind.PERSISTENT_VOLUME_CLAIM),
    ("serviceAccounts", ResourceKind.SERVICE_ACCOUNT),
    ("secrets", ResourceKind.SECRET),
    ("roles", ResourceKind.ROLE),
    ("roleBindings", ResourceKind.ROLE_BINDING),
    ("deploymentConfigs", ResourceKind.DEPLOYMENT_CONFIG),
    ("services", ResourceKind.SERVICE),
    ("statefulSets", ResourceKind.STATEFUL_SET),
    ("routes", ResourceKind.ROUTE),
    ("imageStreams", ResourceKind.IMAGE_STREAM),
    ("buildConfigs", ResourceKind.BUILD_CONFIG),
    ("configMaps", ResourceKind.CONFIG_MAP),
)

CATEGORY_BY_KIND = {kind: category for category, kind in CATEGORIES}


def indexed_name(base: str, index: int) -> str:
    """``base`` for the first item, ``base-2``, ``base-3``... after it."""
    return f"{base}-{index + 1}" if index else base


@dataclass
class SubComponent:
    """One deployable piece of the application (console, a server set, a database...)."""

    name: str = ""
    omit: bool = False
    manifests: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    def resources(self, kind: ResourceKind) -> list[dict[str, Any]]:
        return self.manifests.get(CATEGORY_BY_KIND[kind], [])

    @property
    def routes(self) -> list[dict[str, Any]]:
        return self.resources(ResourceKind.ROUTE)

    @property
    def deployment_configs(self) -> list[dict[str, Any]]:
        return self.resources(ResourceKind.DEPLOYMENT_CONFIG)

    @property
    def build_configs(self) -> list[dict[str, Any]]:
        return self.resources(ResourceKind.BUILD_CONFIG)

    def add_secret(self, secret: dict[str, Any]) -> None:
        """Add a secret, replacing any secret of the same name."""
        name = secret.get("metadata", {}).get("name")
        secrets = [
            s for s in self.manifests.get("secrets", [])
            if s.get("metadata", {}).get("name") != name
        ]
        secrets.append(secret)
        self.manifests["secrets"] = secrets

    @classmethod
    def from_manifest(cls, data: dict[str, Any] | None, default_name: str = "") -> SubComponent:
        """Build a sub-component from its manifest; a missing manifest is omitted."""
        if data is None:
            return cls(name=default_name, omit=True)
        if not isinstance(data, dict):
            raise ValueError(f"component {default_name or '?'} must be a mapping")
        manifests: dict[str, list[dict[str, Any]]] = {}
        for category, _ in CATEGORIES:
            items = data.get(category) or []
            if not isinstance(items, list):
                raise ValueError(f"{category} of component {default_name or '?'} must be a list")
            manifests[category] = [dict(item) for item in items]
        return cls(
            name=data.get("name") or default_name,
            omit=bool(data.get("omit", False)),
            manifests=manifests,
        )


@dataclass
class Environment:
    """Desired-state description returned by the resolver."""

    console: SubComponent = field(default_factory=lambda: SubComponent(omit=True))
    dashbuilder: SubComponent = field(default_factory=lambda: SubComponent(omit=True))
    servers: list[SubComponent] = field(default_factory=list)
    smart_router: SubComponent = field(default_factory=lambda: SubComponent(omit=True))
    process_migration: SubComponent = field(default_factory=lambda: SubComponent(omit=True))
    databases: list[SubComponent] = field(default_factory=list)
    others: list[SubComponent] = field(default_factory=list)

    def components(self) -> Iterator[SubComponent]:
        """All sub-components, omitted ones included, in flattening order."""
        yield self.console
        yield self.dashbuilder
        yield from self.servers
        yield self.smart_router
        yield self.process_migration
        yield from self.databases
        yield from self.others

    def shared(self) -> SubComponent:
        """Component holding application-wide objects, created on demand."""
        if not self.others:
            self.others.append(SubComponent(name="shared"))
        return self.others[0]

    @classmethod
    def from_manifest(cls, data: dict[str, Any], application_name: str = "") -> Environment:
        """Build an environment from ``spec.components``.

        Raises:
            ValueError: If the manifest is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("components must be a mapping")

        def many(key: str, prefix: str) -> list[SubComponent]:
            items = data.get(key) or []
            if not isinstance(items, list):
                raise ValueError(f"components.{key} must be a list")
            return [
                SubComponent.from_manifest(item, indexed_name(prefix, i))
                for i, item in enumerate(items)
            ]

        app = application_name or "kieapp"
        return cls(
            console=SubComponent.from_manifest(data.get("console"), f"{app}-rhpamcentr"),
            dashbuilder=SubComponent.from_manifest(data.get("dashbuilder"), f"{app}-dashbuilder"),
            servers=many("servers", f"{app}-kieserver"),
            smart_router=SubComponent.from_manifest(data.get("smartRouter"), f"{app}-smartrouter"),
            process_migration=SubComponent.from_manifest(
                data.get("processMigration"), f"{app}-process-migration"
            ),
            databases=many("databases", f"{app}-database"),
            others=many("others", f"{app}-other"),
        )
