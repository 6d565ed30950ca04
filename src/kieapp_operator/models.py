"""Typed resource model shared by the reconcile components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class ResourceKind(Enum):
    """Closed set of kinds the operator reads or writes.

    Member order is the order in which kinds are diffed and applied.
    """

    PERSISTENT_VOLUME_CLAIM = ("v1", "PersistentVolumeClaim", True)
    SERVICE_ACCOUNT = ("v1", "ServiceAccount", True)
    SECRET = ("v1", "Secret", True)
    ROLE = ("rbac.authorization.k8s.io/v1", "Role", True)
    ROLE_BINDING = ("rbac.authorization.k8s.io/v1", "RoleBinding", True)
    DEPLOYMENT_CONFIG = ("apps.openshift.io/v1", "DeploymentConfig", True)
    SERVICE = ("v1", "Service", True)
    STATEFUL_SET = ("apps/v1", "StatefulSet", True)
    ROUTE = ("route.openshift.io/v1", "Route", True)
    IMAGE_STREAM = ("image.openshift.io/v1", "ImageStream", True)
    BUILD_CONFIG = ("build.openshift.io/v1", "BuildConfig", True)
    CONFIG_MAP = ("v1", "ConfigMap", True)
    CONSOLE_LINK = ("console.openshift.io/v1", "ConsoleLink", False)
    IMAGE_STREAM_TAG = ("image.openshift.io/v1", "ImageStreamTag", True)
    KIEAPP = ("app.kiegroup.org/v2", "KieApp", True)

    def __init__(self, api_version: str, kind: str, namespaced: bool):
        self.api_version = api_version
        self.kind = kind
        self.namespaced = namespaced

    @classmethod
    def from_kind(cls, kind: str) -> ResourceKind:
        for member in cls:
            if member.kind == kind:
                return member
        raise ValueError(f"Unsupported kind: {kind}")


# Kinds owned by a KieApp and subject to diffing, in apply order.
MANAGED_KINDS: tuple[ResourceKind, ...] = (
    ResourceKind.PERSISTENT_VOLUME_CLAIM,
    ResourceKind.SERVICE_ACCOUNT,
    ResourceKind.SECRET,
    ResourceKind.ROLE,
    ResourceKind.ROLE_BINDING,
    ResourceKind.DEPLOYMENT_CONFIG,
    ResourceKind.SERVICE,
    ResourceKind.STATEFUL_SET,
    ResourceKind.ROUTE,
    ResourceKind.IMAGE_STREAM,
    ResourceKind.BUILD_CONFIG,
    ResourceKind.CONFIG_MAP,
    ResourceKind.CONSOLE_LINK,
)


@dataclass
class ManagedResource:
    """One Kubernetes object tagged with its kind."""

    kind: ResourceKind
    body: dict[str, Any]

    def __post_init__(self) -> None:
        self.body.setdefault("metadata", {})
        self.body["apiVersion"] = self.kind.api_version
        self.body["kind"] = self.kind.kind

    @property
    def metadata(self) -> dict[str, Any]:
        return self.body["metadata"]

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace") if self.kind.namespaced else None

    @property
    def identity(self) -> tuple[str, str | None, str]:
        return (self.kind.kind, self.namespace, self.name)

    @property
    def owner_references(self) -> list[dict[str, Any]]:
        return self.metadata.get("ownerReferences") or []

    def is_owned_by(self, uid: str) -> bool:
        return any(ref.get("uid") == uid for ref in self.owner_references)


ResourceSet = dict[ResourceKind, list[ManagedResource]]


def group_by_kind(resources: Iterable[ManagedResource]) -> ResourceSet:
    """Build a ResourceSet, keeping the input order within each kind."""
    grouped: ResourceSet = {}
    for resource in resources:
        grouped.setdefault(resource.kind, []).append(resource)
    return grouped


@dataclass
class ResourceDelta:
    """Per-kind partition of a diff."""

    kind: ResourceKind
    added: list[ManagedResource] = field(default_factory=list)
    updated: list[ManagedResource] = field(default_factory=list)
    removed: list[ManagedResource] = field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)


@dataclass
class ReconcileOutcome:
    """Result of one reconcile pass, consumed by the kopf handler."""

    has_changes: bool = False
    requeue: bool = False
    requeue_after: float | None = None
    phase: str | None = None
    reason: str | None = None
    error: Exception | None = None

    @property
    def should_requeue(self) -> bool:
        return self.requeue or self.requeue_after is not None
