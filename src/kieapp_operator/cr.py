"""KieApp custom resource model and the applied configuration snapshot."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .constants import API_GROUP_VERSION, KEYSTORE_SECRET_FORMAT, KIND_KIEAPP


@dataclass(frozen=True)
class ImageRegistry:
    """Registry override from ``spec.imageRegistry``."""

    registry: str = ""
    insecure: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"registry": self.registry, "insecure": self.insecure}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ImageRegistry | None:
        if data is None:
            return None
        return cls(registry=data.get("registry") or "", insecure=bool(data.get("insecure", False)))


@dataclass(frozen=True)
class ServerSet:
    """One set of KIE servers; ``deployment_name`` names its DeploymentConfig."""

    deployment_name: str
    keystore_secret: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"deploymentName": self.deployment_name}
        if self.keystore_secret:
            data["keystoreSecret"] = self.keystore_secret
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerSet:
        return cls(
            deployment_name=data["deploymentName"],
            keystore_secret=data.get("keystoreSecret") or "",
        )


@dataclass(frozen=True)
class ObjectRef:
    """A namespaced object the CR points at, e.g. ``spec.auth.roleMapper.from``."""

    kind: str
    name: str
    field_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "fieldPath": self.field_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObjectRef:
        return cls(kind=data["kind"], name=data["name"], field_path=data.get("fieldPath") or "")


@dataclass(frozen=True)
class AppliedConfiguration:
    """Resolved desired-state parameters for one pass.

    Persisted as ``status.applied``. Immutable once computed.
    """

    environment: str
    application_name: str
    product: str
    version: str
    keystore_password: str
    disable_ssl: bool = False
    use_openshift_ca: bool = False
    use_image_tags: bool = False
    scheduled_import_policy: bool = False
    image_registry: ImageRegistry | None = None
    console_keystore_secret: str = ""
    dashbuilder_keystore_secret: str = ""
    smart_router_keystore_secret: str = ""
    servers: tuple[ServerSet, ...] = ()
    external_references: tuple[ObjectRef, ...] = ()

    def keystore_secret_name(self, suffix: str) -> str:
        """Name of a generated keystore secret, e.g. ``<app>-businesscentral-app-secret``."""
        return KEYSTORE_SECRET_FORMAT.format(f"{self.application_name}-{suffix}")

    def server_set(self, index: int, fallback_name: str) -> ServerSet:
        """Server set for the ``index``-th server component."""
        if index < len(self.servers):
            return self.servers[index]
        return ServerSet(deployment_name=fallback_name)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "environment": self.environment,
            "applicationName": self.application_name,
            "product": self.product,
            "version": self.version,
            "disableSsl": self.disable_ssl,
            "useOpenshiftCA": self.use_openshift_ca,
            "useImageTags": self.use_image_tags,
            "scheduledImportPolicy": self.scheduled_import_policy,
            "keystoreSecrets": {
                "console": self.console_keystore_secret,
                "dashbuilder": self.dashbuilder_keystore_secret,
                "smartRouter": self.smart_router_keystore_secret,
            },
            "servers": [server.to_dict() for server in self.servers],
            "externalReferences": [ref.to_dict() for ref in self.external_references],
        }
        if self.image_registry is not None:
            data["imageRegistry"] = self.image_registry.to_dict()
        # keystore_password is deliberately left out of the status
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], keystore_password: str) -> AppliedConfiguration:
        keystores = data.get("keystoreSecrets") or {}
        return cls(
            environment=data["environment"],
            application_name=data["applicationName"],
            product=data["product"],
            version=data["version"],
            keystore_password=keystore_password,
            disable_ssl=bool(data.get("disableSsl", False)),
            use_openshift_ca=bool(data.get("useOpenshiftCA", False)),
            use_image_tags=bool(data.get("useImageTags", False)),
            scheduled_import_policy=bool(data.get("scheduledImportPolicy", False)),
            image_registry=ImageRegistry.from_dict(data.get("imageRegistry")),
            console_keystore_secret=keystores.get("console") or "",
            dashbuilder_keystore_secret=keystores.get("dashbuilder") or "",
            smart_router_keystore_secret=keystores.get("smartRouter") or "",
            servers=tuple(ServerSet.from_dict(s) for s in data.get("servers") or []),
            external_references=tuple(
                ObjectRef.from_dict(r) for r in data.get("externalReferences") or []
            ),
        )


@dataclass
class KieApp:
    """Thin wrapper over a KieApp body as returned by the API server."""

    body: dict[str, Any] = field(default_factory=dict)

    @property
    def metadata(self) -> dict[str, Any]:
        return self.body.setdefault("metadata", {})

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "")

    @property
    def uid(self) -> str:
        return self.metadata.get("uid", "")

    @property
    def resource_version(self) -> str | None:
        return self.metadata.get("resourceVersion")

    @property
    def is_deleting(self) -> bool:
        return bool(self.metadata.get("deletionTimestamp"))

    @property
    def spec(self) -> dict[str, Any]:
        return self.body.get("spec") or {}

    @property
    def status(self) -> dict[str, Any]:
        return self.body.get("status") or {}

    def owner_reference(self, controller: bool = True) -> dict[str, Any]:
        ref: dict[str, Any] = {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_KIEAPP,
            "name": self.name,
            "uid": self.uid,
        }
        if controller:
            ref["controller"] = True
            ref["blockOwnerDeletion"] = True
        return ref

    def copy(self) -> KieApp:
        return KieApp(copy.deepcopy(self.body))
