"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from kieapp_operator.config import OperatorConfig
from kieapp_operator.cr import KieApp
from kieapp_operator.errors import ResourceAlreadyExists, ResourceConflict, ResourceNotFound
from kieapp_operator.logging import ResourceLogger
from kieapp_operator.models import ManagedResource, ResourceKind
from kieapp_operator.utils.cache import invalidate_cache
from kieapp_operator.utils.context import check_deadline

NAMESPACE = "demo"
CR_NAME = "app"
CR_UID = "uid-kieapp-1"
ROUTE_DOMAIN = "apps.example.com"


class FakeStore:
    """In-memory Store.

    Assigns uids and resourceVersions, rejects stale updates, filters lists by
    owner uid and assigns a hostname to routes created without one.
    """

    def __init__(self, assign_route_hosts: bool = True) -> None:
        self.objects: dict[tuple[str, str | None, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.assign_route_hosts = assign_route_hosts
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    @staticmethod
    def _key(kind: ResourceKind, namespace: str | None, name: str) -> tuple[str, str | None, str]:
        return (kind.kind, namespace if kind.namespaced else None, name)

    def _stamp(self, body: dict[str, Any]) -> None:
        body["metadata"]["resourceVersion"] = str(next(self._versions))

    def add(self, kind: ResourceKind, body: dict[str, Any]) -> ManagedResource:
        """Seed an object without recording a call."""
        resource = ManagedResource(kind, copy.deepcopy(body))
        resource.metadata.setdefault("uid", f"uid-{next(self._uids)}")
        self._stamp(resource.body)
        self.objects[self._key(kind, resource.namespace, resource.name)] = resource.body
        return ManagedResource(kind, copy.deepcopy(resource.body))

    def find(self, kind: ResourceKind, namespace: str | None, name: str) -> dict[str, Any] | None:
        body = self.objects.get(self._key(kind, namespace, name))
        return copy.deepcopy(body) if body is not None else None

    def names(self, kind: ResourceKind) -> list[str]:
        return sorted(key[2] for key in self.objects if key[0] == kind.kind)

    def mutations(self) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[0] in ("create", "update", "delete")]

    def get(self, kind: ResourceKind, namespace: str | None, name: str) -> ManagedResource:
        check_deadline()
        self.calls.append(("get", kind.kind, name))
        body = self.find(kind, namespace, name)
        if body is None:
            raise ResourceNotFound(kind.kind, namespace, name)
        return ManagedResource(kind, body)

    def list(self, kind: ResourceKind, namespace: str | None, owner_uid: str | None = None) -> list[ManagedResource]:
        check_deadline()
        self.calls.append(("list", kind.kind, namespace or ""))
        items = []
        for (kind_name, ns, _), body in self.objects.items():
            if kind_name != kind.kind:
                continue
            if kind.namespaced and namespace and ns != namespace:
                continue
            resource = ManagedResource(kind, copy.deepcopy(body))
            if owner_uid is not None and not resource.is_owned_by(owner_uid):
                continue
            items.append(resource)
        return items

    def create(self, resource: ManagedResource) -> ManagedResource:
        check_deadline()
        self.calls.append(("create", resource.kind.kind, resource.name))
        key = self._key(resource.kind, resource.namespace, resource.name)
        if key in self.objects:
            raise ResourceAlreadyExists(resource.kind.kind, resource.namespace, resource.name)
        body = copy.deepcopy(resource.body)
        body["metadata"]["uid"] = f"uid-{next(self._uids)}"
        if resource.kind is ResourceKind.ROUTE and self.assign_route_hosts:
            spec = body.setdefault("spec", {})
            if not spec.get("host"):
                spec["host"] = f"{resource.name}-{resource.namespace}.{ROUTE_DOMAIN}"
        self._stamp(body)
        self.objects[key] = body
        return ManagedResource(resource.kind, copy.deepcopy(body))

    def _replace(self, resource: ManagedResource, status_only: bool) -> ManagedResource:
        key = self._key(resource.kind, resource.namespace, resource.name)
        current = self.objects.get(key)
        if current is None:
            raise ResourceNotFound(resource.kind.kind, resource.namespace, resource.name)
        if resource.metadata.get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ResourceConflict(resource.kind.kind, resource.namespace, resource.name)
        if status_only:
            body = copy.deepcopy(current)
            body["status"] = copy.deepcopy(resource.body.get("status"))
        else:
            body = copy.deepcopy(resource.body)
            body["metadata"]["uid"] = current["metadata"].get("uid")
            if "status" in current:
                body["status"] = copy.deepcopy(current["status"])
        self._stamp(body)
        self.objects[key] = body
        return ManagedResource(resource.kind, copy.deepcopy(body))

    def update(self, resource: ManagedResource) -> ManagedResource:
        check_deadline()
        self.calls.append(("update", resource.kind.kind, resource.name))
        return self._replace(resource, status_only=False)

    def update_status(self, resource: ManagedResource) -> ManagedResource:
        check_deadline()
        self.calls.append(("update_status", resource.kind.kind, resource.name))
        return self._replace(resource, status_only=True)

    def delete(self, resource: ManagedResource) -> None:
        check_deadline()
        self.calls.append(("delete", resource.kind.kind, resource.name))
        self.objects.pop(self._key(resource.kind, resource.namespace, resource.name), None)


def owner_ref(uid: str = CR_UID, name: str = CR_NAME) -> dict[str, Any]:
    return {
        "apiVersion": "app.kiegroup.org/v2",
        "kind": "KieApp",
        "name": name,
        "uid": uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def route(name: str, tls: bool = True, host: str | None = None) -> dict[str, Any]:
    spec: dict[str, Any] = {"to": {"kind": "Service", "name": name}}
    if tls:
        spec["tls"] = {"termination": "passthrough"}
    if host:
        spec["host"] = host
    return {"metadata": {"name": name}, "spec": spec}


def deployment_config(
    name: str,
    image_tag: str = "rhpam-businesscentral-rhel8:7.13.1",
    secret: str | None = None,
    replicas: int = 1,
    trigger_namespace: str = "openshift",
) -> dict[str, Any]:
    volumes = [{"name": "keystore", "secret": {"secretName": secret}}] if secret else []
    return {
        "metadata": {"name": name},
        "spec": {
            "replicas": replicas,
            "triggers": [
                {
                    "type": "ImageChange",
                    "imageChangeParams": {
                        "automatic": True,
                        "containerNames": [name],
                        "from": {"kind": "ImageStreamTag", "name": image_tag, "namespace": trigger_namespace},
                    },
                },
                {"type": "ConfigChange"},
            ],
            "template": {
                "spec": {
                    "containers": [{"name": name, "image": image_tag}],
                    "volumes": volumes,
                }
            },
        },
    }


def service(name: str) -> dict[str, Any]:
    return {"metadata": {"name": name}, "spec": {"ports": [{"port": 8080}], "selector": {"app": name}}}


def sample_components(tls: bool = True) -> dict[str, Any]:
    """Console plus one KIE server, each with a service and a route."""
    return {
        "console": {
            "deploymentConfigs": [
                deployment_config("app-rhpamcentr", secret="app-businesscentral-app-secret"),
            ],
            "services": [service("app-rhpamcentr")],
            "routes": [route("app-rhpamcentr", tls=tls)],
        },
        "servers": [
            {
                "deploymentConfigs": [
                    deployment_config(
                        "app-kieserver",
                        image_tag="rhpam-kieserver-rhel8:7.13.1",
                        secret="app-kieserver-app-secret",
                    ),
                ],
                "services": [service("app-kieserver")],
                "routes": [route("app-kieserver", tls=tls)],
            }
        ],
    }


def kieapp_body(spec: dict[str, Any] | None = None, status: dict[str, Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "apiVersion": "app.kiegroup.org/v2",
        "kind": "KieApp",
        "metadata": {"name": CR_NAME, "namespace": NAMESPACE, "uid": CR_UID},
        "spec": spec if spec is not None else {"environment": "rhpam-trial", "components": sample_components()},
    }
    if status is not None:
        body["status"] = status
    return body


def make_ca_pem(common_name: str = "Test CA") -> bytes:
    """PEM encoded self-signed CA certificate."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(autouse=True)
def clear_cache():
    """Image tag lookups are cached process-wide."""
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(keystore_password="test-password")


@pytest.fixture
def logger() -> ResourceLogger:
    return ResourceLogger()


@pytest.fixture
def cr(store: FakeStore) -> KieApp:
    """A KieApp stored in the fake store."""
    return KieApp(store.add(ResourceKind.KIEAPP, kieapp_body()).body)
