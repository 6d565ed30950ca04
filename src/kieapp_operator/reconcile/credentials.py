"""Keystore and truststore secrets bound to route hostnames and CA material."""

from __future__ import annotations

from typing import Any

from .. import metrics
from ..constants import (
    ENV_STANDALONE_DASHBUILDER,
    KEYSTORE_KEY,
    KEYSTORE_SECRET_FORMAT,
    TRUSTSTORE_KEY,
    TRUSTSTORE_PASSWORD,
    TRUSTSTORE_SECRET_SUFFIX,
)
from ..cr import AppliedConfiguration, KieApp
from ..environment import Environment, SubComponent
from ..errors import ResourceAlreadyExists, ResourceNotFound
from ..logging import ResourceLogger
from ..models import ManagedResource, ResourceKind
from ..services.store import Store
from ..utils.keystores import (
    generate_keystore,
    generate_truststore,
    is_valid_keystore,
    is_valid_truststore,
)
from ..utils.secrets import build_backup_secret, build_secret, decode_secret_data, derive_backup_name


def has_tls(route: dict[str, Any]) -> bool:
    return (route.get("spec") or {}).get("tls") is not None


def first_tls_host(component: SubComponent, hosts: dict[str, str]) -> str:
    """Host of the first TLS route of a component, or "" when none is resolved."""
    for route in component.routes:
        if has_tls(route):
            return hosts.get((route.get("metadata") or {}).get("name", ""), "")
    return ""


def console_common_name(environment: Environment, applied: AppliedConfiguration, hosts: dict[str, str]) -> str:
    """CN of the console endpoint: the dashbuilder for the standalone dashbuilder environment."""
    if applied.environment == ENV_STANDALONE_DASHBUILDER:
        return first_tls_host(environment.dashbuilder, hosts)
    return first_tls_host(environment.console, hosts)


def console_host(environment: Environment, applied: AppliedConfiguration, hosts: dict[str, str]) -> str:
    """External URL of the console reported in the CR status."""
    cn = console_common_name(environment, applied, hosts)
    if cn:
        return f"https://{cn}"
    return f"http://{applied.application_name}"


class CredentialProvisioner:
    """Adds keystore and truststore secrets to the environment, reusing valid ones."""

    def __init__(self, store: Store, logger: ResourceLogger) -> None:
        self.store = store
        self.logger = logger

    def provision(
        self,
        cr: KieApp,
        applied: AppliedConfiguration,
        environment: Environment,
        hosts: dict[str, str],
        ca_bundle: bytes | None = None,
    ) -> str:
        """Add every required credential secret to ``environment``.

        Args:
            cr: Owning CR
            applied: Applied configuration of this pass
            environment: Desired state, extended in place
            hosts: Assigned hostname per route name
            ca_bundle: Platform CA bundle, when available

        Returns:
            Console host for the CR status
        """
        app = applied.application_name
        if ca_bundle:
            environment.shared().add_secret(
                self._truststore_secret(cr, applied, f"{app}{TRUSTSTORE_SECRET_SUFFIX}", ca_bundle)
            )

        console_cn = console_common_name(environment, applied, hosts) or app

        if not environment.console.omit and not applied.console_keystore_secret and not applied.disable_ssl:
            environment.console.add_secret(
                self._keystore_secret(cr, applied, applied.keystore_secret_name("businesscentral"), console_cn)
            )

        if not environment.dashbuilder.omit and not applied.dashbuilder_keystore_secret and not applied.disable_ssl:
            environment.dashbuilder.add_secret(
                self._keystore_secret(cr, applied, applied.keystore_secret_name("dashbuilder"), console_cn)
            )

        active_servers = [server for server in environment.servers if not server.omit]
        for index, server in enumerate(active_servers):
            server_set = applied.server_set(index, server.name)
            if server_set.keystore_secret or applied.disable_ssl:
                continue
            server_cn = first_tls_host(server, hosts) or app
            server.add_secret(
                self._keystore_secret(
                    cr, applied, KEYSTORE_SECRET_FORMAT.format(server_set.deployment_name), server_cn
                )
            )

        router = environment.smart_router
        if not router.omit and not applied.smart_router_keystore_secret and not applied.disable_ssl:
            router_cn = first_tls_host(router, hosts) or app
            router.add_secret(
                self._keystore_secret(cr, applied, applied.keystore_secret_name("smartrouter"), router_cn)
            )

        return console_host(environment, applied, hosts)

    def _keystore_secret(
        self,
        cr: KieApp,
        applied: AppliedConfiguration,
        name: str,
        common_name: str,
    ) -> dict[str, Any]:
        existing = self._existing(cr.namespace, name)
        if existing is not None:
            data = decode_secret_data(existing.body)
            if is_valid_keystore(data.get(KEYSTORE_KEY), common_name, applied.keystore_password):
                return build_secret(name, data, labels=existing.metadata.get("labels"))
            self.backup(cr, existing)

        self.logger.info("Generating keystore", secret=name, common_name=common_name)
        keystore = generate_keystore(common_name, applied.keystore_password)
        metrics.credentials_generated_total.labels(purpose="keystore").inc()
        return build_secret(name, {KEYSTORE_KEY: keystore}, labels=_app_labels(applied))

    def _truststore_secret(
        self,
        cr: KieApp,
        applied: AppliedConfiguration,
        name: str,
        ca_bundle: bytes,
    ) -> dict[str, Any]:
        existing = self._existing(cr.namespace, name)
        if existing is not None:
            data = decode_secret_data(existing.body)
            if is_valid_truststore(data.get(TRUSTSTORE_KEY), ca_bundle, TRUSTSTORE_PASSWORD):
                return build_secret(name, data, labels=existing.metadata.get("labels"))
            self.backup(cr, existing)

        self.logger.info("Generating truststore", secret=name)
        truststore = generate_truststore(ca_bundle, TRUSTSTORE_PASSWORD)
        metrics.credentials_generated_total.labels(purpose="truststore").inc()
        return build_secret(name, {TRUSTSTORE_KEY: truststore}, labels=_app_labels(applied))

    def backup(self, cr: KieApp, existing: ManagedResource) -> ManagedResource:
        """Preserve a superseded secret under its backup name, overwriting an older backup."""
        backup_name = derive_backup_name(existing.name, existing.metadata.get("annotations"))
        backup = ManagedResource(
            ResourceKind.SECRET,
            build_backup_secret(existing.body, backup_name, cr.owner_reference(controller=False)),
        )
        backup.metadata["namespace"] = cr.namespace
        self.logger.info("Backing up superseded secret", secret=existing.name, backup=backup_name)
        try:
            return self.store.create(backup)
        except ResourceAlreadyExists:
            current = self.store.get(ResourceKind.SECRET, cr.namespace, backup_name)
            backup.metadata["resourceVersion"] = current.metadata.get("resourceVersion")
            return self.store.update(backup)

    def _existing(self, namespace: str, name: str) -> ManagedResource | None:
        try:
            return self.store.get(ResourceKind.SECRET, namespace, name)
        except ResourceNotFound:
            return None


def _app_labels(applied: AppliedConfiguration) -> dict[str, str]:
    return {"app": applied.application_name, "application": applied.application_name}
