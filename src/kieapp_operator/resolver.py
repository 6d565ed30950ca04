"""Desired State Resolver boundary and the bundled spec-driven resolver."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Protocol

from .config import OperatorConfig
from .constants import DEFAULT_VERSION
from .cr import AppliedConfiguration, ImageRegistry, KieApp, ObjectRef, ServerSet
from .environment import Environment, indexed_name
from .errors import ConfigurationError
from .utils.version import parse_version

REFERENCE_KINDS = ("ConfigMap", "Secret", "PersistentVolumeClaim")


@dataclass
class ResolvedState:
    """Output of a resolver: the applied configuration and the environment it renders."""

    applied: AppliedConfiguration
    environment: Environment


class DesiredStateResolver(Protocol):
    def resolve(self, cr: KieApp) -> ResolvedState:
        """Resolve a CR into its desired state.

        Raises:
            ConfigurationError: If the CR cannot be resolved
        """
        ...


class SpecResolver:
    """Resolve the applied configuration from the CR spec.

    Sub-component manifests are read pre-rendered from ``spec.components``;
    the resolver does not render templates.
    """

    def __init__(self, config: OperatorConfig):
        self.config = config

    def resolve(self, cr: KieApp) -> ResolvedState:
        spec = cr.spec
        environment = spec.get("environment")
        if not environment or not isinstance(environment, str):
            raise ConfigurationError("spec.environment is required")

        common = spec.get("commonConfig") or {}
        application_name = common.get("applicationName") or cr.name
        version = spec.get("version") or DEFAULT_VERSION
        try:
            parse_version(str(version))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        objects = spec.get("objects") or {}
        applied = AppliedConfiguration(
            environment=environment,
            application_name=application_name,
            product="rhdm" if environment.startswith("rhdm") else "rhpam",
            version=version,
            keystore_password=common.get("keyStorePassword") or self.config.keystore_password,
            disable_ssl=bool(common.get("disableSsl", False)),
            use_openshift_ca=bool(spec.get("useOpenshiftCA", False)),
            use_image_tags=bool(spec.get("useImageTags", False)),
            scheduled_import_policy=bool(spec.get("scheduledImportPolicy", False)),
            image_registry=ImageRegistry.from_dict(spec.get("imageRegistry")),
            console_keystore_secret=_section(objects, "console").get("keystoreSecret") or "",
            dashbuilder_keystore_secret=_section(objects, "dashbuilder").get("keystoreSecret") or "",
            smart_router_keystore_secret=_section(objects, "smartRouter").get("keystoreSecret") or "",
            servers=self._server_sets(application_name, objects.get("servers") or []),
            external_references=self._external_references(spec),
        )

        components = spec.get("components") or {}
        try:
            env = Environment.from_manifest(copy.deepcopy(components), application_name)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        return ResolvedState(applied=applied, environment=env)

    @staticmethod
    def _server_sets(application_name: str, servers: list[dict[str, Any]]) -> tuple[ServerSet, ...]:
        result: list[ServerSet] = []
        for server in servers:
            if not isinstance(server, dict):
                raise ConfigurationError("spec.objects.servers entries must be mappings")
            deployments = server.get("deployments", 1)
            if not isinstance(deployments, int) or deployments < 0:
                raise ConfigurationError("spec.objects.servers[].deployments must be a non-negative integer")
            base = server.get("name") or f"{application_name}-kieserver"
            for index in range(deployments):
                result.append(
                    ServerSet(
                        deployment_name=indexed_name(base, index),
                        keystore_secret=server.get("keystoreSecret") or "",
                    )
                )
        return tuple(result)

    @staticmethod
    def _external_references(spec: dict[str, Any]) -> tuple[ObjectRef, ...]:
        candidates = (
            ("spec.auth.roleMapper.from", _section(_section(spec, "auth"), "roleMapper").get("from")),
            (
                "spec.objects.console.gitHooks.from",
                _section(_section(_section(spec, "objects"), "console"), "gitHooks").get("from"),
            ),
        )
        refs: list[ObjectRef] = []
        for path, ref in candidates:
            if not ref:
                continue
            kind = ref.get("kind")
            name = ref.get("name")
            if kind not in REFERENCE_KINDS:
                raise ConfigurationError(
                    f"{path}.kind must be one of {', '.join(REFERENCE_KINDS)}, got {kind!r}"
                )
            if not name:
                raise ConfigurationError(f"{path}.name is required")
            refs.append(ObjectRef(kind=kind, name=name, field_path=path))
        return tuple(refs)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}
