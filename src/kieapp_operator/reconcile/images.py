"""Make image stream references resolvable against a namespace-local tag."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .. import metrics
from ..config import OperatorConfig
from ..constants import (
    AMQ_BROKER_CONTEXT,
    AMQ_BROKER_SCALEDOWN_CONTEXT,
    DATABASE_CONTEXT,
    DATABASE_IMAGES,
    DATAGRID_CONTEXT,
    DEFAULT_IMAGE_REGISTRY,
)
from ..cr import AppliedConfiguration, KieApp
from ..environment import Environment
from ..errors import ResourceAlreadyExists, ResourceNotFound
from ..logging import ResourceLogger
from ..models import ManagedResource, ResourceKind
from ..services.store import Store
from ..utils.cache import get_cached_object, make_cache_key, set_cached_object
from ..utils.version import major_version

_DIGITS = re.compile(r"[0-9]+")


def split_tag_reference(reference: str) -> tuple[str, str]:
    """Split ``name:tag``; the tag defaults to ``latest``."""
    name, _, tag = reference.partition(":")
    return name, tag or "latest"


def image_context(image_url: str) -> str:
    """Registry context (organisation) embedded in a fully qualified image URL, or ""."""
    path = image_url.split("@", 1)[0]
    parts = path.split("/")
    if len(parts) < 3:
        return ""
    return parts[-2]


@dataclass(frozen=True)
class ImageTarget:
    """Where a mirrored tag points."""

    registry: str
    context: str
    image: str
    insecure: bool = False

    @property
    def url(self) -> str:
        return f"{self.registry}/{self.context}/{self.image}"


def resolve_image_target(
    reference: str,
    image_url: str,
    applied: AppliedConfiguration,
    config: OperatorConfig,
) -> ImageTarget:
    """Compute the registry path a local tag for ``reference`` should import from.

    Args:
        reference: Image stream tag reference (``name:tag``)
        image_url: Container image of the workload using the reference, may be empty
        applied: Applied configuration of this pass
        config: Operator configuration

    Returns:
        Target registry path
    """
    name, tag = split_tag_reference(reference)
    image = f"{name}:{tag}"
    context = image_context(image_url) or f"{applied.product}-{major_version(applied.version)}"

    if applied.image_registry is not None:
        registry = applied.image_registry.registry or config.registry
        insecure = applied.image_registry.insecure
    else:
        registry = config.registry
        insecure = config.insecure

    if "datagrid" in name:
        registry = DEFAULT_IMAGE_REGISTRY
        context = DATAGRID_CONTEXT
    elif "amq-broker-7" in name:
        registry = DEFAULT_IMAGE_REGISTRY
        context = AMQ_BROKER_SCALEDOWN_CONTEXT if "scaledown" in name else AMQ_BROKER_CONTEXT
    elif name in DATABASE_IMAGES:
        registry = DEFAULT_IMAGE_REGISTRY
        context = DATABASE_CONTEXT
        image = f"{name}-{''.join(_DIGITS.findall(tag))}-rhel7:latest"
    return ImageTarget(registry=registry, context=context, image=image, insecure=insecure)


def build_image_stream_tag(
    namespace: str,
    reference: str,
    target: ImageTarget,
    scheduled: bool = False,
) -> ManagedResource:
    """ImageStreamTag mirroring ``target`` under a local reference policy."""
    name, tag = split_tag_reference(reference)
    import_policy: dict[str, Any] = {}
    if target.insecure:
        import_policy["insecure"] = True
    if scheduled:
        import_policy["scheduled"] = True
    return ManagedResource(
        ResourceKind.IMAGE_STREAM_TAG,
        {
            "metadata": {"name": f"{name}:{tag}", "namespace": namespace},
            "tag": {
                "name": tag,
                "from": {"kind": "DockerImage", "name": target.url},
                "referencePolicy": {"type": "Local"},
                "importPolicy": import_policy,
            },
        },
    )


class ImageReferenceResolver:
    """Ensures image stream references used by workloads and builds resolve locally."""

    def __init__(self, store: Store, config: OperatorConfig, logger: ResourceLogger) -> None:
        self.store = store
        self.config = config
        self.logger = logger

    def tag_exists(self, namespace: str, reference: str) -> bool:
        """Whether ``reference`` exists as an ImageStreamTag in ``namespace``."""
        if not namespace:
            return False
        name, tag = split_tag_reference(reference)
        tag_name = f"{name}:{tag}"
        cache_key = make_cache_key(ResourceKind.IMAGE_STREAM_TAG.kind, namespace, tag_name)
        if get_cached_object(cache_key) is not None:
            return True
        try:
            self.store.get(ResourceKind.IMAGE_STREAM_TAG, namespace, tag_name)
        except ResourceNotFound:
            self.logger.debug("Object does not exist", kind="ImageStreamTag", tag=tag_name, tag_namespace=namespace)
            return False
        set_cached_object(cache_key, True)
        return True

    def ensure(
        self,
        cr: KieApp,
        applied: AppliedConfiguration,
        reference: str,
        namespace: str,
        image_url: str = "",
    ) -> str:
        """Return the namespace ``reference`` resolves in, creating a local tag if needed.

        With an image registry configured only the CR namespace is considered;
        otherwise the referenced namespace is tried first, then the CR namespace.
        """
        if applied.image_registry is None and self.tag_exists(namespace, reference):
            return namespace
        if self.tag_exists(cr.namespace, reference):
            return cr.namespace
        self.logger.warning(f"ImageStreamTag {namespace}/{reference} doesn't exist")
        self.create_local_tag(cr, applied, reference, image_url)
        return cr.namespace

    def create_local_tag(
        self,
        cr: KieApp,
        applied: AppliedConfiguration,
        reference: str,
        image_url: str = "",
    ) -> ManagedResource:
        target = resolve_image_target(reference, image_url, applied, self.config)
        resource = build_image_stream_tag(
            cr.namespace,
            reference,
            target,
            scheduled=applied.use_image_tags and applied.scheduled_import_policy,
        )
        self.logger.info("Creating", kind="ImageStreamTag", tag=resource.name, source=target.url)
        try:
            created = self.store.create(resource)
        except ResourceAlreadyExists:
            return resource
        metrics.image_tags_created_total.inc()
        set_cached_object(make_cache_key(ResourceKind.IMAGE_STREAM_TAG.kind, cr.namespace, resource.name), True)
        return created

    def resolve(self, cr: KieApp, applied: AppliedConfiguration, environment: Environment) -> None:
        """Point every image trigger and source build at a namespace holding its tag.

        Trigger and build ``from.namespace`` fields are updated in place.
        """
        for component in environment.components():
            if component.omit:
                continue
            if not component.build_configs:
                for dc in component.deployment_configs:
                    self._resolve_triggers(cr, applied, dc)
            for bc in component.build_configs:
                strategy = (bc.get("spec") or {}).get("strategy") or {}
                if strategy.get("type") != "Source":
                    continue
                source_from = (strategy.get("sourceStrategy") or {}).get("from")
                if not source_from or not source_from.get("name"):
                    continue
                source_from["namespace"] = self.ensure(
                    cr, applied, source_from["name"], source_from.get("namespace") or ""
                )

    def _resolve_triggers(self, cr: KieApp, applied: AppliedConfiguration, dc: dict[str, Any]) -> None:
        spec = dc.get("spec") or {}
        containers = ((spec.get("template") or {}).get("spec") or {}).get("containers") or []
        for trigger in spec.get("triggers") or []:
            if trigger.get("type") != "ImageChange":
                continue
            params = trigger.get("imageChangeParams") or {}
            trigger_from = params.get("from")
            if not trigger_from or not trigger_from.get("name"):
                continue
            for container_name in params.get("containerNames") or []:
                for container in containers:
                    if container.get("name") == container_name:
                        trigger_from["namespace"] = self.ensure(
                            cr,
                            applied,
                            trigger_from["name"],
                            trigger_from.get("namespace") or "",
                            container.get("image") or "",
                        )
