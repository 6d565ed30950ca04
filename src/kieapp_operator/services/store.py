"""Store: CRUD access to the cluster for the reconciliation core."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Protocol

from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient

from .. import metrics
from ..errors import ResourceAlreadyExists, ResourceConflict, ResourceNotFound
from ..models import ManagedResource, ResourceKind
from ..utils.context import check_deadline, remaining_time
from ..utils.rate_limit import rate_limit_k8s

logger = logging.getLogger(__name__)


class Store(Protocol):
    """Protocol defining the cluster operations the core depends on.

    Every call is kind-scoped. Namespace is ignored for cluster-scoped kinds.
    """

    def get(self, kind: ResourceKind, namespace: str | None, name: str) -> ManagedResource:
        """Fetch one object.

        Raises:
            ResourceNotFound: If the object does not exist
        """
        ...

    def list(
        self,
        kind: ResourceKind,
        namespace: str | None,
        owner_uid: str | None = None,
    ) -> list[ManagedResource]:
        """List objects of a kind, optionally only those owned by ``owner_uid``."""
        ...

    def create(self, resource: ManagedResource) -> ManagedResource:
        """Create an object.

        Raises:
            ResourceAlreadyExists: If an object with the same identity exists
        """
        ...

    def update(self, resource: ManagedResource) -> ManagedResource:
        """Replace an object, guarded by its resourceVersion.

        Raises:
            ResourceConflict: If the resourceVersion is stale
        """
        ...

    def update_status(self, resource: ManagedResource) -> ManagedResource:
        """Replace the status sub-resource, guarded by resourceVersion.

        Raises:
            ResourceConflict: If the resourceVersion is stale
        """
        ...

    def delete(self, resource: ManagedResource) -> None:
        """Delete an object. Deleting a missing object is not an error."""
        ...


class KubernetesStore:
    """Store backed by the Kubernetes dynamic client."""

    def __init__(self, client: DynamicClient) -> None:
        """Initialize the store.

        Args:
            client: Dynamic client bound to the cluster
        """
        self.client = client
        self._apis: dict[ResourceKind, Any] = {}
        self._apis_lock = threading.Lock()

    def _api(self, kind: ResourceKind) -> Any:
        with self._apis_lock:
            api = self._apis.get(kind)
            if api is None:
                api = self.client.resources.get(api_version=kind.api_version, kind=kind.kind)
                self._apis[kind] = api
            return api

    def _call(self, operation: str, kind: ResourceKind, fn: Callable[..., Any], **kwargs: Any) -> Any:
        check_deadline()
        timeout = remaining_time()
        if timeout is not None:
            kwargs["_request_timeout"] = timeout
        start_time = time.time()
        try:
            result = rate_limit_k8s(fn)(**kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except ApiException:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    @staticmethod
    def _namespace_kwargs(kind: ResourceKind, namespace: str | None) -> dict[str, Any]:
        return {"namespace": namespace} if kind.namespaced and namespace else {}

    def get(self, kind: ResourceKind, namespace: str | None, name: str) -> ManagedResource:
        api = self._api(kind)
        try:
            obj = self._call(
                f"get_{kind.kind.lower()}", kind, api.get, name=name, **self._namespace_kwargs(kind, namespace)
            )
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFound(kind.kind, namespace if kind.namespaced else None, name) from e
            raise
        return ManagedResource(kind, obj.to_dict())

    def list(
        self,
        kind: ResourceKind,
        namespace: str | None,
        owner_uid: str | None = None,
    ) -> list[ManagedResource]:
        api = self._api(kind)
        result = self._call(
            f"list_{kind.kind.lower()}", kind, api.get, **self._namespace_kwargs(kind, namespace)
        )
        items = [ManagedResource(kind, item) for item in result.to_dict().get("items") or []]
        if owner_uid is not None:
            items = [item for item in items if item.is_owned_by(owner_uid)]
        return items

    def create(self, resource: ManagedResource) -> ManagedResource:
        kind = resource.kind
        api = self._api(kind)
        try:
            obj = self._call(
                f"create_{kind.kind.lower()}",
                kind,
                api.create,
                body=resource.body,
                **self._namespace_kwargs(kind, resource.namespace),
            )
        except ApiException as e:
            if e.status == 409:
                raise ResourceAlreadyExists(kind.kind, resource.namespace, resource.name) from e
            raise
        return ManagedResource(kind, obj.to_dict())

    def update(self, resource: ManagedResource) -> ManagedResource:
        kind = resource.kind
        api = self._api(kind)
        return self._replace(api, f"update_{kind.kind.lower()}", resource)

    def update_status(self, resource: ManagedResource) -> ManagedResource:
        kind = resource.kind
        api = self._api(kind)
        return self._replace(api.status, f"update_{kind.kind.lower()}_status", resource)

    def _replace(self, api: Any, operation: str, resource: ManagedResource) -> ManagedResource:
        kind = resource.kind
        try:
            obj = self._call(
                operation,
                kind,
                api.replace,
                body=resource.body,
                **self._namespace_kwargs(kind, resource.namespace),
            )
        except ApiException as e:
            if e.status == 409:
                raise ResourceConflict(kind.kind, resource.namespace, resource.name) from e
            if e.status == 404:
                raise ResourceNotFound(kind.kind, resource.namespace, resource.name) from e
            raise
        return ManagedResource(kind, obj.to_dict())

    def delete(self, resource: ManagedResource) -> None:
        kind = resource.kind
        api = self._api(kind)
        try:
            self._call(
                f"delete_{kind.kind.lower()}",
                kind,
                api.delete,
                name=resource.name,
                **self._namespace_kwargs(kind, resource.namespace),
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"{kind.kind} {resource.name} already deleted")
                return
            raise
