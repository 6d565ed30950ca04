"""Error taxonomy for reconcile passes."""

from __future__ import annotations

from enum import Enum

from kubernetes.client.exceptions import ApiException


class ReconcileError(Exception):
    """Base class for errors raised by the reconciliation core."""


class ResourceNotFound(ReconcileError):
    """The requested object does not exist."""

    def __init__(self, kind: str, namespace: str | None, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location} not found")


class ResourceConflict(ReconcileError):
    """The object changed underneath us (stale resourceVersion)."""

    def __init__(self, kind: str, namespace: str | None, name: str, message: str = "conflict"):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location}: {message}")


class ResourceAlreadyExists(ResourceConflict):
    """A create collided with an existing object."""

    def __init__(self, kind: str, namespace: str | None, name: str):
        super().__init__(kind, namespace, name, message="already exists")


class ConfigurationError(ReconcileError):
    """The desired state could not be resolved from the CR."""


class MissingDependencyError(ReconcileError):
    """An object referenced by the CR does not exist."""


class ReconcileCancelled(ReconcileError):
    """The pass ran past its deadline."""


class ErrorClass(str, Enum):
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    CONFIGURATION = "ConfigurationError"
    MISSING_DEPENDENCY = "MissingDependency"
    TRANSIENT = "Transient"
    CANCELLED = "Cancelled"
    UNKNOWN = "Unknown"


def classify_error(error: BaseException) -> ErrorClass:
    """Map an exception onto the reconcile error taxonomy."""
    if isinstance(error, ResourceNotFound):
        return ErrorClass.NOT_FOUND
    if isinstance(error, ResourceConflict):
        return ErrorClass.CONFLICT
    if isinstance(error, ConfigurationError):
        return ErrorClass.CONFIGURATION
    if isinstance(error, MissingDependencyError):
        return ErrorClass.MISSING_DEPENDENCY
    if isinstance(error, ReconcileCancelled):
        return ErrorClass.CANCELLED
    if isinstance(error, ApiException):
        if error.status == 404:
            return ErrorClass.NOT_FOUND
        if error.status == 409:
            return ErrorClass.CONFLICT
        return ErrorClass.TRANSIENT
    return ErrorClass.UNKNOWN
