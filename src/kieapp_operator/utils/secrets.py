"""Helpers for building and reading Secret bodies."""

from __future__ import annotations

import base64
import copy
from typing import Any

from ..constants import API_GROUP, LABEL_BACKUP_OF, LABEL_MANAGED_BY

# Metadata fields the API server owns; stripped when cloning an object.
SERVER_METADATA_FIELDS = (
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "generation",
    "managedFields",
    "selfLink",
    "deletionTimestamp",
    "deletionGracePeriodSeconds",
)


def decode_secret_data(secret: dict[str, Any] | None) -> dict[str, bytes]:
    """Return the decoded ``data`` map of a Secret body."""
    if not secret:
        return {}
    result: dict[str, bytes] = {}
    for key, value in (secret.get("data") or {}).items():
        if isinstance(value, bytes):
            result[key] = value
        else:
            result[key] = base64.b64decode(value)
    return result


def encode_secret_data(data: dict[str, bytes]) -> dict[str, str]:
    """Base64 encode raw secret values for the API."""
    return {key: base64.b64encode(value).decode("ascii") for key, value in data.items()}


def build_secret(
    name: str,
    data: dict[str, bytes],
    labels: dict[str, str] | None = None,
    namespace: str | None = None,
) -> dict[str, Any]:
    """Build an Opaque Secret body.

    Args:
        name: Secret name
        data: Raw (unencoded) values
        labels: Labels to set
        namespace: Optional namespace; the flattener stamps it otherwise

    Returns:
        Secret body as a dict
    """
    metadata: dict[str, Any] = {"name": name, "labels": dict(labels or {})}
    if namespace:
        metadata["namespace"] = namespace
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": metadata,
        "data": encode_secret_data(data),
    }


def derive_backup_name(name: str, annotations: dict[str, str] | None = None) -> str:
    """Name under which a superseded object is preserved.

    ``<name>-<version>-bak`` when an annotation key equals the API group,
    ``<name>-bak`` otherwise. The first matching annotation wins.
    """
    for key, version in (annotations or {}).items():
        if key == API_GROUP:
            return f"{name}-{version}-bak"
    return f"{name}-bak"


def build_backup_secret(
    existing: dict[str, Any],
    backup_name: str,
    owner_reference: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Clone a deployed Secret under ``backup_name``.

    Server-owned metadata and controller owner references are dropped; the
    optional ``owner_reference`` is attached as a plain (non-controller) owner.
    """
    backup = copy.deepcopy(existing)
    metadata = backup.setdefault("metadata", {})
    original_name = metadata.get("name", "")
    for field in SERVER_METADATA_FIELDS:
        metadata.pop(field, None)
    metadata["name"] = backup_name
    metadata["ownerReferences"] = []
    if owner_reference:
        ref = dict(owner_reference)
        ref.pop("controller", None)
        ref.pop("blockOwnerDeletion", None)
        metadata["ownerReferences"] = [ref]
    labels = metadata.setdefault("labels", {}) or {}
    labels[LABEL_BACKUP_OF] = original_name
    labels.setdefault(LABEL_MANAGED_BY, "kieapp-operator")
    metadata["labels"] = labels
    backup.pop("status", None)
    return backup
