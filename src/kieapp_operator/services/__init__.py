"""Cluster access services for the KieApp Operator."""

from .store import KubernetesStore, Store

__all__ = ["KubernetesStore", "Store"]
