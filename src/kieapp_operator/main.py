"""Main entry point for the KieApp Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf
from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.dynamic import DynamicClient

from . import health
from . import logging as structured_logging
from . import tracing
from .config import OperatorConfig
from .handlers import kieapp as kieapp_handlers
from .logging import ResourceLogger
from .reconcile import Reconciler
from .resolver import SpecResolver
from .services.store import KubernetesStore


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        k8s_config.load_incluster_config()
    except k8s_config.ConfigException:
        k8s_config.load_kube_config()


def build_reconciler(config: OperatorConfig) -> Reconciler:
    """Build the reconciler against the configured cluster."""
    store = KubernetesStore(DynamicClient(client.ApiClient()))
    return Reconciler(
        store,
        SpecResolver(config),
        config,
        ResourceLogger(logging.getLogger("kieapp_operator.reconcile")),
    )


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    tracing.initialize_tracing()

    # Use annotations so progress tracking does not collide with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    config = kieapp_handlers.CONFIG

    # Start metrics HTTP server with health check endpoints
    health.start_health_server(config.metrics_port)

    load_kube_config()
    kieapp_handlers.configure_handler(build_reconciler(config), config)
    health.mark_ready()


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop reporting readiness while the operator shuts down."""
    health.mark_not_ready()


def run() -> None:
    """Console entry point: run the operator cluster-wide."""
    kopf.run(clusterwide=True)
