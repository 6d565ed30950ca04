"""Handler for the KieApp CRD."""

from __future__ import annotations

import uuid
from typing import Any

import kopf

from .. import metrics
from ..config import OperatorConfig
from ..constants import (
    API_GROUP_VERSION,
    KIND_KIEAPP,
    PHASE_DEPLOYED,
    PHASE_PROVISIONING,
    REASON_ROUTES_PENDING,
)
from ..models import ReconcileOutcome
from ..reconcile import Reconciler
from ..tracing import trace_span
from ..utils.context import with_correlation_id, with_deadline
from ..utils.errors import sanitize_exception
from ..utils.events import (
    emit_cleaned_up,
    emit_deployed,
    emit_provisioning,
    emit_reconcile_failed,
    emit_routes_pending,
)
from .base import BaseHandler

# Read once at import: the timer interval is fixed when the handler is registered.
CONFIG = OperatorConfig.from_env()


class KieAppHandler(BaseHandler):
    """Handler for KieApp resources."""

    def __init__(self, config: OperatorConfig | None = None, reconciler: Reconciler | None = None):
        """Initialize KieApp handler.

        Args:
            config: Operator configuration
            reconciler: Reconciler; set later through ``configure`` when omitted
        """
        super().__init__(KIND_KIEAPP)
        self.config = config or CONFIG
        self.reconciler = reconciler

    def configure(self, reconciler: Reconciler, config: OperatorConfig | None = None) -> None:
        self.reconciler = reconciler
        if config is not None:
            self.config = config

    def _require_reconciler(self) -> Reconciler:
        if self.reconciler is None:
            raise kopf.TemporaryError("Operator is not initialized yet", delay=self.config.requeue_delay_seconds)
        return self.reconciler

    def reconcile(self, body: dict[str, Any]) -> None:
        """Reconcile a KieApp and translate the outcome for kopf.

        Raises:
            kopf.TemporaryError: When the CR must be reconciled again after a delay
        """
        reconciler = self._require_reconciler()
        meta = body.get("metadata") or {}
        namespace = meta.get("namespace", "default")
        name = meta.get("name", "unknown")

        def run() -> ReconcileOutcome:
            with with_correlation_id(str(uuid.uuid4())), with_deadline(self.config.reconcile_timeout_seconds):
                return reconciler.reconcile(namespace, name)

        outcome = self.reconcile_with_metrics(body, run)
        self.handle_outcome(body, outcome)

    def handle_outcome(self, body: dict[str, Any], outcome: ReconcileOutcome) -> None:
        """Emit events for the outcome and request a requeue where needed."""
        meta = body.get("metadata") or {}
        previous_phase = (body.get("status") or {}).get("phase")

        if outcome.error is not None:
            message = sanitize_exception(outcome.error)
            self.log_warning(meta, message, event="reconcile", reason=outcome.reason or "Failed", phase=outcome.phase)
            emit_reconcile_failed(body, f"{outcome.phase}: {message}")
            metrics.requeue_total.labels(reason=outcome.reason or "error").inc()
            raise kopf.TemporaryError(message, delay=self.config.error_requeue_seconds)

        if outcome.reason == REASON_ROUTES_PENDING:
            emit_routes_pending(body)
        elif outcome.phase == PHASE_PROVISIONING:
            emit_provisioning(body)
        elif outcome.phase == PHASE_DEPLOYED and previous_phase != PHASE_DEPLOYED:
            emit_deployed(body)
            self.log_info(meta, "All managed resources are deployed", event="reconcile", reason="Deployed")

        if outcome.should_requeue:
            reason = outcome.reason or outcome.phase or "Requeue"
            metrics.requeue_total.labels(reason=reason).inc()
            delay = outcome.requeue_after if outcome.requeue_after is not None else self.config.requeue_delay_seconds
            raise kopf.TemporaryError(f"Requeue: {reason}", delay=delay)

    def delete(self, body: dict[str, Any]) -> None:
        """Remove whatever the deleted KieApp still owns."""
        reconciler = self._require_reconciler()
        meta = body.get("metadata") or {}
        self.log_info(meta, "KieApp is being deleted", event="deletion", reason="Deletion")
        with with_correlation_id(str(uuid.uuid4())), with_deadline(self.config.reconcile_timeout_seconds):
            with trace_span("delete_kieapp", kind=KIND_KIEAPP, attributes={"kieapp.name": meta.get("name", "")}):
                removed = reconciler.cleanup(meta.get("namespace", "default"), meta.get("name", ""), meta.get("uid"))
        if removed:
            emit_cleaned_up(body)


# Global handler instance
_handler = KieAppHandler()


def configure_handler(reconciler: Reconciler, config: OperatorConfig | None = None) -> None:
    """Wire the reconciler built at startup into the registered handlers."""
    _handler.configure(reconciler, config)


@kopf.on.create(API_GROUP_VERSION, KIND_KIEAPP)
@kopf.on.update(API_GROUP_VERSION, KIND_KIEAPP)
@kopf.on.resume(API_GROUP_VERSION, KIND_KIEAPP)
@kopf.timer(API_GROUP_VERSION, KIND_KIEAPP, interval=CONFIG.drift_check_interval_seconds)
def handle_kieapp(
    body: kopf.Body,
    **kwargs: Any,
) -> None:
    """Handle KieApp resource reconciliation."""
    _handler.reconcile(dict(body))


@kopf.on.delete(API_GROUP_VERSION, KIND_KIEAPP)
def handle_kieapp_delete(
    body: kopf.Body,
    **kwargs: Any,
) -> None:
    """Handle KieApp resource deletion."""
    _handler.delete(dict(body))
