"""One reconcile pass for a KieApp."""

from __future__ import annotations

from kubernetes.client.exceptions import ApiException

from ..builders.resources import console_link, flatten, requested_routes
from ..config import OperatorConfig
from ..constants import (
    CA_BUNDLE_CONFIG_MAP_SUFFIX,
    CA_BUNDLE_KEY,
    KIE_SERVER_STATE_DETACHED,
    KIND_KIEAPP,
    LABEL_KIE_SERVER_STATE,
    PHASE_CONFIGURATION_ERROR,
    PHASE_FAILED,
    PHASE_MISSING_DEPENDENCY,
    REASON_CA_BUNDLE_UNAVAILABLE,
    REASON_CONFIGURATION_ERROR,
    REASON_CONFLICT,
    REASON_MISSING_DEPENDENCY,
    REASON_ROUTES_PENDING,
    REASON_STATUS_STALE,
    REASON_UNKNOWN,
)
from ..cr import AppliedConfiguration, KieApp
from ..environment import Environment
from ..errors import (
    ConfigurationError,
    ErrorClass,
    MissingDependencyError,
    ReconcileError,
    ResourceConflict,
    ResourceNotFound,
)
from ..logging import ResourceLogger
from ..models import ReconcileOutcome, ResourceKind
from ..resolver import DesiredStateResolver
from ..services.store import Store
from ..tracing import add_span_attribute, trace_span
from ..utils.errors import sanitize_exception
from .comparator import ResourceComparator
from .credentials import CredentialProvisioner
from .differ import Differ
from .images import ImageReferenceResolver
from .loader import DeployedStateLoader
from .routes import RoutePhase, RoutePhaseController
from .status import StatusWriter, build_status, deployment_summary, derive_phase


class Reconciler:
    """Drives the deployed state of a KieApp toward its desired state.

    Holds no per-CR state, so one instance serves every worker.
    """

    def __init__(
        self,
        store: Store,
        resolver: DesiredStateResolver,
        config: OperatorConfig,
        logger: ResourceLogger | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.config = config
        self.logger = logger or ResourceLogger()
        self.comparator = ResourceComparator(self.logger)
        self.loader = DeployedStateLoader(store, config, self.logger)
        self.differ = Differ(store, self.comparator, self.logger)
        self.routes = RoutePhaseController(store, self.loader, self.logger)
        self.credentials = CredentialProvisioner(store, self.logger)
        self.images = ImageReferenceResolver(store, config, self.logger)
        self.status = StatusWriter(store, self.logger)

    def reconcile(self, namespace: str, name: str) -> ReconcileOutcome:
        """Run one pass for the KieApp ``namespace/name``.

        Returns:
            The outcome of the pass

        Raises:
            ApiException: On transient Store failures, without a status update
            ReconcileCancelled: When the pass deadline expires
        """
        log = self.logger.bind(kind=KIND_KIEAPP, name=name, namespace=namespace)
        with trace_span("reconcile_kieapp", kind=KIND_KIEAPP, attributes={"kieapp.name": name}):
            try:
                cr = KieApp(self.store.get(ResourceKind.KIEAPP, namespace, name).body)
            except ResourceNotFound:
                log.info("KieApp not found, removing remaining resources")
                return ReconcileOutcome(has_changes=self.cleanup(namespace, name, None))

            try:
                return self._reconcile(cr, log)
            except ConfigurationError as e:
                return self._fail(cr, log, ErrorClass.CONFIGURATION, e)
            except MissingDependencyError as e:
                return self._fail(cr, log, ErrorClass.MISSING_DEPENDENCY, e)
            except (ResourceConflict, ResourceNotFound) as e:
                log.info(f"Requeueing after stale read: {e}")
                return ReconcileOutcome(requeue=True, reason=REASON_CONFLICT)
            except (ReconcileError, ApiException):
                raise
            except Exception as e:
                self._fail(cr, log, ErrorClass.UNKNOWN, e)
                raise

    def cleanup(self, namespace: str, name: str, uid: str | None) -> bool:
        """Remove every resource still owned by a deleted CR.

        Returns:
            Whether anything was removed
        """
        log = self.logger.bind(kind=KIND_KIEAPP, name=name, namespace=namespace)
        with trace_span("cleanup_kieapp", kind=KIND_KIEAPP, attributes={"kieapp.name": name}):
            deployed = self.loader.load(namespace, name, uid)
            has_changes = self.differ.apply(None, deployed, {})
        if has_changes:
            log.info("Removed remaining owned resources")
        return has_changes

    def _reconcile(self, cr: KieApp, log: ResourceLogger) -> ReconcileOutcome:
        with trace_span("resolve", kind=KIND_KIEAPP):
            resolved = self.resolver.resolve(cr)
        applied = resolved.applied
        environment = resolved.environment
        self.verify_external_references(cr, applied)

        with trace_span("route_phase", kind=KIND_KIEAPP):
            route_result = self.routes.run(cr, requested_routes(environment, cr.namespace))
        if route_result.phase is RoutePhase.AWAITING_HOSTNAMES:
            log.info(f"Created {len(route_result.created)} routes, waiting for hostnames")
            return ReconcileOutcome(
                has_changes=True,
                requeue_after=self.config.route_requeue_seconds,
                reason=REASON_ROUTES_PENDING,
            )

        try:
            ca_bundle = self.load_ca_bundle(cr, applied)
        except ApiException as e:
            log.warning(f"Failed to read CA bundle: {sanitize_exception(e)}")
            return ReconcileOutcome(
                requeue_after=self.config.route_requeue_seconds,
                reason=REASON_CA_BUNDLE_UNAVAILABLE,
            )

        with trace_span("credentials", kind=KIND_KIEAPP):
            console_host = self.credentials.provision(cr, applied, environment, route_result.hosts, ca_bundle)
        with trace_span("images", kind=KIND_KIEAPP):
            self.images.resolve(cr, applied, environment)

        requested = flatten(environment, cr.namespace)
        link = console_link(
            cr, applied, console_host, self.config.platform_version, self.config.console_link_min_version
        )
        if link is not None:
            requested[ResourceKind.CONSOLE_LINK] = [link]

        with trace_span("apply", kind=KIND_KIEAPP):
            secret_names = [secret.name for secret in requested.get(ResourceKind.SECRET, [])]
            deployed = self.loader.load(cr.namespace, cr.name, cr.uid, secret_names)
            deployments = deployment_summary(deployed.get(ResourceKind.DEPLOYMENT_CONFIG, []))
            has_changes = self.differ.apply(cr, deployed, requested)
        add_span_attribute("kieapp.has_changes", has_changes)

        self.detach_idle_server_config_maps(cr, environment, log)

        phase = derive_phase(has_changes)
        cached = KieApp(self.store.get(ResourceKind.KIEAPP, cr.namespace, cr.name).body)
        status = build_status(
            cached.status,
            phase,
            applied=applied,
            console_host=console_host,
            deployments=deployments,
        )
        if not self.status.converge(cr, cached, status):
            return ReconcileOutcome(has_changes=has_changes, requeue=True, phase=phase, reason=REASON_STATUS_STALE)
        return ReconcileOutcome(
            has_changes=has_changes,
            requeue_after=self.config.requeue_delay_seconds if has_changes else None,
            phase=phase,
        )

    def verify_external_references(self, cr: KieApp, applied: AppliedConfiguration) -> None:
        """Raise MissingDependencyError unless every referenced object exists."""
        for ref in applied.external_references:
            try:
                self.store.get(ResourceKind.from_kind(ref.kind), cr.namespace, ref.name)
            except ResourceNotFound as e:
                raise MissingDependencyError(
                    f"{ref.kind} {ref.name} referenced by {ref.field_path} not found"
                ) from e

    def load_ca_bundle(self, cr: KieApp, applied: AppliedConfiguration) -> bytes | None:
        """CA bundle injected by the platform, or None when absent or empty."""
        if not applied.use_openshift_ca:
            return None
        name = f"{cr.name}{CA_BUNDLE_CONFIG_MAP_SUFFIX}"
        try:
            config_map = self.store.get(ResourceKind.CONFIG_MAP, cr.namespace, name)
        except ResourceNotFound:
            return None
        bundle = (config_map.body.get("data") or {}).get(CA_BUNDLE_KEY)
        return bundle.encode("utf-8") if bundle else None

    def detach_idle_server_config_maps(self, cr: KieApp, environment: Environment, log: ResourceLogger) -> None:
        """Relabel config maps of scaled-down KIE servers as detached.

        Failures are logged and do not fail the pass.
        """
        idle_servers = {
            dc.get("metadata", {}).get("name")
            for server in environment.servers
            for dc in server.deployment_configs
            if (dc.get("spec") or {}).get("replicas", 1) == 0
        }
        if not idle_servers:
            return
        try:
            config_maps = self.store.list(ResourceKind.CONFIG_MAP, cr.namespace)
        except ApiException as e:
            log.warning(f"Failed to list ConfigMaps: {sanitize_exception(e)}")
            return

        for config_map in config_maps:
            labels = config_map.metadata.get("labels") or {}
            state = labels.get(LABEL_KIE_SERVER_STATE)
            if not state or state == KIE_SERVER_STATE_DETACHED:
                continue
            owner = next(
                (
                    ref for ref in config_map.owner_references
                    if ref.get("kind") == "DeploymentConfig" and ref.get("name") in idle_servers
                ),
                None,
            )
            if owner is None:
                continue
            try:
                dc = self.store.get(ResourceKind.DEPLOYMENT_CONFIG, cr.namespace, owner["name"])
                if (dc.body.get("status") or {}).get("availableReplicas", 0) != 0:
                    continue
                labels[LABEL_KIE_SERVER_STATE] = KIE_SERVER_STATE_DETACHED
                config_map.metadata["labels"] = labels
                log.info(f"{owner['name']} replicas set to zero so relabeling ConfigMap {config_map.name} as DETACHED")
                self.store.update(config_map)
            except (ResourceNotFound, ResourceConflict, ApiException) as e:
                log.warning(f"Failed to detach ConfigMap {config_map.name}: {sanitize_exception(e)}")

    def _fail(
        self,
        cr: KieApp,
        log: ResourceLogger,
        error_class: ErrorClass,
        error: Exception,
    ) -> ReconcileOutcome:
        phase = derive_phase(False, error_class)
        reason = {
            PHASE_CONFIGURATION_ERROR: REASON_CONFIGURATION_ERROR,
            PHASE_MISSING_DEPENDENCY: REASON_MISSING_DEPENDENCY,
            PHASE_FAILED: REASON_UNKNOWN,
        }[phase]
        message = sanitize_exception(error)
        log.error(f"Reconcile failed: {message}", error_type=type(error).__name__, phase=phase)
        status = build_status(cr.status, phase, reason=reason, message=message)
        try:
            self.status.converge(cr, cr, status)
        except (ReconcileError, ApiException) as e:
            log.warning(f"Unable to update status after failure: {sanitize_exception(e)}")
        return ReconcileOutcome(phase=phase, reason=reason, error=error)
