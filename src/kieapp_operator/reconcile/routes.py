"""Route phase: create routes before anything that depends on their hostnames."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..cr import KieApp
from ..logging import ResourceLogger
from ..models import ManagedResource
from ..services.store import Store
from .differ import set_owner_reference
from .loader import DeployedStateLoader


class RoutePhase(Enum):
    AWAITING_HOSTNAMES = "AwaitingHostnames"
    READY = "Ready"


@dataclass
class RoutePhaseResult:
    """Outcome of the route phase.

    ``routes`` holds the deployed routes found this pass, keyed by name;
    ``created`` the routes created this pass.
    """

    phase: RoutePhase
    routes: dict[str, ManagedResource] = field(default_factory=dict)
    created: list[ManagedResource] = field(default_factory=list)

    @property
    def hosts(self) -> dict[str, str]:
        """Assigned hostname per route name; routes without a host are skipped."""
        result = {}
        for name, route in self.routes.items():
            host = (route.body.get("spec") or {}).get("host")
            if host:
                result[name] = host
        return result


class RoutePhaseController:
    """Creates missing routes and reports whether hostnames can be relied upon.

    Existing routes are left alone here; they are diffed with everything else
    once the pass proceeds.
    """

    def __init__(self, store: Store, loader: DeployedStateLoader, logger: ResourceLogger) -> None:
        self.store = store
        self.loader = loader
        self.logger = logger

    def run(self, cr: KieApp, requested: list[ManagedResource]) -> RoutePhaseResult:
        deployed = self.loader.load_routes(cr.namespace, requested)
        created = []
        for route in requested:
            if route.name in deployed:
                continue
            self.logger.info("Creating route", kind=route.kind.kind, name=route.name)
            self.store.create(set_owner_reference(route, cr))
            created.append(route)
        if created:
            return RoutePhaseResult(RoutePhase.AWAITING_HOSTNAMES, routes=deployed, created=created)
        return RoutePhaseResult(RoutePhase.READY, routes=deployed)
