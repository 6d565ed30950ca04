"""Tests for the typed resource model and the KieApp wrapper."""

from __future__ import annotations

import pytest

from kieapp_operator.cr import KieApp
from kieapp_operator.models import (
    MANAGED_KINDS,
    ManagedResource,
    ReconcileOutcome,
    ResourceDelta,
    ResourceKind,
    group_by_kind,
)
from kieapp_operator.tracing import trace_span

from conftest import kieapp_body


class TestResourceKind:
    """Test cases for ResourceKind."""

    def test_from_kind(self):
        """Test lookup by kind name."""
        assert ResourceKind.from_kind("ConfigMap") is ResourceKind.CONFIG_MAP

    def test_unknown_kind(self):
        """Test unsupported kinds are rejected."""
        with pytest.raises(ValueError):
            ResourceKind.from_kind("Pod")

    def test_managed_kinds(self):
        """Test the CR itself and image stream tags are never diffed."""
        assert ResourceKind.KIEAPP not in MANAGED_KINDS
        assert ResourceKind.IMAGE_STREAM_TAG not in MANAGED_KINDS
        assert MANAGED_KINDS[-1] is ResourceKind.CONSOLE_LINK


class TestManagedResource:
    """Test cases for ManagedResource."""

    def test_type_meta_stamped(self):
        """Test apiVersion and kind follow the resource kind."""
        resource = ManagedResource(ResourceKind.ROUTE, {"metadata": {"name": "r", "namespace": "demo"}})

        assert resource.body["apiVersion"] == "route.openshift.io/v1"
        assert resource.body["kind"] == "Route"
        assert resource.identity == ("Route", "demo", "r")

    def test_cluster_scoped_identity(self):
        """Test cluster-scoped resources have no namespace."""
        resource = ManagedResource(ResourceKind.CONSOLE_LINK, {"metadata": {"name": "l", "namespace": "demo"}})
        assert resource.identity == ("ConsoleLink", None, "l")

    def test_ownership(self):
        """Test ownership is decided by uid."""
        resource = ManagedResource(ResourceKind.SECRET, {"metadata": {"ownerReferences": [{"uid": "a"}]}})
        assert resource.is_owned_by("a")
        assert not resource.is_owned_by("b")

    def test_group_by_kind(self):
        """Test grouping keeps input order."""
        a = ManagedResource(ResourceKind.SECRET, {"metadata": {"name": "a"}})
        b = ManagedResource(ResourceKind.SERVICE, {"metadata": {"name": "b"}})
        c = ManagedResource(ResourceKind.SECRET, {"metadata": {"name": "c"}})

        assert group_by_kind([a, b, c]) == {ResourceKind.SECRET: [a, c], ResourceKind.SERVICE: [b]}


class TestOutcome:
    """Test cases for ResourceDelta and ReconcileOutcome."""

    def test_empty_delta(self):
        """Test an empty delta has no changes."""
        assert not ResourceDelta(ResourceKind.SECRET).has_changes()

    def test_should_requeue(self):
        """Test requeue flags."""
        assert not ReconcileOutcome().should_requeue
        assert ReconcileOutcome(requeue=True).should_requeue
        assert ReconcileOutcome(requeue_after=0.5).should_requeue


class TestKieApp:
    """Test cases for the KieApp wrapper."""

    def test_accessors(self):
        """Test metadata accessors."""
        cr = KieApp(kieapp_body())

        assert (cr.namespace, cr.name, cr.uid) == ("demo", "app", "uid-kieapp-1")
        assert not cr.is_deleting
        assert cr.status == {}

    def test_owner_reference(self):
        """Test controller and plain owner references."""
        cr = KieApp(kieapp_body())

        assert cr.owner_reference()["controller"]
        assert "controller" not in cr.owner_reference(controller=False)

    def test_copy(self):
        """Test copies are independent."""
        cr = KieApp(kieapp_body())
        clone = cr.copy()
        clone.metadata["name"] = "other"
        assert cr.name == "app"


class TestTracing:
    """Test cases for tracing helpers without an exporter."""

    def test_span_without_tracer(self):
        """Test spans are no-ops until tracing is initialised."""
        with trace_span("reconcile_kieapp", kind="KieApp") as span:
            assert span is None
