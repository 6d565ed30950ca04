"""Tests for flattening the desired state into resources."""

from __future__ import annotations

import pytest

from kieapp_operator.builders.resources import console_link, console_link_name, flatten, requested_routes
from kieapp_operator.cr import AppliedConfiguration, KieApp
from kieapp_operator.environment import Environment, SubComponent
from kieapp_operator.errors import ConfigurationError
from kieapp_operator.models import ResourceKind

from conftest import kieapp_body, route, sample_components, service


def _applied(product: str = "rhpam") -> AppliedConfiguration:
    return AppliedConfiguration(
        environment="rhpam-trial",
        application_name="app",
        product=product,
        version="7.13.1",
        keystore_password="p",
    )


class TestFlatten:
    """Test cases for flatten."""

    def test_groups_by_kind_and_stamps_namespace(self):
        """Test resources are grouped by kind with the CR namespace."""
        env = Environment.from_manifest(sample_components(), "app")

        result = flatten(env, "demo")

        assert [r.name for r in result[ResourceKind.ROUTE]] == ["app-rhpamcentr", "app-kieserver"]
        assert [r.name for r in result[ResourceKind.DEPLOYMENT_CONFIG]] == ["app-rhpamcentr", "app-kieserver"]
        for resources in result.values():
            for resource in resources:
                assert resource.namespace == "demo"
                assert resource.body["apiVersion"] == resource.kind.api_version

    def test_omitted_components_skipped(self):
        """Test omitted sub-components contribute nothing."""
        components = sample_components()
        components["servers"][0]["omit"] = True
        env = Environment.from_manifest(components, "app")

        result = flatten(env, "demo")

        assert [r.name for r in result[ResourceKind.ROUTE]] == ["app-rhpamcentr"]

    def test_bodies_are_copied(self):
        """Test the environment is not modified through the result."""
        env = Environment.from_manifest(sample_components(), "app")

        result = flatten(env, "demo")
        result[ResourceKind.SERVICE][0].metadata["labels"] = {"x": "y"}

        assert "labels" not in env.console.resources(ResourceKind.SERVICE)[0]["metadata"]
        assert "namespace" not in env.console.resources(ResourceKind.SERVICE)[0]["metadata"]

    def test_duplicate_identity(self):
        """Test two resources with the same identity are rejected."""
        env = Environment(
            console=SubComponent(name="a", manifests={"services": [service("dup")]}),
            others=[SubComponent(name="b", manifests={"services": [service("dup")]})],
        )

        with pytest.raises(ConfigurationError, match="duplicate"):
            flatten(env, "demo")

    def test_missing_name(self):
        """Test a resource without a name is rejected."""
        env = Environment(console=SubComponent(name="a", manifests={"services": [{"spec": {}}]}))

        with pytest.raises(ConfigurationError):
            flatten(env, "demo")

    def test_same_name_different_kind_allowed(self):
        """Test identity includes the kind."""
        env = Environment(
            console=SubComponent(name="a", manifests={"services": [service("x")], "routes": [route("x")]}),
        )

        result = flatten(env, "demo")

        assert len(result[ResourceKind.SERVICE]) == 1
        assert len(result[ResourceKind.ROUTE]) == 1

    def test_requested_routes(self):
        """Test only routes are returned."""
        env = Environment.from_manifest(sample_components(), "app")

        routes = requested_routes(env, "demo")

        assert {r.kind for r in routes} == {ResourceKind.ROUTE}
        assert len(routes) == 2


class TestConsoleLink:
    """Test cases for the console link."""

    def test_link(self):
        """Test the link body."""
        cr = KieApp(kieapp_body())

        link = console_link(cr, _applied(), "https://console.example.com", "4.6", "4.2")

        assert link.kind is ResourceKind.CONSOLE_LINK
        assert link.name == console_link_name("demo", "app") == "demo-link-app"
        assert link.namespace is None
        assert link.metadata["labels"] == {"rhpam-namespace": "demo", "rhpam-app": "app"}
        assert link.body["spec"] == {
            "href": "https://console.example.com",
            "text": "app: Red Hat Process Automation Manager",
            "location": "NamespaceDashboard",
            "namespaceDashboard": {"namespaces": ["demo"]},
        }

    def test_decision_manager_text(self):
        """Test the product name follows the applied product."""
        link = console_link(KieApp(kieapp_body()), _applied("rhdm"), "https://c", "", "4.2")
        assert link.body["spec"]["text"] == "app: Red Hat Decision Manager"

    def test_no_link_without_https(self):
        """Test plain HTTP consoles get no link."""
        assert console_link(KieApp(kieapp_body()), _applied(), "http://app", "4.6", "4.2") is None

    def test_no_link_on_old_platform(self):
        """Test platforms older than the minimum get no link."""
        assert console_link(KieApp(kieapp_body()), _applied(), "https://c", "4.1", "4.2") is None

    def test_no_link_while_deleting(self):
        """Test a CR being deleted gets no link."""
        body = kieapp_body()
        body["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"

        assert console_link(KieApp(body), _applied(), "https://c", "4.6", "4.2") is None
