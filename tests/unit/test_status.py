"""Tests for status derivation and persistence."""

from __future__ import annotations

import pytest

from kieapp_operator.cr import AppliedConfiguration, KieApp
from kieapp_operator.errors import ErrorClass, ResourceConflict
from kieapp_operator.logging import ResourceLogger
from kieapp_operator.models import ManagedResource, ResourceKind
from kieapp_operator.reconcile.status import StatusWriter, build_status, deployment_summary, derive_phase

from conftest import deployment_config, kieapp_body


class TestDerivePhase:
    """Test cases for derive_phase."""

    def test_phases(self):
        """Test the phase of each outcome."""
        assert derive_phase(True) == "Provisioning"
        assert derive_phase(False) == "Deployed"
        assert derive_phase(False, ErrorClass.CONFIGURATION) == "ConfigurationError"
        assert derive_phase(False, ErrorClass.MISSING_DEPENDENCY) == "MissingDependency"
        assert derive_phase(False, ErrorClass.UNKNOWN) == "Failed"
        assert derive_phase(True, ErrorClass.TRANSIENT) == "Failed"


class TestDeploymentSummary:
    """Test cases for deployment_summary."""

    def test_groups(self):
        """Test DeploymentConfigs are grouped by availability."""
        ready = deployment_config("ready", replicas=2)
        ready["status"] = {"availableReplicas": 2}
        starting = deployment_config("starting", replicas=2)
        starting["status"] = {"availableReplicas": 1}
        stopped = deployment_config("stopped", replicas=0)

        summary = deployment_summary(
            ManagedResource(ResourceKind.DEPLOYMENT_CONFIG, body) for body in (ready, starting, stopped)
        )

        assert summary == {"ready": ["ready"], "starting": ["starting"], "stopped": ["stopped"]}


class TestBuildStatus:
    """Test cases for build_status."""

    def test_fields(self):
        """Test the status carries phase, applied configuration and console host."""
        applied = AppliedConfiguration(
            environment="rhpam-trial", application_name="app", product="rhpam", version="7.13.1", keystore_password="p"
        )

        status = build_status({}, "Provisioning", applied=applied, console_host="https://h", deployments={"ready": []})

        assert status["phase"] == "Provisioning"
        assert status["applied"] == applied.to_dict()
        assert status["consoleHost"] == "https://h"
        assert status["deployments"] == {"ready": []}
        assert [c["type"] for c in status["conditions"]] == ["Provisioning"]

    def test_carry_over(self):
        """Test fields not passed are kept from the previous status."""
        previous = build_status({}, "Deployed", console_host="https://h")

        status = build_status(previous, "Failed", reason="Unknown", message="boom")

        assert status["consoleHost"] == "https://h"
        assert [c["type"] for c in status["conditions"]] == ["Deployed", "Failed"]
        assert previous["phase"] == "Deployed"

    def test_stable(self):
        """Test the same phase twice yields the same status."""
        first = build_status({}, "Deployed", console_host="https://h")
        assert build_status(first, "Deployed", console_host="https://h") == first


class TestStatusWriter:
    """Test cases for StatusWriter.converge."""

    def test_writes_changed_status(self, store, cr):
        """Test a changed status is written."""
        status = build_status(cr.status, "Provisioning")

        assert StatusWriter(store, ResourceLogger()).converge(cr, cr, status)

        assert store.find(ResourceKind.KIEAPP, "demo", "app")["status"]["phase"] == "Provisioning"

    def test_unchanged_status_not_written(self, store, cr):
        """Test an unchanged status costs no write."""
        assert StatusWriter(store, ResourceLogger()).converge(cr, cr, cr.status)
        assert ("update_status", "KieApp", "app") not in store.calls

    def test_stale_snapshot_skipped(self, store, cr):
        """Test the write is skipped when the CR changed during the pass."""
        cached = KieApp(store.get(ResourceKind.KIEAPP, "demo", "app").body)
        stale = cr.copy()
        stale.metadata["resourceVersion"] = "0"

        assert not StatusWriter(store, ResourceLogger()).converge(stale, cached, build_status({}, "Deployed"))
        assert ("update_status", "KieApp", "app") not in store.calls

    def test_conflict_propagates(self, store, cr):
        """Test a concurrent write between snapshot and write surfaces as a conflict."""
        store.update(ManagedResource(ResourceKind.KIEAPP, cr.copy().body))

        with pytest.raises(ResourceConflict):
            StatusWriter(store, ResourceLogger()).converge(cr, cr, build_status({}, "Deployed"))
