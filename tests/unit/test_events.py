"""Tests for Kubernetes event utilities."""

from __future__ import annotations

from unittest.mock import patch

from kieapp_operator.utils.events import (
    emit_cleaned_up,
    emit_deployed,
    emit_event,
    emit_provisioning,
    emit_reconcile_failed,
    emit_reconcile_started,
    emit_routes_pending,
)


class TestEmitEvent:
    """Test cases for emit_event function."""

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_event_normal(self, mock_event):
        """Test emitting normal event."""
        body = {"metadata": {"name": "app", "namespace": "demo"}}

        emit_event(body, "TestReason", "Test message")

        mock_event.assert_called_once_with(
            body,
            reason="TestReason",
            message="Test message",
            type="Normal",
        )

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_event_warning(self, mock_event):
        """Test emitting warning event."""
        body = {"metadata": {"name": "app", "namespace": "demo"}}

        emit_event(body, "ErrorReason", "Error occurred", type_="Warning")

        mock_event.assert_called_once_with(
            body,
            reason="ErrorReason",
            message="Error occurred",
            type="Warning",
        )


class TestReconcileEvents:
    """Test cases for reconciliation events."""

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_reconcile_started(self, mock_event):
        """Test emitting reconcile started event."""
        body = {"metadata": {"name": "app"}}

        emit_reconcile_started(body)

        call_kwargs = mock_event.call_args[1]
        assert call_kwargs["reason"] == "ReconcileStarted"
        assert call_kwargs["type"] == "Normal"

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_reconcile_failed(self, mock_event):
        """Test emitting reconcile failed event."""
        body = {"metadata": {"name": "app"}}

        emit_reconcile_failed(body, "Something broke")

        call_kwargs = mock_event.call_args[1]
        assert call_kwargs["reason"] == "ReconcileFailed"
        assert call_kwargs["message"] == "Something broke"
        assert call_kwargs["type"] == "Warning"


class TestLifecycleEvents:
    """Test cases for KieApp lifecycle events."""

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_routes_pending(self, mock_event):
        """Test emitting routes pending event."""
        emit_routes_pending({"metadata": {"name": "app"}})

        assert mock_event.call_args[1]["reason"] == "RoutesPending"

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_provisioning(self, mock_event):
        """Test emitting provisioning event."""
        emit_provisioning({"metadata": {"name": "app"}})

        assert mock_event.call_args[1]["reason"] == "Provisioning"

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_deployed(self, mock_event):
        """Test emitting deployed event."""
        emit_deployed({"metadata": {"name": "app"}})

        assert mock_event.call_args[1]["reason"] == "Deployed"
        assert mock_event.call_args[1]["type"] == "Normal"

    @patch("kieapp_operator.utils.events.kopf.event")
    def test_emit_cleaned_up(self, mock_event):
        """Test emitting cleanup event."""
        emit_cleaned_up({"metadata": {"name": "app"}})

        assert mock_event.call_args[1]["reason"] == "CleanedUp"
