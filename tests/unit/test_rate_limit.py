"""Tests for rate limiting utilities."""

from __future__ import annotations

from unittest.mock import patch

import kieapp_operator.utils.rate_limit as rl
from kieapp_operator.utils.rate_limit import rate_limit_k8s, reset_rate_limiter


class TestRateLimitK8s:
    """Test cases for Kubernetes API rate limiting."""

    def setup_method(self):
        """Forget slots reserved by earlier tests."""
        reset_rate_limiter()

    def test_rate_limit_k8s_decorator(self):
        """Test that k8s rate limiting decorator works."""
        call_count = 0

        @rate_limit_k8s
        def test_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert test_func() == "success"
        assert call_count == 1

    def test_rate_limit_k8s_with_args(self):
        """Test rate limiting with function arguments."""
        @rate_limit_k8s
        def test_func(a, b, c=None):
            return f"{a}-{b}-{c}"

        assert test_func("x", "y", c="z") == "x-y-z"

    def test_preserves_function_name(self):
        """Test the decorator keeps the wrapped function metadata."""
        @rate_limit_k8s
        def list_routes():
            return []

        assert list_routes.__name__ == "list_routes"

    @patch("kieapp_operator.utils.rate_limit.time.sleep")
    def test_sleeps_when_calls_are_too_fast(self, mock_sleep):
        """Test the second call waits for its slot."""
        with patch("kieapp_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1.0), patch(
            "kieapp_operator.utils.rate_limit.time.monotonic", return_value=10.0
        ):
            @rate_limit_k8s
            def test_func():
                return "ok"

            test_func()
            mock_sleep.assert_not_called()

            test_func()
            mock_sleep.assert_called_once()
            assert abs(mock_sleep.call_args[0][0] - 1.0) < 0.001

    @patch("kieapp_operator.utils.rate_limit.time.sleep")
    def test_no_sleep_after_interval(self, mock_sleep):
        """Test calls spaced beyond the interval do not wait."""
        with patch("kieapp_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1.0):
            with patch("kieapp_operator.utils.rate_limit.time.monotonic", return_value=10.0):
                rate_limit_k8s(lambda: None)()
            with patch("kieapp_operator.utils.rate_limit.time.monotonic", return_value=12.0):
                rate_limit_k8s(lambda: None)()

        mock_sleep.assert_not_called()

    def test_reset(self):
        """Test resetting forgets reserved slots."""
        rl._reserve_slot()
        reset_rate_limiter()
        assert rl._k8s_next_slot == 0.0

    def test_errors_propagate(self):
        """Test exceptions from the wrapped call are not retried."""
        calls = 0

        @rate_limit_k8s
        def failing():
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        try:
            failing()
        except RuntimeError:
            pass
        assert calls == 1
