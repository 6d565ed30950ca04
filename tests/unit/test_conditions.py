"""Unit tests for condition utilities."""

from __future__ import annotations

from kieapp_operator.utils.conditions import latest_condition, record_condition


class TestRecordCondition:
    """Test the condition history."""

    def test_append_to_empty(self) -> None:
        """Test recording the first condition."""
        result, appended = record_condition([], "Provisioning")

        assert appended
        assert len(result) == 1
        assert result[0]["type"] == "Provisioning"
        assert result[0]["status"] == "True"
        assert "lastTransitionTime" in result[0]
        assert "reason" not in result[0]

    def test_reason_and_message(self) -> None:
        """Test reason and message are recorded when given."""
        result, _ = record_condition([], "Failed", "Unknown", "boom")

        assert result[0]["reason"] == "Unknown"
        assert result[0]["message"] == "boom"

    def test_repeat_is_not_appended(self) -> None:
        """Test the same condition twice in a row is recorded once."""
        first, _ = record_condition([], "Deployed")
        second, appended = record_condition(first, "Deployed")

        assert not appended
        assert second == first

    def test_different_message_is_appended(self) -> None:
        """Test a changed message produces a new entry."""
        first, _ = record_condition([], "Failed", "Unknown", "one")
        second, appended = record_condition(first, "Failed", "Unknown", "two")

        assert appended
        assert len(second) == 2

    def test_input_not_mutated(self) -> None:
        """Test the given list is left untouched."""
        conditions = [{"type": "Provisioning", "status": "True"}]
        record_condition(conditions, "Deployed")

        assert len(conditions) == 1

    def test_history_is_bounded(self) -> None:
        """Test the oldest conditions are dropped past the limit."""
        conditions: list = []
        for i in range(35):
            conditions, _ = record_condition(conditions, "Provisioning", message=str(i))

        assert len(conditions) == 30
        assert conditions[0]["message"] == "5"
        assert conditions[-1]["message"] == "34"

    def test_custom_limit(self) -> None:
        """Test a custom history size."""
        conditions: list = []
        for phase in ("Provisioning", "Deployed", "Provisioning"):
            conditions, _ = record_condition(conditions, phase, max_conditions=2)

        assert [c["type"] for c in conditions] == ["Deployed", "Provisioning"]


class TestLatestCondition:
    """Test latest_condition."""

    def test_empty(self) -> None:
        """Test no conditions."""
        assert latest_condition([]) is None

    def test_latest(self) -> None:
        """Test the last entry is returned."""
        conditions = [{"type": "Provisioning"}, {"type": "Deployed"}]
        assert latest_condition(conditions) == {"type": "Deployed"}
