"""Tests for agent models."""

from datetime import datetime

from armature.agent.models import EventType, ToolEvent


class TestEventType:
    """Tests for EventType enum."""

    def test_event_types(self):
        """Test event type values."""
        assert EventType.TOOL_START == "tool_start"
        assert EventType.TOOL_COMPLETE == "tool_complete"
        assert EventType.TOOL_ERROR == "tool_error"
        assert EventType.TOOL_APPROVAL_NEEDED == "tool_approval_needed"
        assert EventType.TOOL_DENIED == "tool_denied"
        assert EventType.CHECKPOINT_CREATED == "checkpoint_created"


class TestToolEvent:
    """Tests for ToolEvent."""

    def test_minimal_event(self):
        """Test an event with only a type."""
        event = ToolEvent(event_type=EventType.TOOL_START)

        assert event.event_type == "tool_start"
        assert event.tool_name is None
        assert event.data is None
        datetime.fromisoformat(event.timestamp)

    def test_full_event(self):
        """Test an event with every field."""
        event = ToolEvent(
            event_type=EventType.CHECKPOINT_CREATED,
            tool_name="write_file",
            tool_call_id="call_1",
            message="Checkpoint created",
            data={"tag": "2025-01-01T00-00-00-000000-a.txt-write_file"},
        )

        assert event.tool_call_id == "call_1"
        assert event.data["tag"].endswith("write_file")

    def test_serialization(self):
        """Test events serialize with plain enum values."""
        event = ToolEvent(event_type=EventType.TOOL_ERROR, message="boom")

        dumped = event.model_dump()

        assert dumped["event_type"] == "tool_error"
        assert dumped["message"] == "boom"
