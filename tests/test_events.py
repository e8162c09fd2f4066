"""Tests for automation domain events."""

from __future__ import annotations

from uuid import uuid4

import pytest


@pytest.mark.unit
class TestAutomationEvents:
    """Tests for the event dataclasses."""

    def test_timestamp_defaults_to_utc_now(self) -> None:
        """Test events are stamped on creation."""
        from litestar_automations.core.events import AutomationActivated

        event = AutomationActivated(workflow_id=uuid4())

        assert event.timestamp.tzinfo is not None

    def test_events_share_base(self) -> None:
        """Test every event is an AutomationEvent."""
        from litestar_automations.core import events

        workflow_id = uuid4()
        emitted = [
            events.ApprovalRequested(workflow_id=workflow_id, actor_id="u1"),
            events.AutomationApproved(workflow_id=workflow_id, actor_id="u2"),
            events.AutomationRejected(workflow_id=workflow_id),
            events.AutomationActivated(workflow_id=workflow_id),
            events.AutomationPaused(workflow_id=workflow_id, reason="re-approval requested"),
            events.TemplateInstalled(workflow_id=workflow_id, template_id=uuid4(), org_id="acme"),
            events.RunStarted(workflow_id=workflow_id, run_id=uuid4()),
        ]

        assert all(isinstance(event, events.AutomationEvent) for event in emitted)
        assert {event.workflow_id for event in emitted} == {workflow_id}

    def test_run_completed_fields(self) -> None:
        """Test a failed run event carries its error."""
        from litestar_automations.core.events import RunCompleted
        from litestar_automations.core.types import RunStatus

        event = RunCompleted(workflow_id=uuid4(), run_id=uuid4(), status=RunStatus.FAILED, error="timeout")

        assert event.status == "failed"
        assert event.error == "timeout"

    def test_notifier_protocol(self, notifier: object) -> None:
        """Test any object with an async notify method is a notifier."""
        from litestar_automations.core.protocols import AutomationNotifier

        assert isinstance(notifier, AutomationNotifier)
        assert not isinstance(object(), AutomationNotifier)
