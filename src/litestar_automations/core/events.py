"""Domain events for automation governance and runs.

The service emits these events after each successful state change and hands
them to the configured :class:`~litestar_automations.core.protocols.AutomationNotifier`,
e.g. to alert an approver. Delivery is up to the notifier.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from litestar_automations.core.types import RunStatus

__all__ = [
    "ApprovalRequested",
    "AutomationActivated",
    "AutomationApproved",
    "AutomationDeleted",
    "AutomationEvent",
    "AutomationPaused",
    "AutomationRejected",
    "RunCancelled",
    "RunCompleted",
    "RunStarted",
    "TemplateInstalled",
]


@dataclass
class AutomationEvent:
    """Base class for all automation events.

    Attributes:
        workflow_id: The automation the event is about.
        timestamp: When the event occurred (UTC).
    """

    workflow_id: UUID
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc), kw_only=True)


@dataclass
class ApprovalRequested(AutomationEvent):
    """An automation was submitted for approval.

    Attributes:
        actor_id: Who requested it.
        notes: Request notes.

    Example:
        >>> event = ApprovalRequested(workflow_id=definition.id, actor_id="u1")
    """

    actor_id: str | None = None
    notes: str | None = None


@dataclass
class AutomationApproved(AutomationEvent):
    """An automation was approved.

    Attributes:
        actor_id: The approver.
        notes: Approval notes.
    """

    actor_id: str
    notes: str | None = None


@dataclass
class AutomationRejected(AutomationEvent):
    """An automation was sent back to draft.

    Attributes:
        actor_id: The reviewer.
        notes: Rejection reason.
    """

    actor_id: str | None = None
    notes: str | None = None


@dataclass
class AutomationActivated(AutomationEvent):
    """An automation started reacting to its trigger."""


@dataclass
class AutomationPaused(AutomationEvent):
    """An automation stopped reacting to its trigger.

    Attributes:
        reason: Why, e.g. ``"re-approval requested"``.
    """

    reason: str | None = None


@dataclass
class AutomationDeleted(AutomationEvent):
    """An automation was deleted together with its audit trail and runs.

    Attributes:
        org_id: The organization that owned it.
    """

    org_id: str


@dataclass
class TemplateInstalled(AutomationEvent):
    """A catalog template was installed as a new automation.

    Attributes:
        template_id: The source template.
        org_id: The organization it was installed for.
    """

    template_id: UUID
    org_id: str


@dataclass
class RunStarted(AutomationEvent):
    """A run was recorded for a trigger firing.

    Attributes:
        run_id: The new run.
    """

    run_id: UUID


@dataclass
class RunCompleted(AutomationEvent):
    """A run finished with success or failure.

    Attributes:
        run_id: The run.
        status: ``success`` or ``failed``.
        error: Error reported for failed runs.
    """

    run_id: UUID
    status: RunStatus
    error: str | None = None


@dataclass
class RunCancelled(AutomationEvent):
    """A run was cancelled before finishing.

    Attributes:
        run_id: The run.
    """

    run_id: UUID
