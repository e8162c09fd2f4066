"""Approval governance for automation definitions.

An automation must be approved before it may be activated. The state machine
here is stateless: it computes the next status for an action and returns the
:class:`ApprovalEvent` that records it. The current status is always the
``to_status`` of the last event; definitions cache it for O(1) reads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID

from litestar_automations.core.types import ApprovalAction, ApprovalStatus
from litestar_automations.exceptions import GovernanceError, InvalidTransitionError

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = ["APPROVAL_TRANSITIONS", "ApprovalEvent", "ApprovalStateMachine", "status_from_history"]

logger = logging.getLogger(__name__)

APPROVAL_TRANSITIONS: dict[tuple[ApprovalStatus, ApprovalAction], ApprovalStatus] = {
    (ApprovalStatus.DRAFT, ApprovalAction.REQUEST): ApprovalStatus.PENDING,
    (ApprovalStatus.REJECTED, ApprovalAction.REQUEST): ApprovalStatus.PENDING,
    (ApprovalStatus.PENDING, ApprovalAction.APPROVE): ApprovalStatus.APPROVED,
    (ApprovalStatus.PENDING, ApprovalAction.REJECT): ApprovalStatus.DRAFT,
    (ApprovalStatus.APPROVED, ApprovalAction.REQUEST): ApprovalStatus.PENDING,
}
"""Legal ``(status, action)`` pairs and the status they lead to."""


@dataclass(frozen=True)
class ApprovalEvent:
    """Audit entry for one governance transition.

    Attributes:
        workflow_id: The automation the transition applies to.
        action: What was done.
        from_status: Approval status before the transition.
        to_status: Approval status after the transition.
        actor_id: Who did it. Required for approvals.
        notes: Free text, typically the rejection reason.
        timestamp: When it happened (UTC).
    """

    workflow_id: UUID
    action: ApprovalAction
    from_status: ApprovalStatus
    to_status: ApprovalStatus
    actor_id: str | None = None
    notes: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the event to a JSON-compatible dictionary."""
        return {
            "workflow_id": str(self.workflow_id),
            "action": self.action.value,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "actor_id": self.actor_id,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApprovalEvent:
        """Rebuild an event from :meth:`to_dict` output."""
        return cls(
            workflow_id=UUID(str(data["workflow_id"])),
            action=ApprovalAction(data["action"]),
            from_status=ApprovalStatus(data["from_status"]),
            to_status=ApprovalStatus(data["to_status"]),
            actor_id=data.get("actor_id"),
            notes=data.get("notes"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


def status_from_history(events: Iterable[ApprovalEvent]) -> ApprovalStatus:
    """Replay an approval history.

    Args:
        events: Events in the order they were appended.

    Returns:
        The ``to_status`` of the last event, or ``DRAFT`` for no history.
    """
    status = ApprovalStatus.DRAFT
    for event in events:
        status = event.to_status
    return status


class ApprovalStateMachine:
    """Computes governance transitions.

    Example:
        >>> machine = ApprovalStateMachine()
        >>> event = machine.request(workflow_id, ApprovalStatus.DRAFT, actor_id="u1")
        >>> event.to_status
        <ApprovalStatus.PENDING: 'pending'>
    """

    def __init__(self, transitions: dict[tuple[ApprovalStatus, ApprovalAction], ApprovalStatus] | None = None) -> None:
        """Initialize the state machine.

        Args:
            transitions: Optional transition table, defaults to
                :data:`APPROVAL_TRANSITIONS`.
        """
        self.transitions = transitions or APPROVAL_TRANSITIONS

    def allowed_actions(self, status: ApprovalStatus) -> list[ApprovalAction]:
        """Get the actions permitted from a status."""
        return [action for (from_status, action) in self.transitions if from_status == status]

    def transition(
        self,
        workflow_id: UUID,
        status: ApprovalStatus,
        action: ApprovalAction,
        *,
        actor_id: str | None = None,
        notes: str | None = None,
    ) -> ApprovalEvent:
        """Apply an action to a status.

        Args:
            workflow_id: The automation being governed.
            status: Its current approval status.
            action: The action to apply.
            actor_id: Who performs the action.
            notes: Optional notes, e.g. a rejection reason.

        Returns:
            The ApprovalEvent recording the transition.

        Raises:
            InvalidTransitionError: If ``action`` is not allowed from ``status``.
            GovernanceError: If an approval has no actor.
        """
        status = ApprovalStatus(status)
        action = ApprovalAction(action)
        to_status = self.transitions.get((status, action))
        if to_status is None:
            logger.warning("Rejected approval action %s on automation %s in status %s", action, workflow_id, status)
            raise InvalidTransitionError(f"automation '{workflow_id}'", status.value, action.value)

        if action == ApprovalAction.APPROVE and not (actor_id and actor_id.strip()):
            raise GovernanceError(workflow_id, "an approver must be identified to approve")
        if action == ApprovalAction.REJECT and not (notes and notes.strip()):
            logger.warning("Automation %s rejected without a reason", workflow_id)

        logger.info("Automation %s approval %s: %s -> %s", workflow_id, action, status, to_status)
        return ApprovalEvent(
            workflow_id=workflow_id,
            action=action,
            from_status=status,
            to_status=to_status,
            actor_id=actor_id,
            notes=notes,
        )

    def request(
        self, workflow_id: UUID, status: ApprovalStatus, *, actor_id: str | None = None, notes: str | None = None
    ) -> ApprovalEvent:
        """Submit an automation for approval."""
        return self.transition(workflow_id, status, ApprovalAction.REQUEST, actor_id=actor_id, notes=notes)

    def approve(
        self, workflow_id: UUID, status: ApprovalStatus, *, actor_id: str | None, notes: str | None = None
    ) -> ApprovalEvent:
        """Approve a pending automation. ``actor_id`` is mandatory."""
        return self.transition(workflow_id, status, ApprovalAction.APPROVE, actor_id=actor_id, notes=notes)

    def reject(
        self, workflow_id: UUID, status: ApprovalStatus, *, actor_id: str | None = None, notes: str | None = None
    ) -> ApprovalEvent:
        """Send a pending automation back to draft."""
        return self.transition(workflow_id, status, ApprovalAction.REJECT, actor_id=actor_id, notes=notes)

    @staticmethod
    def can_activate(status: ApprovalStatus) -> bool:
        """Whether an automation in this approval status may be activated."""
        return status == ApprovalStatus.APPROVED
