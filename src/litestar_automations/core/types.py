"""Core type definitions for litestar-automations.

This module defines the enums and type aliases shared by the graph model, the
governance state machine and the run ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias

__all__ = [
    "ApprovalAction",
    "ApprovalStatus",
    "Config",
    "LifecycleStatus",
    "NodeType",
    "OrgContext",
    "RunStatus",
    "TERMINAL_RUN_STATUSES",
    "TriggerKind",
]


class NodeType(StrEnum):
    """Classification of nodes within an automation graph.

    Attributes:
        ACTION: Performs a side effect (send email, create task, call webhook).
        CONDITION: Evaluates a templated boolean expression.
        DELAY: Waits for a fixed duration before continuing.
        SPLIT: A/B branch point; branch semantics belong to the runtime.
    """

    ACTION = "action"
    CONDITION = "condition"
    DELAY = "delay"
    SPLIT = "split"


class TriggerKind(StrEnum):
    """Discriminator for trigger specifications."""

    EVENT = "event"
    SCHEDULE = "schedule"


class LifecycleStatus(StrEnum):
    """Whether an automation reacts to its trigger.

    Attributes:
        DRAFT: Never activated.
        PAUSED: Activated before, currently not reacting.
        ACTIVE: Reacting to its trigger. Requires approval.
    """

    DRAFT = "draft"
    PAUSED = "paused"
    ACTIVE = "active"


class ApprovalStatus(StrEnum):
    """Governance status of an automation definition.

    ``REJECTED`` is kept for rows written by older stores; rejection now
    returns a definition to ``DRAFT``.
    """

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(StrEnum):
    """Actions accepted by the approval state machine."""

    REQUEST = "request"
    APPROVE = "approve"
    REJECT = "reject"


class RunStatus(StrEnum):
    """Status of a single execution attempt.

    Attributes:
        RUNNING: Created when the trigger fired; not finished yet.
        SUCCESS: Finished without error.
        FAILED: Finished with an error.
        CANCELLED: Stopped before finishing.
    """

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_RUN_STATUSES = frozenset({RunStatus.SUCCESS, RunStatus.FAILED, RunStatus.CANCELLED})
"""Run statuses a record can never leave."""

Config: TypeAlias = dict[str, Any]
"""Type alias for JSON-compatible node configuration."""


@dataclass(frozen=True)
class OrgContext:
    """Who is acting, and on behalf of which organization.

    Passed explicitly to every operation that creates or stamps ownership;
    there is no ambient organization.

    Attributes:
        org_id: The owning organization.
        user_id: The acting user, if known.
    """

    org_id: str
    user_id: str | None = None
