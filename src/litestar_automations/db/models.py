"""SQLAlchemy models for automation persistence.

This module defines the database models for persisting automations:
- AutomationModel: Stores the definition, its trigger, graph and status
- AutomationApprovalModel: Append-only governance audit trail
- AutomationRunModel: One row per execution attempt
- AutomationTemplateModel: Shared template catalog
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from litestar_automations.core.types import ApprovalAction, ApprovalStatus, LifecycleStatus, RunStatus

__all__ = [
    "AutomationApprovalModel",
    "AutomationModel",
    "AutomationRunModel",
    "AutomationTemplateModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class AutomationModel(UUIDAuditBase):
    """Persisted automation definition.

    ``created_at`` and ``updated_at`` come from the audit base and mirror the
    domain timestamps.

    Attributes:
        org_id: Owning organization.
        name: Display name.
        description: Free text.
        lifecycle_status: draft, paused or active.
        approval_status: Cached governance status.
        trigger: Trigger wire form.
        graph: Normalized graph wire form.
        layout: Editor positions keyed by node id.
        version: Optimistic concurrency token.
        created_by: User who created the automation.
        source_template_id: Template the automation was installed from.
        approvals: Governance audit trail.
        runs: Execution attempts.
    """

    __tablename__ = "automations"
    __table_args__ = (
        Index("ix_automations_org_id", "org_id"),
        Index("ix_automations_org_lifecycle", "org_id", "lifecycle_status"),
    )

    org_id: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    lifecycle_status: Mapped[LifecycleStatus] = mapped_column(
        Enum(LifecycleStatus, native_enum=False, length=50),
        default=LifecycleStatus.DRAFT,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, native_enum=False, length=50),
        default=ApprovalStatus.DRAFT,
    )
    trigger: Mapped[dict[str, Any]] = mapped_column(JSONType)
    graph: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    layout: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    version: Mapped[int] = mapped_column(default=1)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_template_id: Mapped[UUID | None] = mapped_column(nullable=True)

    # Relationships
    approvals: Mapped[list[AutomationApprovalModel]] = relationship(
        back_populates="automation",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="AutomationApprovalModel.occurred_at",
    )
    runs: Mapped[list[AutomationRunModel]] = relationship(
        back_populates="automation",
        lazy="noload",
        cascade="all, delete-orphan",
    )


class AutomationApprovalModel(UUIDAuditBase):
    """One governance transition.

    Attributes:
        automation_id: Foreign key to the automation.
        action: request, approve or reject.
        from_status: Approval status before the transition.
        to_status: Approval status after the transition.
        actor_id: Who performed it.
        notes: Free text, e.g. the rejection reason.
        occurred_at: When it happened.
    """

    __tablename__ = "automation_approvals"
    __table_args__ = (Index("ix_automation_approvals_automation_id", "automation_id"),)

    automation_id: Mapped[UUID] = mapped_column(
        ForeignKey("automations.id", ondelete="CASCADE"),
    )
    action: Mapped[ApprovalAction] = mapped_column(Enum(ApprovalAction, native_enum=False, length=50))
    from_status: Mapped[ApprovalStatus] = mapped_column(Enum(ApprovalStatus, native_enum=False, length=50))
    to_status: Mapped[ApprovalStatus] = mapped_column(Enum(ApprovalStatus, native_enum=False, length=50))
    actor_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))

    # Relationships
    automation: Mapped[AutomationModel] = relationship(back_populates="approvals")


class AutomationRunModel(UUIDAuditBase):
    """One execution attempt of an automation.

    Attributes:
        automation_id: Foreign key to the automation.
        org_id: Owning organization, denormalized for queries.
        status: running, success, failed or cancelled.
        started_at: When the trigger fired.
        finished_at: When the run reached a terminal status.
        last_error: Error reported for failed runs.
        context: Trigger payload.
    """

    __tablename__ = "automation_runs"
    __table_args__ = (
        Index("ix_automation_runs_automation_started", "automation_id", "started_at"),
        Index("ix_automation_runs_org_started", "org_id", "started_at"),
        Index("ix_automation_runs_status", "status"),
    )

    automation_id: Mapped[UUID] = mapped_column(
        ForeignKey("automations.id", ondelete="CASCADE"),
    )
    org_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[RunStatus] = mapped_column(
        Enum(RunStatus, native_enum=False, length=50),
        default=RunStatus.RUNNING,
    )
    started_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    context: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)

    # Relationships
    automation: Mapped[AutomationModel] = relationship(back_populates="runs")


class AutomationTemplateModel(UUIDAuditBase):
    """Catalog template.

    Attributes:
        slug: Unique, URL-friendly key.
        name: Display name.
        description: Free text.
        category: Catalog grouping.
        recommended: Whether the catalog lists it first.
        trigger: Trigger wire form.
        graph: Normalized graph wire form.
    """

    __tablename__ = "automation_templates"
    __table_args__ = (Index("ix_automation_templates_slug", "slug", unique=True),)

    slug: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), default="general")
    recommended: Mapped[bool] = mapped_column(default=False)
    trigger: Mapped[dict[str, Any]] = mapped_column(JSONType)
    graph: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
