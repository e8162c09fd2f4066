"""Data Transfer Objects for the automation web API.

This module defines DTOs for serializing and deserializing automation data
in REST API requests and responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal
from uuid import UUID

from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.trigger import describe_trigger, dump_trigger
from litestar_automations.core.types import ApprovalAction

if TYPE_CHECKING:
    from litestar_automations.core.approval import ApprovalEvent
    from litestar_automations.core.definition import WorkflowDefinition
    from litestar_automations.core.runs import RunRecord, RunSummary
    from litestar_automations.core.templates import TemplateWorkflow

__all__ = [
    "ApprovalActionDTO",
    "ApprovalEventDTO",
    "CompleteRunDTO",
    "CreateDefinitionDTO",
    "DefinitionDTO",
    "EditableGraphDTO",
    "GraphDTO",
    "InstallTemplateDTO",
    "RunDTO",
    "RunSummaryDTO",
    "SaveEditableGraphDTO",
    "StartRunDTO",
    "TemplateDTO",
    "UpdateDefinitionDTO",
]


@dataclass
class CreateDefinitionDTO:
    """DTO for creating an automation.

    Attributes:
        name: Display name.
        org_id: Owning organization.
        trigger: Trigger wire form, ``{"kind": "event", "event_type": ...}``.
        graph: Optional normalized graph wire form.
        description: Free text.
        created_by: User creating the automation.
    """

    name: str
    org_id: str
    trigger: dict[str, Any]
    graph: dict[str, Any] | None = None
    description: str = ""
    created_by: str | None = None


@dataclass
class UpdateDefinitionDTO:
    """DTO for editing an automation. Omitted fields are left unchanged.

    Attributes:
        name: New display name.
        description: New description.
        trigger: New trigger wire form.
        graph: New normalized graph wire form.
        expected_version: Version the client last saw; stale writes are refused.
    """

    name: str | None = None
    description: str | None = None
    trigger: dict[str, Any] | None = None
    graph: dict[str, Any] | None = None
    expected_version: int | None = None


@dataclass
class SaveEditableGraphDTO:
    """DTO for saving the editor view of a graph.

    Attributes:
        nodes: Editable nodes with ``position`` and ``data``.
        edges: Editable edges with ``source``, ``target`` and ``label``.
        expected_version: Version the editor loaded.
    """

    nodes: list[dict[str, Any]] = field(default_factory=list)
    edges: list[dict[str, Any]] = field(default_factory=list)
    expected_version: int | None = None


@dataclass
class ApprovalActionDTO:
    """DTO for a governance action.

    Attributes:
        action: request, approve or reject.
        actor_id: Who performs the action. Required to approve.
        notes: Optional notes, e.g. the rejection reason.
    """

    action: ApprovalAction
    actor_id: str | None = None
    notes: str | None = None


@dataclass
class StartRunDTO:
    """DTO for recording a trigger firing.

    Attributes:
        context: Trigger payload handed to the runtime.
    """

    context: dict[str, Any] | None = None


@dataclass
class CompleteRunDTO:
    """DTO for finishing a run.

    Attributes:
        outcome: success or failed.
        error: Error message for failed runs.
    """

    outcome: Literal["success", "failed"]
    error: str | None = None


@dataclass
class InstallTemplateDTO:
    """DTO for installing a template.

    Attributes:
        org_id: Organization to install for.
        user_id: User installing the template.
        name: Optional name override.
    """

    org_id: str
    user_id: str | None = None
    name: str | None = None


@dataclass
class DefinitionDTO:
    """DTO for an automation definition."""

    id: UUID
    org_id: str
    name: str
    description: str
    lifecycle_status: str
    approval_status: str
    trigger: dict[str, Any]
    trigger_summary: str
    graph: dict[str, Any]
    node_count: int
    edge_count: int
    version: int
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    source_template_id: UUID | None = None

    @classmethod
    def from_definition(cls, definition: WorkflowDefinition) -> DefinitionDTO:
        """Build the DTO from a domain definition."""
        return cls(
            id=definition.id,
            org_id=definition.org_id,
            name=definition.name,
            description=definition.description,
            lifecycle_status=definition.lifecycle_status.value,
            approval_status=definition.approval_status.value,
            trigger=dump_trigger(definition.trigger),
            trigger_summary=describe_trigger(definition.trigger),
            graph=GraphCompiler.dump_graph(definition.graph),
            node_count=definition.graph.node_count,
            edge_count=definition.graph.edge_count,
            version=definition.version,
            created_at=definition.created_at,
            updated_at=definition.updated_at,
            created_by=definition.created_by,
            source_template_id=definition.source_template_id,
        )


@dataclass
class EditableGraphDTO:
    """DTO for the editor view of a graph.

    Attributes:
        version: Definition version the view was built from.
        nodes: Editable nodes.
        edges: Editable edges.
    """

    version: int
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]


@dataclass
class GraphDTO:
    """DTO for graph visualization data.

    Attributes:
        mermaid_source: MermaidJS graph definition.
        nodes: Normalized nodes.
        edges: Normalized edges.
    """

    mermaid_source: str
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]


@dataclass
class ApprovalEventDTO:
    """DTO for a governance audit entry."""

    workflow_id: UUID
    action: str
    from_status: str
    to_status: str
    timestamp: datetime
    actor_id: str | None = None
    notes: str | None = None

    @classmethod
    def from_event(cls, event: ApprovalEvent) -> ApprovalEventDTO:
        """Build the DTO from a domain event."""
        return cls(
            workflow_id=event.workflow_id,
            action=event.action.value,
            from_status=event.from_status.value,
            to_status=event.to_status.value,
            timestamp=event.timestamp,
            actor_id=event.actor_id,
            notes=event.notes,
        )


@dataclass
class RunDTO:
    """DTO for a run record."""

    id: UUID
    workflow_id: UUID
    status: str
    started_at: datetime
    finished_at: datetime | None = None
    last_error: str | None = None
    org_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: RunRecord) -> RunDTO:
        """Build the DTO from a domain run record."""
        return cls(
            id=record.id,
            workflow_id=record.workflow_id,
            status=record.status.value,
            started_at=record.started_at,
            finished_at=record.finished_at,
            last_error=record.last_error,
            org_id=record.org_id,
            context=record.context,
        )


@dataclass
class RunSummaryDTO:
    """DTO for the execution statistics of an automation."""

    workflow_id: UUID
    execution_count: int
    last_executed_at: datetime | None
    status_counts: dict[str, int]

    @classmethod
    def from_summary(cls, summary: RunSummary) -> RunSummaryDTO:
        """Build the DTO from a domain run summary."""
        return cls(
            workflow_id=summary.workflow_id,
            execution_count=summary.execution_count,
            last_executed_at=summary.last_executed_at,
            status_counts={status.value: count for status, count in summary.status_counts.items()},
        )


@dataclass
class TemplateDTO:
    """DTO for a catalog template."""

    id: UUID
    slug: str
    name: str
    description: str
    category: str
    recommended: bool
    trigger: dict[str, Any]
    trigger_summary: str
    graph: dict[str, Any]

    @classmethod
    def from_template(cls, template: TemplateWorkflow) -> TemplateDTO:
        """Build the DTO from a domain template."""
        return cls(
            id=template.id,
            slug=template.slug,
            name=template.name,
            description=template.description,
            category=template.category,
            recommended=template.recommended,
            trigger=dump_trigger(template.trigger),
            trigger_summary=describe_trigger(template.trigger),
            graph=GraphCompiler.dump_graph(template.graph),
        )
