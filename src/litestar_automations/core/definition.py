"""The automation definition aggregate.

A :class:`WorkflowDefinition` owns one trigger, one normalized graph, the
editor layout and the approval history of an automation. All mutations go
through its methods so the governance invariant holds at all times:

    lifecycle_status == ACTIVE  implies  approval_status == APPROVED
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from litestar_automations.core.approval import ApprovalEvent, ApprovalStateMachine
from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.graph import GraphModel, Position, ValidationResult, validate_graph
from litestar_automations.core.trigger import TriggerSpec, dump_trigger, load_trigger, validate_trigger
from litestar_automations.core.types import ApprovalStatus, LifecycleStatus, OrgContext
from litestar_automations.exceptions import GovernanceError, InvalidTransitionError, ValidationError

if TYPE_CHECKING:
    from litestar_automations.core.compiler import EditableGraph

__all__ = ["WorkflowDefinition"]

logger = logging.getLogger(__name__)

_approvals = ApprovalStateMachine()
_compiler = GraphCompiler()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WorkflowDefinition:
    """Editable, versioned specification of one automation.

    Attributes:
        name: Display name.
        org_id: Owning organization.
        trigger: What makes the automation fire.
        graph: Normalized execution graph.
        description: Free text.
        id: Unique identifier, immutable.
        lifecycle_status: Whether the automation reacts to its trigger.
        approval_status: Cached governance status (last history entry).
        layout: Editor-only node positions keyed by node id.
        approval_history: Append-only governance audit trail.
        version: Bumped on every mutation; the optimistic concurrency token.
        created_by: User who created the automation.
        created_at: Creation time (UTC).
        updated_at: Time of the last mutation (UTC).
        source_template_id: Catalog template this automation was installed from.

    Example:
        >>> definition = WorkflowDefinition.create(
        ...     "Welcome new leads",
        ...     EventTrigger(event_type="lead.created"),
        ...     OrgContext(org_id="acme", user_id="u1"),
        ... )
        >>> definition.request_approval(actor_id="u1")
        >>> definition.approve(actor_id="manager")
        >>> definition.activate()
    """

    name: str
    org_id: str
    trigger: TriggerSpec
    graph: GraphModel = field(default_factory=GraphModel)
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    lifecycle_status: LifecycleStatus = LifecycleStatus.DRAFT
    approval_status: ApprovalStatus = ApprovalStatus.DRAFT
    layout: dict[str, Position] = field(default_factory=dict)
    approval_history: list[ApprovalEvent] = field(default_factory=list)
    version: int = 1
    created_by: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    source_template_id: UUID | None = None

    @classmethod
    def create(
        cls,
        name: str,
        trigger: TriggerSpec,
        org_context: OrgContext,
        *,
        graph: GraphModel | None = None,
        description: str = "",
        layout: dict[str, Position] | None = None,
        source_template_id: UUID | None = None,
    ) -> WorkflowDefinition:
        """Create a new draft automation.

        Args:
            name: Display name, must not be blank.
            trigger: Trigger specification.
            org_context: Organization and user creating the automation.
            graph: Initial graph, empty by default. It is copied.
            description: Free text.
            layout: Initial editor positions.
            source_template_id: Template the automation comes from.

        Returns:
            The new definition in ``DRAFT`` lifecycle and approval status.

        Raises:
            ValidationError: If the name, trigger or graph is invalid.
        """
        graph = graph.copy() if graph is not None else GraphModel()
        result = validate_trigger(trigger).merge(validate_graph(graph))
        if not name or not name.strip():
            result.violations.insert(0, "Automation name must not be empty")
        result.raise_for_errors()

        return cls(
            name=name.strip(),
            org_id=org_context.org_id,
            trigger=copy.deepcopy(trigger),
            graph=graph,
            description=description,
            layout=_prune_layout(layout or {}, graph),
            created_by=org_context.user_id,
            source_template_id=source_template_id,
        )

    @property
    def is_active(self) -> bool:
        """Whether the automation currently reacts to its trigger."""
        return self.lifecycle_status == LifecycleStatus.ACTIVE

    def _touch(self) -> None:
        self.updated_at = _utcnow()
        self.version += 1

    # Editing

    def rename(self, name: str, description: str | None = None) -> None:
        """Change the display name and, optionally, the description.

        Raises:
            ValidationError: If the name is blank.
        """
        if not name or not name.strip():
            raise ValidationError(["Automation name must not be empty"])
        self.name = name.strip()
        if description is not None:
            self.description = description
        self._touch()

    def update_trigger(self, trigger: TriggerSpec) -> None:
        """Replace the trigger.

        Editing an approved automation keeps its approval.

        Raises:
            ValidationError: If the trigger is invalid.
        """
        validate_trigger(trigger).raise_for_errors()
        self.trigger = copy.deepcopy(trigger)
        self._touch()

    def update_graph(self, graph: GraphModel, layout: dict[str, Position] | None = None) -> None:
        """Replace the execution graph.

        Args:
            graph: The new normalized graph. It is copied.
            layout: New editor positions. Without it, positions of surviving
                nodes are kept.

        Raises:
            ValidationError: If the graph is invalid, or empty while the
                automation is active. Nothing is changed.
        """
        validate_graph(graph).raise_for_errors()
        if self.is_active and graph.is_empty:
            raise ValidationError(["An active automation cannot have an empty graph; pause it first"])
        self.graph = graph.copy()
        self.layout = _prune_layout(layout if layout is not None else self.layout, self.graph)
        self._touch()

    def to_editable(self, compiler: GraphCompiler | None = None) -> EditableGraph:
        """Materialize the editor view of the graph using the stored layout."""
        return (compiler or _compiler).to_editable(self.graph, self.layout)

    def apply_editable(self, editable: EditableGraph, compiler: GraphCompiler | None = None) -> None:
        """Save an editor graph back onto the definition.

        Raises:
            CompileError: If the editor graph has the wrong shape.
            ValidationError: If the compiled graph is invalid.
        """
        compiler = compiler or _compiler
        self.update_graph(compiler.to_normalized(editable), layout=compiler.extract_layout(editable))

    def validate(self) -> ValidationResult:
        """Validate trigger and graph together."""
        return validate_trigger(self.trigger).merge(validate_graph(self.graph))

    # Governance

    def _record(self, event: ApprovalEvent) -> ApprovalEvent:
        self.approval_history.append(event)
        self.approval_status = event.to_status
        self._touch()
        return event

    def request_approval(self, actor_id: str | None = None, notes: str | None = None) -> ApprovalEvent:
        """Submit the automation for (re-)approval.

        An active automation is paused first, since it will no longer be
        approved once the request is pending.

        Raises:
            InvalidTransitionError: If approval is already pending.
        """
        event = _approvals.request(self.id, self.approval_status, actor_id=actor_id, notes=notes)
        if self.is_active:
            logger.info("Pausing automation %s pending re-approval", self.id)
            self.lifecycle_status = LifecycleStatus.PAUSED
        return self._record(event)

    def approve(self, actor_id: str | None, notes: str | None = None) -> ApprovalEvent:
        """Approve a pending automation.

        Raises:
            GovernanceError: If no approver is given.
            InvalidTransitionError: If approval is not pending.
        """
        return self._record(_approvals.approve(self.id, self.approval_status, actor_id=actor_id, notes=notes))

    def reject(self, actor_id: str | None = None, notes: str | None = None) -> ApprovalEvent:
        """Send a pending automation back to draft so it can be edited and resubmitted.

        Raises:
            InvalidTransitionError: If approval is not pending.
        """
        return self._record(_approvals.reject(self.id, self.approval_status, actor_id=actor_id, notes=notes))

    # Lifecycle

    def activate(self) -> None:
        """Make the automation react to its trigger.

        Activating an active automation does nothing.

        Raises:
            GovernanceError: If the automation is not approved.
            ValidationError: If the graph is empty or invalid, or the trigger
                is invalid.
        """
        if not _approvals.can_activate(self.approval_status):
            raise GovernanceError(
                self.id, f"approval status is '{self.approval_status}', request approval first"
            )
        if self.is_active:
            return

        result = self.validate()
        if self.graph.is_empty:
            result.violations.append("Graph has no nodes; add at least one step before activating")
        result.raise_for_errors()

        self.lifecycle_status = LifecycleStatus.ACTIVE
        self._touch()
        logger.info("Activated automation %s", self.id)

    def pause(self) -> None:
        """Stop reacting to the trigger.

        Raises:
            InvalidTransitionError: If the automation is not active.
        """
        if not self.is_active:
            logger.warning("Refused to pause automation %s in status %s", self.id, self.lifecycle_status)
            raise InvalidTransitionError(f"automation '{self.id}'", self.lifecycle_status.value, "pause")
        self.lifecycle_status = LifecycleStatus.PAUSED
        self._touch()
        logger.info("Paused automation %s", self.id)

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Serialize the definition to a JSON-compatible dictionary."""
        return {
            "id": str(self.id),
            "org_id": self.org_id,
            "name": self.name,
            "description": self.description,
            "lifecycle_status": self.lifecycle_status.value,
            "approval_status": self.approval_status.value,
            "trigger": dump_trigger(self.trigger),
            "graph": GraphCompiler.dump_graph(self.graph),
            "layout": {node_id: {"x": pos.x, "y": pos.y} for node_id, pos in self.layout.items()},
            "approval_history": [event.to_dict() for event in self.approval_history],
            "version": self.version,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "source_template_id": str(self.source_template_id) if self.source_template_id else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowDefinition:
        """Rebuild a definition from :meth:`to_dict` output.

        Raises:
            CompileError: If the trigger or graph has the wrong shape.
        """
        source_template_id = data.get("source_template_id")
        return cls(
            id=UUID(str(data["id"])),
            org_id=data["org_id"],
            name=data["name"],
            description=data.get("description") or "",
            lifecycle_status=LifecycleStatus(data.get("lifecycle_status", LifecycleStatus.DRAFT)),
            approval_status=ApprovalStatus(data.get("approval_status", ApprovalStatus.DRAFT)),
            trigger=load_trigger(data["trigger"]),
            graph=GraphCompiler.load_graph(data.get("graph") or {}),
            layout={
                node_id: Position(x=float(pos["x"]), y=float(pos["y"]))
                for node_id, pos in (data.get("layout") or {}).items()
            },
            approval_history=[ApprovalEvent.from_dict(event) for event in data.get("approval_history") or []],
            version=int(data.get("version", 1)),
            created_by=data.get("created_by"),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else _utcnow(),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else _utcnow(),
            source_template_id=UUID(str(source_template_id)) if source_template_id else None,
        )


def _prune_layout(layout: dict[str, Position], graph: GraphModel) -> dict[str, Position]:
    return {node_id: Position(x=pos.x, y=pos.y) for node_id, pos in layout.items() if node_id in graph.nodes}
