"""Async automation service.

The service is the I/O boundary around the synchronous core: it loads
definitions from an :class:`~litestar_automations.core.protocols.AutomationStore`,
applies one domain operation, saves the result with an optimistic version
check and emits the matching domain event.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.definition import WorkflowDefinition
from litestar_automations.core.events import (
    ApprovalRequested,
    AutomationActivated,
    AutomationApproved,
    AutomationDeleted,
    AutomationPaused,
    AutomationRejected,
    TemplateInstalled,
)
from litestar_automations.core.runs import DEFAULT_RUN_LIST_LIMIT
from litestar_automations.core.templates import TemplateInstaller
from litestar_automations.core.types import LifecycleStatus
from litestar_automations.engine.ledger import RunLedger
from litestar_automations.exceptions import GovernanceError, StaleDefinitionError

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_automations.core.approval import ApprovalEvent
    from litestar_automations.core.compiler import EditableGraph
    from litestar_automations.core.events import AutomationEvent
    from litestar_automations.core.graph import GraphModel, Position
    from litestar_automations.core.protocols import AutomationNotifier, AutomationStore
    from litestar_automations.core.runs import RunRecord, RunSummary
    from litestar_automations.core.templates import TemplateWorkflow
    from litestar_automations.core.trigger import TriggerSpec
    from litestar_automations.core.types import OrgContext, RunStatus

__all__ = ["AutomationService"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AutomationService:
    """Orchestrates automation definitions, governance, templates and runs.

    Attributes:
        store: Persistence backend.
        notifier: Optional receiver for domain events.
        compiler: Graph compiler used for the editor view.
        runs: Run ledger over the same store and notifier.

    Example:
        >>> service = AutomationService(InMemoryAutomationStore())
        >>> definition = await service.create_definition(
        ...     "Welcome", EventTrigger(event_type="lead.created"), OrgContext(org_id="acme")
        ... )
        >>> await service.request_approval(definition.id, actor_id="u1")
    """

    def __init__(
        self,
        store: AutomationStore,
        notifier: AutomationNotifier | None = None,
        compiler: GraphCompiler | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Persistence backend.
            notifier: Optional receiver for domain events.
            compiler: Graph compiler, a default one is created if omitted.
        """
        self.store = store
        self.notifier = notifier
        self.compiler = compiler or GraphCompiler()
        self.runs = RunLedger(store, notifier)

    async def _emit(self, event: AutomationEvent) -> None:
        if self.notifier:
            await self.notifier.notify(event)

    async def _mutate(
        self,
        workflow_id: UUID,
        operation: Callable[[WorkflowDefinition], T],
        expected_version: int | None = None,
    ) -> tuple[WorkflowDefinition, T]:
        """Load, apply one operation and save with a version check.

        Nothing is written if the operation raises.
        """
        definition = await self.store.load(workflow_id)
        loaded_version = definition.version
        if expected_version is not None and expected_version != loaded_version:
            raise StaleDefinitionError(workflow_id, expected_version, loaded_version)

        result = operation(definition)
        await self.store.save(definition, expected_version=loaded_version)
        return definition, result

    # Definitions

    async def create_definition(
        self,
        name: str,
        trigger: TriggerSpec,
        org_context: OrgContext,
        *,
        graph: GraphModel | None = None,
        description: str = "",
        layout: dict[str, Position] | None = None,
    ) -> WorkflowDefinition:
        """Create and store a new draft automation.

        Raises:
            ValidationError: If the name, trigger or graph is invalid.
        """
        definition = WorkflowDefinition.create(
            name, trigger, org_context, graph=graph, description=description, layout=layout
        )
        await self.store.save(definition)
        logger.info("Created automation %s for org %s", definition.id, definition.org_id)
        return definition

    async def get_definition(self, workflow_id: UUID) -> WorkflowDefinition:
        """Load an automation.

        Raises:
            WorkflowNotFoundError: If it does not exist.
        """
        return await self.store.load(workflow_id)

    async def list_definitions(self, org_id: str | None = None) -> list[WorkflowDefinition]:
        """List automations, optionally for one organization."""
        return await self.store.list_definitions(org_id)

    async def update_definition(
        self,
        workflow_id: UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        trigger: TriggerSpec | None = None,
        graph: GraphModel | None = None,
        expected_version: int | None = None,
    ) -> WorkflowDefinition:
        """Edit name, description, trigger or graph in one versioned write.

        Raises:
            WorkflowNotFoundError: If the automation does not exist.
            StaleDefinitionError: If ``expected_version`` is outdated.
            ValidationError: If the new trigger or graph is invalid.
        """

        def apply(definition: WorkflowDefinition) -> None:
            if name is not None or description is not None:
                definition.rename(name if name is not None else definition.name, description)
            if trigger is not None:
                definition.update_trigger(trigger)
            if graph is not None:
                definition.update_graph(graph)

        definition, _ = await self._mutate(workflow_id, apply, expected_version)
        return definition

    async def get_editable_graph(self, workflow_id: UUID) -> EditableGraph:
        """Materialize the editor view of an automation's graph."""
        definition = await self.store.load(workflow_id)
        return definition.to_editable(self.compiler)

    async def save_editable_graph(
        self, workflow_id: UUID, editable: EditableGraph, expected_version: int | None = None
    ) -> WorkflowDefinition:
        """Compile an editor graph and save it onto the automation.

        Raises:
            CompileError: If the editor graph has the wrong shape.
            ValidationError: If the compiled graph is invalid.
            StaleDefinitionError: If ``expected_version`` is outdated.
        """
        definition, _ = await self._mutate(
            workflow_id, lambda d: d.apply_editable(editable, self.compiler), expected_version
        )
        return definition

    async def delete_definition(self, workflow_id: UUID) -> None:
        """Delete an automation with its approval trail and runs.

        Raises:
            WorkflowNotFoundError: If it does not exist.
        """
        definition = await self.store.load(workflow_id)
        await self.store.delete(workflow_id)
        logger.info("Deleted automation %s of org %s", workflow_id, definition.org_id)
        await self._emit(AutomationDeleted(workflow_id=workflow_id, org_id=definition.org_id))

    # Governance

    async def request_approval(
        self, workflow_id: UUID, actor_id: str | None = None, notes: str | None = None
    ) -> ApprovalEvent:
        """Submit an automation for approval, pausing it if it was active."""

        def apply(definition: WorkflowDefinition) -> tuple[bool, ApprovalEvent]:
            was_active = definition.is_active
            return was_active, definition.request_approval(actor_id=actor_id, notes=notes)

        _, (was_active, event) = await self._mutate(workflow_id, apply)
        await self.store.append_approval_event(event)
        if was_active:
            await self._emit(AutomationPaused(workflow_id=workflow_id, reason="re-approval requested"))
        await self._emit(ApprovalRequested(workflow_id=workflow_id, actor_id=actor_id, notes=notes))
        return event

    async def approve(self, workflow_id: UUID, actor_id: str | None, notes: str | None = None) -> ApprovalEvent:
        """Approve a pending automation.

        Raises:
            GovernanceError: If no approver is given.
            InvalidTransitionError: If approval is not pending.
        """
        _, event = await self._mutate(workflow_id, lambda d: d.approve(actor_id=actor_id, notes=notes))
        await self.store.append_approval_event(event)
        await self._emit(AutomationApproved(workflow_id=workflow_id, actor_id=event.actor_id or "", notes=notes))
        return event

    async def reject(self, workflow_id: UUID, actor_id: str | None = None, notes: str | None = None) -> ApprovalEvent:
        """Send a pending automation back to draft."""
        _, event = await self._mutate(workflow_id, lambda d: d.reject(actor_id=actor_id, notes=notes))
        await self.store.append_approval_event(event)
        await self._emit(AutomationRejected(workflow_id=workflow_id, actor_id=actor_id, notes=notes))
        return event

    async def list_approvals(self, workflow_id: UUID) -> list[ApprovalEvent]:
        """Get the governance audit trail of an automation, oldest first."""
        await self.store.load(workflow_id)
        return await self.store.list_approval_events(workflow_id)

    # Lifecycle

    async def activate(self, workflow_id: UUID) -> WorkflowDefinition:
        """Activate an approved automation.

        Raises:
            GovernanceError: If the automation is not approved.
            ValidationError: If its graph or trigger is not runnable.
        """

        def apply(definition: WorkflowDefinition) -> bool:
            was_active = definition.is_active
            definition.activate()
            return was_active

        definition, was_active = await self._mutate(workflow_id, apply)
        if not was_active:
            await self._emit(AutomationActivated(workflow_id=workflow_id))
        return definition

    async def pause(self, workflow_id: UUID) -> WorkflowDefinition:
        """Pause an active automation.

        Raises:
            InvalidTransitionError: If it is not active.
        """
        definition, _ = await self._mutate(workflow_id, lambda d: d.pause())
        await self._emit(AutomationPaused(workflow_id=workflow_id))
        return definition

    # Templates

    async def list_templates(self) -> list[TemplateWorkflow]:
        """List catalog templates, recommended first."""
        return await self.store.list_templates()

    async def install_template(
        self, template_id: UUID | str, org_context: OrgContext, name: str | None = None
    ) -> WorkflowDefinition:
        """Install a catalog template as a new draft automation.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        template = await self.store.get_template(template_id)
        definition = TemplateInstaller.install(template, org_context, name=name)
        await self.store.save(definition)
        await self._emit(TemplateInstalled(workflow_id=definition.id, template_id=template.id, org_id=definition.org_id))
        return definition

    # Runs

    async def start_run(self, workflow_id: UUID, context: dict[str, Any] | None = None) -> RunRecord:
        """Record a trigger firing for an automation.

        Called by external event and schedule dispatchers. Concurrent firings
        each get their own run.

        Raises:
            GovernanceError: If the automation is not active.
        """
        definition = await self.store.load(workflow_id)
        if definition.lifecycle_status != LifecycleStatus.ACTIVE:
            raise GovernanceError(
                workflow_id, f"automation is {definition.lifecycle_status}; only active automations can run"
            )
        return await self.runs.start_run(workflow_id, org_id=definition.org_id, context=context)

    async def complete_run(self, run_id: UUID, outcome: RunStatus, error: str | None = None) -> RunRecord:
        """Finish a run with success or failure.

        Raises:
            RunNotFoundError: If the run does not exist.
            InvalidTransitionError: If the run already finished.
        """
        return await self.runs.complete_run(run_id, outcome, error)

    async def cancel_run(self, run_id: UUID) -> RunRecord:
        """Cancel a running run.

        Raises:
            RunNotFoundError: If the run does not exist.
            InvalidTransitionError: If the run already finished.
        """
        return await self.runs.cancel_run(run_id)

    async def get_run(self, run_id: UUID) -> RunRecord:
        """Get a run.

        Raises:
            RunNotFoundError: If the run does not exist.
        """
        return await self.runs.get_run(run_id)

    async def list_runs(self, workflow_id: UUID, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        """List the runs of an automation, newest first."""
        return await self.runs.list_runs(workflow_id, limit)

    async def list_org_runs(self, org_id: str, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        """List the runs of all automations of an organization, newest first."""
        return await self.runs.list_org_runs(org_id, limit)

    async def get_run_summary(self, workflow_id: UUID) -> RunSummary:
        """Get execution count, last run time and per-status counts.

        Raises:
            WorkflowNotFoundError: If the automation does not exist.
        """
        await self.store.load(workflow_id)
        return await self.runs.summarize(workflow_id)
