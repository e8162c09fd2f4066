"""Boundary protocols for litestar-automations.

The core never touches storage or delivers notifications itself. These
Protocols describe what it expects from the collaborators that do; any object
with matching methods can be plugged in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_automations.core.approval import ApprovalEvent
    from litestar_automations.core.definition import WorkflowDefinition
    from litestar_automations.core.events import AutomationEvent
    from litestar_automations.core.runs import RunRecord, RunSummary
    from litestar_automations.core.templates import TemplateWorkflow

__all__ = ["AutomationNotifier", "AutomationStore", "RunStore"]


@runtime_checkable
class RunStore(Protocol):
    """Persistence for run records.

    Finishing a run is a compare-and-swap on its status: a record only
    leaves ``running`` once, however many writers race for it.
    """

    async def append_run_record(self, record: RunRecord) -> None:
        """Store a new run record."""
        ...

    async def update_run_record(self, record: RunRecord) -> None:
        """Replace a stored run record that is still running.

        Raises:
            RunNotFoundError: If the record does not exist.
            InvalidTransitionError: If the stored record already finished.
        """
        ...

    async def get_run_record(self, run_id: UUID) -> RunRecord:
        """Get a run record.

        Raises:
            RunNotFoundError: If it does not exist.
        """
        ...

    async def list_run_records(self, workflow_id: UUID, limit: int = 50) -> list[RunRecord]:
        """List the runs of an automation, newest first."""
        ...

    async def list_org_run_records(self, org_id: str, limit: int = 50) -> list[RunRecord]:
        """List the runs of every automation of an organization, newest first."""
        ...

    async def summarize_runs(self, workflow_id: UUID) -> RunSummary:
        """Count the runs of an automation per status."""
        ...


@runtime_checkable
class AutomationStore(RunStore, Protocol):
    """Persistence for definitions, approval events, runs and templates.

    Each call is expected to be atomic on its own; nothing is assumed about
    atomicity across calls.

    Example:
        >>> store: AutomationStore = InMemoryAutomationStore()
        >>> await store.save(definition)
        >>> loaded = await store.load(definition.id)
    """

    async def load(self, workflow_id: UUID) -> WorkflowDefinition:
        """Load a definition.

        Raises:
            WorkflowNotFoundError: If it does not exist.
        """
        ...

    async def save(self, definition: WorkflowDefinition, expected_version: int | None = None) -> None:
        """Insert or update a definition.

        Args:
            definition: The definition to persist.
            expected_version: Version the caller loaded. When given and the
                stored version differs, nothing is written.

        Raises:
            StaleDefinitionError: On a version mismatch.
        """
        ...

    async def delete(self, workflow_id: UUID) -> None:
        """Delete a definition together with its approval events and runs.

        Raises:
            WorkflowNotFoundError: If it does not exist.
        """
        ...

    async def list_definitions(self, org_id: str | None = None) -> list[WorkflowDefinition]:
        """List definitions, optionally restricted to an organization."""
        ...

    async def append_approval_event(self, event: ApprovalEvent) -> None:
        """Append an event to the governance audit trail."""
        ...

    async def list_approval_events(self, workflow_id: UUID) -> list[ApprovalEvent]:
        """List the audit trail of an automation, oldest first."""
        ...

    async def list_templates(self) -> list[TemplateWorkflow]:
        """List catalog templates, recommended first, then by name."""
        ...

    async def get_template(self, template_id: UUID | str) -> TemplateWorkflow:
        """Get a template by id or slug.

        Raises:
            TemplateNotFoundError: If it does not exist.
        """
        ...


@runtime_checkable
class AutomationNotifier(Protocol):
    """Receives domain events, e.g. to alert approvers."""

    async def notify(self, event: AutomationEvent) -> None:
        """Deliver an event."""
        ...
