"""In-memory automation store.

This module provides a process-local implementation of
:class:`~litestar_automations.core.protocols.AutomationStore`, suitable for
development, testing and single-instance deployments.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING
from uuid import UUID

from litestar_automations.core.runs import DEFAULT_RUN_LIST_LIMIT, RunSummary, sort_runs
from litestar_automations.core.templates import TemplateCatalog
from litestar_automations.core.types import RunStatus
from litestar_automations.exceptions import (
    InvalidTransitionError,
    RunNotFoundError,
    StaleDefinitionError,
    WorkflowNotFoundError,
)

if TYPE_CHECKING:
    from litestar_automations.core.approval import ApprovalEvent
    from litestar_automations.core.definition import WorkflowDefinition
    from litestar_automations.core.runs import RunRecord
    from litestar_automations.core.templates import TemplateWorkflow

__all__ = ["InMemoryAutomationStore"]


class InMemoryAutomationStore:
    """Process-local store keeping deep copies of everything it is given.

    Loaded definitions are copies too, so callers can mutate them freely and
    only :meth:`save` makes the change visible.

    Attributes:
        catalog: Template catalog served by :meth:`list_templates`.
    """

    def __init__(self, catalog: TemplateCatalog | None = None) -> None:
        """Initialize an empty store.

        Args:
            catalog: Template catalog, empty by default.
        """
        self.catalog = catalog or TemplateCatalog()
        self._definitions: dict[UUID, WorkflowDefinition] = {}
        self._approvals: dict[UUID, list[ApprovalEvent]] = {}
        self._runs: dict[UUID, RunRecord] = {}

    async def load(self, workflow_id: UUID) -> WorkflowDefinition:
        try:
            return copy.deepcopy(self._definitions[workflow_id])
        except KeyError:
            raise WorkflowNotFoundError(workflow_id) from None

    async def save(self, definition: WorkflowDefinition, expected_version: int | None = None) -> None:
        current = self._definitions.get(definition.id)
        if expected_version is not None:
            if current is None:
                raise WorkflowNotFoundError(definition.id)
            if current.version != expected_version:
                raise StaleDefinitionError(definition.id, expected_version, current.version)
        self._definitions[definition.id] = copy.deepcopy(definition)

    async def delete(self, workflow_id: UUID) -> None:
        if self._definitions.pop(workflow_id, None) is None:
            raise WorkflowNotFoundError(workflow_id)
        self._approvals.pop(workflow_id, None)
        self._runs = {run_id: r for run_id, r in self._runs.items() if r.workflow_id != workflow_id}

    async def list_definitions(self, org_id: str | None = None) -> list[WorkflowDefinition]:
        definitions = [d for d in self._definitions.values() if org_id is None or d.org_id == org_id]
        return [copy.deepcopy(d) for d in sorted(definitions, key=lambda d: d.updated_at, reverse=True)]

    async def append_approval_event(self, event: ApprovalEvent) -> None:
        self._approvals.setdefault(event.workflow_id, []).append(event)

    async def list_approval_events(self, workflow_id: UUID) -> list[ApprovalEvent]:
        return list(self._approvals.get(workflow_id, []))

    async def append_run_record(self, record: RunRecord) -> None:
        self._runs[record.id] = record

    async def update_run_record(self, record: RunRecord) -> None:
        current = await self.get_run_record(record.id)
        if current.is_terminal:
            action = "cancel" if record.status == RunStatus.CANCELLED else "complete"
            raise InvalidTransitionError(f"run '{record.id}'", current.status.value, action, "run already finished")
        self._runs[record.id] = record

    async def get_run_record(self, run_id: UUID) -> RunRecord:
        try:
            return self._runs[run_id]
        except KeyError:
            raise RunNotFoundError(run_id) from None

    async def list_run_records(self, workflow_id: UUID, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        return sort_runs([r for r in self._runs.values() if r.workflow_id == workflow_id], limit)

    async def list_org_run_records(self, org_id: str, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        return sort_runs([r for r in self._runs.values() if r.org_id == org_id], limit)

    async def summarize_runs(self, workflow_id: UUID) -> RunSummary:
        return RunSummary.from_records(workflow_id, self._runs.values())

    async def list_templates(self) -> list[TemplateWorkflow]:
        return self.catalog.list_templates()

    async def get_template(self, template_id: UUID | str) -> TemplateWorkflow:
        return self.catalog.get_template(template_id)
