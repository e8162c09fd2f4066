"""REST API controllers for automation management.

This module provides three controller classes:
- AutomationDefinitionController: Edit, govern and activate automations
- AutomationRunController: Organization run feed, finish or cancel runs
- AutomationTemplateController: Browse and install catalog templates

Domain exceptions propagate to the handlers in
:mod:`litestar_automations.web.exceptions`.
"""

from __future__ import annotations

from typing import ClassVar
from uuid import UUID

from litestar import Controller, delete, get, patch, post, put
from litestar.params import Parameter
from litestar.status_codes import HTTP_200_OK, HTTP_204_NO_CONTENT

from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.runs import DEFAULT_RUN_LIST_LIMIT
from litestar_automations.core.trigger import load_trigger
from litestar_automations.core.types import ApprovalAction, OrgContext, RunStatus
from litestar_automations.engine.service import AutomationService  # noqa: TC001 - needed for DI
from litestar_automations.web.dto import (
    ApprovalActionDTO,
    ApprovalEventDTO,
    CompleteRunDTO,
    CreateDefinitionDTO,
    DefinitionDTO,
    EditableGraphDTO,
    GraphDTO,
    InstallTemplateDTO,
    RunDTO,
    RunSummaryDTO,
    SaveEditableGraphDTO,
    StartRunDTO,
    TemplateDTO,
    UpdateDefinitionDTO,
)

__all__ = [
    "AutomationDefinitionController",
    "AutomationRunController",
    "AutomationTemplateController",
]


class AutomationDefinitionController(Controller):
    """API controller for automation definitions.

    Tags: Automation Definitions
    """

    path = "/definitions"
    tags: ClassVar[list[str]] = ["Automation Definitions"]

    @get("/")
    async def list_definitions(
        self,
        automation_service: AutomationService,
        org_id: str | None = Parameter(default=None, description="Only list automations of this organization"),
    ) -> list[DefinitionDTO]:
        """List automations, most recently updated first.

        Args:
            automation_service: Injected automation service.
            org_id: Optional organization filter.

        Returns:
            List of definition DTOs.
        """
        definitions = await automation_service.list_definitions(org_id)
        return [DefinitionDTO.from_definition(definition) for definition in definitions]

    @post("/")
    async def create_definition(self, data: CreateDefinitionDTO, automation_service: AutomationService) -> DefinitionDTO:
        """Create a draft automation.

        Args:
            data: Name, organization, trigger and optional graph.
            automation_service: Injected automation service.

        Returns:
            The created definition.
        """
        definition = await automation_service.create_definition(
            data.name,
            load_trigger(data.trigger),
            OrgContext(org_id=data.org_id, user_id=data.created_by),
            graph=GraphCompiler.load_graph(data.graph) if data.graph is not None else None,
            description=data.description,
            layout=GraphCompiler.load_layout(data.graph),
        )
        return DefinitionDTO.from_definition(definition)

    @get("/{workflow_id:uuid}")
    async def get_definition(self, workflow_id: UUID, automation_service: AutomationService) -> DefinitionDTO:
        """Get an automation by id."""
        return DefinitionDTO.from_definition(await automation_service.get_definition(workflow_id))

    @patch("/{workflow_id:uuid}")
    async def update_definition(
        self,
        workflow_id: UUID,
        data: UpdateDefinitionDTO,
        automation_service: AutomationService,
    ) -> DefinitionDTO:
        """Edit an automation.

        Args:
            workflow_id: The automation id.
            data: Fields to change and the version the client last saw.
            automation_service: Injected automation service.

        Returns:
            The updated definition.
        """
        definition = await automation_service.update_definition(
            workflow_id,
            name=data.name,
            description=data.description,
            trigger=load_trigger(data.trigger) if data.trigger is not None else None,
            graph=GraphCompiler.load_graph(data.graph) if data.graph is not None else None,
            expected_version=data.expected_version,
        )
        return DefinitionDTO.from_definition(definition)

    @delete("/{workflow_id:uuid}", status_code=HTTP_204_NO_CONTENT)
    async def delete_definition(self, workflow_id: UUID, automation_service: AutomationService) -> None:
        """Delete an automation with its approval trail and runs."""
        await automation_service.delete_definition(workflow_id)

    @get("/{workflow_id:uuid}/editable-graph")
    async def get_editable_graph(self, workflow_id: UUID, automation_service: AutomationService) -> EditableGraphDTO:
        """Get the editor view of an automation's graph."""
        definition = await automation_service.get_definition(workflow_id)
        wire = GraphCompiler.dump_editable(definition.to_editable(automation_service.compiler))
        return EditableGraphDTO(version=definition.version, nodes=wire["nodes"], edges=wire["edges"])

    @put("/{workflow_id:uuid}/editable-graph")
    async def save_editable_graph(
        self,
        workflow_id: UUID,
        data: SaveEditableGraphDTO,
        automation_service: AutomationService,
    ) -> DefinitionDTO:
        """Compile and save the editor view of an automation's graph."""
        editable = GraphCompiler.load_editable({"nodes": data.nodes, "edges": data.edges})
        definition = await automation_service.save_editable_graph(
            workflow_id, editable, expected_version=data.expected_version
        )
        return DefinitionDTO.from_definition(definition)

    @get("/{workflow_id:uuid}/graph")
    async def get_graph(self, workflow_id: UUID, automation_service: AutomationService) -> GraphDTO:
        """Get the MermaidJS visualization of an automation's graph."""
        definition = await automation_service.get_definition(workflow_id)
        wire = GraphCompiler.dump_graph(definition.graph)
        return GraphDTO(mermaid_source=definition.graph.to_mermaid(), nodes=wire["nodes"], edges=wire["edges"])

    @post("/{workflow_id:uuid}/approval", status_code=HTTP_200_OK)
    async def apply_approval_action(
        self,
        workflow_id: UUID,
        data: ApprovalActionDTO,
        automation_service: AutomationService,
    ) -> ApprovalEventDTO:
        """Request, approve or reject an automation.

        Returns:
            The recorded approval event.
        """
        if data.action == ApprovalAction.REQUEST:
            event = await automation_service.request_approval(workflow_id, actor_id=data.actor_id, notes=data.notes)
        elif data.action == ApprovalAction.APPROVE:
            event = await automation_service.approve(workflow_id, actor_id=data.actor_id, notes=data.notes)
        else:
            event = await automation_service.reject(workflow_id, actor_id=data.actor_id, notes=data.notes)
        return ApprovalEventDTO.from_event(event)

    @get("/{workflow_id:uuid}/approvals")
    async def list_approvals(self, workflow_id: UUID, automation_service: AutomationService) -> list[ApprovalEventDTO]:
        """Get the governance audit trail of an automation, oldest first."""
        events = await automation_service.list_approvals(workflow_id)
        return [ApprovalEventDTO.from_event(event) for event in events]

    @post("/{workflow_id:uuid}/activate", status_code=HTTP_200_OK)
    async def activate(self, workflow_id: UUID, automation_service: AutomationService) -> DefinitionDTO:
        """Activate an approved automation."""
        return DefinitionDTO.from_definition(await automation_service.activate(workflow_id))

    @post("/{workflow_id:uuid}/pause", status_code=HTTP_200_OK)
    async def pause(self, workflow_id: UUID, automation_service: AutomationService) -> DefinitionDTO:
        """Pause an active automation."""
        return DefinitionDTO.from_definition(await automation_service.pause(workflow_id))

    @get("/{workflow_id:uuid}/runs")
    async def list_runs(
        self,
        workflow_id: UUID,
        automation_service: AutomationService,
        limit: int = Parameter(default=DEFAULT_RUN_LIST_LIMIT, ge=1, le=500, description="Maximum number of runs"),
    ) -> list[RunDTO]:
        """List the runs of an automation, newest first."""
        await automation_service.get_definition(workflow_id)
        runs = await automation_service.list_runs(workflow_id, limit=limit)
        return [RunDTO.from_record(run) for run in runs]

    @get("/{workflow_id:uuid}/runs/summary")
    async def get_run_summary(self, workflow_id: UUID, automation_service: AutomationService) -> RunSummaryDTO:
        """Get execution count, last run time and per-status counts of an automation."""
        return RunSummaryDTO.from_summary(await automation_service.get_run_summary(workflow_id))

    @post("/{workflow_id:uuid}/runs")
    async def start_run(
        self,
        workflow_id: UUID,
        automation_service: AutomationService,
        data: StartRunDTO | None = None,
    ) -> RunDTO:
        """Record a trigger firing for an active automation."""
        run = await automation_service.start_run(workflow_id, context=data.context if data else None)
        return RunDTO.from_record(run)


class AutomationRunController(Controller):
    """API controller for run records.

    Tags: Automation Runs
    """

    path = "/runs"
    tags: ClassVar[list[str]] = ["Automation Runs"]

    @get("/")
    async def list_org_runs(
        self,
        automation_service: AutomationService,
        org_id: str = Parameter(description="Organization whose runs to list"),
        limit: int = Parameter(default=DEFAULT_RUN_LIST_LIMIT, ge=1, le=500, description="Maximum number of runs"),
    ) -> list[RunDTO]:
        """List the runs of every automation of an organization, newest first."""
        runs = await automation_service.list_org_runs(org_id, limit=limit)
        return [RunDTO.from_record(run) for run in runs]

    @get("/{run_id:uuid}")
    async def get_run(self, run_id: UUID, automation_service: AutomationService) -> RunDTO:
        """Get a run by id."""
        return RunDTO.from_record(await automation_service.get_run(run_id))

    @post("/{run_id:uuid}/complete", status_code=HTTP_200_OK)
    async def complete_run(self, run_id: UUID, data: CompleteRunDTO, automation_service: AutomationService) -> RunDTO:
        """Finish a run with success or failure."""
        run = await automation_service.complete_run(run_id, RunStatus(data.outcome), error=data.error)
        return RunDTO.from_record(run)

    @post("/{run_id:uuid}/cancel", status_code=HTTP_200_OK)
    async def cancel_run(self, run_id: UUID, automation_service: AutomationService) -> RunDTO:
        """Cancel a running run."""
        return RunDTO.from_record(await automation_service.cancel_run(run_id))


class AutomationTemplateController(Controller):
    """API controller for the template catalog.

    Tags: Automation Templates
    """

    path = "/templates"
    tags: ClassVar[list[str]] = ["Automation Templates"]

    @get("/")
    async def list_templates(self, automation_service: AutomationService) -> list[TemplateDTO]:
        """List catalog templates, recommended first."""
        return [TemplateDTO.from_template(template) for template in await automation_service.list_templates()]

    @post("/{template_id:str}/install")
    async def install_template(
        self,
        template_id: str,
        data: InstallTemplateDTO,
        automation_service: AutomationService,
    ) -> DefinitionDTO:
        """Install a template, by id or slug, as a new draft automation."""
        definition = await automation_service.install_template(
            template_id, OrgContext(org_id=data.org_id, user_id=data.user_id), name=data.name
        )
        return DefinitionDTO.from_definition(definition)
