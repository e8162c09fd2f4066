"""SQLAlchemy-backed automation store.

Maps the domain objects of :mod:`litestar_automations.core` onto the models in
:mod:`litestar_automations.db.models`. Every write commits on its own, and
definition updates use a compare-and-swap on the ``version`` column so
concurrent editors cannot silently overwrite each other. Finishing a run is
conditional on its row still being ``running``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - resolved by litestar DI

from litestar_automations.core.approval import ApprovalEvent
from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.definition import WorkflowDefinition
from litestar_automations.core.graph import Position
from litestar_automations.core.runs import DEFAULT_RUN_LIST_LIMIT, RunRecord, RunSummary
from litestar_automations.core.templates import TemplateWorkflow
from litestar_automations.core.trigger import dump_trigger, load_trigger
from litestar_automations.core.types import RunStatus
from litestar_automations.db.models import (
    AutomationApprovalModel,
    AutomationModel,
    AutomationRunModel,
    AutomationTemplateModel,
)
from litestar_automations.db.repositories import (
    AutomationApprovalRepository,
    AutomationRepository,
    AutomationRunRepository,
    AutomationTemplateRepository,
)
from litestar_automations.exceptions import (
    InvalidTransitionError,
    RunNotFoundError,
    StaleDefinitionError,
    TemplateNotFoundError,
    WorkflowNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = ["SQLAlchemyAutomationStore", "provide_sqlalchemy_store"]


class SQLAlchemyAutomationStore:
    """Automation store persisting to a relational database.

    Attributes:
        session: SQLAlchemy async session for database operations.

    Example:
        >>> async with session_maker() as session:
        ...     store = SQLAlchemyAutomationStore(session)
        ...     await store.seed_templates(builtin_templates())
        ...     service = AutomationService(store)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session
        self._automations = AutomationRepository(session=session)
        self._approvals = AutomationApprovalRepository(session=session)
        self._runs = AutomationRunRepository(session=session)
        self._templates = AutomationTemplateRepository(session=session)

    # Mapping

    @staticmethod
    def _definition_values(definition: WorkflowDefinition) -> dict[str, Any]:
        return {
            "org_id": definition.org_id,
            "name": definition.name,
            "description": definition.description,
            "lifecycle_status": definition.lifecycle_status,
            "approval_status": definition.approval_status,
            "trigger": dump_trigger(definition.trigger),
            "graph": GraphCompiler.dump_graph(definition.graph),
            "layout": {node_id: {"x": pos.x, "y": pos.y} for node_id, pos in definition.layout.items()},
            "version": definition.version,
            "created_by": definition.created_by,
            "source_template_id": definition.source_template_id,
            "updated_at": definition.updated_at,
        }

    @staticmethod
    def _to_approval(model: AutomationApprovalModel) -> ApprovalEvent:
        return ApprovalEvent(
            workflow_id=model.automation_id,
            action=model.action,
            from_status=model.from_status,
            to_status=model.to_status,
            actor_id=model.actor_id,
            notes=model.notes,
            timestamp=model.occurred_at,
        )

    @staticmethod
    def _to_run(model: AutomationRunModel) -> RunRecord:
        return RunRecord(
            id=model.id,
            workflow_id=model.automation_id,
            org_id=model.org_id,
            status=model.status,
            started_at=model.started_at,
            finished_at=model.finished_at,
            last_error=model.last_error,
            context=dict(model.context or {}),
        )

    @staticmethod
    def _to_template(model: AutomationTemplateModel) -> TemplateWorkflow:
        return TemplateWorkflow(
            id=model.id,
            slug=model.slug,
            name=model.name,
            description=model.description or "",
            category=model.category,
            recommended=model.recommended,
            trigger=load_trigger(model.trigger),
            graph=GraphCompiler.load_graph(model.graph),
        )

    def _to_definition(self, model: AutomationModel, approvals: Iterable[AutomationApprovalModel]) -> WorkflowDefinition:
        return WorkflowDefinition(
            id=model.id,
            org_id=model.org_id,
            name=model.name,
            description=model.description or "",
            lifecycle_status=model.lifecycle_status,
            approval_status=model.approval_status,
            trigger=load_trigger(model.trigger),
            graph=GraphCompiler.load_graph(model.graph),
            layout={
                node_id: Position(x=float(pos["x"]), y=float(pos["y"])) for node_id, pos in (model.layout or {}).items()
            },
            approval_history=[self._to_approval(approval) for approval in approvals],
            version=model.version,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
            source_template_id=model.source_template_id,
        )

    # Definitions

    async def load(self, workflow_id: UUID) -> WorkflowDefinition:
        stmt = select(AutomationModel).where(AutomationModel.id == workflow_id).execution_options(populate_existing=True)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if model is None:
            raise WorkflowNotFoundError(workflow_id)
        approvals = await self._approvals.list_for_automation(workflow_id)
        return self._to_definition(model, approvals)

    async def save(self, definition: WorkflowDefinition, expected_version: int | None = None) -> None:
        values = self._definition_values(definition)
        current = await self._automations.get_version(definition.id)

        if current is None:
            if expected_version is not None:
                raise WorkflowNotFoundError(definition.id)
            await self._automations.add(AutomationModel(id=definition.id, created_at=definition.created_at, **values))
        else:
            check = expected_version if expected_version is not None else current
            if not await self._automations.update_if_version(definition.id, check, values):
                await self.session.rollback()
                actual = await self._automations.get_version(definition.id)
                if actual is None:
                    raise WorkflowNotFoundError(definition.id)
                raise StaleDefinitionError(definition.id, check, actual)

        await self.session.commit()

    async def delete(self, workflow_id: UUID) -> None:
        await self._approvals.delete_for_automation(workflow_id)
        await self._runs.delete_for_automation(workflow_id)
        if not await self._automations.delete_by_id(workflow_id):
            await self.session.rollback()
            raise WorkflowNotFoundError(workflow_id)
        await self.session.commit()

    async def list_definitions(self, org_id: str | None = None) -> list[WorkflowDefinition]:
        models = await self._automations.list_by_org(org_id)
        return [self._to_definition(model, await self._approvals.list_for_automation(model.id)) for model in models]

    # Approvals

    async def append_approval_event(self, event: ApprovalEvent) -> None:
        await self._approvals.add(
            AutomationApprovalModel(
                automation_id=event.workflow_id,
                action=event.action,
                from_status=event.from_status,
                to_status=event.to_status,
                actor_id=event.actor_id,
                notes=event.notes,
                occurred_at=event.timestamp,
            )
        )
        await self.session.commit()

    async def list_approval_events(self, workflow_id: UUID) -> list[ApprovalEvent]:
        return [self._to_approval(model) for model in await self._approvals.list_for_automation(workflow_id)]

    # Runs

    async def _get_run_model(self, run_id: UUID) -> AutomationRunModel:
        stmt = select(AutomationRunModel).where(AutomationRunModel.id == run_id).execution_options(populate_existing=True)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if model is None:
            raise RunNotFoundError(run_id)
        return model

    async def append_run_record(self, record: RunRecord) -> None:
        await self._runs.add(
            AutomationRunModel(
                id=record.id,
                automation_id=record.workflow_id,
                org_id=record.org_id,
                status=record.status,
                started_at=record.started_at,
                finished_at=record.finished_at,
                last_error=record.last_error,
                context=record.context,
            )
        )
        await self.session.commit()

    async def update_run_record(self, record: RunRecord) -> None:
        values = {
            "status": record.status,
            "finished_at": record.finished_at,
            "last_error": record.last_error,
            "context": record.context,
        }
        if not await self._runs.finish_if_running(record.id, values):
            await self.session.rollback()
            current = await self._get_run_model(record.id)
            action = "cancel" if record.status == RunStatus.CANCELLED else "complete"
            raise InvalidTransitionError(f"run '{record.id}'", current.status.value, action, "run already finished")
        await self.session.commit()

    async def get_run_record(self, run_id: UUID) -> RunRecord:
        return self._to_run(await self._get_run_model(run_id))

    async def list_run_records(self, workflow_id: UUID, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        models, _ = await self._runs.list_for_automation(workflow_id, limit=limit)
        return [self._to_run(model) for model in models]

    async def list_org_run_records(self, org_id: str, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        models, _ = await self._runs.list_for_org(org_id, limit=limit)
        return [self._to_run(model) for model in models]

    async def summarize_runs(self, workflow_id: UUID) -> RunSummary:
        counts, last_started_at = await self._runs.count_by_status(workflow_id)
        status_counts = {status: counts.get(status, 0) for status in RunStatus}
        return RunSummary(
            workflow_id=workflow_id,
            execution_count=sum(status_counts.values()),
            last_executed_at=last_started_at,
            status_counts=status_counts,
        )

    # Templates

    async def list_templates(self) -> list[TemplateWorkflow]:
        return [self._to_template(model) for model in await self._templates.list_catalog()]

    async def get_template(self, template_id: UUID | str) -> TemplateWorkflow:
        model = None
        if isinstance(template_id, UUID):
            model = await self._templates.get_one_or_none(id=template_id)
        else:
            model = await self._templates.get_by_slug(template_id)
            if model is None:
                try:
                    model = await self._templates.get_one_or_none(id=UUID(template_id))
                except ValueError:
                    model = None
        if model is None:
            raise TemplateNotFoundError(template_id)
        return self._to_template(model)

    async def seed_templates(self, templates: Iterable[TemplateWorkflow]) -> None:
        """Insert or refresh catalog templates, matched by slug.

        Args:
            templates: Templates to write, e.g. :func:`builtin_templates`.
        """
        for template in templates:
            data = template.to_dict()
            model = await self._templates.get_by_slug(template.slug)
            if model is None:
                await self._templates.add(
                    AutomationTemplateModel(
                        id=template.id,
                        slug=template.slug,
                        name=template.name,
                        description=template.description,
                        category=template.category,
                        recommended=template.recommended,
                        trigger=data["trigger"],
                        graph=data["graph"],
                    )
                )
                continue
            model.name = template.name
            model.description = template.description
            model.category = template.category
            model.recommended = template.recommended
            model.trigger = data["trigger"]
            model.graph = data["graph"]
        await self.session.commit()


async def provide_sqlalchemy_store(db_session: AsyncSession) -> SQLAlchemyAutomationStore:
    """Dependency provider building a store on the request's session.

    Pairs with advanced-alchemy's ``SQLAlchemyPlugin``, which provides
    ``db_session``. Pass it as ``AutomationPluginConfig.store_provider``.

    Args:
        db_session: Request-scoped async session.

    Returns:
        A store bound to that session.
    """
    return SQLAlchemyAutomationStore(db_session)
