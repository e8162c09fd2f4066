"""Run ledger over a run store.

The ledger records trigger firings and their outcomes. It never
deduplicates: every ``start_run`` call creates a new, independent record
even while other runs of the same automation are still running. Whether an
automation is allowed to run is decided by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar_automations.core.events import RunCancelled, RunCompleted, RunStarted
from litestar_automations.core.runs import DEFAULT_RUN_LIST_LIMIT, RunRecord

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_automations.core.events import AutomationEvent
    from litestar_automations.core.protocols import AutomationNotifier, RunStore
    from litestar_automations.core.runs import RunSummary
    from litestar_automations.core.types import RunStatus

__all__ = ["RunLedger"]

logger = logging.getLogger(__name__)


class RunLedger:
    """Records runs and their single transition to a terminal status.

    Attributes:
        store: Where run records live.
        notifier: Optional receiver for run events.

    Example:
        >>> ledger = RunLedger(InMemoryAutomationStore())
        >>> run = await ledger.start_run(workflow_id)
        >>> (await ledger.complete_run(run.id, RunStatus.FAILED, error="timeout")).status
        <RunStatus.FAILED: 'failed'>
    """

    def __init__(self, store: RunStore, notifier: AutomationNotifier | None = None) -> None:
        self.store = store
        self.notifier = notifier

    async def _emit(self, event: AutomationEvent) -> None:
        if self.notifier:
            await self.notifier.notify(event)

    async def start_run(
        self, workflow_id: UUID, *, org_id: str | None = None, context: dict[str, Any] | None = None
    ) -> RunRecord:
        """Record a new running execution.

        Args:
            workflow_id: The automation that fired.
            org_id: Owning organization.
            context: Trigger payload.

        Returns:
            The new record in ``RUNNING`` status.
        """
        record = RunRecord(workflow_id=workflow_id, org_id=org_id, context=dict(context or {}))
        await self.store.append_run_record(record)
        logger.info("Started run %s for automation %s", record.id, workflow_id)
        await self._emit(RunStarted(workflow_id=workflow_id, run_id=record.id))
        return record

    async def get_run(self, run_id: UUID) -> RunRecord:
        """Get a run by id.

        Raises:
            RunNotFoundError: If no such run exists.
        """
        return await self.store.get_run_record(run_id)

    async def complete_run(self, run_id: UUID, outcome: RunStatus, error: str | None = None) -> RunRecord:
        """Finish a run with a success or failure outcome.

        Raises:
            RunNotFoundError: If no such run exists.
            InvalidTransitionError: If the run already finished, including
                when another writer finished it first.
        """
        record = (await self.store.get_run_record(run_id)).complete(outcome, error)
        await self.store.update_run_record(record)
        logger.info("Run %s finished with %s", run_id, record.status)
        await self._emit(
            RunCompleted(workflow_id=record.workflow_id, run_id=run_id, status=record.status, error=record.last_error)
        )
        return record

    async def cancel_run(self, run_id: UUID) -> RunRecord:
        """Cancel a running run.

        Raises:
            RunNotFoundError: If no such run exists.
            InvalidTransitionError: If the run already finished.
        """
        record = (await self.store.get_run_record(run_id)).cancel()
        await self.store.update_run_record(record)
        logger.info("Run %s cancelled", run_id)
        await self._emit(RunCancelled(workflow_id=record.workflow_id, run_id=run_id))
        return record

    async def list_runs(self, workflow_id: UUID, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        """List the runs of an automation, newest first."""
        return await self.store.list_run_records(workflow_id, limit)

    async def list_org_runs(self, org_id: str, limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
        """List the runs of all automations of an organization, newest first."""
        return await self.store.list_org_run_records(org_id, limit)

    async def summarize(self, workflow_id: UUID) -> RunSummary:
        """Count the runs of an automation per status."""
        return await self.store.summarize_runs(workflow_id)
