"""Run records and execution summaries.

A run is one execution attempt of an automation. It is created ``running``
when the trigger fires and moves exactly once to a terminal status. Records
are frozen; every transition produces a new record.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from litestar_automations.core.types import TERMINAL_RUN_STATUSES, RunStatus
from litestar_automations.exceptions import InvalidTransitionError

__all__ = ["DEFAULT_RUN_LIST_LIMIT", "RunRecord", "RunSummary", "sort_runs"]

logger = logging.getLogger(__name__)

DEFAULT_RUN_LIST_LIMIT = 50


@dataclass(frozen=True)
class RunRecord:
    """One execution attempt of an automation.

    Attributes:
        id: Unique run identifier.
        workflow_id: The automation that fired.
        org_id: Owning organization.
        status: Current status.
        started_at: When the run was created.
        finished_at: When the run reached a terminal status.
        last_error: Error reported by the runtime for failed runs.
        context: Trigger payload handed to the runtime. Opaque here.
    """

    workflow_id: UUID
    id: UUID = field(default_factory=uuid4)
    org_id: str | None = None
    status: RunStatus = RunStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    last_error: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        """Whether the run has finished."""
        return self.status in TERMINAL_RUN_STATUSES

    @property
    def duration_seconds(self) -> float | None:
        """Elapsed time of a finished run, ``None`` while running."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def _finish(self, status: RunStatus, action: str, error: str | None = None) -> RunRecord:
        if self.is_terminal:
            logger.warning("Refused to %s run %s: already %s", action, self.id, self.status)
            raise InvalidTransitionError(f"run '{self.id}'", self.status.value, action, "run already finished")
        return dataclasses.replace(
            self,
            status=status,
            finished_at=datetime.now(timezone.utc),
            last_error=error,
        )

    def complete(self, outcome: RunStatus, error: str | None = None) -> RunRecord:
        """Finish the run with a success or failure outcome.

        Args:
            outcome: ``SUCCESS`` or ``FAILED``.
            error: Error message for failed runs.

        Returns:
            A new, terminal record. This record is left untouched.

        Raises:
            ValueError: If ``outcome`` is not a completion outcome.
            InvalidTransitionError: If the run already finished.
        """
        outcome = RunStatus(outcome)
        if outcome not in (RunStatus.SUCCESS, RunStatus.FAILED):
            msg = f"Run outcome must be 'success' or 'failed', got '{outcome}'"
            raise ValueError(msg)
        return self._finish(outcome, "complete", error if outcome == RunStatus.FAILED else None)

    def cancel(self) -> RunRecord:
        """Stop a running run.

        Raises:
            InvalidTransitionError: If the run already finished.
        """
        return self._finish(RunStatus.CANCELLED, "cancel")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record to a JSON-compatible dictionary."""
        return {
            "id": str(self.id),
            "workflow_id": str(self.workflow_id),
            "org_id": self.org_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "last_error": self.last_error,
            "context": self.context,
        }


def sort_runs(records: list[RunRecord], limit: int = DEFAULT_RUN_LIST_LIMIT) -> list[RunRecord]:
    """Order records newest first and cap the result.

    Records with equal ``started_at`` keep reverse insertion order, so the
    last appended one comes first.
    """
    ordered = sorted(reversed(records), key=lambda record: record.started_at, reverse=True)
    return ordered[: max(limit, 0)]


@dataclass(frozen=True)
class RunSummary:
    """Execution statistics of one automation.

    Attributes:
        workflow_id: The automation.
        execution_count: Number of recorded runs, whatever their status.
        last_executed_at: Start time of the newest run, ``None`` if it never ran.
        status_counts: Number of runs per status. Every status is present.
    """

    workflow_id: UUID
    execution_count: int = 0
    last_executed_at: datetime | None = None
    status_counts: dict[RunStatus, int] = field(default_factory=lambda: dict.fromkeys(RunStatus, 0))

    @classmethod
    def from_records(cls, workflow_id: UUID, records: Iterable[RunRecord]) -> RunSummary:
        """Summarize run records of an automation.

        Records of other automations are ignored.
        """
        counts = dict.fromkeys(RunStatus, 0)
        last_executed_at = None
        for record in records:
            if record.workflow_id != workflow_id:
                continue
            counts[record.status] += 1
            if last_executed_at is None or record.started_at > last_executed_at:
                last_executed_at = record.started_at
        return cls(
            workflow_id=workflow_id,
            execution_count=sum(counts.values()),
            last_executed_at=last_executed_at,
            status_counts=counts,
        )
