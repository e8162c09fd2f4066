"""Repository implementations for automation persistence.

This module provides async repositories for the automation models using
advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import delete, func, select, update

from litestar_automations.core.types import RunStatus
from litestar_automations.db.models import (
    AutomationApprovalModel,
    AutomationModel,
    AutomationRunModel,
    AutomationTemplateModel,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from typing import Any
    from uuid import UUID

__all__ = [
    "AutomationApprovalRepository",
    "AutomationRepository",
    "AutomationRunRepository",
    "AutomationTemplateRepository",
]


class AutomationRepository(SQLAlchemyAsyncRepository[AutomationModel]):
    """Repository for automation definitions."""

    model_type = AutomationModel

    async def list_by_org(self, org_id: str | None = None) -> Sequence[AutomationModel]:
        """List automations, most recently updated first.

        Args:
            org_id: Optional organization filter.

        Returns:
            List of automation models.
        """
        stmt = (
            select(AutomationModel)
            .order_by(AutomationModel.updated_at.desc())
            .execution_options(populate_existing=True)
        )
        if org_id is not None:
            stmt = stmt.where(AutomationModel.org_id == org_id)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update_if_version(self, automation_id: UUID, expected_version: int, values: dict[str, Any]) -> bool:
        """Compare-and-swap update on the version column.

        Args:
            automation_id: Row to update.
            expected_version: Version the row must still have.
            values: Column values to write.

        Returns:
            True if the row was updated, False if it is missing or its
            version moved on.
        """
        stmt = (
            update(AutomationModel)
            .where(AutomationModel.id == automation_id, AutomationModel.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_version(self, automation_id: UUID) -> int | None:
        """Get the stored version of an automation, or None if missing."""
        result = await self.session.execute(select(AutomationModel.version).where(AutomationModel.id == automation_id))
        return result.scalar_one_or_none()

    async def delete_by_id(self, automation_id: UUID) -> bool:
        """Delete an automation row.

        Returns:
            True if a row was deleted.
        """
        stmt = (
            delete(AutomationModel)
            .where(AutomationModel.id == automation_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class AutomationApprovalRepository(SQLAlchemyAsyncRepository[AutomationApprovalModel]):
    """Repository for the governance audit trail."""

    model_type = AutomationApprovalModel

    async def list_for_automation(self, automation_id: UUID) -> Sequence[AutomationApprovalModel]:
        """List the approval events of an automation, oldest first."""
        stmt = (
            select(AutomationApprovalModel)
            .where(AutomationApprovalModel.automation_id == automation_id)
            .order_by(AutomationApprovalModel.occurred_at, AutomationApprovalModel.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def delete_for_automation(self, automation_id: UUID) -> None:
        """Delete the audit trail of an automation."""
        await self.session.execute(
            delete(AutomationApprovalModel)
            .where(AutomationApprovalModel.automation_id == automation_id)
            .execution_options(synchronize_session=False)
        )


class AutomationRunRepository(SQLAlchemyAsyncRepository[AutomationRunModel]):
    """Repository for run records."""

    model_type = AutomationRunModel

    async def list_for_automation(
        self,
        automation_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[AutomationRunModel], int]:
        """Find the runs of an automation, newest first.

        Args:
            automation_id: The automation to filter by.
            limit: Maximum number of results.
            offset: Number of results to skip.

        Returns:
            Tuple of (runs, total_count).
        """
        return await self.list_and_count(
            AutomationRunModel.automation_id == automation_id,
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name="started_at", sort_order="desc"),
        )

    async def list_for_org(
        self,
        org_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[AutomationRunModel], int]:
        """Find the runs of every automation of an organization, newest first.

        Returns:
            Tuple of (runs, total_count).
        """
        return await self.list_and_count(
            AutomationRunModel.org_id == org_id,
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name="started_at", sort_order="desc"),
        )

    async def finish_if_running(self, run_id: UUID, values: dict[str, Any]) -> bool:
        """Compare-and-swap update that only touches a running row.

        Args:
            run_id: Row to update.
            values: Column values to write.

        Returns:
            True if the row was updated, False if it is missing or already
            finished.
        """
        stmt = (
            update(AutomationRunModel)
            .where(AutomationRunModel.id == run_id, AutomationRunModel.status == RunStatus.RUNNING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count_by_status(self, automation_id: UUID) -> tuple[dict[RunStatus, int], datetime | None]:
        """Count the runs of an automation per status.

        Returns:
            Tuple of (counts for the statuses present, newest ``started_at``).
        """
        stmt = (
            select(AutomationRunModel.status, func.count(), func.max(AutomationRunModel.started_at))
            .where(AutomationRunModel.automation_id == automation_id)
            .group_by(AutomationRunModel.status)
        )
        counts: dict[RunStatus, int] = {}
        last_started_at = None
        for status, count, started_at in (await self.session.execute(stmt)).all():
            counts[RunStatus(status)] = count
            if started_at is not None and (last_started_at is None or started_at > last_started_at):
                last_started_at = started_at
        return counts, last_started_at

    async def delete_for_automation(self, automation_id: UUID) -> None:
        """Delete the runs of an automation."""
        await self.session.execute(
            delete(AutomationRunModel)
            .where(AutomationRunModel.automation_id == automation_id)
            .execution_options(synchronize_session=False)
        )



class AutomationTemplateRepository(SQLAlchemyAsyncRepository[AutomationTemplateModel]):
    """Repository for the template catalog."""

    model_type = AutomationTemplateModel

    async def get_by_slug(self, slug: str) -> AutomationTemplateModel | None:
        """Get a template by slug.

        Returns:
            The template or None if not found.
        """
        return await self.get_one_or_none(slug=slug)

    async def list_catalog(self) -> Sequence[AutomationTemplateModel]:
        """List templates, recommended first, then by name."""
        stmt = select(AutomationTemplateModel).order_by(
            AutomationTemplateModel.recommended.desc(),
            func.lower(AutomationTemplateModel.name),
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
