"""Database persistence layer for litestar-automations.

This module provides SQLAlchemy models, repositories and an
:class:`~litestar_automations.core.protocols.AutomationStore` implementation
for persisting automations, approvals, runs and templates.
"""

from __future__ import annotations

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
from litestar_automations.db.store import SQLAlchemyAutomationStore, provide_sqlalchemy_store

__all__ = [
    "AutomationApprovalModel",
    "AutomationApprovalRepository",
    "AutomationModel",
    "AutomationRepository",
    "AutomationRunModel",
    "AutomationRunRepository",
    "AutomationTemplateModel",
    "AutomationTemplateRepository",
    "SQLAlchemyAutomationStore",
    "provide_sqlalchemy_store",
]
