"""Litestar Automations - Governed workflow automations for Litestar.

This package provides the core of a business automation product: graph-shaped
automations built in a visual editor, triggered by domain events or cron
schedules, gated by an approval workflow, and tracked through run records.

Key Features:
    - Normalized graph model with validation and MermaidJS rendering
    - Lossless compiler between editor graphs and normalized graphs
    - Event and schedule triggers
    - Approval governance with an audit trail
    - Run ledger with terminal-state guarantees
    - Template catalog with isolated installs
    - In-memory and SQLAlchemy stores, and a Litestar REST API plugin

Example:
    >>> from litestar_automations import EventTrigger, OrgContext, WorkflowDefinition
    >>>
    >>> definition = WorkflowDefinition.create(
    ...     "Welcome leads",
    ...     EventTrigger(event_type="lead.created"),
    ...     OrgContext(org_id="acme", user_id="u1"),
    ... )
    >>> _ = definition.request_approval(actor_id="u1")
    >>> definition.approve(actor_id="u2").to_status
    <ApprovalStatus.APPROVED: 'approved'>
"""

from __future__ import annotations

from litestar_automations.__metadata__ import __project__, __version__
from litestar_automations.core import (
    EventTrigger,
    GraphCompiler,
    GraphModel,
    OrgContext,
    ScheduleTrigger,
    TemplateInstaller,
    WorkflowDefinition,
)
from litestar_automations.engine import AutomationService, InMemoryAutomationStore
from litestar_automations.exceptions import (
    AutomationsError,
    CompileError,
    GovernanceError,
    InvalidTransitionError,
    RunNotFoundError,
    StaleDefinitionError,
    TemplateNotFoundError,
    ValidationError,
    WorkflowNotFoundError,
)
from litestar_automations.plugin import AutomationPlugin, AutomationPluginConfig

__all__ = (
    "AutomationPlugin",
    "AutomationPluginConfig",
    "AutomationService",
    "AutomationsError",
    "CompileError",
    "EventTrigger",
    "GovernanceError",
    "GraphCompiler",
    "GraphModel",
    "InMemoryAutomationStore",
    "InvalidTransitionError",
    "OrgContext",
    "RunNotFoundError",
    "ScheduleTrigger",
    "StaleDefinitionError",
    "TemplateInstaller",
    "TemplateNotFoundError",
    "ValidationError",
    "WorkflowDefinition",
    "WorkflowNotFoundError",
    "__project__",
    "__version__",
)
