"""Core domain model for litestar-automations.

Everything in this package is synchronous, pure data logic: graphs and their
compiler, triggers, approval governance, run records, templates and the
definition aggregate that ties them together.
"""

from __future__ import annotations

from litestar_automations.core.approval import (
    APPROVAL_TRANSITIONS,
    ApprovalEvent,
    ApprovalStateMachine,
    status_from_history,
)
from litestar_automations.core.compiler import (
    CompilerConfig,
    EditableEdge,
    EditableGraph,
    EditableNode,
    GraphCompiler,
    format_duration,
    parse_duration,
)
from litestar_automations.core.definition import WorkflowDefinition
from litestar_automations.core.events import (
    ApprovalRequested,
    AutomationActivated,
    AutomationApproved,
    AutomationDeleted,
    AutomationEvent,
    AutomationPaused,
    AutomationRejected,
    RunCancelled,
    RunCompleted,
    RunStarted,
    TemplateInstalled,
)
from litestar_automations.core.graph import Edge, GraphModel, Node, Position, ValidationResult, validate_graph
from litestar_automations.core.protocols import AutomationNotifier, AutomationStore, RunStore
from litestar_automations.core.runs import RunRecord, RunSummary
from litestar_automations.core.templates import TemplateCatalog, TemplateInstaller, TemplateWorkflow, builtin_templates
from litestar_automations.core.trigger import (
    EventTrigger,
    ScheduleTrigger,
    TriggerSpec,
    describe_trigger,
    dump_trigger,
    load_trigger,
    validate_trigger,
)
from litestar_automations.core.types import (
    ApprovalAction,
    ApprovalStatus,
    LifecycleStatus,
    NodeType,
    OrgContext,
    RunStatus,
    TriggerKind,
)

__all__ = [
    "APPROVAL_TRANSITIONS",
    "ApprovalAction",
    "ApprovalEvent",
    "ApprovalRequested",
    "ApprovalStateMachine",
    "ApprovalStatus",
    "AutomationActivated",
    "AutomationApproved",
    "AutomationDeleted",
    "AutomationEvent",
    "AutomationNotifier",
    "AutomationPaused",
    "AutomationRejected",
    "AutomationStore",
    "CompilerConfig",
    "EditableEdge",
    "EditableGraph",
    "EditableNode",
    "Edge",
    "EventTrigger",
    "GraphCompiler",
    "GraphModel",
    "LifecycleStatus",
    "Node",
    "NodeType",
    "OrgContext",
    "Position",
    "RunCancelled",
    "RunCompleted",
    "RunRecord",
    "RunStarted",
    "RunStatus",
    "RunStore",
    "RunSummary",
    "ScheduleTrigger",
    "TemplateCatalog",
    "TemplateInstaller",
    "TemplateInstalled",
    "TemplateWorkflow",
    "TriggerKind",
    "TriggerSpec",
    "ValidationResult",
    "WorkflowDefinition",
    "builtin_templates",
    "describe_trigger",
    "dump_trigger",
    "format_duration",
    "load_trigger",
    "parse_duration",
    "status_from_history",
    "validate_graph",
    "validate_trigger",
]
