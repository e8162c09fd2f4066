"""Trigger specifications.

A trigger is what makes an automation fire: either a domain event published by
the CRM (``deal.stage_changed``) or a cron-like schedule. Evaluating schedules
and listening for events is done by external dispatchers; this module only
describes and validates triggers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, TypeAlias

from litestar_automations.core.graph import ValidationResult
from litestar_automations.core.types import TriggerKind
from litestar_automations.exceptions import CompileError

__all__ = [
    "KNOWN_EVENT_ENTITIES",
    "KNOWN_EVENT_TYPES",
    "EventTrigger",
    "ScheduleTrigger",
    "TriggerSpec",
    "describe_trigger",
    "dump_trigger",
    "load_trigger",
    "validate_trigger",
]

KNOWN_EVENT_ENTITIES = frozenset(
    {
        "company",
        "contact",
        "deal",
        "email",
        "invoice",
        "lead",
        "meeting",
        "payment",
        "quote",
        "sales_order",
        "task",
    }
)
"""CRM entities that publish domain events."""

KNOWN_EVENT_TYPES = frozenset(
    {
        "deal.created",
        "deal.stage_changed",
        "invoice.created",
        "invoice.payment_failed",
        "invoice.payment_succeeded",
        "lead.created",
        "lead.status_changed",
        "sales_order.confirmed",
        "task.assigned_to",
        "task.created",
        "task.status_changed",
    }
)
"""Event types the CRM is known to publish. Other verbs on known entities are accepted."""

_EVENT_TYPE_RE = re.compile(r"^[a-z][a-z_]*\.[a-z][a-z_]*$")
_CRON_FIELD_RE = re.compile(r"^[0-9A-Za-z*/,\-?LW#]+$")


@dataclass
class EventTrigger:
    """Fires when the CRM publishes a matching domain event.

    Attributes:
        event_type: Dotted ``entity.verb`` event name, e.g. ``deal.created``.
    """

    kind: ClassVar[TriggerKind] = TriggerKind.EVENT

    event_type: str


@dataclass
class ScheduleTrigger:
    """Fires on a cron-like schedule.

    Attributes:
        cron: Five or six field cron expression, e.g. ``0 9 * * 1``.
    """

    kind: ClassVar[TriggerKind] = TriggerKind.SCHEDULE

    cron: str


TriggerSpec: TypeAlias = EventTrigger | ScheduleTrigger
"""Tagged union of the supported trigger variants."""


def validate_trigger(trigger: TriggerSpec) -> ValidationResult:
    """Validate a trigger specification.

    Event triggers need a dotted ``entity.verb`` type whose entity belongs to
    the CRM taxonomy. Schedule triggers need a syntactically plausible cron
    expression of five or six fields; semantic cron checks are left to the
    scheduler.

    Args:
        trigger: The trigger to validate.

    Returns:
        ValidationResult listing every violation.
    """
    errors: list[str] = []

    if isinstance(trigger, EventTrigger):
        event_type = trigger.event_type
        if not isinstance(event_type, str) or not event_type.strip():
            errors.append("Event trigger requires a non-empty 'event_type'")
        elif not _EVENT_TYPE_RE.match(event_type):
            errors.append(f"Event type '{event_type}' must look like 'entity.verb'")
        elif event_type.split(".", 1)[0] not in KNOWN_EVENT_ENTITIES:
            errors.append(f"Event type '{event_type}' refers to an unknown entity")
    elif isinstance(trigger, ScheduleTrigger):
        cron = trigger.cron
        if not isinstance(cron, str) or not cron.strip():
            errors.append("Schedule trigger requires a non-empty 'cron'")
        else:
            fields = cron.split()
            if len(fields) not in (5, 6):
                errors.append(f"Cron expression '{cron}' must have 5 or 6 fields, got {len(fields)}")
            elif not all(_CRON_FIELD_RE.match(part) for part in fields):
                errors.append(f"Cron expression '{cron}' contains invalid characters")
    else:
        errors.append(f"Unsupported trigger type '{type(trigger).__name__}'")

    return ValidationResult(violations=errors)


def describe_trigger(trigger: TriggerSpec) -> str:
    """Get a human-readable summary of a trigger.

    Example:
        >>> describe_trigger(EventTrigger(event_type="deal.created"))
        'Event: deal.created'
        >>> describe_trigger(ScheduleTrigger(cron="0 9 * * 1"))
        'Schedule: 0 9 * * 1'
    """
    if isinstance(trigger, EventTrigger):
        return f"Event: {trigger.event_type}"
    return f"Schedule: {trigger.cron}"


def load_trigger(raw: Any) -> TriggerSpec:
    """Parse the wire form of a trigger.

    Args:
        raw: ``{"kind": "event", "event_type": ...}`` or
            ``{"kind": "schedule", "cron": ...}``. Fields of the other variant
            are ignored.

    Returns:
        The matching trigger variant.

    Raises:
        CompileError: If the shape is wrong.
    """
    if not isinstance(raw, dict):
        raise CompileError("Trigger must be an object", "trigger")

    kind = raw.get("kind")
    if kind == TriggerKind.EVENT:
        event_type = raw.get("event_type")
        if not isinstance(event_type, str):
            raise CompileError("Event trigger 'event_type' must be a string", "trigger")
        return EventTrigger(event_type=event_type)
    if kind == TriggerKind.SCHEDULE:
        cron = raw.get("cron")
        if not isinstance(cron, str):
            raise CompileError("Schedule trigger 'cron' must be a string", "trigger")
        return ScheduleTrigger(cron=cron)

    raise CompileError(f"Unknown trigger kind {kind!r}", "trigger")


def dump_trigger(trigger: TriggerSpec) -> dict[str, Any]:
    """Serialize a trigger to its wire form."""
    if isinstance(trigger, EventTrigger):
        return {"kind": TriggerKind.EVENT.value, "event_type": trigger.event_type}
    return {"kind": TriggerKind.SCHEDULE.value, "cron": trigger.cron}
