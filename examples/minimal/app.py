"""Minimal example of litestar-automations integration.

This example mounts the AutomationPlugin with its in-memory store and adds a
small webhook that turns CRM domain events into runs of every active
automation listening for them.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:app --reload

Try it:
    # Install the lead nurture template for org "acme"
    curl -X POST http://localhost:8000/automations/templates/lead-nurture/install \\
        -H "Content-Type: application/json" -d '{"org_id": "acme", "user_id": "alice"}'

    # Request approval, approve and activate it (replace {id})
    curl -X POST http://localhost:8000/automations/definitions/{id}/approval \\
        -H "Content-Type: application/json" -d '{"action": "request", "actor_id": "alice"}'
    curl -X POST http://localhost:8000/automations/definitions/{id}/approval \\
        -H "Content-Type: application/json" -d '{"action": "approve", "actor_id": "bob"}'
    curl -X POST http://localhost:8000/automations/definitions/{id}/activate

    # Publish a CRM event
    curl -X POST http://localhost:8000/events \\
        -H "Content-Type: application/json" \\
        -d '{"org_id": "acme", "event_type": "lead.created", "payload": {"email": "jo@example.com"}}'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from litestar import Controller, Litestar, get, post

from litestar_automations import AutomationPlugin, AutomationPluginConfig, AutomationService, EventTrigger
from litestar_automations.core.events import AutomationEvent

logger = logging.getLogger(__name__)


# =============================================================================
# Notifications
# =============================================================================


class LoggingNotifier:
    """Logs every automation event, e.g. to alert approvers."""

    async def notify(self, event: AutomationEvent) -> None:
        logger.info("Automation event %s for %s", type(event).__name__, event.workflow_id)


# =============================================================================
# Event Webhook
# =============================================================================


@dataclass
class CrmEvent:
    """A domain event published by the CRM."""

    org_id: str
    event_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    subject_id: str | None = None


class EventController(Controller):
    """Dispatches CRM events to matching automations."""

    path = "/events"
    tags = ["Events"]

    @post("/")
    async def publish(self, data: CrmEvent, automation_service: AutomationService) -> dict[str, Any]:
        """Start a run for every active automation triggered by the event."""
        started = []
        for definition in await automation_service.list_definitions(data.org_id):
            trigger = definition.trigger
            if not definition.is_active or not isinstance(trigger, EventTrigger):
                continue
            if trigger.event_type != data.event_type:
                continue
            run = await automation_service.start_run(
                definition.id,
                context={
                    "event": {"type": data.event_type},
                    "subject_id": data.subject_id,
                    "payload": {"new": data.payload},
                },
            )
            started.append(str(run.id))
        return {"event_type": data.event_type, "runs": started}


# =============================================================================
# Application
# =============================================================================

app = Litestar(
    route_handlers=[EventController],
    plugins=[AutomationPlugin(config=AutomationPluginConfig(notifier=LoggingNotifier()))],
    debug=True,
)


# =============================================================================
# Health Check (for testing)
# =============================================================================


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Add health check to app
app.register(health_check)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
