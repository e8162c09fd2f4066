"""Full example demonstrating litestar-automations with persistence and the built-in REST API.

This example shows:
- SQLite database persistence through advanced-alchemy's SQLAlchemyPlugin
- A request-scoped SQLAlchemyAutomationStore provided to the AutomationPlugin
- The built-in template catalog seeded into the database on startup
- Built-in REST API endpoints (auto-enabled) behind an organization header guard

Run with:
    cd examples/full
    uv run litestar run --port 8001

Or:
    uv run uvicorn app:app --reload --port 8001

API Endpoints (auto-enabled):
    Definitions:
        GET   /automations/definitions                        - List automations
        POST  /automations/definitions                        - Create a draft
        GET   /automations/definitions/{id}                   - Get an automation
        PATCH /automations/definitions/{id}                   - Edit an automation
        GET   /automations/definitions/{id}/editable-graph    - Editor view
        PUT   /automations/definitions/{id}/editable-graph    - Save editor view
        GET   /automations/definitions/{id}/graph             - MermaidJS graph
        POST  /automations/definitions/{id}/approval          - Request, approve or reject
        GET   /automations/definitions/{id}/approvals         - Audit trail
        POST  /automations/definitions/{id}/activate          - Activate
        POST  /automations/definitions/{id}/pause             - Pause
        GET   /automations/definitions/{id}/runs              - List runs
        POST  /automations/definitions/{id}/runs              - Record a trigger firing

    Runs:
        POST  /automations/runs/{id}/complete                 - Finish a run
        POST  /automations/runs/{id}/cancel                   - Cancel a run

    Templates:
        GET   /automations/templates                          - List templates
        POST  /automations/templates/{id_or_slug}/install     - Install a template

Example API Usage:
    # Create a draft
    curl -X POST http://localhost:8001/automations/definitions \\
        -H "Content-Type: application/json" -H "X-Org-Id: acme" \\
        -d '{
            "name": "Daily digest",
            "org_id": "acme",
            "created_by": "alice",
            "trigger": {"kind": "schedule", "cron": "0 9 * * 1-5"},
            "graph": {
                "nodes": [{"id": "n1", "type": "action", "name": "Send digest",
                           "config": {"action_kind": "email.send", "to": "team@example.com"}}],
                "edges": []
            }
        }'

    # View the audit trail
    curl -H "X-Org-Id: acme" http://localhost:8001/automations/definitions/{id}/approvals
"""

from __future__ import annotations

from typing import Any

from litestar import Litestar, get
from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException
from litestar.handlers.base import BaseRouteHandler
from litestar.openapi import OpenAPIConfig
from litestar.plugins.sqlalchemy import SQLAlchemyAsyncConfig, SQLAlchemyPlugin

from litestar_automations import AutomationPlugin, AutomationPluginConfig
from litestar_automations.core.templates import builtin_templates
from litestar_automations.db import AutomationModel, SQLAlchemyAutomationStore, provide_sqlalchemy_store

# =============================================================================
# Guards
# =============================================================================


def require_org_header(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Refuse API calls that do not say which organization they act for."""
    if not connection.headers.get("X-Org-Id"):
        raise NotAuthorizedException("Missing X-Org-Id header")


# =============================================================================
# Application Setup
# =============================================================================


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "litestar-automations-example"}


@get("/")
async def index() -> dict[str, Any]:
    """API documentation index."""
    return {
        "name": "Litestar Automations Example",
        "description": "Full example with built-in REST API and persistence",
        "endpoints": {
            "openapi": "/schema",
            "health": "/health",
            "automations": {
                "definitions": "/automations/definitions",
                "templates": "/automations/templates",
            },
        },
    }


# Database configuration - SQLite for simplicity
# In production, use PostgreSQL or another production database
sqlalchemy_config = SQLAlchemyAsyncConfig(
    connection_string="sqlite+aiosqlite:///./automations.db",
    metadata=AutomationModel.metadata,
    create_all=True,  # Auto-create tables on startup
)


async def seed_templates(app: Litestar) -> None:
    """Write the built-in templates into the catalog table once the tables exist."""
    async with sqlalchemy_config.get_session() as session:
        await SQLAlchemyAutomationStore(session).seed_templates(builtin_templates())


# Create the Litestar application
app = Litestar(
    route_handlers=[health_check, index],
    plugins=[
        SQLAlchemyPlugin(config=sqlalchemy_config),
        AutomationPlugin(
            config=AutomationPluginConfig(
                store_provider=provide_sqlalchemy_store,
                api_guards=[require_org_header],
            )
        ),
    ],
    on_startup=[seed_templates],
    openapi_config=OpenAPIConfig(
        title="Litestar Automations - Full Example",
        version="1.0.0",
        description=(
            "Full example demonstrating litestar-automations with approval governance, "
            "template installs, database persistence, and built-in REST API."
        ),
    ),
    debug=True,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
