"""Integration tests for example applications.

Tests the minimal example app using Litestar's test client to verify the
install, govern, activate and dispatch flow end to end.
"""

from __future__ import annotations

import pytest
from litestar.testing import AsyncTestClient

# =============================================================================
# Minimal App Tests
# =============================================================================


@pytest.mark.integration
class TestMinimalApp:
    """Integration tests for the minimal example app."""

    @pytest.fixture
    def minimal_app(self):
        """Import and return a fresh minimal example app."""
        from litestar import Litestar

        from examples.minimal import app as module
        from litestar_automations import AutomationPlugin, AutomationPluginConfig

        return Litestar(
            route_handlers=[module.EventController],
            plugins=[AutomationPlugin(config=AutomationPluginConfig(notifier=module.LoggingNotifier()))],
        )

    async def test_module_app(self):
        """Test the module level app serves the health check."""
        from examples.minimal.app import app

        async with AsyncTestClient(app=app) as client:
            response = await client.get("/health")

            assert response.status_code == 200
            assert response.json()["status"] == "healthy"

    async def test_event_dispatch(self, minimal_app):
        """Test a CRM event starts a run of the active installed template."""
        async with AsyncTestClient(app=minimal_app) as client:
            response = await client.post(
                "/automations/templates/lead-nurture/install", json={"org_id": "acme", "user_id": "alice"}
            )
            assert response.status_code == 201
            workflow_id = response.json()["id"]

            base = f"/automations/definitions/{workflow_id}"
            await client.post(f"{base}/approval", json={"action": "request", "actor_id": "alice"})
            await client.post(f"{base}/approval", json={"action": "approve", "actor_id": "bob"})
            response = await client.post(f"{base}/activate")
            assert response.json()["lifecycle_status"] == "active"

            response = await client.post(
                "/events",
                json={"org_id": "acme", "event_type": "lead.created", "payload": {"email": "jo@example.com"}},
            )
            assert response.status_code == 201
            assert len(response.json()["runs"]) == 1

            response = await client.get(f"{base}/runs")
            runs = response.json()
            assert runs[0]["status"] == "running"
            assert runs[0]["context"]["payload"]["new"]["email"] == "jo@example.com"

    async def test_event_without_listeners(self, minimal_app):
        """Test events no active automation listens for start nothing."""
        async with AsyncTestClient(app=minimal_app) as client:
            await client.post("/automations/templates/lead-nurture/install", json={"org_id": "acme"})

            response = await client.post("/events", json={"org_id": "acme", "event_type": "lead.created"})

            assert response.status_code == 201
            assert response.json()["runs"] == []
