"""Tests for the automation REST API.

These tests drive the controllers through a Litestar app configured with the
AutomationPlugin and the default in-memory store.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest
from litestar import Litestar
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)
from litestar.testing import AsyncTestClient

from litestar_automations import AutomationPlugin

DEFINITIONS = "/automations/definitions"


def _graph_payload() -> dict[str, Any]:
    return {
        "nodes": [
            {
                "id": "send",
                "type": "action",
                "name": "Send welcome",
                "config": {"action_kind": "email.send", "to": "{{context.payload.new.email}}"},
                "position": {"x": 40, "y": 80},
            },
            {"id": "wait", "type": "delay", "name": "Wait a day", "config": {"duration_ms": 86_400_000}},
            {"id": "check", "type": "condition", "name": "Replied?", "config": {"expr": "{{replied}} == true"}},
        ],
        "edges": [{"from": "send", "to": "wait"}, {"from": "wait", "to": "check"}],
    }


def _create_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "name": "Welcome new leads",
        "org_id": "acme",
        "created_by": "alice",
        "trigger": {"kind": "event", "event_type": "lead.created"},
        "graph": _graph_payload(),
    }
    payload.update(overrides)
    return payload


async def _create(client: AsyncTestClient) -> dict[str, Any]:
    response = await client.post(DEFINITIONS, json=_create_payload())
    assert response.status_code == HTTP_201_CREATED
    return response.json()


async def _activate(client: AsyncTestClient, workflow_id: str) -> dict[str, Any]:
    for body in ({"action": "request", "actor_id": "alice"}, {"action": "approve", "actor_id": "bob"}):
        response = await client.post(f"{DEFINITIONS}/{workflow_id}/approval", json=body)
        assert response.status_code == HTTP_200_OK
    response = await client.post(f"{DEFINITIONS}/{workflow_id}/activate")
    assert response.status_code == HTTP_200_OK
    return response.json()


@pytest.fixture
def app() -> Litestar:
    """Create an app with the automation plugin and the built-in templates."""
    return Litestar(plugins=[AutomationPlugin()])


@pytest.mark.integration
@pytest.mark.asyncio
class TestAutomationDefinitionController:
    """Tests for AutomationDefinitionController."""

    async def test_create_and_get(self, app: Litestar) -> None:
        """Create returns the draft and it can be fetched back."""
        async with AsyncTestClient(app=app) as client:
            created = await _create(client)

            assert created["lifecycle_status"] == "draft"
            assert created["approval_status"] == "draft"
            assert created["node_count"] == 3
            assert created["edge_count"] == 2
            assert created["version"] == 1
            assert created["created_by"] == "alice"
            assert created["trigger_summary"]

            response = await client.get(f"{DEFINITIONS}/{created['id']}")
            assert response.status_code == HTTP_200_OK
            assert response.json()["name"] == "Welcome new leads"

    async def test_list_by_org(self, app: Litestar) -> None:
        """List is filtered by organization."""
        async with AsyncTestClient(app=app) as client:
            await _create(client)
            await client.post(DEFINITIONS, json=_create_payload(org_id="globex"))

            response = await client.get(DEFINITIONS, params={"org_id": "acme"})
            assert response.status_code == HTTP_200_OK
            assert [d["org_id"] for d in response.json()] == ["acme"]

            response = await client.get(DEFINITIONS)
            assert len(response.json()) == 2

    async def test_create_invalid_returns_violations(self, app: Litestar) -> None:
        """Invalid automations are refused with every violation listed."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            graph = _graph_payload()
            graph["edges"].append({"from": "check", "to": "ghost"})

            response = await client.post(
                DEFINITIONS,
                json=_create_payload(name="", trigger={"kind": "event", "event_type": "nope"}, graph=graph),
            )

            assert response.status_code == HTTP_400_BAD_REQUEST
            body = response.json()
            assert body["error"] == "validation_failed"
            assert len(body["violations"]) == 3

    async def test_create_malformed_trigger(self, app: Litestar) -> None:
        """Malformed wire data is a compile error."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            response = await client.post(DEFINITIONS, json=_create_payload(trigger={"kind": "webhook"}))

            assert response.status_code == HTTP_400_BAD_REQUEST
            assert response.json()["error"] == "compile_failed"

    async def test_not_found(self, app: Litestar) -> None:
        """Unknown automations return 404."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            response = await client.get(f"{DEFINITIONS}/{uuid4()}")

            assert response.status_code == HTTP_404_NOT_FOUND
            assert response.json()["error"] == "not_found"

    async def test_update_with_stale_version(self, app: Litestar) -> None:
        """A stale expected_version is a conflict."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)
            url = f"{DEFINITIONS}/{created['id']}"

            response = await client.patch(url, json={"name": "Renamed", "expected_version": 1})
            assert response.status_code == HTTP_200_OK
            assert response.json()["name"] == "Renamed"
            assert response.json()["version"] == 2

            response = await client.patch(url, json={"name": "Too late", "expected_version": 1})
            assert response.status_code == HTTP_409_CONFLICT
            body = response.json()
            assert body["error"] == "stale_definition"
            assert body["expected_version"] == 1
            assert body["actual_version"] == 2

    async def test_editable_graph_round_trip(self, app: Litestar) -> None:
        """The editor view can be loaded, moved and saved back."""
        async with AsyncTestClient(app=app) as client:
            created = await _create(client)
            url = f"{DEFINITIONS}/{created['id']}/editable-graph"

            response = await client.get(url)
            assert response.status_code == HTTP_200_OK
            editable = response.json()
            assert editable["version"] == 1
            send = next(node for node in editable["nodes"] if node["id"] == "send")
            wait = next(node for node in editable["nodes"] if node["id"] == "wait")
            assert send["position"] == {"x": 40.0, "y": 80.0}
            assert wait["data"] == {"duration": "1 days"}

            wait["data"] = {"duration": "2 days"}
            response = await client.put(
                url,
                json={"nodes": editable["nodes"], "edges": editable["edges"], "expected_version": 1},
            )
            assert response.status_code == HTTP_200_OK
            saved = response.json()
            saved_wait = next(node for node in saved["graph"]["nodes"] if node["id"] == "wait")
            assert saved_wait["config"] == {"duration_ms": 172_800_000}
            assert saved["version"] == 2

    async def test_unedited_editable_graph_saves_back_unchanged(self, app: Litestar) -> None:
        """Saving the editor view untouched keeps every node setting."""
        payload = _create_payload()
        payload["graph"]["nodes"][1]["config"] = {"duration_ms": 1_500, "note": "business hours only"}
        payload["graph"]["nodes"][2]["config"] = {"expr": "{{replied}} == true", "description": "kept"}
        async with AsyncTestClient(app=app) as client:
            created = (await client.post(DEFINITIONS, json=payload)).json()
            url = f"{DEFINITIONS}/{created['id']}/editable-graph"
            editable = (await client.get(url)).json()

            response = await client.put(url, json={"nodes": editable["nodes"], "edges": editable["edges"]})

            assert response.status_code == HTTP_200_OK
            assert response.json()["graph"] == created["graph"]

    async def test_delete(self, app: Litestar) -> None:
        """Deleted automations are gone, with their runs."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)
            await _activate(client, created["id"])
            run = (await client.post(f"{DEFINITIONS}/{created['id']}/runs", json={})).json()

            response = await client.delete(f"{DEFINITIONS}/{created['id']}")
            assert response.status_code == HTTP_204_NO_CONTENT

            assert (await client.get(f"{DEFINITIONS}/{created['id']}")).status_code == HTTP_404_NOT_FOUND
            assert (await client.get(f"/automations/runs/{run['id']}")).status_code == HTTP_404_NOT_FOUND
            assert (await client.delete(f"{DEFINITIONS}/{created['id']}")).status_code == HTTP_404_NOT_FOUND

    async def test_editable_graph_compile_error(self, app: Litestar) -> None:
        """A bad duration label names the offending node."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)
            url = f"{DEFINITIONS}/{created['id']}/editable-graph"
            editable = (await client.get(url)).json()
            for node in editable["nodes"]:
                if node["id"] == "wait":
                    node["data"] = {"duration": "soon"}

            response = await client.put(url, json={"nodes": editable["nodes"], "edges": editable["edges"]})

            assert response.status_code == HTTP_400_BAD_REQUEST
            assert response.json()["element_id"] == "wait"

    async def test_graph_mermaid(self, app: Litestar) -> None:
        """The graph endpoint renders MermaidJS."""
        async with AsyncTestClient(app=app) as client:
            created = await _create(client)

            response = await client.get(f"{DEFINITIONS}/{created['id']}/graph")

            assert response.status_code == HTTP_200_OK
            body = response.json()
            assert body["mermaid_source"].startswith("graph TD")
            assert "send --> wait" in body["mermaid_source"]
            assert len(body["nodes"]) == 3


@pytest.mark.integration
@pytest.mark.asyncio
class TestGovernanceApi:
    """Tests for the approval and lifecycle endpoints."""

    async def test_activate_requires_approval(self, app: Litestar) -> None:
        """Activating a draft is a governance conflict."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)

            response = await client.post(f"{DEFINITIONS}/{created['id']}/activate")

            assert response.status_code == HTTP_409_CONFLICT
            body = response.json()
            assert body["error"] == "governance"
            assert body["reason"] == "approval status is 'draft', request approval first"

    async def test_approval_flow_and_audit_trail(self, app: Litestar) -> None:
        """Request, reject, request and approve are all recorded."""
        async with AsyncTestClient(app=app) as client:
            created = await _create(client)
            url = f"{DEFINITIONS}/{created['id']}"

            for body in (
                {"action": "request", "actor_id": "alice"},
                {"action": "reject", "actor_id": "bob", "notes": "missing unsubscribe"},
                {"action": "request", "actor_id": "alice"},
                {"action": "approve", "actor_id": "bob"},
            ):
                response = await client.post(f"{url}/approval", json=body)
                assert response.status_code == HTTP_200_OK

            assert response.json()["to_status"] == "approved"

            response = await client.get(f"{url}/approvals")
            trail = response.json()
            assert [e["action"] for e in trail] == ["request", "reject", "request", "approve"]
            assert trail[1]["notes"] == "missing unsubscribe"
            assert trail[1]["to_status"] == "draft"

    async def test_invalid_transition(self, app: Litestar) -> None:
        """Approving a draft is an invalid transition."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)

            response = await client.post(
                f"{DEFINITIONS}/{created['id']}/approval", json={"action": "approve", "actor_id": "bob"}
            )

            assert response.status_code == HTTP_409_CONFLICT
            assert response.json()["error"] == "invalid_transition"

    async def test_activate_and_pause(self, app: Litestar) -> None:
        """An approved automation can be activated and paused."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)

            activated = await _activate(client, created["id"])
            assert activated["lifecycle_status"] == "active"

            response = await client.post(f"{DEFINITIONS}/{created['id']}/pause")
            assert response.status_code == HTTP_200_OK
            assert response.json()["lifecycle_status"] == "paused"
            assert response.json()["approval_status"] == "approved"

            response = await client.post(f"{DEFINITIONS}/{created['id']}/pause")
            assert response.status_code == HTTP_409_CONFLICT

    async def test_active_automation_cannot_be_emptied(self, app: Litestar) -> None:
        """Saving an empty editor graph onto a live automation is refused."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)
            activated = await _activate(client, created["id"])

            response = await client.put(f"{DEFINITIONS}/{created['id']}/editable-graph", json={"nodes": [], "edges": []})

            assert response.status_code == HTTP_400_BAD_REQUEST
            assert response.json()["violations"] == [
                "An active automation cannot have an empty graph; pause it first"
            ]
            response = await client.get(f"{DEFINITIONS}/{created['id']}")
            assert response.json()["node_count"] == 3
            assert response.json()["version"] == activated["version"]


@pytest.mark.integration
@pytest.mark.asyncio
class TestRunsApi:
    """Tests for run endpoints."""

    async def test_run_lifecycle(self, app: Litestar) -> None:
        """Runs are started, failed and listed."""
        async with AsyncTestClient(app=app) as client:
            created = await _create(client)
            await _activate(client, created["id"])
            runs_url = f"{DEFINITIONS}/{created['id']}/runs"

            response = await client.post(runs_url, json={"context": {"lead_id": "l1"}})
            assert response.status_code == HTTP_201_CREATED
            run = response.json()
            assert run["status"] == "running"
            assert run["org_id"] == "acme"

            response = await client.post(
                f"/automations/runs/{run['id']}/complete", json={"outcome": "failed", "error": "timeout"}
            )
            assert response.status_code == HTTP_200_OK
            assert response.json()["last_error"] == "timeout"

            response = await client.get(runs_url)
            assert [r["status"] for r in response.json()] == ["failed"]

    async def test_cancel_and_finish_again(self, app: Litestar) -> None:
        """Finished runs cannot change again."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)
            await _activate(client, created["id"])
            run = (await client.post(f"{DEFINITIONS}/{created['id']}/runs", json={})).json()

            response = await client.post(f"/automations/runs/{run['id']}/cancel")
            assert response.status_code == HTTP_200_OK
            assert response.json()["status"] == "cancelled"

            response = await client.post(f"/automations/runs/{run['id']}/complete", json={"outcome": "success"})
            assert response.status_code == HTTP_409_CONFLICT

    async def test_inactive_automation_cannot_run(self, app: Litestar) -> None:
        """Drafts cannot run."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)

            response = await client.post(f"{DEFINITIONS}/{created['id']}/runs", json={})

            assert response.status_code == HTTP_409_CONFLICT
            assert response.json()["error"] == "governance"

    async def test_unknown_run(self, app: Litestar) -> None:
        """Unknown runs return 404."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            response = await client.post(f"/automations/runs/{uuid4()}/cancel")

            assert response.status_code == HTTP_404_NOT_FOUND

    async def test_org_feed_and_get_run(self, app: Litestar) -> None:
        """The organization feed lists runs of all its automations."""
        async with AsyncTestClient(app=app) as client:
            first = await _create(client)
            second = await _create(client)
            for created in (first, second):
                await _activate(client, created["id"])
            run_a = (await client.post(f"{DEFINITIONS}/{first['id']}/runs", json={})).json()
            run_b = (await client.post(f"{DEFINITIONS}/{second['id']}/runs", json={})).json()

            response = await client.get("/automations/runs", params={"org_id": "acme"})
            assert response.status_code == HTTP_200_OK
            assert [r["id"] for r in response.json()] == [run_b["id"], run_a["id"]]

            response = await client.get("/automations/runs", params={"org_id": "acme", "limit": 1})
            assert [r["id"] for r in response.json()] == [run_b["id"]]

            response = await client.get("/automations/runs", params={"org_id": "globex"})
            assert response.json() == []

            response = await client.get(f"/automations/runs/{run_a['id']}")
            assert response.status_code == HTTP_200_OK
            assert response.json()["workflow_id"] == first["id"]

    async def test_org_feed_requires_org(self, app: Litestar) -> None:
        """The organization feed needs an org_id."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            response = await client.get("/automations/runs")

            assert response.status_code == HTTP_400_BAD_REQUEST

    async def test_run_summary(self, app: Litestar) -> None:
        """The summary counts runs per status."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            created = await _create(client)
            await _activate(client, created["id"])
            runs_url = f"{DEFINITIONS}/{created['id']}/runs"
            run = (await client.post(runs_url, json={})).json()
            latest = (await client.post(runs_url, json={})).json()
            await client.post(f"/automations/runs/{run['id']}/complete", json={"outcome": "success"})

            response = await client.get(f"{runs_url}/summary")

            assert response.status_code == HTTP_200_OK
            body = response.json()
            assert body["execution_count"] == 2
            assert body["last_executed_at"] == latest["started_at"]
            assert body["status_counts"] == {"running": 1, "success": 1, "failed": 0, "cancelled": 0}

            response = await client.get(f"{DEFINITIONS}/{uuid4()}/runs/summary")
            assert response.status_code == HTTP_404_NOT_FOUND

    async def test_runs_of_unknown_automation(self, app: Litestar) -> None:
        """Listing runs of an unknown automation returns 404."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            response = await client.get(f"{DEFINITIONS}/{uuid4()}/runs")

            assert response.status_code == HTTP_404_NOT_FOUND


@pytest.mark.integration
@pytest.mark.asyncio
class TestTemplatesApi:
    """Tests for the template catalog endpoints."""

    async def test_list_templates(self, app: Litestar) -> None:
        """The built-in catalog is listed, recommended first."""
        async with AsyncTestClient(app=app) as client:
            response = await client.get("/automations/templates")

            assert response.status_code == HTTP_200_OK
            templates = response.json()
            assert [t["slug"] for t in templates] == [
                "deal-sla-escalation",
                "lead-nurture",
                "order-confirmation",
                "invoice-reminders",
            ]
            assert templates[0]["recommended"] is True

    async def test_install_by_slug(self, app: Litestar) -> None:
        """Installing a template creates a draft automation."""
        async with AsyncTestClient(app=app) as client:
            response = await client.post(
                "/automations/templates/lead-nurture/install", json={"org_id": "acme", "user_id": "alice"}
            )

            assert response.status_code == HTTP_201_CREATED
            definition = response.json()
            assert definition["name"] == "Lead Nurture: welcome + follow-up"
            assert definition["approval_status"] == "draft"
            assert definition["source_template_id"] is not None

            response = await client.get(DEFINITIONS, params={"org_id": "acme"})
            assert len(response.json()) == 1

    async def test_install_unknown(self, app: Litestar) -> None:
        """Installing an unknown template returns 404."""
        async with AsyncTestClient(app=app, raise_server_exceptions=False) as client:
            response = await client.post("/automations/templates/nope/install", json={"org_id": "acme"})

            assert response.status_code == HTTP_404_NOT_FOUND
