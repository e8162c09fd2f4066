"""Shared test fixtures for litestar-automations test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from litestar_automations.core.definition import WorkflowDefinition
    from litestar_automations.core.graph import GraphModel
    from litestar_automations.core.types import OrgContext
    from litestar_automations.engine.memory import InMemoryAutomationStore
    from litestar_automations.engine.service import AutomationService


class RecordingNotifier:
    """Notifier that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    async def notify(self, event: Any) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [type(event).__name__ for event in self.events]


@pytest.fixture
def org_context() -> OrgContext:
    """Organization context of the acting user."""
    from litestar_automations.core.types import OrgContext

    return OrgContext(org_id="acme", user_id="alice")


@pytest.fixture
def sample_graph() -> GraphModel:
    """Create a small valid graph: send, wait a day, check, follow up.

    Returns:
        GraphModel instance
    """
    from litestar_automations.core.graph import Edge, GraphModel, Node
    from litestar_automations.core.types import NodeType

    return GraphModel.from_nodes(
        [
            Node(
                id="send",
                type=NodeType.ACTION,
                name="Send welcome",
                config={"action_kind": "email.send", "to": "{{context.payload.new.email}}"},
            ),
            Node(id="wait", type=NodeType.DELAY, name="Wait a day", config={"duration_ms": 86_400_000}),
            Node(id="check", type=NodeType.CONDITION, name="Replied?", config={"expr": "{{replied}} == true"}),
            Node(
                id="follow_up",
                type=NodeType.ACTION,
                name="Follow up",
                config={"action_kind": "task.create", "title": "Call lead"},
            ),
        ],
        [
            Edge(source="send", target="wait"),
            Edge(source="wait", target="check"),
            Edge(source="check", target="follow_up", condition="false"),
        ],
    )


@pytest.fixture
def sample_definition(sample_graph: GraphModel, org_context: OrgContext) -> WorkflowDefinition:
    """Create a draft automation triggered by new leads.

    Args:
        sample_graph: Graph fixture
        org_context: Organization fixture

    Returns:
        WorkflowDefinition instance
    """
    from litestar_automations.core.definition import WorkflowDefinition
    from litestar_automations.core.trigger import EventTrigger

    return WorkflowDefinition.create(
        "Welcome new leads",
        EventTrigger(event_type="lead.created"),
        org_context,
        graph=sample_graph,
        description="Greets every new lead",
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Create a notifier recording emitted events."""
    return RecordingNotifier()


@pytest.fixture
def memory_store() -> InMemoryAutomationStore:
    """Create an in-memory store with the built-in template catalog.

    Returns:
        InMemoryAutomationStore instance
    """
    from litestar_automations.core.templates import TemplateCatalog, builtin_templates
    from litestar_automations.engine.memory import InMemoryAutomationStore

    return InMemoryAutomationStore(catalog=TemplateCatalog(builtin_templates()))


@pytest.fixture
def automation_service(memory_store: InMemoryAutomationStore, notifier: RecordingNotifier) -> AutomationService:
    """Create an automation service over the in-memory store.

    Args:
        memory_store: Store fixture
        notifier: Notifier fixture

    Returns:
        AutomationService instance
    """
    from litestar_automations.engine.service import AutomationService

    return AutomationService(memory_store, notifier=notifier)


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers.

    Args:
        config: Pytest config object
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
