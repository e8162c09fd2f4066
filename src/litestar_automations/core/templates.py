"""Template catalog and installation.

Templates are shared, read-only automation blueprints. Installing one produces
a brand new draft :class:`~litestar_automations.core.definition.WorkflowDefinition`
owning deep copies of the template's trigger and graph, so later edits can
never leak back into the catalog.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from litestar_automations.core.compiler import GraphCompiler
from litestar_automations.core.definition import WorkflowDefinition
from litestar_automations.core.graph import GraphModel
from litestar_automations.core.trigger import TriggerSpec, dump_trigger, load_trigger
from litestar_automations.core.types import OrgContext
from litestar_automations.exceptions import TemplateNotFoundError

__all__ = ["TemplateCatalog", "TemplateInstaller", "TemplateWorkflow", "builtin_templates"]

logger = logging.getLogger(__name__)


@dataclass
class TemplateWorkflow:
    """A catalog blueprint for an automation.

    Attributes:
        slug: Stable, URL-friendly key.
        name: Display name, copied onto installed automations.
        trigger: Trigger specification.
        graph: Normalized graph.
        description: Free text, copied onto installed automations.
        category: Grouping shown in the catalog (``sales``, ``finance``...).
        recommended: Whether the catalog lists it first.
        id: Unique identifier.
    """

    slug: str
    name: str
    trigger: TriggerSpec
    graph: GraphModel
    description: str = ""
    category: str = "general"
    recommended: bool = False
    id: UUID = field(default_factory=uuid4)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the template to a JSON-compatible dictionary."""
        return {
            "id": str(self.id),
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "recommended": self.recommended,
            "trigger": dump_trigger(self.trigger),
            "graph": GraphCompiler.dump_graph(self.graph),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplateWorkflow:
        """Rebuild a template from :meth:`to_dict` output.

        Raises:
            CompileError: If the trigger or graph has the wrong shape.
        """
        return cls(
            id=UUID(str(data["id"])) if data.get("id") else uuid4(),
            slug=data["slug"],
            name=data["name"],
            description=data.get("description") or "",
            category=data.get("category") or "general",
            recommended=bool(data.get("recommended", False)),
            trigger=load_trigger(data["trigger"]),
            graph=GraphCompiler.load_graph(data["graph"]),
        )


class TemplateInstaller:
    """Turns catalog templates into independent draft automations."""

    @staticmethod
    def install(template: TemplateWorkflow, org_context: OrgContext, name: str | None = None) -> WorkflowDefinition:
        """Install a template for an organization.

        Args:
            template: The template to copy.
            org_context: Organization and user installing it.
            name: Optional name override, defaults to the template name.

        Returns:
            A new definition in ``DRAFT`` lifecycle and approval status, owning
            deep copies of the template's trigger and graph.

        Raises:
            ValidationError: If the template itself is invalid.

        Example:
            >>> definition = TemplateInstaller.install(template, OrgContext(org_id="acme"))
            >>> definition.graph is template.graph
            False
        """
        definition = WorkflowDefinition.create(
            name or template.name,
            copy.deepcopy(template.trigger),
            org_context,
            graph=template.graph.copy(),
            description=template.description,
            source_template_id=template.id,
        )
        logger.info("Installed template %s as automation %s for org %s", template.slug, definition.id, definition.org_id)
        return definition


class TemplateCatalog:
    """Registry of available templates, addressable by id or slug."""

    def __init__(self, templates: list[TemplateWorkflow] | None = None) -> None:
        """Initialize the catalog.

        Args:
            templates: Initial templates to register.
        """
        self._templates: dict[UUID, TemplateWorkflow] = {}
        self._slugs: dict[str, UUID] = {}
        for template in templates or []:
            self.register(template)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, key: object) -> bool:
        return key in self._templates or key in self._slugs

    def register(self, template: TemplateWorkflow) -> None:
        """Add or replace a template.

        A template registered under an existing slug replaces the old one.
        """
        previous = self._slugs.get(template.slug)
        if previous is not None and previous != template.id:
            del self._templates[previous]
        existing = self._templates.get(template.id)
        if existing is not None and existing.slug != template.slug:
            del self._slugs[existing.slug]
        self._templates[template.id] = template
        self._slugs[template.slug] = template.id

    def _resolve(self, key: UUID | str) -> UUID | None:
        if isinstance(key, UUID):
            return key
        if key in self._slugs:
            return self._slugs[key]
        try:
            return UUID(key)
        except ValueError:
            return None

    def unregister(self, key: UUID | str) -> None:
        """Remove a template by id or slug. Unknown keys are ignored."""
        template_id = self._resolve(key)
        template = self._templates.pop(template_id, None) if template_id else None
        if template is not None:
            del self._slugs[template.slug]

    def get_template(self, key: UUID | str) -> TemplateWorkflow:
        """Get a template by id or slug.

        Raises:
            TemplateNotFoundError: If no template matches.
        """
        template_id = self._resolve(key)
        if template_id is None or template_id not in self._templates:
            raise TemplateNotFoundError(key)
        return self._templates[template_id]

    def list_templates(self, category: str | None = None) -> list[TemplateWorkflow]:
        """List templates, recommended first, then by name.

        Args:
            category: Only list templates of this category.
        """
        templates = [t for t in self._templates.values() if category is None or t.category == category]
        return sorted(templates, key=lambda t: (not t.recommended, t.name.lower()))


def _template_id(slug: str) -> UUID:
    return uuid5(NAMESPACE_URL, f"litestar-automations:template:{slug}")


def builtin_templates() -> list[TemplateWorkflow]:
    """Build the templates shipped with the library.

    A fresh list with fresh graphs is returned on every call. Ids are derived
    from the slug, so they are the same in every process.
    """
    raw = [
        {
            "slug": "lead-nurture",
            "name": "Lead Nurture: welcome + follow-up",
            "description": "Greets new leads, follows up if there is no reply and creates a call task.",
            "category": "sales",
            "recommended": True,
            "trigger": {"kind": "event", "event_type": "lead.created"},
            "graph": {
                "nodes": [
                    {
                        "id": "n1",
                        "type": "action",
                        "name": "Send welcome email",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.email}}",
                            "subject": "Welcome, {{context.payload.new.first_name}}",
                            "body": "Hi {{context.payload.new.first_name}}, thanks for your interest. "
                            "Quick question: what is your current sales stack?",
                        },
                    },
                    {"id": "d1", "type": "delay", "name": "Wait 3 days", "config": {"duration_ms": 259_200_000}},
                    {
                        "id": "c1",
                        "type": "condition",
                        "name": "Replied?",
                        "config": {"expr": "{{context.payload.new.replied}} == true"},
                    },
                    {
                        "id": "n2",
                        "type": "action",
                        "name": "Send follow-up",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.email}}",
                            "subject": "Just checking in",
                            "body": "Hi {{context.payload.new.first_name}}, did you get my note?",
                        },
                    },
                    {
                        "id": "n3",
                        "type": "action",
                        "name": "Create call task",
                        "config": {
                            "action_kind": "task.create",
                            "title": "Call {{context.payload.new.first_name}}",
                            "due_date": "{{context.event.occurred_at}}",
                            "priority": "High",
                            "contact_id": "{{context.subject_id}}",
                        },
                    },
                ],
                "edges": [
                    {"from": "n1", "to": "d1"},
                    {"from": "d1", "to": "c1"},
                    {"from": "c1", "to": "n2", "condition": "false"},
                    {"from": "c1", "to": "n3", "condition": "false"},
                ],
            },
        },
        {
            "slug": "deal-sla-escalation",
            "name": "Deal stuck SLA escalation",
            "description": "If a deal sits in 'Qualified' for 7 days, nudge the owner, "
            "create a task and move the deal forward.",
            "category": "sales",
            "recommended": True,
            "trigger": {"kind": "event", "event_type": "deal.stage_changed"},
            "graph": {
                "nodes": [
                    {"id": "d1", "type": "delay", "name": "Wait 7 days", "config": {"duration_ms": 604_800_000}},
                    {
                        "id": "c1",
                        "type": "condition",
                        "name": "Still qualified?",
                        "config": {"expr": '{{context.payload.new.stage}} == "Qualified"'},
                    },
                    {
                        "id": "n1",
                        "type": "action",
                        "name": "Nudge owner",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.owner_email}}",
                            "subject": "Deal idle: {{context.payload.new.title}}",
                            "body": "Deal has been in Qualified for 7+ days.",
                        },
                    },
                    {
                        "id": "n2",
                        "type": "action",
                        "name": "Create escalation task",
                        "config": {
                            "action_kind": "task.create",
                            "title": "Escalate {{context.payload.new.title}}",
                            "due_date": "{{context.event.occurred_at}}",
                            "deal_id": "{{context.subject_id}}",
                            "priority": "High",
                        },
                    },
                    {
                        "id": "n3",
                        "type": "action",
                        "name": "Move to proposal",
                        "config": {
                            "action_kind": "deal.update_stage",
                            "deal_id": "{{context.subject_id}}",
                            "stage": "Proposal",
                        },
                    },
                ],
                "edges": [
                    {"from": "d1", "to": "c1"},
                    {"from": "c1", "to": "n1", "condition": "true"},
                    {"from": "c1", "to": "n2", "condition": "true"},
                    {"from": "c1", "to": "n3", "condition": "true"},
                ],
            },
        },
        {
            "slug": "invoice-reminders",
            "name": "Invoice reminder & paylink",
            "description": "Remind 3 days before due, on the due date, and 5 days after with a payment link.",
            "category": "finance",
            "trigger": {"kind": "event", "event_type": "invoice.created"},
            "graph": {
                "nodes": [
                    {"id": "d1", "type": "delay", "name": "3 days before due", "config": {"duration_ms": 259_200_000}},
                    {
                        "id": "n1",
                        "type": "action",
                        "name": "Upcoming invoice email",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.contact_email}}",
                            "subject": "Upcoming invoice {{context.payload.new.number}}",
                            "body": "Amount: {{context.payload.new.total}}. Due {{context.payload.new.due_date}}.",
                        },
                    },
                    {"id": "d2", "type": "delay", "name": "On due date", "config": {"duration_ms": 86_400_000}},
                    {
                        "id": "n2",
                        "type": "action",
                        "name": "Due today email",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.contact_email}}",
                            "subject": "Invoice due today {{context.payload.new.number}}",
                            "body": "Please pay here: {{context.payload.new.pay_url}}",
                        },
                    },
                    {"id": "d3", "type": "delay", "name": "5 days after due", "config": {"duration_ms": 432_000_000}},
                    {
                        "id": "c1",
                        "type": "condition",
                        "name": "Paid?",
                        "config": {"expr": '{{context.payload.new.status}} == "Paid"'},
                    },
                    {
                        "id": "n3",
                        "type": "action",
                        "name": "Overdue email",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.contact_email}}",
                            "subject": "Overdue invoice {{context.payload.new.number}}",
                            "body": "Your secure payment link: {{context.payload.new.pay_url}}",
                        },
                    },
                ],
                "edges": [
                    {"from": "d1", "to": "n1"},
                    {"from": "n1", "to": "d2"},
                    {"from": "d2", "to": "n2"},
                    {"from": "n2", "to": "d3"},
                    {"from": "d3", "to": "c1"},
                    {"from": "c1", "to": "n3", "condition": "false"},
                ],
            },
        },
        {
            "slug": "order-confirmation",
            "name": "Confirm order: pro forma + stock",
            "description": "When a sales order is confirmed, create a pro forma and reserve stock.",
            "category": "operations",
            "trigger": {"kind": "event", "event_type": "sales_order.confirmed"},
            "graph": {
                "nodes": [
                    {
                        "id": "n1",
                        "type": "action",
                        "name": "Create pro forma",
                        "config": {
                            "action_kind": "proforma.create",
                            "sales_order_id": "{{context.subject_id}}",
                            "currency": "EUR",
                            "total_cents": "{{context.payload.new.total_cents}}",
                        },
                    },
                    {
                        "id": "n2",
                        "type": "action",
                        "name": "Reserve stock",
                        "config": {
                            "action_kind": "stock.reserve",
                            "sales_order_id": "{{context.subject_id}}",
                            "lines": "{{context.payload.new.lines}}",
                        },
                    },
                    {
                        "id": "n3",
                        "type": "action",
                        "name": "Confirm to customer",
                        "config": {
                            "action_kind": "email.send",
                            "to": "{{context.payload.new.customer_email}}",
                            "subject": "Order confirmed",
                            "body": "Thanks! Pro forma {{context.payload.new.proforma_number}} attached.",
                        },
                    },
                ],
                "edges": [{"from": "n1", "to": "n2"}, {"from": "n2", "to": "n3"}],
            },
        },
    ]
    return [TemplateWorkflow.from_dict({"id": str(_template_id(item["slug"])), **item}) for item in raw]

