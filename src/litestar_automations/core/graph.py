"""Automation graph structures and structural validation.

This module provides the normalized (execution) form of an automation graph:
nodes, edges, the graph container itself, and the pure validation that checks
node ids, edge references and per-type node configuration.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from litestar_automations.core.types import Config, NodeType
from litestar_automations.exceptions import ValidationError

__all__ = ["Edge", "GraphModel", "Node", "Position", "ValidationResult", "validate_graph"]


@dataclass
class Position:
    """Canvas coordinates of a node. Editor-only, never part of execution."""

    x: float
    y: float


@dataclass
class Node:
    """One step of an automation graph.

    The shape of ``config`` depends on ``type``:

    - ``action``: ``action_kind`` plus kind-specific parameters.
    - ``condition``: ``expr``, a templated boolean expression.
    - ``delay``: ``duration_ms``, a non-negative integer.
    - ``split``: ``label`` and optional weighted ``arms``.

    Attributes:
        id: Identifier, unique within the graph.
        type: The node type.
        name: Display name.
        config: Type-specific configuration.

    Example:
        >>> Node(id="wait", type=NodeType.DELAY, name="Wait a day", config={"duration_ms": 86_400_000})
    """

    id: str
    type: NodeType
    name: str = ""
    config: Config = field(default_factory=dict)


@dataclass
class Edge:
    """Directed, optionally guarded transition between two nodes.

    Attributes:
        source: Id of the node the edge leaves.
        target: Id of the node the edge enters.
        condition: Guard evaluated by the runtime. ``None`` means unconditional;
            a blank guard is invalid.

    Example:
        >>> Edge(source="replied", target="follow_up", condition="false")
    """

    source: str
    target: str
    condition: str | None = None


@dataclass
class ValidationResult:
    """Outcome of a validation pass.

    Attributes:
        violations: Human-readable violation messages, empty when valid.
    """

    violations: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Whether no violations were found."""
        return not self.violations

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Combine two results into a new one."""
        return ValidationResult(violations=[*self.violations, *other.violations])

    def raise_for_errors(self) -> None:
        """Raise ``ValidationError`` if any violation was found.

        Raises:
            ValidationError: Carrying every violation.
        """
        if self.violations:
            raise ValidationError(self.violations)


@dataclass
class GraphModel:
    """Normalized automation graph.

    Nodes are keyed by id in insertion order; edges keep their authored order.
    The graph may contain cycles; loop policy is a runtime concern.

    Attributes:
        nodes: Mapping of node id to node.
        edges: Ordered list of edges.
    """

    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node], edges: Iterable[Edge] = ()) -> GraphModel:
        """Build a graph from a node sequence.

        Args:
            nodes: Nodes in display order.
            edges: Edges in authored order.

        Returns:
            A new GraphModel.

        Raises:
            ValidationError: If two nodes share an id.
        """
        mapping: dict[str, Node] = {}
        duplicates: list[str] = []
        for node in nodes:
            if node.id in mapping:
                duplicates.append(f"Duplicate node id '{node.id}'")
            mapping[node.id] = node
        if duplicates:
            raise ValidationError(duplicates)
        return cls(nodes=mapping, edges=list(edges))

    @property
    def node_count(self) -> int:
        """Number of nodes."""
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        """Number of edges."""
        return len(self.edges)

    @property
    def is_empty(self) -> bool:
        """Whether the graph has no nodes."""
        return not self.nodes

    def copy(self) -> GraphModel:
        """Return a deep copy sharing no mutable structure with this graph."""
        return copy.deepcopy(self)

    def get_node(self, node_id: str) -> Node | None:
        """Get a node by id, or ``None``."""
        return self.nodes.get(node_id)

    def entry_points(self) -> list[str]:
        """Get the ids of nodes with no incoming edges, in node order.

        Returns:
            List of entry node ids. Empty for an empty graph or a graph that is
            one big cycle.
        """
        incoming = {edge.target for edge in self.edges}
        return [node_id for node_id in self.nodes if node_id not in incoming]

    def get_next_nodes(self, node_id: str) -> list[str]:
        """Get the targets of all edges leaving a node.

        Guards are not evaluated; that happens in the runtime.

        Args:
            node_id: Id of the current node.

        Returns:
            Target ids in edge order.
        """
        return [edge.target for edge in self.edges if edge.source == node_id]

    def get_previous_nodes(self, node_id: str) -> list[str]:
        """Get the sources of all edges entering a node."""
        return [edge.source for edge in self.edges if edge.target == node_id]

    def get_node_depth(self, node_id: str) -> int:
        """Get the minimum number of edges from any entry point to a node.

        Args:
            node_id: Id of the node.

        Returns:
            The depth, 0 for entry points, -1 if unreachable from any entry.
        """
        entries = self.entry_points()
        visited = dict.fromkeys(entries, 0)
        queue = list(entries)

        while queue:
            current = queue.pop(0)
            if current == node_id:
                return visited[current]
            for target in self.get_next_nodes(current):
                if target not in visited:
                    visited[target] = visited[current] + 1
                    queue.append(target)

        return -1

    def to_mermaid(self) -> str:
        """Generate a MermaidJS flowchart of the graph.

        Returns:
            MermaidJS graph definition as a string.

        Example:
            >>> print(graph.to_mermaid())
            graph TD
                n1[Send welcome]
                d1([Wait])
                n1 --> d1
        """
        shapes = {
            NodeType.ACTION: ("[", "]"),
            NodeType.CONDITION: ("{", "}"),
            NodeType.DELAY: ("([", "])"),
            NodeType.SPLIT: ("{{", "}}"),
        }
        lines = ["graph TD"]

        for node_id, node in self.nodes.items():
            start, end = shapes.get(node.type, ("[", "]"))
            label = (node.name or node_id).replace('"', "").replace("'", "")
            lines.append(f"    {node_id}{start}{label}{end}")

        for edge in self.edges:
            label = ""
            if edge.condition:
                # Quotes break mermaid syntax
                safe_condition = edge.condition.replace("'", "").replace('"', "")
                label = f"|{safe_condition}|"
            lines.append(f"    {edge.source} -->{label} {edge.target}")

        return "\n".join(lines)


def _is_json_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, list):
        return all(_is_json_value(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(key, str) and _is_json_value(item) for key, item in value.items())
    return False


def _validate_action(node: Node) -> list[str]:
    errors = []
    action_kind = node.config.get("action_kind")
    if not isinstance(action_kind, str) or not action_kind.strip():
        errors.append(f"Action node '{node.id}' requires a non-empty 'action_kind'")
    for key, value in node.config.items():
        if not _is_json_value(value):
            errors.append(f"Action node '{node.id}' parameter '{key}' is not JSON-compatible")
    return errors


def _validate_condition(node: Node) -> list[str]:
    expr = node.config.get("expr")
    if not isinstance(expr, str) or not expr.strip():
        return [f"Condition node '{node.id}' requires a non-empty 'expr'"]
    return []


def _validate_delay(node: Node) -> list[str]:
    duration_ms = node.config.get("duration_ms")
    # bool is an int subclass
    if not isinstance(duration_ms, int) or isinstance(duration_ms, bool):
        return [f"Delay node '{node.id}' requires an integer 'duration_ms'"]
    if duration_ms < 0:
        return [f"Delay node '{node.id}' has negative 'duration_ms' ({duration_ms})"]
    if "duration" in node.config:
        return [f"Delay node '{node.id}' config must not contain 'duration', the editor label key"]
    return []


def _validate_split(node: Node) -> list[str]:
    errors = []
    label = node.config.get("label")
    if not isinstance(label, str) or not label.strip():
        errors.append(f"Split node '{node.id}' requires a non-empty 'label'")

    arms = node.config.get("arms")
    if arms is None:
        return errors
    if not isinstance(arms, list):
        return [*errors, f"Split node '{node.id}' 'arms' must be a list"]

    seen: set[str] = set()
    for index, arm in enumerate(arms):
        if not isinstance(arm, dict):
            errors.append(f"Split node '{node.id}' arm {index} must be an object")
            continue
        arm_label = arm.get("label")
        weight = arm.get("weight", 1)
        if not isinstance(arm_label, str) or not arm_label.strip():
            errors.append(f"Split node '{node.id}' arm {index} requires a non-empty 'label'")
        elif arm_label in seen:
            errors.append(f"Split node '{node.id}' has duplicate arm label '{arm_label}'")
        else:
            seen.add(arm_label)
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight <= 0:
            errors.append(f"Split node '{node.id}' arm {index} requires a positive 'weight'")
    return errors


_CONFIG_VALIDATORS = {
    NodeType.ACTION: _validate_action,
    NodeType.CONDITION: _validate_condition,
    NodeType.DELAY: _validate_delay,
    NodeType.SPLIT: _validate_split,
}


def validate_graph(graph: GraphModel) -> ValidationResult:
    """Validate an automation graph for structural issues.

    Checks performed:
    - node keys match node ids (unique ids) and ids are non-empty
    - node types are known and configs have the right shape
    - every edge references existing nodes and guards are non-blank
    - a non-empty graph has at least one entry point

    An empty graph is valid here; the definition refuses to activate it.

    Args:
        graph: The graph to validate.

    Returns:
        ValidationResult listing every violation. Never raises for a
        GraphModel instance.

    Example:
        >>> result = validate_graph(graph)
        >>> if not result.is_valid:
        ...     print(result.violations)
    """
    errors: list[str] = []

    for key, node in graph.nodes.items():
        if not node.id:
            errors.append(f"Node under key '{key}' has an empty id")
        elif key != node.id:
            errors.append(f"Node key '{key}' does not match node id '{node.id}' (duplicate node id)")

        try:
            node_type = NodeType(node.type)
        except ValueError:
            errors.append(f"Node '{node.id}' has unknown type '{node.type}'")
            continue

        if not isinstance(node.config, dict):
            errors.append(f"Node '{node.id}' config must be an object")
            continue

        errors.extend(_CONFIG_VALIDATORS[node_type](node))

    for index, edge in enumerate(graph.edges):
        if edge.source not in graph.nodes:
            errors.append(f"Edge {index}: source node '{edge.source}' not found")
        if edge.target not in graph.nodes:
            errors.append(f"Edge {index}: target node '{edge.target}' not found")
        if edge.condition is not None and (not isinstance(edge.condition, str) or not edge.condition.strip()):
            errors.append(f"Edge {index}: condition must be a non-empty string or null")

    if graph.nodes and not graph.entry_points():
        errors.append("Graph has no entry point (every node has an incoming edge)")

    return ValidationResult(violations=errors)
