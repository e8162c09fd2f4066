"""Conversion between the editable and the normalized automation graph.

The visual editor works on an :class:`EditableGraph`: every node has a canvas
position, editor-only UI state, and convenience fields such as a readable
``duration`` label on delay nodes. The execution runtime consumes the
normalized :class:`~litestar_automations.core.graph.GraphModel`, which has none
of that. :class:`GraphCompiler` is the only way between the two shapes, and
also owns the JSON wire codecs for both.

Round trip guarantee: for every valid normalized graph ``g``,
``compiler.to_normalized(compiler.to_editable(g)) == g``. Node config keys
other than a delay's ``duration_ms`` pass through both directions untouched.
"""

from __future__ import annotations

import copy
import random
import re
from dataclasses import dataclass, field
from typing import Any

from litestar_automations.core.graph import Edge, GraphModel, Node, Position
from litestar_automations.core.types import NodeType
from litestar_automations.exceptions import CompileError

__all__ = [
    "CompilerConfig",
    "EditableEdge",
    "EditableGraph",
    "EditableNode",
    "GraphCompiler",
    "format_duration",
    "parse_duration",
]

_DURATION_UNITS: tuple[tuple[str, int], ...] = (
    ("days", 86_400_000),
    ("hours", 3_600_000),
    ("minutes", 60_000),
    ("seconds", 1_000),
)
_UNIT_ALIASES = {
    "day": "days",
    "days": "days",
    "hour": "hours",
    "hours": "hours",
    "minute": "minutes",
    "minutes": "minutes",
    "second": "seconds",
    "seconds": "seconds",
    "ms": "ms",
}
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")


def format_duration(duration_ms: int) -> str:
    """Render milliseconds as a readable label in the largest exact unit.

    Example:
        >>> format_duration(86_400_000)
        '1 days'
        >>> format_duration(5_400_000)
        '90 minutes'
    """
    for unit, factor in _DURATION_UNITS:
        if duration_ms % factor == 0:
            return f"{duration_ms // factor} {unit}"
    return f"{duration_ms} ms"


def parse_duration(label: str, node_id: str | None = None) -> int:
    """Parse a duration label back into milliseconds.

    Args:
        label: Label such as ``"3 days"``, ``"1 hour"`` or ``"250 ms"``.
        node_id: Node the label belongs to, used in error messages.

    Returns:
        The duration in milliseconds.

    Raises:
        CompileError: If the label cannot be parsed.
    """
    match = _DURATION_RE.match(label) if isinstance(label, str) else None
    unit = _UNIT_ALIASES.get(match.group(2).lower()) if match else None
    if match is None or unit is None:
        raise CompileError(f"Cannot parse duration {label!r}", node_id)

    amount = int(match.group(1))
    if unit == "ms":
        return amount
    return amount * dict(_DURATION_UNITS)[unit]


@dataclass
class CompilerConfig:
    """Configuration for :class:`GraphCompiler`.

    Attributes:
        canvas_width: Width of the region new nodes are placed in.
        canvas_height: Height of the region new nodes are placed in.
        seed: Optional seed for placement, for reproducible layouts.
    """

    canvas_width: float = 400.0
    canvas_height: float = 300.0
    seed: int | None = None


@dataclass
class EditableNode:
    """Node as manipulated by the visual editor.

    Attributes:
        id: Node id.
        type: Node type.
        name: Display name.
        position: Canvas position.
        data: Editable configuration, including convenience fields.
        ui: Editor-only state (selection, collapsed, colour). Never executed.
    """

    id: str
    type: NodeType
    name: str
    position: Position
    data: dict[str, Any] = field(default_factory=dict)
    ui: dict[str, Any] = field(default_factory=dict)


@dataclass
class EditableEdge:
    """Edge as manipulated by the visual editor.

    Attributes:
        id: Editor id, ``"{source}-{target}"`` by default.
        source: Source node id.
        target: Target node id.
        label: Guard shown on the edge; empty means unconditional.
    """

    id: str
    source: str
    target: str
    label: str | None = None


@dataclass
class EditableGraph:
    """Editor-side graph: ordered nodes with positions, plus edges."""

    nodes: list[EditableNode] = field(default_factory=list)
    edges: list[EditableEdge] = field(default_factory=list)

    def get_node(self, node_id: str) -> EditableNode | None:
        """Get a node by id, or ``None``."""
        return next((node for node in self.nodes if node.id == node_id), None)


def _require_str(value: Any, what: str, element_id: str | None) -> str:
    if not isinstance(value, str):
        raise CompileError(f"{what} must be a string", element_id)
    return value


def _require_node_type(value: Any, node_id: str) -> NodeType:
    try:
        return NodeType(value)
    except ValueError:
        raise CompileError(f"Unknown node type {value!r}", node_id) from None


def _load_position(raw: Any, node_id: str) -> Position:
    if not isinstance(raw, dict):
        raise CompileError("Position must be an object with 'x' and 'y'", node_id)
    x, y = raw.get("x"), raw.get("y")
    for value in (x, y):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CompileError("Position 'x' and 'y' must be numbers", node_id)
    return Position(x=float(x), y=float(y))


class GraphCompiler:
    """Bidirectional compiler between editable and normalized graphs.

    The compiler is pure apart from the random placement of nodes that have no
    stored position; seed it through :class:`CompilerConfig` for stable output.

    Example:
        >>> compiler = GraphCompiler()
        >>> editable = compiler.to_editable(graph)
        >>> editable.get_node("wait").data
        {'duration': '1 days'}
        >>> compiler.to_normalized(editable) == graph
        True
    """

    def __init__(self, config: CompilerConfig | None = None) -> None:
        """Initialize the compiler.

        Args:
            config: Optional compiler configuration.
        """
        self.config = config or CompilerConfig()
        self._random = random.Random(self.config.seed)

    def _place(self) -> Position:
        return Position(
            x=round(self._random.uniform(0, self.config.canvas_width), 1),
            y=round(self._random.uniform(0, self.config.canvas_height), 1),
        )

    def to_editable(self, graph: GraphModel, layout: dict[str, Position] | None = None) -> EditableGraph:
        """Materialize the editable form of a normalized graph.

        Args:
            graph: The normalized graph.
            layout: Stored node positions. Nodes missing from it are placed
                randomly inside the configured canvas.

        Returns:
            A new EditableGraph sharing no mutable state with ``graph``.

        Raises:
            CompileError: If a delay node has no integer ``duration_ms``.
        """
        layout = layout or {}
        nodes = []

        for node in graph.nodes.values():
            data = copy.deepcopy(node.config)
            if node.type == NodeType.DELAY:
                duration_ms = data.pop("duration_ms", None)
                if isinstance(duration_ms, bool) or not isinstance(duration_ms, int) or duration_ms < 0:
                    raise CompileError("Delay node requires a non-negative integer 'duration_ms'", node.id)
                data["duration"] = format_duration(duration_ms)

            stored = layout.get(node.id)
            position = Position(x=stored.x, y=stored.y) if stored is not None else self._place()
            nodes.append(
                EditableNode(
                    id=node.id,
                    type=NodeType(node.type),
                    name=node.name,
                    position=position,
                    data=data,
                )
            )

        edges = [
            EditableEdge(
                id=f"{edge.source}-{edge.target}",
                source=edge.source,
                target=edge.target,
                label=edge.condition,
            )
            for edge in graph.edges
        ]
        return EditableGraph(nodes=nodes, edges=edges)

    def to_normalized(self, editable: EditableGraph) -> GraphModel:
        """Compile an editable graph down to its execution form.

        Positions and UI state are stripped and convenience fields are turned
        back into canonical config (``duration`` label to ``duration_ms``).

        Args:
            editable: The graph produced by the editor.

        Returns:
            The normalized GraphModel.

        Raises:
            CompileError: If a node or edge has the wrong shape. The error
                names the offending id.
        """
        nodes: dict[str, Node] = {}

        for editable_node in editable.nodes:
            node_id = _require_str(editable_node.id, "Node id", None)
            if not node_id:
                raise CompileError("Node id must not be empty")
            if node_id in nodes:
                raise CompileError("Duplicate node id", node_id)
            node_type = _require_node_type(editable_node.type, node_id)
            name = _require_str(editable_node.name, "Node name", node_id)
            if not isinstance(editable_node.data, dict):
                raise CompileError("Node data must be an object", node_id)

            nodes[node_id] = Node(
                id=node_id,
                type=node_type,
                name=name,
                config=self._normalize_config(node_id, node_type, editable_node.data),
            )

        edges = []
        for index, editable_edge in enumerate(editable.edges):
            edge_id = editable_edge.id if isinstance(editable_edge.id, str) and editable_edge.id else f"edge {index}"
            source = _require_str(editable_edge.source, "Edge source", edge_id)
            target = _require_str(editable_edge.target, "Edge target", edge_id)
            label = editable_edge.label
            if label is not None:
                # Empty label means unconditional
                label = _require_str(label, "Edge label", edge_id) or None
            edges.append(Edge(source=source, target=target, condition=label))

        return GraphModel(nodes=nodes, edges=edges)

    @staticmethod
    def _normalize_config(node_id: str, node_type: NodeType, data: dict[str, Any]) -> dict[str, Any]:
        config = copy.deepcopy(data)

        if node_type == NodeType.DELAY:
            label = config.pop("duration", None)
            if label is not None:
                config["duration_ms"] = parse_duration(label, node_id)
            elif "duration_ms" not in config:
                raise CompileError("Delay node requires a 'duration'", node_id)
            duration_ms = config["duration_ms"]
            if isinstance(duration_ms, bool) or not isinstance(duration_ms, int):
                raise CompileError("'duration_ms' must be an integer", node_id)

        if node_type == NodeType.CONDITION and "expr" in config:
            _require_str(config["expr"], "Condition 'expr'", node_id)

        return config

    @staticmethod
    def extract_layout(editable: EditableGraph) -> dict[str, Position]:
        """Collect node positions from an editable graph."""
        return {node.id: Position(x=node.position.x, y=node.position.y) for node in editable.nodes}

    # Wire codecs

    @staticmethod
    def load_graph(raw: Any) -> GraphModel:
        """Parse the JSON wire form of a normalized graph.

        Node ``position`` keys are accepted and ignored; use
        :meth:`load_layout` to read them.

        Args:
            raw: ``{"nodes": [...], "edges": [...]}``.

        Returns:
            The parsed GraphModel.

        Raises:
            CompileError: On any shape error, naming the offending element.
        """
        if not isinstance(raw, dict):
            raise CompileError("Graph must be an object with 'nodes' and 'edges'")
        raw_nodes = raw.get("nodes", [])
        raw_edges = raw.get("edges", [])
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise CompileError("Graph 'nodes' and 'edges' must be lists")

        nodes: dict[str, Node] = {}
        for index, raw_node in enumerate(raw_nodes):
            if not isinstance(raw_node, dict):
                raise CompileError("Node must be an object", f"node {index}")
            node_id = raw_node.get("id")
            if not isinstance(node_id, str) or not node_id:
                raise CompileError("Node 'id' must be a non-empty string", f"node {index}")
            if node_id in nodes:
                raise CompileError("Duplicate node id", node_id)
            config = raw_node.get("config", {})
            if config is None:
                config = {}
            if not isinstance(config, dict):
                raise CompileError("Node 'config' must be an object", node_id)
            nodes[node_id] = Node(
                id=node_id,
                type=_require_node_type(raw_node.get("type"), node_id),
                name=_require_str(raw_node.get("name", ""), "Node 'name'", node_id),
                config=copy.deepcopy(config),
            )

        edges = []
        for index, raw_edge in enumerate(raw_edges):
            edge_id = f"edge {index}"
            if not isinstance(raw_edge, dict):
                raise CompileError("Edge must be an object", edge_id)
            condition = raw_edge.get("condition")
            if condition is not None:
                condition = _require_str(condition, "Edge 'condition'", edge_id)
            edges.append(
                Edge(
                    source=_require_str(raw_edge.get("from"), "Edge 'from'", edge_id),
                    target=_require_str(raw_edge.get("to"), "Edge 'to'", edge_id),
                    condition=condition,
                )
            )

        return GraphModel(nodes=nodes, edges=edges)

    @staticmethod
    def load_layout(raw: Any) -> dict[str, Position]:
        """Read stored node positions from a wire graph, if any."""
        if not isinstance(raw, dict) or not isinstance(raw.get("nodes"), list):
            return {}
        return {
            raw_node["id"]: _load_position(raw_node["position"], raw_node["id"])
            for raw_node in raw["nodes"]
            if isinstance(raw_node, dict) and isinstance(raw_node.get("id"), str) and raw_node.get("position")
        }

    @staticmethod
    def dump_graph(graph: GraphModel, layout: dict[str, Position] | None = None) -> dict[str, Any]:
        """Serialize a normalized graph to its JSON wire form.

        Args:
            graph: The graph to serialize.
            layout: Optional positions to embed for editors that read them.

        Returns:
            JSON-compatible dictionary.
        """
        layout = layout or {}
        nodes = []
        for node in graph.nodes.values():
            raw_node: dict[str, Any] = {
                "id": node.id,
                "type": NodeType(node.type).value,
                "name": node.name,
                "config": copy.deepcopy(node.config),
            }
            if node.id in layout:
                raw_node["position"] = {"x": layout[node.id].x, "y": layout[node.id].y}
            nodes.append(raw_node)

        return {
            "nodes": nodes,
            "edges": [{"from": edge.source, "to": edge.target, "condition": edge.condition} for edge in graph.edges],
        }

    @staticmethod
    def load_editable(raw: Any) -> EditableGraph:
        """Parse the JSON form of an editable graph.

        Raises:
            CompileError: On any shape error, naming the offending element.
        """
        if not isinstance(raw, dict):
            raise CompileError("Editable graph must be an object with 'nodes' and 'edges'")
        raw_nodes = raw.get("nodes", [])
        raw_edges = raw.get("edges", [])
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise CompileError("Editable graph 'nodes' and 'edges' must be lists")

        nodes = []
        for index, raw_node in enumerate(raw_nodes):
            if not isinstance(raw_node, dict):
                raise CompileError("Node must be an object", f"node {index}")
            node_id = _require_str(raw_node.get("id"), "Node 'id'", f"node {index}")
            data = raw_node.get("data", {})
            ui = raw_node.get("ui", {})
            if not isinstance(data, dict) or not isinstance(ui, dict):
                raise CompileError("Node 'data' and 'ui' must be objects", node_id)
            nodes.append(
                EditableNode(
                    id=node_id,
                    type=_require_node_type(raw_node.get("type"), node_id),
                    name=_require_str(raw_node.get("name", ""), "Node 'name'", node_id),
                    position=_load_position(raw_node.get("position"), node_id),
                    data=copy.deepcopy(data),
                    ui=copy.deepcopy(ui),
                )
            )

        edges = []
        for index, raw_edge in enumerate(raw_edges):
            if not isinstance(raw_edge, dict):
                raise CompileError("Edge must be an object", f"edge {index}")
            source = _require_str(raw_edge.get("source"), "Edge 'source'", f"edge {index}")
            target = _require_str(raw_edge.get("target"), "Edge 'target'", f"edge {index}")
            edge_id = raw_edge.get("id") or f"{source}-{target}"
            label = raw_edge.get("label")
            if label is not None:
                label = _require_str(label, "Edge 'label'", edge_id)
            edges.append(EditableEdge(id=edge_id, source=source, target=target, label=label))

        return EditableGraph(nodes=nodes, edges=edges)

    @staticmethod
    def dump_editable(editable: EditableGraph) -> dict[str, Any]:
        """Serialize an editable graph to JSON."""
        return {
            "nodes": [
                {
                    "id": node.id,
                    "type": NodeType(node.type).value,
                    "name": node.name,
                    "position": {"x": node.position.x, "y": node.position.y},
                    "data": copy.deepcopy(node.data),
                    "ui": copy.deepcopy(node.ui),
                }
                for node in editable.nodes
            ],
            "edges": [
                {"id": edge.id, "source": edge.source, "target": edge.target, "label": edge.label}
                for edge in editable.edges
            ],
        }
