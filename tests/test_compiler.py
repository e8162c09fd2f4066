"""Tests for the editable/normalized graph compiler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from litestar_automations.core.graph import GraphModel


@pytest.mark.unit
class TestDurationLabels:
    """Tests for format_duration and parse_duration."""

    @pytest.mark.parametrize(
        ("duration_ms", "label"),
        [
            (86_400_000, "1 days"),
            (259_200_000, "3 days"),
            (5_400_000, "90 minutes"),
            (7_200_000, "2 hours"),
            (45_000, "45 seconds"),
            (1_500, "1500 ms"),
            (0, "0 days"),
        ],
    )
    def test_format_largest_exact_unit(self, duration_ms: int, label: str) -> None:
        """Test labels use the largest unit that divides exactly."""
        from litestar_automations.core.compiler import format_duration

        assert format_duration(duration_ms) == label

    @pytest.mark.parametrize(
        ("label", "duration_ms"),
        [
            ("1 days", 86_400_000),
            ("1 day", 86_400_000),
            ("3 Hours", 10_800_000),
            ("90 minutes", 5_400_000),
            ("1 second", 1_000),
            ("250 ms", 250),
            ("  2   days ", 172_800_000),
        ],
    )
    def test_parse(self, label: str, duration_ms: int) -> None:
        """Test labels are parsed with singular and plural units."""
        from litestar_automations.core.compiler import parse_duration

        assert parse_duration(label) == duration_ms

    @pytest.mark.parametrize("label", ["soon", "3 fortnights", "-1 days", "1.5 hours", ""])
    def test_parse_invalid(self, label: str) -> None:
        """Test unparseable labels raise CompileError naming the node."""
        from litestar_automations.core.compiler import parse_duration
        from litestar_automations.exceptions import CompileError

        with pytest.raises(CompileError) as exc_info:
            parse_duration(label, "d1")

        assert exc_info.value.element_id == "d1"


@pytest.mark.unit
class TestGraphCompiler:
    """Tests for GraphCompiler conversions."""

    def test_round_trip(self, sample_graph: GraphModel) -> None:
        """Test normalizing the editable form gives back the same graph."""
        from litestar_automations.core.compiler import GraphCompiler

        compiler = GraphCompiler()

        assert compiler.to_normalized(compiler.to_editable(sample_graph)) == sample_graph

    def test_round_trip_builtin_templates(self) -> None:
        """Test every shipped template graph survives the round trip."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.templates import builtin_templates

        compiler = GraphCompiler()

        for template in builtin_templates():
            assert compiler.to_normalized(compiler.to_editable(template.graph)) == template.graph

    @pytest.mark.parametrize(
        ("nodes", "edges"),
        [
            pytest.param([], [], id="empty"),
            pytest.param(
                [("c1", "condition", {"expr": "{{deal.stage}} == 'won'", "description": "keep me"})],
                [],
                id="condition-extra-keys",
            ),
            pytest.param(
                [("d1", "delay", {"duration_ms": 1000, "note": "n", "business_hours": True})],
                [],
                id="delay-extra-keys",
            ),
            pytest.param([("d1", "delay", {"duration_ms": 0})], [], id="zero-delay"),
            pytest.param(
                [
                    ("d1", "delay", {"duration_ms": 5_400_000}),
                    ("d2", "delay", {"duration_ms": 7_200_000}),
                    ("d3", "delay", {"duration_ms": 45_000}),
                    ("d4", "delay", {"duration_ms": 1_500}),
                ],
                [("d1", "d2", None), ("d2", "d3", None), ("d3", "d4", None)],
                id="non-day-delays",
            ),
            pytest.param(
                [
                    (
                        "s1",
                        "split",
                        {
                            "label": "A/B subject",
                            "arms": [{"label": "A", "weight": 1}, {"label": "B", "weight": 3}],
                            "seed": 7,
                        },
                    ),
                    ("n1", "action", {"action_kind": "email.send", "subject": "Hi"}),
                    ("n2", "action", {"action_kind": "email.send", "subject": "Hello"}),
                ],
                [("s1", "n1", "A"), ("s1", "n2", "B")],
                id="split-arms",
            ),
            pytest.param(
                [
                    ("c1", "condition", {"expr": "{{replied}}"}),
                    ("n1", "action", {"action_kind": "task.create", "assignee": {"role": "owner"}, "tags": ["a"]}),
                    ("n2", "action", {"action_kind": "email.send"}),
                ],
                [("c1", "n1", "true"), ("c1", "n2", None)],
                id="guarded-and-unguarded",
            ),
        ],
    )
    def test_round_trip_valid_graphs(self, nodes: list[tuple[str, str, dict[str, Any]]], edges: list[Any]) -> None:
        """Test every valid graph shape survives to_editable then to_normalized."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.graph import Edge, GraphModel, Node, validate_graph
        from litestar_automations.core.types import NodeType

        graph = GraphModel.from_nodes(
            [Node(id=node_id, type=NodeType(node_type), name=node_id, config=config) for node_id, node_type, config in nodes],
            [Edge(source=source, target=target, condition=condition) for source, target, condition in edges],
        )
        compiler = GraphCompiler()

        assert validate_graph(graph).is_valid
        assert compiler.to_normalized(compiler.to_editable(graph)) == graph

    def test_delay_extra_keys_survive_label_edit(self) -> None:
        """Test editing a delay label keeps the node's other config keys."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.graph import GraphModel, Node
        from litestar_automations.core.types import NodeType

        graph = GraphModel.from_nodes(
            [Node(id="d1", type=NodeType.DELAY, config={"duration_ms": 1000, "note": "n"})]
        )
        compiler = GraphCompiler()
        editable = compiler.to_editable(graph)

        assert editable.nodes[0].data == {"duration": "1 seconds", "note": "n"}

        editable.nodes[0].data["duration"] = "3 minutes"

        assert compiler.to_normalized(editable).nodes["d1"].config == {"duration_ms": 180_000, "note": "n"}

    def test_delay_label_wins_over_stale_milliseconds(self) -> None:
        """Test an editor node carrying both forms compiles from the label."""
        from litestar_automations.core.compiler import EditableGraph, EditableNode, GraphCompiler
        from litestar_automations.core.graph import Position
        from litestar_automations.core.types import NodeType

        editable = EditableGraph(
            nodes=[
                EditableNode(
                    id="d1",
                    type=NodeType.DELAY,
                    name="Wait",
                    position=Position(0, 0),
                    data={"duration": "2 hours", "duration_ms": 5},
                )
            ]
        )

        assert GraphCompiler().to_normalized(editable).nodes["d1"].config == {"duration_ms": 7_200_000}

    def test_delay_label(self, sample_graph: GraphModel) -> None:
        """Test a one-day delay is shown as a label and compiled back."""
        from litestar_automations.core.compiler import GraphCompiler

        compiler = GraphCompiler()
        editable = compiler.to_editable(sample_graph)
        wait = editable.get_node("wait")

        assert wait is not None
        assert wait.data == {"duration": "1 days"}
        assert compiler.to_normalized(editable).nodes["wait"].config == {"duration_ms": 86_400_000}

    def test_editor_changes_label(self, sample_graph: GraphModel) -> None:
        """Test an edited label becomes the canonical duration."""
        from litestar_automations.core.compiler import GraphCompiler

        compiler = GraphCompiler()
        editable = compiler.to_editable(sample_graph)
        editable.get_node("wait").data["duration"] = "2 hours"  # type: ignore[union-attr]

        assert compiler.to_normalized(editable).nodes["wait"].config == {"duration_ms": 7_200_000}

    def test_positions_from_layout(self, sample_graph: GraphModel) -> None:
        """Test stored positions are used and missing ones are generated."""
        from litestar_automations.core.compiler import CompilerConfig, GraphCompiler
        from litestar_automations.core.graph import Position

        compiler = GraphCompiler(CompilerConfig(canvas_width=100.0, canvas_height=50.0, seed=7))
        editable = compiler.to_editable(sample_graph, {"send": Position(x=10.0, y=20.0)})

        assert editable.get_node("send").position == Position(x=10.0, y=20.0)  # type: ignore[union-attr]
        for node in editable.nodes[1:]:
            assert 0 <= node.position.x <= 100.0
            assert 0 <= node.position.y <= 50.0

    def test_seeded_placement_is_reproducible(self, sample_graph: GraphModel) -> None:
        """Test the same seed gives the same layout."""
        from litestar_automations.core.compiler import CompilerConfig, GraphCompiler

        first = GraphCompiler(CompilerConfig(seed=42)).to_editable(sample_graph)
        second = GraphCompiler(CompilerConfig(seed=42)).to_editable(sample_graph)

        assert [node.position for node in first.nodes] == [node.position for node in second.nodes]

    def test_ui_state_and_positions_are_stripped(self, sample_graph: GraphModel) -> None:
        """Test editor-only state never reaches the normalized graph."""
        from litestar_automations.core.compiler import GraphCompiler

        compiler = GraphCompiler()
        editable = compiler.to_editable(sample_graph)
        editable.nodes[0].ui["selected"] = True
        editable.nodes[0].position.x = 999.0

        graph = compiler.to_normalized(editable)

        assert graph == sample_graph
        assert "selected" not in graph.nodes["send"].config

    def test_extract_layout(self, sample_graph: GraphModel) -> None:
        """Test positions are collected per node."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.graph import Position

        compiler = GraphCompiler()
        editable = compiler.to_editable(sample_graph, {"send": Position(x=1.0, y=2.0)})

        layout = compiler.extract_layout(editable)

        assert set(layout) == {"send", "wait", "check", "follow_up"}
        assert layout["send"] == Position(x=1.0, y=2.0)

    def test_edges(self, sample_graph: GraphModel) -> None:
        """Test edges get editor ids and guards become labels."""
        from litestar_automations.core.compiler import GraphCompiler

        editable = GraphCompiler().to_editable(sample_graph)

        assert [(edge.id, edge.label) for edge in editable.edges] == [
            ("send-wait", None),
            ("wait-check", None),
            ("check-follow_up", "false"),
        ]

    def test_empty_label_is_unconditional(self) -> None:
        """Test an empty edge label compiles to an unconditional edge."""
        from litestar_automations.core.compiler import EditableEdge, EditableGraph, EditableNode, GraphCompiler
        from litestar_automations.core.graph import Position
        from litestar_automations.core.types import NodeType

        editable = EditableGraph(
            nodes=[
                EditableNode(id="a", type=NodeType.CONDITION, name="", position=Position(0, 0), data={"expr": "x"}),
                EditableNode(id="b", type=NodeType.CONDITION, name="", position=Position(0, 0), data={"expr": "y"}),
            ],
            edges=[EditableEdge(id="a-b", source="a", target="b", label="")],
        )

        assert GraphCompiler().to_normalized(editable).edges[0].condition is None

    def test_editable_is_independent(self, sample_graph: GraphModel) -> None:
        """Test editing the editable graph never touches the source graph."""
        from litestar_automations.core.compiler import GraphCompiler

        editable = GraphCompiler().to_editable(sample_graph)
        editable.nodes[0].data["to"] = "changed"

        assert sample_graph.nodes["send"].config["to"] == "{{context.payload.new.email}}"

    def test_delay_without_duration(self) -> None:
        """Test a delay node without any duration is refused."""
        from litestar_automations.core.compiler import EditableGraph, EditableNode, GraphCompiler
        from litestar_automations.core.graph import Position
        from litestar_automations.core.types import NodeType
        from litestar_automations.exceptions import CompileError

        editable = EditableGraph(
            nodes=[EditableNode(id="d1", type=NodeType.DELAY, name="Wait", position=Position(0, 0), data={})]
        )

        with pytest.raises(CompileError, match="'d1': Delay node requires a 'duration'"):
            GraphCompiler().to_normalized(editable)

    def test_duplicate_editable_node(self) -> None:
        """Test duplicate ids in the editor graph are refused."""
        from litestar_automations.core.compiler import EditableGraph, EditableNode, GraphCompiler
        from litestar_automations.core.graph import Position
        from litestar_automations.core.types import NodeType
        from litestar_automations.exceptions import CompileError

        node = EditableNode(id="a", type=NodeType.CONDITION, name="", position=Position(0, 0), data={"expr": "x"})

        with pytest.raises(CompileError) as exc_info:
            GraphCompiler().to_normalized(EditableGraph(nodes=[node, node]))

        assert exc_info.value.element_id == "a"

    def test_unknown_editable_type(self) -> None:
        """Test an unknown node type is refused with the node id."""
        from litestar_automations.core.compiler import EditableGraph, EditableNode, GraphCompiler
        from litestar_automations.core.graph import Position
        from litestar_automations.exceptions import CompileError

        node = EditableNode(id="x", type="loop", name="", position=Position(0, 0))  # type: ignore[arg-type]

        with pytest.raises(CompileError, match="'x': Unknown node type 'loop'"):
            GraphCompiler().to_normalized(EditableGraph(nodes=[node]))

    def test_bad_delay_in_normalized_graph(self) -> None:
        """Test a delay without integer duration cannot be made editable."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.graph import GraphModel, Node
        from litestar_automations.core.types import NodeType
        from litestar_automations.exceptions import CompileError

        graph = GraphModel.from_nodes([Node(id="d1", type=NodeType.DELAY, config={"duration_ms": "soon"})])

        with pytest.raises(CompileError) as exc_info:
            GraphCompiler().to_editable(graph)

        assert exc_info.value.element_id == "d1"


@pytest.mark.unit
class TestWireCodecs:
    """Tests for the JSON wire forms of both graph shapes."""

    def test_load_graph(self) -> None:
        """Test parsing the normalized wire form."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.graph import Edge
        from litestar_automations.core.types import NodeType

        graph = GraphCompiler.load_graph(
            {
                "nodes": [
                    {"id": "n1", "type": "action", "name": "Mail", "config": {"action_kind": "email.send"}},
                    {"id": "d1", "type": "delay", "config": {"duration_ms": 1000}, "position": {"x": 1, "y": 2}},
                ],
                "edges": [{"from": "n1", "to": "d1", "condition": None}],
            }
        )

        assert graph.nodes["n1"].type == NodeType.ACTION
        assert graph.nodes["d1"].name == ""
        assert graph.edges == [Edge(source="n1", target="d1")]

    def test_dump_and_load_graph(self, sample_graph: GraphModel) -> None:
        """Test the normalized wire form is lossless."""
        from litestar_automations.core.compiler import GraphCompiler

        assert GraphCompiler.load_graph(GraphCompiler.dump_graph(sample_graph)) == sample_graph

    def test_dump_graph_with_layout(self, sample_graph: GraphModel) -> None:
        """Test positions are embedded only for nodes that have one."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.core.graph import Position

        raw = GraphCompiler.dump_graph(sample_graph, {"send": Position(x=5.0, y=6.0)})

        assert raw["nodes"][0]["position"] == {"x": 5.0, "y": 6.0}
        assert "position" not in raw["nodes"][1]
        assert GraphCompiler.load_layout(raw) == {"send": Position(x=5.0, y=6.0)}

    @pytest.mark.parametrize(
        ("raw", "element_id"),
        [
            ({"nodes": [{"type": "action"}]}, "node 0"),
            ({"nodes": [{"id": "a", "type": "loop"}]}, "a"),
            ({"nodes": [{"id": "a", "type": "delay", "config": []}]}, "a"),
            (
                {"nodes": [{"id": "a", "type": "delay"}, {"id": "a", "type": "delay"}]},
                "a",
            ),
            ({"nodes": [], "edges": [{"from": "a"}]}, "edge 0"),
            ({"nodes": [], "edges": [{"from": "a", "to": "b", "condition": 1}]}, "edge 0"),
        ],
    )
    def test_load_graph_malformed(self, raw: dict[str, Any], element_id: str) -> None:
        """Test shape errors name the offending element."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.exceptions import CompileError

        with pytest.raises(CompileError) as exc_info:
            GraphCompiler.load_graph(raw)

        assert exc_info.value.element_id == element_id

    def test_load_graph_not_an_object(self) -> None:
        """Test a non-object graph is refused."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.exceptions import CompileError

        with pytest.raises(CompileError):
            GraphCompiler.load_graph(["nodes"])

    def test_editable_wire_round_trip(self, sample_graph: GraphModel) -> None:
        """Test the editable wire form keeps positions, data and UI state."""
        from litestar_automations.core.compiler import CompilerConfig, GraphCompiler

        compiler = GraphCompiler(CompilerConfig(seed=1))
        editable = compiler.to_editable(sample_graph)
        editable.nodes[0].ui["collapsed"] = True

        assert GraphCompiler.load_editable(GraphCompiler.dump_editable(editable)) == editable

    def test_load_editable_defaults_edge_id(self) -> None:
        """Test edges without an id get the source-target id."""
        from litestar_automations.core.compiler import GraphCompiler

        editable = GraphCompiler.load_editable(
            {
                "nodes": [
                    {"id": "a", "type": "condition", "position": {"x": 0, "y": 0}, "data": {"expr": "x"}},
                    {"id": "b", "type": "delay", "position": {"x": 10, "y": 0}, "data": {"duration": "1 days"}},
                ],
                "edges": [{"source": "a", "target": "b", "label": "true"}],
            }
        )

        assert editable.edges[0].id == "a-b"
        assert editable.edges[0].label == "true"

    def test_load_editable_requires_position(self) -> None:
        """Test editor nodes need a numeric position."""
        from litestar_automations.core.compiler import GraphCompiler
        from litestar_automations.exceptions import CompileError

        with pytest.raises(CompileError) as exc_info:
            GraphCompiler.load_editable({"nodes": [{"id": "a", "type": "action", "position": {"x": "1", "y": 0}}]})

        assert exc_info.value.element_id == "a"
