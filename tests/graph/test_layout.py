"""Tests for the diagram layout engine."""

import math

import pytest

from casegraph.graph.importance import analyze_entity_importance
from casegraph.graph.layout import (
    HandleSide,
    LayoutOptions,
    build_layout_edges,
    calculate_graph_layout,
    optimal_connection_points,
    select_roots,
    _build_node_graph,
)
from casegraph.graph.models import NodeKind, Position


def _positions(nodes):
    return {node.id: (node.position.x, node.position.y) for node in nodes}


class TestCalculateGraphLayout:
    """Test node placement."""

    def test_every_node_once_with_finite_coordinates(self, mixed_graph):
        entities, relations = mixed_graph
        scores = analyze_entity_importance(entities, relations)

        nodes = calculate_graph_layout(entities, relations, scores)

        ids = [node.id for node in nodes]
        assert ids == [e.id for e in entities] + [r.id for r in relations]
        assert len(set(ids)) == len(ids)
        for node in nodes:
            assert math.isfinite(node.position.x)
            assert math.isfinite(node.position.y)

    def test_node_kinds_and_payload(self, chain_graph):
        entities, relations = chain_graph
        scores = analyze_entity_importance(entities, relations)

        nodes = {node.id: node for node in calculate_graph_layout(entities, relations, scores)}

        assert nodes["A"].kind is NodeKind.ENTITY
        assert nodes["A"].data["label"] == "Entity A"
        assert nodes["B"].data["importance"] == pytest.approx(scores[0].score)
        assert nodes["r1"].kind is NodeKind.RELATION
        assert nodes["r1"].data["label"] == "knows"

    def test_chain_levels(self, chain_graph):
        entities, relations = chain_graph

        positions = _positions(calculate_graph_layout(entities, relations, []))

        # B is best connected, so it roots the component
        assert positions["B"] == (100, 100)
        assert positions["r1"] == (100, 450)
        assert positions["r2"] == (250, 450)
        assert positions["A"] == (100, 600)
        assert positions["C"] == (350, 600)

    def test_relation_at_midpoint_of_placed_endpoints(self, make_entity, make_relation):
        entities = [make_entity("A", text=True), make_entity("B", text=True)]
        relations = [make_relation("r1", "A", "knows", "B"), make_relation("r2", "B", "knows", "A")]

        positions = _positions(calculate_graph_layout(entities, relations, []))

        assert positions["A"] == (100, 100)
        assert positions["B"] == (100, 600)
        assert positions["r2"] == (100, 350)

    def test_components_advance_horizontally(self, make_entity):
        entities = [make_entity("A", text=True), make_entity("B", text=True)]

        positions = _positions(calculate_graph_layout(entities, [], []))

        assert positions["A"] == (150, 100)
        assert positions["B"] == (800, 100)

    def test_spacing_options(self, make_entity):
        entities = [make_entity("A", text=True), make_entity("B", text=True)]

        nodes = calculate_graph_layout(entities, [], [], LayoutOptions(node_spacing=100))

        assert _positions(nodes)["B"] == (650, 100)

    def test_scores_do_not_move_nodes(self, mixed_graph):
        entities, relations = mixed_graph
        scores = analyze_entity_importance(entities, relations)

        with_scores = calculate_graph_layout(entities, relations, scores)
        without_scores = calculate_graph_layout(entities, relations, [])

        assert _positions(with_scores) == _positions(without_scores)
        assert all(n.data.get("importance", 0) == 0 for n in without_scores)

    def test_deterministic(self, mixed_graph):
        entities, relations = mixed_graph

        first = calculate_graph_layout(entities, relations, [])
        second = calculate_graph_layout(entities, relations, [])

        assert [n.to_dict() for n in first] == [n.to_dict() for n in second]

    def test_dangling_relation_still_placed(self, make_entity, make_relation):
        entities = [make_entity("A", text=True)]
        relations = [make_relation("r1", "A", "knows", "ghost")]

        nodes = calculate_graph_layout(entities, relations, [])

        assert [n.id for n in nodes] == ["A", "r1"]

    def test_empty(self):
        assert calculate_graph_layout([], [], []) == []


class TestRootSelection:
    """Test root fallback."""

    def test_isolated_entity_is_root(self, make_entity):
        kinds, connections = _build_node_graph([make_entity("A", text=True)], [])

        assert select_roots(["A"], kinds, connections) == ["A"]

    def test_fallback_to_best_connected_quarter(self, chain_graph):
        entities, relations = chain_graph
        kinds, connections = _build_node_graph(entities, relations)

        roots = select_roots(["A", "r1", "B", "r2", "C"], kinds, connections)

        assert roots == ["B", "A"]


class TestLayoutEdges:
    """Test connector routing."""

    @pytest.mark.parametrize("target,expected", [
        (Position(100, 0), (HandleSide.RIGHT, HandleSide.LEFT)),
        (Position(-100, 0), (HandleSide.LEFT, HandleSide.RIGHT)),
        (Position(0, 100), (HandleSide.BOTTOM, HandleSide.TOP)),
        (Position(0, -100), (HandleSide.TOP, HandleSide.BOTTOM)),
        (Position(100, 80), (HandleSide.RIGHT, HandleSide.LEFT)),
        (Position(80, 100), (HandleSide.BOTTOM, HandleSide.TOP)),
        (Position(-100, -80), (HandleSide.LEFT, HandleSide.RIGHT)),
        (Position(-80, -100), (HandleSide.TOP, HandleSide.BOTTOM)),
    ])
    def test_connection_points(self, target, expected):
        assert optimal_connection_points(Position(0, 0), target) == expected

    def test_two_edges_per_relation(self, chain_graph):
        entities, relations = chain_graph
        nodes = calculate_graph_layout(entities, relations, [])

        edges = build_layout_edges(relations, nodes)

        assert [(e.id, e.source, e.target) for e in edges] == [
            ("r1-source", "A", "r1"),
            ("r1-target", "r1", "B"),
            ("r2-source", "B", "r2"),
            ("r2-target", "r2", "C"),
        ]
        # A sits below r1
        assert (edges[0].source_handle, edges[0].target_handle) == ("top", "bottom")

    def test_dangling_relation_has_no_edges(self, make_entity, make_relation):
        entities = [make_entity("A", text=True)]
        relations = [make_relation("r1", "A", "knows", "ghost")]
        nodes = calculate_graph_layout(entities, relations, [])

        assert build_layout_edges(relations, nodes) == []
