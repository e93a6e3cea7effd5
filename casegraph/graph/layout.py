"""Deterministic 2D layout of entities and relation nodes."""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .models import (
    Entity,
    EntityScore,
    LayoutEdge,
    LayoutNode,
    NodeKind,
    Position,
    Relation,
)

logger = logging.getLogger(__name__)

ORIGIN_X = 100
BASE_Y = 100
SMALL_COMPONENT_SIZE = 3
SMALL_COMPONENT_INDENT = 50
RELATION_SLOT_WIDTH = 150
RELATION_SLOT_DROP = 100
ENTITY_LABEL_ID_CHARS = 8


@dataclass
class LayoutOptions:
    """Spacing used when placing nodes."""
    node_spacing: float = 250
    level_height: float = 250
    component_spacing: float = 400

    def merged(self, **overrides) -> "LayoutOptions":
        """Copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


class HandleSide(str, Enum):
    """Side of a node an edge attaches to."""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


Adjacency = Dict[str, Dict[str, None]]


def _build_node_graph(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> Tuple[Dict[str, NodeKind], Adjacency]:
    """Combined node set with every relation as a node.

    A relation node is linked to its subject and its object when they
    resolve to a known entity or relation.
    """
    kinds: Dict[str, NodeKind] = {}
    for entity in entities:
        kinds[entity.id] = NodeKind.ENTITY
    for relation in relations:
        kinds[relation.id] = NodeKind.RELATION

    connections: Adjacency = {node_id: {} for node_id in kinds}
    for relation in relations:
        for endpoint_id in (relation.source_id, relation.target_id):
            if endpoint_id in connections:
                connections[endpoint_id][relation.id] = None
                connections[relation.id][endpoint_id] = None

    return kinds, connections


def _depth_first(start: str, connections: Adjacency, visited: Set[str]) -> List[Tuple[str, int]]:
    """Pre-order walk from ``start`` yielding ``(node, depth)`` pairs.

    Neighbours are pushed in reverse so nodes come out in the same order a
    recursive walk would visit them.
    """
    order = []
    stack = [(start, 0)]

    while stack:
        node_id, depth = stack.pop()
        if node_id in visited:
            continue

        visited.add(node_id)
        order.append((node_id, depth))
        neighbours = [n for n in connections.get(node_id, ()) if n not in visited]
        stack.extend((n, depth + 1) for n in reversed(neighbours))

    return order


def find_components(kinds: Dict[str, NodeKind], connections: Adjacency) -> List[List[str]]:
    """Connected components of the combined graph, in discovery order."""
    visited: Set[str] = set()
    components = []
    for node_id in kinds:
        if node_id not in visited:
            components.append([n for n, _ in _depth_first(node_id, connections, visited)])
    return components


def select_roots(
    component: List[str],
    kinds: Dict[str, NodeKind],
    connections: Adjacency,
) -> List[str]:
    """Entity nodes nothing else in the component points at.

    Falls back to the best connected quarter of the component's entity
    nodes (at least one) when every entity is referenced.
    """
    referenced = set()
    for node_id in component:
        referenced.update(n for n in connections[node_id] if n != node_id)

    entity_nodes = [n for n in component if kinds[n] is NodeKind.ENTITY]
    roots = [n for n in entity_nodes if n not in referenced]
    if roots:
        return roots

    by_degree = sorted(entity_nodes, key=lambda n: len(connections[n]), reverse=True)
    return by_degree[:max(1, math.ceil(len(component) / 4))]


def assign_depths(roots: List[str], connections: Adjacency) -> Dict[str, int]:
    """Depth of each node below the roots; the first depth assigned wins."""
    depths: Dict[str, int] = {}
    for root in roots:
        for node_id, depth in _depth_first(root, connections, set()):
            depths.setdefault(node_id, depth)
    return depths


def calculate_graph_layout(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
    scores: Sequence[EntityScore],
    options: Optional[LayoutOptions] = None,
) -> List[LayoutNode]:
    """Position every entity and every relation.

    Components are laid out left to right. Within a component nodes are
    stacked by depth from the root entities; entity nodes fill a level left
    to right and relation nodes sit at the midpoint of their endpoints once
    both are placed, or in a slot after the level's entities otherwise.

    Args:
        entities: Entity snapshot
        relations: Relation snapshot
        scores: Importance scores; only used for the ``importance`` payload
        options: Spacing overrides

    Returns:
        Entity nodes in input order followed by relation nodes in input order
    """
    opts = options or LayoutOptions()
    score_map = {s.entity.id: s for s in scores}
    relations_by_id: Dict[str, Relation] = {}
    for relation in relations:
        relations_by_id.setdefault(relation.id, relation)

    kinds, connections = _build_node_graph(entities, relations)
    positions: Dict[str, Position] = {}
    current_x = float(ORIGIN_X)

    for component in find_components(kinds, connections):
        roots = select_roots(component, kinds, connections)
        depths = assign_depths(roots, connections)

        levels: Dict[int, List[str]] = {}
        for node_id in component:
            levels.setdefault(depths.get(node_id, 0), []).append(node_id)

        start_x = current_x + (0 if len(component) > SMALL_COMPONENT_SIZE else SMALL_COMPONENT_INDENT)
        widest = 0

        for level in sorted(levels):
            nodes_in_level = levels[level]
            entity_nodes = [n for n in nodes_in_level if kinds[n] is NodeKind.ENTITY]
            relation_nodes = [n for n in nodes_in_level if kinds[n] is NodeKind.RELATION]
            level_y = BASE_Y + level * opts.level_height
            widest = max(widest, len(entity_nodes))

            for index, node_id in enumerate(entity_nodes):
                positions[node_id] = Position(start_x + index * opts.node_spacing, level_y)

            for index, node_id in enumerate(relation_nodes):
                relation = relations_by_id[node_id]
                source = positions.get(relation.source_id)
                target = positions.get(relation.target_id)
                if source and target:
                    positions[node_id] = Position((source.x + target.x) / 2, (source.y + target.y) / 2)
                else:
                    positions[node_id] = Position(
                        start_x + len(entity_nodes) * opts.node_spacing + index * RELATION_SLOT_WIDTH,
                        level_y + RELATION_SLOT_DROP,
                    )

        current_x += widest * opts.node_spacing + opts.component_spacing

    nodes = []
    for entity in entities:
        score = score_map.get(entity.id)
        nodes.append(LayoutNode(
            id=entity.id,
            kind=NodeKind.ENTITY,
            position=positions.get(entity.id) or Position(ORIGIN_X, BASE_Y),
            data={
                "entity": entity,
                "label": f"Entity {entity.id[:ENTITY_LABEL_ID_CHARS]}",
                "importance": score.score if score else 0,
            },
        ))

    for relation in relations:
        nodes.append(LayoutNode(
            id=relation.id,
            kind=NodeKind.RELATION,
            position=positions.get(relation.id) or Position(ORIGIN_X, BASE_Y),
            data={"relation": relation, "label": relation.predicate or ""},
        ))

    logger.debug(f"Laid out {len(nodes)} nodes")
    return nodes


def optimal_connection_points(source: Position, target: Position) -> Tuple[HandleSide, HandleSide]:
    """Pick the sides of two nodes an edge between them should use."""
    dx = target.x - source.x
    dy = target.y - source.y
    abs_dx = abs(dx)
    abs_dy = abs(dy)

    if abs_dx > abs_dy * 1.5:
        if dx > 0:
            return HandleSide.RIGHT, HandleSide.LEFT
        return HandleSide.LEFT, HandleSide.RIGHT

    if abs_dy > abs_dx * 1.5:
        if dy > 0:
            return HandleSide.BOTTOM, HandleSide.TOP
        return HandleSide.TOP, HandleSide.BOTTOM

    # Diagonal: choose by the dominant axis within the quadrant
    horizontal = abs_dx > abs_dy
    if dx > 0 and dy > 0:
        return (HandleSide.RIGHT, HandleSide.LEFT) if horizontal else (HandleSide.BOTTOM, HandleSide.TOP)
    if dx > 0 and dy < 0:
        return (HandleSide.RIGHT, HandleSide.LEFT) if horizontal else (HandleSide.TOP, HandleSide.BOTTOM)
    if dx < 0 and dy > 0:
        return (HandleSide.LEFT, HandleSide.RIGHT) if horizontal else (HandleSide.BOTTOM, HandleSide.TOP)
    return (HandleSide.LEFT, HandleSide.RIGHT) if horizontal else (HandleSide.TOP, HandleSide.BOTTOM)


def _edge(edge_id: str, source_id: str, target_id: str, positions: Dict[str, Position]) -> LayoutEdge:
    source_side, target_side = optimal_connection_points(positions[source_id], positions[target_id])
    return LayoutEdge(
        id=edge_id,
        source=source_id,
        target=target_id,
        source_handle=source_side.value,
        target_handle=target_side.value,
    )


def build_layout_edges(relations: Sequence[Relation], nodes: Sequence[LayoutNode]) -> List[LayoutEdge]:
    """Two connectors per relation: subject to relation node, relation node to object."""
    positions = {node.id: node.position for node in nodes}
    edges = []

    for relation in relations:
        if relation.id not in positions:
            continue
        if relation.source_id not in positions or relation.target_id not in positions:
            continue

        edges.append(_edge(f"{relation.id}-source", relation.source_id, relation.id, positions))
        edges.append(_edge(f"{relation.id}-target", relation.id, relation.target_id, positions))

    return edges
