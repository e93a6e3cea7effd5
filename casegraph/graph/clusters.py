"""Connected-component clustering over entity-to-entity relations."""

import logging
from collections import Counter
from typing import Dict, List, Sequence, Set

from .models import ClusterInfo, Entity, Relation

logger = logging.getLogger(__name__)

TOP_PREDICATES = 3


def build_adjacency(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> Dict[str, Dict[str, None]]:
    """Undirected adjacency over entity ids.

    Only relations with an entity on both sides link entities; relations
    pointing at other relations, or at unknown ids, add no edge.
    """
    adjacency: Dict[str, Dict[str, None]] = {entity.id: {} for entity in entities}

    for relation in relations:
        subject_id = relation.subject_entity_id
        object_id = relation.object_entity_id
        if not subject_id or not object_id:
            continue
        if subject_id not in adjacency or object_id not in adjacency:
            continue

        adjacency[subject_id][object_id] = None
        adjacency[object_id][subject_id] = None

    return adjacency


def find_connected_component(
    start_id: str,
    adjacency: Dict[str, Dict[str, None]],
    visited: Set[str],
) -> Set[str]:
    """Collect every entity reachable from ``start_id``."""
    component = set()
    stack = [start_id]

    while stack:
        current = stack.pop()
        if current in visited:
            continue

        visited.add(current)
        component.add(current)
        stack.extend(n for n in adjacency.get(current, ()) if n not in visited)

    return component


def calculate_cluster_density(entity_count: int, relation_count: int) -> float:
    """Observed relations over possible directed pairs; 0 for n <= 1."""
    possible = entity_count * (entity_count - 1)
    return relation_count / possible if possible > 0 else 0.0


def find_top_predicates(relations: Sequence[Relation], limit: int = TOP_PREDICATES) -> List[str]:
    """Most frequent predicates, ties in order of first appearance."""
    counts = Counter(relation.predicate for relation in relations)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [predicate for predicate, _ in ranked[:limit]]


def _create_cluster_info(
    cluster_id: str,
    member_ids: Set[str],
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> ClusterInfo:
    cluster_entities = [e for e in entities if e.id in member_ids]
    cluster_relations = [
        r for r in relations
        if (r.subject_entity_id and r.subject_entity_id in member_ids)
        or (r.object_entity_id and r.object_entity_id in member_ids)
    ]

    return ClusterInfo(
        id=cluster_id,
        entities=cluster_entities,
        relations=cluster_relations,
        density=calculate_cluster_density(len(cluster_entities), len(cluster_relations)),
        common_predicates=find_top_predicates(cluster_relations),
    )


def detect_clusters(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> List[ClusterInfo]:
    """Partition entities into connected components.

    Every entity lands in exactly one cluster; isolated entities form
    singleton clusters with density 0. Clusters are numbered in discovery
    order and returned largest first.
    """
    adjacency = build_adjacency(entities, relations)
    visited: Set[str] = set()
    clusters: List[ClusterInfo] = []

    for entity in entities:
        if entity.id in visited:
            continue

        component = find_connected_component(entity.id, adjacency, visited)
        clusters.append(_create_cluster_info(
            f"cluster-{len(clusters) + 1}",
            component,
            entities,
            relations,
        ))

    logger.debug(f"Detected {len(clusters)} clusters across {len(entities)} entities")
    return sorted(clusters, key=lambda c: len(c.entities), reverse=True)
