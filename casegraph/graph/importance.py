"""Connectivity and centrality based importance scoring."""

import logging
from collections import defaultdict
from typing import Dict, List, Sequence

from .models import Entity, EntityScore, Relation

logger = logging.getLogger(__name__)

CONNECTION_WEIGHT = 0.4
CENTRALITY_WEIGHT = 0.6
INCOMING_WEIGHT = 1.5


def calculate_centrality_score(incoming: int, outgoing: int, total_entities: int) -> float:
    """Weighted in/out degree normalised by the number of other entities."""
    denominator = max(total_entities - 1, 1)
    return (incoming * INCOMING_WEIGHT + outgoing) / denominator


def analyze_entity_importance(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> List[EntityScore]:
    """Score every entity by how connected it is.

    A relation counts once for its subject entity and once for its object
    entity, so a self-referencing relation counts twice. Relation-typed
    endpoints and ids missing from ``entities`` contribute nothing.

    Args:
        entities: Entity snapshot
        relations: Relation snapshot

    Returns:
        One score per entity, highest first, ties in input order
    """
    total: Dict[str, int] = defaultdict(int)
    incoming: Dict[str, int] = defaultdict(int)
    outgoing: Dict[str, int] = defaultdict(int)

    for relation in relations:
        if relation.subject_entity_id:
            total[relation.subject_entity_id] += 1
            outgoing[relation.subject_entity_id] += 1
        if relation.object_entity_id:
            total[relation.object_entity_id] += 1
            incoming[relation.object_entity_id] += 1

    scores = []
    for entity in entities:
        connections = total.get(entity.id, 0)
        centrality = calculate_centrality_score(
            incoming.get(entity.id, 0),
            outgoing.get(entity.id, 0),
            len(entities),
        )
        scores.append(EntityScore(
            entity=entity,
            score=connections * CONNECTION_WEIGHT + centrality * CENTRALITY_WEIGHT,
            connections=connections,
            centrality_score=centrality,
        ))

    logger.debug(f"Scored {len(scores)} entities from {len(relations)} relations")
    return sorted(scores, key=lambda s: s.score, reverse=True)
