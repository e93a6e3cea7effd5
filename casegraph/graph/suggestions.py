"""Heuristic relation suggestions."""

import logging
from typing import Dict, List, Optional, Sequence, Set

from .models import Entity, Relation, SuggestedRelation

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.3
DEFAULT_LIMIT = 10

SHARED_CONNECTION_WEIGHT = 0.2
SHARED_CONNECTION_CAP = 0.9
MIN_SHARED_CONNECTIONS = 2
SAME_TYPE_CONFIDENCE = 0.3

GUARD_PREDICATE = "connects"


def build_existing_relation_keys(relations: Sequence[Relation]) -> Set[str]:
    """``subject-predicate-object`` keys in both directions for entity pairs."""
    keys = set()
    for relation in relations:
        subject_id = relation.subject_entity_id
        object_id = relation.object_entity_id
        if not subject_id or not object_id:
            continue
        keys.add(f"{subject_id}-{relation.predicate}-{object_id}")
        keys.add(f"{object_id}-{relation.predicate}-{subject_id}")
    return keys


def build_entity_relation_map(relations: Sequence[Relation]) -> Dict[str, Dict[str, Set[str]]]:
    """Map each subject entity to ``predicate -> object entity ids``."""
    entity_relations: Dict[str, Dict[str, Set[str]]] = {}
    for relation in relations:
        subject_id = relation.subject_entity_id
        object_id = relation.object_entity_id
        if not subject_id or not object_id:
            continue
        predicates = entity_relations.setdefault(subject_id, {})
        predicates.setdefault(relation.predicate, set()).add(object_id)
    return entity_relations


def count_shared_connections(
    first: Dict[str, Set[str]],
    second: Dict[str, Set[str]],
) -> int:
    """Targets reached by both entities under the same predicate."""
    count = 0
    for predicate, targets in first.items():
        other_targets = second.get(predicate)
        if other_targets:
            count += len(targets & other_targets)
    return count


def relation_exists(first_id: str, second_id: str, relations: Sequence[Relation]) -> bool:
    """True if any relation directly joins the two entities, either way round."""
    return any(
        (r.subject_entity_id == first_id and r.object_entity_id == second_id)
        or (r.subject_entity_id == second_id and r.object_entity_id == first_id)
        for r in relations
    )


def _suggest_shared_neighbors(
    first: Entity,
    second: Entity,
    shared_connections: int,
) -> Optional[SuggestedRelation]:
    if shared_connections < MIN_SHARED_CONNECTIONS:
        return None
    return SuggestedRelation(
        subject_id=first.id,
        object_id=second.id,
        predicate="potentially-related",
        confidence=min(shared_connections * SHARED_CONNECTION_WEIGHT, SHARED_CONNECTION_CAP),
        reason=f"Share {shared_connections} common connections",
    )


def _suggest_same_type(
    first: Entity,
    second: Entity,
    relations: Sequence[Relation],
) -> Optional[SuggestedRelation]:
    if not first.has_facial_data or not second.has_facial_data:
        return None
    if relation_exists(first.id, second.id, relations):
        return None
    return SuggestedRelation(
        subject_id=first.id,
        object_id=second.id,
        predicate="same-type",
        confidence=SAME_TYPE_CONFIDENCE,
        reason="Both entities have facial data",
    )


def suggest_relations(
    entities: Sequence[Entity],
    existing_relations: Sequence[Relation],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    limit: int = DEFAULT_LIMIT,
) -> List[SuggestedRelation]:
    """Propose relations between pairs of entities.

    Each unordered pair is visited once with the earlier entity as subject.
    Two heuristics may fire for a pair: shared neighbours under a common
    predicate, and both entities carrying facial data.

    Args:
        entities: Entity snapshot
        existing_relations: Relation snapshot
        min_confidence: Suggestions below this are dropped
        limit: Maximum number of suggestions returned

    Returns:
        Suggestions, most confident first
    """
    existing_keys = build_existing_relation_keys(existing_relations)
    entity_relations = build_entity_relation_map(existing_relations)
    suggestions: List[SuggestedRelation] = []

    for i, first in enumerate(entities):
        for second in entities[i + 1:]:
            # Only a literal "connects" relation marks a pair as already linked here.
            if (
                f"{first.id}-{GUARD_PREDICATE}-{second.id}" in existing_keys
                or f"{second.id}-{GUARD_PREDICATE}-{first.id}" in existing_keys
            ):
                continue

            first_relations = entity_relations.get(first.id)
            second_relations = entity_relations.get(second.id)
            if first_relations and second_relations:
                shared = count_shared_connections(first_relations, second_relations)
                suggestion = _suggest_shared_neighbors(first, second, shared)
                if suggestion:
                    suggestions.append(suggestion)

            suggestion = _suggest_same_type(first, second, existing_relations)
            if suggestion:
                suggestions.append(suggestion)

    logger.debug(f"Generated {len(suggestions)} raw suggestions")
    kept = [s for s in suggestions if s.confidence >= min_confidence]
    kept.sort(key=lambda s: s.confidence, reverse=True)
    return kept[:limit]
