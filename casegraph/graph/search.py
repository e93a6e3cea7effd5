"""Keyword search over entities."""

from typing import Dict, List, Sequence

from .models import Entity, Relation

ID_MATCH_SCORE = 1.0
TYPE_MATCH_SCORE = 0.5
PREDICATE_MATCH_SCORE = 0.3


def score_entity(entity: Entity, relations: Sequence[Relation], query_lower: str) -> float:
    """Relevance of one entity to an already lower-cased query."""
    score = 0.0

    if query_lower in entity.id.lower():
        score += ID_MATCH_SCORE

    if entity.has_facial_data and "facial" in query_lower:
        score += TYPE_MATCH_SCORE
    if entity.has_text_data and "text" in query_lower:
        score += TYPE_MATCH_SCORE

    for relation in relations:
        if relation.touches_entity(entity.id) and query_lower in relation.predicate.lower():
            score += PREDICATE_MATCH_SCORE

    return score


def search_entities(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
    query: str,
) -> List[Entity]:
    """Entities matching ``query``, best match first.

    Matching is a case-insensitive substring test against the entity id,
    the type keywords "facial" and "text", and predicates of relations
    touching the entity.
    """
    query_lower = query.lower()
    scores: Dict[str, float] = {}

    for entity in entities:
        score = score_entity(entity, relations, query_lower)
        if score > 0:
            scores[entity.id] = score

    matches = [entity for entity in entities if entity.id in scores]
    return sorted(matches, key=lambda e: scores[e.id], reverse=True)
