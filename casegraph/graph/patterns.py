"""Predicate frequency statistics."""

from typing import Dict, List, Sequence

from .models import Relation, RelationPattern


def find_relation_patterns(relations: Sequence[Relation]) -> List[RelationPattern]:
    """Group relations by exact predicate.

    Every relation increments its predicate's count; only entity-typed
    endpoints are recorded as participants.
    """
    patterns: Dict[str, RelationPattern] = {}

    for relation in relations:
        pattern = patterns.get(relation.predicate)
        if pattern is None:
            pattern = patterns[relation.predicate] = RelationPattern(predicate=relation.predicate)

        pattern.count += 1
        if relation.subject_entity_id:
            pattern.entities[relation.subject_entity_id] = None
        if relation.object_entity_id:
            pattern.entities[relation.object_entity_id] = None

    return sorted(patterns.values(), key=lambda p: p.count, reverse=True)
