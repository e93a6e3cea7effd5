"""NetworkX-based in-memory entity/relation store."""

import logging
import uuid
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from ..errors import (
    EntityValidationError,
    ErrorContext,
    GraphNotFoundError,
    RelationValidationError,
)
from ..graph.models import TYPE_SLOTS, EndpointRef, Entity, Relation
from .interfaces import IGraphStore

logger = logging.getLogger(__name__)

ENTITY = "entity"
RELATION = "relation"
SUBJECT_EDGE = "subject"
OBJECT_EDGE = "object"

ENTITY_UPDATE_FIELDS = set(TYPE_SLOTS.values())
RELATION_UPDATE_FIELDS = {
    "predicate",
    "subject_entity_id",
    "subject_relation_id",
    "object_entity_id",
    "object_relation_id",
}


def new_id() -> str:
    """Generate a fresh record id."""
    return str(uuid.uuid4())


class NetworkXStore(IGraphStore):
    """Keeps entities and relations as nodes of one multigraph.

    Each relation node has an edge from its subject (key ``subject``) and an
    edge to its object (key ``object``), so relations about relations are
    ordinary edges between relation nodes.
    """

    def __init__(self):
        self.graph = nx.MultiDiGraph()

    def _kind(self, node_id: str) -> Optional[str]:
        if not self.graph.has_node(node_id):
            return None
        return self.graph.nodes[node_id]["kind"]

    def _records(self, kind: str) -> list:
        return [
            data["record"]
            for _, data in self.graph.nodes(data=True)
            if data["kind"] == kind
        ]

    async def add_entity(self, entity: Entity) -> Entity:
        """Add entity to the store.

        Raises:
            EntityValidationError: if no type reference is set or the id is taken
        """
        if not entity.type_names():
            raise EntityValidationError(
                "At least one entity type must be specified",
                context=ErrorContext(operation="add_entity", resource_type=ENTITY, resource_id=entity.id),
            )

        entity = replace(
            entity,
            id=entity.id or new_id(),
            created_at=entity.created_at or datetime.now(timezone.utc),
        )
        if self.graph.has_node(entity.id):
            raise EntityValidationError(f"Duplicate id: {entity.id}", field="id", value=entity.id)

        self.graph.add_node(entity.id, kind=ENTITY, record=entity)
        logger.debug(f"Added entity {entity.id}")
        return entity

    def _check_endpoint(self, endpoint: EndpointRef, side: str) -> None:
        expected = ENTITY if endpoint.is_entity else RELATION
        if self._kind(endpoint.id) != expected:
            raise GraphNotFoundError(
                f"Relation {side} {expected} not found: {endpoint.id}",
                resource_type=expected,
                resource_id=endpoint.id,
            )

    @staticmethod
    def _check_predicate(relation: Relation) -> None:
        if not relation.predicate or not relation.predicate.strip():
            raise RelationValidationError("Relation predicate must not be empty", field="predicate")

    async def add_relation(self, relation: Relation) -> Relation:
        """Add relation to the store.

        Raises:
            RelationValidationError: on an empty predicate or a taken id
            GraphNotFoundError: if the subject or object does not exist
        """
        self._check_predicate(relation)

        relation = replace(
            relation,
            id=relation.id or new_id(),
            created_at=relation.created_at or datetime.now(timezone.utc),
        )
        if self.graph.has_node(relation.id):
            raise RelationValidationError(f"Duplicate id: {relation.id}", field="id", value=relation.id)

        self._check_endpoint(relation.subject, SUBJECT_EDGE)
        self._check_endpoint(relation.object, OBJECT_EDGE)

        self.graph.add_node(relation.id, kind=RELATION, record=relation)
        self.graph.add_edge(relation.subject.id, relation.id, key=SUBJECT_EDGE)
        self.graph.add_edge(relation.id, relation.object.id, key=OBJECT_EDGE)
        logger.debug(f"Added relation {relation.id} ({relation.predicate})")
        return relation

    async def update_entity(self, entity_id: str, changes: Dict[str, Any]) -> Entity:
        """Change the type references of an entity.

        Raises:
            GraphNotFoundError: if the entity does not exist
            EntityValidationError: on unknown fields or if no type reference would remain
        """
        current = await self.get_entity(entity_id)
        if current is None:
            raise GraphNotFoundError(f"Entity not found: {entity_id}", resource_type=ENTITY, resource_id=entity_id)

        unknown = sorted(set(changes) - ENTITY_UPDATE_FIELDS)
        if unknown:
            raise EntityValidationError(f"Cannot update entity fields: {', '.join(unknown)}", field=unknown[0])

        updated = replace(current, **{key: value or None for key, value in changes.items()})
        if not updated.type_names():
            raise EntityValidationError(
                "At least one entity type must be specified",
                context=ErrorContext(operation="update_entity", resource_type=ENTITY, resource_id=entity_id),
            )

        self.graph.nodes[entity_id]["record"] = updated
        logger.debug(f"Updated entity {entity_id}")
        return updated

    async def update_relation(self, relation_id: str, changes: Dict[str, Any]) -> Relation:
        """Change the predicate or endpoints of a relation.

        Fields not named in ``changes`` keep their values, so moving a side
        from an entity to a relation means clearing one field and setting
        the other.

        Raises:
            GraphNotFoundError: if the relation or a new endpoint does not exist
            RelationValidationError: on unknown fields, an empty predicate, a
                side without exactly one reference, or a self reference
        """
        current = await self.get_relation(relation_id)
        if current is None:
            raise GraphNotFoundError(
                f"Relation not found: {relation_id}", resource_type=RELATION, resource_id=relation_id
            )

        unknown = sorted(set(changes) - RELATION_UPDATE_FIELDS)
        if unknown:
            raise RelationValidationError(f"Cannot update relation fields: {', '.join(unknown)}", field=unknown[0])

        updated = Relation.from_record({**current.to_dict(), **changes, "id": relation_id})
        updated = replace(updated, created_at=current.created_at)
        self._check_predicate(updated)
        for endpoint, side in ((updated.subject, SUBJECT_EDGE), (updated.object, OBJECT_EDGE)):
            if endpoint.is_relation and endpoint.id == relation_id:
                raise RelationValidationError(
                    f"Relation cannot reference itself as its {side}", field=side, value=relation_id
                )
            self._check_endpoint(endpoint, side)

        self.graph.remove_edge(current.subject.id, relation_id, key=SUBJECT_EDGE)
        self.graph.remove_edge(relation_id, current.object.id, key=OBJECT_EDGE)
        self.graph.add_edge(updated.subject.id, relation_id, key=SUBJECT_EDGE)
        self.graph.add_edge(relation_id, updated.object.id, key=OBJECT_EDGE)
        self.graph.nodes[relation_id]["record"] = updated
        logger.debug(f"Updated relation {relation_id} ({updated.predicate})")
        return updated

    async def get_entity(self, entity_id: str) -> Optional[Entity]:
        """Get entity by ID."""
        if self._kind(entity_id) != ENTITY:
            return None
        return self.graph.nodes[entity_id]["record"]

    async def get_relation(self, relation_id: str) -> Optional[Relation]:
        """Get relation by ID."""
        if self._kind(relation_id) != RELATION:
            return None
        return self.graph.nodes[relation_id]["record"]

    async def list_entities(self, limit: Optional[int] = None, offset: int = 0) -> List[Entity]:
        """List entities in insertion order."""
        entities = self._records(ENTITY)[offset:]
        return entities[:limit] if limit is not None else entities

    async def list_relations(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        entity_id: Optional[str] = None,
        predicate: Optional[str] = None,
    ) -> List[Relation]:
        """List relations, optionally those touching an entity or with a predicate."""
        relations = self._records(RELATION)
        if entity_id:
            relations = [r for r in relations if r.touches_entity(entity_id)]
        if predicate:
            relations = [r for r in relations if r.predicate == predicate]

        relations = relations[offset:]
        return relations[:limit] if limit is not None else relations

    def _referencing_relations(self, node_id: str) -> List[str]:
        """Relations naming ``node_id`` as their subject or object."""
        as_subject = [
            target for _, target, key in self.graph.out_edges(node_id, keys=True)
            if key == SUBJECT_EDGE
        ]
        as_object = [
            source for source, _, key in self.graph.in_edges(node_id, keys=True)
            if key == OBJECT_EDGE
        ]
        return as_subject + as_object

    def _dependent_relations(self, node_id: str) -> List[str]:
        """Every relation that transitively references ``node_id``."""
        dependents: List[str] = []
        seen = {node_id}
        queue = deque([node_id])

        while queue:
            current = queue.popleft()
            for relation_id in self._referencing_relations(current):
                if relation_id not in seen:
                    seen.add(relation_id)
                    dependents.append(relation_id)
                    queue.append(relation_id)

        return dependents

    def _delete_cascade(self, node_id: str, kind: str) -> List[str]:
        if self._kind(node_id) != kind:
            raise GraphNotFoundError(f"{kind.capitalize()} not found: {node_id}", resource_type=kind, resource_id=node_id)

        dependents = self._dependent_relations(node_id)
        self.graph.remove_nodes_from(dependents + [node_id])
        logger.info(f"Deleted {kind} {node_id} and {len(dependents)} dependent relations")
        return dependents

    async def delete_entity(self, entity_id: str) -> List[str]:
        """Delete entity and the relations depending on it.

        Returns:
            Ids of the relations removed along with the entity
        """
        return self._delete_cascade(entity_id, ENTITY)

    async def delete_relation(self, relation_id: str) -> List[str]:
        """Delete relation and the relations depending on it.

        Returns:
            Ids of the other relations removed
        """
        return self._delete_cascade(relation_id, RELATION)

    async def snapshot(self) -> Tuple[List[Entity], List[Relation]]:
        """Full copy of all entities and relations."""
        return self._records(ENTITY), self._records(RELATION)

    async def clear(self) -> None:
        """Clear all data."""
        self.graph.clear()

    def to_graphml(self, path: str) -> None:
        """Write the graph structure to GraphML for external tools."""
        export = nx.MultiDiGraph()
        for node_id, data in self.graph.nodes(data=True):
            label = data["record"].predicate if data["kind"] == RELATION else ""
            export.add_node(node_id, kind=data["kind"], label=label)
        export.add_edges_from(self.graph.edges(keys=True))
        nx.write_graphml(export, path)
