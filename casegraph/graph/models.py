"""Record shapes consumed and produced by the graph analytics."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import EntityValidationError, RelationValidationError

logger = logging.getLogger(__name__)


TYPE_SLOTS = {
    "facial": "type_facial_data_id",
    "text": "type_text_data_id",
    "image": "type_image_data_id",
    "image_portion": "type_image_portion_id",
}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timezone-aware copy of ``value``; naive datetimes are taken as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _parse_timestamp(value: Any, error_class=EntityValidationError) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value:
        try:
            return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            raise error_class(f"Invalid created_at timestamp: {value!r}", field="created_at", value=value)
    return None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class EndpointKind(Enum):
    """What a relation side points at."""
    ENTITY = "entity"
    RELATION = "relation"


@dataclass(frozen=True)
class EndpointRef:
    """One side of a relation: either an entity or another relation."""
    kind: EndpointKind
    id: str

    @classmethod
    def entity(cls, entity_id: str) -> "EndpointRef":
        return cls(EndpointKind.ENTITY, entity_id)

    @classmethod
    def relation(cls, relation_id: str) -> "EndpointRef":
        return cls(EndpointKind.RELATION, relation_id)

    @property
    def is_entity(self) -> bool:
        return self.kind is EndpointKind.ENTITY

    @property
    def is_relation(self) -> bool:
        return self.kind is EndpointKind.RELATION


@dataclass
class Entity:
    """A node of the investigation graph.

    The analytics only ever check whether a type slot is populated; the
    payload behind each reference lives in the store.
    """
    id: str
    created_at: Optional[datetime] = None
    type_facial_data_id: Optional[str] = None
    type_text_data_id: Optional[str] = None
    type_image_data_id: Optional[str] = None
    type_image_portion_id: Optional[str] = None

    @property
    def has_facial_data(self) -> bool:
        return bool(self.type_facial_data_id)

    @property
    def has_text_data(self) -> bool:
        return bool(self.type_text_data_id)

    @property
    def has_image_data(self) -> bool:
        return bool(self.type_image_data_id)

    @property
    def has_image_portion(self) -> bool:
        return bool(self.type_image_portion_id)

    def type_names(self) -> List[str]:
        """Names of the populated type slots, in a fixed order."""
        return [name for name, attr in TYPE_SLOTS.items() if getattr(self, attr)]

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary representation."""
        return {
            "id": self.id,
            "created_at": _format_timestamp(self.created_at),
            "type_facial_data_id": self.type_facial_data_id,
            "type_text_data_id": self.type_text_data_id,
            "type_image_data_id": self.type_image_data_id,
            "type_image_portion_id": self.type_image_portion_id,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Entity":
        """Build an entity from a store row or JSON object."""
        entity_id = record.get("id")
        if not entity_id:
            raise EntityValidationError("Entity record has no id", field="id")
        return cls(
            id=str(entity_id),
            created_at=_parse_timestamp(record.get("created_at")),
            type_facial_data_id=record.get("type_facial_data_id") or None,
            type_text_data_id=record.get("type_text_data_id") or None,
            type_image_data_id=record.get("type_image_data_id") or None,
            type_image_portion_id=record.get("type_image_portion_id") or None,
        )


def _endpoint_from_fields(
    record: Mapping[str, Any],
    side: str,
) -> EndpointRef:
    entity_id = record.get(f"{side}_entity_id") or None
    relation_id = record.get(f"{side}_relation_id") or None

    if bool(entity_id) == bool(relation_id):
        raise RelationValidationError(
            "Relation must have exactly one subject type and one object type",
            field=side,
            value={"entity_id": entity_id, "relation_id": relation_id},
        )

    if entity_id:
        return EndpointRef.entity(str(entity_id))
    return EndpointRef.relation(str(relation_id))


@dataclass
class Relation:
    """A directed, labelled edge whose ends are entities or relations."""
    id: str
    predicate: str
    subject: EndpointRef
    object: EndpointRef
    created_at: Optional[datetime] = None

    @property
    def subject_entity_id(self) -> Optional[str]:
        return self.subject.id if self.subject.is_entity else None

    @property
    def subject_relation_id(self) -> Optional[str]:
        return self.subject.id if self.subject.is_relation else None

    @property
    def object_entity_id(self) -> Optional[str]:
        return self.object.id if self.object.is_entity else None

    @property
    def object_relation_id(self) -> Optional[str]:
        return self.object.id if self.object.is_relation else None

    @property
    def source_id(self) -> str:
        return self.subject.id

    @property
    def target_id(self) -> str:
        return self.object.id

    def touches_entity(self, entity_id: str) -> bool:
        return self.subject_entity_id == entity_id or self.object_entity_id == entity_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert relation to its flat wire representation."""
        return {
            "id": self.id,
            "created_at": _format_timestamp(self.created_at),
            "subject_entity_id": self.subject_entity_id,
            "subject_relation_id": self.subject_relation_id,
            "predicate": self.predicate,
            "object_entity_id": self.object_entity_id,
            "object_relation_id": self.object_relation_id,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Relation":
        """Build a relation from flat nullable sibling fields.

        Raises:
            RelationValidationError: if a side has zero or two references set
        """
        relation_id = record.get("id")
        if not relation_id:
            raise RelationValidationError("Relation record has no id", field="id")
        return cls(
            id=str(relation_id),
            predicate=str(record.get("predicate") or ""),
            subject=_endpoint_from_fields(record, "subject"),
            object=_endpoint_from_fields(record, "object"),
            created_at=_parse_timestamp(record.get("created_at"), RelationValidationError),
        )


def entities_from_records(records: Iterable[Mapping[str, Any]]) -> List[Entity]:
    """Convert entity rows, skipping rows without an id."""
    entities = []
    for record in records:
        try:
            entities.append(Entity.from_record(record))
        except EntityValidationError as e:
            logger.warning(f"Skipping entity record: {e.message}")
    return entities


def relations_from_records(records: Iterable[Mapping[str, Any]]) -> List[Relation]:
    """Convert relation rows, skipping data-integrity anomalies."""
    relations = []
    for record in records:
        try:
            relations.append(Relation.from_record(record))
        except RelationValidationError as e:
            logger.warning(
                f"Skipping anomalous relation {record.get('id')!r}: {e.message}"
            )
    return relations


@dataclass
class EntityScore:
    """Connectivity-derived importance of one entity."""
    entity: Entity
    score: float
    connections: int
    centrality_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity.to_dict(),
            "score": self.score,
            "connections": self.connections,
            "centralityScore": self.centrality_score,
        }


@dataclass
class RelationPattern:
    """Frequency and participants of one predicate.

    ``entities`` is kept as a dict used as an insertion-ordered set.
    """
    predicate: str
    count: int = 0
    entities: Dict[str, None] = field(default_factory=dict)

    @property
    def entity_ids(self) -> List[str]:
        return list(self.entities)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predicate": self.predicate,
            "count": self.count,
            "entities": self.entity_ids,
        }


@dataclass
class ClusterInfo:
    """A connected component of entities."""
    id: str
    entities: List[Entity]
    relations: List[Relation]
    density: float
    common_predicates: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entities": [entity.to_dict() for entity in self.entities],
            "relations": [relation.to_dict() for relation in self.relations],
            "density": self.density,
            "commonPredicates": self.common_predicates,
        }


@dataclass
class SuggestedRelation:
    """A heuristic proposal for a relation that is not yet recorded."""
    subject_id: str
    object_id: str
    predicate: str
    confidence: float
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "objectId": self.object_id,
            "predicate": self.predicate,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass
class Position:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


class NodeKind(Enum):
    ENTITY = "entity"
    RELATION = "relation"


@dataclass
class LayoutNode:
    """A positioned node of the rendered diagram."""
    id: str
    kind: NodeKind
    position: Position
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.data)
        if "entity" in data:
            data["entity"] = data["entity"].to_dict()
        if "relation" in data:
            data["relation"] = data["relation"].to_dict()
        return {
            "id": self.id,
            "type": self.kind.value,
            "position": self.position.to_dict(),
            "data": data,
        }


@dataclass
class LayoutEdge:
    """A drawn connector between a relation node and one of its endpoints."""
    id: str
    source: str
    target: str
    source_handle: str
    target_handle: str
    kind: str = "relation"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.kind,
            "sourceHandle": self.source_handle,
            "targetHandle": self.target_handle,
        }
