"""Tests for the entity/relation record adapter."""

from datetime import datetime, timezone

import pytest

from casegraph.errors import EntityValidationError, RelationValidationError
from casegraph.graph.models import (
    EndpointKind,
    Entity,
    LayoutEdge,
    LayoutNode,
    NodeKind,
    Position,
    Relation,
    RelationPattern,
    entities_from_records,
    relations_from_records,
)


class TestEntity:
    """Test entity records."""

    def test_type_presence(self, make_entity):
        entity = make_entity("e1", facial=True, image=True)

        assert entity.has_facial_data
        assert not entity.has_text_data
        assert entity.has_image_data
        assert not entity.has_image_portion
        assert entity.type_names() == ["facial", "image"]

    def test_from_record_parses_timestamp(self):
        entity = Entity.from_record({
            "id": "e1",
            "created_at": "2024-02-01T10:00:00Z",
            "type_text_data_id": "t1",
            "type_facial_data_id": "",
        })

        assert entity.created_at == datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert entity.type_text_data_id == "t1"
        assert entity.type_facial_data_id is None

    def test_from_record_treats_naive_timestamp_as_utc(self):
        entity = Entity.from_record({
            "id": "e1",
            "created_at": "2024-02-01T10:00:00",
            "type_text_data_id": "t1",
        })

        assert entity.created_at == datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert entity.created_at.tzinfo is not None

    def test_from_record_requires_id(self):
        with pytest.raises(EntityValidationError):
            Entity.from_record({"type_text_data_id": "t1"})

    def test_from_record_rejects_bad_timestamp(self):
        with pytest.raises(EntityValidationError) as exc_info:
            Entity.from_record({"id": "e1", "created_at": "last tuesday"})

        assert exc_info.value.field == "created_at"

    def test_to_dict_roundtrips_fields(self, make_entity):
        data = make_entity("e1", text=True).to_dict()

        assert data["id"] == "e1"
        assert data["type_text_data_id"] == "text-e1"
        assert data["created_at"] is None


class TestRelation:
    """Test relation records and endpoint decoding."""

    def test_entity_endpoints(self):
        relation = Relation.from_record({
            "id": "r1",
            "predicate": "knows",
            "subject_entity_id": "a",
            "object_entity_id": "b",
        })

        assert relation.subject.kind is EndpointKind.ENTITY
        assert relation.subject_entity_id == "a"
        assert relation.object_entity_id == "b"
        assert relation.subject_relation_id is None
        assert relation.touches_entity("a")
        assert not relation.touches_entity("c")

    def test_relation_endpoint(self):
        relation = Relation.from_record({
            "id": "r2",
            "predicate": "confirms",
            "subject_relation_id": "r1",
            "object_entity_id": "b",
        })

        assert relation.subject.is_relation
        assert relation.subject_entity_id is None
        assert relation.source_id == "r1"
        assert relation.target_id == "b"

    @pytest.mark.parametrize("record", [
        {"id": "r", "predicate": "p", "object_entity_id": "b"},
        {"id": "r", "predicate": "p", "subject_entity_id": "a", "subject_relation_id": "x", "object_entity_id": "b"},
        {"id": "r", "predicate": "p", "subject_entity_id": "a"},
    ])
    def test_rejects_ambiguous_endpoints(self, record):
        with pytest.raises(RelationValidationError) as exc_info:
            Relation.from_record(record)

        assert "exactly one subject type and one object type" in exc_info.value.message

    def test_to_dict_is_flat(self, make_relation):
        data = make_relation("r1", "x", "about", "a", subject_is_relation=True).to_dict()

        assert data["subject_relation_id"] == "x"
        assert data["subject_entity_id"] is None
        assert data["object_entity_id"] == "a"
        assert data["predicate"] == "about"


class TestRecordConversion:
    """Test bulk conversion that skips anomalous rows."""

    def test_anomalous_relations_skipped(self, caplog):
        rows = [
            {"id": "ok", "predicate": "p", "subject_entity_id": "a", "object_entity_id": "b"},
            {"id": "bad", "predicate": "p", "subject_entity_id": "a"},
        ]

        relations = relations_from_records(rows)

        assert [r.id for r in relations] == ["ok"]
        assert "bad" in caplog.text

    def test_entities_without_id_skipped(self):
        entities = entities_from_records([{"id": "a"}, {"type_text_data_id": "t"}])

        assert [e.id for e in entities] == ["a"]


class TestDerivedShapes:
    """Test camelCase serialisation of derived results."""

    def test_relation_pattern_entities_in_insertion_order(self):
        pattern = RelationPattern(predicate="knows", count=2, entities={"b": None, "a": None})

        assert pattern.to_dict() == {"predicate": "knows", "count": 2, "entities": ["b", "a"]}

    def test_layout_node_serialises_entity(self, make_entity):
        node = LayoutNode(
            id="e1",
            kind=NodeKind.ENTITY,
            position=Position(10, 20),
            data={"entity": make_entity("e1", text=True), "label": "Entity e1", "importance": 0},
        )

        data = node.to_dict()

        assert data["type"] == "entity"
        assert data["position"] == {"x": 10, "y": 20}
        assert data["data"]["entity"]["id"] == "e1"

    def test_layout_edge_handles(self):
        edge = LayoutEdge(id="r-source", source="a", target="r", source_handle="right", target_handle="left")

        assert edge.to_dict() == {
            "id": "r-source",
            "source": "a",
            "target": "r",
            "type": "relation",
            "sourceHandle": "right",
            "targetHandle": "left",
        }
