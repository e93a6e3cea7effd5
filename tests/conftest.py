"""Shared fixtures for casegraph tests."""

import json
from datetime import datetime, timezone
from typing import Optional

import pytest

from casegraph.config import CaseGraphConfig
from casegraph.graph.models import EndpointRef, Entity, Relation


def _entity(
    entity_id: str,
    facial: bool = False,
    text: bool = False,
    image: bool = False,
    portion: bool = False,
    created_at: Optional[datetime] = None,
) -> Entity:
    return Entity(
        id=entity_id,
        created_at=created_at,
        type_facial_data_id=f"facial-{entity_id}" if facial else None,
        type_text_data_id=f"text-{entity_id}" if text else None,
        type_image_data_id=f"image-{entity_id}" if image else None,
        type_image_portion_id=f"portion-{entity_id}" if portion else None,
    )


def _relation(
    relation_id: str,
    subject: str,
    predicate: str,
    obj: str,
    subject_is_relation: bool = False,
    object_is_relation: bool = False,
    created_at: Optional[datetime] = None,
) -> Relation:
    return Relation(
        id=relation_id,
        predicate=predicate,
        subject=EndpointRef.relation(subject) if subject_is_relation else EndpointRef.entity(subject),
        object=EndpointRef.relation(obj) if object_is_relation else EndpointRef.entity(obj),
        created_at=created_at,
    )


@pytest.fixture
def make_entity():
    """Factory for entities; type flags populate the matching reference."""
    return _entity


@pytest.fixture
def make_relation():
    """Factory for relations between entity ids (or relation ids when flagged)."""
    return _relation


@pytest.fixture
def chain_graph():
    """A(facial) -knows-> B(text) -works_with-> C(facial, text)."""
    entities = [
        _entity("A", facial=True),
        _entity("B", text=True),
        _entity("C", facial=True, text=True),
    ]
    relations = [
        _relation("r1", "A", "knows", "B"),
        _relation("r2", "B", "works_with", "C"),
    ]
    return entities, relations


@pytest.fixture
def star_graph():
    """Hub H with five spokes, each spoke pointing at H."""
    entities = [_entity(f"S{i}", text=True) for i in range(1, 6)]
    entities.append(_entity("H", facial=True))
    relations = [_relation(f"r{i}", f"S{i}", "reports_to", "H") for i in range(1, 6)]
    return entities, relations


@pytest.fixture
def mixed_graph():
    """Entities, entity relations and relations about relations, with dates."""
    jan = datetime(2024, 1, 15, tzinfo=timezone.utc)
    mar = datetime(2024, 3, 15, tzinfo=timezone.utc)
    entities = [
        _entity("alice", facial=True, created_at=jan),
        _entity("bob", facial=True, text=True, created_at=jan),
        _entity("carol", text=True, created_at=mar),
        _entity("dave", image=True, created_at=mar),
        _entity("erin", portion=True, created_at=mar),
    ]
    relations = [
        _relation("rel-1", "alice", "knows", "bob", created_at=jan),
        _relation("rel-2", "bob", "knows", "carol", created_at=jan),
        _relation("rel-3", "carol", "met", "dave", created_at=mar),
        _relation("rel-4", "rel-1", "confirmed_by", "erin", subject_is_relation=True, created_at=mar),
    ]
    return entities, relations


@pytest.fixture
def snapshot_file(tmp_path, mixed_graph):
    """The mixed graph written as a snapshot file."""
    entities, relations = mixed_graph
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({
        "entities": [e.to_dict() for e in entities],
        "relations": [r.to_dict() for r in relations],
    }))
    return path


@pytest.fixture
def config():
    """Default configuration without touching the environment."""
    return CaseGraphConfig()
