"""Tests for the NetworkX entity/relation store."""

import pytest
import pytest_asyncio

from casegraph.errors import EntityValidationError, GraphNotFoundError, RelationValidationError
from casegraph.graph.models import Entity
from casegraph.store import NetworkXStore, populate_store

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


@pytest.fixture
def store():
    return NetworkXStore()


@pytest_asyncio.fixture
async def loaded_store(store, mixed_graph):
    entities, relations = mixed_graph
    await populate_store(store, entities, relations)
    return store


class TestEntities:
    """Test entity operations."""

    async def test_add_and_get(self, store, make_entity):
        await store.add_entity(make_entity("a", text=True))

        entity = await store.get_entity("a")

        assert entity.id == "a"
        assert entity.created_at is not None

    async def test_generates_id(self, store):
        entity = await store.add_entity(Entity(id="", type_text_data_id="t1"))

        assert entity.id
        assert await store.get_entity(entity.id) == entity

    async def test_requires_a_type(self, store):
        with pytest.raises(EntityValidationError) as exc_info:
            await store.add_entity(Entity(id="a"))

        assert exc_info.value.message == "At least one entity type must be specified"

    async def test_duplicate_id(self, store, make_entity):
        await store.add_entity(make_entity("a", text=True))

        with pytest.raises(EntityValidationError):
            await store.add_entity(make_entity("a", facial=True))

    async def test_get_missing(self, store):
        assert await store.get_entity("nope") is None

    async def test_list_pagination(self, loaded_store):
        entities = await loaded_store.list_entities(limit=2, offset=1)

        assert [e.id for e in entities] == ["bob", "carol"]

    async def test_relation_id_is_not_an_entity(self, loaded_store):
        assert await loaded_store.get_entity("rel-1") is None


class TestRelations:
    """Test relation operations."""

    async def test_add_relation(self, store, make_entity, make_relation):
        await store.add_entity(make_entity("a", text=True))
        await store.add_entity(make_entity("b", text=True))

        relation = await store.add_relation(make_relation("r1", "a", "knows", "b"))

        assert relation.created_at is not None
        assert (await store.get_relation("r1")).predicate == "knows"

    async def test_missing_endpoint(self, store, make_entity, make_relation):
        await store.add_entity(make_entity("a", text=True))

        with pytest.raises(GraphNotFoundError) as exc_info:
            await store.add_relation(make_relation("r1", "a", "knows", "ghost"))

        assert exc_info.value.resource_id == "ghost"

    async def test_endpoint_kind_must_match(self, loaded_store, make_relation):
        with pytest.raises(GraphNotFoundError):
            await loaded_store.add_relation(make_relation("r9", "rel-1", "about", "alice"))

    async def test_empty_predicate(self, loaded_store, make_relation):
        with pytest.raises(RelationValidationError):
            await loaded_store.add_relation(make_relation("r9", "alice", "  ", "bob"))

    async def test_relation_about_relation(self, loaded_store):
        relation = await loaded_store.get_relation("rel-4")

        assert relation.subject_relation_id == "rel-1"

    async def test_list_filters(self, loaded_store):
        by_entity = await loaded_store.list_relations(entity_id="bob")
        by_predicate = await loaded_store.list_relations(predicate="knows", limit=1)

        assert [r.id for r in by_entity] == ["rel-1", "rel-2"]
        assert [r.id for r in by_predicate] == ["rel-1"]


class TestUpdates:
    """Test in-place updates."""

    async def test_update_entity_types(self, loaded_store):
        updated = await loaded_store.update_entity("dave", {"type_text_data_id": "text-dave"})

        assert updated.type_names() == ["text", "image"]
        assert (await loaded_store.get_entity("dave")).has_text_data

    async def test_update_entity_unknown_field(self, loaded_store):
        with pytest.raises(EntityValidationError) as exc_info:
            await loaded_store.update_entity("dave", {"id": "other"})

        assert exc_info.value.field == "id"

    async def test_update_relation_rewires_edges(self, loaded_store):
        before = await loaded_store.get_relation("rel-3")

        updated = await loaded_store.update_relation("rel-3", {"object_entity_id": "erin"})

        assert updated.object_entity_id == "erin"
        assert updated.created_at == before.created_at
        assert await loaded_store.delete_entity("dave") == []
        assert sorted(await loaded_store.delete_entity("erin")) == ["rel-3", "rel-4"]

    async def test_update_relation_self_reference(self, loaded_store):
        with pytest.raises(RelationValidationError):
            await loaded_store.update_relation("rel-4", {"subject_relation_id": "rel-4"})

        assert (await loaded_store.get_relation("rel-4")).subject_relation_id == "rel-1"

    async def test_update_relation_empty_predicate(self, loaded_store):
        with pytest.raises(RelationValidationError):
            await loaded_store.update_relation("rel-1", {"predicate": "  "})

    async def test_update_missing_relation(self, store):
        with pytest.raises(GraphNotFoundError):
            await store.update_relation("nope", {"predicate": "p"})


class TestDeletion:
    """Test cascading deletes."""

    async def test_delete_entity_cascades(self, loaded_store):
        removed = await loaded_store.delete_entity("alice")

        # rel-4 is about rel-1, which references alice
        assert removed == ["rel-1", "rel-4"]
        entities, relations = await loaded_store.snapshot()
        assert "alice" not in [e.id for e in entities]
        assert [r.id for r in relations] == ["rel-2", "rel-3"]

    async def test_delete_relation_cascades(self, loaded_store):
        removed = await loaded_store.delete_relation("rel-1")

        assert removed == ["rel-4"]
        assert await loaded_store.get_entity("erin") is not None

    async def test_delete_missing(self, store):
        with pytest.raises(GraphNotFoundError):
            await store.delete_entity("nope")

    async def test_clear(self, loaded_store):
        await loaded_store.clear()

        assert await loaded_store.snapshot() == ([], [])


class TestExport:
    """Test GraphML export."""

    async def test_to_graphml(self, loaded_store, tmp_path):
        path = tmp_path / "graph.graphml"

        loaded_store.to_graphml(str(path))

        content = path.read_text()
        assert "rel-4" in content
        assert "confirmed_by" in content
