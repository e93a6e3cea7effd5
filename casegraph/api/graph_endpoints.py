"""CRUD endpoints for entities and relations."""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from ..errors import GraphNotFoundError
from ..store import IGraphStore
from .dependencies import get_store
from .models import DeleteResponse, EntityCreate, EntityUpdate, RelationCreate, RelationUpdate

logger = structlog.get_logger()

router = APIRouter(tags=["Graph"])


@router.get("/entities", response_model=List[Dict[str, Any]])
async def list_entities(
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    store: IGraphStore = Depends(get_store),
):
    entities = await store.list_entities(limit=limit, offset=offset)
    return [e.to_dict() for e in entities]


@router.post("/entities", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def create_entity(request: EntityCreate, store: IGraphStore = Depends(get_store)):
    """Create an entity. At least one type reference must be set."""
    entity = await store.add_entity(request.to_entity())
    logger.info("entity_created", entity_id=entity.id, types=entity.type_names())
    return entity.to_dict()


@router.get("/entities/{entity_id}", response_model=Dict[str, Any])
async def get_entity(entity_id: str, store: IGraphStore = Depends(get_store)):
    entity = await store.get_entity(entity_id)
    if entity is None:
        raise GraphNotFoundError(f"Entity not found: {entity_id}", resource_type="entity", resource_id=entity_id)
    return entity.to_dict()


@router.patch("/entities/{entity_id}", response_model=Dict[str, Any])
async def update_entity(entity_id: str, request: EntityUpdate, store: IGraphStore = Depends(get_store)):
    """Change an entity's type references. At least one must remain set."""
    entity = await store.update_entity(entity_id, request.changes())
    logger.info("entity_updated", entity_id=entity_id, types=entity.type_names())
    return entity.to_dict()


@router.delete("/entities/{entity_id}", response_model=DeleteResponse)
async def delete_entity(entity_id: str, store: IGraphStore = Depends(get_store)):
    """Delete an entity and every relation depending on it."""
    cascaded = await store.delete_entity(entity_id)
    logger.info("entity_deleted", entity_id=entity_id, cascaded=len(cascaded))
    return DeleteResponse(deleted=entity_id, cascaded_relations=cascaded)


@router.get("/relations", response_model=List[Dict[str, Any]])
async def list_relations(
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    entity_id: Optional[str] = Query(default=None, alias="entityId"),
    predicate: Optional[str] = Query(default=None),
    store: IGraphStore = Depends(get_store),
):
    """List relations, optionally those touching an entity or using a predicate."""
    relations = await store.list_relations(
        limit=limit, offset=offset, entity_id=entity_id, predicate=predicate
    )
    return [r.to_dict() for r in relations]


@router.post("/relations", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def create_relation(request: RelationCreate, store: IGraphStore = Depends(get_store)):
    """Create a relation between entities and/or relations."""
    relation = await store.add_relation(request.to_relation())
    logger.info("relation_created", relation_id=relation.id, predicate=relation.predicate)
    return relation.to_dict()


@router.get("/relations/{relation_id}", response_model=Dict[str, Any])
async def get_relation(relation_id: str, store: IGraphStore = Depends(get_store)):
    relation = await store.get_relation(relation_id)
    if relation is None:
        raise GraphNotFoundError(
            f"Relation not found: {relation_id}", resource_type="relation", resource_id=relation_id
        )
    return relation.to_dict()


@router.patch("/relations/{relation_id}", response_model=Dict[str, Any])
async def update_relation(relation_id: str, request: RelationUpdate, store: IGraphStore = Depends(get_store)):
    """Change a relation's predicate or endpoints."""
    relation = await store.update_relation(relation_id, request.changes())
    logger.info("relation_updated", relation_id=relation_id, fields=sorted(request.changes()))
    return relation.to_dict()


@router.delete("/relations/{relation_id}", response_model=DeleteResponse)
async def delete_relation(relation_id: str, store: IGraphStore = Depends(get_store)):
    """Delete a relation and every relation about it."""
    cascaded = await store.delete_relation(relation_id)
    logger.info("relation_deleted", relation_id=relation_id, cascaded=len(cascaded))
    return DeleteResponse(deleted=relation_id, cascaded_relations=cascaded)
