"""Analysis, search and layout endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import CaseGraphConfig
from ..graph.engine import GraphAnalysisEngine
from ..graph.importance import analyze_entity_importance
from ..graph.layout import LayoutOptions, build_layout_edges, calculate_graph_layout
from ..graph.search import search_entities
from ..logging_config import log_performance
from ..store import IGraphStore
from .dependencies import get_config, get_engine, get_store
from .models import AnalyzeRequest, AnalyzeResponse, LayoutResponse, SearchResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/ai", tags=["Analysis"])

MAX_QUERY_LENGTH = 1000


@router.post("/analyze", response_model=AnalyzeResponse, summary="Run graph analyses")
async def analyze(
    request: AnalyzeRequest,
    store: IGraphStore = Depends(get_store),
    engine: GraphAnalysisEngine = Depends(get_engine),
):
    """Run one analysis, or all of them, over the current store contents."""
    entities, relations = await store.snapshot()
    filters = request.filters.to_filters() if request.filters else None

    report = engine.run(request.type, entities, relations, filters=filters)
    logger.info(
        "analysis_completed",
        type=request.type.value,
        entities=len(entities),
        relations=len(relations),
        duration_ms=round(report.duration_ms, 3),
    )
    return AnalyzeResponse(results=report.to_dict())


@router.get("/search", response_model=SearchResponse, summary="Keyword search over entities")
async def search(
    q: Optional[str] = Query(default=None, max_length=MAX_QUERY_LENGTH, description="Case-insensitive search text"),
    limit: Optional[int] = Query(default=None),
    include_relations: bool = Query(default=True, alias="includeRelations"),
    store: IGraphStore = Depends(get_store),
    config: CaseGraphConfig = Depends(get_config),
):
    """Entities ranked by id, type keyword and predicate matches."""
    if not q or not q.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")

    if limit is None:
        limit = config.api.search_default_limit
    if not 1 <= limit <= config.api.search_max_limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"limit must be between 1 and {config.api.search_max_limit}",
        )

    entities, relations = await store.snapshot()
    matches = search_entities(entities, relations if include_relations else [], q)

    logger.info("search_completed", query=q, matches=len(matches), limit=limit)
    return SearchResponse(results=[e.to_dict() for e in matches[:limit]], query=q)


@router.get("/layout", response_model=LayoutResponse, summary="Positioned diagram nodes and edges")
async def layout(
    node_spacing: Optional[float] = Query(default=None, gt=0, alias="nodeSpacing"),
    level_height: Optional[float] = Query(default=None, gt=0, alias="levelHeight"),
    component_spacing: Optional[float] = Query(default=None, gt=0, alias="componentSpacing"),
    store: IGraphStore = Depends(get_store),
    config: CaseGraphConfig = Depends(get_config),
):
    """Lay out every entity and relation of the store."""
    entities, relations = await store.snapshot()
    options = LayoutOptions(
        node_spacing=config.layout.node_spacing,
        level_height=config.layout.level_height,
        component_spacing=config.layout.component_spacing,
    ).merged(
        node_spacing=node_spacing,
        level_height=level_height,
        component_spacing=component_spacing,
    )

    with log_performance(__name__, "layout", entities=len(entities), relations=len(relations)):
        scores = analyze_entity_importance(entities, relations)
        nodes = calculate_graph_layout(entities, relations, scores, options)
        edges = build_layout_edges(relations, nodes)

    return LayoutResponse(
        nodes=[node.to_dict() for node in nodes],
        edges=[edge.to_dict() for edge in edges],
    )
