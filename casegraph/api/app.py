"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import CaseGraphConfig, ConfigManager
from ..errors import CaseGraphError, ErrorCategory, GraphValidationError
from ..graph.engine import GraphAnalysisEngine
from ..store import IGraphStore, NetworkXStore, load_snapshot_file, populate_store
from .analysis_endpoints import router as analysis_router
from .graph_endpoints import router as graph_router
from .models import APIError, HealthResponse

logger = structlog.get_logger()

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def _error_response(request: Request, status_code: int, error_code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request.headers.get("X-Request-ID"),
        ).model_dump(mode="json"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the configured snapshot into a store that was not injected."""
    config: CaseGraphConfig = app.state.config

    if not app.state.store_injected and config.snapshot_path:
        entities, relations = load_snapshot_file(config.snapshot_path)
        entity_count, relation_count = await populate_store(app.state.store, entities, relations)
        logger.info(
            "snapshot_loaded",
            path=config.snapshot_path,
            entities=entity_count,
            relations=relation_count,
        )

    yield

    logger.info("shutdown")


def create_app(
    store: Optional[IGraphStore] = None,
    config: Optional[CaseGraphConfig] = None,
    title: str = "CaseGraph API",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Store to serve; a fresh in-memory store when omitted
        config: Settings; loaded from file/environment when omitted
        title: OpenAPI title
    """
    config = config or ConfigManager().load()

    app = FastAPI(
        title=title,
        version=__version__,
        description="Graph analytics and layout over entities and relations",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.config = config
    app.state.store = store or NetworkXStore()
    app.state.store_injected = store is not None
    app.state.engine = GraphAnalysisEngine(
        min_confidence=config.analysis.min_confidence,
        suggestion_limit=config.analysis.suggestion_limit,
        collect_metrics=config.analysis.collect_metrics,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error_response(request, exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))

    @app.exception_handler(CaseGraphError)
    async def graph_exception_handler(request: Request, exc: CaseGraphError):
        status_code = STATUS_BY_CATEGORY.get(exc.category, status.HTTP_500_INTERNAL_SERVER_ERROR)
        details = None
        if isinstance(exc, GraphValidationError) and exc.field:
            details = {"field": exc.field}
        elif exc.context and exc.context.resource_id:
            details = {"resource_type": exc.context.resource_type, "resource_id": exc.context.resource_id}

        if status_code >= 500:
            logger.error("request_failed", path=request.url.path, **exc.to_dict())
        else:
            logger.info("request_rejected", path=request.url.path, error=exc.message)

        return _error_response(request, status_code, f"{exc.category.value.upper()}_ERROR", exc.message, details)

    @app.get("/health", response_model=HealthResponse, tags=["System"], summary="Health check")
    async def health_check(request: Request):
        """Check the store and report engine metrics."""
        entities, relations = await request.app.state.store.snapshot()
        checks = {
            "api": {"status": "healthy"},
            "store": {
                "status": "healthy",
                "type": type(request.app.state.store).__name__,
                "entities": len(entities),
                "relations": len(relations),
            },
            "engine": {"status": "healthy", **request.app.state.engine.get_metrics()},
        }
        return HealthResponse(status="healthy", version=__version__, checks=checks)

    app.include_router(analysis_router)
    app.include_router(graph_router)

    return app
