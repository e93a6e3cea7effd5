"""Request dependencies resolving application state."""

from fastapi import Request

from ..config import CaseGraphConfig
from ..graph.engine import GraphAnalysisEngine
from ..store import IGraphStore


def get_store(request: Request) -> IGraphStore:
    return request.app.state.store


def get_engine(request: Request) -> GraphAnalysisEngine:
    return request.app.state.engine


def get_config(request: Request) -> CaseGraphConfig:
    return request.app.state.config
