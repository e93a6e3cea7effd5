"""Graph analytics and layout over entity/relation snapshots."""

from .models import (
    # Core models
    EndpointKind,
    EndpointRef,
    Entity,
    Relation,
    entities_from_records,
    relations_from_records,

    # Derived results
    EntityScore,
    RelationPattern,
    ClusterInfo,
    SuggestedRelation,
    Position,
    NodeKind,
    LayoutNode,
    LayoutEdge,
)

from .importance import analyze_entity_importance
from .patterns import find_relation_patterns
from .clusters import detect_clusters
from .suggestions import suggest_relations
from .search import search_entities
from .layout import LayoutOptions, calculate_graph_layout, build_layout_edges
from .engine import AnalysisType, AnalysisFilters, AnalysisReport, GraphAnalysisEngine

__all__ = [
    # Core models
    "EndpointKind",
    "EndpointRef",
    "Entity",
    "Relation",
    "entities_from_records",
    "relations_from_records",

    # Derived results
    "EntityScore",
    "RelationPattern",
    "ClusterInfo",
    "SuggestedRelation",
    "Position",
    "NodeKind",
    "LayoutNode",
    "LayoutEdge",

    # Analytics
    "analyze_entity_importance",
    "find_relation_patterns",
    "detect_clusters",
    "suggest_relations",
    "search_entities",

    # Layout
    "LayoutOptions",
    "calculate_graph_layout",
    "build_layout_edges",

    # Engine
    "AnalysisType",
    "AnalysisFilters",
    "AnalysisReport",
    "GraphAnalysisEngine",
]
