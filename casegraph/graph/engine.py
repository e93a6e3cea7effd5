"""Dispatch of graph analyses over a snapshot."""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .clusters import detect_clusters
from .importance import analyze_entity_importance
from .models import Entity, Relation, as_utc
from .patterns import find_relation_patterns
from .suggestions import DEFAULT_LIMIT, DEFAULT_MIN_CONFIDENCE, suggest_relations

logger = logging.getLogger(__name__)


class AnalysisType(str, Enum):
    """Analyses that can be requested together or one at a time."""
    ALL = "all"
    IMPORTANCE = "importance"
    PATTERNS = "patterns"
    CLUSTERS = "clusters"
    SUGGESTIONS = "suggestions"


RESULT_KEYS = {
    AnalysisType.IMPORTANCE: "entityScores",
    AnalysisType.PATTERNS: "relationPatterns",
    AnalysisType.CLUSTERS: "clusters",
    AnalysisType.SUGGESTIONS: "suggestedRelations",
}


@dataclass
class AnalysisFilters:
    """Narrows a snapshot before analysis. Empty filters keep everything."""
    entity_ids: Optional[List[str]] = None
    relation_ids: Optional[List[str]] = None
    entity_types: Optional[List[str]] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def is_empty(self) -> bool:
        return not any([self.entity_ids, self.relation_ids, self.entity_types, self.start, self.end])


def _in_range(value: Optional[datetime], start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is None and end is None:
        return True
    if value is None:
        return False
    value, start, end = as_utc(value), as_utc(start), as_utc(end)
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def apply_filters(
    entities: Sequence[Entity],
    relations: Sequence[Relation],
    filters: Optional[AnalysisFilters],
) -> Tuple[List[Entity], List[Relation]]:
    """Apply ``filters`` to a snapshot.

    A relation survives only if it passes the relation filters and each of
    its entity endpoints survived the entity filters.
    """
    if filters is None or filters.is_empty():
        return list(entities), list(relations)

    entity_ids = set(filters.entity_ids or [])
    relation_ids = set(filters.relation_ids or [])
    entity_types = set(filters.entity_types or [])

    kept_entities = [
        e for e in entities
        if (not entity_ids or e.id in entity_ids)
        and (not entity_types or entity_types.intersection(e.type_names()))
        and _in_range(e.created_at, filters.start, filters.end)
    ]
    kept_ids = {e.id for e in kept_entities}
    all_ids = {e.id for e in entities}

    def endpoint_kept(entity_id: Optional[str]) -> bool:
        # Dangling endpoints are left for the analyses to skip
        return entity_id is None or entity_id not in all_ids or entity_id in kept_ids

    kept_relations = [
        r for r in relations
        if (not relation_ids or r.id in relation_ids)
        and _in_range(r.created_at, filters.start, filters.end)
        and endpoint_kept(r.subject_entity_id)
        and endpoint_kept(r.object_entity_id)
    ]
    return kept_entities, kept_relations


@dataclass
class AnalysisReport:
    """Results of one engine run."""
    analysis_type: AnalysisType
    results: Dict[str, List[Any]] = field(default_factory=dict)
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialise results to the JSON shape returned by the API."""
        return {
            key: [item.to_dict() for item in items]
            for key, items in self.results.items()
        }


class GraphAnalysisEngine:
    """Runs the requested analyses over an entity/relation snapshot."""

    def __init__(
        self,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        suggestion_limit: int = DEFAULT_LIMIT,
        collect_metrics: bool = False,
    ):
        """Initialize analysis engine.

        Args:
            min_confidence: Threshold passed to the relation suggester
            suggestion_limit: Cap on returned suggestions
            collect_metrics: Whether to record per-type request counts and timing
        """
        self.min_confidence = min_confidence
        self.suggestion_limit = suggestion_limit
        self.collect_metrics = collect_metrics

        self._metrics = {
            "total_requests": 0,
            "total_duration_ms": 0.0,
            "requests_by_type": defaultdict(int),
        }

    def run(
        self,
        analysis_type: AnalysisType,
        entities: Sequence[Entity],
        relations: Sequence[Relation],
        filters: Optional[AnalysisFilters] = None,
    ) -> AnalysisReport:
        """Execute one analysis request.

        Args:
            analysis_type: Which analysis to run, or ``ALL``
            entities: Entity snapshot
            relations: Relation snapshot
            filters: Optional snapshot narrowing

        Returns:
            Report containing only the requested result keys
        """
        start = time.perf_counter()
        analysis_type = AnalysisType(analysis_type)
        entities, relations = apply_filters(entities, relations, filters)

        report = AnalysisReport(analysis_type=analysis_type)
        if self._wants(analysis_type, AnalysisType.IMPORTANCE):
            report.results[RESULT_KEYS[AnalysisType.IMPORTANCE]] = analyze_entity_importance(entities, relations)
        if self._wants(analysis_type, AnalysisType.PATTERNS):
            report.results[RESULT_KEYS[AnalysisType.PATTERNS]] = find_relation_patterns(relations)
        if self._wants(analysis_type, AnalysisType.CLUSTERS):
            report.results[RESULT_KEYS[AnalysisType.CLUSTERS]] = detect_clusters(entities, relations)
        if self._wants(analysis_type, AnalysisType.SUGGESTIONS):
            report.results[RESULT_KEYS[AnalysisType.SUGGESTIONS]] = suggest_relations(
                entities,
                relations,
                min_confidence=self.min_confidence,
                limit=self.suggestion_limit,
            )

        report.duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Analysis '{analysis_type.value}' over {len(entities)} entities and "
            f"{len(relations)} relations took {report.duration_ms:.2f}ms"
        )

        if self.collect_metrics:
            self._metrics["total_requests"] += 1
            self._metrics["total_duration_ms"] += report.duration_ms
            self._metrics["requests_by_type"][analysis_type.value] += 1

        return report

    @staticmethod
    def _wants(requested: AnalysisType, candidate: AnalysisType) -> bool:
        return requested is AnalysisType.ALL or requested is candidate

    def get_metrics(self) -> Dict[str, Any]:
        """Collected metrics; empty counts when collection is disabled."""
        total = self._metrics["total_requests"]
        return {
            "total_requests": total,
            "total_duration_ms": self._metrics["total_duration_ms"],
            "average_duration_ms": self._metrics["total_duration_ms"] / total if total else 0.0,
            "requests_by_type": dict(self._metrics["requests_by_type"]),
        }
