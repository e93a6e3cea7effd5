"""API request/response models."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..graph.engine import AnalysisFilters, AnalysisType
from ..graph.models import Entity, Relation
from ..store.networkx_store import new_id


class DateRange(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class FiltersModel(BaseModel):
    """Snapshot narrowing accepted by the analyze endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    entity_ids: Optional[List[str]] = Field(default=None, alias="entityIds")
    relation_ids: Optional[List[str]] = Field(default=None, alias="relationIds")
    entity_types: Optional[List[str]] = Field(default=None, alias="entityTypes")
    date_range: Optional[DateRange] = Field(default=None, alias="dateRange")

    def to_filters(self) -> AnalysisFilters:
        return AnalysisFilters(
            entity_ids=self.entity_ids,
            relation_ids=self.relation_ids,
            entity_types=self.entity_types,
            start=self.date_range.start if self.date_range else None,
            end=self.date_range.end if self.date_range else None,
        )


class AnalyzeRequest(BaseModel):
    """Analysis request."""

    type: AnalysisType = AnalysisType.ALL
    filters: Optional[FiltersModel] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "clusters",
                "filters": {"entityTypes": ["facial"]},
            }
        }
    )


class AnalyzeResponse(BaseModel):
    results: Dict[str, List[Dict[str, Any]]]


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]
    query: str


class LayoutResponse(BaseModel):
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]


class EntityCreate(BaseModel):
    """New entity. At least one type reference is required by the store."""

    id: Optional[str] = None
    type_facial_data_id: Optional[str] = None
    type_text_data_id: Optional[str] = None
    type_image_data_id: Optional[str] = None
    type_image_portion_id: Optional[str] = None

    def to_entity(self) -> Entity:
        return Entity(
            id=self.id or "",
            type_facial_data_id=self.type_facial_data_id or None,
            type_text_data_id=self.type_text_data_id or None,
            type_image_data_id=self.type_image_data_id or None,
            type_image_portion_id=self.type_image_portion_id or None,
        )


class RelationCreate(BaseModel):
    """New relation with exactly one subject and one object reference."""

    id: Optional[str] = None
    predicate: str = ""
    subject_entity_id: Optional[str] = None
    subject_relation_id: Optional[str] = None
    object_entity_id: Optional[str] = None
    object_relation_id: Optional[str] = None

    def to_relation(self) -> Relation:
        """Build the domain relation.

        Raises:
            RelationValidationError: unless each side names exactly one reference
        """
        return Relation.from_record({**self.model_dump(), "id": self.id or new_id()})


class EntityUpdate(BaseModel):
    """Partial entity update. Only fields present in the body are changed."""

    type_facial_data_id: Optional[str] = None
    type_text_data_id: Optional[str] = None
    type_image_data_id: Optional[str] = None
    type_image_portion_id: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RelationUpdate(BaseModel):
    """Partial relation update; explicit nulls clear a reference."""

    predicate: Optional[str] = None
    subject_entity_id: Optional[str] = None
    subject_relation_id: Optional[str] = None
    object_entity_id: Optional[str] = None
    object_relation_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "subject_entity_id": None,
                "subject_relation_id": "b0c1d2e3-0000-4000-8000-000000000001",
            }
        }
    )

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class DeleteResponse(BaseModel):
    deleted: str
    cascaded_relations: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    checks: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class APIError(BaseModel):
    """Standardized error response."""

    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error_code": "VALIDATION_ERROR",
                "message": "At least one entity type must be specified",
                "details": {"field": "type"},
                "request_id": "req_123",
            }
        }
    )
