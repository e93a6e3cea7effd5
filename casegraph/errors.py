"""Error types with context preservation for the case graph."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    operation: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    request_data: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "operation": self.operation,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "request_data": self.request_data,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
        }


class CaseGraphError(Exception):
    """Base exception for all case graph errors."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.cause = cause
        self.severity = severity
        self.category = category
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
            "severity": self.severity.value,
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
        }


class GraphValidationError(CaseGraphError):
    """Data validation error for graph records."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
        )
        self.field = field
        self.value = value


class EntityValidationError(GraphValidationError):
    """Entity record breaks an entity rule such as having a type reference."""


class RelationValidationError(GraphValidationError):
    """Relation record does not have exactly one subject and one object."""


class GraphNotFoundError(CaseGraphError):
    """A referenced entity or relation does not exist."""

    def __init__(
        self,
        message: str,
        resource_type: str,
        resource_id: str,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message,
            context=context or ErrorContext(
                operation="lookup",
                resource_type=resource_type,
                resource_id=resource_id,
            ),
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.NOT_FOUND,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class SnapshotLoadError(CaseGraphError):
    """A snapshot file could not be read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None, cause: Optional[Exception] = None):
        super().__init__(
            message,
            context=ErrorContext(operation="load_snapshot", resource_type="file", resource_id=path),
            cause=cause,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.STORAGE,
        )
        self.path = path


class ConfigurationError(CaseGraphError):
    """Invalid configuration value."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(
            message,
            context=ErrorContext(operation="load_config", resource_id=key),
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
        )
        self.key = key
