"""Store interface supplying entity/relation snapshots."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..graph.models import Entity, Relation


class IGraphStore(ABC):
    """Interface for entity/relation stores."""

    @abstractmethod
    async def add_entity(self, entity: Entity) -> Entity:
        """Add entity to the store."""
        pass

    @abstractmethod
    async def add_relation(self, relation: Relation) -> Relation:
        """Add relation to the store."""
        pass

    @abstractmethod
    async def get_entity(self, entity_id: str) -> Optional[Entity]:
        """Get entity by ID."""
        pass

    @abstractmethod
    async def get_relation(self, relation_id: str) -> Optional[Relation]:
        """Get relation by ID."""
        pass

    @abstractmethod
    async def list_entities(self, limit: Optional[int] = None, offset: int = 0) -> List[Entity]:
        """List entities in insertion order."""
        pass

    @abstractmethod
    async def list_relations(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        entity_id: Optional[str] = None,
        predicate: Optional[str] = None,
    ) -> List[Relation]:
        """List relations with optional filters."""
        pass

    @abstractmethod
    async def update_entity(self, entity_id: str, changes: Dict[str, Any]) -> Entity:
        """Apply field changes to an entity and return the updated record."""
        pass

    @abstractmethod
    async def update_relation(self, relation_id: str, changes: Dict[str, Any]) -> Relation:
        """Apply field changes to a relation and return the updated record."""
        pass

    @abstractmethod
    async def delete_entity(self, entity_id: str) -> List[str]:
        """Delete entity and every relation depending on it."""
        pass

    @abstractmethod
    async def delete_relation(self, relation_id: str) -> List[str]:
        """Delete relation and every relation depending on it."""
        pass

    @abstractmethod
    async def snapshot(self) -> Tuple[List[Entity], List[Relation]]:
        """Full copy of all entities and relations."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove all data."""
        pass
