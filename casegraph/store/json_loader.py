"""Load and save entity/relation snapshots as JSON files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from ..errors import CaseGraphError, SnapshotLoadError
from ..graph.models import Entity, Relation, entities_from_records, relations_from_records
from ..logging_config import log_error, log_event
from .interfaces import IGraphStore

logger = logging.getLogger(__name__)


def parse_snapshot(data: Dict[str, Any]) -> Tuple[List[Entity], List[Relation]]:
    """Convert ``{"entities": [...], "relations": [...]}`` into records.

    Anomalous relation rows are skipped.

    Raises:
        SnapshotLoadError: if the sections are not lists of JSON objects
    """
    if not isinstance(data, dict):
        raise SnapshotLoadError("Snapshot must be a JSON object")

    entity_rows = data.get("entities", [])
    relation_rows = data.get("relations", [])
    if not isinstance(entity_rows, list) or not isinstance(relation_rows, list):
        raise SnapshotLoadError("Snapshot 'entities' and 'relations' must be lists")

    for section, rows in (("entities", entity_rows), ("relations", relation_rows)):
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise SnapshotLoadError(
                    f"Snapshot '{section}' row {index} must be a JSON object, got {type(row).__name__}"
                )

    return entities_from_records(entity_rows), relations_from_records(relation_rows)


def load_snapshot_file(path: Union[str, Path]) -> Tuple[List[Entity], List[Relation]]:
    """Read a snapshot file.

    Raises:
        SnapshotLoadError: if the file is missing or not a valid snapshot
    """
    file_path = Path(path)
    if not file_path.exists():
        raise SnapshotLoadError(f"Snapshot file not found: {file_path}", path=str(file_path))

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        load_error = SnapshotLoadError(f"Invalid JSON in {file_path}: {e}", path=str(file_path), cause=e)
        log_error(__name__, "snapshot_invalid_json", load_error, path=str(file_path), json_line=e.lineno)
        raise load_error

    entities, relations = parse_snapshot(data)
    log_event(
        __name__,
        "snapshot_loaded",
        path=str(file_path),
        entity_count=len(entities),
        relation_count=len(relations),
    )
    return entities, relations


def save_snapshot_file(
    path: Union[str, Path],
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> None:
    """Write a snapshot file readable by :func:`load_snapshot_file`."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "entities": [e.to_dict() for e in entities],
                "relations": [r.to_dict() for r in relations],
            },
            f,
            indent=2,
        )


async def populate_store(
    store: IGraphStore,
    entities: Sequence[Entity],
    relations: Sequence[Relation],
) -> Tuple[int, int]:
    """Insert a snapshot into ``store``.

    Relations are inserted in dependency order so a relation about another
    relation can appear before it in the file. Records the store rejects
    are logged and skipped.

    Returns:
        Number of entities and relations inserted
    """
    entity_count = 0
    for entity in entities:
        try:
            await store.add_entity(entity)
            entity_count += 1
        except CaseGraphError as e:
            logger.warning(f"Skipping entity {entity.id}: {e.message}")

    pending = list(relations)
    relation_count = 0
    while pending:
        deferred = []
        for relation in pending:
            try:
                await store.add_relation(relation)
                relation_count += 1
            except CaseGraphError as e:
                deferred.append((relation, e))

        if len(deferred) == len(pending):
            for relation, error in deferred:
                logger.warning(f"Skipping relation {relation.id}: {error.message}")
            break
        pending = [relation for relation, _ in deferred]

    log_event(
        __name__,
        "store_populated",
        entity_count=entity_count,
        relation_count=relation_count,
        skipped=len(entities) + len(relations) - entity_count - relation_count,
    )
    return entity_count, relation_count
