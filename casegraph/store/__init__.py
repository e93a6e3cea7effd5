"""Entity/relation stores feeding the analytics."""

from .interfaces import IGraphStore
from .networkx_store import NetworkXStore, new_id
from .json_loader import load_snapshot_file, parse_snapshot, populate_store, save_snapshot_file

__all__ = [
    "IGraphStore",
    "NetworkXStore",
    "new_id",
    "load_snapshot_file",
    "parse_snapshot",
    "populate_store",
    "save_snapshot_file",
]
