"""Entity store, persisted document layout, migration and snapshot backends."""

from wholesale_kernel.store.backends import (
    InMemorySnapshotBackend,
    SnapshotBackend,
    SqlSnapshotBackend,
)
from wholesale_kernel.store.entity_store import EntityStore, StoreState
from wholesale_kernel.store.migration import MigrationReport, migrate_document

__all__ = [
    "EntityStore",
    "InMemorySnapshotBackend",
    "MigrationReport",
    "SnapshotBackend",
    "SqlSnapshotBackend",
    "StoreState",
    "migrate_document",
]
