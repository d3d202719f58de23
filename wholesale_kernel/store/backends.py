"""
Snapshot backends.

Responsibility:
    Load and save the whole store document.  The kernel talks to a
    ``SnapshotBackend`` and does not know whether the document lives in
    memory or in a database row.

Failure modes:
    - ``SqlSnapshotBackend`` converts ``SQLAlchemyError`` into
      ``PersistenceError``; the kernel then restores its pre-mutation state.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from wholesale_kernel.db.engine import session_scope
from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.exceptions import PersistenceError
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.models.snapshot import StoreSnapshot

logger = get_logger("store.backends")


class SnapshotBackend(Protocol):
    def load(self) -> dict[str, Any] | None:
        """The last saved document, or None if nothing was saved yet."""
        ...

    def save(self, document: dict[str, Any]) -> None:
        ...


class InMemorySnapshotBackend:
    """Keeps the last saved document in process memory."""

    def __init__(self, document: dict[str, Any] | None = None):
        self._document = copy.deepcopy(document) if document is not None else None
        self.save_count = 0

    def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._document)

    def save(self, document: dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)
        self.save_count += 1


class SqlSnapshotBackend:
    """
    Stores the document as one ``StoreSnapshot`` row per snapshot name.

    Guarantees:
        - Each save commits in its own transaction and bumps ``revision``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        snapshot_name: str = "default",
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._name = snapshot_name
        self._clock = clock or SystemClock()

    def load(self) -> dict[str, Any] | None:
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(StoreSnapshot, self._name)
                return copy.deepcopy(row.document) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError("snapshot load", str(exc)) from exc

    def save(self, document: dict[str, Any]) -> None:
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(StoreSnapshot, self._name)
                if row is None:
                    row = StoreSnapshot(
                        name=self._name,
                        document=document,
                        revision=1,
                        saved_at=self._clock.now(),
                    )
                    session.add(row)
                else:
                    row.document = document
                    row.revision += 1
                    row.saved_at = self._clock.now()
                revision = row.revision
        except SQLAlchemyError as exc:
            raise PersistenceError("snapshot save", str(exc)) from exc

        logger.debug(
            "snapshot_saved",
            extra={"snapshot_name": self._name, "revision": revision},
        )
