"""
Module: wholesale_kernel.models.snapshot
Responsibility: ORM model for a persisted entity-store document.
Architecture position: Kernel > Models.  Imports only db/base.py.

Invariants enforced:
    - One row per snapshot ``name``; a save overwrites the document and
      bumps ``revision`` by one.
    - ``document`` is the camelCase JSON layout produced by
      ``store.document.to_document``.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from wholesale_kernel.db.base import Base


class StoreSnapshot(Base):
    """Latest saved state of one entity store."""

    __tablename__ = "store_snapshots"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    revision: Mapped[int] = mapped_column(nullable=False, default=1)
    saved_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<StoreSnapshot {self.name} rev={self.revision}>"
