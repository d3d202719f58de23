"""
Module: wholesale_kernel.db.base
Responsibility: Declarative base for the SQLAlchemy models that persist the
    entity store.  Provides the type annotation map for consistent column
    types.
Architecture position: Kernel > DB.  Lowest-level import target for the
    persistence side.  MUST NOT import from models/, services/, selectors/,
    domain/ or store/.

Invariants enforced:
    - datetime columns are timezone-aware.
    - int maps to BigInteger so snapshot revisions never overflow.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }
