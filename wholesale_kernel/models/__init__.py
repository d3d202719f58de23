"""SQLAlchemy models."""

from wholesale_kernel.models.snapshot import StoreSnapshot

__all__ = ["StoreSnapshot"]
