"""
AuditSelector -- scoped, cursor-paginated reads of the audit log.

Visibility is applied first, then the optional ``buyer_id`` /
``supplier_id`` filters, then the page slice.  Pages are slices of the
current log: entries written between two calls shift later pages.
"""

from __future__ import annotations

from dataclasses import dataclass

from wholesale_kernel.domain.entities import AuditEntry
from wholesale_kernel.domain.roles import (
    CallerContext,
    acts_as_buyer,
    acts_as_supplier,
    is_superadmin,
)
from wholesale_kernel.exceptions import ValidationError
from wholesale_kernel.selectors.base import BaseSelector
from wholesale_kernel.store.entity_store import EntityStore

DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class AuditCursor:
    """Opaque position in the newest-first log."""

    index: int


@dataclass(frozen=True)
class AuditPage:
    items: tuple[AuditEntry, ...]
    next_cursor: AuditCursor | None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


class AuditSelector(BaseSelector):
    def __init__(self, store: EntityStore, page_size: int = DEFAULT_PAGE_SIZE):
        super().__init__(store)
        self.page_size = page_size

    def visible_entries(
        self,
        caller: CallerContext,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
    ) -> list[AuditEntry]:
        """Entries ``caller`` may see, newest first, narrowed by the filters."""
        if is_superadmin(caller):
            entries = list(self.store.audit_logs)
        elif acts_as_buyer(caller) and caller.buyer_id:
            entries = [e for e in self.store.audit_logs if e.buyer_id == caller.buyer_id]
        elif acts_as_supplier(caller) and caller.supplier_id:
            entries = [e for e in self.store.audit_logs if e.supplier_id == caller.supplier_id]
        else:
            return []

        if buyer_id:
            entries = [e for e in entries if e.buyer_id == buyer_id]
        if supplier_id:
            entries = [e for e in entries if e.supplier_id == supplier_id]
        return entries

    def list_page(
        self,
        caller: CallerContext,
        cursor: AuditCursor | int | None = None,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
    ) -> AuditPage:
        """
        One page of visible entries starting at ``cursor``.

        Raises:
            ValidationError: negative cursor index.
        """
        start = cursor.index if isinstance(cursor, AuditCursor) else (cursor or 0)
        if start < 0:
            raise ValidationError(f"Cursor must not be negative, got {start}", field="cursor")

        entries = self.visible_entries(caller, buyer_id, supplier_id)
        end = start + self.page_size
        next_cursor = AuditCursor(end) if end < len(entries) else None
        return AuditPage(items=tuple(entries[start:end]), next_cursor=next_cursor)
