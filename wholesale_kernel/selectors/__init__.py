"""Selectors for the wholesale kernel (read side)."""

from wholesale_kernel.selectors.audit_selector import AuditCursor, AuditPage, AuditSelector
from wholesale_kernel.selectors.catalog_selector import CatalogSelector
from wholesale_kernel.selectors.directory_selector import DirectorySelector
from wholesale_kernel.selectors.order_selector import OrderSelector

__all__ = [
    "AuditCursor",
    "AuditPage",
    "AuditSelector",
    "CatalogSelector",
    "DirectorySelector",
    "OrderSelector",
]
