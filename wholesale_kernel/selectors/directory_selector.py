"""DirectorySelector -- users, suppliers and buyer orgs."""

from wholesale_kernel.domain.entities import Buyer, Supplier, User
from wholesale_kernel.domain.roles import (
    CallerContext,
    acts_as_buyer,
    acts_as_supplier,
    has_supplier_scope,
    is_superadmin,
)
from wholesale_kernel.selectors.base import BaseSelector


class DirectorySelector(BaseSelector):
    def list_users(self, caller: CallerContext) -> list[User]:
        if is_superadmin(caller):
            return list(self.store.users)
        if acts_as_buyer(caller) and caller.buyer_id:
            return [u for u in self.store.users if u.buyer_id == caller.buyer_id]
        if acts_as_supplier(caller) and caller.supplier_id:
            return [u for u in self.store.users if u.supplier_id == caller.supplier_id]
        return []

    def list_suppliers(self, caller: CallerContext) -> list[Supplier]:
        """Supplier-family callers see their own supplier; others see all."""
        if caller.is_anonymous:
            return []
        if has_supplier_scope(caller):
            return [s for s in self.store.suppliers if s.id == caller.supplier_id]
        return list(self.store.suppliers)

    def list_buyers(self, caller: CallerContext) -> list[Buyer]:
        """Buyer-side callers see their own org; supplier side and admins see all."""
        if caller.is_anonymous:
            return []
        if acts_as_buyer(caller):
            return [b for b in self.store.buyers if b.id == caller.buyer_id]
        return list(self.store.buyers)
