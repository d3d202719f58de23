"""CatalogSelector -- products, order status catalog and buyer tiers."""

from wholesale_kernel.domain.entities import BuyerTier, OrderStatusDef, Product
from wholesale_kernel.domain.roles import (
    CallerContext,
    acts_as_buyer,
    acts_as_supplier,
    is_superadmin,
)
from wholesale_kernel.selectors.base import BaseSelector


class CatalogSelector(BaseSelector):
    def list_products(self, caller: CallerContext) -> list[Product]:
        """Buyers browse every product; suppliers see their own catalog."""
        if is_superadmin(caller) or acts_as_buyer(caller):
            return list(self.store.products)
        if acts_as_supplier(caller) and caller.supplier_id:
            return [p for p in self.store.products if p.supplier_id == caller.supplier_id]
        return []

    def list_order_statuses(self) -> list[OrderStatusDef]:
        """Catalog entries in display order; ties keep insertion order."""
        return sorted(self.store.order_statuses, key=lambda s: s.order)

    def list_buyer_tiers(self) -> list[BuyerTier]:
        return list(self.store.buyer_tiers)
