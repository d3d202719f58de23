"""
OrderSelector -- scoped order reads.

Superadmin sees every order; buyer-side callers see their org's orders;
supplier-side callers see their supplier's orders once they have left the
buyer's approval loop.  Anything else sees nothing.
"""

from wholesale_kernel.domain.entities import Order
from wholesale_kernel.domain.order_workflow import BUYER_LOOP_STATUSES
from wholesale_kernel.domain.roles import (
    CallerContext,
    acts_as_buyer,
    acts_as_supplier,
    is_superadmin,
)
from wholesale_kernel.exceptions import OrderNotFoundError
from wholesale_kernel.selectors.base import BaseSelector


class OrderSelector(BaseSelector):
    def is_visible(self, caller: CallerContext, order: Order) -> bool:
        if is_superadmin(caller):
            return True
        if acts_as_buyer(caller):
            return bool(caller.buyer_id) and order.buyer_id == caller.buyer_id
        if acts_as_supplier(caller):
            return (
                bool(caller.supplier_id)
                and order.supplier_id == caller.supplier_id
                and order.status not in BUYER_LOOP_STATUSES
            )
        return False

    def list_orders(self, caller: CallerContext) -> list[Order]:
        return [o for o in self.store.orders if self.is_visible(caller, o)]

    def get_order(self, caller: CallerContext, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: unknown id, or an order ``caller`` cannot see.
        """
        order = self.store.find_order(order_id)
        if order is None or not self.is_visible(caller, order):
            raise OrderNotFoundError(order_id)
        return order
