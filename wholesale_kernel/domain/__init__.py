"""
Pure domain layer.

Roles, entities, the order lifecycle and the authorization guard, with NO
dependencies on:
- ORM (SQLAlchemy)
- The entity store
- I/O (except SystemClock)
"""

from wholesale_kernel.domain.authorization import Action, can_perform, check_status_change, require
from wholesale_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from wholesale_kernel.domain.entities import (
    ApprovalStatus,
    AuditAction,
    AuditEntry,
    Buyer,
    BuyerTier,
    Order,
    OrderLine,
    OrderStatusDef,
    Permissions,
    Product,
    ProductStock,
    Supplier,
    TierPrice,
    User,
    compute_order_value,
)
from wholesale_kernel.domain.order_workflow import ORDER_WORKFLOW, OrderStatusId, StatusRanking
from wholesale_kernel.domain.roles import CallerContext, Role, RoleFamily

__all__ = [
    "Action",
    "ApprovalStatus",
    "AuditAction",
    "AuditEntry",
    "Buyer",
    "BuyerTier",
    "CallerContext",
    "Clock",
    "DeterministicClock",
    "ORDER_WORKFLOW",
    "Order",
    "OrderLine",
    "OrderStatusDef",
    "OrderStatusId",
    "Permissions",
    "Product",
    "ProductStock",
    "Role",
    "RoleFamily",
    "StatusRanking",
    "Supplier",
    "SystemClock",
    "TierPrice",
    "User",
    "can_perform",
    "check_status_change",
    "compute_order_value",
    "require",
]
