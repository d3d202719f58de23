"""
wholesale_kernel.services -- write-side services.

Responsibility:
    Imperative shell over the pure domain layer.  Each service runs the
    authorization guard, mutates the ``EntityStore`` in place and records
    one audit entry per command.  The kernel facade wires them together
    and owns persistence.
"""

from wholesale_kernel.services.auditor_service import AuditorService
from wholesale_kernel.services.base import BaseService
from wholesale_kernel.services.order_service import OrderService
from wholesale_kernel.services.org_service import OrgService
from wholesale_kernel.services.product_service import ProductService
from wholesale_kernel.services.user_service import UserService

__all__ = [
    "AuditorService",
    "BaseService",
    "OrderService",
    "OrgService",
    "ProductService",
    "UserService",
]
