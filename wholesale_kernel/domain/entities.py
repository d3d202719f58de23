"""
Entity types (``wholesale_kernel.domain.entities``).

Responsibility
--------------
Plain dataclasses for every collection the entity store holds: users,
suppliers, buyer orgs and tiers, products, orders, the order status catalog
and audit entries.

Architecture position
---------------------
**Kernel domain layer**.  ZERO I/O.  Persistence shape (camelCase keys,
Decimal-as-string) lives in ``store/document.py``, not here.

Invariants enforced
-------------------
* ``OrderLine.line_total`` defaults to ``quantity * unit_price``.
* ``compute_order_value`` is the single definition of an order's value:
  the sum of its lines' ``line_total``.
* Money is ``Decimal``.  NEVER float.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable

from wholesale_kernel.domain.roles import Role


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """Coerce int/str/Decimal input to Decimal.

    Floats go through ``str`` so ``0.1`` stays ``0.1``.

    Raises:
        ValueError: value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got bool")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from exc


def to_quantity(value: Any) -> int:
    """Coerce a line quantity to int.  Fractional values are rejected, not truncated.

    Raises:
        ValueError: non-numeric, non-finite or fractional value.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = to_decimal(value, "quantity")
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"quantity must be a whole number, got {value!r}")
    return int(number)


class ApprovalStatus(str, Enum):
    """Buyer-internal sign-off axis of an order."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class AuditAction(str, Enum):
    """Types of auditable actions.

    Contract: every state-changing kernel operation records exactly one
    entry with one of these actions.
    """

    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_DELETED = "order.deleted"
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_DUPLICATED = "order.duplicated"
    ORDER_STATUS_ADDED = "order.status_added"

    PRODUCT_CREATED = "product.created"
    PRODUCT_UPDATED = "product.updated"
    PRODUCT_DELETED = "product.deleted"

    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"

    SUPPLIER_CREATED = "supplier.created"
    SUPPLIER_UPDATED = "supplier.updated"
    SUPPLIER_DELETED = "supplier.deleted"

    BUYER_CREATED = "buyer.created"
    BUYER_UPDATED = "buyer.updated"
    BUYER_DELETED = "buyer.deleted"

    AUDIT_EXPORTED = "audit.exported"


# ---------------------------------------------------------------------------
# Identity and organizations
# ---------------------------------------------------------------------------


@dataclass
class Permissions:
    view_only: bool = False
    can_order: bool = False
    can_approve: bool = False


@dataclass
class User:
    id: str
    name: str
    email: str
    role: Role
    supplier_id: str | None = None
    buyer_id: str | None = None
    permissions: Permissions | None = None
    password_hash: str | None = None


@dataclass
class Supplier:
    id: str
    name: str
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    region: str | None = None
    website: str | None = None
    rating: Decimal | None = None


@dataclass
class BuyerTier:
    id: str
    name: str
    multiplier: Decimal = Decimal("1")
    description: str | None = None
    default_payment_terms: str | None = None


@dataclass
class Buyer:
    id: str
    name: str
    created_at: datetime
    price_tier_id: str
    payment_terms: str
    credit_limit: Decimal = Decimal("0")
    credit_used: Decimal = Decimal("0")
    channel: str | None = None
    region: str | None = None
    website: str | None = None
    tags: list[str] = field(default_factory=list)
    owner_id: str | None = None
    health: str | None = None
    last_order_date: str | None = None


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass
class ProductStock:
    stock_level: int = 0
    min_threshold: int = 0
    reserved: int = 0
    lead_time_days: int | None = None


@dataclass
class TierPrice:
    tier_id: str
    price: Decimal


@dataclass
class Product:
    id: str
    supplier_id: str
    name: str
    sku: str
    base_price: Decimal
    currency: str = "USD"
    active: bool = True
    stock: ProductStock = field(default_factory=ProductStock)
    tier_prices: list[TierPrice] = field(default_factory=list)
    description: str | None = None
    origin_country: str | None = None
    category: str | None = None
    images: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@dataclass
class OrderLine:
    product_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    @classmethod
    def from_input(cls, data: OrderLine | dict[str, Any]) -> OrderLine:
        """Build a line from caller input; a missing ``line_total`` is
        ``quantity * unit_price``.

        Raises:
            ValueError: missing product id, non-numeric amounts or a
                fractional quantity.
        """
        if isinstance(data, OrderLine):
            return OrderLine(
                product_id=data.product_id,
                quantity=data.quantity,
                unit_price=to_decimal(data.unit_price, "unit_price"),
                line_total=to_decimal(data.line_total, "line_total"),
            )
        product_id = data.get("product_id")
        if not product_id:
            raise ValueError("Order line requires a product_id")
        quantity = to_quantity(data.get("quantity", 1))
        unit_price = to_decimal(data.get("unit_price", 0), "unit_price")
        raw_total = data.get("line_total")
        line_total = (
            to_decimal(raw_total, "line_total")
            if raw_total is not None
            else unit_price * quantity
        )
        return cls(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total,
        )


def compute_order_value(items: Iterable[OrderLine]) -> Decimal:
    """Sum of ``line_total`` over the order's current lines."""
    return sum((line.line_total for line in items), Decimal("0"))


@dataclass
class Order:
    id: str
    order_number: str
    buyer_id: str
    supplier_id: str
    status: str
    approval_status: ApprovalStatus
    items: list[OrderLine]
    order_value: Decimal
    created_at: datetime
    created_by: str
    approved_by: str | None = None
    approver_note: str | None = None
    expected_ship_date: str | None = None
    payment_terms: str | None = None
    warehouse: str | None = None
    notes: str | None = None
    version: int = 1


@dataclass
class OrderStatusDef:
    """One entry of the order status catalog.

    ``order`` is the display position; ranking for transitions comes from
    ``domain.order_workflow``.
    """

    id: str
    name: str
    order: float


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


@dataclass
class AuditEntry:
    id: str
    timestamp: datetime
    action: str
    summary: str
    status: str = "success"
    actor_id: str | None = None
    actor_name: str | None = None
    actor_role: str | None = None
    buyer_id: str | None = None
    supplier_id: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    entity_name: str | None = None
    metadata: dict[str, Any] | None = None
    source: str = "ui"
