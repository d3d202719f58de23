"""
Persisted document layout (``wholesale_kernel.store.document``).

Responsibility
--------------
Converts entity dataclasses to and from the camelCase JSON document that
snapshot backends save:

    {users, suppliers, buyers, buyerTiers, products, orders,
     orderStatuses, auditLogs}

Money is written as a decimal string, timestamps as ISO-8601, and ``None``
fields are omitted.

Failure modes
-------------
* ``KeyError`` / ``ValueError`` on documents that have not been through
  ``store.migration.migrate_document``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from wholesale_kernel.domain.entities import (
    ApprovalStatus,
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
    to_decimal,
)
from wholesale_kernel.domain.roles import parse_role

COLLECTION_KEYS: tuple[str, ...] = (
    "users",
    "suppliers",
    "buyers",
    "buyerTiers",
    "products",
    "orders",
    "orderStatuses",
    "auditLogs",
)


def parse_timestamp(value: str | datetime) -> datetime:
    """ISO-8601 text to an aware UTC datetime; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _money(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _opt_decimal(value: Any, name: str) -> Decimal | None:
    return None if value is None else to_decimal(value, name)


# ---------------------------------------------------------------------------
# Users and organizations
# ---------------------------------------------------------------------------


def user_to_doc(user: User) -> dict[str, Any]:
    permissions = None
    if user.permissions is not None:
        permissions = {
            "viewOnly": user.permissions.view_only,
            "canOrder": user.permissions.can_order,
            "canApprove": user.permissions.can_approve,
        }
    return _compact({
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "supplierId": user.supplier_id,
        "buyerId": user.buyer_id,
        "permissions": permissions,
        "passwordHash": user.password_hash,
    })


def user_from_doc(doc: dict[str, Any]) -> User:
    raw_permissions = doc.get("permissions")
    permissions = None
    if raw_permissions is not None:
        permissions = Permissions(
            view_only=bool(raw_permissions.get("viewOnly", False)),
            can_order=bool(raw_permissions.get("canOrder", False)),
            can_approve=bool(raw_permissions.get("canApprove", False)),
        )
    return User(
        id=doc["id"],
        name=doc["name"],
        email=doc["email"],
        role=parse_role(doc["role"]),
        supplier_id=doc.get("supplierId"),
        buyer_id=doc.get("buyerId"),
        permissions=permissions,
        password_hash=doc.get("passwordHash"),
    )


def supplier_to_doc(supplier: Supplier) -> dict[str, Any]:
    return _compact({
        "id": supplier.id,
        "name": supplier.name,
        "categories": list(supplier.categories),
        "tags": list(supplier.tags),
        "region": supplier.region,
        "website": supplier.website,
        "rating": _money(supplier.rating),
    })


def supplier_from_doc(doc: dict[str, Any]) -> Supplier:
    return Supplier(
        id=doc["id"],
        name=doc["name"],
        categories=list(doc.get("categories") or []),
        tags=list(doc.get("tags") or []),
        region=doc.get("region"),
        website=doc.get("website"),
        rating=_opt_decimal(doc.get("rating"), "rating"),
    )


def tier_to_doc(tier: BuyerTier) -> dict[str, Any]:
    return _compact({
        "id": tier.id,
        "name": tier.name,
        "multiplier": str(tier.multiplier),
        "description": tier.description,
        "defaultPaymentTerms": tier.default_payment_terms,
    })


def tier_from_doc(doc: dict[str, Any]) -> BuyerTier:
    return BuyerTier(
        id=doc["id"],
        name=doc["name"],
        multiplier=to_decimal(doc.get("multiplier", 1), "multiplier"),
        description=doc.get("description"),
        default_payment_terms=doc.get("defaultPaymentTerms"),
    )


def buyer_to_doc(buyer: Buyer) -> dict[str, Any]:
    return _compact({
        "id": buyer.id,
        "name": buyer.name,
        "createdAt": buyer.created_at.isoformat(),
        "priceTierId": buyer.price_tier_id,
        "paymentTerms": buyer.payment_terms,
        "creditLimit": str(buyer.credit_limit),
        "creditUsed": str(buyer.credit_used),
        "channel": buyer.channel,
        "region": buyer.region,
        "website": buyer.website,
        "tags": list(buyer.tags),
        "ownerId": buyer.owner_id,
        "health": buyer.health,
        "lastOrderDate": buyer.last_order_date,
    })


def buyer_from_doc(doc: dict[str, Any]) -> Buyer:
    return Buyer(
        id=doc["id"],
        name=doc["name"],
        created_at=parse_timestamp(doc["createdAt"]),
        price_tier_id=doc["priceTierId"],
        payment_terms=doc.get("paymentTerms", ""),
        credit_limit=to_decimal(doc.get("creditLimit", 0), "creditLimit"),
        credit_used=to_decimal(doc.get("creditUsed", 0), "creditUsed"),
        channel=doc.get("channel"),
        region=doc.get("region"),
        website=doc.get("website"),
        tags=list(doc.get("tags") or []),
        owner_id=doc.get("ownerId"),
        health=doc.get("health"),
        last_order_date=doc.get("lastOrderDate"),
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def product_to_doc(product: Product) -> dict[str, Any]:
    stock = product.stock
    return _compact({
        "id": product.id,
        "supplierId": product.supplier_id,
        "name": product.name,
        "sku": product.sku,
        "basePrice": str(product.base_price),
        "currency": product.currency,
        "active": product.active,
        "stock": _compact({
            "stockLevel": stock.stock_level,
            "minThreshold": stock.min_threshold,
            "reserved": stock.reserved,
            "leadTimeDays": stock.lead_time_days,
        }),
        "tierPrices": [
            {"tierId": tp.tier_id, "price": str(tp.price)} for tp in product.tier_prices
        ],
        "description": product.description,
        "originCountry": product.origin_country,
        "category": product.category,
        "images": list(product.images),
    })


def product_from_doc(doc: dict[str, Any]) -> Product:
    raw_stock = doc.get("stock") or {}
    return Product(
        id=doc["id"],
        supplier_id=doc["supplierId"],
        name=doc["name"],
        sku=doc.get("sku", ""),
        base_price=to_decimal(doc.get("basePrice", 0), "basePrice"),
        currency=doc.get("currency", "USD"),
        active=bool(doc.get("active", True)),
        stock=ProductStock(
            stock_level=int(raw_stock.get("stockLevel", 0)),
            min_threshold=int(raw_stock.get("minThreshold", 0)),
            reserved=int(raw_stock.get("reserved", 0)),
            lead_time_days=raw_stock.get("leadTimeDays"),
        ),
        tier_prices=[
            TierPrice(tier_id=tp["tierId"], price=to_decimal(tp["price"], "price"))
            for tp in doc.get("tierPrices") or []
        ],
        description=doc.get("description"),
        origin_country=doc.get("originCountry"),
        category=doc.get("category"),
        images=list(doc.get("images") or []),
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def line_to_doc(line: OrderLine) -> dict[str, Any]:
    return {
        "productId": line.product_id,
        "quantity": line.quantity,
        "unitPrice": str(line.unit_price),
        "lineTotal": str(line.line_total),
    }


def line_from_doc(doc: dict[str, Any]) -> OrderLine:
    return OrderLine.from_input({
        "product_id": doc["productId"],
        "quantity": doc.get("quantity", 1),
        "unit_price": doc.get("unitPrice", 0),
        "line_total": doc.get("lineTotal"),
    })


def order_to_doc(order: Order) -> dict[str, Any]:
    return _compact({
        "id": order.id,
        "orderNumber": order.order_number,
        "buyerId": order.buyer_id,
        "supplierId": order.supplier_id,
        "status": order.status,
        "approvalStatus": order.approval_status.value,
        "items": [line_to_doc(line) for line in order.items],
        "orderValue": str(order.order_value),
        "createdAt": order.created_at.isoformat(),
        "createdBy": order.created_by,
        "approvedBy": order.approved_by,
        "approverNote": order.approver_note,
        "expectedShipDate": order.expected_ship_date,
        "paymentTerms": order.payment_terms,
        "warehouse": order.warehouse,
        "notes": order.notes,
        "version": order.version,
    })


def order_from_doc(doc: dict[str, Any]) -> Order:
    return Order(
        id=doc["id"],
        order_number=doc.get("orderNumber", doc["id"]),
        buyer_id=doc["buyerId"],
        supplier_id=doc["supplierId"],
        status=doc["status"],
        approval_status=ApprovalStatus(doc.get("approvalStatus", "pending")),
        items=[line_from_doc(line) for line in doc.get("items") or []],
        order_value=to_decimal(doc.get("orderValue", 0), "orderValue"),
        created_at=parse_timestamp(doc["createdAt"]),
        created_by=doc["createdBy"],
        approved_by=doc.get("approvedBy"),
        approver_note=doc.get("approverNote"),
        expected_ship_date=doc.get("expectedShipDate"),
        payment_terms=doc.get("paymentTerms"),
        warehouse=doc.get("warehouse"),
        notes=doc.get("notes"),
        version=int(doc.get("version", 1)),
    )


def status_to_doc(status: OrderStatusDef) -> dict[str, Any]:
    return {"id": status.id, "name": status.name, "order": status.order}


def status_from_doc(doc: dict[str, Any]) -> OrderStatusDef:
    return OrderStatusDef(id=doc["id"], name=doc["name"], order=float(doc["order"]))


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


def audit_to_doc(entry: AuditEntry) -> dict[str, Any]:
    return _compact({
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "action": entry.action,
        "summary": entry.summary,
        "status": entry.status,
        "actorId": entry.actor_id,
        "actorName": entry.actor_name,
        "actorRole": entry.actor_role,
        "buyerId": entry.buyer_id,
        "supplierId": entry.supplier_id,
        "entityType": entry.entity_type,
        "entityId": entry.entity_id,
        "entityName": entry.entity_name,
        "metadata": dict(entry.metadata) if entry.metadata else None,
        "source": entry.source,
    })


def audit_from_doc(doc: dict[str, Any]) -> AuditEntry:
    return AuditEntry(
        id=doc["id"],
        timestamp=parse_timestamp(doc["timestamp"]),
        action=doc["action"],
        summary=doc.get("summary", ""),
        status=doc.get("status", "success"),
        actor_id=doc.get("actorId"),
        actor_name=doc.get("actorName"),
        actor_role=doc.get("actorRole"),
        buyer_id=doc.get("buyerId"),
        supplier_id=doc.get("supplierId"),
        entity_type=doc.get("entityType"),
        entity_id=doc.get("entityId"),
        entity_name=doc.get("entityName"),
        metadata=doc.get("metadata"),
        source=doc.get("source", "ui"),
    )
