"""
ProductService -- supplier catalog maintenance.

Responsibility:
    Create, update and delete products inside a supplier's catalog.

Invariants enforced:
    - Every product belongs to an existing supplier.
    - Supplier-side callers only ever touch their own supplier's products,
      including when an update moves a product to another supplier.
    - Prices are Decimal; stock counters are non-negative integers.

Failure modes:
    - UnauthorizedError: from the product guard.
    - ProductNotFoundError / SupplierNotFoundError.
    - ValidationError: malformed input.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping
from uuid import uuid4

from wholesale_kernel.domain.authorization import Action, OrgTarget
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.domain.entities import (
    AuditAction,
    Product,
    ProductStock,
    TierPrice,
    to_decimal,
)
from wholesale_kernel.domain.roles import CallerContext, acts_as_supplier
from wholesale_kernel.exceptions import (
    ProductNotFoundError,
    SupplierNotFoundError,
    ValidationError,
)
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.services.auditor_service import AuditorService
from wholesale_kernel.services.base import BaseService, reject_unknown_fields, required_text
from wholesale_kernel.store.entity_store import EntityStore

logger = get_logger("services.products")

PRODUCT_FIELDS = frozenset({
    "id",
    "supplier_id",
    "name",
    "sku",
    "base_price",
    "currency",
    "active",
    "stock",
    "tier_prices",
    "description",
    "origin_country",
    "category",
    "images",
})

_TEXT_FIELDS = ("description", "origin_country", "category")
_STOCK_FIELDS = ("stock_level", "min_threshold", "reserved")


def _price(value: Any, field: str) -> Decimal:
    try:
        price = to_decimal(value, field)
    except ValueError as exc:
        raise ValidationError(str(exc), field=field) from exc
    if price < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return price


def _count(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be a non-negative integer", field=field)
    return value


def _parse_stock(value: Any) -> ProductStock:
    if value is None:
        return ProductStock()
    if isinstance(value, ProductStock):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError("stock must be a mapping", field="stock")
    stock = ProductStock(**{
        key: _count(value[key], f"stock.{key}") for key in _STOCK_FIELDS if key in value
    })
    if value.get("lead_time_days") is not None:
        stock.lead_time_days = _count(value["lead_time_days"], "stock.lead_time_days")
    return stock


def _parse_tier_prices(value: Any) -> list[TierPrice]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError("tier_prices must be a list", field="tier_prices")
    prices = []
    for entry in value:
        if isinstance(entry, TierPrice):
            prices.append(entry)
            continue
        if not isinstance(entry, Mapping) or not entry.get("tier_id"):
            raise ValidationError("Each tier price needs a tier_id", field="tier_prices")
        prices.append(TierPrice(tier_id=entry["tier_id"], price=_price(entry.get("price"), "tier_prices")))
    return prices


def _parse_images(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError("images must be a list", field="images")
    return [str(v) for v in value]


class ProductService(BaseService):
    def __init__(self, store: EntityStore, auditor: AuditorService, clock: Clock | None = None):
        super().__init__(store, clock)
        self._auditor = auditor

    def _load_product(self, product_id: str) -> Product:
        product = self.store.find_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def _check_supplier(self, supplier_id: str) -> None:
        if self.store.find_supplier(supplier_id) is None:
            raise SupplierNotFoundError(supplier_id)

    def _record(self, action: AuditAction, verb: str, caller: CallerContext, product: Product) -> None:
        self._auditor.record(
            action,
            f"Product {product.name} {verb}",
            actor_id=caller.user_id,
            supplier_id=product.supplier_id,
            entity_type="product",
            entity_id=product.id,
            entity_name=product.name,
            metadata={"sku": product.sku},
        )

    def create_product(self, caller: CallerContext, data: Mapping[str, Any]) -> Product:
        """
        Create a product.  Supplier-side callers may omit ``supplier_id``;
        it defaults to their own supplier.
        """
        reject_unknown_fields(data, PRODUCT_FIELDS)
        supplier_id = data.get("supplier_id")
        if not supplier_id and acts_as_supplier(caller):
            supplier_id = caller.supplier_id
        self._require(Action.CREATE_PRODUCT, caller, OrgTarget(supplier_id=supplier_id))
        if not supplier_id:
            raise ValidationError("supplier_id is required", field="supplier_id")
        self._check_supplier(supplier_id)

        product_id = data.get("id") or str(uuid4())
        if self.store.find_product(product_id) is not None:
            raise ValidationError(f"Product id already in use: {product_id}", field="id")

        product = Product(
            id=product_id,
            supplier_id=supplier_id,
            name=required_text(data, "name"),
            sku=required_text(data, "sku"),
            base_price=_price(data.get("base_price", 0), "base_price"),
            currency=data.get("currency") or "USD",
            active=bool(data.get("active", True)),
            stock=_parse_stock(data.get("stock")),
            tier_prices=_parse_tier_prices(data.get("tier_prices")),
            images=_parse_images(data.get("images")),
            **{key: data.get(key) for key in _TEXT_FIELDS},
        )
        self.store.products.append(product)
        self._record(AuditAction.PRODUCT_CREATED, "created", caller, product)
        logger.info(
            "product_created",
            extra={"product_id": product.id, "supplier_id": product.supplier_id},
        )
        return product

    def update_product(
        self, caller: CallerContext, product_id: str, updates: Mapping[str, Any]
    ) -> Product:
        product = self._load_product(product_id)
        self._require(Action.UPDATE_PRODUCT, caller, product)
        if "id" in updates and updates["id"] != product.id:
            raise ValidationError("Field id cannot be changed", field="id")
        reject_unknown_fields(updates, PRODUCT_FIELDS)

        new_supplier = updates.get("supplier_id")
        if new_supplier and new_supplier != product.supplier_id:
            self._require(Action.UPDATE_PRODUCT, caller, OrgTarget(supplier_id=new_supplier))
            self._check_supplier(new_supplier)
            product.supplier_id = new_supplier

        if "name" in updates:
            product.name = required_text(updates, "name")
        if "sku" in updates:
            product.sku = required_text(updates, "sku")
        if "base_price" in updates:
            product.base_price = _price(updates["base_price"], "base_price")
        if "currency" in updates:
            product.currency = updates["currency"] or "USD"
        if "active" in updates:
            product.active = bool(updates["active"])
        if "stock" in updates:
            product.stock = _parse_stock(updates["stock"])
        if "tier_prices" in updates:
            product.tier_prices = _parse_tier_prices(updates["tier_prices"])
        if "images" in updates:
            product.images = _parse_images(updates["images"])
        for key in _TEXT_FIELDS:
            if key in updates:
                setattr(product, key, updates[key])

        self._record(AuditAction.PRODUCT_UPDATED, "updated", caller, product)
        logger.info("product_updated", extra={"product_id": product.id})
        return product

    def delete_product(self, caller: CallerContext, product_id: str) -> bool:
        product = self._load_product(product_id)
        self._require(Action.DELETE_PRODUCT, caller, product)
        self.store.products.remove(product)
        self._record(AuditAction.PRODUCT_DELETED, "deleted", caller, product)
        logger.info("product_deleted", extra={"product_id": product.id})
        return True
