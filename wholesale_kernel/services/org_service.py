"""
OrgService -- supplier and buyer org administration.

Responsibility:
    Superadmin-only create/update/delete of suppliers and buyer orgs.

Invariants enforced:
    - A buyer's ``price_tier_id`` always references a known tier.
    - Ids are immutable; caller-supplied ids must be unique.

Failure modes:
    - UnauthorizedError: caller is not superadmin.
    - SupplierNotFoundError / BuyerNotFoundError: unknown id on update/delete.
    - ValidationError: malformed input or unknown tier.
    - ConflictError: caller-supplied id already taken.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping
from uuid import uuid4

from wholesale_kernel.domain.authorization import Action
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.domain.entities import AuditAction, Buyer, Supplier, to_decimal
from wholesale_kernel.domain.roles import CallerContext
from wholesale_kernel.exceptions import (
    BuyerNotFoundError,
    ConflictError,
    SupplierNotFoundError,
    ValidationError,
)
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.services.auditor_service import AuditorService
from wholesale_kernel.services.base import BaseService, reject_unknown_fields, required_text
from wholesale_kernel.store.entity_store import EntityStore

logger = get_logger("services.orgs")

SUPPLIER_FIELDS = frozenset({"id", "name", "categories", "tags", "region", "website", "rating"})

BUYER_FIELDS = frozenset({
    "id",
    "name",
    "price_tier_id",
    "payment_terms",
    "credit_limit",
    "credit_used",
    "channel",
    "region",
    "website",
    "tags",
    "owner_id",
    "health",
    "last_order_date",
})

_SUPPLIER_TEXT = ("region", "website")
_BUYER_TEXT = ("channel", "region", "website", "owner_id", "health", "last_order_date")


def _money(value: Any, field: str) -> Decimal:
    try:
        return to_decimal(value, field)
    except ValueError as exc:
        raise ValidationError(str(exc), field=field) from exc


def _string_list(value: Any, field: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field} must be a list", field=field)
    return [str(v) for v in value]


class OrgService(BaseService):
    def __init__(self, store: EntityStore, auditor: AuditorService, clock: Clock | None = None):
        super().__init__(store, clock)
        self._auditor = auditor

    def _new_id(self, data: Mapping[str, Any], exists) -> str:
        entity_id = data.get("id") or str(uuid4())
        if exists(entity_id) is not None:
            raise ConflictError(f"Id already in use: {entity_id}")
        return entity_id

    # -- suppliers -----------------------------------------------------------

    def _load_supplier(self, supplier_id: str) -> Supplier:
        supplier = self.store.find_supplier(supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(supplier_id)
        return supplier

    def _record_supplier(self, action: AuditAction, verb: str, caller: CallerContext, supplier: Supplier) -> None:
        self._auditor.record(
            action,
            f"Supplier {supplier.name} {verb}",
            actor_id=caller.user_id,
            supplier_id=supplier.id,
            entity_type="supplier",
            entity_id=supplier.id,
            entity_name=supplier.name,
        )

    def create_supplier(self, caller: CallerContext, data: Mapping[str, Any]) -> Supplier:
        self._require(Action.CREATE_SUPPLIER, caller)
        reject_unknown_fields(data, SUPPLIER_FIELDS)
        supplier = Supplier(
            id=self._new_id(data, self.store.find_supplier),
            name=required_text(data, "name"),
            categories=_string_list(data.get("categories"), "categories"),
            tags=_string_list(data.get("tags"), "tags"),
            region=data.get("region"),
            website=data.get("website"),
            rating=_money(data["rating"], "rating") if data.get("rating") is not None else None,
        )
        self.store.suppliers.append(supplier)
        self._record_supplier(AuditAction.SUPPLIER_CREATED, "created", caller, supplier)
        logger.info("supplier_created", extra={"supplier_id": supplier.id})
        return supplier

    def update_supplier(
        self, caller: CallerContext, supplier_id: str, updates: Mapping[str, Any]
    ) -> Supplier:
        self._require(Action.UPDATE_SUPPLIER, caller)
        supplier = self._load_supplier(supplier_id)
        if "id" in updates and updates["id"] != supplier.id:
            raise ValidationError("Field id cannot be changed", field="id")
        reject_unknown_fields(updates, SUPPLIER_FIELDS)

        if "name" in updates:
            supplier.name = required_text(updates, "name")
        for key in _SUPPLIER_TEXT:
            if key in updates:
                setattr(supplier, key, updates[key])
        if "categories" in updates:
            supplier.categories = _string_list(updates["categories"], "categories")
        if "tags" in updates:
            supplier.tags = _string_list(updates["tags"], "tags")
        if "rating" in updates:
            rating = updates["rating"]
            supplier.rating = _money(rating, "rating") if rating is not None else None

        self._record_supplier(AuditAction.SUPPLIER_UPDATED, "updated", caller, supplier)
        logger.info("supplier_updated", extra={"supplier_id": supplier.id})
        return supplier

    def delete_supplier(self, caller: CallerContext, supplier_id: str) -> bool:
        self._require(Action.DELETE_SUPPLIER, caller)
        supplier = self._load_supplier(supplier_id)
        self.store.suppliers.remove(supplier)
        self._record_supplier(AuditAction.SUPPLIER_DELETED, "deleted", caller, supplier)
        logger.info("supplier_deleted", extra={"supplier_id": supplier.id})
        return True

    # -- buyers --------------------------------------------------------------

    def _load_buyer(self, buyer_id: str) -> Buyer:
        buyer = self.store.find_buyer(buyer_id)
        if buyer is None:
            raise BuyerNotFoundError(buyer_id)
        return buyer

    def _check_tier(self, tier_id: Any):
        tier = self.store.find_tier(tier_id)
        if tier is None:
            raise ValidationError(f"Unknown buyer tier: {tier_id}", field="price_tier_id")
        return tier

    def _record_buyer(self, action: AuditAction, verb: str, caller: CallerContext, buyer: Buyer) -> None:
        self._auditor.record(
            action,
            f"Buyer {buyer.name} {verb}",
            actor_id=caller.user_id,
            buyer_id=buyer.id,
            entity_type="buyer",
            entity_id=buyer.id,
            entity_name=buyer.name,
        )

    def create_buyer(self, caller: CallerContext, data: Mapping[str, Any]) -> Buyer:
        """
        Create a buyer org.  ``price_tier_id`` defaults to the first tier and
        ``payment_terms`` to that tier's default terms.
        """
        self._require(Action.CREATE_BUYER, caller)
        reject_unknown_fields(data, BUYER_FIELDS)

        tier_id = data.get("price_tier_id")
        if tier_id is None:
            if not self.store.buyer_tiers:
                raise ValidationError("No buyer tiers configured", field="price_tier_id")
            tier_id = self.store.buyer_tiers[0].id
        tier = self._check_tier(tier_id)

        buyer = Buyer(
            id=self._new_id(data, self.store.find_buyer),
            name=required_text(data, "name"),
            created_at=self._clock.now(),
            price_tier_id=tier.id,
            payment_terms=data.get("payment_terms") or tier.default_payment_terms or "",
            credit_limit=_money(data.get("credit_limit", 0), "credit_limit"),
            credit_used=_money(data.get("credit_used", 0), "credit_used"),
            tags=_string_list(data.get("tags"), "tags"),
            **{key: data.get(key) for key in _BUYER_TEXT},
        )
        self.store.buyers.append(buyer)
        self._record_buyer(AuditAction.BUYER_CREATED, "created", caller, buyer)
        logger.info("buyer_created", extra={"buyer_id": buyer.id, "price_tier_id": tier.id})
        return buyer

    def update_buyer(
        self, caller: CallerContext, buyer_id: str, updates: Mapping[str, Any]
    ) -> Buyer:
        self._require(Action.UPDATE_BUYER, caller)
        buyer = self._load_buyer(buyer_id)
        if "id" in updates and updates["id"] != buyer.id:
            raise ValidationError("Field id cannot be changed", field="id")
        reject_unknown_fields(updates, BUYER_FIELDS)

        if "price_tier_id" in updates:
            buyer.price_tier_id = self._check_tier(updates["price_tier_id"]).id
        if "name" in updates:
            buyer.name = required_text(updates, "name")
        if "payment_terms" in updates:
            buyer.payment_terms = updates["payment_terms"] or ""
        for key in ("credit_limit", "credit_used"):
            if key in updates:
                setattr(buyer, key, _money(updates[key], key))
        if "tags" in updates:
            buyer.tags = _string_list(updates["tags"], "tags")
        for key in _BUYER_TEXT:
            if key in updates:
                setattr(buyer, key, updates[key])

        self._record_buyer(AuditAction.BUYER_UPDATED, "updated", caller, buyer)
        logger.info("buyer_updated", extra={"buyer_id": buyer.id})
        return buyer

    def delete_buyer(self, caller: CallerContext, buyer_id: str) -> bool:
        self._require(Action.DELETE_BUYER, caller)
        buyer = self._load_buyer(buyer_id)
        self.store.buyers.remove(buyer)
        self._record_buyer(AuditAction.BUYER_DELETED, "deleted", caller, buyer)
        logger.info("buyer_deleted", extra={"buyer_id": buyer.id})
        return True
