"""
EntityStore -- in-memory collections owned by one kernel instance.

Responsibility:
    Holds every entity collection, provides id/email lookups and converts
    the whole state to and from the persisted document.  Services mutate
    the collections directly; selectors only read them.

Architecture position:
    Kernel > Store.  Imports domain entities and ``store.document``.
    MUST NOT import services/, selectors/ or the kernel facade.

Invariants enforced:
    - ``audit_logs`` is newest first; entries are only ever prepended.
    - ``checkpoint()`` / ``restore()`` round-trip the complete state, which
      is what lets the kernel undo a failed mutation.

Failure modes:
    - Lookups return ``None`` for unknown ids; raising NotFound is the
      caller's decision.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from wholesale_kernel.domain.entities import (
    AuditEntry,
    Buyer,
    BuyerTier,
    Order,
    OrderStatusDef,
    Product,
    Supplier,
    User,
)
from wholesale_kernel.domain.roles import CallerContext, Role
from wholesale_kernel.store import document as doc_codec


@dataclass
class StoreState:
    users: list[User] = field(default_factory=list)
    suppliers: list[Supplier] = field(default_factory=list)
    buyers: list[Buyer] = field(default_factory=list)
    buyer_tiers: list[BuyerTier] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    order_statuses: list[OrderStatusDef] = field(default_factory=list)
    audit_logs: list[AuditEntry] = field(default_factory=list)


def _find(items: list[Any], entity_id: str | None) -> Any | None:
    if entity_id is None:
        return None
    for item in items:
        if item.id == entity_id:
            return item
    return None


class EntityStore:
    """
    The kernel's explicit store object.

    Guarantees:
        - ``to_document(from_document(doc))`` reproduces a migrated ``doc``.
    """

    def __init__(self, state: StoreState | None = None):
        self._state = state or StoreState()

    # -- collections -------------------------------------------------------

    @property
    def users(self) -> list[User]:
        return self._state.users

    @property
    def suppliers(self) -> list[Supplier]:
        return self._state.suppliers

    @property
    def buyers(self) -> list[Buyer]:
        return self._state.buyers

    @property
    def buyer_tiers(self) -> list[BuyerTier]:
        return self._state.buyer_tiers

    @property
    def products(self) -> list[Product]:
        return self._state.products

    @property
    def orders(self) -> list[Order]:
        return self._state.orders

    @property
    def order_statuses(self) -> list[OrderStatusDef]:
        return self._state.order_statuses

    @property
    def audit_logs(self) -> list[AuditEntry]:
        return self._state.audit_logs

    # -- lookups -----------------------------------------------------------

    def find_user(self, user_id: str | None) -> User | None:
        return _find(self.users, user_id)

    def find_user_by_email(self, email: str) -> User | None:
        wanted = email.strip().lower()
        for user in self.users:
            if user.email.lower() == wanted:
                return user
        return None

    def find_superadmin(self) -> User | None:
        for user in self.users:
            if user.role is Role.SUPERADMIN:
                return user
        return None

    def find_supplier(self, supplier_id: str | None) -> Supplier | None:
        return _find(self.suppliers, supplier_id)

    def find_buyer(self, buyer_id: str | None) -> Buyer | None:
        return _find(self.buyers, buyer_id)

    def find_tier(self, tier_id: str | None) -> BuyerTier | None:
        return _find(self.buyer_tiers, tier_id)

    def find_product(self, product_id: str | None) -> Product | None:
        return _find(self.products, product_id)

    def find_order(self, order_id: str | None) -> Order | None:
        return _find(self.orders, order_id)

    def find_status(self, status_id: str | None) -> OrderStatusDef | None:
        return _find(self.order_statuses, status_id)

    def context_for(self, user_id: str | None) -> CallerContext:
        """Caller identity for ``user_id``; unknown ids are anonymous."""
        user = self.find_user(user_id)
        if user is None:
            return CallerContext.anonymous()
        return CallerContext(
            user_id=user.id,
            role=user.role,
            buyer_id=user.buyer_id,
            supplier_id=user.supplier_id,
        )

    def append_audit(self, entry: AuditEntry) -> None:
        self._state.audit_logs.insert(0, entry)

    # -- snapshots ---------------------------------------------------------

    def checkpoint(self) -> StoreState:
        """Deep copy of the full state, for ``restore()``."""
        return copy.deepcopy(self._state)

    def restore(self, state: StoreState) -> None:
        self._state = state

    def to_document(self) -> dict[str, list[dict[str, Any]]]:
        s = self._state
        return {
            "users": [doc_codec.user_to_doc(u) for u in s.users],
            "suppliers": [doc_codec.supplier_to_doc(x) for x in s.suppliers],
            "buyers": [doc_codec.buyer_to_doc(b) for b in s.buyers],
            "buyerTiers": [doc_codec.tier_to_doc(t) for t in s.buyer_tiers],
            "products": [doc_codec.product_to_doc(p) for p in s.products],
            "orders": [doc_codec.order_to_doc(o) for o in s.orders],
            "orderStatuses": [doc_codec.status_to_doc(st) for st in s.order_statuses],
            "auditLogs": [doc_codec.audit_to_doc(a) for a in s.audit_logs],
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> EntityStore:
        """Build a store from a migrated document."""
        return cls(StoreState(
            users=[doc_codec.user_from_doc(d) for d in document["users"]],
            suppliers=[doc_codec.supplier_from_doc(d) for d in document["suppliers"]],
            buyers=[doc_codec.buyer_from_doc(d) for d in document["buyers"]],
            buyer_tiers=[doc_codec.tier_from_doc(d) for d in document["buyerTiers"]],
            products=[doc_codec.product_from_doc(d) for d in document["products"]],
            orders=[doc_codec.order_from_doc(d) for d in document["orders"]],
            order_statuses=[doc_codec.status_from_doc(d) for d in document["orderStatuses"]],
            audit_logs=[doc_codec.audit_from_doc(d) for d in document["auditLogs"]],
        ))
