"""
Document migration (``wholesale_kernel.store.migration``).

Responsibility
--------------
Brings any stored (or empty) document up to the current layout before it
is turned into entities.  Runs on every load and on ``reset``.

Steps, in order:

1. Rename legacy collections (``accounts`` -> ``buyers``, ``accountTiers``
   -> ``buyerTiers``) and legacy ``companyId`` / ``accountId`` fields.
2. Seed buyer tiers from configuration when none are stored.
3. Guarantee exactly one superadmin; hash plain-text passwords.
4. Rebuild the reserved status catalog, keeping custom stages.
5. Backfill product ``supplierId``.
6. Normalize orders: status, approval, creator, version, supplier, lines
   referencing missing products, order value.

Invariants enforced
-------------------
* Idempotent: migrating a migrated document changes nothing.
* The input document is never mutated; a new one is returned.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

from wholesale_config.schema import BootstrapConfig, BuyerTierDef, MigrationConfig
from wholesale_kernel.domain.entities import ApprovalStatus, to_decimal
from wholesale_kernel.domain.order_workflow import (
    RESERVED_STATUS_IDS,
    default_status_catalog,
)
from wholesale_kernel.domain.passwords import is_password_hash
from wholesale_kernel.domain.roles import Role
from wholesale_kernel.store.document import COLLECTION_KEYS

_LEGACY_COLLECTIONS = {"accounts": "buyers", "accountTiers": "buyerTiers"}
_LEGACY_BUYER_FIELDS = ("companyId", "accountId")
_APPROVAL_VALUES = frozenset(a.value for a in ApprovalStatus)


@dataclass
class MigrationReport:
    """What a migration pass changed."""

    changes: list[str] = field(default_factory=list)

    def note(self, change: str) -> None:
        self.changes.append(change)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


def _rename_buyer_field(row: dict[str, Any]) -> bool:
    renamed = False
    for legacy in _LEGACY_BUYER_FIELDS:
        if legacy in row:
            value = row.pop(legacy)
            if not row.get("buyerId"):
                row["buyerId"] = value
            renamed = True
    return renamed


def _line_total(line: dict[str, Any]) -> Decimal:
    if line.get("lineTotal") is not None:
        return to_decimal(line["lineTotal"], "lineTotal")
    return to_decimal(line.get("unitPrice", 0), "unitPrice") * int(line.get("quantity", 1))


def _rename_collections(doc: dict[str, Any], report: MigrationReport) -> None:
    for legacy, current in _LEGACY_COLLECTIONS.items():
        if legacy in doc:
            rows = doc.pop(legacy)
            if not doc.get(current):
                doc[current] = rows
            report.note(f"renamed {legacy} to {current}")
    for key in COLLECTION_KEYS:
        if doc.get(key) is None:
            doc[key] = []


def _seed_tiers(
    doc: dict[str, Any], tiers: tuple[BuyerTierDef, ...], report: MigrationReport
) -> None:
    if doc["buyerTiers"] or not tiers:
        return
    doc["buyerTiers"] = [
        {
            k: v
            for k, v in {
                "id": t.id,
                "name": t.name,
                "multiplier": t.multiplier,
                "description": t.description,
                "defaultPaymentTerms": t.default_payment_terms,
            }.items()
            if v is not None
        }
        for t in tiers
    ]
    report.note(f"seeded {len(tiers)} buyer tiers")


def _migrate_users(
    doc: dict[str, Any],
    bootstrap: BootstrapConfig,
    hash_password: Callable[[str], str],
    report: MigrationReport,
) -> None:
    users = doc["users"]
    for user in users:
        if _rename_buyer_field(user):
            report.note(f"user {user.get('id')}: renamed buyer field")
        plain = user.pop("password", None)
        if plain is not None:
            if not user.get("passwordHash"):
                user["passwordHash"] = plain if is_password_hash(plain) else hash_password(plain)
            report.note(f"user {user.get('id')}: hashed password")

    superadmins = [u for u in users if u.get("role") == Role.SUPERADMIN.value]
    if not superadmins:
        users.append({
            "id": bootstrap.superadmin_id,
            "name": bootstrap.name,
            "email": bootstrap.email,
            "role": Role.SUPERADMIN.value,
            "passwordHash": hash_password(bootstrap.password),
        })
        report.note(f"created superadmin {bootstrap.superadmin_id}")
        return
    if len(superadmins) > 1:
        keep = next(
            (u for u in superadmins if u.get("id") == bootstrap.superadmin_id),
            superadmins[0],
        )
        extras = {id(u) for u in superadmins if u is not keep}
        doc["users"] = [u for u in users if id(u) not in extras]
        report.note(f"removed {len(extras)} extra superadmin accounts")


def _migrate_statuses(doc: dict[str, Any], report: MigrationReport) -> None:
    reserved = [
        {"id": s.id, "name": s.name, "order": s.order} for s in default_status_catalog()
    ]
    custom = [s for s in doc["orderStatuses"] if s.get("id") not in RESERVED_STATUS_IDS]
    rebuilt = reserved + custom
    if rebuilt != doc["orderStatuses"]:
        report.note("rebuilt order status catalog")
    doc["orderStatuses"] = rebuilt


def _migrate_products(
    doc: dict[str, Any], config: MigrationConfig, report: MigrationReport
) -> None:
    for product in doc["products"]:
        if not product.get("supplierId"):
            product["supplierId"] = config.product_supplier_lookup.get(
                product.get("id"), config.default_supplier_id
            )
            report.note(f"product {product.get('id')}: backfilled supplier")


def _normalize_status(status: Any, known: set[str], config: MigrationConfig) -> str:
    if status in config.legacy_status_map:
        return config.legacy_status_map[status]
    if status in known:
        return status
    return config.fallback_status


def _migrate_orders(
    doc: dict[str, Any], config: MigrationConfig, report: MigrationReport
) -> None:
    products = {p["id"]: p for p in doc["products"] if p.get("id")}
    known_statuses = {s["id"] for s in doc["orderStatuses"] if s.get("id")}
    default_creator = (doc["users"][0].get("id") if doc["users"] else None) or "system"

    for order in doc["orders"]:
        oid = order.get("id")
        if _rename_buyer_field(order):
            report.note(f"order {oid}: renamed buyer field")

        status = _normalize_status(order.get("status"), known_statuses, config)
        if status != order.get("status"):
            report.note(f"order {oid}: status {order.get('status')} -> {status}")
            order["status"] = status

        if order.get("approvalStatus") not in _APPROVAL_VALUES:
            order["approvalStatus"] = ApprovalStatus.PENDING.value
            report.note(f"order {oid}: defaulted approval")
        if not order.get("createdBy"):
            order["createdBy"] = default_creator
            report.note(f"order {oid}: defaulted creator")
        if "version" not in order:
            order["version"] = 1

        items = order.get("items") or []
        if not order.get("supplierId"):
            first_product = items[0].get("productId") if items else None
            supplier_id = (
                config.product_supplier_lookup.get(first_product)
                or (products.get(first_product) or {}).get("supplierId")
                or config.default_supplier_id
            )
            order["supplierId"] = supplier_id
            report.note(f"order {oid}: backfilled supplier")

        kept = [line for line in items if line.get("productId") in products]
        if len(kept) != len(items) or order.get("orderValue") is None:
            order["orderValue"] = str(sum((_line_total(l) for l in kept), Decimal("0")))
        if len(kept) != len(items):
            report.note(f"order {oid}: dropped {len(items) - len(kept)} orphan lines")
        order["items"] = kept


def migrate_document(
    document: dict[str, Any] | None,
    *,
    migration: MigrationConfig,
    bootstrap: BootstrapConfig,
    buyer_tiers: tuple[BuyerTierDef, ...],
    hash_password: Callable[[str], str],
) -> tuple[dict[str, Any], MigrationReport]:
    """
    Return a migrated copy of ``document`` and a report of what changed.

    ``None`` (no stored snapshot yet) migrates as an empty document, which
    seeds the superadmin, the buyer tiers and the status catalog.
    """
    doc = copy.deepcopy(document) if document else {}
    report = MigrationReport()

    _rename_collections(doc, report)
    _seed_tiers(doc, buyer_tiers, report)
    _migrate_users(doc, bootstrap, hash_password, report)
    _migrate_statuses(doc, report)
    _migrate_products(doc, migration, report)
    _migrate_orders(doc, migration, report)

    return {key: doc[key] for key in COLLECTION_KEYS}, report
