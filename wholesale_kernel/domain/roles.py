"""
Identity and role model (``wholesale_kernel.domain.roles``).

Responsibility
--------------
Defines the closed set of roles, their partition into families, and the
``CallerContext`` value object that every query and guard receives in place
of an ambient "logged-in user".

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports from
``store/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Every role belongs to exactly one family (buyer, supplier, platform).
* Supplier-family users carry ``supplier_id``; buyer-family users carry
  ``buyer_id``; ``admin`` carries exactly one of the two (checked by
  ``scope_violation``).
* A ``CallerContext`` without a role is anonymous and resolves to no scope.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """User roles.  String values match the persisted document."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    SUPPLIER_ADMIN = "supplier_admin"
    SUPPLIER_MANAGER = "supplier_manager"
    SUPPLIER = "supplier"
    BUYER_ADMIN = "buyer_admin"
    BUYER_MANAGER = "buyer_manager"
    BUYER = "buyer"


class RoleFamily(str, Enum):
    BUYER = "buyer"
    SUPPLIER = "supplier"
    PLATFORM = "platform"


BUYER_ROLES: frozenset[Role] = frozenset({
    Role.BUYER,
    Role.BUYER_MANAGER,
    Role.BUYER_ADMIN,
})

SUPPLIER_ROLES: frozenset[Role] = frozenset({
    Role.SUPPLIER,
    Role.SUPPLIER_MANAGER,
    Role.SUPPLIER_ADMIN,
})

PLATFORM_ROLES: frozenset[Role] = frozenset({
    Role.ADMIN,
    Role.SUPERADMIN,
})

ROLE_FAMILY: dict[Role, RoleFamily] = {
    **{r: RoleFamily.BUYER for r in BUYER_ROLES},
    **{r: RoleFamily.SUPPLIER for r in SUPPLIER_ROLES},
    **{r: RoleFamily.PLATFORM for r in PLATFORM_ROLES},
}

# Roles a scoped *_admin may create, always inside its own org.
CREATABLE_BY: dict[Role, frozenset[Role]] = {
    Role.SUPPLIER_ADMIN: frozenset({Role.SUPPLIER_MANAGER, Role.SUPPLIER}),
    Role.BUYER_ADMIN: frozenset({Role.BUYER_MANAGER, Role.BUYER}),
}

# Buyer-side roles allowed to approve orders and to complete them.
BUYER_APPROVER_ROLES: frozenset[Role] = frozenset({
    Role.BUYER_ADMIN,
    Role.BUYER_MANAGER,
})

# Supplier-side roles allowed to manage the catalog.
CATALOG_MANAGER_ROLES: frozenset[Role] = frozenset({
    Role.SUPPLIER_ADMIN,
    Role.SUPPLIER_MANAGER,
})


def parse_role(value: str | Role) -> Role:
    """Coerce a stored role string into a ``Role``.

    Raises:
        ValueError: Unknown role string.
    """
    if isinstance(value, Role):
        return value
    return Role(value)


class ScopedIdentity(Protocol):
    """Anything with a role and org scope (a User or a CallerContext)."""

    role: Role | None
    buyer_id: str | None
    supplier_id: str | None


def has_buyer_scope(identity: ScopedIdentity | None) -> bool:
    """True for buyer-family roles."""
    return identity is not None and identity.role in BUYER_ROLES


def has_supplier_scope(identity: ScopedIdentity | None) -> bool:
    """True for supplier-family roles."""
    return identity is not None and identity.role in SUPPLIER_ROLES


def is_superadmin(identity: ScopedIdentity | None) -> bool:
    return identity is not None and identity.role is Role.SUPERADMIN


def is_scoped_admin(identity: ScopedIdentity | None) -> bool:
    """True for the dual-purpose ``admin`` role."""
    return identity is not None and identity.role is Role.ADMIN


def acts_as_buyer(identity: ScopedIdentity | None) -> bool:
    """Buyer family, or an ``admin`` scoped to a buyer org."""
    if has_buyer_scope(identity):
        return True
    return is_scoped_admin(identity) and bool(identity.buyer_id) and not identity.supplier_id


def acts_as_supplier(identity: ScopedIdentity | None) -> bool:
    """Supplier family, or an ``admin`` scoped to a supplier."""
    if has_supplier_scope(identity):
        return True
    return is_scoped_admin(identity) and bool(identity.supplier_id)


def scope_violation(role: Role, buyer_id: str | None, supplier_id: str | None) -> str | None:
    """Return a reason string if the scope fields do not fit the role.

    Postconditions: ``None`` means the (role, scope) pair is valid.
    """
    if role in SUPPLIER_ROLES and not supplier_id:
        return "Supplier users must be tied to a supplier"
    if role in BUYER_ROLES and not buyer_id:
        return "Buyer users must be tied to a buyer company"
    if role is Role.ADMIN:
        if not supplier_id and not buyer_id:
            return "Admin must belong to a supplier or buyer company"
        if supplier_id and buyer_id:
            return "Admin must be scoped to exactly one of supplier or buyer company"
    return None


@dataclass(frozen=True)
class CallerContext:
    """Explicit identity of whoever is calling into the kernel.

    Contract: frozen.  ``user_id`` may be ``None`` when a view is requested
    by role alone (e.g. an audit screen opened with a role + scope).
    Guarantees: ``anonymous()`` has no role and therefore no scope, so every
    scoped read fails closed.
    """

    user_id: str | None
    role: Role | None
    buyer_id: str | None = None
    supplier_id: str | None = None

    @classmethod
    def anonymous(cls) -> CallerContext:
        return cls(user_id=None, role=None)

    @classmethod
    def for_role(
        cls,
        role: Role | str,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
    ) -> CallerContext:
        return cls(
            user_id=None,
            role=parse_role(role),
            buyer_id=buyer_id,
            supplier_id=supplier_id,
        )

    @property
    def is_anonymous(self) -> bool:
        return self.role is None

    @property
    def family(self) -> RoleFamily | None:
        if self.role is None:
            return None
        return ROLE_FAMILY[self.role]
