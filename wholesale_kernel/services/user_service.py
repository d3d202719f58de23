"""
UserService -- user provisioning and login.

Responsibility:
    Creates, updates and deletes users under the role/scope rules, and
    checks credentials.  Passwords are stored only as salted PBKDF2 hashes.

Invariants enforced:
    - Exactly one superadmin exists; it can be neither deleted nor demoted,
      and no second one can be created or promoted.
    - A user's (role, buyer_id, supplier_id) always passes
      ``roles.scope_violation``.
    - Emails are unique, case-insensitively.
    - Scoped ``*_admin`` creators always create inside their own org.

Failure modes:
    - UnauthorizedError: caller lacks rights, or bad credentials on login.
    - ValidationError: malformed input or a scope invariant violation.
    - DuplicateEmailError: email already registered.
    - UserNotFoundError / SupplierNotFoundError / BuyerNotFoundError.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import uuid4

from wholesale_kernel.domain.authorization import Action, OrgTarget
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.domain.entities import AuditAction, Permissions, User
from wholesale_kernel.domain.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from wholesale_kernel.domain.roles import (
    BUYER_ROLES,
    SUPPLIER_ROLES,
    CallerContext,
    Role,
    parse_role,
    scope_violation,
)
from wholesale_kernel.exceptions import (
    BuyerNotFoundError,
    DuplicateEmailError,
    SupplierNotFoundError,
    UnauthorizedError,
    UserNotFoundError,
    ValidationError,
)
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.services.auditor_service import AuditorService
from wholesale_kernel.services.base import BaseService, reject_unknown_fields, required_text
from wholesale_kernel.store.entity_store import EntityStore

logger = get_logger("services.users")

USER_FIELDS = frozenset({
    "name",
    "email",
    "role",
    "password",
    "buyer_id",
    "supplier_id",
    "permissions",
})


def _parse_role_field(value: Any) -> Role:
    try:
        return parse_role(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown role: {value!r}", field="role") from exc


def _parse_email(value: Any) -> str:
    if not isinstance(value, str) or "@" not in value.strip():
        raise ValidationError(f"Invalid email: {value!r}", field="email")
    return value.strip()


def _parse_permissions(value: Any) -> Permissions | None:
    if value is None or isinstance(value, Permissions):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError("permissions must be a mapping", field="permissions")
    return Permissions(
        view_only=bool(value.get("view_only", False)),
        can_order=bool(value.get("can_order", False)),
        can_approve=bool(value.get("can_approve", False)),
    )


class UserService(BaseService):
    def __init__(
        self,
        store: EntityStore,
        auditor: AuditorService,
        clock: Clock | None = None,
        password_rounds: int = DEFAULT_ROUNDS,
    ):
        super().__init__(store, clock)
        self._auditor = auditor
        self._rounds = password_rounds

    def hash_password(self, password: str) -> str:
        return hash_password(password, rounds=self._rounds)

    def _load_user(self, user_id: str) -> User:
        user = self.store.find_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _check_email_free(self, email: str, exclude_id: str | None = None) -> None:
        existing = self.store.find_user_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateEmailError(email)

    def _check_scope(self, role: Role, buyer_id: str | None, supplier_id: str | None) -> None:
        violation = scope_violation(role, buyer_id, supplier_id)
        if violation:
            raise ValidationError(violation, field="role")
        if supplier_id and self.store.find_supplier(supplier_id) is None:
            raise SupplierNotFoundError(supplier_id)
        if buyer_id and self.store.find_buyer(buyer_id) is None:
            raise BuyerNotFoundError(buyer_id)

    # -- authentication --------------------------------------------------------

    def login(self, email: str, password: str) -> User:
        """
        Raises:
            UnauthorizedError: unknown email or wrong password.
        """
        user = self.store.find_user_by_email(email or "")
        if user is None or not verify_password(password or "", user.password_hash):
            logger.warning("login_failed", extra={"email": email})
            raise UnauthorizedError("Invalid credentials", action="login")
        logger.info("login_succeeded", extra={"user_id": user.id})
        return user

    # -- commands ------------------------------------------------------------

    def create_user(self, caller: CallerContext, data: Mapping[str, Any]) -> User:
        """
        Create a user.

        superadmin may create any role in any scope except a second
        superadmin; ``supplier_admin`` / ``buyer_admin`` create managers and
        users inside their own org, whose scope is forced to theirs.
        """
        reject_unknown_fields(data, USER_FIELDS)
        role = _parse_role_field(data.get("role"))
        self._require(Action.CREATE_USER, caller, OrgTarget(role=role))

        buyer_id = data.get("buyer_id")
        supplier_id = data.get("supplier_id")
        if role is Role.SUPERADMIN:
            raise ValidationError("Only one superadmin may exist", field="role")
        if caller.role is Role.SUPPLIER_ADMIN:
            if not caller.supplier_id:
                raise ValidationError("Creator missing supplier scope", field="supplier_id")
            supplier_id, buyer_id = caller.supplier_id, None
        elif caller.role is Role.BUYER_ADMIN:
            if not caller.buyer_id:
                raise ValidationError("Creator missing company scope", field="buyer_id")
            buyer_id, supplier_id = caller.buyer_id, None
        if role in BUYER_ROLES:
            supplier_id = None
        elif role in SUPPLIER_ROLES:
            buyer_id = None
        self._check_scope(role, buyer_id, supplier_id)

        name = required_text(data, "name")
        email = _parse_email(data.get("email"))
        self._check_email_free(email)

        password = data.get("password")
        user = User(
            id=str(uuid4()),
            name=name,
            email=email,
            role=role,
            supplier_id=supplier_id,
            buyer_id=buyer_id,
            permissions=_parse_permissions(data.get("permissions")),
            password_hash=self.hash_password(password) if password else None,
        )
        self.store.users.append(user)

        self._auditor.record(
            AuditAction.USER_CREATED,
            f"User {user.name} created",
            actor_id=caller.user_id,
            buyer_id=user.buyer_id,
            supplier_id=user.supplier_id,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.name,
            metadata={"role": user.role.value},
        )
        logger.info("user_created", extra={"user_id": user.id, "role": user.role.value})
        return user

    def update_user(
        self, caller: CallerContext, user_id: str, updates: Mapping[str, Any]
    ) -> User:
        self._require(Action.UPDATE_USER, caller)
        user = self._load_user(user_id)
        reject_unknown_fields(updates, USER_FIELDS)

        role = _parse_role_field(updates["role"]) if "role" in updates else user.role
        if user.role is Role.SUPERADMIN and role is not Role.SUPERADMIN:
            raise ValidationError("The superadmin cannot be demoted", field="role")
        if user.role is not Role.SUPERADMIN and role is Role.SUPERADMIN:
            raise ValidationError("Only one superadmin may exist", field="role")

        buyer_id = updates.get("buyer_id", user.buyer_id)
        supplier_id = updates.get("supplier_id", user.supplier_id)
        if role in BUYER_ROLES:
            supplier_id = None
        elif role in SUPPLIER_ROLES:
            buyer_id = None
        if role is not Role.SUPERADMIN:
            self._check_scope(role, buyer_id, supplier_id)

        email = user.email
        if "email" in updates:
            email = _parse_email(updates["email"])
            self._check_email_free(email, exclude_id=user.id)
        name = required_text(updates, "name") if "name" in updates else user.name

        user.name = name
        user.email = email
        user.role = role
        user.buyer_id = buyer_id
        user.supplier_id = supplier_id
        if "permissions" in updates:
            user.permissions = _parse_permissions(updates["permissions"])
        if updates.get("password"):
            user.password_hash = self.hash_password(updates["password"])

        self._auditor.record(
            AuditAction.USER_UPDATED,
            f"User {user.name} updated",
            actor_id=caller.user_id,
            buyer_id=user.buyer_id,
            supplier_id=user.supplier_id,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.name,
        )
        logger.info("user_updated", extra={"user_id": user.id})
        return user

    def delete_user(self, caller: CallerContext, user_id: str) -> bool:
        self._require(Action.DELETE_USER, caller)
        user = self._load_user(user_id)
        if user.role is Role.SUPERADMIN:
            raise ValidationError("The superadmin cannot be deleted", field="id")

        self.store.users.remove(user)
        self._auditor.record(
            AuditAction.USER_DELETED,
            f"User {user.name} deleted",
            actor_id=caller.user_id,
            buyer_id=user.buyer_id,
            supplier_id=user.supplier_id,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.name,
        )
        logger.info("user_deleted", extra={"user_id": user.id})
        return True
