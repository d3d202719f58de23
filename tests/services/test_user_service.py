"""
Tests for user provisioning and login.

Covers:
- login(): bootstrap superadmin, hashed passwords, bad credentials
- create_user(): superadmin, scoped admins forcing their own org,
  forbidden roles, scope invariants, duplicate emails
- update_user() / delete_user(): superadmin protection
"""

import pytest

from wholesale_kernel.domain.passwords import is_password_hash
from wholesale_kernel.domain.roles import Role
from wholesale_kernel.exceptions import (
    BuyerNotFoundError,
    DuplicateEmailError,
    UnauthorizedError,
    UserNotFoundError,
    ValidationError,
)

SUPERADMIN_EMAIL = "super@signalwholesale.com"
SUPERADMIN_PASSWORD = "demo123"


def user_data(**overrides):
    data = {"name": "New Person", "email": "new@example.com", "role": "buyer", "buyer_id": "buy-1"}
    data.update(overrides)
    return data


class TestLogin:
    def test_bootstrap_superadmin_logs_in(self, kernel):
        user = kernel.login(SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD)
        assert user.role is Role.SUPERADMIN
        assert user.id == "u-super"

    def test_email_is_case_insensitive(self, kernel):
        assert kernel.login(SUPERADMIN_EMAIL.upper(), SUPERADMIN_PASSWORD).id == "u-super"

    def test_wrong_password(self, kernel):
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            kernel.login(SUPERADMIN_EMAIL, "nope")

    def test_unknown_email(self, kernel):
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            kernel.login("ghost@example.com", SUPERADMIN_PASSWORD)

    def test_created_user_logs_in(self, world):
        user = world.kernel.login("buyer@example.com", "secret")
        assert user.id == world.buyer

    def test_passwords_are_stored_hashed(self, world):
        for user in world.kernel.store.users:
            assert user.password_hash is None or is_password_hash(user.password_hash)

    def test_failed_login_logged(self, kernel, captured_logs):
        with pytest.raises(UnauthorizedError):
            kernel.login(SUPERADMIN_EMAIL, "nope")
        assert any(r["message"] == "login_failed" for r in captured_logs())


class TestCreateUser:
    def test_superadmin_creates_any_scoped_role(self, world):
        user = world.kernel.create_user(world.superadmin, user_data(role="supplier", supplier_id="sup-2", buyer_id=None))
        assert user.role is Role.SUPPLIER
        assert user.supplier_id == "sup-2"
        assert user.buyer_id is None

    def test_buyer_role_drops_supplier_scope(self, world):
        user = world.kernel.create_user(world.superadmin, user_data(supplier_id="sup-1"))
        assert user.supplier_id is None

    def test_buyer_admin_forces_own_company(self, world):
        user = world.kernel.create_user(world.buyer_admin, user_data(buyer_id="buy-2"))
        assert user.buyer_id == "buy-1"

    def test_supplier_admin_creates_managers(self, world):
        user = world.kernel.create_user(
            world.supplier_admin, user_data(role="supplier_manager", buyer_id=None)
        )
        assert user.supplier_id == "sup-1"

    def test_supplier_admin_cannot_create_buyers(self, world):
        with pytest.raises(UnauthorizedError, match="supplier managers or users"):
            world.kernel.create_user(world.supplier_admin, user_data())

    def test_buyer_admin_cannot_create_admins(self, world):
        with pytest.raises(UnauthorizedError):
            world.kernel.create_user(world.buyer_admin, user_data(role="buyer_admin"))

    def test_plain_users_cannot_create(self, world):
        with pytest.raises(UnauthorizedError, match="Only superadmin or company admins"):
            world.kernel.create_user(world.buyer_manager, user_data())

    def test_second_superadmin_rejected(self, world):
        with pytest.raises(ValidationError, match="Only one superadmin"):
            world.kernel.create_user(world.superadmin, user_data(role="superadmin", buyer_id=None))

    def test_scope_invariant(self, world):
        with pytest.raises(ValidationError, match="tied to a buyer company"):
            world.kernel.create_user(world.superadmin, user_data(buyer_id=None))
        with pytest.raises(ValidationError, match="exactly one"):
            world.kernel.create_user(
                world.superadmin, user_data(role="admin", supplier_id="sup-1")
            )

    def test_unknown_org(self, world):
        with pytest.raises(BuyerNotFoundError):
            world.kernel.create_user(world.superadmin, user_data(buyer_id="buy-404"))

    def test_unknown_role(self, world):
        with pytest.raises(ValidationError, match="Unknown role"):
            world.kernel.create_user(world.superadmin, user_data(role="overlord"))

    def test_duplicate_email(self, world):
        with pytest.raises(DuplicateEmailError):
            world.kernel.create_user(world.superadmin, user_data(email="BUYER@example.com"))

    def test_creation_audited(self, world):
        user = world.kernel.create_user(world.buyer_admin, user_data())
        entry = world.kernel.store.audit_logs[0]
        assert entry.action == "user.created"
        assert entry.entity_id == user.id
        assert entry.buyer_id == "buy-1"
        assert entry.metadata == {"role": "buyer"}


class TestUpdateAndDeleteUser:
    def test_superadmin_updates_role_and_scope(self, world):
        user = world.kernel.update_user(world.superadmin, world.buyer, {"role": "buyer_manager"})
        assert user.role is Role.BUYER_MANAGER
        assert user.buyer_id == "buy-1"

    def test_password_change(self, world):
        world.kernel.update_user(world.superadmin, world.buyer, {"password": "fresh"})
        assert world.kernel.login("buyer@example.com", "fresh").id == world.buyer

    def test_only_superadmin_updates(self, world):
        with pytest.raises(UnauthorizedError, match="Only superadmin can update users"):
            world.kernel.update_user(world.buyer_admin, world.buyer, {"name": "X"})

    def test_superadmin_cannot_be_demoted(self, world):
        with pytest.raises(ValidationError, match="cannot be demoted"):
            world.kernel.update_user(world.superadmin, world.superadmin, {"role": "admin"})

    def test_no_promotion_to_superadmin(self, world):
        with pytest.raises(ValidationError, match="Only one superadmin"):
            world.kernel.update_user(world.superadmin, world.buyer, {"role": "superadmin"})

    def test_email_collision_on_update(self, world):
        with pytest.raises(DuplicateEmailError):
            world.kernel.update_user(world.superadmin, world.buyer, {"email": "supplier@example.com"})

    def test_delete(self, world):
        assert world.kernel.delete_user(world.superadmin, world.buyer) is True
        with pytest.raises(UserNotFoundError):
            world.kernel.delete_user(world.superadmin, world.buyer)

    def test_superadmin_cannot_be_deleted(self, world):
        with pytest.raises(ValidationError, match="cannot be deleted"):
            world.kernel.delete_user(world.superadmin, world.superadmin)

    def test_deleted_actor_becomes_anonymous(self, world):
        world.kernel.delete_user(world.superadmin, world.buyer_admin)
        with pytest.raises(UnauthorizedError):
            world.place_order(world.users["buyer_admin"])
