"""Tests for roles, role families and scope rules."""

import pytest

from wholesale_kernel.domain.roles import (
    CallerContext,
    Role,
    RoleFamily,
    acts_as_buyer,
    acts_as_supplier,
    has_buyer_scope,
    has_supplier_scope,
    parse_role,
    scope_violation,
)


class TestParseRole:
    def test_parses_stored_strings(self):
        assert parse_role("buyer_manager") is Role.BUYER_MANAGER
        assert parse_role(Role.ADMIN) is Role.ADMIN

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            parse_role("overlord")


class TestFamilies:
    @pytest.mark.parametrize(
        "role,family",
        [
            (Role.BUYER, RoleFamily.BUYER),
            (Role.BUYER_ADMIN, RoleFamily.BUYER),
            (Role.SUPPLIER_MANAGER, RoleFamily.SUPPLIER),
            (Role.ADMIN, RoleFamily.PLATFORM),
            (Role.SUPERADMIN, RoleFamily.PLATFORM),
        ],
    )
    def test_family(self, role, family):
        assert CallerContext.for_role(role).family is family

    def test_anonymous_has_no_family_or_scope(self):
        anon = CallerContext.anonymous()
        assert anon.is_anonymous
        assert anon.family is None
        assert not acts_as_buyer(anon)
        assert not acts_as_supplier(anon)

    def test_scoped_admin_acts_for_its_org(self):
        buyer_admin = CallerContext.for_role("admin", buyer_id="b-1")
        supplier_admin = CallerContext.for_role("admin", supplier_id="s-1")
        assert acts_as_buyer(buyer_admin) and not acts_as_supplier(buyer_admin)
        assert acts_as_supplier(supplier_admin) and not acts_as_buyer(supplier_admin)
        assert not has_buyer_scope(buyer_admin)
        assert not has_supplier_scope(supplier_admin)


class TestScopeViolation:
    @pytest.mark.parametrize(
        "role,buyer_id,supplier_id,message",
        [
            (Role.SUPPLIER, None, None, "Supplier users must be tied to a supplier"),
            (Role.BUYER_MANAGER, None, None, "Buyer users must be tied to a buyer company"),
            (Role.ADMIN, None, None, "Admin must belong to a supplier or buyer company"),
            (
                Role.ADMIN,
                "b-1",
                "s-1",
                "Admin must be scoped to exactly one of supplier or buyer company",
            ),
        ],
    )
    def test_violations(self, role, buyer_id, supplier_id, message):
        assert scope_violation(role, buyer_id, supplier_id) == message

    @pytest.mark.parametrize(
        "role,buyer_id,supplier_id",
        [
            (Role.SUPPLIER, None, "s-1"),
            (Role.BUYER, "b-1", None),
            (Role.ADMIN, "b-1", None),
            (Role.ADMIN, None, "s-1"),
            (Role.SUPERADMIN, None, None),
        ],
    )
    def test_valid_scopes(self, role, buyer_id, supplier_id):
        assert scope_violation(role, buyer_id, supplier_id) is None
