"""
Tests for the audit trail: recording, scoped cursor pages and export.

Covers:
- One entry per successful mutation, newest first, actor resolved
- list_audit_logs(): visibility per role, filters, cursor walk
- export_audit_logs(): day window, 365-day cap, validation, the export
  itself being audited
"""

from datetime import date, timedelta

import pytest

from wholesale_kernel.exceptions import ExportRangeExceededError, ValidationError
from wholesale_kernel.selectors.audit_selector import AuditCursor


def walk_pages(kernel, actor_id, **filters):
    """Follow next_cursor until exhausted, returning every entry."""
    entries, cursor = [], None
    while True:
        page = kernel.list_audit_logs(actor_id, cursor=cursor, **filters)
        entries.extend(page.items)
        if not page.has_more:
            return entries
        cursor = page.next_cursor


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class TestRecording:
    def test_newest_first(self, world):
        world.clock.advance(60)
        order = world.place_order(world.buyer_admin)
        first = world.kernel.store.audit_logs[0]
        assert first.entity_id == order.id
        assert first.timestamp == world.clock.now()
        assert world.kernel.store.audit_logs[1].timestamp < first.timestamp

    def test_actor_name_and_role_resolved(self, world):
        world.place_order(world.buyer_manager)
        entry = world.kernel.store.audit_logs[0]
        assert entry.actor_name == "Buyer Manager"
        assert entry.actor_role == "buyer_manager"
        assert entry.source == "ui"
        assert entry.status == "success"

    def test_every_mutation_writes_one_entry(self, world):
        k = world.kernel
        before = len(k.store.audit_logs)
        order = world.order_at_supplier()
        k.update_order(world.buyer_admin, order.id, {"notes": "n"})
        k.move_order(world.supplier, order.id, "accepted_by_supplier")
        k.duplicate_order(world.buyer_admin, order.id)
        k.delete_order(world.buyer_admin, order.id)
        actions = [e.action for e in k.store.audit_logs[: len(k.store.audit_logs) - before]]
        assert actions == [
            "order.deleted",
            "order.duplicated",
            "order.status_changed",
            "order.updated",
            "order.created",
        ]

    def test_audit_logged(self, world, captured_logs):
        world.place_order(world.buyer_admin)
        records = [r for r in captured_logs() if r["message"] == "audit_recorded"]
        assert records[-1]["audit_action"] == "order.created"


# ---------------------------------------------------------------------------
# Scoped pages
# ---------------------------------------------------------------------------


class TestAuditPages:
    def test_superadmin_sees_everything(self, world):
        entries = walk_pages(world.kernel, world.superadmin)
        assert [e.id for e in entries] == [e.id for e in world.kernel.store.audit_logs]

    def test_page_size_and_cursor(self, world):
        for _ in range(5):
            world.order_at_supplier()
        total = len(world.kernel.store.audit_logs)
        first = world.kernel.list_audit_logs(world.superadmin)
        assert len(first.items) == 20
        assert first.next_cursor == AuditCursor(20)
        second = world.kernel.list_audit_logs(world.superadmin, cursor=first.next_cursor)
        assert len(second.items) == total - 20
        assert second.next_cursor is None
        assert not second.has_more

    def test_cursor_accepts_plain_index(self, world):
        page = world.kernel.list_audit_logs(world.superadmin, cursor=3)
        assert page.items[0].id == world.kernel.store.audit_logs[3].id

    def test_negative_cursor_rejected(self, world):
        with pytest.raises(ValidationError):
            world.kernel.list_audit_logs(world.superadmin, cursor=-1)

    def test_cursor_past_end_is_empty(self, world):
        page = world.kernel.list_audit_logs(world.superadmin, cursor=10_000)
        assert page.items == ()
        assert page.next_cursor is None

    def test_supplier_sees_only_its_supplier(self, world):
        world.order_at_supplier()
        world.place_order(world.superadmin, supplier_id=world.supplier_2, items=[
            {"product_id": "p-3", "quantity": 1, "unit_price": "7.00"},
        ])
        entries = walk_pages(world.kernel, world.supplier)
        assert entries
        assert all(e.supplier_id == world.supplier_1 for e in entries)

    def test_buyer_sees_only_its_company(self, world):
        world.order_at_supplier()
        world.place_order(world.other_buyer_admin, buyer_id=world.buyer_2)
        entries = walk_pages(world.kernel, world.buyer)
        assert entries
        assert all(e.buyer_id == world.buyer_1 for e in entries)

    def test_scoped_admin_follows_its_org(self, world):
        entries = walk_pages(world.kernel, world.supplier_scoped_admin)
        assert entries
        assert all(e.supplier_id == world.supplier_1 for e in entries)

    def test_anonymous_sees_nothing(self, world):
        page = world.kernel.list_audit_logs(None)
        assert page.items == ()
        assert not page.has_more

    def test_filters_narrow_superadmin_view(self, world):
        world.order_at_supplier()
        entries = walk_pages(world.kernel, world.superadmin, supplier_id=world.supplier_2)
        assert entries
        assert {e.supplier_id for e in entries} == {world.supplier_2}

    def test_filters_cannot_widen_scope(self, world):
        entries = walk_pages(world.kernel, world.supplier, supplier_id=world.supplier_2)
        assert entries == []


class TestAuditPagesByRole:
    def test_supplier_role_view(self, world):
        world.order_at_supplier()
        world.place_order(world.superadmin, supplier_id=world.supplier_2, items=[
            {"product_id": "p-3", "quantity": 1, "unit_price": "7.00"},
        ])
        entries = walk_pages(
            world.kernel, None, role="supplier_manager", supplier_id=world.supplier_1
        )
        assert entries
        assert all(e.supplier_id == world.supplier_1 for e in entries)

    def test_buyer_role_view(self, world):
        world.order_at_supplier()
        world.place_order(world.other_buyer_admin, buyer_id=world.buyer_2)
        entries = walk_pages(world.kernel, None, role="buyer", buyer_id=world.buyer_2)
        assert entries
        assert {e.buyer_id for e in entries} == {world.buyer_2}

    def test_superadmin_role_view_matches_actor_view(self, world):
        world.order_at_supplier()
        by_role = walk_pages(world.kernel, None, role="superadmin")
        by_actor = walk_pages(world.kernel, world.superadmin)
        assert [e.id for e in by_role] == [e.id for e in by_actor]

    def test_role_without_scope_sees_nothing(self, world):
        world.order_at_supplier()
        assert world.kernel.list_audit_logs(None, role="supplier").items == ()

    def test_actor_wins_over_role(self, world):
        world.order_at_supplier()
        entries = walk_pages(world.kernel, world.supplier, role="superadmin")
        assert all(e.supplier_id == world.supplier_1 for e in entries)

    def test_unknown_role_rejected(self, world):
        with pytest.raises(ValidationError, match="Unknown role"):
            world.kernel.list_audit_logs(None, role="overlord")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    def test_window_is_inclusive_of_whole_days(self, world):
        k = world.kernel
        seeded = len(k.store.audit_logs)
        world.clock.advance_days(3)
        world.order_at_supplier()

        day_one = k.export_audit_logs(world.superadmin, "2024-01-01", "2024-01-01")
        assert len(day_one) == seeded

        everything = k.export_audit_logs(world.superadmin, "2024-01-01", "2024-01-04")
        # the first export is itself an entry stamped on 2024-01-04
        assert len(everything) == seeded + 2

    def test_export_is_audited(self, world):
        k = world.kernel
        result = k.export_audit_logs(world.supplier_manager, "2024-01-01", "2024-01-31")
        entry = k.store.audit_logs[0]
        assert entry.action == "audit.exported"
        assert entry.entity_type == "audit"
        assert entry.supplier_id == world.supplier_1
        assert entry.metadata == {"from": "2024-01-01", "to": "2024-01-31", "count": len(result)}
        assert entry.id not in {e.id for e in result}

    def test_export_respects_scope(self, world):
        result = world.kernel.export_audit_logs(world.buyer, "2024-01-01", "2024-01-02")
        assert result
        assert all(e.buyer_id == world.buyer_1 for e in result)

    def test_exactly_one_year_allowed(self, world):
        world.kernel.export_audit_logs(world.superadmin, "2023-01-01", "2024-01-01")

    def test_longer_than_a_year_rejected(self, world):
        before = len(world.kernel.store.audit_logs)
        with pytest.raises(ExportRangeExceededError, match="cannot exceed 1 year") as exc:
            world.kernel.export_audit_logs(world.superadmin, "2023-01-01", "2024-01-02")
        assert exc.value.days == 366
        assert len(world.kernel.store.audit_logs) == before

    def test_date_objects_accepted(self, world):
        start = date(2024, 1, 1)
        result = world.kernel.export_audit_logs(world.superadmin, start, start + timedelta(days=1))
        assert result

    @pytest.mark.parametrize(
        "date_from,date_to",
        [
            ("01/01/2024", "2024-01-02"),
            ("2024-01-01", "2024-13-01"),
            ("2024-01-01", ""),
        ],
    )
    def test_malformed_dates(self, world, date_from, date_to):
        with pytest.raises(ValidationError):
            world.kernel.export_audit_logs(world.superadmin, date_from, date_to)

    def test_end_before_start(self, world):
        with pytest.raises(ValidationError, match="before start"):
            world.kernel.export_audit_logs(world.superadmin, "2024-02-01", "2024-01-01")

    def test_anonymous_export_is_empty(self, world):
        assert world.kernel.export_audit_logs(None, "2024-01-01", "2024-01-02") == []
