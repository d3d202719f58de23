"""
Property-based tests using Hypothesis.

Properties:
- Status ranking is a total, forward-only order over any catalog
- Audit cursor pages cover the visible log exactly once, in order
- Order value is always the sum of line totals
- Migration normalizes any stored status and is idempotent
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from wholesale_config import get_active_config
from wholesale_kernel.domain.entities import (
    AuditEntry,
    OrderLine,
    OrderStatusDef,
    compute_order_value,
)
from wholesale_kernel.domain.order_workflow import (
    RESERVED_STATUS_IDS,
    StatusRanking,
    default_status_catalog,
    next_display_order,
    slugify_status_name,
)
from wholesale_kernel.domain.passwords import hash_password
from wholesale_kernel.domain.roles import CallerContext, Role
from wholesale_kernel.selectors.audit_selector import AuditSelector
from wholesale_kernel.store.entity_store import EntityStore, StoreState
from wholesale_kernel.store.migration import migrate_document

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

stage_names = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ", min_size=1, max_size=12
)


def catalog_with(names):
    catalog = default_status_catalog()
    for name in names:
        slug = slugify_status_name(name)
        if slug in {s.id for s in catalog}:
            continue
        catalog.append(OrderStatusDef(id=slug, name=name, order=next_display_order(catalog)))
    return catalog


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class TestRankingProperties:
    @given(names=st.lists(stage_names, max_size=6), data=st.data())
    def test_backward_is_strict_order(self, names, data):
        catalog = catalog_with(names)
        ranking = StatusRanking(catalog)
        ids = [s.id for s in catalog]
        a = data.draw(st.sampled_from(ids))
        b = data.draw(st.sampled_from(ids))
        assert not ranking.is_backward(a, a)
        assert not (ranking.is_backward(a, b) and ranking.is_backward(b, a))
        assert ranking.is_backward(a, b) == (ranking.rank(b) < ranking.rank(a))

    @given(names=st.lists(stage_names, min_size=1, max_size=6))
    def test_custom_stages_rank_after_reserved(self, names):
        catalog = catalog_with(names)
        ranking = StatusRanking(catalog)
        top_reserved = max(ranking.rank(s) for s in RESERVED_STATUS_IDS)
        for status in catalog:
            if status.id not in RESERVED_STATUS_IDS:
                assert ranking.rank(status.id) > top_reserved

    @given(names=st.lists(stage_names, max_size=6))
    def test_display_order_strictly_increases_for_custom(self, names):
        catalog = catalog_with(names)
        custom = [s.order for s in catalog if s.id not in RESERVED_STATUS_IDS]
        assert custom == sorted(set(custom))


# ---------------------------------------------------------------------------
# Audit pagination
# ---------------------------------------------------------------------------


def audit_store(suppliers):
    entries = [
        AuditEntry(
            id=f"a-{i}",
            timestamp=BASE_TIME - timedelta(minutes=i),
            action="order.created",
            summary="",
            supplier_id=supplier,
        )
        for i, supplier in enumerate(suppliers)
    ]
    return EntityStore(StoreState(audit_logs=entries))


class TestPaginationProperties:
    @given(
        suppliers=st.lists(st.sampled_from(["sup-1", "sup-2"]), max_size=60),
        page_size=st.integers(min_value=1, max_value=25),
    )
    def test_pages_cover_visible_log_once(self, suppliers, page_size):
        selector = AuditSelector(audit_store(suppliers), page_size=page_size)
        caller = CallerContext.for_role(Role.SUPPLIER, supplier_id="sup-1")

        seen, cursor = [], None
        while True:
            page = selector.list_page(caller, cursor=cursor)
            assert len(page.items) <= page_size
            seen.extend(page.items)
            if not page.has_more:
                break
            assert len(page.items) == page_size
            cursor = page.next_cursor

        expected = [e.id for e in selector.store.audit_logs if e.supplier_id == "sup-1"]
        assert [e.id for e in seen] == expected
        assert [e.timestamp for e in seen] == sorted((e.timestamp for e in seen), reverse=True)


# ---------------------------------------------------------------------------
# Order value
# ---------------------------------------------------------------------------


line_inputs = st.fixed_dictionaries({
    "product_id": st.sampled_from(["p-1", "p-2", "p-3"]),
    "quantity": st.integers(min_value=1, max_value=500),
    "unit_price": st.decimals(
        min_value=0, max_value=10_000, places=2, allow_nan=False, allow_infinity=False
    ),
})


class TestOrderValueProperties:
    @given(lines=st.lists(line_inputs, max_size=20))
    def test_value_is_sum_of_lines(self, lines):
        items = [OrderLine.from_input(line) for line in lines]
        expected = sum((line["unit_price"] * line["quantity"] for line in lines), Decimal("0"))
        assert compute_order_value(items) == expected

    @given(lines=st.lists(line_inputs, min_size=1, max_size=20), drop=st.integers(min_value=0))
    def test_removing_a_line_reduces_value_by_its_total(self, lines, drop):
        items = [OrderLine.from_input(line) for line in lines]
        removed = items.pop(drop % len(items))
        assert compute_order_value(items) == compute_order_value(
            items + [removed]
        ) - removed.line_total


# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------


def cheap_hash(password):
    return hash_password(password, rounds=4)


def migrate(document):
    config = get_active_config()
    return migrate_document(
        document,
        migration=config.migration,
        bootstrap=config.bootstrap,
        buyer_tiers=config.buyer_tiers,
        hash_password=cheap_hash,
    )


class TestMigrationProperties:
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    @given(statuses=st.lists(st.text(max_size=15), max_size=5))
    def test_any_status_normalized_and_stable(self, statuses):
        document = {
            "buyers": [{"id": "b-1", "name": "B", "createdAt": BASE_TIME.isoformat(),
                        "priceTierId": "tier-standard"}],
            "orders": [
                {"id": f"o-{i}", "buyerId": "b-1", "supplierId": "s-1", "status": status,
                 "createdAt": BASE_TIME.isoformat(), "items": []}
                for i, status in enumerate(statuses)
            ],
        }
        once, _ = migrate(document)
        known = {s["id"] for s in once["orderStatuses"]}
        assert all(order["status"] in known for order in once["orders"])

        twice, report = migrate(once)
        assert not report.changed
        assert twice == once
