"""
Tests for the order lifecycle definition and status ranking.

Covers:
- Rank order of the reserved stages, confirmed as a synonym of accepted
- Custom stages ranking after every reserved stage, in catalog order
- Backward detection and the approval-gate comparison
- Status catalog helpers: default catalog, slugs, display positions
"""

import pytest

from wholesale_kernel.domain.entities import OrderStatusDef
from wholesale_kernel.domain.order_workflow import (
    BUYER_LOOP_STATUSES,
    ORDER_WORKFLOW,
    RESERVED_STATUS_IDS,
    TERMINAL_STATUSES,
    OrderStatusId,
    StatusRanking,
    default_status_catalog,
    next_display_order,
    normalize_status_request,
    slugify_status_name,
)


@pytest.fixture
def ranking():
    catalog = default_status_catalog() + [
        OrderStatusDef(id="quality-check", name="Quality Check", order=5),
        OrderStatusDef(id="invoiced", name="Invoiced", order=6),
    ]
    return StatusRanking(catalog)


class TestStatusRanking:
    def test_reserved_stages_rank_in_lifecycle_order(self, ranking):
        ranks = [ranking.rank(s.value) for s in OrderStatusId if s is not OrderStatusId.CONFIRMED]
        assert ranks == sorted(ranks)

    def test_confirmed_shares_rank_with_accepted(self, ranking):
        assert ranking.rank("confirmed") == ranking.rank("accepted_by_supplier")

    def test_custom_stages_rank_after_completed(self, ranking):
        assert ranking.rank("quality-check") > ranking.rank("completed")
        assert ranking.rank("invoiced") > ranking.rank("quality-check")

    def test_unknown_status_has_no_rank(self, ranking):
        assert ranking.rank("teleported") is None
        assert "teleported" not in ranking
        assert "shipped" in ranking

    @pytest.mark.parametrize(
        "current,target,backward",
        [
            ("shipped", "pending", True),
            ("accepted_by_supplier", "sent_to_supplier", True),
            ("confirmed", "accepted_by_supplier", False),
            ("accepted_by_supplier", "confirmed", False),
            ("pending", "shipped", False),
            ("completed", "quality-check", False),
            ("quality-check", "completed", True),
        ],
    )
    def test_is_backward(self, ranking, current, target, backward):
        assert ranking.is_backward(current, target) is backward

    def test_is_backward_ignores_unknown(self, ranking):
        assert ranking.is_backward("mystery", "pending") is False

    def test_ranks_above_pending(self, ranking):
        assert ranking.ranks_above("accepted_by_supplier", "pending")
        assert not ranking.ranks_above("pending", "pending")
        assert not ranking.ranks_above("sent_to_supplier", "pending")


class TestWorkflowDefinition:
    def test_terminal_states_are_the_rejections(self):
        assert TERMINAL_STATUSES == {"rejected_by_buyer", "rejected_by_supplier"}

    def test_buyer_loop(self):
        assert BUYER_LOOP_STATUSES == {"draft", "pending_buyer_approval", "rejected_by_buyer"}

    def test_action_for_declared_transition(self):
        assert ORDER_WORKFLOW.action_for("shipped", "completed") == "complete"
        assert ORDER_WORKFLOW.action_for("sent_to_supplier", "accepted_by_supplier") == "accept"

    def test_action_for_undeclared_move(self):
        assert ORDER_WORKFLOW.action_for("pending", "shipped") == "move"

    def test_confirmed_normalizes_to_accepted(self):
        assert normalize_status_request("confirmed") == "accepted_by_supplier"
        assert normalize_status_request("shipped") == "shipped"


class TestStatusCatalog:
    def test_default_catalog_holds_every_reserved_stage(self):
        catalog = default_status_catalog()
        assert {s.id for s in catalog} == RESERVED_STATUS_IDS
        assert [s.order for s in catalog] == sorted(s.order for s in catalog)

    def test_default_catalog_display_positions(self):
        orders = {s.id: s.order for s in default_status_catalog()}
        assert orders["draft"] == 0
        assert orders["sent_to_supplier"] == 0.9
        assert orders["completed"] == 4

    @pytest.mark.parametrize(
        "name,slug",
        [
            ("Quality Check", "quality-check"),
            ("  Awaiting   Pickup ", "awaiting-pickup"),
            ("Invoiced", "invoiced"),
        ],
    )
    def test_slugify(self, name, slug):
        assert slugify_status_name(name) == slug

    def test_next_display_order_follows_highest(self):
        assert next_display_order(default_status_catalog()) == 5
        catalog = default_status_catalog() + [OrderStatusDef("x", "X", 7)]
        assert next_display_order(catalog) == 8

    def test_next_display_order_empty(self):
        assert next_display_order([]) == 1
