"""
Order lifecycle definition (``wholesale_kernel.domain.order_workflow``).

Responsibility
--------------
Pure value objects for the order state machine: the reserved status
sequence and its total order, the ``confirmed`` synonym, the buyer-loop and
terminal sets, and the ranking of operator-defined custom stages.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports from
``store/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Rank is the position in ``ORDER_WORKFLOW.states``; custom stages rank
  after every reserved stage, in catalog insertion order.  No fractional
  ranks, so two stages can never collide.
* ``confirmed`` and ``accepted_by_supplier`` share one rank; requests for
  either normalize to ``accepted_by_supplier``.
* ``initial_state`` is a member of ``states``; transitions reference only
  reserved states.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from wholesale_kernel.domain.entities import OrderStatusDef


class OrderStatusId(str, Enum):
    """Reserved lifecycle stages, listed in rank order."""

    DRAFT = "draft"
    PENDING_BUYER_APPROVAL = "pending_buyer_approval"
    REJECTED_BY_BUYER = "rejected_by_buyer"
    SENT_TO_SUPPLIER = "sent_to_supplier"
    PENDING = "pending"
    REJECTED_BY_SUPPLIER = "rejected_by_supplier"
    ACCEPTED_BY_SUPPLIER = "accepted_by_supplier"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Guard:
    """A named precondition attached to a transition.

    Contract: frozen, descriptive only; the authorization guard evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A named edge of the order lifecycle."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for the order lifecycle.

    Contract: frozen; ``states`` is in rank order.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def action_for(self, from_state: str, to_state: str) -> str:
        """Name of the declared transition between two states, else ``move``."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t.action
        return "move"


_BUYER_APPROVAL = Guard(
    name="buyer_approval",
    description="Buyer admin/manager of the order's org (or superadmin) signs off",
)
_SUPPLIER_SCOPE = Guard(
    name="supplier_scope",
    description="Actor belongs to the order's supplier",
)
_BUYER_COMPLETION = Guard(
    name="buyer_completion",
    description="Buyer admin/manager of the order's org confirms receipt",
)

_S = OrderStatusId

ORDER_WORKFLOW = Workflow(
    name="order_lifecycle",
    description="Buyer approval loop, supplier acceptance, shipment, completion",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in OrderStatusId),
    transitions=(
        Transition(_S.DRAFT.value, _S.PENDING_BUYER_APPROVAL.value, "submit"),
        Transition(_S.PENDING_BUYER_APPROVAL.value, _S.SENT_TO_SUPPLIER.value, "approve", _BUYER_APPROVAL),
        Transition(_S.PENDING_BUYER_APPROVAL.value, _S.REJECTED_BY_BUYER.value, "reject", _BUYER_APPROVAL),
        Transition(_S.SENT_TO_SUPPLIER.value, _S.ACCEPTED_BY_SUPPLIER.value, "accept", _SUPPLIER_SCOPE),
        Transition(_S.SENT_TO_SUPPLIER.value, _S.REJECTED_BY_SUPPLIER.value, "decline", _SUPPLIER_SCOPE),
        Transition(_S.ACCEPTED_BY_SUPPLIER.value, _S.SHIPPED.value, "ship", _SUPPLIER_SCOPE),
        Transition(_S.CONFIRMED.value, _S.SHIPPED.value, "ship", _SUPPLIER_SCOPE),
        Transition(_S.SHIPPED.value, _S.COMPLETED.value, "complete", _BUYER_COMPLETION),
    ),
    terminal_states=(_S.REJECTED_BY_BUYER.value, _S.REJECTED_BY_SUPPLIER.value),
)

# Display names and catalog ``order`` values of the reserved stages.
RESERVED_STATUS_CATALOG: tuple[tuple[str, str, float], ...] = (
    (_S.DRAFT.value, "Draft", 0),
    (_S.PENDING_BUYER_APPROVAL.value, "Pending Buyer Approval", 0.5),
    (_S.REJECTED_BY_BUYER.value, "Rejected by Buyer", 0.6),
    (_S.SENT_TO_SUPPLIER.value, "Sent to Supplier", 0.9),
    (_S.PENDING.value, "Pending", 1),
    (_S.REJECTED_BY_SUPPLIER.value, "Rejected by Supplier", 1.4),
    (_S.ACCEPTED_BY_SUPPLIER.value, "Accepted by Supplier", 1.5),
    (_S.CONFIRMED.value, "Confirmed", 2),
    (_S.SHIPPED.value, "Shipped", 3),
    (_S.COMPLETED.value, "Completed", 4),
)

RESERVED_STATUS_IDS: frozenset[str] = frozenset(s.value for s in OrderStatusId)

# Stages still inside the buyer's internal approval loop.  Suppliers can
# neither see nor act on orders here.
BUYER_LOOP_STATUSES: frozenset[str] = frozenset({
    _S.DRAFT.value,
    _S.PENDING_BUYER_APPROVAL.value,
    _S.REJECTED_BY_BUYER.value,
})

TERMINAL_STATUSES: frozenset[str] = frozenset(ORDER_WORKFLOW.terminal_states)

# Synonyms normalized at the boundary.  Both ids are valid stored values.
STATUS_SYNONYMS: dict[str, str] = {
    _S.CONFIRMED.value: _S.ACCEPTED_BY_SUPPLIER.value,
    _S.ACCEPTED_BY_SUPPLIER.value: _S.ACCEPTED_BY_SUPPLIER.value,
}

ACCEPTED_STATUSES: frozenset[str] = frozenset({
    _S.ACCEPTED_BY_SUPPLIER.value,
    _S.CONFIRMED.value,
})

# Statuses from which a shipment may be recorded (shipped is idempotent).
SHIPPABLE_FROM: frozenset[str] = ACCEPTED_STATUSES | {_S.SHIPPED.value}

_RESERVED_RANK: dict[str, int] = {
    state: index for index, state in enumerate(ORDER_WORKFLOW.states)
}
_RESERVED_RANK[_S.CONFIRMED.value] = _RESERVED_RANK[_S.ACCEPTED_BY_SUPPLIER.value]


def normalize_status_request(status_id: str) -> str:
    """Map a requested status onto its canonical stored id."""
    return STATUS_SYNONYMS.get(status_id, status_id)


def default_status_catalog() -> list[OrderStatusDef]:
    """The reserved stages as catalog entries, in rank order."""
    return [
        OrderStatusDef(id=status_id, name=name, order=order)
        for status_id, name, order in RESERVED_STATUS_CATALOG
    ]


def slugify_status_name(name: str) -> str:
    """Custom stage id: lower-case name with whitespace runs as ``-``."""
    return re.sub(r"\s+", "-", name.strip().lower())


def next_display_order(catalog: Iterable[OrderStatusDef]) -> float:
    """Display position for a newly appended custom stage."""
    highest = max((s.order for s in catalog), default=0)
    return float(int(highest) + 1)


class StatusRanking:
    """Total order over the current status catalog.

    Contract: reserved stages rank by ``ORDER_WORKFLOW.states`` position;
    custom stages rank after all of them in catalog order.  Unknown ids
    rank as ``None``.
    """

    def __init__(self, catalog: Iterable[OrderStatusDef]):
        self._ranks: dict[str, int] = dict(_RESERVED_RANK)
        next_rank = len(ORDER_WORKFLOW.states)
        for status in catalog:
            if status.id in self._ranks:
                continue
            self._ranks[status.id] = next_rank
            next_rank += 1

    def rank(self, status_id: str) -> int | None:
        return self._ranks.get(status_id)

    def __contains__(self, status_id: object) -> bool:
        return status_id in self._ranks

    def is_backward(self, current: str, target: str) -> bool:
        current_rank = self.rank(current)
        target_rank = self.rank(target)
        if current_rank is None or target_rank is None:
            return False
        return target_rank < current_rank

    def ranks_above(self, status_id: str, reference: str) -> bool:
        rank = self.rank(status_id)
        reference_rank = self.rank(reference)
        if rank is None or reference_rank is None:
            return False
        return rank > reference_rank
