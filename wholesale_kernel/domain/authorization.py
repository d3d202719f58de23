"""
Authorization guard (``wholesale_kernel.domain.authorization``).

Responsibility
--------------
The single place where role and org scope decide what a caller may do.

* ``can_perform(action, caller, target) -> (allowed, reason)`` answers the
  "who" question for every kernel command.  ``reason`` is empty when
  allowed and a user-facing sentence when denied.
* ``check_status_change(...)`` runs the full status guard for an order:
  scope, phase, terminal, shipment precondition, completion, forward-only
  and the buyer approval gate.  It raises typed errors and returns the
  canonical target status.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O, no logging.  Services
call in here and own the logging of denials.

Invariants enforced
-------------------
* Suppliers never create orders.
* Buyer-family actors and bare ``admin`` never set ``status`` directly;
  the only exception is buyer admin/manager completing a shipped order.
* No status move leaves the buyer loop except through approval.
* Status never moves to a lower rank, for any role.
* An order created by a plain ``buyer`` never passes ``pending`` without
  an ``accepted`` approval.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from wholesale_kernel.domain.entities import ApprovalStatus, Order
from wholesale_kernel.domain.order_workflow import (
    BUYER_LOOP_STATUSES,
    SHIPPABLE_FROM,
    TERMINAL_STATUSES,
    OrderStatusId,
    StatusRanking,
    normalize_status_request,
)
from wholesale_kernel.domain.roles import (
    BUYER_APPROVER_ROLES,
    CATALOG_MANAGER_ROLES,
    CREATABLE_BY,
    CallerContext,
    Role,
    acts_as_buyer,
    acts_as_supplier,
    has_buyer_scope,
    has_supplier_scope,
    is_scoped_admin,
    is_superadmin,
)
from wholesale_kernel.exceptions import (
    BackwardTransitionError,
    InvalidTransitionError,
    UnauthorizedError,
    UnknownStatusError,
)


class Action(str, Enum):
    """Every guarded kernel command."""

    CREATE_ORDER = "order.create"
    UPDATE_ORDER = "order.update"
    DECIDE_APPROVAL = "order.decide_approval"
    SET_STATUS = "order.set_status"
    DELETE_ORDER = "order.delete"
    ADD_ORDER_STATUS = "order_status.add"

    CREATE_PRODUCT = "product.create"
    UPDATE_PRODUCT = "product.update"
    DELETE_PRODUCT = "product.delete"

    CREATE_USER = "user.create"
    UPDATE_USER = "user.update"
    DELETE_USER = "user.delete"

    CREATE_SUPPLIER = "supplier.create"
    UPDATE_SUPPLIER = "supplier.update"
    DELETE_SUPPLIER = "supplier.delete"

    CREATE_BUYER = "buyer.create"
    UPDATE_BUYER = "buyer.update"
    DELETE_BUYER = "buyer.delete"


@dataclass(frozen=True)
class OrgTarget:
    """The org a command points at (new order, new product, new user)."""

    buyer_id: str | None = None
    supplier_id: str | None = None
    role: Role | None = None


@dataclass(frozen=True)
class ApprovalRequest:
    order: Order
    decision: ApprovalStatus


@dataclass(frozen=True)
class StatusRequest:
    order: Order
    requested: str
    via: str = "move"


Decision = tuple[bool, str]
_ALLOW: Decision = (True, "")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def _create_order(caller: CallerContext, target: OrgTarget) -> Decision:
    if caller.is_anonymous:
        return (False, "Authentication required to create orders")
    if has_supplier_scope(caller):
        return (False, "Suppliers cannot create orders")
    if has_buyer_scope(caller):
        if target.buyer_id != caller.buyer_id:
            return (False, "Buyers can only create orders for their own company")
        return _ALLOW
    if is_scoped_admin(caller):
        if not caller.buyer_id and not caller.supplier_id:
            return (False, "Admin must be scoped to a company or supplier")
        if caller.buyer_id and target.buyer_id != caller.buyer_id:
            return (False, "Scoped admin can only create orders for their company")
        if caller.supplier_id and target.supplier_id != caller.supplier_id:
            return (False, "Scoped admin can only target their supplier")
        return _ALLOW
    return _ALLOW if is_superadmin(caller) else (False, "Not allowed to create orders")


def _update_order(caller: CallerContext, order: Order) -> Decision:
    if caller.is_anonymous:
        return (False, "Authentication required to update orders")
    if has_buyer_scope(caller) and order.buyer_id != caller.buyer_id:
        return (False, "Buyers can only modify their company orders")
    if has_supplier_scope(caller) and order.supplier_id != caller.supplier_id:
        return (False, "Suppliers can only modify their supplier orders")
    if is_scoped_admin(caller):
        if caller.buyer_id and order.buyer_id != caller.buyer_id:
            return (False, "Scoped admin cannot modify other buyer orders")
        if caller.supplier_id and order.supplier_id != caller.supplier_id:
            return (False, "Scoped admin cannot modify other supplier orders")
    return _ALLOW


def _is_buyer_approver_for(caller: CallerContext, order: Order) -> bool:
    return caller.role in BUYER_APPROVER_ROLES and caller.buyer_id == order.buyer_id


def _decide_approval(caller: CallerContext, request: ApprovalRequest) -> Decision:
    order = request.order
    if is_superadmin(caller) or _is_buyer_approver_for(caller, order):
        return _ALLOW
    if (
        acts_as_supplier(caller)
        and caller.supplier_id == order.supplier_id
        and request.decision is ApprovalStatus.REJECTED
    ):
        return _ALLOW
    return (False, "Only buyer admins or managers can approve or reject orders")


def _set_status(caller: CallerContext, request: StatusRequest) -> Decision:
    order = request.order
    if caller.is_anonymous:
        return (False, "Authentication required to move orders")
    if request.requested == OrderStatusId.COMPLETED.value and caller.role in BUYER_APPROVER_ROLES:
        if caller.buyer_id != order.buyer_id:
            return (False, "Cannot complete orders outside your company")
        return _ALLOW
    if has_buyer_scope(caller):
        if request.via == "update":
            return (False, "Buyers cannot change order status")
        return (False, "Buyers cannot move order status")
    if acts_as_supplier(caller) and order.supplier_id != caller.supplier_id:
        return (False, "Cannot move orders outside your supplier scope")
    if is_scoped_admin(caller):
        return (False, "Admins cannot change order status")
    return _ALLOW


def _delete_order(caller: CallerContext, order: Order) -> Decision:
    if is_superadmin(caller):
        return _ALLOW
    buyer_side = caller.role in BUYER_APPROVER_ROLES or (
        is_scoped_admin(caller) and acts_as_buyer(caller)
    )
    if buyer_side and caller.buyer_id == order.buyer_id:
        return _ALLOW
    return (False, "Only buyer admins or managers can delete their company orders")


def _add_order_status(caller: CallerContext, target: Any) -> Decision:
    if is_superadmin(caller):
        return _ALLOW
    return (False, "Only superadmin can add order statuses")


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def _product_check(verb: str) -> Callable[[CallerContext, Any], Decision]:
    def check(caller: CallerContext, target: Any) -> Decision:
        if is_superadmin(caller):
            return _ALLOW
        if caller.is_anonymous:
            return (False, f"Authentication required to {verb} products")
        if has_buyer_scope(caller):
            return (False, f"Buyers cannot {verb} products")
        if has_supplier_scope(caller):
            if caller.role not in CATALOG_MANAGER_ROLES:
                return (False, f"Only supplier admins or managers can {verb} products")
            if target.supplier_id != caller.supplier_id:
                return (False, f"Cannot {verb} products outside your supplier")
            return _ALLOW
        if is_scoped_admin(caller) and caller.supplier_id:
            if target.supplier_id != caller.supplier_id:
                return (False, f"Admin can only {verb} products for their supplier scope")
            return _ALLOW
        return (False, f"Not allowed to {verb} products")

    return check


# ---------------------------------------------------------------------------
# Users and organizations
# ---------------------------------------------------------------------------


def _create_user(caller: CallerContext, target: OrgTarget) -> Decision:
    if is_superadmin(caller):
        return _ALLOW
    if caller.role is Role.SUPPLIER_ADMIN:
        if target.role not in CREATABLE_BY[Role.SUPPLIER_ADMIN]:
            return (False, "Supplier admins can only create supplier managers or users")
        return _ALLOW
    if caller.role is Role.BUYER_ADMIN:
        if target.role not in CREATABLE_BY[Role.BUYER_ADMIN]:
            return (False, "Buyer admins can only create buyer managers or users")
        return _ALLOW
    if caller.is_anonymous:
        return (False, "Only authenticated admins can create users")
    return (False, "Only superadmin or company admins can create users")


def _superadmin_only(message: str) -> Callable[[CallerContext, Any], Decision]:
    def check(caller: CallerContext, target: Any) -> Decision:
        return _ALLOW if is_superadmin(caller) else (False, message)

    return check


_CHECKS: dict[Action, Callable[[CallerContext, Any], Decision]] = {
    Action.CREATE_ORDER: _create_order,
    Action.UPDATE_ORDER: _update_order,
    Action.DECIDE_APPROVAL: _decide_approval,
    Action.SET_STATUS: _set_status,
    Action.DELETE_ORDER: _delete_order,
    Action.ADD_ORDER_STATUS: _add_order_status,
    Action.CREATE_PRODUCT: _product_check("create"),
    Action.UPDATE_PRODUCT: _product_check("modify"),
    Action.DELETE_PRODUCT: _product_check("delete"),
    Action.CREATE_USER: _create_user,
    Action.UPDATE_USER: _superadmin_only("Only superadmin can update users"),
    Action.DELETE_USER: _superadmin_only("Only superadmin can delete users"),
    Action.CREATE_SUPPLIER: _superadmin_only("Only superadmin can create suppliers"),
    Action.UPDATE_SUPPLIER: _superadmin_only("Only superadmin can update suppliers"),
    Action.DELETE_SUPPLIER: _superadmin_only("Only superadmin can delete suppliers"),
    Action.CREATE_BUYER: _superadmin_only("Only superadmin can create buyer companies"),
    Action.UPDATE_BUYER: _superadmin_only("Only superadmin can update buyer companies"),
    Action.DELETE_BUYER: _superadmin_only("Only superadmin can delete buyer companies"),
}


def can_perform(action: Action, caller: CallerContext, target: Any = None) -> Decision:
    """Check whether ``caller`` may perform ``action`` on ``target``.

    Returns:
        (allowed, reason).  ``reason`` is empty when allowed.
    """
    return _CHECKS[action](caller, target)


def require(action: Action, caller: CallerContext, target: Any = None) -> None:
    """Raise ``UnauthorizedError`` unless ``can_perform`` allows the action."""
    allowed, reason = can_perform(action, caller, target)
    if not allowed:
        raise UnauthorizedError(reason, action=action.value, actor_id=caller.user_id)


# ---------------------------------------------------------------------------
# Status guard
# ---------------------------------------------------------------------------


def check_status_change(
    caller: CallerContext,
    order: Order,
    requested: str,
    ranking: StatusRanking,
    *,
    approval: ApprovalStatus | None = None,
    creator_role: Role | None = None,
    via: str = "move",
) -> str:
    """
    Run the status guard and return the status id to store.

    Args:
        approval: Approval status the order will have after this change
            (defaults to its current one).
        creator_role: Role of the order's creator, for the approval gate.
        via: ``"move"`` or ``"update"``; only changes denial wording.

    Raises:
        UnknownStatusError: ``requested`` is not in the catalog.
        UnauthorizedError: scope or completion rights.
        InvalidTransitionError: phase, terminal, shipment, completion or
            approval gate.
        BackwardTransitionError: target ranks below current.
    """
    if requested not in ranking:
        raise UnknownStatusError(requested)

    require(Action.SET_STATUS, caller, StatusRequest(order, requested, via))

    current = order.status
    if current in BUYER_LOOP_STATUSES:
        raise InvalidTransitionError(
            "Supplier cannot act on orders that are not sent to supplier",
            order_id=order.id, from_status=current, to_status=requested,
        )
    if current in TERMINAL_STATUSES:
        raise InvalidTransitionError(
            f"Order is closed ({current}); no further status changes",
            order_id=order.id, from_status=current, to_status=requested,
        )

    target = normalize_status_request(requested)
    if target == OrderStatusId.SHIPPED.value and current not in SHIPPABLE_FROM:
        raise InvalidTransitionError(
            "Order must be accepted by supplier before shipment",
            order_id=order.id, from_status=current, to_status=requested,
        )
    if target == OrderStatusId.COMPLETED.value:
        if caller.role not in BUYER_APPROVER_ROLES:
            raise UnauthorizedError(
                "Only buyer admins or managers can complete orders",
                action=Action.SET_STATUS.value,
                actor_id=caller.user_id,
            )
        if current != OrderStatusId.SHIPPED.value:
            raise InvalidTransitionError(
                "Order must be shipped before it can be completed",
                order_id=order.id, from_status=current, to_status=requested,
            )

    if ranking.is_backward(current, target):
        raise BackwardTransitionError(order.id, current, target)

    effective_approval = approval or order.approval_status
    if (
        creator_role is Role.BUYER
        and ranking.ranks_above(target, OrderStatusId.PENDING.value)
        and effective_approval is not ApprovalStatus.ACCEPTED
    ):
        raise InvalidTransitionError(
            "Regular buyer orders require manager/admin approval before confirmation",
            order_id=order.id, from_status=current, to_status=requested,
        )
    return target
