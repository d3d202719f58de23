"""
OrderService -- order lifecycle commands.

Responsibility:
    Creates, updates, moves, duplicates and deletes orders, and extends the
    order status catalog.  Every command runs the authorization guard
    before touching the store and records exactly one audit entry after.

Architecture position:
    Kernel > Services -- imperative shell over the pure guard in
    ``domain.authorization`` and the lifecycle in ``domain.order_workflow``.

Invariants enforced:
    - Creator role fixes the initial (status, approval) pair.
    - ``order_value`` always equals the sum of line totals once items
      change; it is only taken from input at creation.
    - ``version`` starts at 1 and increments on every mutation.
    - Status moves go through ``check_status_change`` on both the move
      and the update path.

Failure modes:
    - OrderNotFoundError: unknown order id.
    - UnauthorizedError / InvalidTransitionError / BackwardTransitionError:
      from the guard.
    - ValidationError: malformed input or immutable fields in an update.
    - OptimisticLockError: stale ``expected_version``.
    - DuplicateStatusError: custom stage id already in the catalog.
"""

from __future__ import annotations

import copy
import dataclasses
from typing import Any, Mapping
from uuid import uuid4

from wholesale_kernel.domain.authorization import (
    Action,
    ApprovalRequest,
    OrgTarget,
    check_status_change,
)
from wholesale_kernel.domain.clock import Clock
from wholesale_kernel.domain.entities import (
    ApprovalStatus,
    AuditAction,
    Order,
    OrderLine,
    OrderStatusDef,
    compute_order_value,
    to_decimal,
)
from wholesale_kernel.domain.order_workflow import (
    BUYER_LOOP_STATUSES,
    ORDER_WORKFLOW,
    TERMINAL_STATUSES,
    OrderStatusId,
    StatusRanking,
    next_display_order,
    slugify_status_name,
)
from wholesale_kernel.domain.roles import (
    BUYER_APPROVER_ROLES,
    CallerContext,
    Role,
    has_buyer_scope,
    is_superadmin,
)
from wholesale_kernel.exceptions import (
    BuyerNotFoundError,
    DuplicateStatusError,
    InvalidTransitionError,
    OptimisticLockError,
    OrderNotFoundError,
    SupplierNotFoundError,
    UnauthorizedError,
    UnknownStatusError,
    ValidationError,
)
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.services.auditor_service import AuditorService
from wholesale_kernel.services.base import BaseService, reject_unknown_fields
from wholesale_kernel.store.entity_store import EntityStore

logger = get_logger("services.orders")

CREATE_FIELDS = frozenset({
    "order_number",
    "buyer_id",
    "supplier_id",
    "items",
    "status",
    "approval_status",
    "order_value",
    "expected_ship_date",
    "payment_terms",
    "warehouse",
    "notes",
    "approver_note",
})

IMMUTABLE_FIELDS = frozenset({
    "id",
    "buyer_id",
    "supplier_id",
    "created_by",
    "created_at",
    "version",
})

UPDATE_FIELDS = frozenset({
    "order_number",
    "items",
    "status",
    "approval_status",
    "order_value",
    "approver_note",
    "expected_ship_date",
    "payment_terms",
    "warehouse",
    "notes",
})

_PLAIN_FIELDS = (
    "order_number",
    "approver_note",
    "expected_ship_date",
    "payment_terms",
    "warehouse",
    "notes",
)

# Stages where the supplier has not acted yet; a buyer-side rejection still
# withdraws the order here.
_AWAITING_SUPPLIER = frozenset({
    OrderStatusId.SENT_TO_SUPPLIER.value,
    OrderStatusId.PENDING.value,
})


def _parse_approval(value: Any) -> ApprovalStatus:
    try:
        return ApprovalStatus(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid approval status: {value!r}", field="approval_status"
        ) from exc


class OrderService(BaseService):
    """
    Service for order lifecycle commands.

    Contract:
        Every public method takes an already-resolved ``CallerContext``;
        the kernel facade resolves actor ids and owns persistence.
    """

    def __init__(self, store: EntityStore, auditor: AuditorService, clock: Clock | None = None):
        super().__init__(store, clock)
        self._auditor = auditor

    # -- helpers -------------------------------------------------------------

    def _load_order(self, order_id: str) -> Order:
        order = self.store.find_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _ranking(self) -> StatusRanking:
        return StatusRanking(self.store.order_statuses)

    def _creator_role(self, order: Order) -> Role | None:
        creator = self.store.find_user(order.created_by)
        return creator.role if creator else None

    def _parse_items(self, raw_items: Any) -> list[OrderLine]:
        if not isinstance(raw_items, (list, tuple)):
            raise ValidationError("items must be a list of order lines", field="items")
        try:
            items = [OrderLine.from_input(line) for line in raw_items]
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValidationError(str(exc), field="items") from exc
        for line in items:
            if line.quantity <= 0:
                raise ValidationError(
                    f"Quantity must be positive for product {line.product_id}", field="items"
                )
            if self.store.find_product(line.product_id) is None:
                raise ValidationError(f"Unknown product: {line.product_id}", field="items")
        return items

    @staticmethod
    def _check_version(order: Order, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != order.version:
            raise OptimisticLockError(order.id, expected_version, order.version)

    def _require_creation_rights(
        self, caller: CallerContext, buyer_id: str | None, supplier_id: str | None
    ) -> None:
        if caller.is_anonymous:
            raise UnauthorizedError(
                "Authentication required to create orders",
                action=Action.CREATE_ORDER.value,
            )
        if has_buyer_scope(caller) and not caller.buyer_id:
            raise ValidationError("Buyer must belong to a company to place orders", field="buyer_id")
        self._require(
            Action.CREATE_ORDER,
            caller,
            OrgTarget(buyer_id=buyer_id, supplier_id=supplier_id),
        )

    # -- commands ------------------------------------------------------------

    def create_order(self, caller: CallerContext, data: Mapping[str, Any]) -> Order:
        """
        Create an order on behalf of ``caller``.

        Preconditions:
            - ``data`` holds ``buyer_id``, ``supplier_id`` and ``items``.
        Postconditions:
            - plain buyer: ``pending_buyer_approval`` / ``pending``.
            - buyer admin/manager: ``sent_to_supplier`` / ``accepted``.
            - anyone else: requested status/approval, default pending/pending.
        """
        reject_unknown_fields(data, CREATE_FIELDS)
        buyer_id = data.get("buyer_id")
        supplier_id = data.get("supplier_id")
        self._require_creation_rights(caller, buyer_id, supplier_id)

        if not buyer_id:
            raise ValidationError("buyer_id is required", field="buyer_id")
        if not supplier_id:
            raise ValidationError("supplier_id is required", field="supplier_id")
        if self.store.find_buyer(buyer_id) is None:
            raise BuyerNotFoundError(buyer_id)
        if self.store.find_supplier(supplier_id) is None:
            raise SupplierNotFoundError(supplier_id)

        items = self._parse_items(data.get("items", []))

        approved_by = None
        if caller.role is Role.BUYER:
            status = OrderStatusId.PENDING_BUYER_APPROVAL.value
            approval = ApprovalStatus.PENDING
        elif caller.role in BUYER_APPROVER_ROLES:
            status = OrderStatusId.SENT_TO_SUPPLIER.value
            approval = ApprovalStatus.ACCEPTED
            approved_by = caller.user_id
        else:
            status = data.get("status") or OrderStatusId.PENDING.value
            if status not in self._ranking():
                raise UnknownStatusError(status)
            approval = _parse_approval(data.get("approval_status") or ApprovalStatus.PENDING.value)
            if approval is ApprovalStatus.ACCEPTED:
                approved_by = caller.user_id

        if data.get("order_value") is not None:
            try:
                order_value = to_decimal(data["order_value"], "order_value")
            except ValueError as exc:
                raise ValidationError(str(exc), field="order_value") from exc
        else:
            order_value = compute_order_value(items)

        order_id = str(uuid4())
        order = Order(
            id=order_id,
            order_number=data.get("order_number") or f"PO-{order_id[:8].upper()}",
            buyer_id=buyer_id,
            supplier_id=supplier_id,
            status=status,
            approval_status=approval,
            items=items,
            order_value=order_value,
            created_at=self._clock.now(),
            created_by=caller.user_id,
            approved_by=approved_by,
            approver_note=data.get("approver_note"),
            expected_ship_date=data.get("expected_ship_date"),
            payment_terms=data.get("payment_terms"),
            warehouse=data.get("warehouse"),
            notes=data.get("notes"),
        )
        self.store.orders.append(order)

        self._auditor.record_order(
            AuditAction.ORDER_CREATED,
            order,
            f"Order {order.order_number} created",
            actor_id=caller.user_id,
            metadata={"status": order.status},
        )
        logger.info(
            "order_created",
            extra={
                "order_id": order.id,
                "order_status": order.status,
                "approval_status": order.approval_status.value,
                "order_value": order.order_value,
            },
        )
        return order

    def update_order(
        self,
        caller: CallerContext,
        order_id: str,
        updates: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> Order:
        """
        Merge ``updates`` into an order.

        Approval changes run before status changes; a status present in
        ``updates`` and different from the post-approval status runs the
        full status guard.
        """
        order = self._load_order(order_id)
        if caller.is_anonymous:
            raise UnauthorizedError(
                "Authentication required to update orders",
                action=Action.UPDATE_ORDER.value,
            )
        self._check_version(order, expected_version)
        self._require(Action.UPDATE_ORDER, caller, order)

        for key in updates:
            if key in IMMUTABLE_FIELDS:
                raise ValidationError(f"Field {key} cannot be changed", field=key)
        reject_unknown_fields(updates, UPDATE_FIELDS)

        new_status = order.status
        new_approval = order.approval_status
        approved_by = order.approved_by

        if updates.get("approval_status") is not None:
            decision = _parse_approval(updates["approval_status"])
            if decision is not order.approval_status:
                new_status = self._decide_approval(caller, order, decision)
                new_approval = decision
                approved_by = caller.user_id

        requested = updates.get("status")
        if requested is not None and requested != new_status:
            staged = dataclasses.replace(order, status=new_status, approval_status=new_approval)
            new_status = check_status_change(
                caller,
                staged,
                requested,
                self._ranking(),
                approval=new_approval,
                creator_role=self._creator_role(order),
                via="update",
            )

        new_items = None
        if "items" in updates:
            new_items = self._parse_items(updates["items"])

        previous_status = order.status
        for key in _PLAIN_FIELDS:
            if key in updates:
                setattr(order, key, updates[key])
        if new_items is not None:
            order.items = new_items
            order.order_value = compute_order_value(new_items)
        order.status = new_status
        order.approval_status = new_approval
        order.approved_by = approved_by
        order.version += 1

        self._auditor.record_order(
            AuditAction.ORDER_UPDATED,
            order,
            f"Order {order.order_number} updated",
            actor_id=caller.user_id,
            metadata={"status": order.status},
        )
        logger.info(
            "order_updated",
            extra={
                "order_id": order.id,
                "from_status": previous_status,
                "to_status": order.status,
                "approval_status": order.approval_status.value,
                "version": order.version,
            },
        )
        return order

    def _decide_approval(
        self, caller: CallerContext, order: Order, decision: ApprovalStatus
    ) -> str:
        """Authorize an approval decision and return the status it implies."""
        self._require(Action.DECIDE_APPROVAL, caller, ApprovalRequest(order, decision))
        if order.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f"Order is closed ({order.status}); approval can no longer change",
                order_id=order.id,
                from_status=order.status,
            )

        buyer_side = is_superadmin(caller) or (
            caller.role in BUYER_APPROVER_ROLES and caller.buyer_id == order.buyer_id
        )
        if not buyer_side:
            if order.status in BUYER_LOOP_STATUSES:
                raise InvalidTransitionError(
                    "Supplier cannot act on orders that are not sent to supplier",
                    order_id=order.id,
                    from_status=order.status,
                )
            return order.status

        if order.status in BUYER_LOOP_STATUSES:
            if decision is ApprovalStatus.ACCEPTED:
                return OrderStatusId.SENT_TO_SUPPLIER.value
            if decision is ApprovalStatus.REJECTED:
                return OrderStatusId.REJECTED_BY_BUYER.value
            return order.status

        if decision is ApprovalStatus.REJECTED:
            if order.status in _AWAITING_SUPPLIER:
                return OrderStatusId.REJECTED_BY_BUYER.value
            raise InvalidTransitionError(
                f"Supplier has already acted on this order ({order.status}); "
                "buyer rejection is no longer possible",
                order_id=order.id,
                from_status=order.status,
            )
        return order.status

    def move_order(
        self,
        caller: CallerContext,
        order_id: str,
        status_id: str,
        expected_version: int | None = None,
    ) -> Order:
        """
        Move an order to ``status_id`` through the status guard.

        The audit entry carries the requested id, not the normalized one.
        """
        order = self._load_order(order_id)
        self._check_version(order, expected_version)
        target = check_status_change(
            caller,
            order,
            status_id,
            self._ranking(),
            creator_role=self._creator_role(order),
            via="move",
        )

        previous_status = order.status
        order.status = target
        order.version += 1

        self._auditor.record_order(
            AuditAction.ORDER_STATUS_CHANGED,
            order,
            f"Order {order.order_number} moved to {status_id}",
            actor_id=caller.user_id,
            metadata={
                "status": status_id,
                "from_status": previous_status,
                "transition": ORDER_WORKFLOW.action_for(previous_status, target),
            },
        )
        logger.info(
            "order_status_changed",
            extra={
                "order_id": order.id,
                "from_status": previous_status,
                "to_status": target,
                "requested_status": status_id,
            },
        )
        return order

    def duplicate_order(self, caller: CallerContext, order_id: str) -> Order:
        """
        Clone an order as a new ``pending`` order numbered ``<source>-R``.

        The creator is kept, so the buyer approval gate still applies.
        """
        source = self._load_order(order_id)
        self._require_creation_rights(caller, source.buyer_id, source.supplier_id)

        items = copy.deepcopy(source.items)
        duplicate = dataclasses.replace(
            source,
            id=str(uuid4()),
            order_number=f"{source.order_number}-R",
            status=OrderStatusId.PENDING.value,
            approval_status=ApprovalStatus.PENDING,
            approved_by=None,
            items=items,
            order_value=compute_order_value(items),
            created_at=self._clock.now(),
            version=1,
        )
        self.store.orders.append(duplicate)

        self._auditor.record_order(
            AuditAction.ORDER_DUPLICATED,
            duplicate,
            f"Order {source.order_number} duplicated",
            actor_id=caller.user_id,
            metadata={"source_order": source.id},
        )
        logger.info(
            "order_duplicated",
            extra={"order_id": duplicate.id, "source_order_id": source.id},
        )
        return duplicate

    def delete_order(self, caller: CallerContext, order_id: str) -> bool:
        order = self._load_order(order_id)
        self._require(Action.DELETE_ORDER, caller, order)

        self.store.orders.remove(order)
        self._auditor.record_order(
            AuditAction.ORDER_DELETED,
            order,
            f"Order {order.order_number} deleted",
            actor_id=caller.user_id,
        )
        logger.info("order_deleted", extra={"order_id": order.id})
        return True

    def add_order_status(self, caller: CallerContext, name: str) -> OrderStatusDef:
        """
        Append a custom stage after every existing one.

        Raises:
            UnauthorizedError: caller is not superadmin.
            ValidationError: empty name.
            DuplicateStatusError: slug already in the catalog.
        """
        self._require(Action.ADD_ORDER_STATUS, caller)
        label = (name or "").strip()
        if not label:
            raise ValidationError("Status name is required", field="name")
        status_id = slugify_status_name(label)
        if self.store.find_status(status_id) is not None:
            raise DuplicateStatusError(status_id)

        status = OrderStatusDef(
            id=status_id,
            name=label,
            order=next_display_order(self.store.order_statuses),
        )
        self.store.order_statuses.append(status)

        self._auditor.record(
            AuditAction.ORDER_STATUS_ADDED,
            f"Order status {label} added",
            actor_id=caller.user_id,
            entity_type="order_status",
            entity_id=status.id,
            entity_name=status.name,
        )
        logger.info("order_status_added", extra={"status_id": status.id})
        return status
