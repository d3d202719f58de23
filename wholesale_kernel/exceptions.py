"""
Typed exception hierarchy for the wholesale ordering kernel.

===============================================================================
USAGE
===============================================================================

Every error has its own class, a static ``code`` and structured attributes;
``str(e)`` is the operator-facing message.

    try:
        kernel.move_order(actor_id, order_id, "shipped")
    except InvalidTransitionError as e:
        toast(str(e))                      # human-readable reason
        telemetry(code=e.code, order=e.order_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WholesaleKernelError (base)
    |
    +-- EntityNotFoundError
    |   +-- OrderNotFoundError
    |   +-- UserNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- BuyerNotFoundError
    |   +-- ProductNotFoundError
    |
    +-- UnauthorizedError
    |
    +-- InvalidTransitionError
    |   +-- BackwardTransitionError
    |
    +-- ValidationError
    |   +-- ExportRangeExceededError
    |   +-- UnknownStatusError
    |
    +-- ConflictError
    |   +-- DuplicateEmailError
    |   +-- DuplicateStatusError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|-------------------------------------
Not found     | ORDER_NOT_FOUND           | Order id doesn't exist (or is hidden)
              | USER_NOT_FOUND            | User id doesn't exist
              | SUPPLIER_NOT_FOUND        | Supplier id doesn't exist
              | BUYER_NOT_FOUND           | Buyer org id doesn't exist
              | PRODUCT_NOT_FOUND         | Product id doesn't exist
--------------|---------------------------|-------------------------------------
Authorization | UNAUTHORIZED              | Role/scope forbids the operation
--------------|---------------------------|-------------------------------------
Transition    | INVALID_TRANSITION        | Phase precondition not met
              | BACKWARD_TRANSITION       | Target status ranks below current
--------------|---------------------------|-------------------------------------
Validation    | VALIDATION_ERROR          | Malformed input
              | EXPORT_RANGE_EXCEEDED     | Audit export window > cap
              | UNKNOWN_STATUS            | Status id not in the catalog
--------------|---------------------------|-------------------------------------
Conflict      | DUPLICATE_EMAIL           | Email already registered
              | DUPLICATE_STATUS          | Status id already in the catalog
--------------|---------------------------|-------------------------------------
Concurrency   | OPTIMISTIC_LOCK_CONFLICT  | Stale expected_version on an order
--------------|---------------------------|-------------------------------------
Persistence   | PERSISTENCE_FAILED        | Snapshot write failed (rolled back)

Rows hidden by scoping on read paths raise the not-found error, so their
existence is not revealed.
"""


class WholesaleKernelError(Exception):
    """
    Base exception for all wholesale kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WHOLESALE_KERNEL_ERROR"


# Not-found exceptions


class EntityNotFoundError(WholesaleKernelError):
    """Referenced entity does not exist."""

    code: str = "ENTITY_NOT_FOUND"
    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class OrderNotFoundError(EntityNotFoundError):
    code: str = "ORDER_NOT_FOUND"
    entity_type: str = "order"


class UserNotFoundError(EntityNotFoundError):
    code: str = "USER_NOT_FOUND"
    entity_type: str = "user"


class SupplierNotFoundError(EntityNotFoundError):
    code: str = "SUPPLIER_NOT_FOUND"
    entity_type: str = "supplier"


class BuyerNotFoundError(EntityNotFoundError):
    code: str = "BUYER_NOT_FOUND"
    entity_type: str = "buyer"


class ProductNotFoundError(EntityNotFoundError):
    code: str = "PRODUCT_NOT_FOUND"
    entity_type: str = "product"


# Authorization


class UnauthorizedError(WholesaleKernelError):
    """
    The actor's role or organizational scope does not permit the operation.

    Covers every "Only X can Y" and "outside your scope" condition.
    """

    code: str = "UNAUTHORIZED"

    def __init__(self, reason: str, action: str | None = None, actor_id: str | None = None):
        self.reason = reason
        self.action = action
        self.actor_id = actor_id
        super().__init__(reason)


# Status transitions


class InvalidTransitionError(WholesaleKernelError):
    """Order status change violates a phase precondition."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        reason: str,
        order_id: str | None = None,
        from_status: str | None = None,
        to_status: str | None = None,
    ):
        self.reason = reason
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(reason)


class BackwardTransitionError(InvalidTransitionError):
    """Target status ranks below the current one.  No role may do this."""

    code: str = "BACKWARD_TRANSITION"

    def __init__(self, order_id: str | None, from_status: str, to_status: str):
        super().__init__(
            "Invalid status transition: cannot move backwards "
            f"from {from_status} to {to_status}",
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
        )


# Validation


class ValidationError(WholesaleKernelError):
    """Malformed input, independent of authorization."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ExportRangeExceededError(ValidationError):
    """Audit export window is longer than the configured cap."""

    code: str = "EXPORT_RANGE_EXCEEDED"

    def __init__(self, days: int, max_days: int):
        self.days = days
        self.max_days = max_days
        super().__init__(
            f"Export range cannot exceed 1 year ({days} days requested, "
            f"maximum {max_days})",
            field="to",
        )


class UnknownStatusError(ValidationError):
    """Status id is not part of the order status catalog."""

    code: str = "UNKNOWN_STATUS"

    def __init__(self, status_id: str):
        self.status_id = status_id
        super().__init__(f"Unknown order status: {status_id}", field="status")


# Conflicts


class ConflictError(WholesaleKernelError):
    """Uniqueness violation."""

    code: str = "CONFLICT"


class DuplicateEmailError(ConflictError):
    code: str = "DUPLICATE_EMAIL"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email already registered: {email}")


class DuplicateStatusError(ConflictError):
    code: str = "DUPLICATE_STATUS"

    def __init__(self, status_id: str):
        self.status_id = status_id
        super().__init__(f"Order status already exists: {status_id}")


# Concurrency


class ConcurrencyError(WholesaleKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """
    Order was modified by another request since the caller read it.

    The caller should re-read the order and retry.
    """

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, order_id: str, expected_version: int, actual_version: int):
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on order {order_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Persistence


class PersistenceError(WholesaleKernelError):
    """Snapshot write failed.  The in-memory change has been rolled back."""

    code: str = "PERSISTENCE_FAILED"

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Could not persist {operation}: {cause}")
