"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and the guard helpers every write-side
    service uses.  Services mutate the ``EntityStore`` in place; the kernel
    facade owns checkpoint, snapshot save and rollback.

Architecture position:
    Kernel > Services -- imperative shell.  Every service in
    ``wholesale_kernel/services/`` that performs write operations extends
    this class.

Invariants enforced:
    - Services never save snapshots themselves.  The caller (the kernel
      facade or a test harness) decides when a mutation is durable.
    - Authorization denials are logged once, here, before raising.
"""

from abc import ABC
from typing import Any, Iterable, Mapping

from wholesale_kernel.domain.authorization import Action, can_perform
from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.roles import CallerContext
from wholesale_kernel.exceptions import UnauthorizedError, ValidationError
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.store.entity_store import EntityStore

logger = get_logger("services.base")


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts the kernel's ``EntityStore`` and an optional ``Clock``.

    Non-goals:
        - Does NOT persist snapshots.
        - Does NOT provide list/query methods -- those belong in
          ``wholesale_kernel/selectors/``.
    """

    def __init__(self, store: EntityStore, clock: Clock | None = None):
        self.store = store
        self._clock = clock or SystemClock()

    def _require(self, action: Action, caller: CallerContext, target: Any = None) -> None:
        allowed, reason = can_perform(action, caller, target)
        if not allowed:
            logger.warning(
                "authorization_denied",
                extra={
                    "action": action.value,
                    "actor_id": caller.user_id,
                    "actor_role": caller.role.value if caller.role else None,
                    "reason": reason,
                },
            )
            raise UnauthorizedError(reason, action=action.value, actor_id=caller.user_id)


def reject_unknown_fields(data: Mapping[str, Any], allowed: Iterable[str]) -> None:
    """Raise ValidationError naming the first key not in ``allowed``."""
    allowed_set = set(allowed)
    for key in data:
        if key not in allowed_set:
            raise ValidationError(f"Unknown field: {key}", field=key)


def required_text(data: Mapping[str, Any], key: str, label: str | None = None) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label or key} is required", field=key)
    return value.strip()
