"""
AuditorService -- append-only audit trail and time-bounded export.

Responsibility:
    Creates one ``AuditEntry`` for every successful state change in the
    kernel and produces unpaginated exports over a bounded date window.

Architecture position:
    Kernel > Services -- called by every other service as the LAST
    in-memory step of a successful mutation.

Invariants enforced:
    - Append-only: entries are prepended to ``store.audit_logs`` and never
      modified or removed.
    - One entry per successful mutation; a failed guard writes nothing.
    - Export windows are validated before the log is read, and the
      ``audit.exported`` entry is written after the result set is taken.

Failure modes:
    - ValidationError: malformed export dates or ``to`` before ``from``.
    - ExportRangeExceededError: export window longer than the cap.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from uuid import uuid4

from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.entities import AuditAction, AuditEntry, Order
from wholesale_kernel.domain.roles import CallerContext
from wholesale_kernel.exceptions import ExportRangeExceededError, ValidationError
from wholesale_kernel.logging_config import get_logger
from wholesale_kernel.selectors.audit_selector import AuditSelector
from wholesale_kernel.store.entity_store import EntityStore

logger = get_logger("services.auditor")

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DEFAULT_EXPORT_MAX_DAYS = 365


def parse_export_day(value: str | date, field: str) -> date:
    """
    Accept a ``date`` or strict ``YYYY-MM-DD`` text.

    Raises:
        ValidationError: anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DAY.match(value):
        raise ValidationError(f"Invalid {field} date: {value!r} (expected YYYY-MM-DD)", field=field)
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {field} date: {value!r}", field=field) from exc


class AuditorService:
    """
    Service for recording and exporting audit entries.

    Contract:
        ``record`` stamps a uuid and the injected clock's UTC time, resolves
        the actor's display name and role through the store, and prepends.

    Non-goals:
        - Does NOT paginate -- ``AuditSelector`` does.
        - Does NOT clear the log; ``WholesaleKernel.reset`` re-seeds it.
    """

    def __init__(
        self,
        store: EntityStore,
        clock: Clock | None = None,
        export_max_days: int = DEFAULT_EXPORT_MAX_DAYS,
        default_source: str = "ui",
    ):
        self.store = store
        self._clock = clock or SystemClock()
        self._export_max_days = export_max_days
        self._default_source = default_source

    def record(
        self,
        action: AuditAction,
        summary: str,
        *,
        actor_id: str | None = None,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        entity_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        status: str = "success",
        source: str | None = None,
    ) -> AuditEntry:
        actor = self.store.find_user(actor_id)
        entry = AuditEntry(
            id=str(uuid4()),
            timestamp=self._clock.now(),
            action=action.value,
            summary=summary,
            status=status,
            actor_id=actor_id,
            actor_name=actor.name if actor else None,
            actor_role=actor.role.value if actor else None,
            buyer_id=buyer_id,
            supplier_id=supplier_id,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            metadata=metadata,
            source=source or self._default_source,
        )
        self.store.append_audit(entry)

        logger.info(
            "audit_recorded",
            extra={
                "audit_action": entry.action,
                "audit_id": entry.id,
                "entity_type": entity_type,
                "audited_entity_id": entity_id,
            },
        )
        return entry

    def record_order(
        self,
        action: AuditAction,
        order: Order,
        summary: str,
        *,
        actor_id: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        return self.record(
            action,
            summary,
            actor_id=actor_id,
            buyer_id=order.buyer_id,
            supplier_id=order.supplier_id,
            entity_type="order",
            entity_id=order.id,
            entity_name=order.order_number,
            metadata=metadata,
        )

    def export(
        self,
        caller: CallerContext,
        date_from: str | date,
        date_to: str | date,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
    ) -> list[AuditEntry]:
        """
        Every visible entry stamped inside ``[from 00:00, to 23:59:59.999999]``
        UTC, newest first.

        Raises:
            ValidationError: malformed dates or ``to`` before ``from``.
            ExportRangeExceededError: ``to - from`` exceeds the cap.
        """
        start_day = parse_export_day(date_from, "from")
        end_day = parse_export_day(date_to, "to")
        if end_day < start_day:
            raise ValidationError("Export end date must not be before start date", field="to")
        days = (end_day - start_day).days
        if days > self._export_max_days:
            raise ExportRangeExceededError(days, self._export_max_days)

        window_start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
        window_end = datetime.combine(end_day + timedelta(days=1), time.min, tzinfo=timezone.utc)
        visible = AuditSelector(self.store).visible_entries(caller, buyer_id, supplier_id)
        result = [e for e in visible if window_start <= e.timestamp < window_end]

        self.record(
            AuditAction.AUDIT_EXPORTED,
            f"Exported {len(result)} audit entries ({start_day} to {end_day})",
            actor_id=caller.user_id,
            buyer_id=caller.buyer_id,
            supplier_id=caller.supplier_id,
            entity_type="audit",
            metadata={
                "from": start_day.isoformat(),
                "to": end_day.isoformat(),
                "count": len(result),
            },
        )
        logger.info(
            "audit_exported",
            extra={"entry_count": len(result), "days": days},
        )
        return result
