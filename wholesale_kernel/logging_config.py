"""
Structured JSON logging for the wholesale kernel.

Every record under the ``wholesale_kernel`` logger is written as one JSON
object per line.  Fields bound through ``LogContext`` (correlation id,
actor, operation, entity) are merged into each record, and kernel
exceptions contribute their ``code`` plus their public attributes as
``exc_*`` keys.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

ROOT_LOGGER = "wholesale_kernel"

CONTEXT_FIELDS: tuple[str, ...] = ("correlation_id", "actor_id", "operation", "entity_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("wholesale_log_context", default=_EMPTY)


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


def _merged(fields: Mapping[str, str | None]) -> Mapping[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    merged = dict(_context.get())
    merged.update({name: value for name, value in fields.items() if value is not None})
    return MappingProxyType(merged)


class LogContext:
    """Request-scoped log fields.  Each thread and task sees its own copy."""

    @staticmethod
    def set(**fields: str | None) -> None:
        """Overwrite the given fields; ``None`` values leave a field as is."""
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        current = _context.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return sorted(str(v) for v in value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {"exc_type": type(exc).__name__, "exc_message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_state_lock = threading.Lock()
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Child of the ``wholesale_kernel`` logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach the JSON handler to the kernel's root logger.

    Only the first call per process takes effect; later calls are no-ops
    until ``reset_logging()``.  ``level`` accepts ints or names such as
    ``"debug"``; unknown names fall back to INFO.
    """
    global _configured
    with _state_lock:
        if _configured:
            return
        root = logging.getLogger(ROOT_LOGGER)
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)
        root.setLevel(_coerce_level(level))
        root.propagate = False
        _configured = True


def reset_logging() -> None:
    """Detach every handler and forget prior configuration.  Tests only."""
    global _configured
    with _state_lock:
        root = logging.getLogger(ROOT_LOGGER)
        for existing in list(root.handlers):
            root.removeHandler(existing)
        root.setLevel(logging.WARNING)
        root.propagate = True
        _configured = False
