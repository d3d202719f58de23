"""
Pytest fixtures for the wholesale kernel test suite.

Provides:
- Structured logging setup and log capture
- A deterministic clock and a fast-hashing configuration
- Kernels over in-memory and SQLite snapshot backends
- A seeded ``World``: two suppliers, two buyer orgs, one user per role,
  and a few products
"""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from io import StringIO
from typing import Any

import pytest

from wholesale_config import SecurityConfig, get_active_config
from wholesale_kernel.db.engine import create_engine_from_url, create_tables, make_session_factory
from wholesale_kernel.domain.clock import DeterministicClock
from wholesale_kernel.kernel import WholesaleKernel
from wholesale_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from wholesale_kernel.store.backends import InMemorySnapshotBackend, SqlSnapshotBackend

SUPERADMIN_ID = "u-super"
SUPERADMIN_EMAIL = "super@signalwholesale.com"
SUPERADMIN_PASSWORD = "demo123"

# Low hashing cost keeps user creation fast in tests.
FAST_ROUNDS = 4


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture wholesale_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, world):
            world.place_order(world.buyer_admin)
            logs = captured_logs()
            assert any(r["message"] == "order_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("wholesale_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration, clock and backends
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def fast_config():
    """The packaged defaults with cheap password hashing."""
    return dataclasses.replace(
        get_active_config(),
        security=SecurityConfig(password_rounds=FAST_ROUNDS),
    )


@pytest.fixture
def memory_backend():
    return InMemorySnapshotBackend()


@pytest.fixture
def sqlite_session_factory():
    engine = create_engine_from_url("sqlite:///:memory:")
    create_tables(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def sql_backend(sqlite_session_factory, deterministic_clock):
    return SqlSnapshotBackend(sqlite_session_factory, clock=deterministic_clock)


@pytest.fixture
def kernel(fast_config, memory_backend, deterministic_clock):
    """A freshly seeded kernel: superadmin, buyer tiers and status catalog only."""
    return WholesaleKernel(
        config=fast_config, backend=memory_backend, clock=deterministic_clock
    )


# =============================================================================
# Seeded world
# =============================================================================


@dataclass
class World:
    """A kernel plus the ids of everything seeded into it."""

    kernel: WholesaleKernel
    clock: DeterministicClock
    backend: InMemorySnapshotBackend
    superadmin: str = SUPERADMIN_ID
    supplier_1: str = "sup-1"
    supplier_2: str = "sup-2"
    buyer_1: str = "buy-1"
    buyer_2: str = "buy-2"
    users: dict[str, str] = field(default_factory=dict)

    def __getattr__(self, name: str) -> str:
        users = self.__dict__.get("users", {})
        if name in users:
            return users[name]
        raise AttributeError(name)

    def order_data(self, **overrides: Any) -> dict[str, Any]:
        data = {
            "buyer_id": self.buyer_1,
            "supplier_id": self.supplier_1,
            "items": [{"product_id": "p-1", "quantity": 3, "unit_price": "10.00"}],
        }
        data.update(overrides)
        return data

    def place_order(self, actor_id: str, **overrides: Any):
        return self.kernel.create_order(actor_id, self.order_data(**overrides))

    def order_at_supplier(self, **overrides: Any):
        """An order placed by the buyer admin, already sent to supplier 1."""
        return self.place_order(self.users["buyer_admin"], **overrides)

    def shipped_order(self):
        order = self.order_at_supplier()
        self.kernel.move_order(self.users["supplier_manager"], order.id, "accepted_by_supplier")
        return self.kernel.move_order(self.users["supplier_manager"], order.id, "shipped")


_SEED_USERS = (
    ("buyer_admin", "buyer_admin", {"buyer_id": "buy-1"}),
    ("buyer_manager", "buyer_manager", {"buyer_id": "buy-1"}),
    ("buyer", "buyer", {"buyer_id": "buy-1"}),
    ("other_buyer_admin", "buyer_admin", {"buyer_id": "buy-2"}),
    ("supplier_admin", "supplier_admin", {"supplier_id": "sup-1"}),
    ("supplier_manager", "supplier_manager", {"supplier_id": "sup-1"}),
    ("supplier", "supplier", {"supplier_id": "sup-1"}),
    ("other_supplier", "supplier_manager", {"supplier_id": "sup-2"}),
    ("buyer_scoped_admin", "admin", {"buyer_id": "buy-1"}),
    ("supplier_scoped_admin", "admin", {"supplier_id": "sup-1"}),
)


@pytest.fixture
def world(kernel, memory_backend, deterministic_clock) -> World:
    su = SUPERADMIN_ID
    kernel.create_supplier(su, {"id": "sup-1", "name": "Northwind Foods", "region": "West"})
    kernel.create_supplier(su, {"id": "sup-2", "name": "Harbor Supply"})
    kernel.create_buyer(su, {"id": "buy-1", "name": "Corner Market"})
    kernel.create_buyer(su, {"id": "buy-2", "name": "Fresh Grocer", "price_tier_id": "tier-gold"})

    users = {}
    for key, role, scope in _SEED_USERS:
        user = kernel.create_user(su, {
            "name": key.replace("_", " ").title(),
            "email": f"{key}@example.com",
            "role": role,
            "password": "secret",
            **scope,
        })
        users[key] = user.id

    kernel.create_product(su, {
        "id": "p-1", "supplier_id": "sup-1", "name": "Olive Oil", "sku": "OIL-1",
        "base_price": "10.00",
    })
    kernel.create_product(su, {
        "id": "p-2", "supplier_id": "sup-1", "name": "Sea Salt", "sku": "SALT-1",
        "base_price": "4.50",
    })
    kernel.create_product(su, {
        "id": "p-3", "supplier_id": "sup-2", "name": "Rice", "sku": "RICE-1",
        "base_price": "7.00",
    })
    return World(
        kernel=kernel,
        clock=deterministic_clock,
        backend=memory_backend,
        users=users,
    )
