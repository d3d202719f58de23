"""
wholesale_kernel.kernel -- the kernel facade and its dependency wiring.

Responsibility:
    Owns one ``EntityStore`` and one ``SnapshotBackend``, constructs every
    service and selector exactly once, and exposes the public operations
    keyed by actor id.  Every mutation is atomic: it either completes, is
    audited and is saved, or the store is restored to its state before
    the call.

Architecture position:
    Kernel > Facade.  The only module that composes store, services,
    selectors and configuration.  Nothing inside the package imports it.

Invariants enforced:
    - Mutations are serialized by one re-entrant lock per kernel.
    - A failed mutation (guard, validation or backend) leaves no trace in
      memory: no partial entity change and no audit entry.
    - Callers only ever receive copies; mutating a returned object never
      changes kernel state.
    - The stored document is migrated on every load and saved back when
      migration changed it.

Failure modes:
    - Any ``WholesaleKernelError`` raised by a service propagates unchanged
      after rollback.
    - ``PersistenceError``: the backend failed to save; state is rolled back.

Usage:
    from wholesale_kernel import WholesaleKernel

    kernel = WholesaleKernel()
    user = kernel.login("super@signalwholesale.com", "demo123")
    order = kernel.create_order(user.id, {...})
"""

from __future__ import annotations

import copy
import threading
from datetime import date
from typing import Any, Callable, Mapping, TypeVar
from uuid import uuid4

from wholesale_config import KernelConfig, get_active_config
from wholesale_kernel.db.engine import create_engine_from_url, create_tables, make_session_factory
from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.entities import (
    AuditEntry,
    Buyer,
    BuyerTier,
    Order,
    OrderStatusDef,
    Product,
    Supplier,
    User,
)
from wholesale_kernel.domain.passwords import hash_password
from wholesale_kernel.domain.roles import CallerContext, Role
from wholesale_kernel.exceptions import PersistenceError, ValidationError
from wholesale_kernel.logging_config import LogContext, configure_logging, get_logger
from wholesale_kernel.selectors import (
    AuditCursor,
    AuditPage,
    AuditSelector,
    CatalogSelector,
    DirectorySelector,
    OrderSelector,
)
from wholesale_kernel.services import (
    AuditorService,
    OrderService,
    OrgService,
    ProductService,
    UserService,
)
from wholesale_kernel.store.backends import (
    InMemorySnapshotBackend,
    SnapshotBackend,
    SqlSnapshotBackend,
)
from wholesale_kernel.store.entity_store import EntityStore
from wholesale_kernel.store.migration import migrate_document

logger = get_logger("kernel")

T = TypeVar("T")


def backend_from_config(config: KernelConfig, clock: Clock | None = None) -> SnapshotBackend:
    """SQL backend when ``persistence.database_url`` is set, else in-memory."""
    persistence = config.persistence
    if not persistence.database_url:
        return InMemorySnapshotBackend()
    engine = create_engine_from_url(persistence.database_url, echo=persistence.echo)
    create_tables(engine)
    return SqlSnapshotBackend(
        make_session_factory(engine),
        snapshot_name=persistence.snapshot_name,
        clock=clock,
    )


class WholesaleKernel:
    """
    Public entry point of the admin kernel.

    Every operation takes the acting user's id.  An unknown or ``None`` id
    acts as an anonymous caller, which the guard rejects for every write.
    """

    def __init__(
        self,
        config: KernelConfig | None = None,
        backend: SnapshotBackend | None = None,
        clock: Clock | None = None,
    ):
        self._config = config or get_active_config()
        configure_logging(level=self._config.log_level)
        self._clock = clock or SystemClock()
        self._backend = backend or backend_from_config(self._config, self._clock)
        self._lock = threading.RLock()

        document = self._backend.load()
        self._wire(self._migrated_store(document, initial=document is None))

    # -- wiring ----------------------------------------------------------------

    def _hash_password(self, password: str) -> str:
        return hash_password(password, rounds=self._config.security.password_rounds)

    def _migrated_store(self, document: dict[str, Any] | None, initial: bool) -> EntityStore:
        cfg = self._config
        migrated, report = migrate_document(
            document,
            migration=cfg.migration,
            bootstrap=cfg.bootstrap,
            buyer_tiers=cfg.buyer_tiers,
            hash_password=self._hash_password,
        )
        if report.changed or initial:
            self._backend.save(migrated)
            logger.info(
                "store_migrated",
                extra={"change_count": len(report.changes), "changes": report.changes},
            )
        return EntityStore.from_document(migrated)

    def _wire(self, store: EntityStore) -> None:
        cfg = self._config
        self._store = store
        self.auditor = AuditorService(
            store, self._clock, export_max_days=cfg.audit.export_max_days
        )
        self.orders = OrderService(store, self.auditor, self._clock)
        self.users = UserService(
            store, self.auditor, self._clock,
            password_rounds=cfg.security.password_rounds,
        )
        self.orgs = OrgService(store, self.auditor, self._clock)
        self.products = ProductService(store, self.auditor, self._clock)
        self.order_selector = OrderSelector(store)
        self.audit_selector = AuditSelector(store, page_size=cfg.audit.page_size)
        self.catalog_selector = CatalogSelector(store)
        self.directory_selector = DirectorySelector(store)

    @property
    def config(self) -> KernelConfig:
        return self._config

    @property
    def store(self) -> EntityStore:
        return self._store

    # -- transaction boundary ------------------------------------------------

    def _mutate(
        self,
        operation: str,
        actor_id: str | None,
        fn: Callable[[CallerContext], T],
        entity_id: str | None = None,
    ) -> T:
        """
        Run ``fn`` against the store as one atomic mutation.

        The store is checkpointed first; on any exception from ``fn`` or
        from the backend save, the checkpoint is restored and the
        exception re-raised.
        """
        with self._lock, LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            operation=operation,
            entity_id=entity_id,
        ):
            caller = self._store.context_for(actor_id)
            checkpoint = self._store.checkpoint()
            try:
                result = fn(caller)
                self._save()
            except Exception:
                self._store.restore(checkpoint)
                logger.warning("mutation_rolled_back", extra={"operation": operation})
                raise
            return copy.deepcopy(result)

    def _save(self) -> None:
        try:
            self._backend.save(self._store.to_document())
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError("store snapshot", str(exc)) from exc

    def _read(self, actor_id: str | None, fn: Callable[[CallerContext], T]) -> T:
        with self._lock:
            return copy.deepcopy(fn(self._store.context_for(actor_id)))

    def context_for(self, actor_id: str | None) -> CallerContext:
        return self._store.context_for(actor_id)

    def reset(self) -> None:
        """Replace all state with a freshly seeded store and save it."""
        with self._lock:
            migrated, _ = migrate_document(
                None,
                migration=self._config.migration,
                bootstrap=self._config.bootstrap,
                buyer_tiers=self._config.buyer_tiers,
                hash_password=self._hash_password,
            )
            self._backend.save(migrated)
            self._wire(EntityStore.from_document(migrated))
            logger.info("store_reset")

    # -- orders ----------------------------------------------------------------

    def create_order(self, creator_id: str | None, data: Mapping[str, Any]) -> Order:
        return self._mutate(
            "create_order", creator_id, lambda caller: self.orders.create_order(caller, data)
        )

    def update_order(
        self,
        actor_id: str | None,
        order_id: str,
        updates: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> Order:
        return self._mutate(
            "update_order",
            actor_id,
            lambda caller: self.orders.update_order(caller, order_id, updates, expected_version),
            entity_id=order_id,
        )

    def move_order(
        self,
        actor_id: str | None,
        order_id: str,
        status_id: str,
        expected_version: int | None = None,
    ) -> Order:
        return self._mutate(
            "move_order",
            actor_id,
            lambda caller: self.orders.move_order(caller, order_id, status_id, expected_version),
            entity_id=order_id,
        )

    def duplicate_order(self, actor_id: str | None, order_id: str) -> Order:
        return self._mutate(
            "duplicate_order",
            actor_id,
            lambda caller: self.orders.duplicate_order(caller, order_id),
            entity_id=order_id,
        )

    def delete_order(self, actor_id: str | None, order_id: str) -> bool:
        return self._mutate(
            "delete_order",
            actor_id,
            lambda caller: self.orders.delete_order(caller, order_id),
            entity_id=order_id,
        )

    def get_order(self, actor_id: str | None, order_id: str) -> Order:
        return self._read(actor_id, lambda caller: self.order_selector.get_order(caller, order_id))

    def list_orders(self, actor_id: str | None) -> list[Order]:
        return self._read(actor_id, self.order_selector.list_orders)

    def add_order_status(self, actor_id: str | None, name: str) -> OrderStatusDef:
        return self._mutate(
            "add_order_status", actor_id, lambda caller: self.orders.add_order_status(caller, name)
        )

    def list_order_statuses(self) -> list[OrderStatusDef]:
        return self._read(None, lambda caller: self.catalog_selector.list_order_statuses())

    # -- audit -----------------------------------------------------------------

    def list_audit_logs(
        self,
        actor_id: str | None,
        cursor: AuditCursor | int | None = None,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
        role: Role | str | None = None,
    ) -> AuditPage:
        """
        One page of audit entries visible to the caller.

        With no ``actor_id`` and a ``role``, the page is scoped as that role
        bound to ``buyer_id`` / ``supplier_id``.  An actor id always wins
        over ``role``.

        Raises:
            ValidationError: unknown ``role`` or negative cursor.
        """
        def page(caller: CallerContext) -> AuditPage:
            return self.audit_selector.list_page(caller, cursor, buyer_id, supplier_id)

        if actor_id is None and role is not None:
            try:
                caller = CallerContext.for_role(role, buyer_id, supplier_id)
            except ValueError as exc:
                raise ValidationError(f"Unknown role: {role}", field="role") from exc
            with self._lock:
                return copy.deepcopy(page(caller))
        return self._read(actor_id, page)

    def export_audit_logs(
        self,
        actor_id: str | None,
        date_from: str | date,
        date_to: str | date,
        buyer_id: str | None = None,
        supplier_id: str | None = None,
    ) -> list[AuditEntry]:
        """Visible entries inside the day range; the export itself is audited."""
        return self._mutate(
            "export_audit_logs",
            actor_id,
            lambda caller: self.auditor.export(caller, date_from, date_to, buyer_id, supplier_id),
        )

    # -- users -----------------------------------------------------------------

    def login(self, email: str, password: str) -> User:
        with self._lock:
            return copy.deepcopy(self.users.login(email, password))

    def create_user(self, actor_id: str | None, data: Mapping[str, Any]) -> User:
        return self._mutate(
            "create_user", actor_id, lambda caller: self.users.create_user(caller, data)
        )

    def update_user(self, actor_id: str | None, user_id: str, updates: Mapping[str, Any]) -> User:
        return self._mutate(
            "update_user",
            actor_id,
            lambda caller: self.users.update_user(caller, user_id, updates),
            entity_id=user_id,
        )

    def delete_user(self, actor_id: str | None, user_id: str) -> bool:
        return self._mutate(
            "delete_user",
            actor_id,
            lambda caller: self.users.delete_user(caller, user_id),
            entity_id=user_id,
        )

    def list_users(self, actor_id: str | None) -> list[User]:
        return self._read(actor_id, self.directory_selector.list_users)

    # -- organizations ---------------------------------------------------------

    def create_supplier(self, actor_id: str | None, data: Mapping[str, Any]) -> Supplier:
        return self._mutate(
            "create_supplier", actor_id, lambda caller: self.orgs.create_supplier(caller, data)
        )

    def update_supplier(
        self, actor_id: str | None, supplier_id: str, updates: Mapping[str, Any]
    ) -> Supplier:
        return self._mutate(
            "update_supplier",
            actor_id,
            lambda caller: self.orgs.update_supplier(caller, supplier_id, updates),
            entity_id=supplier_id,
        )

    def delete_supplier(self, actor_id: str | None, supplier_id: str) -> bool:
        return self._mutate(
            "delete_supplier",
            actor_id,
            lambda caller: self.orgs.delete_supplier(caller, supplier_id),
            entity_id=supplier_id,
        )

    def list_suppliers(self, actor_id: str | None) -> list[Supplier]:
        return self._read(actor_id, self.directory_selector.list_suppliers)

    def create_buyer(self, actor_id: str | None, data: Mapping[str, Any]) -> Buyer:
        return self._mutate(
            "create_buyer", actor_id, lambda caller: self.orgs.create_buyer(caller, data)
        )

    def update_buyer(
        self, actor_id: str | None, buyer_id: str, updates: Mapping[str, Any]
    ) -> Buyer:
        return self._mutate(
            "update_buyer",
            actor_id,
            lambda caller: self.orgs.update_buyer(caller, buyer_id, updates),
            entity_id=buyer_id,
        )

    def delete_buyer(self, actor_id: str | None, buyer_id: str) -> bool:
        return self._mutate(
            "delete_buyer",
            actor_id,
            lambda caller: self.orgs.delete_buyer(caller, buyer_id),
            entity_id=buyer_id,
        )

    def list_buyers(self, actor_id: str | None) -> list[Buyer]:
        return self._read(actor_id, self.directory_selector.list_buyers)

    def list_buyer_tiers(self) -> list[BuyerTier]:
        return self._read(None, lambda caller: self.catalog_selector.list_buyer_tiers())

    # -- products --------------------------------------------------------------

    def create_product(self, actor_id: str | None, data: Mapping[str, Any]) -> Product:
        return self._mutate(
            "create_product", actor_id, lambda caller: self.products.create_product(caller, data)
        )

    def update_product(
        self, actor_id: str | None, product_id: str, updates: Mapping[str, Any]
    ) -> Product:
        return self._mutate(
            "update_product",
            actor_id,
            lambda caller: self.products.update_product(caller, product_id, updates),
            entity_id=product_id,
        )

    def delete_product(self, actor_id: str | None, product_id: str) -> bool:
        return self._mutate(
            "delete_product",
            actor_id,
            lambda caller: self.products.delete_product(caller, product_id),
            entity_id=product_id,
        )

    def list_products(self, actor_id: str | None) -> list[Product]:
        return self._read(actor_id, self.catalog_selector.list_products)
