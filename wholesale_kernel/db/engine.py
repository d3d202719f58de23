"""
Module: wholesale_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factory creation and
    the transactional scope used by the SQL snapshot backend.
Architecture position: Kernel > DB.  May import from db/base.py.
    ``create_tables`` / ``drop_tables`` import models so every table is
    registered on the metadata.

Invariants enforced:
    - Engines are owned by the caller (the kernel or a test fixture); there
      is no module-level engine.
    - In-memory SQLite URLs share one connection across sessions so the
      schema survives between them.

Failure modes:
    - SQLAlchemyError subclasses from connect/commit propagate; the snapshot
      backend converts them to PersistenceError.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wholesale_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def create_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """
    Build an engine for ``database_url``.

    Args:
        database_url: Any SQLAlchemy URL (``sqlite:///wholesale.db``,
            ``postgresql://...``).
        echo: If True, log all SQL statements.
    """
    if _is_memory_sqlite(database_url):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "echo": echo},
    )
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(
    factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed and the exception
        is re-raised.

    Usage:
        with session_scope(factory) as session:
            session.add(row)
    """
    session = factory()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """Create every table registered on ``Base.metadata``."""
    import wholesale_kernel.models  # noqa: F401

    from wholesale_kernel.db.base import Base

    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables(engine: Engine) -> None:
    """Drop all tables.  FOR TESTING ONLY."""
    import wholesale_kernel.models  # noqa: F401

    from wholesale_kernel.db.base import Base

    Base.metadata.drop_all(engine)
