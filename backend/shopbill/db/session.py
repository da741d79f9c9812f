"""Database engine, sessions and the unit-of-work boundary.

PostgreSQL gets a QueuePool and real `SELECT ... FOR UPDATE` row locks.
SQLite ignores FOR UPDATE, so every SQLite transaction starts with
BEGIN IMMEDIATE: the write lock is taken up front and concurrent writers
queue on the busy timeout instead of racing on the invoice counter.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from shopbill.core.config import settings
from shopbill.core.exceptions import ConflictError, TransientStorageError, ValidationError

logger = logging.getLogger(__name__)


def _install_sqlite_locking(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy so BEGIN IMMEDIATE is ours
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """Create an engine for `database_url` with the pooling the backend needs."""
    if database_url.startswith("sqlite"):
        # SQLite: Use NullPool for thread-safety
        from sqlalchemy.pool import NullPool
        engine = create_engine(
            database_url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.SQLITE_BUSY_TIMEOUT,
            },
            poolclass=NullPool,
        )
        _install_sqlite_locking(engine)
        return engine

    # PostgreSQL/MySQL: Use QueuePool with sensible defaults
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,  # Number of persistent connections
        max_overflow=settings.DB_MAX_OVERFLOW,  # Max temporary connections
        pool_timeout=settings.DB_POOL_TIMEOUT,  # Seconds to wait for connection
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Verify connection health
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    # Committed objects stay readable without reopening a transaction
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = build_session_factory(engine)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Run the enclosed block as one transaction.

    Commits on success. On any error the session is rolled back before the
    error propagates, and storage errors are translated to domain errors:
    constraint violations become ConflictError, values the column cannot hold
    become ValidationError, connection/lock/pool failures become
    TransientStorageError.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"[DB] Constraint violation, rolled back: {e.orig}")
        raise ConflictError("Conflicting write", detail=str(e.orig)) from e
    except DataError as e:
        db.rollback()
        logger.info(f"[DB] Value rejected by the database, rolled back: {e.orig}")
        raise ValidationError("A value is out of range for its field") from e
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.warning(f"[DB] Storage failure, rolled back: {e}")
        raise TransientStorageError("Storage temporarily unavailable") from e
    except DBAPIError as e:
        db.rollback()
        if e.connection_invalidated:
            logger.warning(f"[DB] Connection lost, rolled back: {e}")
            raise TransientStorageError("Connection lost") from e
        raise
    except Exception:
        db.rollback()
        raise
