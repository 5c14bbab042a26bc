from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.pool import QueuePool
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from restopos.core.config import settings
import logging
import threading
import contextvars

DATABASE_URL = settings.DATABASE_URL

# SQLAlchemy connect_args differ between SQLite and other DBs (e.g. MySQL)
connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

# pool_pre_ping checks pooled connections before use so stale MySQL
# connections ("server has gone away") are replaced transparently.
engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    pool_recycle=settings.DB_POOL_RECYCLE,
    poolclass=QueuePool,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()

# Pool and query counters, logged every DB_LOG_EVERY_N events and served on /health/db
_pool_logger = logging.getLogger("restopos.db.pool")
_pool_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
_pool_lock = threading.Lock()
_db_events = {"connects": 0, "checkouts": 0, "queries": 0}

# The request middleware sets a fresh [0] here and the cursor listener bumps
# it in place. A mutable cell survives the context copies made for the
# endpoint task and the threadpool.
request_db_query_count = contextvars.ContextVar("request_db_query_count", default=None)


def _bump(name: str, log_label: str | None = None) -> int:
    with _pool_lock:
        _db_events[name] += 1
        cnt = _db_events[name]
    if log_label and cnt % settings.DB_LOG_EVERY_N == 0:
        _pool_logger.info(f"SQLAlchemy pool {log_label}: total={cnt}")
    return cnt


@event.listens_for(engine, "connect")
def _on_connect(dbapi_connection, connection_record):
    if DATABASE_URL.startswith("sqlite"):
        # SQLite ships with FK enforcement off; ON DELETE rules rely on it
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    _bump("connects", "CONNECT")


@event.listens_for(engine, "checkout")
def _on_checkout(dbapi_connection, connection_record, connection_proxy):
    _bump("checkouts", "CHECKOUT")


@event.listens_for(engine, "before_cursor_execute")
def _on_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    cell = request_db_query_count.get()
    if cell is not None:
        cell[0] += 1
    _bump("queries")


def get_global_db_queries_total() -> int:
    """Total DB roundtrips since process start."""
    return _db_events["queries"]


def get_db_stats() -> dict:
    """Snapshot of the event counters plus the pool's own status line."""
    with _pool_lock:
        stats = dict(_db_events)
    stats["pool"] = engine.pool.status()
    return stats


def get_db():
    """FastAPI dependency that provides a scoped SQLAlchemy Session.

    Ensures the connection is checked out from the pool and always returned
    after the request, preventing leaks and excessive new connections.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session):
    """Run a block as one transaction on `db`.

    Everything flushed inside the block commits together; any exception rolls
    the whole block back and propagates.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def _register_models():
    # Import models here so they are registered on the metadata
    import restopos.models.user  # noqa: F401
    import restopos.models.category  # noqa: F401
    import restopos.models.menu  # noqa: F401
    import restopos.models.transaction  # noqa: F401
    import restopos.models.transaction_item  # noqa: F401


def create_db():
    _register_models()
    Base.metadata.create_all(bind=engine)


def drop_db():
    _register_models()
    Base.metadata.drop_all(bind=engine)
