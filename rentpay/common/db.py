"""Database bootstrap helpers for the durable booking store."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def _begin_immediate(engine: Engine) -> None:
    """Make every SQLite transaction take the database write lock up front.

    SQLite has no advisory locks and no exclusion constraints, so concurrent
    check-then-insert reservations are serialized by the write lock instead.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _record):
        # pysqlite otherwise emits its own deferred BEGIN.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(dsn: str) -> Engine:
    """Create one SQLAlchemy engine per process."""

    if dsn.startswith("sqlite"):
        if ":memory:" in dsn:
            # In-memory SQLite must share one connection across threads.
            engine = create_engine(dsn, connect_args={"check_same_thread": False}, poolclass=StaticPool)
        else:
            engine = create_engine(dsn, connect_args={"check_same_thread": False, "timeout": 30})
        _begin_immediate(engine)
        return engine
    return create_engine(dsn, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after commit.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
