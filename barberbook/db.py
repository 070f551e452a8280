# barberbook/db.py

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from barberbook import config


def _serialize_sqlite_writers(engine):
    """
    Open every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE, so the database write lock is taken
    up front instead: a second process reading a barber's day waits until the
    first one commits, and then sees its booking.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # pysqlite would otherwise emit its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def make_engine(url: str = config.DATABASE_URL, **kwargs):
    if url.startswith("sqlite"):
        # check_same_thread: required for SQLite + FastAPI
        # timeout: how long a writer waits on a locked database
        connect_args = {"check_same_thread": False, "timeout": config.DB_TIMEOUT_SECONDS}
        return _serialize_sqlite_writers(create_engine(url, echo=False, connect_args=connect_args, **kwargs))
    return create_engine(url, echo=False, pool_timeout=config.DB_TIMEOUT_SECONDS, pool_pre_ping=True, **kwargs)


# Engine = connection to the database
engine = make_engine()


def init_db(bind=None):
    from barberbook import models  # noqa: F401  registers the tables

    SQLModel.metadata.create_all(bind or engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
