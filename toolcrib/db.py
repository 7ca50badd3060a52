from sqlalchemy import event
from sqlmodel import SQLModel, Session, create_engine

from toolcrib.config import get_settings
from toolcrib.immutability import register_ledger_guards
from toolcrib.logging_config import get_logger

logger = get_logger("db")


def _serialize_sqlite_writers(engine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE and pysqlite defers BEGIN until the
    first write, so two sessions could both read a tool row and then
    overwrite each other. BEGIN IMMEDIATE takes the database write lock up
    front; a second writer waits (busy timeout) until the first commits and
    then reads the committed row.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": get_settings().sqlite_busy_timeout},
        pool_pre_ping=True,
    )
    _serialize_sqlite_writers(engine)
    return engine


engine = _make_engine(get_settings().database_url)
register_ledger_guards()


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)
    logger.info("tables_ready", extra={"url": engine.url.render_as_string(hide_password=True)})


def get_session():
    # rows outlive the commit: routers serialize them after the service returns
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    except Exception:
        # services roll back their own transactions; this catches anything
        # that escaped between them
        session.rollback()
        raise
    finally:
        session.close()
