from __future__ import annotations

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None
_SESSIONMAKER: sessionmaker | None = None


def _install_sqlite_hooks(engine: Engine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT, and leaves foreign keys off.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def get_engine(url: str) -> Engine:
    """Return a cached SQLAlchemy engine.

    We cache based on the URL so tests can point each app instance at their own database.
    """

    global _ENGINE, _ENGINE_URL, _SESSIONMAKER

    if _ENGINE is not None and _ENGINE_URL == url:
        return _ENGINE

    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    _ENGINE = create_engine(url, future=True, connect_args=connect_args)
    if is_sqlite:
        _install_sqlite_hooks(_ENGINE)
    _ENGINE_URL = url
    _SESSIONMAKER = sessionmaker(bind=_ENGINE, class_=Session, autocommit=False, autoflush=False)
    return _ENGINE


def db_session(url: str) -> Session:
    get_engine(url)  # ensure _SESSIONMAKER is created
    assert _SESSIONMAKER is not None
    return _SESSIONMAKER()
