import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import settings

logger = logging.getLogger("laundry-panel")


class Base(DeclarativeBase):
    pass


def _install_sqlite_hooks(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, which lets two allocators
    # read the same free pickup number. Take the write lock up front instead.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=settings.database_echo,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout_seconds,
            },
        )
        _install_sqlite_hooks(engine)
        return engine
    return create_engine(url, echo=settings.database_echo, pool_pre_ping=True)


engine: Engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def configure_database(url: str) -> Engine:
    global engine
    old_engine = engine
    engine = create_db_engine(url)
    SessionLocal.configure(bind=engine)
    old_engine.dispose()
    return engine


def init_db() -> None:
    import models  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(engine)
    logger.info("Database schema ready at %s", engine.url.render_as_string())


@contextmanager
def transaction() -> Iterator[Session]:
    session = SessionLocal()
    try:
        with session.begin():
            yield session
    finally:
        session.close()
