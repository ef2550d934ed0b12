from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config.settings import get_database_url, SQL_ECHO
from constants import DatabaseDefaults

_MEMORY_URLS = ('sqlite://', 'sqlite:///:memory:')


def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute(f"PRAGMA busy_timeout={DatabaseDefaults.SQLITE_BUSY_TIMEOUT_MS}")
    cursor.execute("PRAGMA foreign_keys=ON")  # ON DELETE rules rely on this
    cursor.close()


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections get WAL mode and enforced foreign keys. In-memory
    SQLite uses a single shared connection so every session sees the same
    database.
    """
    if not url.startswith('sqlite'):
        return create_engine(
            url,
            echo=echo,
            pool_size=DatabaseDefaults.POOL_SIZE,
            max_overflow=DatabaseDefaults.MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=DatabaseDefaults.POOL_RECYCLE_SECONDS
        )

    if url in _MEMORY_URLS:
        engine = create_engine(
            url,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
            echo=echo
        )
    else:
        engine = create_engine(
            url,
            connect_args={'check_same_thread': False},
            echo=echo,
            pool_size=DatabaseDefaults.POOL_SIZE,
            max_overflow=DatabaseDefaults.MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=DatabaseDefaults.POOL_RECYCLE_SECONDS
        )
    event.listen(engine, "connect", set_sqlite_pragma)
    return engine


def create_session_factory(bind: Engine) -> sessionmaker:
    # Entities handed back to callers stay readable after their session closes
    return sessionmaker(bind=bind, expire_on_commit=False)


engine = create_db_engine(get_database_url(), echo=SQL_ECHO)
SessionLocal = create_session_factory(engine)
Base = declarative_base()


def get_db():
    """Dependency for FastAPI routes"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
