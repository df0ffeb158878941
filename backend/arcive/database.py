"""Engine, session factory and declarative base.

SQLite (the default, also used by the test suite) and PostgreSQL are both
supported; ``DATABASE_URL`` picks one.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import settings

DATABASE_URL = settings.database_url


def is_sqlite(url: str = DATABASE_URL) -> bool:
    return url.startswith("sqlite")


def _build_engine(url: str) -> Engine:
    if is_sqlite(url):
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

        # Folder parent and file folder FKs rely on ON DELETE SET NULL.
        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


engine = _build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session. Rolled back if the request raises."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
