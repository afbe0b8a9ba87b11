"""
Database Configuration Module

This module sets up SQLAlchemy 2.0 for the book review application.

The default backend is an embedded SQLite file. SQLite is a single-writer
store: concurrent requests share the connection pool, and write
transactions are serialized by the database itself.

Session Management Pattern
==========================
We use the "session per request" pattern:
1. Request arrives → create a new session
2. Repositories use the session for all database work in that request
3. Repositories commit on success, rollback on failure
4. Session is closed when the request ends

This is implemented using FastAPI's dependency injection.
"""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from bookreview.config import get_settings

settings = get_settings()


# =============================================================================
# SQLite Pragmas
# =============================================================================
# SQLite ships with foreign key enforcement switched off. Cascading deletes
# from books to user_books, notes and reviews depend on it, so every new
# connection turns it on.

def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Register a connect hook that enables foreign keys on each connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# =============================================================================
# Database Engine
# =============================================================================
# check_same_thread=False: FastAPI runs sync handlers in a threadpool, so a
# pooled connection may be used by a different thread than the one that
# opened it.

def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL with backend-specific options."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
        enable_sqlite_foreign_keys(engine)
        return engine

    return create_engine(url, pool_pre_ping=True, echo=echo)


engine = build_engine(settings.database_url, echo=settings.debug)


# =============================================================================
# Session Factory
# =============================================================================
# - autocommit=False: repositories decide when to commit
# - autoflush=False: don't auto-flush before queries (more predictable)
# - expire_on_commit=False: rows stay readable after commit for rendering

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# =============================================================================
# Base Model Class
# =============================================================================

class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

        class Book(Base):
            __tablename__ = "books"
            ...
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Code before yield creates the session, the route handler uses it,
    and the finally block closes it even if the handler raised.

    Usage in Routes:
        @router.get("/books")
        def list_books(db: DbSession):
            return BookRepository(db).list(1, 8)

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Utility Functions
# =============================================================================
def create_tables(bind: Engine | None = None) -> None:
    """
    Create all database tables that do not exist yet.

    Called once at application startup. Importing bookreview.models first
    registers every table on Base.metadata.
    """
    import bookreview.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """
    Drop all database tables.

    DANGER: This deletes all data! Only use in development and tests.
    """
    import bookreview.models  # noqa: F401

    Base.metadata.drop_all(bind=bind or engine)
