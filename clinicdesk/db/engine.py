"""SQLModel engine and session management.

This module provides:
- Database engine creation with connection pooling
- Session dependency for FastAPI routes

PostgreSQL is the primary database. SQLite URLs are accepted for tests.
"""

from typing import Generator

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from clinicdesk.config import DATABASE_URL


def build_engine(database_url: str = DATABASE_URL):
    """Create an engine for the given URL.

    In-memory SQLite gets a single shared connection so every session sees
    the same data; PostgreSQL gets a pre-pinged connection pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        database_url,
        echo=False,  # Set to True for SQL debugging
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine()


def get_session_dependency() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions.

    Usage in FastAPI:
        @app.get("/workspaces/{workspace_id}")
        def get_workspace(workspace_id: UUID, session: Session = Depends(get_session_dependency)):
            return session.get(Workspace, workspace_id)
    """
    with Session(engine) as session:
        yield session

