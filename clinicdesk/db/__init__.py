"""Database infrastructure for SQLModel + PostgreSQL.

Usage:
    from clinicdesk.db import engine, get_session_dependency
"""

from clinicdesk.db.engine import build_engine, engine, get_session_dependency

__all__ = [
    "build_engine",
    "engine",
    "get_session_dependency",
]
