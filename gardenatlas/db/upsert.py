"""
Dialect-aware INSERT ... ON CONFLICT constructs.

Production runs on PostgreSQL; the test suite runs on SQLite. Both dialects
expose the same on_conflict_do_update() / excluded API, so callers build one
statement and let the bound engine pick the dialect.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, table):
    """Return a dialect-specific insert() for *table* matching the session's engine."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert(table)
    return postgresql.insert(table)
