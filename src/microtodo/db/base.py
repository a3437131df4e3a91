"""Shared ORM helpers.

Learn: Each service declares its own DeclarativeBase (identity.models,
tasks.models) because the two services never share a database. Only the
column conventions live here.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
