"""Helpers for database connection strings.

The catalog application stores its connection string in SQLAlchemy form
(``postgresql+psycopg2://...``) while Tortoise ORM wants the ``asyncpg://``
scheme for PostgreSQL. SQLite URLs used by tests are passed through.
"""

from __future__ import annotations


def to_tortoise_dsn(url: str) -> str:
    """Convert any PostgreSQL DSN flavour to the ``asyncpg://`` scheme."""

    if url.startswith("postgresql+"):
        url = "postgresql://" + url.split("://", 1)[1]
    if url.startswith("postgresql://"):
        return "asyncpg://" + url[len("postgresql://") :]
    if url.startswith("postgres://"):
        return "asyncpg://" + url[len("postgres://") :]
    return url
