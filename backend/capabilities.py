"""Schema capability flags.

Databases created before subtopics and flashcards gained a
``display_order`` column cannot be reordered. Instead of sniffing error
messages on every update, the columns are inspected once, the result is
cached for the process, and reorder operations check the cached flags.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.errors import CapabilityError

logger = logging.getLogger(__name__)

# table name -> column that enables manual ordering
ORDERABLE_TABLES = {"subtopics": "display_order", "flashcards": "display_order"}


@dataclass(frozen=True)
class SchemaCapabilities:
    subtopic_display_order: bool
    flashcard_display_order: bool

    def supports_ordering(self, kind: str) -> bool:
        if kind == "subtopics":
            return self.subtopic_display_order
        if kind == "flashcards":
            return self.flashcard_display_order
        raise ValueError(f"Unknown orderable kind: {kind}")


_cached: SchemaCapabilities | None = None


def _column_names(conn: Connection, table: str) -> set[str]:
    inspector = inspect(conn)
    if not inspector.has_table(table):
        return set()
    return {col["name"] for col in inspector.get_columns(table)}


def probe_capabilities(conn: Connection) -> SchemaCapabilities:
    """Inspect the live schema. Runs on a sync connection."""
    return SchemaCapabilities(
        subtopic_display_order="display_order" in _column_names(conn, "subtopics"),
        flashcard_display_order="display_order" in _column_names(conn, "flashcards"),
    )


def upgrade_schema(conn: Connection) -> None:
    """Add ``display_order`` to tables created before it existed."""
    for table, column in ORDERABLE_TABLES.items():
        columns = _column_names(conn, table)
        if columns and column not in columns:
            logger.info("Adding %s.%s column", table, column)
            conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} INTEGER"))


async def refresh_capabilities(engine: AsyncEngine) -> SchemaCapabilities:
    """Re-probe the schema and replace the cached flags."""
    global _cached
    async with engine.connect() as conn:
        _cached = await conn.run_sync(probe_capabilities)
    return _cached


async def get_capabilities(db: AsyncSession) -> SchemaCapabilities:
    """Return the cached flags, probing through ``db`` on first use."""
    global _cached
    if _cached is None:
        conn = await db.connection()
        _cached = await conn.run_sync(probe_capabilities)
    return _cached


async def require_display_order(db: AsyncSession, kind: str) -> None:
    """Raise CapabilityError if ``kind`` cannot be manually ordered."""
    caps = await get_capabilities(db)
    if not caps.supports_ordering(kind):
        raise CapabilityError(
            f"Reordering {kind} requires the display_order column; run the schema upgrade first"
        )


def reset_capabilities() -> None:
    """Forget the cached flags (used after schema changes and in tests)."""
    global _cached
    _cached = None
