"""
PostgresPageStorage adapter for the page builder kernel.

Implements the PageStorage protocol using Postgres as the backend.
Stores each page's serialized tree as JSONB in the pages table.
"""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from builder.kernel.storage import PageStorage, PersistenceError


class PostgresPageStorage(PageStorage):
    """
    Postgres-based storage for page trees.

    Expects a pool whose connections register the jsonb codec (see
    backend.db). Uses one table:
    - pages: page_id (primary key), tree (JSONB), updated_at
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get(self, page_id: str) -> dict[str, Any] | None:
        """Fetch the tree for a page. Returns None if not found."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT tree FROM pages WHERE page_id = $1",
                    page_id,
                )
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Loading page {page_id} failed: {e}") from e
        if row is None:
            return None
        tree = row["tree"]
        # pools without the jsonb codec hand back text
        return json.loads(tree) if isinstance(tree, str) else tree

    async def put(self, page_id: str, tree: dict[str, Any]) -> None:
        """Upsert the tree for a page."""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO pages (page_id, tree, updated_at)
                    VALUES ($1, $2, now())
                    ON CONFLICT (page_id)
                    DO UPDATE SET tree = EXCLUDED.tree, updated_at = now()
                    """,
                    page_id,
                    tree,
                )
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Saving page {page_id} failed: {e}") from e

    async def delete(self, page_id: str) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("DELETE FROM pages WHERE page_id = $1", page_id)
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Deleting page {page_id} failed: {e}") from e

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
