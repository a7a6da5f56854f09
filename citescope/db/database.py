"""SQLite store for analysis documents via aiosqlite.

Results and summaries are stored as opaque JSON blobs; nothing here knows
their internal shape.
"""

from __future__ import annotations

import json
import uuid

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS analyses (
    id TEXT PRIMARY KEY,
    query_text TEXT NOT NULL,
    my_domain TEXT,
    my_brand TEXT,
    status TEXT NOT NULL DEFAULT 'processing',
    results_json TEXT NOT NULL DEFAULT '{}',
    summary_json TEXT,
    extras_json TEXT,
    error TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    completed_at TIMESTAMP
);
"""

_JSON_COLUMNS = ("results_json", "summary_json", "extras_json")


def _row_to_dict(row: aiosqlite.Row) -> dict:
    data = dict(row)
    for column in _JSON_COLUMNS:
        raw = data.pop(column)
        data[column.removesuffix("_json")] = json.loads(raw) if raw else None
    return data


class Database:
    """Async SQLite database for persisting analyses."""

    def __init__(self, path: str = "citescope.db") -> None:
        self.path = path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self._db = await aiosqlite.connect(self.path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not connected; call connect() first")
        return self._db

    async def create_analysis(
        self, query_text: str, my_domain: str | None = None, my_brand: str | None = None
    ) -> str:
        analysis_id = str(uuid.uuid4())
        await self.db.execute(
            "INSERT INTO analyses (id, query_text, my_domain, my_brand) VALUES (?, ?, ?, ?)",
            (analysis_id, query_text, my_domain, my_brand),
        )
        await self.db.commit()
        return analysis_id

    async def complete_analysis(
        self,
        analysis_id: str,
        results: dict,
        summary: dict,
        extras: dict | None = None,
    ) -> None:
        await self.db.execute(
            "UPDATE analyses SET status = 'completed', results_json = ?, summary_json = ?, "
            "extras_json = ?, completed_at = CURRENT_TIMESTAMP WHERE id = ?",
            (json.dumps(results), json.dumps(summary), json.dumps(extras or {}), analysis_id),
        )
        await self.db.commit()

    async def fail_analysis(self, analysis_id: str, error: str) -> None:
        await self.db.execute(
            "UPDATE analyses SET status = 'failed', error = ?, completed_at = CURRENT_TIMESTAMP "
            "WHERE id = ?",
            (error, analysis_id),
        )
        await self.db.commit()

    async def get_analysis(self, analysis_id: str) -> dict | None:
        cursor = await self.db.execute("SELECT * FROM analyses WHERE id = ?", (analysis_id,))
        row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def list_analyses(self, limit: int = 20, offset: int = 0) -> list[dict]:
        cursor = await self.db.execute(
            "SELECT id, query_text, my_domain, my_brand, status, created_at, completed_at "
            "FROM analyses ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]
