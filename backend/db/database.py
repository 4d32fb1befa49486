"""SQLite analysis store via aiosqlite."""

from __future__ import annotations

import json
import uuid

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS analyses (
    id TEXT PRIMARY KEY,
    company_name TEXT NOT NULL,
    strategy TEXT NOT NULL DEFAULT 'single',
    result_json TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS entity_details (
    id TEXT PRIMARY KEY,
    analysis_id TEXT NOT NULL REFERENCES analyses(id),
    entity_name TEXT NOT NULL,
    type_research_detail TEXT NOT NULL,
    data_confidence TEXT NOT NULL,
    source_type TEXT NOT NULL,
    as_of_date TEXT,
    discrete_value REAL,
    text_value TEXT,
    creator TEXT NOT NULL DEFAULT 'openai'
);
"""

DETAIL_COLUMNS = (
    "entity_name",
    "type_research_detail",
    "data_confidence",
    "source_type",
    "as_of_date",
    "discrete_value",
    "text_value",
    "creator",
)


class Database:
    """Async SQLite database for persisting completed analyses."""

    def __init__(self, path: str = "rivalscope.db") -> None:
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
            raise RuntimeError("Database not connected, call connect() first")
        return self._db

    # -- Analyses --

    async def create_analysis(self, company_name: str, strategy: str, result: dict) -> str:
        analysis_id = str(uuid.uuid4())
        await self.db.execute(
            "INSERT INTO analyses (id, company_name, strategy, result_json) VALUES (?, ?, ?, ?)",
            (analysis_id, company_name, strategy, json.dumps(result)),
        )
        await self.db.commit()
        return analysis_id

    async def get_analysis(self, analysis_id: str) -> dict | None:
        cursor = await self.db.execute("SELECT * FROM analyses WHERE id = ?", (analysis_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        analysis = dict(row)
        analysis["result"] = json.loads(analysis.pop("result_json"))
        return analysis

    # -- Entity details --

    async def add_entity_details(self, analysis_id: str, rows: list[dict]) -> int:
        placeholders = ", ".join("?" for _ in DETAIL_COLUMNS)
        await self.db.executemany(
            f"INSERT INTO entity_details (id, analysis_id, {', '.join(DETAIL_COLUMNS)}) "
            f"VALUES (?, ?, {placeholders})",
            [
                (str(uuid.uuid4()), analysis_id, *(row.get(col) for col in DETAIL_COLUMNS))
                for row in rows
            ],
        )
        await self.db.commit()
        return len(rows)

    async def get_entity_details(self, analysis_id: str) -> list[dict]:
        cursor = await self.db.execute(
            "SELECT * FROM entity_details WHERE analysis_id = ? ORDER BY rowid", (analysis_id,)
        )
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]
