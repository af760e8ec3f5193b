# src/dev_task_hub/hub/store.py

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any

import aiosqlite

from ..core.ports import Record

logger = logging.getLogger(__name__)

COLLECTIONS = ("tasks", "notes", "ideas")
SETTINGS_KEY = "settings"

DEFAULT_SETTINGS: Record = {"oneActiveTask": True, "autoStopOnComplete": True}


class SqliteRecordStore:
    """
    SQLite record store (async, via aiosqlite).

    Each collection is a table of JSON documents keyed by id, with a few
    denormalized columns (status, created_at, updated_at) for indexing.
    The singleton settings record lives in the `meta` table.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each method opens its own connection; nothing is shared between calls.
    """

    def __init__(
        self,
        db_path: str | Path = "dev-task-hub.sqlite3",
        *,
        default_settings: Record | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._default_settings = dict(default_settings or DEFAULT_SETTINGS)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    @contextlib.asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(str(self._db_path), timeout=30.0)
        try:
            conn.row_factory = aiosqlite.Row
            with contextlib.suppress(Exception):
                await conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        finally:
            await conn.close()

    @staticmethod
    def _table(collection: str) -> str:
        if collection not in COLLECTIONS:
            raise ValueError(f"unknown collection: {collection!r}")
        return collection

    @staticmethod
    def _encode(record: Record) -> str:
        return json.dumps(record, ensure_ascii=False)

    @staticmethod
    def _decode(row_id: str, data: str | None) -> Record:
        if not data:
            return {"id": row_id}
        try:
            val = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Unreadable record id=%s; loading it with defaults.", row_id)
            return {"id": row_id}
        if not isinstance(val, dict):
            return {"id": row_id}
        val.setdefault("id", row_id)
        return val

    @staticmethod
    def _columns(record: Record) -> tuple[Any, int, int]:
        status = record.get("status")
        created = record.get("createdAt")
        updated = record.get("updatedAt", created)

        def _int(v: Any) -> int:
            return int(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else 0

        return (str(status) if status is not None else None), _int(created), _int(updated)

    @staticmethod
    def _record_id(record: Record) -> str:
        rid = record.get("id")
        if not isinstance(rid, str) or not rid.strip():
            raise ValueError("record id is required")
        return rid

    async def _ensure_schema(self, conn: aiosqlite.Connection) -> None:
        for table in COLLECTIONS:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL DEFAULT '{{}}',
                    status TEXT,
                    created_at INTEGER NOT NULL DEFAULT 0,
                    updated_at INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            async with conn.execute(f"PRAGMA table_info({table})") as cur:
                cols = {row["name"] for row in await cur.fetchall()}

            for name, decl in (
                ("data", "TEXT NOT NULL DEFAULT '{}'"),
                ("status", "TEXT"),
                ("created_at", "INTEGER NOT NULL DEFAULT 0"),
                ("updated_at", "INTEGER NOT NULL DEFAULT 0"),
            ):
                if name in cols:
                    continue
                await conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("Store migration: added column %s.%s", table, name)

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL DEFAULT '{}'
            )
            """
        )

        await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated_at)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_ideas_status ON ideas(status)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_ideas_updated ON ideas(updated_at)")

    async def _insert(self, conn: aiosqlite.Connection, table: str, records: Iterable[Record]) -> None:
        rows = []
        for record in records:
            status, created, updated = self._columns(record)
            rows.append((self._record_id(record), self._encode(record), status, created, updated))
        await conn.executemany(
            f"""
            INSERT OR REPLACE INTO {table}(id, data, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            rows,
        )

    async def _write_settings(self, conn: aiosqlite.Connection, value: Record) -> None:
        payload = {k: v for k, v in value.items() if k != "key"}
        await conn.execute(
            "INSERT OR REPLACE INTO meta(key, value) VALUES (?, ?)",
            (SETTINGS_KEY, self._encode(payload)),
        )

    # ---- public API ----

    async def init(self) -> None:
        """Create the schema and seed default settings on first use."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as conn:
            await self._ensure_schema(conn)
            async with conn.execute("SELECT 1 FROM meta WHERE key = ?", (SETTINGS_KEY,)) as cur:
                seeded = await cur.fetchone() is not None
            if not seeded:
                await self._write_settings(conn, self._default_settings)
                logger.info("Store seeded default settings %s", self._default_settings)
            await conn.commit()

        counts = {c: await self.count(c) for c in COLLECTIONS}
        logger.info("RecordStore ready db=%s counts=%s", self._db_path, counts)

    async def count(self, collection: str) -> int:
        table = self._table(collection)
        async with self._connect() as conn:
            async with conn.execute(f"SELECT COUNT(*) FROM {table}") as cur:
                row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def get_all(self, collection: str) -> list[Record]:
        table = self._table(collection)
        async with self._connect() as conn:
            async with conn.execute(
                f"SELECT id, data FROM {table} ORDER BY created_at ASC, rowid ASC"
            ) as cur:
                rows = await cur.fetchall()
        return [self._decode(row["id"], row["data"]) for row in rows]

    async def put(self, collection: str, record: Record) -> None:
        table = self._table(collection)
        async with self._connect() as conn:
            await self._insert(conn, table, [record])
            await conn.commit()
        logger.debug("put %s id=%s", table, record.get("id"))

    async def delete(self, collection: str, record_id: str) -> None:
        table = self._table(collection)
        async with self._connect() as conn:
            await conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            await conn.commit()
        logger.debug("delete %s id=%s", table, record_id)

    async def clear(self, collection: str) -> None:
        table = self._table(collection)
        async with self._connect() as conn:
            await conn.execute(f"DELETE FROM {table}")
            await conn.commit()
        logger.info("cleared %s", table)

    async def get_settings(self) -> Record | None:
        async with self._connect() as conn:
            async with conn.execute("SELECT value FROM meta WHERE key = ?", (SETTINGS_KEY,)) as cur:
                row = await cur.fetchone()
        if row is None:
            return None
        try:
            val = json.loads(row["value"] or "{}")
        except json.JSONDecodeError:
            logger.warning("Unreadable settings record; using defaults.")
            return None
        return val if isinstance(val, dict) else None

    async def put_settings(self, value: Record) -> None:
        async with self._connect() as conn:
            await self._write_settings(conn, value)
            await conn.commit()

    async def replace_all(
        self,
        *,
        tasks: list[Record],
        notes: list[Record],
        ideas: list[Record],
        settings: Record,
    ) -> None:
        """Clear and refill every collection plus settings in a single transaction."""
        async with self._connect() as conn:
            try:
                for table, records in (("tasks", tasks), ("notes", notes), ("ideas", ideas)):
                    await conn.execute(f"DELETE FROM {table}")
                    await self._insert(conn, table, records)
                await self._write_settings(conn, settings)
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
        logger.info(
            "Replaced all collections tasks=%d notes=%d ideas=%d",
            len(tasks),
            len(notes),
            len(ideas),
        )
