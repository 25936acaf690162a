"""SQLite storage backend."""
import json
from datetime import datetime
from logging import Logger
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from scitrera_app_framework import Variables

from ...config import MEMENTO_SQLITE_STORAGE_PATH, DEFAULT_MEMENTO_SQLITE_STORAGE_PATH
from ...models.codec import encode_linkages, encode_tags
from ...models.consolidation import Consolidation
from ...models.memory import Memory
from ...utils import ensure_utc, utc_now
from .base import StorageBackend, StoragePluginBase

_MEMORY_COLUMNS = (
    "id", "workspace_id", "content", "type", "tags", "linkages", "created_at", "expires_at",
    "access_count", "last_accessed_at", "relevance", "consolidated", "consolidated_into", "embedded_at",
)
_UPDATABLE_COLUMNS = frozenset(_MEMORY_COLUMNS) - {"id", "workspace_id"}


def _to_db(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key == "tags":
        return encode_tags(value)
    if key == "linkages":
        return encode_linkages(value)
    if key == "consolidated":
        return 1 if value else 0
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    return value


class SQLiteStorageBackend(StorageBackend):
    """SQLite storage backend. Tags and linkages are stored as JSON text."""

    def __init__(self, db_path: str = DEFAULT_MEMENTO_SQLITE_STORAGE_PATH, v: Variables = None):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file (``:memory:`` for an ephemeral database)
            v: Variables for logging context
        """
        super().__init__(v)
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Initialize storage connection."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.logger.info("Connecting to SQLite database at %s", self.db_path)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        # Enable WAL mode for better concurrent read performance
        await self._connection.execute("PRAGMA journal_mode=WAL")

        await self._create_tables()
        self.logger.info("Connected to SQLite database at %s", self.db_path)

    async def disconnect(self) -> None:
        """Close storage connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            self.logger.info("Disconnected from SQLite database")

    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        try:
            if self._connection:
                await self._connection.execute("SELECT 1")
                return True
            return False
        except Exception as e:
            self.logger.error("Health check failed: %s", e)
            return False

    async def _create_tables(self) -> None:
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT NOT NULL,
                workspace_id TEXT NOT NULL,
                content TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'observation',
                tags TEXT DEFAULT '[]',
                linkages TEXT DEFAULT '[]',
                created_at TEXT DEFAULT (datetime('now')),
                expires_at TEXT,
                access_count INTEGER DEFAULT 0,
                last_accessed_at TEXT,
                relevance REAL DEFAULT 1.0,
                consolidated INTEGER DEFAULT 0,
                consolidated_into TEXT,
                embedded_at TEXT,
                PRIMARY KEY (workspace_id, id)
            )
        """)
        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_memories_active
            ON memories (workspace_id, consolidated)
        """)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS consolidations (
                id TEXT NOT NULL,
                workspace_id TEXT NOT NULL,
                summary TEXT NOT NULL,
                source_ids TEXT DEFAULT '[]',
                tags TEXT DEFAULT '[]',
                type TEXT NOT NULL DEFAULT 'auto',
                method TEXT NOT NULL DEFAULT 'template',
                template_summary TEXT DEFAULT '',
                created_at TEXT DEFAULT (datetime('now')),
                PRIMARY KEY (workspace_id, id)
            )
        """)
        await self._connection.commit()

    async def _commit(self) -> None:
        """Commit a standalone write; writes inside this task's transaction wait for it."""
        if not self._owns_transaction():
            await self._connection.commit()

    async def _commit_transaction(self) -> None:
        await self._connection.commit()

    async def _rollback_transaction(self) -> None:
        await self._connection.rollback()

    # ========== Memory Operations ==========

    async def create_memory(self, workspace_id: str, memory: Memory) -> Memory:
        memory = memory.model_copy(update={"workspace_id": workspace_id})
        values = [_to_db(col, getattr(memory, col)) for col in _MEMORY_COLUMNS]
        placeholders = ", ".join("?" for _ in _MEMORY_COLUMNS)
        async with self._exclusive():
            await self._connection.execute(
                f"INSERT INTO memories ({', '.join(_MEMORY_COLUMNS)}) VALUES ({placeholders})",
                values,
            )
            await self._commit()
        self.logger.debug("Created memory %s in workspace %s", memory.id, workspace_id)
        return memory

    async def get_memory(self, workspace_id: str, memory_id: str) -> Optional[Memory]:
        async with self._exclusive():
            return await self._fetch_memory(workspace_id, memory_id)

    async def _fetch_memory(self, workspace_id: str, memory_id: str) -> Optional[Memory]:
        cursor = await self._connection.execute(
            "SELECT * FROM memories WHERE workspace_id = ? AND id = ?",
            (workspace_id, memory_id),
        )
        row = await cursor.fetchone()
        return self._row_to_memory(row) if row else None

    async def update_memory(self, workspace_id: str, memory_id: str, **updates) -> Optional[Memory]:
        """Update memory fields."""
        unknown = set(updates) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update memory fields: {', '.join(sorted(unknown))}")

        async with self._exclusive():
            if not updates:
                return await self._fetch_memory(workspace_id, memory_id)

            set_parts = [f"{key} = ?" for key in updates]
            values = [_to_db(key, value) for key, value in updates.items()]
            values.extend([workspace_id, memory_id])

            cursor = await self._connection.execute(
                f"UPDATE memories SET {', '.join(set_parts)} WHERE workspace_id = ? AND id = ?",
                values,
            )
            await self._commit()

            if cursor.rowcount == 0:
                return None
            return await self._fetch_memory(workspace_id, memory_id)

    async def delete_memory(self, workspace_id: str, memory_id: str) -> bool:
        async with self._exclusive():
            cursor = await self._connection.execute(
                "DELETE FROM memories WHERE workspace_id = ? AND id = ?",
                (workspace_id, memory_id),
            )
            await self._commit()
        return cursor.rowcount > 0

    async def list_memories(self, workspace_id: str) -> list[Memory]:
        async with self._exclusive():
            cursor = await self._connection.execute(
                "SELECT * FROM memories WHERE workspace_id = ? ORDER BY created_at ASC, rowid ASC",
                (workspace_id,),
            )
            rows = await cursor.fetchall()
        return self._rows_to_memories(rows)

    async def list_unembedded_memories(self, workspace_id: str) -> list[Memory]:
        async with self._exclusive():
            cursor = await self._connection.execute(
                """
                SELECT * FROM memories
                WHERE workspace_id = ? AND embedded_at IS NULL AND consolidated = 0
                ORDER BY created_at DESC, rowid ASC
                """,
                (workspace_id,),
            )
            rows = await cursor.fetchall()
        return self._rows_to_memories(rows)

    async def list_all_workspace_ids(self) -> list[str]:
        async with self._exclusive():
            cursor = await self._connection.execute(
                "SELECT DISTINCT workspace_id FROM memories ORDER BY workspace_id"
            )
            return [row["workspace_id"] for row in await cursor.fetchall()]

    async def record_access(self, workspace_id: str, memory_ids: list[str], now: Optional[datetime] = None) -> int:
        unique_ids = list(dict.fromkeys(memory_ids))
        if not unique_ids:
            return 0
        placeholders = ", ".join("?" for _ in unique_ids)
        async with self._exclusive():
            cursor = await self._connection.execute(
                f"""
                UPDATE memories
                SET access_count     = MAX(COALESCE(access_count, 0), 0) + 1,
                    last_accessed_at = ?
                WHERE workspace_id = ? AND id IN ({placeholders})
                """,
                [_to_db("last_accessed_at", now or utc_now()), workspace_id, *unique_ids],
            )
            await self._commit()
        return cursor.rowcount

    # ========== Consolidation Records ==========

    async def create_consolidation(self, consolidation: Consolidation) -> Consolidation:
        async with self._exclusive():
            await self._connection.execute(
                """
                INSERT INTO consolidations
                    (id, workspace_id, summary, source_ids, tags, type, method, template_summary, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    consolidation.id,
                    consolidation.workspace_id,
                    consolidation.summary,
                    json.dumps(consolidation.source_ids),
                    json.dumps(consolidation.tags),
                    consolidation.type,
                    consolidation.method.value,
                    consolidation.template_summary,
                    consolidation.created_at.isoformat(),
                ),
            )
            await self._commit()
        return consolidation

    async def get_consolidation(self, workspace_id: str, consolidation_id: str) -> Optional[Consolidation]:
        async with self._exclusive():
            cursor = await self._connection.execute(
                "SELECT * FROM consolidations WHERE workspace_id = ? AND id = ?",
                (workspace_id, consolidation_id),
            )
            row = await cursor.fetchone()
        return self._row_to_consolidation(row) if row else None

    async def list_consolidations(self, workspace_id: str) -> list[Consolidation]:
        async with self._exclusive():
            cursor = await self._connection.execute(
                "SELECT * FROM consolidations WHERE workspace_id = ? ORDER BY created_at ASC, rowid ASC",
                (workspace_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_consolidation(row) for row in rows]

    async def delete_consolidation(self, workspace_id: str, consolidation_id: str) -> bool:
        async with self._exclusive():
            cursor = await self._connection.execute(
                "DELETE FROM consolidations WHERE workspace_id = ? AND id = ?",
                (workspace_id, consolidation_id),
            )
            await self._commit()
        return cursor.rowcount > 0

    def _row_to_memory(self, row: aiosqlite.Row) -> Optional[Memory]:
        """Convert database row to Memory domain model; None when the row is unreadable."""
        return self._decode_memory({key: row[key] for key in row.keys()})

    def _rows_to_memories(self, rows: list[aiosqlite.Row]) -> list[Memory]:
        return [memory for memory in map(self._row_to_memory, rows) if memory is not None]

    def _row_to_consolidation(self, row: aiosqlite.Row) -> Consolidation:
        """Convert database row to Consolidation domain model."""
        return Consolidation(
            id=row["id"],
            workspace_id=row["workspace_id"],
            summary=row["summary"],
            source_ids=json.loads(row["source_ids"]) if row["source_ids"] else [],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            type=row["type"],
            method=row["method"],
            template_summary=row["template_summary"] or "",
            created_at=row["created_at"],
        )


class SqliteStorageBackendPlugin(StoragePluginBase):
    PROVIDER_NAME = 'sqlite'

    def initialize(self, v: Variables, logger: Logger) -> object | None:
        return SQLiteStorageBackend(
            db_path=v.environ(MEMENTO_SQLITE_STORAGE_PATH, default=DEFAULT_MEMENTO_SQLITE_STORAGE_PATH),
            v=v
        )
