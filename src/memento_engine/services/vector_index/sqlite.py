"""SQLite-backed vector index. Similarity is computed in-process with numpy."""
from logging import Logger
from pathlib import Path
from typing import Optional

import aiosqlite
import numpy as np
from scitrera_app_framework import Variables

from ...config import VectorIndexType, MEMENTO_SQLITE_VECTOR_PATH, DEFAULT_MEMENTO_SQLITE_VECTOR_PATH
from ...models.search import VectorMatch
from .base import VectorIndex, VectorIndexPluginBase
from .in_memory import rank_by_similarity


class SQLiteVectorIndex(VectorIndex):
    """float32 vectors stored as blobs, one row per ``(workspace_id, memory_id)``."""

    def __init__(self, db_path: str = DEFAULT_MEMENTO_SQLITE_VECTOR_PATH, v: Variables = None):
        super().__init__(v)
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        if self._connection is not None:
            return
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS memory_vectors (
                workspace_id TEXT NOT NULL,
                memory_id TEXT NOT NULL,
                dimensions INTEGER NOT NULL,
                vector BLOB NOT NULL,
                PRIMARY KEY (workspace_id, memory_id)
            )
        """)
        await self._connection.commit()
        self.logger.info("Vector index opened at %s", self.db_path)

    async def disconnect(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def upsert(self, workspace_id: str, memory_id: str, vector: list[float]) -> None:
        await self.connect()
        blob = np.asarray(vector, dtype=np.float32).tobytes()
        await self._connection.execute(
            """
            INSERT INTO memory_vectors (workspace_id, memory_id, dimensions, vector) VALUES (?, ?, ?, ?)
            ON CONFLICT(workspace_id, memory_id) DO UPDATE
                SET dimensions = excluded.dimensions, vector = excluded.vector
            """,
            (workspace_id, memory_id, len(vector), blob),
        )
        await self._connection.commit()

    async def query(self, vector: list[float], top_k: int, workspace_id: str) -> list[VectorMatch]:
        await self.connect()
        cursor = await self._connection.execute(
            "SELECT memory_id, vector FROM memory_vectors WHERE workspace_id = ? AND dimensions = ?",
            (workspace_id, len(vector)),
        )
        rows = await cursor.fetchall()
        if not rows:
            return []
        ids = [row["memory_id"] for row in rows]
        matrix = np.vstack([np.frombuffer(row["vector"], dtype=np.float32) for row in rows])
        ranked = rank_by_similarity(np.asarray(vector, dtype=np.float32), ids, matrix, top_k)
        return [VectorMatch(id=memory_id, score=score) for memory_id, score in ranked]

    async def delete(self, workspace_id: str, memory_id: str) -> bool:
        await self.connect()
        cursor = await self._connection.execute(
            "DELETE FROM memory_vectors WHERE workspace_id = ? AND memory_id = ?", (workspace_id, memory_id)
        )
        await self._connection.commit()
        return cursor.rowcount > 0


class SQLiteVectorIndexPlugin(VectorIndexPluginBase):
    PROVIDER_NAME = VectorIndexType.SQLITE

    def initialize(self, v: Variables, logger: Logger) -> SQLiteVectorIndex:
        return SQLiteVectorIndex(
            db_path=v.environ(MEMENTO_SQLITE_VECTOR_PATH, default=DEFAULT_MEMENTO_SQLITE_VECTOR_PATH),
            v=v,
        )
