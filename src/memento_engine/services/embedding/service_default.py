"""
Embedding service: embedding provider + vector index.

When no provider is configured every call degrades to ``None`` / ``False`` /
``[]`` instead of raising, so keyword retrieval keeps working on its own.
"""
from logging import Logger
from typing import Optional, TYPE_CHECKING

from scitrera_app_framework import get_logger, Variables

from ...config import MEMENTO_EMBEDDING_BATCH_SIZE, DEFAULT_MEMENTO_EMBEDDING_BATCH_SIZE
from ...models.search import VectorMatch
from ...utils import utc_now
from ..vector_index import VectorIndex, EXT_VECTOR_INDEX
from .base import (
    BackfillResult,
    EmbeddingProvider,
    EmbeddingServicePluginBase,
    EXT_EMBEDDING_PROVIDER,
)

if TYPE_CHECKING:
    from ..storage import StorageBackend


class EmbeddingService:
    """Embeds memory content and keeps the vector index in step with storage."""

    def __init__(
            self,
            v: Variables = None,
            provider: Optional[EmbeddingProvider] = None,
            index: Optional[VectorIndex] = None,
            batch_size: int = DEFAULT_MEMENTO_EMBEDDING_BATCH_SIZE,
    ):
        self.provider = provider
        self.index = index
        self.batch_size = max(1, batch_size)
        self.logger = get_logger(v, name=self.__class__.__name__)

        self.logger.info(
            "Initialized EmbeddingService with provider: %s, index: %s, available: %s",
            provider.__class__.__name__,
            index.__class__.__name__,
            self.is_available,
        )

    @property
    def is_available(self) -> bool:
        return (
            self.provider is not None
            and self.provider.is_available
            and self.index is not None
        )

    @property
    def dimensions(self) -> int:
        return self.provider.dimensions if self.provider else 0

    async def embed(self, text: str) -> Optional[list[float]]:
        """Embedding for ``text``; None when unavailable or the text is blank. Provider errors propagate."""
        if not self.is_available or not text or not text.strip():
            return None
        return await self.provider.embed(text)

    async def upsert(self, workspace_id: str, memory_id: str, vector: list[float]) -> bool:
        if not self.is_available:
            return False
        await self.index.upsert(workspace_id, memory_id, vector)
        return True

    async def query(self, workspace_id: str, vector: list[float], top_k: int = 10) -> list[VectorMatch]:
        if not self.is_available:
            return []
        return await self.index.query(vector, top_k, workspace_id)

    async def delete(self, workspace_id: str, memory_id: str) -> bool:
        if not self.is_available:
            return False
        return await self.index.delete(workspace_id, memory_id)

    async def embed_and_store(self, workspace_id: str, memory_id: str, content: str) -> bool:
        """
        Embed ``content`` and upsert it under the memory's vector id.

        Returns:
            True if stored, False when unavailable or the content is blank
        """
        embedding = await self.embed(content)
        if embedding is None:
            return False
        await self.index.upsert(workspace_id, memory_id, embedding)
        self.logger.debug("Embedded memory %s in workspace %s", memory_id, workspace_id)
        return True

    async def embed_memory(self, storage: 'StorageBackend', workspace_id: str, memory_id: str) -> bool:
        """Embed a stored memory and stamp ``embedded_at``. False when unavailable, missing or blank."""
        if not self.is_available:
            return False
        memory = await storage.get_memory(workspace_id, memory_id)
        if memory is None:
            self.logger.debug("Memory %s not found in workspace %s, nothing to embed", memory_id, workspace_id)
            return False
        if not await self.embed_and_store(workspace_id, memory.id, memory.content):
            return False
        await storage.update_memory(workspace_id, memory.id, embedded_at=utc_now())
        return True

    async def semantic_search(self, workspace_id: str, query: str, top_k: int = 10) -> list[VectorMatch]:
        """Vector hits for a natural-language query. Failures degrade to an empty list."""
        if not self.is_available:
            return []
        try:
            embedding = await self.embed(query)
            if embedding is None:
                return []
            return await self.index.query(embedding, top_k, workspace_id)
        except Exception as e:
            self.logger.warning("Semantic search failed for workspace %s: %s", workspace_id, e)
            return []

    async def backfill_workspace(self, storage: 'StorageBackend', workspace_id: str) -> BackfillResult:
        """
        Embed every non-consolidated memory that has not been embedded yet.

        Rows are processed newest first; each batch is sent to the provider as
        one ``embed_batch`` call. Blank content is skipped and per-row failures
        are counted, never raised.
        """
        result = BackfillResult()
        if not self.is_available:
            self.logger.debug("Embedding unavailable, skipping backfill for workspace %s", workspace_id)
            return result

        rows = await storage.list_unembedded_memories(workspace_id)
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start:start + self.batch_size]
            pending = [m for m in batch if m.content and m.content.strip()]
            result.skipped += len(batch) - len(pending)

            vectors = await self._embed_rows(pending) if pending else []
            for memory, vector in zip(pending, vectors):
                if vector is None:
                    result.errors += 1
                    continue
                try:
                    await self.index.upsert(workspace_id, memory.id, vector)
                    await storage.update_memory(workspace_id, memory.id, embedded_at=utc_now())
                    result.embedded += 1
                except Exception as e:
                    self.logger.error("Failed to store embedding for memory %s: %s", memory.id, e, exc_info=True)
                    result.errors += 1
            self.logger.debug(
                "Backfill batch %d for workspace %s: %d rows", start // self.batch_size + 1, workspace_id, len(batch)
            )

        self.logger.info(
            "Backfill for workspace %s: %d embedded, %d skipped, %d errors",
            workspace_id, result.embedded, result.skipped, result.errors
        )
        return result

    async def _embed_rows(self, memories: list) -> list[Optional[list[float]]]:
        """Vectors for ``memories`` in order; None marks a row that failed to embed."""
        try:
            vectors = await self.provider.embed_batch([m.content for m in memories])
            if len(vectors) != len(memories):
                raise ValueError(f"expected {len(memories)} vectors, got {len(vectors)}")
            return vectors
        except Exception as e:
            self.logger.warning("Batch embedding of %d rows failed, retrying one by one: %s", len(memories), e)

        vectors = []
        for memory in memories:
            try:
                vectors.append(await self.provider.embed(memory.content))
            except Exception as e:
                self.logger.error("Failed to embed memory %s: %s", memory.id, e, exc_info=True)
                vectors.append(None)
        return vectors


class EmbeddingServicePlugin(EmbeddingServicePluginBase):
    """Default plugin for embedding service."""
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> object | None:
        return EmbeddingService(
            v=v,
            provider=self.get_extension(EXT_EMBEDDING_PROVIDER, v),
            index=self.get_extension(EXT_VECTOR_INDEX, v),
            batch_size=v.environ(MEMENTO_EMBEDDING_BATCH_SIZE, default=DEFAULT_MEMENTO_EMBEDDING_BATCH_SIZE,
                                 type_fn=int),
        )
