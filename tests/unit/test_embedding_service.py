"""
Unit tests for EmbeddingService.

Tests degradation without a provider, vector index round trips, semantic
search and the embedding backfill job.
"""
import math
from unittest.mock import AsyncMock

import pytest

from memento_engine.services.embedding import EmbeddingNotConfiguredError, EmbeddingService
from memento_engine.services.embedding.mock import MockEmbeddingProvider
from memento_engine.services.embedding.none import NoEmbeddingProvider
from memento_engine.services.vector_index.in_memory import MemoryVectorIndex


@pytest.fixture
def disabled_service(v):
    return EmbeddingService(v=v, provider=NoEmbeddingProvider(v=v), index=MemoryVectorIndex(v=v))


class TestMockEmbeddingProvider:

    @pytest.mark.asyncio
    async def test_deterministic_and_normalized(self, v):
        provider = MockEmbeddingProvider(v=v, dimensions=16)
        first = await provider.embed("hello world")
        second = await provider.embed("hello world")
        assert first == second
        assert len(first) == 16
        assert math.sqrt(sum(x * x for x in first)) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_batch(self, v):
        provider = MockEmbeddingProvider(v=v, dimensions=8)
        batch = await provider.embed_batch(["a", "b"])
        assert batch == [await provider.embed("a"), await provider.embed("b")]


class TestDegradation:

    @pytest.mark.asyncio
    async def test_no_provider_degrades(self, disabled_service, storage, seed, make_memory, workspace_id):
        await seed(make_memory("something"))

        assert disabled_service.is_available is False
        assert await disabled_service.embed("text") is None
        assert await disabled_service.embed_and_store(workspace_id, "m1", "text") is False
        assert await disabled_service.semantic_search(workspace_id, "text") == []
        assert await disabled_service.query(workspace_id, [0.1, 0.2]) == []
        assert await disabled_service.delete(workspace_id, "m1") is False

        result = await disabled_service.backfill_workspace(storage, workspace_id)
        assert (result.embedded, result.skipped, result.errors) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_no_provider_raises_when_called_directly(self, v):
        with pytest.raises(EmbeddingNotConfiguredError):
            await NoEmbeddingProvider(v=v).embed("text")

    @pytest.mark.asyncio
    async def test_missing_provider_object(self, v, workspace_id):
        service = EmbeddingService(v=v, provider=None, index=None)
        assert service.is_available is False
        assert service.dimensions == 0
        assert await service.semantic_search(workspace_id, "x") == []


class TestEmbeddingService:

    @pytest.mark.asyncio
    async def test_blank_text_not_embedded(self, embedding_service):
        assert await embedding_service.embed("   ") is None

    @pytest.mark.asyncio
    async def test_embed_and_search(self, embedding_service, workspace_id):
        await embedding_service.embed_and_store(workspace_id, "m1", "JWT auth decision")
        await embedding_service.embed_and_store(workspace_id, "m2", "Database migration notes")

        hits = await embedding_service.semantic_search(workspace_id, "JWT auth decision", top_k=2)

        assert hits[0].id == "m1"
        assert hits[0].score == pytest.approx(1.0, abs=1e-5)

    @pytest.mark.asyncio
    async def test_search_is_workspace_scoped(self, embedding_service):
        await embedding_service.embed_and_store("ws_a", "m1", "shared text")
        await embedding_service.embed_and_store("ws_b", "m2", "shared text")

        hits = await embedding_service.semantic_search("ws_a", "shared text")

        assert [h.id for h in hits] == ["m1"]

    @pytest.mark.asyncio
    async def test_delete(self, embedding_service, workspace_id):
        await embedding_service.embed_and_store(workspace_id, "m1", "text")
        assert await embedding_service.delete(workspace_id, "m1") is True
        assert await embedding_service.semantic_search(workspace_id, "text") == []

    @pytest.mark.asyncio
    async def test_provider_error_propagates_from_embed(self, embedding_service):
        embedding_service.provider.embed = AsyncMock(side_effect=RuntimeError("rate limited"))
        with pytest.raises(RuntimeError):
            await embedding_service.embed("text")

    @pytest.mark.asyncio
    async def test_semantic_search_swallows_provider_error(self, embedding_service, workspace_id):
        embedding_service.provider.embed = AsyncMock(side_effect=RuntimeError("rate limited"))
        assert await embedding_service.semantic_search(workspace_id, "text") == []

    @pytest.mark.asyncio
    async def test_embed_memory_sets_embedded_at(self, embedding_service, storage, seed, make_memory, workspace_id):
        (memory,) = await seed(make_memory("embed me"))

        assert await embedding_service.embed_memory(storage, workspace_id, memory.id) is True

        stored = await storage.get_memory(workspace_id, memory.id)
        assert stored.embedded_at is not None

    @pytest.mark.asyncio
    async def test_embed_memory_missing(self, embedding_service, storage, workspace_id):
        assert await embedding_service.embed_memory(storage, workspace_id, "mem_missing") is False


class TestBackfill:

    @pytest.mark.asyncio
    async def test_backfill_embeds_unembedded(self, embedding_service, storage, seed, make_memory, workspace_id):
        memories = await seed(*[make_memory(f"memory {i}", age_hours=i) for i in range(5)])
        await seed(make_memory("merged away", consolidated=True))

        result = await embedding_service.backfill_workspace(storage, workspace_id)

        assert result.embedded == 5
        assert result.errors == 0
        for m in memories:
            assert (await storage.get_memory(workspace_id, m.id)).embedded_at is not None

    @pytest.mark.asyncio
    async def test_backfill_is_idempotent(self, embedding_service, storage, seed, make_memory, workspace_id):
        await seed(make_memory("a"), make_memory("b"))

        await embedding_service.backfill_workspace(storage, workspace_id)
        second = await embedding_service.backfill_workspace(storage, workspace_id)

        assert second.embedded == 0


    @pytest.mark.asyncio
    async def test_backfill_sends_one_request_per_batch(self, v, storage, seed, make_memory, workspace_id):
        provider = MockEmbeddingProvider(v=v, dimensions=8)
        batches = []
        real_embed_batch = provider.embed_batch

        async def recording_embed_batch(texts):
            batches.append(list(texts))
            return await real_embed_batch(texts)

        provider.embed_batch = recording_embed_batch
        provider.embed = AsyncMock(side_effect=AssertionError("rows are embedded in batches"))
        service = EmbeddingService(v=v, provider=provider, index=MemoryVectorIndex(v=v), batch_size=2)
        await seed(make_memory("oldest", age_hours=10), make_memory("newest", age_hours=0),
                   make_memory("middle", age_hours=5))

        result = await service.backfill_workspace(storage, workspace_id)

        assert result.embedded == 3
        assert batches == [["newest", "middle"], ["oldest"]]

    @pytest.mark.asyncio
    async def test_backfill_skips_blank_rows_in_batch(self, v, storage, seed, make_memory, workspace_id):
        provider = MockEmbeddingProvider(v=v, dimensions=8)
        provider.embed_batch = AsyncMock(wraps=provider.embed_batch)
        service = EmbeddingService(v=v, provider=provider, index=MemoryVectorIndex(v=v))
        (real,) = await seed(make_memory("real content"))
        blank = make_memory("placeholder").model_copy(update={"content": "  "})
        storage.list_unembedded_memories = AsyncMock(return_value=[real, blank])

        result = await service.backfill_workspace(storage, workspace_id)

        assert (result.embedded, result.skipped) == (1, 1)
        provider.embed_batch.assert_awaited_once_with(["real content"])

    @pytest.mark.asyncio
    async def test_backfill_counts_errors(self, v, storage, seed, make_memory, workspace_id):
        provider = MockEmbeddingProvider(v=v, dimensions=8)
        real_embed = provider.embed

        async def flaky_embed(text):
            if "bad" in text:
                raise RuntimeError("provider error")
            return await real_embed(text)

        provider.embed_batch = AsyncMock(side_effect=RuntimeError("batch rejected"))
        provider.embed = flaky_embed
        service = EmbeddingService(v=v, provider=provider, index=MemoryVectorIndex(v=v), batch_size=2)
        good, bad, also_good = await seed(make_memory("good one"), make_memory("bad one"), make_memory("fine"))

        result = await service.backfill_workspace(storage, workspace_id)

        assert result.embedded == 2
        assert result.errors == 1
        assert (await storage.get_memory(workspace_id, bad.id)).embedded_at is None
        assert (await storage.get_memory(workspace_id, good.id)).embedded_at is not None

    @pytest.mark.asyncio
    async def test_backfill_short_batch_response_falls_back(self, v, storage, seed, make_memory, workspace_id):
        provider = MockEmbeddingProvider(v=v, dimensions=8)
        provider.embed_batch = AsyncMock(return_value=[[1.0] * 8])
        service = EmbeddingService(v=v, provider=provider, index=MemoryVectorIndex(v=v))
        await seed(make_memory("a"), make_memory("b"))

        result = await service.backfill_workspace(storage, workspace_id)

        assert (result.embedded, result.errors) == (2, 0)
