"""Unit tests for the vector indexes (in-memory and SQLite)."""
import numpy as np
import pytest
import pytest_asyncio

from memento_engine.services.vector_index.in_memory import MemoryVectorIndex, rank_by_similarity
from memento_engine.services.vector_index.sqlite import SQLiteVectorIndex


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def index(request, tmp_path, v):
    if request.param == "memory":
        idx = MemoryVectorIndex(v=v)
    else:
        idx = SQLiteVectorIndex(db_path=str(tmp_path / "vectors.db"), v=v)
    await idx.connect()
    yield idx
    await idx.disconnect()


class TestRankBySimilarity:

    def test_orders_by_cosine(self):
        matrix = np.array([[0.0, 1.0], [1.0, 0.0], [1.0, 1.0]], dtype=np.float32)
        ranked = rank_by_similarity(np.array([1.0, 0.0], dtype=np.float32), ["y", "x", "xy"], matrix, top_k=3)
        assert [r[0] for r in ranked] == ["x", "xy", "y"]
        assert ranked[0][1] == pytest.approx(1.0)

    def test_zero_vectors_score_zero(self):
        matrix = np.array([[0.0, 0.0], [1.0, 0.0]], dtype=np.float32)
        ranked = rank_by_similarity(np.array([1.0, 0.0], dtype=np.float32), ["zero", "x"], matrix, top_k=2)
        assert dict(ranked)["zero"] == 0.0

    def test_zero_query(self):
        matrix = np.array([[1.0, 0.0]], dtype=np.float32)
        assert rank_by_similarity(np.zeros(2, dtype=np.float32), ["x"], matrix, top_k=1) == []


class TestVectorIndex:

    @pytest.mark.asyncio
    async def test_upsert_and_query(self, index):
        await index.upsert("ws", "a", [1.0, 0.0, 0.0])
        await index.upsert("ws", "b", [0.0, 1.0, 0.0])

        hits = await index.query([0.9, 0.1, 0.0], top_k=2, workspace_id="ws")

        assert [h.id for h in hits] == ["a", "b"]
        assert hits[0].score > hits[1].score

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, index):
        await index.upsert("ws", "a", [1.0, 0.0])
        await index.upsert("ws", "a", [0.0, 1.0])

        hits = await index.query([0.0, 1.0], top_k=5, workspace_id="ws")

        assert len(hits) == 1
        assert hits[0].score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_workspace_scoped(self, index):
        await index.upsert("ws_a", "a", [1.0, 0.0])
        await index.upsert("ws_b", "b", [1.0, 0.0])

        hits = await index.query([1.0, 0.0], top_k=5, workspace_id="ws_a")

        assert [h.id for h in hits] == ["a"]

    @pytest.mark.asyncio
    async def test_workspace_with_colon(self, index):
        await index.upsert("team:a", "m1", [1.0, 0.0])

        hits = await index.query([1.0, 0.0], top_k=5, workspace_id="team:a")

        assert [h.id for h in hits] == ["m1"]
        assert await index.query([1.0, 0.0], top_k=5, workspace_id="team") == []

    @pytest.mark.asyncio
    async def test_colon_ids_do_not_collide_across_workspaces(self, index):
        await index.upsert("a", "b:x", [1.0, 0.0])
        await index.upsert("a:b", "x", [0.0, 1.0])

        in_a = await index.query([1.0, 0.0], top_k=5, workspace_id="a")
        in_ab = await index.query([0.0, 1.0], top_k=5, workspace_id="a:b")

        assert [(h.id, round(h.score, 6)) for h in in_a] == [("b:x", 1.0)]
        assert [(h.id, round(h.score, 6)) for h in in_ab] == [("x", 1.0)]

        assert await index.delete("a:b", "x") is True
        assert [h.id for h in await index.query([1.0, 0.0], top_k=5, workspace_id="a")] == ["b:x"]

    @pytest.mark.asyncio
    async def test_top_k(self, index):
        for i in range(5):
            await index.upsert("ws", f"m{i}", [1.0, float(i)])

        assert len(await index.query([1.0, 1.0], top_k=3, workspace_id="ws")) == 3

    @pytest.mark.asyncio
    async def test_delete(self, index):
        await index.upsert("ws", "a", [1.0, 0.0])
        assert await index.delete("ws", "a") is True
        assert await index.delete("ws", "a") is False
        assert await index.query([1.0, 0.0], top_k=5, workspace_id="ws") == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch_ignored(self, index):
        await index.upsert("ws", "small", [1.0, 0.0])
        await index.upsert("ws", "large", [1.0, 0.0, 0.0])

        hits = await index.query([1.0, 0.0, 0.0], top_k=5, workspace_id="ws")

        assert [h.id for h in hits] == ["large"]
