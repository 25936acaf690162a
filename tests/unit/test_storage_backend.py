"""
Unit tests for the storage backends.

Every test runs against both the in-memory backend and SQLite.
"""
import asyncio
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from memento_engine.models import Consolidation, ConsolidationMethod, Linkage, LinkageKind
from memento_engine.services.storage.in_memory import MemoryStorageBackend
from memento_engine.services.storage.sqlite import SQLiteStorageBackend

WS = "test_workspace"


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def backend(request, tmp_path, v):
    if request.param == "memory":
        storage = MemoryStorageBackend(v=v)
    else:
        storage = SQLiteStorageBackend(db_path=str(tmp_path / "test_storage.db"), v=v)
    await storage.connect()
    yield storage
    await storage.disconnect()


class TestMemoryCrud:

    @pytest.mark.asyncio
    async def test_create_and_get(self, backend, make_memory):
        memory = make_memory(
            "Use JWT", type="decision", tags=["auth", "project-x"], access_count=3,
            last_accessed_hours=2,
            linkages=[Linkage(kind=LinkageKind.FILE, ref="src/auth.py", label="implements")],
        )
        await backend.create_memory(WS, memory)

        stored = await backend.get_memory(WS, memory.id)

        assert stored.content == "Use JWT"
        assert stored.type == "decision"
        assert stored.tags == ["auth", "project-x"]
        assert stored.linkages == memory.linkages
        assert stored.access_count == 3
        assert stored.created_at == memory.created_at
        assert stored.last_accessed_at == memory.last_accessed_at
        assert stored.consolidated is False

    @pytest.mark.asyncio
    async def test_get_missing(self, backend):
        assert await backend.get_memory(WS, "mem_missing") is None

    @pytest.mark.asyncio
    async def test_get_memories_keeps_request_order(self, backend, make_memory):
        a, b = make_memory("a"), make_memory("b")
        await backend.create_memory(WS, a)
        await backend.create_memory(WS, b)

        found = await backend.get_memories(WS, [b.id, "mem_missing", a.id])

        assert [m.id for m in found] == [b.id, a.id]

    @pytest.mark.asyncio
    async def test_update(self, backend, make_memory):
        memory = make_memory("x")
        await backend.create_memory(WS, memory)
        embedded_at = datetime(2025, 6, 2, tzinfo=timezone.utc)

        updated = await backend.update_memory(
            WS, memory.id, relevance=0.42, consolidated=True, consolidated_into="con_1", embedded_at=embedded_at
        )

        assert updated.relevance == pytest.approx(0.42)
        assert updated.consolidated is True
        assert updated.consolidated_into == "con_1"
        assert updated.embedded_at == embedded_at

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, backend):
        assert await backend.update_memory(WS, "mem_missing", relevance=0.5) is None

    @pytest.mark.asyncio
    async def test_delete(self, backend, make_memory):
        memory = make_memory("x")
        await backend.create_memory(WS, memory)
        assert await backend.delete_memory(WS, memory.id) is True
        assert await backend.delete_memory(WS, memory.id) is False

    @pytest.mark.asyncio
    async def test_workspace_scoping(self, backend, make_memory):
        await backend.create_memory(WS, make_memory("a", id="same"))
        await backend.create_memory("other", make_memory("b", id="same", workspace_id="other"))

        assert (await backend.get_memory(WS, "same")).content == "a"
        assert (await backend.get_memory("other", "same")).content == "b"
        assert await backend.list_all_workspace_ids() == ["other", WS]


class TestListing:

    @pytest.mark.asyncio
    async def test_list_memories_oldest_first(self, backend, make_memory):
        for hours in (1, 10, 5):
            await backend.create_memory(WS, make_memory(f"{hours}h", age_hours=hours))

        memories = await backend.list_memories(WS)

        assert [m.content for m in memories] == ["10h", "5h", "1h"]

    @pytest.mark.asyncio
    async def test_list_active_excludes_consolidated_and_expired(self, backend, make_memory):
        await backend.create_memory(WS, make_memory("active"))
        await backend.create_memory(WS, make_memory("merged", consolidated=True))
        await backend.create_memory(WS, make_memory(
            "expired", expires_at=datetime(2000, 1, 1, tzinfo=timezone.utc)
        ))

        active = await backend.list_active_memories(WS)

        assert [m.content for m in active] == ["active"]

    @pytest.mark.asyncio
    async def test_list_unembedded_newest_first(self, backend, make_memory):
        old, new, done = make_memory("old", age_hours=5), make_memory("new", age_hours=1), make_memory("done")
        for m in (old, new, done):
            await backend.create_memory(WS, m)
        await backend.update_memory(WS, done.id, embedded_at=datetime(2025, 6, 1, tzinfo=timezone.utc))

        unembedded = await backend.list_unembedded_memories(WS)

        assert [m.content for m in unembedded] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_workspace_stats(self, backend, make_memory):
        await backend.create_memory(WS, make_memory("a"))
        await backend.create_memory(WS, make_memory("b", consolidated=True))

        stats = await backend.get_workspace_stats(WS)

        assert stats["total_memories"] == 2
        assert stats["consolidated_memories"] == 1
        assert stats["consolidations"] == 0


class TestConsolidationRecords:

    @pytest.mark.asyncio
    async def test_create_get_list_delete(self, backend):
        record = Consolidation(
            id="con_1", workspace_id=WS, summary="summary", source_ids=["a", "b", "c"],
            tags=["auth"], method=ConsolidationMethod.AI, template_summary="template",
        )
        await backend.create_consolidation(record)

        stored = await backend.get_consolidation(WS, "con_1")
        assert stored.source_ids == ["a", "b", "c"]
        assert stored.method == ConsolidationMethod.AI
        assert stored.template_summary == "template"
        assert [c.id for c in await backend.list_consolidations(WS)] == ["con_1"]

        assert await backend.delete_consolidation(WS, "con_1") is True
        assert await backend.get_consolidation(WS, "con_1") is None


class TestTransactions:

    @pytest.mark.asyncio
    async def test_commit(self, backend, make_memory):
        memory = make_memory("x")
        async with backend.transaction():
            await backend.create_memory(WS, memory)
            await backend.update_memory(WS, memory.id, consolidated=True)

        assert (await backend.get_memory(WS, memory.id)).consolidated is True

    @pytest.mark.asyncio
    async def test_rollback(self, backend, make_memory):
        existing = make_memory("existing")
        await backend.create_memory(WS, existing)

        with pytest.raises(RuntimeError):
            async with backend.transaction():
                await backend.create_memory(WS, make_memory("new", id="mem_new"))
                await backend.update_memory(WS, existing.id, consolidated=True, consolidated_into="mem_new")
                await backend.create_consolidation(Consolidation(id="con_x", workspace_id=WS, summary="s"))
                raise RuntimeError("boom")

        assert await backend.get_memory(WS, "mem_new") is None
        assert (await backend.get_memory(WS, existing.id)).consolidated is False
        assert await backend.get_consolidation(WS, "con_x") is None


class TestTransactionIsolation:

    @pytest.mark.asyncio
    async def test_plain_write_waits_for_other_tasks_transaction(self, backend, make_memory):
        memory = make_memory("x")
        await backend.create_memory(WS, memory)
        entered, release = asyncio.Event(), asyncio.Event()

        async def failing_transaction():
            async with backend.transaction():
                await backend.update_memory(WS, memory.id, consolidated=True, consolidated_into="mem_y")
                entered.set()
                await release.wait()
                raise RuntimeError("abort")

        async def plain_write():
            await entered.wait()
            await backend.update_memory(WS, memory.id, relevance=0.25)

        tx = asyncio.create_task(failing_transaction())
        writer = asyncio.create_task(plain_write())
        await entered.wait()
        for _ in range(5):
            await asyncio.sleep(0)

        assert not writer.done()

        release.set()
        with pytest.raises(RuntimeError):
            await tx
        await writer

        stored = await backend.get_memory(WS, memory.id)
        assert stored.relevance == 0.25
        assert stored.consolidated is False
        assert stored.consolidated_into is None

    @pytest.mark.asyncio
    async def test_other_tasks_transaction_does_not_join(self, backend, make_memory):
        entered, release = asyncio.Event(), asyncio.Event()

        async def committing_transaction():
            async with backend.transaction():
                await backend.create_memory(WS, make_memory("a", id="mem_a"))
                entered.set()
                await release.wait()

        async def failing_transaction():
            await entered.wait()
            async with backend.transaction():
                await backend.create_memory(WS, make_memory("b", id="mem_b"))
                raise RuntimeError("abort")

        outer = asyncio.create_task(committing_transaction())
        inner = asyncio.create_task(failing_transaction())
        await entered.wait()
        release.set()
        results = await asyncio.gather(outer, inner, return_exceptions=True)

        assert results[0] is None
        assert isinstance(results[1], RuntimeError)
        assert await backend.get_memory(WS, "mem_a") is not None
        assert await backend.get_memory(WS, "mem_b") is None

    @pytest.mark.asyncio
    async def test_nested_transaction_joins_outer(self, backend, make_memory):
        with pytest.raises(RuntimeError):
            async with backend.transaction():
                await backend.create_memory(WS, make_memory("a", id="mem_a"))
                async with backend.transaction():
                    await backend.create_memory(WS, make_memory("b", id="mem_b"))
                raise RuntimeError("abort")

        assert await backend.get_memory(WS, "mem_a") is None
        assert await backend.get_memory(WS, "mem_b") is None


class TestRecordAccess:

    @pytest.mark.asyncio
    async def test_increments_and_stamps(self, backend, make_memory):
        a, b = make_memory("a", access_count=2), make_memory("b")
        await backend.create_memory(WS, a)
        await backend.create_memory(WS, b)
        accessed_at = datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)

        updated = await backend.record_access(WS, [a.id, b.id, a.id, "mem_missing"], now=accessed_at)

        assert updated == 2
        stored_a = await backend.get_memory(WS, a.id)
        assert stored_a.access_count == 3
        assert stored_a.last_accessed_at == accessed_at
        assert (await backend.get_memory(WS, b.id)).access_count == 1

    @pytest.mark.asyncio
    async def test_counts_only_increase(self, backend, make_memory):
        memory = make_memory("a")
        await backend.create_memory(WS, memory)

        counts = []
        for _ in range(3):
            await backend.record_access(WS, [memory.id])
            counts.append((await backend.get_memory(WS, memory.id)).access_count)

        assert counts == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_workspace_scoped(self, backend, make_memory):
        memory = make_memory("a")
        await backend.create_memory(WS, memory)

        assert await backend.record_access("other_workspace", [memory.id]) == 0
        assert (await backend.get_memory(WS, memory.id)).access_count == 0

    @pytest.mark.asyncio
    async def test_empty(self, backend):
        assert await backend.record_access(WS, []) == 0


class TestSQLiteSpecifics:

    @pytest.mark.asyncio
    async def test_unknown_update_column_rejected(self, tmp_path, v, make_memory):
        storage = SQLiteStorageBackend(db_path=str(tmp_path / "x.db"), v=v)
        await storage.connect()
        try:
            memory = make_memory("x")
            await storage.create_memory(WS, memory)
            with pytest.raises(ValueError):
                await storage.update_memory(WS, memory.id, bogus=1)
        finally:
            await storage.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_stored_tags_read_as_empty(self, tmp_path, v, make_memory):
        storage = SQLiteStorageBackend(db_path=str(tmp_path / "x.db"), v=v)
        await storage.connect()
        try:
            memory = make_memory("x", tags=["a"])
            await storage.create_memory(WS, memory)
            await storage._connection.execute(
                "UPDATE memories SET tags = ?, linkages = ? WHERE id = ?", ("{broken", "[1, 2]", memory.id)
            )
            await storage._connection.commit()

            stored = await storage.get_memory(WS, memory.id)

            assert stored.tags == []
            assert stored.linkages == []
        finally:
            await storage.disconnect()

    @pytest.mark.asyncio
    async def test_health_check(self, tmp_path, v):
        storage = SQLiteStorageBackend(db_path=str(tmp_path / "x.db"), v=v)
        assert await storage.health_check() is False
        await storage.connect()
        assert await storage.health_check() is True
        await storage.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_rows_read_leniently_or_skipped(self, tmp_path, v, make_memory):
        storage = SQLiteStorageBackend(db_path=str(tmp_path / "x.db"), v=v)
        await storage.connect()
        try:
            good = make_memory("good")
            await storage.create_memory(WS, good)
            await storage._connection.executemany(
                "INSERT INTO memories (id, workspace_id, content, created_at, access_count, relevance) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    ("mem_blank", WS, "", "2025-06-01T10:00:00+00:00", 0, 1.0),
                    ("mem_odd", WS, "odd row", "last tuesday", -4, "high"),
                ],
            )
            await storage._connection.commit()

            memories = await storage.list_memories(WS)

            assert [m.id for m in memories] == [good.id, "mem_odd"]
            odd = memories[1]
            assert odd.created_at is None
            assert odd.access_count == 0
            assert odd.relevance == 1.0
            assert await storage.get_memory(WS, "mem_blank") is None
            assert storage.skipped_rows == 2
        finally:
            await storage.disconnect()
