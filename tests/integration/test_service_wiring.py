"""
End-to-end wiring through scitrera-app-framework plugins.

Builds the full service graph on an isolated ``Variables`` instance (in-memory
storage, mock embeddings, no LLM profile, background tasks disabled) and runs
a daily maintenance pass through the scheduler extension.
"""
from datetime import timedelta

import pytest

from scitrera_app_framework import Variables, get_extension

from memento_engine.config import (
    MEMENTO_DATA_DIR,
    MEMENTO_EMBEDDING_PROVIDER,
    MEMENTO_STORAGE_BACKEND,
    MEMENTO_TASKS_ENABLED,
    MEMENTO_VECTOR_INDEX,
)
from memento_engine.models import ConsolidationMethod, Memory
from memento_engine.services.consolidation import EXT_CONSOLIDATION_SERVICE
from memento_engine.services.scheduler import EXT_SCHEDULER_SERVICE
from memento_engine.services.storage import EXT_STORAGE_BACKEND
from memento_engine.services.summarizer.default import LLMSummarizer
from memento_engine.utils import utc_now


@pytest.mark.asyncio
async def test_daily_maintenance_through_plugins(tmp_path, test_logger):
    from memento_engine.dependencies import preconfigure, initialize_services, shutdown_services

    v = Variables()
    v.set(MEMENTO_DATA_DIR, str(tmp_path))
    v.set(MEMENTO_STORAGE_BACKEND, "memory")
    v.set(MEMENTO_EMBEDDING_PROVIDER, "mock")
    v.set(MEMENTO_VECTOR_INDEX, "memory")
    v.set(MEMENTO_TASKS_ENABLED, "false")

    v, _ = preconfigure(v=v, test_mode=True, test_logger=test_logger)
    v = await initialize_services(v)
    try:
        storage = get_extension(EXT_STORAGE_BACKEND, v)
        consolidation_service = get_extension(EXT_CONSOLIDATION_SERVICE, v)
        scheduler = get_extension(EXT_SCHEDULER_SERVICE, v)

        assert isinstance(consolidation_service.summarizer, LLMSummarizer)

        created = utc_now() - timedelta(days=3)
        for i in range(3):
            await storage.create_memory("ws", Memory(
                id=f"mem_{i}", workspace_id="ws", content=f"auth note {i}", tags=["auth"], created_at=created,
            ))

        (result,) = await scheduler.run_daily()

        assert result.ok
        assert result.consolidation.groups == 1
        # no LLM profile is configured, so the template summary is used
        assert result.consolidation.consolidations[0].method == ConsolidationMethod.TEMPLATE
        assert all(m.consolidated for m in await storage.list_memories("ws"))
    finally:
        await shutdown_services(v)
