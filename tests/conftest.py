"""
Pytest configuration and fixtures for Memento tests.

Services are built directly on top of an isolated ``Variables`` instance so
that nothing is pulled from the process environment. Storage defaults to the
in-memory backend; SQLite-specific tests use ``tmp_path``.

Usage in tests:
    async def test_something(storage, make_memory):
        await storage.create_memory("ws", make_memory("first memory"))
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio

from scitrera_app_framework import Variables

from memento_engine.models import Linkage, Memory
from memento_engine.services.embedding import EmbeddingService
from memento_engine.services.embedding.mock import MockEmbeddingProvider
from memento_engine.services.storage.in_memory import MemoryStorageBackend
from memento_engine.services.vector_index.in_memory import MemoryVectorIndex

WORKSPACE_ID = "test_workspace"
NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# -----------------------------------------------------------------------------
# Logging Configuration (initialized by test harness, not framework)
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def test_logger() -> logging.Logger:
    """Root logger for tests; the test harness owns logging configuration."""
    logger = logging.getLogger("memento-test")
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s %(funcName)s() > %(message)s',
            datefmt='%Y/%m/%d %H:%M:%S'
        ))
        logger.addHandler(handler)

    return logger


@pytest.fixture
def v() -> Variables:
    """Isolated Variables instance."""
    return Variables()


# -----------------------------------------------------------------------------
# Service Fixtures
# -----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def storage(v):
    """Connected in-memory storage backend."""
    backend = MemoryStorageBackend(v=v)
    await backend.connect()
    yield backend
    await backend.disconnect()


@pytest.fixture
def vector_index(v) -> MemoryVectorIndex:
    return MemoryVectorIndex(v=v)


@pytest.fixture
def embedding_service(v, vector_index) -> EmbeddingService:
    """Embedding service backed by deterministic mock vectors."""
    return EmbeddingService(v=v, provider=MockEmbeddingProvider(v=v, dimensions=32), index=vector_index)


@pytest.fixture
def workspace_id() -> str:
    return WORKSPACE_ID


@pytest.fixture
def now() -> datetime:
    return NOW


# -----------------------------------------------------------------------------
# Test Data Factories
# -----------------------------------------------------------------------------

@pytest.fixture
def make_memory():
    """Factory for Memory objects; ``age_hours`` is measured back from ``NOW``."""
    counter = {"n": 0}

    def _make(
            content: str = "Test memory content",
            *,
            id: Optional[str] = None,
            workspace_id: str = WORKSPACE_ID,
            type: str = "observation",
            tags: Optional[list[str]] = None,
            linkages: Optional[list[Linkage]] = None,
            age_hours: float = 0.0,
            access_count: int = 0,
            last_accessed_hours: Optional[float] = None,
            relevance: float = 1.0,
            consolidated: bool = False,
            expires_at: Optional[datetime] = None,
    ) -> Memory:
        counter["n"] += 1
        return Memory(
            id=id or f"mem_{counter['n']:03d}",
            workspace_id=workspace_id,
            content=content,
            type=type,
            tags=tags or [],
            linkages=linkages or [],
            created_at=NOW - timedelta(hours=age_hours),
            access_count=access_count,
            last_accessed_at=None if last_accessed_hours is None else NOW - timedelta(hours=last_accessed_hours),
            relevance=relevance,
            consolidated=consolidated,
            expires_at=expires_at,
        )

    return _make


@pytest.fixture
def seed(storage):
    """Store memories and return them as stored."""

    async def _seed(*memories: Memory) -> list[Memory]:
        return [await storage.create_memory(m.workspace_id, m) for m in memories]

    return _seed
