"""Default decay service implementation."""
from datetime import datetime
from logging import Logger
from typing import Optional, Sequence

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from ...config import MEMENTO_DECAY_BATCH_SIZE, DEFAULT_MEMENTO_DECAY_BATCH_SIZE
from ...models import Memory
from ...scoring import score_memory
from ...utils import utc_now
from ..storage import EXT_STORAGE_BACKEND, StorageBackend
from .base import DecayService, DecayServicePluginBase, DecayResult, RELEVANCE_EPSILON


class DefaultDecayService(DecayService):
    """
    Recomputes ``relevance = recency * access_boost * last_access_recency``.

    The keyword component is query-time only, so decay scores every memory
    against an empty query. Rows are only written when the value moved by more
    than ``RELEVANCE_EPSILON``.
    """

    def __init__(self, storage: StorageBackend, v: Variables = None,
                 batch_size: int = DEFAULT_MEMENTO_DECAY_BATCH_SIZE):
        self._storage = storage
        self.batch_size = max(1, batch_size)
        self.logger = get_logger(v, name=self.__class__.__name__)

    async def apply_decay(self, workspace_id: str, memories: Sequence[Memory], now: datetime) -> DecayResult:
        result = DecayResult()
        rows = [m for m in memories if not m.consolidated]

        for start in range(0, len(rows), self.batch_size):
            for memory in rows[start:start + self.batch_size]:
                result.processed += 1
                try:
                    new_relevance = score_memory(memory, [], now)
                    old_relevance = memory.relevance if memory.relevance is not None else 1.0
                    if abs(new_relevance - old_relevance) > RELEVANCE_EPSILON:
                        await self._storage.update_memory(workspace_id, memory.id, relevance=new_relevance)
                        result.decayed += 1
                except Exception as e:
                    self.logger.error("Failed to decay memory %s in workspace %s: %s",
                                      memory.id, workspace_id, e, exc_info=True)
                    result.errors += 1

        self.logger.debug(
            "Decay pass for workspace %s: %d processed, %d decayed, %d errors",
            workspace_id, result.processed, result.decayed, result.errors
        )
        return result

    async def decay_workspace(self, workspace_id: str, now: Optional[datetime] = None) -> DecayResult:
        now = now or utc_now()
        memories = await self._storage.list_active_memories(workspace_id, now=now)
        return await self.apply_decay(workspace_id, memories, now)


class DefaultDecayServicePlugin(DecayServicePluginBase):
    """Plugin that creates the default decay service."""
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> DecayService:
        storage: StorageBackend = self.get_extension(EXT_STORAGE_BACKEND, v)
        return DefaultDecayService(
            storage=storage,
            v=v,
            batch_size=v.environ(MEMENTO_DECAY_BATCH_SIZE, default=DEFAULT_MEMENTO_DECAY_BATCH_SIZE, type_fn=int),
        )
