"""
In-memory storage backend for testing.

Provides a complete storage implementation that stores all data in memory.
Data is lost on service restart - use only for testing.
"""
import copy
from datetime import datetime
from logging import Logger
from typing import Optional

from scitrera_app_framework import Variables

from .base import StorageBackend, StoragePluginBase
from ...models.memory import Memory
from ...models.consolidation import Consolidation
from ...utils import utc_now


class MemoryStorageBackend(StorageBackend):
    """
    In-memory storage backend for testing.

    All data is stored in dictionaries and lost on restart. Transactions
    snapshot the stores and restore them if the body raises.
    """

    def __init__(self, v: Variables = None):
        super().__init__(v)
        self._memories: dict[str, dict[str, Memory]] = {}  # workspace_id -> {memory_id -> Memory}
        self._consolidations: dict[str, dict[str, Consolidation]] = {}  # workspace_id -> {id -> Consolidation}
        self._snapshot: Optional[tuple[dict, dict]] = None
        self.logger.info("Initialized MemoryStorageBackend")

    async def connect(self) -> None:
        """Initialize storage (no-op for in-memory)."""
        self.logger.info("In-memory storage connected")

    async def disconnect(self) -> None:
        """Close storage (no-op for in-memory)."""
        self.logger.info("In-memory storage disconnected")

    async def health_check(self) -> bool:
        """Always healthy."""
        return True

    # ========== Memory Operations ==========

    async def create_memory(self, workspace_id: str, memory: Memory) -> Memory:
        async with self._exclusive():
            stored = memory.model_copy(update={"workspace_id": workspace_id}, deep=True)
            self._memories.setdefault(workspace_id, {})[stored.id] = stored
        self.logger.debug("Created memory %s in workspace %s", stored.id, workspace_id)
        return stored.model_copy(deep=True)

    async def get_memory(self, workspace_id: str, memory_id: str) -> Optional[Memory]:
        async with self._exclusive():
            memory = self._memories.get(workspace_id, {}).get(memory_id)
            return memory.model_copy(deep=True) if memory else None

    async def update_memory(self, workspace_id: str, memory_id: str, **updates) -> Optional[Memory]:
        async with self._exclusive():
            memory = self._memories.get(workspace_id, {}).get(memory_id)
            if memory is None:
                return None
            updated = memory.model_copy(deep=True)
            for key, value in updates.items():
                setattr(updated, key, value)  # validated on assignment
            self._memories[workspace_id][memory_id] = updated
            return updated.model_copy(deep=True)

    async def delete_memory(self, workspace_id: str, memory_id: str) -> bool:
        async with self._exclusive():
            return self._memories.get(workspace_id, {}).pop(memory_id, None) is not None

    async def list_memories(self, workspace_id: str) -> list[Memory]:
        async with self._exclusive():
            memories = [m.model_copy(deep=True) for m in self._memories.get(workspace_id, {}).values()]
        memories.sort(key=lambda m: m.created_at.timestamp() if m.created_at else 0.0)
        return memories

    async def list_all_workspace_ids(self) -> list[str]:
        async with self._exclusive():
            return sorted(ws for ws, memories in self._memories.items() if memories)

    async def record_access(self, workspace_id: str, memory_ids: list[str], now: Optional[datetime] = None) -> int:
        accessed_at = now or utc_now()
        updated = 0
        async with self._exclusive():
            stored = self._memories.get(workspace_id, {})
            for memory_id in dict.fromkeys(memory_ids):
                memory = stored.get(memory_id)
                if memory is None:
                    continue
                stored[memory_id] = memory.model_copy(
                    update={"access_count": memory.access_count + 1, "last_accessed_at": accessed_at}
                )
                updated += 1
        return updated

    # ========== Consolidation Records ==========

    async def create_consolidation(self, consolidation: Consolidation) -> Consolidation:
        async with self._exclusive():
            self._consolidations.setdefault(consolidation.workspace_id, {})[consolidation.id] = \
                consolidation.model_copy(deep=True)
        return consolidation

    async def get_consolidation(self, workspace_id: str, consolidation_id: str) -> Optional[Consolidation]:
        async with self._exclusive():
            record = self._consolidations.get(workspace_id, {}).get(consolidation_id)
            return record.model_copy(deep=True) if record else None

    async def list_consolidations(self, workspace_id: str) -> list[Consolidation]:
        async with self._exclusive():
            records = [c.model_copy(deep=True) for c in self._consolidations.get(workspace_id, {}).values()]
        records.sort(key=lambda c: c.created_at)
        return records

    async def delete_consolidation(self, workspace_id: str, consolidation_id: str) -> bool:
        async with self._exclusive():
            return self._consolidations.get(workspace_id, {}).pop(consolidation_id, None) is not None

    # ========== Transactions ==========

    async def _begin_transaction(self) -> None:
        self._snapshot = (copy.deepcopy(self._memories), copy.deepcopy(self._consolidations))

    async def _commit_transaction(self) -> None:
        self._snapshot = None

    async def _rollback_transaction(self) -> None:
        if self._snapshot is not None:
            self._memories, self._consolidations = self._snapshot
            self._snapshot = None


class MemoryStoragePlugin(StoragePluginBase):
    """Plugin for in-memory storage backend."""

    PROVIDER_NAME = 'memory'

    def initialize(self, v: Variables, logger: Logger) -> MemoryStorageBackend:
        return MemoryStorageBackend(v=v)
