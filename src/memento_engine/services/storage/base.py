"""Abstract storage backend interface."""
import asyncio
import contextvars
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from logging import Logger
from typing import Any, AsyncIterator, Optional

from pydantic import ValidationError
from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables, Plugin, enabled_option_pattern

from ...config import MEMENTO_STORAGE_BACKEND, DEFAULT_MEMENTO_STORAGE_BACKEND
from ...models.memory import Memory
from ...models.consolidation import Consolidation

from .._constants import EXT_STORAGE_BACKEND


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    The engine never decides which rows to fetch for retrieval; the listing
    methods here exist for the maintenance jobs (decay, consolidation,
    backfill, reconciliation).

    Transactions are owned by the task that opened them. Operations issued by
    that task (or tasks it spawned while the transaction was open) join it;
    every other task waits on ``_tx_lock`` until it commits or rolls back.
    """

    def __init__(self, v: Variables = None):
        self.logger = get_logger(v, name=self.__class__.__name__)
        self.skipped_rows = 0
        self._tx_lock = asyncio.Lock()
        self._tx_owner: contextvars.ContextVar[Optional[object]] = contextvars.ContextVar(
            f"memento_tx_{id(self)}", default=None
        )
        self._active_tx: Optional[object] = None

    def _owns_transaction(self) -> bool:
        return self._active_tx is not None and self._tx_owner.get() is self._active_tx

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        """Run one operation outside any transaction held by another task."""
        if self._owns_transaction():
            yield
            return
        async with self._tx_lock:
            yield

    def _decode_memory(self, record: dict[str, Any]) -> Optional[Memory]:
        """Build a Memory from a stored record; unreadable records are logged, counted and skipped."""
        try:
            return Memory(**record)
        except ValidationError as e:
            self.skipped_rows += 1
            self.logger.warning(
                "Skipping unreadable memory %s in workspace %s: %s",
                record.get("id"), record.get("workspace_id"), e.errors(include_url=False),
            )
            return None

    # Lifecycle
    @abstractmethod
    async def connect(self) -> None:
        """Initialize storage connection."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close storage connection."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        pass

    # Memory operations
    @abstractmethod
    async def create_memory(self, workspace_id: str, memory: Memory) -> Memory:
        """Store a memory as given (id included)."""
        pass

    @abstractmethod
    async def get_memory(self, workspace_id: str, memory_id: str) -> Optional[Memory]:
        """Get memory by ID within a workspace."""
        pass

    async def get_memories(self, workspace_id: str, memory_ids: list[str]) -> list[Memory]:
        """Get several memories by id, in request order. Unknown ids are skipped."""
        memories = []
        for memory_id in memory_ids:
            memory = await self.get_memory(workspace_id, memory_id)
            if memory is not None:
                memories.append(memory)
        return memories

    @abstractmethod
    async def update_memory(self, workspace_id: str, memory_id: str, **updates) -> Optional[Memory]:
        """Update memory fields. Returns None when the memory does not exist."""
        pass

    @abstractmethod
    async def delete_memory(self, workspace_id: str, memory_id: str) -> bool:
        """Delete a memory row."""
        pass

    @abstractmethod
    async def list_memories(self, workspace_id: str) -> list[Memory]:
        """All memories of a workspace, consolidated ones included, oldest first."""
        pass

    async def list_active_memories(self, workspace_id: str, now: Optional[datetime] = None) -> list[Memory]:
        """Memories that are neither consolidated nor expired, oldest first."""
        return [m for m in await self.list_memories(workspace_id) if m.is_active(now)]

    async def list_unembedded_memories(self, workspace_id: str) -> list[Memory]:
        """Non-consolidated memories without ``embedded_at``, newest first."""
        memories = [
            m for m in await self.list_memories(workspace_id)
            if not m.consolidated and m.embedded_at is None
        ]
        memories.sort(key=lambda m: m.created_at.timestamp() if m.created_at else 0.0, reverse=True)
        return memories

    @abstractmethod
    async def list_all_workspace_ids(self) -> list[str]:
        """Get all workspace IDs that hold at least one memory."""
        pass

    @abstractmethod
    async def record_access(self, workspace_id: str, memory_ids: list[str], now: Optional[datetime] = None) -> int:
        """
        Count one retrieval for each memory: ``access_count += 1`` and ``last_accessed_at = now``.

        Unknown ids are ignored; a repeated id counts once.

        Returns:
            Number of memories updated
        """
        pass

    # Consolidation records
    @abstractmethod
    async def create_consolidation(self, consolidation: Consolidation) -> Consolidation:
        """Store a consolidation record."""
        pass

    @abstractmethod
    async def get_consolidation(self, workspace_id: str, consolidation_id: str) -> Optional[Consolidation]:
        pass

    @abstractmethod
    async def list_consolidations(self, workspace_id: str) -> list[Consolidation]:
        pass

    @abstractmethod
    async def delete_consolidation(self, workspace_id: str, consolidation_id: str) -> bool:
        pass

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Group writes so they commit or roll back together.

        Nested calls from the owning task join the open transaction. Backends
        provide the begin/commit/rollback hooks; the defaults only serialize.
        """
        if self._owns_transaction():
            yield
            return

        async with self._tx_lock:
            marker = object()
            token = self._tx_owner.set(marker)
            self._active_tx = marker
            try:
                await self._begin_transaction()
                yield
            except BaseException:
                await self._rollback_transaction()
                self.logger.warning("Transaction rolled back")
                raise
            else:
                await self._commit_transaction()
            finally:
                self._active_tx = None
                self._tx_owner.reset(token)

    async def _begin_transaction(self) -> None:
        pass

    async def _commit_transaction(self) -> None:
        pass

    async def _rollback_transaction(self) -> None:
        pass

    async def get_workspace_stats(self, workspace_id: str) -> dict:
        """Counts used by the CLI ``info`` command."""
        memories = await self.list_memories(workspace_id)
        return {
            "workspace_id": workspace_id,
            "total_memories": len(memories),
            "consolidated_memories": sum(1 for m in memories if m.consolidated),
            "embedded_memories": sum(1 for m in memories if m.embedded_at is not None),
            "consolidations": len(await self.list_consolidations(workspace_id)),
        }


# noinspection PyAbstractClass
class StoragePluginBase(Plugin):
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_STORAGE_BACKEND}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_STORAGE_BACKEND

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_STORAGE_BACKEND, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_STORAGE_BACKEND, DEFAULT_MEMENTO_STORAGE_BACKEND)

    async def async_ready(self, v: Variables, logger: Logger, value: object | None) -> None:
        if isinstance(value, StorageBackend):
            try:
                await value.connect()
                logger.info("Storage backend '%s' connected successfully.", self.PROVIDER_NAME)
            except Exception as e:
                logger.error("Error connecting storage backend '%s': %s", self.PROVIDER_NAME, e)
                raise
        return

    async def async_stopping(self, v: Variables, logger: Logger, value: object | None) -> None:
        if isinstance(value, StorageBackend):
            try:
                await value.disconnect()
                logger.info("Storage backend '%s' disconnected successfully.", self.PROVIDER_NAME)
            except Exception as e:
                logger.error("Error disconnecting storage backend '%s': %s", self.PROVIDER_NAME, e)
        return
