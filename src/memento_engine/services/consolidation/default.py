"""Default consolidation service implementation."""
import asyncio
from datetime import datetime
from logging import Logger
from typing import Optional, Sequence

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from ...config import (
    MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE, DEFAULT_MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE,
    MEMENTO_SUMMARIZER_TIMEOUT_SECONDS, DEFAULT_MEMENTO_SUMMARIZER_TIMEOUT_SECONDS,
)
from ...models import (
    ConsolidateInput,
    Consolidation,
    ConsolidationMethod,
    ConsolidationRunResult,
    ExplicitConsolidationResult,
    Memory,
    ReconcileResult,
)
from ...utils import generate_id, utc_now
from ..embedding import EmbeddingService, EXT_EMBEDDING_SERVICE
from ..embedding.task_handler import EMBED_MEMORY_TASK
from ..llm import LLMNotConfiguredError
from ..storage import StorageBackend, EXT_STORAGE_BACKEND
from ..summarizer import Summarizer, EXT_SUMMARIZER_SERVICE
from ..tasks import TaskService, EXT_TASK_SERVICE
from .base import ConsolidationError, ConsolidationService, ConsolidationServicePluginBase
from .grouping import (
    find_consolidation_groups,
    generate_template_summary,
    majority_type,
    merge_linkages,
    sorted_tag_union,
)

AUTO_CONSOLIDATION_TYPE = "auto"


class DefaultConsolidationService(ConsolidationService):
    """
    Tag-based and explicit consolidation over a storage backend.

    Every consolidation writes its record (or merged memory) and flips all of
    its sources inside one ``StorageBackend.transaction()``. The summarizer
    and embedder are optional; without them the template summary is used and
    embedding is skipped.
    """

    def __init__(
            self,
            storage: StorageBackend,
            summarizer: Optional[Summarizer] = None,
            embedding_service: Optional[EmbeddingService] = None,
            task_service: Optional[TaskService] = None,
            v: Variables = None,
            min_group_size: int = DEFAULT_MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE,
            summarizer_timeout: float = DEFAULT_MEMENTO_SUMMARIZER_TIMEOUT_SECONDS,
    ):
        self._storage = storage
        self.summarizer = summarizer
        self.embedding_service = embedding_service
        self.task_service = task_service
        self.min_group_size = max(2, min_group_size)
        self.summarizer_timeout = summarizer_timeout
        self._background: set[asyncio.Task] = set()
        self.logger = get_logger(v, name=self.__class__.__name__)

    # ========== Summaries ==========

    async def _ai_summary(self, memories: Sequence[Memory]) -> Optional[str]:
        """AI summary, or None when the summarizer is absent, fails or times out."""
        if self.summarizer is None:
            return None
        try:
            summary = await asyncio.wait_for(self.summarizer.summarize(memories), timeout=self.summarizer_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Summarizer timed out after %.1fs, using template summary", self.summarizer_timeout)
            return None
        except LLMNotConfiguredError:
            self.logger.debug("No LLM configured, using template summary")
            return None
        except Exception as e:
            self.logger.warning("Summarizer failed, using template summary: %s", e)
            return None
        summary = (summary or "").strip()
        return summary or None

    # ========== Tag-based consolidation ==========

    async def consolidate_cluster(self, workspace_id: str, group: Sequence[Memory]) -> Consolidation:
        if not group:
            raise ValueError("Cannot consolidate an empty group")

        template_summary = generate_template_summary(group)
        ai_summary = await self._ai_summary(group)

        consolidation = Consolidation(
            id=generate_id("con"),
            workspace_id=workspace_id,
            summary=ai_summary or template_summary,
            source_ids=[m.id for m in group],
            tags=sorted_tag_union(group),
            type=AUTO_CONSOLIDATION_TYPE,
            method=ConsolidationMethod.AI if ai_summary else ConsolidationMethod.TEMPLATE,
            template_summary=template_summary,
        )

        try:
            async with self._storage.transaction():
                await self._storage.create_consolidation(consolidation)
                for memory in group:
                    await self._flip_source(workspace_id, memory.id, consolidation.id)
        except ConsolidationError:
            raise
        except Exception as e:
            raise ConsolidationError(f"Failed to consolidate group into {consolidation.id}: {e}") from e

        self.logger.debug(
            "Consolidated %d memories into %s (%s) in workspace %s",
            len(group), consolidation.id, consolidation.method.value, workspace_id
        )
        return consolidation

    async def consolidate_workspace(self, workspace_id: str, now: Optional[datetime] = None) -> ConsolidationRunResult:
        result = ConsolidationRunResult()
        memories = await self._storage.list_active_memories(workspace_id, now=now or utc_now())
        groups = find_consolidation_groups(memories, min_size=self.min_group_size)

        for group in groups:
            consolidation = await self.consolidate_cluster(workspace_id, group)
            result.groups += 1
            result.memories += len(group)
            result.consolidations.append(consolidation)

        self.logger.info(
            "Consolidation for workspace %s: %d groups, %d memories",
            workspace_id, result.groups, result.memories
        )
        return result

    async def _flip_source(self, workspace_id: str, memory_id: str, target_id: str) -> None:
        current = await self._storage.get_memory(workspace_id, memory_id)
        if current is None or current.consolidated:
            raise ConsolidationError(f"Memory {memory_id} is missing or already consolidated")
        await self._storage.update_memory(workspace_id, memory_id, consolidated=True, consolidated_into=target_id)

    # ========== Explicit consolidation ==========

    async def consolidate_explicit(self, workspace_id: str, request: ConsolidateInput) -> ExplicitConsolidationResult:
        requested = request.source_ids
        if len(requested) < 2:
            return ExplicitConsolidationResult(
                accepted=False,
                message="Provide at least 2 memory IDs.",
            )

        now = utc_now()
        found = await self._storage.get_memories(workspace_id, requested)
        sources = [m for m in found if m.is_active(now)]
        source_ids = {m.id for m in sources}

        if len(sources) < 2:
            missing = [i for i in requested if i not in source_ids]
            self.logger.info("Explicit consolidation declined in workspace %s; ineligible ids: %s",
                             workspace_id, missing)
            return ExplicitConsolidationResult(
                accepted=False,
                missing_ids=missing,
                message=f"Found fewer than 2 active memories. Missing or already consolidated: [{', '.join(missing)}].",
            )

        if request.content and request.content.strip():
            content, method = request.content.strip(), None
        else:
            ai_summary = await self._ai_summary(sources)
            if ai_summary:
                content, method = ai_summary, ConsolidationMethod.AI
            else:
                content, method = generate_template_summary(sources), ConsolidationMethod.TEMPLATE

        merged = Memory(
            id=generate_id("mem"),
            workspace_id=workspace_id,
            content=content,
            type=request.type or majority_type(sources),
            tags=sorted_tag_union(sources, extra=request.tags),
            linkages=merge_linkages(sources),
            access_count=sum(m.access_count for m in sources),
            created_at=now,
        )

        try:
            async with self._storage.transaction():
                merged = await self._storage.create_memory(workspace_id, merged)
                for memory in sources:
                    await self._flip_source(workspace_id, memory.id, merged.id)
        except ConsolidationError:
            raise
        except Exception as e:
            raise ConsolidationError(f"Failed to merge memories into {merged.id}: {e}") from e

        await self._schedule_embedding(workspace_id, merged.id)

        merged_ids = [m.id for m in sources]
        self.logger.info("Consolidated %d memories into %s in workspace %s", len(sources), merged.id, workspace_id)
        return ExplicitConsolidationResult(
            accepted=True,
            memory=merged,
            source_ids=merged_ids,
            missing_ids=[i for i in requested if i not in source_ids],
            method=method,
            message=f"Consolidated {len(sources)} memories into {merged.id}. Sources: [{', '.join(merged_ids)}]",
        )

    # ========== Detached embedding ==========

    async def _schedule_embedding(self, workspace_id: str, memory_id: str) -> None:
        """Embed the merged memory in the background; failures are only logged."""
        if self.embedding_service is None or not self.embedding_service.is_available:
            return

        if self.task_service is not None and self.task_service.has_handler(EMBED_MEMORY_TASK):
            try:
                task_id = await self.task_service.schedule_task(
                    EMBED_MEMORY_TASK, {"workspace_id": workspace_id, "memory_id": memory_id}
                )
                if task_id:
                    return
            except Exception as e:
                self.logger.warning("Could not schedule embedding task for %s: %s", memory_id, e)

        task = asyncio.create_task(self._embed_detached(workspace_id, memory_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _embed_detached(self, workspace_id: str, memory_id: str) -> None:
        try:
            await self.embedding_service.embed_memory(self._storage, workspace_id, memory_id)
        except Exception as e:
            self.logger.warning("Background embedding failed for memory %s: %s", memory_id, e)

    async def wait_for_background(self) -> None:
        """Wait for detached embedding work started by this service."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ========== Reconciliation ==========

    async def reconcile_workspace(self, workspace_id: str) -> ReconcileResult:
        """
        Resolve consolidations whose writes were only partially applied.

        A record (consolidation or merged memory) that some sources point at
        while other sources are still active is rolled forward. A record that
        no source points at, while every remaining source is still active, is
        an orphan and is removed. Sources themselves are never deleted.
        """
        result = ReconcileResult()
        memories = {m.id: m for m in await self._storage.list_memories(workspace_id)}

        targets: list[tuple[str, list[str], bool]] = [
            (c.id, c.source_ids, False) for c in await self._storage.list_consolidations(workspace_id)
        ]
        targets.extend((m.id, m.consolidated_from, True) for m in memories.values() if m.consolidated_from)

        for target_id, source_ids, is_memory in targets:
            sources = [memories[i] for i in source_ids if i in memories]
            pointing = [s for s in sources if s.consolidated and s.consolidated_into == target_id]
            pending = [s for s in sources if not s.consolidated]

            if pointing and pending:
                async with self._storage.transaction():
                    for source in pending:
                        await self._storage.update_memory(
                            workspace_id, source.id, consolidated=True, consolidated_into=target_id
                        )
                for source in pending:
                    memories[source.id] = source.model_copy(
                        update={"consolidated": True, "consolidated_into": target_id}
                    )
                result.rolled_forward += len(pending)
                self.logger.warning("Rolled forward %d sources into %s in workspace %s",
                                    len(pending), target_id, workspace_id)

            elif not pointing and sources and len(pending) == len(sources):
                if is_memory:
                    await self._storage.delete_memory(workspace_id, target_id)
                    memories.pop(target_id, None)
                    if self.embedding_service is not None:
                        await self.embedding_service.delete(workspace_id, target_id)
                else:
                    await self._storage.delete_consolidation(workspace_id, target_id)
                result.orphans_removed += 1
                self.logger.warning("Removed orphaned consolidation %s in workspace %s", target_id, workspace_id)

        if result.rolled_forward or result.orphans_removed:
            self.logger.info(
                "Reconcile for workspace %s: %d sources rolled forward, %d orphans removed",
                workspace_id, result.rolled_forward, result.orphans_removed
            )
        return result


class DefaultConsolidationServicePlugin(ConsolidationServicePluginBase):
    """Plugin that creates the default consolidation service."""
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> ConsolidationService:
        return DefaultConsolidationService(
            storage=self.get_extension(EXT_STORAGE_BACKEND, v),
            summarizer=self.get_extension(EXT_SUMMARIZER_SERVICE, v),
            embedding_service=self.get_extension(EXT_EMBEDDING_SERVICE, v),
            task_service=self.get_extension(EXT_TASK_SERVICE, v),
            v=v,
            min_group_size=v.environ(MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE,
                                     default=DEFAULT_MEMENTO_CONSOLIDATION_MIN_GROUP_SIZE, type_fn=int),
            summarizer_timeout=v.environ(MEMENTO_SUMMARIZER_TIMEOUT_SECONDS,
                                         default=DEFAULT_MEMENTO_SUMMARIZER_TIMEOUT_SECONDS, type_fn=float),
        )
