"""Default maintenance scheduler."""
from datetime import datetime
from logging import Logger
from typing import Awaitable, Callable, Optional

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from ...utils import utc_now
from ..consolidation import ConsolidationService, EXT_CONSOLIDATION_SERVICE
from ..decay import DecayService, EXT_DECAY_SERVICE
from ..embedding import EmbeddingService, EXT_EMBEDDING_SERVICE
from ..storage import StorageBackend, EXT_STORAGE_BACKEND
from .base import MaintenanceScheduler, MaintenanceSchedulerPluginBase, WorkspaceRunResult

TASK_DECAY = 'decay'
TASK_DAILY = 'daily'


class DefaultMaintenanceScheduler(MaintenanceScheduler):
    """
    Fans each maintenance pass out over ``list_all_workspace_ids()``.

    Workspaces are processed one after another; a failure in one workspace is
    recorded on its ``WorkspaceRunResult`` and the run moves on.
    """

    def __init__(
            self,
            storage: StorageBackend,
            decay_service: DecayService,
            consolidation_service: ConsolidationService,
            embedding_service: Optional[EmbeddingService] = None,
            v: Variables = None,
    ):
        self._storage = storage
        self.decay_service = decay_service
        self.consolidation_service = consolidation_service
        self.embedding_service = embedding_service
        self.logger = get_logger(v, name=self.__class__.__name__)

    async def _for_each_workspace(
            self,
            task: str,
            fn: Callable[[str, WorkspaceRunResult], Awaitable[None]],
    ) -> list[WorkspaceRunResult]:
        results = []
        for workspace_id in await self._storage.list_all_workspace_ids():
            result = WorkspaceRunResult(workspace_id=workspace_id, task=task)
            try:
                await fn(workspace_id, result)
            except Exception as e:
                self.logger.error("Maintenance task %s failed for workspace %s: %s",
                                  task, workspace_id, e, exc_info=True)
                result.error = str(e) or e.__class__.__name__
            results.append(result)

        failed = sum(1 for r in results if not r.ok)
        self.logger.info("Maintenance task %s finished: %d workspaces, %d failed", task, len(results), failed)
        return results

    async def run_decay(self, now: Optional[datetime] = None) -> list[WorkspaceRunResult]:
        now = now or utc_now()

        async def _decay(workspace_id: str, result: WorkspaceRunResult) -> None:
            result.decay = await self.decay_service.decay_workspace(workspace_id, now=now)

        return await self._for_each_workspace(TASK_DECAY, _decay)

    async def run_daily(self, now: Optional[datetime] = None) -> list[WorkspaceRunResult]:
        now = now or utc_now()

        async def _daily(workspace_id: str, result: WorkspaceRunResult) -> None:
            result.reconcile = await self.consolidation_service.reconcile_workspace(workspace_id)
            result.decay = await self.decay_service.decay_workspace(workspace_id, now=now)
            result.consolidation = await self.consolidation_service.consolidate_workspace(workspace_id, now=now)
            if self.embedding_service is not None:
                result.backfill = await self.embedding_service.backfill_workspace(self._storage, workspace_id)

        return await self._for_each_workspace(TASK_DAILY, _daily)


class DefaultMaintenanceSchedulerPlugin(MaintenanceSchedulerPluginBase):
    """Plugin that creates the default maintenance scheduler."""
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> MaintenanceScheduler:
        return DefaultMaintenanceScheduler(
            storage=self.get_extension(EXT_STORAGE_BACKEND, v),
            decay_service=self.get_extension(EXT_DECAY_SERVICE, v),
            consolidation_service=self.get_extension(EXT_CONSOLIDATION_SERVICE, v),
            embedding_service=self.get_extension(EXT_EMBEDDING_SERVICE, v),
            v=v,
        )
