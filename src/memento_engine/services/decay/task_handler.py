"""Decay task handler for periodic background decay."""
from logging import Logger
from typing import Optional

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from ...config import MEMENTO_DECAY_INTERVAL_SECONDS, DEFAULT_MEMENTO_DECAY_INTERVAL_SECONDS
from ..scheduler import MaintenanceScheduler, EXT_SCHEDULER_SERVICE
from ..tasks import TaskHandlerPlugin, TaskSchedule
from .base import DecayService, EXT_DECAY_SERVICE

DECAY_TASK = 'decay_memories'


class DecayTaskHandler(TaskHandlerPlugin):
    """
    Periodic decay task handler.

    Runs every 6 hours by default to refresh the cached relevance of every
    active memory.
    """

    def get_task_type(self) -> str:
        return DECAY_TASK

    def get_schedule(self, v: Variables) -> Optional[TaskSchedule]:
        return TaskSchedule(
            interval_seconds=v.environ(MEMENTO_DECAY_INTERVAL_SECONDS,
                                       default=DEFAULT_MEMENTO_DECAY_INTERVAL_SECONDS, type_fn=int),
            default_payload={},
        )

    async def handle(self, payload: dict) -> None:
        logger: Logger = get_logger(self._v, name=self.get_task_type())

        workspace_id = payload.get('workspace_id')
        if workspace_id:
            decay_service: DecayService = self.get_extension(EXT_DECAY_SERVICE, self._v)
            logger.info("Running decay for workspace %s", workspace_id)
            result = await decay_service.decay_workspace(workspace_id)
            logger.info(
                "Decay complete for workspace %s: %d processed, %d decayed",
                workspace_id, result.processed, result.decayed
            )
        else:
            scheduler: MaintenanceScheduler = self.get_extension(EXT_SCHEDULER_SERVICE, self._v)
            logger.info("Running decay for all workspaces")
            results = await scheduler.run_decay()
            logger.info(
                "Decay complete: %d workspaces, %d decayed",
                len(results), sum(r.decay.decayed for r in results if r.decay is not None)
            )
