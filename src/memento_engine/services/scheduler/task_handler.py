"""Daily maintenance task: reconcile, decay, consolidate and backfill."""
from logging import Logger
from typing import Optional

from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from ...config import MEMENTO_CONSOLIDATION_INTERVAL_SECONDS, DEFAULT_MEMENTO_CONSOLIDATION_INTERVAL_SECONDS
from ..tasks import TaskHandlerPlugin, TaskSchedule
from .base import MaintenanceScheduler, EXT_SCHEDULER_SERVICE

DAILY_MAINTENANCE_TASK = 'daily_maintenance'


class DailyMaintenanceTaskHandler(TaskHandlerPlugin):

    def get_task_type(self) -> str:
        return DAILY_MAINTENANCE_TASK

    def get_schedule(self, v: Variables) -> Optional[TaskSchedule]:
        return TaskSchedule(
            interval_seconds=v.environ(MEMENTO_CONSOLIDATION_INTERVAL_SECONDS,
                                       default=DEFAULT_MEMENTO_CONSOLIDATION_INTERVAL_SECONDS, type_fn=int),
            default_payload={},
        )

    async def handle(self, payload: dict) -> None:
        scheduler: MaintenanceScheduler = self.get_extension(EXT_SCHEDULER_SERVICE, self._v)
        logger: Logger = get_logger(self._v, name=self.get_task_type())

        results = await scheduler.run_daily()
        failed = [r.workspace_id for r in results if not r.ok]
        if failed:
            logger.warning("Daily maintenance failed for workspaces: %s", ", ".join(failed))
