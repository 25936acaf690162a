"""
In-process task service built on asyncio tasks.

Nothing is persisted: pending work is dropped when the process exits, which
is acceptable because every maintenance pass is idempotent and reruns on its
next interval.
"""
import asyncio
from logging import Logger
from typing import Optional

from scitrera_app_framework import get_logger, Variables, ext_parse_bool

from ...config import MEMENTO_TASKS_ENABLED, DEFAULT_MEMENTO_TASKS_ENABLED
from ...utils import generate_id
from .base import TaskHandler, TaskService, TaskServicePluginBase, TaskStatus


class AsyncIOTaskService(TaskService):
    """Runs handlers as asyncio tasks on the current event loop."""

    def __init__(self, v: Variables = None, tasks_enabled: bool = DEFAULT_MEMENTO_TASKS_ENABLED):
        self._tasks_enabled = tasks_enabled
        self._tasks: dict[str, asyncio.Task] = {}
        self._recurring: dict[str, asyncio.Task] = {}
        self._handlers: dict[str, TaskHandler] = {}
        self.logger = get_logger(v, name=self.__class__.__name__)
        self.logger.info("Initialized AsyncIOTaskService (enabled=%s)", tasks_enabled)

    async def _run_handler(self, task_id: str, task_type: str, payload: dict) -> None:
        handler = self._handlers.get(task_type)
        if handler is None:
            self.logger.error("No handler registered for task type: %s", task_type)
            return
        try:
            self.logger.debug("Running task %s (%s)", task_id, task_type)
            await handler(payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error("Task %s (%s) failed: %s", task_id, task_type, e, exc_info=True)

    async def schedule_task(self, task_type: str, payload: dict, delay_seconds: int = 0) -> Optional[str]:
        if not self._tasks_enabled:
            self.logger.debug("Tasks disabled, not scheduling %s", task_type)
            return None
        task_id = generate_id("task")

        async def run():
            if delay_seconds > 0:
                await asyncio.sleep(delay_seconds)
            await self._run_handler(task_id, task_type, payload)

        self._tasks[task_id] = asyncio.create_task(run(), name=f"{task_type}:{task_id}")
        return task_id

    async def schedule_recurring(self, task_type: str, interval_seconds: int, payload: dict) -> Optional[str]:
        if not self._tasks_enabled:
            self.logger.debug("Tasks disabled, not scheduling recurring %s", task_type)
            return None
        schedule_id = generate_id("sched")

        async def run_forever():
            while True:
                await asyncio.sleep(interval_seconds)
                await self._run_handler(schedule_id, task_type, payload)

        self._recurring[schedule_id] = asyncio.create_task(run_forever(), name=f"{task_type}:{schedule_id}")
        self.logger.info("Scheduled %s every %ss (%s)", task_type, interval_seconds, schedule_id)
        return schedule_id

    def _lookup(self, task_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(task_id) or self._recurring.get(task_id)

    async def cancel_task(self, task_id: str) -> bool:
        task = self._lookup(task_id)
        if task is None or task.done():
            return False
        task.cancel()
        self.logger.info("Cancelled task %s", task_id)
        return True

    async def get_task_status(self, task_id: str) -> TaskStatus:
        task = self._lookup(task_id)
        if task is None:
            return TaskStatus.NOT_FOUND
        if not task.done():
            return TaskStatus.RUNNING
        if task.cancelled():
            return TaskStatus.CANCELLED
        return TaskStatus.FAILED if task.exception() else TaskStatus.COMPLETED

    def register_handler(self, task_type: str, handler: TaskHandler) -> None:
        self._handlers[task_type] = handler
        self.logger.debug("Registered handler for task type: %s", task_type)

    def has_handler(self, task_type: str) -> bool:
        return task_type in self._handlers

    async def wait_for_pending(self) -> None:
        """Wait for every one-off task scheduled so far."""
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = [t for t in (*self._tasks.values(), *self._recurring.values()) if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.logger.info("Task service stopped (%d tasks cancelled)", len(tasks))


class AsyncIOTaskServicePlugin(TaskServicePluginBase):
    PROVIDER_NAME = 'asyncio'

    def initialize(self, v: Variables, logger: Logger) -> TaskService:
        return AsyncIOTaskService(
            v=v,
            tasks_enabled=v.environ(MEMENTO_TASKS_ENABLED, default=DEFAULT_MEMENTO_TASKS_ENABLED,
                                    type_fn=ext_parse_bool),
        )

    async def async_stopping(self, v: Variables, logger: Logger, value: object | None) -> None:
        if isinstance(value, TaskService):
            await value.shutdown()
