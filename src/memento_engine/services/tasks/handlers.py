"""
Task handler plugins.

Each handler is a multi-extension plugin. ``TaskHandlersSetupPlugin`` collects
them, registers them with the task service and starts their schedules once
the service graph is ready.
"""
from abc import ABC, abstractmethod
from logging import Logger
from typing import Optional, Iterable

from scitrera_app_framework import Plugin, Variables, get_extensions

from .._constants import EXT_TASK_HANDLER_SETUP
from .base import EXT_MULTI_TASK_HANDLERS, TaskSchedule, TaskService, EXT_TASK_SERVICE


class TaskHandlerPlugin(Plugin, ABC):
    """
    A task type plus the coroutine that runs it.

    Services are looked up lazily in ``handle`` through ``get_extension`` so
    that handlers never hold on to services across the plugin lifecycle.
    """

    _v: Variables = None

    @abstractmethod
    def get_task_type(self) -> str:
        pass

    @abstractmethod
    async def handle(self, payload: dict) -> None:
        """Run the task. Exceptions are logged by the task service."""
        pass

    @abstractmethod
    def get_schedule(self, v: Variables) -> Optional[TaskSchedule]:
        """Recurring schedule, or None for on-demand tasks."""
        pass

    def initialize(self, v, logger) -> object | None:
        self._v = v
        return self

    def extension_point_name(self, v: Variables) -> str:
        return EXT_MULTI_TASK_HANDLERS

    def is_enabled(self, v: Variables) -> bool:
        return False  # only registered as a multi-extension

    def is_multi_extension(self, v: Variables) -> bool:
        return True


class TaskHandlersSetupPlugin(Plugin):
    """Registers every task handler with the task service and schedules the recurring ones."""

    def extension_point_name(self, v: Variables) -> str:
        return EXT_TASK_HANDLER_SETUP

    def get_dependencies(self, v: Variables) -> Iterable[str] | None:
        return (EXT_TASK_SERVICE,)

    def initialize(self, v, logger) -> object | None:
        task_service: TaskService = self.get_extension(EXT_TASK_SERVICE, v)
        handlers = list(get_extensions(EXT_MULTI_TASK_HANDLERS, v).values())  # type: list[TaskHandlerPlugin]
        for handler_plugin in handlers:
            task_service.register_handler(handler_plugin.get_task_type(), handler_plugin.handle)
        logger.info("Registered %d task handlers", len(handlers))
        return task_service

    async def async_ready(self, v: Variables, logger: Logger, value: TaskService) -> None:
        for handler_plugin in get_extensions(EXT_MULTI_TASK_HANDLERS, v).values():  # type: TaskHandlerPlugin
            schedule = handler_plugin.get_schedule(v)
            if schedule is not None:
                await value.schedule_recurring(
                    handler_plugin.get_task_type(), schedule.interval_seconds, schedule.default_payload
                )
