"""
Task service interface.

Runs the recurring maintenance jobs (decay, daily maintenance) and detached
one-off work such as embedding a freshly merged memory.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Awaitable, Optional

from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...config import MEMENTO_TASK_PROVIDER, DEFAULT_MEMENTO_TASK_PROVIDER
from .._constants import EXT_TASK_SERVICE, EXT_MULTI_TASK_HANDLERS

TaskHandler = Callable[[dict], Awaitable[None]]


class TaskStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"


@dataclass
class TaskSchedule:
    """Recurring schedule declared by a task handler."""
    interval_seconds: int
    default_payload: dict = field(default_factory=dict)


class TaskService(ABC):
    """Background execution of registered task types. Plugin wiring lives in ``TaskServicePluginBase``."""

    @abstractmethod
    async def schedule_task(self, task_type: str, payload: dict, delay_seconds: int = 0) -> Optional[str]:
        """
        Run ``task_type`` once in the background.

        Returns:
            Task id, or None when background tasks are disabled
        """
        pass

    @abstractmethod
    async def schedule_recurring(self, task_type: str, interval_seconds: int, payload: dict) -> Optional[str]:
        """
        Run ``task_type`` every ``interval_seconds``, first run after one interval.

        Returns:
            Schedule id, or None when background tasks are disabled
        """
        pass

    @abstractmethod
    async def cancel_task(self, task_id: str) -> bool:
        """Cancel a one-off task or recurring schedule. False if unknown or already finished."""
        pass

    @abstractmethod
    async def get_task_status(self, task_id: str) -> TaskStatus:
        pass

    @abstractmethod
    def register_handler(self, task_type: str, handler: TaskHandler) -> None:
        pass

    def has_handler(self, task_type: str) -> bool:
        return False

    async def shutdown(self) -> None:
        return


# noinspection PyAbstractClass
class TaskServicePluginBase(Plugin):
    """Base plugin for task service implementations, selected by ``MEMENTO_TASK_PROVIDER``."""

    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_TASK_SERVICE}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_TASK_SERVICE

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_TASK_PROVIDER, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_TASK_PROVIDER, DEFAULT_MEMENTO_TASK_PROVIDER)


__all__ = (
    'TaskHandler', 'TaskStatus', 'TaskSchedule', 'TaskService', 'TaskServicePluginBase',
    'EXT_TASK_SERVICE', 'EXT_MULTI_TASK_HANDLERS',
)
