"""
Background tasks for the maintenance jobs.

Recurring work (decay every 6 hours, the daily maintenance pass) and the
on-demand ``embed_memory`` job are ``TaskHandlerPlugin`` extensions; the
asyncio task service schedules them once all plugins are ready.
"""
from .base import (
    TaskHandler,
    TaskServicePluginBase,
    EXT_TASK_SERVICE,
    EXT_MULTI_TASK_HANDLERS,
    TaskService,
    TaskStatus,
    TaskSchedule,
)
from .handlers import TaskHandlerPlugin

__all__ = (
    'TaskHandler',
    'TaskHandlerPlugin',
    'TaskSchedule',
    'TaskService',
    'TaskServicePluginBase',
    'TaskStatus',
    'EXT_TASK_SERVICE',
    'EXT_MULTI_TASK_HANDLERS',
)
