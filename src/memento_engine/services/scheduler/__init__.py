"""Maintenance scheduler package."""
from scitrera_app_framework import Variables, get_extension

from .base import (
    MaintenanceScheduler,
    MaintenanceSchedulerPluginBase,
    WorkspaceRunResult,
    EXT_SCHEDULER_SERVICE,
)


def get_maintenance_scheduler(v: Variables = None) -> MaintenanceScheduler:
    return get_extension(EXT_SCHEDULER_SERVICE, v)


__all__ = (
    'MaintenanceScheduler',
    'MaintenanceSchedulerPluginBase',
    'WorkspaceRunResult',
    'get_maintenance_scheduler',
    'EXT_SCHEDULER_SERVICE',
)
