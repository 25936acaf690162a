"""Maintenance Scheduler - Base interface and plugin."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...config import MEMENTO_SCHEDULER_SERVICE, DEFAULT_MEMENTO_SCHEDULER_SERVICE
from .._constants import (
    EXT_CONSOLIDATION_SERVICE,
    EXT_DECAY_SERVICE,
    EXT_EMBEDDING_SERVICE,
    EXT_SCHEDULER_SERVICE,
    EXT_STORAGE_BACKEND,
)

if TYPE_CHECKING:
    from ...models import ConsolidationRunResult, ReconcileResult
    from ..decay import DecayResult
    from ..embedding import BackfillResult


@dataclass
class WorkspaceRunResult:
    """What one maintenance task did to one workspace. ``error`` is set when the workspace failed."""
    workspace_id: str
    task: str
    decay: Optional['DecayResult'] = None
    consolidation: Optional['ConsolidationRunResult'] = None
    reconcile: Optional['ReconcileResult'] = None
    backfill: Optional['BackfillResult'] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MaintenanceScheduler(ABC):
    """Runs the periodic maintenance passes over every workspace."""

    @abstractmethod
    async def run_decay(self, now: Optional[datetime] = None) -> list[WorkspaceRunResult]:
        """Decay every workspace."""
        pass

    @abstractmethod
    async def run_daily(self, now: Optional[datetime] = None) -> list[WorkspaceRunResult]:
        """Reconcile, decay, consolidate and backfill every workspace."""
        pass


# noinspection PyAbstractClass
class MaintenanceSchedulerPluginBase(Plugin):
    """Base plugin for the maintenance scheduler."""
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_SCHEDULER_SERVICE}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_SCHEDULER_SERVICE

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_SCHEDULER_SERVICE, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_SCHEDULER_SERVICE, DEFAULT_MEMENTO_SCHEDULER_SERVICE)

    def get_dependencies(self, v: Variables):
        return (EXT_STORAGE_BACKEND, EXT_DECAY_SERVICE, EXT_CONSOLIDATION_SERVICE, EXT_EMBEDDING_SERVICE)
