"""Consolidation Service - Base interface and plugin."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...config import MEMENTO_CONSOLIDATION_PROVIDER, DEFAULT_MEMENTO_CONSOLIDATION_PROVIDER
from ...models import (
    ConsolidateInput,
    Consolidation,
    ConsolidationRunResult,
    ExplicitConsolidationResult,
    Memory,
    ReconcileResult,
)
from .._constants import (
    EXT_CONSOLIDATION_SERVICE,
    EXT_EMBEDDING_SERVICE,
    EXT_STORAGE_BACKEND,
    EXT_SUMMARIZER_SERVICE,
    EXT_TASK_SERVICE,
)


class ConsolidationError(Exception):
    """A consolidation write failed and was rolled back."""


class ConsolidationService(ABC):
    """Merges clusters of related memories into summarized records, keeping provenance."""

    @abstractmethod
    async def consolidate_cluster(self, workspace_id: str, group: Sequence[Memory]) -> Consolidation:
        """Consolidate one tag cluster: record it and flip every source."""
        pass

    @abstractmethod
    async def consolidate_workspace(self, workspace_id: str, now: Optional[datetime] = None) -> ConsolidationRunResult:
        """Find and consolidate every qualifying tag cluster in a workspace."""
        pass

    @abstractmethod
    async def consolidate_explicit(self, workspace_id: str, request: ConsolidateInput) -> ExplicitConsolidationResult:
        """Merge caller-chosen memories into a new memory."""
        pass

    @abstractmethod
    async def reconcile_workspace(self, workspace_id: str) -> ReconcileResult:
        """Complete partially-written consolidations and remove orphaned merged records."""
        pass


# noinspection PyAbstractClass
class ConsolidationServicePluginBase(Plugin):
    """Base plugin for consolidation service."""
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_CONSOLIDATION_SERVICE}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_CONSOLIDATION_SERVICE

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_CONSOLIDATION_PROVIDER, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_CONSOLIDATION_PROVIDER, DEFAULT_MEMENTO_CONSOLIDATION_PROVIDER)

    def get_dependencies(self, v: Variables):
        return (EXT_STORAGE_BACKEND, EXT_SUMMARIZER_SERVICE, EXT_EMBEDDING_SERVICE, EXT_TASK_SERVICE)
