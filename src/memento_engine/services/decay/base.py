"""Decay Service - Base interface and plugin."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...config import MEMENTO_DECAY_PROVIDER, DEFAULT_MEMENTO_DECAY_PROVIDER
from ...models import Memory
from .._constants import EXT_STORAGE_BACKEND, EXT_DECAY_SERVICE

# minimum change in relevance that is worth a write
RELEVANCE_EPSILON = 1e-4


@dataclass
class DecayResult:
    """Result of a decay pass."""
    processed: int = 0
    decayed: int = 0
    errors: int = 0


class DecayService(ABC):
    """Interface for relevance decay."""

    @abstractmethod
    async def apply_decay(self, workspace_id: str, memories: Sequence[Memory], now: datetime) -> DecayResult:
        """Recompute and persist the cached relevance of ``memories``."""
        pass

    @abstractmethod
    async def decay_workspace(self, workspace_id: str, now: Optional[datetime] = None) -> DecayResult:
        """Run a decay pass over every active memory in a workspace."""
        pass


# noinspection PyAbstractClass
class DecayServicePluginBase(Plugin):
    """Base plugin for decay service."""
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_DECAY_SERVICE}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_DECAY_SERVICE

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_DECAY_PROVIDER, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_DECAY_PROVIDER, DEFAULT_MEMENTO_DECAY_PROVIDER)

    def get_dependencies(self, v: Variables):
        return (EXT_STORAGE_BACKEND,)
