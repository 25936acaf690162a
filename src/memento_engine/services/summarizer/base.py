"""Summarizer - Base interface and plugin."""
from abc import ABC, abstractmethod
from typing import Sequence

from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...config import MEMENTO_SUMMARIZER_SERVICE, DEFAULT_MEMENTO_SUMMARIZER_SERVICE
from ...models import Memory
from .._constants import EXT_SUMMARIZER_SERVICE, EXT_LLM_SERVICE


class Summarizer(ABC):
    """Produces a natural-language summary of a cluster of memories."""

    @abstractmethod
    async def summarize(self, memories: Sequence[Memory]) -> str:
        """
        Summarize ``memories`` into one piece of text.

        Raises:
            Exception: Any failure; callers fall back to the template summary
        """
        pass


# noinspection PyAbstractClass
class SummarizerPluginBase(Plugin):
    """Base plugin for the summarizer."""
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_SUMMARIZER_SERVICE}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_SUMMARIZER_SERVICE

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_SUMMARIZER_SERVICE, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_SUMMARIZER_SERVICE, DEFAULT_MEMENTO_SUMMARIZER_SERVICE)

    def get_dependencies(self, v: Variables):
        return (EXT_LLM_SERVICE,)
