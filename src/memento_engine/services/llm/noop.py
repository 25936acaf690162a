"""No-op LLM provider - raises NotConfigured (default)."""
from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from .base import LLMProvider
from ...models.llm import LLMRequest, LLMResponse

_NOT_CONFIGURED_HINT = (
    "Set MEMENTO_LLM_PROFILE_DEFAULT_PROVIDER and MEMENTO_LLM_PROFILE_DEFAULT_MODEL to enable AI summaries."
)


class LLMNotConfiguredError(Exception):
    """Raised when LLM is used but not configured."""
    pass


class NoOpLLMProvider(LLMProvider):
    """Default LLM provider that raises when called.

    Consolidation treats the error as a summarizer failure and keeps the
    template summary.
    """

    def __init__(self, v: Variables = None):
        self.logger = get_logger(v, name=self.__class__.__name__)
        self.logger.info("Initialized NoOpLLMProvider - LLM calls will raise NotConfigured. %s", _NOT_CONFIGURED_HINT)

    async def complete(self, request: LLMRequest) -> LLMResponse:
        raise LLMNotConfiguredError(f"LLM provider not configured. {_NOT_CONFIGURED_HINT}")

    @property
    def default_model(self) -> str:
        return "not-configured"
