"""LLM Service - Pluggable LLM provider interface."""
from abc import ABC, abstractmethod

from scitrera_app_framework.api import Plugin, Variables, enabled_option_pattern

from ...models.llm import LLMRequest, LLMResponse

from .._constants import EXT_LLM_SERVICE, EXT_LLM_REGISTRY

# Registry config constants
MEMENTO_LLM_REGISTRY = 'MEMENTO_LLM_REGISTRY'
DEFAULT_MEMENTO_LLM_REGISTRY = 'default'

# Service config constants
MEMENTO_LLM_SERVICE = 'MEMENTO_LLM_SERVICE'
DEFAULT_MEMENTO_LLM_SERVICE = 'default'


class LLMProvider(ABC):
    """Abstract LLM provider: the actual completion API client."""

    default_max_tokens: int | None = None
    default_temperature: float | None = None

    def resolve_params(self, request: LLMRequest) -> tuple[int | None, float | None]:
        """Effective max_tokens and temperature: request values win over provider defaults."""
        max_tokens = request.max_tokens if request.max_tokens is not None else self.default_max_tokens
        temperature = request.temperature if request.temperature is not None else self.default_temperature
        return max_tokens, temperature

    @abstractmethod
    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Generate completion from LLM.

        Args:
            request: LLM request with messages and parameters

        Returns:
            LLM response with content and token counts
        """
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        pass


# noinspection PyAbstractClass
class LLMProviderRegistryPluginBase(Plugin):
    """Base plugin for LLM provider registry."""
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_LLM_REGISTRY}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_LLM_REGISTRY

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_LLM_REGISTRY, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_LLM_REGISTRY, DEFAULT_MEMENTO_LLM_REGISTRY)


# noinspection PyAbstractClass
class LLMServicePluginBase(Plugin):
    """Base plugin for LLM service."""
    PROVIDER_NAME: str = None

    def name(self) -> str:
        return f"{EXT_LLM_SERVICE}|{self.PROVIDER_NAME}"

    def extension_point_name(self, v: Variables) -> str:
        return EXT_LLM_SERVICE

    def is_enabled(self, v: Variables) -> bool:
        return enabled_option_pattern(self, v, MEMENTO_LLM_SERVICE, self_attr='PROVIDER_NAME')

    def on_registration(self, v: Variables) -> None:
        v.set_default_value(MEMENTO_LLM_SERVICE, DEFAULT_MEMENTO_LLM_SERVICE)

    def get_dependencies(self, v: Variables):
        return (EXT_LLM_REGISTRY,)
