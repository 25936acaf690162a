"""Default LLM service: message assembly on top of the provider registry."""
from logging import Logger
from typing import Optional

from scitrera_app_framework import get_logger, Variables

from ...models.llm import LLMRequest, LLMMessage, LLMRole
from .base import EXT_LLM_REGISTRY, LLMServicePluginBase
from .registry import LLMProviderRegistry


class LLMService:

    def __init__(self, registry: LLMProviderRegistry, v: Variables = None):
        self.registry = registry
        self.logger = get_logger(v, name=self.__class__.__name__)

    async def synthesize(
            self,
            prompt: str,
            system: Optional[str] = None,
            max_tokens: int = None,
            temperature: float = None,
            profile: str = "default",
    ) -> str:
        """
        Single-turn completion routed through ``profile``.

        Raises:
            LLMNotConfiguredError: When the profile resolves to the NoOp provider
        """
        messages = [LLMMessage(role=LLMRole.SYSTEM, content=system)] if system else []
        messages.append(LLMMessage(role=LLMRole.USER, content=prompt))

        response = await self.registry.complete(
            LLMRequest(messages=messages, max_tokens=max_tokens, temperature=temperature),
            profile=profile,
        )
        self.logger.debug("LLM %s (%s): %d prompt / %d completion tokens",
                          profile, response.model, response.prompt_tokens, response.completion_tokens)
        return response.content


class DefaultLLMServicePlugin(LLMServicePluginBase):
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> LLMService:
        return LLMService(registry=self.get_extension(EXT_LLM_REGISTRY, v), v=v)
