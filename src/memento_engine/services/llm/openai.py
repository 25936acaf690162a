"""LLM provider for the OpenAI chat completions API and compatible endpoints."""
from scitrera_app_framework import get_logger
from scitrera_app_framework.api import Variables

from .base import LLMProvider
from ...models.llm import LLMRequest, LLMResponse

DEFAULT_LLM_OPENAI_MODEL = 'gpt-4o-mini'


class OpenAILLMProvider(LLMProvider):
    """
    Chat completions through ``openai.AsyncOpenAI``.

    Point ``base_url`` at Ollama, vLLM or any other OpenAI-compatible server
    to summarize with a local model.
    """

    def __init__(
            self,
            api_key: str,
            base_url: str = None,
            model: str = DEFAULT_LLM_OPENAI_MODEL,
            default_max_tokens: int | None = None,
            default_temperature: float | None = None,
            v: Variables = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.default_max_tokens = default_max_tokens
        self.default_temperature = default_temperature
        self._client = None
        self.logger = get_logger(v, name=self.__class__.__name__)
        self.logger.info("Initialized OpenAILLMProvider: base_url=%s, model=%s", base_url, model)

    @property
    def client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def complete(self, request: LLMRequest) -> LLMResponse:
        model = request.model or self.model
        max_tokens, temperature = self.resolve_params(request)

        kwargs = {
            "model": model,
            "messages": [{"role": m.role.value, "content": m.content} for m in request.messages],
        }
        if max_tokens is not None:
            kwargs["max_completion_tokens"] = max_tokens
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self.client.chat.completions.create(**kwargs)
        choice = response.choices[0]
        if choice.finish_reason == "length":
            self.logger.warning("Completion from %s truncated at %s tokens", model, max_tokens)

        usage = response.usage
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            finish_reason=choice.finish_reason or "stop",
        )

    @property
    def default_model(self) -> str:
        return self.model
