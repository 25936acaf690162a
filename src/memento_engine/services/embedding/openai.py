"""Embeddings from the OpenAI embeddings API or any OpenAI-compatible server."""
from logging import Logger
from typing import Optional

from scitrera_app_framework import Variables

from ...config import EmbeddingProviderType, MEMENTO_EMBEDDING_MODEL, MEMENTO_EMBEDDING_DIMENSIONS

from .base import EmbeddingProvider, EmbeddingProviderPluginBase

MEMENTO_EMBEDDING_OPENAI_API_KEY = 'MEMENTO_EMBEDDING_OPENAI_API_KEY'
MEMENTO_EMBEDDING_OPENAI_BASE_URL = 'MEMENTO_EMBEDDING_OPENAI_BASE_URL'

DEFAULT_EMBEDDING_MODEL = 'text-embedding-3-small'
DEFAULT_EMBEDDING_DIMENSIONS = 1536

# only these models accept a requested output size
_SHORTENABLE_MODEL_PREFIX = 'text-embedding-3'


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings through ``openai.AsyncOpenAI``.

    ``base_url`` points the client at Ollama, vLLM, LocalAI and other
    compatible servers; those receive no ``dimensions`` argument and return
    their model's native size, so configure ``dimensions`` to match it.
    """

    def __init__(
            self,
            v: Variables = None,
            api_key: Optional[str] = None,
            model: str = DEFAULT_EMBEDDING_MODEL,
            base_url: Optional[str] = None,
            dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
    ):
        super().__init__(v, output_dimensions=dimensions)
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self._client = None
        self.logger.info("Initialized OpenAIEmbeddingProvider: base_url=%s, model=%s, dimensions=%d",
                         base_url, model, dimensions)

    @property
    def client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def _request_args(self) -> dict:
        args = {"model": self.model}
        if self.model.startswith(_SHORTENABLE_MODEL_PREFIX) and self._dimensions:
            args["dimensions"] = self._dimensions
        return args

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """One API call for the whole batch; results come back in input order."""
        if not texts:
            return []
        self.logger.debug("Requesting %d embeddings from %s", len(texts), self.model)
        response = await self.client.embeddings.create(input=texts, **self._request_args())
        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise ValueError(f"Expected {len(texts)} embeddings from {self.model}, got {len(data)}")
        return [item.embedding for item in data]


class OpenAIEmbeddingProviderPlugin(EmbeddingProviderPluginBase):
    PROVIDER_NAME = EmbeddingProviderType.OPENAI

    def initialize(self, v: Variables, logger: Logger) -> OpenAIEmbeddingProvider:
        return OpenAIEmbeddingProvider(
            v=v,
            api_key=v.environ(MEMENTO_EMBEDDING_OPENAI_API_KEY, default='x'),  # local servers ignore the key
            model=v.environ(MEMENTO_EMBEDDING_MODEL, default=DEFAULT_EMBEDDING_MODEL),
            base_url=v.environ(MEMENTO_EMBEDDING_OPENAI_BASE_URL, default=None),
            dimensions=v.environ(MEMENTO_EMBEDDING_DIMENSIONS, default=DEFAULT_EMBEDDING_DIMENSIONS, type_fn=int),
        )
