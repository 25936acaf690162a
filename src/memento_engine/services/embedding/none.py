"""Placeholder provider installed when no embedder is configured."""
from logging import Logger

from scitrera_app_framework import Variables

from ...config import EmbeddingProviderType

from .base import EmbeddingProvider, EmbeddingProviderPluginBase, EmbeddingNotConfiguredError


class NoEmbeddingProvider(EmbeddingProvider):
    """Reports itself unavailable; the embedding service degrades every call to a no-op."""

    def __init__(self, v: Variables = None):
        super().__init__(v, output_dimensions=0)
        self.logger.info("No embedding provider configured; semantic search and backfill are disabled")

    @property
    def is_available(self) -> bool:
        return False

    async def embed(self, text: str) -> list[float]:
        raise EmbeddingNotConfiguredError("No embedding provider configured")

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        raise EmbeddingNotConfiguredError("No embedding provider configured")


class NoEmbeddingProviderPlugin(EmbeddingProviderPluginBase):
    PROVIDER_NAME = EmbeddingProviderType.NONE

    def initialize(self, v: Variables, logger: Logger) -> NoEmbeddingProvider:
        return NoEmbeddingProvider(v=v)
