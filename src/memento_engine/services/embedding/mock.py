"""Deterministic hash-seeded embeddings for tests and offline development."""
import hashlib
from logging import Logger

import numpy as np
from scitrera_app_framework import Variables

from ...config import EmbeddingProviderType, MEMENTO_EMBEDDING_DIMENSIONS

from .base import EmbeddingProvider, EmbeddingProviderPluginBase

DEFAULT_EMBEDDING_DIMENSIONS = 384


def hash_vector(text: str, dimensions: int) -> np.ndarray:
    """Unit-length, non-negative vector seeded from the SHA-256 of ``text``."""
    seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], byteorder="big")
    vector = np.random.default_rng(seed).random(dimensions)
    norm = np.linalg.norm(vector)
    return vector / norm if norm > 0 else vector


class MockEmbeddingProvider(EmbeddingProvider):
    """
    Identical texts always embed identically; distinct texts are unrelated
    noise, so this is not a semantic model.
    """

    def __init__(self, v: Variables = None, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS):
        super().__init__(v, dimensions)
        self.logger.info("Initialized MockEmbeddingProvider with dimensions=%d", dimensions)

    async def embed(self, text: str) -> list[float]:
        return hash_vector(text, self._dimensions).tolist()

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return np.vstack([hash_vector(text, self._dimensions) for text in texts]).tolist()


class MockEmbeddingProviderPlugin(EmbeddingProviderPluginBase):
    PROVIDER_NAME = EmbeddingProviderType.MOCK

    def initialize(self, v: Variables, logger: Logger) -> MockEmbeddingProvider:
        return MockEmbeddingProvider(
            v=v,
            dimensions=v.environ(MEMENTO_EMBEDDING_DIMENSIONS, default=DEFAULT_EMBEDDING_DIMENSIONS, type_fn=int)
        )
