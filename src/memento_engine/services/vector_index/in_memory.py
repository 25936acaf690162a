"""Process-local vector index."""
from logging import Logger

import numpy as np
from scitrera_app_framework import Variables

from ...config import VectorIndexType
from ...models.search import VectorMatch
from .base import VectorIndex, VectorIndexPluginBase


def rank_by_similarity(query: np.ndarray, ids: list[str], matrix: np.ndarray, top_k: int) -> list[tuple[str, float]]:
    """Cosine-rank the rows of ``matrix`` against ``query``. Zero rows score 0."""
    if not ids or top_k <= 0:
        return []
    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    if query_norm == 0:
        return []
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = (matrix @ query) / (row_norms * query_norm)
    scores = np.nan_to_num(scores, nan=0.0, posinf=0.0, neginf=0.0)
    order = np.argsort(-scores, kind="stable")[:top_k]
    return [(ids[i], float(scores[i])) for i in order]


class MemoryVectorIndex(VectorIndex):
    """Vectors kept per workspace: ``workspace_id -> {memory_id -> vector}``."""

    def __init__(self, v: Variables = None):
        super().__init__(v)
        self._vectors: dict[str, dict[str, np.ndarray]] = {}

    async def upsert(self, workspace_id: str, memory_id: str, vector: list[float]) -> None:
        self._vectors.setdefault(workspace_id, {})[memory_id] = np.asarray(vector, dtype=np.float32)

    async def query(self, vector: list[float], top_k: int, workspace_id: str) -> list[VectorMatch]:
        q = np.asarray(vector, dtype=np.float32)
        ids, rows = [], []
        for memory_id, stored in self._vectors.get(workspace_id, {}).items():
            if stored.shape == q.shape:
                ids.append(memory_id)
                rows.append(stored)
        if not rows:
            return []
        ranked = rank_by_similarity(q, ids, np.vstack(rows), top_k)
        return [VectorMatch(id=memory_id, score=score) for memory_id, score in ranked]

    async def delete(self, workspace_id: str, memory_id: str) -> bool:
        return self._vectors.get(workspace_id, {}).pop(memory_id, None) is not None


class MemoryVectorIndexPlugin(VectorIndexPluginBase):
    PROVIDER_NAME = VectorIndexType.MEMORY

    def initialize(self, v: Variables, logger: Logger) -> MemoryVectorIndex:
        return MemoryVectorIndex(v=v)
