"""Retrieval result models shared by scoring, fusion and the vector index."""
from typing import Optional

from pydantic import BaseModel, Field

from .memory import Memory


class ScoredMemory(BaseModel):
    """A memory with its keyword relevance score."""

    memory: Memory
    score: float = Field(..., ge=0.0)


class VectorMatch(BaseModel):
    """A vector-similarity hit returned by the vector index."""

    id: str = Field(..., description="Memory id")
    score: float = Field(..., description="Similarity score (higher is closer)")


class HybridResult(BaseModel):
    """A fused result. ``memory`` is None for vector-only hits; callers resolve it from storage."""

    memory_id: str
    memory: Optional[Memory] = None
    score: float = 0.0
    keyword_score: float = 0.0
    vector_score: float = 0.0

    def resolve(self, memory: Memory) -> "HybridResult":
        """Return a copy with the memory hydrated."""
        return self.model_copy(update={"memory": memory})
