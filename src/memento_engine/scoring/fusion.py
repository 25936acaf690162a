"""
Ranking and hybrid fusion.

``score_and_rank_memories`` ranks a candidate set by keyword relevance.
``hybrid_rank`` merges those keyword results with vector-similarity hits from
the embedding index: each side is normalized by its own maximum, then the two
are blended with a weight ``alpha`` for the keyword side.
"""
import math
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..config import DEFAULT_HYBRID_ALPHA, DEFAULT_RESULT_LIMIT
from ..models.memory import Memory
from ..models.search import HybridResult, ScoredMemory, VectorMatch
from .relevance import score_memory

_MISSING_RANK = math.inf


def tokenize_query(query: Optional[str]) -> list[str]:
    """Lowercase the query and split it on whitespace."""
    if not query:
        return []
    return [t for t in query.lower().split() if t]


def _created_ts(memory: Memory) -> float:
    return memory.created_at.timestamp() if memory.created_at else -math.inf


def score_and_rank_memories(
        memories: Iterable[Memory],
        query: str,
        now: datetime,
        limit: int = DEFAULT_RESULT_LIMIT,
) -> list[ScoredMemory]:
    """
    Score and rank memories against a query string.

    Zero-score memories are dropped. Ties on score are broken newest-first.

    Args:
        memories: Candidate memories of one workspace
        query: Raw query string
        now: Reference time
        limit: Maximum results to return

    Returns:
        Scored memories sorted by score descending
    """
    query_terms = tokenize_query(query)

    scored = []
    for memory in memories:
        score = score_memory(memory, query_terms, now)
        if score > 0:
            scored.append(ScoredMemory(memory=memory, score=score))

    scored.sort(key=lambda s: (-s.score, -_created_ts(s.memory)))
    return scored[:max(limit, 0)]


def _normalizer(scores: Sequence[float]):
    top = max(scores) if scores else 0.0
    if top <= 0:
        return lambda _score: 0.0
    return lambda score: max(score, 0.0) / top


def hybrid_rank(
        keyword_results: Sequence[ScoredMemory],
        vector_results: Sequence[VectorMatch],
        alpha: float = DEFAULT_HYBRID_ALPHA,
        limit: int = DEFAULT_RESULT_LIMIT,
) -> list[HybridResult]:
    """
    Fuse keyword results with vector-similarity hits.

    ``score = alpha * keyword + (1 - alpha) * vector`` on independently
    normalized scores. Ties prefer the higher vector score, then the original
    rank on the weighted side. Entries whose fused score is zero are dropped,
    so ``alpha=1`` yields exactly the keyword ordering and ``alpha=0`` exactly
    the vector ordering.

    Raises:
        ValueError: If alpha is outside [0, 1]
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be within [0, 1], got {alpha!r}")

    keyword_norm = _normalizer([r.score for r in keyword_results])
    vector_norm = _normalizer([r.score for r in vector_results])

    merged: dict[str, HybridResult] = {}
    keyword_rank: dict[str, int] = {}
    vector_rank: dict[str, int] = {}

    for kr in keyword_results:
        memory_id = kr.memory.id
        normalized = keyword_norm(kr.score)
        entry = merged.get(memory_id)
        if entry is None:
            keyword_rank[memory_id] = len(keyword_rank)
            merged[memory_id] = HybridResult(memory_id=memory_id, memory=kr.memory, keyword_score=normalized)
        elif normalized > entry.keyword_score:
            entry.keyword_score = normalized

    for vr in vector_results:
        normalized = vector_norm(vr.score)
        entry = merged.get(vr.id)
        if entry is None:
            merged[vr.id] = entry = HybridResult(memory_id=vr.id, memory=None)
        if vr.id not in vector_rank:
            vector_rank[vr.id] = len(vector_rank)
        entry.vector_score = max(entry.vector_score, normalized)

    results = []
    for entry in merged.values():
        entry.score = alpha * entry.keyword_score + (1 - alpha) * entry.vector_score
        if entry.score > 0:
            results.append(entry)

    def sort_key(entry: HybridResult):
        kw_rank = keyword_rank.get(entry.memory_id, _MISSING_RANK)
        vec_rank = vector_rank.get(entry.memory_id, _MISSING_RANK)
        if alpha == 1.0:
            return -entry.score, kw_rank
        if alpha == 0.0:
            return -entry.score, vec_rank
        return -entry.score, -entry.vector_score, kw_rank, vec_rank

    results.sort(key=sort_key)
    return results[:max(limit, 0)]
