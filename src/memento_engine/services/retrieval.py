"""Workspace search: keyword ranking fused with vector hits, with access tracking."""
from datetime import datetime
from typing import Optional

from scitrera_app_framework import Variables, get_logger

from ..config import DEFAULT_HYBRID_ALPHA, DEFAULT_RESULT_LIMIT
from ..models.search import HybridResult
from ..scoring import hybrid_rank, score_and_rank_memories
from ..utils import utc_now
from .embedding import EmbeddingService
from .storage import StorageBackend


async def search_workspace(
        storage: StorageBackend,
        embedding_service: Optional[EmbeddingService],
        workspace_id: str,
        query: str,
        limit: int = DEFAULT_RESULT_LIMIT,
        alpha: float = DEFAULT_HYBRID_ALPHA,
        now: Optional[datetime] = None,
        v: Variables = None,
) -> list[HybridResult]:
    """
    Rank the active memories of a workspace for ``query``.

    Vector-only hits are hydrated from storage and dropped when the memory is
    gone, consolidated or expired. Every returned memory counts as accessed:
    its ``access_count`` is incremented and ``last_accessed_at`` set to
    ``now``, which feeds the access factors of later scoring and decay.
    A failure to record access is logged and does not fail the search.
    """
    now = now or utc_now()

    memories = await storage.list_active_memories(workspace_id, now=now)
    keyword_results = score_and_rank_memories(memories, query, now, limit=len(memories))
    vector_results = []
    if embedding_service is not None:
        vector_results = await embedding_service.semantic_search(workspace_id, query, top_k=limit)

    results = []
    for hit in hybrid_rank(keyword_results, vector_results, alpha=alpha, limit=limit):
        if hit.memory is None:
            memory = await storage.get_memory(workspace_id, hit.memory_id)
            if memory is None or not memory.is_active(now):
                continue
            hit = hit.resolve(memory)
        results.append(hit)

    if not results:
        return results

    try:
        await storage.record_access(workspace_id, [hit.memory_id for hit in results], now=now)
    except Exception as e:
        get_logger(v, name="retrieval").warning(
            "Could not record access for workspace %s: %s", workspace_id, e
        )
        return results

    # Reflect the increment in the returned objects
    return [
        hit.resolve(hit.memory.model_copy(
            update={"access_count": hit.memory.access_count + 1, "last_accessed_at": now}
        ))
        for hit in results
    ]
