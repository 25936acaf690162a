"""Pure relevance scoring and result fusion."""
from .relevance import (
    ACCESS_BOOST_CAP,
    LAST_ACCESS_HALF_LIFE_HOURS,
    RECENCY_HALF_LIFE_HOURS,
    access_boost_score,
    decay_relevance,
    keyword_score,
    last_access_recency_score,
    recency_score,
    score_memory,
)
from .fusion import hybrid_rank, score_and_rank_memories, tokenize_query

__all__ = [
    "RECENCY_HALF_LIFE_HOURS",
    "LAST_ACCESS_HALF_LIFE_HOURS",
    "ACCESS_BOOST_CAP",
    "recency_score",
    "access_boost_score",
    "last_access_recency_score",
    "keyword_score",
    "decay_relevance",
    "score_memory",
    "tokenize_query",
    "score_and_rank_memories",
    "hybrid_rank",
]
