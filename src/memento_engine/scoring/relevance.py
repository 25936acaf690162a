"""
Relevance scoring.

Combined score = keyword * recency * access_boost * last_access_recency

- keyword (0-1): fraction of query terms found in content + tags
- recency (0-1): exponential decay with a 7-day half-life
- access boost (1.0-2.0): log2-based lift from access_count
- last-access recency (1.0-1.5): temporary boost for memories retrieved in the last ~48h

Every function here is pure and never raises on missing or malformed input.
"""
import math
from datetime import datetime
from typing import Optional, Sequence

from ..models.memory import Memory
from ..utils import hours_between

RECENCY_HALF_LIFE_HOURS = 168.0
LAST_ACCESS_HALF_LIFE_HOURS = 48.0
ACCESS_BOOST_FACTOR = 0.3
ACCESS_BOOST_CAP = 2.0
LAST_ACCESS_MAX_BOOST = 0.5


def recency_score(created_at: Optional[datetime], now: datetime) -> float:
    """Exponential decay on age: 1.0 for brand-new (or undated) memories, 0.5 at one week."""
    if created_at is None:
        return 1.0
    age_hours = hours_between(created_at, now)
    if age_hours <= 0:
        return 1.0
    return 0.5 ** (age_hours / RECENCY_HALF_LIFE_HOURS)


def access_boost_score(access_count: Optional[int]) -> float:
    """1 + log2(1 + access_count) * 0.3, capped at 2.0."""
    count = max(access_count or 0, 0)
    return min(ACCESS_BOOST_CAP, 1 + math.log2(1 + count) * ACCESS_BOOST_FACTOR)


def last_access_recency_score(last_accessed_at: Optional[datetime], now: datetime) -> float:
    """1 + 0.5 * 0.5^(hours_since / 48); 1.0 when never accessed."""
    if last_accessed_at is None:
        return 1.0
    hours_since = hours_between(last_accessed_at, now)
    if hours_since < 0:
        return 1.0 + LAST_ACCESS_MAX_BOOST
    return 1 + LAST_ACCESS_MAX_BOOST * 0.5 ** (hours_since / LAST_ACCESS_HALF_LIFE_HOURS)


def keyword_score(memory: Memory, query_terms: Sequence[str]) -> float:
    """Fraction of query terms that occur as substrings of content or tags."""
    if not query_terms:
        return 0.0
    searchable = (memory.content or "").lower() + " " + " ".join(memory.tags)
    hits = sum(1 for term in query_terms if term in searchable)
    return hits / len(query_terms)


def decay_relevance(memory: Memory, now: datetime) -> float:
    """Query-independent relevance: recency * access boost * last-access recency."""
    return (
        recency_score(memory.created_at, now)
        * access_boost_score(memory.access_count)
        * last_access_recency_score(memory.last_accessed_at, now)
    )


def score_memory(memory: Memory, query_terms: Sequence[str], now: datetime) -> float:
    """
    Score a single memory against a set of lowercase query terms.

    An empty ``query_terms`` skips the keyword gate (used by the decay job).
    Consolidated memories always score 0.

    Args:
        memory: Candidate memory
        query_terms: Lowercase query terms
        now: Reference time (passed explicitly for deterministic scoring)

    Returns:
        Combined relevance score, 0 when no query term matches
    """
    if memory.consolidated:
        return 0.0

    if not query_terms:
        return decay_relevance(memory, now)

    keyword = keyword_score(memory, query_terms)
    if keyword == 0:
        return 0.0

    return keyword * decay_relevance(memory, now)
