"""Unit tests for keyword ranking and hybrid keyword/vector fusion."""
from datetime import datetime, timezone

import pytest

from memento_engine.models import ScoredMemory, VectorMatch
from memento_engine.scoring import hybrid_rank, score_and_rank_memories, tokenize_query

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _kw(make_memory, id: str, score: float) -> ScoredMemory:
    return ScoredMemory(memory=make_memory(f"content of {id}", id=id), score=score)


class TestTokenizeQuery:

    def test_lowercase_and_split(self):
        assert tokenize_query("  Auth   JWT\tTokens ") == ["auth", "jwt", "tokens"]

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_empty(self, query):
        assert tokenize_query(query) == []


class TestScoreAndRankMemories:

    def test_zero_scores_dropped(self, make_memory):
        memories = [make_memory("python tips"), make_memory("rust tips"), make_memory("gardening")]
        results = score_and_rank_memories(memories, "python", NOW)
        assert [r.memory.content for r in results] == ["python tips"]

    def test_sorted_by_score(self, make_memory):
        old = make_memory("python", id="old", age_hours=500)
        new = make_memory("python", id="new", age_hours=1)
        results = score_and_rank_memories([old, new], "python", NOW)
        assert [r.memory.id for r in results] == ["new", "old"]
        assert results[0].score > results[1].score

    def test_ties_break_newest_first(self, make_memory):
        # created at or after ``now`` both have full recency, so the scores tie
        current = make_memory("python", id="current", age_hours=0)
        newer = make_memory("python", id="newer", age_hours=-1)
        results = score_and_rank_memories([current, newer], "python", NOW)
        assert results[0].score == results[1].score
        assert [r.memory.id for r in results] == ["newer", "current"]

    def test_missing_created_at_sorts_last_on_tie(self, make_memory):
        dated = make_memory("python", id="dated", age_hours=0)
        undated = make_memory("python", id="undated", age_hours=0)
        undated.created_at = None
        results = score_and_rank_memories([undated, dated], "python", NOW)
        assert [r.memory.id for r in results] == ["dated", "undated"]

    def test_limit(self, make_memory):
        memories = [make_memory(f"python {i}") for i in range(5)]
        assert len(score_and_rank_memories(memories, "python", NOW, limit=2)) == 2
        assert score_and_rank_memories(memories, "python", NOW, limit=0) == []

    def test_consolidated_excluded(self, make_memory):
        memories = [make_memory("python", consolidated=True), make_memory("python")]
        assert len(score_and_rank_memories(memories, "python", NOW)) == 1

    def test_empty_query_returns_nothing(self, make_memory):
        memories = [make_memory("python")]
        assert score_and_rank_memories(memories, "", NOW) == []


class TestHybridRank:

    def test_normalizes_each_side(self, make_memory):
        keyword = [_kw(make_memory, "a", 0.4), _kw(make_memory, "b", 0.2)]
        vector = [VectorMatch(id="b", score=0.9), VectorMatch(id="c", score=0.45)]
        results = {r.memory_id: r for r in hybrid_rank(keyword, vector, alpha=0.5)}

        assert results["a"].keyword_score == pytest.approx(1.0)
        assert results["b"].keyword_score == pytest.approx(0.5)
        assert results["b"].vector_score == pytest.approx(1.0)
        assert results["c"].vector_score == pytest.approx(0.5)
        assert results["b"].score == pytest.approx(0.75)
        assert results["a"].score == pytest.approx(0.5)
        assert results["c"].score == pytest.approx(0.25)

    def test_vector_only_entries_have_no_memory(self, make_memory):
        keyword = [_kw(make_memory, "a", 1.0)]
        vector = [VectorMatch(id="z", score=0.8)]
        results = {r.memory_id: r for r in hybrid_rank(keyword, vector)}
        assert results["z"].memory is None
        assert results["z"].keyword_score == 0.0
        assert results["a"].memory is not None
        assert results["a"].vector_score == 0.0

    def test_no_duplicate_ids(self, make_memory):
        keyword = [_kw(make_memory, "a", 1.0), _kw(make_memory, "b", 0.5)]
        vector = [VectorMatch(id="a", score=0.3), VectorMatch(id="a", score=0.9), VectorMatch(id="b", score=0.9)]
        results = hybrid_rank(keyword, vector)
        ids = [r.memory_id for r in results]
        assert len(ids) == len(set(ids)) == 2
        assert {r.memory_id: r for r in results}["a"].vector_score == pytest.approx(1.0)

    def test_alpha_one_is_keyword_ordering(self, make_memory):
        keyword = [_kw(make_memory, "a", 0.9), _kw(make_memory, "b", 0.5), _kw(make_memory, "c", 0.5)]
        vector = [VectorMatch(id="c", score=1.0), VectorMatch(id="x", score=0.8)]
        results = hybrid_rank(keyword, vector, alpha=1.0)
        assert [r.memory_id for r in results] == ["a", "b", "c"]

    def test_alpha_zero_is_vector_ordering(self, make_memory):
        keyword = [_kw(make_memory, "a", 0.9)]
        vector = [VectorMatch(id="x", score=0.9), VectorMatch(id="y", score=0.9), VectorMatch(id="a", score=0.2)]
        results = hybrid_rank(keyword, vector, alpha=0.0)
        assert [r.memory_id for r in results] == ["x", "y", "a"]

    def test_ties_prefer_vector_score(self, make_memory):
        keyword = [_kw(make_memory, "a", 1.0)]
        vector = [VectorMatch(id="b", score=1.0)]
        results = hybrid_rank(keyword, vector, alpha=0.5)
        assert results[0].score == pytest.approx(results[1].score)
        assert [r.memory_id for r in results] == ["b", "a"]

    def test_empty_sides(self, make_memory):
        assert hybrid_rank([], []) == []
        keyword = [_kw(make_memory, "a", 0.3)]
        results = hybrid_rank(keyword, [], alpha=0.5)
        assert [r.memory_id for r in results] == ["a"]
        assert results[0].score == pytest.approx(0.5)

    def test_all_zero_vector_side(self, make_memory):
        keyword = [_kw(make_memory, "a", 0.3)]
        vector = [VectorMatch(id="b", score=0.0)]
        results = hybrid_rank(keyword, vector, alpha=0.5)
        assert [r.memory_id for r in results] == ["a"]

    def test_limit(self, make_memory):
        keyword = [_kw(make_memory, f"k{i}", 1.0 - i * 0.1) for i in range(5)]
        assert len(hybrid_rank(keyword, [], limit=3)) == 3

    @pytest.mark.parametrize("alpha", [-0.1, 1.5])
    def test_alpha_out_of_range(self, alpha):
        with pytest.raises(ValueError):
            hybrid_rank([], [], alpha=alpha)
