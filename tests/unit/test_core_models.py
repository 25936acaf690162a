"""Unit tests for the Memory/Consolidation models and the tags/linkages codec."""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from memento_engine.models import (
    CONSOLIDATED_FROM_LABEL,
    ConsolidateInput,
    Consolidation,
    ConsolidationMethod,
    HybridResult,
    Linkage,
    LinkageKind,
    Memory,
)
from memento_engine.models.codec import (
    decode_linkages,
    decode_tags,
    encode_linkages,
    encode_tags,
    normalize_tags,
)


class TestMemoryModel:
    """Tests for Memory validation and defaults."""

    def test_defaults(self):
        memory = Memory(id="mem_1", workspace_id="ws", content="hello")
        assert memory.type == "observation"
        assert memory.tags == []
        assert memory.linkages == []
        assert memory.access_count == 0
        assert memory.relevance == 1.0
        assert memory.consolidated is False
        assert memory.consolidated_into is None
        assert memory.created_at.tzinfo is not None

    def test_empty_content_rejected(self):
        with pytest.raises(ValidationError):
            Memory(id="mem_1", workspace_id="ws", content="   ")

    def test_tags_normalized(self):
        memory = Memory(id="mem_1", workspace_id="ws", content="x", tags=["Auth", " auth ", "Project-X", ""])
        assert memory.tags == ["auth", "project-x"]

    def test_tags_from_stored_json(self):
        memory = Memory(id="mem_1", workspace_id="ws", content="x", tags='["a", "B"]')
        assert memory.tags == ["a", "b"]

    def test_malformed_tags_are_empty(self):
        memory = Memory(id="mem_1", workspace_id="ws", content="x", tags="{not json")
        assert memory.tags == []

    def test_null_counters_take_defaults(self):
        memory = Memory(id="mem_1", workspace_id="ws", content="x", access_count=None, relevance=None)
        assert memory.access_count == 0
        assert memory.relevance == 1.0

    def test_naive_datetimes_become_utc(self):
        memory = Memory(id="mem_1", workspace_id="ws", content="x", created_at="2025-01-01 10:00:00")
        assert memory.created_at == datetime(2025, 1, 1, 10, tzinfo=timezone.utc)

    def test_linkages_from_dicts(self):
        memory = Memory(
            id="mem_1", workspace_id="ws", content="x",
            linkages=[{"type": "memory", "id": "mem_2", "label": "related"}, {"type": "bogus", "id": "y"}],
        )
        assert memory.linkages == [Linkage(kind=LinkageKind.MEMORY, ref="mem_2", label="related")]

    def test_is_active(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        active = Memory(id="a", workspace_id="ws", content="x")
        expired = Memory(id="b", workspace_id="ws", content="x", expires_at=now - timedelta(hours=1))
        consolidated = Memory(id="c", workspace_id="ws", content="x", consolidated=True)
        assert active.is_active(now)
        assert not expired.is_active(now)
        assert not consolidated.is_active(now)

    def test_consolidated_from(self):
        memory = Memory(
            id="merged", workspace_id="ws", content="x",
            linkages=[
                Linkage(kind=LinkageKind.MEMORY, ref="a", label=CONSOLIDATED_FROM_LABEL),
                Linkage(kind=LinkageKind.MEMORY, ref="b", label="related"),
                Linkage(kind=LinkageKind.FILE, ref="src/app.py", label=CONSOLIDATED_FROM_LABEL),
            ],
        )
        assert memory.consolidated_from == ["a"]


class TestTagCodec:
    """Tests for tag encoding/decoding."""

    def test_normalize_keeps_first_seen_order(self):
        assert normalize_tags(["b", "A", "a", None, "c"]) == ["b", "a", "c"]

    def test_encode_decode(self):
        assert decode_tags(encode_tags(["Auth", "db"])) == ["auth", "db"]

    @pytest.mark.parametrize("raw", [None, "", "not json", '{"a": 1}', "42"])
    def test_malformed_decodes_empty(self, raw):
        assert decode_tags(raw) == []

    def test_non_string_elements_dropped(self):
        assert decode_tags('["a", {"x": 1}, null, 7]') == ["a", "7"]


class TestLinkageCodec:
    """Tests for linkage encoding/decoding."""

    def test_stored_format(self):
        raw = encode_linkages([
            Linkage(kind=LinkageKind.MEMORY, ref="mem_1", label="related"),
            Linkage(kind=LinkageKind.FILE, ref="src/app.py"),
        ])
        assert '"id": "mem_1"' in raw
        assert '"path": "src/app.py"' in raw

    def test_decode_drops_malformed_elements(self):
        raw = '[{"type": "memory", "id": "m1"}, {"type": "file"}, "junk", {"type": "file", "path": "a.py", "label": "x"}]'
        assert decode_linkages(raw) == [
            Linkage(kind=LinkageKind.MEMORY, ref="m1"),
            Linkage(kind=LinkageKind.FILE, ref="a.py", label="x"),
        ]

    @pytest.mark.parametrize("raw", [None, "", "[", '{"type": "memory"}'])
    def test_malformed_decodes_empty(self, raw):
        assert decode_linkages(raw) == []

    def test_linkage_key(self):
        link = Linkage(kind=LinkageKind.FILE, ref="a.py", label="x")
        assert link.key == ("file", "a.py", "x")


class TestConsolidationModels:
    """Tests for consolidation request/record models."""

    def test_consolidate_input_dedupes_ids(self):
        request = ConsolidateInput(source_ids=["a", "b", "a", "", "c"])
        assert request.source_ids == ["a", "b", "c"]

    def test_consolidation_defaults(self):
        record = Consolidation(id="con_1", workspace_id="ws", summary="s")
        assert record.type == "auto"
        assert record.method == ConsolidationMethod.TEMPLATE
        assert record.created_at.tzinfo is not None

    def test_hybrid_result_resolve(self):
        memory = Memory(id="m1", workspace_id="ws", content="x")
        result = HybridResult(memory_id="m1", score=0.4, vector_score=0.8)
        resolved = result.resolve(memory)
        assert resolved.memory == memory
        assert resolved.score == 0.4
        assert result.memory is None
