"""
Pure helpers for consolidation: tag clustering, template summaries and the
merge rules for explicit consolidation.

Nothing here touches storage, so the results are reproducible for a given
input order.
"""
from collections import Counter
from typing import Iterable, Sequence

from ...models import CONSOLIDATED_FROM_LABEL, Linkage, LinkageKind, Memory
from ...models.codec import normalize_tags


class UnionFind:
    """Disjoint-set forest with path compression and union by rank."""

    def __init__(self):
        self._parent: dict[str, str] = {}
        self._rank: dict[str, int] = {}

    def find(self, x: str) -> str:
        if x not in self._parent:
            self._parent[x] = x
            self._rank[x] = 0
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def union(self, a: str, b: str) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return
        if self._rank[root_a] < self._rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if self._rank[root_a] == self._rank[root_b]:
            self._rank[root_a] += 1


def find_consolidation_groups(memories: Sequence[Memory], min_size: int = 3) -> list[list[Memory]]:
    """
    Cluster memories that share at least one tag.

    Grouping is transitive: if A shares a tag with B and B shares a tag with C,
    all three land in one group. Untagged and consolidated memories never group.
    Groups, and members within a group, follow first appearance in ``memories``.

    Args:
        memories: Active memories of a single workspace
        min_size: Smallest cluster worth consolidating

    Returns:
        Groups with at least ``min_size`` members
    """
    tagged = [m for m in memories if m.tags and not m.consolidated]
    if not tagged:
        return []

    uf = UnionFind()
    first_by_tag: dict[str, str] = {}
    for memory in tagged:
        uf.find(memory.id)
        for tag in memory.tags:
            tag = tag.lower()
            if tag in first_by_tag:
                uf.union(first_by_tag[tag], memory.id)
            else:
                first_by_tag[tag] = memory.id

    groups: dict[str, list[Memory]] = {}
    for memory in tagged:
        groups.setdefault(uf.find(memory.id), []).append(memory)

    return [group for group in groups.values() if len(group) >= min_size]


def sorted_tag_union(memories: Iterable[Memory], extra: Iterable[str] = ()) -> list[str]:
    tags: set[str] = set()
    for memory in memories:
        tags.update(memory.tags)
    tags.update(normalize_tags(extra))
    return sorted(tags)


def generate_template_summary(group: Sequence[Memory]) -> str:
    """
    Deterministic summary of a group::

        [auth, project-x] - 3 memories consolidated

        - Use JWT for auth (decision, 2025-01-01T00:00:00+00:00) [mem_1]
        ...
    """
    header = f"[{', '.join(sorted_tag_union(group))}] - {len(group)} memories consolidated"
    bullets = "\n".join(
        f"- {m.content} ({m.type}, {m.created_at.isoformat() if m.created_at else 'unknown'}) [{m.id}]"
        for m in group
    )
    return f"{header}\n\n{bullets}"


def majority_type(memories: Sequence[Memory]) -> str:
    """Most frequent type; ties go to the lexicographically smallest type name."""
    counts = Counter(m.type for m in memories)
    return min(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0]


def merge_linkages(sources: Sequence[Memory]) -> list[Linkage]:
    """One ``consolidated-from`` linkage per source, then inherited linkages de-duplicated by key."""
    merged = [Linkage(kind=LinkageKind.MEMORY, ref=m.id, label=CONSOLIDATED_FROM_LABEL) for m in sources]
    seen = {link.key for link in merged}
    for source in sources:
        for link in source.linkages:
            if link.key not in seen:
                seen.add(link.key)
                merged.append(link)
    return merged
