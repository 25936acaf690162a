"""
Text codec for the ``tags`` and ``linkages`` columns.

Both columns are stored as JSON text. The encoding is kept compatible with
rows written by earlier Memento releases:

- tags: ``["project-x", "auth"]``
- linkages: ``[{"type": "memory", "id": "mem_1", "label": "related"},
  {"type": "file", "path": "src/app.py", "label": ""}]``

Decoding never raises. Unparsable text, non-list payloads and malformed
elements are dropped.
"""
import json
from typing import Any, Iterable, Optional

from .memory import Linkage, LinkageKind


def normalize_tags(tags: Iterable[Any]) -> list[str]:
    """Lowercase, strip and de-duplicate tags, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        if tag is None:
            continue
        normalized = str(tag).strip().lower()
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


def decode_tags(raw: Optional[str]) -> list[str]:
    """Decode a stored tag blob. Malformed input yields an empty list."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    return normalize_tags(t for t in parsed if isinstance(t, (str, int, float)))


def encode_tags(tags: Iterable[str]) -> str:
    return json.dumps(normalize_tags(tags))


def _linkage_from_dict(item: Any) -> Optional[Linkage]:
    if not isinstance(item, dict):
        return None
    kind = item.get("type") or item.get("kind")
    if kind == LinkageKind.FILE.value:
        ref = item.get("path") or item.get("ref")
    elif kind == LinkageKind.MEMORY.value:
        ref = item.get("id") or item.get("ref")
    else:
        return None
    if not ref:
        return None
    return Linkage(kind=LinkageKind(kind), ref=str(ref), label=str(item.get("label") or ""))


def decode_linkages(raw: Optional[str]) -> list[Linkage]:
    """Decode a stored linkage blob. Malformed input yields an empty list."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    linkages = []
    for item in parsed:
        linkage = _linkage_from_dict(item)
        if linkage is not None:
            linkages.append(linkage)
    return linkages


def linkage_to_dict(linkage: Linkage) -> dict[str, str]:
    ref_key = "path" if linkage.kind == LinkageKind.FILE else "id"
    return {"type": linkage.kind.value, ref_key: linkage.ref, "label": linkage.label}


def encode_linkages(linkages: Iterable[Linkage]) -> str:
    return json.dumps([linkage_to_dict(link) for link in linkages])
