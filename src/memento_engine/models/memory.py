"""
Memory domain models for Memento.

A Memory is a short piece of agent-authored text scoped to one workspace.
Relevance is a cached, derived value; ``consolidated`` is terminal.
"""
import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..config import DEFAULT_MEMORY_TYPE
from ..utils import utc_now, parse_datetime_utc

CONSOLIDATED_FROM_LABEL = "consolidated-from"


class LinkageKind(str, Enum):
    """Target of a linkage."""

    MEMORY = "memory"
    FILE = "file"


class Linkage(BaseModel):
    """Directed relation from a memory to another memory or a file path."""

    model_config = {"frozen": True}

    kind: LinkageKind = Field(..., description="Linkage target kind")
    ref: str = Field(..., description="Target memory id, or file path for file linkages")
    label: str = Field("", description="Free-form relation label")

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used for de-duplication."""
        return self.kind.value, self.ref, self.label


class Memory(BaseModel):
    """Core memory entity with content, classification and lifecycle tracking."""

    model_config = {"from_attributes": True, "validate_assignment": True}

    # Identity
    id: str = Field(..., description="Unique memory identifier within a workspace")
    workspace_id: str = Field(..., description="Workspace this memory belongs to")

    # Content
    content: str = Field(..., description="The memory content")
    type: str = Field(DEFAULT_MEMORY_TYPE, description="Categorical tag (observation, fact, decision, ...)")
    tags: list[str] = Field(default_factory=list, description="Lowercase tags, first-seen order")
    linkages: list[Linkage] = Field(default_factory=list, description="Relations to memories or files")

    # Lifecycle & access tracking
    created_at: Optional[datetime] = Field(default_factory=utc_now, description="Creation timestamp")
    expires_at: Optional[datetime] = Field(None, description="Optional expiry timestamp")
    access_count: int = Field(0, ge=0, description="Number of times memory was retrieved")
    last_accessed_at: Optional[datetime] = Field(None, description="Last retrieval timestamp")
    relevance: float = Field(1.0, ge=0.0, description="Cached decay-adjusted score")
    consolidated: bool = Field(False, description="Terminal flag set once merged into another record")
    consolidated_into: Optional[str] = Field(None, description="Id of the record that superseded this one")
    embedded_at: Optional[datetime] = Field(None, description="When the memory was indexed for vector search")

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        """Validate that content is not empty."""
        if not v or not v.strip():
            raise ValueError("Memory content cannot be empty")
        return v.strip()

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_MEMORY_TYPE
        return str(v.value if isinstance(v, Enum) else v).strip()

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> list[str]:
        """Accept stored JSON text or any iterable; normalize to an ordered set."""
        from .codec import decode_tags, normalize_tags
        if v is None:
            return []
        if isinstance(v, str):
            return decode_tags(v)
        return normalize_tags(v)

    @field_validator("linkages", mode="before")
    @classmethod
    def validate_linkages(cls, v: Any) -> Any:
        from .codec import decode_linkages, _linkage_from_dict
        if v is None:
            return []
        if isinstance(v, str):
            return decode_linkages(v)
        linkages = []
        for item in v:
            if isinstance(item, dict):
                item = _linkage_from_dict(item)
                if item is None:
                    continue
            linkages.append(item)
        return linkages

    @field_validator("access_count", mode="before")
    @classmethod
    def default_access_count(cls, v: Any) -> int:
        """Missing, unreadable or negative counts read as 0."""
        try:
            return max(int(v), 0)
        except (TypeError, ValueError):
            return 0

    @field_validator("relevance", mode="before")
    @classmethod
    def default_relevance(cls, v: Any) -> float:
        """Missing or non-finite relevance reads as 1.0; negative values clamp to 0."""
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 1.0
        if not math.isfinite(value):
            return 1.0
        return max(value, 0.0)

    @field_validator("consolidated", mode="before")
    @classmethod
    def coerce_consolidated(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("created_at", "expires_at", "last_accessed_at", "embedded_at", mode="before")
    @classmethod
    def coerce_utc(cls, v: Any) -> Optional[datetime]:
        """Unparsable timestamps read as absent."""
        try:
            return parse_datetime_utc(v)
        except (TypeError, ValueError, AttributeError):
            return None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """True when the memory can still be scored, decayed or consolidated."""
        if self.consolidated:
            return False
        if self.expires_at is not None and self.expires_at <= (now or utc_now()):
            return False
        return True

    @property
    def consolidated_from(self) -> list[str]:
        """Ids of the memories merged into this one, if it is a merged record."""
        return [
            link.ref for link in self.linkages
            if link.kind == LinkageKind.MEMORY and link.label == CONSOLIDATED_FROM_LABEL
        ]
