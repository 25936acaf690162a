"""
Consolidation domain models.

A consolidation collapses a cluster of active memories into one summarized
record. Tag-based runs persist a ``Consolidation`` audit record; explicit
merges create a new ``Memory`` that links back to its sources.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..utils import utc_now, parse_datetime_utc
from .memory import Memory


class ConsolidationMethod(str, Enum):
    """How the summary of a consolidation was produced."""

    TEMPLATE = "template"  # deterministic template summary
    AI = "ai"  # summary produced by the Summarizer collaborator


class Consolidation(BaseModel):
    """Record of a tag-based merge event."""

    id: str = Field(..., description="Consolidation identifier")
    workspace_id: str = Field(..., description="Workspace the sources belong to")
    summary: str = Field(..., description="Summary used for the consolidated cluster")
    source_ids: list[str] = Field(default_factory=list, description="Merged memory ids, in cluster order")
    tags: list[str] = Field(default_factory=list, description="Sorted union of source tags")
    type: str = Field("auto", description="Consolidation type")
    method: ConsolidationMethod = Field(ConsolidationMethod.TEMPLATE, description="Summary method")
    template_summary: str = Field("", description="Deterministic summary, kept as fallback/audit trail")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")

    @field_validator("created_at", mode="before")
    @classmethod
    def coerce_utc(cls, v):
        return parse_datetime_utc(v) or utc_now()


class ConsolidateInput(BaseModel):
    """Request model for an explicit merge of caller-chosen memories."""

    source_ids: list[str] = Field(..., description="Memory ids to merge (at least 2)")
    content: Optional[str] = Field(None, description="Content override for the merged memory")
    type: Optional[str] = Field(None, description="Type override for the merged memory")
    tags: list[str] = Field(default_factory=list, description="Extra tags added to the merged memory")

    @field_validator("source_ids")
    @classmethod
    def dedupe_source_ids(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(i for i in v if i))


class ExplicitConsolidationResult(BaseModel):
    """Outcome of an explicit merge. Declined merges carry the offending ids."""

    accepted: bool = Field(..., description="Whether the merge was performed")
    memory: Optional[Memory] = Field(None, description="The newly created merged memory")
    source_ids: list[str] = Field(default_factory=list, description="Sources that were merged")
    missing_ids: list[str] = Field(default_factory=list, description="Requested ids missing or already consolidated")
    method: Optional[ConsolidationMethod] = Field(None, description="How the content was produced")
    message: str = Field("", description="Human readable outcome")


class ConsolidationRunResult(BaseModel):
    """Outcome of a tag-based consolidation pass over one workspace."""

    groups: int = Field(0, description="Number of clusters consolidated")
    memories: int = Field(0, description="Total memories consolidated")
    consolidations: list[Consolidation] = Field(default_factory=list)


class ReconcileResult(BaseModel):
    """Outcome of a reconciliation sweep."""

    rolled_forward: int = Field(0, description="Sources flipped to complete a partial consolidation")
    orphans_removed: int = Field(0, description="Merged records removed because no source pointed at them")
