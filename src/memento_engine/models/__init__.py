"""
Core domain models for Memento.

Exports the Pydantic models for memories, linkages, consolidations and
retrieval results.
"""
from .memory import (
    CONSOLIDATED_FROM_LABEL,
    Linkage,
    LinkageKind,
    Memory,
)
from .consolidation import (
    ConsolidateInput,
    Consolidation,
    ConsolidationMethod,
    ConsolidationRunResult,
    ExplicitConsolidationResult,
    ReconcileResult,
)
from .search import HybridResult, ScoredMemory, VectorMatch

__all__ = [
    # Memory models
    "Memory",
    "Linkage",
    "LinkageKind",
    "CONSOLIDATED_FROM_LABEL",
    # Consolidation models
    "Consolidation",
    "ConsolidationMethod",
    "ConsolidateInput",
    "ConsolidationRunResult",
    "ExplicitConsolidationResult",
    "ReconcileResult",
    # Retrieval models
    "ScoredMemory",
    "VectorMatch",
    "HybridResult",
]
