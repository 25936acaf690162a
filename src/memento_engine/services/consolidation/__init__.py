"""Consolidation service package."""
from scitrera_app_framework import Variables, get_extension

from .base import (
    ConsolidationError,
    ConsolidationService,
    ConsolidationServicePluginBase,
    EXT_CONSOLIDATION_SERVICE,
)
from .grouping import (
    UnionFind,
    find_consolidation_groups,
    generate_template_summary,
    majority_type,
    merge_linkages,
    sorted_tag_union,
)


def get_consolidation_service(v: Variables = None) -> ConsolidationService:
    """Get the consolidation service instance."""
    return get_extension(EXT_CONSOLIDATION_SERVICE, v)


__all__ = (
    'ConsolidationError',
    'ConsolidationService',
    'ConsolidationServicePluginBase',
    'UnionFind',
    'find_consolidation_groups',
    'generate_template_summary',
    'get_consolidation_service',
    'majority_type',
    'merge_linkages',
    'sorted_tag_union',
    'EXT_CONSOLIDATION_SERVICE',
)
