"""Vector index package."""
from scitrera_app_framework import Variables, get_extension

from .base import VectorIndex, VectorIndexPluginBase, EXT_VECTOR_INDEX


def get_vector_index(v: Variables = None) -> VectorIndex:
    return get_extension(EXT_VECTOR_INDEX, v)


__all__ = (
    'VectorIndex',
    'VectorIndexPluginBase',
    'get_vector_index',
    'EXT_VECTOR_INDEX',
)
