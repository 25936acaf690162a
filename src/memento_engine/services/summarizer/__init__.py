"""Summarizer package."""
from scitrera_app_framework import Variables, get_extension

from .base import Summarizer, SummarizerPluginBase, EXT_SUMMARIZER_SERVICE


def get_summarizer(v: Variables = None) -> Summarizer:
    return get_extension(EXT_SUMMARIZER_SERVICE, v)


__all__ = (
    'Summarizer',
    'SummarizerPluginBase',
    'get_summarizer',
    'EXT_SUMMARIZER_SERVICE',
)
