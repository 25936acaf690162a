"""Memento engine: relevance scoring, decay and consolidation for agent memory workspaces."""

__version__ = "0.3.0"
