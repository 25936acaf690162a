"""Shared utilities for Memento services."""

from .id_generation import generate_id
from .datetime import utc_now, parse_datetime_utc, ensure_utc, hours_between

__all__ = [
    "generate_id",
    "utc_now",
    "parse_datetime_utc",
    "ensure_utc",
    "hours_between",
]
