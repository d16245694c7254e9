"""Saved session catalog."""

from .repository import (
    ISessionRepository,
    InMemorySessionRepository,
    JsonFileSessionRepository,
    UsageSummary,
    filter_sessions,
    usage_summary,
)

__all__ = [
    "ISessionRepository",
    "InMemorySessionRepository",
    "JsonFileSessionRepository",
    "UsageSummary",
    "filter_sessions",
    "usage_summary",
]
