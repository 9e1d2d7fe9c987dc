"""Suggestion and modification logs on disk."""

from coden.storage.log_store import LogStore
from coden.storage.models import (
    SuggestionContext,
    SuggestionEntry,
    SuggestionMetadata,
    SuggestionRange,
)

__all__ = [
    "LogStore",
    "SuggestionContext",
    "SuggestionEntry",
    "SuggestionMetadata",
    "SuggestionRange",
]
