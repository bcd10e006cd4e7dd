"""
Input Log Replay Package.

Core Principles:
- READ-ONLY: replay never modifies the document
- DETERMINISTIC: same document + same calls -> same cursor, always
- CLAMPING: interactive controls absorb out-of-range input
"""

from .engine import (
    DEFAULT_SPEED,
    MAX_SPEED,
    MIN_SPEED,
    SPEED_PRESETS,
    PlaybackEngine,
    PlaybackState,
    clamp_speed,
)
from .filter import FilterState
from .index import EventIndex
from .search import SearchQuery, SearchResult, find_matches

__all__ = [
    "DEFAULT_SPEED",
    "MAX_SPEED",
    "MIN_SPEED",
    "SPEED_PRESETS",
    "EventIndex",
    "FilterState",
    "PlaybackEngine",
    "PlaybackState",
    "SearchQuery",
    "SearchResult",
    "clamp_speed",
    "find_matches",
]
