"""
Input Log Viewer Package.

Session/controller layer and headless CLI on top of the replay core.
"""

from .config import Settings, ViewerPreferences
from .session import AppState, Bookmark, SessionEvent, ViewerSession, transition

__all__ = [
    "AppState",
    "Bookmark",
    "SessionEvent",
    "Settings",
    "ViewerPreferences",
    "ViewerSession",
    "transition",
]
