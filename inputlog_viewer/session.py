"""
session.py - Viewer session aggregate and application state controller.

A session owns exactly one (LogDocument, EventIndex, PlaybackEngine) triple.
Opening a file replaces the whole triple or, on failure, discards it; the
viewer never shows a partially loaded log.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from inputlog_core import LogDocument
from inputlog_ingest import format_for_path, supported_extensions, try_parse
from inputlog_ingest.errors import (
    LoadError,
    LogLoadException,
    file_not_found,
    file_read_error,
    unsupported_file_type,
)
from inputlog_replay import (
    EventIndex,
    FilterState,
    PlaybackEngine,
    SearchQuery,
    SearchResult,
    find_matches,
)

from .config import ViewerPreferences

logger = logging.getLogger(__name__)


class AppState(str, Enum):
    NO_FILE_LOADED = "NO_FILE_LOADED"
    LOADING = "LOADING"
    READY = "READY"
    PLAYING = "PLAYING"
    ERROR = "ERROR"


class SessionEvent(str, Enum):
    OPEN = "OPEN"
    LOAD_SUCCEEDED = "LOAD_SUCCEEDED"
    LOAD_FAILED = "LOAD_FAILED"
    PLAY = "PLAY"
    PAUSE = "PAUSE"
    PLAYBACK_ENDED = "PLAYBACK_ENDED"
    CLOSE = "CLOSE"


_TRANSITIONS: Dict[Tuple[AppState, SessionEvent], AppState] = {
    (AppState.NO_FILE_LOADED, SessionEvent.OPEN): AppState.LOADING,
    (AppState.READY, SessionEvent.OPEN): AppState.LOADING,
    (AppState.PLAYING, SessionEvent.OPEN): AppState.LOADING,
    (AppState.ERROR, SessionEvent.OPEN): AppState.LOADING,
    (AppState.LOADING, SessionEvent.LOAD_SUCCEEDED): AppState.READY,
    (AppState.LOADING, SessionEvent.LOAD_FAILED): AppState.ERROR,
    (AppState.READY, SessionEvent.PLAY): AppState.PLAYING,
    (AppState.PLAYING, SessionEvent.PAUSE): AppState.READY,
    (AppState.PLAYING, SessionEvent.PLAYBACK_ENDED): AppState.READY,
}


def transition(state: AppState, event: SessionEvent) -> AppState:
    """
    Pure state transition function.

    CLOSE always leads to NO_FILE_LOADED. Events that make no sense in the
    current state leave it unchanged.
    """
    if event == SessionEvent.CLOSE:
        return AppState.NO_FILE_LOADED
    return _TRANSITIONS.get((state, event), state)


@dataclass(frozen=True)
class Bookmark:
    """A marked frame with an optional label."""
    frame: int
    label: Optional[str] = None


class ViewerSession:
    """
    Session-scoped aggregate driven by the presentation layer.

    The presentation layer reads `document`, `event_index` and
    `engine.state`, and calls `tick()` once per refresh.
    """

    def __init__(self, preferences: Optional[ViewerPreferences] = None, max_recent_files: int = 10):
        self.preferences = preferences or ViewerPreferences()
        self.max_recent_files = max_recent_files
        self.state = AppState.NO_FILE_LOADED
        self.engine = PlaybackEngine(default_speed=self.preferences.default_speed)
        self.document: Optional[LogDocument] = None
        self.event_index: Optional[EventIndex] = None
        self.source: Optional[str] = None
        self.last_error: Optional[LoadError] = None
        self.filter = FilterState()
        self.search_result = SearchResult()
        self._bookmarks: Dict[int, Bookmark] = {}

    def _dispatch(self, event: SessionEvent) -> None:
        new_state = transition(self.state, event)
        if new_state != self.state:
            logger.debug("Session %s -> %s on %s", self.state.value, new_state.value, event.value)
        self.state = new_state

    # --- Loading ---

    def open_bytes(self, data: bytes, source: Optional[str] = None, fmt: str = "json") -> bool:
        """
        Parse `data` and replace the current session with it.

        Returns:
            bool: True on success. On failure the previous session is
            discarded, `state` is ERROR and `last_error` says why.
        """
        self._dispatch(SessionEvent.OPEN)

        document, error = try_parse(data, fmt)
        if error is not None:
            return self._fail(error, source)

        index = EventIndex.build(document)
        engine = PlaybackEngine(default_speed=self.preferences.default_speed)
        try:
            engine.load(document, index)
        except LogLoadException as e:
            return self._fail(e.error, source)
        engine.set_loop_enabled(self.preferences.loop_enabled)

        # Atomic replacement of the whole triple
        self.document = document
        self.event_index = index
        self.engine = engine
        self.source = source
        self.last_error = None
        self.filter = FilterState()
        self.filter.initialize_from_document(document)
        self.search_result = SearchResult()
        self._bookmarks = {}

        self._dispatch(SessionEvent.LOAD_SUCCEEDED)
        logger.info(
            "Opened %s: %d frames, %d mappings",
            source or "<bytes>", document.total_frames, len(document.mappings),
        )
        return True

    def open_file(self, path: str) -> bool:
        """Read and open a log file; the file type is chosen by extension."""
        path = str(path)
        try:
            fmt = format_for_path(path)
        except KeyError:
            self._dispatch(SessionEvent.OPEN)
            return self._fail(unsupported_file_type(path, supported_extensions()), path)

        try:
            data = Path(path).read_bytes()
        except FileNotFoundError:
            self._dispatch(SessionEvent.OPEN)
            return self._fail(file_not_found(path), path)
        except PermissionError:
            self._dispatch(SessionEvent.OPEN)
            return self._fail(file_read_error(path, "Permission denied"), path)
        except OSError as e:
            self._dispatch(SessionEvent.OPEN)
            return self._fail(file_read_error(path, e.strerror or str(e)), path)

        if not self.open_bytes(data, source=path, fmt=fmt):
            return False
        self.preferences.add_recent_file(path, limit=self.max_recent_files)
        return True

    def _fail(self, error: LoadError, source: Optional[str]) -> bool:
        self.engine.unload()
        self.document = None
        self.event_index = None
        self.source = source
        self.last_error = error
        self.search_result = SearchResult()
        self._bookmarks = {}
        self._dispatch(SessionEvent.LOAD_FAILED)
        logger.warning(
            "Failed to open %s: %s (%s)",
            source or "<bytes>", error.error_code.value, error.message,
        )
        return False

    def close(self) -> None:
        self.engine.unload()
        self.document = None
        self.event_index = None
        self.source = None
        self.last_error = None
        self.search_result = SearchResult()
        self._bookmarks = {}
        self._dispatch(SessionEvent.CLOSE)

    # --- Playback ---

    def play(self) -> None:
        self.engine.play()
        if self.engine.playing:
            self._dispatch(SessionEvent.PLAY)

    def pause(self) -> None:
        self.engine.pause()
        self._dispatch(SessionEvent.PAUSE)

    def toggle_playback(self) -> None:
        if self.engine.playing:
            self.pause()
        else:
            self.play()

    def tick(self, delta_real_seconds: float) -> int:
        """Advance playback by one refresh; returns frames stepped."""
        steps = self.engine.advance(delta_real_seconds)
        if self.state == AppState.PLAYING and not self.engine.playing:
            self._dispatch(SessionEvent.PLAYBACK_ENDED)
        return steps

    # --- Bookmarks ---

    @property
    def bookmarks(self) -> List[Bookmark]:
        return [self._bookmarks[frame] for frame in sorted(self._bookmarks)]

    def toggle_bookmark(self, frame: Optional[int] = None, label: Optional[str] = None) -> bool:
        """
        Add or remove a bookmark (at the cursor when `frame` is None).

        Returns:
            bool: True if a bookmark was added, False if one was removed or
            nothing is loaded.
        """
        if self.document is None:
            return False
        if frame is None:
            frame = self.engine.current_frame
        frame = max(0, min(self.document.total_frames - 1, int(frame)))
        if frame in self._bookmarks:
            del self._bookmarks[frame]
            return False
        self._bookmarks[frame] = Bookmark(frame=frame, label=label)
        return True

    def next_bookmark(self) -> Optional[int]:
        """Seek to the first bookmark after the cursor."""
        if self.document is None:
            return None
        current = self.engine.current_frame
        for frame in sorted(self._bookmarks):
            if frame > current:
                self.engine.seek(frame)
                return frame
        return None

    def previous_bookmark(self) -> Optional[int]:
        if self.document is None:
            return None
        current = self.engine.current_frame
        for frame in sorted(self._bookmarks, reverse=True):
            if frame < current:
                self.engine.seek(frame)
                return frame
        return None

    # --- Search ---

    def search(self, query: SearchQuery) -> SearchResult:
        """Run `query` and seek to the first match at or after the cursor."""
        if self.document is None:
            self.search_result = SearchResult()
            return self.search_result
        result = SearchResult.from_matches(find_matches(self.document, query))
        result.set_closest_to_frame(self.engine.current_frame)
        if result.current_frame is not None:
            self.engine.seek(result.current_frame)
        self.search_result = result
        logger.debug("Search %r matched %d frame(s)", query, result.count)
        return result

    def next_match(self) -> Optional[int]:
        frame = self.search_result.next()
        if frame is not None:
            self.engine.seek(frame)
        return frame

    def previous_match(self) -> Optional[int]:
        frame = self.search_result.prev()
        if frame is not None:
            self.engine.seek(frame)
        return frame
