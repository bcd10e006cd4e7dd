"""
engine.py - Playback timing engine.

CRITICAL INVARIANTS:
1. The cursor moves under time only through advance(); seeks are explicit
2. Every frame crossed by advance() is counted, one at a time, and the
   boundary policy runs after each single-frame step
3. Interactive controls (speed, seek, loop) clamp; they never raise
4. Only load() can fail, and only for a document with zero frames

The presentation layer calls advance(delta) once per refresh with the
measured wall-clock delta. There is no thread or timer in here.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from inputlog_core import FrameSnapshot, LogDocument
from inputlog_ingest.errors import LogLoadException, empty_document

from .index import EventIndex

logger = logging.getLogger(__name__)


DEFAULT_SPEED = 1.0
MIN_SPEED = 0.1
MAX_SPEED = 10.0

# Speed presets offered by interactive controls
SPEED_PRESETS: Tuple[float, ...] = (0.25, 0.5, 1.0, 2.0, 4.0)

# Absorbs float rounding when comparing the accumulator to a frame duration
FRAME_TOLERANCE = 1e-9


def clamp_speed(multiplier: float, fallback: float = DEFAULT_SPEED) -> float:
    """Clamp a speed multiplier into [MIN_SPEED, MAX_SPEED]; NaN yields `fallback`."""
    multiplier = float(multiplier)
    if math.isnan(multiplier):
        return fallback
    return max(MIN_SPEED, min(MAX_SPEED, multiplier))


@dataclass(frozen=True)
class PlaybackState:
    """
    Read-only snapshot of the engine.

    `current_frame` is None while the engine is disabled (nothing loaded).
    """
    current_frame: Optional[int]
    fractional_accumulator: float
    speed: float
    playing: bool
    loop_enabled: bool
    loop_range: Optional[Tuple[int, int]]


class PlaybackEngine:
    """
    Owns the frame cursor over a LogDocument/EventIndex pair.

    GUARANTEES:
    ===========
    1. Same sequence of calls = same cursor, independent of tick frequency
    2. A loop range is never jumped over, whatever the speed
    3. current_frame stays within [0, total_frames) while enabled
    """

    def __init__(self, default_speed: float = DEFAULT_SPEED):
        self._default_speed = clamp_speed(default_speed)
        self._document: Optional[LogDocument] = None
        self._index: Optional[EventIndex] = None
        self._disable()

    # --- Session lifecycle ---

    def load(self, document: LogDocument, event_index: EventIndex) -> None:
        """
        Replace any existing session with `document`.

        Resets the cursor to frame 0, clears the accumulator, pauses, disables
        looping and restores the default speed.

        Raises:
            LogLoadException: EMPTY_DOCUMENT if the document has no frames.
            The engine is left disabled in that case.
        """
        if document.total_frames == 0:
            self._disable()
            logger.warning("Refusing to load empty document")
            raise LogLoadException(empty_document())

        self._document = document
        self._index = event_index
        self._current_frame: Optional[int] = 0
        self._accumulator = 0.0
        self._speed = self._default_speed
        self._playing = False
        self._loop_enabled = False
        self._loop_range: Optional[Tuple[int, int]] = None
        logger.info(
            "Loaded document: %d frames at %.3f fps",
            document.total_frames, document.frame_rate,
        )

    def unload(self) -> None:
        self._disable()

    def _disable(self) -> None:
        self._document = None
        self._index = None
        self._current_frame = None
        self._accumulator = 0.0
        self._speed = self._default_speed
        self._playing = False
        self._loop_enabled = False
        self._loop_range = None

    # --- Read access ---

    @property
    def enabled(self) -> bool:
        return self._document is not None

    @property
    def document(self) -> Optional[LogDocument]:
        return self._document

    @property
    def event_index(self) -> Optional[EventIndex]:
        return self._index

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            current_frame=self._current_frame,
            fractional_accumulator=self._accumulator,
            speed=self._speed,
            playing=self._playing,
            loop_enabled=self._loop_enabled,
            loop_range=self._loop_range,
        )

    @property
    def current_frame(self) -> Optional[int]:
        return self._current_frame

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def loop_enabled(self) -> bool:
        return self._loop_enabled

    @property
    def loop_range(self) -> Optional[Tuple[int, int]]:
        return self._loop_range

    @property
    def frame_duration(self) -> Optional[float]:
        return self._document.frame_duration if self._document else None

    def current_snapshot(self) -> Optional[FrameSnapshot]:
        if self._document is None:
            return None
        return self._document.frame(self._current_frame)

    def _last_frame(self) -> int:
        return self._document.total_frames - 1

    def effective_start(self) -> int:
        """First frame of the active loop range, else 0."""
        if self._loop_enabled and self._loop_range is not None:
            return self._loop_range[0]
        return 0

    def effective_end(self) -> int:
        """Last frame of the active loop range, else the last frame."""
        if self._loop_enabled and self._loop_range is not None:
            return self._loop_range[1]
        return self._last_frame() if self._document else 0

    def is_at_start(self) -> bool:
        return self.enabled and self._current_frame <= self.effective_start()

    def is_at_end(self) -> bool:
        return self.enabled and self._current_frame >= self.effective_end()

    # --- Interactive controls (never raise) ---

    def play(self) -> None:
        if self.enabled and not self._playing:
            self._playing = True

    def pause(self) -> None:
        if self.enabled and self._playing:
            self._playing = False

    def toggle_playback(self) -> None:
        if self._playing:
            self.pause()
        else:
            self.play()

    def set_speed(self, multiplier: float) -> None:
        """Store `multiplier` clamped to [0.1, 10.0]."""
        if not self.enabled:
            return
        clamped = clamp_speed(multiplier, fallback=self._speed)
        if clamped != multiplier:
            logger.debug("Speed %r clamped to %r", multiplier, clamped)
        self._speed = clamped

    def next_speed_preset(self) -> float:
        """Next preset above the current speed, or the highest preset."""
        for preset in SPEED_PRESETS:
            if preset > self._speed:
                return preset
        return SPEED_PRESETS[-1]

    def previous_speed_preset(self) -> float:
        """Next preset below the current speed, or the lowest preset."""
        for preset in reversed(SPEED_PRESETS):
            if preset < self._speed:
                return preset
        return SPEED_PRESETS[0]

    def _clamp_frame(self, frame: float) -> Optional[int]:
        if isinstance(frame, float):
            if math.isnan(frame):
                return None
            if math.isinf(frame):
                return self._last_frame() if frame > 0 else 0
        return max(0, min(self._last_frame(), int(frame)))

    def seek(self, frame: int) -> None:
        """Move the cursor to `frame` clamped to the log; clears the accumulator."""
        if not self.enabled:
            return
        target = self._clamp_frame(frame)
        if target is None:
            return
        if target != frame:
            logger.debug("Seek target %r clamped to %d", frame, target)
        self._current_frame = target
        self._accumulator = 0.0

    def set_loop(self, loop_range: Optional[Tuple[int, int]]) -> None:
        """
        Set or clear the loop range.

        None disables looping and clears the range. A (start, end) pair is
        reordered if reversed, clamped to the log bounds, stored, and enables
        looping.
        """
        if not self.enabled:
            return
        if loop_range is None:
            self._loop_enabled = False
            self._loop_range = None
            return

        start = self._clamp_frame(loop_range[0])
        end = self._clamp_frame(loop_range[1])
        if start is None or end is None:
            return
        if start > end:
            start, end = end, start
        if (start, end) != tuple(loop_range):
            logger.debug("Loop range %r normalized to (%d, %d)", loop_range, start, end)
        self._loop_range = (start, end)
        self._loop_enabled = True

    def set_loop_enabled(self, enabled: bool) -> None:
        """Toggle looping, keeping any range; without a range the whole log loops."""
        if self.enabled:
            self._loop_enabled = bool(enabled)

    def step_forward(self) -> None:
        """One frame forward; wraps to the range start when looping."""
        if not self.enabled:
            return
        if self._current_frame >= self.effective_end():
            if self._loop_enabled:
                self._current_frame = self.effective_start()
        else:
            self._current_frame += 1
        self._accumulator = 0.0

    def step_backward(self) -> None:
        """One frame back; wraps to the range end when looping."""
        if not self.enabled:
            return
        if self._current_frame <= self.effective_start():
            if self._loop_enabled:
                self._current_frame = self.effective_end()
        else:
            self._current_frame -= 1
        self._accumulator = 0.0

    def go_to_start(self) -> None:
        if self.enabled:
            self.seek(self.effective_start())

    def go_to_end(self) -> None:
        if self.enabled:
            self.seek(self.effective_end())

    def seek_to_next_transition(self, mapping_id: int) -> Optional[int]:
        """Seek to the next transition of `mapping_id`; cursor unchanged if none."""
        if not self.enabled:
            return None
        target = self._index.next_transition(mapping_id, self._current_frame)
        if target is not None:
            self.seek(target)
        return target

    def seek_to_previous_transition(self, mapping_id: int) -> Optional[int]:
        if not self.enabled:
            return None
        target = self._index.previous_transition(mapping_id, self._current_frame)
        if target is not None:
            self.seek(target)
        return target

    # --- Time ---

    def advance(self, delta_real_seconds: float) -> int:
        """
        Advance playback by a measured wall-clock delta.

        Scales the delta by the speed, adds it to the fractional accumulator
        and steps one frame per whole frame duration accumulated, applying
        the boundary policy after every single step:
        - looping with a range: past range end -> range start
        - past the last frame, looping without a range -> frame 0
        - past the last frame otherwise -> clamp to the last frame and stop

        Parameters:
            delta_real_seconds (float): Seconds since the previous call.
            Non-positive or non-finite values are ignored.

        Returns:
            int: Number of single-frame steps taken.
        """
        if not self.enabled or not self._playing:
            return 0
        if not math.isfinite(delta_real_seconds) or delta_real_seconds <= 0:
            return 0

        frame_duration = self._document.frame_duration
        self._accumulator += delta_real_seconds * self._speed

        steps = 0
        while self._accumulator + FRAME_TOLERANCE >= frame_duration:
            self._accumulator = max(0.0, self._accumulator - frame_duration)
            self._current_frame += 1
            steps += 1
            if self._apply_boundary():
                break
        return steps

    def _apply_boundary(self) -> bool:
        """Apply the per-frame boundary policy. Returns True if playback stopped."""
        if (
            self._loop_enabled
            and self._loop_range is not None
            and self._current_frame > self._loop_range[1]
        ):
            self._current_frame = self._loop_range[0]
            return False

        if self._current_frame >= self._document.total_frames:
            if self._loop_enabled and self._loop_range is None:
                self._current_frame = 0
                return False
            self._current_frame = self._last_frame()
            self._playing = False
            self._accumulator = 0.0
            logger.debug("Reached end of log at frame %d", self._current_frame)
            return True

        return False
