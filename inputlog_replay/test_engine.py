"""
Tests for the playback engine: timing, speed, looping, seeking.
"""
from typing import Any, Dict, List, Optional

import pytest

from inputlog_core import LogDocument
from inputlog_ingest import LoadErrorCode, LogLoadException, build_document

from .engine import (
    MAX_SPEED,
    MIN_SPEED,
    SPEED_PRESETS,
    PlaybackEngine,
    clamp_speed,
)
from .index import EventIndex

FD = 1.0 / 60.0


def make_document(
    total_frames: int = 100,
    frame_rate: float = 60.0,
    events: Optional[Dict[int, List[Dict[str, Any]]]] = None,
) -> LogDocument:
    """Build a verified document with one button (id 0) and one trigger (id 1)."""
    events = events or {}
    return build_document({
        "version": 1,
        "frame_rate": frame_rate,
        "mappings": [
            {"id": 0, "name": "A Button", "kind": "button"},
            {"id": 1, "name": "Trigger", "kind": "axis1d"},
        ],
        "frames": [
            {"frame_number": n, "events": events.get(n, [])}
            for n in range(total_frames)
        ],
    })


def make_engine(total_frames: int = 100, **kwargs) -> PlaybackEngine:
    document = make_document(total_frames, **kwargs)
    engine = PlaybackEngine()
    engine.load(document, EventIndex.build(document))
    return engine


class TestLoad:

    def test_load_resets_state(self):
        engine = make_engine()
        state = engine.state

        assert state.current_frame == 0
        assert state.fractional_accumulator == 0.0
        assert state.speed == 1.0
        assert state.playing is False
        assert state.loop_enabled is False
        assert state.loop_range is None

    def test_reload_discards_previous_session(self):
        engine = make_engine()
        engine.seek(50)
        engine.set_speed(4.0)
        engine.set_loop((10, 20))
        engine.play()

        document = make_document(10)
        engine.load(document, EventIndex.build(document))

        assert engine.current_frame == 0
        assert engine.speed == 1.0
        assert engine.playing is False
        assert engine.loop_range is None

    def test_empty_document_rejected(self):
        document = make_document(0)
        engine = PlaybackEngine()

        with pytest.raises(LogLoadException) as exc_info:
            engine.load(document, EventIndex.build(document))

        assert exc_info.value.error_code == LoadErrorCode.EMPTY_DOCUMENT
        assert engine.enabled is False
        assert engine.current_frame is None

    def test_default_speed_applies_on_load(self):
        document = make_document(10)
        engine = PlaybackEngine(default_speed=2.0)
        engine.load(document, EventIndex.build(document))
        assert engine.speed == 2.0


class TestDisabledEngine:

    def test_controls_are_no_ops(self):
        engine = PlaybackEngine()

        engine.play()
        engine.seek(5)
        engine.set_speed(3.0)
        engine.set_loop((1, 2))
        engine.step_forward()

        assert engine.advance(1.0) == 0
        assert engine.playing is False
        assert engine.current_frame is None
        assert engine.loop_range is None
        assert engine.current_snapshot() is None
        assert engine.seek_to_next_transition(0) is None

    def test_unload_disables(self):
        engine = make_engine()
        engine.unload()

        assert engine.enabled is False
        assert engine.document is None
        assert engine.state.current_frame is None


class TestAdvance:

    def test_accumulates_fractional_frames(self):
        """60 fps at 1x: 0.01667 s -> frame 1, then 0.03334 s -> frame 3."""
        engine = make_engine()
        engine.play()

        assert engine.advance(0.01667) == 1
        assert engine.current_frame == 1

        assert engine.advance(0.03334) == 2
        assert engine.current_frame == 3

    def test_speed_scales_delta(self):
        engine = make_engine()
        engine.set_speed(2.0)
        engine.play()

        engine.advance(0.01667)
        assert engine.current_frame == 2

    def test_sub_frame_delta_is_kept(self):
        engine = make_engine()
        engine.play()

        assert engine.advance(FD / 2) == 0
        assert engine.current_frame == 0
        assert engine.state.fractional_accumulator == pytest.approx(FD / 2)

        engine.advance(FD / 2)
        assert engine.current_frame == 1

    def test_tick_rate_independence(self):
        """One second in many small ticks lands where one big tick does."""
        coarse = make_engine()
        fine = make_engine()
        coarse.play()
        fine.play()

        coarse.advance(0.5)
        for _ in range(250):
            fine.advance(0.002)

        assert coarse.current_frame == fine.current_frame == 30

    def test_paused_does_not_move(self):
        engine = make_engine()
        assert engine.advance(1.0) == 0
        assert engine.current_frame == 0

    @pytest.mark.parametrize("delta", [0.0, -0.5, float("nan"), float("inf")])
    def test_invalid_delta_ignored(self, delta):
        engine = make_engine()
        engine.play()

        assert engine.advance(delta) == 0
        assert engine.current_frame == 0
        assert engine.state.fractional_accumulator == 0.0

    def test_end_of_log_clamps_and_pauses(self):
        engine = make_engine()
        engine.seek(98)
        engine.play()

        steps = engine.advance(5 * FD)

        assert steps == 2
        assert engine.current_frame == 99
        assert engine.playing is False
        assert engine.state.fractional_accumulator == 0.0

    def test_whole_log_loop_wraps_to_zero(self):
        engine = make_engine(10)
        engine.set_loop_enabled(True)
        engine.seek(9)
        engine.play()

        engine.advance(2 * FD)

        assert engine.current_frame == 1
        assert engine.playing is True


class TestLoopRange:

    def test_wraps_at_range_end(self):
        """Loop (10, 20), start at 19, cross two frame boundaries -> frame 10."""
        engine = make_engine()
        engine.set_loop((10, 20))
        engine.seek(19)
        engine.play()

        engine.advance(2 * FD)

        assert engine.current_frame == 10
        assert engine.playing is True

    def test_fast_playback_never_escapes_range(self):
        engine = make_engine()
        engine.set_loop((10, 20))
        engine.seek(10)
        engine.set_speed(MAX_SPEED)
        engine.play()

        for _ in range(100):
            engine.advance(0.1)
            assert 10 <= engine.current_frame <= 20

    def test_range_ending_on_last_frame_keeps_looping(self):
        """Range wrap wins over the end-of-log stop when the range ends on the last frame."""
        engine = make_engine(30)
        engine.set_loop((25, 29))
        engine.seek(25)
        engine.set_speed(MAX_SPEED)
        engine.play()

        for _ in range(50):
            engine.advance(0.1)
            assert 25 <= engine.current_frame <= 29
            assert engine.playing is True

    def test_reversed_range_is_swapped(self):
        engine = make_engine()
        engine.set_loop((20, 10))
        assert engine.loop_range == (10, 20)

    def test_range_clamped_to_log(self):
        engine = make_engine()
        engine.set_loop((-5, 500))
        assert engine.loop_range == (0, 99)

    def test_clear_loop(self):
        engine = make_engine()
        engine.set_loop((10, 20))
        engine.set_loop(None)

        assert engine.loop_enabled is False
        assert engine.loop_range is None

    def test_disabling_loop_keeps_range(self):
        engine = make_engine()
        engine.set_loop((10, 20))
        engine.set_loop_enabled(False)

        assert engine.loop_range == (10, 20)
        assert engine.effective_start() == 0
        assert engine.effective_end() == 99

    def test_cursor_past_range_runs_to_range_start(self):
        engine = make_engine()
        engine.seek(50)
        engine.set_loop((10, 20))
        engine.play()

        engine.advance(FD)
        assert engine.current_frame == 10


class TestSpeed:

    @pytest.mark.parametrize("requested,expected", [
        (15.0, MAX_SPEED),
        (0.01, MIN_SPEED),
        (-3.0, MIN_SPEED),
        (2.5, 2.5),
    ])
    def test_speed_is_clamped(self, requested, expected):
        engine = make_engine()
        engine.set_speed(requested)
        assert engine.speed == expected

    def test_nan_speed_keeps_current(self):
        engine = make_engine()
        engine.set_speed(2.0)
        engine.set_speed(float("nan"))
        assert engine.speed == 2.0

    def test_clamp_speed_fallback(self):
        assert clamp_speed(float("nan")) == 1.0
        assert clamp_speed(float("inf")) == MAX_SPEED

    def test_presets(self):
        engine = make_engine()

        assert engine.next_speed_preset() == 2.0
        assert engine.previous_speed_preset() == 0.5

        engine.set_speed(SPEED_PRESETS[-1])
        assert engine.next_speed_preset() == SPEED_PRESETS[-1]

        engine.set_speed(MIN_SPEED)
        assert engine.previous_speed_preset() == SPEED_PRESETS[0]

    def test_preset_does_not_apply(self):
        engine = make_engine()
        engine.next_speed_preset()
        assert engine.speed == 1.0


class TestSeek:

    def test_seek_clamps_high(self):
        engine = make_engine()
        engine.seek(500)
        assert engine.current_frame == 99

    def test_seek_clamps_low(self):
        engine = make_engine()
        engine.seek(-3)
        assert engine.current_frame == 0

    def test_seek_nan_ignored(self):
        engine = make_engine()
        engine.seek(40)
        engine.seek(float("nan"))
        assert engine.current_frame == 40

    def test_seek_infinity_clamps(self):
        engine = make_engine()
        engine.seek(float("inf"))
        assert engine.current_frame == 99

    def test_seek_clears_accumulator(self):
        engine = make_engine()
        engine.play()
        engine.advance(FD / 2)

        engine.seek(10)
        assert engine.state.fractional_accumulator == 0.0

    def test_seek_keeps_play_state(self):
        engine = make_engine()
        engine.play()
        engine.seek(10)
        assert engine.playing is True

    def test_current_snapshot_follows_cursor(self):
        engine = make_engine()
        engine.seek(42)
        assert engine.current_snapshot().frame_number == 42


class TestStepping:

    def test_step_forward_stops_at_end(self):
        engine = make_engine(5)
        engine.go_to_end()
        engine.step_forward()
        assert engine.current_frame == 4

    def test_step_backward_stops_at_start(self):
        engine = make_engine(5)
        engine.step_backward()
        assert engine.current_frame == 0

    def test_steps_wrap_inside_loop(self):
        engine = make_engine()
        engine.set_loop((10, 20))
        engine.seek(20)

        engine.step_forward()
        assert engine.current_frame == 10

        engine.step_backward()
        assert engine.current_frame == 20

    def test_go_to_start_and_end_respect_loop(self):
        engine = make_engine()
        engine.set_loop((10, 20))

        engine.go_to_end()
        assert engine.current_frame == 20
        assert engine.is_at_end()

        engine.go_to_start()
        assert engine.current_frame == 10
        assert engine.is_at_start()

    def test_toggle_playback(self):
        engine = make_engine()
        engine.toggle_playback()
        assert engine.playing is True
        engine.toggle_playback()
        assert engine.playing is False


class TestTransitionSeek:

    def test_jump_between_transitions(self):
        events = {
            10: [{"mapping_id": 0, "state": "pressed"}],
            11: [{"mapping_id": 0, "state": "held"}],
            30: [{"mapping_id": 0, "state": "released"}],
        }
        engine = make_engine(50, events=events)

        assert engine.seek_to_next_transition(0) == 10
        assert engine.seek_to_next_transition(0) == 11
        # Frame 12 has no event: held -> released(neutral)
        assert engine.seek_to_next_transition(0) == 12
        assert engine.current_frame == 12

        assert engine.seek_to_previous_transition(0) == 11
        assert engine.current_frame == 11

    def test_no_transition_leaves_cursor(self):
        engine = make_engine()
        engine.seek(40)

        assert engine.seek_to_next_transition(1) is None
        assert engine.seek_to_next_transition(99) is None
        assert engine.current_frame == 40
