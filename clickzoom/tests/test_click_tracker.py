"""Tests for zoomkit.click_tracker: the recording session state machine."""

import logging

from zoomkit.click_tracker import ClickTracker
from zoomkit.models import ClickEvent, CursorPosition, MouseButton, RecordingMetadata


WALL_START = 1_700_000_000_000


class TestLifecycle:
    def test_start_and_stop(self, tracker, fake_hook) -> None:
        states = []
        tracker.recording_changed.connect(states.append)

        assert tracker.start("screen:1", "Display 2") is True
        assert tracker.is_active
        assert fake_hook.start_calls == 1
        assert tracker._timer.isActive()

        meta = tracker.stop()
        assert not tracker.is_active
        assert not tracker._timer.isActive()
        assert fake_hook.stop_calls == 1
        assert states == [True, False]

        assert meta.version == 1
        assert meta.recording_start_ms == WALL_START
        assert meta.source_id == "screen:1"
        assert meta.source_name == "Display 2"
        assert meta.clicks == ()
        assert meta.cursor_positions == ()

    def test_start_twice_is_noop(self, tracker, fake_hook, caplog) -> None:
        assert tracker.start()
        with caplog.at_level(logging.WARNING):
            assert tracker.start() is False
        assert "already active" in caplog.text
        assert fake_hook.start_calls == 1
        assert tracker.is_active

    def test_stop_while_idle(self, tracker, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            meta = tracker.stop()
        assert meta == RecordingMetadata.empty()
        assert "not active" in caplog.text

    def test_single_tracker_per_process(self, tracker, dual_locator, make_hook) -> None:
        other = ClickTracker(make_hook(), dual_locator)
        assert tracker.start()
        assert other.start() is False
        assert not other.is_active
        tracker.stop()
        assert other.start()
        other.stop()

    def test_restart_clears_buffers(self, tracker, fake_hook) -> None:
        tracker.start()
        fake_hook.mouse_down.emit(10, 10, 1)
        first = tracker.stop()
        tracker.start()
        second = tracker.stop()
        assert len(first.clicks) == 1
        assert second.clicks == ()

    def test_snapshot_is_independent(self, tracker, fake_hook) -> None:
        tracker.start()
        fake_hook.mouse_down.emit(10, 10, 1)
        meta = tracker.stop()
        tracker.start()
        fake_hook.mouse_down.emit(20, 20, 1)
        assert len(meta.clicks) == 1
        tracker.stop()


class TestCollaboratorFailures:
    def test_hook_start_failure(self, make_hook, dual_locator, caplog) -> None:
        hook = make_hook(fail_start=True)
        tracker = ClickTracker(hook, dual_locator)
        with caplog.at_level(logging.ERROR):
            assert tracker.start() is False
        assert not tracker.is_active
        assert ClickTracker._active_tracker is None
        assert hook.stop_calls == 1
        assert "Failed to start" in caplog.text

        hook.fail_start = False
        assert tracker.start()
        tracker.stop()

    def test_hook_stop_failure_still_goes_idle(self, make_hook, dual_locator, fake_clock) -> None:
        hook = make_hook(fail_stop=True)
        tracker = ClickTracker(hook, dual_locator, clock=fake_clock)
        tracker.start()
        fake_clock.advance(100)
        hook.mouse_down.emit(5, 5, 1)

        meta = tracker.stop()
        assert len(meta.clicks) == 1
        assert not tracker.is_active
        assert ClickTracker._active_tracker is None
        assert tracker.start()
        tracker.stop()

    def test_events_after_stop_are_ignored(self, tracker, fake_hook) -> None:
        tracker.start()
        tracker.stop()
        fake_hook.mouse_down.emit(10, 10, 1)
        fake_hook.mouse_move.emit(10, 10)
        tracker._sample_cursor()
        assert tracker.click_count == 0


class TestClicks:
    def test_click_is_display_relative(self, tracker, fake_hook, fake_clock) -> None:
        tracker.start()
        fake_clock.advance(250)
        fake_hook.mouse_down.emit(2000, 100, int(MouseButton.RIGHT))
        assert tracker.click_count == 1
        meta = tracker.stop()
        assert meta.clicks[0] == ClickEvent(
            timestamp_ms=250, x=80, y=100, screen_width=2560, screen_height=1440,
            button=MouseButton.RIGHT,
        )

    def test_click_outside_displays_uses_nearest(self, tracker, fake_hook) -> None:
        tracker.start()
        fake_hook.mouse_down.emit(-10, 50, 1)
        meta = tracker.stop()
        c = meta.clicks[0]
        assert (c.x, c.y, c.screen_width, c.screen_height) == (-10, 50, 1920, 1080)

    def test_unknown_button_recorded_as_left(self, tracker, fake_hook) -> None:
        tracker.start()
        fake_hook.mouse_down.emit(1, 1, 99)
        assert tracker.stop().clicks[0].button == MouseButton.LEFT

    def test_clicks_recorded_immediately(self, tracker, fake_hook, fake_clock) -> None:
        tracker.start()
        for i in range(5):
            fake_clock.advance(40)
            fake_hook.mouse_down.emit(100 + i, 100, 1)
            assert tracker.click_count == i + 1
        meta = tracker.stop()
        assert [c.timestamp_ms for c in meta.clicks] == [40, 80, 120, 160, 200]


class TestCursorSampling:
    def test_no_move_no_sample(self, tracker) -> None:
        tracker.start()
        tracker._sample_cursor()
        assert tracker.stop().cursor_positions == ()

    def test_samples_latest_move(self, tracker, fake_hook, fake_clock) -> None:
        tracker.start()
        fake_hook.mouse_move.emit(10, 10)
        fake_hook.mouse_move.emit(20, 20)
        fake_hook.mouse_move.emit(1930, 40)
        fake_clock.advance(33)
        tracker._sample_cursor()
        meta = tracker.stop()
        assert meta.cursor_positions == (
            CursorPosition(timestamp_ms=33, x=10, y=40, screen_width=2560, screen_height=1440),
        )

    def test_position_held_between_moves(self, tracker, fake_hook, fake_clock) -> None:
        tracker.start()
        fake_hook.mouse_move.emit(500, 500)
        for _ in range(3):
            fake_clock.advance(33)
            tracker._sample_cursor()
        meta = tracker.stop()
        assert [p.timestamp_ms for p in meta.cursor_positions] == [33, 66, 99]
        assert {(p.x, p.y) for p in meta.cursor_positions} == {(500, 500)}

    def test_timestamps_never_decrease(self, tracker, fake_hook, fake_clock) -> None:
        tracker.start()
        fake_hook.mouse_move.emit(1, 1)
        fake_clock.advance(100)
        tracker._sample_cursor()
        fake_clock.advance(-60)
        tracker._sample_cursor()
        meta = tracker.stop()
        times = [p.timestamp_ms for p in meta.cursor_positions]
        assert times == sorted(times)
        assert times == [100, 100]

    def test_custom_interval(self, qapp, fake_hook, dual_locator) -> None:
        tracker = ClickTracker(fake_hook, dual_locator, interval_ms=10)
        tracker.start()
        assert tracker._timer.interval() == 10
        tracker.stop()
