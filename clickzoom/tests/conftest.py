"""Shared pytest fixtures for ClickZoom tests."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import QApplication

from zoomkit.click_tracker import ClickTracker
from zoomkit.coords import DisplayBounds
from zoomkit.displays import StaticDisplayLocator
from zoomkit.models import (
    ClickEvent,
    CursorPosition,
    MouseButton,
    RecordingMetadata,
)


# ── Qt ──────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def qapp() -> QApplication:
    """One offscreen QApplication for the whole test run."""
    app = QApplication.instance() or QApplication([])
    yield app


# ── Fakes ───────────────────────────────────────────────────────────

class FakeHook(QObject):
    """Stand-in for :class:`MouseHook`; tests emit the signals directly."""

    mouse_down = Signal(int, int, int)
    mouse_move = Signal(int, int)

    def __init__(self, fail_start: bool = False, fail_stop: bool = False) -> None:
        super().__init__()
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.start_calls = 0
        self.stop_calls = 0

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_start:
            raise RuntimeError("hook install failed")

    def stop(self) -> None:
        self.stop_calls += 1
        if self.fail_stop:
            raise RuntimeError("hook is stuck")


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 10_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def fake_hook(qapp) -> FakeHook:
    return FakeHook()


@pytest.fixture
def make_hook(qapp):
    """Factory for hooks configured to fail on start or stop."""
    return FakeHook


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ── Display layouts ────────────────────────────────────────────────

@pytest.fixture
def primary_display() -> DisplayBounds:
    """A 1920×1080 monitor at origin."""
    return DisplayBounds(0, 0, 1920, 1080)


@pytest.fixture
def dual_displays() -> list[DisplayBounds]:
    """1920×1080 primary plus a 2560×1440 monitor to its right."""
    return [DisplayBounds(0, 0, 1920, 1080), DisplayBounds(1920, 0, 2560, 1440)]


@pytest.fixture
def dual_locator(dual_displays) -> StaticDisplayLocator:
    return StaticDisplayLocator(dual_displays)


@pytest.fixture
def tracker(qapp, fake_hook, dual_locator, fake_clock):
    """A ClickTracker wired to fakes; always left idle afterwards."""
    t = ClickTracker(
        fake_hook, dual_locator,
        clock=fake_clock, wall_clock=lambda: 1_700_000_000_000,
    )
    yield t
    if t.is_active:
        t.stop()


@pytest.fixture(autouse=True)
def _reset_active_tracker():
    yield
    ClickTracker._active_tracker = None


# ── Recorded data ──────────────────────────────────────────────────

@pytest.fixture
def diagonal_track() -> list[CursorPosition]:
    """Cursor moving from top-left to bottom-right of a 100×100 screen."""
    return [
        CursorPosition(timestamp_ms=i * 100, x=i * 10, y=i * 10,
                       screen_width=100, screen_height=100)
        for i in range(11)
    ]


@pytest.fixture
def sample_metadata() -> RecordingMetadata:
    """Small recording with a double-click, a right click and a far click."""
    return RecordingMetadata(
        version=1,
        recording_start_ms=1_700_000_000_000,
        clicks=(
            ClickEvent(1000, 400, 300, 1920, 1080),
            ClickEvent(1200, 410, 310, 1920, 1080),
            ClickEvent(3000, 1500, 900, 1920, 1080, MouseButton.RIGHT),
            ClickEvent(8000, 960, 540, 1920, 1080),
        ),
        cursor_positions=(
            CursorPosition(0, 0, 0, 1920, 1080),
            CursorPosition(33, 192, 108, 1920, 1080),
            CursorPosition(66, 384, 216, 1920, 1080),
        ),
        source_id="screen:0",
        source_name="Display 1",
    )
