"""Click tracker: the recording-session state machine.

``Idle -> Recording -> Idle``.  ``start()`` creates a fresh
:class:`_Session` that exclusively owns the click and cursor buffers;
``stop()`` consumes it into an immutable :class:`RecordingMetadata`.

Clicks are converted and appended as soon as they arrive.  Moves only
overwrite the latest raw position; a ``QTimer`` samples that position
every :data:`CURSOR_SAMPLE_INTERVAL_MS`.  This is a deliberate lossy
downsample of the move stream that bounds memory and file size.

Hook events arrive as queued signals, so handlers and the sampler run
on the tracker's thread and need no locking.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QObject, QTimer, Signal

from .coords import to_display_relative
from .models import (
    ClickEvent,
    CursorPosition,
    CURSOR_SAMPLE_INTERVAL_MS,
    METADATA_VERSION,
    MouseButton,
    RecordingMetadata,
)

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class _Session:
    """Mutable state of one recording; lives from start() to stop()."""
    recording_start_ms: int            # epoch, written to metadata
    started_at: float                  # monotonic clock, for offsets
    source_id: Optional[str] = None
    source_name: Optional[str] = None
    clicks: List[ClickEvent] = field(default_factory=list)
    cursor_positions: List[CursorPosition] = field(default_factory=list)
    last_move: Optional[Tuple[int, int]] = None


class ClickTracker(QObject):
    """Records clicks and sampled cursor positions during a recording.

    *hook* provides ``mouse_down(x, y, button)`` / ``mouse_move(x, y)``
    signals plus ``start()`` / ``stop()`` (see :class:`MouseHook`).
    *displays* provides ``display_containing(x, y)``.  *clock* and
    *wall_clock* return milliseconds and exist for tests.

    Only one tracker may record at a time in a process.
    """

    recording_changed = Signal(bool)

    # The one piece of process-wide state; only start()/stop() touch it.
    _active_tracker: Optional["ClickTracker"] = None

    def __init__(
        self,
        hook,
        displays,
        interval_ms: int = CURSOR_SAMPLE_INTERVAL_MS,
        clock: Callable[[], float] = _monotonic_ms,
        wall_clock: Callable[[], int] = _epoch_ms,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._hook = hook
        self._displays = displays
        self._interval = interval_ms
        self._clock = clock
        self._wall_clock = wall_clock
        self._session: Optional[_Session] = None
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._sample_cursor)

    # ── public API ──────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def click_count(self) -> int:
        return len(self._session.clicks) if self._session else 0

    def start(self, source_id: Optional[str] = None, source_name: Optional[str] = None) -> bool:
        """Begin recording.  Returns False (and does nothing) if already recording."""
        if ClickTracker._active_tracker is not None:
            logger.warning("Click tracking is already active")
            return False

        self._session = _Session(
            recording_start_ms=self._wall_clock(),
            started_at=self._clock(),
            source_id=source_id,
            source_name=source_name,
        )
        ClickTracker._active_tracker = self
        try:
            self._hook.mouse_down.connect(self._on_mouse_down)
            self._hook.mouse_move.connect(self._on_mouse_move)
            self._hook.start()
        except Exception:
            logger.exception("Failed to start click tracking")
            self._release_hook()
            self._session = None
            ClickTracker._active_tracker = None
            return False

        self._timer.start(self._interval)
        logger.info("Click tracking started (source=%s)", source_name or source_id or "unknown")
        self.recording_changed.emit(True)
        return True

    def stop(self) -> RecordingMetadata:
        """Stop recording and return the captured snapshot.

        When not recording, logs a warning and returns
        :meth:`RecordingMetadata.empty`.
        """
        session = self._session
        if session is None:
            logger.warning("Click tracking is not active")
            return RecordingMetadata.empty()

        self._timer.stop()
        self._release_hook()

        metadata = RecordingMetadata(
            version=METADATA_VERSION,
            recording_start_ms=session.recording_start_ms,
            clicks=tuple(session.clicks),
            cursor_positions=tuple(session.cursor_positions),
            source_id=session.source_id,
            source_name=session.source_name,
        )
        self._session = None
        ClickTracker._active_tracker = None

        logger.info(
            "Click tracking stopped. Captured %d clicks and %d cursor positions.",
            len(metadata.clicks), len(metadata.cursor_positions),
        )
        self.recording_changed.emit(False)
        return metadata

    # ── internal ────────────────────────────────────────────────────

    def _release_hook(self) -> None:
        """Stop the hook and disconnect both channels.

        Every step runs even if an earlier one raises: a stuck OS hook
        must not leave the tracker unable to record again.
        """
        try:
            self._hook.stop()
        except Exception:
            logger.exception("Error stopping mouse hook")
        for signal, slot in (
            (self._hook.mouse_down, self._on_mouse_down),
            (self._hook.mouse_move, self._on_mouse_move),
        ):
            try:
                signal.disconnect(slot)
            except Exception as exc:
                logger.warning("Error disconnecting mouse hook: %s", exc)

    def _elapsed_ms(self, session: _Session) -> int:
        return max(0, int(self._clock() - session.started_at))

    def _on_mouse_down(self, x: int, y: int, button: int) -> None:
        session = self._session
        if session is None:
            return
        bounds = self._displays.display_containing(x, y)
        rx, ry, w, h = to_display_relative(x, y, bounds)
        try:
            btn = MouseButton(button)
        except ValueError:
            btn = MouseButton.LEFT
        session.clicks.append(ClickEvent(
            timestamp_ms=self._elapsed_ms(session),
            x=rx, y=ry,
            screen_width=w, screen_height=h,
            button=btn,
        ))

    def _on_mouse_move(self, x: int, y: int) -> None:
        session = self._session
        if session is None:
            return
        session.last_move = (x, y)

    def _sample_cursor(self) -> None:
        session = self._session
        if session is None or session.last_move is None:
            return
        x, y = session.last_move
        bounds = self._displays.display_containing(x, y)
        rx, ry, w, h = to_display_relative(x, y, bounds)
        ts = self._elapsed_ms(session)
        if session.cursor_positions:
            ts = max(ts, session.cursor_positions[-1].timestamp_ms)
        session.cursor_positions.append(CursorPosition(
            timestamp_ms=ts, x=rx, y=ry, screen_width=w, screen_height=h,
        ))
