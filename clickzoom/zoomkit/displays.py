"""Display enumeration: maps a virtual-desktop point to its display.

The lookup is total: a point that falls outside every monitor (cursor
parked in a gap between mismatched screens, stale coordinates after an
unplug) resolves to the nearest one.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

import mss

from .coords import DisplayBounds

logger = logging.getLogger(__name__)

FALLBACK_DISPLAY = DisplayBounds(0, 0, 1920, 1080)


def nearest_display(x: float, y: float, displays: Sequence[DisplayBounds]) -> DisplayBounds:
    """Return the display containing ``(x, y)``, else the closest one.

    The first display wins ties.  Falls back to :data:`FALLBACK_DISPLAY`
    when *displays* is empty.
    """
    if not displays:
        return FALLBACK_DISPLAY
    for d in displays:
        if d.contains(x, y):
            return d
    return min(displays, key=lambda d: d.distance_sq(x, y))


def enumerate_displays() -> List[DisplayBounds]:
    """List physical monitors via mss (index 0 is the virtual union)."""
    with mss.mss() as sct:
        return [
            DisplayBounds(m["left"], m["top"], m["width"], m["height"])
            for m in sct.monitors[1:]
        ]


class StaticDisplayLocator:
    """Resolves points against a fixed display layout."""

    def __init__(self, displays: Sequence[DisplayBounds]) -> None:
        self._displays = list(displays)

    @property
    def displays(self) -> List[DisplayBounds]:
        return list(self._displays)

    def display_containing(self, x: float, y: float) -> DisplayBounds:
        return nearest_display(x, y, self._displays)


class MssDisplayLocator:
    """Resolves points against the live monitor layout reported by mss.

    The layout is re-enumerated at most once every *refresh_ms* so that
    hot-plugged monitors and resolution changes are picked up without
    enumerating on every 30 Hz cursor sample.
    """

    def __init__(
        self,
        refresh_ms: float = 1000.0,
        enumerate_fn: Callable[[], List[DisplayBounds]] = enumerate_displays,
    ) -> None:
        self._refresh_ms = refresh_ms
        self._enumerate = enumerate_fn
        self._displays: List[DisplayBounds] = []
        self._last_refresh: Optional[float] = None
        self._warned_empty = False

    def refresh(self) -> None:
        """Re-enumerate monitors now."""
        try:
            self._displays = self._enumerate()
        except Exception:
            logger.exception("Display enumeration failed; keeping previous layout")
        self._last_refresh = time.monotonic() * 1000
        if not self._displays and not self._warned_empty:
            logger.warning("No displays reported; using %dx%d fallback",
                           FALLBACK_DISPLAY.width, FALLBACK_DISPLAY.height)
            self._warned_empty = True

    @property
    def displays(self) -> List[DisplayBounds]:
        self._maybe_refresh()
        return list(self._displays)

    def display_containing(self, x: float, y: float) -> DisplayBounds:
        self._maybe_refresh()
        return nearest_display(x, y, self._displays)

    def _maybe_refresh(self) -> None:
        now = time.monotonic() * 1000
        if self._last_refresh is None or now - self._last_refresh >= self._refresh_ms:
            self.refresh()
