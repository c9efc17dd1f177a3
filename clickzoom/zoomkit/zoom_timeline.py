"""Zoom timeline: the editor's authoritative list of zoom regions.

Holds non-overlapping :class:`ZoomRegion` objects sorted by start time,
merges autozoom proposals into them, and computes the current
``(scale, cx, cy)`` at any point in time.  Zoom-in and zoom-out use
quintic ease-out.  Keeps an undo/redo stack (list snapshots, max 50
entries).
"""

from typing import List, Optional, Tuple

from .autozoom import does_overlap, generate_zoom_regions_from_clicks
from .models import RecordingMetadata, ZoomRegion
from .settings import AutozoomSettings, DEFAULT_AUTOZOOM_SETTINGS


def ease_out(t: float) -> float:
    """Quintic ease-out: fast start, decelerates asymptotically to zero.

    f(t) = 1 - (1-t)⁵
    """
    inv = 1.0 - t
    return 1.0 - inv * inv * inv * inv * inv


MAX_UNDO = 50              # maximum undo history depth
ZOOM_TRANSITION_MS = 600   # ease-in / ease-out length at region edges


class ZoomTimeline:
    """Region list with overlap checks, autozoom merge and undo/redo.

    Regions are frozen, so snapshots only need to copy the list.
    """

    def __init__(self, regions: Optional[List[ZoomRegion]] = None) -> None:
        self.regions: List[ZoomRegion] = []
        self._undo_stack: List[List[ZoomRegion]] = []
        self._redo_stack: List[List[ZoomRegion]] = []
        for region in regions or []:
            self.add_region(region)

    # ── snapshot helpers ────────────────────────────────────────────

    def push_undo(self) -> None:
        """Save the current state onto the undo stack.

        Call this *before* any mutation.  Clears the redo stack.
        """
        self._undo_stack.append(list(self.regions))
        if len(self._undo_stack) > MAX_UNDO:
            self._undo_stack.pop(0)
        self._redo_stack.clear()

    def undo(self) -> bool:
        """Restore the previous region list.  Returns True if successful."""
        if not self._undo_stack:
            return False
        self._redo_stack.append(list(self.regions))
        self.regions = self._undo_stack.pop()
        return True

    def redo(self) -> bool:
        """Re-apply the last undone change.  Returns True if successful."""
        if not self._redo_stack:
            return False
        self._undo_stack.append(list(self.regions))
        self.regions = self._redo_stack.pop()
        return True

    @property
    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    # ── editing ─────────────────────────────────────────────────────

    def add_region(self, region: ZoomRegion) -> bool:
        """Insert *region* unless it overlaps an existing one."""
        if region.end_ms <= region.start_ms:
            return False
        if does_overlap(region.start_ms, region.end_ms, self.regions):
            return False
        self.regions.append(region)
        self.regions.sort(key=lambda r: r.start_ms)
        return True

    def remove_region(self, region_id: str) -> None:
        self.regions = [r for r in self.regions if r.id != region_id]

    def clear(self) -> None:
        self.regions.clear()

    def apply_autozoom(
        self,
        metadata: RecordingMetadata,
        duration_ms: float,
        settings: AutozoomSettings = DEFAULT_AUTOZOOM_SETTINGS,
    ) -> List[ZoomRegion]:
        """Add autozoom proposals for *metadata*; returns what was added.

        A single undo step covers the whole batch.  Nothing is pushed
        when no region is proposed.
        """
        proposed = generate_zoom_regions_from_clicks(
            metadata, duration_ms, self.regions, settings,
        )
        if not proposed:
            return []
        self.push_undo()
        for region in proposed:
            self.add_region(region)
        return proposed

    # ── playback ────────────────────────────────────────────────────

    def region_at(self, time_ms: float) -> Optional[ZoomRegion]:
        for region in self.regions:
            if region.start_ms <= time_ms < region.end_ms:
                return region
            if region.start_ms > time_ms:
                break
        return None

    def compute_at(self, time_ms: float) -> Tuple[float, float, float]:
        """Returns (scale, focus_x, focus_y) at given time."""
        region = self.region_at(time_ms)
        if region is None:
            return 1.0, 0.5, 0.5

        transition = min(ZOOM_TRANSITION_MS, region.duration_ms / 2)
        if transition <= 0:
            progress = 1.0
        else:
            progress = min(
                (time_ms - region.start_ms) / transition,
                (region.end_ms - time_ms) / transition,
                1.0,
            )
        eased = ease_out(max(0.0, progress))

        scale = 1.0 + (region.scale - 1.0) * eased
        cx = 0.5 + (region.focus.cx - 0.5) * eased
        cy = 0.5 + (region.focus.cy - 0.5) * eased
        return scale, cx, cy
