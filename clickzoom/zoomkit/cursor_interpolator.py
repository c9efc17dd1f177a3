"""Cursor position interpolation shared by the live overlay and the exporter.

Both renderers call :func:`interpolate_cursor` so the preview and the
exported video place the cursor at exactly the same spot for the same
timestamp.
"""

from typing import Optional, Sequence, Tuple

from .coords import clamp01
from .models import CursorPosition


def normalize_position(pos: CursorPosition) -> Optional[Tuple[float, float]]:
    """Normalize one sample by its *own* screen size.

    Returns None for a zero-area screen.
    """
    if pos.screen_width <= 0 or pos.screen_height <= 0:
        return None
    return clamp01(pos.x / pos.screen_width), clamp01(pos.y / pos.screen_height)


def _bracket(positions: Sequence[CursorPosition], time_ms: float) -> Tuple[int, int]:
    """Indices of the last sample at or before *time_ms* and the first after it.

    Either index is -1 when no such sample exists.
    """
    if time_ms < positions[0].timestamp_ms:
        return -1, 0
    if time_ms >= positions[-1].timestamp_ms:
        return len(positions) - 1, -1

    # Invariant: positions[lo] <= time_ms < positions[hi]
    lo, hi = 0, len(positions) - 1
    while lo < hi - 1:
        mid = (lo + hi) // 2
        if positions[mid].timestamp_ms <= time_ms:
            lo = mid
        else:
            hi = mid
    return lo, hi


def interpolate_cursor(
    positions: Sequence[CursorPosition], time_ms: float,
) -> Optional[Tuple[float, float]]:
    """Interpolated normalized cursor position at *time_ms*.

    Outside the recorded range the nearest sample is held (no
    extrapolation).  Between two samples each axis is interpolated
    linearly in normalized space, so a resolution change between two
    samples does not produce a jump.  Returns None when there is no data
    or a bracketing sample has a zero-area screen.
    """
    if not positions:
        return None

    before_idx, after_idx = _bracket(positions, time_ms)
    if after_idx == -1:
        return normalize_position(positions[before_idx])
    if before_idx == -1:
        return normalize_position(positions[after_idx])

    before = positions[before_idx]
    after = positions[after_idx]
    a = normalize_position(before)
    b = normalize_position(after)
    if a is None or b is None:
        return None

    dt = after.timestamp_ms - before.timestamp_ms
    t = (time_ms - before.timestamp_ms) / dt if dt != 0 else 0.0
    return a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t
