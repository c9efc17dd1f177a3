"""Coordinate normalization between the virtual desktop and one display.

The input hook reports points in a single global virtual-desktop space.
Everything downstream (autozoom, cursor overlay, export) works in the
space of the one display a sample was taken on, so each sample is
converted with the bounds of its containing display at capture time.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .models import ZoomFocus


@dataclass(frozen=True)
class DisplayBounds:
    """Bounds of one display in virtual-desktop pixels."""
    x: int
    y: int
    width: int
    height: int

    def contains(self, px: float, py: float) -> bool:
        return (self.x <= px < self.x + self.width
                and self.y <= py < self.y + self.height)

    def distance_sq(self, px: float, py: float) -> float:
        """Squared distance from a point to the nearest edge (0 if inside)."""
        dx = max(self.x - px, 0.0, px - (self.x + self.width - 1))
        dy = max(self.y - py, 0.0, py - (self.y + self.height - 1))
        return dx * dx + dy * dy

    def to_dict(self) -> dict:
        return {"left": self.x, "top": self.y, "width": self.width, "height": self.height}


def to_display_relative(x: int, y: int, bounds: DisplayBounds) -> Tuple[int, int, int, int]:
    """Return ``(rel_x, rel_y, display_width, display_height)``."""
    return x - bounds.x, y - bounds.y, bounds.width, bounds.height


def clamp01(v: float) -> float:
    return max(0.0, min(1.0, v))


def screen_to_normalized_focus(
    x: float, y: float, screen_width: int, screen_height: int,
) -> Optional[ZoomFocus]:
    """Convert a display-relative point to a unit-square focus.

    Clamping absorbs off-by-one rounding at the screen edges.  Returns
    None for a zero-area screen.
    """
    if screen_width <= 0 or screen_height <= 0:
        return None
    return ZoomFocus(
        cx=clamp01(x / screen_width),
        cy=clamp01(y / screen_height),
    )
