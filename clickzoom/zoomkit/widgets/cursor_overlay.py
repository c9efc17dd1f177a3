"""Transparent widget that paints the recorded cursor over a video preview.

Stack it on top of the video view and keep it updated with the
playback time and the rectangle the video content occupies.
"""

from typing import List, Optional, Sequence

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QPainter, QPaintEvent
from PySide6.QtWidgets import QWidget

from ..cursor_interpolator import interpolate_cursor
from ..cursor_renderer import cursor_scale_for_height, draw_cursor_qpainter, map_to_rect
from ..models import CursorPosition


class CursorOverlay(QWidget):
    """Live cursor layer for the editor preview."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)

        self._positions: List[CursorPosition] = []
        self._current_time_ms: float = 0.0
        self._video_bounds = QRectF()
        self._offset = QPointF(0.0, 0.0)
        self._scale: float = 1.0

    def set_cursor_positions(self, positions: Sequence[CursorPosition]) -> None:
        """Provide the recorded cursor track (sorted by timestamp)."""
        self._positions = list(positions)
        self.update()

    def set_current_time(self, time_ms: float) -> None:
        """Set the current playback time for cursor positioning."""
        self._current_time_ms = time_ms
        self.update()

    def set_video_bounds(self, bounds: QRectF) -> None:
        """Where the video content sits inside this widget, in px."""
        self._video_bounds = QRectF(bounds)
        self.update()

    def set_offset(self, dx: float, dy: float) -> None:
        self._offset = QPointF(dx, dy)
        self.update()

    def set_cursor_scale(self, scale: float) -> None:
        """Extra size factor on top of the video-height scaling."""
        self._scale = scale
        self.update()

    def effective_cursor_scale(self) -> float:
        """Glyph scale for the current video bounds, matching the export."""
        return cursor_scale_for_height(self._video_bounds.height(), self._scale)

    def cursor_point(self) -> Optional[QPointF]:
        """Tip position in widget coordinates, or None if nothing to draw."""
        b = self._video_bounds
        if b.width() <= 0 or b.height() <= 0:
            return None
        norm = interpolate_cursor(self._positions, self._current_time_ms)
        if norm is None:
            return None
        x, y = map_to_rect(norm[0], norm[1], b.x(), b.y(), b.width(), b.height())
        return QPointF(x + self._offset.x(), y + self._offset.y())

    def paintEvent(self, event: QPaintEvent) -> None:
        pt = self.cursor_point()
        if pt is None:
            return
        painter = QPainter(self)
        try:
            draw_cursor_qpainter(painter, pt.x(), pt.y(), self.effective_cursor_scale())
        finally:
            painter.end()
