"""Mouse cursor renderer: draws the cursor glyph over video frames.

Provides both QPainter-based (for live preview) and numpy/OpenCV-based
(for export) drawing.  Both take their position from
:func:`~zoomkit.cursor_interpolator.interpolate_cursor` and their shape
from :func:`cursor_polygon`, so the glyph has the same geometry at the
same scale on either surface.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import (
    QBrush,
    QColor,
    QPainter,
    QPainterPath,
    QPen,
)

from .cursor_interpolator import interpolate_cursor
from .models import CursorPosition


# ── Cursor appearance ───────────────────────────────────────────────

CURSOR_FILL = (0, 0, 0)              # dark body (RGB)
CURSOR_OUTLINE = (255, 255, 255)     # light outline (RGB)
CURSOR_OUTLINE_W = 1.5               # px at scale 1
CURSOR_SHADOW_ALPHA = 128            # 50% black
CURSOR_SHADOW_OFFSET = 1.0           # px at scale 1
CURSOR_SHADOW_BLUR = 3.0             # px at scale 1 (export only)
CURSOR_SIZE = 24.0                   # reference box the glyph is drawn in
REFERENCE_HEIGHT = 1080              # glyph is drawn at scale 1.0 on 1080 px tall video

# Classic pointer arrow, tip (hotspot) at (0, 0), in px at scale 1.
_ARROW_POINTS = (
    (0.00, 0.00),
    (0.00, 17.59),
    (4.86, 12.73),
    (12.08, 12.73),
)


def cursor_polygon(x: float, y: float, scale: float = 1.0) -> List[Tuple[float, float]]:
    """Arrow vertices with the tip at ``(x, y)``."""
    return [(x + px * scale, y + py * scale) for px, py in _ARROW_POINTS]


def cursor_scale_for_height(video_height: float, scale: float = 1.0) -> float:
    """Glyph scale for video shown or rendered *video_height* px tall."""
    return scale * video_height / REFERENCE_HEIGHT


def map_to_rect(
    norm_x: float, norm_y: float,
    rect_x: float, rect_y: float, rect_w: float, rect_h: float,
) -> Tuple[float, float]:
    """Map a normalized position into a target rectangle in pixels."""
    return rect_x + norm_x * rect_w, rect_y + norm_y * rect_h


# ── QPainter-based cursor (for live preview) ───────────────────────


def _polygon_path(points: Sequence[Tuple[float, float]]) -> QPainterPath:
    path = QPainterPath()
    path.moveTo(QPointF(*points[0]))
    for p in points[1:]:
        path.lineTo(QPointF(*p))
    path.closeSubpath()
    return path


def draw_cursor_qpainter(
    painter: QPainter,
    x: float,
    y: float,
    scale: float = 1.0,
    opacity: float = 1.0,
) -> None:
    """Draw the arrow glyph with its tip at ``(x, y)`` in painter coords."""
    painter.save()
    painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
    painter.setOpacity(opacity)

    # Drop shadow (offset + translucent; QPainter has no cheap blur)
    off = CURSOR_SHADOW_OFFSET * scale
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QBrush(QColor(0, 0, 0, CURSOR_SHADOW_ALPHA)))
    painter.drawPath(_polygon_path(cursor_polygon(x + off, y + off, scale)))

    painter.setPen(QPen(
        QColor(*CURSOR_OUTLINE), CURSOR_OUTLINE_W * scale,
        Qt.PenStyle.SolidLine, Qt.PenCapStyle.RoundCap, Qt.PenJoinStyle.RoundJoin,
    ))
    painter.setBrush(QBrush(QColor(*CURSOR_FILL)))
    painter.drawPath(_polygon_path(cursor_polygon(x, y, scale)))
    painter.restore()


def render_cursor_qpainter(
    painter: QPainter,
    positions: Sequence[CursorPosition],
    time_ms: float,
    rect_x: float,
    rect_y: float,
    rect_w: float,
    rect_h: float,
    offset_x: float = 0.0,
    offset_y: float = 0.0,
    scale: float = 1.0,
) -> Optional[Tuple[float, float]]:
    """Interpolate the cursor at *time_ms* and draw it inside the rect.

    *rect_* is where the video content sits in painter coordinates;
    *offset_* is an extra pixel shift applied after mapping.  Returns
    the tip position, or None when nothing was drawn.
    """
    if rect_w <= 0 or rect_h <= 0:
        return None
    norm = interpolate_cursor(positions, time_ms)
    if norm is None:
        return None
    px, py = map_to_rect(norm[0], norm[1], rect_x, rect_y, rect_w, rect_h)
    px += offset_x
    py += offset_y
    draw_cursor_qpainter(painter, px, py, scale)
    return px, py


# ── OpenCV/numpy-based cursor (for export) ─────────────────────────

_SUBPIXEL_SHIFT = 4   # cv2 fixed-point bits for sub-pixel vertices
_SUBPIXEL = 1 << _SUBPIXEL_SHIFT


@dataclass
class CursorTemplate:
    """Pre-rendered glyph; the tip sits at ``(anchor_x, anchor_y)``."""
    bgr: np.ndarray      # (H, W, 3) uint8, un-premultiplied colour
    alpha: np.ndarray    # (H, W) uint8
    anchor_x: int
    anchor_y: int


def _fixed_point(points: Sequence[Tuple[float, float]]) -> np.ndarray:
    return np.array(
        [[int(round(px * _SUBPIXEL)), int(round(py * _SUBPIXEL))] for px, py in points],
        dtype=np.int32,
    )


def build_cursor_template(scale: float = 1.0) -> CursorTemplate:
    """Rasterize the arrow once at *scale* for fast per-frame blending.

    Layers are composited back to front: blurred shadow, dark fill,
    light outline.
    """
    pad = int(np.ceil((CURSOR_SHADOW_OFFSET + CURSOR_SHADOW_BLUR + CURSOR_OUTLINE_W) * scale)) + 2
    size = int(np.ceil(CURSOR_SIZE * scale)) + pad * 2
    pts = _fixed_point(cursor_polygon(pad, pad, scale))

    shadow = np.zeros((size, size), dtype=np.uint8)
    off = CURSOR_SHADOW_OFFSET * scale
    shadow_pts = _fixed_point(cursor_polygon(pad + off, pad + off, scale))
    cv2.fillPoly(shadow, [shadow_pts], 255, cv2.LINE_AA, _SUBPIXEL_SHIFT)
    blur_k = max(3, int(round(CURSOR_SHADOW_BLUR * scale * 2)) | 1)  # must be odd
    shadow = cv2.GaussianBlur(shadow, (blur_k, blur_k), 0)

    fill = np.zeros((size, size), dtype=np.uint8)
    cv2.fillPoly(fill, [pts], 255, cv2.LINE_AA, _SUBPIXEL_SHIFT)

    stroke = np.zeros((size, size), dtype=np.uint8)
    thickness = max(1, int(round(CURSOR_OUTLINE_W * scale)))
    cv2.polylines(stroke, [pts], True, 255, thickness, cv2.LINE_AA, _SUBPIXEL_SHIFT)

    a_shadow = shadow.astype(np.float32) / 255.0 * (CURSOR_SHADOW_ALPHA / 255.0)
    a_fill = fill.astype(np.float32) / 255.0
    a_stroke = stroke.astype(np.float32) / 255.0

    # Porter-Duff "over", premultiplied
    fill_bgr = np.array(CURSOR_FILL[::-1], dtype=np.float32)
    outline_bgr = np.array(CURSOR_OUTLINE[::-1], dtype=np.float32)
    alpha = a_shadow
    premul = np.zeros((size, size, 3), dtype=np.float32)  # shadow is black
    premul = fill_bgr * a_fill[..., None] + premul * (1 - a_fill[..., None])
    alpha = a_fill + alpha * (1 - a_fill)
    premul = outline_bgr * a_stroke[..., None] + premul * (1 - a_stroke[..., None])
    alpha = a_stroke + alpha * (1 - a_stroke)

    safe = np.where(alpha > 0, alpha, 1.0)[..., None]
    bgr = np.clip(premul / safe, 0, 255).astype(np.uint8)
    return CursorTemplate(
        bgr=bgr,
        alpha=np.clip(alpha * 255.0 + 0.5, 0, 255).astype(np.uint8),
        anchor_x=pad,
        anchor_y=pad,
    )


def draw_cursor_cv(
    frame_bgr: np.ndarray,
    x: float,
    y: float,
    template: CursorTemplate,
) -> None:
    """Alpha-blend *template* onto *frame_bgr* in-place, tip at ``(x, y)``."""
    fh, fw = frame_bgr.shape[:2]
    th, tw = template.bgr.shape[:2]

    x1 = int(round(x)) - template.anchor_x
    y1 = int(round(y)) - template.anchor_y
    x2, y2 = x1 + tw, y1 + th

    # Clip to frame
    src_x1 = max(0, -x1)
    src_y1 = max(0, -y1)
    x1 = max(0, x1)
    y1 = max(0, y1)
    x2 = min(fw, x2)
    y2 = min(fh, y2)
    if x2 <= x1 or y2 <= y1:
        return
    src_x2 = src_x1 + (x2 - x1)
    src_y2 = src_y1 + (y2 - y1)

    roi = frame_bgr[y1:y2, x1:x2]
    c_roi = template.bgr[src_y1:src_y2, src_x1:src_x2]
    a_roi = template.alpha[src_y1:src_y2, src_x1:src_x2]

    alpha = a_roi[:, :, np.newaxis].astype(np.float32) / 255.0
    blended = c_roi.astype(np.float32) * alpha + roi.astype(np.float32) * (1 - alpha)
    np.copyto(roi, (blended + 0.5).astype(np.uint8))


def render_cursor_cv(
    frame_bgr: np.ndarray,
    positions: Sequence[CursorPosition],
    time_ms: float,
    template: CursorTemplate,
) -> Optional[Tuple[float, float]]:
    """Interpolate the cursor at *time_ms* and draw it over the whole frame.

    Returns the tip position in frame pixels, or None when nothing was
    drawn.
    """
    fh, fw = frame_bgr.shape[:2]
    norm = interpolate_cursor(positions, time_ms)
    if norm is None or fw == 0 or fh == 0:
        return None
    px, py = map_to_rect(norm[0], norm[1], 0, 0, fw, fh)
    draw_cursor_cv(frame_bgr, px, py, template)
    return px, py
