"""Export a recording with the cursor overlay and zoom regions baked in.

Frames are read with OpenCV, the cursor is drawn on the raw frame, the
zoom crop is applied, and the result is piped as raw BGR to ffmpeg.
"""

import logging
import subprocess
import threading
import time
from typing import Optional, Sequence

import cv2
import numpy as np

from PySide6.QtCore import QObject, Signal

from .cursor_renderer import (
    CursorTemplate,
    build_cursor_template,
    cursor_scale_for_height,
    render_cursor_cv,
)
from .models import CursorPosition
from .utils import (
    SOFTWARE_ENCODER,
    build_encoder_args,
    encoder_display_name,
    ffmpeg_exe,
    subprocess_kwargs,
)
from .zoom_timeline import ZoomTimeline

logger = logging.getLogger(__name__)


def apply_zoom_cv(frame_bgr: np.ndarray, scale: float, cx: float, cy: float) -> np.ndarray:
    """Crop a ``1/scale`` window around ``(cx, cy)`` and resize it back.

    The window is shifted to stay inside the frame.  Returns *frame_bgr*
    unchanged when ``scale <= 1``.
    """
    if scale <= 1.0:
        return frame_bgr
    h, w = frame_bgr.shape[:2]
    cw = max(1, int(round(w / scale)))
    ch = max(1, int(round(h / scale)))
    x1 = int(round(cx * w - cw / 2))
    y1 = int(round(cy * h - ch / 2))
    x1 = max(0, min(w - cw, x1))
    y1 = max(0, min(h - ch, y1))
    crop = frame_bgr[y1:y1 + ch, x1:x1 + cw]
    return cv2.resize(crop, (w, h), interpolation=cv2.INTER_LINEAR)


def compose_frame(
    frame_bgr: np.ndarray,
    positions: Sequence[CursorPosition],
    time_ms: float,
    template: Optional[CursorTemplate],
    timeline: Optional[ZoomTimeline] = None,
) -> np.ndarray:
    """Cursor first (in source pixels), then zoom, so both move together."""
    if template is not None and positions:
        render_cursor_cv(frame_bgr, positions, time_ms, template)
    if timeline is not None:
        scale, cx, cy = timeline.compute_at(time_ms)
        return apply_zoom_cv(frame_bgr, scale, cx, cy)
    return frame_bgr


class CursorVideoExporter(QObject):
    """Reads a recording, composes each frame, writes H.264 via ffmpeg."""

    progress = Signal(float)  # 0.0–1.0
    finished = Signal(str)    # output path
    error = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._thread: Optional[threading.Thread] = None

    # ── public API ──────────────────────────────────────────────────

    def export(
        self,
        input_path: str,
        output_path: str,
        positions: Sequence[CursorPosition],
        timeline: Optional[ZoomTimeline] = None,
        encoder_id: str = SOFTWARE_ENCODER,
        draw_cursor: bool = True,
    ) -> None:
        """Start export in a background thread."""
        self._thread = threading.Thread(
            target=self.export_blocking,
            args=(input_path, output_path, list(positions), timeline, encoder_id, draw_cursor),
            daemon=True,
        )
        self._thread.start()

    def export_blocking(
        self,
        input_path: str,
        output_path: str,
        positions: Sequence[CursorPosition],
        timeline: Optional[ZoomTimeline] = None,
        encoder_id: str = SOFTWARE_ENCODER,
        draw_cursor: bool = True,
    ) -> bool:
        """Run the export on the calling thread.  Returns True on success."""
        try:
            return self._run(input_path, output_path, positions, timeline, encoder_id, draw_cursor)
        except Exception as exc:
            logger.exception("Export failed")
            self.error.emit(str(exc))
            return False

    # ── internal ────────────────────────────────────────────────────

    def _launch_ffmpeg(self, enc_id: str, w: int, h: int, fps: float,
                       output_path: str) -> subprocess.Popen:
        cmd = [
            ffmpeg_exe(), "-y",
            "-f", "rawvideo",
            "-vcodec", "rawvideo",
            "-s", f"{w}x{h}",
            "-pix_fmt", "bgr24",
            "-r", f"{fps:.3f}",
            "-i", "pipe:",
        ] + build_encoder_args(enc_id) + [output_path]
        logger.info("Launching ffmpeg with encoder %s: %s", enc_id, " ".join(cmd))
        return subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            **subprocess_kwargs(),
        )

    def _run(
        self,
        input_path: str,
        output_path: str,
        positions: Sequence[CursorPosition],
        timeline: Optional[ZoomTimeline],
        encoder_id: str,
        draw_cursor: bool,
    ) -> bool:
        cap = cv2.VideoCapture(input_path)
        if not cap.isOpened():
            self.error.emit(f"Cannot open {input_path}")
            return False

        try:
            fps = cap.get(cv2.CAP_PROP_FPS)
            if fps <= 0 or fps > 240:
                fps = 30.0
            total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
            w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
            if w < 2 or h < 2:
                self.error.emit("Invalid video dimensions")
                return False

            template = build_cursor_template(cursor_scale_for_height(h)) if draw_cursor else None

            proc = self._launch_ffmpeg(encoder_id, w, h, fps, output_path)
            time.sleep(0.1)
            if proc.poll() is not None and encoder_id != SOFTWARE_ENCODER:
                logger.warning("%s failed to launch, falling back to %s",
                               encoder_display_name(encoder_id), encoder_display_name(SOFTWARE_ENCODER))
                encoder_id = SOFTWARE_ENCODER
                proc = self._launch_ffmpeg(encoder_id, w, h, fps, output_path)

            pipe_ok = True
            f_idx = 0
            while True:
                ret, frame = cap.read()
                if not ret:
                    break
                t_ms = f_idx / fps * 1000.0
                f_idx += 1
                composed = compose_frame(frame, positions, t_ms, template, timeline)
                try:
                    proc.stdin.write(np.ascontiguousarray(composed).tobytes())
                except (BrokenPipeError, OSError):
                    pipe_ok = False
                    break
                if total_frames > 0 and f_idx % 10 == 0:
                    self.progress.emit(min(1.0, f_idx / total_frames))

            try:
                proc.stdin.close()
            except (BrokenPipeError, OSError):
                pipe_ok = False
            try:
                stderr_out = proc.communicate(timeout=60)[1]
            except subprocess.TimeoutExpired:
                proc.kill()
                stderr_out = proc.communicate()[1]
        finally:
            cap.release()

        if proc.returncode != 0 or not pipe_ok:
            stderr_text = stderr_out.decode(errors="replace").strip() if stderr_out else ""
            err_msg = stderr_text[-800:] or "Unknown ffmpeg error"
            logger.error("Export failed (encoder=%s, rc=%s): %s", encoder_id, proc.returncode, err_msg)
            self.error.emit(f"ffmpeg error ({encoder_id}): {err_msg[:500]}")
            return False

        logger.info("Exported %d frames to %s", f_idx, output_path)
        self.progress.emit(1.0)
        self.finished.emit(output_path)
        return True
