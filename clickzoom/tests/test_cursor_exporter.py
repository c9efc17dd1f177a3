"""Tests for zoomkit.cursor_exporter: zoom crop, frame composition, export."""

import subprocess

import cv2
import numpy as np
import pytest

from zoomkit.cursor_exporter import CursorVideoExporter, apply_zoom_cv, compose_frame
from zoomkit.cursor_renderer import build_cursor_template
from zoomkit.models import CursorPosition, ZoomDepth, ZoomFocus, ZoomRegion
from zoomkit.utils import SOFTWARE_ENCODER, ffmpeg_exe, subprocess_kwargs
from zoomkit.zoom_timeline import ZoomTimeline


def _split_frame(h: int = 100, w: int = 200) -> np.ndarray:
    """Left half black, right half white."""
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[:, w // 2:] = 255
    return frame


class TestApplyZoom:
    def test_no_zoom_returns_input(self) -> None:
        frame = _split_frame()
        assert apply_zoom_cv(frame, 1.0, 0.5, 0.5) is frame

    def test_keeps_shape(self) -> None:
        out = apply_zoom_cv(_split_frame(), 2.2, 0.3, 0.7)
        assert out.shape == (100, 200, 3)

    def test_zoom_into_left_half(self) -> None:
        out = apply_zoom_cv(_split_frame(), 2.0, 0.25, 0.5)
        assert out.max() == 0

    def test_zoom_into_right_half(self) -> None:
        out = apply_zoom_cv(_split_frame(), 2.0, 0.75, 0.5)
        assert out.min() == 255

    def test_focus_at_edge_is_clamped(self) -> None:
        out = apply_zoom_cv(_split_frame(), 2.0, 0.0, 0.0)
        assert out.max() == 0
        out = apply_zoom_cv(_split_frame(), 2.0, 1.0, 1.0)
        assert out.min() == 255


class TestComposeFrame:
    def test_cursor_only(self) -> None:
        frame = np.full((100, 100, 3), 255, dtype=np.uint8)
        positions = [CursorPosition(0, 20, 20, 100, 100)]
        out = compose_frame(frame, positions, 0, build_cursor_template())
        assert out is frame
        assert frame[30, 23].max() < 60

    def test_no_cursor_no_timeline(self) -> None:
        frame = np.full((10, 10, 3), 7, dtype=np.uint8)
        out = compose_frame(frame, [], 0, None)
        assert (out == 7).all()

    def test_cursor_follows_zoom(self) -> None:
        """The cursor is drawn before zooming, so it is magnified with the frame."""
        region = ZoomRegion.create(0, 10_000, depth=ZoomDepth.LIGHT, focus=ZoomFocus(0.5, 0.5))
        timeline = ZoomTimeline([region])
        positions = [CursorPosition(0, 50, 50, 100, 100)]
        frame = np.full((200, 200, 3), 255, dtype=np.uint8)
        out = compose_frame(frame, positions, 5_000, build_cursor_template(), timeline)
        # Tip stays at the centre; the body offset grows by the zoom factor
        assert out[100 + 15, 100 + 4].max() < 80


@pytest.fixture
def tiny_video(tmp_path) -> str:
    path = str(tmp_path / "in.mp4")
    subprocess.run(
        [ffmpeg_exe(), "-y", "-loglevel", "error",
         "-f", "lavfi", "-i", "color=c=gray:s=64x48:d=1:r=10",
         "-c:v", "libx264", "-pix_fmt", "yuv420p", path],
        check=True, capture_output=True, **subprocess_kwargs(),
    )
    return path


class TestCursorVideoExporter:
    def test_missing_input_emits_error(self, qapp, tmp_path) -> None:
        errors = []
        exporter = CursorVideoExporter()
        exporter.error.connect(errors.append)
        ok = exporter.export_blocking(str(tmp_path / "nope.mp4"), str(tmp_path / "out.mp4"), [])
        assert ok is False
        assert errors and "Cannot open" in errors[0]

    def test_export_writes_video(self, qapp, tmp_path, tiny_video) -> None:
        out_path = str(tmp_path / "out.mp4")
        done, progress = [], []
        exporter = CursorVideoExporter()
        exporter.finished.connect(done.append)
        exporter.progress.connect(progress.append)

        timeline = ZoomTimeline([ZoomRegion.create(200, 800, depth=ZoomDepth.MEDIUM)])
        positions = [CursorPosition(0, 10, 10, 64, 48), CursorPosition(1000, 50, 40, 64, 48)]
        ok = exporter.export_blocking(
            tiny_video, out_path, positions, timeline=timeline, encoder_id=SOFTWARE_ENCODER,
        )

        assert ok is True
        assert done == [out_path]
        assert progress[-1] == 1.0
        cap = cv2.VideoCapture(out_path)
        try:
            assert cap.isOpened()
            assert int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)) == 64
            assert int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) == 48
        finally:
            cap.release()
