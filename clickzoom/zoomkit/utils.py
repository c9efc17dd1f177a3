"""Shared helpers for the ffmpeg export path and the command line."""

import logging
import subprocess
import sys
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


def ffmpeg_exe() -> str:
    """Path to the ffmpeg binary shipped with imageio-ffmpeg."""
    import imageio_ffmpeg
    return imageio_ffmpeg.get_ffmpeg_exe()


def subprocess_kwargs() -> dict:
    """Hide the console window of child processes on Windows."""
    kw: dict = {}
    if sys.platform == "win32":
        si = subprocess.STARTUPINFO()
        si.dwFlags |= subprocess.STARTF_USESHOWWINDOW
        kw["startupinfo"] = si
        kw["creationflags"] = subprocess.CREATE_NO_WINDOW
    return kw


def fmt_time(ms: float) -> str:
    """Format milliseconds as ``m:ss.mmm`` (negative values clamp to 0)."""
    total = max(0, int(ms))
    s, frac = divmod(total, 1000)
    return f"{s // 60}:{s % 60:02d}.{frac:03d}"


def video_duration_ms(path: str) -> Optional[float]:
    """Length of the video at *path* from its frame count and fps.

    Returns None when OpenCV cannot open the file or reports no frames.
    """
    import cv2
    cap = cv2.VideoCapture(path)
    try:
        if not cap.isOpened():
            return None
        fps = cap.get(cv2.CAP_PROP_FPS)
        frames = cap.get(cv2.CAP_PROP_FRAME_COUNT)
    finally:
        cap.release()
    if fps <= 0 or frames <= 0:
        return None
    return frames / fps * 1000.0


# ── H.264 encoders ──────────────────────────────────────────────────

# id → (display name, quality args).  The id is also the ffmpeg codec.
ENCODER_PROFILES: Dict[str, Tuple[str, List[str]]] = {
    "h264_nvenc": ("NVIDIA NVENC",    ["-preset", "p4", "-cq", "20", "-b:v", "0"]),
    "h264_qsv":   ("Intel QuickSync", ["-preset", "medium", "-global_quality", "20"]),
    "h264_amf":   ("AMD AMF",         ["-quality", "quality", "-qp_i", "20", "-qp_p", "20"]),
    "libx264":    ("Software (x264)", ["-preset", "medium", "-crf", "20"]),
}

SOFTWARE_ENCODER = "libx264"
_HW_PREFERENCE = ("h264_nvenc", "h264_qsv", "h264_amf")

_encoder_cache: Optional[List[str]] = None


def detect_available_encoders(refresh: bool = False) -> List[str]:
    """Encoders this ffmpeg build offers, hardware first.

    :data:`SOFTWARE_ENCODER` is always the last entry.  The probe runs
    once per process unless *refresh* is set.
    """
    global _encoder_cache
    if _encoder_cache is not None and not refresh:
        return _encoder_cache

    found: List[str] = []
    try:
        result = subprocess.run(
            [ffmpeg_exe(), "-hide_banner", "-encoders"],
            capture_output=True, timeout=10,
            **subprocess_kwargs(),
        )
        listing = result.stdout.decode(errors="replace")
        found = [enc for enc in _HW_PREFERENCE if enc in listing]
    except (OSError, RuntimeError, subprocess.SubprocessError) as exc:
        logger.warning("Encoder probe failed: %s", exc)

    found.append(SOFTWARE_ENCODER)
    _encoder_cache = found
    return found


def best_hw_encoder() -> str:
    return detect_available_encoders()[0]


def encoder_display_name(enc_id: str) -> str:
    profile = ENCODER_PROFILES.get(enc_id)
    return profile[0] if profile else enc_id


def build_encoder_args(enc_id: str) -> List[str]:
    """``-c:v`` plus quality flags for *enc_id*; unknown ids use x264."""
    if enc_id not in ENCODER_PROFILES:
        enc_id = SOFTWARE_ENCODER
    _, quality = ENCODER_PROFILES[enc_id]
    return ["-c:v", enc_id, *quality, "-pix_fmt", "yuv420p"]
