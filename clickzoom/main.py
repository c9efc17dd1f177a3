"""ClickZoom: click-driven autozoom and cursor overlay for screen recordings."""

import argparse
import json
import logging
import os
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QTimer

from zoomkit.click_tracker import ClickTracker
from zoomkit.cursor_exporter import CursorVideoExporter
from zoomkit.displays import MssDisplayLocator
from zoomkit.input_hook import MouseHook
from zoomkit.metadata_store import load_recording_metadata, save_recording_metadata
from zoomkit.models import RecordingMetadata
from zoomkit.settings import (
    AUTOZOOM_PRESETS,
    DEFAULT_AUTOZOOM_SETTINGS,
    AutozoomSettings,
    load_settings,
)
from zoomkit.utils import best_hw_encoder, fmt_time, video_duration_ms
from zoomkit.version import __version__
from zoomkit.zoom_timeline import ZoomTimeline

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s | %(levelname)s | %(message)s",
)

_logger = logging.getLogger(__name__)


def _global_exception_handler(exc_type, exc_value, exc_tb):
    """Log unhandled exceptions instead of crashing silently."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    _logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))


# ── helpers ─────────────────────────────────────────────────────────

def _resolve_settings(args: argparse.Namespace) -> AutozoomSettings:
    if args.settings:
        return load_settings(args.settings)
    return AUTOZOOM_PRESETS.get(args.preset, DEFAULT_AUTOZOOM_SETTINGS)


def _load_metadata(video: str) -> Optional[RecordingMetadata]:
    result = load_recording_metadata(video)
    if not result.success:
        _logger.error("%s (%s)", result.error or result.message, result.path)
        return None
    return result.metadata


def _resolve_duration(args: argparse.Namespace) -> Optional[float]:
    if args.duration_ms is not None:
        return float(args.duration_ms)
    duration = video_duration_ms(args.video)
    if duration is None:
        _logger.error("Cannot read the length of %s; pass --duration-ms", args.video)
    return duration


def _build_timeline(args: argparse.Namespace, metadata: RecordingMetadata,
                    duration_ms: float) -> ZoomTimeline:
    timeline = ZoomTimeline()
    added = timeline.apply_autozoom(metadata, duration_ms, _resolve_settings(args))
    for region in added:
        _logger.info(
            "  %s  %s → %s  x%.2f",
            region.id, fmt_time(region.start_ms), fmt_time(region.end_ms), region.scale,
        )
    return timeline


# ── commands ────────────────────────────────────────────────────────

def cmd_record(args: argparse.Namespace) -> int:
    """Track clicks until --duration elapses or Ctrl+C, then write the sidecar."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)

    hook = MouseHook()
    tracker = ClickTracker(hook, MssDisplayLocator())
    if not tracker.start(source_id=args.source_id, source_name=args.source_name):
        return 1

    signal.signal(signal.SIGINT, lambda *_: app.quit())
    # Python signal handlers only run between Qt events
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(200)
    if args.duration:
        QTimer.singleShot(int(args.duration * 1000), app.quit)

    _logger.info("Recording clicks for %s (Ctrl+C to stop)", args.video)
    app.exec()
    heartbeat.stop()

    metadata = tracker.stop()
    directory = os.path.dirname(os.path.abspath(args.video))
    result = save_recording_metadata(metadata, args.video, directory)
    if not result.success:
        _logger.error("Could not save metadata: %s", result.error)
        return 1
    print(result.path)
    return 0


def cmd_autozoom(args: argparse.Namespace) -> int:
    """Print the proposed zoom regions for a recording as JSON."""
    metadata = _load_metadata(args.video)
    if metadata is None:
        return 1
    duration = _resolve_duration(args)
    if duration is None:
        return 1
    timeline = _build_timeline(args, metadata, duration)
    print(json.dumps([r.to_dict() for r in timeline.regions], indent=2))
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Render cursor and autozoom into a new video."""
    metadata = _load_metadata(args.video)
    if metadata is None:
        return 1
    timeline = None
    if not args.no_zoom:
        duration = _resolve_duration(args)
        if duration is None:
            return 1
        timeline = _build_timeline(args, metadata, duration)

    exporter = CursorVideoExporter()
    reported = [-1]

    def on_progress(p: float) -> None:
        decile = int(p * 10)
        if decile > reported[0]:
            reported[0] = decile
            _logger.info("Export %d%%", decile * 10)

    exporter.progress.connect(on_progress)
    exporter.error.connect(lambda msg: _logger.error("Export error: %s", msg))
    ok = exporter.export_blocking(
        args.video,
        args.output,
        metadata.cursor_positions,
        timeline=timeline,
        encoder_id=args.encoder or best_hw_encoder(),
        draw_cursor=not args.no_cursor,
    )
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clickzoom", description=__doc__)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    rec = sub.add_parser("record", help="track clicks while you record a video")
    rec.add_argument("video", help="path of the video being recorded")
    rec.add_argument("--duration", type=float, default=0.0,
                     help="stop after this many seconds (default: until Ctrl+C)")
    rec.add_argument("--source-id")
    rec.add_argument("--source-name")
    rec.set_defaults(func=cmd_record)

    def add_zoom_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("video", help="recorded video with a .cursor.json sidecar")
        p.add_argument("--duration-ms", type=float,
                       help="video length (default: read from the file)")
        p.add_argument("--preset", choices=sorted(AUTOZOOM_PRESETS), default="Default")
        p.add_argument("--settings", help="JSON settings file (overrides --preset)")

    az = sub.add_parser("autozoom", help="print zoom regions generated from clicks")
    add_zoom_options(az)
    az.set_defaults(func=cmd_autozoom)

    ex = sub.add_parser("export", help="export a video with cursor and zoom applied")
    add_zoom_options(ex)
    ex.add_argument("-o", "--output", required=True)
    ex.add_argument("--encoder", help="ffmpeg encoder id (default: best available)")
    ex.add_argument("--no-zoom", action="store_true")
    ex.add_argument("--no-cursor", action="store_true")
    ex.set_defaults(func=cmd_export)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    sys.excepthook = _global_exception_handler
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
