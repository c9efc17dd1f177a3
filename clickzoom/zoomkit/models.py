"""Core data models for ClickZoom.

Defines the dataclasses shared by the recorder, the autozoom synthesizer
and the cursor renderers.  Recorded samples are frozen once created.
All models support JSON serialization via ``to_dict()`` / ``from_dict()``
(or ``to_json()`` / ``from_json()`` for the top-level metadata snapshot).
Keys on disk are camelCase.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional, Tuple
import json
import uuid


METADATA_VERSION = 1
CURSOR_SAMPLE_INTERVAL_MS = 33  # ~30 Hz


class MouseButton(IntEnum):
    """Button identity as reported by the input hook."""
    LEFT = 1
    RIGHT = 2
    MIDDLE = 3
    X1 = 4
    X2 = 5


class ZoomDepth(IntEnum):
    """Zoom magnitude tier.  See :data:`ZOOM_DEPTH_SCALES`."""
    SUBTLE = 1
    LIGHT = 2
    MEDIUM = 3
    STRONG = 4
    CLOSE = 5
    EXTREME = 6


ZOOM_DEPTH_SCALES: Dict[ZoomDepth, float] = {
    ZoomDepth.SUBTLE: 1.25,
    ZoomDepth.LIGHT: 1.5,
    ZoomDepth.MEDIUM: 1.8,
    ZoomDepth.STRONG: 2.2,
    ZoomDepth.CLOSE: 3.5,
    ZoomDepth.EXTREME: 5.0,
}


@dataclass(frozen=True)
class ClickEvent:
    """A mouse-button press, relative to the display it happened on."""
    timestamp_ms: int  # ms since recording start
    x: int
    y: int
    screen_width: int
    screen_height: int
    button: MouseButton = MouseButton.LEFT

    def to_dict(self) -> dict:
        return {
            "timestampMs": self.timestamp_ms,
            "x": self.x,
            "y": self.y,
            "screenWidth": self.screen_width,
            "screenHeight": self.screen_height,
            "button": int(self.button),
        }

    @staticmethod
    def from_dict(d: dict) -> "ClickEvent":
        return ClickEvent(
            timestamp_ms=int(d["timestampMs"]),
            x=int(d["x"]),
            y=int(d["y"]),
            screen_width=int(d["screenWidth"]),
            screen_height=int(d["screenHeight"]),
            button=_button_from_int(d.get("button", MouseButton.LEFT)),
        )


@dataclass(frozen=True)
class CursorPosition:
    """One sampled cursor position, relative to the display it was on."""
    timestamp_ms: int  # ms since recording start
    x: int
    y: int
    screen_width: int
    screen_height: int

    def to_dict(self) -> dict:
        return {
            "timestampMs": self.timestamp_ms,
            "x": self.x,
            "y": self.y,
            "screenWidth": self.screen_width,
            "screenHeight": self.screen_height,
        }

    @staticmethod
    def from_dict(d: dict) -> "CursorPosition":
        return CursorPosition(
            timestamp_ms=int(d["timestampMs"]),
            x=int(d["x"]),
            y=int(d["y"]),
            screen_width=int(d["screenWidth"]),
            screen_height=int(d["screenHeight"]),
        )


def _button_from_int(value) -> MouseButton:
    # Buttons we don't know about are kept as LEFT rather than dropped;
    # only RIGHT has special meaning downstream.
    try:
        return MouseButton(int(value))
    except ValueError:
        return MouseButton.LEFT


@dataclass(frozen=True)
class RecordingMetadata:
    """Immutable snapshot of everything captured in one recording.

    Produced once by :meth:`ClickTracker.stop` and persisted next to the
    video as a JSON sidecar (see :mod:`zoomkit.metadata_store`).
    """

    version: int
    recording_start_ms: int  # epoch ms
    clicks: Tuple[ClickEvent, ...] = ()
    cursor_positions: Tuple[CursorPosition, ...] = ()
    source_id: Optional[str] = None
    source_name: Optional[str] = None

    @staticmethod
    def empty() -> "RecordingMetadata":
        """The zero-valued snapshot returned when nothing was recorded."""
        return RecordingMetadata(version=METADATA_VERSION, recording_start_ms=0)

    def to_dict(self) -> dict:
        data = {
            "version": self.version,
            "recordingStartMs": self.recording_start_ms,
            "clicks": [c.to_dict() for c in self.clicks],
            "cursorPositions": [p.to_dict() for p in self.cursor_positions],
        }
        if self.source_id is not None:
            data["sourceId"] = self.source_id
        if self.source_name is not None:
            data["sourceName"] = self.source_name
        return data

    @staticmethod
    def from_dict(d: dict) -> "RecordingMetadata":
        """Reconstruct from a dict, tolerating older or newer writers.

        Missing ``cursorPositions`` (version 1 files written before
        cursor sampling existed) becomes an empty sequence.
        """
        return RecordingMetadata(
            version=int(d.get("version", METADATA_VERSION)),
            recording_start_ms=int(d.get("recordingStartMs", 0)),
            clicks=tuple(ClickEvent.from_dict(c) for c in d.get("clicks") or []),
            cursor_positions=tuple(
                CursorPosition.from_dict(p) for p in d.get("cursorPositions") or []
            ),
            source_id=d.get("sourceId"),
            source_name=d.get("sourceName"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @staticmethod
    def from_json(s: str) -> "RecordingMetadata":
        return RecordingMetadata.from_dict(json.loads(s))


@dataclass(frozen=True)
class MergedClick:
    """One or more clicks collapsed into a representative point."""
    timestamp_ms: int
    x: int
    y: int
    screen_width: int
    screen_height: int
    click_count: int = 1


@dataclass(frozen=True)
class ZoomFocus:
    """Zoom centre as a fraction of display width/height."""
    cx: float
    cy: float

    def to_dict(self) -> dict:
        return {"cx": self.cx, "cy": self.cy}

    @staticmethod
    def from_dict(d: dict) -> "ZoomFocus":
        return ZoomFocus(cx=float(d["cx"]), cy=float(d["cy"]))


@dataclass(frozen=True)
class ZoomRegion:
    """A time interval of the output video shown magnified around *focus*."""

    id: str
    start_ms: int
    end_ms: int
    depth: ZoomDepth
    focus: ZoomFocus = field(default_factory=lambda: ZoomFocus(0.5, 0.5))

    @staticmethod
    def create(
        start_ms: int,
        end_ms: int,
        depth: ZoomDepth = ZoomDepth.MEDIUM,
        focus: Optional[ZoomFocus] = None,
        prefix: str = "zoom",
    ) -> "ZoomRegion":
        """Factory that auto-generates a unique ``<prefix>-<uuid4>`` id."""
        return ZoomRegion(
            id=f"{prefix}-{uuid.uuid4()}",
            start_ms=start_ms,
            end_ms=end_ms,
            depth=depth,
            focus=focus or ZoomFocus(0.5, 0.5),
        )

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def scale(self) -> float:
        return ZOOM_DEPTH_SCALES[self.depth]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startMs": self.start_ms,
            "endMs": self.end_ms,
            "depth": int(self.depth),
            "focus": self.focus.to_dict(),
        }

    @staticmethod
    def from_dict(d: dict) -> "ZoomRegion":
        """Reconstruct from a dict, ignoring unknown keys for forward compat."""
        return ZoomRegion(
            id=d["id"],
            start_ms=int(d["startMs"]),
            end_ms=int(d["endMs"]),
            depth=ZoomDepth(int(d["depth"])),
            focus=ZoomFocus.from_dict(d["focus"]) if "focus" in d else ZoomFocus(0.5, 0.5),
        )
