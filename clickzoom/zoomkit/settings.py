"""Autozoom configuration and built-in presets.

:class:`AutozoomSettings` is a plain value: nothing reads hidden
defaults at call time.  ``from_dict`` fills missing keys from
:data:`DEFAULT_AUTOZOOM_SETTINGS` and validates what it reads.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Dict

from .models import ZoomDepth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutozoomSettings:
    """Timing and depth used when turning clicks into zoom regions."""
    lead_time: float          # ms the zoom starts before the click
    hold_time: float          # ms it stays after the click
    zoom_duration: float      # total nominal duration, ms
    default_depth: ZoomDepth
    merge_threshold: float    # max gap (ms) between chained clicks
    ignore_right_clicks: bool

    @property
    def fadeout_time(self) -> float:
        """Tail after the hold: half of what lead + hold leave of the duration."""
        return max(0.0, (self.zoom_duration - self.lead_time - self.hold_time) / 2)

    def to_dict(self) -> dict:
        return {
            "leadTime": self.lead_time,
            "holdTime": self.hold_time,
            "zoomDuration": self.zoom_duration,
            "defaultDepth": int(self.default_depth),
            "mergeThreshold": self.merge_threshold,
            "ignoreRightClicks": self.ignore_right_clicks,
        }

    @staticmethod
    def from_dict(d: dict) -> "AutozoomSettings":
        """Build settings from a dict; unknown keys are ignored.

        Raises ValueError for a value of the wrong type, a negative or
        non-finite duration, or an unknown depth.
        """
        base = DEFAULT_AUTOZOOM_SETTINGS
        values = {
            "lead_time": _duration(d, "leadTime", base.lead_time),
            "hold_time": _duration(d, "holdTime", base.hold_time),
            "zoom_duration": _duration(d, "zoomDuration", base.zoom_duration),
            "merge_threshold": _duration(d, "mergeThreshold", base.merge_threshold),
        }
        raw_depth = d.get("defaultDepth", base.default_depth)
        if isinstance(raw_depth, bool) or not isinstance(raw_depth, int):
            raise ValueError(f"Unknown zoom depth: {raw_depth!r}")
        try:
            depth = ZoomDepth(raw_depth)
        except ValueError:
            raise ValueError(f"Unknown zoom depth: {raw_depth!r}") from None
        ignore_right = d.get("ignoreRightClicks", base.ignore_right_clicks)
        if not isinstance(ignore_right, bool):
            raise ValueError(f"ignoreRightClicks must be true or false, got {ignore_right!r}")
        return AutozoomSettings(
            default_depth=depth,
            ignore_right_clicks=ignore_right,
            **values,
        )


def _duration(d: dict, key: str, default: float) -> float:
    value = d.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{key} must be a finite number >= 0, got {value!r}")
    return float(value)


# ── Built-in presets ────────────────────────────────────────────────

DEFAULT_AUTOZOOM_SETTINGS = AutozoomSettings(
    lead_time=400.0,
    hold_time=1200.0,
    zoom_duration=2500.0,
    default_depth=ZoomDepth.MEDIUM,
    merge_threshold=500.0,
    ignore_right_clicks=True,
)

AUTOZOOM_PRESETS: Dict[str, AutozoomSettings] = {
    "Subtle": AutozoomSettings(
        lead_time=500.0, hold_time=1500.0, zoom_duration=3000.0,
        default_depth=ZoomDepth.SUBTLE, merge_threshold=800.0,
        ignore_right_clicks=True,
    ),
    "Default": DEFAULT_AUTOZOOM_SETTINGS,
    "Snappy": AutozoomSettings(
        lead_time=200.0, hold_time=700.0, zoom_duration=1400.0,
        default_depth=ZoomDepth.LIGHT, merge_threshold=300.0,
        ignore_right_clicks=True,
    ),
    "Dramatic": AutozoomSettings(
        lead_time=600.0, hold_time=2000.0, zoom_duration=4000.0,
        default_depth=ZoomDepth.STRONG, merge_threshold=1000.0,
        ignore_right_clicks=False,
    ),
}


def load_settings(path: str) -> AutozoomSettings:
    """Read settings from a JSON file written by :func:`save_settings`."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.loads(f.read())
    settings = AutozoomSettings.from_dict(data)
    logger.info("Loaded autozoom settings from %s", path)
    return settings


def save_settings(settings: AutozoomSettings, path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(json.dumps(settings.to_dict(), indent=2))
    return path
