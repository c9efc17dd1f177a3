"""Turn recorded clicks into automatic zoom regions.

Two steps:

1. **Click merging**: clicks that follow each other within
   ``merge_threshold`` ms are chained into one group (each click is
   compared with the one before it, not with the first of the group,
   so a double-click followed by a quick third click stays together).
   A group becomes one :class:`MergedClick` at its average position.

2. **Region synthesis**: every merged click proposes the interval
   ``[t - lead, t + hold + fadeout]`` clipped to the video.  Proposals
   that are too short or that collide with an existing region, or with
   one accepted earlier in the same pass, are dropped.

Both functions are pure: the caller owns the authoritative region list
and merges the returned regions into it (see :class:`ZoomTimeline`).
"""

import logging
import math
from typing import List, Sequence

from .coords import screen_to_normalized_focus
from .models import (
    ClickEvent,
    MergedClick,
    MouseButton,
    RecordingMetadata,
    ZoomRegion,
)
from .settings import AutozoomSettings, DEFAULT_AUTOZOOM_SETTINGS

logger = logging.getLogger(__name__)


MIN_REGION_DURATION_MS = 100   # shorter proposals are dropped
AUTO_REGION_PREFIX = "zoom-auto"


def round_half_up(v: float) -> int:
    """Round .5 away from -inf, unlike Python's banker's ``round()``."""
    return int(math.floor(v + 0.5))


def _close_group(group: List[ClickEvent]) -> MergedClick:
    first = group[0]
    n = len(group)
    return MergedClick(
        timestamp_ms=first.timestamp_ms,
        x=round_half_up(sum(c.x for c in group) / n),
        y=round_half_up(sum(c.y for c in group) / n),
        screen_width=first.screen_width,
        screen_height=first.screen_height,
        click_count=n,
    )


def merge_nearby_clicks(
    clicks: Sequence[ClickEvent],
    merge_threshold: float,
    ignore_right_clicks: bool,
) -> List[MergedClick]:
    """Collapse temporally-adjacent clicks into merged clicks."""
    if ignore_right_clicks:
        clicks = [c for c in clicks if c.button != MouseButton.RIGHT]
    if not clicks:
        return []

    ordered = sorted(clicks, key=lambda c: c.timestamp_ms)

    merged: List[MergedClick] = []
    group: List[ClickEvent] = [ordered[0]]
    for click in ordered[1:]:
        if click.timestamp_ms - group[-1].timestamp_ms <= merge_threshold:
            group.append(click)
        else:
            merged.append(_close_group(group))
            group = [click]
    merged.append(_close_group(group))
    return merged


def does_overlap(start_ms: float, end_ms: float, regions: Sequence[ZoomRegion]) -> bool:
    """True if ``[start_ms, end_ms)`` intersects any region (touching is fine)."""
    return any(
        not (end_ms <= r.start_ms or start_ms >= r.end_ms)
        for r in regions
    )


def generate_zoom_regions_from_clicks(
    metadata: RecordingMetadata,
    video_duration_ms: float,
    existing_regions: Sequence[ZoomRegion],
    settings: AutozoomSettings = DEFAULT_AUTOZOOM_SETTINGS,
) -> List[ZoomRegion]:
    """Propose new zoom regions for the clicks in *metadata*.

    Returns regions in click order that overlap neither each other nor
    *existing_regions*.  Calling again with the result included in
    *existing_regions* proposes nothing.
    """
    fadeout = settings.fadeout_time
    merged = merge_nearby_clicks(
        metadata.clicks, settings.merge_threshold, settings.ignore_right_clicks,
    )

    new_regions: List[ZoomRegion] = []
    for click in merged:
        # Bounds are rounded before any check so stored regions keep
        # the minimum duration and stay disjoint.
        start_ms = round_half_up(max(0.0, click.timestamp_ms - settings.lead_time))
        end_ms = round_half_up(
            min(float(video_duration_ms), click.timestamp_ms + settings.hold_time + fadeout)
        )

        if end_ms - start_ms < MIN_REGION_DURATION_MS:
            continue
        if does_overlap(start_ms, end_ms, existing_regions):
            continue
        if does_overlap(start_ms, end_ms, new_regions):
            continue

        focus = screen_to_normalized_focus(
            click.x, click.y, click.screen_width, click.screen_height,
        )
        if focus is None:
            logger.debug("Skipping click at %dms: zero-area screen", click.timestamp_ms)
            continue

        new_regions.append(ZoomRegion.create(
            start_ms=start_ms,
            end_ms=end_ms,
            depth=settings.default_depth,
            focus=focus,
            prefix=AUTO_REGION_PREFIX,
        ))

    logger.info(
        "Autozoom: %d clicks -> %d merged -> %d new regions (%d existing)",
        len(metadata.clicks), len(merged), len(new_regions), len(existing_regions),
    )
    return new_regions
