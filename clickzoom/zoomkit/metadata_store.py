"""Recording metadata sidecars: save / load ``<video>.cursor.json``.

The sidecar sits next to the recorded video and holds the
:class:`RecordingMetadata` snapshot as JSON.  Failures are reported in
the returned :class:`StoreResult`, never raised; retrying is left to the
caller.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from .models import RecordingMetadata

logger = logging.getLogger(__name__)


METADATA_SUFFIX = ".cursor.json"


@dataclass
class StoreResult:
    """Outcome of a save or load."""
    success: bool
    path: str = ""
    metadata: Optional[RecordingMetadata] = None
    message: str = ""
    error: str = ""


def metadata_path_for(video_path: str) -> str:
    """Sidecar path for a video: same directory and stem, new suffix."""
    return os.path.splitext(video_path)[0] + METADATA_SUFFIX


def save_recording_metadata(
    metadata: RecordingMetadata,
    file_name: str,
    directory: str,
) -> StoreResult:
    """Write *metadata* as the sidecar for video *file_name* in *directory*."""
    path = metadata_path_for(os.path.join(directory, os.path.basename(file_name)))
    try:
        os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(metadata.to_json())
    except OSError as exc:
        logger.error("Failed to store recording metadata at %s: %s", path, exc)
        return StoreResult(success=False, path=path, error=str(exc))

    logger.info("Stored recording metadata (%d clicks) at %s", len(metadata.clicks), path)
    return StoreResult(
        success=True,
        path=path,
        metadata=metadata,
        message=f"Recording metadata saved to {path}",
    )


def load_recording_metadata(video_path: str) -> StoreResult:
    """Read the sidecar belonging to *video_path*."""
    path = metadata_path_for(video_path)
    if not os.path.isfile(path):
        return StoreResult(success=False, path=path, message="No recording metadata found")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.loads(f.read())
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value is not an object")
        metadata = RecordingMetadata.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError, OverflowError) as exc:
        logger.error("Failed to load recording metadata from %s: %s", path, exc)
        return StoreResult(success=False, path=path, error=str(exc))

    return StoreResult(success=True, path=path, metadata=metadata)
