"""Data models for ClipForge."""

from clipforge.models.export import (
    AudioCodec,
    ExportQuality,
    ExportResolution,
    ExportSettings,
    VideoCodec,
)
from clipforge.models.media import MediaClip, MediaLibrary
from clipforge.models.project import Project, TrackDocument
from clipforge.models.timeline import Timeline, TimelineClip, Track, TrackKind, Transform

__all__ = [
    # Media
    "MediaClip",
    "MediaLibrary",
    # Timeline
    "Timeline",
    "TimelineClip",
    "Track",
    "TrackKind",
    "Transform",
    # Export
    "ExportSettings",
    "ExportResolution",
    "ExportQuality",
    "VideoCodec",
    "AudioCodec",
    # Project
    "Project",
    "TrackDocument",
]
