"""Media-related data models."""

from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from clipforge.errors import NotFoundError, ValidationError

# Containers the concat/trim pipeline can demux directly
EXPORTABLE_CONTAINERS = {".mp4", ".mov", ".m4v", ".mkv", ".webm"}


class MediaClip(BaseModel):
    """Imported source media descriptor.

    Produced by the import collaborator (ffprobe, proxy generation) and
    treated as read-only by the timeline and the export compiler.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(default="", description="Display name")
    source_path: str = Field(..., description="Original file path")
    proxy_path: str | None = Field(None, description="Re-encoded proxy rendition")
    duration: float = Field(..., gt=0, description="Duration in seconds")
    width: int = Field(1920, gt=0, description="Video width in pixels")
    height: int = Field(1080, gt=0, description="Video height in pixels")
    fps: float = Field(30.0, gt=0, description="Frames per second")
    codec: str = Field("h264", description="Video codec name")
    audio_codec: str | None = Field(None, description="Audio codec name")
    has_audio: bool = Field(True, description="Whether an audio stream exists")

    @property
    def resolution(self) -> str:
        """Return resolution string (e.g., '1920x1080')."""
        return f"{self.width}x{self.height}"

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def playable_path(self) -> str:
        """Path used for compiled output.

        The proxy wins when present and stored in a container the export
        pipeline can read; otherwise the original source is used.
        """
        if self.proxy_path and Path(self.proxy_path).suffix.lower() in EXPORTABLE_CONTAINERS:
            return self.proxy_path
        return self.source_path


class MediaLibrary:
    """Catalog of imported media, keyed by id."""

    def __init__(self, clips: list[MediaClip] | None = None) -> None:
        self._clips: dict[str, MediaClip] = {}
        for clip in clips or []:
            self.register(clip)

    def register(self, clip: MediaClip) -> MediaClip:
        """Add a descriptor. Re-registering an id with different contents is rejected."""
        existing = self._clips.get(clip.id)
        if existing is not None and existing != clip:
            raise ValidationError(f"Media clip {clip.id} is already registered")
        self._clips[clip.id] = clip
        return clip

    def get(self, media_clip_id: str) -> MediaClip | None:
        """Get a media clip by ID."""
        return self._clips.get(media_clip_id)

    def require(self, media_clip_id: str) -> MediaClip:
        """Get a media clip by ID or raise NotFoundError."""
        clip = self._clips.get(media_clip_id)
        if clip is None:
            raise NotFoundError(f"Media clip not found: {media_clip_id}")
        return clip

    def list_clips(self) -> list[MediaClip]:
        return list(self._clips.values())

    def __contains__(self, media_clip_id: object) -> bool:
        return media_clip_id in self._clips

    def __len__(self) -> int:
        return len(self._clips)
