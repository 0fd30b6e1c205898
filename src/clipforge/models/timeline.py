"""Timeline and editing-related data models."""

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

# Clips whose edges are closer than this are treated as touching, not overlapping.
TIME_EPSILON = 1e-9


class TrackKind(str, Enum):
    """Role of a track in the composition."""

    MAIN = "main"
    OVERLAY = "overlay"


class Transform(BaseModel):
    """Placement of an overlay clip on the output canvas (pixels)."""

    x: int = 0
    y: int = 0
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    rotation_degrees: float = 0.0


class Track(BaseModel):
    """A named layer of timeline clips.

    ``clip_ids`` is kept sorted by clip start time; main tracks render
    beneath overlay tracks and ``order`` breaks ties within a kind.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., description="Track name")
    kind: TrackKind = Field(default=TrackKind.MAIN, description="main or overlay")
    order: int = Field(default=0, description="Z-index, higher draws on top")
    visible: bool = True
    locked: bool = False
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    clip_ids: list[str] = Field(default_factory=list)

    @property
    def is_main(self) -> bool:
        return self.kind == TrackKind.MAIN

    @property
    def is_overlay(self) -> bool:
        return self.kind == TrackKind.OVERLAY


class TimelineClip(BaseModel):
    """A trimmed MediaClip placed on a track.

    ``in_point``/``out_point`` are offsets into the media's own duration;
    ``start_time`` is the position on the shared timeline axis.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    media_clip_id: str = Field(..., description="Referenced MediaClip id")
    track_id: str = Field(..., description="Owning track id")
    start_time: float = Field(..., ge=0, description="Timeline position in seconds")
    in_point: float = Field(..., ge=0, description="Trim start in media seconds")
    out_point: float = Field(..., gt=0, description="Trim end in media seconds")
    layer_order: int = Field(default=0, description="Z-index tiebreak within a track")
    transform: Transform | None = None

    @property
    def effective_duration(self) -> float:
        """Return trimmed duration in seconds."""
        return self.out_point - self.in_point

    @property
    def end_time(self) -> float:
        """Return timeline end position in seconds."""
        return self.start_time + self.effective_duration

    def overlaps(self, other: "TimelineClip") -> bool:
        """Check if this clip's timeline window intersects another's."""
        return (
            self.start_time < other.end_time - TIME_EPSILON
            and other.start_time < self.end_time - TIME_EPSILON
        )


class Timeline(BaseModel):
    """Editable aggregate: tracks plus an arena of clips indexed by id."""

    tracks: list[Track] = Field(default_factory=list)
    clips: dict[str, TimelineClip] = Field(default_factory=dict)
    version: int = Field(default=0, description="Incremented on every commit")

    @classmethod
    def new(cls, main_track_name: str = "Main Track") -> "Timeline":
        """Create a timeline seeded with its mandatory main track."""
        return cls(tracks=[Track(name=main_track_name, kind=TrackKind.MAIN, order=0)])

    def get_track(self, track_id: str) -> Track | None:
        """Get a track by ID."""
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def get_clip(self, clip_id: str) -> TimelineClip | None:
        return self.clips.get(clip_id)

    def clips_on_track(self, track_id: str) -> list[TimelineClip]:
        """Clips of a track in timeline order."""
        track = self.get_track(track_id)
        if track is None:
            return []
        return [self.clips[cid] for cid in track.clip_ids]

    def main_tracks(self) -> list[Track]:
        return [t for t in self.tracks if t.is_main]

    def overlay_tracks(self) -> list[Track]:
        return [t for t in self.tracks if t.is_overlay]

    def next_order(self) -> int:
        if not self.tracks:
            return 0
        return max(t.order for t in self.tracks) + 1

    @property
    def clip_count(self) -> int:
        return len(self.clips)
