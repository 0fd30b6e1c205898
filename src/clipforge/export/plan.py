"""Concatenation/composition plan models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from clipforge.models.timeline import TrackKind, Transform


class SegmentKind(str, Enum):
    """Type of a base-sequence segment."""

    CLIP = "clip"
    GAP = "gap"


class Segment(BaseModel):
    """One entry of the base sequence, either footage or black filler."""

    model_config = ConfigDict(frozen=True)

    kind: SegmentKind
    timeline_start: float = Field(..., ge=0)
    duration: float = Field(..., gt=0)
    clip_id: str | None = None
    media_clip_id: str | None = None
    path: str | None = Field(None, description="Resolved playable path (proxy or source)")
    in_point: float | None = None
    out_point: float | None = None
    has_audio: bool = False
    width: int | None = None
    height: int | None = None

    @property
    def timeline_end(self) -> float:
        return self.timeline_start + self.duration

    @property
    def is_gap(self) -> bool:
        return self.kind == SegmentKind.GAP


class LayerSegment(BaseModel):
    """A clip composited over the base sequence for its active window."""

    model_config = ConfigDict(frozen=True)

    clip_id: str
    media_clip_id: str
    path: str
    in_point: float
    out_point: float
    start: float = Field(..., ge=0, description="Timeline time the segment appears")
    end: float = Field(..., description="Timeline time the segment disappears")
    layer_order: int = 0
    transform: Transform | None = None
    has_audio: bool = False
    width: int
    height: int

    @property
    def duration(self) -> float:
        return self.out_point - self.in_point


class OverlayLayer(BaseModel):
    """All segments of one track drawn above the base sequence."""

    model_config = ConfigDict(frozen=True)

    track_id: str
    track_name: str
    kind: TrackKind
    order: int
    volume: float = 1.0
    segments: tuple[LayerSegment, ...] = ()


class CompositionPlan(BaseModel):
    """Ordered, resolved export plan derived from a timeline snapshot.

    ``segments`` covers ``[0, duration)`` without holes: gaps on the base
    track (and any tail needed for overlays that outlast it) are explicit
    gap segments. ``overlays`` are listed bottom to top.
    """

    model_config = ConfigDict(frozen=True)

    base_track_id: str
    base_volume: float = 1.0
    segments: tuple[Segment, ...]
    overlays: tuple[OverlayLayer, ...] = ()
    duration: float
    canvas_width: int
    canvas_height: int
    source_fps: float

    @property
    def clip_segments(self) -> list[Segment]:
        return [s for s in self.segments if not s.is_gap]
