"""Request and response schemas for the ClipForge API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from clipforge.jobs.models import ExportJob
from clipforge.models.export import ExportSettings
from clipforge.models.project import TrackDocument
from clipforge.models.timeline import TimelineClip, TrackKind, Transform


# ------------------------------------------------------------------
# Timeline requests
# ------------------------------------------------------------------


class AddClipRequest(BaseModel):
    media_clip_id: str = Field(..., description="MediaClip to place")
    track_id: str = Field(..., description="Destination track")
    start_time: float | None = Field(None, description="Timeline position; omit to auto-place")
    in_point: float = Field(..., description="Trim start in media seconds")
    out_point: float = Field(..., description="Trim end in media seconds")
    layer_order: int = Field(0, description="Z-index tiebreak within the track")
    transform: Transform | None = None


class UpdateClipRequest(BaseModel):
    start_time: float | None = None
    in_point: float | None = None
    out_point: float | None = None
    track_id: str | None = Field(None, description="Move the clip to another track")


class SplitClipRequest(BaseModel):
    split_time: float = Field(..., description="Timeline position of the cut")


class CreateTrackRequest(BaseModel):
    name: str
    kind: TrackKind = TrackKind.MAIN


class UpdateTrackRequest(BaseModel):
    name: str | None = None
    visible: bool | None = None
    locked: bool | None = None
    volume: float | None = None


# ------------------------------------------------------------------
# Timeline responses
# ------------------------------------------------------------------


class SplitClipResponse(BaseModel):
    clip_before: TimelineClip
    clip_after: TimelineClip


class TimelineResponse(BaseModel):
    version: int
    duration: float
    tracks: list[TrackDocument]


class DurationResponse(BaseModel):
    duration: float


# ------------------------------------------------------------------
# Export requests / responses
# ------------------------------------------------------------------


class ExportRequest(BaseModel):
    output_path: str = Field(..., description="Destination file")
    settings: ExportSettings = Field(default_factory=ExportSettings)


class ExportCreateResponse(BaseModel):
    job_id: str
    status: str


class ExportJobResponse(BaseModel):
    job_id: str
    status: str
    output_path: str
    settings: ExportSettings
    progress: float = 0.0
    current_frame: int = 0
    total_frames: int = 0
    fps: float = 0.0
    eta_seconds: float | None = None
    error: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: ExportJob) -> ExportJobResponse:
        return cls(
            job_id=job.id,
            status=job.status.value,
            output_path=job.output_path,
            settings=job.settings,
            progress=job.progress,
            current_frame=job.current_frame,
            total_frames=job.total_frames,
            fps=job.encode_fps,
            eta_seconds=job.eta_seconds,
            error=job.error,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )
