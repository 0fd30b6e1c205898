"""Timeline editing endpoints.

Every mutating route maps onto one editor command; rejected edits surface
as 404/422 through the application's exception handlers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from clipforge.api.deps import get_editor
from clipforge.api.schemas import (
    AddClipRequest,
    CreateTrackRequest,
    DurationResponse,
    SplitClipRequest,
    SplitClipResponse,
    TimelineResponse,
    UpdateClipRequest,
    UpdateTrackRequest,
)
from clipforge.models.timeline import TimelineClip, Track
from clipforge.timeline.commands import AddClip, CreateTrack, SetTrackProperties, UpdateClip
from clipforge.timeline.editor import TimelineEditor

router = APIRouter(prefix="/api/v1/timeline", tags=["timeline"])


# ------------------------------------------------------------------
# GET - read the timeline
# ------------------------------------------------------------------


@router.get("", response_model=TimelineResponse)
async def get_timeline(
    editor: TimelineEditor = Depends(get_editor),
) -> TimelineResponse:
    project = editor.to_project()
    return TimelineResponse(
        version=editor.version,
        duration=editor.duration(),
        tracks=project.tracks,
    )


@router.get("/duration", response_model=DurationResponse)
async def get_duration(
    editor: TimelineEditor = Depends(get_editor),
) -> DurationResponse:
    return DurationResponse(duration=editor.duration())


# ------------------------------------------------------------------
# Clips
# ------------------------------------------------------------------


@router.post("/clips", response_model=TimelineClip, status_code=201)
async def add_clip(
    req: AddClipRequest,
    editor: TimelineEditor = Depends(get_editor),
) -> TimelineClip:
    return editor.apply(AddClip(**req.model_dump()))


@router.patch("/clips/{clip_id}", response_model=TimelineClip)
async def update_clip(
    clip_id: str,
    req: UpdateClipRequest,
    editor: TimelineEditor = Depends(get_editor),
) -> TimelineClip:
    return editor.apply(UpdateClip(clip_id=clip_id, **req.model_dump()))


@router.post("/clips/{clip_id}/split", response_model=SplitClipResponse)
async def split_clip(
    clip_id: str,
    req: SplitClipRequest,
    editor: TimelineEditor = Depends(get_editor),
) -> SplitClipResponse:
    clip_before, clip_after = editor.split_clip(clip_id, req.split_time)
    return SplitClipResponse(clip_before=clip_before, clip_after=clip_after)


@router.delete("/clips/{clip_id}", status_code=204)
async def delete_clip(
    clip_id: str,
    editor: TimelineEditor = Depends(get_editor),
) -> Response:
    editor.delete_clip(clip_id)
    return Response(status_code=204)


# ------------------------------------------------------------------
# Tracks
# ------------------------------------------------------------------


@router.post("/tracks", response_model=Track, status_code=201)
async def create_track(
    req: CreateTrackRequest,
    editor: TimelineEditor = Depends(get_editor),
) -> Track:
    return editor.apply(CreateTrack(name=req.name, kind=req.kind))


@router.patch("/tracks/{track_id}", response_model=Track)
async def update_track(
    track_id: str,
    req: UpdateTrackRequest,
    editor: TimelineEditor = Depends(get_editor),
) -> Track:
    return editor.apply(SetTrackProperties(track_id=track_id, **req.model_dump()))


@router.delete("/tracks/{track_id}", status_code=204)
async def delete_track(
    track_id: str,
    editor: TimelineEditor = Depends(get_editor),
) -> Response:
    editor.delete_track(track_id)
    return Response(status_code=204)
