"""Media registry endpoints.

Descriptors come from the import pipeline (probing, proxies); the API only
records them so timeline clips can reference them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clipforge.api.deps import get_editor
from clipforge.models.media import MediaClip
from clipforge.timeline.editor import TimelineEditor

router = APIRouter(prefix="/api/v1/media", tags=["media"])


@router.post("", response_model=MediaClip, status_code=201)
async def register_media(
    clip: MediaClip,
    editor: TimelineEditor = Depends(get_editor),
) -> MediaClip:
    return editor.media.register(clip)


@router.get("", response_model=list[MediaClip])
async def list_media(
    editor: TimelineEditor = Depends(get_editor),
) -> list[MediaClip]:
    return editor.media.list_clips()


@router.get("/{media_clip_id}", response_model=MediaClip)
async def get_media(
    media_clip_id: str,
    editor: TimelineEditor = Depends(get_editor),
) -> MediaClip:
    return editor.media.require(media_clip_id)
