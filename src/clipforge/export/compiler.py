"""Turns a timeline snapshot into an export plan."""

import logging
from pathlib import Path

from clipforge.errors import MissingMediaError, NoMainTrackError
from clipforge.export.plan import CompositionPlan, LayerSegment, OverlayLayer, Segment, SegmentKind
from clipforge.models.media import MediaClip, MediaLibrary
from clipforge.models.timeline import TIME_EPSILON, Timeline, TimelineClip, Track

logger = logging.getLogger(__name__)


def compute_duration(timeline: Timeline) -> float:
    """Calculate total timeline duration in seconds.

    The latest clip end across all visible tracks. Gaps count toward the
    duration; empty or hidden tracks contribute nothing.
    """
    ends = [
        clip.end_time
        for track in timeline.tracks
        if track.visible
        for clip in timeline.clips_on_track(track.id)
    ]
    return max(ends, default=0.0)


def _resolve_media(clip: TimelineClip, media: MediaLibrary) -> MediaClip:
    media_clip = media.get(clip.media_clip_id)
    if media_clip is None:
        raise MissingMediaError(f"Media clip not found: {clip.media_clip_id}")
    return media_clip


def _ordered_clips(timeline: Timeline, track: Track) -> list[TimelineClip]:
    return sorted(
        timeline.clips_on_track(track.id),
        key=lambda c: (c.start_time, c.layer_order, c.in_point, c.media_clip_id),
    )


def select_base_track(timeline: Timeline) -> Track:
    """Pick the main track that forms the base sequence.

    The visible main track with the most clips; ties go to the lowest order.
    """
    candidates = [t for t in timeline.tracks if t.is_main and t.visible and t.clip_ids]
    if not candidates:
        raise NoMainTrackError("No main track with clips found")
    return max(candidates, key=lambda t: (len(t.clip_ids), -t.order))


def generate_plan(timeline: Timeline, media: MediaLibrary) -> CompositionPlan:
    """Build the gap-aware concatenation/composition plan for a snapshot."""
    base_track = select_base_track(timeline)
    duration = compute_duration(timeline)

    logger.debug(
        "Planning export: base track '%s' with %d clips, duration %.3fs",
        base_track.name,
        len(base_track.clip_ids),
        duration,
    )

    segments: list[Segment] = []
    cursor = 0.0
    first_media: MediaClip | None = None
    for clip in _ordered_clips(timeline, base_track):
        media_clip = _resolve_media(clip, media)
        if first_media is None:
            first_media = media_clip
        if clip.start_time - cursor > TIME_EPSILON:
            segments.append(
                Segment(
                    kind=SegmentKind.GAP,
                    timeline_start=cursor,
                    duration=clip.start_time - cursor,
                )
            )
        segments.append(
            Segment(
                kind=SegmentKind.CLIP,
                timeline_start=clip.start_time,
                duration=clip.effective_duration,
                clip_id=clip.id,
                media_clip_id=media_clip.id,
                path=media_clip.playable_path,
                in_point=clip.in_point,
                out_point=clip.out_point,
                has_audio=media_clip.has_audio,
                width=media_clip.width,
                height=media_clip.height,
            )
        )
        cursor = clip.end_time

    if duration - cursor > TIME_EPSILON:
        segments.append(
            Segment(kind=SegmentKind.GAP, timeline_start=cursor, duration=duration - cursor)
        )

    layer_tracks = sorted(
        (t for t in timeline.tracks if t.visible and t.clip_ids and t.id != base_track.id),
        key=lambda t: (0 if t.is_main else 1, t.order),
    )
    overlays: list[OverlayLayer] = []
    for track in layer_tracks:
        layer_segments = []
        for clip in _ordered_clips(timeline, track):
            media_clip = _resolve_media(clip, media)
            layer_segments.append(
                LayerSegment(
                    clip_id=clip.id,
                    media_clip_id=media_clip.id,
                    path=media_clip.playable_path,
                    in_point=clip.in_point,
                    out_point=clip.out_point,
                    start=clip.start_time,
                    end=clip.end_time,
                    layer_order=clip.layer_order,
                    transform=clip.transform,
                    has_audio=media_clip.has_audio,
                    width=media_clip.width,
                    height=media_clip.height,
                )
            )
        overlays.append(
            OverlayLayer(
                track_id=track.id,
                track_name=track.name,
                kind=track.kind,
                order=track.order,
                volume=track.volume,
                segments=tuple(layer_segments),
            )
        )

    if first_media is None:
        raise NoMainTrackError(f"Base track '{base_track.name}' has no clips")
    return CompositionPlan(
        base_track_id=base_track.id,
        base_volume=base_track.volume,
        segments=tuple(segments),
        overlays=tuple(overlays),
        duration=duration,
        canvas_width=first_media.width,
        canvas_height=first_media.height,
        source_fps=first_media.fps,
    )


def _escape_concat_path(path: str) -> str:
    return path.replace("'", "'\\''")


def render_concat_file(plan: CompositionPlan) -> str:
    """Render the base clips as an ffconcat v1.0 listing."""
    lines = ["ffconcat version 1.0"]
    for segment in plan.clip_segments:
        lines.append(f"file '{_escape_concat_path(segment.path or '')}'")
        lines.append(f"inpoint {segment.in_point:.6f}")
        lines.append(f"outpoint {segment.out_point:.6f}")
    return "\n".join(lines) + "\n"


def write_concat_file(plan: CompositionPlan, output_dir: Path) -> Path:
    """Write ``concat.txt`` for inspection or a plain concat-demuxer export."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    concat_path = output_dir / "concat.txt"
    concat_path.write_text(render_concat_file(plan), encoding="utf-8")
    logger.debug("Wrote concat file: %s", concat_path)
    return concat_path
