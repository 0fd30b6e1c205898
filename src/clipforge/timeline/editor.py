"""Timeline editor - validated, serialized mutations of a timeline.

The editor owns one ``Timeline`` aggregate. Every edit is a command from
``clipforge.timeline.commands``; ``apply`` validates the candidate
post-edit state and only then commits it, so a rejected edit leaves the
timeline exactly as it was. Mutations and reads share one lock, which
gives single-writer semantics and consistent snapshots.
"""

import logging
import math
import threading
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from clipforge.errors import InvalidTrimError, NotFoundError, OverlapError, ValidationError
from clipforge.export.compiler import compute_duration
from clipforge.models.media import MediaClip, MediaLibrary
from clipforge.models.project import Project, TrackDocument
from clipforge.models.timeline import TIME_EPSILON, Timeline, TimelineClip, Track, TrackKind
from clipforge.timeline.commands import (
    AddClip,
    CreateTrack,
    DeleteClip,
    DeleteTrack,
    EditCommand,
    MoveClip,
    SetTrackProperties,
    SplitClip,
    TrimClip,
    UpdateClip,
)
from clipforge.timeline.placement import PlacementPolicy

logger = logging.getLogger(__name__)


class TimelineEditor:
    """Owns a timeline and applies edit commands to it one at a time."""

    def __init__(
        self,
        media: MediaLibrary,
        timeline: Timeline | None = None,
        placement: PlacementPolicy | None = None,
    ) -> None:
        self._media = media
        self._timeline = timeline if timeline is not None else Timeline.new()
        self._placement = placement or PlacementPolicy()
        self._lock = threading.RLock()
        self._handlers: dict[type, Callable[[Any], Any]] = {
            AddClip: self._apply_add,
            MoveClip: self._apply_move,
            TrimClip: self._apply_trim,
            UpdateClip: self._apply_update,
            SplitClip: self._apply_split,
            DeleteClip: self._apply_delete,
            CreateTrack: self._apply_create_track,
            DeleteTrack: self._apply_delete_track,
            SetTrackProperties: self._apply_set_track_properties,
        }
        if not self._timeline.main_tracks():
            raise ValidationError("Timeline must contain at least one main track")

    @property
    def media(self) -> MediaLibrary:
        return self._media

    @property
    def placement(self) -> PlacementPolicy:
        return self._placement

    # ------------------------------------------------------------------
    # Command dispatch
    # ------------------------------------------------------------------

    def apply(self, command: EditCommand) -> Any:
        """Validate and commit one edit command.

        Returns whatever the matching operation returns (a clip, a pair of
        clips, a track, or None). Raises a ClipForgeError subclass if the
        command is rejected, in which case nothing changed.
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise ValidationError(f"Unsupported command: {type(command).__name__}")
        with self._lock:
            return handler(command)

    # Convenience wrappers, one per command

    def add_clip(
        self,
        media_clip_id: str,
        track_id: str,
        start_time: float | None,
        in_point: float,
        out_point: float,
    ) -> TimelineClip:
        return self.apply(
            AddClip(
                media_clip_id=media_clip_id,
                track_id=track_id,
                start_time=start_time,
                in_point=in_point,
                out_point=out_point,
            )
        )

    def move_clip(self, clip_id: str, new_start_time: float) -> TimelineClip:
        return self.apply(MoveClip(clip_id=clip_id, start_time=new_start_time))

    def trim_clip(
        self,
        clip_id: str,
        new_in_point: float | None = None,
        new_out_point: float | None = None,
        new_start_time: float | None = None,
    ) -> TimelineClip:
        return self.apply(
            TrimClip(
                clip_id=clip_id,
                in_point=new_in_point,
                out_point=new_out_point,
                start_time=new_start_time,
            )
        )

    def update_clip(
        self,
        clip_id: str,
        start_time: float | None = None,
        in_point: float | None = None,
        out_point: float | None = None,
        track_id: str | None = None,
    ) -> TimelineClip:
        return self.apply(
            UpdateClip(
                clip_id=clip_id,
                start_time=start_time,
                in_point=in_point,
                out_point=out_point,
                track_id=track_id,
            )
        )

    def split_clip(self, clip_id: str, split_time: float) -> tuple[TimelineClip, TimelineClip]:
        return self.apply(SplitClip(clip_id=clip_id, split_time=split_time))

    def delete_clip(self, clip_id: str) -> None:
        self.apply(DeleteClip(clip_id=clip_id))

    def create_track(self, name: str, kind: TrackKind | str = TrackKind.MAIN) -> Track:
        return self.apply(CreateTrack(name=name, kind=TrackKind(kind)))

    def delete_track(self, track_id: str) -> None:
        self.apply(DeleteTrack(track_id=track_id))

    def set_track_properties(self, track_id: str, **changes: Any) -> Track:
        return self.apply(SetTrackProperties(track_id=track_id, **changes))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        with self._lock:
            return self._timeline.version

    def snapshot(self) -> Timeline:
        """Deep point-in-time copy, unaffected by later edits."""
        with self._lock:
            return self._timeline.model_copy(deep=True)

    def duration(self) -> float:
        """Current timeline duration in seconds."""
        with self._lock:
            return compute_duration(self._timeline)

    def get_clip(self, clip_id: str) -> TimelineClip:
        with self._lock:
            return self._require_clip(clip_id).model_copy(deep=True)

    def get_track(self, track_id: str) -> Track:
        with self._lock:
            return self._require_track(track_id).model_copy(deep=True)

    def tracks(self) -> list[Track]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._timeline.tracks]

    def clips_on_track(self, track_id: str) -> list[TimelineClip]:
        """Clips of a track sorted by start time."""
        with self._lock:
            self._require_track(track_id)
            return [c.model_copy(deep=True) for c in self._timeline.clips_on_track(track_id)]

    # ------------------------------------------------------------------
    # Project conversion
    # ------------------------------------------------------------------

    @classmethod
    def from_project(
        cls,
        project: Project,
        placement: PlacementPolicy | None = None,
    ) -> "TimelineEditor":
        """Hydrate an editor from a project document, re-validating every clip."""
        media = MediaLibrary(project.media_library)
        timeline = Timeline(
            tracks=[
                Track(
                    id=doc.id,
                    name=doc.name,
                    kind=doc.kind,
                    order=doc.order,
                    visible=doc.visible,
                    locked=doc.locked,
                    volume=doc.volume,
                )
                for doc in project.tracks
            ]
        )
        if not timeline.main_tracks():
            timeline.tracks.insert(0, Track(name="Main Track", kind=TrackKind.MAIN, order=0))
            for position, track in enumerate(timeline.tracks):
                track.order = position

        editor = cls(media, timeline, placement)
        with editor._lock:
            for doc in project.tracks:
                for clip in doc.clips:
                    if clip.id in editor._timeline.clips:
                        raise ValidationError(f"Duplicate clip id in project: {clip.id}", reason="duplicate_id")
                    candidate = clip.model_copy(update={"track_id": doc.id})
                    editor._validate_placement(candidate, ignore_ids=set())
                    editor._commit([candidate])
        logger.info(
            "Loaded project '%s': %d tracks, %d clips",
            project.name,
            len(timeline.tracks),
            timeline.clip_count,
        )
        return editor

    def to_project(self, name: str = "Untitled Project") -> Project:
        """Dump the current state in the persisted ``tracks[].clips[]`` shape."""
        with self._lock:
            return Project(
                name=name,
                media_library=self._media.list_clips(),
                tracks=[
                    TrackDocument(
                        id=track.id,
                        name=track.name,
                        kind=track.kind,
                        order=track.order,
                        visible=track.visible,
                        locked=track.locked,
                        volume=track.volume,
                        clips=[
                            c.model_copy(deep=True)
                            for c in self._timeline.clips_on_track(track.id)
                        ],
                    )
                    for track in self._timeline.tracks
                ],
            )

    # ------------------------------------------------------------------
    # Handlers (called with the lock held)
    # ------------------------------------------------------------------

    def _apply_add(self, cmd: AddClip) -> TimelineClip:
        track = self._require_track(cmd.track_id)
        media = self._media.require(cmd.media_clip_id)

        start_time = cmd.start_time
        if start_time is None:
            start_time = self._placement.next_start_time(self._timeline.clips_on_track(track.id))

        candidate = TimelineClip.model_construct(
            id=str(uuid4()),
            media_clip_id=media.id,
            track_id=track.id,
            start_time=start_time,
            in_point=cmd.in_point,
            out_point=cmd.out_point,
            layer_order=cmd.layer_order,
            transform=cmd.transform,
        )
        self._validate_candidate(candidate, media, ignore_ids=set())
        self._commit([candidate])
        logger.debug("Added clip %s to track %s at %.3fs", candidate.id, track.id, start_time)
        return candidate.model_copy(deep=True)

    def _apply_move(self, cmd: MoveClip) -> TimelineClip:
        clip = self._require_clip(cmd.clip_id)
        candidate = clip.model_copy(update={"start_time": cmd.start_time})
        self._validate_placement(candidate, ignore_ids={clip.id})
        self._commit([candidate])
        return candidate.model_copy(deep=True)

    def _apply_trim(self, cmd: TrimClip) -> TimelineClip:
        return self._apply_update(
            UpdateClip(
                clip_id=cmd.clip_id,
                in_point=cmd.in_point,
                out_point=cmd.out_point,
                start_time=cmd.start_time,
            )
        )

    def _apply_update(self, cmd: UpdateClip) -> TimelineClip:
        clip = self._require_clip(cmd.clip_id)
        changes: dict[str, Any] = {}
        if cmd.start_time is not None:
            changes["start_time"] = cmd.start_time
        if cmd.in_point is not None:
            changes["in_point"] = cmd.in_point
        if cmd.out_point is not None:
            changes["out_point"] = cmd.out_point
        if cmd.track_id is not None and cmd.track_id != clip.track_id:
            self._require_track(cmd.track_id)
            changes["track_id"] = cmd.track_id

        if not changes:
            return clip.model_copy(deep=True)

        candidate = clip.model_copy(update=changes)
        self._validate_placement(candidate, ignore_ids={clip.id})
        self._commit([candidate], previous_track_id=clip.track_id)
        return candidate.model_copy(deep=True)

    def _apply_split(self, cmd: SplitClip) -> tuple[TimelineClip, TimelineClip]:
        clip = self._require_clip(cmd.clip_id)
        split_time = cmd.split_time
        if not math.isfinite(split_time) or not (
            clip.start_time + TIME_EPSILON < split_time < clip.end_time - TIME_EPSILON
        ):
            raise ValidationError(
                f"Split time {split_time} must fall strictly inside clip "
                f"[{clip.start_time}, {clip.end_time})",
                reason="invalid_duration",
            )

        offset = split_time - clip.start_time
        clip_before = clip.model_copy(update={"out_point": clip.in_point + offset})
        clip_after = TimelineClip.model_construct(
            id=str(uuid4()),
            media_clip_id=clip.media_clip_id,
            track_id=clip.track_id,
            start_time=split_time,
            in_point=clip_before.out_point,
            out_point=clip.out_point,
            layer_order=clip.layer_order,
            transform=clip.transform.model_copy() if clip.transform else None,
        )
        # Both halves occupy exactly the original window, so no overlap check.
        self._commit([clip_before, clip_after])
        return clip_before.model_copy(deep=True), clip_after.model_copy(deep=True)

    def _apply_delete(self, cmd: DeleteClip) -> None:
        clip = self._require_clip(cmd.clip_id)
        track = self._require_track(clip.track_id)
        track.clip_ids.remove(clip.id)
        del self._timeline.clips[clip.id]
        self._timeline.version += 1

    def _apply_create_track(self, cmd: CreateTrack) -> Track:
        name = cmd.name.strip()
        if not name:
            raise ValidationError("Track name must not be empty")
        track = Track(name=name, kind=cmd.kind, order=self._timeline.next_order())
        self._timeline.tracks.append(track)
        self._timeline.version += 1
        logger.debug("Created %s track '%s' (order %d)", track.kind.value, name, track.order)
        return track.model_copy(deep=True)

    def _apply_delete_track(self, cmd: DeleteTrack) -> None:
        track = self._require_track(cmd.track_id)
        if track.clip_ids:
            raise ValidationError(
                f"Track '{track.name}' still holds {len(track.clip_ids)} clips"
            )
        if track.is_main and len(self._timeline.main_tracks()) == 1:
            raise ValidationError("Cannot delete the last main track")
        self._timeline.tracks.remove(track)
        self._timeline.version += 1

    def _apply_set_track_properties(self, cmd: SetTrackProperties) -> Track:
        track = self._require_track(cmd.track_id)
        changes: dict[str, Any] = {}
        if cmd.name is not None:
            if not cmd.name.strip():
                raise ValidationError("Track name must not be empty")
            changes["name"] = cmd.name.strip()
        if cmd.volume is not None:
            if not (0.0 <= cmd.volume <= 1.0):
                raise ValidationError(f"Volume {cmd.volume} must be within [0, 1]")
            changes["volume"] = cmd.volume
        if cmd.visible is not None:
            changes["visible"] = cmd.visible
        if cmd.locked is not None:
            changes["locked"] = cmd.locked

        for key, value in changes.items():
            setattr(track, key, value)
        if changes:
            self._timeline.version += 1
        return track.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Validation and commit
    # ------------------------------------------------------------------

    def _require_track(self, track_id: str) -> Track:
        track = self._timeline.get_track(track_id)
        if track is None:
            raise NotFoundError(f"Track not found: {track_id}")
        return track

    def _require_clip(self, clip_id: str) -> TimelineClip:
        clip = self._timeline.get_clip(clip_id)
        if clip is None:
            raise NotFoundError(f"Timeline clip not found: {clip_id}")
        return clip

    def _validate_placement(self, candidate: TimelineClip, ignore_ids: set[str]) -> None:
        self._require_track(candidate.track_id)
        media = self._media.require(candidate.media_clip_id)
        self._validate_candidate(candidate, media, ignore_ids)

    def _validate_candidate(
        self,
        candidate: TimelineClip,
        media: MediaClip,
        ignore_ids: set[str],
    ) -> None:
        for field in ("start_time", "in_point", "out_point"):
            if not math.isfinite(getattr(candidate, field)):
                raise ValidationError(f"{field} must be a finite number")

        if candidate.start_time < 0:
            raise ValidationError(f"start_time must be >= 0, got {candidate.start_time}")
        if candidate.in_point < 0:
            raise InvalidTrimError(f"in_point must be >= 0, got {candidate.in_point}")
        if candidate.in_point >= candidate.out_point:
            raise InvalidTrimError(
                f"in_point ({candidate.in_point}) must be less than "
                f"out_point ({candidate.out_point})"
            )
        if candidate.out_point > media.duration + TIME_EPSILON:
            raise InvalidTrimError(
                f"out_point ({candidate.out_point}) exceeds media duration ({media.duration})"
            )

        for other in self._timeline.clips_on_track(candidate.track_id):
            if other.id in ignore_ids or other.id == candidate.id:
                continue
            if candidate.overlaps(other):
                raise OverlapError(
                    f"Clip [{candidate.start_time}, {candidate.end_time}) overlaps clip "
                    f"{other.id} [{other.start_time}, {other.end_time})"
                )

    def _commit(self, clips: list[TimelineClip], previous_track_id: str | None = None) -> None:
        """Write validated clips into the arena and re-sort affected tracks."""
        touched: set[str] = set()
        for clip in clips:
            if previous_track_id is not None and previous_track_id != clip.track_id:
                self._require_track(previous_track_id).clip_ids.remove(clip.id)
                touched.add(previous_track_id)
            track = self._require_track(clip.track_id)
            if clip.id not in track.clip_ids:
                track.clip_ids.append(clip.id)
            self._timeline.clips[clip.id] = clip
            touched.add(track.id)

        for track_id in touched:
            track = self._require_track(track_id)
            track.clip_ids.sort(
                key=lambda cid: (
                    self._timeline.clips[cid].start_time,
                    self._timeline.clips[cid].layer_order,
                )
            )
        self._timeline.version += 1
