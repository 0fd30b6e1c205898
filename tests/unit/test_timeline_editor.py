"""Tests for TimelineEditor and its edit commands."""

import random
import threading

import pytest
from pydantic import ValidationError as PydanticValidationError

from clipforge.errors import InvalidTrimError, NotFoundError, OverlapError, ValidationError
from clipforge.models.media import MediaLibrary
from clipforge.models.timeline import TIME_EPSILON, TrackKind
from clipforge.timeline.commands import AddClip, MoveClip, SplitClip, parse_command
from clipforge.timeline.editor import TimelineEditor
from clipforge.timeline.placement import PlacementPolicy


def _assert_no_overlaps(editor: TimelineEditor) -> None:
    for track in editor.tracks():
        clips = editor.clips_on_track(track.id)
        for before, after in zip(clips, clips[1:]):
            assert before.end_time <= after.start_time + TIME_EPSILON


class TestAddClip:
    def test_example_durations(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        editor.add_clip("m-talk", main_track_id, 10.5, 0.0, 15.0)
        editor.add_clip("m-broll", main_track_id, 26.0, 0.0, 8.5)
        assert editor.duration() == pytest.approx(34.5)

    def test_overlapping_add_is_rejected(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        version = editor.version
        with pytest.raises(OverlapError) as exc_info:
            editor.add_clip("m-talk", main_track_id, 5.0, 0.0, 10.0)
        assert exc_info.value.reason == "overlap"
        assert len(editor.clips_on_track(main_track_id)) == 1
        assert editor.version == version

    def test_touching_clips_allowed(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        editor.add_clip("m-talk", main_track_id, 10.0, 0.0, 5.0)
        assert len(editor.clips_on_track(main_track_id)) == 2

    def test_same_window_on_other_track_allowed(self, editor: TimelineEditor, main_track_id: str) -> None:
        overlay = editor.create_track("Overlay", TrackKind.OVERLAY)
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        editor.add_clip("m-talk", overlay.id, 0.0, 0.0, 10.0)
        assert editor.duration() == 10.0

    @pytest.mark.parametrize(
        "in_point,out_point",
        [(5.0, 5.0), (6.0, 5.0), (-1.0, 5.0), (0.0, 10.5)],
    )
    def test_invalid_trim(self, editor: TimelineEditor, main_track_id: str, in_point: float, out_point: float) -> None:
        with pytest.raises(InvalidTrimError):
            editor.add_clip("m-intro", main_track_id, 0.0, in_point, out_point)
        assert editor.clips_on_track(main_track_id) == []

    def test_negative_start(self, editor: TimelineEditor, main_track_id: str) -> None:
        with pytest.raises(ValidationError):
            editor.add_clip("m-intro", main_track_id, -1.0, 0.0, 5.0)

    def test_non_finite_start(self, editor: TimelineEditor, main_track_id: str) -> None:
        with pytest.raises(ValidationError):
            editor.add_clip("m-intro", main_track_id, float("nan"), 0.0, 5.0)

    def test_unknown_track_and_media(self, editor: TimelineEditor, main_track_id: str) -> None:
        with pytest.raises(NotFoundError):
            editor.add_clip("m-intro", "no-such-track", 0.0, 0.0, 5.0)
        with pytest.raises(NotFoundError):
            editor.add_clip("no-such-media", main_track_id, 0.0, 0.0, 5.0)

    def test_duration_is_monotonic_on_add(self, editor: TimelineEditor, main_track_id: str) -> None:
        previous = editor.duration()
        for start in (20.0, 0.0, 40.0, 10.0):
            editor.add_clip("m-intro", main_track_id, start, 0.0, 5.0)
            current = editor.duration()
            assert current >= previous
            previous = current

    def test_clip_ids_sorted_by_start(self, editor: TimelineEditor, main_track_id: str) -> None:
        late = editor.add_clip("m-intro", main_track_id, 20.0, 0.0, 5.0)
        early = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        assert editor.get_track(main_track_id).clip_ids == [early.id, late.id]


class TestPlacement:
    def test_append_without_start(self, editor: TimelineEditor, main_track_id: str) -> None:
        first = editor.add_clip("m-intro", main_track_id, None, 0.0, 4.0)
        second = editor.add_clip("m-talk", main_track_id, None, 0.0, 3.0)
        assert first.start_time == 0.0
        assert second.start_time == 4.0

    def test_append_with_gap(self, media: MediaLibrary) -> None:
        editor = TimelineEditor(media, placement=PlacementPolicy(mode="append_with_gap", gap_seconds=0.5))
        track_id = editor.tracks()[0].id
        editor.add_clip("m-intro", track_id, None, 0.0, 4.0)
        second = editor.add_clip("m-talk", track_id, None, 0.0, 3.0)
        assert second.start_time == 4.5

    def test_append_after_latest_end(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-intro", main_track_id, 20.0, 0.0, 5.0)
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        appended = editor.add_clip("m-talk", main_track_id, None, 0.0, 1.0)
        assert appended.start_time == 25.0


class TestMoveAndTrim:
    def test_move_keeps_duration(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 2.0, 6.0)
        moved = editor.move_clip(clip.id, 30.0)
        assert moved.start_time == 30.0
        assert moved.effective_duration == clip.effective_duration

    def test_move_into_overlap_is_atomic(self, editor: TimelineEditor, main_track_id: str) -> None:
        a = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        b = editor.add_clip("m-talk", main_track_id, 20.0, 0.0, 5.0)
        with pytest.raises(OverlapError):
            editor.move_clip(b.id, 8.0)
        assert editor.get_clip(b.id).start_time == 20.0
        assert editor.get_clip(a.id) == a

    def test_trim_subset(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        trimmed = editor.trim_clip(clip.id, new_in_point=2.0)
        assert (trimmed.in_point, trimmed.out_point, trimmed.start_time) == (2.0, 10.0, 0.0)
        trimmed = editor.trim_clip(clip.id, new_out_point=6.0, new_start_time=1.0)
        assert (trimmed.in_point, trimmed.out_point, trimmed.start_time) == (2.0, 6.0, 1.0)

    def test_failed_trim_changes_nothing(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        with pytest.raises(InvalidTrimError):
            editor.trim_clip(clip.id, new_in_point=4.0, new_out_point=12.0)
        assert editor.get_clip(clip.id) == clip

    def test_trim_extending_into_neighbour(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        editor.add_clip("m-talk", main_track_id, 6.0, 0.0, 5.0)
        with pytest.raises(OverlapError):
            editor.trim_clip(clip.id, new_out_point=8.0)

    def test_update_moves_between_tracks(self, editor: TimelineEditor, main_track_id: str) -> None:
        other = editor.create_track("Second")
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        updated = editor.update_clip(clip.id, track_id=other.id, start_time=3.0)
        assert updated.track_id == other.id
        assert editor.clips_on_track(main_track_id) == []
        assert [c.id for c in editor.clips_on_track(other.id)] == [clip.id]

    def test_update_into_occupied_track_rejected(self, editor: TimelineEditor, main_track_id: str) -> None:
        other = editor.create_track("Second")
        editor.add_clip("m-talk", other.id, 0.0, 0.0, 5.0)
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        with pytest.raises(OverlapError):
            editor.update_clip(clip.id, track_id=other.id)
        assert editor.get_clip(clip.id).track_id == main_track_id

    def test_unknown_clip(self, editor: TimelineEditor) -> None:
        with pytest.raises(NotFoundError):
            editor.move_clip("nope", 1.0)


class TestSplit:
    def test_split_conserves_duration(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-talk", main_track_id, 2.0, 1.0, 13.0)
        before, after = editor.split_clip(clip.id, 6.5)

        assert before.id == clip.id
        assert after.id != clip.id
        assert (before.start_time, before.in_point, before.out_point) == (2.0, 1.0, 5.5)
        assert (after.start_time, after.in_point, after.out_point) == (6.5, 5.5, 13.0)
        assert before.effective_duration + after.effective_duration == clip.effective_duration
        assert before.end_time == after.start_time
        _assert_no_overlaps(editor)

    def test_split_inherits_layer_order(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.apply(
            AddClip(media_clip_id="m-talk", track_id=main_track_id, start_time=0.0, in_point=0.0, out_point=8.0, layer_order=3)
        )
        _, after = editor.apply(SplitClip(clip_id=clip.id, split_time=4.0))
        assert after.layer_order == 3

    @pytest.mark.parametrize("split_time", [2.0, 14.0, 1.0, 20.0])
    def test_split_outside_clip(self, editor: TimelineEditor, main_track_id: str, split_time: float) -> None:
        clip = editor.add_clip("m-talk", main_track_id, 2.0, 1.0, 13.0)
        with pytest.raises(ValidationError) as exc_info:
            editor.split_clip(clip.id, split_time)
        assert exc_info.value.reason == "invalid_duration"
        assert len(editor.clips_on_track(main_track_id)) == 1


class TestDelete:
    def test_delete_clip(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        editor.delete_clip(clip.id)
        assert editor.clips_on_track(main_track_id) == []
        with pytest.raises(NotFoundError):
            editor.delete_clip(clip.id)


class TestTracks:
    def test_create_track_orders(self, editor: TimelineEditor) -> None:
        a = editor.create_track("A", TrackKind.OVERLAY)
        b = editor.create_track("B", "main")
        assert (a.order, b.order) == (1, 2)
        assert b.kind == TrackKind.MAIN

    def test_create_track_blank_name(self, editor: TimelineEditor) -> None:
        with pytest.raises(ValidationError):
            editor.create_track("   ")

    def test_delete_last_main_track_rejected(self, editor: TimelineEditor, main_track_id: str) -> None:
        with pytest.raises(ValidationError):
            editor.delete_track(main_track_id)

    def test_delete_track_with_clips_rejected(self, editor: TimelineEditor) -> None:
        track = editor.create_track("Extra")
        editor.add_clip("m-intro", track.id, 0.0, 0.0, 5.0)
        with pytest.raises(ValidationError):
            editor.delete_track(track.id)

    def test_delete_empty_track(self, editor: TimelineEditor) -> None:
        track = editor.create_track("Extra", TrackKind.OVERLAY)
        editor.delete_track(track.id)
        assert all(t.id != track.id for t in editor.tracks())

    def test_set_track_properties(self, editor: TimelineEditor, main_track_id: str) -> None:
        track = editor.set_track_properties(main_track_id, volume=0.5, visible=False, name="Base")
        assert (track.volume, track.visible, track.name) == (0.5, False, "Base")

    def test_volume_out_of_range(self, editor: TimelineEditor, main_track_id: str) -> None:
        with pytest.raises(ValidationError):
            editor.set_track_properties(main_track_id, volume=1.5)
        assert editor.get_track(main_track_id).volume == 1.0


class TestSnapshot:
    def test_snapshot_is_isolated(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 5.0)
        snapshot = editor.snapshot()
        editor.move_clip(clip.id, 10.0)
        assert snapshot.clips[clip.id].start_time == 0.0
        assert snapshot.version < editor.version

    def test_concurrent_adds_never_overlap(self, editor: TimelineEditor, main_track_id: str) -> None:
        errors: list[Exception] = []

        def worker(offset: float) -> None:
            for i in range(20):
                try:
                    editor.add_clip("m-intro", main_track_id, offset + i * 0.7, 0.0, 1.0)
                except OverlapError as e:
                    errors.append(e)

        threads = [threading.Thread(target=worker, args=(n * 0.3,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        _assert_no_overlaps(editor)
        assert errors


class TestCommands:
    def test_parse_command(self) -> None:
        command = parse_command({"op": "move_clip", "clip_id": "c1", "start_time": 4})
        assert isinstance(command, MoveClip)
        assert command.start_time == 4.0

    def test_parse_unknown_op(self) -> None:
        with pytest.raises(PydanticValidationError):
            parse_command({"op": "explode", "clip_id": "c1"})

    def test_apply_parsed_command(self, editor: TimelineEditor, main_track_id: str) -> None:
        clip = editor.apply(
            parse_command(
                {
                    "op": "add_clip",
                    "media_clip_id": "m-intro",
                    "track_id": main_track_id,
                    "in_point": 0,
                    "out_point": 2,
                }
            )
        )
        assert clip.start_time == 0.0
        assert clip.end_time == 2.0


class TestRandomEditSequences:
    MEDIA_IDS = ["m-intro", "m-talk", "m-broll", "m-slides"]

    def _random_edit(self, rng: random.Random, editor: TimelineEditor, track_ids: list[str]) -> None:
        clip_ids = [c.id for t in track_ids for c in editor.clips_on_track(t)]
        op = rng.choice(["add", "add", "move", "trim", "split", "update", "delete"])
        if op == "add" or not clip_ids:
            in_point = rng.uniform(0.0, 8.0)
            editor.add_clip(
                rng.choice(self.MEDIA_IDS),
                rng.choice(track_ids),
                rng.choice([None, rng.uniform(0.0, 60.0)]),
                in_point,
                in_point + rng.uniform(0.1, 6.0),
            )
            return

        clip = editor.get_clip(rng.choice(clip_ids))
        if op == "move":
            editor.move_clip(clip.id, rng.uniform(0.0, 60.0))
        elif op == "trim":
            editor.trim_clip(clip.id, new_in_point=rng.uniform(0.0, 5.0), new_out_point=rng.uniform(5.0, 12.0))
        elif op == "split":
            editor.split_clip(clip.id, rng.uniform(clip.start_time - 1.0, clip.end_time + 1.0))
        elif op == "update":
            editor.update_clip(clip.id, start_time=rng.uniform(0.0, 60.0), track_id=rng.choice(track_ids))
        else:
            editor.delete_clip(clip.id)

    @pytest.mark.parametrize("seed", range(10))
    def test_sequence_keeps_tracks_consistent(self, editor: TimelineEditor, main_track_id: str, seed: int) -> None:
        rng = random.Random(seed)
        track_ids = [main_track_id, editor.create_track("Second").id, editor.create_track("Titles", TrackKind.OVERLAY).id]

        for _ in range(200):
            before = editor.snapshot()
            try:
                self._random_edit(rng, editor, track_ids)
            except ValidationError:
                after = editor.snapshot()
                assert after.clips == before.clips
                assert [t.clip_ids for t in after.tracks] == [t.clip_ids for t in before.tracks]

            _assert_no_overlaps(editor)
            timeline = editor.snapshot()
            referenced = [cid for t in timeline.tracks for cid in t.clip_ids]
            assert sorted(referenced) == sorted(timeline.clips)

        assert editor.duration() >= 0.0
