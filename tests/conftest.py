"""Shared fixtures: a small media library and an editor over it."""

import pytest

from clipforge.models.media import MediaClip, MediaLibrary
from clipforge.timeline.editor import TimelineEditor


@pytest.fixture
def media() -> MediaLibrary:
    return MediaLibrary(
        [
            MediaClip(id="m-intro", name="intro.mp4", source_path="/media/intro.mp4", duration=10.0),
            MediaClip(id="m-talk", name="talk.mov", source_path="/media/talk.mov", duration=15.0),
            MediaClip(
                id="m-broll",
                name="broll.mkv",
                source_path="/media/broll.mkv",
                proxy_path="/proxies/broll.mp4",
                duration=20.0,
                width=1280,
                height=720,
            ),
            MediaClip(
                id="m-slides",
                name="slides.mp4",
                source_path="/media/slides.mp4",
                duration=60.0,
                has_audio=False,
            ),
        ]
    )


@pytest.fixture
def editor(media: MediaLibrary) -> TimelineEditor:
    return TimelineEditor(media)


@pytest.fixture
def main_track_id(editor: TimelineEditor) -> str:
    return editor.tracks()[0].id
