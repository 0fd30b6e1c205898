"""Tests for ffmpeg stats parsing and the export event bus."""

import asyncio

import pytest

from clipforge.jobs.events import (
    ExportCancelledEvent,
    ExportCompleteEvent,
    ExportEventBus,
    ExportProgressEvent,
)
from clipforge.jobs.progress import (
    ProgressSample,
    estimate_progress,
    parse_progress_line,
    read_lines,
)


class TestParseProgressLine:
    def test_full_line(self) -> None:
        line = "frame= 1234 fps= 30 q=28.0 size=    1024kB time=00:00:41.40 bitrate= 202.3kbits/s speed=1.2x"
        sample = parse_progress_line(line)
        assert sample is not None
        assert sample.current_frame == 1234
        assert sample.encode_fps == 30.0
        assert sample.elapsed_time == pytest.approx(41.4)

    def test_hours(self) -> None:
        sample = parse_progress_line("frame=10 fps=0.0 time=01:02:03.50")
        assert sample is not None
        assert sample.elapsed_time == pytest.approx(3723.5)

    def test_missing_fps_and_time(self) -> None:
        sample = parse_progress_line("frame=5")
        assert sample == ProgressSample(current_frame=5, encode_fps=0.0, elapsed_time=0.0)

    def test_negative_time_clamped(self) -> None:
        sample = parse_progress_line("frame=0 fps=0 time=-00:00:00.02")
        assert sample is not None
        assert sample.elapsed_time == 0.0

    @pytest.mark.parametrize(
        "line",
        ["", "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'a.mp4':", "[libx264 @ 0x1] using cpu capabilities"],
    )
    def test_non_progress_lines(self, line: str) -> None:
        assert parse_progress_line(line) is None


class TestEstimateProgress:
    def test_midway(self) -> None:
        estimate = estimate_progress(ProgressSample(150, 60.0, 5.0), total_duration=10.0, output_fps=30.0)
        assert estimate.progress == 0.5
        # encoding at 2x realtime, 5s left
        assert estimate.eta_seconds == pytest.approx(2.5)
        assert estimate.total_frames == 300

    def test_clamped(self) -> None:
        estimate = estimate_progress(ProgressSample(400, 30.0, 12.0), total_duration=10.0, output_fps=30.0)
        assert estimate.progress == 1.0
        assert estimate.eta_seconds == 0.0

    def test_zero_fps_does_not_divide_by_zero(self) -> None:
        estimate = estimate_progress(ProgressSample(0, 0.0, 0.0), total_duration=10.0, output_fps=30.0)
        assert estimate.progress == 0.0
        assert estimate.eta_seconds > 0


class TestReadLines:
    @pytest.mark.asyncio
    async def test_splits_on_carriage_return(self) -> None:
        reader = asyncio.StreamReader()
        reader.feed_data(b"header\nframe=1 time=00:00:00.03\rframe=2 time=00:00:00.06\r")
        reader.feed_data(b"frame=3 time=00:00:00.10\nError at end")
        reader.feed_eof()
        lines = [line async for line in read_lines(reader, chunk_size=7)]
        assert lines == [
            "header",
            "frame=1 time=00:00:00.03",
            "frame=2 time=00:00:00.06",
            "frame=3 time=00:00:00.10",
            "Error at end",
        ]


class TestExportEventBus:
    def test_listeners(self) -> None:
        bus = ExportEventBus()
        received = []
        remove = bus.add_listener(received.append)
        bus.publish(ExportCancelledEvent(job_id="j1"))
        remove()
        bus.publish(ExportCancelledEvent(job_id="j2"))
        assert [e.job_id for e in received] == ["j1"]

    def test_failing_listener_does_not_block_others(self) -> None:
        bus = ExportEventBus()
        received = []

        def broken(event) -> None:
            raise RuntimeError("boom")

        bus.add_listener(broken)
        bus.add_listener(received.append)
        bus.publish(ExportCompleteEvent(job_id="j1", output_path="/out.mp4"))
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_queue_subscribers(self) -> None:
        bus = ExportEventBus()
        only_j1 = bus.subscribe("j1")
        everything = bus.subscribe()
        event = ExportProgressEvent(
            job_id="j2", progress=0.5, current_frame=1, total_frames=2, fps=1.0, eta_seconds=1.0
        )
        bus.publish(event)
        bus.publish(ExportCancelledEvent(job_id="j1"))

        assert only_j1.qsize() == 1
        assert (await only_j1.get()).event == "export_cancelled"
        assert everything.qsize() == 2

        bus.unsubscribe(only_j1, "j1")
        bus.publish(ExportCancelledEvent(job_id="j1"))
        assert only_j1.qsize() == 0

    def test_event_serialization(self) -> None:
        event = ExportCompleteEvent(job_id="j1", output_path="/out.mp4")
        assert event.model_dump() == {
            "event": "export_complete",
            "job_id": "j1",
            "output_path": "/out.mp4",
        }
