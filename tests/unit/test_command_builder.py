"""Tests for the ffmpeg invocation builder."""

import pytest

from clipforge.export.command import build_command, select_video_encoder
from clipforge.export.compiler import generate_plan
from clipforge.export.filtergraph import FilterGraphBuilder, fmt_time
from clipforge.models.export import (
    AudioCodec,
    ExportQuality,
    ExportResolution,
    ExportSettings,
    VideoCodec,
)
from clipforge.models.timeline import TrackKind, Transform
from clipforge.timeline.commands import AddClip
from clipforge.timeline.editor import TimelineEditor


def _value_after(args: tuple[str, ...], flag: str) -> str:
    return args[args.index(flag) + 1]


@pytest.fixture
def plan(editor: TimelineEditor, main_track_id: str):
    editor.add_clip("m-intro", main_track_id, 0.0, 1.0, 5.0)
    editor.add_clip("m-talk", main_track_id, 6.0, 0.0, 3.0)
    return generate_plan(editor.snapshot(), editor.media)


class TestFilterGraphBuilder:
    def test_labels_and_render(self) -> None:
        graph = FilterGraphBuilder()
        first = graph.chain(["0:v"], ["setpts=PTS-STARTPTS", "setsar=1"], "v")
        second = graph.chain(["1:v"], ["setsar=1"], "v")
        graph.add_multi([first, second], "concat=n=2:v=1:a=0", ["out"])
        assert (first, second) == ("v0", "v1")
        assert len(graph) == 3
        assert graph.render() == (
            "[0:v]setpts=PTS-STARTPTS,setsar=1[v0];[1:v]setsar=1[v1];[v0][v1]concat=n=2:v=1:a=0[out]"
        )

    def test_fmt_time(self) -> None:
        assert fmt_time(1.5) == "1.500000"


class TestSelectVideoEncoder:
    def test_hardware(self) -> None:
        assert select_video_encoder(ExportSettings(), "videotoolbox") == ("h264_videotoolbox", True)
        assert select_video_encoder(ExportSettings(codec=VideoCodec.HEVC), "nvenc") == ("hevc_nvenc", True)

    def test_software_fallbacks(self) -> None:
        assert select_video_encoder(ExportSettings(), "none") == ("libx264", False)
        assert select_video_encoder(ExportSettings(hardware_acceleration=False), "qsv") == ("libx264", False)
        assert select_video_encoder(ExportSettings(codec=VideoCodec.VP9), "videotoolbox") == ("libvpx-vp9", False)


class TestBuildCommand:
    def test_deterministic(self, plan) -> None:
        settings = ExportSettings()
        first = build_command(plan, settings, "/out/a.mp4")
        second = build_command(plan, settings, "/out/a.mp4")
        assert first.argv == second.argv
        assert first == second

    def test_inputs_and_output(self, plan) -> None:
        invocation = build_command(plan, ExportSettings(), "/out/a.mp4", ffmpeg_bin="/opt/ffmpeg")
        args = invocation.args
        assert invocation.argv[0] == "/opt/ffmpeg"
        assert args.count("-i") == 2
        assert list(args[args.index("-ss"):args.index("-ss") + 6]) == [
            "-ss", "1.000000", "-t", "4.000000", "-i", "/media/intro.mp4",
        ]
        assert args[-2:] == ("-y", "/out/a.mp4")
        assert _value_after(args, "-movflags") == "+faststart"

    def test_gap_filler(self, plan) -> None:
        graph = build_command(plan, ExportSettings(), "/out/a.mp4").filter_graph
        assert "color=c=black:s=1920x1080:r=30:d=2.000000" in graph
        assert "anullsrc=channel_layout=stereo:sample_rate=48000,atrim=duration=2.000000" in graph
        assert "concat=n=3:v=1:a=1[vbase][abase]" in graph

    def test_software_encoder_args(self, plan) -> None:
        settings = ExportSettings(quality=ExportQuality.MEDIUM, hardware_acceleration=False)
        args = build_command(plan, settings, "/out/a.mp4", encoder_backend="videotoolbox").args
        assert _value_after(args, "-c:v") == "libx264"
        assert _value_after(args, "-crf") == "23"
        assert _value_after(args, "-preset") == "medium"
        assert "-b:v" not in args
        assert "-r" not in args

    def test_hardware_encoder_args(self, plan) -> None:
        invocation = build_command(plan, ExportSettings(), "/out/a.mp4", encoder_backend="videotoolbox")
        assert invocation.hardware
        assert _value_after(invocation.args, "-c:v") == "h264_videotoolbox"
        assert _value_after(invocation.args, "-b:v") == "8M"
        assert "-crf" not in invocation.args

    def test_vp9_and_hevc(self, plan) -> None:
        vp9 = build_command(plan, ExportSettings(codec=VideoCodec.VP9, audio_codec=AudioCodec.OPUS), "/out/a.webm").args
        assert _value_after(vp9, "-b:v") == "0"
        assert _value_after(vp9, "-c:a") == "libopus"
        assert "-movflags" not in vp9

        hevc = build_command(plan, ExportSettings(codec=VideoCodec.HEVC, hardware_acceleration=False), "/out/a.mp4").args
        assert _value_after(hevc, "-tag:v") == "hvc1"

    def test_audio_and_fps(self, plan) -> None:
        settings = ExportSettings(fps=24, audio_codec=AudioCodec.MP3, audio_bitrate=128)
        invocation = build_command(plan, settings, "/out/a.mp4")
        assert _value_after(invocation.args, "-r") == "24"
        assert _value_after(invocation.args, "-c:a") == "libmp3lame"
        assert _value_after(invocation.args, "-b:a") == "128k"
        assert invocation.output_fps == 24.0
        assert invocation.total_frames == round(plan.duration * 24)

    def test_progress_metadata(self, plan) -> None:
        invocation = build_command(plan, ExportSettings(), "/out/a.mp4")
        assert invocation.total_duration == plan.duration == 9.0
        assert invocation.output_fps == 30.0
        assert invocation.total_frames == 270

    def test_source_resolution_skips_scaling(self, plan) -> None:
        graph = build_command(plan, ExportSettings(resolution=ExportResolution.SOURCE), "/out/a.mp4").filter_graph
        assert "scale=" not in graph

    def test_target_resolution_scales(self, plan) -> None:
        graph = build_command(plan, ExportSettings(resolution=ExportResolution.HD), "/out/a.mp4").filter_graph
        assert "scale=1280:720:force_original_aspect_ratio=decrease" in graph
        assert "pad=1280:720:(ow-iw)/2:(oh-ih)/2" in graph
        assert "color=c=black:s=1280x720" in graph

    def test_source_resolution_fits_mismatched_media(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 2.0)
        editor.add_clip("m-broll", main_track_id, 2.0, 0.0, 2.0)
        plan = generate_plan(editor.snapshot(), editor.media)
        graph = build_command(plan, ExportSettings(resolution=ExportResolution.SOURCE), "/out/a.mp4").filter_graph
        assert graph.count("scale=1920:1080") == 1

    def test_silent_media_gets_silence(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-slides", main_track_id, 0.0, 0.0, 4.0)
        plan = generate_plan(editor.snapshot(), editor.media)
        graph = build_command(plan, ExportSettings(), "/out/a.mp4").filter_graph
        assert "[0:a]" not in graph
        assert "atrim=duration=4.000000" in graph

    def test_overlay_composition(self, editor: TimelineEditor, main_track_id: str) -> None:
        overlay = editor.create_track("PiP", TrackKind.OVERLAY)
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 10.0)
        editor.apply(
            AddClip(
                media_clip_id="m-talk",
                track_id=overlay.id,
                start_time=2.0,
                in_point=0.0,
                out_point=3.0,
                transform=Transform(x=100, y=50, width=640, height=360, rotation_degrees=90),
            )
        )
        editor.set_track_properties(overlay.id, volume=0.5)
        plan = generate_plan(editor.snapshot(), editor.media)
        invocation = build_command(plan, ExportSettings(), "/out/a.mp4")
        graph = invocation.filter_graph

        assert "setpts=PTS-STARTPTS+2.000000/TB" in graph
        assert "scale=640:360" in graph
        assert "rotate=" in graph
        assert "overlay=x=100:y=50:enable='between(t,2.000000,5.000000)':eof_action=pass" in graph
        assert "adelay=2000|2000" in graph
        assert "volume=0.500000" in graph
        assert "amix=inputs=2:duration=first:dropout_transition=0:normalize=0" in graph
        assert invocation.args.count("-i") == 2
        assert "[vout]" in invocation.args[invocation.args.index("-map") + 1]

    def test_base_volume(self, editor: TimelineEditor, main_track_id: str) -> None:
        editor.add_clip("m-intro", main_track_id, 0.0, 0.0, 2.0)
        editor.set_track_properties(main_track_id, volume=0.8)
        plan = generate_plan(editor.snapshot(), editor.media)
        graph = build_command(plan, ExportSettings(), "/out/a.mp4").filter_graph
        assert "[abase]volume=0.800000" in graph
