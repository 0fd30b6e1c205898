"""FFmpeg invocation builder.

``build_command`` is a pure function of the plan, the export settings and
a few environment choices (ffmpeg binary, hardware encoder family, output
path): the same inputs always produce the same argument list.
"""

import math
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from clipforge.export.filtergraph import FilterGraphBuilder, fmt_time
from clipforge.export.plan import CompositionPlan, LayerSegment, Segment
from clipforge.models.export import ExportSettings, VideoCodec

AUDIO_SAMPLE_RATE = 48000

# Hardware encoder names per backend and codec; missing pairs fall back to software.
HARDWARE_ENCODERS: dict[str, dict[VideoCodec, str]] = {
    "videotoolbox": {
        VideoCodec.H264: "h264_videotoolbox",
        VideoCodec.HEVC: "hevc_videotoolbox",
    },
    "nvenc": {
        VideoCodec.H264: "h264_nvenc",
        VideoCodec.HEVC: "hevc_nvenc",
    },
    "qsv": {
        VideoCodec.H264: "h264_qsv",
        VideoCodec.HEVC: "hevc_qsv",
    },
}


class EncoderInvocation(BaseModel):
    """Fully resolved encoder call plus what the runner needs for progress."""

    model_config = ConfigDict(frozen=True)

    program: str
    args: tuple[str, ...]
    output_path: str
    filter_graph: str
    video_encoder: str
    hardware: bool
    total_duration: float
    output_fps: float
    total_frames: int

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def format(self) -> str:
        """Shell-like rendering for logs."""
        return " ".join(self.argv)


def select_video_encoder(settings: ExportSettings, encoder_backend: str) -> tuple[str, bool]:
    """Return (encoder name, is_hardware) for the settings and backend."""
    if settings.hardware_acceleration:
        hw = HARDWARE_ENCODERS.get(encoder_backend, {}).get(settings.codec)
        if hw:
            return hw, True
    return settings.codec.ffmpeg_codec, False


def _canvas_size(plan: CompositionPlan, settings: ExportSettings) -> tuple[int, int]:
    dims = settings.resolution.dimensions
    if dims is not None:
        return dims
    return plan.canvas_width, plan.canvas_height


def _fit_filters(width: int | None, height: int | None, canvas: tuple[int, int], force: bool) -> list[str]:
    """Scale+pad into the canvas, skipped when the source already matches."""
    cw, ch = canvas
    if not force and (width, height) == (cw, ch):
        return []
    return [
        f"scale={cw}:{ch}:force_original_aspect_ratio=decrease",
        f"pad={cw}:{ch}:(ow-iw)/2:(oh-ih)/2",
    ]


def _audio_normalize() -> str:
    return f"aresample={AUDIO_SAMPLE_RATE},aformat=channel_layouts=stereo"


def _silence(duration: float) -> str:
    return (
        f"anullsrc=channel_layout=stereo:sample_rate={AUDIO_SAMPLE_RATE},"
        f"atrim=duration={fmt_time(duration)}"
    )


def _input_args(path: str, in_point: float, duration: float) -> list[str]:
    return ["-ss", fmt_time(in_point), "-t", fmt_time(duration), "-i", path]


def _overlay_video(
    graph: FilterGraphBuilder,
    input_index: int,
    segment: LayerSegment,
    canvas: tuple[int, int],
    base: str,
) -> str:
    transform = segment.transform
    if transform is not None:
        width, height, x, y = transform.width, transform.height, transform.x, transform.y
        rotation = transform.rotation_degrees
    else:
        (width, height), x, y, rotation = canvas, 0, 0, 0.0

    filters = [
        f"setpts=PTS-STARTPTS+{fmt_time(segment.start)}/TB",
        f"scale={width}:{height}",
    ]
    if rotation % 360:
        angle = fmt_time(math.radians(rotation))
        filters += ["format=rgba", f"rotate={angle}:c=none:ow=rotw({angle}):oh=roth({angle})"]
    layer = graph.chain([f"{input_index}:v"], filters, "ov")

    enable = f"between(t,{fmt_time(segment.start)},{fmt_time(segment.end)})"
    return graph.add(
        [base, layer],
        f"overlay=x={x}:y={y}:enable='{enable}':eof_action=pass",
        graph.label("vc"),
    )


def _overlay_audio(
    graph: FilterGraphBuilder,
    input_index: int,
    segment: LayerSegment,
    volume: float,
) -> str:
    delay_ms = int(round(segment.start * 1000))
    filters = ["asetpts=PTS-STARTPTS", _audio_normalize(), f"adelay={delay_ms}|{delay_ms}"]
    if volume != 1.0:
        filters.append(f"volume={volume:.6f}")
    return graph.chain([f"{input_index}:a"], filters, "oa")


def _base_segment(
    graph: FilterGraphBuilder,
    segment: Segment,
    input_index: int | None,
    canvas: tuple[int, int],
    fps: float,
    force_scale: bool,
) -> tuple[str, str]:
    """Emit the video/audio pads of one base segment."""
    cw, ch = canvas
    if input_index is None:
        video = graph.chain(
            [],
            [f"color=c=black:s={cw}x{ch}:r={fps:g}:d={fmt_time(segment.duration)}", "setsar=1"],
            "gv",
        )
        audio = graph.chain([], [_silence(segment.duration)], "ga")
        return video, audio

    video_filters = ["setpts=PTS-STARTPTS"]
    video_filters += _fit_filters(segment.width, segment.height, canvas, force_scale)
    video_filters.append("setsar=1")
    video = graph.chain([f"{input_index}:v"], video_filters, "bv")
    if segment.has_audio:
        audio = graph.chain([f"{input_index}:a"], ["asetpts=PTS-STARTPTS", _audio_normalize()], "ba")
    else:
        audio = graph.chain([], [_silence(segment.duration)], "ba")
    return video, audio


def _encoder_args(settings: ExportSettings, encoder: str, hardware: bool) -> list[str]:
    args = ["-c:v", encoder]
    if hardware:
        args += ["-b:v", settings.quality.hardware_bitrate]
    elif settings.codec == VideoCodec.VP9:
        args += ["-crf", str(settings.quality.crf), "-b:v", "0"]
    else:
        args += ["-crf", str(settings.quality.crf), "-preset", "medium"]
    if settings.codec == VideoCodec.HEVC:
        args += ["-tag:v", "hvc1"]
    args += ["-pix_fmt", "yuv420p"]
    if settings.fps is not None:
        args += ["-r", str(settings.fps)]
    args += ["-c:a", settings.audio_codec.ffmpeg_codec, "-b:a", f"{settings.audio_bitrate}k"]
    return args


def build_command(
    plan: CompositionPlan,
    settings: ExportSettings,
    output_path: str | Path,
    encoder_backend: str = "none",
    ffmpeg_bin: str = "ffmpeg",
) -> EncoderInvocation:
    """Build the ffmpeg invocation that renders ``plan`` with ``settings``.

    Args:
        plan: Plan from ``generate_plan``
        settings: Export settings
        output_path: Destination file
        encoder_backend: Hardware encoder family (videotoolbox, nvenc, qsv, none)
        ffmpeg_bin: FFmpeg executable

    Returns:
        EncoderInvocation with the argument list and progress metadata
    """
    canvas = _canvas_size(plan, settings)
    force_scale = settings.resolution.dimensions is not None
    output_fps = float(settings.fps) if settings.fps is not None else plan.source_fps

    graph = FilterGraphBuilder()
    input_args: list[str] = []
    input_count = 0

    concat_pads: list[str] = []
    for segment in plan.segments:
        input_index = None
        if not segment.is_gap:
            input_args += _input_args(segment.path or "", segment.in_point or 0.0, segment.duration)
            input_index = input_count
            input_count += 1
        video, audio = _base_segment(graph, segment, input_index, canvas, plan.source_fps, force_scale)
        concat_pads += [video, audio]

    video_out, audio_out = graph.add_multi(
        concat_pads, f"concat=n={len(plan.segments)}:v=1:a=1", ["vbase", "abase"]
    )
    if plan.base_volume != 1.0:
        audio_out = graph.chain([audio_out], [f"volume={plan.base_volume:.6f}"], "avol")

    mix_pads: list[str] = []
    for layer in plan.overlays:
        for segment in layer.segments:
            input_args += _input_args(segment.path, segment.in_point, segment.duration)
            input_index = input_count
            input_count += 1
            video_out = _overlay_video(graph, input_index, segment, canvas, video_out)
            if segment.has_audio and layer.volume > 0:
                mix_pads.append(_overlay_audio(graph, input_index, segment, layer.volume))

    if mix_pads:
        audio_out = graph.add(
            [audio_out, *mix_pads],
            f"amix=inputs={len(mix_pads) + 1}:duration=first:dropout_transition=0:normalize=0",
            "amix",
        )

    video_out = graph.add([video_out], "null", "vout")
    audio_out = graph.add([audio_out], "anull", "aout")

    encoder, hardware = select_video_encoder(settings, encoder_backend)
    filter_graph = graph.render()
    output = str(output_path)

    args: list[str] = ["-hide_banner", "-nostdin", "-loglevel", "error", "-stats"]
    args += input_args
    args += ["-filter_complex", filter_graph, "-map", f"[{video_out}]", "-map", f"[{audio_out}]"]
    args += _encoder_args(settings, encoder, hardware)
    if Path(output).suffix.lower() in {".mp4", ".mov", ".m4v"}:
        args += ["-movflags", "+faststart"]
    args += ["-y", output]

    return EncoderInvocation(
        program=ffmpeg_bin,
        args=tuple(args),
        output_path=output,
        filter_graph=filter_graph,
        video_encoder=encoder,
        hardware=hardware,
        total_duration=plan.duration,
        output_fps=output_fps,
        total_frames=int(round(plan.duration * output_fps)),
    )
