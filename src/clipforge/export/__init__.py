"""Export compiler: timeline snapshot -> plan -> ffmpeg invocation."""

from clipforge.export.command import EncoderInvocation, build_command, select_video_encoder
from clipforge.export.compiler import (
    compute_duration,
    generate_plan,
    render_concat_file,
    select_base_track,
    write_concat_file,
)
from clipforge.export.plan import CompositionPlan, LayerSegment, OverlayLayer, Segment, SegmentKind

__all__ = [
    "compute_duration",
    "generate_plan",
    "select_base_track",
    "render_concat_file",
    "write_concat_file",
    "build_command",
    "select_video_encoder",
    "EncoderInvocation",
    "CompositionPlan",
    "Segment",
    "SegmentKind",
    "LayerSegment",
    "OverlayLayer",
]
