"""Parsing of ffmpeg's stderr stats stream."""

from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass

# frame= 1234 fps= 30 q=28.0 size= 1024kB time=00:00:41.40 bitrate= 202.3kbits/s speed=1.2x
_FRAME_RE = re.compile(r"frame=\s*(\d+)")
_FPS_RE = re.compile(r"fps=\s*([\d.]+)")
_TIME_RE = re.compile(r"time=\s*(-?)(\d+):(\d+):([\d.]+)")
_LINE_SPLIT_RE = re.compile(rb"[\r\n]")

FPS_EPSILON = 1e-6


@dataclass(frozen=True)
class ProgressSample:
    """One parsed stats line."""

    current_frame: int
    encode_fps: float
    elapsed_time: float


@dataclass(frozen=True)
class ProgressEstimate:
    progress: float
    eta_seconds: float
    total_frames: int


def parse_progress_line(line: str) -> ProgressSample | None:
    """Parse an ffmpeg stats line, or return None if it is not one."""
    frame_match = _FRAME_RE.search(line)
    if frame_match is None:
        return None

    fps_match = _FPS_RE.search(line)
    encode_fps = float(fps_match.group(1)) if fps_match else 0.0

    elapsed = 0.0
    time_match = _TIME_RE.search(line)
    if time_match:
        sign, hours, minutes, seconds = time_match.groups()
        # ffmpeg reports small negative times before the first frame
        if not sign:
            elapsed = int(hours) * 3600 + int(minutes) * 60 + float(seconds)

    return ProgressSample(
        current_frame=int(frame_match.group(1)),
        encode_fps=encode_fps,
        elapsed_time=elapsed,
    )


def estimate_progress(
    sample: ProgressSample,
    total_duration: float,
    output_fps: float,
) -> ProgressEstimate:
    """Turn a sample into progress/ETA against the expected output length.

    ``encode_fps / output_fps`` is how many seconds of output the encoder
    produces per wall-clock second.
    """
    if total_duration > 0:
        progress = min(max(sample.elapsed_time / total_duration, 0.0), 1.0)
    else:
        progress = 0.0
    remaining = max(total_duration - sample.elapsed_time, 0.0)
    speed = sample.encode_fps / output_fps if output_fps > 0 else 0.0
    eta = remaining / max(speed, FPS_EPSILON)
    return ProgressEstimate(
        progress=progress,
        eta_seconds=eta,
        total_frames=int(round(total_duration * output_fps)),
    )


async def read_lines(stream: asyncio.StreamReader, chunk_size: int = 4096) -> AsyncIterator[str]:
    """Yield lines from a stream, treating ``\\r`` as a line break too.

    ffmpeg rewrites its stats line in place with carriage returns, so plain
    ``readline`` would only deliver it once the process exits.
    """
    buffer = b""
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        buffer += chunk
        parts = _LINE_SPLIT_RE.split(buffer)
        buffer = parts.pop()
        for part in parts:
            if part:
                yield part.decode("utf-8", errors="replace")
    if buffer:
        yield buffer.decode("utf-8", errors="replace")
