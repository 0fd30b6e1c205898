"""Export settings models."""

from enum import Enum

from pydantic import BaseModel, Field


class ExportResolution(str, Enum):
    """Output resolution preset."""

    SOURCE = "source"
    UHD_4K = "2160p"
    QHD = "1440p"
    FULL_HD = "1080p"
    HD = "720p"
    SD = "480p"

    @property
    def dimensions(self) -> tuple[int, int] | None:
        """Return (width, height), or None to keep the source size."""
        return _RESOLUTION_DIMENSIONS[self]


_RESOLUTION_DIMENSIONS: dict[ExportResolution, tuple[int, int] | None] = {
    ExportResolution.SOURCE: None,
    ExportResolution.UHD_4K: (3840, 2160),
    ExportResolution.QHD: (2560, 1440),
    ExportResolution.FULL_HD: (1920, 1080),
    ExportResolution.HD: (1280, 720),
    ExportResolution.SD: (854, 480),
}


class VideoCodec(str, Enum):
    """Output video codec."""

    H264 = "h264"
    HEVC = "hevc"
    VP9 = "vp9"

    @property
    def ffmpeg_codec(self) -> str:
        """Software encoder name."""
        return {
            VideoCodec.H264: "libx264",
            VideoCodec.HEVC: "libx265",
            VideoCodec.VP9: "libvpx-vp9",
        }[self]

    @property
    def extension(self) -> str:
        """Container extension without dot."""
        return "webm" if self == VideoCodec.VP9 else "mp4"


class ExportQuality(str, Enum):
    """Encoding quality preset."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def crf(self) -> int:
        """CRF value for software encoders (lower = better)."""
        return {ExportQuality.HIGH: 18, ExportQuality.MEDIUM: 23, ExportQuality.LOW: 28}[self]

    @property
    def hardware_bitrate(self) -> str:
        """Target bitrate for hardware encoders, which ignore CRF."""
        return {ExportQuality.HIGH: "8M", ExportQuality.MEDIUM: "5M", ExportQuality.LOW: "2500k"}[self]


class AudioCodec(str, Enum):
    """Output audio codec."""

    AAC = "aac"
    MP3 = "mp3"
    OPUS = "opus"

    @property
    def ffmpeg_codec(self) -> str:
        return {
            AudioCodec.AAC: "aac",
            AudioCodec.MP3: "libmp3lame",
            AudioCodec.OPUS: "libopus",
        }[self]


class ExportSettings(BaseModel):
    """Settings for rendering a timeline to a video file."""

    resolution: ExportResolution = Field(default=ExportResolution.FULL_HD)
    codec: VideoCodec = Field(default=VideoCodec.H264)
    quality: ExportQuality = Field(default=ExportQuality.HIGH)
    fps: int | None = Field(default=None, gt=0, description="Override frame rate (None = source)")
    audio_codec: AudioCodec = Field(default=AudioCodec.AAC)
    audio_bitrate: int = Field(default=192, gt=0, description="Audio bitrate in kbps")
    hardware_acceleration: bool = Field(default=True)
