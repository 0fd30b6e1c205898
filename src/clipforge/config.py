"""Configuration management for ClipForge."""

import sys
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

EncoderBackend = Literal["auto", "videotoolbox", "nvenc", "qsv", "none"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Encoder
    ffmpeg_bin: str = "ffmpeg"
    encoder_backend: EncoderBackend = "auto"
    cancel_grace_seconds: float = 5.0
    diagnostic_tail_lines: int = 10

    # Placement of clips dropped without an explicit start time
    placement_mode: Literal["append", "append_with_gap"] = "append"
    placement_gap_seconds: float = 0.0

    def resolved_encoder_backend(self) -> str:
        """Resolve ``auto`` to the hardware encoder family of this platform."""
        if self.encoder_backend != "auto":
            return self.encoder_backend
        if sys.platform == "darwin":
            return "videotoolbox"
        if sys.platform.startswith("win"):
            return "nvenc"
        return "none"


# Global settings instance
settings = Settings()
