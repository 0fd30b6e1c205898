"""ClipForge - timeline editing and ffmpeg export."""

__version__ = "0.1.0"
