"""Where a clip lands when it is added without an explicit start time."""

from typing import Literal

from pydantic import BaseModel, Field

from clipforge.config import Settings
from clipforge.models.timeline import TimelineClip


class PlacementPolicy(BaseModel):
    """Auto-positioning rule for newly added clips.

    ``append`` butts the clip against the end of the last clip on the track;
    ``append_with_gap`` leaves ``gap_seconds`` of empty timeline in between.
    """

    mode: Literal["append", "append_with_gap"] = "append"
    gap_seconds: float = Field(default=0.0, ge=0.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlacementPolicy":
        return cls(mode=settings.placement_mode, gap_seconds=settings.placement_gap_seconds)

    def next_start_time(self, track_clips: list[TimelineClip]) -> float:
        """Start time for a clip appended to a track holding ``track_clips``."""
        if not track_clips:
            return 0.0
        last_end = max(c.end_time for c in track_clips)
        if self.mode == "append_with_gap":
            return last_end + self.gap_seconds
        return last_end
