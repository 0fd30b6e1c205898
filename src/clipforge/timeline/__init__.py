"""Timeline editing: commands, placement policy and the editor."""

from clipforge.timeline.commands import (
    AddClip,
    CreateTrack,
    DeleteClip,
    DeleteTrack,
    EditCommand,
    MoveClip,
    SetTrackProperties,
    SplitClip,
    TrimClip,
    UpdateClip,
    parse_command,
)
from clipforge.timeline.editor import TimelineEditor
from clipforge.timeline.placement import PlacementPolicy

__all__ = [
    "TimelineEditor",
    "PlacementPolicy",
    "EditCommand",
    "parse_command",
    "AddClip",
    "MoveClip",
    "TrimClip",
    "UpdateClip",
    "SplitClip",
    "DeleteClip",
    "CreateTrack",
    "DeleteTrack",
    "SetTrackProperties",
]
