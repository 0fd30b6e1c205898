"""Edit commands accepted by the timeline editor.

Every mutation of a timeline is expressed as one of these commands and
applied through ``TimelineEditor.apply``, which is the single place where
edits are validated.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from clipforge.models.timeline import TrackKind, Transform


class AddClip(BaseModel):
    op: Literal["add_clip"] = "add_clip"
    media_clip_id: str
    track_id: str
    start_time: float | None = Field(None, description="None = use placement policy")
    in_point: float
    out_point: float
    layer_order: int = 0
    transform: Transform | None = None


class MoveClip(BaseModel):
    op: Literal["move_clip"] = "move_clip"
    clip_id: str
    start_time: float


class TrimClip(BaseModel):
    op: Literal["trim_clip"] = "trim_clip"
    clip_id: str
    in_point: float | None = None
    out_point: float | None = None
    start_time: float | None = None


class UpdateClip(BaseModel):
    op: Literal["update_clip"] = "update_clip"
    clip_id: str
    start_time: float | None = None
    in_point: float | None = None
    out_point: float | None = None
    track_id: str | None = None


class SplitClip(BaseModel):
    op: Literal["split_clip"] = "split_clip"
    clip_id: str
    split_time: float


class DeleteClip(BaseModel):
    op: Literal["delete_clip"] = "delete_clip"
    clip_id: str


class CreateTrack(BaseModel):
    op: Literal["create_track"] = "create_track"
    name: str
    kind: TrackKind = TrackKind.MAIN


class DeleteTrack(BaseModel):
    op: Literal["delete_track"] = "delete_track"
    track_id: str


class SetTrackProperties(BaseModel):
    op: Literal["set_track_properties"] = "set_track_properties"
    track_id: str
    name: str | None = None
    visible: bool | None = None
    locked: bool | None = None
    volume: float | None = None


EditCommand = Annotated[
    Union[
        AddClip,
        MoveClip,
        TrimClip,
        UpdateClip,
        SplitClip,
        DeleteClip,
        CreateTrack,
        DeleteTrack,
        SetTrackProperties,
    ],
    Field(discriminator="op"),
]

_command_adapter: TypeAdapter[EditCommand] = TypeAdapter(EditCommand)


def parse_command(data: dict) -> EditCommand:
    """Build a command from its JSON form, e.g. ``{"op": "move_clip", ...}``."""
    return _command_adapter.validate_python(data)
