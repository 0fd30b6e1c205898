"""Project document - the persisted shape of a timeline and its media."""

import json
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from clipforge.models.export import ExportSettings
from clipforge.models.media import MediaClip
from clipforge.models.timeline import TimelineClip, TrackKind


class TrackDocument(BaseModel):
    """Persisted track with its clips inlined (``tracks[].clips[]``)."""

    id: str
    name: str
    kind: TrackKind = TrackKind.MAIN
    order: int = 0
    visible: bool = True
    locked: bool = False
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    clips: list[TimelineClip] = Field(default_factory=list)


class Project(BaseModel):
    """Project file contents.

    Loading and saving are driven by an external collaborator; the editor
    only converts to and from this shape.
    """

    name: str = Field(default="Untitled Project", description="Project name")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    media_library: list[MediaClip] = Field(default_factory=list)
    tracks: list[TrackDocument] = Field(default_factory=list)
    export_settings: ExportSettings = Field(default_factory=ExportSettings)

    def save(self, path: Path) -> Path:
        """Save project to JSON file.

        Args:
            path: Output file path

        Returns:
            Path to saved file
        """
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(".clipforge.json")

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, ensure_ascii=False, indent=2)

        return path

    @classmethod
    def load(cls, path: Path) -> "Project":
        """Load project from JSON file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        return cls.model_validate(data)
