"""Export job domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from clipforge.models.export import ExportSettings


class ExportStatus(str, Enum):
    """Status of an export job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportStatus.COMPLETED, ExportStatus.FAILED, ExportStatus.CANCELLED)


@dataclass
class ExportJob:
    """One execution of the compile-and-encode operation."""

    output_path: str
    settings: ExportSettings = field(default_factory=ExportSettings)
    id: str = field(default_factory=lambda: str(uuid4()))
    status: ExportStatus = ExportStatus.PENDING
    progress: float = 0.0
    current_frame: int = 0
    total_frames: int = 0
    encode_fps: float = 0.0
    eta_seconds: float | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    completed_at: datetime | None = None
