"""FastAPI dependencies."""

from __future__ import annotations

from clipforge.config import Settings
from clipforge.jobs.events import ExportEventBus
from clipforge.jobs.manager import ExportJobManager
from clipforge.models.media import MediaLibrary
from clipforge.timeline.editor import TimelineEditor
from clipforge.timeline.placement import PlacementPolicy

_editor: TimelineEditor | None = None
_export_manager: ExportJobManager | None = None


def init_services(settings: Settings, editor: TimelineEditor | None = None) -> ExportJobManager:
    """Initialize the global editor and export manager (called at app startup)."""
    global _editor, _export_manager
    _editor = editor or TimelineEditor(
        MediaLibrary(),
        placement=PlacementPolicy.from_settings(settings),
    )
    _export_manager = ExportJobManager(_editor, ExportEventBus(), settings)
    return _export_manager


def get_editor() -> TimelineEditor:
    """Dependency that provides the TimelineEditor instance."""
    if _editor is None:
        raise RuntimeError("TimelineEditor not initialized, call init_services() first")
    return _editor


def get_export_manager() -> ExportJobManager:
    """Dependency that provides the ExportJobManager instance."""
    if _export_manager is None:
        raise RuntimeError("ExportJobManager not initialized, call init_services() first")
    return _export_manager

