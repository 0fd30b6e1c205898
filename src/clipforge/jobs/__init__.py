"""Export job execution: runner, progress parsing, events and the manager."""

from clipforge.jobs.events import (
    ExportCancelledEvent,
    ExportCompleteEvent,
    ExportErrorEvent,
    ExportEvent,
    ExportEventBus,
    ExportProgressEvent,
)
from clipforge.jobs.manager import ExportJobManager
from clipforge.jobs.models import ExportJob, ExportStatus
from clipforge.jobs.progress import ProgressSample, estimate_progress, parse_progress_line
from clipforge.jobs.runner import ExportJobRunner

__all__ = [
    "ExportJob",
    "ExportStatus",
    "ExportJobRunner",
    "ExportJobManager",
    "ExportEventBus",
    "ExportEvent",
    "ExportProgressEvent",
    "ExportCompleteEvent",
    "ExportErrorEvent",
    "ExportCancelledEvent",
    "ProgressSample",
    "parse_progress_line",
    "estimate_progress",
]
