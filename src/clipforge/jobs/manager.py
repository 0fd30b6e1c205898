"""Export job manager with in-memory storage and background execution."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from clipforge.config import Settings
from clipforge.config import settings as default_settings
from clipforge.errors import (
    EmptyTimelineError,
    ExportInProgressError,
    ExportIOError,
    NotFoundError,
    ValidationError,
)
from clipforge.export.command import EncoderInvocation, build_command
from clipforge.export.compiler import compute_duration, generate_plan
from clipforge.jobs.events import ExportEventBus
from clipforge.jobs.models import ExportJob, ExportStatus
from clipforge.jobs.runner import ExportJobRunner
from clipforge.models.export import ExportSettings
from clipforge.timeline.editor import TimelineEditor

logger = logging.getLogger(__name__)


class ExportJobManager:
    """Starts, tracks and cancels exports of one editor's timeline.

    Jobs are stored in-memory (dict). At most one export runs at a time;
    a second request while one is active is rejected, not queued.
    """

    def __init__(
        self,
        editor: TimelineEditor,
        bus: ExportEventBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._editor = editor
        self._bus = bus or ExportEventBus()
        self._settings = settings or default_settings
        self._jobs: dict[str, ExportJob] = {}
        self._runners: dict[str, ExportJobRunner] = {}
        self._lock = threading.Lock()

    @property
    def bus(self) -> ExportEventBus:
        return self._bus

    def prepare(self, output_path: str | Path, export_settings: ExportSettings) -> EncoderInvocation:
        """Compile the current timeline into an encoder invocation without running it."""
        output = Path(output_path)
        timeline = self._editor.snapshot()
        duration = compute_duration(timeline)
        if duration <= 0:
            raise EmptyTimelineError("Timeline is empty, nothing to export")
        if not output.parent.is_dir():
            raise ExportIOError(f"Output directory does not exist: {output.parent}")

        plan = generate_plan(timeline, self._editor.media)
        return build_command(
            plan,
            export_settings,
            output,
            encoder_backend=self._settings.resolved_encoder_backend(),
            ffmpeg_bin=self._settings.ffmpeg_bin,
        )

    def export_timeline(
        self,
        output_path: str | Path,
        export_settings: ExportSettings | None = None,
    ) -> ExportJob:
        """Snapshot the timeline, compile it and start encoding in the background.

        Must be called from a running event loop. Returns the job in the
        ``running`` state; progress and the outcome arrive on the bus.

        Raises:
            ExportInProgressError: Another export is still running
            ExportValidationError: Nothing exportable on the timeline
            ExportIOError: The output directory does not exist
        """
        export_settings = export_settings or ExportSettings()
        with self._lock:
            active = self._active_job_locked()
            if active is not None:
                raise ExportInProgressError(f"Export {active.id} is still running")

            invocation = self.prepare(output_path, export_settings)
            job = ExportJob(output_path=invocation.output_path, settings=export_settings)
            runner = ExportJobRunner(
                job,
                invocation,
                self._bus,
                cancel_grace_seconds=self._settings.cancel_grace_seconds,
                diagnostic_tail_lines=self._settings.diagnostic_tail_lines,
            )
            runner.start()
            self._jobs[job.id] = job
            self._runners[job.id] = runner

        logger.info(
            "Queued export %s: %.3fs at %s (%s)",
            job.id,
            invocation.total_duration,
            export_settings.resolution.value,
            invocation.video_encoder,
        )
        return job

    async def cancel_export(self, job_id: str) -> ExportJob:
        """Cancel a job and wait for its cleanup; no-op if already terminal."""
        runner = self._require_runner(job_id)
        await runner.cancel()
        return runner.job

    def request_cancel(self, job_id: str) -> None:
        """Thread-safe, non-blocking variant of ``cancel_export``."""
        self._require_runner(job_id).request_cancel()

    async def wait(self, job_id: str) -> ExportJob:
        """Wait for a job to reach a terminal state."""
        return await self._require_runner(job_id).wait()

    def get_job(self, job_id: str) -> ExportJob:
        """Get a job by ID."""
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Export job not found: {job_id}")
        return job

    def list_jobs(self) -> list[ExportJob]:
        """List all jobs, most recent first."""
        return sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)

    def active_job(self) -> ExportJob | None:
        with self._lock:
            return self._active_job_locked()

    def acknowledge(self, job_id: str) -> ExportJob:
        """Discard a finished job; the caller has seen its outcome."""
        with self._lock:
            job = self.get_job(job_id)
            if not job.status.is_terminal:
                raise ValidationError(
                    f"Export {job_id} is still {job.status.value}", reason="invalid_value"
                )
            del self._jobs[job_id]
            self._runners.pop(job_id, None)
        return job

    def _active_job_locked(self) -> ExportJob | None:
        for job in self._jobs.values():
            if job.status in (ExportStatus.PENDING, ExportStatus.RUNNING):
                return job
        return None

    def _require_runner(self, job_id: str) -> ExportJobRunner:
        runner = self._runners.get(job_id)
        if runner is None:
            raise NotFoundError(f"Export job not found: {job_id}")
        return runner
