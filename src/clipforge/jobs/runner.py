"""Supervision of one ffmpeg export process.

State machine: pending -> running -> completed | failed | cancelled.
Terminal states are absorbing and each produces exactly one event. The
stderr reader is a producer task feeding parsed samples through a queue
to the supervising task, which alone mutates the job.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from clipforge.errors import ExportInProgressError, ExportIOError, ExternalToolError
from clipforge.export.command import EncoderInvocation
from clipforge.jobs.events import (
    ExportCancelledEvent,
    ExportCompleteEvent,
    ExportErrorEvent,
    ExportEventBus,
    ExportProgressEvent,
)
from clipforge.jobs.models import ExportJob, ExportStatus
from clipforge.jobs.progress import ProgressSample, estimate_progress, parse_progress_line, read_lines

logger = logging.getLogger(__name__)


class ExportJobRunner:
    """Runs one ExportJob's encoder process and reports through the event bus."""

    def __init__(
        self,
        job: ExportJob,
        invocation: EncoderInvocation,
        bus: ExportEventBus,
        cancel_grace_seconds: float = 5.0,
        diagnostic_tail_lines: int = 10,
    ) -> None:
        self.job = job
        self._invocation = invocation
        self._bus = bus
        self._cancel_grace_seconds = cancel_grace_seconds
        self._diagnostics: deque[str] = deque(maxlen=max(1, diagnostic_tail_lines))
        self._cancel_requested = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._process: asyncio.subprocess.Process | None = None

    @property
    def invocation(self) -> EncoderInvocation:
        return self._invocation

    def start(self) -> asyncio.Task[None]:
        """Spawn the encoder in a background task (requires a running loop)."""
        if self._task is not None or self.job.status != ExportStatus.PENDING:
            raise ExportInProgressError(f"Export job {self.job.id} was already started")
        self._loop = asyncio.get_running_loop()
        self.job.status = ExportStatus.RUNNING
        self.job.started_at = datetime.now(timezone.utc)
        self.job.total_frames = self._invocation.total_frames
        self._task = asyncio.create_task(self._run(), name=f"export-{self.job.id}")
        return self._task

    async def wait(self) -> ExportJob:
        """Wait until the job reaches a terminal state."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.job

    async def cancel(self) -> None:
        """Cancel the job; a no-op once it is terminal.

        Returns after the process is gone, the partial output is deleted and
        the job is ``cancelled``.
        """
        if self.job.status.is_terminal:
            return
        if self._task is None:
            self._finish(ExportStatus.CANCELLED)
            return
        self._cancel_requested.set()
        await asyncio.shield(self._task)

    def request_cancel(self) -> None:
        """Thread-safe cancellation request; does not wait for cleanup."""
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._cancel_requested.set)

    # ------------------------------------------------------------------
    # Supervision
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        job = self.job
        logger.info("Export %s started -> %s", job.id, job.output_path)
        logger.debug("FFmpeg command: %s", self._invocation.format())

        try:
            try:
                self._process = await asyncio.create_subprocess_exec(
                    *self._invocation.argv,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                self._fail(f"Failed to spawn FFmpeg process: {e}")
                return

            returncode = await self._supervise(self._process)

            if returncode is None:
                await self._terminate()
                cleanup_error = self._remove_partial_output()
                if cleanup_error:
                    self._fail(cleanup_error, cleanup=False)
                else:
                    self._finish(ExportStatus.CANCELLED)
            elif returncode == 0:
                self._finish(ExportStatus.COMPLETED)
            else:
                error = ExternalToolError(
                    self._failure_message(returncode),
                    returncode=returncode,
                    diagnostics="\n".join(self._diagnostics),
                )
                self._fail(str(error))
        except asyncio.CancelledError:
            await self._terminate()
            self._remove_partial_output()
            self._finish(ExportStatus.CANCELLED)
            raise
        except Exception as e:
            logger.exception("Export %s crashed", job.id)
            await self._terminate()
            self._fail(f"Export supervision failed: {e}")
        finally:
            if self._process is not None and self._process.returncode is None:
                self._process.kill()
                await self._process.wait()

    async def _supervise(self, process: asyncio.subprocess.Process) -> int | None:
        """Consume progress until the process exits.

        Returns the exit code, or None if cancellation was requested first.
        """
        queue: asyncio.Queue[ProgressSample | None] = asyncio.Queue()
        if process.stderr is None:
            raise RuntimeError("Encoder stderr is not piped")
        reader = asyncio.create_task(self._produce(process.stderr, queue))
        cancel_wait = asyncio.create_task(self._cancel_requested.wait())
        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait(
                    {getter, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
                )
                if getter not in done:
                    getter.cancel()
                    return None
                sample = getter.result()
                if sample is None:
                    break
                self._apply_progress(sample)

            waiter = asyncio.ensure_future(process.wait())
            done, _ = await asyncio.wait({waiter, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
            if waiter not in done:
                waiter.cancel()
                return None
            if self._cancel_requested.is_set():
                return None
            return waiter.result()
        finally:
            cancel_wait.cancel()
            if not reader.done():
                reader.cancel()
            await asyncio.gather(reader, cancel_wait, return_exceptions=True)

    async def _produce(
        self,
        stream: asyncio.StreamReader,
        queue: asyncio.Queue[ProgressSample | None],
    ) -> None:
        try:
            async for line in read_lines(stream):
                sample = parse_progress_line(line)
                if sample is not None:
                    queue.put_nowait(sample)
                elif line.strip():
                    self._diagnostics.append(line.strip())
                    logger.debug("[FFmpeg] %s", line.strip())
        finally:
            queue.put_nowait(None)

    def _apply_progress(self, sample: ProgressSample) -> None:
        if self.job.status != ExportStatus.RUNNING:
            return
        estimate = estimate_progress(
            sample,
            self._invocation.total_duration,
            self._invocation.output_fps,
        )
        job = self.job
        job.progress = estimate.progress
        job.current_frame = sample.current_frame
        job.total_frames = estimate.total_frames
        job.encode_fps = sample.encode_fps
        job.eta_seconds = estimate.eta_seconds
        self._bus.publish(
            ExportProgressEvent(
                job_id=job.id,
                progress=job.progress,
                current_frame=job.current_frame,
                total_frames=job.total_frames,
                fps=job.encode_fps,
                eta_seconds=estimate.eta_seconds,
            )
        )

    async def _terminate(self) -> None:
        """Stop the process: SIGTERM, then SIGKILL after the grace period."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self._cancel_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning("Export %s did not exit after SIGTERM, killing", self.job.id)
            process.kill()
            await process.wait()

    def _remove_partial_output(self) -> str | None:
        """Delete the partial output; returns an error message on failure."""
        path = Path(self.job.output_path)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            error = ExportIOError(f"Failed to remove partial output {path}: {e}")
            logger.error("%s", error)
            return str(error)
        return None

    def _failure_message(self, returncode: int) -> str:
        if not self._diagnostics:
            return f"FFmpeg export failed with exit code {returncode}"
        recent = "\n".join(self._diagnostics)
        return f"FFmpeg export failed with exit code {returncode}\n\nRecent output:\n{recent}"

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def _fail(self, message: str, cleanup: bool = True) -> None:
        if cleanup:
            cleanup_error = self._remove_partial_output()
            if cleanup_error:
                message = f"{message}\n{cleanup_error}"
        self._finish(ExportStatus.FAILED, error=message)

    def _finish(self, status: ExportStatus, error: str | None = None) -> None:
        job = self.job
        if job.status.is_terminal:
            return
        job.status = status
        job.error = error
        job.completed_at = datetime.now(timezone.utc)

        if status == ExportStatus.COMPLETED:
            job.progress = 1.0
            job.eta_seconds = 0.0
            logger.info("Export %s completed: %s", job.id, job.output_path)
            self._bus.publish(ExportCompleteEvent(job_id=job.id, output_path=job.output_path))
        elif status == ExportStatus.FAILED:
            logger.error("Export %s failed: %s", job.id, error)
            self._bus.publish(ExportErrorEvent(job_id=job.id, error=error or "Export failed"))
        else:
            logger.info("Export %s cancelled", job.id)
            self._bus.publish(ExportCancelledEvent(job_id=job.id))
