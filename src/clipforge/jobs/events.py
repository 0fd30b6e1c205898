"""Export events and their fan-out to listeners and subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Literal, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ExportProgressEvent(BaseModel):
    event: Literal["export_progress"] = "export_progress"
    job_id: str
    progress: float
    current_frame: int
    total_frames: int
    fps: float
    eta_seconds: float


class ExportCompleteEvent(BaseModel):
    event: Literal["export_complete"] = "export_complete"
    job_id: str
    output_path: str


class ExportErrorEvent(BaseModel):
    event: Literal["export_error"] = "export_error"
    job_id: str
    error: str


class ExportCancelledEvent(BaseModel):
    event: Literal["export_cancelled"] = "export_cancelled"
    job_id: str


ExportEvent = Union[ExportProgressEvent, ExportCompleteEvent, ExportErrorEvent, ExportCancelledEvent]
EventListener = Callable[[ExportEvent], None]

TERMINAL_EVENTS = (ExportCompleteEvent, ExportErrorEvent, ExportCancelledEvent)


class ExportEventBus:
    """Publishes export events to callbacks and asyncio queues.

    Callbacks run synchronously in the publishing task. Queue subscribers
    may filter on a job id; ``None`` receives every job's events.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []
        self._queues: dict[str | None, list[asyncio.Queue[ExportEvent]]] = {}

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def subscribe(self, job_id: str | None = None) -> asyncio.Queue[ExportEvent]:
        queue: asyncio.Queue[ExportEvent] = asyncio.Queue()
        self._queues.setdefault(job_id, []).append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ExportEvent], job_id: str | None = None) -> None:
        queues = self._queues.get(job_id)
        if queues and queue in queues:
            queues.remove(queue)
            if not queues:
                del self._queues[job_id]

    def publish(self, event: ExportEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Export event listener failed for %s", event.event)

        for key in (event.job_id, None):
            for queue in self._queues.get(key, []):
                queue.put_nowait(event)
