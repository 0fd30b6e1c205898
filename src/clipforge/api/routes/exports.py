"""Export job endpoints and the progress websocket."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from clipforge.api.deps import get_export_manager
from clipforge.api.schemas import ExportCreateResponse, ExportJobResponse, ExportRequest
from clipforge.errors import NotFoundError
from clipforge.jobs.events import TERMINAL_EVENTS
from clipforge.jobs.manager import ExportJobManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/exports", tags=["exports"])
ws_router = APIRouter(prefix="/ws/exports", tags=["exports"])


# ------------------------------------------------------------------
# POST - start / cancel (202 Accepted)
# ------------------------------------------------------------------


@router.post("", response_model=ExportCreateResponse, status_code=202)
async def export_timeline(
    req: ExportRequest,
    mgr: ExportJobManager = Depends(get_export_manager),
) -> ExportCreateResponse:
    job = mgr.export_timeline(req.output_path, req.settings)
    return ExportCreateResponse(job_id=job.id, status=job.status.value)


@router.post("/{job_id}/cancel", response_model=ExportJobResponse)
async def cancel_export(
    job_id: str,
    mgr: ExportJobManager = Depends(get_export_manager),
) -> ExportJobResponse:
    job = await mgr.cancel_export(job_id)
    return ExportJobResponse.from_job(job)


# ------------------------------------------------------------------
# GET - query jobs
# ------------------------------------------------------------------


@router.get("", response_model=list[ExportJobResponse])
async def list_exports(
    mgr: ExportJobManager = Depends(get_export_manager),
) -> list[ExportJobResponse]:
    return [ExportJobResponse.from_job(j) for j in mgr.list_jobs()]


@router.get("/{job_id}", response_model=ExportJobResponse)
async def get_export(
    job_id: str,
    mgr: ExportJobManager = Depends(get_export_manager),
) -> ExportJobResponse:
    return ExportJobResponse.from_job(mgr.get_job(job_id))


@router.delete("/{job_id}", response_model=ExportJobResponse)
async def acknowledge_export(
    job_id: str,
    mgr: ExportJobManager = Depends(get_export_manager),
) -> ExportJobResponse:
    """Discard a finished job once its outcome has been seen."""
    return ExportJobResponse.from_job(mgr.acknowledge(job_id))


# ------------------------------------------------------------------
# WebSocket - live events
# ------------------------------------------------------------------


@ws_router.websocket("/{job_id}")
async def export_events(
    websocket: WebSocket,
    job_id: str,
    mgr: ExportJobManager = Depends(get_export_manager),
) -> None:
    """Stream a job's events until its terminal event.

    The first message is the job's current status, so a client that
    connects late still learns the outcome.
    """
    await websocket.accept()
    try:
        job = mgr.get_job(job_id)
    except NotFoundError:
        await websocket.close(code=4404, reason="Export job not found")
        return

    queue = mgr.bus.subscribe(job_id)
    try:
        status = ExportJobResponse.from_job(job).model_dump(mode="json")
        await websocket.send_json({"event": "export_status", **status})
        if job.status.is_terminal:
            await websocket.close()
            return

        while True:
            event = await queue.get()
            await websocket.send_json(event.model_dump(mode="json"))
            if isinstance(event, TERMINAL_EVENTS):
                break
        await websocket.close()
    except WebSocketDisconnect:
        logger.debug("Client left event stream for export %s", job_id)
    finally:
        mgr.bus.unsubscribe(queue, job_id)
