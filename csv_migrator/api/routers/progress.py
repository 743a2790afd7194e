"""
Progress API endpoints.

Routes:
- WS /progress/ws - Live progress events for all jobs
- GET /progress/status/{id} - Progress derived from the job's durable counters

Dependencies: fastapi, csv_migrator.application.progress_broadcaster
System role: Real-time progress HTTP/WebSocket API
"""

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from csv_migrator.api.deps import get_broadcaster, get_job_service
from csv_migrator.application.progress_broadcaster import ProgressBroadcaster, Subscription
from csv_migrator.application.services.job_service import JobService
from csv_migrator.core.exceptions import JobNotFoundError
from csv_migrator.models.progress import ProgressEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"])


async def _forward_events(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        event = await subscription.get()
        await websocket.send_json(event.to_dict())


async def _drain_client(websocket: WebSocket) -> None:
    # Client messages carry nothing; reading them surfaces the disconnect.
    while True:
        await websocket.receive_text()


@router.websocket("/ws")
async def progress_websocket(
    websocket: WebSocket,
    broadcaster: ProgressBroadcaster = Depends(get_broadcaster),
) -> None:
    """
    Stream progress events to a client.

    Protocol:
        Server -> Client: {"type": "connected", "message": ...} once, then
        {"type": "progress", "jobId", "percentage", "message", "status", "timestamp"}
        for every event emitted while connected. No replay of earlier events.
    """
    await websocket.accept()
    subscription = broadcaster.subscribe()
    logger.info(
        f"{__name__}:progress_websocket - Client connected",
        extra={"client_host": websocket.client.host if websocket.client else None},
    )
    tasks: set[asyncio.Task] = set()
    try:
        await websocket.send_json({"type": "connected", "message": "Connected to progress updates"})
        tasks = {
            asyncio.create_task(_forward_events(websocket, subscription)),
            asyncio.create_task(_drain_client(websocket)),
        }
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error(
                    f"{__name__}:progress_websocket - Stream failed",
                    extra={"error_type": type(error).__name__, "error_msg": str(error)},
                )
    except WebSocketDisconnect:
        pass
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        subscription.close()
        logger.info(f"{__name__}:progress_websocket - Client disconnected")


@router.get("/status/{job_id}", response_model=ProgressEvent)
async def get_progress_status(
    job_id: UUID,
    job_service: JobService = Depends(get_job_service),
) -> ProgressEvent:
    """
    Current progress of a job.

    Raises:
        HTTPException(404): Job not found
    """
    try:
        return await job_service.get_progress(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
