"""
Admin API routes for live classes and the notification worker.

All endpoints require admin authentication.

Endpoints:
- POST /api/admin/live-classes - Create a live class
- GET /api/admin/live-classes/{live_class_id} - Get one class
- GET /api/admin/live-classes/course/{course_id} - List classes of a course
- PATCH /api/admin/live-classes/{live_class_id} - Update / reschedule
- POST /api/admin/live-classes/{live_class_id}/live - Mark as live
- PATCH /api/admin/live-classes/{live_class_id}/complete - Mark as completed
- POST /api/admin/live-classes/{live_class_id}/recording - Upload recording URL
- POST /api/admin/live-classes/{live_class_id}/notify - Send reminder now
- DELETE /api/admin/live-classes/{live_class_id} - Delete a class
- GET /api/admin/notification-worker - Worker status
- POST /api/admin/notification-worker/tick - Run a tick now
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from classroom import live_classes
from classroom.lifecycle import LiveClassValidationError
from classroom.live_classes import LiveClassNotFoundError
from web_api.auth import require_admin

router = APIRouter(prefix="/api/admin", tags=["admin-live-classes"])


class CreateLiveClassRequest(BaseModel):
    """Request body for creating a live class."""

    course_id: int
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    scheduled_at: datetime
    duration_minutes: int = Field(default=60, ge=5, le=480)
    meeting_url: str = Field(min_length=1)
    batch_id: str | None = None
    section_id: str | None = None


class UpdateLiveClassRequest(BaseModel):
    """Partial update; only fields present in the body are changed."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    scheduled_at: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=5, le=480)
    meeting_url: str | None = Field(default=None, min_length=1)
    batch_id: str | None = None
    section_id: str | None = None


class RecordingRequest(BaseModel):
    recording_url: str = Field(min_length=1)


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, LiveClassNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def get_store(request: Request):
    return request.app.state.store


def get_gateway(request: Request):
    return request.app.state.push_gateway


def get_worker(request: Request):
    worker = getattr(request.app.state, "notification_worker", None)
    if worker is None:
        raise HTTPException(status_code=503, detail="Notification worker not available")
    return worker


@router.post("/live-classes", status_code=201)
async def create_live_class_endpoint(
    request: CreateLiveClassRequest,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    try:
        live_class = await live_classes.create_live_class(
            course_id=request.course_id,
            title=request.title,
            scheduled_at=request.scheduled_at,
            meeting_url=request.meeting_url,
            duration_minutes=request.duration_minutes,
            description=request.description,
            batch_id=request.batch_id,
            section_id=request.section_id,
        )
    except (LiveClassValidationError, LiveClassNotFoundError) as e:
        raise _http_error(e)

    return {"live_class": live_class}


@router.get("/live-classes/course/{course_id}")
async def list_course_live_classes_endpoint(
    course_id: int,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    """All classes of a course, meeting URLs included."""
    return {"live_classes": await live_classes.list_for_course(course_id)}


@router.get("/live-classes/{live_class_id}")
async def get_live_class_endpoint(
    live_class_id: int,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    try:
        live_class = await live_classes.get_live_class(live_class_id)
    except LiveClassNotFoundError as e:
        raise _http_error(e)
    return {"live_class": live_class}


@router.patch("/live-classes/{live_class_id}")
async def update_live_class_endpoint(
    live_class_id: int,
    request: UpdateLiveClassRequest,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    """
    Update a class.

    Changing scheduled_at is only allowed for scheduled classes and re-arms
    the reminder.
    """
    try:
        live_class = await live_classes.update_live_class(
            live_class_id, request.model_dump(exclude_unset=True)
        )
    except (LiveClassValidationError, LiveClassNotFoundError) as e:
        raise _http_error(e)
    return {"live_class": live_class}


@router.post("/live-classes/{live_class_id}/live")
async def mark_live_endpoint(
    live_class_id: int,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    try:
        live_class = await live_classes.mark_as_live(live_class_id)
    except (LiveClassValidationError, LiveClassNotFoundError) as e:
        raise _http_error(e)
    return {"live_class": live_class}


@router.patch("/live-classes/{live_class_id}/complete")
async def mark_completed_endpoint(
    live_class_id: int,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    try:
        live_class = await live_classes.mark_as_completed(live_class_id)
    except (LiveClassValidationError, LiveClassNotFoundError) as e:
        raise _http_error(e)
    return {"live_class": live_class}


@router.post("/live-classes/{live_class_id}/recording")
async def upload_recording_endpoint(
    live_class_id: int,
    request: RecordingRequest,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    """Attach a recording. The worker notifies students on its next tick."""
    try:
        live_class = await live_classes.upload_recording(
            live_class_id, request.recording_url
        )
    except LiveClassNotFoundError as e:
        raise _http_error(e)
    return {"live_class": live_class}


@router.post("/live-classes/{live_class_id}/notify")
async def notify_live_class_endpoint(
    live_class_id: int,
    admin: dict = Depends(require_admin),
    store=Depends(get_store),
    gateway=Depends(get_gateway),
) -> dict[str, Any]:
    """Send the reminder push immediately instead of waiting for the worker."""
    try:
        result = await live_classes.trigger_notification(live_class_id, store, gateway)
    except LiveClassNotFoundError as e:
        raise _http_error(e)
    return {
        "status": "sent",
        "success_count": result.success_count,
        "failure_count": result.failure_count,
    }


@router.delete("/live-classes/{live_class_id}")
async def delete_live_class_endpoint(
    live_class_id: int,
    admin: dict = Depends(require_admin),
) -> dict[str, Any]:
    try:
        await live_classes.delete_live_class(live_class_id)
    except LiveClassNotFoundError as e:
        raise _http_error(e)
    return {"status": "deleted"}


@router.get("/notification-worker")
async def notification_worker_status_endpoint(
    admin: dict = Depends(require_admin),
    worker=Depends(get_worker),
) -> dict[str, Any]:
    return worker.status()


@router.post("/notification-worker/tick")
async def notification_worker_tick_endpoint(
    admin: dict = Depends(require_admin),
    worker=Depends(get_worker),
) -> dict[str, Any]:
    """Run one tick now. Returns skipped=true if a tick is already in flight."""
    summary = await worker.trigger_tick()
    return summary.to_dict()
