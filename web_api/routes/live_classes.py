"""
Student-facing live class routes.

Meeting URLs are only included inside the join window (see
classroom.visibility); everything else about a class is always visible.

Endpoints:
- GET /api/users/me/live-classes/today
- GET /api/users/me/live-classes/upcoming
- GET /api/courses/{course_id}/recordings
- POST /api/users/me/device-token
- DELETE /api/users/me/device-token
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from classroom import live_classes
from classroom.enums import DevicePlatform
from classroom.live_classes import NotEnrolledError
from web_api.auth import get_current_user

router = APIRouter(tags=["live-classes"])


class DeviceTokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=4096)
    platform: DevicePlatform = DevicePlatform.android


class RemoveDeviceTokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=4096)


@router.get("/api/users/me/live-classes/today")
async def get_today_live_classes(
    user: dict = Depends(get_current_user),
) -> dict[str, Any]:
    classes = await live_classes.get_today_for_student(user["user_id"])
    return {"live_classes": classes}


@router.get("/api/users/me/live-classes/upcoming")
async def get_upcoming_live_classes(
    limit: int = Query(default=20, ge=1, le=100),
    user: dict = Depends(get_current_user),
) -> dict[str, Any]:
    classes = await live_classes.get_upcoming_for_student(user["user_id"], limit=limit)
    return {"live_classes": classes}


@router.get("/api/courses/{course_id}/recordings")
async def get_course_recordings(
    course_id: int,
    user: dict = Depends(get_current_user),
) -> dict[str, Any]:
    """Completed classes of a course that have a recording. Enrolled students only."""
    try:
        recordings = await live_classes.get_recordings_for_course(
            user["user_id"], course_id
        )
    except NotEnrolledError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"recordings": recordings}


@router.post("/api/users/me/device-token")
async def register_device_token(
    request: DeviceTokenRequest,
    user: dict = Depends(get_current_user),
) -> dict[str, str]:
    await live_classes.register_device_token(
        user["user_id"], request.token, request.platform
    )
    return {"status": "registered"}


@router.delete("/api/users/me/device-token")
async def remove_device_token(
    request: RemoveDeviceTokenRequest,
    user: dict = Depends(get_current_user),
) -> dict[str, str]:
    removed = await live_classes.remove_device_token(user["user_id"], request.token)
    if not removed:
        raise HTTPException(status_code=404, detail="Device token not found")
    return {"status": "removed"}
