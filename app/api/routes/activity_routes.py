"""
Activity Log Routes

GET /activity/me - Own activity history (newest first)
GET /activity/application/{application_id} - History of one application (staff)
PATCH /activity/{log_id}/notes - Attach staff notes to an entry
"""

from typing import List
from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, require_permission
from app.services.notification_service import ActivityLogger
from app.schemas.schemas import ActivityLogResponse, AdminNotesUpdate

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("/me", response_model=List[ActivityLogResponse])
async def my_activity(limit: int = Query(50, ge=1, le=200), user: dict = Depends(get_current_user)):
    return [ActivityLogResponse(**log) for log in ActivityLogger().history_for_user(user["user_id"], limit)]


@router.get("/application/{application_id}", response_model=List[ActivityLogResponse])
async def application_activity(application_id: str, limit: int = Query(100, ge=1, le=500),
                               user: dict = Depends(require_permission("application.read"))):
    return [ActivityLogResponse(**log) for log in ActivityLogger().history_for_application(application_id, limit)]


@router.patch("/{log_id}/notes", response_model=ActivityLogResponse)
async def set_notes(log_id: str, data: AdminNotesUpdate,
                    user: dict = Depends(require_permission("application.update"))):
    log = ActivityLogger().set_admin_notes(log_id, data.admin_notes)
    if not log:
        raise HTTPException(status_code=404, detail="Activity log entry not found")
    return ActivityLogResponse(**log)
