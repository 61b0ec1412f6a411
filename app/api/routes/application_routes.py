"""
Application Form Routes

POST /application - Submit own application (one per user)
GET /application/me - Get own application
PATCH /application/me - Update own application (Pending / Document Verification only)
GET /application/all - Paginated list for staff (status, search, scholarship filters)
PUT /application/status - Move an application through the status workflow
GET /application/{application_id} - Get one application (owner or staff)
PATCH /application/{application_id} - Staff update
DELETE /application/{application_id} - Delete with documents, test and interview
"""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query
from pymongo.errors import DuplicateKeyError

from app.core.auth import get_current_user, require_permission, has_permission
from app.services.mongo_service import (
    ApplicationService, DocumentService, InterviewService, ApprovalFormService, page_count
)
from app.services.notification_service import NotificationService, ActivityLogger
from app.services.personality_test_service import PersonalityTestService
from app.services.status_service import change_status, InvalidStatusTransition, EDITABLE_STATUSES
from app.utils.file_upload import remove_files
from app.schemas.schemas import (
    ApplicationCreate, ApplicationUpdate, ApplicationResponse, ApplicationListResponse,
    ApplicationStatus, StatusUpdateRequest, MessageResponse
)

router = APIRouter(prefix="/application", tags=["Applications"])
logger = logging.getLogger(__name__)


def load_application(application_id: str) -> dict:
    """Fetch an application or 404."""
    application = ApplicationService().get_by_id(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


def ensure_can_read(application: dict, user: dict, permission: str = "application.read"):
    """Owner or holder of the staff permission, else 403."""
    if application["user_id"] != user["user_id"] and not has_permission(user, permission):
        raise HTTPException(status_code=403, detail="Not allowed to access this application")


@router.post("", response_model=ApplicationResponse, status_code=201)
async def create_application(data: ApplicationCreate,
                             user: dict = Depends(require_permission("application.create"))):
    """Submit the caller's scholarship application. Starts in Pending."""
    service = ApplicationService()
    if service.get_by_user(user["user_id"]):
        raise HTTPException(status_code=409, detail="User already filled an Application")
    try:
        application = service.insert(user["user_id"], data.model_dump(mode="json"))
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="User already filled an Application")

    ActivityLogger().log(
        user_id=user["user_id"],
        activity_type="application_submitted",
        description=f"Application submitted for {data.type_of_scholarship} program",
        application_id=application["id"],
        status="Pending",
        metadata={"scholarship_type": data.type_of_scholarship}
    )
    NotificationService().application_submitted(user["user_id"], application["id"])
    logger.info("Application %s submitted by user %s", application["id"], user["user_id"])
    return ApplicationResponse(**application)


@router.get("/me", response_model=ApplicationResponse)
async def get_my_application(user: dict = Depends(get_current_user)):
    application = ApplicationService().get_by_user(user["user_id"])
    if not application:
        raise HTTPException(status_code=404, detail="No application found")
    return ApplicationResponse(**application)


@router.patch("/me", response_model=ApplicationResponse)
async def update_my_application(data: ApplicationUpdate,
                                user: dict = Depends(require_permission("application.updateOwn"))):
    """Partial update. Locked once the application moves past review stages."""
    service = ApplicationService()
    application = service.get_by_user(user["user_id"])
    if not application:
        raise HTTPException(status_code=404, detail="No application found")
    if application["status"] not in EDITABLE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Application cannot be edited while '{application['status']}'"
        )

    fields = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = service.update(application["id"], fields)
    ActivityLogger().log(
        user_id=user["user_id"],
        activity_type="application_updated",
        description=f"Updated {', '.join(sorted(fields))}",
        application_id=application["id"],
        status=application["status"],
        metadata={"fields": sorted(fields)},
        is_system_generated=False
    )
    return ApplicationResponse(**updated)


@router.get("/all", response_model=ApplicationListResponse)
async def list_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ApplicationStatus] = None,
    search: Optional[str] = None,
    type_of_scholarship: Optional[str] = None,
    user: dict = Depends(require_permission("application.readAll"))
):
    """Paginated applications, newest first."""
    applications, total = ApplicationService().list(
        page, limit,
        status=status.value if status else None,
        search=search,
        type_of_scholarship=type_of_scholarship
    )
    return ApplicationListResponse(
        applications=[ApplicationResponse(**a) for a in applications],
        total=total, page=page, limit=limit, pages=page_count(total, limit)
    )


@router.put("/status", response_model=ApplicationResponse)
async def update_status(data: StatusUpdateRequest,
                        user: dict = Depends(require_permission("application.status"))):
    """Change status via the workflow. Illegal moves return 400."""
    application = load_application(data.application_id)
    try:
        updated = change_status(application, data.status.value, user["user_id"], data.remarks)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApplicationResponse(**updated)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, user: dict = Depends(get_current_user)):
    application = load_application(application_id)
    ensure_can_read(application, user)
    return ApplicationResponse(**application)


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def staff_update_application(application_id: str, data: ApplicationUpdate,
                                   user: dict = Depends(require_permission("application.update"))):
    application = load_application(application_id)
    fields = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = ApplicationService().update(application_id, fields)
    ActivityLogger().log(
        user_id=application["user_id"],
        activity_type="application_updated",
        description=f"Staff updated {', '.join(sorted(fields))}",
        application_id=application_id,
        status=application["status"],
        metadata={"fields": sorted(fields), "updated_by": user["user_id"]},
        is_system_generated=False
    )
    return ApplicationResponse(**updated)


@router.delete("/{application_id}", response_model=MessageResponse)
async def delete_application(application_id: str,
                             user: dict = Depends(require_permission("application.delete"))):
    """Delete the application and everything hanging off it. The activity log stays."""
    load_application(application_id)
    remove_files(DocumentService().delete(application_id))
    PersonalityTestService().delete_for_application(application_id)
    InterviewService().delete_by_application(application_id)
    ApprovalFormService().delete_by_application(application_id)
    ApplicationService().delete(application_id)
    logger.info("Application %s deleted by user %s", application_id, user["user_id"])
    return MessageResponse(message="Application deleted successfully")
