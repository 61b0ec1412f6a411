"""
Interview Routes

POST /interviews - Schedule an interview (moves Document Verification -> Interview Scheduled)
GET /interviews - Paginated list (optional application status filter)
GET /interviews/assigned - Interviews where the caller is the interviewer
GET /interviews/me - Caller's own interview
PATCH /interviews/me/time - Applicant reschedules own interview
GET /interviews/user/{user_id} - Interview of an applicant
DELETE /interviews/user/{user_id} - Delete an applicant's interview
GET /interviews/{interview_id} - Get interview
PATCH /interviews/{interview_id} - Update interviewer/times
POST /interviews/{interview_id}/recommendation - Interviewer's recommendation
DELETE /interviews/{interview_id} - Delete interview
"""

import logging
from datetime import datetime
from typing import Optional, List
from fastapi import APIRouter, HTTPException, Depends, Query
from pymongo.errors import DuplicateKeyError

from app.core.auth import get_current_user, require_permission, has_permission
from app.api.routes.application_routes import load_application
from app.services import user_service
from app.services.mongo_service import ApplicationService, InterviewService, page_count
from app.services.notification_service import NotificationService, ActivityLogger
from app.services.status_service import (
    change_status, DOCUMENT_VERIFICATION, INTERVIEW_SCHEDULED, APPROVED, REJECTED
)
from app.schemas.schemas import (
    InterviewCreate, InterviewUpdate, InterviewTimeUpdate, InterviewResponse, InterviewListResponse,
    RecommendationRequest, ApplicationStatus, MessageResponse
)

router = APIRouter(prefix="/interviews", tags=["Interviews"])
logger = logging.getLogger(__name__)


def check_times(start_time: datetime, end_time: datetime):
    if end_time <= start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")


def present(interviews: List[dict]) -> List[InterviewResponse]:
    """Attach applicant summary and interviewer name."""
    applications = ApplicationService().get_many([i["application_id"] for i in interviews])
    users = user_service.get_users_by_ids([i["interviewer"] for i in interviews])
    out = []
    for interview in interviews:
        application = applications.get(interview["application_id"])
        interviewer = users.get(interview["interviewer"])
        out.append(InterviewResponse(
            **interview,
            application=application,
            interviewer_name=interviewer["name"] if interviewer else None
        ))
    return out


def _interview_or_404(interview_id: str) -> dict:
    interview = InterviewService().get_by_id(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview


def _interview_for_user(user_id: int) -> dict:
    application = ApplicationService().get_by_user(user_id)
    interview = InterviewService().get_by_application(application["id"]) if application else None
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview


@router.post("", response_model=InterviewResponse, status_code=201)
async def schedule_interview(data: InterviewCreate, user: dict = Depends(require_permission("interview.manage"))):
    """
    Schedule the interview for an application.

    An application in Document Verification moves to Interview Scheduled.
    Finished applications (Approved/Rejected) cannot be scheduled.
    """
    application = load_application(data.application_id)
    if not user_service.get_user(data.interviewer):
        raise HTTPException(status_code=404, detail="Interviewer not found")
    if application["status"] in (APPROVED, REJECTED):
        raise HTTPException(status_code=400, detail=f"Application is already {application['status']}")
    check_times(data.start_time, data.end_time)

    service = InterviewService()
    if service.get_by_application(data.application_id):
        raise HTTPException(status_code=409, detail="Interview already scheduled for this application")
    try:
        interview = service.insert(
            data.application_id, data.interviewer, data.start_time, data.end_time, user["user_id"]
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Interview already scheduled for this application")

    if application["status"] == DOCUMENT_VERIFICATION:
        application = change_status(application, INTERVIEW_SCHEDULED, user["user_id"], "Interview scheduled")

    ActivityLogger().log(
        user_id=application["user_id"],
        activity_type="interview_scheduled",
        description=f"Interview scheduled for {data.start_time:%Y-%m-%d %H:%M}",
        application_id=data.application_id,
        status=application["status"],
        metadata={"interview_id": interview["id"], "interviewer": data.interviewer}
    )
    NotificationService().interview_scheduled(application["user_id"], data.application_id, data.start_time)
    logger.info("Interview %s scheduled for application %s", interview["id"], data.application_id)
    return present([interview])[0]


@router.get("", response_model=InterviewListResponse)
async def list_interviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ApplicationStatus] = None,
    user: dict = Depends(require_permission("interview.manage"))
):
    application_ids = ApplicationService().ids_with_status(status.value) if status else None
    interviews, total = InterviewService().list(page, limit, application_ids)
    return InterviewListResponse(
        interviews=present(interviews), total=total, page=page, limit=limit,
        pages=page_count(total, limit)
    )


@router.get("/assigned", response_model=List[InterviewResponse])
async def assigned_interviews(user: dict = Depends(get_current_user)):
    return present(InterviewService().list_for_interviewer(user["user_id"]))


@router.get("/me", response_model=InterviewResponse)
async def my_interview(user: dict = Depends(get_current_user)):
    return present([_interview_for_user(user["user_id"])])[0]


@router.patch("/me/time", response_model=InterviewResponse)
async def reschedule_my_interview(data: InterviewTimeUpdate, user: dict = Depends(get_current_user)):
    interview = _interview_for_user(user["user_id"])
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    check_times(fields.get("start_time", interview["start_time"]), fields.get("end_time", interview["end_time"]))
    return present([InterviewService().update(interview["id"], fields)])[0]


@router.get("/user/{user_id}", response_model=InterviewResponse)
async def user_interview(user_id: int, user: dict = Depends(require_permission("interview.manage"))):
    return present([_interview_for_user(user_id)])[0]


@router.delete("/user/{user_id}", response_model=MessageResponse)
async def delete_user_interview(user_id: int, user: dict = Depends(require_permission("interview.manage"))):
    interview = _interview_for_user(user_id)
    InterviewService().delete(interview["id"])
    return MessageResponse(message="Interview deleted successfully")


@router.get("/{interview_id}", response_model=InterviewResponse)
async def get_interview(interview_id: str, user: dict = Depends(require_permission("interview.manage"))):
    return present([_interview_or_404(interview_id)])[0]


@router.patch("/{interview_id}", response_model=InterviewResponse)
async def update_interview(interview_id: str, data: InterviewUpdate,
                           user: dict = Depends(require_permission("interview.manage"))):
    interview = _interview_or_404(interview_id)
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "interviewer" in fields and not user_service.get_user(fields["interviewer"]):
        raise HTTPException(status_code=404, detail="Interviewer not found")
    check_times(fields.get("start_time", interview["start_time"]), fields.get("end_time", interview["end_time"]))
    return present([InterviewService().update(interview_id, fields)])[0]


@router.post("/{interview_id}/recommendation", response_model=InterviewResponse)
async def submit_recommendation(interview_id: str, data: RecommendationRequest,
                                user: dict = Depends(get_current_user)):
    """Assigned interviewer records a decision once the interview is over."""
    interview = _interview_or_404(interview_id)
    if interview["interviewer"] != user["user_id"] and not has_permission(user, "interview.manage"):
        raise HTTPException(status_code=403, detail="Only the assigned interviewer can submit a recommendation")
    if interview["end_time"] > datetime.utcnow():
        raise HTTPException(status_code=400, detail="Interview has not ended yet")

    updated = InterviewService().update(interview_id, {
        "recommendation": {
            "decision": data.decision.value,
            "remarks": data.remarks,
            "submitted_by": user["user_id"],
            "submitted_at": datetime.utcnow()
        }
    })
    ApplicationService().add_interviewer(interview["application_id"], interview["interviewer"])
    return present([updated])[0]


@router.delete("/{interview_id}", response_model=MessageResponse)
async def delete_interview(interview_id: str, user: dict = Depends(require_permission("interview.manage"))):
    if not InterviewService().delete(interview_id):
        raise HTTPException(status_code=404, detail="Interview not found")
    return MessageResponse(message="Interview deleted successfully")
