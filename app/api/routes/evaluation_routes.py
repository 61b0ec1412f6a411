"""
Evaluation Routes

POST /evaluations - Create a term-end evaluation (evaluatee must have a completed interview)
GET /evaluations - Paginated list, ?search= on evaluatee name
GET /evaluations/{evaluation_id} - Get evaluation
PATCH /evaluations/{evaluation_id} - Update ratings/remarks
DELETE /evaluations/{evaluation_id} - Delete evaluation
GET /evaluations/{evaluation_id}/timekeeping - Get time keeping record
PATCH /evaluations/{evaluation_id}/timekeeping - Update time keeping counters
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import require_permission
from app.services import user_service
from app.services.mongo_service import ApplicationService, InterviewService, EvaluationService, page_count
from app.schemas.schemas import (
    EvaluationCreate, EvaluationUpdate, EvaluationResponse, EvaluationListResponse,
    TimeKeepingRecord, TimeKeepingUpdate, MessageResponse
)

router = APIRouter(prefix="/evaluations", tags=["Evaluations"])


def present(evaluation: dict, users: dict = None) -> EvaluationResponse:
    users = users if users is not None else user_service.get_users_by_ids([evaluation["evaluatee_user"]])
    evaluatee = users.get(evaluation["evaluatee_user"], {})
    return EvaluationResponse(
        **evaluation,
        evaluatee_name=evaluatee.get("name"),
        evaluatee_email=evaluatee.get("email")
    )


def _evaluation_or_404(evaluation_id: str) -> dict:
    evaluation = EvaluationService().get_by_id(evaluation_id)
    if not evaluation:
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return evaluation


@router.post("", response_model=EvaluationResponse, status_code=201)
async def create_evaluation(data: EvaluationCreate, user: dict = Depends(require_permission("evaluation.manage"))):
    """Evaluate a scholar. Requires an application and a finished interview."""
    if not user_service.get_user(data.evaluatee_user):
        raise HTTPException(status_code=404, detail="Evaluatee not found")
    application = ApplicationService().get_by_user(data.evaluatee_user)
    if not application:
        raise HTTPException(status_code=404, detail="Evaluatee has no application")
    interview = InterviewService().get_by_application(application["id"])
    if not interview:
        raise HTTPException(status_code=400, detail="Evaluatee has not been interviewed")
    if interview["end_time"] > datetime.utcnow():
        raise HTTPException(status_code=400, detail="Evaluatee's interview is not completed yet")

    evaluation = EvaluationService().insert(data.model_dump(), user["user_id"])
    return present(evaluation)


@router.get("", response_model=EvaluationListResponse)
async def list_evaluations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    user: dict = Depends(require_permission("evaluation.manage"))
):
    evaluatee_ids = user_service.search_user_ids(search) if search else None
    evaluations, total = EvaluationService().list(page, limit, evaluatee_ids)
    users = user_service.get_users_by_ids([e["evaluatee_user"] for e in evaluations])
    return EvaluationListResponse(
        data=[present(e, users) for e in evaluations],
        total=total, page=page, pages=page_count(total, limit)
    )


@router.get("/{evaluation_id}", response_model=EvaluationResponse)
async def get_evaluation(evaluation_id: str, user: dict = Depends(require_permission("evaluation.manage"))):
    return present(_evaluation_or_404(evaluation_id))


@router.patch("/{evaluation_id}", response_model=EvaluationResponse)
async def update_evaluation(evaluation_id: str, data: EvaluationUpdate,
                            user: dict = Depends(require_permission("evaluation.manage"))):
    _evaluation_or_404(evaluation_id)
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    return present(EvaluationService().update(evaluation_id, fields))


@router.delete("/{evaluation_id}", response_model=MessageResponse)
async def delete_evaluation(evaluation_id: str, user: dict = Depends(require_permission("evaluation.manage"))):
    if not EvaluationService().delete(evaluation_id):
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return MessageResponse(message="Evaluation deleted successfully")


@router.get("/{evaluation_id}/timekeeping", response_model=TimeKeepingRecord)
async def get_time_keeping(evaluation_id: str, user: dict = Depends(require_permission("evaluation.manage"))):
    return TimeKeepingRecord(**_evaluation_or_404(evaluation_id)["time_keeping_record"])


@router.patch("/{evaluation_id}/timekeeping", response_model=TimeKeepingRecord)
async def update_time_keeping(evaluation_id: str, data: TimeKeepingUpdate,
                              user: dict = Depends(require_permission("evaluation.manage"))):
    _evaluation_or_404(evaluation_id)
    counters = data.model_dump(exclude_unset=True, exclude_none=True)
    if not counters:
        raise HTTPException(status_code=400, detail="No fields to update")
    return TimeKeepingRecord(**EvaluationService().update_time_keeping(evaluation_id, counters)["time_keeping_record"])
