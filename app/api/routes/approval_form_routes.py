"""
Approval Form Routes (department head endorsements)

POST /approval-forms - Endorse an application
GET /approval-forms/application/{application_id} - Latest endorsement for an application
"""

from fastapi import APIRouter, HTTPException, Depends

from app.core.auth import require_permission
from app.api.routes.application_routes import load_application
from app.services.mongo_service import ApprovalFormService
from app.schemas.schemas import ApprovalFormCreate, ApprovalFormResponse

router = APIRouter(prefix="/approval-forms", tags=["Approval Forms"])


@router.post("", response_model=ApprovalFormResponse, status_code=201)
async def create_approval_form(data: ApprovalFormCreate,
                               user: dict = Depends(require_permission("evaluation.manage"))):
    load_application(data.application_id)
    return ApprovalFormResponse(**ApprovalFormService().insert(data.model_dump(), user["user_id"]))


@router.get("/application/{application_id}", response_model=ApprovalFormResponse)
async def get_approval_form(application_id: str, user: dict = Depends(require_permission("application.read"))):
    form = ApprovalFormService().get_by_application(application_id)
    if not form:
        raise HTTPException(status_code=404, detail="Approval form not found")
    return ApprovalFormResponse(**form)
