"""
Panelist Routes

POST /panelists - Register a user as panelist
GET /panelists - Paginated list, ?search= on name/e-mail
GET /panelists/{panelist_id} - Get panelist
PATCH /panelists/{panelist_id} - Change the panelist's user
DELETE /panelists/{panelist_id} - Remove panelist
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import require_permission
from app.services import user_service
from app.services.mongo_service import EvaluationService, PanelistService, page_count
from app.schemas.schemas import (
    PanelistCreate, PanelistUpdate, PanelistResponse, PanelistListResponse, MessageResponse
)

router = APIRouter(prefix="/panelists", tags=["Panelists"])


def present(panelist: dict, users: dict = None) -> PanelistResponse:
    users = users if users is not None else user_service.get_users_by_ids([panelist["evaluator_user"]])
    evaluator = users.get(panelist["evaluator_user"], {})
    return PanelistResponse(
        id=panelist["id"],
        evaluator_user=panelist["evaluator_user"],
        evaluator_name=evaluator.get("name"),
        evaluator_email=evaluator.get("email"),
        created_at=panelist["created_at"],
        updated_at=panelist["updated_at"]
    )


def _require_user(user_id: int):
    if not user_service.get_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")


@router.post("", response_model=PanelistResponse, status_code=201)
async def create_panelist(data: PanelistCreate, user: dict = Depends(require_permission("panelist.manage"))):
    _require_user(data.evaluator_user)
    if data.evaluation and not EvaluationService().get_by_id(data.evaluation):
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return present(PanelistService().insert(data.evaluator_user, data.evaluation))


@router.get("", response_model=PanelistListResponse)
async def list_panelists(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    user: dict = Depends(require_permission("panelist.manage"))
):
    evaluator_ids = user_service.search_user_ids(search) if search else None
    panelists, total = PanelistService().list(page, limit, evaluator_ids)
    users = user_service.get_users_by_ids([p["evaluator_user"] for p in panelists])
    return PanelistListResponse(
        data=[present(p, users) for p in panelists],
        total=total, page=page, pages=page_count(total, limit)
    )


@router.get("/{panelist_id}", response_model=PanelistResponse)
async def get_panelist(panelist_id: str, user: dict = Depends(require_permission("panelist.manage"))):
    panelist = PanelistService().get_by_id(panelist_id)
    if not panelist:
        raise HTTPException(status_code=404, detail="Panelist not found")
    return present(panelist)


@router.patch("/{panelist_id}", response_model=PanelistResponse)
async def update_panelist(panelist_id: str, data: PanelistUpdate,
                          user: dict = Depends(require_permission("panelist.manage"))):
    service = PanelistService()
    if not service.get_by_id(panelist_id):
        raise HTTPException(status_code=404, detail="Panelist not found")
    _require_user(data.evaluator_user)
    return present(service.set_evaluator(panelist_id, data.evaluator_user))


@router.delete("/{panelist_id}", response_model=MessageResponse)
async def delete_panelist(panelist_id: str, user: dict = Depends(require_permission("panelist.manage"))):
    if not PanelistService().delete(panelist_id):
        raise HTTPException(status_code=404, detail="Panelist not found")
    return MessageResponse(message="Panelist deleted successfully")
