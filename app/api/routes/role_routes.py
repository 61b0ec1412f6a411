"""
Role Routes (all require role.manage)

GET /roles/permissions - List permissions
POST /roles - Create role with permission names
GET /roles - Paginated list, ?name= filter
GET /roles/{role_id} - Get role
PATCH /roles/{role_id} - Rename and/or replace permissions
DELETE /roles/{role_id} - Delete role (400 while users hold it)
"""

from typing import Optional, List
from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import require_permission
from app.services import rbac_service
from app.services.mongo_service import page_count
from app.schemas.schemas import (
    PermissionResponse, RoleCreate, RoleUpdate, RoleResponse, RoleListResponse, MessageResponse
)

router = APIRouter(prefix="/roles", tags=["Roles"])


@router.get("/permissions", response_model=List[PermissionResponse])
async def list_permissions(user: dict = Depends(require_permission("role.manage"))):
    return [PermissionResponse(**p) for p in rbac_service.list_permissions()]


@router.post("", response_model=RoleResponse, status_code=201)
async def create_role(data: RoleCreate, user: dict = Depends(require_permission("role.manage"))):
    return RoleResponse(**rbac_service.create_role(data.name, data.permissions))


@router.get("", response_model=RoleListResponse)
async def list_roles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=25),
    name: Optional[str] = None,
    user: dict = Depends(require_permission("role.manage"))
):
    roles, total = rbac_service.list_roles(page, limit, name)
    return RoleListResponse(
        roles=[RoleResponse(**r) for r in roles],
        total=total, page=page, limit=limit, pages=page_count(total, limit)
    )


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(role_id: int, user: dict = Depends(require_permission("role.manage"))):
    role = rbac_service.get_role(role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return RoleResponse(**role)


@router.patch("/{role_id}", response_model=RoleResponse)
async def update_role(role_id: int, data: RoleUpdate, user: dict = Depends(require_permission("role.manage"))):
    if data.name is None and data.permissions is None:
        raise HTTPException(status_code=400, detail="No fields to update")
    role = rbac_service.update_role(role_id, data.name, data.permissions)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return RoleResponse(**role)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(role_id: int, user: dict = Depends(require_permission("role.manage"))):
    if not rbac_service.delete_role(role_id):
        raise HTTPException(status_code=404, detail="Role not found")
    return MessageResponse(message="Role deleted successfully")
