"""
Department and Course Routes

POST /departments - Create department
GET /departments - Paginated list, ?search= on name/code
GET /departments/{code} - Get department
PATCH /departments/{code} - Update department
DELETE /departments/{code} - Delete department

GET /courses - List courses (public, used by the registration form)
POST /courses - Create course
"""

from typing import Optional, List
from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, require_permission
from app.services import rbac_service
from app.services.mongo_service import page_count
from app.schemas.schemas import (
    DepartmentCreate, DepartmentUpdate, DepartmentResponse, DepartmentListResponse,
    CourseCreate, CourseResponse, MessageResponse
)

router = APIRouter(prefix="/departments", tags=["Departments"])
course_router = APIRouter(prefix="/courses", tags=["Courses"])


def _department_or_404(code: str) -> dict:
    department = rbac_service.get_department(code)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.post("", response_model=DepartmentResponse, status_code=201)
async def create_department(data: DepartmentCreate, user: dict = Depends(require_permission("department.manage"))):
    return DepartmentResponse(**rbac_service.create_department(data.department_code, data.name))


@router.get("", response_model=DepartmentListResponse)
async def list_departments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    user: dict = Depends(get_current_user)
):
    departments, total = rbac_service.list_departments(page, limit, search)
    return DepartmentListResponse(
        data=[DepartmentResponse(**d) for d in departments],
        total=total, page=page, pages=page_count(total, limit)
    )


@router.get("/{code}", response_model=DepartmentResponse)
async def get_department(code: str, user: dict = Depends(get_current_user)):
    return DepartmentResponse(**_department_or_404(code))


@router.patch("/{code}", response_model=DepartmentResponse)
async def update_department(code: str, data: DepartmentUpdate,
                            user: dict = Depends(require_permission("department.manage"))):
    if data.department_code is None and data.name is None:
        raise HTTPException(status_code=400, detail="No fields to update")
    department = rbac_service.update_department(code, data.department_code, data.name)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return DepartmentResponse(**department)


@router.delete("/{code}", response_model=MessageResponse)
async def delete_department(code: str, user: dict = Depends(require_permission("department.manage"))):
    if not rbac_service.delete_department(code):
        raise HTTPException(status_code=404, detail="Department not found")
    return MessageResponse(message="Department deleted successfully")


# ============================================================
# COURSES
# ============================================================

@course_router.get("", response_model=List[CourseResponse])
async def list_courses():
    return [CourseResponse(**c) for c in rbac_service.list_courses()]


@course_router.post("", response_model=CourseResponse, status_code=201)
async def create_course(data: CourseCreate, user: dict = Depends(require_permission("course.manage"))):
    return CourseResponse(**rbac_service.create_course(data.course_code, data.name))
