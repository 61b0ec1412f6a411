"""
OAS Dashboard Routes

GET /oas/dashboard-stats - Application counts per status
"""

from fastapi import APIRouter, Depends

from app.core.auth import require_permission
from app.services.status_service import dashboard_stats
from app.schemas.schemas import DashboardStatsResponse

router = APIRouter(prefix="/oas", tags=["OAS Dashboard"])


@router.get("/dashboard-stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(user: dict = Depends(require_permission("application.readAll"))):
    return DashboardStatsResponse(**dashboard_stats())
