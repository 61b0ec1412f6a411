"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.application_routes import router as application_router
from app.api.routes.document_routes import router as document_router
from app.api.routes.personality_test_routes import router as personality_test_router
from app.api.routes.interview_routes import router as interview_router
from app.api.routes.evaluation_routes import router as evaluation_router
from app.api.routes.panelist_routes import router as panelist_router
from app.api.routes.approval_form_routes import router as approval_form_router
from app.api.routes.notification_routes import router as notification_router
from app.api.routes.activity_routes import router as activity_router
from app.api.routes.role_routes import router as role_router
from app.api.routes.department_routes import router as department_router, course_router
from app.api.routes.dashboard_routes import router as dashboard_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(application_router)
api_router.include_router(document_router)
api_router.include_router(personality_test_router)
api_router.include_router(interview_router)
api_router.include_router(evaluation_router)
api_router.include_router(panelist_router)
api_router.include_router(approval_form_router)
api_router.include_router(notification_router)
api_router.include_router(activity_router)
api_router.include_router(role_router)
api_router.include_router(department_router)
api_router.include_router(course_router)
api_router.include_router(dashboard_router)
