"""
NAS Scholarship Management Platform - Main Application

FastAPI backend with:
- PostgreSQL for users, roles, permissions, departments, courses
- MongoDB for applications, documents, tests, interviews, evaluations, logs
- JWT authentication with role-based permissions

Run: uvicorn app.main:app --reload
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.postgres import init_postgres_schema, check_postgres_connection
from app.db.mongodb import init_mongo_indexes, check_mongo_connection
from app.services.rbac_service import seed_defaults, seed_admin

settings = get_settings()
configure_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="NAS Scholarship Management Platform",
    description="""
    Scholarship application management for the Non-Academic Scholars programme.

    ## Features
    - **Authentication**: JWT auth, e-mail verification, role-based permissions
    - **Applications**: Submission, review workflow, status history
    - **Documents**: Slot-based uploads with per-slot verification
    - **Personality Test**: Timed, randomised assessment
    - **Interviews & Evaluations**: Scheduling, recommendations, term-end rubrics
    - **Notifications & Activity**: In-app notifications and an audit trail

    ## Databases
    - PostgreSQL: Identity data (users, roles, permissions, departments, courses)
    - MongoDB: Documents (applications, uploads, tests, interviews, evaluations, logs)
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables, seed RBAC data and initialize MongoDB indexes."""
    init_postgres_schema()
    seed_defaults()
    if seed_admin(hash_password(settings.admin_password)):
        logger.info("Bootstrap admin account created")
    try:
        init_mongo_indexes()
    except Exception:
        logger.exception("MongoDB index initialization failed")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "NAS Scholarship Management Platform"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if check_postgres_connection() else "disconnected",
        "mongodb": "connected" if check_mongo_connection() else "disconnected"
    }
