"""
Authentication Routes

POST /auth/register - Applicant self-registration
POST /auth/register/staff - Create a staff account with a named role
POST /auth/login - Login with e-mail or ID number
POST /auth/logout - Revoke the current token
GET /auth/me - Current user with role and permissions
POST /auth/email/verify - Confirm the e-mail verification code
POST /auth/email/resend - Re-issue a verification code (5 minute cooldown)
PUT /auth/email - Change e-mail and restart verification
PATCH /auth/users/{user_id}/status - Enable/disable an account
"""

import logging
from fastapi import APIRouter, HTTPException, Depends

from app.core.auth import (
    hash_password, verify_password, create_access_token, get_current_user, require_permission
)
from app.services import user_service, rbac_service
from app.schemas.schemas import (
    RegisterRequest, StaffRegisterRequest, LoginRequest, TokenResponse, UserResponse,
    VerifyEmailRequest, UpdateEmailRequest, UserStatusUpdate, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


def _check_unique(email: str, id_number: str):
    if user_service.email_in_use(email):
        raise HTTPException(status_code=400, detail="Email already registered")
    if user_service.id_number_in_use(id_number):
        raise HTTPException(status_code=400, detail="ID number already registered")


def _check_course(course_id):
    if course_id is not None and not rbac_service.course_exists(course_id):
        raise HTTPException(status_code=400, detail="Unknown course")


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new applicant account.

    A verification code is issued right away; the account can log in
    before the e-mail is verified.
    """
    _check_unique(request.email, request.id_number)
    _check_course(request.course_id)

    user_id = user_service.create_user(
        name=request.name,
        id_number=request.id_number,
        email=request.email,
        password_hash=hash_password(request.password),
        role_name="applicant",
        course_id=request.course_id
    )
    user_service.issue_verification_code(user_id)
    logger.info("Registered applicant %s (%s)", user_id, request.id_number)

    token = create_access_token(data={"sub": str(user_id), "role": "applicant"})
    return TokenResponse(access_token=token, user_id=user_id, role="applicant")


@router.post("/register/staff", response_model=UserResponse, status_code=201)
async def register_staff(request: StaffRegisterRequest, user: dict = Depends(require_permission("user.manage"))):
    """Create a staff account (oas_staff, panelist, department_head, ...)."""
    _check_unique(request.email, request.id_number)
    _check_course(request.course_id)
    if request.department_id is not None and not rbac_service.department_exists(request.department_id):
        raise HTTPException(status_code=400, detail="Unknown department")

    user_id = user_service.create_user(
        name=request.name,
        id_number=request.id_number,
        email=request.email,
        password_hash=hash_password(request.password),
        role_name=request.role.value,
        course_id=request.course_id,
        department_id=request.department_id,
        verified=True
    )
    logger.info("User %s created %s account %s", user["user_id"], request.role.value, user_id)
    return _user_response(user_service.get_user(user_id))


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    found = user_service.find_by_identifier(request.identifier)
    if not found or not verify_password(request.password, found["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not found["is_active"]:
        raise HTTPException(status_code=403, detail="Account disabled")

    token = create_access_token(data={"sub": str(found["user_id"]), "role": found["role"]})
    return TokenResponse(access_token=token, user_id=found["user_id"], role=found["role"])


@router.post("/logout", response_model=MessageResponse)
async def logout(user: dict = Depends(get_current_user)):
    """Blacklist the bearer token until it expires."""
    user_service.blacklist_token(user["token"], user["token_exp"])
    return MessageResponse(message="Logged out successfully")


def _user_response(row: dict) -> UserResponse:
    return UserResponse(
        user_id=row["user_id"], name=row["name"], id_number=row["id_number"], email=row["email"],
        role=row["role"], permissions=user_service.get_permissions_for_role(row["role_id"]),
        course_id=row["course_id"], department_id=row["department_id"],
        is_active=bool(row["is_active"]), verified=bool(row["verified"]), created_at=row["created_at"]
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current user info."""
    return _user_response(user_service.get_user(user["user_id"]))


@router.post("/email/verify", response_model=MessageResponse)
async def verify_email(request: VerifyEmailRequest, user: dict = Depends(get_current_user)):
    user_service.verify_email(user["user_id"], request.code)
    return MessageResponse(message="Email verified successfully")


@router.post("/email/resend", response_model=MessageResponse)
async def resend_verification(user: dict = Depends(get_current_user)):
    user_service.resend_verification_code(user["user_id"])
    return MessageResponse(message="Verification email sent")


@router.put("/email", response_model=MessageResponse)
async def update_email(request: UpdateEmailRequest, user: dict = Depends(get_current_user)):
    """Change e-mail. The account becomes unverified until the new code is confirmed."""
    if user_service.email_in_use(request.email, exclude_user_id=user["user_id"]):
        raise HTTPException(status_code=400, detail="Email already in use")
    user_service.issue_verification_code(user["user_id"], email=request.email)
    return MessageResponse(message="Email updated. Verification sent.")


@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def set_user_status(user_id: int, request: UserStatusUpdate,
                          user: dict = Depends(require_permission("user.manage"))):
    """Enable or disable an account. Disabled users get 403 on every request."""
    if user_id == user["user_id"] and not request.is_active:
        raise HTTPException(status_code=400, detail="You cannot disable your own account")
    if not user_service.set_active(user_id, request.is_active):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("User %s set is_active=%s on user %s", user["user_id"], request.is_active, user_id)
    return _user_response(user_service.get_user(user_id))
