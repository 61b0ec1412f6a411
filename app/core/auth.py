"""
Authentication Utility - JWT, password handling and permission checks.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- get_current_user: resolves the bearer token to a user with role and permissions
- require_permission: dependency factory for RBAC checks
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.services import user_service

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer()

ADMINISTRATOR = "administrator"


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    # jti keeps two tokens issued in the same second distinct
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def token_expiry(payload: dict) -> datetime:
    """Naive UTC expiry of a decoded token."""
    return datetime.utcfromtimestamp(payload["exp"])


def has_permission(user: dict, permission: str) -> bool:
    """Administrators hold every permission."""
    return ADMINISTRATOR in user["permissions"] or permission in user["permissions"]


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Returns dict with user_id, name, email, id_number, role, permissions,
    verified and the raw token (needed by logout).

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = credentials.credentials
    payload = decode_token(token)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    if user_service.is_token_blacklisted(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = user_service.get_user(int(user_id))
    if not user:
        raise credentials_exception

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account disabled")

    return {
        "user_id": user["user_id"],
        "name": user["name"],
        "email": user["email"],
        "id_number": user["id_number"],
        "role": user["role"],
        "permissions": user_service.get_permissions_for_role(user["role_id"]),
        "verified": bool(user["verified"]),
        "token": token,
        "token_exp": token_expiry(payload),
    }


def require_permission(permission: str):
    """
    Dependency factory - 403 unless the user holds the permission (or administrator).

    Usage:
        @router.get("/all")
        async def route(user: dict = Depends(require_permission("application.readAll"))):
            ...
    """
    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if not has_permission(user, permission):
            raise HTTPException(status_code=403, detail=f"Missing permission: {permission}")
        return user
    return checker
