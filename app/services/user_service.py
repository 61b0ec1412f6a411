"""
User Service - PostgreSQL user accounts, e-mail verification and token blacklist.

Verification codes are 6 digits, valid for verification_code_ttl_hours and
re-sendable after verification_resend_cooldown_seconds. Codes are written to
the application log; there is no mail delivery.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, List, Dict

from fastapi import HTTPException
from sqlalchemy import select, insert, update, delete, text

from app.core.config import get_settings
from app.db.postgres import (
    get_db_session, execute_raw_sql, contains_pattern, users_table, roles_table, blacklisted_tokens_table,
)

settings = get_settings()
logger = logging.getLogger(__name__)

USER_COLUMNS = """
    u.user_id, u.name, u.id_number, u.email, u.password_hash, u.course_id,
    u.department_id, u.is_active, u.verified, u.created_at, r.role_id, r.name AS role
"""


# ============================================================
# LOOKUPS
# ============================================================

def get_user(user_id: int) -> Optional[dict]:
    """User row joined with role name, or None."""
    rows = execute_raw_sql(f"""
        SELECT {USER_COLUMNS}
        FROM users u JOIN roles r ON u.role_id = r.role_id
        WHERE u.user_id = :id
    """, {"id": user_id})
    return rows[0] if rows else None


def find_by_identifier(identifier: str) -> Optional[dict]:
    """Login lookup: identifier is either an e-mail or an ID number."""
    rows = execute_raw_sql(f"""
        SELECT {USER_COLUMNS}
        FROM users u JOIN roles r ON u.role_id = r.role_id
        WHERE lower(u.email) = lower(:ident) OR u.id_number = :ident
    """, {"ident": identifier.strip()})
    return rows[0] if rows else None


def get_permissions_for_role(role_id: int) -> List[str]:
    rows = execute_raw_sql("""
        SELECT p.name FROM role_permissions rp
        JOIN permissions p ON rp.permission_id = p.permission_id
        WHERE rp.role_id = :role_id ORDER BY p.name
    """, {"role_id": role_id})
    return [row["name"] for row in rows]


def email_in_use(email: str, exclude_user_id: Optional[int] = None) -> bool:
    rows = execute_raw_sql(
        "SELECT user_id FROM users WHERE lower(email) = lower(:email)",
        {"email": email}
    )
    return any(row["user_id"] != exclude_user_id for row in rows)


def id_number_in_use(id_number: str) -> bool:
    return bool(execute_raw_sql("SELECT user_id FROM users WHERE id_number = :n", {"n": id_number}))


def get_users_by_ids(user_ids: List[int]) -> Dict[int, dict]:
    """Batch lookup used to decorate Mongo documents with names/e-mails."""
    if not user_ids:
        return {}
    with get_db_session() as db:
        rows = db.execute(
            select(users_table.c.user_id, users_table.c.name, users_table.c.email)
            .where(users_table.c.user_id.in_(list(set(user_ids))))
        ).mappings().all()
    return {row["user_id"]: dict(row) for row in rows}


def search_user_ids(search: str) -> List[int]:
    """User ids whose name or e-mail contains the search text (case-insensitive)."""
    return [row["user_id"] for row in execute_raw_sql(
        "SELECT user_id FROM users WHERE lower(name) LIKE :q ESCAPE '\\' OR lower(email) LIKE :q ESCAPE '\\'",
        {"q": contains_pattern(search)}
    )]


# ============================================================
# WRITES
# ============================================================

def create_user(name: str, id_number: str, email: Optional[str], password_hash: str,
                role_name: str, course_id: Optional[int] = None,
                department_id: Optional[int] = None, verified: bool = False) -> int:
    """Insert a user with the named role. Returns the new user_id."""
    with get_db_session() as db:
        role_id = db.execute(
            select(roles_table.c.role_id).where(roles_table.c.name == role_name)
        ).scalar()
        if role_id is None:
            raise HTTPException(status_code=400, detail=f"Unknown role: {role_name}")
        result = db.execute(
            insert(users_table).values(
                name=name,
                id_number=id_number,
                email=email,
                password_hash=password_hash,
                role_id=role_id,
                course_id=course_id,
                department_id=department_id,
                is_active=True,
                verified=verified,
            )
        )
        return result.inserted_primary_key[0]


def set_active(user_id: int, is_active: bool) -> bool:
    with get_db_session() as db:
        result = db.execute(
            update(users_table).where(users_table.c.user_id == user_id).values(is_active=is_active)
        )
        return result.rowcount > 0


# ============================================================
# E-MAIL VERIFICATION
# ============================================================

def _new_code() -> str:
    return f"{100000 + secrets.randbelow(900000)}"


def issue_verification_code(user_id: int, email: Optional[str] = None) -> str:
    """
    Store a fresh code (and optionally a new e-mail) and reset verified.
    The code is logged in place of being mailed.
    """
    now = datetime.utcnow()
    code = _new_code()
    values = {
        "verified": False,
        "verification_code": code,
        "verification_expires_at": now + timedelta(hours=settings.verification_code_ttl_hours),
        "verification_last_sent_at": now,
    }
    if email is not None:
        values["email"] = email
    with get_db_session() as db:
        db.execute(update(users_table).where(users_table.c.user_id == user_id).values(**values))
    logger.info("Verification code for user %s: %s", user_id, code)
    return code


def resend_verification_code(user_id: int) -> str:
    """Re-issue a code unless already verified (400) or inside the cooldown (429)."""
    with get_db_session() as db:
        row = db.execute(
            select(users_table.c.verified, users_table.c.verification_last_sent_at)
            .where(users_table.c.user_id == user_id)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    if row["verified"]:
        raise HTTPException(status_code=400, detail="Email is already verified")

    last_sent = row["verification_last_sent_at"]
    if last_sent is not None:
        elapsed = (datetime.utcnow() - last_sent).total_seconds()
        cooldown = settings.verification_resend_cooldown_seconds
        if elapsed < cooldown:
            wait = int(cooldown - elapsed) + 1
            raise HTTPException(status_code=429, detail=f"Please wait {wait}s before resending.")

    return issue_verification_code(user_id)


def verify_email(user_id: int, code: str) -> None:
    with get_db_session() as db:
        row = db.execute(
            select(
                users_table.c.verified,
                users_table.c.verification_code,
                users_table.c.verification_expires_at,
            ).where(users_table.c.user_id == user_id)
        ).mappings().first()
        if row and row["verified"]:
            raise HTTPException(status_code=400, detail="Email is already verified")
        if not row or row["verification_code"] is None:
            raise HTTPException(status_code=400, detail="Verification not requested")
        if code != row["verification_code"]:
            raise HTTPException(status_code=400, detail="Invalid verification code")
        if datetime.utcnow() > row["verification_expires_at"]:
            raise HTTPException(status_code=400, detail="Verification code expired")

        db.execute(
            update(users_table).where(users_table.c.user_id == user_id)
            .values(verified=True, verification_code=None)
        )


# ============================================================
# TOKEN BLACKLIST
# ============================================================

def blacklist_token(token: str, expires_at: datetime) -> None:
    """Blacklist a token and purge entries that have expired anyway."""
    now = datetime.utcnow()
    with get_db_session() as db:
        db.execute(delete(blacklisted_tokens_table).where(blacklisted_tokens_table.c.expires_at < now))
        db.execute(insert(blacklisted_tokens_table).values(token=token, expires_at=expires_at))


def is_token_blacklisted(token: str) -> bool:
    with get_db_session() as db:
        result = db.execute(
            text("SELECT 1 FROM blacklisted_tokens WHERE token = :token"),
            {"token": token}
        )
        return result.fetchone() is not None
