"""
RBAC Service - roles, permissions, departments and courses (PostgreSQL).

Also owns the startup seed:
- every known permission
- the six default roles and their grants
- the ten BS programmes
- a bootstrap admin account when the users table is empty
"""

import logging
import re
from typing import Optional, List, Tuple

from fastapi import HTTPException
from sqlalchemy import select, insert, update, delete, func, text

from app.core.config import get_settings
from app.db.postgres import (
    get_db_session, execute_raw_sql, contains_pattern, permissions_table, roles_table,
    role_permissions_table, departments_table, courses_table, users_table,
)

settings = get_settings()
logger = logging.getLogger(__name__)


PERMISSIONS = [
    "administrator",
    "application.create",
    "application.readOwn",
    "application.updateOwn",
    "application.read",
    "application.readAll",
    "application.update",
    "application.delete",
    "application.status",
    "document.set",
    "document.get",
    "document.delete",
    "document.verify",
    "personality.take",
    "personality.manage",
    "interview.manage",
    "evaluation.manage",
    "panelist.manage",
    "notification.manage",
    "role.manage",
    "department.manage",
    "course.manage",
    "user.manage",
]

DEFAULT_ROLES = {
    "admin": ["administrator"],
    "applicant": [
        "application.create", "application.readOwn", "application.updateOwn",
        "document.set", "document.get", "personality.take",
    ],
    "oas_staff": [
        "application.read", "application.readAll", "application.update", "application.status",
        "document.get", "document.delete", "document.verify",
        "personality.manage", "interview.manage", "notification.manage", "panelist.manage",
    ],
    "panelist": ["application.read", "document.get"],
    "nas_supervisor": ["application.read", "evaluation.manage"],
    "department_head": [
        "application.read", "application.readAll", "document.get",
        "interview.manage", "evaluation.manage",
    ],
}

DEFAULT_COURSES = [
    ("bsit", "BS Information Technology"),
    ("bscs", "BS Computer Science"),
    ("bsce", "BS Civil Engineering"),
    ("bsee", "BS Electrical Engineering"),
    ("bsme", "BS Mechanical Engineering"),
    ("bsarch", "BS Architecture"),
    ("bsacct", "BS Accountancy"),
    ("bsba", "BS Business Administration"),
    ("bstm", "BS Tourism Management"),
    ("bshm", "BS Hospitality Management"),
]


# ============================================================
# PERMISSIONS & ROLES
# ============================================================

def list_permissions() -> List[dict]:
    return execute_raw_sql("SELECT permission_id, name FROM permissions ORDER BY name")


def _permission_ids(db, names: List[str]) -> List[int]:
    """Resolve permission names, 400 on any unknown name."""
    names = list(dict.fromkeys(names))
    rows = db.execute(
        select(permissions_table.c.permission_id, permissions_table.c.name)
        .where(permissions_table.c.name.in_(names))
    ).all()
    found = {row.name for row in rows}
    unknown = [n for n in names if n not in found]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(unknown)}")
    return [row.permission_id for row in rows]


def _role_name_taken(db, name: str, exclude_role_id: Optional[int] = None) -> bool:
    query = select(roles_table.c.role_id).where(func.lower(roles_table.c.name) == name.lower())
    if exclude_role_id is not None:
        query = query.where(roles_table.c.role_id != exclude_role_id)
    return db.execute(query).first() is not None


def _set_role_permissions(db, role_id: int, permission_ids: List[int]) -> None:
    db.execute(delete(role_permissions_table).where(role_permissions_table.c.role_id == role_id))
    if permission_ids:
        db.execute(insert(role_permissions_table), [
            {"role_id": role_id, "permission_id": pid} for pid in permission_ids
        ])


def get_role(role_id: int) -> Optional[dict]:
    rows = execute_raw_sql("SELECT role_id, name FROM roles WHERE role_id = :id", {"id": role_id})
    if not rows:
        return None
    role = rows[0]
    role["permissions"] = [r["name"] for r in execute_raw_sql("""
        SELECT p.name FROM role_permissions rp
        JOIN permissions p ON rp.permission_id = p.permission_id
        WHERE rp.role_id = :id ORDER BY p.name
    """, {"id": role_id})]
    return role


def list_roles(page: int, limit: int, name: Optional[str] = None) -> Tuple[List[dict], int]:
    params = {"limit": limit, "offset": (page - 1) * limit}
    where = ""
    if name:
        where = "WHERE lower(name) LIKE :name ESCAPE '\\'"
        params["name"] = contains_pattern(name)
    total = execute_raw_sql(f"SELECT COUNT(*) AS n FROM roles {where}", params)[0]["n"]
    rows = execute_raw_sql(
        f"SELECT role_id FROM roles {where} ORDER BY name LIMIT :limit OFFSET :offset", params
    )
    return [get_role(row["role_id"]) for row in rows], total


def create_role(name: str, permissions: List[str]) -> dict:
    with get_db_session() as db:
        if _role_name_taken(db, name):
            raise HTTPException(status_code=400, detail="Role name already exists")
        permission_ids = _permission_ids(db, permissions)
        role_id = db.execute(insert(roles_table).values(name=name)).inserted_primary_key[0]
        _set_role_permissions(db, role_id, permission_ids)
    logger.info("Created role %s with %d permissions", name, len(permissions))
    return get_role(role_id)


def update_role(role_id: int, name: Optional[str], permissions: Optional[List[str]]) -> Optional[dict]:
    with get_db_session() as db:
        exists = db.execute(select(roles_table.c.role_id).where(roles_table.c.role_id == role_id)).first()
        if not exists:
            return None
        values = {"updated_at": func.current_timestamp()}
        if name is not None:
            name = name.strip()
            if _role_name_taken(db, name, exclude_role_id=role_id):
                raise HTTPException(status_code=400, detail="Role name already exists")
            values["name"] = name
        if permissions is not None:
            _set_role_permissions(db, role_id, _permission_ids(db, permissions))
        db.execute(update(roles_table).where(roles_table.c.role_id == role_id).values(**values))
    return get_role(role_id)


def delete_role(role_id: int) -> bool:
    with get_db_session() as db:
        in_use = db.execute(
            select(func.count()).select_from(users_table).where(users_table.c.role_id == role_id)
        ).scalar()
        if in_use:
            raise HTTPException(status_code=400, detail="Role is assigned to users and cannot be deleted")
        db.execute(delete(role_permissions_table).where(role_permissions_table.c.role_id == role_id))
        result = db.execute(delete(roles_table).where(roles_table.c.role_id == role_id))
        return result.rowcount > 0


# ============================================================
# DEPARTMENTS
# ============================================================

DEPARTMENT_CODE = re.compile(r"^[A-Za-z0-9]{2,10}$")


def _check_department_code(code: str) -> None:
    if not DEPARTMENT_CODE.match(code):
        raise HTTPException(status_code=400, detail="Department code must be 2-10 letters or digits")


def _department_by_code(code: str) -> Optional[dict]:
    rows = execute_raw_sql(
        "SELECT department_id, department_code, name FROM departments WHERE department_code = :code",
        {"code": code}
    )
    return rows[0] if rows else None


def get_department(code: str) -> Optional[dict]:
    return _department_by_code(code)


def list_departments(page: int, limit: int, search: Optional[str] = None) -> Tuple[List[dict], int]:
    params = {"limit": limit, "offset": (page - 1) * limit}
    where = ""
    if search:
        where = "WHERE lower(name) LIKE :q ESCAPE '\\' OR lower(department_code) LIKE :q ESCAPE '\\'"
        params["q"] = contains_pattern(search)
    total = execute_raw_sql(f"SELECT COUNT(*) AS n FROM departments {where}", params)[0]["n"]
    rows = execute_raw_sql(f"""
        SELECT department_id, department_code, name FROM departments {where}
        ORDER BY department_code LIMIT :limit OFFSET :offset
    """, params)
    return rows, total


def create_department(code: str, name: str) -> dict:
    _check_department_code(code)
    if _department_by_code(code):
        raise HTTPException(status_code=400, detail="Department code already exists")
    with get_db_session() as db:
        db.execute(insert(departments_table).values(department_code=code, name=name))
    return _department_by_code(code)


def update_department(code: str, new_code: Optional[str], name: Optional[str]) -> Optional[dict]:
    if not _department_by_code(code):
        return None
    values = {"updated_at": func.current_timestamp()}
    if new_code is not None and new_code != code:
        _check_department_code(new_code)
        if _department_by_code(new_code):
            raise HTTPException(status_code=400, detail="Department code already exists")
        values["department_code"] = new_code
    if name is not None:
        values["name"] = name
    with get_db_session() as db:
        db.execute(
            update(departments_table).where(departments_table.c.department_code == code).values(**values)
        )
    return _department_by_code(values.get("department_code", code))


def delete_department(code: str) -> bool:
    with get_db_session() as db:
        result = db.execute(delete(departments_table).where(departments_table.c.department_code == code))
        return result.rowcount > 0


def department_exists(department_id: int) -> bool:
    return bool(execute_raw_sql(
        "SELECT department_id FROM departments WHERE department_id = :id", {"id": department_id}
    ))


# ============================================================
# COURSES
# ============================================================

def list_courses() -> List[dict]:
    return execute_raw_sql("SELECT course_id, course_code, name FROM courses ORDER BY name")


def create_course(code: str, name: str) -> dict:
    if execute_raw_sql("SELECT course_id FROM courses WHERE course_code = :c", {"c": code}):
        raise HTTPException(status_code=400, detail="Course code already exists")
    with get_db_session() as db:
        course_id = db.execute(insert(courses_table).values(course_code=code, name=name)).inserted_primary_key[0]
    return {"course_id": course_id, "course_code": code, "name": name}


def course_exists(course_id: int) -> bool:
    return bool(execute_raw_sql("SELECT course_id FROM courses WHERE course_id = :id", {"id": course_id}))


# ============================================================
# SEED
# ============================================================

def seed_defaults() -> None:
    """
    Idempotent seed of permissions, default roles and courses.
    Existing roles keep whatever grants an admin gave them.
    """
    with get_db_session() as db:
        existing = {row.name for row in db.execute(select(permissions_table.c.name)).all()}
        missing = [name for name in PERMISSIONS if name not in existing]
        if missing:
            db.execute(insert(permissions_table), [{"name": name} for name in missing])
            logger.info("Seeded %d permissions", len(missing))

        for role_name, grants in DEFAULT_ROLES.items():
            if _role_name_taken(db, role_name):
                continue
            role_id = db.execute(insert(roles_table).values(name=role_name)).inserted_primary_key[0]
            _set_role_permissions(db, role_id, _permission_ids(db, grants))
            logger.info("Seeded role %s", role_name)

        codes = {row.course_code for row in db.execute(select(courses_table.c.course_code)).all()}
        new_courses = [{"course_code": c, "name": n} for c, n in DEFAULT_COURSES if c not in codes]
        if new_courses:
            db.execute(insert(courses_table), new_courses)
            logger.info("Seeded %d courses", len(new_courses))


def seed_admin(password_hash: str) -> Optional[int]:
    """Create the bootstrap admin when there are no users at all."""
    with get_db_session() as db:
        if db.execute(text("SELECT COUNT(*) FROM users")).scalar():
            return None
        role_id = db.execute(select(roles_table.c.role_id).where(roles_table.c.name == "admin")).scalar()
        user_id = db.execute(insert(users_table).values(
            name=settings.admin_name,
            id_number=settings.admin_id_number,
            email=settings.admin_email,
            password_hash=password_hash,
            role_id=role_id,
            is_active=True,
            verified=True,
        )).inserted_primary_key[0]
    logger.warning("Created bootstrap admin %s; change its password", settings.admin_id_number)
    return user_id
