"""
PostgreSQL Connection Utility

PostgreSQL stores the relational identity data:
- users (credentials, e-mail verification state)
- roles, permissions and the role_permissions join table
- departments and courses (reference data)
- blacklisted_tokens (logged-out JWTs)
"""
from contextlib import contextmanager
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, MetaData, String, Table,
    create_engine, func, text,
)
from sqlalchemy.orm import sessionmaker
from app.core.config import get_settings

settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # TestClient runs the app in a worker thread
        return {"connect_args": {"check_same_thread": False}}
    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return {"pool_size": 5, "max_overflow": 10}


engine = create_engine(
    settings.postgres_url,
    echo=False,
    **_engine_kwargs(settings.postgres_url)
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ============================================================
# TABLES
# ============================================================

metadata = MetaData()

permissions_table = Table(
    "permissions", metadata,
    Column("permission_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

roles_table = Table(
    "roles", metadata,
    Column("role_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, server_default=func.current_timestamp()),
)

role_permissions_table = Table(
    "role_permissions", metadata,
    Column("role_id", Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.permission_id", ondelete="CASCADE"), primary_key=True),
)

departments_table = Table(
    "departments", metadata,
    Column("department_id", Integer, primary_key=True, autoincrement=True),
    Column("department_code", String(10), nullable=False, unique=True, index=True),
    Column("name", String(100), nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, server_default=func.current_timestamp()),
)

courses_table = Table(
    "courses", metadata,
    Column("course_id", Integer, primary_key=True, autoincrement=True),
    Column("course_code", String(20), nullable=False, unique=True),
    Column("name", String(200), nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

users_table = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("id_number", String(50), nullable=False, unique=True),
    Column("email", String(255), unique=True, nullable=True),
    Column("password_hash", String(255), nullable=False),
    Column("role_id", Integer, ForeignKey("roles.role_id"), nullable=False),
    Column("course_id", Integer, ForeignKey("courses.course_id"), nullable=True),
    Column("department_id", Integer, ForeignKey("departments.department_id"), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("verified", Boolean, nullable=False, default=False),
    Column("verification_code", String(6), nullable=True),
    Column("verification_expires_at", DateTime, nullable=True),
    Column("verification_last_sent_at", DateTime, nullable=True),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

blacklisted_tokens_table = Table(
    "blacklisted_tokens", metadata,
    Column("token", String(1024), primary_key=True),
    Column("expires_at", DateTime, nullable=False, index=True),
)


def init_postgres_schema():
    """Create all tables if they do not exist. Call once during app startup."""
    metadata.create_all(engine)


# ============================================================
# SESSIONS
# ============================================================

@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_postgres_connection() -> bool:
    """
    Check if PostgreSQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception:
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for joins across users, roles and permissions.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        # Convert rows to dicts
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]


def contains_pattern(search: str) -> str:
    """Lower-cased LIKE pattern matching the search text literally. Pair with ESCAPE '\\'."""
    escaped = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
