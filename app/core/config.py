"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (users, roles, permissions, departments, courses)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "nas_user"
    postgres_password: str = "password"
    postgres_db: str = "nas_db"
    # Full SQLAlchemy URL; overrides the postgres_* parts when set (tests use SQLite)
    database_url: Optional[str] = None

    # MongoDB (applications, documents, tests, interviews, evaluations, logs)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "nas_docs"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # E-mail verification
    verification_code_ttl_hours: int = 24
    verification_resend_cooldown_seconds: int = 300

    # Uploads
    upload_dir: str = "uploads"
    max_upload_size_mb: int = 5
    allowed_upload_extensions: List[str] = [".pdf", ".jpg", ".jpeg", ".png"]

    # Personality test
    personality_test_time_limit_seconds: int = 900

    # Bootstrap admin (created only when the users table is empty)
    admin_name: str = "Administrator"
    admin_id_number: str = "ADMIN001"
    admin_email: str = "admin@example.com"
    admin_password: str = "Welcome1!"

    # App
    debug: bool = True
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
