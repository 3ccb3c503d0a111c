from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "hub-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Community Hub")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")  # json|console
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/hub_dev")

    # Auth tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    refresh_ttl_min: int = int(os.getenv("REFRESH_TTL_MIN", "10080"))  # 7d

    # Shareable links are built on top of the public web origin
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")

    # Invitations
    invitation_ttl_days: int = int(os.getenv("INVITATION_TTL_DAYS", "7"))
    invitation_code_length: int = int(os.getenv("INVITATION_CODE_LENGTH", "16"))

    # Public voting
    default_vote_quota: int = int(os.getenv("DEFAULT_VOTE_QUOTA", "3"))

settings = Settings()
