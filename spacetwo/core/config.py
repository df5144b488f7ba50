from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "spacetwo"
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # In unit tests / CI we avoid long startup retries against external deps.
    ENSURE_EXTERNAL_DEPS_ON_STARTUP: bool = True

    ADMIN_TOKEN: str = "change-me-admin-token"

    DATABASE_URL: str

    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_SECURE: bool = False

    # Blob areas, tried in this order for both writes and reads.
    PRIMARY_BUCKET: str = "project-files"
    FALLBACK_BUCKET: str = "avatars"
    FALLBACK_PREFIX: str = "uploads"

    UPLOAD_URL_TTL_SECONDS: int = 7200
    READ_URL_TTL_SECONDS: int = 3600
    PLACEHOLDER_IMAGE: str = "/placeholder.svg"

    # When the collection named in an upload cannot be found, record the file
    # with a null collection link instead of rejecting it.
    ALLOW_UNLINKED_FILES: bool = True
    # Check the blob exists before writing the file record.
    VERIFY_UPLOAD_ON_COMPLETE: bool = True

    ORPHAN_GRACE_HOURS: int = 24

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
