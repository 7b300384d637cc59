from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings.

    These settings can be overridden with environment variables.
    """
    # API Settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "CSV to API Converter"

    # Upload / storage Settings
    UPLOAD_DIR: str = "uploads"
    MAX_FILE_SIZE: int = 5 * 1024 * 1024  # 5MB
    ALLOWED_MIME_TYPES: list[str] = ["text/csv", "text/plain", "application/csv"]  # matched against the sniffed type
    ACCESS_CODE_PATTERN: str = r"^[a-f0-9]{16,24}$"
    READ_CHUNK_SIZE: int = 64 * 1024

    # CSV parsing
    CSV_ENCODING: str = "utf-8"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: Optional[int] = None  # Will be set from environment variable
    RELOAD: bool = True
    WORKERS: int = 1

    # Logging
    LOG_LEVEL: str = "INFO"

    # API behavior
    QUERY_TIMEOUT_SECONDS: float = 20.0
    HEADER_CACHE_SECONDS: int = 300

    # CORS Settings
    CORS_ORIGINS: list[str] = ["*"]
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    class Config:
        case_sensitive = True


def get_settings() -> Settings:
    """Build a fresh settings instance (no cache so env changes are picked up)."""
    import os
    s = Settings()

    s.PORT = int(os.environ.get("BACKEND_PORT", 8000))

    # Clamp numeric limits to a sane range if misconfigured
    if s.MAX_FILE_SIZE <= 0:
        s.MAX_FILE_SIZE = 5 * 1024 * 1024
    if s.READ_CHUNK_SIZE <= 0:
        s.READ_CHUNK_SIZE = 64 * 1024
    if s.QUERY_TIMEOUT_SECONDS <= 0:
        s.QUERY_TIMEOUT_SECONDS = 20.0

    level = str(s.LOG_LEVEL or "INFO").strip().upper()
    s.LOG_LEVEL = level if level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO"

    return s


# Create a global settings instance
settings = get_settings()
