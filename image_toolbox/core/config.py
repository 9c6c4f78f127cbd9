"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "Image Toolbox"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    DEBUG: bool = True

    # ==========================================================================
    # Volcano Engine Ark (generation + vision chat)
    # ==========================================================================
    ARK_API_KEY: Optional[str] = None
    ARK_BASE_URL: str = "https://ark.cn-beijing.volces.com/api/v3"
    ARK_IMAGE_MODEL: str = "ep-20250922151247-nzclw"
    ARK_VISION_MODEL: str = "ep-20250921140145-v9tg9"
    ARK_WATERMARK: bool = True
    # Hosts POST /generate result URLs may be downloaded from; a leading
    # dot matches any subdomain
    ARK_RESULT_HOSTS: str = ".volces.com,.volccdn.com"

    # ==========================================================================
    # Background Removal Vendor
    # ==========================================================================
    REMOVE_BG_API_KEY: Optional[str] = None
    REMOVE_BG_API_URL: str = "https://api.remove.bg/v1.0/removebg"
    REMOVE_BG_SIZE: str = "auto"

    # ==========================================================================
    # Request Limits
    # ==========================================================================
    HTTP_TIMEOUT_SECONDS: float = 60.0
    MAX_COMPRESS_SIZE_BYTES: int = 10485760  # 10MB
    MAX_RECOGNITION_SIZE_BYTES: int = 10485760  # 10MB
    MAX_REMOVE_BG_SIZE_BYTES: int = 12582912  # 12MB, vendor limit
    MAX_PROMPT_LENGTH: int = 2000
    DEFAULT_RECOGNITION_PROMPT: str = "What is the main content of this image?"

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Dependency hook; tests override it through app.dependency_overrides."""
    return settings
