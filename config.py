from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application configuration using Pydantic BaseSettings"""

    # App settings
    APP_NAME: str = "VideoTube API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "videotube"
    # Run the database part of cascading deletes in one transaction (needs a replica set)
    USE_TRANSACTIONS: bool = False

    # Pagination
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

    # Atlas Search index for free-text video search; empty falls back to a regex match
    VIDEO_SEARCH_INDEX: str = "search-videos"

    # Media storage
    UPLOAD_DIR: str = "uploads"
    MEDIA_URL_PREFIX: str = "/static"

    # Sessions
    SESSION_COOKIE_NAME: str = "accessToken"
    COOKIE_SECURE: bool = True

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
