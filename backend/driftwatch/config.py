"""
Application configuration
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "DriftWatch"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_FORMAT: str = "text"

    # Database (MongoDB)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "driftwatch"

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    SCAN_QUEUE_NAME: str = "driftwatch-scan"

    # Trigger limits
    SCAN_RATE_LIMIT_PER_DAY: int = 100
    SCAN_RATE_LIMIT_WINDOW_HOURS: int = 24

    # Scheduling retries (attempts include the first run)
    SCAN_JOB_ATTEMPTS: int = 3
    SCAN_RETRY_BACKOFF_SECONDS: int = 1

    # Cancellation
    CANCELLATION_TTL_SECONDS: int = 600

    # Claim caps per scan
    MAX_CLAIMS_PER_PR: int = 50
    MAX_CLAIMS_PER_FULL_SCAN: int = 200
    DOC_EXCLUDE_PATTERNS: List[str] = []

    # GitHub
    GITHUB_WEBHOOK_SECRET: Optional[str] = None
    GITHUB_WEBHOOK_SECRET_OLD: Optional[str] = None

    # "module:callable" returning the collaborators injected into scan workers
    SCAN_COLLABORATORS_FACTORY: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
