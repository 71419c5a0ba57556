from pydantic_settings import BaseSettings
from typing import Optional
import os
from pathlib import Path

import logging
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Load .env from the api directory (parent of app), falling back to the current directory
api_dir = Path(__file__).parent.parent.parent
env_path = api_dir / ".env"

if env_path.exists():
    load_dotenv(env_path, override=False)
    _logger.info(f"Loaded .env file from: {env_path}")
elif Path(".env").exists():
    load_dotenv(Path(".env"), override=False)
    _logger.info(f"Loaded .env file from: {Path('.env').absolute()}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database - hosting platforms provide DATABASE_URL (uppercase)
    database_url: str = ""

    # API
    api_prefix: str = "/api"

    # CORS
    cors_origins: list[str] = ["*"]

    # Runtime
    environment: str = "production"
    log_level: str = "INFO"

    # Session tokens
    jwt_secret: str = "development-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    session_duration_days: int = 30
    session_cookie_name: str = "palabra-session"

    # Sync limits. A page size of None (or 0) means unbounded.
    sync_max_operations: int = 500
    sync_reviews_page_size: Optional[int] = 1000
    sync_stats_page_size: Optional[int] = None
    sync_vocabulary_page_size: Optional[int] = 1000
    sync_receipt_retention_days: int = 90

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # .env is shared with the sync client

    def __init__(self, **kwargs):
        # Ensure we read DATABASE_URL from environment (hosting platforms provide it uppercase)
        if not kwargs.get("database_url"):
            kwargs["database_url"] = os.getenv("DATABASE_URL", "")
        super().__init__(**kwargs)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")


# Create settings instance
settings = Settings()

# Validate required DATABASE_URL
if not settings.database_url:
    raise ValueError("DATABASE_URL environment variable is required")
