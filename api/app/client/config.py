from pydantic_settings import BaseSettings
from typing import Optional


class ClientSettings(BaseSettings):
    """Sync client settings, read from PALABRA_SYNC_* environment variables."""

    # Server
    server_url: str = "http://127.0.0.1:8000"
    api_prefix: str = "/api"
    access_token: Optional[str] = None
    request_timeout_seconds: float = 30

    # Local store
    database_url: str = "sqlite:///palabra_client.db"

    # Sync cycle
    batch_size: int = 50
    max_pages: int = 20
    max_attempts: Optional[int] = 3  # Rejected operations are parked after this many tries; None = retry forever
    stabilization_delay_seconds: float = 2.0
    sync_interval_seconds: float = 300  # Periodic sync while online; 0 disables
    device_name: str = "python-client"

    class Config:
        env_prefix = "PALABRA_SYNC_"
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False
