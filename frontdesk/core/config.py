"""
Frontdesk settings.

Every environment variable the service reads is declared here; other
modules import `settings` instead of touching os.environ.
"""
import os
from functools import lru_cache


class Settings:
    """Environment-driven settings, read once at import."""

    VERSION: str = "1.0.0"

    # Origins the guest card pages are served from, comma separated
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
    ).split(",")

    # SQLite file holding requests, cards and logs
    DB_PATH: str = os.environ.get("FRONTDESK_DB_PATH", "data/frontdesk.db")

    # Empty disables the X-API-Key check on deletes
    API_KEY: str = os.environ.get("FRONTDESK_API_KEY", "")

    # Audit uploads above this size are rejected with 413
    MAX_UPLOAD_MB: int = int(os.environ.get("FRONTDESK_MAX_UPLOAD_MB", "10"))

    LOG_LEVEL: str = os.environ.get("FRONTDESK_LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
