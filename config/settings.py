from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv


load_dotenv()


class Settings:
    """Application settings loaded from environment variables.

    Keep storage, server and reaper config centralized here.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    storage_uri: str = os.getenv("STORAGE_URI", "memory://")
    storage_name: str = os.getenv("STORAGE_NAME", "chatroom")
    port: int = int(os.getenv("PORT", "5000"))
    # Reaper timings, in seconds
    inactive_check_freq: float = float(os.getenv("INACTIVE_CHECK_FREQ", "15"))
    inactive_timeout: float = float(os.getenv("INACTIVE_TIMEOUT", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
