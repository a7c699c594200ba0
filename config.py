"""
config.py
Application settings (env vars / .env, prefix IPTV_) and logging setup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_prefix="IPTV_", env_file=".env", extra="ignore")

    # Storage
    STORAGE_BACKEND: Literal["local", "sqlite", "firestore"] = "sqlite"
    DATA_DIR: Path = BASE_DIR / "data"
    DB_FILE: Path = BASE_DIR / "iptv.db"
    FIRESTORE_CREDENTIALS: Optional[str] = None

    # Renewal windows (days until due)
    ALERT_WINDOW_DAYS: int = 1
    UPCOMING_WINDOW_DAYS: int = 7

    # Payment reminder
    PIX_KEY: str = ""
    PIX_NAME: str = ""
    PIX_BANK: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
