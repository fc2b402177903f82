from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


@dataclass(frozen=True)
class AppConfig:
    database_url: str = os.getenv("RECIPEBOOK_DATABASE_URL", "sqlite:///./recipebook.db")
    session_secret: str = os.getenv(
        "RECIPEBOOK_SESSION_SECRET", "recipebook-secret-change-in-production"
    )
    log_level: str = os.getenv("RECIPEBOOK_LOG_LEVEL", "INFO")
    sql_echo: bool = os.getenv("RECIPEBOOK_SQL_ECHO", "").lower() in ("1", "true", "yes")
    default_page_size: int = 20
    max_page_size: int = 100


DEFAULT_APP_CONFIG = AppConfig()
