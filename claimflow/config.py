"""Configuration management for the claims portal."""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Load .env into environment variables
load_dotenv()

basedir = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings, read from CLAIMFLOW_* environment variables.

    An empty database_url selects the in-memory repositories.
    """
    database_url: str
    upload_dir: str
    secret_key: str
    token_ttl_seconds: int
    log_level: str
    api_url: str
    currency: str
    bootstrap_hr_email: str
    bootstrap_hr_password: str

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("CLAIMFLOW_DATABASE_URL", ""),
            upload_dir=os.getenv("CLAIMFLOW_UPLOAD_DIR") or str(basedir / "uploads" / "documentation"),
            secret_key=os.getenv("CLAIMFLOW_SECRET_KEY") or "dev-fallback-key",
            token_ttl_seconds=int(os.getenv("CLAIMFLOW_TOKEN_TTL") or 8 * 60 * 60),
            log_level=os.getenv("CLAIMFLOW_LOG_LEVEL", "INFO"),
            api_url=os.getenv("CLAIMFLOW_API_URL", "http://localhost:8000"),
            currency=os.getenv("CLAIMFLOW_CURRENCY", "R"),
            bootstrap_hr_email=os.getenv("CLAIMFLOW_BOOTSTRAP_HR_EMAIL", ""),
            bootstrap_hr_password=os.getenv("CLAIMFLOW_BOOTSTRAP_HR_PASSWORD", ""),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
