"""Application configuration.

Environment variables override all defaults. A `.env` file in the backend
directory is read first for local development.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shopbill.db")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    # Seconds a SQLite connection waits for the write lock before failing
    SQLITE_BUSY_TIMEOUT: int = int(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = _env_list(
        "CORS_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
    )

    # Invoice numbering defaults for newly created businesses
    DEFAULT_INVOICE_PREFIX: str = os.getenv("DEFAULT_INVOICE_PREFIX", "INV-")
    DEFAULT_INVOICE_PADDING: int = int(os.getenv("DEFAULT_INVOICE_PADDING", "4"))

    # Invoice lifecycle
    # Off by default: any status may be patched to any other status.
    STRICT_STATUS_TRANSITIONS: bool = _env_bool("STRICT_STATUS_TRANSITIONS", False)
    IDEMPOTENCY_WINDOW_SECONDS: int = int(os.getenv("IDEMPOTENCY_WINDOW_SECONDS", "600"))

    # List endpoints
    LIST_LIMIT_DEFAULT: int = 20
    LIST_LIMIT_MAX: int = 100

    # Runtime
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
