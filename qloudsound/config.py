"""
QloudSound API - Configuration
All settings loaded from environment variables with sensible defaults.

The service keeps no authoritative state in memory: every request reads and
writes the SQLite file at ``REQUESTS_DB_PATH``.  Setting that variable to an
empty string runs the service without a store, in which case every
persistence-backed route answers with a 500.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("VERSION", "dev")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

SERVICE_NAME = os.getenv("SERVICE_NAME", "qloudsound-api")
DOCS_URL = os.getenv("DOCS_URL", "https://github.com/mikelobato/qloudsound-api")
APP_REGION = os.getenv("APP_REGION", "unknown")

PUBLIC_SITE_PREFIX = "/public-site"

# ---------------------------------------------------------------------------
# Logging — stdout only
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
DEFAULT_ALLOWED_ORIGINS = ["*"]


def parse_allowed_origins(raw: Optional[str]) -> List[str]:
    """
    Turn the comma-separated ``API_ALLOWED_ORIGINS`` value into a list.

    An unset or empty value means "any origin".  Otherwise items are trimmed
    and empty items dropped, which can legitimately leave an empty list
    (e.g. ``","``).
    """
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


API_ALLOWED_ORIGINS = parse_allowed_origins(os.getenv("API_ALLOWED_ORIGINS"))

# ---------------------------------------------------------------------------
# Storage (SQLite)
# ---------------------------------------------------------------------------
_DEFAULT_DB_PATH = os.path.join(tempfile.gettempdir(), "qloudsound", "requests.db")
_raw_db_path = os.getenv("REQUESTS_DB_PATH", _DEFAULT_DB_PATH).strip()

# None means "no store configured"
REQUESTS_DB_PATH: Optional[Path] = Path(_raw_db_path) if _raw_db_path else None

# ---------------------------------------------------------------------------
# Telegram notifications
# ---------------------------------------------------------------------------
TELEGRAM_API_URL = os.getenv("TELEGRAM_API_URL", "https://api.telegram.org")
TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN", "")
TELEGRAM_CHAT = os.getenv("TELEGRAM_CHAT", "")
# Used only when the primary pair above is not set.
TELEGRAM_FALLBACK_TOKEN = os.getenv("TELEGRAM_FALLBACK_TOKEN", "")
TELEGRAM_FALLBACK_CHAT = os.getenv("TELEGRAM_FALLBACK_CHAT", "")
NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", "10"))


def ensure_directories() -> None:
    """Create the parent directory of the SQLite file, if a store is configured."""
    if REQUESTS_DB_PATH is not None:
        REQUESTS_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
