import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

APP_TITLE = "Daily Tracker API"

DEFAULT_USER_ID = "demo"
DEFAULT_DB_NAME = "daily_tracker"
# mongoose's collection name for the AppState model, kept so existing data is found
STATE_COLLECTION = "appstates"


class ConfigurationError(RuntimeError):
    pass


def mongo_uri() -> str:
    uri = os.environ.get("MONGODB_URI") or os.environ.get("MONGO_URL")
    if not uri:
        raise ConfigurationError("Missing MONGODB_URI")
    return uri


def mongo_db_name() -> Optional[str]:
    return os.environ.get("MONGODB_DB") or None


def cors_origins() -> List[str]:
    raw = os.environ.get("CORS_ORIGINS") or os.environ.get("CORS_ORIGIN") or ""
    return [s.strip() for s in raw.split(",") if s.strip()]


def listen_host() -> str:
    return os.environ.get("HOST", "0.0.0.0")


def listen_port() -> int:
    return int(os.environ.get("PORT", "8080"))


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
