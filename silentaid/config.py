import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# ---------------- CONFIG ----------------

DEFAULT_DB = "sqlite:///./silentaid.db"
DEFAULT_BACKEND_URL = "http://localhost:5000"
DEMO_USER_ID = "user_demo_001"


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DB
    storage_backend: str = "sql"  # "sql" or "memory"
    port: int = 5000
    log_level: str = "INFO"
    log_format: str = "json"
    backend_url: str = DEFAULT_BACKEND_URL
    demo_user_id: str = DEMO_USER_ID


def get_settings() -> Settings:
    return Settings(
        database_url=normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DB)),
        storage_backend=os.getenv("STORAGE_BACKEND", "sql").lower(),
        port=int(os.getenv("PORT", 5000)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "json").lower(),
        backend_url=os.getenv("SILENTAID_BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/"),
        demo_user_id=os.getenv("SILENTAID_USER_ID", DEMO_USER_ID),
    )
