"""Global settings and configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


@dataclass
class Config:
    """Application-wide configuration."""

    # Cross-platform paths using pathlib
    # BASE_DIR is the project root (parent of sesotho_trainer/)
    BASE_DIR: Path = Path(__file__).parent.parent.parent.resolve()

    # Local stores, one SQLite file per username
    DATA_DIR: str = os.environ.get("SESOTHO_DATA_DIR", str(BASE_DIR / "data" / "stores"))
    DB_PREFIX: str = "sesotho-vocab-"
    DOC_ID: str = "vocab"
    STORAGE_BACKEND: str = os.environ.get("SESOTHO_STORAGE_BACKEND", "sqlite")  # sqlite | memory
    SETTINGS_FILE: str = os.environ.get("SESOTHO_SETTINGS_FILE", str(BASE_DIR / "settings.json"))

    # Remote CouchDB-compatible replica
    # Store credentials in environment variables or the .env file, never in code
    REMOTE_URL: str = os.environ.get("COUCHDB_URL", "")
    REMOTE_USERNAME: str = os.environ.get("COUCHDB_USERNAME", "")
    REMOTE_PASSWORD: str = os.environ.get("COUCHDB_PASSWORD", "")

    # Replication timing (seconds)
    TIMEOUT: int = 30
    LONGPOLL_TIMEOUT: int = 25
    POLL_INTERVAL: float = 1.0
    MAX_BACKOFF: float = 10.0

    LOG_LEVEL: str = os.environ.get("SESOTHO_LOG_LEVEL", "INFO")
