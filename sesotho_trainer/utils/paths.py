"""
Store path generation utilities - Single source of truth for per-user naming.

Local SQLite files and remote CouchDB databases are both derived from the
username, so they are named in one place.
"""

import hashlib
from pathlib import Path
from typing import Optional

from ..config import Config
from .parsing import TextParser


class StorePathGenerator:
    """
    Centralized per-user store naming.

    Usernames are free text; names derived from them must be safe for the
    filesystem and for CouchDB (lowercase, starting with a letter).
    """

    DB_EXT = ".db"

    @classmethod
    def _get_data_dir(cls) -> Path:
        """Get data directory path."""
        return Path(Config.DATA_DIR)

    @classmethod
    def user_slug(cls, username: str) -> str:
        """
        Generate a stable slug for a username.

        When cleaning changes the name (case, spaces, non-ASCII letters) a
        short hash of the original is appended so that "Thabo" and "thabo"
        do not share a store.

        Args:
            username: Free-text username

        Returns:
            Slug like "thabo" or "thabo-mokoena-1a2b3c4d"
        """
        cleaned = TextParser.clean_field(username)
        slug = TextParser.slugify(cleaned) or "user"
        if slug != cleaned:
            digest = hashlib.sha256(cleaned.encode("utf-8")).hexdigest()[:8]
            slug = f"{slug}-{digest}"
        return slug

    @classmethod
    def database_name(cls, username: str) -> str:
        """
        Generate the store name for a username.

        Returns:
            Name like "sesotho-vocab-thabo"
        """
        return f"{Config.DB_PREFIX}{cls.user_slug(username)}"

    @classmethod
    def database_path(cls, username: str, data_dir: Optional[str] = None) -> str:
        """
        Generate full path of the local SQLite store for a username.

        Args:
            username: Free-text username
            data_dir: Directory override (defaults to Config.DATA_DIR)

        Returns:
            Full path to the .db file
        """
        base = Path(data_dir) if data_dir else cls._get_data_dir()
        return str(base / f"{cls.database_name(username)}{cls.DB_EXT}")
