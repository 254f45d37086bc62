"""Persistent trainer settings: JSON file, environment overrides, typed values."""

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Set

from .settings import Config

logger = logging.getLogger(__name__)

ENV_PREFIX = "SESOTHO_"
TRUE_VALUES = ("true", "1", "yes", "on")


class SettingsManager:
    """
    Trainer settings shared by the UI and the controller.

    The last active username lives here so the trainer reopens the same
    store on the next start. Values set through the environment
    (SESOTHO_<KEY>) win over the file; secrets are kept in memory only.

    Usage:
        settings = SettingsManager()
        username = settings.get("USERNAME", "")
        settings.set("USERNAME", "thabo")
    """

    _instance: Optional["SettingsManager"] = None
    _lock: Lock = Lock()

    # Known keys and their defaults; the default's type is the key's type
    # NOTE: Remote credentials should come from environment variables, not defaults!
    DEFAULTS: Dict[str, Any] = {
        # Active user
        "USERNAME": "",

        # Local store
        "STORAGE_BACKEND": Config.STORAGE_BACKEND,
        "DATA_DIR": Config.DATA_DIR,

        # Remote replica
        "SYNC_ENABLED": bool(Config.REMOTE_URL),
        "REMOTE_URL": Config.REMOTE_URL,
        "REMOTE_USERNAME": Config.REMOTE_USERNAME,
        "REMOTE_PASSWORD": Config.REMOTE_PASSWORD,

        # Timing
        "TIMEOUT": Config.TIMEOUT,
        "POLL_INTERVAL": Config.POLL_INTERVAL,

        "LOG_LEVEL": Config.LOG_LEVEL,
    }

    # Keys never written to the settings file
    SECRET_KEYS = ("REMOTE_PASSWORD",)

    def __new__(cls, settings_file: Optional[str] = None) -> "SettingsManager":
        """Singleton pattern to ensure only one instance exists."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._initialized = False
                    cls._instance = instance
        return cls._instance

    def __init__(self, settings_file: Optional[str] = None) -> None:
        """
        Args:
            settings_file: Path to the settings JSON file.
                          Defaults to Config.SETTINGS_FILE.
        """
        if getattr(self, "_initialized", False):
            return

        self._settings_file = Path(settings_file or Config.SETTINGS_FILE)
        self._settings: Dict[str, Any] = {}
        self._file_values: Dict[str, Any] = {}
        self._env_keys: Set[str] = set()
        self._file_lock = Lock()

        self.reload()
        self._initialized = True

    @property
    def settings_file(self) -> Path:
        """Path of the backing JSON file."""
        return self._settings_file

    # ==================== Typing ====================

    @classmethod
    def coerce(cls, key: str, value: Any) -> Any:
        """
        Convert a raw value (e.g. an env string) to the type of the key's default.

        Unknown keys and unconvertible values pass through or fall back to
        the default respectively.
        """
        default = cls.DEFAULTS.get(key)
        if default is None or value is None or isinstance(value, type(default)):
            return value
        if isinstance(default, bool):
            return str(value).strip().lower() in TRUE_VALUES
        try:
            return type(default)(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid value %r for %s", value, key)
            return default

    # ==================== Persistence ====================

    def _read_file(self) -> Dict[str, Any]:
        if not self._settings_file.exists():
            return {}
        try:
            data = json.loads(self._settings_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load settings file %s: %s", self._settings_file, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings file %s does not hold an object, ignoring it", self._settings_file)
            return {}
        return data

    def _write_file(self) -> None:
        """
        Write non-secret settings atomically (temp file + rename).

        Keys overridden by the environment keep their file value (or are left
        out) so an override never ends up in the file.
        """
        persisted: Dict[str, Any] = {}
        for key, value in self._settings.items():
            if key in self.SECRET_KEYS:
                continue
            if key in self._env_keys:
                if key in self._file_values:
                    persisted[key] = self._file_values[key]
                continue
            persisted[key] = value
        with self._file_lock:
            try:
                self._settings_file.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=str(self._settings_file.parent), prefix=".settings-", suffix=".json"
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(persisted, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._settings_file)
            except OSError as e:
                logger.warning("Could not save settings file %s: %s", self._settings_file, e)

    def reload(self) -> None:
        """Rebuild settings from defaults, the file and the environment."""
        settings = copy.deepcopy(self.DEFAULTS)
        file_values = {key: self.coerce(key, value) for key, value in self._read_file().items()}
        settings.update(copy.deepcopy(file_values))

        # Environment has the last word
        env_keys: Set[str] = set()
        for key in self.DEFAULTS:
            env_value = os.environ.get(f"{ENV_PREFIX}{key}")
            if env_value is not None:
                settings[key] = self.coerce(key, env_value)
                env_keys.add(key)

        self._settings = settings
        self._file_values = file_values
        self._env_keys = env_keys
        self._write_file()

    # ==================== Access ====================

    def get(self, key: str, default: Any = None) -> Any:
        """Setting value (a copy for dicts and lists), or `default`."""
        value = self._settings.get(key, default)
        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return value

    def set(self, key: str, value: Any, persist: bool = True) -> None:
        """
        Set a value, converted to the key's type.

        Args:
            key: The setting key
            value: The value to set
            persist: Write the file now
        """
        self._settings[key] = self.coerce(key, value)
        # An explicit set replaces the environment override
        self._env_keys.discard(key)
        if persist:
            self._write_file()

    def update(self, values: Mapping[str, Any]) -> None:
        """Set several values with a single write."""
        for key, value in values.items():
            self.set(key, value, persist=False)
        self._write_file()

    def get_all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._settings)

    def remote_options(self) -> Dict[str, Any]:
        """Remote replica settings, or {} when sync is off or unconfigured."""
        if not self.get("SYNC_ENABLED") or not self.get("REMOTE_URL"):
            return {}
        return {
            "base_url": self.get("REMOTE_URL"),
            "remote_username": self.get("REMOTE_USERNAME") or "",
            "remote_password": self.get("REMOTE_PASSWORD") or "",
        }

    def reset(self, key: Optional[str] = None) -> None:
        """
        Reset settings to defaults.

        Args:
            key: Specific key to reset. If None, resets all settings.
        """
        if key is None:
            self._settings = copy.deepcopy(self.DEFAULTS)
            self._env_keys.clear()
        elif key in self.DEFAULTS:
            self._settings[key] = copy.deepcopy(self.DEFAULTS[key])
            self._env_keys.discard(key)
        self._write_file()

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Useful for testing."""
        with cls._lock:
            cls._instance = None
