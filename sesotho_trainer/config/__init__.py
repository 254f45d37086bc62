"""Configuration module for the Sesotho vocabulary trainer."""

from .settings import Config
from .languages import LANG_CONFIG, CATEGORY_STYLE
from .config_manager import SettingsManager

__all__ = [
    'Config',
    'LANG_CONFIG',
    'CATEGORY_STYLE',
    'SettingsManager',
]
