"""Sesotho Trainer - local-first Sesotho/English vocabulary trainer"""

__version__ = "1.0.0"

from .config import Config, LANG_CONFIG, SettingsManager
from .controllers import FormController, WordForm
from .generator import PhraseGenerator
from .models import Category, VocabularyDocument, VocabularySet
from .services import StorageBackend, VocabularyService

__all__ = [
    'Config',
    'LANG_CONFIG',
    'SettingsManager',
    'FormController',
    'WordForm',
    'PhraseGenerator',
    'Category',
    'VocabularyDocument',
    'VocabularySet',
    'StorageBackend',
    'VocabularyService',
]
