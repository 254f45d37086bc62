"""Data models for the vocabulary trainer."""

from .vocabulary import (
    Category,
    Language,
    Tense,
    Number,
    WordEntry,
    NumberedEntry,
    TensedEntry,
    SimpleEntry,
    ENTRY_TYPES,
    VocabularySet,
)
from .document import Change, VocabularyDocument, next_revision, revision_generation, revision_sort_key

__all__ = [
    'Category',
    'Language',
    'Tense',
    'Number',
    'WordEntry',
    'NumberedEntry',
    'TensedEntry',
    'SimpleEntry',
    'ENTRY_TYPES',
    'VocabularySet',
    'Change',
    'VocabularyDocument',
    'next_revision',
    'revision_generation',
    'revision_sort_key',
]
