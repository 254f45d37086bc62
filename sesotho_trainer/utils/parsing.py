"""Text parsing utilities for consistent text processing across the application."""

import re
import unicodedata
from typing import Any, Mapping


class TextParser:
    """
    Centralized text cleanup for form input and stored entries.

    Every string that enters the vocabulary passes through here so that
    the same word typed twice compares equal.
    """

    # Whitespace normalization pattern
    WHITESPACE_PATTERN = re.compile(r'\s+')

    # Characters allowed in store and database names
    UNSAFE_NAME_PATTERN = re.compile(r'[^a-z0-9_-]+')

    @classmethod
    def normalize_unicode(cls, text: str) -> str:
        """
        Normalize text to NFC form for consistent Unicode handling.

        Sesotho orthographies mix precomposed and combining diacritics
        depending on the keyboard in use.

        Args:
            text: Input text

        Returns:
            NFC-normalized text
        """
        if not text:
            return ""
        return unicodedata.normalize('NFC', str(text))

    @classmethod
    def clean_field(cls, value: Any) -> str:
        """
        Clean a single form value: trim, collapse inner whitespace, NFC.

        Args:
            value: Raw value (None is treated as empty)

        Returns:
            Cleaned text, possibly empty
        """
        if value is None:
            return ""
        text = cls.WHITESPACE_PATTERN.sub(' ', str(value)).strip()
        return cls.normalize_unicode(text)

    @classmethod
    def clean_form(cls, values: Mapping[str, Any]) -> dict:
        """Clean every value of a form mapping."""
        return {key: cls.clean_field(value) for key, value in values.items()}

    @classmethod
    def slugify(cls, text: str) -> str:
        """
        Reduce free text to a lowercase name safe for files and CouchDB.

        Args:
            text: Raw text (e.g. a username)

        Returns:
            Slug containing only [a-z0-9_-]
        """
        ascii_text = (
            unicodedata.normalize('NFKD', cls.clean_field(text))
            .encode('ascii', 'ignore')
            .decode('ascii')
            .lower()
        )
        return cls.UNSAFE_NAME_PATTERN.sub('-', ascii_text).strip('-')
