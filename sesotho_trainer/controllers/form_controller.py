"""
Form Controller - glue between the trainer form and the services.

Knows which fields each word type needs, turns raw form values into
entries, and drives persistence. Holds no widgets, so the same logic
serves the flet view and the tests.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional, Tuple

from ..config import SettingsManager
from ..errors import NoUsernameError, ValidationError
from ..generator import GenerationOptions, PhraseGenerator, PhraseToken
from ..models.vocabulary import (
    Category,
    ENTRY_TYPES,
    NumberedEntry,
    SimpleEntry,
    TensedEntry,
    WordEntry,
)
from ..services import VocabularyService
from ..utils.parsing import TextParser

logger = logging.getLogger(__name__)

# Optional field groups shown per word type
PLURAL_FIELDS = "plural"
PAST_FIELDS = "past"

_VISIBLE_FIELDS = {
    NumberedEntry: frozenset({PLURAL_FIELDS}),
    TensedEntry: frozenset({PAST_FIELDS}),
    SimpleEntry: frozenset(),
}


@dataclass
class WordForm:
    """Raw values of the add-word form."""

    word_type: str = ""
    source: str = ""
    target: str = ""
    source_plural: str = ""
    target_plural: str = ""
    source_past: str = ""
    target_past: str = ""

    def cleaned(self) -> "WordForm":
        return WordForm(**TextParser.clean_form(vars(self)))


class FormController:
    """Validates form input, updates the vocabulary and persists it."""

    def __init__(
        self,
        service: VocabularyService,
        settings: Optional[SettingsManager] = None,
        rng: Optional[random.Random] = None,
    ):
        self.service = service
        self.settings = settings or SettingsManager()
        self.rng = rng or random.Random()

    @staticmethod
    def visible_fields(word_type: Any) -> FrozenSet[str]:
        """Optional field groups to show for a word type (none when unset/unknown)."""
        try:
            category = Category.parse(word_type)
        except ValidationError:
            return frozenset()
        return _VISIBLE_FIELDS[ENTRY_TYPES[category]]

    # ==================== Username ====================

    async def set_username(self, value: Optional[str]) -> str:
        """
        Make `value` the active user: remember it, open and load its store.

        Raises:
            NoUsernameError: value is empty
            StoreError: the store could not be opened or loaded
        """
        username = TextParser.clean_field(value)
        if not username:
            raise NoUsernameError("Please enter a username")

        self.settings.set("USERNAME", username)
        await self.service.open(username)
        await self.service.load()
        return username

    async def restore_username(self) -> Optional[str]:
        """Reopen the last remembered user, if any."""
        username = TextParser.clean_field(self.settings.get("USERNAME", ""))
        if not username:
            return None
        await self.service.open(username)
        await self.service.load()
        return username

    # ==================== Words ====================

    @staticmethod
    def build_entry(form: WordForm) -> Tuple[Category, WordEntry]:
        """
        Check required fields and build the entry for the form's word type.

        Raises:
            ValidationError: a required field is blank
        """
        form = form.cleaned()
        if not form.word_type or not form.source or not form.target:
            raise ValidationError("Please fill in the required fields.")

        category = Category.parse(form.word_type)
        entry_type = ENTRY_TYPES[category]

        if entry_type is NumberedEntry:
            if not form.source_plural or not form.target_plural:
                raise ValidationError("Please enter plural forms.", field=PLURAL_FIELDS)
            entry = NumberedEntry(
                source_singular=form.source,
                source_plural=form.source_plural,
                target_singular=form.target,
                target_plural=form.target_plural,
            )
        elif entry_type is TensedEntry:
            if not form.source_past or not form.target_past:
                raise ValidationError("Please enter past tense forms.", field=PAST_FIELDS)
            entry = TensedEntry(
                source_present=form.source,
                source_past=form.source_past,
                target_present=form.target,
                target_past=form.target_past,
            )
        else:
            entry = SimpleEntry(source=form.source, target=form.target)

        return category, entry

    async def submit(self, form: WordForm) -> WordEntry:
        """
        Add the form's word and save the vocabulary.

        The word stays in memory when saving fails, so a later save can
        still persist it.

        Raises:
            NoUsernameError: no user chosen yet
            ValidationError: a required field is blank
            StoreError: the save failed
        """
        self.service.require_session()
        category, entry = self.build_entry(form)
        stored = self.service.add_word(category, entry)
        await self.service.save()
        logger.info("Saved %s for %s", category.value, self.service.username)
        return stored

    # ==================== Phrases ====================

    def generate(self, language: Any = None, tense: Any = None, number: Any = None) -> List[PhraseToken]:
        """
        Generate a phrase from the active vocabulary.

        Empty selector values mean "random".

        Raises:
            NoUsernameError: no user chosen yet
            InsufficientVocabularyError: pronoun, verb or noun missing
        """
        options = GenerationOptions.parse(language, tense, number)
        return PhraseGenerator(self.service.vocabulary, self.rng).generate(options)
