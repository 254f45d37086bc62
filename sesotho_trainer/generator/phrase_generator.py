"""Phrase generator - random pronoun/verb/noun phrases from the vocabulary."""

import random
from dataclasses import dataclass
from typing import Any, List, Optional

from ..errors import InsufficientVocabularyError
from ..models.vocabulary import Category, Language, Number, Tense, VocabularySet
from ..utils.helpers import random_item

# Always emitted, in this order
REQUIRED_CATEGORIES = (Category.PRONOUN, Category.VERB, Category.NOUN)

# Each appended with probability OPTIONAL_PROBABILITY when non-empty
OPTIONAL_CATEGORIES = (Category.ADJECTIVE, Category.ADVERB, Category.PREPOSITION)
OPTIONAL_PROBABILITY = 0.5


@dataclass(frozen=True)
class PhraseToken:
    """One word of a generated phrase, tagged with its category for styling."""

    text: str
    category: Category


@dataclass
class GenerationOptions:
    """Fixed choices for a phrase; None means pick at random."""

    language: Optional[Language] = None
    tense: Optional[Tense] = None
    number: Optional[Number] = None

    @classmethod
    def parse(cls, language: Any = None, tense: Any = None, number: Any = None) -> "GenerationOptions":
        """Build from raw selector values; None and "" mean random."""
        return cls(
            language=Language.parse(language) if language else None,
            tense=Tense.parse(tense) if tense else None,
            number=Number.parse(number) if number else None,
        )


class PhraseGenerator:
    """
    Stateless renderer of random tagged phrases.

    Reads the vocabulary on every call, so it always reflects the latest
    additions and reloads.
    """

    def __init__(self, vocabulary: VocabularySet, rng: Optional[random.Random] = None):
        self.vocabulary = vocabulary
        self.rng = rng or random.Random()

    def generate(self, options: Optional[GenerationOptions] = None) -> List[PhraseToken]:
        """
        Generate one phrase.

        Args:
            options: Language/tense/number choices; omitted ones are random

        Returns:
            Tokens: pronoun, verb, noun, then optional adjective, adverb,
            preposition

        Raises:
            InsufficientVocabularyError: no pronoun, verb or noun available
        """
        if any(self.vocabulary.is_empty(category) for category in REQUIRED_CATEGORIES):
            raise InsufficientVocabularyError()

        options = options or GenerationOptions()
        language = options.language or self.rng.choice(list(Language))
        tense = options.tense or self.rng.choice(list(Tense))
        number = options.number or self.rng.choice(list(Number))

        tokens = []
        for category in REQUIRED_CATEGORIES:
            entry = random_item(self.vocabulary.entries(category), self.rng)
            tokens.append(PhraseToken(entry.render(language, tense, number), category))

        for category in OPTIONAL_CATEGORIES:
            entries = self.vocabulary.entries(category)
            if not entries:
                continue
            if self.rng.random() < OPTIONAL_PROBABILITY:
                entry = random_item(entries, self.rng)
                tokens.append(PhraseToken(entry.render(language, tense, number), category))

        return tokens


def phrase_text(tokens: List[PhraseToken]) -> str:
    """Plain-text rendering of a phrase."""
    return " ".join(token.text for token in tokens)
