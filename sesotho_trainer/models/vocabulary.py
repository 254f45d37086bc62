"""
Vocabulary model - six ordered word collections, one per category.

Each category maps to exactly one entry type through ENTRY_TYPES; the
persisted (wire) key names match the documents written by the browser
version of the trainer, so old documents load unchanged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Type, Union

import pandas as pd

from ..config import LANG_CONFIG
from ..errors import ValidationError
from ..utils.parsing import TextParser


def _parse_enum(enum_cls: Type[Enum], value: Any, aliases: Optional[Dict[str, Enum]] = None) -> Enum:
    """Resolve an enum member from itself, its value or an alias."""
    if isinstance(value, enum_cls):
        return value
    key = TextParser.clean_field(value).lower()
    if aliases and key in aliases:
        return aliases[key]
    try:
        return enum_cls(key)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Unknown {enum_cls.__name__.lower()} {value!r} (expected one of: {allowed})",
            field=enum_cls.__name__.lower(),
        ) from None


class Category(Enum):
    """Grammatical category of a word."""
    NOUN = "noun"
    VERB = "verb"
    PRONOUN = "pronoun"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    PREPOSITION = "preposition"

    @property
    def collection(self) -> str:
        """Key of the collection holding this category ("nouns", ...)."""
        return COLLECTION_KEYS[self]

    @classmethod
    def parse(cls, value: Any) -> "Category":
        """Accept a member, its value ("noun") or its collection key ("nouns")."""
        return _parse_enum(cls, value, {member.collection: member for member in cls})


COLLECTION_KEYS: Dict[Category, str] = {
    Category.NOUN: "nouns",
    Category.VERB: "verbs",
    Category.PRONOUN: "pronouns",
    Category.ADJECTIVE: "adjectives",
    Category.ADVERB: "adverbs",
    Category.PREPOSITION: "prepositions",
}


class Language(Enum):
    """Side of the language pair a phrase is rendered in."""
    SOURCE = "source"
    TARGET = "target"

    @property
    def code(self) -> str:
        return LANG_CONFIG[self.value]["code"]

    @classmethod
    def parse(cls, value: Any) -> "Language":
        return _parse_enum(cls, value, {member.code: member for member in cls})


class Tense(Enum):
    PRESENT = "present"
    PAST = "past"

    @classmethod
    def parse(cls, value: Any) -> "Tense":
        return _parse_enum(cls, value)


class Number(Enum):
    SINGULAR = "singular"
    PLURAL = "plural"

    @classmethod
    def parse(cls, value: Any) -> "Number":
        return _parse_enum(cls, value)


@dataclass
class WordEntry(ABC):
    """
    Base class for word entries.

    Subclasses declare their text fields as dataclass fields and map each one
    to its persisted key in WIRE_KEYS.
    """

    WIRE_KEYS: ClassVar[Dict[str, str]] = {}

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_fields(cls, values: Mapping[str, Any]) -> "WordEntry":
        """
        Build an entry from a mapping of field names or wire keys.

        Missing fields become empty strings; validate() rejects them later.
        """
        wire_to_field = {wire: name for name, wire in cls.WIRE_KEYS.items()}
        kwargs = {name: "" for name in cls.field_names()}
        for key, value in values.items():
            name = wire_to_field.get(key, key)
            if name in kwargs:
                kwargs[name] = "" if value is None else str(value)
        return cls(**kwargs)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WordEntry":
        """Build an entry from its persisted form."""
        return cls.from_fields(data)

    def to_dict(self) -> Dict[str, str]:
        """Persisted form, keyed by wire keys."""
        return {self.WIRE_KEYS[name]: getattr(self, name) for name in self.field_names()}

    def cleaned(self) -> "WordEntry":
        """Copy with every field trimmed and NFC-normalized."""
        return replace(self, **{
            name: TextParser.clean_field(getattr(self, name)) for name in self.field_names()
        })

    def validate(self) -> None:
        """Raise ValidationError on the first blank required field."""
        for name in self.field_names():
            if not TextParser.clean_field(getattr(self, name)):
                raise ValidationError(f"Missing required field '{name}'", field=name)

    @abstractmethod
    def render(self, language: Language, tense: Tense, number: Number) -> str:
        """Text of this entry for the given language, tense and number."""


@dataclass
class NumberedEntry(WordEntry):
    """Noun or pronoun with singular and plural forms."""

    source_singular: str
    source_plural: str
    target_singular: str
    target_plural: str

    WIRE_KEYS: ClassVar[Dict[str, str]] = {
        "source_singular": "stho_singular",
        "source_plural": "stho_plural",
        "target_singular": "en_singular",
        "target_plural": "en_plural",
    }

    def render(self, language: Language, tense: Tense, number: Number) -> str:
        if language is Language.SOURCE:
            return self.source_singular if number is Number.SINGULAR else self.source_plural
        return self.target_singular if number is Number.SINGULAR else self.target_plural


@dataclass
class TensedEntry(WordEntry):
    """Verb with present and past forms."""

    source_present: str
    source_past: str
    target_present: str
    target_past: str

    WIRE_KEYS: ClassVar[Dict[str, str]] = {
        "source_present": "stho_present",
        "source_past": "stho_past",
        "target_present": "en_present",
        "target_past": "en_past",
    }

    def render(self, language: Language, tense: Tense, number: Number) -> str:
        if language is Language.SOURCE:
            return self.source_present if tense is Tense.PRESENT else self.source_past
        return self.target_present if tense is Tense.PRESENT else self.target_past


@dataclass
class SimpleEntry(WordEntry):
    """Adjective, adverb or preposition: one form per language."""

    source: str
    target: str

    WIRE_KEYS: ClassVar[Dict[str, str]] = {
        "source": "stho",
        "target": "en",
    }

    def render(self, language: Language, tense: Tense, number: Number) -> str:
        return self.source if language is Language.SOURCE else self.target


# Dispatch table: every category has exactly one entry shape
ENTRY_TYPES: Dict[Category, Type[WordEntry]] = {
    Category.NOUN: NumberedEntry,
    Category.VERB: TensedEntry,
    Category.PRONOUN: NumberedEntry,
    Category.ADJECTIVE: SimpleEntry,
    Category.ADVERB: SimpleEntry,
    Category.PREPOSITION: SimpleEntry,
}


class VocabularySet:
    """
    In-memory vocabulary: six ordered collections keyed by Category.

    Append-only; there are no update or delete operations. Has no
    knowledge of how or where it is persisted.
    """

    def __init__(self) -> None:
        self._collections: Dict[Category, List[WordEntry]] = {c: [] for c in Category}

    def add(self, category: Union[Category, str], entry: Union[WordEntry, Mapping[str, Any]]) -> WordEntry:
        """
        Append an entry to its category's collection.

        Args:
            category: Category or its name ("noun", "nouns")
            entry: Entry of the category's type, or a mapping of its fields

        Returns:
            The stored (cleaned) entry

        Raises:
            ValidationError: Unknown category, wrong entry type or blank field.
                The collection is left unchanged.
        """
        cat = Category.parse(category)
        entry_type = ENTRY_TYPES[cat]

        if isinstance(entry, Mapping):
            entry = entry_type.from_fields(entry)
        elif type(entry) is not entry_type:
            raise ValidationError(
                f"A {cat.value} needs a {entry_type.__name__}, got {type(entry).__name__}",
                field="type",
            )

        cleaned = entry.cleaned()
        cleaned.validate()
        self._collections[cat].append(cleaned)
        return cleaned

    def entries(self, category: Union[Category, str]) -> List[WordEntry]:
        """Copy of one collection in insertion order."""
        return list(self._collections[Category.parse(category)])

    def is_empty(self, category: Union[Category, str]) -> bool:
        return not self._collections[Category.parse(category)]

    def items(self) -> Iterator[Tuple[Category, List[WordEntry]]]:
        for category in Category:
            yield category, list(self._collections[category])

    def count(self) -> int:
        """Total number of entries across all collections."""
        return sum(len(entries) for entries in self._collections.values())

    def __len__(self) -> int:
        return self.count()

    def statistics(self) -> Dict[str, int]:
        """Entry count per collection plus the total."""
        stats = {category.collection: len(entries) for category, entries in self._collections.items()}
        stats["total_words"] = self.count()
        return stats

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        """Persisted form: {"nouns": [...], "verbs": [...], ...}."""
        return {
            category.collection: [entry.to_dict() for entry in self._collections[category]]
            for category in Category
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "VocabularySet":
        """
        Rebuild from the persisted form.

        Lenient: missing collections stay empty, unknown keys are ignored
        and entries are not validated. Collections that are not lists are
        skipped.
        """
        vocab = cls()
        if not isinstance(data, Mapping):
            return vocab
        for category in Category:
            raw_entries = data.get(category.collection) or []
            if not isinstance(raw_entries, (list, tuple)):
                continue
            entry_type = ENTRY_TYPES[category]
            for raw in raw_entries:
                if isinstance(raw, Mapping):
                    vocab._collections[category].append(entry_type.from_dict(raw))
        return vocab

    def copy(self) -> "VocabularySet":
        return VocabularySet.from_dict(self.to_dict())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VocabularySet):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        counts = ", ".join(f"{c.collection}={len(e)}" for c, e in self._collections.items())
        return f"VocabularySet({counts})"

    def to_dataframe(self) -> pd.DataFrame:
        """
        Flatten into a DataFrame with one row per entry.

        Columns: "category" followed by every wire key; keys that do not
        apply to a row's category are empty strings.
        """
        columns = ["category"]
        for entry_type in dict.fromkeys(ENTRY_TYPES.values()):
            columns.extend(entry_type.WIRE_KEYS.values())

        rows = []
        for category, entries in self.items():
            for entry in entries:
                rows.append({"category": category.value, **entry.to_dict()})

        return pd.DataFrame(rows, columns=columns).fillna("")

    @classmethod
    def iter_rows(cls, df: pd.DataFrame) -> Iterable[Tuple[str, Dict[str, Any]]]:
        """Yield (category, wire-keyed fields) pairs from a DataFrame made by to_dataframe()."""
        for _, row in df.fillna("").iterrows():
            data = row.to_dict()
            category = data.pop("category", "")
            yield category, {k: v for k, v in data.items() if v != ""}
