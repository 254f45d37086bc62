import pytest

from sesotho_trainer.errors import ValidationError
from sesotho_trainer.models import (
    Category,
    Language,
    Number,
    NumberedEntry,
    SimpleEntry,
    Tense,
    TensedEntry,
    VocabularyDocument,
    VocabularySet,
    WordEntry,
    next_revision,
    revision_generation,
)

from conftest import make_noun, make_verb


def test_add_appends_in_order_to_its_collection():
    vocab = VocabularySet()
    vocab.add(Category.NOUN, make_noun())
    vocab.add("nouns", {"stho_singular": "ntja", "stho_plural": "dintja",
                        "en_singular": "dog", "en_plural": "dogs"})

    nouns = vocab.entries("noun")
    assert [n.target_singular for n in nouns] == ["apple", "dog"]
    assert vocab.is_empty(Category.PRONOUN)
    assert vocab.count() == 2


def test_add_trims_and_normalizes_fields():
    vocab = VocabularySet()
    stored = vocab.add("adjective", SimpleEntry(source="  kgolo ", target="big\t"))

    assert stored == SimpleEntry(source="kgolo", target="big")


def test_add_missing_field_leaves_vocabulary_unchanged():
    vocab = VocabularySet()
    vocab.add("verb", make_verb())
    before = vocab.to_dict()

    with pytest.raises(ValidationError) as excinfo:
        vocab.add("verb", TensedEntry(source_present="bua", source_past=" ", target_present="speak", target_past="spoke"))

    assert excinfo.value.field == "source_past"
    assert vocab.to_dict() == before


def test_add_rejects_wrong_entry_type():
    vocab = VocabularySet()
    with pytest.raises(ValidationError):
        vocab.add("noun", SimpleEntry(source="ho", target="to"))
    assert vocab.count() == 0


def test_unknown_category_is_a_validation_error():
    with pytest.raises(ValidationError):
        VocabularySet().add("article", SimpleEntry(source="a", target="b"))


def test_to_dict_uses_persisted_key_names(sample_vocabulary):
    data = sample_vocabulary.to_dict()

    assert set(data) == {"nouns", "verbs", "pronouns", "adjectives", "adverbs", "prepositions"}
    assert data["nouns"] == [{"stho_singular": "apole", "stho_plural": "diapole",
                              "en_singular": "apple", "en_plural": "apples"}]
    assert data["verbs"][0]["en_past"] == "ate"
    assert data["adverbs"] == [{"stho": "kapele", "en": "quickly"}]


def test_from_dict_is_lenient():
    vocab = VocabularySet.from_dict({"nouns": [{"stho_singular": "ntja"}], "extra": [1, 2]})

    assert vocab.entries("noun")[0].source_singular == "ntja"
    assert vocab.entries("noun")[0].target_plural == ""
    assert vocab.is_empty("verb")
    assert VocabularySet.from_dict(None) == VocabularySet()


def test_from_dict_skips_collections_that_are_not_lists():
    vocab = VocabularySet.from_dict({"nouns": 5, "verbs": "x", "pronouns": {"a": 1}})

    assert vocab == VocabularySet()
    assert VocabularySet.from_dict(["nouns"]) == VocabularySet()


def test_round_trip_through_dict(sample_vocabulary):
    assert VocabularySet.from_dict(sample_vocabulary.to_dict()) == sample_vocabulary


def test_statistics(sample_vocabulary):
    stats = sample_vocabulary.statistics()

    assert stats["nouns"] == 1
    assert stats["prepositions"] == 1
    assert stats["total_words"] == 6


def test_dataframe_rows_rebuild_the_vocabulary(sample_vocabulary):
    df = sample_vocabulary.to_dataframe()
    assert len(df) == 6
    assert list(df.columns)[0] == "category"

    rebuilt = VocabularySet()
    for category, values in VocabularySet.iter_rows(df):
        rebuilt.add(category, values)
    assert rebuilt == sample_vocabulary


def test_category_collection_and_language_codes():
    assert Category.PREPOSITION.collection == "prepositions"
    assert Category.parse("Pronouns") is Category.PRONOUN
    assert Language.parse("stho") is Language.SOURCE
    assert Language.TARGET.code == "en"


def test_every_category_has_a_collection_key():
    assert [c.collection for c in Category] == [
        "nouns", "verbs", "pronouns", "adjectives", "adverbs", "prepositions",
    ]
    assert all(Category.parse(c.collection) is c for c in Category)


def test_word_entry_is_abstract():
    with pytest.raises(TypeError):
        WordEntry()


def test_numbered_entry_render():
    noun = make_noun()
    assert noun.render(Language.SOURCE, Tense.PAST, Number.PLURAL) == "diapole"
    assert noun.render(Language.TARGET, Tense.PRESENT, Number.SINGULAR) == "apple"


def test_next_revision_increments_generation():
    first = next_revision(None, {"a": 1})
    second = next_revision(first, {"a": 1})

    assert revision_generation(first) == 1
    assert revision_generation(second) == 2
    assert first != second
    assert next_revision(None, {"a": 1}) == first


def test_document_wire_form():
    doc = VocabularyDocument("vocab", {"nouns": []}, "1-abc")
    wire = doc.to_json()

    assert wire == {"_id": "vocab", "_rev": "1-abc", "data": {"nouns": []}}
    assert VocabularyDocument.from_json(wire) == doc
    assert "_rev" not in VocabularyDocument("vocab").to_json()


def test_higher_generation_wins():
    low = VocabularyDocument("vocab", {}, "2-ffff")
    high = VocabularyDocument("vocab", {}, "3-0000")

    assert high.wins_over(low)
    assert not low.wins_over(high)
    assert low.wins_over(None)


def test_numbered_entry_from_fields_accepts_both_key_styles():
    a = NumberedEntry.from_fields({"source_singular": "ke", "en_plural": "we"})
    assert a.source_singular == "ke"
    assert a.target_plural == "we"
