import asyncio
import json

import pytest

from sesotho_trainer.controllers import FormController, PAST_FIELDS, PLURAL_FIELDS, WordForm
from sesotho_trainer.errors import InsufficientVocabularyError, NoUsernameError, ValidationError
from sesotho_trainer.models import Category, TensedEntry


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def controller(memory_service, settings):
    return FormController(memory_service, settings)


def noun_form(**overrides):
    values = dict(word_type="noun", source="ntja", target="dog", source_plural="dintja", target_plural="dogs")
    values.update(overrides)
    return WordForm(**values)


def test_visible_fields_by_word_type():
    assert FormController.visible_fields("noun") == {PLURAL_FIELDS}
    assert FormController.visible_fields("pronoun") == {PLURAL_FIELDS}
    assert FormController.visible_fields("verb") == {PAST_FIELDS}
    assert FormController.visible_fields("adverb") == frozenset()
    assert FormController.visible_fields(None) == frozenset()
    assert FormController.visible_fields("bogus") == frozenset()


def test_set_username_persists_and_loads(controller, memory_service, settings):
    assert run(controller.set_username("  thabo ")) == "thabo"

    assert memory_service.username == "thabo"
    assert memory_service.session.loaded
    saved = json.loads(settings.settings_file.read_text(encoding="utf-8"))
    assert saved["USERNAME"] == "thabo"


def test_set_empty_username(controller, settings):
    with pytest.raises(NoUsernameError) as excinfo:
        run(controller.set_username(""))
    assert str(excinfo.value) == "Please enter a username"
    assert settings.get("USERNAME") == ""


def test_restore_username(controller, memory_service, settings):
    assert run(controller.restore_username()) is None

    settings.set("USERNAME", "lerato")
    assert run(controller.restore_username()) == "lerato"
    assert memory_service.username == "lerato"


def test_submit_without_username(controller):
    with pytest.raises(NoUsernameError) as excinfo:
        run(controller.submit(noun_form()))
    assert str(excinfo.value) == "Please choose a username first!"


@pytest.mark.parametrize("form, message", [
    (WordForm(word_type="", source="ntja", target="dog"), "Please fill in the required fields."),
    (WordForm(word_type="noun", source=" ", target="dog"), "Please fill in the required fields."),
    (noun_form(target_plural=""), "Please enter plural forms."),
    (WordForm(word_type="verb", source="ja", target="eat", source_past="jele"), "Please enter past tense forms."),
])
def test_submit_validation_messages(controller, memory_service, form, message):
    run(controller.set_username("thabo"))

    with pytest.raises(ValidationError) as excinfo:
        run(controller.submit(form))
    assert str(excinfo.value) == message
    assert memory_service.vocabulary.count() == 0


def test_submit_saves_the_word(controller, memory_service):
    async def scenario():
        await controller.set_username("thabo")
        first_rev = memory_service.revision
        await controller.submit(WordForm(word_type="verb", source=" ja ", target="eat",
                                         source_past="jele", target_past="ate"))
        return first_rev

    first_rev = run(scenario())
    assert memory_service.revision != first_rev
    stored = memory_service.session.store.get("vocab")
    assert stored.payload["verbs"] == [{"stho_present": "ja", "stho_past": "jele",
                                        "en_present": "eat", "en_past": "ate"}]


def test_build_entry_ignores_fields_of_other_types():
    category, entry = FormController.build_entry(
        WordForm(word_type="verb", source="ja", target="eat", source_past="jele",
                 target_past="ate", source_plural="ignored")
    )
    assert category is Category.VERB
    assert entry == TensedEntry("ja", "jele", "eat", "ate")


def test_generate(controller, memory_service):
    run(controller.set_username("thabo"))
    with pytest.raises(InsufficientVocabularyError):
        controller.generate()

    async def fill():
        await controller.submit(WordForm(word_type="pronoun", source="ke", target="I",
                                         source_plural="re", target_plural="we"))
        await controller.submit(WordForm(word_type="verb", source="ja", target="eat",
                                         source_past="jele", target_past="ate"))
        await controller.submit(noun_form())

    run(fill())
    tokens = controller.generate(language="target", tense="past", number="plural")
    assert [t.text for t in tokens] == ["we", "ate", "dogs"]
    assert len(controller.generate("", "", "")) == 3
