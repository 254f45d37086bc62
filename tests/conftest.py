import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sesotho_trainer.config import Config, SettingsManager
from sesotho_trainer.models import NumberedEntry, SimpleEntry, TensedEntry, VocabularySet
from sesotho_trainer.services import MemoryDocumentStore, StorageBackend, VocabularyService


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Fresh in-memory stores, data dir and settings file for every test."""
    for key in SettingsManager.DEFAULTS:
        monkeypatch.delenv(f"SESOTHO_{key}", raising=False)
    monkeypatch.setattr(Config, "DATA_DIR", str(tmp_path / "stores"))
    MemoryDocumentStore.reset_all()
    SettingsManager.reset_instance()
    yield
    SettingsManager.reset_instance()
    MemoryDocumentStore.reset_all()


@pytest.fixture
def settings(tmp_path):
    return SettingsManager(str(tmp_path / "settings.json"))


@pytest.fixture
def memory_service():
    return VocabularyService(backend=StorageBackend.MEMORY)


@pytest.fixture
def sqlite_service(tmp_path):
    return VocabularyService(backend=StorageBackend.SQLITE, data_dir=str(tmp_path / "stores"))


def make_pronoun():
    return NumberedEntry(source_singular="ke", source_plural="re", target_singular="I", target_plural="we")


def make_verb():
    return TensedEntry(source_present="ja", source_past="jele", target_present="eat", target_past="ate")


def make_noun():
    return NumberedEntry(source_singular="apole", source_plural="diapole", target_singular="apple", target_plural="apples")


@pytest.fixture
def sample_vocabulary():
    vocab = VocabularySet()
    vocab.add("pronoun", make_pronoun())
    vocab.add("verb", make_verb())
    vocab.add("noun", make_noun())
    vocab.add("adjective", SimpleEntry(source="kgolo", target="big"))
    vocab.add("adverb", SimpleEntry(source="kapele", target="quickly"))
    vocab.add("preposition", SimpleEntry(source="ho", target="to"))
    return vocab
