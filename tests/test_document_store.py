import pytest

from sesotho_trainer.errors import ConflictError, NotFoundError, StoreError
from sesotho_trainer.models import VocabularyDocument, revision_generation
from sesotho_trainer.services import (
    MemoryDocumentStore,
    SQLiteDocumentStore,
    StorageBackend,
    create_document_store,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemoryDocumentStore("test-store")
    else:
        s = SQLiteDocumentStore(str(tmp_path / "test-store.db"))
    yield s
    s.close()


def test_get_missing_document(store):
    with pytest.raises(NotFoundError):
        store.get("vocab")


def test_create_then_update(store):
    rev1 = store.put("vocab", {"nouns": []})
    rev2 = store.put("vocab", {"nouns": [{"en_singular": "dog"}]}, rev1)

    doc = store.get("vocab")
    assert doc.revision == rev2
    assert doc.payload == {"nouns": [{"en_singular": "dog"}]}
    assert revision_generation(rev2) == revision_generation(rev1) + 1


def test_stale_revision_conflicts(store):
    rev1 = store.put("vocab", {"n": 1})
    store.put("vocab", {"n": 2}, rev1)

    with pytest.raises(ConflictError):
        store.put("vocab", {"n": 3}, rev1)
    assert store.get("vocab").payload == {"n": 2}


def test_create_over_existing_document_conflicts(store):
    store.put("vocab", {"n": 1})
    with pytest.raises(ConflictError):
        store.put("vocab", {"n": 2})


def test_update_of_missing_document_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.put("vocab", {"n": 1}, "1-abc")


def test_returned_documents_are_copies(store):
    store.put("vocab", {"nouns": []})
    doc = store.get("vocab")
    doc.payload["nouns"].append("x")

    assert store.get("vocab").payload == {"nouns": []}


def test_merge_keeps_the_winning_revision(store):
    local_rev = store.put("vocab", {"n": 1})

    newer = VocabularyDocument("vocab", {"n": 9}, "5-remote")
    assert store.merge(newer) is True
    assert store.get("vocab").revision == "5-remote"

    older = VocabularyDocument("vocab", {"n": 0}, local_rev)
    assert store.merge(older) is False
    assert store.merge(newer) is False
    assert store.get("vocab").payload == {"n": 9}


def test_merge_without_revision_is_rejected(store):
    with pytest.raises(StoreError):
        store.merge(VocabularyDocument("vocab", {}))


def test_changes_lists_latest_revisions_in_sequence_order(store):
    rev = store.put("a", {"v": 1})
    store.put("b", {"v": 1})
    store.put("a", {"v": 2}, rev)

    feed = store.changes(0)
    assert [c.document.id for c in feed] == ["b", "a"]
    assert feed[-1].document.payload == {"v": 2}
    assert store.changes(feed[-1].seq) == []


def test_closed_store_refuses_access(store):
    store.close()
    assert store.closed
    with pytest.raises(StoreError):
        store.get("vocab")


def test_sqlite_store_persists_across_instances(tmp_path):
    path = str(tmp_path / "persist.db")
    first = SQLiteDocumentStore(path)
    rev = first.put("vocab", {"nouns": [{"en_singular": "dog"}]})
    first.close()

    second = SQLiteDocumentStore(path)
    doc = second.get("vocab")
    assert doc.revision == rev
    assert doc.payload["nouns"][0]["en_singular"] == "dog"
    assert second.count() == 1


def test_memory_stores_are_shared_by_name():
    a = MemoryDocumentStore.open("shared")
    a.put("vocab", {"n": 1})
    a.close()

    b = MemoryDocumentStore.open("shared")
    assert b is a
    assert not b.closed
    assert b.get("vocab").payload == {"n": 1}


def test_create_document_store_scopes_by_username(tmp_path):
    store = create_document_store("Thabo Mokoena", StorageBackend.SQLITE, str(tmp_path))
    assert store.name.startswith("sesotho-vocab-thabo-mokoena-")
    assert store.db_path.parent == tmp_path

    other = create_document_store("thabo", StorageBackend.MEMORY)
    assert other.name == "sesotho-vocab-thabo"
