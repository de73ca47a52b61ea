import json

import pytest

from viva_portal.core.document_store import InMemoryDocumentStore, JsonFileDocumentStore
from viva_portal.core.errors import NotFound, StorageUnavailable


def test_query_filters_by_equality_and_keeps_insertion_order():
    store = InMemoryDocumentStore()
    first = store.insert("vivaQuestions", {"experimentId": "e1", "question": "first"})
    store.insert("vivaQuestions", {"experimentId": "e2", "question": "other"})
    second = store.insert("vivaQuestions", {"experimentId": "e1", "question": "second"})

    results = store.query("vivaQuestions", experimentId="e1")

    assert [doc_id for doc_id, _ in results] == [first, second]
    assert [record["question"] for _, record in results] == ["first", "second"]


def test_query_returns_copies():
    store = InMemoryDocumentStore()
    doc_id = store.insert("experiments", {"title": "Routing"})

    store.query("experiments")[0][1]["title"] = "changed"

    assert store.get("experiments", doc_id)["title"] == "Routing"


def test_update_and_delete_unknown_documents_raise():
    store = InMemoryDocumentStore()

    with pytest.raises(NotFound):
        store.update("experiments", "missing", {"title": "x"})
    with pytest.raises(NotFound):
        store.delete("experiments", "missing")


def test_json_store_round_trips_through_disk(tmp_path):
    path = tmp_path / "store.json"
    store = JsonFileDocumentStore(path)
    doc_id = store.insert("experiments", {"title": "Routing"})

    reopened = JsonFileDocumentStore(path)

    assert reopened.get("experiments", doc_id) == {"title": "Routing"}
    assert json.loads(path.read_text(encoding="utf-8"))["experiments"][doc_id]["title"] == "Routing"


def test_json_store_reports_unreadable_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("not json", encoding="utf-8")

    with pytest.raises(StorageUnavailable):
        JsonFileDocumentStore(path)


def test_failed_insert_is_not_kept(store):
    store.offline = True

    with pytest.raises(StorageUnavailable):
        store.insert("vivaAttempts", {"score": 1})

    store.offline = False
    assert store.query("vivaAttempts") == []


def test_failed_update_leaves_record_unchanged(store):
    doc_id = store.insert("submissions", {"status": "pending"})
    store.offline = True

    with pytest.raises(StorageUnavailable):
        store.update("submissions", doc_id, {"status": "approved"})

    store.offline = False
    assert store.get("submissions", doc_id) == {"status": "pending"}


def test_failed_delete_keeps_record_in_place(store):
    first = store.insert("experiments", {"title": "Routing"})
    second = store.insert("experiments", {"title": "Switching"})
    store.offline = True

    with pytest.raises(StorageUnavailable):
        store.delete("experiments", first)

    store.offline = False
    assert [doc_id for doc_id, _ in store.query("experiments")] == [first, second]


@pytest.mark.parametrize(
    "payload",
    [{"experiments": []}, {"experiments": {"abc": "not a record"}}],
)
def test_json_store_rejects_malformed_collections(tmp_path, payload):
    path = tmp_path / "store.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(StorageUnavailable):
        JsonFileDocumentStore(path)
