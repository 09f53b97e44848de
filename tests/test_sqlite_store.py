from pathlib import Path

import pytest

from core import StorageError, Task
from infrastructure.sqlite_store import SQLiteTaskStore


def _ids(tasks):
    return [t.id for t in tasks]


def test_upsert_and_get(store):
    store.upsert(Task(id=1, title="First"))
    store.upsert(Task(id=1, title="First, edited", completed=True))

    loaded = store.get(1)

    assert loaded is not None
    assert loaded.title == "First, edited"
    assert loaded.completed is True
    assert store.get(2) is None


def test_get_all_orders_incomplete_first_then_most_recent(store):
    store.upsert(Task(id=1, title="a"))
    store.upsert(Task(id=2, title="b", completed=True))
    store.upsert(Task(id=3, title="c"))
    store.upsert(Task(id=4, title="d", completed=True))

    assert _ids(store.get_all()) == [3, 1, 4, 2]

    store.upsert(Task(id=1, title="a again"))
    assert _ids(store.get_all()) == [1, 3, 4, 2]


def test_get_all_and_search_hide_soft_deleted(store):
    store.upsert(Task(id=1, title="Take out trash"))
    store.upsert(Task(id=2, title="Tango lessons"))
    assert store.mark_deleted(2) is True

    assert _ids(store.get_all()) == [1]
    assert _ids(store.search("ta")) == [1]
    deleted = store.get(2)
    assert deleted.is_deleted and not deleted.is_synced


def test_pending_backlog(store):
    store.upsert(Task(id=1, title="clean", is_synced=True))
    store.upsert(Task(id=2, title="dirty"))
    store.upsert(Task(id=3, title="gone", is_synced=True))
    store.mark_deleted(3)

    assert sorted(_ids(store.get_pending())) == [2, 3]
    assert store.count_pending() == 2

    store.mark_synced(3)
    assert _ids(store.get_pending()) == [2]


def test_search_is_case_insensitive_literal_substring(store):
    store.upsert(Task(id=1, title="Buy MILK"))
    store.upsert(Task(id=2, title="100% done"))
    store.upsert(Task(id=3, title="under_score"))

    assert _ids(store.search("milk")) == [1]
    assert _ids(store.search("%")) == [2]
    assert _ids(store.search("r_s")) == [3]
    assert store.search("nothing") == []


def test_replace_id_keeps_aliases(store):
    local_id = 1_700_000_000_000
    store.upsert(Task(id=local_id, title="Buy milk"))

    store.replace_id(local_id, Task(id=201, title="Buy milk", is_synced=True))

    assert _ids(store.get_all()) == [201]
    assert store.get(local_id).id == 201
    assert store.mark_deleted(local_id) is True
    assert store.get(201).is_deleted


def test_replace_all_is_clear_plus_upsert(store):
    store.upsert(Task(id=9, title="old"))

    store.replace_all([Task(id=1, title="one", is_synced=True), Task(id=2, title="two", is_synced=True)])

    assert _ids(store.get_all()) == [1, 2]
    assert store.get(9) is None

    store.clear()
    assert store.get_all() == []


def test_replace_all_keeps_local_id_alias(store):
    local_id = 1_700_000_000_000
    store.upsert(Task(id=local_id, title="Buy milk"))
    store.replace_id(local_id, Task(id=201, title="Buy milk", is_synced=True))

    store.replace_all([Task(id=201, title="Buy oat milk", is_synced=True), Task(id=3, title="other", is_synced=True)])

    assert store.get(local_id).title == "Buy oat milk"
    assert store.get(local_id).id == 201


def test_remove_is_physical(store):
    store.upsert(Task(id=5, title="x"))

    assert store.remove(5) is True
    assert store.remove(5) is False
    assert store.get_pending() == []


def test_persists_across_reopen(tmp_path: Path):
    db = tmp_path / "nested" / "tasks.db"
    with SQLiteTaskStore(db) as first:
        first.upsert(Task(id=1, title="durable"))

    with SQLiteTaskStore(db) as second:
        assert [t.title for t in second.get_all()] == ["durable"]
        second.upsert(Task(id=2, title="newer"))
        assert _ids(second.get_all()) == [2, 1]


def test_closed_store_raises_storage_error():
    store = SQLiteTaskStore(":memory:")
    store.close()
    store.close()

    with pytest.raises(StorageError):
        store.get_all()
    with pytest.raises(StorageError):
        store.upsert(Task(id=1, title="late"))


def test_task_without_id_is_rejected(store):
    with pytest.raises(StorageError):
        store.upsert(Task(title="no id"))
