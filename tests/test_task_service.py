import pytest

from core import RemoteServerFault, RemoteTimeout, StorageError, Task, ValidationError
from application.task_service import TaskService
from conftest import FakeRemoteStore


def test_add_online_is_confirmed_immediately(service, remote):
    task = service.add("  Water plants ")

    assert task.id == 201
    assert task.title == "Water plants"
    assert task.is_synced
    assert remote.ops("create") == ["Water plants"]
    assert not service.has_pending_sync()


@pytest.mark.parametrize("title", ["", "   ", None])
def test_add_rejects_empty_title(service, store, title):
    with pytest.raises(ValidationError):
        service.add(title)
    assert store.get_all() == []


def test_offline_add_then_sync_scenario(service, remote, monitor):
    monitor.set_online(False)

    added = service.add("Buy milk")
    listed = service.list()

    assert [(t.id, t.title, t.is_synced) for t in listed] == [(added.id, "Buy milk", False)]
    assert remote.calls == []

    monitor.set_online(True)
    report = service.sync()
    listed = service.list()

    assert report.synced == 1 and report.clean
    assert [(t.id, t.title, t.is_synced) for t in listed] == [(201, "Buy milk", True)]


def test_failing_creates_keep_backlog(service, store, remote, identity):
    first = Task(id=identity.new_local_id(), title="first")
    second = Task(id=identity.new_local_id(), title="second")
    store.upsert(first)
    store.upsert(second)
    remote.fail_on("create", RemoteTimeout("timeout"))

    report = service.sync()

    assert report.failed == 2
    assert service.has_pending_sync()
    assert service.pending_count() == 2
    assert {t.id for t in store.get_pending()} == {first.id, second.id}


def test_add_survives_remote_failure(service, remote):
    remote.fail_on("create", RemoteServerFault("503"))

    task = service.add("keep me")

    assert not task.is_synced
    assert service.get(task.id).title == "keep me"
    assert service.pending_count() == 1


def test_delete_hides_record_until_confirmed(service, store, remote, monitor):
    remote.tasks[9] = Task(id=9, title="server copy", is_synced=True)
    store.upsert(Task(id=9, title="server copy", is_synced=True))
    monitor.set_online(False)

    assert service.delete(9) is True

    assert 9 not in [t.id for t in service.list()]
    assert [t.id for t in store.get_pending()] == [9]
    assert service.get(9) is None

    monitor.set_online(True)
    service.sync()

    assert remote.ops("delete") == [9]
    assert store.get_pending() == []
    assert 9 not in [t.id for t in service.list()]


def test_delete_unknown_id_returns_false(service, remote):
    assert service.delete(4242) is False
    assert remote.calls == []


@pytest.mark.parametrize("query", ["", "x", " y "])
def test_search_rejects_short_query(service, query):
    with pytest.raises(ValidationError):
        service.search(query)


def test_search_is_local_and_hides_deleted(service, store, remote):
    store.upsert(Task(id=1, title="Take out trash", is_synced=True))
    store.upsert(Task(id=2, title="STATUS report", is_synced=True))
    store.upsert(Task(id=3, title="Tango lessons", is_synced=True))
    store.upsert(Task(id=4, title="Buy bread", is_synced=True))
    store.mark_deleted(3)

    found = service.search("ta")

    assert sorted(t.id for t in found) == [1, 2]
    assert remote.calls == []


def test_list_falls_back_to_local_when_merge_fails(service, store, remote):
    store.upsert(Task(id=5, title="cached", is_synced=True))
    remote.fail_on("list", RemoteServerFault("down"))

    assert [t.title for t in service.list()] == ["cached"]


def test_list_merges_remote_records(service, remote):
    remote.tasks[1] = Task(id=1, title="from server", is_synced=True)

    listed = service.list()

    assert [(t.id, t.title, t.is_synced) for t in listed] == [(1, "from server", True)]
    assert remote.ops("list") == [20]


def test_storage_failure_propagates(service, store):
    store.close()

    with pytest.raises(StorageError):
        service.add("nowhere to go")
    with pytest.raises(StorageError):
        service.list()


def test_toggle_flips_completion(service, remote):
    task = service.add("flip me")

    toggled = service.toggle(task.id)

    assert toggled.completed and toggled.is_synced
    assert remote.ops("update") == [task.id]
    assert remote.tasks[task.id].completed


def test_toggle_unknown_task(service):
    with pytest.raises(ValidationError):
        service.toggle(77)


def test_update_requires_id_and_title(service):
    with pytest.raises(ValidationError):
        service.update(Task(title="no id"))
    with pytest.raises(ValidationError):
        service.update(Task(id=1, title=" "))


def test_update_offline_marks_pending(service, store, monitor):
    store.upsert(Task(id=3, title="draft", is_synced=True))
    monitor.set_online(False)

    updated = service.update(store.get(3).replace(title="final"))

    assert updated.title == "final"
    assert not updated.is_synced
    assert service.pending_count() == 1


def test_sync_summary_reports_leftovers(service, store, remote, identity):
    store.upsert(Task(id=identity.new_local_id(), title="ok"))
    store.upsert(Task(id=identity.new_local_id(), title="bad"))
    remote.fail_on("create", RemoteTimeout("t"), when=lambda title: title == "bad")

    report = service.sync()

    assert report.summary() == "completed with 1 pending"
    assert report.to_dict()["synced"] == 1


def test_sync_offline_reports_backlog(service, monitor):
    monitor.set_online(False)
    service.add("later")

    report = service.sync()

    assert report.offline
    assert report.summary() == "offline, 1 pending"


def test_close_is_idempotent(service):
    service.close()
    service.close()


def test_background_forwarding_completes_on_close(store, remote, monitor, identity):
    svc = TaskService(store, remote, monitor, identity=identity, sync_interval=0, forward_in_background=True)

    task = svc.add("async")
    assert task.id != 201

    svc.close()

    [stored] = store.get_all()
    assert stored.id == 201 and stored.is_synced
    assert store.get(task.id).id == 201


def test_context_manager_starts_and_stops(store, remote, monitor, identity):
    with TaskService(store, remote, monitor, identity=identity, sync_interval=0) as svc:
        assert svc.scheduler.active
    assert not svc.scheduler.active


def test_update_through_stale_local_id_edits_confirmed_record(service, store, remote, monitor):
    monitor.set_online(False)
    held = service.add("Buy milk")
    monitor.set_online(True)
    service.sync()

    updated = service.update(held.replace(completed=True))

    assert updated.id == 201 and updated.completed and updated.is_synced
    assert [(t.id, t.title, t.completed) for t in store.get_all()] == [(201, "Buy milk", True)]
    assert remote.ops("create") == ["Buy milk"]
    assert remote.ops("update") == [201]


def test_stale_local_id_resolves_after_list_merge(service, store, monitor):
    monitor.set_online(False)
    held = service.add("Buy milk")
    monitor.set_online(True)
    service.sync()

    service.list()

    assert store.get(held.id).id == 201
    assert service.toggle(held.id).completed


def test_close_ends_connectivity_listener(store, remote, monitor, identity):
    svc = TaskService(store, remote, monitor, identity=identity, sync_interval=0).start()
    listener = svc.scheduler._listener
    assert listener.is_alive()

    svc.close()

    assert not listener.is_alive()
    assert monitor._events.subscriber_count == 0


def test_list_falls_back_on_unexpected_remote_error(store, monitor, identity):
    class BrokenRemote(FakeRemoteStore):
        def list(self, limit=20):
            raise KeyError("userId")

    svc = TaskService(store, BrokenRemote(), monitor, identity=identity, sync_interval=0)
    store.upsert(Task(id=5, title="cached", is_synced=True))
    try:
        assert [t.title for t in svc.list()] == ["cached"]
    finally:
        svc.close()
