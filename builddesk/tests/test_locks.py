import threading

from builddesk.db import locks


def test_lock_entry_is_dropped_after_release():
    with locks.project_lock("PRJ001"):
        assert "PRJ001" in locks._project_locks
    assert "PRJ001" not in locks._project_locks


def test_same_project_is_serialized():
    order = []

    def worker():
        with locks.project_lock("PRJ001"):
            order.append("worker")

    with locks.project_lock("PRJ001"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join(timeout=0.2)
        # 等待者存在时条目不能被删除
        assert thread.is_alive()
        assert "PRJ001" in locks._project_locks
        order.append("main")

    thread.join(timeout=5)
    assert order == ["main", "worker"]
    assert "PRJ001" not in locks._project_locks


def test_different_projects_do_not_block():
    with locks.project_lock("PRJ001"):
        with locks.project_lock("PRJ002"):
            assert {"PRJ001", "PRJ002"} <= set(locks._project_locks)
    assert "PRJ001" not in locks._project_locks
    assert "PRJ002" not in locks._project_locks


def test_deleted_project_leaves_no_lock_entry(client, project):
    assert client.delete(f"/projects/{project.id}").status_code == 200
    assert project.id not in locks._project_locks
