from dataclasses import dataclass

from vyx.repository import MemoryWorkerRepository


@dataclass
class Worker:
    id: str
    state: str = "starting"


def test_save_and_find_by_id():
    repo = MemoryWorkerRepository()
    repo.save(Worker("node:api", "running"))
    found = repo.find_by_id("node:api")
    assert found == Worker("node:api", "running")


def test_find_missing_returns_none():
    repo = MemoryWorkerRepository()
    assert repo.find_by_id("ghost") is None


def test_save_stores_a_copy():
    repo = MemoryWorkerRepository()
    worker = Worker("w1", "starting")
    repo.save(worker)
    worker.state = "changed"
    assert repo.find_by_id("w1").state == "starting"


def test_found_worker_is_a_copy():
    repo = MemoryWorkerRepository()
    repo.save(Worker("w1", "starting"))
    found = repo.find_by_id("w1")
    found.state = "changed"
    assert repo.find_by_id("w1").state == "starting"


def test_save_replaces_same_id():
    repo = MemoryWorkerRepository()
    repo.save(Worker("w1", "starting"))
    repo.save(Worker("w1", "running"))
    assert repo.find_all() == [Worker("w1", "running")]


def test_find_all_returns_every_worker():
    repo = MemoryWorkerRepository()
    repo.save(Worker("a"))
    repo.save(Worker("b"))
    assert sorted(w.id for w in repo.find_all()) == ["a", "b"]


def test_delete_removes_worker():
    repo = MemoryWorkerRepository()
    repo.save(Worker("a"))
    repo.save(Worker("b"))
    repo.delete("a")
    repo.delete("missing")
    assert repo.find_by_id("a") is None
    assert repo.live_worker_ids() == ["b"]


def test_live_worker_ids_matches_saved():
    repo = MemoryWorkerRepository()
    assert repo.live_worker_ids() == []
    for worker_id in ("x", "y", "z"):
        repo.save(Worker(worker_id))
    assert sorted(repo.live_worker_ids()) == ["x", "y", "z"]