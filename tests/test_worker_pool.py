import pytest

from render_service.jobs.errors import WorkerPoolError
from render_service.jobs.worker_pool import WorkerPool


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_bind_and_release_keep_bindings_injective():
    pool = WorkerPool(size=2)
    slot = pool.acquire_idle()
    pool.bind(slot.id, "job_a")

    with pytest.raises(WorkerPoolError):
        pool.bind(slot.id, "job_b")
    other = pool.acquire_idle()
    assert other.id != slot.id
    with pytest.raises(WorkerPoolError):
        pool.bind(other.id, "job_a")

    assert pool.active_count == 1
    assert pool.idle_count == 1
    assert pool.slot_for("job_a") == slot.id

    pool.release(slot.id)
    pool.release(slot.id)
    assert pool.active_count == 0
    assert pool.bindings() == {}


def test_acquire_idle_returns_none_when_full():
    pool = WorkerPool(size=1)
    pool.bind(pool.acquire_idle().id, "job_a")
    assert pool.acquire_idle() is None


def test_grow_respects_max_size():
    pool = WorkerPool(size=3, max_size=4)
    added = pool.grow(2)
    assert len(added) == 1
    assert pool.size == 4
    assert pool.grow(2) == []


def test_shrink_idle_only_removes_idle_dynamic_slots():
    clock = FakeClock()
    pool = WorkerPool(size=1, max_size=4, clock=clock)
    busy, idle = pool.grow(2)
    pool.bind(busy, "job_a")

    clock.now += 10
    assert pool.shrink_idle(idle_seconds=60) == []

    clock.now += 60
    assert pool.shrink_idle(idle_seconds=60) == [idle]
    assert pool.size == 2

    pool.release(busy)
    clock.now += 61
    assert pool.shrink_idle(idle_seconds=60) == [busy]
    assert pool.size == pool.min_size == 1


def test_pool_needs_a_slot():
    with pytest.raises(ValueError):
        WorkerPool(size=0)
