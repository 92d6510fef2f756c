import random

from render_service.jobs.models import JobPriority, JobRecord
from render_service.jobs.priority_queues import PriorityQueueSet


def _job(priority: str, input_data) -> JobRecord:
    return JobRecord(
        owner_id="user-1",
        channel_id="channel-1",
        project_id="project-1",
        sequence_id="seq-1",
        type="export",
        priority=priority,
        input_data=input_data,
    )


def test_dequeue_drains_tiers_in_priority_order(make_input):
    queues = PriorityQueueSet()
    priorities = ["low", "normal", "high", "urgent"] * 5
    random.Random(7).shuffle(priorities)
    for priority in priorities:
        queues.enqueue(_job(priority, make_input()))

    order = []
    while (job := queues.dequeue_next()) is not None:
        order.append(job.priority)

    rank = {p: i for i, p in enumerate(["urgent", "high", "normal", "low"])}
    assert [rank[p.value] for p in order] == sorted(rank[p.value] for p in order)
    assert len(order) == 20


def test_fifo_within_tier(make_input):
    queues = PriorityQueueSet()
    first, second, third = (_job("normal", make_input()) for _ in range(3))
    for job in (first, second, third):
        queues.enqueue(job)

    assert [queues.dequeue_next().id for _ in range(3)] == [first.id, second.id, third.id]
    assert queues.dequeue_next() is None


def test_requeue_front_goes_ahead_of_same_tier_but_not_higher_tiers(make_input):
    queues = PriorityQueueSet()
    waiting = _job("normal", make_input())
    urgent = _job("urgent", make_input())
    retried = _job("normal", make_input())
    queues.enqueue(waiting)
    queues.enqueue(urgent)
    queues.requeue_front(retried)

    assert queues.dequeue_next().id == urgent.id
    assert queues.dequeue_next().id == retried.id
    assert queues.dequeue_next().id == waiting.id
    assert retried.priority == JobPriority.NORMAL


def test_remove_and_depths(make_input):
    queues = PriorityQueueSet()
    jobs = [_job(p, make_input()) for p in ("high", "high", "low")]
    for job in jobs:
        queues.enqueue(job)

    assert queues.depths() == {"urgent": 0, "high": 2, "normal": 0, "low": 1}
    removed = queues.remove(jobs[1].id)
    assert removed is jobs[1]
    assert not queues.contains(jobs[1].id)
    assert queues.remove("job_missing") is None
    assert len(queues) == 2
    assert queues.depths()["high"] == 1
