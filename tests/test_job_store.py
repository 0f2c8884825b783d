import asyncio

import pytest

from storyvoice.models import Job, JobStatus
from storyvoice.services.job_store import JobStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_put_and_get():
    store = JobStore()
    job = store.put(Job(id="a", status=JobStatus.WAITING_FOR_SCRIPT))
    assert store.get("a") is job
    assert "a" in store
    assert store.get("missing") is None


def test_sweep_drops_only_expired_finished_jobs():
    clock = FakeClock()
    store = JobStore(ttl_seconds=60, clock=clock)
    store.put(Job(id="old", status=JobStatus.DONE, completed_at=clock.now - 120))
    store.put(Job(id="fresh", status=JobStatus.ERROR, completed_at=clock.now - 10))
    store.put(Job(id="running", status=JobStatus.GENERATING_AUDIO, started_at=clock.now - 9999))
    store.put(Job(id="preview", status=JobStatus.PREVIEW))

    assert store.sweep() == ["old"]
    assert len(store) == 3

    clock.now += 100
    assert store.sweep() == ["fresh"]
    assert "running" in store and "preview" in store


def test_sweep_drops_previews_left_past_the_ttl():
    clock = FakeClock()
    store = JobStore(ttl_seconds=60, clock=clock)
    store.put(Job(id="abandoned", status=JobStatus.PREVIEW, started_at=clock.now - 120))
    store.put(Job(id="recent", status=JobStatus.PREVIEW, started_at=clock.now - 30))

    assert store.sweep() == ["abandoned"]
    assert "recent" in store

    clock.now += 60
    assert store.sweep() == ["recent"]


@pytest.mark.asyncio
async def test_run_sweeper_sweeps_until_cancelled():
    clock = FakeClock()
    store = JobStore(ttl_seconds=0, clock=clock)
    store.put(Job(id="done", status=JobStatus.DONE, completed_at=clock.now - 1))

    task = asyncio.create_task(store.run_sweeper(interval_seconds=0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert "done" not in store
