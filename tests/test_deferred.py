"""Tests for keyed deferred actions and locks."""

import asyncio

import pytest

from game import DeferredActions, KeyedLocks


@pytest.mark.asyncio
async def test_action_runs_after_delay():
    deferred = DeferredActions()
    ran = []

    async def action():
        ran.append("done")

    task = deferred.schedule("job", 0, action)
    assert deferred.is_pending("job")
    await task
    assert ran == ["done"]
    assert not deferred.is_pending("job")
    assert deferred.get("job") is None


@pytest.mark.asyncio
async def test_rescheduling_replaces_pending_action():
    deferred = DeferredActions()
    ran = []

    async def first():
        ran.append("first")

    async def second():
        ran.append("second")

    old = deferred.schedule("job", 60, first)
    new = deferred.schedule("job", 0, second)
    await new
    await asyncio.gather(old, return_exceptions=True)
    assert old.cancelled()
    assert ran == ["second"]


@pytest.mark.asyncio
async def test_cancel():
    deferred = DeferredActions()

    async def action():
        raise AssertionError("cancelled action ran")

    deferred.schedule("job", 60, action)
    assert deferred.cancel("job")
    assert not deferred.cancel("job")
    assert deferred.pending() == []


@pytest.mark.asyncio
async def test_failure_is_logged_not_raised(caplog):
    deferred = DeferredActions()

    async def action():
        raise RuntimeError("boom")

    await deferred.schedule("job", 0, action)
    assert "Deferred action job failed" in caplog.text


@pytest.mark.asyncio
async def test_cancel_all():
    deferred = DeferredActions()

    async def action():
        pass

    deferred.schedule("a", 60, action)
    deferred.schedule("b", 60, action)
    await deferred.cancel_all()
    assert deferred.pending() == []


@pytest.mark.asyncio
async def test_keyed_locks_serialize_same_key():
    locks = KeyedLocks()
    order = []

    async def worker(name):
        async with locks.lock("t1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a-in", "a-out", "b-in", "b-out"]

    assert "t1" in locks
    locks.discard("t1")
    assert "t1" not in locks


@pytest.mark.asyncio
async def test_action_cancelling_itself_keeps_running():
    deferred = DeferredActions()
    ran = []

    async def action():
        assert not deferred.cancel("job")
        await asyncio.sleep(0)
        ran.append("finished")

    task = deferred.schedule("job", 0, action)
    await task
    assert ran == ["finished"]
    assert not task.cancelled()
