"""Tests for the bounded sync queue."""

import asyncio

import pytest

from pureflow.detection.sync_queue import SyncQueue
from pureflow.interfaces.collaborators import AlertSink

from conftest import FailingSink, FakeSink, make_alert


def _alerts(count, prefix="a"):
    return [make_alert(alert_id=f"{prefix}{i}", value=9.0 + i / 10) for i in range(count)]


class CrashingSink(AlertSink):
    async def write(self, alerts):
        raise ConnectionResetError("socket closed")


class BlockingSink(AlertSink):
    def __init__(self):
        self.started = asyncio.Event()

    async def write(self, alerts):
        self.started.set()
        await asyncio.sleep(3600)


async def test_flush_empty_queue():
    result = await SyncQueue(FakeSink()).flush()
    assert (result.synced, result.errors, result.total) == (0, 0, 0)


async def test_flush_writes_one_batch_in_order():
    sink = FakeSink()
    queue = SyncQueue(sink)
    queue.enqueue(_alerts(3))

    result = await queue.flush()

    assert result.synced == 3
    assert len(sink.batches) == 1
    assert [a.alert_id for a in sink.batches[0]] == ["a0", "a1", "a2"]
    assert len(queue) == 0


async def test_failed_batch_requeued_at_front():
    sink = FailingSink(failures=1)
    queue = SyncQueue(sink)
    queue.enqueue(_alerts(2, "old"))

    result = await queue.flush()
    assert result.errors == 2
    assert result.synced == 0

    queue.enqueue(_alerts(1, "new"))
    assert [a.alert_id for a in queue.pending] == ["old0", "old1", "new0"]

    retried = await queue.flush()
    assert retried.synced == 3
    assert [a.alert_id for a in sink.batches[0]] == ["old0", "old1", "new0"]


async def test_any_sink_exception_is_contained():
    queue = SyncQueue(CrashingSink())
    queue.enqueue(_alerts(1))

    result = await queue.flush()

    assert result.errors == 1
    assert len(queue) == 1


def test_overflow_evicts_oldest():
    queue = SyncQueue(FakeSink(), capacity=3)
    queue.enqueue(_alerts(5))

    assert [a.alert_id for a in queue.pending] == ["a2", "a3", "a4"]
    assert queue.dropped == 2


async def test_capacity_enforced_after_requeue():
    queue = SyncQueue(FailingSink(failures=5), capacity=2)
    queue.enqueue(_alerts(2))
    await queue.flush()

    queue.enqueue(_alerts(1, "late"))
    assert len(queue) == 2
    assert queue.dropped == 1


async def test_cancelled_flush_requeues():
    sink = BlockingSink()
    queue = SyncQueue(sink)
    queue.enqueue(_alerts(2))

    task = asyncio.create_task(queue.flush())
    await sink.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert [a.alert_id for a in queue.pending] == ["a0", "a1"]


def test_clear_and_invalid_capacity():
    queue = SyncQueue(FakeSink())
    queue.enqueue(_alerts(2))
    queue.clear()
    assert len(queue) == 0

    with pytest.raises(ValueError):
        SyncQueue(FakeSink(), capacity=0)
