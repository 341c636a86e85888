import asyncio
import json

import pytest

from blip.services import publisher as publisher_mod
from blip.services.publisher import StreamPublisher
from conftest import make_sample


class Recorder:
    def __init__(self, fail_after=None):
        self.messages = []
        self.fail_after = fail_after

    async def __call__(self, message):
        if self.fail_after is not None and len(self.messages) >= self.fail_after:
            raise ConnectionResetError("viewer went away")
        self.messages.append(message)


async def drain(publisher, *tasks):
    publisher.close()
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=1)


@pytest.mark.asyncio
async def test_viewers_get_samples_in_order():
    pub = StreamPublisher()
    rec = Recorder()
    viewer = pub.attach(rec)
    task = asyncio.create_task(viewer.pump())

    for i in range(5):
        pub.publish(make_sample(i))
    await asyncio.sleep(0.01)
    await drain(pub, task)

    stamps = [json.loads(m)["timestamp"] for m in rec.messages]
    assert len(stamps) == 5
    assert stamps == sorted(stamps)
    assert viewer.delivered == 5
    assert len(pub) == 0


@pytest.mark.asyncio
async def test_dropped_viewer_does_not_affect_others():
    pub = StreamPublisher()
    flaky, steady = Recorder(fail_after=1), Recorder()
    v1, v2 = pub.attach(flaky), pub.attach(steady)
    tasks = [asyncio.create_task(v.pump()) for v in (v1, v2)]
    assert len(pub) == 2

    for i in range(4):
        pub.publish(make_sample(i))
        await asyncio.sleep(0.01)

    assert v1.closed
    assert len(pub) == 1
    await drain(pub, *tasks)

    assert len(flaky.messages) == 1
    assert [json.loads(m)["latencies"]["A"]["latency_ms"] for m in steady.messages] == [10, 11, 12, 13]


@pytest.mark.asyncio
async def test_late_viewer_gets_no_backfill():
    pub = StreamPublisher()
    pub.publish(make_sample(0))
    rec = Recorder()
    task = asyncio.create_task(pub.attach(rec).pump())
    pub.publish(make_sample(1))
    await asyncio.sleep(0.01)
    await drain(pub, task)

    assert len(rec.messages) == 1
    assert json.loads(rec.messages[0])["latencies"]["A"]["latency_ms"] == 11


@pytest.mark.asyncio
async def test_slow_viewer_is_dropped_on_overflow():
    pub = StreamPublisher(buffer=2)
    blocked = asyncio.Event()

    async def stuck(message):
        await blocked.wait()

    viewer = pub.attach(stuck)
    task = asyncio.create_task(viewer.pump())
    for i in range(5):
        pub.publish(make_sample(i))
        await asyncio.sleep(0)

    assert viewer.closed
    blocked.set()
    await asyncio.wait_for(task, timeout=1)
    assert len(pub) == 0


@pytest.mark.asyncio
async def test_encoding_failure_skips_publish(monkeypatch):
    pub = StreamPublisher()
    rec = Recorder()
    task = asyncio.create_task(pub.attach(rec).pump())

    def boom(sample):
        raise TypeError("not serializable")

    monkeypatch.setattr(publisher_mod, "encode_sample", boom)
    assert pub.publish(make_sample(0)) is None
    monkeypatch.undo()
    assert pub.publish(make_sample(1)) is not None
    await asyncio.sleep(0.01)
    await drain(pub, task)

    assert len(rec.messages) == 1


def test_publish_without_viewers():
    message = StreamPublisher().publish(make_sample(0))
    data = json.loads(message)
    assert data["timestamp"].startswith("2026-10-19T12:00:00")
    assert data["latencies"]["B"] == {"latency_ms": None, "failed": True, "error": "refused"}
