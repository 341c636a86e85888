import threading

import pytest

from blip.services.history import HISTORY_WINDOW, HistoryStore
from conftest import make_sample


def test_default_capacity():
    store = HistoryStore()
    assert store.capacity == HISTORY_WINDOW == 60
    assert len(store) == 0
    assert store.snapshot() == ()
    assert store.latest() is None


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        HistoryStore(0)


@pytest.mark.parametrize("capacity,appends", [(1, 5), (3, 10), (60, 61)])
def test_keeps_last_samples_in_order(capacity, appends):
    store = HistoryStore(capacity)
    samples = [make_sample(i) for i in range(appends)]
    for s in samples:
        store.append(s)

    snap = store.snapshot()
    assert len(store) == len(snap) == capacity
    assert list(snap) == samples[-capacity:]
    assert store.latest() is samples[-1]


def test_snapshot_is_a_copy():
    store = HistoryStore(3)
    store.append(make_sample(0))
    snap = store.snapshot()
    store.append(make_sample(1))
    assert len(snap) == 1
    assert len(store.snapshot()) == 2


def test_concurrent_readers_see_consistent_windows():
    store = HistoryStore(5)
    errors = []

    def reader():
        for _ in range(500):
            snap = store.snapshot()
            stamps = [s.timestamp for s in snap]
            if len(snap) > 5 or stamps != sorted(stamps):
                errors.append(stamps)

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for i in range(500):
        store.append(make_sample(i))
    for t in threads:
        t.join()

    assert not errors
    assert len(store) == 5
