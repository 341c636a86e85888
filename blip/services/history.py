import threading
from collections import deque
from typing import Optional, Tuple

from blip.models import Sample

HISTORY_WINDOW = 60  # samples kept in memory (one per round)

class HistoryStore:
    """Bounded, oldest-first window of samples.

    The sampler is the only writer. Readers get a copy taken under the lock,
    so rendering or serializing never holds the store locked. The lock is a
    threading one because chart rendering runs in a worker thread.
    """

    def __init__(self, capacity: int = HISTORY_WINDOW):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._buf = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._buf.maxlen

    def append(self, sample: Sample) -> None:
        with self._lock:
            self._buf.append(sample)

    def snapshot(self) -> Tuple[Sample, ...]:
        with self._lock:
            return tuple(self._buf)

    def latest(self) -> Optional[Sample]:
        with self._lock:
            return self._buf[-1] if self._buf else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._buf)
