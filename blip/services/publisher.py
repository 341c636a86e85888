"""Fan-out of each new sample to connected viewers.

Every viewer owns a bounded queue and a task that drains it through the
transport's ``send``. Publishing only enqueues, so a slow or dead viewer
can never hold up the sampler or the other viewers.
"""
import asyncio, itertools, logging
from typing import Awaitable, Callable, Dict, Optional

from blip.models import Sample
from blip.schemas import encode_sample

logger = logging.getLogger(__name__)

Send = Callable[[str], Awaitable[None]]

_CLOSE = None
_ids = itertools.count(1)

class Viewer:
    def __init__(self, publisher: "StreamPublisher", send: Send, buffer: int):
        self.id = next(_ids)
        self.delivered = 0
        self.closed = False
        self._publisher = publisher
        self._send = send
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer)

    def offer(self, message: str) -> None:
        if self.closed:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("viewer %s fell %d messages behind; dropping it", self.id, self._queue.qsize())
            self.close()

    def close(self) -> None:
        """Stop the viewer after its current send; pending messages are discarded."""
        if self.closed:
            return
        self.closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE)

    async def pump(self) -> None:
        try:
            while True:
                message = await self._queue.get()
                if message is _CLOSE:
                    break
                try:
                    await self._send(message)
                except Exception as ex:
                    logger.info("viewer %s send failed (%r); closing it", self.id, ex)
                    break
                self.delivered += 1
        finally:
            self.closed = True
            self._publisher.detach(self)

class StreamPublisher:
    def __init__(self, buffer: int = 16):
        self.buffer = buffer
        self._viewers: Dict[int, Viewer] = {}

    def __len__(self) -> int:
        return len(self._viewers)

    def attach(self, send: Send) -> Viewer:
        """Register a viewer; it receives samples published from now on (no backfill)."""
        viewer = Viewer(self, send, self.buffer)
        self._viewers[viewer.id] = viewer
        logger.info("viewer %s connected (%d total)", viewer.id, len(self._viewers))
        return viewer

    def detach(self, viewer: Viewer) -> None:
        if self._viewers.pop(viewer.id, None) is not None:
            logger.info("viewer %s disconnected (%d total)", viewer.id, len(self._viewers))

    def publish(self, sample: Sample) -> Optional[str]:
        try:
            message = encode_sample(sample)
        except Exception:
            logger.exception("could not encode sample at %s; skipping publish", sample.timestamp)
            return None
        for viewer in list(self._viewers.values()):
            viewer.offer(message)
        return message

    def close(self) -> None:
        for viewer in list(self._viewers.values()):
            viewer.close()
