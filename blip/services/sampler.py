import asyncio, enum, logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Sequence

from blip.models import Failed, Result, Sample, Target
from .history import HistoryStore
from .publisher import StreamPublisher

logger = logging.getLogger(__name__)

Probe = Callable[[Target], Awaitable[Result]]

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class SamplerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"

class Sampler:
    """Runs one measurement round per interval across all targets.

    Targets in a round are probed concurrently and share the round's
    timestamp. A round that overruns the interval is followed immediately by
    the next one; missed ticks are skipped, never queued up.
    """

    def __init__(self, targets: Sequence[Target], probe: Probe, store: HistoryStore,
                 publisher: Optional[StreamPublisher] = None, interval: float = 1.0,
                 clock: Callable[[], datetime] = utcnow):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.targets = tuple(targets)
        self.probe = probe
        self.store = store
        self.publisher = publisher
        self.interval = interval
        self.clock = clock
        self.state = SamplerState.IDLE
        self.rounds = 0
        self._last_ts: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    def _stamp(self) -> datetime:
        t = self.clock()
        if self._last_ts is not None and t <= self._last_ts:
            t = self._last_ts + timedelta(microseconds=1)
        self._last_ts = t
        return t

    @staticmethod
    def _settle(target: Target, res) -> Result:
        # a probe that raises counts as a failed measurement, not a dead sampler
        if isinstance(res, Exception):
            logger.warning("%s: probe raised %r", target.id, res)
            return Failed(str(res) or type(res).__name__)
        if isinstance(res, BaseException):
            raise res
        return res

    async def run_round(self) -> Sample:
        t = self._stamp()
        results = await asyncio.gather(*(self.probe(target) for target in self.targets),
                                       return_exceptions=True)
        sample = Sample(timestamp=t, measurements=tuple(
            (target.id, self._settle(target, res)) for target, res in zip(self.targets, results)))
        # no await between these two: a cancelled round leaves no trace
        self.store.append(sample)
        if self.publisher is not None:
            self.publisher.publish(sample)
        self.rounds += 1
        failed = [tid for tid, res in sample if res.failed]
        if failed:
            logger.debug("round %d: failed targets %s", self.rounds, ", ".join(failed))
        return sample

    async def run(self, max_rounds: Optional[int] = None) -> None:
        if self.state is not SamplerState.IDLE:
            raise RuntimeError(f"sampler already {self.state.value}")
        self.state = SamplerState.RUNNING
        loop = asyncio.get_running_loop()
        logger.info("sampling %d target(s) every %.2fs", len(self.targets), self.interval)
        done = 0
        try:
            next_tick = loop.time()
            while max_rounds is None or done < max_rounds:
                await self.run_round()
                done += 1
                if max_rounds is not None and done >= max_rounds:
                    break
                next_tick += self.interval
                now = loop.time()
                if now >= next_tick:
                    logger.debug("round overran the interval by %.3fs", now - next_tick)
                    next_tick = now
                else:
                    await asyncio.sleep(next_tick - now)
        finally:
            self.state = SamplerState.STOPPED
            logger.info("sampler stopped after %d round(s)", self.rounds)

    def start(self) -> asyncio.Task:
        if self._task is not None:
            return self._task
        self._task = asyncio.create_task(self.run(), name="blip-sampler")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            self.state = SamplerState.STOPPED
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
