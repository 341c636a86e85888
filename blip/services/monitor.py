import json, math, logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from blip.config import Settings
from blip.models import Failed, Sample, Target
from blip.schemas import TargetIn
from .chart import ChartRenderer
from .history import HistoryStore
from .probe import HttpProbe
from .publisher import StreamPublisher
from .sampler import Probe, Sampler

logger = logging.getLogger(__name__)

def load_targets(raw: str) -> List[Target]:
    try:
        data = json.loads(raw or "[]")
        if not isinstance(data, list):
            raise ValueError("TARGETS_JSON must be a list")
    except ValueError as e:
        logger.warning("invalid TARGETS_JSON: %s", e)
        return []

    targets, seen = [], set()
    for i, item in enumerate(data):
        try:
            t = TargetIn.model_validate(item)
        except ValidationError as e:
            logger.warning("skipping target #%d: %s", i, e.errors()[0]["msg"])
            continue
        if t.name in seen:
            logger.warning("skipping duplicate target %r", t.name)
            continue
        seen.add(t.name)
        targets.append(Target(id=t.name, url=str(t.url)))
    return targets

def uptime_pct(snapshot: Sequence[Sample], target_id: str) -> float:
    results = [res for s in snapshot for tid, res in s if tid == target_id]
    if not results:
        return 0.0
    ups = sum(1 for r in results if not r.failed)
    return round(100.0 * ups / len(results), 1)

def last_error(snapshot: Sequence[Sample], target_id: str) -> str:
    for s in reversed(snapshot):
        for tid, res in s:
            if tid == target_id and isinstance(res, Failed):
                return res.reason
    return ""

def render_metrics(snapshot: Sequence[Sample], targets: Sequence[Target]) -> str:
    lines = [
        '# HELP blip_target_up 1 if the last probe succeeded, 0 otherwise',
        '# TYPE blip_target_up gauge',
        '# HELP blip_target_latency_ms Time to response headers in ms (last probe)',
        '# TYPE blip_target_latency_ms gauge',
        '# HELP blip_target_uptime_pct Successful probes in % over the history window',
        '# TYPE blip_target_uptime_pct gauge',
    ]
    latest = snapshot[-1] if snapshot else None

    for t in targets:
        up, lat = 0, math.nan
        if latest is not None:
            try:
                res = latest.get(t.id)
            except KeyError:
                res = None
            if res is not None and not res.failed:
                up, lat = 1, res.ms
        labels = f'target="{t.id}"'
        lines.append(f'blip_target_up{{{labels}}} {up}')
        lines.append(f'blip_target_latency_ms{{{labels}}} {lat}')
        lines.append(f'blip_target_uptime_pct{{{labels}}} {uptime_pct(snapshot, t.id)}')

    return "\n".join(lines) + "\n"

class Monitor:
    """Wires the sampling pipeline together for one process."""

    def __init__(self, settings: Settings, probe: Optional[Probe] = None):
        self.settings = settings
        self.targets = load_targets(settings.TARGETS_JSON)
        if not self.targets:
            logger.warning("no valid targets configured; rounds will be empty")
        self._http_probe = None
        if probe is None:
            self._http_probe = HttpProbe(timeout=settings.PROBE_TIMEOUT_S,
                                         fail_on_http_error=settings.FAIL_ON_HTTP_ERROR)
            probe = self._http_probe
        self.store = HistoryStore(settings.HISTORY_SIZE)
        self.publisher = StreamPublisher(buffer=settings.STREAM_BUFFER)
        self.sampler = Sampler(self.targets, probe, self.store, self.publisher,
                               interval=settings.SAMPLE_INTERVAL_S)
        self.renderer = ChartRenderer(self.store, self.targets,
                                      width=settings.CHART_WIDTH_PX, height=settings.CHART_HEIGHT_PX)

    def start(self) -> None:
        self.sampler.start()

    async def stop(self) -> None:
        await self.sampler.stop()
        self.publisher.close()
        if self._http_probe is not None:
            await self._http_probe.aclose()
