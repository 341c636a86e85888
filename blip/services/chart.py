"""Latency chart rendering.

Uses matplotlib's object-oriented API (``Figure`` + Agg canvas) rather than
pyplot, since renders happen in worker threads and pyplot keeps global state.
"""
import io, logging, math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.dates as mdates
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.ticker import StrMethodFormatter

from blip.models import Sample, Target
from .history import HistoryStore

logger = logging.getLogger(__name__)

DPI = 100
MIN_POINTS = 2

@dataclass(frozen=True)
class ChartImage:
    png: bytes
    # target id -> y value per sample; NaN marks a failed measurement (drawn as a gap)
    series: Dict[str, List[float]]

    @property
    def points(self) -> int:
        return len(next(iter(self.series.values()), []))

    def plotted(self, target_id: str) -> List[float]:
        return [v for v in self.series[target_id] if not math.isnan(v)]

def series_for(snapshot: Sequence[Sample], targets: Sequence[Target]) -> Dict[str, List[float]]:
    series: Dict[str, List[float]] = {t.id: [] for t in targets}
    for sample in snapshot:
        for t in targets:
            try:
                res = sample.get(t.id)
            except KeyError:
                res = None
            series[t.id].append(math.nan if res is None or res.failed else float(res.ms))
    return series

def _png(fig: Figure) -> bytes:
    buf = io.BytesIO()
    FigureCanvasAgg(fig)
    # no Software/date metadata: identical data gives identical bytes
    fig.savefig(buf, format="png", metadata={"Software": None})
    return buf.getvalue()

def render_placeholder(width: int = 800, height: int = 600, text: str = "Loading...") -> bytes:
    fig = Figure(figsize=(width / DPI, height / DPI), dpi=DPI, facecolor="white")
    fig.text(0.5, 0.5, text, ha="center", va="center", fontsize=18, fontweight="bold")
    return _png(fig)

class ChartRenderer:
    def __init__(self, store: HistoryStore, targets: Sequence[Target],
                 width: int = 800, height: int = 600):
        self.store = store
        self.targets = tuple(targets)
        self.width = width
        self.height = height

    def render(self) -> Optional[ChartImage]:
        """Chart of the current window, or None when there is nothing to show yet."""
        snapshot = self.store.snapshot()
        if len(snapshot) < MIN_POINTS:
            return None
        try:
            return self._draw(snapshot)
        except Exception:
            logger.exception("chart rendering failed (%d samples)", len(snapshot))
            return None

    def _draw(self, snapshot: Sequence[Sample]) -> ChartImage:
        xs = [s.timestamp for s in snapshot]
        series = series_for(snapshot, self.targets)

        fig = Figure(figsize=(self.width / DPI, self.height / DPI), dpi=DPI)
        ax = fig.add_subplot()
        for t in self.targets:
            ax.plot(xs, series[t.id], label=t.label, marker=".", linewidth=1.5)
        ax.xaxis.set_major_formatter(mdates.DateFormatter("%H:%M:%S"))
        ax.yaxis.set_major_formatter(StrMethodFormatter("{x:.0f} ms"))
        ax.set_ylim(bottom=0)
        ax.grid(True, alpha=0.3)
        ax.legend(loc="upper left", fontsize="small")
        fig.autofmt_xdate()
        return ChartImage(png=_png(fig), series=series)
