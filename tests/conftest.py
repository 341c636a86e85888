"""Shared fixtures: targets, scripted probes and sample builders."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict

import pytest

from blip.config import Settings
from blip.models import Failed, Latency, Result, Sample, Target

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

TARGETS_JSON = (
    '[{"name": "A", "url": "http://a.example/"},'
    ' {"name": "B", "url": "http://b.example/"}]'
)


class ScriptedProbe:
    """Returns a fixed result per target id and counts calls."""

    def __init__(self, results: Dict[str, Result], delay: float = 0.0):
        self.results = results
        self.delay = delay
        self.calls: list[str] = []

    async def __call__(self, target: Target) -> Result:
        self.calls.append(target.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.results[target.id]


def make_sample(i: int, a: Result | None = None, b: Result | None = None) -> Sample:
    return Sample(
        timestamp=T0 + timedelta(seconds=i),
        measurements=(("A", a or Latency(10 + i)), ("B", b or Failed("refused"))),
    )


@pytest.fixture
def targets() -> list[Target]:
    return [Target("A", "http://a.example/"), Target("B", "http://b.example/")]


@pytest.fixture
def a_up_b_down() -> ScriptedProbe:
    return ScriptedProbe({"A": Latency(10), "B": Failed("connection refused")})


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        TARGETS_JSON=TARGETS_JSON,
        SAMPLE_INTERVAL_S=0.05,
        PROBE_TIMEOUT_S=0.04,
        HISTORY_SIZE=10,
        CHART_WIDTH_PX=400,
        CHART_HEIGHT_PX=300,
    )
