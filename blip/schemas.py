from datetime import datetime, timezone
from typing import Annotated, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, HttpUrl, StringConstraints

from blip.models import Failed, Sample

TargetName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]

class TargetIn(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: TargetName
    url: HttpUrl

class TargetOut(BaseModel):
    id: str
    url: str

class LatencyOut(BaseModel):
    latency_ms: Optional[int] = None
    failed: bool
    error: Optional[str] = None

class SampleOut(BaseModel):
    timestamp: datetime
    latencies: Dict[str, LatencyOut]

    @classmethod
    def from_sample(cls, sample: Sample) -> "SampleOut":
        latencies = {}
        for tid, res in sample:
            if isinstance(res, Failed):
                latencies[tid] = LatencyOut(failed=True, error=res.reason or None)
            else:
                latencies[tid] = LatencyOut(latency_ms=res.ms, failed=False)
        return cls(timestamp=sample.timestamp.astimezone(timezone.utc), latencies=latencies)

class StatusOut(BaseModel):
    state: str
    samples: int
    capacity: int
    latest: Optional[SampleOut] = None
    uptime_pct: Dict[str, float]
    last_error: Dict[str, str]

class HistoryOut(BaseModel):
    capacity: int
    samples: List[SampleOut]

class PointOut(LatencyOut):
    timestamp: datetime

class TargetHistoryOut(BaseModel):
    id: str
    url: str
    uptime_pct: float
    last_error: str
    points: List[PointOut]

def encode_sample(sample: Sample) -> str:
    """Wire message for one sample: a single JSON object."""
    return SampleOut.from_sample(sample).model_dump_json()
