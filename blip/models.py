from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Tuple, Union

@dataclass(frozen=True)
class Target:
    id: str
    url: str

    @property
    def label(self) -> str:
        return f"{self.id} ({self.url})"

@dataclass(frozen=True)
class Latency:
    """Successful probe: elapsed whole milliseconds until response headers."""
    ms: int

    failed = False

    def __post_init__(self):
        if self.ms < 0:
            raise ValueError("latency cannot be negative")

@dataclass(frozen=True)
class Failed:
    """Probe that produced no latency (timeout, DNS, refused, TLS, ...)."""
    reason: str = ""

    failed = True

Result = Union[Latency, Failed]

@dataclass(frozen=True)
class Sample:
    """One round: a shared UTC timestamp and one result per target, in config order."""
    timestamp: datetime
    measurements: Tuple[Tuple[str, Result], ...]

    def __iter__(self) -> Iterator[Tuple[str, Result]]:
        return iter(self.measurements)

    def get(self, target_id: str) -> Result:
        for tid, res in self.measurements:
            if tid == target_id:
                return res
        raise KeyError(target_id)

    @property
    def target_ids(self) -> Tuple[str, ...]:
        return tuple(tid for tid, _ in self.measurements)
