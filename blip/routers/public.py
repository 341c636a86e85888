from fastapi import APIRouter, HTTPException, Request, status as http_status
from fastapi.responses import PlainTextResponse

from blip.models import Failed
from blip.schemas import HistoryOut, PointOut, SampleOut, StatusOut, TargetHistoryOut, TargetOut
from blip.services import monitor

router = APIRouter()

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/targets")
def targets(request: Request):
    mon = request.app.state.monitor
    return {"targets": [TargetOut(id=t.id, url=t.url) for t in mon.targets]}

@router.get("/targets/{target_id}", response_model=TargetHistoryOut)
def target_history(target_id: str, request: Request):
    mon = request.app.state.monitor
    target = next((t for t in mon.targets if t.id == target_id), None)
    if target is None:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=f"Unknown target {target_id!r}")

    snap = mon.store.snapshot()
    points = []
    for s in snap:
        res = s.get(target.id)
        if isinstance(res, Failed):
            points.append(PointOut(timestamp=s.timestamp, failed=True, error=res.reason or None))
        else:
            points.append(PointOut(timestamp=s.timestamp, latency_ms=res.ms, failed=False))
    return TargetHistoryOut(
        id=target.id,
        url=target.url,
        uptime_pct=monitor.uptime_pct(snap, target.id),
        last_error=monitor.last_error(snap, target.id),
        points=points,
    )

@router.get("/status", response_model=StatusOut)
def status(request: Request):
    mon = request.app.state.monitor
    snap = mon.store.snapshot()
    return StatusOut(
        state=mon.sampler.state.value,
        samples=len(snap),
        capacity=mon.store.capacity,
        latest=SampleOut.from_sample(snap[-1]) if snap else None,
        uptime_pct={t.id: monitor.uptime_pct(snap, t.id) for t in mon.targets},
        last_error={t.id: monitor.last_error(snap, t.id) for t in mon.targets},
    )

@router.get("/history", response_model=HistoryOut)
def history(request: Request):
    mon = request.app.state.monitor
    return HistoryOut(capacity=mon.store.capacity,
                      samples=[SampleOut.from_sample(s) for s in mon.store.snapshot()])

@router.get("/metrics", response_class=PlainTextResponse)
def metrics(request: Request):
    mon = request.app.state.monitor
    return monitor.render_metrics(mon.store.snapshot(), mon.targets)
