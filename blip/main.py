import logging
from typing import Optional
from fastapi import FastAPI

from blip.config import Settings, settings as default_settings
from blip.logging_config import setup_logging
from blip.routers import pages, public, stream
from blip.services.monitor import Monitor
from blip.services.sampler import Probe

logger = logging.getLogger(__name__)

def create_app(settings: Optional[Settings] = None, probe: Optional[Probe] = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION)
    app.state.settings = settings
    app.state.monitor = Monitor(settings, probe=probe)

    @app.on_event("startup")
    async def _start_sampling():
        setup_logging(settings.LOG_LEVEL)
        mon = app.state.monitor
        logger.info("starting %s %s with targets: %s", settings.APP_TITLE, settings.APP_VERSION,
                    ", ".join(t.label for t in mon.targets) or "-")
        mon.start()

    @app.on_event("shutdown")
    async def _stop_sampling():
        await app.state.monitor.stop()

    app.include_router(public.router)
    app.include_router(stream.router)
    app.include_router(pages.router)
    return app

app = create_app()

def run() -> None:
    import uvicorn

    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT,
                log_config=None)
