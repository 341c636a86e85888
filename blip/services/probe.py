import asyncio, logging, time
from typing import Optional
import httpx

from blip.models import Failed, Latency, Result, Target

logger = logging.getLogger(__name__)

class HttpProbe:
    """Measures time-to-headers for one GET. Never raises, never retries."""

    def __init__(self, timeout: float = 0.9, fail_on_http_error: bool = False,
                 client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.fail_on_http_error = fail_on_http_error
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        # built on first use, inside the running loop, never at import time
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=False)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _time_headers(self, target: Target) -> Result:
        started = time.perf_counter()
        async with self.client.stream("GET", target.url, timeout=self.timeout) as r:
            # headers are in; the body is closed unread when the block exits
            elapsed = time.perf_counter() - started
            if self.fail_on_http_error and not r.is_success:
                return Failed(f"HTTP {r.status_code}")
        return Latency(max(0, int(elapsed * 1000)))

    async def measure(self, target: Target) -> Result:
        try:
            # httpx timeouts are per phase; this bounds the whole request
            return await asyncio.wait_for(self._time_headers(target), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug("%s: timed out after %.2fs", target.id, self.timeout)
            return Failed("timeout")
        except Exception as ex:
            logger.debug("%s: probe error: %r", target.id, ex)
            return Failed(str(ex) or type(ex).__name__)

    __call__ = measure
