"""Shared async HTTP plumbing for the link detectors.

Every detector talks to arbitrary third-party URLs, so every request carries
its own total timeout and every httpx failure is translated into the
link-audit error taxonomy before it leaves this module.
"""

import asyncio
import logging
from typing import Optional

import httpx

from linkguard.config import get_settings
from linkguard.errors import NetworkError, RequestTimeout, TooManyRedirectsError

logger = logging.getLogger(__name__)

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class HttpDetector:
    """Base class owning an ``httpx.AsyncClient`` with a per-request timeout.

    A client can be injected (tests, or one client shared by a whole audit
    run); injected clients are never closed by the detector.
    """

    accept = HTML_ACCEPT

    def __init__(
        self,
        timeout: float,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent or get_settings().user_agent
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _send(
        self,
        method: str,
        url: str,
        *,
        follow_redirects: bool,
        read_body: bool = True,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Issue one request bounded by ``timeout`` end to end.

        Raises:
            RequestTimeout: the request did not finish in time
            TooManyRedirectsError: httpx gave up following redirects
            NetworkError: any other transport or URL failure
        """
        timeout = timeout or self.timeout
        client = self._get_client()
        headers = {"User-Agent": self.user_agent, "Accept": self.accept}

        async def _do() -> httpx.Response:
            request = client.build_request(method, url, headers=headers, timeout=httpx.Timeout(timeout))
            response = await client.send(request, follow_redirects=follow_redirects, stream=True)
            try:
                if read_body:
                    await response.aread()
            finally:
                await response.aclose()
            return response

        try:
            return await asyncio.wait_for(_do(), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeout(url, timeout) from e
        except httpx.TooManyRedirects as e:
            raise TooManyRedirectsError(str(e)) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e
