"""Transports that perform a single HTTP request for the dispatcher."""

import asyncio
import logging
import ssl
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import aiohttp

from ..errors import TransportError
from .models import TIMEOUT_ERROR


@dataclass
class TransportResponse:
    """What a transport reports back for one request."""

    status: int
    body_text: Optional[str] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None


# send(method, url, headers, body, timeout_ms) -> TransportResponse
Transport = Callable[
    [str, str, Dict[str, str], Optional[str], int], Awaitable[TransportResponse]
]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class _SessionTransport:
    """Shared aiohttp session lifecycle for the concrete transports."""

    def __init__(self, connection_limit: int = 200, insecure_ssl: bool = False):
        self.connection_limit = connection_limit
        self.insecure_ssl = insecure_ssl
        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(__name__)

    def _create_ssl_context(self) -> Optional[ssl.SSLContext]:
        """Create SSL context if insecure mode is enabled."""
        if self.insecure_ssl:
            ctx = ssl.create_default_context()
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            return ctx
        return None

    async def open(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        ssl_ctx = self._create_ssl_context()
        connector = aiohttp.TCPConnector(
            limit=self.connection_limit,
            limit_per_host=self.connection_limit,
            ssl=ssl_ctx if ssl_ctx is not None else True,
        )
        self._session = aiohttp.ClientSession(connector=connector)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            raise RuntimeError("Transport session is not open. Call open() first.")
        return self._session

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class HttpTransport(_SessionTransport):
    """Sends requests straight to the target with aiohttp."""

    async def __call__(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[str],
        timeout_ms: int,
    ) -> TransportResponse:
        timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        start = time.perf_counter()

        try:
            async with self.session.request(
                method, url, headers=headers, data=body, timeout=timeout
            ) as response:
                text = await response.text(errors="replace")
                return TransportResponse(
                    status=response.status,
                    body_text=text,
                    duration_ms=_elapsed_ms(start),
                )
        except asyncio.TimeoutError:
            return TransportResponse(status=0, duration_ms=_elapsed_ms(start), error=TIMEOUT_ERROR)
        except aiohttp.ClientError as e:
            return TransportResponse(
                status=0,
                duration_ms=_elapsed_ms(start),
                error=str(e) or e.__class__.__name__,
            )


class ProxyTransport(_SessionTransport):
    """
    Sends requests through a forwarding proxy endpoint.

    The proxy performs the real call server-side and answers with a JSON
    envelope ({success, status, duration, body, error}). Its server-side
    duration is reported so latency excludes the hop to the proxy.
    """

    # Extra time allowed for the hop to the proxy on top of the request timeout
    HOP_ALLOWANCE_MS = 5000

    def __init__(self, proxy_url: str, **kwargs):
        super().__init__(**kwargs)
        self.proxy_url = proxy_url

    async def __call__(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[str],
        timeout_ms: int,
    ) -> TransportResponse:
        payload = {
            "url": url,
            "method": method,
            "headers": headers,
            "timeout": timeout_ms,
        }
        if body is not None:
            payload["body"] = body

        timeout = aiohttp.ClientTimeout(total=(timeout_ms + self.HOP_ALLOWANCE_MS) / 1000)
        start = time.perf_counter()

        try:
            async with self.session.post(self.proxy_url, json=payload, timeout=timeout) as response:
                if response.status != 200:
                    text = await response.text(errors="replace")
                    raise TransportError(f"Proxy answered HTTP {response.status}: {text[:200]}")
                try:
                    envelope = await response.json(content_type=None)
                except ValueError as e:
                    raise TransportError(f"Proxy answered with invalid JSON: {e}") from e
        except asyncio.TimeoutError:
            return TransportResponse(status=0, duration_ms=_elapsed_ms(start), error=TIMEOUT_ERROR)
        except aiohttp.ClientError as e:
            return TransportResponse(
                status=0,
                duration_ms=_elapsed_ms(start),
                error=f"Proxy unreachable: {e}",
            )

        return self._from_envelope(envelope, _elapsed_ms(start))

    @staticmethod
    def _from_envelope(envelope: Dict, fallback_ms: float) -> TransportResponse:
        if not isinstance(envelope, dict) or "status" not in envelope:
            raise TransportError("Proxy envelope is missing the status field")

        duration_ms = envelope.get("duration") or fallback_ms
        error = envelope.get("error")
        status = int(envelope.get("status") or 0)

        # The proxy reports its own timeouts as 408 plus an error text
        if error and status == 408:
            return TransportResponse(status=0, duration_ms=duration_ms, error=TIMEOUT_ERROR)
        if error:
            return TransportResponse(status=0, duration_ms=duration_ms, error=error)

        return TransportResponse(
            status=status,
            body_text=envelope.get("body"),
            duration_ms=duration_ms,
        )
