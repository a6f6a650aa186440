"""Single request execution with timing and success classification."""

import asyncio
import itertools
import logging
import time
from typing import Optional

from .concurrency import ConcurrencyGate
from .models import ABORTED_ERROR, TIMEOUT_ERROR, RequestResult, TestConfig
from .success import SuccessEvaluator
from .transport import Transport, TransportResponse


class RequestDispatcher:
    """
    Performs one request through an injected transport.

    Each dispatch takes a request id up front, waits for a concurrency slot,
    calls the transport under the configured timeout and turns the outcome
    into a RequestResult. Nothing is retried: every attempt is one sample.
    """

    def __init__(
        self,
        transport: Transport,
        evaluator: Optional[SuccessEvaluator] = None,
        gate: Optional[ConcurrencyGate] = None,
    ):
        self.transport = transport
        self.evaluator = evaluator or SuccessEvaluator()
        self.gate = gate
        self._ids = itertools.count(1)
        self.logger = logging.getLogger(__name__)

    def reset_ids(self) -> None:
        self._ids = itertools.count(1)

    async def dispatch(
        self, config: TestConfig, abort: Optional[asyncio.Event] = None
    ) -> RequestResult:
        """
        Send one request described by `config`.

        Returns an "Aborted" result, which callers must not record, when
        `abort` is set before the transport call starts.
        """
        request_id = next(self._ids)

        if self.gate is None:
            return await self._send(request_id, config, abort)

        await self.gate.acquire()
        try:
            return await self._send(request_id, config, abort)
        finally:
            self.gate.release()

    async def _send(
        self, request_id: int, config: TestConfig, abort: Optional[asyncio.Event]
    ) -> RequestResult:
        if abort is not None and abort.is_set():
            return RequestResult(
                id=request_id,
                timestamp=time.time(),
                duration_ms=0.0,
                status=0,
                success=False,
                error=ABORTED_ERROR,
            )

        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.transport(
                    config.method,
                    config.url,
                    dict(config.headers),
                    config.request_body,
                    config.timeout_ms,
                ),
                timeout=config.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            response = TransportResponse(status=0, error=TIMEOUT_ERROR)
        except Exception as e:
            response = TransportResponse(status=0, error=str(e) or e.__class__.__name__)

        measured_ms = (time.perf_counter() - start_time) * 1000
        return self._build_result(request_id, response, measured_ms)

    def _build_result(
        self, request_id: int, response: TransportResponse, measured_ms: float
    ) -> RequestResult:
        duration_ms = response.duration_ms if response.duration_ms else measured_ms
        size_bytes = (
            len(response.body_text.encode("utf-8")) if response.body_text is not None else None
        )

        if response.error is not None or response.status == 0:
            self.logger.debug(f"Request {request_id} failed: {response.error}")
            return RequestResult(
                id=request_id,
                timestamp=time.time(),
                duration_ms=duration_ms,
                status=0,
                success=False,
                error=response.error or "Network error",
                size_bytes=size_bytes,
            )

        http_ok = 200 <= response.status < 300
        success, business_code = self.evaluator(response.body_text, http_ok)

        if not success:
            self.logger.debug(
                f"Request {request_id} unsuccessful: HTTP {response.status}, code={business_code}"
            )

        return RequestResult(
            id=request_id,
            timestamp=time.time(),
            duration_ms=duration_ms,
            status=response.status,
            success=success,
            size_bytes=size_bytes,
            business_code=business_code,
        )
