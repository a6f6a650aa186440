import asyncio
import time
from typing import Dict, List, Optional

import matplotlib
import pytest

matplotlib.use("Agg")

from stressbench.core.models import TestConfig
from stressbench.core.transport import TransportResponse


class FakeTransport:
    """Scripted async transport that records how it was called."""

    def __init__(
        self,
        status: int = 200,
        body: Optional[str] = '{"code": "0"}',
        delay: float = 0.0,
        error: Optional[str] = None,
        raises: Optional[BaseException] = None,
        report_duration: bool = False,
    ):
        self.status = status
        self.body = body
        self.delay = delay
        self.error = error
        self.raises = raises
        self.report_duration = report_duration
        self.calls: List[Dict] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    async def __call__(self, method, url, headers, body, timeout_ms):
        self.calls.append(
            {"method": method, "url": url, "headers": headers, "body": body, "timeout_ms": timeout_ms}
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        start = time.perf_counter()
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.raises is not None:
                raise self.raises
            return TransportResponse(
                status=self.status,
                body_text=self.body,
                duration_ms=(time.perf_counter() - start) * 1000 if self.report_duration else None,
                error=self.error,
            )
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_config():
    def _make(**overrides) -> TestConfig:
        values = {
            "url": "http://target.test/api",
            "qps": 10,
            "concurrency": 5,
            "duration": 1,
            "timeout_ms": 1000,
        }
        values.update(overrides)
        return TestConfig(**values)

    return _make
